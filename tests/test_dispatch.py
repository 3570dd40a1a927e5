"""Tests for after-commit side-effect dispatch."""

from unittest.mock import MagicMock

from roomsync.domain.side_effects import SideEffect
from roomsync.services.dispatch import WORKER_PATHS, dispatch_side_effects
from roomsync.settings import NotificationSettings
from roomsync.tasks.client import TasksClient

EMAIL = SideEffect("reservation_confirmation_email", "email:confirmation:res-1", {"reservation_id": "res-1"})
NOTIFY = SideEffect("notify_user", "notify:booking:res-1", {"user_id": "guest-1", "title": "t"})
ADMINS = SideEffect("notify_admins", "notify-admins:booking:res-1", {"title": "t"})


def test_each_effect_becomes_one_task():
    client = TasksClient(backend="inline")

    assert dispatch_side_effects([EMAIL, NOTIFY, ADMINS], client, NotificationSettings()) == 3

    tasks = client.get_recorded_tasks()
    assert [t["task_id"] for t in tasks] == [EMAIL.dedupe_key, NOTIFY.dedupe_key, ADMINS.dedupe_key]
    assert tasks[0]["url_path"] == WORKER_PATHS["reservation_confirmation_email"]
    assert tasks[1]["payload"] == {
        "version": "v1",
        "task_name": "notify_user",
        "payload": NOTIFY.payload,
        "task_id": NOTIFY.dedupe_key,
    }


def test_redispatch_is_deduplicated():
    client = TasksClient(backend="inline")
    dispatch_side_effects([NOTIFY], client, NotificationSettings())
    assert dispatch_side_effects([NOTIFY], client, NotificationSettings()) == 0
    assert len(client.get_recorded_tasks()) == 1


def test_email_gated_by_settings():
    client = TasksClient(backend="inline")

    accepted = dispatch_side_effects(
        [EMAIL, NOTIFY], client, NotificationSettings(email_notifications=True, notify_on_booking=False),
    )

    assert accepted == 1
    assert [t["task_id"] for t in client.get_recorded_tasks()] == [NOTIFY.dedupe_key]


def test_failure_does_not_stop_other_effects():
    client = MagicMock()
    client.enqueue_http.side_effect = [RuntimeError("queue down"), True, False]

    accepted = dispatch_side_effects([EMAIL, NOTIFY, ADMINS], client, NotificationSettings())

    assert accepted == 1
    assert client.enqueue_http.call_count == 3
