"""Tests for the tasks client, envelope contract and HTTP backend."""

import os
from unittest.mock import MagicMock, patch

import pytest
import requests

from roomsync.tasks.client import TasksClient
from roomsync.tasks.contracts import TaskEnvelopeV1


class TestTasksClient:
    def test_inline_records_task(self):
        client = TasksClient(backend="inline")

        assert client.enqueue_http("t-1", "/tasks/notifications/deliver", {"k": "v"}, "corr-1") is True
        assert client.get_recorded_tasks() == [{
            "task_id": "t-1",
            "url_path": "/tasks/notifications/deliver",
            "payload": {"k": "v"},
            "correlation_id": "corr-1",
        }]

    def test_same_task_id_enqueued_once(self):
        client = TasksClient(backend="inline")

        assert client.enqueue_http("same", "/p", {"x": 1}) is True
        assert client.enqueue_http("same", "/p", {"x": 2}) is False
        assert len(client.get_recorded_tasks()) == 1
        assert client.was_enqueued("same") is True
        assert client.was_enqueued("other") is False

    def test_clear(self):
        client = TasksClient(backend="inline")
        client.enqueue_http("t-1", "/p", {})
        client.clear()
        assert client.was_enqueued("t-1") is False
        assert client.enqueue_http("t-1", "/p", {}) is True

    def test_backend_from_env(self):
        with patch.dict(os.environ, {"TASKS_BACKEND": "http"}):
            assert TasksClient().backend == "http"
        with patch.dict(os.environ, {}, clear=True):
            assert TasksClient().backend == "inline"

    def test_http_backend_delegates(self):
        client = TasksClient(backend="http")
        with patch("roomsync.tasks.http_backend.enqueue_http", return_value=True) as mock_http:
            assert client.enqueue_http("t-1", "/p", {"a": 1}, "c-1") is True
        mock_http.assert_called_once_with("t-1", "/p", {"a": 1}, "c-1")

    def test_cloud_tasks_backend_delegates(self):
        client = TasksClient(backend="cloud_tasks")
        with patch("roomsync.tasks.cloud_tasks_backend.enqueue_cloud_task", return_value=True) as mock_ct:
            assert client.enqueue_http("t-1", "/p", {}) is True
        mock_ct.assert_called_once_with("t-1", "/p", {}, None)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown TASKS_BACKEND"):
            TasksClient(backend="carrier-pigeon").enqueue_http("t-1", "/p", {})


class TestTaskEnvelopeV1:
    def test_round_trip_fields(self):
        envelope = TaskEnvelopeV1(task_name="notify_user", payload={"user_id": "u-1"}, task_id="k-1")
        data = envelope.to_dict()
        assert data == {"version": "v1", "task_name": "notify_user", "payload": {"user_id": "u-1"}, "task_id": "k-1"}
        assert TaskEnvelopeV1.from_dict(data) == envelope

    def test_rejects_other_versions(self):
        with pytest.raises(ValueError, match="Unsupported version"):
            TaskEnvelopeV1.from_dict({"version": "v2", "task_id": "k-1"})

    def test_requires_task_id(self):
        with pytest.raises(ValueError, match="task_id"):
            TaskEnvelopeV1.from_dict({"version": "v1", "task_name": "notify_user"})


class TestHttpBackend:
    def test_local_secret_header(self):
        from roomsync.tasks.http_backend import LOCAL_DEV_AUDIENCE, enqueue_http

        env = {
            "WORKER_BASE_URL": "http://worker:8000/",
            "TASKS_OIDC_AUDIENCE": LOCAL_DEV_AUDIENCE,
            "INTERNAL_TASK_SECRET": "s3cret",
        }
        with patch.dict(os.environ, env, clear=True), \
             patch("roomsync.tasks.http_backend.requests.post") as mock_post:
            assert enqueue_http("t-1", "/tasks/notifications/deliver", {"a": 1}, "corr-1") is True

        args, kwargs = mock_post.call_args
        assert args[0] == "http://worker:8000/tasks/notifications/deliver"
        assert kwargs["headers"]["X-Internal-Task-Secret"] == "s3cret"
        assert kwargs["headers"]["X-Correlation-ID"] == "corr-1"
        assert "Authorization" not in kwargs["headers"]

    def test_oidc_token_header(self):
        from roomsync.tasks.http_backend import enqueue_http

        env = {"WORKER_BASE_URL": "https://worker.example.com", "TASKS_OIDC_AUDIENCE": "https://aud.example.com"}
        with patch.dict(os.environ, env, clear=True), \
             patch("roomsync.tasks.http_backend.fetch_id_token", return_value="tok") as mock_fetch, \
             patch("roomsync.tasks.http_backend.requests.post") as mock_post:
            assert enqueue_http("t-1", "/p", {}) is True

        assert mock_fetch.call_args[0][1] == "https://aud.example.com"
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_no_token_aborts(self):
        from roomsync.tasks.http_backend import enqueue_http

        with patch.dict(os.environ, {"WORKER_BASE_URL": "https://w"}, clear=True), \
             patch("roomsync.tasks.http_backend.fetch_id_token", side_effect=RuntimeError("no adc")), \
             patch("roomsync.tasks.http_backend.requests.post") as mock_post:
            assert enqueue_http("t-1", "/p", {}) is False
        mock_post.assert_not_called()

    def test_worker_error_returns_false(self):
        from roomsync.tasks.http_backend import LOCAL_DEV_AUDIENCE, enqueue_http

        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("503")
        with patch.dict(os.environ, {"TASKS_OIDC_AUDIENCE": LOCAL_DEV_AUDIENCE}, clear=True), \
             patch("roomsync.tasks.http_backend.requests.post", return_value=response):
            assert enqueue_http("t-1", "/p", {}) is False
