"""Tests for environment-driven settings."""

import os
from unittest.mock import patch

import pytest

from roomsync.settings import (
    NotificationSettings,
    load_email_settings,
    load_notification_settings,
)


def test_notification_defaults():
    with patch.dict(os.environ, {}, clear=True):
        settings = load_notification_settings()
    assert settings == NotificationSettings(email_notifications=True, notify_on_booking=True)
    assert settings.booking_email_enabled


@pytest.mark.parametrize(
    "env, enabled",
    [
        ({"EMAIL_NOTIFICATIONS": "false"}, False),
        ({"NOTIFY_ON_BOOKING": "0"}, False),
        ({"EMAIL_NOTIFICATIONS": "Yes", "NOTIFY_ON_BOOKING": "on"}, True),
        ({"EMAIL_NOTIFICATIONS": " "}, True),
    ],
)
def test_booking_email_flags(env, enabled):
    with patch.dict(os.environ, env, clear=True):
        assert load_notification_settings().booking_email_enabled is enabled


def test_email_settings():
    env = {"EMAIL_API_URL": "https://mail.example.com/send", "EMAIL_API_KEY": "k", "EMAIL_HTTP_TIMEOUT": "3"}
    with patch.dict(os.environ, env, clear=True):
        settings = load_email_settings()
    assert settings.api_url == "https://mail.example.com/send"
    assert settings.api_key == "k"
    assert settings.timeout == 3
    assert settings.sender == "reservations@roomsync.local"


def test_email_settings_unconfigured():
    with patch.dict(os.environ, {"EMAIL_API_URL": ""}, clear=True):
        settings = load_email_settings()
    assert settings.api_url is None
    assert settings.api_key is None
