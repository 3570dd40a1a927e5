"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class NotificationSettings:
    """Switches for outbound guest communication.

    The booking confirmation email goes out only when both flags are on.
    In-app notifications are not gated.
    """

    email_notifications: bool = True
    notify_on_booking: bool = True

    @property
    def booking_email_enabled(self) -> bool:
        return self.email_notifications and self.notify_on_booking


def load_notification_settings() -> NotificationSettings:
    return NotificationSettings(
        email_notifications=_flag("EMAIL_NOTIFICATIONS", True),
        notify_on_booking=_flag("NOTIFY_ON_BOOKING", True),
    )


@dataclass(frozen=True)
class EmailSettings:
    api_url: str | None
    api_key: str | None
    sender: str
    timeout: int


def load_email_settings() -> EmailSettings:
    return EmailSettings(
        api_url=os.environ.get("EMAIL_API_URL") or None,
        api_key=os.environ.get("EMAIL_API_KEY") or None,
        sender=os.environ.get("EMAIL_FROM", "reservations@roomsync.local"),
        timeout=int(os.environ.get("EMAIL_HTTP_TIMEOUT", "10")),
    )
