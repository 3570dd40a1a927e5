"""Redaction helpers for safe logging.

Guest names, emails, phone numbers and free text (special requests,
maintenance descriptions) must never be logged verbatim.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Any

_PHONE_PATTERN = re.compile(r"\+?\d[\d\s\-()]{8,}\d")
_EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

_REDACTED = "[REDACTED]"


def redact_string(value: str) -> str:
    result = _PHONE_PATTERN.sub(_REDACTED, value)
    return _EMAIL_PATTERN.sub(_REDACTED, result)


def redact_value(value: Any) -> str:
    """String form of `value` that is safe to log."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, dict):
        # Structure only, never values
        return f"dict(keys={sorted(value.keys())})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    return {k: redact_value(v) for k, v in kwargs.items()}
