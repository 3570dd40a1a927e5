"""Task contracts v1 - payloads sent from the API to the worker."""

from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass(frozen=True)
class TaskEnvelopeV1:
    """Versioned wrapper around one side-effect delivery.

    Attributes:
        version: Contract version (always "v1").
        task_name: Side-effect kind (e.g. notify_admins).
        payload: Kind-specific data.
        task_id: Dedupe key; the worker treats a repeat as a no-op.
    """

    version: Literal["v1"] = field(default="v1", init=False)
    task_name: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    task_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "task_name": self.task_name,
            "payload": self.payload,
            "task_id": self.task_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TaskEnvelopeV1":
        if data.get("version") != "v1":
            raise ValueError(f"Unsupported version: {data.get('version')}")
        if not data.get("task_id"):
            raise ValueError("task_id is required")
        return cls(
            task_name=data.get("task_name", ""),
            payload=data.get("payload") or {},
            task_id=data["task_id"],
        )
