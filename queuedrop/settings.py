from __future__ import annotations

# Per-queue configuration.
#
# Settings are a value: the aggregate replaces them wholesale and never
# mutates them in place. Ranges are checked by `validate()` before a queue
# accepts them.

from dataclasses import asdict, dataclass, fields
from typing import Any

from .errors import ErrorResponse, invalid_settings

MAX_MESSAGE_LENGTH = 500


@dataclass(frozen=True)
class QueueSettings:
    """Configuration owned by exactly one queue."""

    max_capacity: int | None = None  # Waiting + Called; None means unbounded
    estimated_service_minutes: int = 5
    no_show_timeout_minutes: int = 5
    allow_join_when_paused: bool = False
    welcome_message: str | None = None
    called_message: str | None = None
    near_front_threshold: int = 3  # 0 disables near-front notifications

    def validate(self) -> ErrorResponse | None:
        if self.max_capacity is not None and (_not_int(self.max_capacity) or self.max_capacity < 0):
            return invalid_settings("max_capacity must be >= 0 or unset")
        if _not_int(self.estimated_service_minutes) or self.estimated_service_minutes <= 0:
            return invalid_settings("estimated_service_minutes must be > 0")
        if _not_int(self.no_show_timeout_minutes) or self.no_show_timeout_minutes <= 0:
            return invalid_settings("no_show_timeout_minutes must be > 0")
        if _not_int(self.near_front_threshold) or self.near_front_threshold < 0:
            return invalid_settings("near_front_threshold must be >= 0")
        if not isinstance(self.allow_join_when_paused, bool):
            return invalid_settings("allow_join_when_paused must be a boolean")
        for name in ("welcome_message", "called_message"):
            value = getattr(self, name)
            if value is None:
                continue
            if not isinstance(value, str):
                return invalid_settings(f"{name} must be a string")
            if len(value) > MAX_MESSAGE_LENGTH:
                return invalid_settings(f"{name} must be at most {MAX_MESSAGE_LENGTH} characters")
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueueSettings:
        """Build settings from a wire message.

        Unknown keys are ignored and missing keys take their defaults. Messages
        are trimmed; a blank message means "no message". Range checks are left
        to `validate()`.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name in ("welcome_message", "called_message"):
            value = kwargs.get(name)
            if isinstance(value, str):
                kwargs[name] = value.strip() or None
        return cls(**kwargs)


DEFAULT_SETTINGS = QueueSettings()


def _not_int(value: Any) -> bool:
    # bool is an int subclass; reject it for numeric fields.
    return isinstance(value, bool) or not isinstance(value, int)
