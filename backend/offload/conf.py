"""
Offload configuration read from Django settings.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULT_SIZE_THRESHOLD = 10 * 1024
DEFAULT_MINIMUM_AGE = 7 * 24 * 60 * 60


def _non_negative_int(name: str, default: int) -> int:
    value = getattr(settings, name, default)
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ImproperlyConfigured(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise ImproperlyConfigured(f"{name} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class MigrationPolicy:
    """
    Eligibility bounds for outbound migration.

    Both fields are non-negative; 0 disables filtering on that dimension.
    """
    size_threshold: int = 0
    minimum_age: int = 0

    def __post_init__(self):
        if self.size_threshold < 0 or self.minimum_age < 0:
            raise ValueError("Policy bounds must be non-negative")

    @classmethod
    def from_settings(cls) -> 'MigrationPolicy':
        return cls(
            size_threshold=_non_negative_int('OBJECTFS_SIZE_THRESHOLD', DEFAULT_SIZE_THRESHOLD),
            minimum_age=_non_negative_int('OBJECTFS_MINIMUM_AGE', DEFAULT_MINIMUM_AGE),
        )

    def created_before(self, now: datetime) -> datetime:
        """Latest creation time an eligible object may have."""
        return now - timedelta(seconds=self.minimum_age)

    def admits(self, size: int, created_at: datetime, now: datetime, max_size: int) -> bool:
        return (
            self.size_threshold <= size < max_size
            and created_at <= self.created_before(now)
        )


def get_max_task_runtime() -> int:
    """Seconds a single push run may spend, 0 for no limit."""
    return _non_negative_int('OBJECTFS_MAX_TASK_RUNTIME', 0)


def is_async_push_enabled() -> bool:
    return bool(getattr(settings, 'OBJECTFS_ASYNC_PUSH', False))
