"""The single open window during which calls are let through automatically."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


class WindowState(str, enum.Enum):
    """Derived from the window and the current time, never stored."""

    CLOSED = "closed"
    SCHEDULED = "scheduled"
    ACTIVE = "active"


def instant(dt: datetime) -> datetime:
    """Same moment in UTC.

    Aware datetimes sharing a tzinfo compare by wall clock, which misorders
    the repeated hour when clocks go back; comparing in UTC does not.
    """
    return dt.astimezone(timezone.utc)


@dataclass
class AccessWindow:
    """A (start, end) pair.  Either both are ``None`` or ``start <= end``."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_set(self) -> bool:
        return self.start is not None and self.end is not None

    def set(self, start: datetime, end: datetime) -> None:
        self.start = start
        self.end = end

    def clear(self) -> None:
        self.start = None
        self.end = None

    def expire(self, now: datetime) -> bool:
        """Clear the window if it lies entirely in the past.

        Returns True if the window was cleared.
        """
        if not self.is_set:
            return False
        now = instant(now)
        if instant(self.start) < now and instant(self.end) < now:
            self.clear()
            return True
        return False

    def is_active(self, now: datetime) -> bool:
        """True only strictly inside the window; both edges count as closed."""
        if not self.is_set:
            return False
        return instant(self.start) < instant(now) < instant(self.end)

    def state(self, now: datetime) -> WindowState:
        if self.start is None:
            return WindowState.CLOSED
        if instant(self.start) <= instant(now):
            return WindowState.ACTIVE
        return WindowState.SCHEDULED
