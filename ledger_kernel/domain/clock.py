"""
Clock -- injectable time source.

Responsibility:
    Services receive a Clock by constructor injection so that ``posted_at``,
    ``deactivated_at``, audit ``occurred_at`` and policy environment checks
    never read the wall clock directly.

Architecture position:
    Kernel > Domain -- zero I/O except SystemClock, the one sanctioned time
    boundary.

Failure modes:
    (none)
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
        - ``today()`` is the UTC calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Fixed clock for tests; time moves only through ``advance()``."""

    DEFAULT_START = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        self._current = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, **delta: float) -> datetime:
        """Move forward by ``timedelta(**delta)`` and return the new instant."""
        self._current += timedelta(**delta)
        return self._current
