"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Common constructor and session-handling contract for every write-side
    service.  Services receive a SQLAlchemy ``Session`` and persist through
    ``session.flush()``; they never commit.

Architecture position:
    Kernel > Services -- imperative shell.  Every service in
    ``ledger_kernel/services/`` that writes extends this class.

Invariants enforced:
    - Transaction boundaries belong to the caller: an entry and its lines,
      its audit record and its sequence allocation all land in the same
      transaction, committed or rolled back together by ``session_scope()``
      or the test harness.

Failure modes:
    - A subclass calling ``session.commit()`` would let half of a
      multi-step operation (entry without audit, reversal without the
      original's status change) survive a later failure.
"""

from abc import ABC
from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all ledger services.

    Contract:
        Accepts a Session (and optionally a Clock) from the caller and uses
        ``session.flush()`` to persist within the active transaction.

    Non-goals:
        - Does NOT commit or roll back.
        - Does NOT provide read-only queries; those live in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()


class _Unset:
    """Marker for "field not supplied" in partial updates (None is a valid value)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()
