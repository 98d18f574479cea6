"""
Engine and session management for the ledger kernel.

Responsibility:
    Owns the process-wide engine and session factory and the
    ``session_scope()`` unit of work that every service call runs inside.

Architecture position:
    Kernel > DB.  Imports db/base.py; ``create_tables``/``drop_tables``
    import the models package so every table is registered first.

Invariants enforced:
    - A unit of work commits or rolls back as a whole: a journal entry, its
      lines, the entry-number increment, audit records and denial records
      share one transaction.
    - PostgreSQL runs at READ COMMITTED; entry numbering takes its own
      row lock (SELECT ... FOR UPDATE).  SQLite is accepted for tests.

Failure modes:
    - RuntimeError when the engine is used before ``init_engine_from_url``.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Database engine is not initialized; call init_engine_from_url() first"

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _engine_options(
    backend: str,
    pool_size: int,
    max_overflow: int,
    pool_timeout: int,
    pool_recycle: int,
) -> dict[str, Any]:
    if backend == "sqlite":
        return {}
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_timeout": pool_timeout,
        "pool_recycle": pool_recycle,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    A second call replaces the first engine without disposing it; call
    ``reset_engine()`` in between to release its connections.  Pool
    arguments apply to server databases only.
    """
    global _engine, _session_factory

    backend = make_url(database_url).get_backend_name()
    _engine = create_engine(
        database_url,
        echo=echo,
        **_engine_options(backend, pool_size, max_overflow, pool_timeout, pool_recycle),
    )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": backend, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session outside any unit of work.  The caller closes it."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on normal exit, roll back and re-raise on error.

    Usage:
        with session_scope() as session:
            JournalEntryService(session, clock).post_entry(entry_id, org_id, actor)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  registers every table

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every kernel table.  Tests and local tooling only."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
