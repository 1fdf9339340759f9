"""
Module: fieldsales_kernel.db.engine
Responsibility: The process-wide SQLAlchemy engine behind SqlKeyValueStore,
    its session factory, and the commit-or-rollback ``session_scope``.
Architecture position: Kernel > DB.  Imports only db/base.py and
    db/models.py from the kernel.

Invariants enforced:
    - In-memory SQLite (``sqlite://``) runs on one shared connection, so
      every session of a test sees the same tables.
    - Server databases get a sized pool with pre-ping.

Failure modes:
    - RuntimeError from any accessor before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fieldsales_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_IN_MEMORY_SQLITE = frozenset({"sqlite://", "sqlite:///:memory:"})

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _engine_options(database_url: str, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if not database_url.startswith("sqlite"):
        return {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_pre_ping": True,
        }
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in _IN_MEMORY_SQLITE:
        options["poolclass"] = StaticPool
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the module engine and session factory, replacing any earlier one.

    Args:
        database_url: ``sqlite://`` for tests, or a server URL.
        echo: Log every SQL statement.
        pool_size: Pooled connections (server databases only).
        max_overflow: Connections allowed beyond the pool (server databases only).
    """
    global _engine, _session_factory

    reset_engine()
    _engine = create_engine(
        database_url,
        echo=echo,
        **_engine_options(database_url, pool_size, max_overflow),
    )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("No engine: call init_engine_from_url() first")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("No engine: call init_engine_from_url() first")
    return _session_factory


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """
    Yield a session that commits on clean exit and rolls back on error.

    The session is closed either way and the error is re-raised.  Without
    ``factory`` the module session factory is used.
    """
    session = (factory or get_session_factory())()
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
    """Create the store tables on the module engine if they are missing."""
    from fieldsales_kernel.db.base import Base
    import fieldsales_kernel.db.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the module engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
