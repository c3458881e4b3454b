"""
Module: ledger_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  This is the single point of database
    connection configuration for the ledger.
Architecture position: Kernel > DB.  May import from db/base.py and (lazily,
    for create_tables) models/.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED; the ledger's correctness under
      concurrent writers comes from the version-conditioned UPDATE in the
      case repository, not from isolation level.
    - SQLite (tests, local tooling) runs with check_same_thread disabled so
      a session factory can be shared across worker threads.

Failure modes:
    - RuntimeError if get_engine/get_session/get_session_factory called before
      init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # Child rows rely on ON DELETE CASCADE.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _sqlite_engine(url: URL, echo: bool) -> Engine:
    in_memory = url.database in (None, "", ":memory:")
    engine = create_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        # An in-memory database lives on exactly one connection.
        poolclass=StaticPool if in_memory else None,
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _server_engine(url: URL, echo: bool, pool: dict[str, Any]) -> Engine:
    return create_engine(
        url,
        echo=echo,
        isolation_level="READ COMMITTED",
        **{**_SERVER_POOL_DEFAULTS, **pool},
    )


_SERVER_POOL_DEFAULTS: dict[str, Any] = {
    "pool_size": 20,
    "max_overflow": 10,
    "pool_pre_ping": True,
    "pool_timeout": 30,
    "pool_recycle": 1800,
}


def init_engine_from_url(database_url: str, echo: bool = False, **pool: Any) -> Engine:
    """
    Initialize the module-level engine and session factory.

    A second call replaces the first.  ``pool`` overrides the connection
    pool defaults (``pool_size``, ``max_overflow``, ``pool_pre_ping``,
    ``pool_timeout``, ``pool_recycle``) and is ignored for SQLite.

    Args:
        database_url: SQLAlchemy URL (postgresql://... or sqlite://...).
        echo: If True, log all SQL statements.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    dialect = url.get_backend_name()
    if dialect == "sqlite":
        _engine = _sqlite_engine(url, echo)
    else:
        _engine = _server_engine(url, echo, pool)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info("engine_initialized", extra={"dialect": dialect, "echo": echo})
    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    """Get a new session instance."""
    return get_session_factory()()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Useful for multi-threaded scenarios where each thread needs its own session.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed and the exception
        is re-raised to the caller.

    Usage:
        with session_scope() as session:
            session.add(entity)
    """
    session = (factory or get_session_factory())()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create all ledger tables."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop all ledger tables. Use with caution - primarily for testing."""
    from ledger_kernel.db.base import Base
    import ledger_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Reset the engine and session factory. Useful for test cleanup."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None
