"""SQLAlchemy base, engine and transactional session scope."""

from collections.abc import Generator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID, uuid4

import structlog
from sqlalchemy import Numeric, String, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from ledger_posting.config import get_settings

logger = structlog.get_logger(__name__)


class UUIDString(TypeDecorator):
    """UUID stored as String(36) so SQLite and PostgreSQL behave the same."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Any) -> str | None:
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value: Any, dialect: Any) -> UUID | None:
        if value is not None:
            return UUID(value)
        return None


# Ledger amounts are kept at millime precision
Amount = Numeric(18, 3, asdecimal=True)


class Base(DeclarativeBase):
    """Declarative base for all tables."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Amount,
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(database_url: str | None = None, echo: bool | None = None) -> Engine:
    """Create an engine for the configured database.

    SQLite connections get foreign keys switched on; an in-memory SQLite URL
    shares one connection so every session sees the same database.
    """
    settings = get_settings()
    url = database_url or settings.database_url
    kwargs: dict[str, Any] = {
        "echo": settings.database_echo if echo is None else echo,
        "future": True,
    }
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.info("engine_created", dialect=engine.dialect.name)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Build the session factory used by repositories and the poster."""
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create every table known to the metadata."""
    # Import for side effects: registers the mapped classes on Base.metadata
    from ledger_posting.store import tables  # noqa: F401

    Base.metadata.create_all(engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a transactional scope: commit on success, roll back on any error."""
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
