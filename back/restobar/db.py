from collections.abc import Iterator

from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, text

from .settings import settings


def _make_engine(url: str):
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=settings.db_echo, **kwargs)
    return create_engine(url, echo=settings.db_echo, pool_pre_ping=True)


engine = _make_engine(settings.database_url)


def create_db_and_tables() -> None:
    # Import models so every table is registered on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def check_db_connection() -> None:
    with Session(engine) as session:
        session.execute(text("SELECT 1"))


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session
