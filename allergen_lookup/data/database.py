"""
Database engines, sessions and table models.

Uses SQLAlchemy so the reference table and the SQL response cache can live in
SQLite (default) or any other SQLAlchemy-supported database. Engines are built
explicitly and owned by the caller; nothing is created at import time.
"""
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from allergen_lookup.utils.logger import get_logger

logger = get_logger("data.database")

# Base class for all our database models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, comparable across SQLite and Postgres columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AllergenRow(Base):
    """
    Reference table of known substances.
    Seeded in bulk from CSV; read-only during normal operation.
    """
    __tablename__ = "allergens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    keywords = Column(Text, nullable=False, default="")   # comma-delimited aliases
    function = Column(Text)
    found_in = Column(Text)


class CachedAnswerRow(Base):
    """
    Response cache: normalized query -> JSON-serialized structured answer.
    """
    __tablename__ = "ai_cache"

    query = Column(String(512), primary_key=True)
    response = Column(Text, nullable=False)
    timestamp = Column(DateTime, nullable=False, default=utcnow)


def create_store_engine(url: str) -> Engine:
    """
    Build an engine for a store URL.

    SQLite files get their parent directory created; in-memory SQLite uses a
    single shared connection so every session sees the same database.
    """
    parsed = make_url(url)
    kwargs = {"pool_pre_ping": True}

    if parsed.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        database = parsed.database
        if not database or database == ":memory:":
            kwargs["poolclass"] = StaticPool
        else:
            directory = os.path.dirname(os.path.abspath(database))
            os.makedirs(directory, exist_ok=True)

    logger.info("Creating engine for %s", parsed.render_as_string(hide_password=True))
    return create_engine(url, **kwargs)


def create_tables(engine: Engine, *models) -> None:
    """Create only the given models' tables on this engine."""
    Base.metadata.create_all(engine, tables=[model.__table__ for model in models])


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """
    Provide a session that commits on success and rolls back on error.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


def dialect_insert(engine: Engine, model):
    """
    Return a dialect-specific INSERT for the model's table.

    Only SQLite and Postgres offer the ON CONFLICT clauses the stores rely on
    for insert-or-ignore and insert-or-replace.
    """
    backend = engine.dialect.name
    if backend == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif backend == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        raise ValueError(f"Unsupported database backend for upserts: {backend}")
    return insert(model.__table__)
