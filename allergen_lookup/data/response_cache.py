"""
Persisted response cache for synthesized answers.

Keys are normalized queries (lower-cased, trimmed). Reads are approximate:
a stored key matches when it contains the incoming normalized query, and the
first such row in storage order is returned. Deletes are exact-key only.
Writes are insert-or-replace, so the latest answer for a key wins.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional, Protocol

from pydantic import ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from allergen_lookup.core.errors import StorageFault
from allergen_lookup.core.types import StructuredAnswer
from allergen_lookup.data.database import (
    CachedAnswerRow,
    create_tables,
    dialect_insert,
    make_session_factory,
    session_scope,
    utcnow,
)
from allergen_lookup.matching.query_terms import is_too_short, normalize_cache_key
from allergen_lookup.utils.logger import get_logger

logger = get_logger("data.response_cache")


class ResponseCache(Protocol):
    """Contract shared by every response cache backend."""

    def find(self, query: str) -> Optional[StructuredAnswer]:
        ...

    def save(self, query: str, answer: StructuredAnswer) -> None:
        ...

    def delete(self, query: str) -> int:
        ...

    def count(self) -> int:
        ...


def decode_answer(raw: str, key: str) -> StructuredAnswer:
    """Parse a stored JSON payload; a corrupt row is a storage fault, not a miss."""
    try:
        return StructuredAnswer.model_validate_json(raw)
    except ValidationError as e:
        raise StorageFault(f"Corrupt cache entry for '{key}': {e}") from e


@dataclass
class SQLResponseCache:
    """
    Response cache stored in a SQL table (SQLite by default).

    Args:
        engine: SQLAlchemy engine owning the cache database.
        min_query_length: Normalized queries shorter than this are never looked up.
        ttl_seconds: Optional maximum age for a row to be served; None keeps rows forever.
    """

    engine: Engine
    min_query_length: int = 2
    ttl_seconds: Optional[int] = None
    session_factory: sessionmaker = field(init=False)

    def __post_init__(self) -> None:
        self.session_factory = make_session_factory(self.engine)

    def initialize(self) -> None:
        """Create the cache table if it does not exist."""
        try:
            create_tables(self.engine, CachedAnswerRow)
        except SQLAlchemyError as e:
            raise StorageFault(f"Failed to create cache table: {e}") from e

    def find(self, query: str) -> Optional[StructuredAnswer]:
        """Return the first cached answer whose key contains the normalized query."""
        key = normalize_cache_key(query or "")
        if is_too_short(key, self.min_query_length):
            return None

        stmt = (
            select(CachedAnswerRow.query, CachedAnswerRow.response)
            .where(CachedAnswerRow.query.contains(key, autoescape=True))
            .limit(1)
        )
        if self.ttl_seconds is not None:
            cutoff = utcnow() - timedelta(seconds=self.ttl_seconds)
            stmt = stmt.where(CachedAnswerRow.timestamp >= cutoff)

        try:
            with session_scope(self.session_factory) as session:
                row = session.execute(stmt).first()
        except SQLAlchemyError as e:
            logger.error("Cache read failed for '%s': %s", key, e)
            raise StorageFault(f"Cache read failed: {e}") from e

        if row is None:
            return None
        stored_key, raw = row
        logger.info("Cache hit for '%s' (stored key '%s')", key, stored_key)
        return decode_answer(raw, stored_key)

    def save(self, query: str, answer: StructuredAnswer) -> None:
        """Insert or replace the answer stored under the normalized query."""
        key = normalize_cache_key(query or "")
        if not key:
            logger.warning("Refusing to cache an answer under an empty key")
            return

        stmt = dialect_insert(self.engine, CachedAnswerRow).values(
            query=key,
            response=answer.model_dump_json(),
            timestamp=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["query"],
            set_={"response": stmt.excluded.response, "timestamp": stmt.excluded.timestamp},
        )
        try:
            with session_scope(self.session_factory) as session:
                session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Cache write failed for '%s': %s", key, e)
            raise StorageFault(f"Cache write failed: {e}") from e
        logger.info("Cached answer for '%s'", key)

    def delete(self, query: str) -> int:
        """Remove the row with exactly this normalized key. Returns rows removed (0 or 1)."""
        key = normalize_cache_key(query or "")
        try:
            with session_scope(self.session_factory) as session:
                result = session.execute(delete(CachedAnswerRow).where(CachedAnswerRow.query == key))
                removed = int(result.rowcount or 0)
        except SQLAlchemyError as e:
            raise StorageFault(f"Cache delete failed: {e}") from e
        logger.info("Cache delete for '%s' removed %d row(s)", key, removed)
        return removed

    def count(self) -> int:
        try:
            with session_scope(self.session_factory) as session:
                return int(session.execute(select(func.count()).select_from(CachedAnswerRow)).scalar() or 0)
        except SQLAlchemyError as e:
            raise StorageFault(f"Cache count failed: {e}") from e
