"""
Reference table data access layer backed by SQLAlchemy.

Holds the authoritative list of known substances. Rows are written only by
the seeding step; everything else here is read-only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from allergen_lookup.core.errors import StorageFault
from allergen_lookup.core.types import ReferenceEntry
from allergen_lookup.data.database import (
    AllergenRow,
    create_tables,
    dialect_insert,
    make_session_factory,
    session_scope,
)
from allergen_lookup.utils.logger import get_logger

logger = get_logger("data.reference_store")

INSERT_BATCH_SIZE = 200


def _row_to_entry(row: AllergenRow) -> ReferenceEntry:
    return ReferenceEntry(
        name=row.name,
        keywords=ReferenceEntry.split_keywords(row.keywords or ""),
        function=row.function or "",
        found_in=row.found_in or "",
    )


@dataclass
class ReferenceStore:
    """
    Thin repository for the reference table.

    Args:
        engine: SQLAlchemy engine owning the reference database.
    """

    engine: Engine
    session_factory: sessionmaker = field(init=False)

    def __post_init__(self) -> None:
        self.session_factory = make_session_factory(self.engine)

    def initialize(self) -> None:
        """Create the reference table if it does not exist."""
        try:
            create_tables(self.engine, AllergenRow)
        except SQLAlchemyError as e:
            raise StorageFault(f"Failed to create reference table: {e}") from e

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def first_matching(self, criteria: Sequence) -> Optional[ReferenceEntry]:
        """
        Return the single best row satisfying all criteria, or None.

        Rows are ranked by name length (shortest first), then by name, so the
        same table and query always yield the same entry.
        """
        stmt = (
            select(AllergenRow)
            .where(*criteria)
            .order_by(func.length(AllergenRow.name), AllergenRow.name)
            .limit(1)
        )
        try:
            with session_scope(self.session_factory) as session:
                row = session.execute(stmt).scalars().first()
                return _row_to_entry(row) if row is not None else None
        except SQLAlchemyError as e:
            logger.error("Reference lookup failed: %s", e)
            raise StorageFault(f"Reference lookup failed: {e}") from e

    def list_entries(self) -> List[ReferenceEntry]:
        """All entries ordered by name."""
        stmt = select(AllergenRow).order_by(AllergenRow.name.asc())
        try:
            with session_scope(self.session_factory) as session:
                return [_row_to_entry(row) for row in session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            raise StorageFault(f"Failed to list reference entries: {e}") from e

    def count(self) -> int:
        try:
            with session_scope(self.session_factory) as session:
                return int(session.execute(select(func.count()).select_from(AllergenRow)).scalar() or 0)
        except SQLAlchemyError as e:
            raise StorageFault(f"Failed to count reference entries: {e}") from e

    # ------------------------------------------------------------------ #
    # Seeding
    # ------------------------------------------------------------------ #

    def load_entries(self, entries: Iterable[ReferenceEntry], replace: bool = False) -> int:
        """
        Insert entries, ignoring names that already exist.

        Args:
            entries: Entries to insert. Within the batch the first occurrence of a
                     name wins.
            replace: Wipe the table first (full re-seed).

        Returns:
            Number of rows actually inserted.
        """
        records = []
        seen = set()
        for entry in entries:
            if entry.name in seen:
                continue
            seen.add(entry.name)
            records.append({
                "name": entry.name,
                "keywords": ",".join(entry.keywords),
                "function": entry.function,
                "found_in": entry.found_in,
            })

        try:
            with session_scope(self.session_factory) as session:
                if replace:
                    session.execute(delete(AllergenRow))
                before = session.execute(select(func.count()).select_from(AllergenRow)).scalar() or 0
                for i in range(0, len(records), INSERT_BATCH_SIZE):
                    batch = records[i : i + INSERT_BATCH_SIZE]
                    stmt = dialect_insert(self.engine, AllergenRow).values(batch)
                    session.execute(stmt.on_conflict_do_nothing(index_elements=["name"]))
                after = session.execute(select(func.count()).select_from(AllergenRow)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Seeding reference table failed: %s", e)
            raise StorageFault(f"Seeding reference table failed: {e}") from e

        inserted = int(after - before)
        logger.info("Reference table seeded: %d new rows (%d offered)", inserted, len(records))
        return inserted
