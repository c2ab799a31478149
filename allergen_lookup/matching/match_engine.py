"""
Keyword match engine over the reference table.

Decides whether the reference table holds an authoritative entry for a raw
query:
1. Queries shorter than the minimum length never reach storage
2. Every usable term must appear in the entry's keywords or name (AND of ORs)
3. With no usable term, the cleaned query is searched as one substring
4. Among qualifying entries the shortest name wins
"""
from typing import List, Optional

from sqlalchemy import func, or_

from allergen_lookup.core.types import ReferenceEntry
from allergen_lookup.data.database import AllergenRow
from allergen_lookup.data.reference_store import ReferenceStore
from allergen_lookup.matching.query_terms import extract_terms, is_too_short
from allergen_lookup.utils.logger import get_logger

logger = get_logger("matching.match_engine")


def _contains(term: str):
    """keywords CONTAINS term OR name CONTAINS term, case-insensitively."""
    return or_(
        func.lower(AllergenRow.keywords).contains(term, autoescape=True),
        func.lower(AllergenRow.name).contains(term, autoescape=True),
    )


class MatchEngine:
    """
    Resolves a free-text query to at most one reference entry.

    Storage faults raised by the store propagate unchanged; a miss is None.
    """

    def __init__(
        self,
        store: ReferenceStore,
        min_query_length: int = 2,
        min_term_length: int = 3,
    ):
        self.store = store
        self.min_query_length = min_query_length
        self.min_term_length = min_term_length

    def build_criteria(self, query: str) -> Optional[List]:
        """
        Translate a query into SQL criteria, or None when it cannot match anything.
        """
        parsed = extract_terms(query, self.min_term_length)
        if parsed.terms:
            return [_contains(term) for term in parsed.terms]
        if parsed.cleaned:
            return [_contains(parsed.cleaned)]
        return None

    def match(self, query: Optional[str]) -> Optional[ReferenceEntry]:
        """
        Find the reference entry for a query.

        Args:
            query: Raw user query

        Returns:
            The matching entry, or None if nothing qualifies
        """
        if is_too_short(query, self.min_query_length):
            return None

        criteria = self.build_criteria(query)
        if criteria is None:
            logger.debug("Query %r has no searchable characters", query)
            return None

        entry = self.store.first_matching(criteria)
        if entry is None:
            logger.info("Reference miss for %r", query)
        else:
            logger.info("Reference hit for %r: %s", query, entry.name)
        return entry
