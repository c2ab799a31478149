"""
Query normalization shared by the match engine and the response cache.
"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

# Anything outside lowercase ASCII letters, digits, whitespace and hyphen
_DISALLOWED_CHARS = re.compile(r"[^a-z0-9\s-]")


@dataclass(frozen=True)
class QueryTerms:
    """A query reduced to its cleaned text and its usable search terms."""
    cleaned: str
    terms: Tuple[str, ...]


def is_too_short(query: Optional[str], min_length: int = 2) -> bool:
    """True when the trimmed query is too short to be worth a storage scan."""
    return query is None or len(query.strip()) < min_length


def extract_terms(query: str, min_term_length: int = 3) -> QueryTerms:
    """
    Lower-case the query, strip disallowed characters and split it into terms.

    Terms shorter than min_term_length are dropped; the cleaned text is kept
    for the single-substring fallback when no term survives.

    Example:
        >>> extract_terms("Sodium Lauryl-Sulfate (SLS)!")
        QueryTerms(cleaned='sodium lauryl-sulfate sls', terms=('sodium', 'lauryl-sulfate', 'sls'))
    """
    cleaned = _DISALLOWED_CHARS.sub("", query.lower())
    terms = tuple(term for term in cleaned.split() if len(term) >= min_term_length)
    return QueryTerms(cleaned=cleaned.strip(), terms=terms)


def normalize_cache_key(query: str) -> str:
    """Cache keys are the lower-cased, trimmed query."""
    return query.lower().strip()
