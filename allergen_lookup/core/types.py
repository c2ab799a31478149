"""
Shared value types for the lookup cascade.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field


COULD_NOT_PROCESS = "could not be processed"
NOT_FOUND = "not found"
SENTINEL_NAMES = frozenset({COULD_NOT_PROCESS, NOT_FOUND})

# Placeholder text the synthesizer uses for a field it has no data for
FIELD_NOT_FOUND = "not found in the searched sources"


class Provenance(str, Enum):
    """Which tier of the cascade produced an answer."""
    AUTHORITATIVE = "authoritative"
    CACHED = "cached"
    SYNTHESIZED = "synthesized"
    DEGRADED = "degraded"


class StructuredAnswer(BaseModel):
    """Four-field answer shape shared by the cache and the synthesizer."""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(description="Most likely substance name")
    aliases: str = Field(description="All aliases or alternative names found, comma separated")
    func: str = Field(description="Summary of the substance's functions")
    products: str = Field(description="Products where the substance is typically found, comma separated")

    @property
    def is_sentinel(self) -> bool:
        return self.name.strip().lower() in SENTINEL_NAMES

    @classmethod
    def failure(cls) -> "StructuredAnswer":
        return cls(name=COULD_NOT_PROCESS, aliases="-", func="-", products="-")


@dataclass(frozen=True)
class ReferenceEntry:
    """A row of the reference table, with keywords split into aliases."""
    name: str
    keywords: List[str] = field(default_factory=list)
    function: str = ""
    found_in: str = ""

    @staticmethod
    def split_keywords(raw: str) -> List[str]:
        if not raw:
            return []
        return [part.strip() for part in raw.split(",") if part.strip()]

    @property
    def aliases_text(self) -> str:
        return ", ".join(self.keywords)

    def to_answer(self) -> StructuredAnswer:
        return StructuredAnswer(
            name=self.name,
            aliases=self.aliases_text,
            func=self.function,
            products=self.found_in,
        )
