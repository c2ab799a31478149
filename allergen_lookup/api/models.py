"""
Pydantic models for allergen lookup API requests and responses.
"""
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any


class QuestionRequest(BaseModel):
    """Request model for the lookup endpoints."""
    question: str = Field(default="", description="Substance name or free-text question")


class AnswerPayload(BaseModel):
    """One answer, labelled with the tier that produced it."""
    allergy_status: str = Field(description="Human-readable status for the tier that answered")
    name: str = Field(description="Substance name")
    aliases: str = Field(description="Aliases, comma separated")
    func: str = Field(description="What the substance does")
    products: str = Field(description="Products where it is typically found")
    source: str = Field(description="Human-readable source label")
    provenance: str = Field(description="'authoritative', 'cached', 'synthesized' or 'degraded'")
    error: Optional[str] = Field(default=None, description="Set when the synthesis pipeline failed")


class LiveSearchResponse(BaseModel):
    """Response model for the local-only search (reference table + cache)."""
    found: bool
    data: Optional[AnswerPayload] = None


class CacheDeleteRequest(BaseModel):
    """Request model for removing a cached answer."""
    question: str = Field(description="Query whose cached answer should be removed (exact match)")


class CacheDeleteResponse(BaseModel):
    """Response model for cache removal."""
    deleted: bool
    count: int = Field(description="Number of cache rows removed")


class AllergenSummary(BaseModel):
    """One reference table entry as listed by the API."""
    name: str
    keywords: str = Field(description="Comma-delimited aliases")


class HealthResponse(BaseModel):
    """Response model for health check."""
    status: str
    service: str
    version: str
    config: Dict[str, Any]


class StatusResponse(BaseModel):
    """Response model for the status endpoint."""
    status: str
    cache_backend: str
    reference_entries: int
    cached_answers: int
    preload: Dict[str, Any] = Field(default_factory=dict)
