"""
API module for the allergen lookup service.

Provides REST API endpoints for the web client.
"""
from allergen_lookup.api.models import (
    QuestionRequest,
    AnswerPayload,
    LiveSearchResponse,
    CacheDeleteResponse,
    AllergenSummary,
)

__all__ = [
    "QuestionRequest",
    "AnswerPayload",
    "LiveSearchResponse",
    "CacheDeleteResponse",
    "AllergenSummary",
]
