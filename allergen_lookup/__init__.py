"""
Allergen lookup - tiered substance lookup service

Answers questions about cosmetic ingredients and allergens with:
- An authoritative reference table
- A persisted cache of previously synthesized answers
- Web search + LLM synthesis as the last resort
"""

from allergen_lookup.core.controller import CascadeController, LookupResponse, create_controller
from allergen_lookup.core.config import LookupConfig, get_config, set_config
from allergen_lookup.core.types import Provenance, StructuredAnswer

__all__ = [
    'CascadeController',
    'LookupResponse',
    'create_controller',
    'LookupConfig',
    'get_config',
    'set_config',
    'Provenance',
    'StructuredAnswer',
]

__version__ = '0.1.0'
