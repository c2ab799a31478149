"""
Web search context provider.

Turns a substance query into a block of free-text context from a Google
Custom Search request. "No results" is a normal outcome (the NO_CONTEXT
sentinel); only transport and protocol failures raise.
"""
import os
from typing import Any, Dict, List, Optional

import httpx

from allergen_lookup.core.config import LookupConfig, get_config
from allergen_lookup.core.errors import SynthesisTransportFault
from allergen_lookup.utils.logger import get_logger

logger = get_logger("external.search_client")

NO_CONTEXT = "No information found from web search"
SEARCH_SUFFIX = "what is it, function, uses, benefits, chemical name"


def format_context(items: List[Dict[str, Any]]) -> str:
    """Join search hits into one context block, or NO_CONTEXT if there are none."""
    blocks = [
        f"Title: {item.get('title', '')}\nContent: {item.get('snippet', '')}"
        for item in items
        if item.get("title") or item.get("snippet")
    ]
    if not blocks:
        return NO_CONTEXT
    return "\n\n---\n\n".join(blocks)


class SearchContextProvider:
    """
    Lightweight client for the Google Custom Search JSON API.
    """

    def __init__(
        self,
        config: Optional[LookupConfig] = None,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ):
        self.config = config or get_config()
        self.api_key = api_key or os.environ.get("SEARCH_API_KEY")
        self.engine_id = engine_id or os.environ.get("SEARCH_ENGINE_ID")

        if not self.api_key or not self.engine_id:
            logger.warning("SEARCH_API_KEY or SEARCH_ENGINE_ID not set in environment.")

        self.client = client or httpx.Client(timeout=self.config.search_timeout_seconds)

    def close(self) -> None:
        self.client.close()

    def gather_context(self, query: str) -> str:
        """
        Search the web for a substance and return the hits as context text.

        Raises:
            SynthesisTransportFault: credentials missing, HTTP failure or a
                non-JSON response.
        """
        if not self.api_key or not self.engine_id:
            raise SynthesisTransportFault("Web search credentials are not configured")

        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": f"{query} {SEARCH_SUFFIX}",
            "num": self.config.search_num_results,
        }
        try:
            response = self.client.get(self.config.search_endpoint, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Web search failed for '{query}': {e}")
            raise SynthesisTransportFault(f"Web search failed: {e}") from e
        except ValueError as e:
            raise SynthesisTransportFault(f"Web search returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise SynthesisTransportFault("Web search returned JSON that is not an object")
        items = payload.get("items") or []
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise SynthesisTransportFault("Web search returned malformed items")
        logger.info(f"Web search for '{query}' returned {len(items)} items")
        return format_context(items)
