"""
Cascade controller.

Orchestrates the three-tier lookup for one query, stopping at the first tier
that answers:
1. Reference table (authoritative)
2. Response cache (previously synthesized)
3. Web search context + LLM synthesis, written back to the cache
"""
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from allergen_lookup.core.config import LookupConfig, get_config
from allergen_lookup.core.errors import StorageFault, SynthesisTransportFault
from allergen_lookup.core.types import Provenance, StructuredAnswer
from allergen_lookup.data.response_cache import ResponseCache
from allergen_lookup.matching.match_engine import MatchEngine
from allergen_lookup.utils.logger import get_logger

logger = get_logger("core.controller")


class ContextProvider(Protocol):
    def gather_context(self, query: str) -> str:
        ...


class Synthesizer(Protocol):
    def synthesize(self, context: str, query: str) -> StructuredAnswer:
        ...


@dataclass
class LookupResponse:
    """Response from the cascade controller."""
    provenance: Optional[Provenance] = None  # None = nothing found (local-only search)
    answer: Optional[StructuredAnswer] = None
    error: Optional[str] = None              # Set when synthesis itself failed

    @property
    def found(self) -> bool:
        return self.provenance in (
            Provenance.AUTHORITATIVE,
            Provenance.CACHED,
            Provenance.SYNTHESIZED,
        )


class CascadeController:
    """
    Runs the reference -> cache -> synthesis cascade.

    Stages run strictly in order and the first hit ends the request. Storage
    faults from the first two tiers propagate to the caller; failures inside
    the synthesis tier become a degraded response.

    Args:
        match_engine: Resolves queries against the reference table.
        cache: Response cache backend.
        context_provider: Gathers free-text context for a query.
        synthesizer: Turns context into a StructuredAnswer.
        executor: Optional executor for cache write-back; without one the
                  write-back runs inline (still never failing the request).
    """

    def __init__(
        self,
        match_engine: MatchEngine,
        cache: ResponseCache,
        context_provider: ContextProvider,
        synthesizer: Synthesizer,
        executor: Optional[Executor] = None,
    ):
        self.match_engine = match_engine
        self.cache = cache
        self.context_provider = context_provider
        self.synthesizer = synthesizer
        self.executor = executor

    # ------------------------------------------------------------------ #
    # Public interface
    # ------------------------------------------------------------------ #

    def search_local(self, query: str) -> LookupResponse:
        """
        Run only the cheap tiers (reference table, then cache).

        Returns:
            LookupResponse with provenance None when neither tier answers
        """
        response = self._check_reference(query)
        if response is not None:
            return response

        response = self._check_cache(query)
        if response is not None:
            return response

        return LookupResponse()

    def lookup(self, query: str) -> LookupResponse:
        """
        Run the full cascade for a query.

        Args:
            query: The user's question about a substance

        Returns:
            LookupResponse tagged with the provenance of the tier that answered

        Raises:
            ValueError: blank query
            StorageFault: the reference table or cache could not be read
        """
        if not query or not query.strip():
            raise ValueError("Query must not be empty")

        logger.info(f"Cascade lookup for: {query[:100]}")

        response = self.search_local(query)
        if response.found:
            return response

        return self._synthesize(query)

    def remove_cached(self, query: str) -> int:
        """Administrative exact-key removal from the cache. Returns rows removed."""
        return self.cache.delete(query)

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    def _check_reference(self, query: str) -> Optional[LookupResponse]:
        entry = self.match_engine.match(query)
        if entry is None:
            return None
        return LookupResponse(provenance=Provenance.AUTHORITATIVE, answer=entry.to_answer())

    def _check_cache(self, query: str) -> Optional[LookupResponse]:
        answer = self.cache.find(query)
        if answer is None:
            logger.info(f"Cache miss for '{query}'")
            return None
        return LookupResponse(provenance=Provenance.CACHED, answer=answer)

    def _synthesize(self, query: str) -> LookupResponse:
        try:
            context = self.context_provider.gather_context(query)
            answer = self._coerce_answer(self.synthesizer.synthesize(context, query))
        except SynthesisTransportFault as e:
            logger.error(f"Synthesis failed for '{query}': {e}")
            return LookupResponse(
                provenance=Provenance.DEGRADED,
                answer=StructuredAnswer.failure(),
                error=str(e),
            )
        except Exception as e:
            import traceback
            logger.error(f"Unexpected synthesis error for '{query}': {e}\n{traceback.format_exc()}")
            return LookupResponse(
                provenance=Provenance.DEGRADED,
                answer=StructuredAnswer.failure(),
                error=f"Unexpected synthesis error: {e}",
            )

        if answer.is_sentinel:
            logger.warning(f"Synthesis for '{query}' returned sentinel '{answer.name}', not caching")
            return LookupResponse(provenance=Provenance.DEGRADED, answer=answer)

        self._schedule_write_back(query, answer)
        return LookupResponse(provenance=Provenance.SYNTHESIZED, answer=answer)

    @staticmethod
    def _coerce_answer(result: Any) -> StructuredAnswer:
        """Accept a StructuredAnswer or a plain mapping; anything else is malformed."""
        if isinstance(result, StructuredAnswer):
            return result
        try:
            return StructuredAnswer.model_validate(result)
        except ValidationError as e:
            raise SynthesisTransportFault(f"Malformed synthesized answer: {e}") from e

    # ------------------------------------------------------------------ #
    # Write-back
    # ------------------------------------------------------------------ #

    def _schedule_write_back(self, query: str, answer: StructuredAnswer) -> None:
        if self.executor is None:
            self._write_back(query, answer)
            return
        future = self.executor.submit(self._write_back, query, answer)
        future.add_done_callback(self._log_write_back_failure)

    def _write_back(self, query: str, answer: StructuredAnswer) -> None:
        try:
            self.cache.save(query, answer)
        except StorageFault as e:
            logger.error(f"Cache write-back failed for '{query}': {e}")

    @staticmethod
    def _log_write_back_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(f"Unexpected cache write-back error: {exc!r}")


def create_controller(
    stores,
    context_provider: Optional[ContextProvider] = None,
    synthesizer: Optional[Synthesizer] = None,
    executor: Optional[Executor] = None,
    config: Optional[LookupConfig] = None,
) -> CascadeController:
    """
    Factory function to wire a controller onto opened stores.

    Args:
        stores: Opened Stores (see allergen_lookup.core.preload.open_stores)
        context_provider: Overrides the web search provider
        synthesizer: Overrides the OpenAI synthesizer
        executor: Executor for cache write-back
        config: Overrides the global configuration

    Returns:
        Configured CascadeController
    """
    config = config or get_config()

    if context_provider is None:
        from allergen_lookup.external.search_client import SearchContextProvider
        context_provider = SearchContextProvider(config)
    if synthesizer is None:
        from allergen_lookup.external.synthesizer import AnswerSynthesizer
        synthesizer = AnswerSynthesizer(config)

    match_engine = MatchEngine(
        stores.reference,
        min_query_length=config.min_query_length,
        min_term_length=config.min_term_length,
    )
    return CascadeController(
        match_engine=match_engine,
        cache=stores.cache,
        context_provider=context_provider,
        synthesizer=synthesizer,
        executor=executor,
    )
