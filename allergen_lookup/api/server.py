"""
FastAPI server for the allergen lookup service.

Provides REST API endpoints for the web client.

Usage:
    python -m allergen_lookup.api.server
    # or
    uvicorn allergen_lookup.api.server:app --reload --port 8000
"""
import os
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv
load_dotenv()

from allergen_lookup import __version__
from allergen_lookup.api.models import (
    AllergenSummary,
    AnswerPayload,
    CacheDeleteRequest,
    CacheDeleteResponse,
    HealthResponse,
    LiveSearchResponse,
    QuestionRequest,
    StatusResponse,
)
from allergen_lookup.core.config import get_config
from allergen_lookup.core.controller import CascadeController, LookupResponse, create_controller
from allergen_lookup.core.errors import StorageFault
from allergen_lookup.core.preload import Stores, open_stores, preload_all
from allergen_lookup.core.types import Provenance
from allergen_lookup.utils.logger import get_logger

logger = get_logger("api.server")


# Status and source labels shown to the client for each tier
PROVENANCE_LABELS = {
    Provenance.AUTHORITATIVE: (
        "This substance is in our allergen database",
        "Our database",
    ),
    Provenance.CACHED: (
        "Not found in the main database (previously searched and saved)",
        "Saved search results (cache)",
    ),
    Provenance.SYNTHESIZED: (
        "Not found in the main database (summarized from a live web search)",
        "Live web search (AI summary)",
    ),
    Provenance.DEGRADED: (
        "Could not determine information for this substance",
        "Live web search (AI summary)",
    ),
}


def to_payload(response: LookupResponse) -> AnswerPayload:
    """Render a controller response with its human-readable labels."""
    allergy_status, source = PROVENANCE_LABELS[response.provenance]
    answer = response.answer
    return AnswerPayload(
        allergy_status=allergy_status,
        name=answer.name,
        aliases=answer.aliases,
        func=answer.func,
        products=answer.products,
        source=source,
        provenance=response.provenance.value,
        error=response.error,
    )


# Opened at startup, released at shutdown
_stores: Optional[Stores] = None
_controller: Optional[CascadeController] = None
_executor: Optional[ThreadPoolExecutor] = None
_preload_timings: dict = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the stores and wire the controller for the lifetime of the app."""
    global _stores, _controller, _executor, _preload_timings

    config = get_config()
    logger.info("Server starting up - opening stores...")
    _stores = open_stores(config)
    _preload_timings = preload_all(_stores)
    _executor = ThreadPoolExecutor(
        max_workers=max(1, config.write_back_workers),
        thread_name_prefix="cache-write-back",
    )
    _controller = create_controller(_stores, executor=_executor, config=config)

    yield

    logger.info("Server shutting down - flushing cache writes...")
    _executor.shutdown(wait=True)
    _stores.close()
    _controller = None
    _stores = None
    _executor = None


app = FastAPI(
    title="Allergen Lookup API",
    description="Tiered lookup for cosmetic ingredients and allergens",
    version=__version__,
    lifespan=lifespan,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_stores() -> Stores:
    if _stores is None:
        raise HTTPException(status_code=503, detail="Stores are not initialized")
    return _stores


def get_controller() -> CascadeController:
    if _controller is None:
        raise HTTPException(status_code=503, detail="Lookup service is not initialized")
    return _controller


# API Endpoints

@app.get("/", response_model=HealthResponse)
async def root():
    """Health check endpoint."""
    config = get_config()
    return HealthResponse(
        status="online",
        service="Allergen Lookup API",
        version=__version__,
        config={
            "cache_backend": config.cache_backend,
            "min_query_length": config.min_query_length,
            "synthesizer_model": config.synthesizer_model,
        }
    )


@app.post("/api/live-search", response_model=LiveSearchResponse)
def live_search(request: QuestionRequest, controller: CascadeController = Depends(get_controller)):
    """
    Local-only search: reference table, then cache.

    Never calls the web search or the model; a miss returns found=false so
    the client can decide to escalate to /api/ask-ai.
    """
    try:
        response = controller.search_local(request.question)
    except StorageFault as e:
        logger.error(f"Storage fault in /api/live-search: {e}")
        raise HTTPException(status_code=503, detail="Storage is unavailable")

    if not response.found:
        return LiveSearchResponse(found=False)
    return LiveSearchResponse(found=True, data=to_payload(response))


@app.post("/api/ask-ai", response_model=AnswerPayload)
def ask_ai(request: QuestionRequest, controller: CascadeController = Depends(get_controller)):
    """
    Full cascade: reference table, cache, then web search + synthesis.
    """
    if not request.question or not request.question.strip():
        raise HTTPException(status_code=400, detail="Question must not be empty")

    try:
        response = controller.lookup(request.question)
        return to_payload(response)
    except StorageFault as e:
        logger.error(f"Storage fault in /api/ask-ai: {e}")
        raise HTTPException(status_code=503, detail="Storage is unavailable")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        import traceback
        logger.error(f"Error in /api/ask-ai: {e}\n{traceback.format_exc()}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/api/get-all-allergens", response_model=List[AllergenSummary])
def get_all_allergens(stores: Stores = Depends(get_stores)):
    """Every reference entry's name and keywords, ordered by name."""
    try:
        entries = stores.reference.list_entries()
    except StorageFault as e:
        logger.error(f"Storage fault in /api/get-all-allergens: {e}")
        raise HTTPException(status_code=503, detail="Storage is unavailable")
    return [AllergenSummary(name=entry.name, keywords=",".join(entry.keywords)) for entry in entries]


@app.delete("/api/cache", response_model=CacheDeleteResponse)
def delete_cached(request: CacheDeleteRequest, controller: CascadeController = Depends(get_controller)):
    """Remove the cached answer stored under exactly this query."""
    try:
        removed = controller.remove_cached(request.question)
    except StorageFault as e:
        logger.error(f"Storage fault in /api/cache: {e}")
        raise HTTPException(status_code=503, detail="Storage is unavailable")
    return CacheDeleteResponse(deleted=removed > 0, count=removed)


@app.get("/status", response_model=StatusResponse)
def get_status(stores: Stores = Depends(get_stores)):
    """Get server status including store sizes and preload timings."""
    try:
        reference_entries = stores.reference.count()
        cached_answers = stores.cache.count()
    except StorageFault as e:
        logger.error(f"Storage fault in /status: {e}")
        raise HTTPException(status_code=503, detail="Storage is unavailable")
    return StatusResponse(
        status="online",
        cache_backend=stores.cache_backend,
        reference_entries=reference_entries,
        cached_answers=cached_answers,
        preload=_preload_timings,
    )


if __name__ == "__main__":
    import uvicorn

    print("=" * 60)
    print("Allergen Lookup API Server")
    print("=" * 60)
    print("API Documentation: http://localhost:8000/docs")
    print("Status endpoint:   http://localhost:8000/status")
    print("")
    print("Environment variables:")
    print("  OPENAI_API_KEY            - Model access for answer synthesis")
    print("  SEARCH_API_KEY            - Google Custom Search key")
    print("  SEARCH_ENGINE_ID          - Google Custom Search engine id")
    print("  ALLERGEN_LOOKUP_CONFIG    - Alternative YAML config file")
    print("=" * 60)

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
