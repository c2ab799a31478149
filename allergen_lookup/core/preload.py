"""
Store lifecycle for the allergen lookup service.

Opens the reference table and response cache at server startup (creating
tables and optionally seeding from CSV) and warms them so the first request
is not the one paying for connection setup.

Usage:
    from allergen_lookup.core.preload import open_stores, preload_all
    stores = open_stores()
    preload_all(stores)  # Call at server startup
    ...
    stores.close()
"""
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from sqlalchemy.engine import Engine

from allergen_lookup.core.config import LookupConfig, get_config
from allergen_lookup.data.database import create_store_engine
from allergen_lookup.data.reference_store import ReferenceStore
from allergen_lookup.data.response_cache import ResponseCache, SQLResponseCache
from allergen_lookup.utils.logger import get_logger

logger = get_logger("core.preload")


@dataclass
class Stores:
    """Opened storage backends plus the resources that must be released."""
    reference: ReferenceStore
    cache: ResponseCache
    cache_backend: str = "sql"
    engines: List[Engine] = field(default_factory=list)
    redis_client: Optional[object] = None

    def close(self) -> None:
        for engine in self.engines:
            engine.dispose()
        if self.redis_client is not None:
            self.redis_client.close()
        logger.info("Stores closed")


def open_stores(config: Optional[LookupConfig] = None) -> Stores:
    """
    Build engines, create tables and return the opened stores.

    Seeds the reference table from config.reference_csv when
    config.seed_on_startup is set and the file exists.
    """
    config = config or get_config()
    backend = config.cache_backend.lower()
    if backend not in ("sql", "redis"):
        raise ValueError(f"Unknown cache backend: {config.cache_backend}")

    reference_engine = create_store_engine(config.reference_db_url)
    reference = ReferenceStore(reference_engine)
    reference.initialize()
    engines = [reference_engine]

    if config.seed_on_startup:
        csv_path = Path(config.reference_csv)
        if csv_path.exists():
            from allergen_lookup.data.seeding import seed_reference_store
            seed_reference_store(reference, csv_path)
        else:
            logger.warning(f"seed_on_startup is set but {csv_path} does not exist")

    if backend == "redis":
        from allergen_lookup.data.redis_cache import RedisResponseCache
        cache = RedisResponseCache.from_url(
            config.redis_url,
            namespace=config.cache_namespace,
            min_query_length=config.min_query_length,
            ttl_seconds=config.cache_ttl_seconds,
        )
        return Stores(
            reference=reference,
            cache=cache,
            cache_backend=backend,
            engines=engines,
            redis_client=cache.client,
        )

    # Sharing a URL with the reference table means sharing the engine
    if config.cache_db_url == config.reference_db_url:
        cache_engine = reference_engine
    else:
        cache_engine = create_store_engine(config.cache_db_url)
        engines.append(cache_engine)
    cache = SQLResponseCache(
        cache_engine,
        min_query_length=config.min_query_length,
        ttl_seconds=config.cache_ttl_seconds,
    )
    cache.initialize()
    return Stores(reference=reference, cache=cache, cache_backend=backend, engines=engines)


def preload_all(stores: Stores) -> dict:
    """
    Warm both stores with a cheap query.

    Args:
        stores: Stores returned by open_stores()

    Returns:
        Dict with timing info for each component (-1 on failure)
    """
    total_start = time.time()
    timings = {}

    logger.info("=" * 60)
    logger.info("PRELOADING STORES...")
    logger.info("=" * 60)

    # 1. Reference table
    start = time.time()
    try:
        rows = stores.reference.count()
        timings["reference"] = time.time() - start
        logger.info(f"[OK] Reference table - {rows} entries ({timings['reference']:.2f}s)")
    except Exception as e:
        logger.error(f"[FAIL] Reference table preload failed: {e}")
        timings["reference"] = -1

    # 2. Response cache
    start = time.time()
    try:
        rows = stores.cache.count()
        timings["cache"] = time.time() - start
        logger.info(f"[OK] Response cache ({stores.cache_backend}) - {rows} entries ({timings['cache']:.2f}s)")
    except Exception as e:
        logger.error(f"[FAIL] Response cache preload failed: {e}")
        timings["cache"] = -1

    total_time = time.time() - total_start
    timings["total"] = total_time

    logger.info("=" * 60)
    logger.info(f"PRELOAD COMPLETE ({total_time:.2f}s total)")
    logger.info("=" * 60)

    return timings
