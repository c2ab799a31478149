"""
Logging configuration for the allergen lookup service.

Every module logs through a child of the ``allergen_lookup`` logger named
after its location (``allergen_lookup.core.controller``,
``allergen_lookup.data.response_cache`` and so on). The controller reports
which tier answered a query and whether a synthesized answer was written
back to the cache. The external clients report degraded synthesis, and the
stores report storage faults with a traceback. The level comes from the
``LOG_LEVEL`` environment variable (default INFO) and records go to stdout.
"""
import logging
import os
import sys

# Get log level from environment variable (default: INFO)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("allergen_lookup")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Prevent propagation to root logger (avoid duplicate logs)
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (will be appended to 'allergen_lookup')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"allergen_lookup.{name}")
    return logger
