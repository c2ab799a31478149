"""
Configuration management for the allergen lookup service.

Loads settings from YAML config file and provides typed access.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of allergen_lookup package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"
GOOGLE_SEARCH_ENDPOINT = "https://www.googleapis.com/customsearch/v1"


@dataclass
class LookupConfig:
    """Configuration for the lookup cascade."""

    # Query handling
    min_query_length: int = 2           # Shorter (trimmed) queries never touch storage
    min_term_length: int = 3            # Shorter terms are dropped by the match engine

    # Reference table
    reference_db_url: str = "sqlite:///data/allergens.db"
    reference_csv: str = "data/allergens.csv"
    seed_on_startup: bool = False

    # Response cache
    cache_backend: str = "sql"          # "sql" or "redis"
    cache_db_url: str = "sqlite:///data/cache.db"
    redis_url: str = "redis://localhost:6379/0"
    cache_namespace: str = "allergen"
    cache_ttl_seconds: Optional[int] = None   # None = entries never expire
    write_back_workers: int = 2

    # Web search context
    search_endpoint: str = GOOGLE_SEARCH_ENDPOINT
    search_num_results: int = 4
    search_timeout_seconds: float = 10.0

    # Model configuration
    synthesizer_model: str = "gpt-4o-mini"
    temperature: float = 0

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "LookupConfig":
        """Load configuration from YAML file."""
        env_path = os.getenv("ALLERGEN_LOOKUP_CONFIG")
        path = config_path or (Path(env_path) if env_path else DEFAULT_CONFIG_PATH)
        if not path.exists():
            return cls()

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        lookup_config = data.get('lookup', {})
        data_config = data.get('data', {})
        cache_config = data.get('cache', {})
        search_config = data.get('search', {})
        models_config = data.get('models', {})

        return cls(
            min_query_length=lookup_config.get('min_query_length', 2),
            min_term_length=lookup_config.get('min_term_length', 3),
            reference_db_url=data_config.get('reference_db_url', 'sqlite:///data/allergens.db'),
            reference_csv=data_config.get('reference_csv', 'data/allergens.csv'),
            seed_on_startup=data_config.get('seed_on_startup', False),
            cache_backend=cache_config.get('backend', 'sql'),
            cache_db_url=cache_config.get('db_url', 'sqlite:///data/cache.db'),
            redis_url=cache_config.get('redis_url', 'redis://localhost:6379/0'),
            cache_namespace=cache_config.get('namespace', 'allergen'),
            cache_ttl_seconds=cache_config.get('ttl_seconds'),
            write_back_workers=cache_config.get('write_back_workers', 2),
            search_endpoint=search_config.get('endpoint', GOOGLE_SEARCH_ENDPOINT),
            search_num_results=search_config.get('num_results', 4),
            search_timeout_seconds=search_config.get('timeout_seconds', 10.0),
            synthesizer_model=models_config.get('synthesizer', 'gpt-4o-mini'),
            temperature=models_config.get('temperature', 0),
        )


# Global config instance
_config: Optional[LookupConfig] = None


def get_config() -> LookupConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = LookupConfig.from_yaml()
    return _config


def set_config(config: LookupConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
