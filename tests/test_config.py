"""
Tests for YAML configuration loading.
"""

import pytest

from allergen_lookup.core import config as config_module
from allergen_lookup.core.config import DEFAULT_CONFIG_PATH, LookupConfig, get_config, set_config


@pytest.fixture(autouse=True)
def _reset_global_config():
    previous = config_module._config
    yield
    config_module._config = previous


class TestFromYaml:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert LookupConfig.from_yaml(tmp_path / "missing.yaml") == LookupConfig()

    def test_default_file_matches_dataclass_defaults(self):
        assert DEFAULT_CONFIG_PATH.exists()
        assert LookupConfig.from_yaml(DEFAULT_CONFIG_PATH) == LookupConfig()

    def test_sections_mapped(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "lookup:\n"
            "  min_query_length: 3\n"
            "data:\n"
            "  reference_db_url: sqlite:///tmp/ref.db\n"
            "  seed_on_startup: true\n"
            "cache:\n"
            "  backend: redis\n"
            "  ttl_seconds: 3600\n"
            "search:\n"
            "  num_results: 8\n"
            "models:\n"
            "  synthesizer: gpt-4o\n"
        )
        config = LookupConfig.from_yaml(path)
        assert config.min_query_length == 3
        assert config.min_term_length == 3
        assert config.reference_db_url == "sqlite:///tmp/ref.db"
        assert config.seed_on_startup is True
        assert config.cache_backend == "redis"
        assert config.cache_ttl_seconds == 3600
        assert config.search_num_results == 8
        assert config.synthesizer_model == "gpt-4o"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert LookupConfig.from_yaml(path) == LookupConfig()

    def test_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "env.yaml"
        path.write_text("cache:\n  namespace: staging\n")
        monkeypatch.setenv("ALLERGEN_LOOKUP_CONFIG", str(path))
        assert LookupConfig.from_yaml().cache_namespace == "staging"


class TestGlobalConfig:
    def test_set_then_get(self):
        custom = LookupConfig(min_query_length=5)
        set_config(custom)
        assert get_config() is custom
