"""Pytest configuration for allergen lookup tests."""

import pytest

from allergen_lookup.core.errors import SynthesisTransportFault
from allergen_lookup.core.types import ReferenceEntry, StructuredAnswer
from allergen_lookup.data.database import create_store_engine
from allergen_lookup.data.reference_store import ReferenceStore
from allergen_lookup.data.response_cache import SQLResponseCache


REFERENCE_ENTRIES = [
    ReferenceEntry("Limonene", ["limonene", "d-limonene"], "Fragrance solvent", "Perfumes, shampoos"),
    ReferenceEntry("Linalool", ["linalool", "linalol"], "Floral fragrance", "Lotions"),
    ReferenceEntry("Sodium Lauryl Sulfate", ["sodium lauryl sulfate", "sls"], "Surfactant", "Shampoos, toothpaste"),
    ReferenceEntry("Sodium Laureth Sulfate", ["sodium laureth sulfate", "sles"], "Mild surfactant", "Body washes"),
    ReferenceEntry("Methylisothiazolinone", ["methylisothiazolinone", "mit", "mi"], "Preservative", "Wet wipes"),
    ReferenceEntry("Coumarin", ["coumarin", "spice"], "Sweet fragrance", "Soaps"),
    ReferenceEntry("Cinnamal", ["cinnamal", "spice"], "Cinnamon fragrance", "Toothpaste"),
]


def make_answer(name="Niacinamide", aliases="nicotinamide, vitamin b3",
                func="Brightens skin", products="Serums, moisturizers"):
    return StructuredAnswer(name=name, aliases=aliases, func=func, products=products)


class FakeContextProvider:
    """Records queries and returns canned context, or raises a transport fault."""

    def __init__(self, context="Title: Niacinamide\nContent: A form of vitamin B3.", fail=False):
        self.context = context
        self.fail = fail
        self.calls = []

    def gather_context(self, query):
        self.calls.append(query)
        if self.fail:
            raise SynthesisTransportFault("search backend unreachable")
        return self.context


class FakeSynthesizer:
    """Records calls and returns a fixed result."""

    def __init__(self, result=None):
        self.result = result if result is not None else make_answer()
        self.calls = []

    def synthesize(self, context, query):
        self.calls.append((context, query))
        return self.result


# ---------------------------------------------------------------------------
# Stores backed by throwaway SQLite files
# ---------------------------------------------------------------------------

@pytest.fixture
def reference_db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'allergens.db'}"


@pytest.fixture
def cache_db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cache.db'}"


@pytest.fixture
def reference_store(reference_db_url):
    """Reference store seeded with REFERENCE_ENTRIES."""
    engine = create_store_engine(reference_db_url)
    store = ReferenceStore(engine)
    store.initialize()
    store.load_entries(REFERENCE_ENTRIES)
    yield store
    engine.dispose()


@pytest.fixture
def sql_cache(cache_db_url):
    engine = create_store_engine(cache_db_url)
    cache = SQLResponseCache(engine)
    cache.initialize()
    yield cache
    engine.dispose()


@pytest.fixture
def context_provider():
    return FakeContextProvider()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()
