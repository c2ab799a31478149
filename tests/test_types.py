"""
Tests for the shared answer and reference entry types.
"""

import pytest

from allergen_lookup.core.types import COULD_NOT_PROCESS, ReferenceEntry, StructuredAnswer

from conftest import make_answer


class TestStructuredAnswer:
    @pytest.mark.parametrize("name", ["not found", "Not Found", " NOT FOUND ", COULD_NOT_PROCESS])
    def test_sentinel_names(self, name):
        assert make_answer(name=name).is_sentinel

    def test_regular_name(self):
        assert not make_answer(name="Niacinamide").is_sentinel

    def test_failure_value(self):
        failure = StructuredAnswer.failure()
        assert failure.name == COULD_NOT_PROCESS
        assert failure.is_sentinel

    def test_json_round_trip_keeps_field_not_found_text(self):
        answer = make_answer(products="not found in the searched sources")
        assert StructuredAnswer.model_validate_json(answer.model_dump_json()) == answer


class TestReferenceEntry:
    def test_split_keywords(self):
        assert ReferenceEntry.split_keywords(" a, b ,,c ") == ["a", "b", "c"]
        assert ReferenceEntry.split_keywords("") == []

    def test_to_answer(self):
        entry = ReferenceEntry("Limonene", ["limonene", "d-limonene"], "Solvent", "Perfumes")
        assert entry.to_answer() == StructuredAnswer(
            name="Limonene",
            aliases="limonene, d-limonene",
            func="Solvent",
            products="Perfumes",
        )
