"""
Tests for the LLM answer synthesizer.

The OpenAI client is mocked; no network calls are made.
"""

import json
from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

from allergen_lookup.core.config import LookupConfig
from allergen_lookup.core.errors import SynthesisTransportFault
from allergen_lookup.core.types import COULD_NOT_PROCESS, StructuredAnswer
from allergen_lookup.external.synthesizer import AnswerSynthesizer, parse_structured_answer


VALID = {
    "name": "Niacinamide",
    "aliases": "nicotinamide, vitamin b3",
    "func": "Brightens skin",
    "products": "Serums",
}


def mock_client(content=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create.side_effect = error
    else:
        message = MagicMock(content=content)
        client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])
    return client


class TestParseStructuredAnswer:
    def test_valid(self):
        assert parse_structured_answer(json.dumps(VALID)) == StructuredAnswer(**VALID)

    def test_extra_fields_ignored(self):
        answer = parse_structured_answer(json.dumps({**VALID, "confidence": 0.9}))
        assert answer.name == "Niacinamide"

    @pytest.mark.parametrize("content", [
        None,
        "",
        "   ",
        "not json",
        "[1, 2, 3]",
        json.dumps({"name": "Niacinamide"}),
        json.dumps({**VALID, "aliases": ["a", "b"]}),
    ])
    def test_malformed_output_is_a_fault(self, content):
        with pytest.raises(SynthesisTransportFault):
            parse_structured_answer(content)


class TestAnswerSynthesizer:
    def test_returns_model_answer(self):
        client = mock_client(json.dumps(VALID))
        synth = AnswerSynthesizer(LookupConfig(synthesizer_model="test-model"), client=client)
        assert synth.synthesize("some context", "niacinamide") == StructuredAnswer(**VALID)

    def test_request_shape(self):
        client = mock_client(json.dumps(VALID))
        AnswerSynthesizer(LookupConfig(synthesizer_model="test-model", temperature=0), client=client).synthesize(
            "Title: X\nContent: Y", "niacinamide"
        )
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0]["role"] == "system"
        assert "niacinamide" in kwargs["messages"][1]["content"]
        assert "Title: X\nContent: Y" in kwargs["messages"][1]["content"]

    def test_malformed_output_returns_sentinel(self):
        client = mock_client("Sorry, I cannot help with that.")
        answer = AnswerSynthesizer(LookupConfig(), client=client).synthesize("ctx", "niacinamide")
        assert answer.name == COULD_NOT_PROCESS
        assert answer.is_sentinel

    def test_client_error_returns_sentinel(self):
        client = mock_client(error=OpenAIError("rate limited"))
        answer = AnswerSynthesizer(LookupConfig(), client=client).synthesize("ctx", "niacinamide")
        assert answer == StructuredAnswer.failure()

    def test_generate_raises_on_client_error(self):
        client = mock_client(error=OpenAIError("rate limited"))
        with pytest.raises(SynthesisTransportFault):
            AnswerSynthesizer(LookupConfig(), client=client).generate("ctx", "niacinamide")

    def test_model_not_found_answer_passed_through(self):
        client = mock_client(json.dumps({**VALID, "name": "not found"}))
        answer = AnswerSynthesizer(LookupConfig(), client=client).synthesize("ctx", "xyzzy")
        assert answer.name == "not found"
        assert answer.is_sentinel

    def test_empty_choices_is_a_fault(self):
        client = MagicMock()
        client.chat.completions.create.return_value = MagicMock(choices=[])
        synth = AnswerSynthesizer(LookupConfig(), client=client)
        with pytest.raises(SynthesisTransportFault):
            synth.generate("ctx", "niacinamide")
        assert synth.synthesize("ctx", "niacinamide") == StructuredAnswer.failure()

    def test_unexpected_response_shape_returns_sentinel(self):
        client = MagicMock()
        client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=None)])
        answer = AnswerSynthesizer(LookupConfig(), client=client).synthesize("ctx", "niacinamide")
        assert answer == StructuredAnswer.failure()
