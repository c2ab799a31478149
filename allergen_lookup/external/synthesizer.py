"""
LLM-based structured answer synthesizer.

Summarizes web search context about a substance into the four-field
StructuredAnswer. The model is asked for a JSON object and its output is
validated against the schema here, at the boundary: anything malformed or any
client failure becomes the "could not be processed" sentinel answer.
"""
import json
from typing import Optional

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from allergen_lookup.core.config import LookupConfig, get_config
from allergen_lookup.core.errors import SynthesisTransportFault
from allergen_lookup.core.types import FIELD_NOT_FOUND, StructuredAnswer
from allergen_lookup.utils.logger import get_logger

logger = get_logger("external.synthesizer")


SYSTEM_PROMPT = f"""You are an expert at analyzing and summarizing information about chemical substances and cosmetic ingredients.

Your job is to synthesize the provided context into a JSON object with exactly this structure:
{{"name": "the most likely name of the substance",
 "aliases": "all aliases or alternative names found, comma separated",
 "func": "a summary of all the main functions found",
 "products": "a summary of all products or items where the substance is typically found, comma separated"}}

## Rules
1. Never invent information. Use only what the context says.
2. For each field, gather every relevant piece of information from the context.
3. If the context truly has no information for a field, set it to "{FIELD_NOT_FOUND}".
4. If the context does not describe any substance matching the query, set "name" to "not found"."""


def parse_structured_answer(content: Optional[str]) -> StructuredAnswer:
    """
    Validate raw model output against the StructuredAnswer schema.

    Raises:
        SynthesisTransportFault: empty output, invalid JSON or a wrong shape.
    """
    if not content or not content.strip():
        raise SynthesisTransportFault("Synthesizer returned an empty response")
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise SynthesisTransportFault(f"Synthesizer returned invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise SynthesisTransportFault("Synthesizer returned JSON that is not an object")
    try:
        return StructuredAnswer.model_validate(payload)
    except ValidationError as e:
        raise SynthesisTransportFault(f"Synthesizer returned an invalid answer: {e}") from e


class AnswerSynthesizer:
    """
    Turns search context into a StructuredAnswer using an OpenAI chat model.

    Args:
        config: Lookup configuration (model name, temperature).
        client: Optional pre-built OpenAI client; created on first use otherwise.
    """

    def __init__(self, config: Optional[LookupConfig] = None, client: Optional[OpenAI] = None):
        self.config = config or get_config()
        self.client = client

    def _get_client(self) -> OpenAI:
        if self.client is None:
            self.client = OpenAI()
        return self.client

    def generate(self, context: str, query: str) -> StructuredAnswer:
        """
        Ask the model for a structured answer.

        Raises:
            SynthesisTransportFault: on client errors or malformed output.
        """
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"Analyze everything the context says about \"{query}\".\n\nContext:\n\"\"\"{context}\"\"\"",
            },
        ]
        try:
            response = self._get_client().chat.completions.create(
                model=self.config.synthesizer_model,
                messages=messages,
                response_format={"type": "json_object"},
                temperature=self.config.temperature,
            )
        except OpenAIError as e:
            raise SynthesisTransportFault(f"Synthesizer request failed: {e}") from e

        if not response.choices:
            raise SynthesisTransportFault("Synthesizer returned no choices")
        return parse_structured_answer(response.choices[0].message.content)

    def synthesize(self, context: str, query: str) -> StructuredAnswer:
        """
        Structured answer for a query; never raises.

        Returns:
            The model's answer, or StructuredAnswer.failure() if anything went wrong.
        """
        logger.info(f"Synthesizing answer for '{query}' with {self.config.synthesizer_model}")
        try:
            answer = self.generate(context, query)
        except SynthesisTransportFault as e:
            logger.error(f"Failed to synthesize answer for '{query}': {e}")
            return StructuredAnswer.failure()
        except Exception as e:
            import traceback
            logger.error(f"Unexpected synthesizer error for '{query}': {e}\n{traceback.format_exc()}")
            return StructuredAnswer.failure()

        logger.info(f"Synthesized answer for '{query}': name={answer.name!r}")
        return answer
