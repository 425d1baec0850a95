"""Insight generation from notes using the language-model service."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from contextflow.errors import ConfigurationError, ParseError, TransportError
from contextflow.models.insight import Insight, InsightType
from contextflow.models.note import Note
from contextflow.services.ollama_service import OllamaService
from contextflow.services.prompts import build_insight_request

logger = logging.getLogger(__name__)

FALLBACK_TITLE_PREFIX = "Analysis: "


@dataclass
class InsightOutcome:
    """Result of one generation attempt.

    ``degraded`` is set when the insight was synthesized locally because the
    model's answer was unusable or unreachable; ``warning`` carries the
    user-visible message for transport and configuration failures.
    """

    insight: Insight
    degraded: bool = False
    warning: Optional[str] = None


class InsightGenerator:
    """Generates one insight per note, never raising on service failures.

    Every call produces an Insight: either the model's structured answer or a
    degraded ``analysis`` insight built from the note itself.
    """

    def __init__(
        self,
        ollama_service: OllamaService,
        temperature: float = 0.7,
        max_tokens: int = 200,
    ):
        """Initialize the insight generator.

        Args:
            ollama_service: OllamaService instance for LLM calls
            temperature: Sampling temperature for insight requests
            max_tokens: Upper bound on the model's answer
        """
        self.llm = ollama_service
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate_insight(self, note: Note, all_notes: list[Note]) -> InsightOutcome:
        """Generate an insight for a note in light of the whole collection.

        Args:
            note: The note to analyze
            all_notes: The owner's full note collection, including ``note``

        Returns:
            InsightOutcome whose insight is not yet persisted
        """
        request = build_insight_request(note, all_notes)

        try:
            response_text = self.llm.chat(
                request.messages,
                system=request.system,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                json_format=True,
            )
        except (TransportError, ConfigurationError) as e:
            logger.warning("Insight generation failed for note %s: %s", note.id, e)
            return InsightOutcome(
                insight=self._fallback_insight(note),
                degraded=True,
                warning=f"Could not reach the AI service for '{note.title}': {e}",
            )
        except ParseError as e:
            logger.warning("Empty insight response for note %s: %s", note.id, e)
            return InsightOutcome(insight=self._fallback_insight(note), degraded=True)

        try:
            data = self._parse_response(response_text)
        except ParseError as e:
            logger.info("Unstructured insight response for note %s: %s", note.id, e)
            return InsightOutcome(
                insight=self._fallback_insight(note, response_text), degraded=True
            )

        return InsightOutcome(insight=self._create_insight(data, note))

    def _parse_response(self, response_text: str) -> dict[str, Any]:
        """Parse the LLM response to extract the insight object.

        Args:
            response_text: Raw response from LLM

        Returns:
            Insight dictionary with non-empty title and message

        Raises:
            ParseError: If no well-formed insight object is found
        """
        json_match = re.search(r"\{[\s\S]*\}", response_text)
        if not json_match:
            raise ParseError(
                f"Could not extract JSON from response: {response_text[:200]}",
                content=response_text,
            )

        try:
            data = json.loads(json_match.group(0))
        except json.JSONDecodeError:
            # Prose around a fenced block can contain stray braces
            code_block_match = re.search(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", response_text)
            if not code_block_match:
                raise ParseError("Invalid JSON in response", content=response_text) from None
            try:
                data = json.loads(code_block_match.group(1))
            except json.JSONDecodeError as e:
                raise ParseError(f"Invalid JSON in response: {e}", content=response_text) from e

        if not isinstance(data, dict):
            raise ParseError("Response must be a JSON object", content=response_text)

        for key in ("title", "message"):
            value = data.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ParseError(f"Response is missing '{key}'", content=response_text)

        return data

    def _create_insight(self, data: dict[str, Any], note: Note) -> Insight:
        """Create an Insight from parsed data."""
        return Insight(
            owner_id=note.owner_id,
            note_id=note.id,
            insight_type=InsightType.parse(data.get("type")),
            title=data["title"].strip(),
            message=data["message"].strip(),
            actionable=_as_bool(data.get("actionable")),
        )

    def _fallback_insight(self, note: Note, content: str = "") -> Insight:
        """Degraded analysis insight used when the model's answer is unusable."""
        message = content.strip()
        if not message:
            message = f"{note.title}: {note.summary}" if note.summary else note.title
        return Insight(
            owner_id=note.owner_id,
            note_id=note.id,
            insight_type=InsightType.ANALYSIS,
            title=f"{FALLBACK_TITLE_PREFIX}{note.title}",
            message=message,
            actionable=False,
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)
