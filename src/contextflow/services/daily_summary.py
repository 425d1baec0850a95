"""Daily summary of the notes created today."""

import logging
from datetime import date
from typing import Optional

from contextflow.errors import ConfigurationError, ParseError, TransportError
from contextflow.models.chat import DailySummary
from contextflow.models.note import Note
from contextflow.services.ollama_service import OllamaService
from contextflow.services.prompts import build_summary_request

logger = logging.getLogger(__name__)


def fallback_narrative(count: int) -> str:
    """Templated recap used when the model cannot be reached."""
    return f"You added {count} note{'' if count == 1 else 's'} today."


class DailySummaryAggregator:
    """Condenses the notes created on the current day into a short narrative.

    Has no side effects beyond the returned value, so it can be called again
    whenever the note collection changes.
    """

    def __init__(self, ollama_service: OllamaService, max_tokens: int = 150):
        self.llm = ollama_service
        self.max_tokens = max_tokens

    def summarize_today(
        self, notes: list[Note], today: Optional[date] = None
    ) -> DailySummary:
        """Summarize the notes created today.

        Args:
            notes: The owner's note collection
            today: Day to summarize (default: the current local date)

        Returns:
            DailySummary; the empty marker when no note was created that day,
            in which case the language-model service is not contacted
        """
        day = today or date.today()
        todays_notes = [n for n in notes if n.created_at.date() == day]
        if not todays_notes:
            return DailySummary.empty(day)

        request = build_summary_request(todays_notes)
        try:
            narrative = self.llm.chat(
                request.messages, system=request.system, max_tokens=self.max_tokens
            )
        except (TransportError, ConfigurationError, ParseError) as e:
            logger.warning("Daily summary fell back to template: %s", e)
            narrative = fallback_narrative(len(todays_notes))

        return DailySummary(day=day, count=len(todays_notes), narrative=narrative)
