"""Context-aware chat with the language-model service."""

import logging

from contextflow.errors import ChatServiceError, ConfigurationError, ParseError, TransportError
from contextflow.models.chat import ChatMessage, Role
from contextflow.models.note import Note
from contextflow.services.ollama_service import OllamaService
from contextflow.services.prompts import build_chat_request

logger = logging.getLogger(__name__)


class ChatOrchestrator:
    """Forwards a running transcript to the model, primed with the user's notes."""

    def __init__(
        self,
        ollama_service: OllamaService,
        temperature: float = 0.8,
        max_tokens: int = 500,
    ):
        self.llm = ollama_service
        self.temperature = temperature
        self.max_tokens = max_tokens

    def send_message(
        self, transcript: list[ChatMessage], content: str, notes: list[Note]
    ) -> ChatMessage:
        """Send a user message and return the assistant's reply.

        Args:
            transcript: Prior messages, oldest first; not modified
            content: The new user message
            notes: The owner's note collection used to prime the model

        Returns:
            The assistant's ChatMessage

        Raises:
            ChatServiceError: If the service is unreachable, not configured,
                returns an error status or omits the reply
        """
        message = ChatMessage(role=Role.USER, content=content)
        request = build_chat_request(transcript, message, notes)

        try:
            reply = self.llm.chat(
                request.messages,
                system=request.system,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (TransportError, ConfigurationError, ParseError) as e:
            logger.warning("Chat request failed: %s", e)
            raise ChatServiceError(str(e)) from e

        return ChatMessage(role=Role.ASSISTANT, content=reply)


def apology_message(error: ChatServiceError) -> ChatMessage:
    """Assistant message shown in place of a reply when chat fails."""
    content = f"Sorry, I encountered an error: {error.detail.rstrip('.')}."
    if "API" in error.detail or "key" in error.detail.lower():
        content += (
            " Please make sure CONTEXTFLOW_OLLAMA_API_KEY (or OLLAMA_API_KEY) is set."
        )
    return ChatMessage(role=Role.ASSISTANT, content=content)
