"""Ollama service for language-model chat requests."""

import logging
import os
from typing import Any, Optional

from ollama import Client, ResponseError  # type: ignore[import-untyped]
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from contextflow.errors import ConfigurationError, ParseError, TransportError

logger = logging.getLogger(__name__)


class OllamaService:
    """Service for interacting with an Ollama chat model.

    Accepts a system instruction plus an ordered message list and returns the
    assistant's text. Connection failures and server errors are retried with
    exponential backoff and then surface as TransportError.
    """

    DEFAULT_MODEL = "gpt-oss:120b-cloud"
    DEFAULT_HOST = "https://ollama.com"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        model_name: Optional[str] = None,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        require_api_key: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = 3,
    ):
        """Initialize the Ollama service.

        Args:
            model_name: Model to use (default: gpt-oss:120b-cloud)
            host: Ollama API host (default: https://ollama.com)
            api_key: API key for authentication (default: from OLLAMA_API_KEY env var)
            require_api_key: Fail with ConfigurationError instead of calling without a key
            timeout: Per-request timeout in seconds
            max_attempts: Attempts per request before giving up on transport errors
        """
        self.model_name = model_name or self.DEFAULT_MODEL
        self.host = host or self.DEFAULT_HOST
        self.api_key = api_key or os.environ.get("OLLAMA_API_KEY", "")
        self.require_api_key = require_api_key
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_wait = wait_exponential(multiplier=1, min=2, max=10)

        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        self._client = Client(
            host=self.host,
            headers=headers if headers else None,
            timeout=self.timeout,
        )

    @property
    def client(self) -> Client:
        """Get the Ollama client."""
        return self._client

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or not self.require_api_key

    def check_connection(self) -> bool:
        """Check if Ollama is available.

        Returns:
            True if connected, False otherwise
        """
        try:
            self._client.list()
            return True
        except Exception:
            return False

    def list_models(self) -> list[str]:
        """List available models.

        Returns:
            List of model names
        """
        try:
            response = self._client.list()
            models = response.get("models", [])
            return [m.get("name", "") for m in models if m.get("name")]
        except Exception:
            return []

    def chat(
        self,
        messages: list[dict[str, str]],
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_format: bool = False,
    ) -> str:
        """Send a chat request and return the assistant's reply.

        Args:
            messages: Ordered role/content pairs (the transcript)
            system: Optional system instruction, sent first
            temperature: Sampling temperature
            max_tokens: Upper bound on generated tokens
            json_format: Ask the model for a JSON object

        Returns:
            The reply text, stripped

        Raises:
            ConfigurationError: If an API key is required but not configured
            TransportError: If the service is unreachable or returns an error status
            ParseError: If the response carries no message content
        """
        if not self.configured:
            raise ConfigurationError(
                "Ollama API key not configured. "
                "Set CONTEXTFLOW_OLLAMA_API_KEY or OLLAMA_API_KEY."
            )

        payload: list[dict[str, Any]] = []
        if system:
            payload.append({"role": "system", "content": system})
        payload.extend(messages)

        options: dict[str, Any] = {}
        if temperature is not None:
            options["temperature"] = temperature
        if max_tokens is not None:
            options["num_predict"] = max_tokens

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self.retry_wait,
            retry=retry_if_exception(is_transient),
            reraise=True,
        )
        return retrying(self._chat_once, payload, options, json_format)

    def _chat_once(
        self, messages: list[dict[str, Any]], options: dict[str, Any], json_format: bool
    ) -> str:
        logger.debug("Sending %d message(s) to %s", len(messages), self.model_name)
        try:
            response = self._client.chat(
                model=self.model_name,
                messages=messages,
                stream=False,
                format="json" if json_format else None,
                options=options or None,
            )
        except ResponseError as e:
            logger.warning("Ollama returned status %s: %s", e.status_code, e.error)
            raise TransportError(
                f"Ollama request failed ({e.status_code}): {e.error}",
                status_code=e.status_code,
            ) from e
        except Exception as e:
            error_msg = str(e)
            logger.warning("Ollama request failed: %s", error_msg)
            if "timeout" in error_msg.lower() or "timed out" in error_msg.lower():
                raise TransportError("Ollama request timed out") from e
            elif "connect" in error_msg.lower():
                raise TransportError(
                    f"Cannot connect to Ollama at {self.host}. "
                    "Check your connection and API key."
                ) from e
            else:
                raise TransportError(f"Ollama request failed: {e}") from e

        try:
            content = response["message"]["content"]
        except (KeyError, TypeError, AttributeError) as e:
            raise ParseError("Ollama response is missing message content") from e
        if not content or not str(content).strip():
            raise ParseError("Ollama response is missing message content")
        return str(content).strip()


def is_transient(error: BaseException) -> bool:
    """Connection failures, timeouts and 5xx statuses are worth retrying."""
    if not isinstance(error, TransportError):
        return False
    return error.status_code <= 0 or error.status_code >= 500
