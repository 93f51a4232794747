"""Completion client interface and implementations."""

import asyncio
import time
from abc import ABC, abstractmethod

import httpx

from research_engine.config import LLMSettings, get_settings
from research_engine.exceptions import ErrorCode, LLMError
from research_engine.llm.models import GenerationResult, Message, Role
from research_engine.logging_config import get_logger
from research_engine.observability.metrics import record_fallback, track_llm_request

logger = get_logger(__name__)

MOCK_RESPONSE_TEMPLATE = (
    '[MOCK RESPONSE] You asked: "{question}". '
    "Research backend is running! Real LLM not configured."
)


class LLMClient(ABC):
    """Abstract base class for completion clients.

    ``generate`` raises on failure; ``complete`` is the degrade-gracefully
    entry point used by chat and report synthesis.
    """

    @abstractmethod
    async def generate(
        self,
        messages: list[Message],
        timeout: float | None = None,
    ) -> GenerationResult:
        """Generate a reply from messages.

        Args:
            messages: Ordered conversation messages.
            timeout: Per-call timeout in seconds (default from settings).

        Returns:
            GenerationResult with generated text.

        Raises:
            LLMError: If generation fails.
        """
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name."""
        ...

    @property
    @abstractmethod
    def mode(self) -> str:
        """Provider mode: ``live`` or ``mock``."""
        ...

    async def complete(
        self,
        messages: list[Message],
        timeout: float | None = None,
    ) -> str | None:
        """Return the assistant reply, or None if the call failed.

        Never raises for remote failures; each one is recorded as a
        fallback event.
        """
        try:
            result = await self.generate(messages, timeout=timeout)
        except LLMError as e:
            record_fallback(
                "completion",
                "timeout" if e.code == ErrorCode.LLM_TIMEOUT else "remote_error",
                model=self.model_name,
                code=e.code.value,
                error=e.message,
            )
            return None
        return result.content

    async def generate_text(
        self,
        prompt: str,
        system_prompt: str | None = None,
        timeout: float | None = None,
    ) -> GenerationResult:
        """Generate text from a simple prompt."""
        messages: list[Message] = []

        if system_prompt:
            messages.append(Message(role=Role.SYSTEM, content=system_prompt))

        messages.append(Message(role=Role.USER, content=prompt))

        return await self.generate(messages=messages, timeout=timeout)

    async def close(self) -> None:
        """Release any held resources."""
        return None


class MockLLMClient(LLMClient):
    """Deterministic stand-in used when no credentials are configured."""

    @property
    def model_name(self) -> str:
        return "mock"

    @property
    def mode(self) -> str:
        return "mock"

    async def generate(
        self,
        messages: list[Message],
        timeout: float | None = None,
    ) -> GenerationResult:
        question = messages[-1].content if messages else ""
        return GenerationResult(
            content=MOCK_RESPONSE_TEMPLATE.format(question=question),
            model=self.model_name,
            mock=True,
        )


class OpenAICompatibleClient(LLMClient):
    """Completion client for OpenAI-compatible APIs.

    Works with:
    - OpenAI API
    - Azure OpenAI behind an OpenAI-compatible gateway
    - vLLM / Ollama (``/v1`` endpoints)
    """

    def __init__(
        self,
        settings: LLMSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the OpenAI-compatible client.

        Args:
            settings: Completion configuration.
            client: HTTP client (for testing).
        """
        self._settings = settings or get_settings().llm
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._settings.model

    @property
    def mode(self) -> str:
        return "live"

    async def generate(
        self,
        messages: list[Message],
        timeout: float | None = None,
    ) -> GenerationResult:
        """Generate a reply, retrying transient failures at most once."""
        attempts = self._settings.max_retries + 1
        for attempt in range(1, attempts + 1):
            start = time.perf_counter()
            try:
                result = await self._chat_completion(messages, timeout)
            except LLMError as e:
                track_llm_request(
                    self.model_name, time.perf_counter() - start, 0, 0, success=False
                )
                if not e.retryable or attempt == attempts:
                    raise
                logger.warning(
                    f"Completion request failed, retrying: {e.message}",
                    extra={"attempt": attempt, "code": e.code.value},
                )
                continue

            track_llm_request(
                self.model_name,
                time.perf_counter() - start,
                result.prompt_tokens,
                result.completion_tokens,
            )
            return result

        raise LLMError("Completion request was not attempted")

    async def _chat_completion(
        self,
        messages: list[Message],
        timeout: float | None,
    ) -> GenerationResult:
        """Make one chat completions request."""
        client = await self._get_client()
        url = f"{self._settings.base_url}/chat/completions"
        timeout = timeout or self._settings.timeout

        payload = {
            "model": self._settings.model,
            "messages": [msg.to_wire() for msg in messages],
            "temperature": self._settings.temperature,
            "max_tokens": self._settings.max_tokens,
        }

        headers = {}
        if self._settings.api_key is not None:
            headers["Authorization"] = f"Bearer {self._settings.api_key.get_secret_value()}"

        try:
            response = await asyncio.wait_for(
                client.post(url, json=payload, headers=headers),
                timeout=timeout,
            )
            response.raise_for_status()

        except (TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Completion request timed out: {e}")
            raise LLMError(
                "Completion request timed out",
                code=ErrorCode.LLM_TIMEOUT,
                details={"timeout": timeout},
                retryable=True,
            ) from e

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Completion request failed: {status}")

            if status == 429:
                raise LLMError(
                    "Rate limit exceeded",
                    code=ErrorCode.LLM_RATE_LIMIT,
                    details={"status_code": status},
                    retryable=True,
                ) from e

            raise LLMError(
                f"Completion service returned {status}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"status_code": status},
                retryable=status >= 500,
            ) from e

        except httpx.RequestError as e:
            logger.error(f"Completion connection error: {e}")
            raise LLMError(
                f"Failed to connect to completion service: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"url": url},
                retryable=True,
            ) from e

        try:
            data = response.json()
            message = data["choices"][0]["message"]
            usage = data.get("usage") or {}
            content = message["content"]
            if not isinstance(content, str):
                raise TypeError("message content is not a string")

            return GenerationResult(
                content=content,
                model=data.get("model", self._settings.model),
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            )

        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise LLMError(
                f"Invalid response from completion service: {e}",
                code=ErrorCode.LLM_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e


def create_llm_client(settings: LLMSettings | None = None) -> LLMClient:
    """Pick the live or mock completion client from configuration."""
    settings = settings or get_settings().llm
    if not settings.is_configured:
        logger.info("Completion API key not configured, mock mode enabled")
        return MockLLMClient()
    logger.info(
        "Completion client initialized",
        extra={"base_url": settings.base_url, "model": settings.model},
    )
    return OpenAICompatibleClient(settings)
