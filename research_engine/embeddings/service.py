"""Embedding service interface and implementations.

Embedding never fails outward: retrieval must not block chat or report
generation on an embedding outage, so errors become a zero vector.
"""

import asyncio
import hashlib
import random
import time
from abc import ABC, abstractmethod

import httpx

from research_engine.config import EmbeddingSettings, get_settings
from research_engine.embeddings.models import EmbeddingResult
from research_engine.exceptions import EmbeddingError, ErrorCode
from research_engine.logging_config import get_logger
from research_engine.observability.metrics import (
    record_fallback,
    track_embedding_request,
)

logger = get_logger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

MOCK_COMPONENT_SCALE = 0.1


def resolve_embedding_model(model: str) -> str:
    """Replace chat model names with the default embedding model."""
    lowered = model.lower()
    if "gpt" in lowered or "chat" in lowered:
        logger.warning(
            f"Configured embedding model {model!r} looks like a chat model, "
            f"using {DEFAULT_EMBEDDING_MODEL}"
        )
        return DEFAULT_EMBEDDING_MODEL
    return model


class EmbeddingService(ABC):
    """Abstract base class for embedding services.

    Defines the interface for generating text embeddings.
    """

    @abstractmethod
    async def embed(self, text: str, timeout: float | None = None) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Text to embed.
            timeout: Per-call timeout in seconds (default from settings).

        Returns:
            EmbeddingResult with vector. Never raises.
        """
        ...

    @abstractmethod
    async def embed_batch(
        self,
        texts: list[str],
        timeout: float | None = None,
    ) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts, in order."""
        ...

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Get the model name used for embeddings."""
        ...

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Get the embedding dimensions."""
        ...

    @property
    @abstractmethod
    def mode(self) -> str:
        """Provider mode: ``live`` or ``mock``."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class MockEmbeddingService(EmbeddingService):
    """Embedding stand-in used when no credentials are configured.

    Vectors are pseudo-random with small components, seeded from the text
    so identical inputs always produce identical vectors.
    """

    def __init__(self, settings: EmbeddingSettings | None = None) -> None:
        self._settings = settings or get_settings().embedding

    @property
    def model_name(self) -> str:
        return "mock"

    @property
    def dimensions(self) -> int:
        return self._settings.dimensions

    @property
    def mode(self) -> str:
        return "mock"

    def _vector(self, text: str) -> list[float]:
        digest = hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest()
        rng = random.Random(int.from_bytes(digest, "big"))
        return [rng.random() * MOCK_COMPONENT_SCALE for _ in range(self.dimensions)]

    async def embed(self, text: str, timeout: float | None = None) -> EmbeddingResult:
        track_embedding_request(self.model_name, 0.0, status="mock")
        return EmbeddingResult(
            text=text,
            embedding=self._vector(text),
            model=self.model_name,
            dimensions=self.dimensions,
        )

    async def embed_batch(
        self,
        texts: list[str],
        timeout: float | None = None,
    ) -> list[EmbeddingResult]:
        return [await self.embed(text) for text in texts]


class HTTPEmbeddingService(EmbeddingService):
    """Embedding service using an OpenAI-compatible HTTP API.

    Each request is bounded by a timeout and retried at most once on
    transient failures. Whatever still fails is returned as a zero vector
    flagged ``fallback=True``.
    """

    def __init__(
        self,
        settings: EmbeddingSettings | None = None,
        client: httpx.AsyncClient | None = None,
        batch_size: int = 32,
    ) -> None:
        """Initialize the HTTP embedding service.

        Args:
            settings: Embedding configuration. Uses defaults if not provided.
            client: HTTP client. Creates new one if not provided.
            batch_size: Texts per request in ``embed_batch``.
        """
        self._settings = settings or get_settings().embedding
        self._client = client
        self._owns_client = client is None
        self._model = resolve_embedding_model(self._settings.model)
        self._batch_size = batch_size
        self._dimensions: int | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def model_name(self) -> str:
        """Get the model name actually sent to the API."""
        return self._model

    @property
    def dimensions(self) -> int:
        """Embedding width, learned from the first response when possible."""
        if self._dimensions is not None:
            return self._dimensions
        return self._settings.dimensions

    @property
    def mode(self) -> str:
        return "live"

    def _fallback(self, text: str) -> EmbeddingResult:
        return EmbeddingResult.zeros(text, self.model_name, self.dimensions)

    async def embed(self, text: str, timeout: float | None = None) -> EmbeddingResult:
        """Generate embedding for a single text."""
        results = await self.embed_batch([text], timeout=timeout)
        return results[0]

    async def embed_batch(
        self,
        texts: list[str],
        timeout: float | None = None,
    ) -> list[EmbeddingResult]:
        """Generate embeddings for multiple texts.

        Failed batches are replaced by zero vectors; the rest are kept.
        """
        if not texts:
            return []

        all_results: list[EmbeddingResult] = []
        for i in range(0, len(texts), self._batch_size):
            batch = texts[i : i + self._batch_size]
            start = time.perf_counter()
            try:
                batch_results = await self._request_with_retry(batch, timeout)
            except EmbeddingError as e:
                track_embedding_request(
                    self.model_name, time.perf_counter() - start, status="fallback"
                )
                record_fallback(
                    "embedding",
                    "timeout" if e.code == ErrorCode.EMBEDDING_TIMEOUT else "remote_error",
                    model=self.model_name,
                    batch_size=len(batch),
                    error=e.message,
                )
                batch_results = [self._fallback(text) for text in batch]
            else:
                track_embedding_request(self.model_name, time.perf_counter() - start)
            all_results.extend(batch_results)

        return all_results

    async def _request_with_retry(
        self,
        texts: list[str],
        timeout: float | None,
    ) -> list[EmbeddingResult]:
        """Run the request, retrying transient failures up to ``max_retries`` times."""
        attempts = self._settings.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                return await self._embed_batch_request(texts, timeout)
            except EmbeddingError as e:
                if not e.retryable or attempt == attempts:
                    raise
                logger.warning(
                    f"Embedding request failed, retrying: {e.message}",
                    extra={"attempt": attempt, "code": e.code.value},
                )
        raise EmbeddingError("Embedding request was not attempted")

    async def _embed_batch_request(
        self,
        texts: list[str],
        timeout: float | None,
    ) -> list[EmbeddingResult]:
        """Make embedding request for a batch.

        Raises:
            EmbeddingError: If the request fails or the response is malformed.
        """
        client = await self._get_client()
        url = f"{self._settings.base_url}/embeddings"
        timeout = timeout or self._settings.timeout
        payload = {
            "input": texts,
            "model": self.model_name,
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
            raise EmbeddingError(
                "Embedding request timed out",
                code=ErrorCode.EMBEDDING_TIMEOUT,
                details={"timeout": timeout},
                retryable=True,
            ) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise EmbeddingError(
                f"Embedding service returned {status}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"status_code": status},
                retryable=status == 429 or status >= 500,
            ) from e
        except httpx.RequestError as e:
            raise EmbeddingError(
                f"Failed to connect to embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"url": url},
                retryable=True,
            ) from e

        try:
            data = response.json()
            embeddings = sorted(data["data"], key=lambda item: item.get("index", 0))
            if len(embeddings) != len(texts):
                raise ValueError(f"expected {len(texts)} embeddings, got {len(embeddings)}")

            results: list[EmbeddingResult] = []
            for text, emb_data in zip(texts, embeddings):
                embedding = [float(value) for value in emb_data["embedding"]]
                if not embedding:
                    raise ValueError("empty embedding")

                if self._dimensions is None:
                    self._dimensions = len(embedding)
                    if self._dimensions != self._settings.dimensions:
                        logger.warning(
                            "Embedding width differs from configured dimensions",
                            extra={
                                "configured": self._settings.dimensions,
                                "actual": self._dimensions,
                            },
                        )

                results.append(
                    EmbeddingResult(
                        text=text,
                        embedding=embedding,
                        model=self.model_name,
                        dimensions=len(embedding),
                    )
                )

            return results

        except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
            raise EmbeddingError(
                f"Invalid response from embedding service: {e}",
                code=ErrorCode.EMBEDDING_SERVICE_ERROR,
                details={"error": str(e)},
            ) from e


def create_embedding_service(
    settings: EmbeddingSettings | None = None,
) -> EmbeddingService:
    """Pick the live or mock embedding service from configuration."""
    settings = settings or get_settings().embedding
    if not settings.is_configured:
        logger.info("Embedding API key not configured, using mock embeddings")
        return MockEmbeddingService(settings)
    logger.info("Embedding service initialized", extra={"base_url": settings.base_url})
    return HTTPEmbeddingService(settings)
