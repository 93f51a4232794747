"""Tests for embedding service."""

import logging
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from research_engine.config import EmbeddingSettings
from research_engine.embeddings import (
    DEFAULT_EMBEDDING_MODEL,
    EmbeddingResult,
    HTTPEmbeddingService,
    MockEmbeddingService,
    create_embedding_service,
    resolve_embedding_model,
)


def _settings(**overrides: object) -> EmbeddingSettings:
    values: dict[str, object] = {
        "base_url": "http://test:8080",
        "model": "test-model",
        "api_key": "sk-test",
    }
    values.update(overrides)
    return EmbeddingSettings(**values)


def _ok_response(*vectors: list[float]) -> MagicMock:
    mock_response = MagicMock()
    mock_response.json.return_value = {
        "data": [{"index": i, "embedding": v} for i, v in enumerate(vectors)]
    }
    mock_response.raise_for_status = MagicMock()
    return mock_response


def _error_response(status_code: int) -> MagicMock:
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "Server error",
        request=MagicMock(),
        response=mock_response,
    )
    return mock_response


class TestEmbeddingResult:
    """Tests for EmbeddingResult model."""

    def test_valid_result(self) -> None:
        """Valid embedding result is created."""
        result = EmbeddingResult(
            text="test",
            embedding=[0.1, 0.2, 0.3],
            model="test-model",
            dimensions=3,
        )
        assert result.dimensions == 3
        assert result.fallback is False

    def test_zeros(self) -> None:
        """Fallback results carry a zero vector of the requested width."""
        result = EmbeddingResult.zeros("test", "test-model", 4)
        assert result.embedding == [0.0, 0.0, 0.0, 0.0]
        assert result.fallback is True

    def test_dimensions_mismatch(self) -> None:
        """Mismatched dimensions raise error."""
        with pytest.raises(ValueError, match="dimensions"):
            EmbeddingResult(
                text="test",
                embedding=[0.1, 0.2, 0.3],
                model="test-model",
                dimensions=5,
            )


class TestResolveEmbeddingModel:
    """Tests for the chat-model guard."""

    def test_chat_models_replaced(self) -> None:
        """Names that look like chat models fall back to the default."""
        assert resolve_embedding_model("gpt-4o") == DEFAULT_EMBEDDING_MODEL
        assert resolve_embedding_model("my-Chat-deployment") == DEFAULT_EMBEDDING_MODEL

    def test_embedding_models_kept(self) -> None:
        """Embedding model names pass through."""
        assert resolve_embedding_model("text-embedding-3-large") == "text-embedding-3-large"

    def test_service_applies_guard(self) -> None:
        """The HTTP service sends the guarded model name."""
        service = HTTPEmbeddingService(settings=_settings(model="gpt-4o"))
        assert service.model_name == DEFAULT_EMBEDDING_MODEL


class TestMockEmbeddingService:
    """Tests for MockEmbeddingService."""

    async def test_vector_shape(self) -> None:
        """Mock vectors have the configured width and small components."""
        service = MockEmbeddingService(EmbeddingSettings(api_key=None, dimensions=16))
        result = await service.embed("Revenue grew 10%.")

        assert len(result.embedding) == 16
        assert all(0.0 <= value < 0.1 for value in result.embedding)
        assert service.mode == "mock"
        assert result.fallback is False

    async def test_deterministic_per_text(self) -> None:
        """Identical text yields identical vectors."""
        service = MockEmbeddingService(EmbeddingSettings(api_key=None, dimensions=8))
        first = await service.embed("same text")
        second = await service.embed("same text")
        other = await service.embed("other text")

        assert first.embedding == second.embedding
        assert first.embedding != other.embedding

    async def test_batch_preserves_order(self) -> None:
        """Batch results follow input order."""
        service = MockEmbeddingService(EmbeddingSettings(api_key=None, dimensions=4))
        results = await service.embed_batch(["a", "b"])
        assert [r.text for r in results] == ["a", "b"]


class TestCreateEmbeddingService:
    """Tests for the provider factory."""

    def test_mock_without_key(self) -> None:
        """Missing API key selects the mock service."""
        service = create_embedding_service(EmbeddingSettings(api_key=None))
        assert isinstance(service, MockEmbeddingService)

    def test_http_with_key(self) -> None:
        """Configured API key selects the HTTP service."""
        service = create_embedding_service(_settings())
        assert isinstance(service, HTTPEmbeddingService)
        assert service.mode == "live"


class TestHTTPEmbeddingService:
    """Tests for HTTPEmbeddingService."""

    async def test_embed_single(self) -> None:
        """Single text embedding works."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _ok_response([0.1, 0.2, 0.3])

        service = HTTPEmbeddingService(settings=_settings(), client=mock_client)
        result = await service.embed("test text")

        assert result.text == "test text"
        assert result.embedding == [0.1, 0.2, 0.3]
        assert result.model == "test-model"
        assert service.dimensions == 3

    async def test_warns_when_width_differs_from_settings(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """The first live response warns once if its width is not the configured one."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _ok_response([0.1, 0.2, 0.3])
        service = HTTPEmbeddingService(settings=_settings(dimensions=4), client=mock_client)

        with caplog.at_level(logging.WARNING):
            await service.embed("first")
            await service.embed("second")

        warnings = [
            r
            for r in caplog.records
            if r.getMessage() == "Embedding width differs from configured dimensions"
        ]
        assert len(warnings) == 1
        assert warnings[0].configured == 4
        assert warnings[0].actual == 3

    async def test_no_warning_when_width_matches(self, caplog: pytest.LogCaptureFixture) -> None:
        """A response of the configured width logs nothing."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _ok_response([0.1, 0.2, 0.3])
        service = HTTPEmbeddingService(settings=_settings(dimensions=3), client=mock_client)

        with caplog.at_level(logging.WARNING):
            await service.embed("text")

        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    async def test_request_shape(self) -> None:

        """Request goes to /embeddings with bearer auth."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _ok_response([0.1])

        service = HTTPEmbeddingService(settings=_settings(), client=mock_client)
        await service.embed("hello")

        args, kwargs = mock_client.post.call_args
        assert args[0] == "http://test:8080/embeddings"
        assert kwargs["json"] == {"input": ["hello"], "model": "test-model"}
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"

    async def test_embed_batch_orders_by_index(self) -> None:
        """Response items are matched to inputs by index."""
        mock_response = MagicMock()
        mock_response.json.return_value = {
            "data": [
                {"index": 1, "embedding": [0.3, 0.4]},
                {"index": 0, "embedding": [0.1, 0.2]},
            ]
        }
        mock_response.raise_for_status = MagicMock()
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = mock_response

        service = HTTPEmbeddingService(settings=_settings(), client=mock_client)
        results = await service.embed_batch(["text1", "text2"])

        assert results[0].embedding == [0.1, 0.2]
        assert results[1].embedding == [0.3, 0.4]

    async def test_embed_empty_list(self) -> None:
        """Empty list returns empty results."""
        service = HTTPEmbeddingService(settings=_settings())
        assert await service.embed_batch([]) == []

    async def test_http_error_falls_back_to_zero_vector(self) -> None:
        """A server error yields a zero vector of the configured width."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _error_response(500)

        service = HTTPEmbeddingService(settings=_settings(dimensions=4), client=mock_client)
        result = await service.embed("test")

        assert result.fallback is True
        assert result.embedding == [0.0, 0.0, 0.0, 0.0]

    async def test_retries_once_on_server_error(self) -> None:
        """Transient errors are retried exactly once."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = [_error_response(503), _ok_response([0.5, 0.5])]

        service = HTTPEmbeddingService(settings=_settings(), client=mock_client)
        result = await service.embed("test")

        assert result.fallback is False
        assert result.embedding == [0.5, 0.5]
        assert mock_client.post.call_count == 2

    async def test_gives_up_after_one_retry(self) -> None:
        """A second failure falls back without a third attempt."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _error_response(503)

        service = HTTPEmbeddingService(settings=_settings(dimensions=2), client=mock_client)
        result = await service.embed("test")

        assert result.fallback is True
        assert mock_client.post.call_count == 2

    async def test_client_error_not_retried(self) -> None:
        """4xx responses other than 429 are not retried."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = _error_response(400)

        service = HTTPEmbeddingService(settings=_settings(dimensions=2), client=mock_client)
        result = await service.embed("test")

        assert result.fallback is True
        assert mock_client.post.call_count == 1

    async def test_timeout_falls_back(self) -> None:
        """Timeouts yield a fallback vector."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = httpx.ReadTimeout("too slow")

        service = HTTPEmbeddingService(
            settings=_settings(dimensions=3, max_retries=0), client=mock_client
        )
        result = await service.embed("test")

        assert result.fallback is True
        assert len(result.embedding) == 3

    async def test_connection_error_falls_back(self) -> None:
        """Connection errors yield a fallback vector."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = httpx.ConnectError("Connection failed")

        service = HTTPEmbeddingService(settings=_settings(dimensions=2), client=mock_client)
        result = await service.embed("test")

        assert result.fallback is True

    async def test_malformed_response_falls_back(self) -> None:
        """A response without data falls back."""
        mock_response = MagicMock()
        mock_response.json.return_value = {"unexpected": True}
        mock_response.raise_for_status = MagicMock()
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.return_value = mock_response

        service = HTTPEmbeddingService(settings=_settings(dimensions=2), client=mock_client)
        result = await service.embed("test")

        assert result.fallback is True
        assert mock_client.post.call_count == 1

    async def test_batch_chunking(self) -> None:
        """Large batches are split into several requests."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        mock_client.post.side_effect = [
            _ok_response([0.1], [0.2]),
            _ok_response([0.3], [0.4]),
        ]

        service = HTTPEmbeddingService(settings=_settings(), client=mock_client, batch_size=2)
        results = await service.embed_batch(["t1", "t2", "t3", "t4"])

        assert [r.embedding for r in results] == [[0.1], [0.2], [0.3], [0.4]]
        assert mock_client.post.call_count == 2

    async def test_close(self) -> None:
        """Service closes owned client."""
        mock_client = AsyncMock(spec=httpx.AsyncClient)
        service = HTTPEmbeddingService(settings=_settings(), client=mock_client)
        service._owns_client = True

        await service.close()
        mock_client.aclose.assert_called_once()
