"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from research_engine.api.app import app
from research_engine.api.dependencies import get_assistant
from research_engine.config import (
    EmbeddingSettings,
    LLMSettings,
    Settings,
    VectorStoreSettings,
)
from research_engine.rag.pipeline import ResearchAssistant, build_research_assistant


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def store_settings(tmp_path: Path) -> VectorStoreSettings:
    """Vector store settings rooted in a temporary directory."""
    return VectorStoreSettings(store_dir=tmp_path / "store")


@pytest.fixture
def mock_settings(store_settings: VectorStoreSettings) -> Settings:
    """Settings with both providers in mock mode and small embeddings."""
    return Settings(
        llm=LLMSettings(api_key=None),
        embedding=EmbeddingSettings(api_key=None, dimensions=8),
        vector_store=store_settings,
    )


@pytest.fixture
async def assistant(mock_settings: Settings) -> AsyncGenerator[ResearchAssistant, None]:
    """Research assistant in mock mode over an empty temporary corpus."""
    research_assistant = build_research_assistant(mock_settings)
    yield research_assistant
    await research_assistant.close()


@pytest.fixture
async def api_client(
    assistant: ResearchAssistant,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests use the mock assistant."""
    app.dependency_overrides[get_assistant] = lambda: assistant
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_assistant, None)

