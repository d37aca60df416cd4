"""
Composition-root tests: the lifespan wires real collaborators around
patched Gemini model classes and a patched MongoDB client.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from leadbot.config.settings import settings
from leadbot.src.core.onboarding import OnboardingMachine
from leadbot.src.core.rag_engine import RAGPipeline
from leadbot.src.main import build_pipeline, create_app


@pytest.fixture
def gemini():
    with patch("langchain_google_genai.GoogleGenerativeAIEmbeddings") as embeddings_cls, \
            patch("langchain_google_genai.ChatGoogleGenerativeAI") as chat_cls, \
            patch("leadbot.src.main.LeadBotVectorStore") as store_cls:
        yield {"embeddings": embeddings_cls, "chat": chat_cls, "store": store_cls}


@pytest.fixture
def mongo_client():
    client = MagicMock()
    client.__getitem__.return_value.__getitem__.return_value.create_index = AsyncMock()
    with patch("leadbot.src.main.create_mongo_client", return_value=client) as factory:
        yield client, factory


def test_build_pipeline_passes_configured_models(gemini):
    pipeline = build_pipeline(settings)

    assert isinstance(pipeline, RAGPipeline)
    gemini["embeddings"].assert_called_once_with(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    gemini["chat"].assert_called_once_with(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    gemini["store"].assert_called_once_with(db_path=settings.LANCEDB_PATH, table_name=settings.LANCEDB_TABLE_NAME, embedder=gemini["embeddings"].return_value)


def test_lifespan_wires_machine_and_closes_client(gemini, mongo_client):
    client, factory = mongo_client
    app = create_app()

    with TestClient(app) as http:
        assert isinstance(app.state.machine, OnboardingMachine)
        assert http.get("/").json() == {"status": "ok", "service": settings.APP_NAME}
        client.close.assert_not_called()

    factory.assert_called_once_with(settings.MONGO_URI.get_secret_value())
    client.__getitem__.assert_called_once_with(settings.MONGO_DB_NAME)
    client.__getitem__.return_value.__getitem__.assert_called_once_with(settings.MONGO_COLLECTION)
    client.__getitem__.return_value.__getitem__.return_value.create_index.assert_awaited_once_with("email", unique=True)
    client.close.assert_called_once()


def test_injected_machine_skips_external_wiring(machine, mongo_client):
    _, factory = mongo_client
    app = create_app(machine=machine)

    with TestClient(app):
        assert app.state.machine is machine

    factory.assert_not_called()
