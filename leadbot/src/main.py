"""
leadbot/src/main.py — Application Entry Point

Responsibility:
    FastAPI application factory.  Initializes the FastAPI instance,
    registers the routes from leadbot/src/api/routes.py, and configures
    CORS and the signed session cookie.

    On startup (lifespan) it builds every collaborator exactly once and
    wires them together explicitly:

        MongoDB client → MongoUserStore ─┐
        Gemini embeddings → QueryEmbedder ─┐          ├→ OnboardingMachine
        LanceDB → LeadBotVectorStore ──────┴→ Retriever ─┐  │
        Gemini chat model → Responder ──────────────────┴→ RAGPipeline

Run:
    uvicorn leadbot.src.main:app --port 5050
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from leadbot.config.settings import Settings, settings
from leadbot.src.api.routes import router
from leadbot.src.core.onboarding import OnboardingMachine
from leadbot.src.core.rag_engine import QueryEmbedder, RAGPipeline, Responder, Retriever
from leadbot.src.database.user_store import MongoUserStore, create_mongo_client
from leadbot.src.database.vector_store import LeadBotVectorStore
from leadbot.src.utils.logger import get_logger

logger = get_logger(__name__)


def build_pipeline(cfg: Settings) -> RAGPipeline:
    """Construct the Gemini + LanceDB retrieval-augmented pipeline."""
    from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

    api_key = cfg.GOOGLE_API_KEY.get_secret_value()
    embeddings = GoogleGenerativeAIEmbeddings(model=cfg.EMBEDDING_MODEL, google_api_key=api_key)
    llm = ChatGoogleGenerativeAI(model=cfg.LLM_MODEL, temperature=cfg.LLM_TEMPERATURE, google_api_key=api_key)
    logger.info("LLM initialised: %s (temperature=%.1f)", cfg.LLM_MODEL, cfg.LLM_TEMPERATURE)

    index = LeadBotVectorStore(db_path=cfg.LANCEDB_PATH, table_name=cfg.LANCEDB_TABLE_NAME, embedder=embeddings)
    retriever = Retriever(QueryEmbedder(embeddings), index)
    responder = Responder(llm, site_name=cfg.SITE_NAME, site_domain=cfg.SITE_DOMAIN)
    return RAGPipeline(retriever, responder, top_k=cfg.TOP_K)


def create_app(cfg: Settings | None = None, machine: OnboardingMachine | None = None) -> FastAPI:
    """
    Build the FastAPI app.

    If *machine* is given it is used as-is and the lifespan does not
    connect to any external service.
    """
    cfg = cfg or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "machine", None) is not None:
            yield
            return

        client = create_mongo_client(cfg.MONGO_URI.get_secret_value())
        store = MongoUserStore(client[cfg.MONGO_DB_NAME][cfg.MONGO_COLLECTION])
        await store.ensure_indexes()
        app.state.machine = OnboardingMachine(store, build_pipeline(cfg))
        logger.info("[API] %s ready (env=%s).", cfg.APP_NAME, cfg.ENV)
        try:
            yield
        finally:
            client.close()
            logger.info("[API] MongoDB client closed.")

    app = FastAPI(title=cfg.APP_NAME, lifespan=lifespan)
    if machine is not None:
        app.state.machine = machine

    is_dev = cfg.ENV != "prod"
    app.add_middleware(
        SessionMiddleware,
        secret_key=cfg.SESSION_SECRET.get_secret_value(),
        max_age=cfg.SESSION_MAX_AGE,
        same_site="lax" if is_dev else "none",
        https_only=not is_dev,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()
