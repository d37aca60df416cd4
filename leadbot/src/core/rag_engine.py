"""
LeadBot - RAG Engine
======================
Answers free-form visitor questions from the site's own content.

Architecture (OOP)
------------------
``QueryEmbedder``
    Turns a question into a vector through the injected embedding
    model.  Never raises; failures become ``EmbeddingResult.failure``.

``Retriever``
    Embeds the question, then asks the vector index for the top-K
    nearest passages with metadata.  Reports *why* nothing came back
    (``EMPTY`` vs ``EMBEDDING_FAILED`` vs ``INDEX_FAILED``).

``Responder``
    Builds the persona-scoped prompt and calls the generative model
    once.  Reports failures as ``GenerationResult.failure``.

``RAGPipeline``
    ``query_vector_db``: retrieve → format context → respond.  This is
    the only place where failure variants collapse into the visitor-
    facing fallback string.

Pipeline:
    1. Embed question (``QueryEmbedder``)
    2. Top-K index query, skipped if embedding failed (``Retriever``)
    3. Context = "Source: …\\nContent: …" blocks, or the no-info sentinel
    4. Generate (``Responder``), fallback string on failure

Usage:
    from leadbot.src.core.rag_engine import RAGPipeline
    pipeline = RAGPipeline(retriever, responder)
    answer = await pipeline.query_vector_db("What areas do you serve?")
"""

from __future__ import annotations

import asyncio
import enum
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from langchain_core.messages import HumanMessage

from leadbot.config.prompt_templates import CONTEXT_BLOCK_TEMPLATE, GENERATION_FALLBACK, NO_CONTEXT_SENTINEL, OUT_OF_SCOPE_TEMPLATE, PERSONA_TEMPLATE
from leadbot.src.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TOP_K = 3


# ══════════════════════════════════════════════════════════════════════
#  COLLABORATOR PROTOCOLS
# ══════════════════════════════════════════════════════════════════════


class AsyncEmbedder(Protocol):
    """Anything that can embed a query asynchronously (LangChain ``Embeddings``)."""

    async def aembed_query(self, text: str) -> list[float]: ...


class VectorIndex(Protocol):
    """Top-K nearest-neighbour lookup by raw vector."""

    def query(self, vector: list[float], top_k: int = 3, include_metadata: bool = True) -> list[dict[str, Any]]: ...


class ChatModel(Protocol):
    """Anything with LangChain's async ``ainvoke``."""

    async def ainvoke(self, input: Any, **kwargs: Any) -> Any: ...


# ══════════════════════════════════════════════════════════════════════
#  RESULT TYPES
# ══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RetrievedDocument:
    url: str
    content: str
    score: float


@dataclass(frozen=True, slots=True)
class EmbeddingResult:
    vector: list[float] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.vector is not None

    @classmethod
    def success(cls, vector: list[float]) -> EmbeddingResult:
        return cls(vector=vector)

    @classmethod
    def failure(cls, error: str) -> EmbeddingResult:
        return cls(error=error)


class RetrievalStatus(str, enum.Enum):
    OK = "ok"
    EMPTY = "empty"
    EMBEDDING_FAILED = "embedding_failed"
    INDEX_FAILED = "index_failed"


@dataclass(frozen=True, slots=True)
class RetrievalResult:
    status: RetrievalStatus
    documents: list[RetrievedDocument] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (RetrievalStatus.OK, RetrievalStatus.EMPTY)


@dataclass(frozen=True, slots=True)
class GenerationResult:
    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def success(cls, text: str) -> GenerationResult:
        return cls(text=text)

    @classmethod
    def failure(cls, error: str) -> GenerationResult:
        return cls(error=error)


# ══════════════════════════════════════════════════════════════════════
#  EMBEDDER
# ══════════════════════════════════════════════════════════════════════


class QueryEmbedder:
    """
    Wraps an embedding model behind a never-raising contract.

    Parameters
    ----------
    model
        An ``AsyncEmbedder`` such as ``GoogleGenerativeAIEmbeddings``.
    """

    __slots__ = ("_model",)

    def __init__(self, model: AsyncEmbedder) -> None:
        self._model = model


    async def embed_text(self, text: str) -> EmbeddingResult:
        if not text or not text.strip():
            return EmbeddingResult.failure("empty text")

        try:
            vector = await self._model.aembed_query(text)
        except Exception as exc:
            logger.exception("[EMBED] Embedding call failed.")
            return EmbeddingResult.failure(f"{type(exc).__name__}: {exc}")

        if not vector:
            logger.warning("[EMBED] Embedding service returned no vector.")
            return EmbeddingResult.failure("empty vector")
        try:
            values = [float(x) for x in vector]
        except (TypeError, ValueError) as exc:
            logger.warning("[EMBED] Malformed embedding response: %s", exc)
            return EmbeddingResult.failure(f"malformed vector: {exc}")

        return EmbeddingResult.success(values)


    async def embed(self, text: str) -> list[float] | None:
        """Return the embedding of *text*, or None on any failure."""
        result = await self.embed_text(text)
        return result.vector


# ══════════════════════════════════════════════════════════════════════
#  RETRIEVER
# ══════════════════════════════════════════════════════════════════════


class Retriever:
    """
    Top-K passage retrieval: embed, then query the index.

    Parameters
    ----------
    embedder
        A ``QueryEmbedder``.
    index
        A ``VectorIndex`` (e.g. ``LeadBotVectorStore``).  Its ``query`` is
        blocking, so it runs in a worker thread.
    """

    __slots__ = ("_embedder", "_index")

    def __init__(self, embedder: QueryEmbedder, index: VectorIndex) -> None:
        self._embedder = embedder
        self._index = index


    async def search(self, query: str, top_k: int = DEFAULT_TOP_K) -> RetrievalResult:
        embedding = await self._embedder.embed_text(query)
        if not embedding.ok:
            logger.warning("[RAG] Skipping retrieval, embedding failed: %s", embedding.error)
            return RetrievalResult(RetrievalStatus.EMBEDDING_FAILED, error=embedding.error)

        try:
            matches = await asyncio.to_thread(self._index.query, embedding.vector, top_k, True)
            documents = [self._to_document(m) for m in matches or []]
        except Exception as exc:
            logger.exception("[RAG] Vector index query failed.")
            return RetrievalResult(RetrievalStatus.INDEX_FAILED, error=f"{type(exc).__name__}: {exc}")

        if not documents:
            return RetrievalResult(RetrievalStatus.EMPTY)
        return RetrievalResult(RetrievalStatus.OK, documents=documents)


    async def retrieve(self, query: str, top_k: int = DEFAULT_TOP_K) -> list[RetrievedDocument]:
        """Return up to *top_k* passages, most similar first; [] on any failure."""
        result = await self.search(query, top_k)
        return result.documents


    @staticmethod
    def _to_document(match: dict[str, Any]) -> RetrievedDocument:
        metadata = match.get("metadata") or {}
        return RetrievedDocument(url=str(metadata.get("url", "")), content=str(metadata.get("content", "")), score=float(match.get("score", 0.0)))


# ══════════════════════════════════════════════════════════════════════
#  RESPONDER
# ══════════════════════════════════════════════════════════════════════


class Responder:
    """
    Single-shot grounded generation under a site-scoped persona.

    Parameters
    ----------
    llm
        A ``ChatModel`` such as ``ChatGoogleGenerativeAI``.
    site_name, site_domain
        Scope the persona answers for.
    """

    __slots__ = ("_llm", "_site_name", "_site_domain")

    def __init__(self, llm: ChatModel, site_name: str, site_domain: str) -> None:
        self._llm = llm
        self._site_name = site_name
        self._site_domain = site_domain


    def build_prompt(self, user_query: str, context: str) -> str:
        return "\n\n".join([
            f"User query: {user_query}",
            f"Context:\n{context or NO_CONTEXT_SENTINEL}",
            PERSONA_TEMPLATE.format(site_name=self._site_name),
            OUT_OF_SCOPE_TEMPLATE.format(site_domain=self._site_domain),
        ])


    async def generate(self, user_query: str, context: str) -> GenerationResult:
        prompt = self.build_prompt(user_query, context)

        t_llm = time.perf_counter()
        try:
            response = await self._llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as exc:
            logger.exception("[RAG] LLM call failed.")
            return GenerationResult.failure(f"{type(exc).__name__}: {exc}")
        llm_ms = (time.perf_counter() - t_llm) * 1000

        text = _message_text(response).strip()
        if not text:
            logger.warning("[RAG] LLM returned an empty answer (%.1fms).", llm_ms)
            return GenerationResult.failure("empty response")

        logger.info("[RAG] LLM response: %.1fms (%d chars)", llm_ms, len(text))
        return GenerationResult.success(text)


    async def respond(self, user_query: str, context: str) -> str:
        """Return the model's trimmed answer, or the fixed fallback string."""
        result = await self.generate(user_query, context)
        return result.text if result.ok else GENERATION_FALLBACK


def _message_text(response: Any) -> str:
    """Extract plain text from an ``AIMessage`` (str or content-part list)."""
    content = getattr(response, "content", response)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return "" if content is None else str(content)


# ══════════════════════════════════════════════════════════════════════
#  PIPELINE
# ══════════════════════════════════════════════════════════════════════


class RAGPipeline:
    """Retrieve → format → respond."""

    __slots__ = ("_retriever", "_responder", "_top_k")

    def __init__(self, retriever: Retriever, responder: Responder, top_k: int = DEFAULT_TOP_K) -> None:
        self._retriever = retriever
        self._responder = responder
        self._top_k = top_k


    async def query_vector_db(self, user_query: str) -> str:
        t_start = time.perf_counter()

        retrieval = await self._retriever.search(user_query, self._top_k)
        context = self.format_context(retrieval.documents)
        logger.info("[RAG] Retrieval %s: %d document(s).", retrieval.status.value, len(retrieval.documents))

        answer = await self._responder.respond(user_query, context)

        total_ms = (time.perf_counter() - t_start) * 1000
        logger.info("[RAG] Pipeline total: %.1fms", total_ms)
        return answer


    @staticmethod
    def format_context(documents: list[RetrievedDocument]) -> str:
        if not documents:
            return NO_CONTEXT_SENTINEL
        return "\n\n".join(CONTEXT_BLOCK_TEMPLATE.format(url=doc.url, content=doc.content) for doc in documents)
