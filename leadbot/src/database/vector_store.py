"""
LeadBot - LeadBotVectorStore
==============================
OOP wrapper around LanceDB providing a clean interface for:
  • Lazy table creation from the first ingested batch
  • Document insertion (embedding + url/content metadata) with batching
  • Per-page replacement (``delete_url``) when a page is re-ingested
  • Top-K nearest-neighbour queries by raw vector

Design decisions:
  • **Singleton DB connection** — ``_get_connection()`` caches the
    ``lancedb.DBConnection`` per path to avoid file-lock issues.
  • **Dependency Injection** — the embedder is injected, never
    hard-coded.  Only ingestion needs it; queries take a vector.
  • **Index-shaped results** — ``query`` answers in the shape of a hosted
    vector index (``{"metadata": {...}, "score": float}``) so the
    retriever does not depend on LanceDB row layout.

Usage:
    from langchain_google_genai import GoogleGenerativeAIEmbeddings
    from leadbot.src.database.vector_store import LeadBotVectorStore

    store = LeadBotVectorStore(db_path="data/lancedb", table_name="site_pages", embedder=embedder)
    store.add_documents(texts=[...], metadatas=[{"url": "...", "chunk_index": 0}])
    matches = store.query(vector, top_k=3, include_metadata=True)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol

import lancedb

from leadbot.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
DocumentMetadata = dict[str, str | int]
DocumentRecord = dict[str, str | int | list[float]]
IndexMatch = dict[str, float | dict[str, str | int]]


class Embedder(Protocol):
    """Structural type for any LangChain-compatible embedding model."""

    def embed_documents(self, texts: list[str]) -> list[list[float]]: ...

    def embed_query(self, text: str) -> list[float]: ...


# ── Constants ──────────────────────────────────────────────────────────
_EMBED_BATCH_SIZE = 64
_DB_LOCK = threading.Lock()
_WRITE_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """Return a cached ``lancedb.DBConnection`` for *db_path* (thread-safe)."""
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                Path(db_path).mkdir(parents=True, exist_ok=True)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


def distance_to_score(distance: float) -> float:
    """Map an L2 distance (lower is closer) onto a (0, 1] similarity."""
    return 1.0 / (1.0 + max(distance, 0.0))


class LeadBotVectorStore:
    """
    High-level abstraction over a LanceDB table of site passages.

    Parameters
    ----------
    db_path
        Database directory.
    table_name
        Table holding ``vector``, ``url``, ``content``, ``chunk_index``.
    embedder
        Optional ``Embedder``; required only for ``add_documents``.
    """

    __slots__ = ("embedder", "_db_path", "_table_name", "db", "table")

    def __init__(self, db_path: str | Path, table_name: str, embedder: Embedder | None = None) -> None:
        self.embedder = embedder
        self._db_path: str = str(db_path)
        self._table_name: str = table_name
        self.db: lancedb.DBConnection | None = None
        self.table = None
        self._connect()


    def _connect(self) -> None:
        """Open (or re-use) the LanceDB connection and the table if it exists."""
        try:
            self.db = _get_connection(self._db_path)
            self.table = self._open_table()
            if self.table is not None:
                logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())
            else:
                logger.info("Table '%s' not created yet; it will be created on first ingestion.", self._table_name)
        except OSError as exc:
            logger.error("LanceDB filesystem error at %s: %s", self._db_path, exc)
            raise


    def _open_table(self):
        """Return the table handle, or ``None`` when it has not been created."""
        try:
            return self.db.open_table(self._table_name)
        except (ValueError, FileNotFoundError):
            return None


    def add_documents(self, texts: list[str], metadatas: list[DocumentMetadata]) -> int:
        """
        Embed a batch of passages and persist them with ``url`` metadata.

        Returns
        -------
        int
            Number of rows added.

        Raises
        ------
        ValueError
            If ``texts`` and ``metadatas`` have mismatched lengths.
        RuntimeError
            If no embedder was injected.
        """
        if len(texts) != len(metadatas):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(metadatas)} metadatas.")
        if self.embedder is None:
            raise RuntimeError("An embedder is required to add documents.")
        if not texts:
            return 0

        logger.info("Embedding %d chunks in batches of %d …", len(texts), _EMBED_BATCH_SIZE)

        all_vectors: list[list[float]] = []
        for i in range(0, len(texts), _EMBED_BATCH_SIZE):
            batch = texts[i : i + _EMBED_BATCH_SIZE]
            try:
                all_vectors.extend(self.embedder.embed_documents(batch))
            except Exception as exc:
                logger.error("Embedding batch %d–%d failed: %s", i, i + len(batch) - 1, exc)
                raise

        records: list[DocumentRecord] = [
            {"vector": [float(x) for x in vec], "url": str(meta.get("url", "")), "content": txt, "chunk_index": int(meta.get("chunk_index", 0))}
            for txt, vec, meta in zip(texts, all_vectors, metadatas)
        ]

        with _WRITE_LOCK:
            if self.table is None:
                self.table = self.db.create_table(self._table_name, records)
                logger.info("Created table '%s'.", self._table_name)
            else:
                self.table.add(records)

        logger.info("Added %d chunks. Table '%s' now has %d total rows.", len(records), self._table_name, self.table.count_rows())
        return len(records)


    def query(self, vector: list[float], top_k: int = 3, include_metadata: bool = True) -> list[IndexMatch]:
        """
        Return the *top_k* nearest passages to *vector*, closest first.

        Each match is ``{"id": str, "score": float, "metadata": {"url", "content"}}``;
        ``metadata`` is omitted when *include_metadata* is False.

        Raises
        ------
        RuntimeError
            If nothing has been ingested yet.
        """
        if self.table is None:
            # Ingestion may have run in another process since startup
            self._connect()
        if self.table is None:
            raise RuntimeError(f"Table '{self._table_name}' does not exist. Run the ingestion script first (leadbot/scripts/setup_db.py).")

        rows = self.table.search(vector, vector_column_name="vector").limit(top_k).to_list()

        matches: list[IndexMatch] = []
        for row in rows:
            match: IndexMatch = {"id": f"{row.get('url', '')}#{row.get('chunk_index', 0)}", "score": distance_to_score(float(row.get("_distance", 0.0)))}
            if include_metadata:
                match["metadata"] = {"url": row.get("url", ""), "content": row.get("content", ""), "chunk_index": row.get("chunk_index", 0)}
            matches.append(match)

        logger.debug("Index query returned %d match(es).", len(matches))
        return matches


    def delete_url(self, url: str) -> int:
        """Remove every passage of the page at *url*; returns the rows removed."""
        if self.table is None:
            return 0
        where = "url = '{}'".format(url.replace("'", "''"))
        with _WRITE_LOCK:
            removed = self.table.count_rows(where)
            if removed:
                self.table.delete(where)
        if removed:
            logger.info("Removed %d stale chunk(s) for %s.", removed, url)
        return removed


    def count(self) -> int:
        """Return the total number of rows in the table."""
        if self.table is None:
            return 0
        return self.table.count_rows()


    def drop_table(self) -> None:
        """Drop the table (used by ``setup_db --drop``)."""
        if self.db is None:
            logger.warning("No database connection; nothing to drop.")
            return
        self.table = None
        if self._open_table() is None:
            logger.warning("Table '%s' does not exist — nothing to drop.", self._table_name)
            return
        self.db.drop_table(self._table_name)
        logger.info("Dropped table '%s'.", self._table_name)


    def __repr__(self) -> str:
        return f"LeadBotVectorStore(db='{self._db_path}', table='{self._table_name}', rows={self.count()})"
