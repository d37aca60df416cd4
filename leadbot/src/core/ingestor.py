"""
LeadBot - IngestionPipeline
=============================
Reads exported site pages, cleans and chunks them, and persists the
passages into the ``LeadBotVectorStore`` so the chat can cite them.

Key design decisions:
    • **Dependency Injection** – receives the ``LeadBotVectorStore``.
    • **Page URLs** – every passage carries the URL of the page it came
      from (``URL:`` header line, or derived from the filename).
    • **Recursive chunking** – paragraph → line → sentence → word
      boundaries, never exceeding ``chunk_size`` characters.
    • **Concurrency** – files are processed in parallel via
      ``ThreadPoolExecutor`` (embedding calls are I/O-bound).
    • **Caching** – MD5-based file hashing skips unchanged files; a
      changed file has its old passages deleted before re-insertion.

Usage:
    from leadbot.src.core.ingestor import IngestionPipeline
    pipeline = IngestionPipeline(vector_store, site_domain="heyaryan.com")
    result   = pipeline.run()
"""

from __future__ import annotations

import hashlib
import json
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from leadbot.config.settings import settings
from leadbot.src.database.vector_store import LeadBotVectorStore
from leadbot.src.utils.logger import get_logger
from leadbot.src.utils.text_utils import clean_text, split_url_header

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = {".txt", ".md"}

_MAX_WORKERS = 4

_SEPARATORS = ["\n\n", "\n", ". ", " "]


class IngestionPipeline:
    """
    End-to-end page ingestion: read → clean → chunk → embed → store.

    Parameters
    ----------
    vector_store
        An initialised ``LeadBotVectorStore`` with an embedder.
    source_dir
        Directory of page exports.  Defaults to ``settings.DATA_RAW_DIR``.
    cache_dir
        Where the hash cache lives.  Defaults to ``settings.DATA_PROCESSED_DIR``.
    site_domain
        Used to derive URLs for pages without a ``URL:`` header.
    chunk_size
        Maximum characters per passage.
    """

    def __init__(self, vector_store: LeadBotVectorStore, source_dir: Path | None = None, cache_dir: Path | None = None, site_domain: str | None = None, chunk_size: int | None = None, max_workers: int = _MAX_WORKERS) -> None:
        self._store = vector_store
        self._source_dir = Path(source_dir or settings.DATA_RAW_DIR)
        self._site_domain = site_domain or settings.SITE_DOMAIN
        self._chunk_size = chunk_size or settings.CHUNK_SIZE
        self._max_workers = max_workers

        self._hash_cache_path: Path = Path(cache_dir or settings.DATA_PROCESSED_DIR) / "ingestion_hashes.json"
        self._hash_cache: dict[str, str] = self._load_hash_cache()


    def run(self) -> dict[str, Any]:
        """
        Execute the ingestion over every supported file in the source dir.

        Returns
        -------
        dict
            ``total_files``, ``files_processed``, ``files_skipped``,
            ``total_chunks``, ``elapsed_seconds``.
        """
        t_start = time.perf_counter()

        if not self._source_dir.exists():
            logger.warning("Source directory does not exist: %s", self._source_dir)
            return self._summary(0, 0, 0, 0, time.perf_counter() - t_start)

        files = sorted(f for f in self._source_dir.iterdir() if f.suffix.lower() in _SUPPORTED_EXTENSIONS)
        if not files:
            logger.warning("No supported files found in %s", self._source_dir)
            return self._summary(0, 0, 0, 0, time.perf_counter() - t_start)

        logger.info("Starting ingestion — %d file(s) found in %s", len(files), self._source_dir)

        total_chunks = 0
        files_processed = 0
        files_skipped = 0

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            future_to_path = {pool.submit(self._ingest_file, fp): fp for fp in files}

            for future in as_completed(future_to_path):
                filepath = future_to_path[future]
                try:
                    result = future.result()
                except Exception:
                    logger.exception("Failed to ingest file: %s", filepath.name)
                    continue
                if result == -1:
                    files_skipped += 1
                else:
                    total_chunks += result
                    files_processed += 1

        self._save_hash_cache()

        elapsed = time.perf_counter() - t_start
        logger.info("Ingestion complete — %d file(s) processed, %d skipped, %d chunk(s) stored in %.2fs.", files_processed, files_skipped, total_chunks, elapsed)
        return self._summary(len(files), files_processed, files_skipped, total_chunks, elapsed)


    def _ingest_file(self, filepath: Path) -> int:
        """Return the number of chunks added, or ``-1`` on a cache hit."""
        file_hash = self._compute_file_hash(filepath)
        if self._hash_cache.get(filepath.name) == file_hash:
            logger.info("CACHE_HIT — Skipping unchanged file: %s", filepath.name)
            return -1

        raw_text = filepath.read_text(encoding="utf-8")
        url, body = split_url_header(raw_text, filepath.name, self._site_domain)
        # A changed page replaces its previous passages
        self._store.delete_url(url)
        cleaned = clean_text(body)
        if not cleaned:
            logger.warning("Skipping empty file: %s", filepath.name)
            return 0

        chunks = self.chunk(cleaned, self._chunk_size)
        logger.info("File '%s' (%s) → %d chunk(s).", filepath.name, url, len(chunks))

        metadatas = [{"url": url, "chunk_index": idx} for idx in range(len(chunks))]
        added = self._store.add_documents(chunks, metadatas)

        self._hash_cache[filepath.name] = file_hash
        return added

    # ── Chunking ──────────────────────────────────────────────────────

    @classmethod
    def chunk(cls, text: str, max_size: int) -> list[str]:
        return cls._recursive_split(text, _SEPARATORS, max_size)


    @classmethod
    def _recursive_split(cls, text: str, separators: list[str], max_size: int) -> list[str]:
        """Recursively split *text* using the first applicable separator."""
        if len(text) <= max_size:
            return [text]

        if not separators:
            return cls._hard_split(text, max_size)

        sep = separators[0]
        remaining = separators[1:]
        parts = [p.strip() for p in text.split(sep) if p.strip()]

        if len(parts) <= 1:
            return cls._recursive_split(text, remaining, max_size)

        chunks: list[str] = []
        current = ""

        for part in parts:
            candidate = (current + sep + part).strip() if current else part
            if len(candidate) <= max_size:
                current = candidate
            else:
                if current:
                    chunks.append(current)
                if len(part) > max_size:
                    chunks.extend(cls._recursive_split(part, remaining, max_size))
                    current = ""
                else:
                    current = part

        if current:
            chunks.append(current)
        return chunks


    @staticmethod
    def _hard_split(text: str, max_size: int) -> list[str]:
        """Character-level split (words longer than *max_size*)."""
        return [text[i : i + max_size] for i in range(0, len(text), max_size)]

    # ── MD5 caching ───────────────────────────────────────────────────

    @staticmethod
    def _compute_file_hash(filepath: Path) -> str:
        hasher = hashlib.md5()
        with open(filepath, "rb") as f:
            for block in iter(lambda: f.read(8192), b""):
                hasher.update(block)
        return hasher.hexdigest()


    def _load_hash_cache(self) -> dict[str, str]:
        if self._hash_cache_path.exists():
            try:
                return json.loads(self._hash_cache_path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError):
                logger.warning("Corrupt hash cache — starting fresh.")
        return {}


    def _save_hash_cache(self) -> None:
        self._hash_cache_path.parent.mkdir(parents=True, exist_ok=True)
        self._hash_cache_path.write_text(json.dumps(self._hash_cache, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Hash cache saved to %s", self._hash_cache_path)


    @staticmethod
    def _summary(total: int, processed: int, skipped: int, chunks: int, elapsed: float) -> dict[str, Any]:
        return {
            "total_files": total,
            "files_processed": processed,
            "files_skipped": skipped,
            "total_chunks": chunks,
            "elapsed_seconds": round(elapsed, 2),
        }
