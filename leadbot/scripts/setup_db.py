"""
LeadBot - Vector Index Setup
==============================
Builds (or refreshes) the LanceDB table the chat retrieves from.

Usage:
    python -m leadbot.scripts.setup_db              # Ingest new or changed pages
    python -m leadbot.scripts.setup_db --drop       # Rebuild the table, keep the hash cache
    python -m leadbot.scripts.setup_db --purge      # Rebuild the table and re-ingest every page
    python -m leadbot.scripts.setup_db --drop-only  # Drop the table and exit
"""

from __future__ import annotations

import argparse

from leadbot.config.settings import settings
from leadbot.src.core.ingestor import IngestionPipeline
from leadbot.src.database.vector_store import LeadBotVectorStore
from leadbot.src.utils.logger import get_logger

logger = get_logger(__name__)

HASH_CACHE_NAME = "ingestion_hashes.json"


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="setup_db", description="Ingest exported site pages into the vector index.")
    parser.add_argument("--drop", action="store_true", help="Drop the table before ingesting.")
    parser.add_argument("--purge", action="store_true", help="Drop the table and clear the hash cache.")
    parser.add_argument("--drop-only", action="store_true", help="Drop the table and exit.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> dict | None:
    args = _parse_args(argv)

    from langchain_google_genai import GoogleGenerativeAIEmbeddings

    embedder = GoogleGenerativeAIEmbeddings(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    store = LeadBotVectorStore(db_path=settings.LANCEDB_PATH, table_name=settings.LANCEDB_TABLE_NAME, embedder=embedder)

    if args.drop or args.purge or args.drop_only:
        store.drop_table()
    if args.purge:
        cache_path = settings.DATA_PROCESSED_DIR / HASH_CACHE_NAME
        if cache_path.exists():
            cache_path.unlink()
            logger.warning("Hash cache deleted: %s", cache_path)
    if args.drop_only:
        return None

    summary = IngestionPipeline(vector_store=store).run()
    logger.info("Index '%s' holds %d passage(s); summary: %s", settings.LANCEDB_TABLE_NAME, store.count(), summary)
    return summary


if __name__ == "__main__":
    main()
