from unittest.mock import MagicMock, patch

import pytest

from leadbot.config.settings import settings
from leadbot.scripts import setup_db


@pytest.fixture
def wiring(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATA_PROCESSED_DIR", tmp_path)
    store = MagicMock()
    store.count.return_value = 4
    pipeline_cls = MagicMock()
    pipeline_cls.return_value.run.return_value = {"total_files": 2, "total_chunks": 4}
    with patch("langchain_google_genai.GoogleGenerativeAIEmbeddings") as embeddings_cls, \
            patch.object(setup_db, "LeadBotVectorStore", return_value=store) as store_cls, \
            patch.object(setup_db, "IngestionPipeline", pipeline_cls):
        yield {"embeddings": embeddings_cls, "store_cls": store_cls, "store": store, "pipeline": pipeline_cls, "cache": tmp_path / setup_db.HASH_CACHE_NAME}


def test_plain_run_ingests_without_dropping(wiring):
    summary = setup_db.main([])

    assert summary == {"total_files": 2, "total_chunks": 4}
    wiring["embeddings"].assert_called_once_with(model=settings.EMBEDDING_MODEL, google_api_key=settings.GOOGLE_API_KEY.get_secret_value())
    wiring["store_cls"].assert_called_once_with(db_path=settings.LANCEDB_PATH, table_name=settings.LANCEDB_TABLE_NAME, embedder=wiring["embeddings"].return_value)
    wiring["store"].drop_table.assert_not_called()
    wiring["pipeline"].assert_called_once_with(vector_store=wiring["store"])


def test_drop_only_drops_and_skips_ingestion(wiring):
    assert setup_db.main(["--drop-only"]) is None
    wiring["store"].drop_table.assert_called_once()
    wiring["pipeline"].assert_not_called()


def test_purge_clears_hash_cache_then_ingests(wiring):
    wiring["cache"].write_text("{}", encoding="utf-8")

    setup_db.main(["--purge"])

    assert not wiring["cache"].exists()
    wiring["store"].drop_table.assert_called_once()
    wiring["pipeline"].return_value.run.assert_called_once()


def test_drop_keeps_hash_cache(wiring):
    wiring["cache"].write_text("{}", encoding="utf-8")
    setup_db.main(["--drop"])
    assert wiring["cache"].exists()
