"""
Pytest configuration for LeadBot tests.
Sets the required environment variables before any ``leadbot`` import
and provides an in-memory stand-in for the MongoDB record store.
"""

import os

# Settings() is instantiated at import time; required fields must exist first
os.environ.setdefault("GOOGLE_API_KEY", "test-google-key")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ["ENV"] = "dev"

from unittest.mock import AsyncMock

import pytest
from pymongo.errors import PyMongoError

from leadbot.src.core.onboarding import OnboardingMachine, SessionContext
from leadbot.src.database.user_store import UserRecord


class InMemoryUserStore:
    """Async dict-backed store with the ``MongoUserStore`` interface."""

    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}
        self.fail = False
        self.writes = 0

    def _check(self) -> None:
        if self.fail:
            raise PyMongoError("store unavailable")

    def _record(self, doc: dict | None) -> UserRecord | None:
        if doc is None:
            return None
        return UserRecord(id=doc["_id"], email=doc["email"], name=doc.get("name"), services=set(doc.get("services", [])))

    async def find_by_id(self, session_id: str) -> UserRecord | None:
        self._check()
        return self._record(self.docs.get(session_id))

    async def find_by_email(self, email: str) -> UserRecord | None:
        self._check()
        return self._record(next((d for d in self.docs.values() if d["email"] == email), None))

    async def insert(self, session_id: str, email: str) -> UserRecord:
        self._check()
        self.docs[session_id] = {"_id": session_id, "email": email}
        self.writes += 1
        return UserRecord(id=session_id, email=email)

    async def set_name(self, session_id: str, name: str) -> None:
        self._check()
        self.docs[session_id]["name"] = name
        self.writes += 1

    async def add_service(self, session_id: str, service: str) -> None:
        self._check()
        services = self.docs[session_id].setdefault("services", [])
        if service not in services:
            services.append(service)
        self.writes += 1


class KeywordEmbedder:
    """Deterministic 3-d embeddings: one axis per topic keyword."""

    _AXES = ("plumbing", "roofing", "pricing")

    def _vec(self, text: str) -> list[float]:
        lowered = text.lower()
        return [1.0 if word in lowered else 0.0 for word in self._AXES]

    def embed_documents(self, texts):
        return [self._vec(t) for t in texts]

    def embed_query(self, text):
        return self._vec(text)


@pytest.fixture
def keyword_embedder():
    return KeywordEmbedder()


@pytest.fixture
def store():
    return InMemoryUserStore()


@pytest.fixture
def answerer():
    mock = AsyncMock()
    mock.query_vector_db.return_value = "We serve the whole metro area."
    return mock


@pytest.fixture
def machine(store, answerer):
    return OnboardingMachine(store, answerer)


@pytest.fixture
def session():
    return SessionContext(session_id="sess-1")
