"""
LeadBot - MongoUserStore
==========================
Async lead-record store backed by MongoDB via ``motor``.

Collection schema (``user_queries``)::

    {
        "_id": str,              # session id that created the record
        "email": str,            # unique
        "name": str,             # optional, set once
        "services": [str, ...]   # set semantics via $addToSet
    }

Design decisions:
  • **Dependency Injection** — the collection handle is injected, so the
    store never reaches for a global client and tests can pass a fake.
  • **No error handling** — ``PyMongoError`` propagates to the caller.
    The HTTP layer turns it into a 500 and the visitor retries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import motor.motor_asyncio

from leadbot.src.utils.logger import get_logger, mask_email

logger = get_logger(__name__)


@dataclass(slots=True)
class UserRecord:
    """One visitor as persisted in MongoDB."""

    id: str
    email: str
    name: str | None = None
    services: set[str] = field(default_factory=set)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> UserRecord:
        return cls(id=str(doc["_id"]), email=doc.get("email", ""), name=doc.get("name") or None, services=set(doc.get("services") or []))


def create_mongo_client(uri: str) -> motor.motor_asyncio.AsyncIOMotorClient:
    """Create the async MongoDB client (call once at application startup)."""
    client = motor.motor_asyncio.AsyncIOMotorClient(uri)
    logger.info("[STORE] MongoDB async client created.")
    return client


class MongoUserStore:
    """
    Session-keyed lead records.

    Parameters
    ----------
    collection
        A motor ``AsyncIOMotorCollection`` (or any object exposing the
        same ``find_one`` / ``insert_one`` / ``update_one`` coroutines).
    """

    __slots__ = ("_collection",)

    def __init__(self, collection: Any) -> None:
        self._collection = collection


    async def ensure_indexes(self) -> None:
        """Create the unique index on ``email`` (idempotent)."""
        await self._collection.create_index("email", unique=True)
        logger.info("[STORE] Unique index on 'email' ensured.")


    async def find_by_id(self, session_id: str) -> UserRecord | None:
        doc = await self._collection.find_one({"_id": session_id})
        return UserRecord.from_document(doc) if doc else None


    async def find_by_email(self, email: str) -> UserRecord | None:
        doc = await self._collection.find_one({"email": email})
        return UserRecord.from_document(doc) if doc else None


    async def insert(self, session_id: str, email: str) -> UserRecord:
        """Create a record keyed by *session_id*."""
        await self._collection.insert_one({"_id": session_id, "email": email})
        logger.info("[STORE] Record created for %s.", mask_email(email))
        return UserRecord(id=session_id, email=email)


    async def set_name(self, session_id: str, name: str) -> None:
        await self._collection.update_one({"_id": session_id}, {"$set": {"name": name}})


    async def add_service(self, session_id: str, service: str) -> None:
        """Add *service* to the record's service set (no-op if present)."""
        await self._collection.update_one({"_id": session_id}, {"$addToSet": {"services": service}})
