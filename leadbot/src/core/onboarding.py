"""
LeadBot - Onboarding State Machine
====================================
Drives the fixed intake dialogue: email → name → service → free chat.

The state is never stored.  ``derive_state`` computes it from the
visitor's record (which fields are populated) plus the one transient
``awaiting_service`` flag kept in the session cookie.

    AWAITING_EMAIL    no record for the session id
    AWAITING_NAME     record exists, name unset
    AWAITING_SERVICE  name set, awaiting_service flag raised
    FREE_CHAT         name set, flag cleared → RAG pipeline

Every transition is a single store write.  The session context is
only mutated *after* the write succeeded, so a store error leaves the
visitor in the same state for the retry.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from typing import Protocol

from leadbot.config.prompt_templates import EMAIL_FORMAT_ERROR, EMAIL_PROMPT, GREETING_TEMPLATE, INVALID_REQUEST_ERROR, NAME_PROMPT, SERVICE_PROMPT
from leadbot.src.database.user_store import UserRecord
from leadbot.src.utils.logger import get_logger, mask_email
from leadbot.src.utils.validators import is_valid_email

logger = get_logger(__name__)


class OnboardingState(str, enum.Enum):
    AWAITING_EMAIL = "awaiting_email"
    AWAITING_NAME = "awaiting_name"
    AWAITING_SERVICE = "awaiting_service"
    FREE_CHAT = "free_chat"


class ReplyKind(str, enum.Enum):
    MESSAGE = "message"
    RESPONSE = "response"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ChatReply:
    kind: ReplyKind
    text: str

    def to_body(self) -> dict[str, str]:
        return {self.kind.value: self.text}


@dataclass(slots=True)
class SessionContext:
    """Per-browser state carried in the signed session cookie."""

    session_id: str
    awaiting_service: bool = False

    @classmethod
    def new(cls) -> SessionContext:
        return cls(session_id=str(uuid.uuid4()))


class UserStore(Protocol):
    async def find_by_id(self, session_id: str) -> UserRecord | None: ...

    async def find_by_email(self, email: str) -> UserRecord | None: ...

    async def insert(self, session_id: str, email: str) -> UserRecord: ...

    async def set_name(self, session_id: str, name: str) -> None: ...

    async def add_service(self, session_id: str, service: str) -> None: ...


class QueryAnswerer(Protocol):
    async def query_vector_db(self, user_query: str) -> str: ...


def derive_state(record: UserRecord | None, awaiting_service: bool) -> OnboardingState:
    """Compute the dialogue state from field presence plus the session flag."""
    if record is None:
        return OnboardingState.AWAITING_EMAIL
    if not record.name:
        return OnboardingState.AWAITING_NAME
    if awaiting_service:
        return OnboardingState.AWAITING_SERVICE
    return OnboardingState.FREE_CHAT


class OnboardingMachine:
    """
    One ``handle`` call per inbound chat message.

    Parameters
    ----------
    store
        A ``UserStore`` (``MongoUserStore`` in production).
    answerer
        Anything with ``query_vector_db`` (``RAGPipeline`` in production).
    """

    __slots__ = ("_store", "_answerer")

    def __init__(self, store: UserStore, answerer: QueryAnswerer) -> None:
        self._store = store
        self._answerer = answerer


    async def current_state(self, session: SessionContext) -> OnboardingState:
        record = await self._store.find_by_id(session.session_id)
        return derive_state(record, session.awaiting_service)


    async def handle(self, session: SessionContext, query: str | None) -> ChatReply:
        """Advance the dialogue for *session* by one message."""
        text = query.strip() if isinstance(query, str) else ""

        record = await self._store.find_by_id(session.session_id)
        state = derive_state(record, session.awaiting_service)
        logger.debug("[ONBOARD] Session %s in state %s.", session.session_id, state.value)

        if state is OnboardingState.AWAITING_EMAIL:
            return await self._collect_email(session, text)
        if state is OnboardingState.AWAITING_NAME:
            return await self._collect_name(session, text)
        if state is OnboardingState.AWAITING_SERVICE:
            return await self._collect_service(session, record, text)
        return await self._answer(text)

    # ── Transitions ───────────────────────────────────────────────────

    async def _collect_email(self, session: SessionContext, email: str) -> ChatReply:
        if not email:
            return ChatReply(ReplyKind.MESSAGE, EMAIL_PROMPT)
        if not is_valid_email(email):
            return ChatReply(ReplyKind.MESSAGE, EMAIL_FORMAT_ERROR)

        existing = await self._store.find_by_email(email)
        if existing is not None:
            logger.info("[ONBOARD] Returning visitor %s; session %s re-keyed to %s.", mask_email(email), session.session_id, existing.id)
            session.session_id = existing.id
            session.awaiting_service = True
            return ChatReply(ReplyKind.MESSAGE, SERVICE_PROMPT)

        await self._store.insert(session.session_id, email)
        logger.info("[ONBOARD] New visitor %s on session %s.", mask_email(email), session.session_id)
        return ChatReply(ReplyKind.MESSAGE, NAME_PROMPT)


    async def _collect_name(self, session: SessionContext, name: str) -> ChatReply:
        if not name:
            return ChatReply(ReplyKind.MESSAGE, NAME_PROMPT)

        await self._store.set_name(session.session_id, name)
        session.awaiting_service = True
        return ChatReply(ReplyKind.MESSAGE, SERVICE_PROMPT)


    async def _collect_service(self, session: SessionContext, record: UserRecord, service: str) -> ChatReply:
        if not service:
            return ChatReply(ReplyKind.MESSAGE, SERVICE_PROMPT)

        await self._store.add_service(session.session_id, service)
        session.awaiting_service = False
        logger.info("[ONBOARD] Session %s requested service '%s'.", session.session_id, service)
        return ChatReply(ReplyKind.MESSAGE, GREETING_TEMPLATE.format(name=record.name))


    async def _answer(self, query: str) -> ChatReply:
        if not query:
            return ChatReply(ReplyKind.ERROR, INVALID_REQUEST_ERROR)
        answer = await self._answerer.query_vector_db(query)
        return ChatReply(ReplyKind.RESPONSE, answer)
