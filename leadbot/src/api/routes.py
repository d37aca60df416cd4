"""
leadbot/src/api/routes.py — API Route Definitions

Responsibility:
    Defines the REST endpoints:
      - GET  /      → Liveness check
      - POST /chat  → Advance the visitor's dialogue by one message

    Each route handler is a thin controller: it reads the request and the
    session cookie, delegates to ``OnboardingMachine``, and formats the
    response.  No business logic or database calls live in this file.

Related Files:
    - leadbot/src/main.py            → Routes are registered here
    - leadbot/src/core/onboarding.py → Business logic invoked by /chat
"""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError, field_validator

from leadbot.config.prompt_templates import INTERNAL_ERROR
from leadbot.src.core.onboarding import OnboardingMachine, ReplyKind, SessionContext
from leadbot.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Keys inside the signed session cookie
SESSION_ID_KEY = "session_id"
AWAITING_SERVICE_KEY = "awaiting_service"


class ChatRequest(BaseModel):
    query: str | None = None

    @field_validator("query", mode="before")
    @classmethod
    def _non_string_is_absent(cls, v: object) -> object:
        return v if isinstance(v, str) else None


def get_machine(request: Request) -> OnboardingMachine:
    """Return the ``OnboardingMachine`` built at startup."""
    return request.app.state.machine


async def _read_chat_request(request: Request) -> ChatRequest:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return ChatRequest()
    if not isinstance(payload, dict):
        return ChatRequest()
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError:
        return ChatRequest()


def _load_session(request: Request) -> SessionContext:
    if not request.session.get(SESSION_ID_KEY):
        request.session[SESSION_ID_KEY] = SessionContext.new().session_id
    return SessionContext(session_id=request.session[SESSION_ID_KEY], awaiting_service=bool(request.session.get(AWAITING_SERVICE_KEY, False)))


def _save_session(request: Request, session: SessionContext) -> None:
    request.session[SESSION_ID_KEY] = session.session_id
    request.session[AWAITING_SERVICE_KEY] = session.awaiting_service


@router.get("/")
async def root(request: Request) -> dict[str, str]:
    return {"status": "ok", "service": request.app.title}


@router.post("/chat")
async def chat(request: Request, machine: OnboardingMachine = Depends(get_machine)) -> JSONResponse:
    body = await _read_chat_request(request)
    session = _load_session(request)

    try:
        reply = await machine.handle(session, body.query)
    except Exception:
        logger.exception("[API] Error in /chat endpoint (session %s).", session.session_id)
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR})

    _save_session(request, session)

    status_code = 400 if reply.kind is ReplyKind.ERROR else 200
    return JSONResponse(status_code=status_code, content=reply.to_body())
