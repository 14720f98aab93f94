"""FastAPI route definitions for the Clamp assistant API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from clamp.api.auth import require_tenant
from clamp.api.schemas import ActionCard, ChatRequest, ChatResponse, HealthResponse, SearchHit
from clamp.assembler import AssembledResponse, assemble
from clamp.config import ClampSettings
from clamp.policy import (
    ChatMode,
    ConversationLimitError,
    InvalidRequestError,
    session_config,
    validate_history,
)

logger = logging.getLogger(__name__)

router = APIRouter()

LIMIT_DETAIL = "Conversation is at the limit. Start a new chat."
NOT_CONFIGURED_DETAIL = "Clamp is being set up. Check back soon."
STARTING_DETAIL = "Clamp is still starting up. Please try again in a moment."
FAILURE_DETAIL = "Clamp ran into a problem. Try again."
TIMEOUT_DETAIL = "Clamp took too long to respond. Try again."


def _get_settings(request: Request) -> ClampSettings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=503, detail=STARTING_DETAIL)
    return settings


def _get_agent(request: Request):
    """Retrieve the Clamp agent from app state.

    The agent is built once during the FastAPI lifespan (see ``server.py``).
    """
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(status_code=503, detail=STARTING_DETAIL)
    return agent


def _to_response(assembled: AssembledResponse, mode: ChatMode) -> ChatResponse:
    fields = {
        "reply": assembled.reply,
        "action_cards": [
            ActionCard(
                type=card.type,
                label=card.label,
                view=card.view,
                entity_id=card.entity_id,
                entity_type=card.entity_type,
            )
            for card in assembled.action_cards
        ],
        "quick_replies": [],
    }
    if mode is ChatMode.SEARCH:
        fields["search_results"] = [
            SearchHit(type=h.type, id=h.id, title=h.title, subtitle=h.subtitle, view=h.view)
            for h in assembled.search_results or []
        ]
    return ChatResponse(**fields)


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    settings = getattr(request.app.state, "settings", None)
    return HealthResponse(provider_configured=bool(settings and settings.provider_configured))


@router.post("/chat", response_model=ChatResponse, response_model_exclude_unset=True)
async def chat(
    request: ChatRequest,
    http_request: Request,
    tenant_id: str = Depends(require_tenant),
):
    """Run one Clamp turn over the full history sent by the client.

    ``agent.run()`` blocks on the completion API and the data store, so it
    is offloaded with ``asyncio.to_thread`` and bounded by the configured
    request timeout.
    """
    settings = _get_settings(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    config = session_config(request.mode, settings)

    try:
        validate_history(request.messages, config)
    except ConversationLimitError as exc:
        logger.info("[%s] Rejected conversation: %s", request_id, exc)
        raise HTTPException(status_code=429, detail=LIMIT_DETAIL) from exc
    except InvalidRequestError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if not settings.provider_configured:
        raise HTTPException(status_code=503, detail=NOT_CONFIGURED_DETAIL)

    agent = _get_agent(http_request)
    history = [m.model_dump() for m in request.messages]

    try:
        run = await asyncio.wait_for(
            asyncio.to_thread(agent.run, history, config.mode, tenant_id),
            timeout=settings.request_timeout_seconds,
        )
    except TimeoutError as e:
        logger.error(
            "[%s] Chat request exceeded %.0fs", request_id, settings.request_timeout_seconds,
        )
        raise HTTPException(status_code=504, detail=TIMEOUT_DETAIL) from e
    except InvalidRequestError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except Exception as e:
        # Full traceback stays server-side; the client gets a generic message.
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(status_code=500, detail=FAILURE_DETAIL) from e

    logger.info(
        "[%s] Chat done: mode=%s iterations=%d tool_results=%d",
        request_id, config.mode.value, run.iterations, len(run.tool_results),
    )
    return _to_response(assemble(run.final_message, run.tool_results, config.mode), config.mode)
