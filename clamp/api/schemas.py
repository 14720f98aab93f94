"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from clamp.policy import ChatMode


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatMessage(BaseModel):
    """One prior turn of the conversation, resent by the client every call."""

    role: Literal["user", "assistant"]
    content: str | list[dict[str, Any]] = Field(
        ..., description="Plain text or a list of structured content blocks",
    )


class ChatRequest(BaseModel):
    """Incoming chat request from the web app."""

    mode: ChatMode = Field(ChatMode.CHAT, description="'chat' (default) or 'search'")
    messages: list[ChatMessage] = Field(
        ..., min_length=1, description="Full conversation history, oldest first",
    )


class ActionCard(_CamelModel):
    type: Literal["navigation"] = "navigation"
    label: str
    view: str
    entity_id: str | None = None
    entity_type: str | None = None


class SearchHit(_CamelModel):
    type: str
    id: str
    title: str
    subtitle: str
    view: str


class ChatResponse(_CamelModel):
    """Reply plus UI artifacts.  ``searchResults`` is only sent in search mode."""

    reply: str = Field(..., description="Clamp's reply, never empty")
    action_cards: list[ActionCard] = Field(default_factory=list)
    quick_replies: list[str] = Field(default_factory=list)
    search_results: list[SearchHit] | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "clamp-assistant"
    provider_configured: bool = True
