"""Mode policy: which tools and instructions apply to a request.

``chat`` gets the whole registry and the conversational persona.
``search`` is restricted to read-only tools (navigation included, since it
only echoes a target) and asks for a single terse line.

Everything here is a pure function of the mode, the settings and the
wall-clock time passed in.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo

from clamp.config import DEFAULT_MESSAGE_COUNT_CAP, DEFAULT_TOOL_ITERATION_CAP, ClampSettings
from clamp.prompts import build_chat_prompt, build_search_prompt
from clamp.tools.context import utc_now
from clamp.tools.registry import TOOL_REGISTRY, Capability, ToolDefinition, tools_with


class ChatMode(str, Enum):
    CHAT = "chat"
    SEARCH = "search"


class InvalidRequestError(ValueError):
    """The request is malformed and was rejected before the loop started."""


class ConversationLimitError(Exception):
    """The conversation has more messages than the configured cap."""

    def __init__(self, count: int, cap: int):
        super().__init__(f"Conversation has {count} messages; the limit is {cap}")
        self.count = count
        self.cap = cap


@dataclass(frozen=True)
class SessionConfig:
    mode: ChatMode = ChatMode.CHAT
    message_count_cap: int = DEFAULT_MESSAGE_COUNT_CAP
    tool_iteration_cap: int = DEFAULT_TOOL_ITERATION_CAP


def session_config(mode: ChatMode | str, settings: ClampSettings) -> SessionConfig:
    """Build the per-request session policy for ``mode``."""
    return SessionConfig(
        mode=parse_mode(mode),
        message_count_cap=settings.message_count_cap,
        tool_iteration_cap=settings.tool_iteration_cap,
    )


def parse_mode(mode: ChatMode | str | None) -> ChatMode:
    if mode is None or mode == "":
        return ChatMode.CHAT
    try:
        return ChatMode(mode)
    except ValueError:
        raise InvalidRequestError(f"Unknown mode: {mode}") from None


def active_tools(mode: ChatMode) -> list[ToolDefinition]:
    if mode is ChatMode.SEARCH:
        return tools_with(Capability.SEARCH)
    return list(TOOL_REGISTRY)


def system_prompt(mode: ChatMode, now: datetime | None = None, tz: ZoneInfo | None = None) -> str:
    """System instructions for ``mode``, dated ``now`` in the business timezone."""
    tz = tz or ZoneInfo("Pacific/Auckland")
    moment = (now or utc_now()).astimezone(tz)
    if mode is ChatMode.SEARCH:
        return build_search_prompt(moment)
    return build_chat_prompt(moment)


def validate_history(messages: Sequence[Any], config: SessionConfig) -> None:
    """Reject empty or over-limit histories before any model call."""
    if not messages:
        raise InvalidRequestError("Messages array is required.")
    if len(messages) > config.message_count_cap:
        raise ConversationLimitError(len(messages), config.message_count_cap)
