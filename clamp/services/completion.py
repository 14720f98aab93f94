"""Completion-API capability used by the conversation loop.

The orchestrator only sees the narrow :class:`CompletionClient` interface:
``complete(system_prompt, tools, messages) -> AIMessage``.  The returned
message carries the content blocks (text and ``tool_use``), the parsed
``tool_calls`` and ``response_metadata["stop_reason"]``.

:class:`AnthropicCompletionClient` is the production implementation on top
of ``langchain_anthropic.ChatAnthropic``.  Tests substitute a scripted fake.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, SystemMessage

from clamp.services.metrics import metrics

if TYPE_CHECKING:
    from clamp.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)

TOOL_USE = "tool_use"


class CompletionError(Exception):
    """Raised when the completion provider fails or returns something unusable."""


class CompletionClient(Protocol):
    def complete(
        self,
        system_prompt: str,
        tools: Sequence[ToolDefinition],
        messages: list[AnyMessage],
    ) -> AIMessage: ...


def stop_reason(message: AIMessage) -> str:
    """Return the provider's stop reason, inferring it from tool calls if absent."""
    reason = (message.response_metadata or {}).get("stop_reason")
    if reason:
        return str(reason)
    return TOOL_USE if message.tool_calls else "end_turn"


def wants_tools(message: AIMessage) -> bool:
    """True when the model stopped to request at least one tool invocation."""
    return stop_reason(message) == TOOL_USE and bool(message.tool_calls)


class AnthropicCompletionClient:
    """``CompletionClient`` backed by Claude via ``ChatAnthropic``."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        *,
        max_tokens: int = 1024,
        llm: Any | None = None,
    ):
        self._model_name = model_name
        # ``llm`` is injectable for tests.
        self._llm = llm or ChatAnthropic(
            model=model_name,
            api_key=api_key,
            temperature=0.2,
            max_tokens=max_tokens,
        )

    def complete(
        self,
        system_prompt: str,
        tools: Sequence[ToolDefinition],
        messages: list[AnyMessage],
    ) -> AIMessage:
        runnable = self._llm.bind_tools([t.to_anthropic() for t in tools]) if tools else self._llm
        t0 = time.perf_counter()
        try:
            response = runnable.invoke([SystemMessage(content=system_prompt), *messages])
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "anthropic", "clamp_complete",
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            raise CompletionError(f"Completion request failed: {type(exc).__name__}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        if not isinstance(response, AIMessage):
            metrics.record_failure(
                "anthropic", "clamp_complete", error_type="MalformedResponse", latency_ms=elapsed,
            )
            raise CompletionError(f"Unexpected completion response type {type(response).__name__}")

        metrics.record_success("anthropic", "clamp_complete", latency_ms=elapsed)
        logger.debug(
            "Completion (%s) stop_reason=%s tool_calls=%d in %.0fms",
            self._model_name, stop_reason(response), len(response.tool_calls), elapsed,
        )
        return response
