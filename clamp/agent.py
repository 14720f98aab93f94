"""LangGraph conversation loop for the Clamp assistant.

Architecture:
  Each mode compiles its own two-node StateGraph:

    1. **model**  calls the completion API with the system prompt, the
                  mode's active tools and the running history
    2. **tools**  executes every tool call of the last assistant turn
                  through the dispatcher and appends the results

  Routing:
    model → (stop reason tool_use?) → tools → (under the cap?) → model
          → (final answer?)         → END     (cap reached?)   → END

  The loop is stateless across requests: the caller sends the whole
  history every time and nothing is checkpointed.  At most
  ``tool_iteration_cap`` model calls are made; when the cap is reached
  after a round of tools the loop stops without another model call and
  the reply degrades to whatever text the last model turn carried.
"""

from __future__ import annotations

import json
import logging
import operator
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Annotated, Any
from zoneinfo import ZoneInfo

from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, ToolMessage
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from clamp.assembler import reply_text
from clamp.config import DEFAULT_TOOL_ITERATION_CAP, ClampSettings
from clamp.policy import ChatMode, InvalidRequestError, active_tools, system_prompt
from clamp.services.completion import (
    AnthropicCompletionClient,
    CompletionClient,
    CompletionError,
    wants_tools,
)
from clamp.services.sequence import SequenceGenerator
from clamp.services.store import InMemoryTenantStore, TenantStore
from clamp.tools.context import ToolContext, utc_now
from clamp.tools.dispatcher import ToolDispatcher, ToolInvocation, ToolResult

logger = logging.getLogger(__name__)

MAX_PARALLEL_TOOLS = 8


# ── State schema ─────────────────────────────────────────────────────


class ConversationState(TypedDict):
    """The state that flows through the graph.

    ``messages`` uses ``add_messages`` so nodes append to the history.
    ``tool_results`` accumulates every dispatcher result across all
    iterations, in iteration order then invocation order.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    tool_results: Annotated[list[ToolResult], operator.add]
    iterations: int
    tenant_id: str


@dataclass(frozen=True)
class AgentRun:
    reply: str
    tool_results: list[ToolResult] = field(default_factory=list)
    final_message: AIMessage | None = None
    iterations: int = 0


# ── History conversion ───────────────────────────────────────────────


def to_messages(history: Sequence[Mapping[str, Any]]) -> list[AnyMessage]:
    """Convert ``{role, content}`` turns into LangChain messages."""
    messages: list[AnyMessage] = []
    for turn in history:
        role = turn.get("role")
        content = turn.get("content")
        if content is None:
            content = ""
        if role == "user":
            messages.append(HumanMessage(content=content))
        elif role == "assistant":
            messages.append(AIMessage(content=content))
        else:
            raise InvalidRequestError(f"Unsupported message role: {role!r}")
    return messages


def _tool_message(result: ToolResult) -> ToolMessage:
    return ToolMessage(
        content=json.dumps(result.result, default=str),
        tool_call_id=result.tool_use_id,
        name=result.tool_name,
        status="error" if result.is_error else "success",
    )


# ── Nodes ────────────────────────────────────────────────────────────


def _make_model_node(
    client: CompletionClient,
    mode: ChatMode,
    timezone: ZoneInfo,
    clock: Callable[[], datetime],
):
    """Create the node that asks the model for its next turn.

    The tool set for ``mode`` is resolved once; the system prompt is
    rebuilt on every call so its date/time context stays current.
    """
    tools = active_tools(mode)

    def model_node(state: ConversationState) -> dict:
        logger.debug(
            "model node: mode=%s iteration=%d history=%d",
            mode.value, state.get("iterations", 0), len(state["messages"]),
        )
        response = client.complete(
            system_prompt(mode, clock(), timezone),
            tools,
            state["messages"],
        )
        if not isinstance(response, AIMessage):
            raise CompletionError(f"Unexpected completion response type {type(response).__name__}")
        return {"messages": [response]}

    return model_node


def _make_tools_node(dispatcher: ToolDispatcher):
    """Create the node that runs the tool calls of the last assistant turn.

    Calls within one turn are independent and run concurrently; results
    keep the order in which the model requested them.
    """

    def tools_node(state: ConversationState) -> dict:
        last = state["messages"][-1]
        invocations = [
            ToolInvocation(id=call.get("id") or "", name=call["name"], input=call.get("args") or {})
            for call in getattr(last, "tool_calls", None) or []
        ]
        tenant_id = state["tenant_id"]

        if len(invocations) == 1:
            results = [dispatcher.invoke(invocations[0], tenant_id)]
        else:
            workers = min(len(invocations), MAX_PARALLEL_TOOLS) or 1
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="clamp-tool") as pool:
                results = list(pool.map(lambda inv: dispatcher.invoke(inv, tenant_id), invocations))

        iterations = state.get("iterations", 0) + 1
        logger.debug(
            "tools node: iteration=%d ran %s",
            iterations, ", ".join(r.tool_name for r in results),
        )
        return {
            "messages": [_tool_message(r) for r in results],
            "tool_results": results,
            "iterations": iterations,
        }

    return tools_node


# ── Conditional edges ────────────────────────────────────────────────


def should_use_tools(state: ConversationState) -> str:
    """Route to the tools node only when the model stopped for tool use."""
    last_message = state["messages"][-1]
    if isinstance(last_message, AIMessage) and wants_tools(last_message):
        return "tools"
    return END


def make_should_continue(tool_iteration_cap: int):
    def should_continue(state: ConversationState) -> str:
        if state.get("iterations", 0) >= tool_iteration_cap:
            logger.warning(
                "Tool iteration cap (%d) reached; returning without a final model turn",
                tool_iteration_cap,
            )
            return END
        return "model"

    return should_continue


# ── Graph assembly ───────────────────────────────────────────────────


def create_clamp_agent(
    client: CompletionClient,
    dispatcher: ToolDispatcher,
    mode: ChatMode = ChatMode.CHAT,
    *,
    tool_iteration_cap: int = DEFAULT_TOOL_ITERATION_CAP,
    timezone: ZoneInfo | None = None,
    clock: Callable[[], datetime] = utc_now,
):
    """Build and compile the conversation graph for one mode.

    Returns a compiled graph that can be invoked with:
        graph.invoke({
            "messages": [HumanMessage(content="...")],
            "tool_results": [],
            "iterations": 0,
            "tenant_id": "tenant-123",
        })
    """
    if tool_iteration_cap < 1:
        raise ValueError("tool_iteration_cap must be at least 1")

    graph = StateGraph(ConversationState)
    graph.add_node("model", _make_model_node(client, mode, timezone or ZoneInfo("Pacific/Auckland"), clock))
    graph.add_node(
        "tools", _make_tools_node(dispatcher.limited_to(active_tools(mode), f"{mode.value} mode")),
    )

    graph.set_entry_point("model")
    graph.add_conditional_edges("model", should_use_tools, {"tools": "tools", END: END})
    graph.add_conditional_edges(
        "tools", make_should_continue(tool_iteration_cap), {"model": "model", END: END},
    )

    compiled = graph.compile()
    logger.debug(
        "Clamp agent compiled: mode=%s tools=%d cap=%d",
        mode.value, len(active_tools(mode)), tool_iteration_cap,
    )
    return compiled


class ClampAgent:
    """Runs one request through the graph for its mode."""

    def __init__(
        self,
        client: CompletionClient,
        dispatcher: ToolDispatcher,
        *,
        tool_iteration_cap: int = DEFAULT_TOOL_ITERATION_CAP,
        timezone: ZoneInfo | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.tool_iteration_cap = tool_iteration_cap
        self._graphs = {
            mode: create_clamp_agent(
                client,
                dispatcher,
                mode,
                tool_iteration_cap=tool_iteration_cap,
                timezone=timezone,
                clock=clock,
            )
            for mode in ChatMode
        }

    def run(
        self,
        history: Sequence[Mapping[str, Any]],
        mode: ChatMode,
        tenant_id: str,
    ) -> AgentRun:
        """Drive the loop to completion; provider failures propagate."""
        if not history:
            raise InvalidRequestError("Messages array is required.")
        if not tenant_id:
            raise ValueError("tenant_id is required")

        state = self._graphs[mode].invoke(
            {
                "messages": to_messages(history),
                "tool_results": [],
                "iterations": 0,
                "tenant_id": tenant_id,
            },
            config={"recursion_limit": 2 * self.tool_iteration_cap + 5},
        )

        final = next(
            (m for m in reversed(state["messages"]) if isinstance(m, AIMessage)),
            None,
        )
        return AgentRun(
            reply=reply_text(final),
            tool_results=list(state.get("tool_results") or []),
            final_message=final,
            iterations=state.get("iterations", 0),
        )


# ── Wiring ───────────────────────────────────────────────────────────


def build_store(settings: ClampSettings) -> TenantStore:
    if settings.store_backend == "dynamodb":
        from clamp.services.dynamodb_store import DynamoTenantStore  # noqa: PLC0415

        return DynamoTenantStore(settings.dynamodb_table, region_name=settings.aws_region)
    return InMemoryTenantStore()


def build_agent(
    settings: ClampSettings,
    store: TenantStore,
    client: CompletionClient | None = None,
) -> ClampAgent | None:
    """Wire store → sequence → dispatcher → agent.

    Returns ``None`` when no completion client can be built, which the
    chat route reports as "being set up".
    """
    if client is None:
        if not settings.provider_configured:
            return None
        client = AnthropicCompletionClient(
            settings.anthropic_api_key,
            settings.model_name,
            max_tokens=settings.max_tokens,
        )

    tz = ZoneInfo(settings.timezone)
    context = ToolContext(
        store=store,
        sequence=SequenceGenerator(store, default_padding=settings.default_padding),
        timezone=tz,
    )
    return ClampAgent(
        client,
        ToolDispatcher(context),
        tool_iteration_cap=settings.tool_iteration_cap,
        timezone=tz,
    )
