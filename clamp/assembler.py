"""Response assembler: final reply text plus structured UI artifacts.

Navigation results from any iteration become action cards.  In search
mode, list results from the lookup tools are flattened into uniform
search hits; in chat mode no search results are produced at all.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from langchain_core.messages import AIMessage

from clamp.policy import ChatMode
from clamp.tools.dispatcher import ToolResult
from clamp.tools.registry import ToolName

PLACEHOLDER_REPLY = "Done."


@dataclass(frozen=True)
class ActionCard:
    label: str
    view: str
    entity_id: str | None = None
    entity_type: str | None = None
    type: str = "navigation"


@dataclass(frozen=True)
class SearchHit:
    type: str
    id: str
    title: str
    subtitle: str
    view: str


@dataclass(frozen=True)
class AssembledResponse:
    reply: str
    action_cards: list[ActionCard] = field(default_factory=list)
    search_results: list[SearchHit] | None = None


# ── Reply text ───────────────────────────────────────────────────────


def reply_text(message: AIMessage | None) -> str:
    """Join the text blocks of ``message``; never returns an empty string."""
    if message is None:
        return PLACEHOLDER_REPLY
    content = message.content
    if isinstance(content, str):
        text = content
    else:
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text") or "")
        text = "\n".join(parts)
    return text.strip() or PLACEHOLDER_REPLY


# ── Action cards ─────────────────────────────────────────────────────


def action_card(result: dict[str, Any]) -> ActionCard:
    view = result.get("view") or ""
    entity_type = result.get("entityType") or None
    label = f"View {entity_type}" if entity_type else f"Go to {view}"
    return ActionCard(
        label=label,
        view=view,
        entity_id=result.get("entityId") or None,
        entity_type=entity_type,
    )


def action_cards(tool_results: Iterable[ToolResult]) -> list[ActionCard]:
    return [
        action_card(r.result)
        for r in tool_results
        if r.tool_name == ToolName.NAVIGATE_USER.value
        and not r.is_error
        and isinstance(r.result, dict)
    ]


# ── Search hits ──────────────────────────────────────────────────────


def _join(*parts: Any) -> str:
    return " · ".join(str(p) for p in parts if p not in (None, ""))


def _money(value: Any) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"${value:,.2f}"
    return None


def _client_hit(item: dict[str, Any]) -> SearchHit:
    return SearchHit(
        type="client",
        id=str(item.get("id", "")),
        title=item.get("name") or "Unnamed client",
        subtitle=_join(item.get("email"), item.get("phone"), item.get("address")),
        view="clients",
    )


def _job_hit(item: dict[str, Any]) -> SearchHit:
    return SearchHit(
        type="job",
        id=str(item.get("id", "")),
        title=item.get("title") or item.get("jobNumber") or "Untitled job",
        subtitle=_join(item.get("jobNumber"), item.get("status"), item.get("start")),
        view="schedule",
    )


def _quote_hit(item: dict[str, Any]) -> SearchHit:
    return SearchHit(
        type="quote",
        id=str(item.get("id", "")),
        title=item.get("title") or item.get("quoteNumber") or "Untitled quote",
        subtitle=_join(item.get("quoteNumber"), item.get("status"), _money(item.get("total"))),
        view="quotes",
    )


def _invoice_hit(item: dict[str, Any]) -> SearchHit:
    return SearchHit(
        type="invoice",
        id=str(item.get("id", "")),
        title=item.get("invoiceNumber") or "Invoice",
        subtitle=_join(item.get("status"), _money(item.get("total"))),
        view="invoices",
    )


_HIT_BUILDERS: dict[str, Callable[[dict[str, Any]], SearchHit]] = {
    ToolName.SEARCH_CLIENTS.value: _client_hit,
    ToolName.SEARCH_JOBS.value: _job_hit,
    ToolName.GET_SCHEDULE.value: _job_hit,
    ToolName.SEARCH_QUOTES.value: _quote_hit,
    ToolName.SEARCH_INVOICES.value: _invoice_hit,
}


def search_hits(tool_results: Iterable[ToolResult]) -> list[SearchHit]:
    """Flatten list-valued lookup results, in the order they were produced."""
    hits: list[SearchHit] = []
    for r in tool_results:
        build = _HIT_BUILDERS.get(r.tool_name)
        if build is None or not isinstance(r.result, list):
            continue
        hits.extend(build(item) for item in r.result if isinstance(item, dict))
    return hits


def assemble(
    final_message: AIMessage | None,
    tool_results: list[ToolResult],
    mode: ChatMode,
) -> AssembledResponse:
    return AssembledResponse(
        reply=reply_text(final_message),
        action_cards=action_cards(tool_results),
        search_results=search_hits(tool_results) if mode is ChatMode.SEARCH else None,
    )
