"""Tool dispatcher: name → validated input → executor → uniform result.

The dispatcher never raises for anything the model can cause.  Unknown
tool names, tools outside the request's mode, schema violations and
executor failures all come back as ``{"error": "..."}`` results so the
conversation can carry on and the model can decide how to recover.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from clamp.services.metrics import metrics
from clamp.tools import records, schedule
from clamp.tools.context import ToolContext
from clamp.tools.registry import ToolDefinition, ToolName, get_tool

logger = logging.getLogger(__name__)

Executor = Callable[[ToolContext, str, Any], Any]


@dataclass(frozen=True)
class ToolInvocation:
    """One tool request emitted by the model inside an assistant turn."""

    id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    tool_name: str
    result: Any
    is_error: bool = False
    tool_use_id: str = ""


def is_error_result(result: Any) -> bool:
    return isinstance(result, dict) and "error" in result


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "input"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


class ToolDispatcher:
    """Routes tool invocations to executors within a single tenant's data."""

    def __init__(
        self,
        context: ToolContext,
        *,
        allowed: frozenset[ToolName] | None = None,
        scope: str = "",
    ):
        self._context = context
        self._allowed = allowed
        self._scope = scope
        self._executors: dict[ToolName, Executor] = {
            ToolName.SEARCH_CLIENTS: records.search_clients,
            ToolName.GET_CLIENT: records.get_client,
            ToolName.SEARCH_JOBS: records.search_jobs,
            ToolName.GET_JOB: records.get_job,
            ToolName.CREATE_JOB: records.create_job,
            ToolName.UPDATE_JOB: records.update_job,
            ToolName.SEARCH_QUOTES: records.search_quotes,
            ToolName.GET_QUOTE: records.get_quote,
            ToolName.CREATE_QUOTE: records.create_quote,
            ToolName.SEARCH_INVOICES: records.search_invoices,
            ToolName.GET_INVOICE: records.get_invoice,
            ToolName.CREATE_INVOICE: records.create_invoice,
            ToolName.GET_TEAM_MEMBERS: records.get_team_members,
            ToolName.GET_SCHEDULE: schedule.get_schedule,
            ToolName.NAVIGATE_USER: lambda _ctx, _tenant, params: schedule.navigate_user(params),
        }
        missing = set(ToolName) - set(self._executors)
        if missing:
            names = ", ".join(sorted(m.value for m in missing))
            raise RuntimeError(f"No executor registered for: {names}")

    def limited_to(self, tools: Iterable[ToolDefinition], scope: str) -> ToolDispatcher:
        """A dispatcher over the same data that refuses every tool not in ``tools``."""
        return ToolDispatcher(
            self._context,
            allowed=frozenset(t.name for t in tools),
            scope=scope,
        )

    def execute(self, name: str, tool_input: Any, tenant_id: str) -> Any:
        """Run one tool for ``tenant_id`` and return its (possibly error) result."""
        tool_name = ToolName.parse(name)
        if tool_name is None:
            logger.warning("Model requested unknown tool %r", name)
            return {"error": f"Unknown tool: {name}"}
        if self._allowed is not None and tool_name not in self._allowed:
            logger.warning("Refused %s outside its mode (%s)", name, self._scope)
            return {"error": f"Tool not available in {self._scope}: {name}"}

        definition = get_tool(tool_name)
        try:
            params = definition.input_model.model_validate(
                tool_input if tool_input is not None else {},
            )
        except ValidationError as exc:
            logger.info("Rejected %s input: %s", name, _describe(exc))
            return {"error": f"Invalid input for {name}: {_describe(exc)}"}

        try:
            return self._executors[tool_name](self._context, tenant_id, params)
        except Exception as exc:
            logger.exception("Tool %s failed for tenant %s", name, tenant_id)
            return {"error": str(exc) or type(exc).__name__}

    def invoke(self, invocation: ToolInvocation, tenant_id: str) -> ToolResult:
        t0 = time.perf_counter()
        result = self.execute(invocation.name, invocation.input, tenant_id)
        elapsed = (time.perf_counter() - t0) * 1000
        failed = is_error_result(result)
        metrics.record_tool_call(invocation.name, ok=not failed, latency_ms=elapsed)
        return ToolResult(
            tool_name=invocation.name,
            result=result,
            is_error=failed,
            tool_use_id=invocation.id,
        )
