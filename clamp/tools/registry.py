"""Static catalogue of the business tools Clamp can call.

Each tool has a unique :class:`ToolName`, a description written for the
model, a typed input model, and a :class:`Capability` tag.  The registry
is built once at import time and never changes; the dispatcher refuses
to start unless it has an executor for every registered name.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from clamp.tools import schemas


class ToolName(str, Enum):
    SEARCH_CLIENTS = "search_clients"
    GET_CLIENT = "get_client"
    SEARCH_JOBS = "search_jobs"
    GET_JOB = "get_job"
    CREATE_JOB = "create_job"
    UPDATE_JOB = "update_job"
    SEARCH_QUOTES = "search_quotes"
    GET_QUOTE = "get_quote"
    CREATE_QUOTE = "create_quote"
    SEARCH_INVOICES = "search_invoices"
    GET_INVOICE = "get_invoice"
    CREATE_INVOICE = "create_invoice"
    GET_TEAM_MEMBERS = "get_team_members"
    GET_SCHEDULE = "get_schedule"
    NAVIGATE_USER = "navigate_user"

    @classmethod
    def parse(cls, name: str) -> ToolName | None:
        try:
            return cls(name)
        except ValueError:
            return None


class Capability(str, Enum):
    SEARCH = "search"   # read-only; safe in every mode
    MUTATE = "mutate"   # writes tenant data


@dataclass(frozen=True)
class ToolDefinition:
    name: ToolName
    description: str
    input_model: type[schemas.ToolInput]
    capability: Capability

    @property
    def input_schema(self) -> dict[str, Any]:
        return schemas.tool_input_schema(self.input_model)

    def to_anthropic(self) -> dict[str, Any]:
        """Tool definition in the Anthropic Messages API format."""
        return {
            "name": self.name.value,
            "description": self.description,
            "input_schema": self.input_schema,
        }


def _define(
    name: ToolName,
    description: str,
    input_model: type[schemas.ToolInput],
    capability: Capability = Capability.SEARCH,
) -> ToolDefinition:
    return ToolDefinition(name, description, input_model, capability)


TOOL_REGISTRY: tuple[ToolDefinition, ...] = (
    _define(
        ToolName.SEARCH_CLIENTS,
        "Search for clients by name, email, phone, or address/suburb. "
        "Returns up to 10 matching clients.",
        schemas.SearchClientsInput,
    ),
    _define(
        ToolName.GET_CLIENT,
        "Get full details of a specific client including properties.",
        schemas.GetClientInput,
    ),
    _define(
        ToolName.SEARCH_JOBS,
        "Search jobs by status, client, keyword, or date range. Returns up to 15 jobs.",
        schemas.SearchJobsInput,
    ),
    _define(
        ToolName.GET_JOB,
        "Get full details of a specific job.",
        schemas.GetJobInput,
    ),
    _define(
        ToolName.CREATE_JOB,
        "Create a new job. Generates a sequential job number automatically.",
        schemas.CreateJobInput,
        Capability.MUTATE,
    ),
    _define(
        ToolName.UPDATE_JOB,
        "Update fields on an existing job. Can change status, title, notes, "
        "start, end, or assignees.",
        schemas.UpdateJobInput,
        Capability.MUTATE,
    ),
    _define(
        ToolName.SEARCH_QUOTES,
        "Search quotes by status or client. Returns up to 15 quotes.",
        schemas.SearchQuotesInput,
    ),
    _define(
        ToolName.GET_QUOTE,
        "Get full details of a specific quote including line items.",
        schemas.GetQuoteInput,
    ),
    _define(
        ToolName.CREATE_QUOTE,
        "Create a new draft quote with optional line items. "
        "Generates a sequential quote number automatically.",
        schemas.CreateQuoteInput,
        Capability.MUTATE,
    ),
    _define(
        ToolName.SEARCH_INVOICES,
        "Search invoices by status or client. Returns up to 15 invoices.",
        schemas.SearchInvoicesInput,
    ),
    _define(
        ToolName.GET_INVOICE,
        "Get full details of a specific invoice including line items and payments.",
        schemas.GetInvoiceInput,
    ),
    _define(
        ToolName.CREATE_INVOICE,
        "Create a new draft invoice with optional line items. "
        "Generates a sequential invoice number automatically.",
        schemas.CreateInvoiceInput,
        Capability.MUTATE,
    ),
    _define(
        ToolName.GET_TEAM_MEMBERS,
        "List all team members with their roles.",
        schemas.GetTeamMembersInput,
    ),
    _define(
        ToolName.GET_SCHEDULE,
        'Get scheduled jobs for a date or range. Use "today", "tomorrow", '
        '"yesterday", "this_week", "next_week", a YYYY-MM-DD date, or '
        "date_from/date_to. Returns up to 20 jobs.",
        schemas.GetScheduleInput,
    ),
    _define(
        ToolName.NAVIGATE_USER,
        "Direct the user to a specific page in the app. Returns a navigation "
        "link the user can click.",
        schemas.NavigateUserInput,
    ),
)

_BY_NAME: dict[ToolName, ToolDefinition] = {tool.name: tool for tool in TOOL_REGISTRY}

if len(_BY_NAME) != len(TOOL_REGISTRY) or set(_BY_NAME) != set(ToolName):
    raise RuntimeError("Tool registry must define every ToolName exactly once")


def get_tool(name: ToolName) -> ToolDefinition:
    return _BY_NAME[name]


def tools_with(capability: Capability) -> list[ToolDefinition]:
    return [tool for tool in TOOL_REGISTRY if tool.capability is capability]
