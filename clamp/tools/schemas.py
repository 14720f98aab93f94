"""Typed inputs for every Clamp tool.

The model's tool arguments are validated against these pydantic models
before an executor runs; a validation failure becomes a tool-level error
result, never an exception.  The same models generate the JSON Schema
advertised to the model (see :func:`tool_input_schema`).
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StringConstraints, field_validator

# Document ids are opaque strings; a slash would address a different path.
DocumentId = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128, pattern=r"^[^/]+$"),
]
OptionalDocumentId = Annotated[
    str, StringConstraints(strip_whitespace=True, max_length=128, pattern=r"^[^/]*$"),
]


def _check_calendar_date(value: str) -> str:
    if value:
        try:
            date.fromisoformat(value)
        except ValueError:
            raise ValueError(f"{value!r} is not a YYYY-MM-DD date") from None
    return value


# ``""`` means "not given"; anything else must be a YYYY-MM-DD date.
CalendarDate = Annotated[str, AfterValidator(_check_calendar_date)]


class ToolInput(BaseModel):
    """Base for tool inputs: unknown keys from the model are ignored."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


# ── Clients ──────────────────────────────────────────────────────────


class SearchClientsInput(ToolInput):
    query: str = Field(
        "",
        description="Search term: client name, email, phone number, address, or suburb",
    )


class GetClientInput(ToolInput):
    client_id: DocumentId = Field(..., description="The client document ID")


# ── Jobs ─────────────────────────────────────────────────────────────


class SearchJobsInput(ToolInput):
    client_id: OptionalDocumentId = Field("", description="Filter by client ID")
    status: str = Field(
        "",
        description="Filter by status: Unscheduled, Scheduled, In Progress, Completed, Archived",
    )
    keyword: str = Field("", description="Search in title or job number")
    date_from: CalendarDate = Field("", description="Start date (YYYY-MM-DD)")
    date_to: CalendarDate = Field("", description="End date (YYYY-MM-DD), inclusive")


class GetJobInput(ToolInput):
    job_id: DocumentId = Field(..., description="The job document ID")


class CreateJobInput(ToolInput):
    title: str = Field(..., min_length=1, description="Job title/description")
    client_id: OptionalDocumentId = Field("", description="Client ID to assign the job to")
    scheduled_date: CalendarDate = Field("", description="Scheduled date (YYYY-MM-DD)")
    scheduled_time: str = Field("", description="Scheduled time (HH:MM, 24h format)")
    assigned_to: OptionalDocumentId = Field("", description="Staff member ID to assign")
    notes: str = Field("", description="Job notes")
    quote_id: OptionalDocumentId = Field(
        "", description="Related quote ID if scheduling from a quote",
    )

    @field_validator("scheduled_time")
    @classmethod
    def check_time(cls, value: str) -> str:
        if value:
            try:
                time.fromisoformat(value)
            except ValueError:
                raise ValueError(f"{value!r} is not an HH:MM time") from None
        return value


def _check_timestamp(value: str | None) -> str | None:
    if value is not None:
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"{value!r} is not an ISO 8601 timestamp") from None
    return value


# ``None`` clears the field; naive values are read in the business timezone.
Timestamp = Annotated[str | None, AfterValidator(_check_timestamp)]


class JobUpdates(ToolInput):
    """The editable job fields.  Anything else the model sends is dropped."""

    status: str | None = Field(
        None,
        min_length=1,
        description="Unscheduled, Scheduled, In Progress, Completed, Archived",
    )
    title: str | None = Field(None, min_length=1, description="Job title")
    notes: str | None = Field(None, description="Job notes")
    start: Timestamp = Field(None, description="Start time, ISO 8601 (e.g. 2026-10-20T09:00)")
    end: Timestamp = Field(None, description="End time, ISO 8601")
    assignees: list[DocumentId] | None = Field(None, description="Staff member IDs")


class UpdateJobInput(ToolInput):
    job_id: DocumentId = Field(..., description="The job ID to update")
    updates: JobUpdates = Field(..., description="Only the fields to change")


# ── Quotes & invoices ────────────────────────────────────────────────


class LineItemInput(ToolInput):
    description: str = ""
    quantity: float = Field(1, ge=0)
    unit_price: float = 0


class SearchQuotesInput(ToolInput):
    client_id: OptionalDocumentId = Field("", description="Filter by client ID")
    status: str = Field(
        "",
        description="Filter: Draft, Sent, Awaiting Approval, Approved, Converted, Archived",
    )


class GetQuoteInput(ToolInput):
    quote_id: DocumentId = Field(..., description="The quote ID")


class CreateQuoteInput(ToolInput):
    client_id: DocumentId = Field(..., description="Client ID")
    title: str = Field(..., min_length=1, description="Quote title")
    line_items: list[LineItemInput] = Field(
        default_factory=list, description="Line items for the quote",
    )
    notes: str = Field("", description="Quote notes or client message")


class SearchInvoicesInput(ToolInput):
    client_id: OptionalDocumentId = Field("", description="Filter by client ID")
    status: str = Field(
        "",
        description="Filter: Draft, Sent, Unpaid, Partially Paid, Paid, Overdue, Void, Archived",
    )


class GetInvoiceInput(ToolInput):
    invoice_id: DocumentId = Field(..., description="The invoice ID")


class CreateInvoiceInput(ToolInput):
    client_id: DocumentId = Field(..., description="Client ID")
    job_id: OptionalDocumentId = Field("", description="Related job ID")
    line_items: list[LineItemInput] = Field(
        default_factory=list, description="Line items for the invoice",
    )
    due_date: CalendarDate = Field("", description="Due date (YYYY-MM-DD)")


# ── Team, schedule, navigation ───────────────────────────────────────


class GetTeamMembersInput(ToolInput):
    pass


class GetScheduleInput(ToolInput):
    date: str = Field(
        "",
        description="today, tomorrow, yesterday, this_week, next_week, or a YYYY-MM-DD date",
    )
    date_from: CalendarDate = Field("", description="Range start (YYYY-MM-DD)")
    date_to: CalendarDate = Field("", description="Range end (YYYY-MM-DD), inclusive")
    team_member_id: OptionalDocumentId = Field("", description="Filter by team member ID")


class NavigateUserInput(ToolInput):
    view: str = Field(
        ...,
        min_length=1,
        description=(
            "App view: dashboard, clients, jobs, schedule, quotes, invoices, "
            "settings, reports, expenses, timesheets"
        ),
    )
    entity_id: OptionalDocumentId = Field("", description="Optional entity ID to highlight")
    entity_type: str = Field("", description="Entity type: client, job, quote, invoice")


# ── JSON Schema for the completion API ───────────────────────────────


def _inline_refs(node: Any, defs: dict[str, Any]) -> Any:
    if isinstance(node, list):
        return [_inline_refs(item, defs) for item in node]
    if not isinstance(node, dict):
        return node
    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/$defs/"):
        return _inline_refs(defs[ref.removeprefix("#/$defs/")], defs)
    out: dict[str, Any] = {}
    for key, value in node.items():
        if key in ("title", "$defs"):
            continue
        if key == "properties":
            # Property names are data here, not schema keywords.
            out[key] = {name: _inline_refs(prop, defs) for name, prop in value.items()}
        else:
            out[key] = _inline_refs(value, defs)
    return out


def tool_input_schema(model: type[ToolInput]) -> dict[str, Any]:
    """Self-contained JSON Schema (no ``$defs``/titles) for a tool input model."""
    raw = model.model_json_schema()
    schema = _inline_refs(raw, raw.get("$defs", {}))
    schema.setdefault("properties", {})
    return schema
