"""Shared test fixtures for the Clamp test suite."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest
from langchain_core.messages import AIMessage

from clamp.services.sequence import SequenceGenerator
from clamp.services.store import InMemoryTenantStore
from clamp.tools.context import ToolContext
from clamp.tools.dispatcher import ToolDispatcher

TENANT_A = "tenant-a"
TENANT_B = "tenant-b"
API_TOKEN_A = "token-a"
API_TOKEN_B = "token-b"

AUCKLAND = ZoneInfo("Pacific/Auckland")
# Monday 19 October 2026, 14:00 in Auckland (NZDT, UTC+13).
FIXED_NOW = datetime(2026, 10, 19, 1, 0, tzinfo=UTC)


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    ``clamp.server`` builds its app at import time, so these must be in
    place before any test module is imported.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("CLAMP_API_TOKENS", f"{API_TOKEN_A}={TENANT_A},{API_TOKEN_B}={TENANT_B}")
    os.environ.setdefault("METRICS_ENABLED", "false")
    os.environ.setdefault("CLAMP_STORE_BACKEND", "memory")


SEED_A = {
    "clients": [
        {
            "id": "c1",
            "name": "Jo Smith",
            "email": "jo@smith.co.nz",
            "phone": "021 555 0101",
            "address": "12 Beach Rd, Takapuna",
            "status": "Active",
            "properties": [
                {"uid": "p1", "label": "Home", "street1": "12 Beach Rd", "city": "Auckland"},
                {"uid": "p2", "label": "Bach", "street1": "4 Lake Tce", "city": "Taupo"},
            ],
        },
        {
            "id": "c2",
            "name": "Aroha Ngata",
            "email": "aroha@example.nz",
            "phone": "027 123 4567",
            "address": "88 Victoria St, Hamilton",
        },
        {"id": "c3", "name": "Sam Smith", "email": "sam@old.nz", "archived": True},
    ],
    "jobs": [
        {
            "id": "j1",
            "jobNumber": "JOB-0007",
            "title": "Gutter clean",
            "clientId": "c1",
            "status": "Scheduled",
            # Tuesday 20 Oct 09:00 NZDT
            "start": "2026-10-19T20:00:00.000Z",
            "end": "2026-10-19T22:00:00.000Z",
            "assignees": ["s1"],
            "notes": "Two storeys",
        },
        {
            "id": "j2",
            "jobNumber": "JOB-0008",
            "title": "Heat pump service",
            "clientId": "c2",
            "status": "Scheduled",
            # Monday 19 Oct 11:30 NZDT
            "start": "2026-10-18T22:30:00.000Z",
            "end": None,
            "assignees": ["s2"],
        },
        {
            "id": "j3",
            "jobNumber": "JOB-0009",
            "title": "Fence repair",
            "clientId": "c1",
            "status": "Unscheduled",
            "start": None,
            "assignees": [],
        },
        {
            "id": "j4",
            "jobNumber": "JOB-0006",
            "title": "Deck stain",
            "clientId": "c1",
            "status": "Completed",
            # Thursday 15 Oct 10:00 NZDT
            "start": "2026-10-14T21:00:00.000Z",
            "assignees": ["s1"],
        },
        {
            "id": "j5",
            "jobNumber": "JOB-0005",
            "title": "Old gutter job",
            "clientId": "c1",
            "status": "Scheduled",
            "start": "2026-10-19T02:00:00.000Z",
            "archived": True,
        },
        {
            "id": "j6",
            "jobNumber": "JOB-0010",
            "title": "Roof inspection",
            "clientId": "c2",
            "status": "Scheduled",
            # Monday 19 Oct 08:00 NZDT
            "start": "2026-10-18T19:00:00.000Z",
            "assignees": ["s1"],
        },
    ],
    "quotes": [
        {
            "id": "q1",
            "quoteNumber": "QU-0003",
            "title": "Gutter replacement",
            "clientId": "c1",
            "status": "Sent",
            "total": 1200,
            "lineItems": [{"name": "Spouting", "qty": 30, "price": 40}],
            "clientMessage": "Includes downpipes",
        },
        {
            "id": "q2",
            "quoteNumber": "QU-0004",
            "title": "Heat pump install",
            "clientId": "c2",
            "status": "Draft",
            "total": 350,
        },
    ],
    "invoices": [
        {
            "id": "i1",
            "invoiceNumber": "INV-0010",
            "clientId": "c1",
            "jobId": "j4",
            "status": "Unpaid",
            "total": 240.5,
            "dueDate": "2026-10-30T11:00:00.000Z",
        },
        {"id": "i2", "invoiceNumber": "INV-0011", "clientId": "c1", "status": "Paid", "total": 1000},
        {"id": "i3", "invoiceNumber": "INV-0012", "clientId": "c2", "status": "Unpaid", "total": 99},
    ],
    "staff": [
        {"id": "s1", "name": "Mere Tane", "role": "Owner", "color": "#2563eb"},
        {"id": "s2", "name": "Tom Reid", "role": "Technician", "color": "#16a34a"},
    ],
    "settings": [
        {"id": "invoiceSettings", "nextJob": 11, "nextQu": 5, "nextInvCn": 13, "padding": 4},
    ],
}

SEED_B = {
    "clients": [{"id": "cb1", "name": "Bob Smith", "email": "bob@other.nz"}],
    "jobs": [
        {
            "id": "jb1",
            "jobNumber": "W-001",
            "title": "Roof wash",
            "clientId": "cb1",
            "status": "Scheduled",
            "start": "2026-10-18T23:00:00.000Z",
        },
    ],
    "invoices": [
        {"id": "ib1", "invoiceNumber": "B-INV-1", "clientId": "cb1", "status": "Unpaid", "total": 10},
    ],
}


# ── Store & tool context ─────────────────────────────────────────────


@pytest.fixture
def store() -> InMemoryTenantStore:
    """In-memory store seeded with two tenants' data."""
    s = InMemoryTenantStore()
    for tenant_id, seed in ((TENANT_A, SEED_A), (TENANT_B, SEED_B)):
        for collection, docs in seed.items():
            s.seed(tenant_id, collection, docs)
    return s


@pytest.fixture
def tool_context(store) -> ToolContext:
    return ToolContext(
        store=store,
        sequence=SequenceGenerator(store),
        timezone=AUCKLAND,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def dispatcher(tool_context) -> ToolDispatcher:
    return ToolDispatcher(tool_context)


# ── Scripted completion API ──────────────────────────────────────────


class ScriptedCompletionClient:
    """Fake ``CompletionClient`` that replays a list of responses.

    An ``Exception`` in the script is raised instead of returned.  When
    ``repeat_last`` is set the final entry is replayed forever.
    """

    def __init__(self, responses, *, repeat_last: bool = False):
        self._responses = list(responses)
        self._repeat_last = repeat_last
        self.calls: list[dict] = []

    def complete(self, system_prompt, tools, messages):
        self.calls.append({
            "system_prompt": system_prompt,
            "tools": [t.name.value for t in tools],
            "messages": list(messages),
        })
        if not self._responses:
            raise AssertionError("ScriptedCompletionClient ran out of responses")
        if self._repeat_last and len(self._responses) == 1:
            response = self._responses[0]
        else:
            response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        # The graph assigns ids to the messages it stores; hand out a copy so
        # a replayed response is appended, not treated as an update.
        return response.model_copy(deep=True)


def _tool_use_message(*calls: tuple[str, dict], text: str = "", prefix: str = "toolu") -> AIMessage:
    content: list[dict] = []
    if text:
        content.append({"type": "text", "text": text})
    tool_calls = []
    for n, (name, args) in enumerate(calls):
        call_id = f"{prefix}_{n}_{name}"
        content.append({"type": "tool_use", "id": call_id, "name": name, "input": args})
        tool_calls.append({"id": call_id, "name": name, "args": args, "type": "tool_call"})
    return AIMessage(
        content=content,
        tool_calls=tool_calls,
        response_metadata={"stop_reason": "tool_use"},
    )


def _final_message(text: str) -> AIMessage:
    return AIMessage(
        content=[{"type": "text", "text": text}] if text else [],
        response_metadata={"stop_reason": "end_turn"},
    )


@pytest.fixture
def tool_use():
    """Factory: ``tool_use(("get_schedule", {"date": "today"}), text="...")``."""
    return _tool_use_message


@pytest.fixture
def final():
    """Factory: a final (end_turn) assistant message with the given text."""
    return _final_message


@pytest.fixture
def scripted_client():
    """Factory for :class:`ScriptedCompletionClient`."""
    return ScriptedCompletionClient
