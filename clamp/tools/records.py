"""Executors for clients, jobs, quotes, invoices and team members.

Every executor takes the tool context, the tenant id and a validated input
model, and returns a JSON-serialisable value.  Lookups that miss return
``{"error": "<Entity> not found"}`` instead of raising; the dispatcher turns
anything that does raise into an error result as well.

Result sizes are capped (10 clients, 15 jobs/quotes/invoices) to keep the
model's context small.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Any

from clamp.services.sequence import INVOICE_NUMBERS, JOB_NUMBERS, QUOTE_NUMBERS
from clamp.services.store import DocumentNotFoundError
from clamp.tools import schemas
from clamp.tools.context import ToolContext, iso_utc, parse_timestamp

logger = logging.getLogger(__name__)

CLIENT_SEARCH_LIMIT = 10
RECORD_SEARCH_LIMIT = 15

DEFAULT_JOB_TIME = time(9, 0)


def _live(docs: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [doc for doc in docs if not doc.get("archived")]


def _where(**filters: str) -> dict[str, str]:
    return {field: value for field, value in filters.items() if value}


def _contains(haystack: Any, needle: str) -> bool:
    return isinstance(haystack, str) and needle in haystack.lower()


def _line_items(items: list[schemas.LineItemInput]) -> list[dict[str, Any]]:
    return [
        {
            "type": "line_item",
            "name": item.description,
            "description": item.description,
            "qty": item.quantity,
            "price": item.unit_price,
            "unitCost": 0,
            "isOptional": False,
        }
        for item in items
    ]


def _total(line_items: list[dict[str, Any]]) -> float:
    return round(sum(li["qty"] * li["price"] for li in line_items), 2)


# ── Clients ──────────────────────────────────────────────────────────


def _client_matches(client: dict[str, Any], query: str) -> bool:
    if not query:
        return True
    if any(_contains(client.get(f), query) for f in ("name", "email", "address")):
        return True
    phone = client.get("phone")
    if isinstance(phone, str) and query in phone:
        return True
    return any(
        _contains(prop.get(f), query)
        for prop in client.get("properties") or []
        if isinstance(prop, dict)
        for f in ("street1", "city", "label")
    )


def search_clients(ctx: ToolContext, tenant_id: str, params: schemas.SearchClientsInput):
    query = params.query.lower()
    clients = _live(ctx.store.query(tenant_id, "clients"))
    matches = [c for c in clients if _client_matches(c, query)][:CLIENT_SEARCH_LIMIT]
    return [
        {
            "id": c["id"],
            "name": c.get("name"),
            "email": c.get("email"),
            "phone": c.get("phone"),
            "address": c.get("address") or "",
            "status": c.get("status") or "Active",
        }
        for c in matches
    ]


def get_client(ctx: ToolContext, tenant_id: str, params: schemas.GetClientInput):
    c = ctx.store.get(tenant_id, "clients", params.client_id)
    if c is None:
        return {"error": "Client not found"}
    return {
        "id": c["id"],
        "name": c.get("name"),
        "email": c.get("email"),
        "phone": c.get("phone"),
        "address": c.get("address"),
        "status": c.get("status") or "Active",
        "properties": [
            {
                "uid": p.get("uid"),
                "label": p.get("label"),
                "street1": p.get("street1"),
                "city": p.get("city"),
            }
            for p in c.get("properties") or []
            if isinstance(p, dict)
        ],
    }


# ── Jobs ─────────────────────────────────────────────────────────────


def _day_start(ctx: ToolContext, value: str) -> datetime:
    return datetime.combine(datetime.fromisoformat(value).date(), time.min, tzinfo=ctx.timezone)


def search_jobs(ctx: ToolContext, tenant_id: str, params: schemas.SearchJobsInput):
    where = _where(status=params.status, clientId=params.client_id)
    jobs = _live(ctx.store.query(tenant_id, "jobs", where))

    if params.keyword:
        kw = params.keyword.lower()
        jobs = [j for j in jobs if _contains(j.get("title"), kw) or _contains(j.get("jobNumber"), kw)]

    if params.date_from or params.date_to:
        lower = _day_start(ctx, params.date_from) if params.date_from else None
        upper = _day_start(ctx, params.date_to) + timedelta(days=1) if params.date_to else None
        dated = []
        for job in jobs:
            start = parse_timestamp(job.get("start"), ctx.timezone)
            if start is None:
                continue
            if lower is not None and start < lower:
                continue
            if upper is not None and start >= upper:
                continue
            dated.append(job)
        jobs = dated

    return [
        {
            "id": j["id"],
            "jobNumber": j.get("jobNumber"),
            "title": j.get("title"),
            "status": j.get("status"),
            "clientId": j.get("clientId"),
            "start": j.get("start"),
            "end": j.get("end"),
        }
        for j in jobs[:RECORD_SEARCH_LIMIT]
    ]


def get_job(ctx: ToolContext, tenant_id: str, params: schemas.GetJobInput):
    j = ctx.store.get(tenant_id, "jobs", params.job_id)
    if j is None:
        return {"error": "Job not found"}
    return {
        "id": j["id"],
        "jobNumber": j.get("jobNumber"),
        "title": j.get("title"),
        "status": j.get("status"),
        "clientId": j.get("clientId"),
        "start": j.get("start"),
        "end": j.get("end"),
        "notes": j.get("notes"),
        "assignees": j.get("assignees") or [],
        "lineItems": len(j.get("lineItems") or []),
    }


def create_job(ctx: ToolContext, tenant_id: str, params: schemas.CreateJobInput):
    start = None
    if params.scheduled_date:
        at = time.fromisoformat(params.scheduled_time) if params.scheduled_time else DEFAULT_JOB_TIME
        local = datetime.combine(
            datetime.fromisoformat(params.scheduled_date).date(), at, tzinfo=ctx.timezone,
        )
        start = iso_utc(local)

    job_number = ctx.sequence.next_for(tenant_id, JOB_NUMBERS)
    now = ctx.timestamp()
    job = {
        "jobNumber": job_number,
        "title": params.title,
        "clientId": params.client_id,
        "quoteId": params.quote_id,
        "status": "Scheduled" if start else "Unscheduled",
        "start": start,
        "end": None,
        "notes": params.notes,
        "assignees": [params.assigned_to] if params.assigned_to else [],
        "jobType": "one_off",
        "schedule": "One-time",
        "billingFrequency": "Upon job completion",
        "lineItems": [],
        "createdAt": now,
        "updatedAt": now,
    }
    job_id = ctx.store.add(tenant_id, "jobs", job)
    logger.info("Created job %s (%s) for tenant %s", job_number, job_id, tenant_id)
    return {"id": job_id, "jobNumber": job_number, "title": params.title, "status": job["status"]}


def update_job(ctx: ToolContext, tenant_id: str, params: schemas.UpdateJobInput):
    if ctx.store.get(tenant_id, "jobs", params.job_id) is None:
        return {"error": "Job not found"}

    updates = params.updates.model_dump(exclude_unset=True)
    for key in ("start", "end"):
        if updates.get(key):
            updates[key] = iso_utc(parse_timestamp(updates[key], ctx.timezone))
    updates["updatedAt"] = ctx.timestamp()

    try:
        ctx.store.update(tenant_id, "jobs", params.job_id, updates)
    except DocumentNotFoundError:
        return {"error": "Job not found"}
    return {"id": params.job_id, "updated": True, "fields": list(updates)}


# ── Quotes ───────────────────────────────────────────────────────────


def search_quotes(ctx: ToolContext, tenant_id: str, params: schemas.SearchQuotesInput):
    quotes = _live(ctx.store.query(
        tenant_id, "quotes", _where(status=params.status, clientId=params.client_id),
    ))
    return [
        {
            "id": q["id"],
            "quoteNumber": q.get("quoteNumber"),
            "title": q.get("title"),
            "clientId": q.get("clientId"),
            "status": q.get("status"),
            "total": q.get("total"),
        }
        for q in quotes[:RECORD_SEARCH_LIMIT]
    ]


def get_quote(ctx: ToolContext, tenant_id: str, params: schemas.GetQuoteInput):
    q = ctx.store.get(tenant_id, "quotes", params.quote_id)
    if q is None:
        return {"error": "Quote not found"}
    return {
        "id": q["id"],
        "quoteNumber": q.get("quoteNumber"),
        "title": q.get("title"),
        "clientId": q.get("clientId"),
        "status": q.get("status"),
        "total": q.get("total"),
        "lineItems": q.get("lineItems") or [],
        "notes": q.get("clientMessage") or q.get("internalNotes") or "",
    }


def create_quote(ctx: ToolContext, tenant_id: str, params: schemas.CreateQuoteInput):
    quote_number = ctx.sequence.next_for(tenant_id, QUOTE_NUMBERS)
    now = ctx.timestamp()
    line_items = _line_items(params.line_items)
    quote = {
        "quoteNumber": quote_number,
        "title": params.title,
        "clientId": params.client_id,
        "status": "Draft",
        "lineItems": line_items,
        "total": _total(line_items),
        "taxRate": 0,
        "quoteDiscountType": "amount",
        "quoteDiscountValue": 0,
        "clientMessage": params.notes,
        "createdAt": now,
        "updatedAt": now,
    }
    quote_id = ctx.store.add(tenant_id, "quotes", quote)
    logger.info("Created quote %s (%s) for tenant %s", quote_number, quote_id, tenant_id)
    return {"id": quote_id, "quoteNumber": quote_number, "title": params.title, "total": quote["total"]}


# ── Invoices ─────────────────────────────────────────────────────────


def search_invoices(ctx: ToolContext, tenant_id: str, params: schemas.SearchInvoicesInput):
    invoices = _live(ctx.store.query(
        tenant_id, "invoices", _where(status=params.status, clientId=params.client_id),
    ))
    return [
        {
            "id": i["id"],
            "invoiceNumber": i.get("invoiceNumber"),
            "clientId": i.get("clientId"),
            "status": i.get("status"),
            "total": i.get("total"),
            "dueDate": i.get("dueDate"),
        }
        for i in invoices[:RECORD_SEARCH_LIMIT]
    ]


def get_invoice(ctx: ToolContext, tenant_id: str, params: schemas.GetInvoiceInput):
    i = ctx.store.get(tenant_id, "invoices", params.invoice_id)
    if i is None:
        return {"error": "Invoice not found"}
    return {
        "id": i["id"],
        "invoiceNumber": i.get("invoiceNumber"),
        "clientId": i.get("clientId"),
        "jobId": i.get("jobId"),
        "status": i.get("status"),
        "total": i.get("total"),
        "issueDate": i.get("issueDate"),
        "dueDate": i.get("dueDate"),
        "lineItems": i.get("lineItems") or [],
        "payments": i.get("payments") or [],
    }


def create_invoice(ctx: ToolContext, tenant_id: str, params: schemas.CreateInvoiceInput):
    invoice_number = ctx.sequence.next_for(tenant_id, INVOICE_NUMBERS)
    now = ctx.timestamp()
    due_date = now
    if params.due_date:
        due = datetime.combine(
            datetime.fromisoformat(params.due_date).date(), time.min, tzinfo=ctx.timezone,
        )
        due_date = iso_utc(due)
    line_items = _line_items(params.line_items)
    invoice = {
        "invoiceNumber": invoice_number,
        "clientId": params.client_id,
        "jobId": params.job_id,
        "status": "Draft",
        "issueDate": now,
        "dueDate": due_date,
        "dueTerm": "Due Today",
        "lineItems": line_items,
        "total": _total(line_items),
        "taxRate": 0,
        "quoteDiscountType": "amount",
        "quoteDiscountValue": 0,
        "depositApplied": 0,
        "payments": [],
        "createdAt": now,
        "updatedAt": now,
    }
    invoice_id = ctx.store.add(tenant_id, "invoices", invoice)
    logger.info("Created invoice %s (%s) for tenant %s", invoice_number, invoice_id, tenant_id)
    return {"id": invoice_id, "invoiceNumber": invoice_number, "total": invoice["total"]}


# ── Team ─────────────────────────────────────────────────────────────


def get_team_members(ctx: ToolContext, tenant_id: str, params: schemas.GetTeamMembersInput):
    return [
        {"id": s["id"], "name": s.get("name"), "role": s.get("role"), "color": s.get("color")}
        for s in ctx.store.query(tenant_id, "staff")
    ]
