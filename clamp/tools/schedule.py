"""Schedule lookup and in-app navigation.

Named periods are resolved against the business timezone:

    today (default) / tomorrow / yesterday   → that calendar day
    this_week / next_week                    → Monday-to-Sunday week
    YYYY-MM-DD                               → that calendar day
    date_from + date_to                      → inclusive calendar range
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any

from clamp.tools import schemas
from clamp.tools.context import ToolContext, parse_timestamp

SCHEDULE_LIMIT = 20


class PeriodError(ValueError):
    pass


def resolve_period(
    today: date,
    keyword: str = "",
    date_from: str = "",
    date_to: str = "",
) -> tuple[date, date]:
    """Return ``(first_day, day_after_last)`` for a schedule request."""
    keyword = keyword.strip().lower()

    if not keyword and date_from and date_to:
        first = date.fromisoformat(date_from)
        last = date.fromisoformat(date_to)
        if last < first:
            raise PeriodError("date_to is before date_from")
        return first, last + timedelta(days=1)

    if keyword in ("", "today"):
        return today, today + timedelta(days=1)
    if keyword == "tomorrow":
        day = today + timedelta(days=1)
        return day, day + timedelta(days=1)
    if keyword == "yesterday":
        day = today - timedelta(days=1)
        return day, day + timedelta(days=1)
    if keyword in ("this_week", "next_week"):
        monday = today - timedelta(days=today.weekday())
        if keyword == "next_week":
            monday += timedelta(days=7)
        return monday, monday + timedelta(days=7)

    try:
        day = date.fromisoformat(keyword)
    except ValueError:
        raise PeriodError(f"Unrecognised date: {keyword}") from None
    return day, day + timedelta(days=1)


def get_schedule(ctx: ToolContext, tenant_id: str, params: schemas.GetScheduleInput):
    try:
        first, end = resolve_period(ctx.now().date(), params.date, params.date_from, params.date_to)
    except PeriodError as exc:
        return {"error": str(exc)}

    lower = datetime.combine(first, time.min, tzinfo=ctx.timezone)
    upper = datetime.combine(end, time.min, tzinfo=ctx.timezone)

    scheduled: list[tuple[datetime, dict[str, Any]]] = []
    for job in ctx.store.query(tenant_id, "jobs"):
        if job.get("archived"):
            continue
        start = parse_timestamp(job.get("start"), ctx.timezone)
        if start is None or not (lower <= start < upper):
            continue
        assignees = job.get("assignees") or []
        if params.team_member_id and params.team_member_id not in assignees:
            continue
        scheduled.append((start, job))

    scheduled.sort(key=lambda pair: pair[0])
    return [
        {
            "id": job["id"],
            "jobNumber": job.get("jobNumber"),
            "title": job.get("title"),
            "status": job.get("status"),
            "start": job.get("start"),
            "end": job.get("end"),
            "assignees": job.get("assignees") or [],
        }
        for _, job in scheduled[:SCHEDULE_LIMIT]
    ]


def navigate_user(params: schemas.NavigateUserInput) -> dict[str, Any]:
    """Pure function: echo a normalised navigation target for the UI."""
    return {
        "view": params.view.strip().lower(),
        "entityId": params.entity_id or None,
        "entityType": params.entity_type.strip().lower() or None,
    }
