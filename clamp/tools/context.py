"""Shared dependencies and time helpers for tool executors."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from clamp.services.sequence import SequenceGenerator
from clamp.services.store import TenantStore


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ToolContext:
    """What an executor may touch.  Every store call still takes a tenant id."""

    store: TenantStore
    sequence: SequenceGenerator
    timezone: ZoneInfo = field(default_factory=lambda: ZoneInfo("Pacific/Auckland"))
    clock: Callable[[], datetime] = utc_now

    def now(self) -> datetime:
        """Current time in the business timezone."""
        return self.clock().astimezone(self.timezone)

    def timestamp(self) -> str:
        return iso_utc(self.clock())


def iso_utc(moment: datetime) -> str:
    """``2026-10-19T01:02:03.456Z`` style timestamps, as the web app stores them."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: object, tz: ZoneInfo) -> datetime | None:
    """Parse a stored ISO timestamp; naive values are read in the business timezone."""
    if not isinstance(value, str) or not value:
        return None
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    return moment
