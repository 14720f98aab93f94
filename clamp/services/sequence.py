"""Per-tenant document numbering (``JOB-0001``, ``QU-0042``, ``INV-0107``…).

The counters live in one settings document per tenant
(``settings/invoiceSettings``), shared with the rest of the application:

    nextJob / prefixJob     → job numbers
    nextQu / prefixQu       → quote numbers
    nextInvCn / prefixInv   → invoice numbers
    padding                 → zero-padding width for all of the above

The read of the counter, the formatting of the number and the increment
happen inside a single store transaction, so concurrent callers for the
same tenant can never be handed the same number.  A missing document is
created by that same transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from clamp.config import DEFAULT_PADDING
from clamp.services.store import TenantStore

logger = logging.getLogger(__name__)

SETTINGS_COLLECTION = "settings"
COUNTER_DOCUMENT = "invoiceSettings"


@dataclass(frozen=True)
class CounterSpec:
    """Where a document class keeps its counter and prefix."""

    counter_field: str
    prefix_field: str
    default_prefix: str


JOB_NUMBERS = CounterSpec("nextJob", "prefixJob", "JOB")
QUOTE_NUMBERS = CounterSpec("nextQu", "prefixQu", "QU")
INVOICE_NUMBERS = CounterSpec("nextInvCn", "prefixInv", "INV")


def format_number(prefix: str, value: int, padding: int) -> str:
    """``format_number("JOB", 7, 4) == "JOB-0007"``.  Wider values are not truncated."""
    return f"{prefix}-{str(value).zfill(padding)}"


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


def _padding(value: Any, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 0 else default


class SequenceGenerator:
    """Issues unique, strictly increasing formatted numbers per tenant and counter."""

    def __init__(self, store: TenantStore, *, default_padding: int = DEFAULT_PADDING):
        self._store = store
        self._default_padding = default_padding

    def next(
        self,
        tenant_id: str,
        counter_field: str,
        prefix: str,
        prefix_field: str | None = None,
    ) -> str:
        """Reserve the next number for ``counter_field`` and return it formatted.

        ``prefix`` is used unless ``prefix_field`` names a prefix the tenant
        has configured on its settings document.
        """

        def reserve(snapshot: dict[str, Any] | None) -> tuple[dict[str, Any], str]:
            data = snapshot or {}
            seq = _positive_int(data.get(counter_field), 1)
            pad = _padding(data.get("padding"), self._default_padding)
            chosen_prefix = prefix
            if prefix_field and isinstance(data.get(prefix_field), str) and data[prefix_field]:
                chosen_prefix = data[prefix_field]

            changes: dict[str, Any] = {counter_field: seq + 1}
            if snapshot is None or "padding" not in snapshot:
                changes["padding"] = pad
            return changes, format_number(chosen_prefix, seq, pad)

        number = self._store.run_transaction(
            tenant_id, SETTINGS_COLLECTION, COUNTER_DOCUMENT, reserve,
        )
        logger.debug("Issued %s for tenant %s (%s)", number, tenant_id, counter_field)
        return number

    def next_for(self, tenant_id: str, spec: CounterSpec) -> str:
        return self.next(tenant_id, spec.counter_field, spec.default_prefix, spec.prefix_field)
