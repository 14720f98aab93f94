"""Tenant-scoped document store.

Every read and write is addressed by ``(tenant_id, collection, doc_id)``.
There is no way to obtain an unscoped handle: a store method called
without a tenant id raises ``ValueError`` before touching any data.

Two implementations ship with the service:

* :class:`InMemoryTenantStore`: a lock-guarded dict store used by the
  test-suite and the development CLI.
* :class:`~clamp.services.dynamodb_store.DynamoTenantStore`: the
  production DynamoDB table.

Transactions
────────────
``run_transaction`` performs an atomic read-modify-write of a single
document.  The transaction function receives the current snapshot (or
``None`` if the document does not exist yet) and returns a tuple
``(fields_to_merge, result)``.  Implementations may call the function more
than once when they detect contention, so it must not have side effects.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TransactionFn = Callable[[dict[str, Any] | None], tuple[dict[str, Any], T]]


class StoreError(Exception):
    """Base class for data-store failures."""


class DocumentNotFoundError(StoreError):
    """Raised when an update targets a document that does not exist."""

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} does not exist")


class TransactionConflictError(StoreError):
    """Raised when a transaction cannot commit after all retries."""


class TenantStore(Protocol):
    """Narrow read/query/write/transaction interface keyed by tenant."""

    def get(self, tenant_id: str, collection: str, doc_id: str) -> dict[str, Any] | None: ...

    def query(
        self,
        tenant_id: str,
        collection: str,
        where: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]: ...

    def add(self, tenant_id: str, collection: str, data: dict[str, Any]) -> str: ...

    def update(
        self, tenant_id: str, collection: str, doc_id: str, updates: dict[str, Any],
    ) -> None: ...

    def run_transaction(
        self, tenant_id: str, collection: str, doc_id: str, fn: TransactionFn[T],
    ) -> T: ...


def require_tenant(tenant_id: str) -> str:
    """Reject empty tenant ids so a store call can never go unscoped."""
    if not isinstance(tenant_id, str) or not tenant_id.strip():
        raise ValueError("tenant_id is required for every store operation")
    return tenant_id


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


def _matches(doc: dict[str, Any], where: dict[str, Any] | None) -> bool:
    if not where:
        return True
    return all(doc.get(key) == value for key, value in where.items())


class InMemoryTenantStore:
    """Thread-safe in-process implementation of :class:`TenantStore`.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state behind the lock.
    """

    def __init__(self) -> None:
        # tenant → collection → doc_id → document
        self._data: dict[str, dict[str, dict[str, dict[str, Any]]]] = {}
        self._lock = threading.RLock()

    def _collection(self, tenant_id: str, collection: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(require_tenant(tenant_id), {}).setdefault(collection, {})

    # ── Reads ────────────────────────────────────────────────────────

    def get(self, tenant_id: str, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._collection(tenant_id, collection).get(doc_id)
            if doc is None:
                return None
            return {"id": doc_id, **copy.deepcopy(doc)}

    def query(
        self,
        tenant_id: str,
        collection: str,
        where: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        with self._lock:
            docs = self._collection(tenant_id, collection)
            return [
                {"id": doc_id, **copy.deepcopy(doc)}
                for doc_id, doc in docs.items()
                if _matches(doc, where)
            ]

    # ── Writes ───────────────────────────────────────────────────────

    def add(self, tenant_id: str, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        with self._lock:
            self._collection(tenant_id, collection)[doc_id] = copy.deepcopy(data)
        logger.debug("Store: added %s/%s for tenant %s", collection, doc_id, tenant_id)
        return doc_id

    def update(
        self, tenant_id: str, collection: str, doc_id: str, updates: dict[str, Any],
    ) -> None:
        with self._lock:
            docs = self._collection(tenant_id, collection)
            if doc_id not in docs:
                raise DocumentNotFoundError(collection, doc_id)
            docs[doc_id].update(copy.deepcopy(updates))

    def run_transaction(
        self, tenant_id: str, collection: str, doc_id: str, fn: TransactionFn[T],
    ) -> T:
        # The lock is held for the whole read → compute → write sequence,
        # which serialises concurrent transactions on this process.
        with self._lock:
            docs = self._collection(tenant_id, collection)
            current = docs.get(doc_id)
            snapshot = copy.deepcopy(current) if current is not None else None
            changes, result = fn(snapshot)
            merged = dict(current or {})
            merged.update(copy.deepcopy(changes))
            docs[doc_id] = merged
            return result

    # ── Helpers ──────────────────────────────────────────────────────

    def seed(self, tenant_id: str, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        """Insert fixture documents.  A document's ``id`` key is used as its id if present."""
        ids: list[str] = []
        with self._lock:
            target = self._collection(tenant_id, collection)
            for doc in docs:
                body = copy.deepcopy(doc)
                doc_id = str(body.pop("id", None) or new_document_id())
                target[doc_id] = body
                ids.append(doc_id)
        return ids
