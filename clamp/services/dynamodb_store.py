"""DynamoDB-backed tenant store.

Table layout (single table, provisioned outside this service):

    Partition key:
        - pk (string)   # "<tenant_id>#<collection>", e.g. "t_123#jobs"
    Sort key:
        - sk (string)   # document id

    Attributes:
        - <document fields>     # stored as-is (floats as Decimal)
        - version (number)      # optimistic-concurrency token, transactions only

Every key is derived from the tenant id, so a query for one tenant can
never return another tenant's items.

Transactions use optimistic concurrency: a consistent read, the caller's
pure transaction function, then a conditional ``put_item`` that only
succeeds if nobody else committed in between.  Conflicts are retried
with exponential backoff.
"""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from clamp.services.metrics import metrics
from clamp.services.store import (
    DocumentNotFoundError,
    T,
    TransactionConflictError,
    TransactionFn,
    new_document_id,
    require_tenant,
)

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_TRANSACTION_ATTEMPTS = 5
INITIAL_BACKOFF_SECONDS = 0.05

_KEY_FIELDS = ("pk", "sk", "version")


def _partition(tenant_id: str, collection: str) -> str:
    return f"{require_tenant(tenant_id)}#{collection}"


def _to_dynamo(value: Any) -> Any:
    """Convert floats to Decimal (DynamoDB rejects binary floats)."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    """Convert Decimals back to int/float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


def _to_document(item: dict[str, Any]) -> dict[str, Any]:
    body = {k: _from_dynamo(v) for k, v in item.items() if k not in _KEY_FIELDS}
    return {"id": item["sk"], **body}


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoTenantStore:
    """:class:`~clamp.services.store.TenantStore` on a single DynamoDB table."""

    def __init__(
        self,
        table_name: str = "clamp_tenant_data",
        region_name: str = "eu-west-2",
        *,
        table: Any | None = None,
    ):
        # The table resource is injectable for tests.
        self.table = table or boto3.resource("dynamodb", region_name=region_name).Table(table_name)

    # ── Reads ────────────────────────────────────────────────────────

    def get(self, tenant_id: str, collection: str, doc_id: str) -> dict[str, Any] | None:
        resp = self.table.get_item(Key={"pk": _partition(tenant_id, collection), "sk": doc_id})
        item = resp.get("Item")
        return _to_document(item) if item else None

    def query(
        self,
        tenant_id: str,
        collection: str,
        where: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(_partition(tenant_id, collection)),
        }
        if where:
            condition = None
            for field_name, value in where.items():
                clause = Attr(field_name).eq(_to_dynamo(value))
                condition = clause if condition is None else condition & clause
            kwargs["FilterExpression"] = condition

        items: list[dict[str, Any]] = []
        while True:
            resp = self.table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [_to_document(item) for item in items]

    # ── Writes ───────────────────────────────────────────────────────

    def add(self, tenant_id: str, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        item = {
            **_to_dynamo(data),
            "pk": _partition(tenant_id, collection),
            "sk": doc_id,
        }
        self.table.put_item(Item=item, ConditionExpression="attribute_not_exists(pk)")
        return doc_id

    def update(
        self, tenant_id: str, collection: str, doc_id: str, updates: dict[str, Any],
    ) -> None:
        if not updates:
            return
        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        assignments: list[str] = []
        for index, (field_name, value) in enumerate(updates.items()):
            names[f"#f{index}"] = field_name
            values[f":v{index}"] = _to_dynamo(value)
            assignments.append(f"#f{index} = :v{index}")
        try:
            self.table.update_item(
                Key={"pk": _partition(tenant_id, collection), "sk": doc_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(pk)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise DocumentNotFoundError(collection, doc_id) from exc
            raise

    # ── Transactions ─────────────────────────────────────────────────

    def run_transaction(
        self, tenant_id: str, collection: str, doc_id: str, fn: TransactionFn[T],
    ) -> T:
        key = {"pk": _partition(tenant_id, collection), "sk": doc_id}

        for attempt in range(1, MAX_TRANSACTION_ATTEMPTS + 1):
            resp = self.table.get_item(Key=key, ConsistentRead=True)
            item = resp.get("Item")
            snapshot = _to_document(item) if item else None
            if snapshot is not None:
                snapshot.pop("id")

            changes, result = fn(snapshot)

            new_item = dict(item or {})
            new_item.update(_to_dynamo(changes))
            new_item.update(key)
            if item is None:
                new_item["version"] = 1
                condition: dict[str, Any] = {"ConditionExpression": "attribute_not_exists(pk)"}
            else:
                current_version = item.get("version", 0)
                new_item["version"] = current_version + 1
                if "version" in item:
                    condition = {"ConditionExpression": Attr("version").eq(current_version)}
                else:
                    condition = {"ConditionExpression": Attr("version").not_exists()}

            try:
                self.table.put_item(Item=new_item, **condition)
                return result
            except ClientError as exc:
                if not _is_conditional_failure(exc):
                    raise
                metrics.record_conflict(collection)
                backoff = INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))
                logger.warning(
                    "Transaction on %s/%s conflicted (attempt %d/%d). Retrying in %.2fs…",
                    collection, doc_id, attempt, MAX_TRANSACTION_ATTEMPTS, backoff,
                )
                time.sleep(backoff)

        raise TransactionConflictError(
            f"Transaction on {collection}/{doc_id} failed after "
            f"{MAX_TRANSACTION_ATTEMPTS} attempts"
        )
