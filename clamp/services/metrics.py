"""CloudWatch custom metrics emitter with background batching.

Publishes per-call metrics for the assistant's moving parts:

* completion-API calls (count, latency, errors by exception type)
* tool executions (count and errors per tool)
* optimistic-transaction conflicts on the tenant store

Metrics are collected in a thread-safe in-memory buffer.  When
``METRICS_ENABLED=true`` a daemon thread flushes the buffer to CloudWatch
every ``FLUSH_INTERVAL_SECONDS``; otherwise the data points are only
logged at DEBUG level and dropped on flush.

Usage
-----
>>> from clamp.services.metrics import metrics
>>> metrics.record_success("anthropic", "clamp_complete", latency_ms=812.0)
>>> metrics.record_tool_call("search_jobs", ok=True, latency_ms=14.2)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "Clamp"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── External calls ───────────────────────────────────────────────

    def record_success(self, service: str, operation: str, latency_ms: float) -> None:
        """Record a successful call to an external service."""
        now = datetime.now(UTC)
        self._append(self._point(
            "ExternalAPI/RequestCount", 1, "Count", now,
            _dims(Service=service, Status="success"),
        ))
        self._append(self._point(
            "ExternalAPI/Latency", latency_ms, "Milliseconds", now,
            _dims(Service=service, Operation=operation),
        ))
        logger.debug("Metric: %s %s success latency=%.1fms", service, operation, latency_ms)

    def record_failure(
        self,
        service: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed call to an external service."""
        now = datetime.now(UTC)
        self._append(self._point(
            "ExternalAPI/RequestCount", 1, "Count", now,
            _dims(Service=service, Status="failure"),
        ))
        self._append(self._point(
            "ExternalAPI/ErrorCount", 1, "Count", now,
            _dims(Service=service, ErrorType=error_type),
        ))
        if latency_ms > 0:
            self._append(self._point(
                "ExternalAPI/Latency", latency_ms, "Milliseconds", now,
                _dims(Service=service, Operation=operation),
            ))
        logger.debug(
            "Metric: %s %s failure error=%s latency=%.1fms",
            service, operation, error_type, latency_ms,
        )

    # ── Tools & store ────────────────────────────────────────────────

    def record_tool_call(self, tool_name: str, *, ok: bool, latency_ms: float) -> None:
        """Record one tool execution; ``ok=False`` for error results."""
        now = datetime.now(UTC)
        status = "success" if ok else "error"
        self._append(self._point(
            "Tools/ExecutionCount", 1, "Count", now,
            _dims(Tool=tool_name, Status=status),
        ))
        self._append(self._point(
            "Tools/Latency", latency_ms, "Milliseconds", now, _dims(Tool=tool_name),
        ))
        logger.debug("Metric: tool %s %s latency=%.1fms", tool_name, status, latency_ms)

    def record_conflict(self, collection: str) -> None:
        """Record an optimistic-concurrency conflict that forced a retry."""
        self._append(self._point(
            "Store/TransactionConflicts", 1, "Count", datetime.now(UTC),
            _dims(Collection=collection),
        ))
        logger.debug("Metric: transaction conflict on %s", collection)

    # ── Flushing ─────────────────────────────────────────────────────

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ─────────────────────────────────────────────────────

    @staticmethod
    def _point(
        name: str,
        value: float,
        unit: str,
        timestamp: datetime,
        dimensions: list[dict[str, str]],
    ) -> dict[str, Any]:
        return {
            "MetricName": name,
            "Dimensions": dimensions,
            "Timestamp": timestamp,
            "Value": value,
            "Unit": unit,
        }

    def _append(self, metric_data: dict[str, Any]) -> None:
        with self._lock:
            self._buffer.append(metric_data)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
