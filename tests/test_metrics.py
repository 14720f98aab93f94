"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from clamp.services.metrics import MetricsClient


def _dim_map(metric: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


class TestMetricsRecording:
    """Verify that the record_* helpers buffer the right data."""

    def _make_client(self, *, enabled: bool = False) -> MetricsClient:
        with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
            return MetricsClient()

    def test_record_success_appends_two_data_points(self):
        client = self._make_client()
        client.record_success("anthropic", "clamp_complete", latency_ms=812.0)
        assert len(client._buffer) == 2
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"ExternalAPI/RequestCount", "ExternalAPI/Latency"}

    def test_record_failure_without_latency_skips_latency_point(self):
        client = self._make_client()
        client.record_failure("anthropic", "clamp_complete", error_type="APITimeoutError")
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"ExternalAPI/RequestCount", "ExternalAPI/ErrorCount"}

    def test_record_failure_with_latency_appends_three_data_points(self):
        client = self._make_client()
        client.record_failure(
            "anthropic", "clamp_complete",
            error_type="InternalServerError", latency_ms=500.0,
        )
        assert len(client._buffer) == 3

    def test_failure_dimensions_include_error_type(self):
        client = self._make_client()
        client.record_failure("anthropic", "clamp_complete", error_type="BadRequestError")
        error_metric = next(
            m for m in client._buffer if m["MetricName"] == "ExternalAPI/ErrorCount"
        )
        assert _dim_map(error_metric)["ErrorType"] == "BadRequestError"

    def test_tool_call_dimensions(self):
        client = self._make_client()
        client.record_tool_call("search_jobs", ok=False, latency_ms=3.2)
        count = next(m for m in client._buffer if m["MetricName"] == "Tools/ExecutionCount")
        assert _dim_map(count) == {"Tool": "search_jobs", "Status": "error"}
        latency = next(m for m in client._buffer if m["MetricName"] == "Tools/Latency")
        assert latency["Value"] == 3.2

    def test_record_conflict(self):
        client = self._make_client()
        client.record_conflict("settings")
        assert len(client._buffer) == 1
        metric = client._buffer[0]
        assert metric["MetricName"] == "Store/TransactionConflicts"
        assert _dim_map(metric) == {"Collection": "settings"}


class TestMetricsFlush:
    """Verify flush behaviour with and without CloudWatch enabled."""

    def test_flush_when_disabled_sends_nothing_and_clears(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "false"}):
            client = MetricsClient()
        client.record_success("anthropic", "clamp_complete", latency_ms=100.0)
        assert client.flush() == 0
        assert client._buffer == []

    @patch("clamp.services.metrics.MetricsClient._start_flush_thread")
    def test_flush_when_enabled_calls_put_metric_data(self, _mock_thread):
        with patch.dict("os.environ", {"METRICS_ENABLED": "true"}):
            client = MetricsClient()

        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_tool_call("get_schedule", ok=True, latency_ms=10.0)
        sent = client.flush()

        assert sent == 2
        mock_cw.put_metric_data.assert_called_once()
        kwargs = mock_cw.put_metric_data.call_args[1]
        assert kwargs["Namespace"] == "Clamp"
        assert len(kwargs["MetricData"]) == 2

    @patch("clamp.services.metrics.MetricsClient._start_flush_thread")
    def test_flush_error_is_logged_not_raised(self, _mock_thread):
        with patch.dict("os.environ", {"METRICS_ENABLED": "true"}):
            client = MetricsClient()
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")

        client.record_conflict("settings")
        assert client.flush() == 0

    def test_flush_empty_buffer_returns_zero(self):
        with patch.dict("os.environ", {"METRICS_ENABLED": "false"}):
            client = MetricsClient()
        assert client.flush() == 0
