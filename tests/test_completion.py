"""Tests for the Anthropic completion adapter."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from clamp.policy import ChatMode, active_tools
from clamp.services.completion import (
    AnthropicCompletionClient,
    CompletionError,
    stop_reason,
    wants_tools,
)


def _client(response=None, error=None):
    llm = MagicMock()
    bound = llm.bind_tools.return_value
    if error is not None:
        bound.invoke.side_effect = error
    else:
        bound.invoke.return_value = response
    return AnthropicCompletionClient("key", "claude-test", llm=llm), llm, bound


class TestStopReason:
    def test_reads_provider_stop_reason(self):
        msg = AIMessage(content="hi", response_metadata={"stop_reason": "end_turn"})
        assert stop_reason(msg) == "end_turn"
        assert not wants_tools(msg)

    def test_infers_tool_use_from_tool_calls(self):
        msg = AIMessage(content="", tool_calls=[{"id": "t1", "name": "get_job", "args": {}}])
        assert stop_reason(msg) == "tool_use"
        assert wants_tools(msg)


@patch("clamp.services.completion.metrics")
class TestAnthropicCompletionClient:
    def test_binds_active_tools_and_prepends_system_prompt(self, mock_metrics):
        response = AIMessage(content="ok", response_metadata={"stop_reason": "end_turn"})
        client, llm, bound = _client(response)
        tools = active_tools(ChatMode.SEARCH)

        result = client.complete("Be brief.", tools, [HumanMessage(content="unpaid invoices")])

        assert result is response
        [bound_tools] = llm.bind_tools.call_args[0]
        assert [t["name"] for t in bound_tools] == [t.name.value for t in tools]
        assert all("input_schema" in t for t in bound_tools)
        sent = bound.invoke.call_args[0][0]
        assert isinstance(sent[0], SystemMessage)
        assert sent[0].content == "Be brief."
        assert sent[1].content == "unpaid invoices"
        mock_metrics.record_success.assert_called_once()

    def test_provider_exception_becomes_completion_error(self, mock_metrics):
        client, _, _ = _client(error=TimeoutError("read timed out"))
        with pytest.raises(CompletionError):
            client.complete("sys", active_tools(ChatMode.CHAT), [HumanMessage(content="hi")])
        assert mock_metrics.record_failure.call_args[1]["error_type"] == "TimeoutError"

    def test_malformed_response_becomes_completion_error(self, mock_metrics):
        client, _, _ = _client("just a string")
        with pytest.raises(CompletionError):
            client.complete("sys", active_tools(ChatMode.CHAT), [HumanMessage(content="hi")])
        mock_metrics.record_failure.assert_called_once()

    def test_no_tools_skips_binding(self, mock_metrics):
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content="ok")
        client = AnthropicCompletionClient("key", "claude-test", llm=llm)
        client.complete("sys", [], [HumanMessage(content="hi")])
        llm.bind_tools.assert_not_called()
