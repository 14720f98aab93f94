"""Tests for mode policy, prompts and request limits."""

from __future__ import annotations

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from clamp.config import ClampSettings
from clamp.policy import (
    ChatMode,
    ConversationLimitError,
    InvalidRequestError,
    SessionConfig,
    active_tools,
    parse_mode,
    session_config,
    system_prompt,
    validate_history,
)
from clamp.tools.registry import TOOL_REGISTRY, Capability

NOW = datetime(2026, 10, 19, 1, 0, tzinfo=UTC)
AUCKLAND = ZoneInfo("Pacific/Auckland")


class TestActiveTools:
    def test_chat_mode_gets_every_tool(self):
        assert active_tools(ChatMode.CHAT) == list(TOOL_REGISTRY)

    def test_search_mode_never_gets_mutating_tools(self):
        tools = active_tools(ChatMode.SEARCH)
        assert tools
        assert all(t.capability is Capability.SEARCH for t in tools)
        names = {t.name.value for t in tools}
        assert {"search_invoices", "search_clients", "navigate_user"} <= names
        assert not names & {"create_job", "update_job", "create_quote", "create_invoice"}


class TestSystemPrompt:
    def test_chat_prompt_has_persona_and_local_time(self):
        prompt = system_prompt(ChatMode.CHAT, NOW, AUCKLAND)
        assert "Clamp" in prompt
        assert "Monday, 19 October 2026" in prompt
        assert "14:00" in prompt
        assert "Pacific/Auckland" in prompt

    def test_search_prompt_demands_one_line(self):
        prompt = system_prompt(ChatMode.SEARCH, NOW, AUCKLAND)
        assert "one line" in prompt.lower()
        assert "no follow-up questions" in prompt.lower()

    def test_prompt_is_pure_for_a_given_time(self):
        assert system_prompt(ChatMode.CHAT, NOW, AUCKLAND) == system_prompt(ChatMode.CHAT, NOW, AUCKLAND)
        assert system_prompt(ChatMode.CHAT, NOW, AUCKLAND) != system_prompt(ChatMode.SEARCH, NOW, AUCKLAND)


class TestSessionConfig:
    def test_defaults(self):
        config = session_config("chat", ClampSettings())
        assert config == SessionConfig(ChatMode.CHAT, 50, 8)

    def test_caps_come_from_settings(self):
        settings = ClampSettings(message_count_cap=10, tool_iteration_cap=3)
        config = session_config(ChatMode.SEARCH, settings)
        assert config.mode is ChatMode.SEARCH
        assert config.message_count_cap == 10
        assert config.tool_iteration_cap == 3

    def test_missing_mode_defaults_to_chat(self):
        assert parse_mode(None) is ChatMode.CHAT
        assert parse_mode("") is ChatMode.CHAT

    def test_unknown_mode_is_invalid(self):
        with pytest.raises(InvalidRequestError):
            parse_mode("admin")


class TestValidateHistory:
    def test_empty_history_is_invalid(self):
        with pytest.raises(InvalidRequestError):
            validate_history([], SessionConfig())

    def test_history_at_cap_is_allowed(self):
        validate_history([{"role": "user", "content": "hi"}] * 50, SessionConfig())

    def test_history_over_cap_hits_limit(self):
        with pytest.raises(ConversationLimitError) as exc_info:
            validate_history([{"role": "user", "content": "hi"}] * 51, SessionConfig())
        assert exc_info.value.count == 51
        assert exc_info.value.cap == 50
