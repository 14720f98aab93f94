"""Tests for the tool registry and tool input schemas."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from clamp.tools import schemas
from clamp.tools.registry import TOOL_REGISTRY, Capability, ToolName, get_tool, tools_with

MUTATING = {"create_job", "update_job", "create_quote", "create_invoice"}


class TestRegistry:
    def test_every_tool_name_is_registered_once(self):
        names = [tool.name for tool in TOOL_REGISTRY]
        assert len(names) == len(set(names))
        assert set(names) == set(ToolName)

    def test_mutating_tools_are_tagged(self):
        assert {t.name.value for t in tools_with(Capability.MUTATE)} == MUTATING

    def test_navigation_is_a_search_capability(self):
        assert get_tool(ToolName.NAVIGATE_USER).capability is Capability.SEARCH

    def test_parse_unknown_name_returns_none(self):
        assert ToolName.parse("delete_everything") is None
        assert ToolName.parse("get_job") is ToolName.GET_JOB

    @pytest.mark.parametrize("tool", TOOL_REGISTRY, ids=lambda t: t.name.value)
    def test_anthropic_format(self, tool):
        spec = tool.to_anthropic()
        assert spec["name"] == tool.name.value
        assert spec["description"]
        schema = spec["input_schema"]
        assert schema["type"] == "object"
        assert "properties" in schema
        assert "$defs" not in str(schema)


class TestInputSchemas:
    def test_required_fields_are_advertised(self):
        schema = get_tool(ToolName.GET_JOB).input_schema
        assert schema["required"] == ["job_id"]

    def test_property_named_title_survives_title_stripping(self):
        schema = get_tool(ToolName.CREATE_JOB).input_schema
        assert "title" in schema["properties"]
        assert "title" not in schema
        assert "title" in schema["required"]

    def test_line_items_are_inlined(self):
        schema = get_tool(ToolName.CREATE_QUOTE).input_schema
        items = schema["properties"]["line_items"]["items"]
        assert items["type"] == "object"
        assert set(items["properties"]) == {"description", "quantity", "unit_price"}

    def test_job_updates_are_inlined(self):
        schema = get_tool(ToolName.UPDATE_JOB).input_schema
        updates = schema["properties"]["updates"]
        assert "$ref" not in updates
        assert set(updates["properties"]) == {"status", "title", "notes", "start", "end", "assignees"}

    def test_job_updates_drop_unknown_fields(self):
        parsed = schemas.UpdateJobInput.model_validate(
            {"job_id": "j1", "updates": {"status": "Completed", "secretField": "x"}},
        )
        assert parsed.updates.model_dump(exclude_unset=True) == {"status": "Completed"}

    @pytest.mark.parametrize("title", ["", "   "])
    def test_create_quote_requires_a_title(self, title):
        with pytest.raises(ValidationError):
            schemas.CreateQuoteInput.model_validate({"client_id": "c1", "title": title})

    def test_unknown_keys_are_ignored(self):
        parsed = schemas.SearchClientsInput.model_validate({"query": " smith ", "bogus": 1})
        assert parsed.query == "smith"

    @pytest.mark.parametrize("bad_id", ["", "   ", "a/b"])
    def test_document_ids_must_be_well_formed(self, bad_id):
        with pytest.raises(ValidationError):
            schemas.GetJobInput.model_validate({"job_id": bad_id})

    def test_optional_relation_accepts_empty_string(self):
        parsed = schemas.CreateJobInput.model_validate({"title": "Gutter clean", "client_id": ""})
        assert parsed.client_id == ""

    @pytest.mark.parametrize("field, value", [
        ("scheduled_date", "next tuesday"),
        ("scheduled_date", "2026-02-30"),
        ("scheduled_time", "9am"),
    ])
    def test_create_job_rejects_bad_date_or_time(self, field, value):
        with pytest.raises(ValidationError):
            schemas.CreateJobInput.model_validate({"title": "x", field: value})

    def test_search_jobs_rejects_bad_range(self):
        with pytest.raises(ValidationError):
            schemas.SearchJobsInput.model_validate({"date_from": "19/10/2026"})

    def test_line_item_defaults(self):
        item = schemas.LineItemInput.model_validate({"description": "Labour"})
        assert item.quantity == 1
        assert item.unit_price == 0
