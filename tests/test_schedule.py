"""Tests for schedule lookup and navigation."""

from __future__ import annotations

from datetime import date

import pytest

from clamp.tools import schemas
from clamp.tools.schedule import PeriodError, get_schedule, navigate_user, resolve_period
from tests.conftest import TENANT_A, TENANT_B

MONDAY = date(2026, 10, 19)
THURSDAY = date(2026, 10, 22)


class TestResolvePeriod:
    @pytest.mark.parametrize("keyword, expected", [
        ("", (date(2026, 10, 22), date(2026, 10, 23))),
        ("today", (date(2026, 10, 22), date(2026, 10, 23))),
        ("Tomorrow", (date(2026, 10, 23), date(2026, 10, 24))),
        ("yesterday", (date(2026, 10, 21), date(2026, 10, 22))),
        ("this_week", (date(2026, 10, 19), date(2026, 10, 26))),
        ("next_week", (date(2026, 10, 26), date(2026, 11, 2))),
        ("2026-12-25", (date(2026, 12, 25), date(2026, 12, 26))),
    ])
    def test_keywords(self, keyword, expected):
        assert resolve_period(THURSDAY, keyword) == expected

    def test_week_starts_on_monday_even_on_sunday(self):
        sunday = date(2026, 10, 25)
        assert resolve_period(sunday, "this_week") == (MONDAY, date(2026, 10, 26))

    def test_explicit_range_is_inclusive(self):
        assert resolve_period(MONDAY, "", "2026-10-01", "2026-10-03") == (
            date(2026, 10, 1), date(2026, 10, 4),
        )

    def test_keyword_wins_over_range(self):
        assert resolve_period(MONDAY, "tomorrow", "2026-10-01", "2026-10-03") == (
            date(2026, 10, 20), date(2026, 10, 21),
        )

    def test_reversed_range_is_rejected(self):
        with pytest.raises(PeriodError):
            resolve_period(MONDAY, "", "2026-10-05", "2026-10-01")

    def test_unknown_keyword_is_rejected(self):
        with pytest.raises(PeriodError, match="Unrecognised date"):
            resolve_period(MONDAY, "someday")


class TestGetSchedule:
    def test_today_is_sorted_by_start(self, tool_context):
        jobs = get_schedule(tool_context, TENANT_A, schemas.GetScheduleInput(date="today"))
        # j6 08:00, j2 11:30; j5 is archived.
        assert [j["id"] for j in jobs] == ["j6", "j2"]
        assert jobs[0]["jobNumber"] == "JOB-0010"

    def test_tomorrow(self, tool_context):
        jobs = get_schedule(tool_context, TENANT_A, schemas.GetScheduleInput(date="tomorrow"))
        assert [j["id"] for j in jobs] == ["j1"]

    def test_last_week_range(self, tool_context):
        params = schemas.GetScheduleInput(date_from="2026-10-12", date_to="2026-10-18")
        assert [j["id"] for j in get_schedule(tool_context, TENANT_A, params)] == ["j4"]

    def test_team_member_filter(self, tool_context):
        params = schemas.GetScheduleInput(date="this_week", team_member_id="s1")
        assert [j["id"] for j in get_schedule(tool_context, TENANT_A, params)] == ["j6", "j1"]

    def test_scoped_to_tenant(self, tool_context):
        jobs = get_schedule(tool_context, TENANT_B, schemas.GetScheduleInput())
        assert [j["id"] for j in jobs] == ["jb1"]

    def test_bad_keyword_is_an_error_result(self, tool_context):
        result = get_schedule(tool_context, TENANT_A, schemas.GetScheduleInput(date="fortnight"))
        assert result == {"error": "Unrecognised date: fortnight"}

    def test_result_is_capped(self, tool_context, store):
        store.seed(TENANT_A, "jobs", [
            {"title": f"Job {n}", "start": f"2026-10-19T0{n % 9}:00:00.000Z"} for n in range(30)
        ])
        jobs = get_schedule(tool_context, TENANT_A, schemas.GetScheduleInput(date="today"))
        assert len(jobs) == 20


class TestNavigateUser:
    def test_normalises_view_and_entity(self):
        params = schemas.NavigateUserInput(view=" Jobs ", entity_id="j1", entity_type="Job")
        assert navigate_user(params) == {"view": "jobs", "entityId": "j1", "entityType": "job"}

    def test_entity_is_optional(self):
        assert navigate_user(schemas.NavigateUserInput(view="schedule")) == {
            "view": "schedule", "entityId": None, "entityType": None,
        }
