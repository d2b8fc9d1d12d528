"""JSON:API helpers and text formatters."""

from __future__ import annotations

import pytest
from productive_time_mcp.formatters import (format_deals, format_elapsed, format_hours,
                                            format_project_detail, format_projects,
                                            format_services, format_time_entries, format_timers,
                                            hours_to_minutes, split_seconds)
from productive_time_mcp.jsonapi import build_included_index, related, to_one


@pytest.mark.parametrize(
    ("hours", "minutes"),
    [(1.5, 90), (1.33, 80), (2, 120), (0, 0), (0.25, 15), (0.375, 23)],
)
def test_hours_to_minutes_rounds_to_nearest(hours: float, minutes: int) -> None:
    assert hours_to_minutes(hours) == minutes


def test_format_hours_drops_trailing_zero() -> None:
    assert format_hours(2) == "2"
    assert format_hours(2.0) == "2"
    assert format_hours(1.5) == "1.5"


def test_format_hours_keeps_supplied_precision() -> None:
    assert format_hours(1.3333333) == "1.3333333"
    assert format_hours(12345678) == "12345678"
    assert format_hours(0.125) == "0.125"


def test_split_seconds_floors_components() -> None:
    assert split_seconds(3 * 3600 + 25 * 60 + 59) == (3, 25)
    assert split_seconds(None) == (0, 0)
    assert format_elapsed(5400) == "1h 30m"


def test_included_index_keys_by_type_and_id() -> None:
    doc = {
        "data": [],
        "included": [
            {"type": "services", "id": "1", "attributes": {"name": "Dev"}},
            {"type": "tasks", "id": 1, "attributes": {"title": "T"}},
            {"bogus": True},
        ],
    }

    index = build_included_index(doc)

    assert set(index) == {"services:1", "tasks:1"}
    resource = {"relationships": {"service": {"data": {"type": "services", "id": "1"}}}}
    assert related(resource, "service", index)["attributes"]["name"] == "Dev"
    assert related(resource, "task", index) is None
    assert related({"relationships": {"service": {"data": None}}}, "service", index) is None


def test_to_one_builds_relationship_object() -> None:
    assert to_one("people", "7") == {"data": {"type": "people", "id": "7"}}


def test_format_projects_lists_names_and_ids() -> None:
    doc = {"data": [{"id": "1", "attributes": {"name": "Website"}}, {"id": "2", "attributes": {}}]}

    assert format_projects(doc) == "**Projects:**\n\n- **Website** (ID: 1)\n- **Unnamed** (ID: 2)\n"
    assert format_projects({"data": []}) == "No projects found."


def test_format_project_detail_resolves_company_and_manager() -> None:
    doc = {
        "data": {
            "id": "10",
            "attributes": {
                "name": "Website",
                "project_number": "P-7",
                "status": 1,
                "billable": False,
                "started_at": "2026-01-01",
            },
            "relationships": {
                "company": {"data": {"type": "companies", "id": "3"}},
                "project_manager": {"data": {"type": "people", "id": "4"}},
            },
        },
        "included": [
            {"type": "companies", "id": "3", "attributes": {"name": "Acme"}},
            {"type": "people", "id": "4", "attributes": {"first_name": "Ada", "last_name": "Lovelace"}},
        ],
    }

    text = format_project_detail(doc)

    assert text.startswith("**Project: Website**\n\n- **ID:** 10\n")
    assert "- **Company:** Acme\n" in text
    assert "- **Project Manager:** Ada Lovelace\n" in text
    assert "- **Project Number:** P-7\n" in text
    assert "- **Status:** Active\n" in text
    assert "- **Billable:** No\n" in text
    assert "- **Started:** 2026-01-01\n" in text
    assert "Ended" not in text
    assert "Budget Total" not in text
    assert text.endswith("Use `list_deals` with search to find deals/budgets for this project.")


def test_format_project_detail_omits_unresolved_relations() -> None:
    doc = {
        "data": {
            "id": "10",
            "attributes": {"name": "X", "status": 5},
            "relationships": {"company": {"data": {"type": "companies", "id": "3"}}},
        }
    }

    text = format_project_detail(doc)

    assert "Company" not in text
    assert "Project Manager" not in text
    assert "- **Status:** Status 5\n" in text


def test_format_deals_includes_project_and_date_range() -> None:
    doc = {
        "data": [
            {
                "id": "20",
                "attributes": {"name": "Retainer", "date": "2026-01-01", "end_date": "2026-12-31"},
                "relationships": {"project": {"data": {"type": "projects", "id": "10"}}},
            },
            {"id": "21", "attributes": {"name": "Open"}},
        ],
        "included": [{"type": "projects", "id": "10", "attributes": {"name": "Website"}}],
    }

    text = format_deals(doc)

    assert "- **Retainer** (Deal ID: 20) (Project: Website)\n  Date Range: 2026-01-01 to 2026-12-31\n" in text
    assert "- **Open** (Deal ID: 21)\n  Date Range: No start date to No end date\n" in text
    assert format_deals(None) == "No deals found."


def test_format_services_ends_with_hint() -> None:
    doc = {"data": [{"id": "30", "attributes": {"name": "Design"}}]}

    text = format_services(doc)

    assert "- **Design** (Service ID: 30)" in text
    assert text.endswith("Use a Service ID with create_time_entry to log time.")
    assert format_services({"data": []}).startswith("No services found.")


def test_format_time_entries_resolves_service_names() -> None:
    doc = {
        "data": [
            {
                "id": "40",
                "attributes": {"date": "2026-03-09", "time": 90, "note": "standup"},
                "relationships": {"service": {"data": {"type": "services", "id": "30"}}},
            },
            {"id": "41", "attributes": {"date": "2026-03-08", "time": 30}},
        ],
        "included": [{"type": "services", "id": "30", "attributes": {"name": "Design"}}],
    }

    text = format_time_entries(doc, days=7)

    assert text.startswith("**Time Entries (last 7 days):**\n\n")
    assert "- **2026-03-09** | 1.5h | Design | standup (ID: 40)\n" in text
    assert "- **2026-03-08** | 0.5h | Unknown service (ID: 41)\n" in text
    assert format_time_entries({"data": []}, days=3) == "No time entries found in the last 3 days."


def test_format_timers_reports_elapsed_time() -> None:
    doc = {"data": [{"id": "50", "attributes": {"started_at": "2026-03-10T09:00:00Z", "total_time": 3900}}]}

    text = format_timers(doc)

    assert text == "**Active Timers:**\n\n- Timer 50: Running for 1h 5m (started: 2026-03-10T09:00:00Z)\n"
    assert format_timers({"data": []}) == "No active timers."
