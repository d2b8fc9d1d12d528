"""Markdown renderers for Productive API responses.

Each function takes a decoded JSON:API document and returns the text handed back to the
agent. Empty collections render as a single explanatory sentence.
"""

from __future__ import annotations

import math
from typing import Any

from .jsonapi import attributes, build_included_index, primary_data, primary_list, related

PROJECT_STATUS_NAMES = {1: "Active", 2: "Archived"}


def hours_to_minutes(hours: float) -> int:
    """Convert hours to whole minutes, rounding halves up (1.5 -> 90, 1.33 -> 80)."""
    return int(math.floor(hours * 60 + 0.5))


def format_hours(hours: float) -> str:
    """Render an hours value the way the agent supplied it (2 -> "2", 1.5 -> "1.5")."""
    if float(hours).is_integer():
        return str(int(hours))
    return repr(hours)


def split_seconds(total_seconds: Any) -> tuple[int, int]:
    """Split a seconds counter into whole (hours, minutes)."""
    try:
        total = int(total_seconds or 0)
    except (TypeError, ValueError):
        total = 0
    return total // 3600, (total % 3600) // 60


def format_elapsed(total_seconds: Any) -> str:
    hours, minutes = split_seconds(total_seconds)
    return f"{hours}h {minutes}m"


def format_projects(document: dict[str, Any] | None) -> str:
    projects = primary_list(document)
    if not projects:
        return "No projects found."

    lines = ["**Projects:**", ""]
    for project in projects:
        name = attributes(project).get("name") or "Unnamed"
        lines.append(f"- **{name}** (ID: {project.get('id')})")
    return "\n".join(lines) + "\n"


def _person_name(person: dict[str, Any]) -> str:
    attrs = attributes(person)
    full = f"{attrs.get('first_name') or ''} {attrs.get('last_name') or ''}".strip()
    return full or "Unknown"


def format_project_detail(document: dict[str, Any] | None) -> str:
    """Render a single project with company and project manager resolved from ``included``."""
    project = primary_data(document)
    if not isinstance(project, dict):
        project = {}
    attrs = attributes(project)
    index = build_included_index(document)

    company = related(project, "company", index)
    company_name = (attributes(company).get("name") or "Unknown") if company else ""
    manager = related(project, "project_manager", index)
    manager_name = _person_name(manager) if manager else ""

    lines = [f"**Project: {attrs.get('name') or 'Unnamed'}**", ""]
    lines.append(f"- **ID:** {project.get('id')}")
    if company_name:
        lines.append(f"- **Company:** {company_name}")
    if manager_name:
        lines.append(f"- **Project Manager:** {manager_name}")
    if attrs.get("project_number"):
        lines.append(f"- **Project Number:** {attrs['project_number']}")
    status = attrs.get("status")
    if status is not None:
        lines.append(f"- **Status:** {PROJECT_STATUS_NAMES.get(status, f'Status {status}')}")
    if attrs.get("budget_total"):
        lines.append(f"- **Budget Total:** {attrs['budget_total']}")
    if attrs.get("billable") is not None:
        lines.append(f"- **Billable:** {'Yes' if attrs['billable'] else 'No'}")
    if attrs.get("started_at"):
        lines.append(f"- **Started:** {attrs['started_at']}")
    if attrs.get("ended_at"):
        lines.append(f"- **Ended:** {attrs['ended_at']}")
    lines.append("")
    lines.append("Use `list_deals` with search to find deals/budgets for this project.")
    return "\n".join(lines)


def format_deals(document: dict[str, Any] | None) -> str:
    deals = primary_list(document)
    if not deals:
        return "No deals found."
    index = build_included_index(document)

    lines = ["**Deals:**", ""]
    for deal in deals:
        attrs = attributes(deal)
        name = attrs.get("name") or "Unnamed"
        project = related(deal, "project", index)
        project_part = f" (Project: {attributes(project).get('name') or 'Unknown'})" if project else ""
        lines.append(f"- **{name}** (Deal ID: {deal.get('id')}){project_part}")
        start = attrs.get("date") or "No start date"
        end = attrs.get("end_date") or "No end date"
        lines.append(f"  Date Range: {start} to {end}")
    return "\n".join(lines) + "\n"


def format_services(document: dict[str, Any] | None) -> str:
    services = primary_list(document)
    if not services:
        return "No services found. Try using list_deals first to find the correct deal ID."

    lines = ["**Services:**", ""]
    for service in services:
        name = attributes(service).get("name") or "Unnamed"
        lines.append(f"- **{name}** (Service ID: {service.get('id')})")
    lines.append("")
    lines.append("Use a Service ID with create_time_entry to log time.")
    return "\n".join(lines)


def format_time_entries(document: dict[str, Any] | None, *, days: int) -> str:
    entries = primary_list(document)
    if not entries:
        return f"No time entries found in the last {days} days."
    index = build_included_index(document)

    lines = [f"**Time Entries (last {days} days):**", ""]
    for entry in entries:
        attrs = attributes(entry)
        entry_date = attrs.get("date") or "Unknown date"
        hours = (attrs.get("time") or 0) / 60
        service = related(entry, "service", index)
        service_name = (attributes(service).get("name") or "Unknown") if service else "Unknown service"

        row = f"- **{entry_date}** | {hours:.1f}h | {service_name}"
        note = attrs.get("note")
        if note:
            row += f" | {note}"
        row += f" (ID: {entry.get('id')})"
        lines.append(row)
    return "\n".join(lines) + "\n"


def format_timers(document: dict[str, Any] | None) -> str:
    timers = primary_list(document)
    if not timers:
        return "No active timers."

    lines = ["**Active Timers:**", ""]
    for timer in timers:
        attrs = attributes(timer)
        started_at = attrs.get("started_at") or "Unknown"
        elapsed = format_elapsed(attrs.get("total_time"))
        lines.append(f"- Timer {timer.get('id')}: Running for {elapsed} (started: {started_at})")
    return "\n".join(lines) + "\n"
