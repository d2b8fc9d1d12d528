"""Tool registry and dispatch layer.

This module:
- defines the tools (public contract surface)
- builds a per-server runtime from host-provided config
- checks configuration completeness before any network call
- maps each tool onto one or two Productive API requests and renders the result as text
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .config import AppConfig, load_config_from_env
from .errors import SafeError, is_flagged, safe_error_to_text, user_input_error
from .formatters import (format_deals, format_elapsed, format_hours, format_project_detail,
                         format_projects, format_services, format_time_entries, format_timers,
                         hours_to_minutes)
from .jsonapi import attributes, primary_data, to_one
from .productive_client import ProductiveClient

logger = logging.getLogger(__name__)

_ID = {"type": ["string", "integer"], "minLength": 1}

TOOL_METADATA: dict[str, dict[str, Any]] = {
    "list_projects": {
        "description": "List projects from Productive. Use to find project IDs before listing services.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "status": {
                    "type": "string",
                    "enum": ["active", "archived", "all"],
                    "default": "active",
                    "description": "Filter by status: 'active', 'archived', or 'all' (default: active)",
                },
                "search": {"type": "string", "description": "Search term to filter projects by name"},
            },
            "additionalProperties": False,
        },
    },
    "get_project": {
        "description": (
            "Get detailed information about a specific project by ID. Returns project details "
            "including company, project manager, status, and budget info."
        ),
        "inputSchema": {
            "type": "object",
            "required": ["project_id"],
            "properties": {
                "project_id": {**_ID, "description": "The ID of the project to retrieve"},
            },
            "additionalProperties": False,
        },
    },
    "list_deals": {
        "description": (
            "List deals (budgets/contracts) from Productive. Use this to find the deal ID, then use "
            "list_services with the deal_id to find services to log time against."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "search": {"type": "string", "description": "Search term to filter deals by name"},
            },
            "additionalProperties": False,
        },
    },
    "list_services": {
        "description": (
            "List services (billable activities) from Productive. Services are what you log time "
            "against. Use deal_id to filter services for a specific deal/budget."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "deal_id": {**_ID, "description": "Filter services by deal ID (use list_deals to find deal IDs)"},
                "search": {"type": "string", "description": "Search term to filter services by name"},
            },
            "additionalProperties": False,
        },
    },
    "list_time_entries": {
        "description": "List your recent time entries from Productive.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "days": {
                    "type": "integer",
                    "minimum": 1,
                    "default": 7,
                    "description": "Number of days to look back (default: 7)",
                },
                "project_id": {**_ID, "description": "Filter by project ID"},
            },
            "additionalProperties": False,
        },
    },
    "create_time_entry": {
        "description": "Create a new time entry in Productive. Requires a service ID (use list_services to find one).",
        "inputSchema": {
            "type": "object",
            "required": ["service_id", "hours"],
            "properties": {
                "service_id": {**_ID, "description": "The ID of the service to log time against"},
                "hours": {
                    "type": "number",
                    "minimum": 0,
                    "description": "Number of hours to log (e.g., 1.5 for 1 hour 30 minutes)",
                },
                "entry_date": {"type": "string", "description": "Date in YYYY-MM-DD format (default: today)"},
                "note": {"type": "string", "description": "Optional note/description for the time entry"},
            },
            "additionalProperties": False,
        },
    },
    "update_time_entry": {
        "description": "Update an existing time entry in Productive.",
        "inputSchema": {
            "type": "object",
            "required": ["entry_id"],
            "properties": {
                "entry_id": {**_ID, "description": "The ID of the time entry to update"},
                "hours": {"type": "number", "minimum": 0, "description": "New number of hours"},
                "entry_date": {"type": "string", "description": "New date in YYYY-MM-DD format"},
                "note": {"type": "string", "description": "New note/description"},
            },
            "additionalProperties": False,
        },
    },
    "delete_time_entry": {
        "description": "Delete a time entry from Productive.",
        "inputSchema": {
            "type": "object",
            "required": ["entry_id"],
            "properties": {
                "entry_id": {**_ID, "description": "The ID of the time entry to delete"},
            },
            "additionalProperties": False,
        },
    },
    "list_timers": {
        "description": "List all active timers for the current user.",
        "inputSchema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
    "start_timer": {
        "description": "Start a new timer for tracking time. Creates a time entry and starts tracking.",
        "inputSchema": {
            "type": "object",
            "required": ["service_id"],
            "properties": {
                "service_id": {**_ID, "description": "The ID of the service to track time for"},
                "note": {"type": "string", "description": "Optional note for the time entry"},
            },
            "additionalProperties": False,
        },
    },
    "stop_timer": {
        "description": "Stop an active timer.",
        "inputSchema": {
            "type": "object",
            "required": ["timer_id"],
            "properties": {
                "timer_id": {**_ID, "description": "The ID of the timer to stop"},
            },
            "additionalProperties": False,
        },
    },
}


@dataclass(frozen=True, slots=True)
class Runtime:
    """Per-server runtime dependencies shared across tool calls."""

    config: AppConfig
    client: ProductiveClient


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Text handed back to the agent, plus the MCP error flag."""

    text: str
    is_error: bool = False


_RUNTIME: Runtime | None = None

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


def _matches_type(value: Any, expected: str) -> bool:
    if expected in ("integer", "number") and isinstance(value, bool):
        return False
    if expected == "integer" and isinstance(value, float):
        return value.is_integer()
    return isinstance(value, _JSON_TYPES.get(expected, (object,)))


def validate_tool_arguments(tool_name: str, arguments: dict[str, Any]) -> None:
    """Validate tool arguments against the tool's declared input schema.

    This is intentionally a minimal validator that enforces:
    - required fields
    - no extra properties when additionalProperties=false
    - basic JSON types, enums, string minLength and numeric minimum

    Optional fields explicitly set to null are treated as absent.
    It does NOT implement full JSON Schema.
    """
    if tool_name not in TOOL_METADATA:
        raise user_input_error("Unknown tool")

    schema = TOOL_METADATA[tool_name]["inputSchema"]
    props: dict[str, Any] = schema.get("properties", {})
    required: list[str] = schema.get("required", [])

    for k in required:
        if arguments.get(k) is None:
            raise user_input_error(f"Missing required field: {k}")

    if schema.get("additionalProperties", True) is False:
        extras = sorted(k for k in arguments if k not in props)
        if extras:
            raise user_input_error(f"Unexpected fields: {', '.join(extras)}")

    for k, spec in props.items():
        v = arguments.get(k)
        if v is None:
            continue
        expected = spec.get("type")
        types = expected if isinstance(expected, list) else [expected] if expected else []
        if types and not any(_matches_type(v, t) for t in types):
            raise user_input_error(f"Field '{k}' must be of type {' or '.join(types)}")

        enum = spec.get("enum")
        if enum is not None and v not in enum:
            raise user_input_error(f"Field '{k}' must be one of: {', '.join(map(str, enum))}")

        min_len = spec.get("minLength")
        if isinstance(v, str) and isinstance(min_len, int) and len(v) < min_len:
            raise user_input_error(f"Field '{k}' must be at least {min_len} characters")

        minimum = spec.get("minimum")
        if isinstance(v, (int, float)) and not isinstance(v, bool) and minimum is not None and v < minimum:
            raise user_input_error(f"Field '{k}' must be >= {minimum}")


def initialize_runtime_from_env() -> Runtime:
    """Initialize and cache runtime from environment.

    Called lazily on the first tool call; the environment is read once per process.
    """
    global _RUNTIME  # pylint: disable=global-statement
    if _RUNTIME is not None:
        return _RUNTIME

    config = load_config_from_env()
    client = ProductiveClient(config=config)

    _RUNTIME = Runtime(config=config, client=client)
    return _RUNTIME


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _require_id(arguments: dict[str, Any], key: str) -> str:
    v = arguments.get(key)
    if isinstance(v, bool) or not isinstance(v, (str, int)) or v == "":
        raise user_input_error(f"Field '{key}' is required")
    return str(v)


def _optional_id(arguments: dict[str, Any], key: str) -> str | None:
    if arguments.get(key) in (None, ""):
        return None
    return _require_id(arguments, key)


def _optional_str(arguments: dict[str, Any], key: str) -> str | None:
    v = arguments.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise user_input_error(f"Field '{key}' must be a string")
    return v


def _optional_number(arguments: dict[str, Any], key: str) -> float | None:
    v = arguments.get(key)
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise user_input_error(f"Field '{key}' must be a number")
    return v


def _require_number(arguments: dict[str, Any], key: str) -> float:
    v = _optional_number(arguments, key)
    if v is None:
        raise user_input_error(f"Field '{key}' is required")
    return v


def _optional_date(arguments: dict[str, Any], key: str) -> str | None:
    v = _optional_str(arguments, key)
    if v is None:
        return None
    try:
        return datetime.strptime(v, "%Y-%m-%d").date().isoformat()
    except ValueError as exc:
        raise user_input_error(f"Field '{key}' must be a date in YYYY-MM-DD format") from exc


def _created_id(document: dict[str, Any] | None) -> str | None:
    data = primary_data(document)
    if isinstance(data, dict) and data.get("id") is not None:
        return str(data["id"])
    return None


def _time_entry_body(runtime: Runtime, *, service_id: str, entry_date: str, minutes: int, note: str | None) -> dict:
    body: dict[str, Any] = {
        "data": {
            "type": "time_entries",
            "attributes": {"date": entry_date, "time": minutes},
            "relationships": {
                "person": to_one("people", runtime.config.user_id),
                "service": to_one("services", service_id),
            },
        }
    }
    if note:
        body["data"]["attributes"]["note"] = note
    return body


async def _tool_list_projects(runtime: Runtime, arguments: dict[str, Any]) -> str:
    status = _optional_str(arguments, "status") or "active"
    search = _optional_str(arguments, "search")

    params = {"page[size]": str(runtime.config.limits.page_size)}
    if status == "active":
        params["filter[status]"] = "1"
    elif status == "archived":
        params["filter[status]"] = "2"
    if search:
        params["filter[name]"] = search

    document = await runtime.client.request_json(
        method="GET", path="/projects", params=params, action="fetching projects"
    )
    return format_projects(document)


async def _tool_get_project(runtime: Runtime, arguments: dict[str, Any]) -> str:
    project_id = _require_id(arguments, "project_id")

    try:
        document = await runtime.client.request_json(
            method="GET",
            path=f"/projects/{project_id}",
            params={"include": "company,project_manager"},
            action="fetching project",
        )
    except SafeError as err:
        if err.code == "Remote" and err.status_code == 404:
            return f"Project with ID {project_id} not found."
        raise
    return format_project_detail(document)


async def _tool_list_deals(runtime: Runtime, arguments: dict[str, Any]) -> str:
    search = _optional_str(arguments, "search")

    params = {"page[size]": str(runtime.config.limits.page_size), "include": "project"}
    if search:
        params["filter[name]"] = search

    document = await runtime.client.request_json(method="GET", path="/deals", params=params, action="fetching deals")
    return format_deals(document)


async def _tool_list_services(runtime: Runtime, arguments: dict[str, Any]) -> str:
    deal_id = _optional_id(arguments, "deal_id")
    search = _optional_str(arguments, "search")

    params = {
        "page[size]": str(runtime.config.limits.page_size),
        "filter[time_tracking_enabled]": "true",
    }
    if deal_id:
        params["filter[deal_id]"] = deal_id
    if search:
        params["filter[name]"] = search

    document = await runtime.client.request_json(
        method="GET", path="/services", params=params, action="fetching services"
    )
    return format_services(document)


async def _tool_list_time_entries(runtime: Runtime, arguments: dict[str, Any]) -> str:
    days = arguments.get("days") or 7
    if isinstance(days, bool) or not isinstance(days, (int, float)) or days < 1 or days != int(days):
        raise user_input_error("Field 'days' must be a positive integer")
    days = int(days)
    project_id = _optional_id(arguments, "project_id")

    end = _today()
    start = end - timedelta(days=days)
    params = {
        "page[size]": str(runtime.config.limits.page_size),
        "filter[person_id]": runtime.config.user_id,
        "filter[after]": start.isoformat(),
        "filter[before]": end.isoformat(),
        "include": "service,task",
    }
    if project_id:
        params["filter[project_id]"] = project_id

    document = await runtime.client.request_json(
        method="GET", path="/time_entries", params=params, action="fetching time entries"
    )
    return format_time_entries(document, days=days)


async def _tool_create_time_entry(runtime: Runtime, arguments: dict[str, Any]) -> str:
    service_id = _require_id(arguments, "service_id")
    hours = _require_number(arguments, "hours")
    entry_date = _optional_date(arguments, "entry_date") or _today().isoformat()
    note = _optional_str(arguments, "note")

    body = _time_entry_body(
        runtime,
        service_id=service_id,
        entry_date=entry_date,
        minutes=hours_to_minutes(hours),
        note=note,
    )
    document = await runtime.client.request_json(
        method="POST", path="/time_entries", json_body=body, action="creating time entry"
    )
    entry_id = _created_id(document)
    return f"Time entry created successfully (ID: {entry_id}). Logged {format_hours(hours)}h on {entry_date}."


async def _tool_update_time_entry(runtime: Runtime, arguments: dict[str, Any]) -> str:
    entry_id = _require_id(arguments, "entry_id")
    hours = _optional_number(arguments, "hours")
    entry_date = _optional_date(arguments, "entry_date")
    note = _optional_str(arguments, "note")

    attrs: dict[str, Any] = {}
    if hours is not None:
        attrs["time"] = hours_to_minutes(hours)
    if entry_date is not None:
        attrs["date"] = entry_date
    if note is not None:
        attrs["note"] = note

    if not attrs:
        return "No updates specified. Provide at least one of: hours, entry_date, note."

    body = {"data": {"type": "time_entries", "id": entry_id, "attributes": attrs}}
    await runtime.client.request_json(
        method="PATCH", path=f"/time_entries/{entry_id}", json_body=body, action="updating time entry"
    )
    return f"Time entry {entry_id} updated successfully."


async def _tool_delete_time_entry(runtime: Runtime, arguments: dict[str, Any]) -> str:
    entry_id = _require_id(arguments, "entry_id")

    await runtime.client.request_json(
        method="DELETE", path=f"/time_entries/{entry_id}", action="deleting time entry"
    )
    return f"Time entry {entry_id} deleted successfully."


async def _tool_list_timers(runtime: Runtime, arguments: dict[str, Any]) -> str:
    params = {"filter[person_id]": runtime.config.user_id, "include": "time_entry"}

    document = await runtime.client.request_json(method="GET", path="/timers", params=params, action="fetching timers")
    return format_timers(document)


async def _tool_start_timer(runtime: Runtime, arguments: dict[str, Any]) -> str:
    service_id = _require_id(arguments, "service_id")
    note = _optional_str(arguments, "note")

    # The timer wraps a zero-minute entry; a failure here must stop before the timer call.
    entry_body = _time_entry_body(
        runtime,
        service_id=service_id,
        entry_date=_today().isoformat(),
        minutes=0,
        note=note,
    )
    entry_doc = await runtime.client.request_json(
        method="POST", path="/time_entries", json_body=entry_body, action="creating time entry for timer"
    )
    entry_id = _created_id(entry_doc)
    if entry_id is None:
        raise SafeError(code="Remote", message="Error creating time entry for timer: response contained no ID")

    timer_body = {
        "data": {
            "type": "timers",
            "attributes": {},
            "relationships": {"time_entry": to_one("time_entries", entry_id)},
        }
    }
    timer_doc = await runtime.client.request_json(
        method="POST", path="/timers", json_body=timer_body, action="starting timer"
    )
    timer_id = _created_id(timer_doc)
    return f"Timer started (Timer ID: {timer_id}, Time Entry ID: {entry_id})."


async def _tool_stop_timer(runtime: Runtime, arguments: dict[str, Any]) -> str:
    timer_id = _require_id(arguments, "timer_id")

    document = await runtime.client.request_json(
        method="PATCH", path=f"/timers/{timer_id}/stop", json_body={}, action="stopping timer"
    )
    data = primary_data(document)
    total_time = attributes(data if isinstance(data, dict) else None).get("total_time")
    return f"Timer {timer_id} stopped. Total time: {format_elapsed(total_time)}."


_TOOL_FUNCS = {
    "list_projects": _tool_list_projects,
    "get_project": _tool_get_project,
    "list_deals": _tool_list_deals,
    "list_services": _tool_list_services,
    "list_time_entries": _tool_list_time_entries,
    "create_time_entry": _tool_create_time_entry,
    "update_time_entry": _tool_update_time_entry,
    "delete_time_entry": _tool_delete_time_entry,
    "list_timers": _tool_list_timers,
    "start_timer": _tool_start_timer,
    "stop_timer": _tool_stop_timer,
}


async def dispatch_tool(name: str, arguments: dict[str, Any] | None) -> ToolResult:
    """Dispatch a tool call.

    Never raises: configuration and remote errors come back as ordinary text, anything
    else comes back as text with the error flag set.
    """
    correlation_id = uuid.uuid4().hex
    start = time.monotonic()
    arguments = arguments if isinstance(arguments, dict) else {}

    def _duration_ms() -> int:
        return int((time.monotonic() - start) * 1000)

    func = _TOOL_FUNCS.get(name)
    if func is None:
        logger.info("tool=%s cid=%s outcome=unknown_tool", name, correlation_id)
        return ToolResult(text=f"Unknown tool: {name}")

    try:
        runtime = initialize_runtime_from_env()
        runtime.config.ensure_complete()
        validate_tool_arguments(name, arguments)

        text = await func(runtime, arguments)

        logger.info("tool=%s cid=%s outcome=succeeded duration_ms=%s", name, correlation_id, _duration_ms())
        return ToolResult(text=text)

    except SafeError as err:
        logger.info(
            "tool=%s cid=%s outcome=%s code=%s duration_ms=%s",
            name,
            correlation_id,
            "denied" if err.code in {"Config", "UserInput"} else "failed",
            err.code,
            _duration_ms(),
        )
        return ToolResult(text=safe_error_to_text(err), is_error=is_flagged(err))
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.exception("tool=%s cid=%s outcome=failed duration_ms=%s", name, correlation_id, _duration_ms())
        return ToolResult(text=f"Error: {str(exc) or type(exc).__name__}", is_error=True)
