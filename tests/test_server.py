"""MCP server wiring smoke tests."""

from __future__ import annotations

import json

import pytest
from mcp import types
from mcp.types import CallToolResult
from productive_time_mcp.server import (STATUS_URI, call_tool, list_resources, list_tools,
                                        read_resource, server)


@pytest.mark.asyncio
async def test_server_lists_all_tools() -> None:
    tools = await list_tools()

    assert sorted(t.name for t in tools) == [
        "create_time_entry",
        "delete_time_entry",
        "get_project",
        "list_deals",
        "list_projects",
        "list_services",
        "list_time_entries",
        "list_timers",
        "start_timer",
        "stop_timer",
        "update_time_entry",
    ]
    create = next(t for t in tools if t.name == "create_time_entry")
    assert create.inputSchema["required"] == ["service_id", "hours"]


@pytest.mark.asyncio
async def test_call_tool_wraps_text_content() -> None:
    result = await call_tool("list_timers", {})

    assert isinstance(result, CallToolResult)
    assert result.isError is False
    assert len(result.content) == 1
    assert result.content[0].type == "text"
    assert result.content[0].text.startswith("Configuration error: Missing environment variables")


@pytest.mark.asyncio
async def test_call_tool_flags_input_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRODUCTIVE_API_TOKEN", "tok")
    monkeypatch.setenv("PRODUCTIVE_ORGANIZATION_ID", "42")
    monkeypatch.setenv("PRODUCTIVE_USER_ID", "7")

    result = await call_tool("get_project", None)

    assert result.isError is True
    assert "Missing required field: project_id" in result.content[0].text


@pytest.mark.asyncio
async def test_server_lists_status_resource() -> None:
    resources = await list_resources()

    assert [str(r.uri).rstrip("/") for r in resources] == [STATUS_URI]


@pytest.mark.asyncio
async def test_status_resource_reports_missing_variables() -> None:
    status = json.loads(await read_resource(STATUS_URI))

    assert status["configured"] is False
    assert status["tools_available"] == 11
    assert status["missing_variables"] == [
        "PRODUCTIVE_API_TOKEN",
        "PRODUCTIVE_ORGANIZATION_ID",
        "PRODUCTIVE_USER_ID",
    ]


@pytest.mark.asyncio
async def test_status_resource_never_emits_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRODUCTIVE_API_TOKEN", "pt_super_secret_value")
    monkeypatch.setenv("PRODUCTIVE_ORGANIZATION_ID", "42")
    monkeypatch.setenv("PRODUCTIVE_USER_ID", "7")

    raw = await read_resource(STATUS_URI)
    status = json.loads(raw)

    assert status["configured"] is True
    assert status["limits"] == {"timeout_s": 30.0, "page_size": 50}
    assert "pt_super_secret_value" not in raw


@pytest.mark.asyncio
async def test_unknown_resource() -> None:
    out = json.loads(await read_resource("productive-time-mcp://nope"))
    assert out["code"] == "NotFound"


def _set_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRODUCTIVE_API_TOKEN", "tok")
    monkeypatch.setenv("PRODUCTIVE_ORGANIZATION_ID", "42")
    monkeypatch.setenv("PRODUCTIVE_USER_ID", "7")


async def _call_over_protocol(name: str, arguments: dict) -> CallToolResult:
    await server.request_handlers[types.ListToolsRequest](types.ListToolsRequest(method="tools/list"))
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    response = await server.request_handlers[types.CallToolRequest](request)
    assert isinstance(response.root, CallToolResult)
    return response.root


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("name", "arguments"),
    [("get_project", {}), ("create_time_entry", {"service_id": "1", "hours": "two"})],
)
async def test_protocol_call_reports_missing_config_before_arguments(name: str, arguments: dict) -> None:
    result = await _call_over_protocol(name, arguments)

    assert result.isError is False
    assert result.content[0].text == (
        "Configuration error: Missing environment variables: "
        "PRODUCTIVE_API_TOKEN, PRODUCTIVE_ORGANIZATION_ID, PRODUCTIVE_USER_ID"
    )


@pytest.mark.asyncio
async def test_protocol_call_ignores_null_optional_arguments(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_config(monkeypatch)

    result = await _call_over_protocol("update_time_entry", {"entry_id": "1", "hours": None})

    assert result.isError is False
    assert result.content[0].text == "No updates specified. Provide at least one of: hours, entry_date, note."


@pytest.mark.asyncio
async def test_protocol_call_keeps_error_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_config(monkeypatch)

    result = await _call_over_protocol("get_project", {})

    assert result.isError is True
    assert "Missing required field: project_id" in result.content[0].text
