"""Shared fixtures: isolate every test from the host environment and cached runtime."""

from __future__ import annotations

import productive_time_mcp.tools as tools
import pytest


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "PRODUCTIVE_API_TOKEN",
        "PRODUCTIVE_ORGANIZATION_ID",
        "PRODUCTIVE_USER_ID",
        "PRODUCTIVE_TIMEOUT_S",
        "PRODUCTIVE_PAGE_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(tools, "_RUNTIME", None)
