"""Configuration loading for productive-time-mcp.

Configuration is supplied by the host environment (e.g., MCP client config), not by the agent.
The API token is a secret and must never be emitted to agents or logs.

Missing required values do not stop the server from starting; they are reported on every
tool call instead, before any network request is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import SafeError, config_error

API_BASE_URL = "https://api.productive.io/api/v2"

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_PAGE_SIZE = 50

REQUIRED_ENV_VARS: tuple[str, ...] = (
    "PRODUCTIVE_API_TOKEN",
    "PRODUCTIVE_ORGANIZATION_ID",
    "PRODUCTIVE_USER_ID",
)


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    """Request limits."""

    timeout_s: float = DEFAULT_TIMEOUT_S
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Productive account binding configuration."""

    api_token: str
    organization_id: str
    user_id: str
    limits: LimitsConfig = LimitsConfig()

    def missing_variables(self) -> list[str]:
        """Names of required environment variables that are empty."""
        values = (self.api_token, self.organization_id, self.user_id)
        return [name for name, value in zip(REQUIRED_ENV_VARS, values) if not value]

    def ensure_complete(self) -> None:
        """Raise a Config SafeError if any required value is missing."""
        missing = self.missing_variables()
        if missing:
            raise config_error(missing)


def _parse_timeout(value: str | None) -> float:
    if not value:
        return DEFAULT_TIMEOUT_S
    try:
        timeout = float(value)
    except ValueError as exc:
        raise SafeError(code="Config", message="PRODUCTIVE_TIMEOUT_S must be a number") from exc
    if timeout <= 0:
        raise SafeError(code="Config", message="PRODUCTIVE_TIMEOUT_S must be greater than 0")
    return timeout


def _parse_page_size(value: str | None) -> int:
    if not value:
        return DEFAULT_PAGE_SIZE
    try:
        size = int(value)
    except ValueError as exc:
        raise SafeError(code="Config", message="PRODUCTIVE_PAGE_SIZE must be an integer") from exc
    if not 1 <= size <= 200:
        raise SafeError(code="Config", message="PRODUCTIVE_PAGE_SIZE must be between 1 and 200")
    return size


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables.

    Required values may be empty; see AppConfig.ensure_complete.

    Raises:
        SafeError: If an optional value is present but invalid.
    """
    return AppConfig(
        api_token=os.getenv("PRODUCTIVE_API_TOKEN", "").strip(),
        organization_id=os.getenv("PRODUCTIVE_ORGANIZATION_ID", "").strip(),
        user_id=os.getenv("PRODUCTIVE_USER_ID", "").strip(),
        limits=LimitsConfig(
            timeout_s=_parse_timeout(os.getenv("PRODUCTIVE_TIMEOUT_S")),
            page_size=_parse_page_size(os.getenv("PRODUCTIVE_PAGE_SIZE")),
        ),
    )
