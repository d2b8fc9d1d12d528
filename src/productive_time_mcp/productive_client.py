"""Productive REST client wrapper.

Provides:
- fixed base URL (https://api.productive.io/api/v2)
- the JSON:API content type plus auth and organization headers on every request
- finite timeouts, no retries
- translation of non-2xx responses into Remote SafeErrors carrying status and body
"""

from __future__ import annotations

import json
import logging

import httpx

from .config import API_BASE_URL, AppConfig
from .errors import SafeError, remote_error

logger = logging.getLogger(__name__)

JSONAPI_CONTENT_TYPE = "application/vnd.api+json"


class ProductiveClient:
    """Minimal Productive REST client."""

    def __init__(
        self,
        *,
        config: AppConfig,
        api_base_url: str = API_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create a Productive REST client.

        Args:
            config: Credentials and limits.
            api_base_url: Must be https://api.productive.io/api/v2 (enforced).
            transport: Optional httpx transport for tests.
        """
        self._config = config
        self._api_base_url = api_base_url.rstrip("/")
        self._transport = transport

        if self._api_base_url != API_BASE_URL:
            raise SafeError(code="Config", message=f"Only {API_BASE_URL} is allowed")

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": JSONAPI_CONTENT_TYPE,
            "X-Auth-Token": self._config.api_token,
            "X-Organization-Id": self._config.organization_id,
        }

    async def request_json(
        self,
        *,
        method: str,
        path: str,
        action: str,
        params: dict[str, str] | None = None,
        json_body: dict | None = None,
    ) -> dict | None:
        """Make a single request and return the decoded JSON document.

        Args:
            action: Human-readable verb phrase used in error text, e.g. "fetching projects".

        Returns None for empty response bodies (e.g. 204 No Content on delete).

        Raises:
            SafeError: Remote for non-2xx responses, Network for transport failures.
        """
        url = f"{self._api_base_url}{path}"

        async with httpx.AsyncClient(
            follow_redirects=False,
            timeout=httpx.Timeout(self._config.limits.timeout_s),
            transport=self._transport,
        ) as client:
            try:
                resp = await client.request(
                    method,
                    url,
                    headers=self._headers(),
                    params=params,
                    content=json.dumps(json_body) if json_body is not None else None,
                )
            except httpx.HTTPError as exc:
                logger.warning("%s %s failed: %s", method, path, type(exc).__name__)
                raise SafeError(code="Network", message=f"Network request failed while {action}") from exc

        logger.debug("%s %s -> %s", method, path, resp.status_code)

        if not resp.is_success:
            raise remote_error(action=action, status_code=resp.status_code, body=resp.text)

        if not resp.content:
            return None

        try:
            data = resp.json()
        except json.JSONDecodeError as exc:
            raise SafeError(code="Remote", message=f"Error {action}: invalid JSON in response") from exc

        if not isinstance(data, dict):
            raise SafeError(code="Remote", message=f"Error {action}: unexpected response shape")
        return data
