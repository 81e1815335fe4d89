"""Battery store backed by a PowerLog REST server."""

from typing import Any
from urllib.parse import quote

import httpx
import structlog
from pydantic import ValidationError

from powerlog.config.settings import Settings
from powerlog.core.models import Battery, parse_battery
from powerlog.storage.base import BatteryStore
from powerlog.utils.exceptions import APIError
from powerlog.utils.retry import retry_with_backoff

logger = structlog.get_logger(__name__)


class RemoteStore(BatteryStore):
    """Async client for the ``/api/batteries`` endpoints."""

    name = "api"

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Application settings.
            transport: Optional httpx transport (used to stub the server).
        """
        self._base_url = settings.api_base_url.rstrip("/")
        self._timeout = settings.api_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._request = retry_with_backoff(
            max_retries=settings.max_retries,
            base_delay=settings.retry_delay,
        )(self._send)

    async def __aenter__(self) -> "RemoteStore":
        """Context manager entry."""
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Context manager exit."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _send(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request.

        Args:
            method: HTTP method.
            path: API path.
            json: Request body.

        Returns:
            Decoded JSON response.

        Raises:
            APIError: If the request fails.
        """
        if not self._client:
            raise APIError("Client not initialized. Use 'async with' context manager.")

        url = f"{self._base_url}{path}"
        logger.debug("API request", method=method, path=path)

        try:
            response = await self._client.request(method, url, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "API error",
                status_code=e.response.status_code,
                url=url,
                response=e.response.text[:500],
            )
            raise APIError(
                f"API request failed: {e.response.text[:200]}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.error("Request error", url=url, error=str(e))
            raise APIError(f"Request failed: {e}") from e
        except ValueError as e:
            raise APIError(f"Invalid JSON response from {url}") from e

    async def list_batteries(self) -> list[Battery]:
        data = await self._request("GET", "/api/batteries")
        if not isinstance(data, list):
            raise APIError(f"Expected a list of batteries, got {type(data).__name__}")

        batteries: list[Battery] = []
        for row in data:
            try:
                batteries.append(parse_battery(row))
            except ValidationError as e:
                row_id = row.get("id") if isinstance(row, dict) else None
                logger.warning("Skipping invalid battery from server", battery_id=row_id, error=str(e))
        return batteries

    async def upsert(self, battery: Battery) -> str:
        payload = battery.to_payload()
        # The web front end only knows its own category labels
        payload["category"] = battery.category.legacy_label
        data = await self._request("POST", "/api/batteries", json=payload)
        if isinstance(data, dict) and data.get("id"):
            return str(data["id"])
        return battery.id

    async def delete(self, battery_id: str) -> None:
        await self._request("DELETE", f"/api/batteries/{quote(battery_id, safe='')}")
