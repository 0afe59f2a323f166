"""HTTP transport for the Event Gateway configuration and events APIs."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from ulid import ULID

from .config import GatewayConfig
from .exceptions import GatewayRequestError
from .transport_protocol import Filters

logger = logging.getLogger(__name__)

CLOUD_EVENTS_VERSION = "0.1"
EVENT_SOURCE = "https://github.com/serverless/event-gateway"


class GatewayTransport:
    """
    Talks to one space of an Event Gateway over HTTP.

    Configuration calls go to ``<configuration_url>/v1/spaces/<space>/...``;
    events are emitted to ``<url><path>``.

    Example:
        async with GatewayTransport(config) as transport:
            functions = await transport.list_functions()

    Attributes:
        config: Connection settings
    """

    def __init__(
        self,
        config: GatewayConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the transport.

        Args:
            config: Connection settings
            client: Optional preconfigured httpx client (injected for testing)
        """
        self.config = config
        self._client = client

    @property
    def space_url(self) -> str:
        return f"{self.config.configuration_url}/v1/spaces/{self.config.space}"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {}
            if self.config.access_key:
                headers["Authorization"] = self.config.access_key
            self._client = httpx.AsyncClient(headers=headers, timeout=self.config.timeout)
        return self._client

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        params: Filters | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        client = self._get_client()
        logger.debug("%s %s", method, url)
        try:
            response = await client.request(
                method, url, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            raise GatewayRequestError(
                f"Request to Event Gateway failed: {e}", method=method, url=url
            ) from e

        body = _decode(response)
        if response.is_error:
            raise GatewayRequestError(
                _error_message(response, body),
                response.status_code,
                method=method,
                url=url,
                body=body,
            )
        return body

    # -------------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------------

    async def create_function(self, function: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self.space_url}/functions", json=function)

    async def update_function(self, function: dict[str, Any]) -> dict[str, Any]:
        function_id = function["functionId"]
        return await self._request(
            "PUT", f"{self.space_url}/functions/{function_id}", json=function
        )

    async def delete_function(self, function_id: str) -> None:
        await self._request("DELETE", f"{self.space_url}/functions/{function_id}")

    async def list_functions(self, filters: Filters | None = None) -> list[dict[str, Any]]:
        body = await self._request("GET", f"{self.space_url}/functions", params=filters)
        return _items(body, "functions")

    # -------------------------------------------------------------------------
    # Event types
    # -------------------------------------------------------------------------

    async def create_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self.space_url}/eventtypes", json=event_type)

    async def update_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]:
        name = event_type["name"]
        return await self._request("PUT", f"{self.space_url}/eventtypes/{name}", json=event_type)

    async def delete_event_type(self, name: str) -> None:
        await self._request("DELETE", f"{self.space_url}/eventtypes/{name}")

    async def list_event_types(self, filters: Filters | None = None) -> list[dict[str, Any]]:
        body = await self._request("GET", f"{self.space_url}/eventtypes", params=filters)
        return _items(body, "eventTypes")

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe(self, subscription: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "POST", f"{self.space_url}/subscriptions", json=subscription
        )

    async def unsubscribe(self, subscription_id: str) -> None:
        await self._request("DELETE", f"{self.space_url}/subscriptions/{subscription_id}")

    async def list_subscriptions(self, filters: Filters | None = None) -> list[dict[str, Any]]:
        body = await self._request("GET", f"{self.space_url}/subscriptions", params=filters)
        return _items(body, "subscriptions")

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------

    async def create_cors(self, cors: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"{self.space_url}/cors", json=cors)

    async def update_cors(self, cors: dict[str, Any]) -> dict[str, Any]:
        cors_id = cors["corsId"]
        return await self._request("PUT", f"{self.space_url}/cors/{cors_id}", json=cors)

    async def delete_cors(self, cors_id: str) -> None:
        await self._request("DELETE", f"{self.space_url}/cors/{cors_id}")

    async def list_cors(self, filters: Filters | None = None) -> list[dict[str, Any]]:
        body = await self._request("GET", f"{self.space_url}/cors", params=filters)
        return _items(body, "cors")

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def emit(
        self,
        event: dict[str, Any],
        path: str = "/",
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Emit an event wrapped in a CloudEvents envelope.

        Args:
            event: ``eventType`` and ``data`` (plus optional ``contentType``)
            path: Path on the events API, already prefixed with the space
            headers: Extra request headers
        """
        envelope = {
            "eventType": event["eventType"],
            "cloudEventsVersion": CLOUD_EVENTS_VERSION,
            "source": EVENT_SOURCE,
            "eventID": str(ULID()),
            "eventTime": datetime.now(UTC).isoformat(),
            "contentType": event.get("contentType", "application/json"),
            "data": event.get("data"),
        }
        return await self._request(
            "POST", f"{self.config.url}{path}", json=envelope, headers=headers
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> GatewayTransport:
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(response: httpx.Response, body: Any) -> str:
    # Gateway errors come as {"errors": [{"message": "..."}]}
    if isinstance(body, dict) and body.get("errors"):
        messages = [str(err.get("message", err)) for err in body["errors"]]
        return "; ".join(messages)
    if isinstance(body, str) and body:
        return body
    return f"Event Gateway returned HTTP {response.status_code}"


def _items(body: Any, key: str) -> list[dict[str, Any]]:
    if isinstance(body, dict):
        return list(body.get(key) or [])
    if isinstance(body, list):
        return body
    return []
