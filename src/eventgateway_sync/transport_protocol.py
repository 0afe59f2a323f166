"""Transport protocol for Event Gateway backends.

Defines the fixed set of remote operations the gateway client relies on.
:class:`~eventgateway_sync.transport.GatewayTransport` implements it over
HTTP; tests and alternative backends only need to provide the same coroutine
methods (duck typing, no inheritance).
"""

from typing import Any, Protocol, runtime_checkable

Filters = dict[str, str]
"""Metadata filter, e.g. ``{"metadata.service": "svc", "metadata.stage": "dev"}``."""


@runtime_checkable
class GatewayTransportProtocol(Protocol):
    """
    Remote operations of the gateway configuration and events APIs.

    Every method raises
    :class:`~eventgateway_sync.exceptions.GatewayRequestError` on failure.
    """

    # -------------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------------

    async def create_function(self, function: dict[str, Any]) -> dict[str, Any]: ...

    async def update_function(self, function: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_function(self, function_id: str) -> None: ...

    async def list_functions(self, filters: Filters | None = None) -> list[dict[str, Any]]: ...

    # -------------------------------------------------------------------------
    # Event types
    # -------------------------------------------------------------------------

    async def create_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]: ...

    async def update_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_event_type(self, name: str) -> None: ...

    async def list_event_types(self, filters: Filters | None = None) -> list[dict[str, Any]]: ...

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe(self, subscription: dict[str, Any]) -> dict[str, Any]: ...

    async def unsubscribe(self, subscription_id: str) -> None: ...

    async def list_subscriptions(
        self, filters: Filters | None = None
    ) -> list[dict[str, Any]]: ...

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------

    async def create_cors(self, cors: dict[str, Any]) -> dict[str, Any]: ...

    async def update_cors(self, cors: dict[str, Any]) -> dict[str, Any]: ...

    async def delete_cors(self, cors_id: str) -> None: ...

    async def list_cors(self, filters: Filters | None = None) -> list[dict[str, Any]]: ...

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def emit(
        self,
        event: dict[str, Any],
        path: str = "/",
        headers: dict[str, str] | None = None,
    ) -> Any: ...
