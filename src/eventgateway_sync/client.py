"""Ownership-aware Event Gateway client.

:class:`GatewayClient` wraps a transport and stamps every resource it creates
or updates with ``metadata: {service, stage}``. Owned list operations only
return resources carrying this service+stage tag, so deployments of other
services or stages sharing the same space are never touched.
"""

from __future__ import annotations

import logging
from typing import Any

from .compare import is_owned
from .exceptions import FunctionRegistrationError, GatewayError, SubscriptionError
from .models import SYNC, EventSubscription
from .naming import event_path, ownership_prefix
from .transport_protocol import Filters, GatewayTransportProtocol

logger = logging.getLogger(__name__)


class GatewayClient:
    """
    Gateway operations scoped to one service+stage.

    Args:
        transport: Object implementing
            :class:`~eventgateway_sync.transport_protocol.GatewayTransportProtocol`
        service: Service name written into ``metadata.service``
        stage: Stage written into ``metadata.stage``
        space: Space prefixed onto subscription and CORS paths
    """

    def __init__(
        self,
        transport: GatewayTransportProtocol,
        service: str,
        stage: str,
        space: str,
    ) -> None:
        self.transport = transport
        self.service = service
        self.stage = stage
        self.space = space

    @property
    def metadata_filter(self) -> Filters:
        return {"metadata.service": self.service, "metadata.stage": self.stage}

    def with_metadata(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Copy of ``payload`` carrying this service's ownership tag.

        Existing metadata fields are kept; only ``service`` and ``stage`` are
        overwritten.
        """
        stamped = dict(payload)
        metadata = dict(stamped.get("metadata") or {})
        metadata["service"] = self.service
        metadata["stage"] = self.stage
        stamped["metadata"] = metadata
        return stamped

    def owns(self, remote: dict[str, Any]) -> bool:
        """
        True if a remote function or subscription belongs to this service+stage.

        Resources registered before metadata tagging are recognized by their
        function id prefix.
        """
        if remote.get("metadata"):
            return is_owned(remote, self.service, self.stage)
        return str(remote.get("functionId", "")).startswith(
            ownership_prefix(self.service, self.stage)
        )

    # -------------------------------------------------------------------------
    # Functions
    # -------------------------------------------------------------------------

    async def create_function(self, function: dict[str, Any]) -> dict[str, Any]:
        """
        Register a function.

        Raises:
            FunctionRegistrationError: Naming the function id
        """
        try:
            return await self.transport.create_function(self.with_metadata(function))
        except GatewayError as e:
            raise FunctionRegistrationError(function["functionId"], e) from e

    async def update_function(self, function: dict[str, Any]) -> dict[str, Any]:
        return await self.transport.update_function(self.with_metadata(function))

    async def delete_function(self, function_id: str) -> None:
        await self.transport.delete_function(function_id)

    async def list_service_functions(self) -> list[dict[str, Any]]:
        """Functions owned by this service+stage (empty if listing fails)."""
        try:
            functions = await self.transport.list_functions()
        except GatewayError as e:
            logger.warning("Listing functions failed, assuming none are registered: %s", e)
            return []
        return [f for f in functions if self.owns(f)]

    # -------------------------------------------------------------------------
    # Event types
    # -------------------------------------------------------------------------

    async def create_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]:
        return await self.transport.create_event_type(self.with_metadata(event_type))

    async def create_shared_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]:
        """
        Create an event type without claiming it.

        Used for types a subscription needs but the service does not declare;
        untagged, they are never deletion candidates for this service+stage.
        """
        return await self.transport.create_event_type(event_type)

    async def update_event_type(self, event_type: dict[str, Any]) -> dict[str, Any]:
        return await self.transport.update_event_type(self.with_metadata(event_type))

    async def clear_authorizer(self, event_type: dict[str, Any]) -> dict[str, Any]:
        """
        Unlink the authorizer of an event type, keeping its metadata as is.

        The event type may belong to another service, so it is not restamped.
        """
        payload: dict[str, Any] = {"name": event_type["name"]}
        if event_type.get("metadata"):
            payload["metadata"] = event_type["metadata"]
        return await self.transport.update_event_type(payload)

    async def delete_event_type(self, name: str) -> None:
        await self.transport.delete_event_type(name)

    async def list_service_event_types(self) -> list[dict[str, Any]]:
        """Event types tagged with this service+stage (empty if listing fails)."""
        try:
            event_types = await self.transport.list_event_types(self.metadata_filter)
        except GatewayError as e:
            logger.warning("Listing event types failed, assuming none are registered: %s", e)
            return []
        return [et for et in event_types if is_owned(et, self.service, self.stage)]

    async def list_event_types(self) -> list[dict[str, Any]]:
        """Every event type in the space, owned or not (empty if listing fails)."""
        try:
            return await self.transport.list_event_types()
        except GatewayError as e:
            logger.warning("Listing event types failed, assuming none are registered: %s", e)
            return []

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscription_payload(self, subscription: EventSubscription) -> dict[str, Any]:
        return self.with_metadata(
            {
                "type": subscription.type,
                "functionId": subscription.function_id,
                "eventType": subscription.event_type,
                "path": event_path(subscription.path, self.space),
                "method": subscription.method,
            }
        )

    def cors_payload(self, subscription: EventSubscription) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "method": subscription.method,
            "path": event_path(subscription.path, self.space),
        }
        if subscription.cors is not None:
            payload.update(subscription.cors.to_payload())
        return self.with_metadata(payload)

    async def subscribe(self, subscription: EventSubscription) -> dict[str, Any]:
        """
        Create a subscription.

        Raises:
            SubscriptionError: Flagged as a conflict when another service
                already owns the same HTTP endpoint
        """
        try:
            return await self.transport.subscribe(self.subscription_payload(subscription))
        except GatewayError as e:
            conflict = subscription.type == SYNC and "already exists" in str(e)
            raise SubscriptionError(
                subscription.function_id, subscription.path, e, conflict=conflict
            ) from e

    async def unsubscribe(self, subscription_id: str) -> None:
        await self.transport.unsubscribe(subscription_id)

    async def list_service_subscriptions(self) -> list[dict[str, Any]]:
        """Subscriptions owned by this service+stage (empty if listing fails)."""
        try:
            subscriptions = await self.transport.list_subscriptions()
        except GatewayError as e:
            logger.warning("Listing subscriptions failed, assuming none are registered: %s", e)
            return []
        return [s for s in subscriptions if self.owns(s)]

    # -------------------------------------------------------------------------
    # CORS
    # -------------------------------------------------------------------------

    async def create_cors(self, cors: dict[str, Any]) -> dict[str, Any]:
        return await self.transport.create_cors(self.with_metadata(cors))

    async def update_cors(self, cors: dict[str, Any]) -> dict[str, Any]:
        return await self.transport.update_cors(self.with_metadata(cors))

    async def delete_cors(self, cors_id: str) -> None:
        await self.transport.delete_cors(cors_id)

    async def list_service_cors(self) -> list[dict[str, Any]]:
        """CORS rules tagged with this service+stage (empty if listing fails)."""
        try:
            rules = await self.transport.list_cors(self.metadata_filter)
        except GatewayError as e:
            logger.warning("Listing CORS rules failed, assuming none are registered: %s", e)
            return []
        return [rule for rule in rules if is_owned(rule, self.service, self.stage)]

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def emit(
        self,
        event_type: str,
        data: Any = None,
        path: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Emit a test event into this client's space."""
        return await self.transport.emit(
            {"eventType": event_type, "data": data},
            path=event_path(path, self.space),
            headers=headers,
        )
