"""Reconciliation of declared functions and subscriptions against the gateway.

One run takes a snapshot of the owned remote state, then walks six steps in a
fixed order:

1. event types (create, update, adopt, implicit creation);
2. declared compute functions (register or update, diff subscriptions by
   ``(path, method)``, reconcile CORS, rewire authorizers);
3. connector functions (register when absent);
4. orphaned functions (subscriptions, authorizer links, then the function);
5. orphaned event types;
6. orphaned CORS rules.

Independent operations inside a step run concurrently with ``asyncio.gather``.
Operations that depend on each other (function before its subscriptions,
subscription before its CORS rule, one step before the next) are awaited in
sequence.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from typing import Any

from .client import GatewayClient
from .compare import (
    EndpointKey,
    cors_equal,
    endpoint_key,
    event_type_needs_update,
    functions_equal,
    remote_endpoint_key,
    subscription_matches,
)
from .connectors import ConnectorSpec, resolve_provider
from .declarations import DeclaredModel, gateway_credentials
from .exceptions import (
    ConnectorRegistrationError,
    FunctionRegistrationError,
    GatewayError,
    GatewayRequestError,
)
from .models import CorsConfig, EventSubscription, FunctionDeclaration
from .naming import event_path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operation:
    """A single remote mutation performed during a run."""

    action: str  # "create", "update", "delete"
    kind: str  # "function", "event_type", "subscription", "cors"
    target: str


@dataclass
class ReconcileResult:
    """Remote mutations performed by a run, in completion order."""

    operations: list[Operation] = field(default_factory=list)

    def record(self, action: str, kind: str, target: str) -> None:
        self.operations.append(Operation(action=action, kind=kind, target=target))

    def count(self, action: str, kind: str | None = None) -> int:
        return sum(
            1
            for op in self.operations
            if op.action == action and (kind is None or op.kind == kind)
        )

    @property
    def created(self) -> int:
        return self.count("create")

    @property
    def updated(self) -> int:
        return self.count("update")

    @property
    def deleted(self) -> int:
        return self.count("delete")


@dataclass
class RemoteState:
    """
    Snapshot of the remote gateway, consumed as the run claims resources.

    Attributes:
        unmatched_functions: Owned functions not yet claimed by a declaration
        subscriptions: Owned subscriptions
        event_types: Every event type in the space, kept current as it changes
        owned_event_types: Names of event types tagged with this service+stage
        cors: Owned CORS rules not yet claimed by a declared subscription
    """

    unmatched_functions: dict[str, dict[str, Any]]
    subscriptions: list[dict[str, Any]]
    event_types: dict[str, dict[str, Any]]
    owned_event_types: set[str]
    cors: dict[EndpointKey, dict[str, Any]]

    def subscriptions_of(self, function_id: str) -> list[dict[str, Any]]:
        return [s for s in self.subscriptions if s.get("functionId") == function_id]


async def _gather(aws: Iterable[Awaitable[Any]]) -> list[Any]:
    return await asyncio.gather(*aws)


class Reconciler:
    """
    Brings the gateway in line with a service's declarations.

    Example:
        async with GatewayTransport(config) as transport:
            client = GatewayClient(transport, model.service, model.stage, config.space)
            result = await Reconciler(client, model, outputs).run()

    Args:
        client: Client scoped to the model's service and stage
        model: Declarations extracted from the service definition
        outputs: Stack outputs fetched once for this run
    """

    def __init__(
        self,
        client: GatewayClient,
        model: DeclaredModel,
        outputs: dict[str, str] | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.outputs = outputs or {}
        self.result = ReconcileResult()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def run(self) -> ReconcileResult:
        """
        Reconcile the gateway with the declared model.

        Providers are resolved before the first remote call, so missing
        credentials or function ARNs abort the run without side effects.

        Raises:
            ConfigurationError: If gateway credentials are missing from the outputs
            MissingOutputError: If a function ARN or connector output is missing
            GatewayError: If a remote write fails
        """
        credentials: dict[str, str] = {}
        if self.model.functions or self.model.connectors:
            credentials = gateway_credentials(self.outputs)
        declarations = self.model.function_declarations(self.outputs, credentials)

        state = await self.snapshot()

        await self._reconcile_event_types(state)
        await _gather(self._reconcile_function(state, decl) for decl in declarations)
        await _gather(
            self._register_connector(state, connector, credentials)
            for connector in self.model.connectors.values()
        )
        await _gather(
            self._remove_function(state, remote)
            for remote in list(state.unmatched_functions.values())
        )
        await self._remove_orphaned_event_types(state)
        await _gather(self._delete_cors(rule) for rule in list(state.cors.values()))
        state.cors.clear()

        logger.info(
            "Reconciled %s-%s: %d created, %d updated, %d deleted",
            self.model.service,
            self.model.stage,
            self.result.created,
            self.result.updated,
            self.result.deleted,
        )
        return self.result

    async def remove(self) -> ReconcileResult:
        """Delete every resource tagged with this service+stage."""
        state = await self.snapshot()
        owned_ids = set(state.unmatched_functions)

        await _gather(self._unsubscribe(state, sub) for sub in state.subscriptions)
        await _gather(self._delete_cors(rule) for rule in list(state.cors.values()))
        state.cors.clear()
        await _gather(self._delete_event_type(name) for name in sorted(state.owned_event_types))
        await _gather(
            self._clear_authorizer(et)
            for name, et in state.event_types.items()
            if name not in state.owned_event_types and et.get("authorizerId") in owned_ids
        )
        await _gather(self._delete_function(function_id) for function_id in sorted(owned_ids))
        return self.result

    async def snapshot(self) -> RemoteState:
        """Read the remote state this run works from."""
        functions, subscriptions, owned_types, all_types, cors = await asyncio.gather(
            self.client.list_service_functions(),
            self.client.list_service_subscriptions(),
            self.client.list_service_event_types(),
            self.client.list_event_types(),
            self.client.list_service_cors(),
        )
        event_types = {et["name"]: et for et in all_types}
        for et in owned_types:
            event_types.setdefault(et["name"], et)
        return RemoteState(
            unmatched_functions={f["functionId"]: f for f in functions},
            subscriptions=list(subscriptions),
            event_types=event_types,
            owned_event_types={et["name"] for et in owned_types},
            cors={remote_endpoint_key(rule): rule for rule in cors},
        )

    # -------------------------------------------------------------------------
    # Step 1: event types
    # -------------------------------------------------------------------------

    async def _reconcile_event_types(self, state: RemoteState) -> None:
        ops: list[Awaitable[None]] = []

        for name, decl in self.model.event_types.items():
            remote = state.event_types.get(name)
            if remote is None:
                ops.append(self._create_event_type(state, decl.to_payload()))
            elif not remote.get("metadata") or event_type_needs_update(decl, remote):
                # Metadata-less types are adopted by the update stamping ownership
                payload = decl.to_payload()
                if remote.get("metadata"):
                    payload["metadata"] = remote["metadata"]
                if decl.authorizer is not None and remote.get("authorizerId"):
                    payload["authorizerId"] = remote["authorizerId"]
                ops.append(self._update_event_type(state, payload))

        implicit = self.model.used_event_types() - set(self.model.event_types)
        for name in sorted(implicit):
            if name not in state.event_types:
                ops.append(self._create_event_type(state, {"name": name}, owned=False))

        await _gather(ops)

    async def _create_event_type(
        self, state: RemoteState, payload: dict[str, Any], owned: bool = True
    ) -> None:
        name = payload["name"]
        try:
            if owned:
                created = await self.client.create_event_type(payload)
            else:
                created = await self.client.create_shared_event_type(payload)
        except GatewayRequestError as e:
            if not e.already_exists:
                raise
            logger.info('Event type "%s" already exists, skipping.', name)
            return
        state.event_types[name] = created if isinstance(created, dict) and created else payload
        self._record("create", "event_type", name)

    async def _update_event_type(self, state: RemoteState, payload: dict[str, Any]) -> None:
        name = payload["name"]
        updated = await self.client.update_event_type(payload)
        state.event_types[name] = updated if isinstance(updated, dict) and updated else payload
        self._record("update", "event_type", name)

    async def _delete_event_type(self, name: str) -> None:
        await self.client.delete_event_type(name)
        self._record("delete", "event_type", name)

    # -------------------------------------------------------------------------
    # Step 2: compute functions
    # -------------------------------------------------------------------------

    async def _reconcile_function(self, state: RemoteState, decl: FunctionDeclaration) -> None:
        remote = state.unmatched_functions.pop(decl.function_id, None)

        if remote is None:
            await self._create_function(decl)
            await _gather(self._subscribe(state, sub) for sub in decl.events)
        else:
            if not functions_equal(decl, remote):
                await self.client.update_function(decl.to_payload())
                self._record("update", "function", decl.function_id)
            await self._reconcile_subscriptions(state, decl)

        await self._rewire_authorizers(state, decl)

    async def _create_function(self, decl: FunctionDeclaration) -> None:
        await self.client.create_function(decl.to_payload())
        logger.info('Function "%s" registered. (ID: %s)', decl.name, decl.function_id)
        self._record("create", "function", decl.function_id)

    async def _reconcile_subscriptions(
        self, state: RemoteState, decl: FunctionDeclaration
    ) -> None:
        remaining = state.subscriptions_of(decl.function_id)
        missing: list[EventSubscription] = []
        matched: list[EventSubscription] = []

        for sub in decl.events:
            path = event_path(sub.path, self.client.space)
            found = next((r for r in remaining if subscription_matches(path, sub.method, r)), None)
            if found is None:
                missing.append(sub)
            else:
                remaining.remove(found)
                matched.append(sub)

        await _gather(self._subscribe(state, sub) for sub in missing)
        await _gather(
            self._reconcile_cors(state, sub, sub.cors) for sub in matched if sub.cors is not None
        )
        await _gather(self._unsubscribe(state, remote) for remote in remaining)

    async def _subscribe(self, state: RemoteState, sub: EventSubscription) -> None:
        await self.client.subscribe(sub)
        logger.info(
            'Function "%s" subscribed to "%s" event (%s %s).',
            sub.function_id,
            sub.event_type,
            sub.method,
            sub.path,
        )
        self._record("create", "subscription", f"{sub.method} {sub.path}")
        if sub.cors is not None:
            await self._reconcile_cors(state, sub, sub.cors)

    async def _unsubscribe(self, state: RemoteState, remote: dict[str, Any]) -> None:
        await self.client.unsubscribe(remote["subscriptionId"])
        self._record("delete", "subscription", remote["subscriptionId"])
        rule = state.cors.pop(remote_endpoint_key(remote), None)
        if rule is not None:
            await self._delete_cors(rule)

    async def _reconcile_cors(
        self, state: RemoteState, sub: EventSubscription, cors: CorsConfig
    ) -> None:
        key = endpoint_key(event_path(sub.path, self.client.space), sub.method)
        payload = self.client.cors_payload(sub)
        rule = state.cors.pop(key, None)

        if rule is None:
            await self.client.create_cors(payload)
            self._record("create", "cors", f"{key[1]} {key[0]}")
        elif not cors_equal(cors, rule):
            await self.client.update_cors({**payload, "corsId": rule["corsId"]})
            self._record("update", "cors", f"{key[1]} {key[0]}")

    async def _delete_cors(self, rule: dict[str, Any]) -> None:
        await self.client.delete_cors(rule["corsId"])
        self._record("delete", "cors", rule["corsId"])

    async def _rewire_authorizers(self, state: RemoteState, decl: FunctionDeclaration) -> None:
        ops = []
        for et in self.model.event_types.values():
            if et.authorizer != decl.name:
                continue
            current = state.event_types.get(et.name, {})
            if current.get("authorizerId") == decl.function_id:
                continue
            payload = {"name": et.name, "authorizerId": decl.function_id}
            if current.get("metadata"):
                payload["metadata"] = current["metadata"]
            ops.append(self._update_event_type(state, payload))
        await _gather(ops)

    # -------------------------------------------------------------------------
    # Step 3: connector functions
    # -------------------------------------------------------------------------

    async def _register_connector(
        self,
        state: RemoteState,
        connector: ConnectorSpec,
        credentials: dict[str, str],
    ) -> None:
        if state.unmatched_functions.pop(connector.function_id, None) is not None:
            # Registered connectors are left as is; their CORS rules still count
            await _gather(
                self._reconcile_cors(state, sub, sub.cors)
                for sub in connector.events
                if sub.cors is not None
            )
            return

        provider = resolve_provider(connector, self.outputs, credentials, self.model.region)
        decl = FunctionDeclaration(
            name=connector.name,
            function_id=connector.function_id,
            type=connector.sink.type,
            provider=provider,
            events=connector.events,
        )
        try:
            await self._create_function(decl)
        except GatewayError as e:
            cause = e.cause if isinstance(e, FunctionRegistrationError) else e
            raise ConnectorRegistrationError(connector.name, cause) from e

        await _gather(self._subscribe(state, sub) for sub in decl.events)

    # -------------------------------------------------------------------------
    # Steps 4-5: orphans
    # -------------------------------------------------------------------------

    async def _remove_function(self, state: RemoteState, remote: dict[str, Any]) -> None:
        function_id = remote["functionId"]
        await _gather(
            self._unsubscribe(state, sub) for sub in state.subscriptions_of(function_id)
        )
        await _gather(
            self._clear_authorizer(et)
            for et in list(state.event_types.values())
            if et.get("authorizerId") == function_id
        )
        await self._delete_function(function_id)

    async def _clear_authorizer(self, event_type: dict[str, Any]) -> None:
        await self.client.clear_authorizer(event_type)
        event_type.pop("authorizerId", None)
        self._record("update", "event_type", event_type["name"])

    async def _delete_function(self, function_id: str) -> None:
        await self.client.delete_function(function_id)
        logger.info("Function %s removed.", function_id)
        self._record("delete", "function", function_id)

    async def _remove_orphaned_event_types(self, state: RemoteState) -> None:
        keep = set(self.model.event_types) | self.model.used_event_types()
        await _gather(
            self._delete_event_type(name)
            for name in sorted(state.owned_event_types)
            if name not in keep
        )

    def _record(self, action: str, kind: str, target: str) -> None:
        logger.debug("%s %s %s", action, kind, target)
        self.result.record(action, kind, target)
