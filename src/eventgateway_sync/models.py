"""Core records for eventgateway-sync.

Declared subscriptions arrive in three historical shapes. They are parsed into
a tagged union and normalized into a single :class:`EventSubscription` as soon
as they are read, so nothing downstream branches on the schema version.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import DeclarationError
from .naming import normalize_path

HTTP_EVENT = "http"
HTTP_REQUEST_EVENT_TYPE = "http.request"

SYNC = "sync"
ASYNC = "async"
SUBSCRIPTION_TYPES = (SYNC, ASYNC)

COMPUTE_FUNCTION_TYPE = "awslambda"


@dataclass(frozen=True)
class CorsConfig:
    """
    CORS settings for a subscription endpoint.

    An empty config (the ``cors: true`` shorthand) leaves every field to the
    gateway defaults.
    """

    origins: tuple[str, ...] | None = None
    methods: tuple[str, ...] | None = None
    headers: tuple[str, ...] | None = None
    allow_credentials: bool | None = None

    @classmethod
    def parse(cls, value: Any) -> CorsConfig | None:
        """Parse a declared ``cors`` value (``true`` or a settings mapping)."""
        if value is None or value is False:
            return None
        if value is True:
            return cls()
        if not isinstance(value, dict):
            raise DeclarationError(f"Invalid cors configuration: {value!r}")
        return cls(
            origins=_tuple_or_none(value.get("origins")),
            methods=_tuple_or_none(value.get("methods")),
            headers=_tuple_or_none(value.get("headers")),
            allow_credentials=value.get("allowCredentials"),
        )

    def to_payload(self) -> dict[str, Any]:
        """Gateway CORS fields, omitting the ones left to defaults."""
        payload: dict[str, Any] = {}
        if self.origins is not None:
            payload["allowedOrigins"] = list(self.origins)
        if self.methods is not None:
            payload["allowedMethods"] = list(self.methods)
        if self.headers is not None:
            payload["allowedHeaders"] = list(self.headers)
        if self.allow_credentials is not None:
            payload["allowCredentials"] = self.allow_credentials
        return payload


def _tuple_or_none(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


# ---------------------------------------------------------------------------
# Declared subscription shapes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LegacyHttpEvent:
    """``{event: http, path, method}``: a synchronous HTTP endpoint."""

    path: str | None = None
    method: str | None = None
    cors: CorsConfig | None = None


@dataclass(frozen=True)
class LegacyCustomEvent:
    """``{event: <name>, path}``: an asynchronous custom event."""

    event: str
    path: str | None = None
    cors: CorsConfig | None = None


@dataclass(frozen=True)
class ExplicitSubscription:
    """``{eventType, type, path, method}``: the current schema."""

    event_type: str
    type: str = ASYNC
    path: str | None = None
    method: str | None = None
    cors: CorsConfig | None = None


DeclaredEvent = LegacyHttpEvent | LegacyCustomEvent | ExplicitSubscription


def parse_event(d: dict[str, Any]) -> DeclaredEvent:
    """
    Parse one ``eventgateway`` event mapping into its schema variant.

    Raises:
        DeclarationError: If neither ``eventType`` nor ``event`` is given, or
            ``type`` is not sync/async
    """
    cors = CorsConfig.parse(d.get("cors"))

    if "eventType" in d:
        sub_type = d.get("type", ASYNC)
        if sub_type not in SUBSCRIPTION_TYPES:
            raise DeclarationError(
                f'Invalid subscription type "{sub_type}" for event type "{d["eventType"]}". '
                f"Expected one of: {', '.join(SUBSCRIPTION_TYPES)}"
            )
        return ExplicitSubscription(
            event_type=d["eventType"],
            type=sub_type,
            path=d.get("path"),
            method=d.get("method"),
            cors=cors,
        )

    event = d.get("event")
    if not event:
        raise DeclarationError(f'Event Gateway event is missing "eventType": {d!r}')
    if event == HTTP_EVENT:
        return LegacyHttpEvent(path=d.get("path"), method=d.get("method"), cors=cors)
    return LegacyCustomEvent(event=event, path=d.get("path"), cors=cors)


def default_method(sub_type: str) -> str:
    """HTTP method a subscription uses when none is declared."""
    return "GET" if sub_type == SYNC else "POST"


@dataclass(frozen=True)
class EventSubscription:
    """
    Canonical subscription record.

    ``path`` is relative to the space; the client prefixes the space when
    talking to the gateway. Matching identity is ``(path, method)``.
    """

    function_id: str
    event_type: str
    type: str
    path: str
    method: str
    cors: CorsConfig | None = None

    @classmethod
    def from_declared(cls, function_id: str, declared: DeclaredEvent) -> EventSubscription:
        """Normalize any declared shape into a subscription of ``function_id``."""
        if isinstance(declared, LegacyHttpEvent):
            event_type, sub_type, method = HTTP_REQUEST_EVENT_TYPE, SYNC, declared.method
        elif isinstance(declared, LegacyCustomEvent):
            event_type, sub_type, method = declared.event, ASYNC, None
        else:
            event_type, sub_type, method = declared.event_type, declared.type, declared.method

        return cls(
            function_id=function_id,
            event_type=event_type,
            type=sub_type,
            path=normalize_path(declared.path),
            method=(method or default_method(sub_type)).upper(),
            cors=declared.cors,
        )


# ---------------------------------------------------------------------------
# Functions and event types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunctionDeclaration:
    """
    A function as it should be registered on the gateway.

    Attributes:
        name: Function key in the service definition
        function_id: Gateway function id
        type: ``awslambda`` or a connector kind
        provider: Provider payload (region, credentials, target locator)
        events: Normalized subscriptions of this function
    """

    name: str
    function_id: str
    type: str
    provider: dict[str, Any] = field(hash=False)
    events: tuple[EventSubscription, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "functionId": self.function_id,
            "type": self.type,
            "provider": dict(self.provider),
        }


@dataclass(frozen=True)
class EventTypeDeclaration:
    """
    A declared event type.

    ``authorizer`` names a declared function whose id is filled in once the
    function is registered; ``authorizer_id`` is an explicit id passed
    through unchanged.
    """

    name: str
    authorizer: str | None = None
    authorizer_id: str | None = None

    @classmethod
    def from_dict(cls, name: str, d: dict[str, Any] | None) -> EventTypeDeclaration:
        d = d or {}
        return cls(
            name=name,
            authorizer=d.get("authorizer"),
            authorizer_id=d.get("authorizerId"),
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name}
        if self.authorizer_id is not None:
            payload["authorizerId"] = self.authorizer_id
        return payload
