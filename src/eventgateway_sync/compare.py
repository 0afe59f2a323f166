"""Equality predicates between declared and remote state.

The reconciler uses these to decide whether a remote resource already matches
its declaration (skip) or needs an update. Remote resources are plain dicts as
returned by the gateway.
"""

from __future__ import annotations

from typing import Any

from .models import CorsConfig, EventTypeDeclaration, FunctionDeclaration

# Values the gateway applies to CORS fields left unset
DEFAULT_CORS_ORIGINS = ("*",)
DEFAULT_CORS_METHODS = ("HEAD", "GET", "POST")
DEFAULT_CORS_HEADERS = ("Origin", "Accept", "Content-Type")
DEFAULT_CORS_CREDENTIALS = False

EndpointKey = tuple[str, str]


def endpoint_key(path: str, method: str | None) -> EndpointKey:
    """Matching identity of a subscription or CORS rule."""
    return (path, (method or "").upper())


def remote_endpoint_key(remote: dict[str, Any]) -> EndpointKey:
    return endpoint_key(remote.get("path", ""), remote.get("method"))


def subscription_matches(path: str, method: str, remote: dict[str, Any]) -> bool:
    """
    True if a remote subscription sits at the fully-qualified ``path`` and ``method``.

    Remote subscription ids are never compared; they are assigned by the
    gateway and unknown to the declaration. Method comparison ignores case.
    """
    return remote_endpoint_key(remote) == endpoint_key(path, method)


def functions_equal(declared: FunctionDeclaration, remote: dict[str, Any]) -> bool:
    """True if the remote function has the declared ``type`` and ``provider``."""
    return declared.type == remote.get("type") and declared.provider == (
        remote.get("provider") or {}
    )


def cors_equal(declared: CorsConfig, rule: dict[str, Any]) -> bool:
    """True if a remote CORS rule already carries the declared settings."""
    return (
        _as_tuple(rule.get("allowedOrigins"), DEFAULT_CORS_ORIGINS)
        == (declared.origins if declared.origins is not None else DEFAULT_CORS_ORIGINS)
        and _as_tuple(rule.get("allowedMethods"), DEFAULT_CORS_METHODS)
        == (declared.methods if declared.methods is not None else DEFAULT_CORS_METHODS)
        and _as_tuple(rule.get("allowedHeaders"), DEFAULT_CORS_HEADERS)
        == (declared.headers if declared.headers is not None else DEFAULT_CORS_HEADERS)
        and bool(rule.get("allowCredentials", DEFAULT_CORS_CREDENTIALS))
        == bool(
            declared.allow_credentials
            if declared.allow_credentials is not None
            else DEFAULT_CORS_CREDENTIALS
        )
    )


def event_type_needs_update(declared: EventTypeDeclaration, remote: dict[str, Any]) -> bool:
    """
    True if an existing remote event type differs from its declaration.

    Only an explicit ``authorizer_id`` is compared here; authorizers named by
    function are rewired after that function has been reconciled.
    """
    if declared.authorizer_id is not None:
        return remote.get("authorizerId") != declared.authorizer_id
    if declared.authorizer is None:
        # Declared without any authorizer: a leftover link must be cleared
        return bool(remote.get("authorizerId"))
    return False


def is_owned(remote: dict[str, Any], service: str, stage: str) -> bool:
    """True if a remote resource carries this service+stage ownership tag."""
    metadata = remote.get("metadata") or {}
    return metadata.get("service") == service and metadata.get("stage") == stage


def _as_tuple(value: Any, default: tuple[str, ...]) -> tuple[str, ...]:
    if value is None:
        return default
    return tuple(value)
