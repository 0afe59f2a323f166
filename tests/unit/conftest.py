"""Shared fixtures for eventgateway-sync unit tests."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from eventgateway_sync.client import GatewayClient
from eventgateway_sync.declarations import (
    DeclaredModel,
    ServiceDefinition,
    extract_declarations,
)

SERVICE = "test"
STAGE = "dev"
REGION = "us-east-1"
OWNED = {"service": SERVICE, "stage": STAGE}

ACCESS_KEY = "AKIAEVENTGATEWAY"
SECRET_KEY = "event-gateway-secret"

_WRITE_METHODS = (
    "create_function",
    "update_function",
    "create_event_type",
    "update_event_type",
    "subscribe",
    "create_cors",
    "update_cors",
)
_DELETE_METHODS = (
    "delete_function",
    "delete_event_type",
    "unsubscribe",
    "delete_cors",
    "emit",
)
_LIST_METHODS = (
    "list_functions",
    "list_event_types",
    "list_subscriptions",
    "list_cors",
)


def function_arn(name: str) -> str:
    return f"arn:aws:lambda:{REGION}:123456789012:function:{SERVICE}-{STAGE}-{name}:1"


def lambda_provider(name: str) -> dict[str, str]:
    """Provider payload the reconciler sends for a compute function."""
    return {
        "arn": function_arn(name),
        "region": REGION,
        "awsAccessKeyId": ACCESS_KEY,
        "awsSecretAccessKey": SECRET_KEY,
    }


def remote_function(name: str, **overrides: Any) -> dict[str, Any]:
    """A compute function as the gateway lists it after a previous deploy."""
    function = {
        "functionId": f"{SERVICE}-{STAGE}-{name}",
        "type": "awslambda",
        "provider": lambda_provider(name),
        "metadata": dict(OWNED),
    }
    function.update(overrides)
    return function


def mutations(transport: MagicMock) -> list[str]:
    """Names of the write calls made on a mock transport, in call order."""
    return [name for name, _, _ in transport.mock_calls if not name.startswith("list_")]


@pytest.fixture
def transport() -> MagicMock:
    """Mock transport with an empty gateway behind it."""
    mock = MagicMock()
    for name in _WRITE_METHODS:
        setattr(mock, name, AsyncMock(return_value={}))
    for name in _DELETE_METHODS:
        setattr(mock, name, AsyncMock(return_value=None))
    for name in _LIST_METHODS:
        setattr(mock, name, AsyncMock(return_value=[]))
    return mock


@pytest.fixture
def client(transport: MagicMock) -> GatewayClient:
    return GatewayClient(transport, SERVICE, STAGE, "default")


@pytest.fixture
def outputs() -> dict[str, str]:
    """Stack outputs of a deployed service with functions f1, f2 and auth."""
    return {
        "EventGatewayUserAccessKey": ACCESS_KEY,
        "EventGatewayUserSecretKey": SECRET_KEY,
        "F1LambdaFunctionQualifiedArn": function_arn("f1"),
        "F2LambdaFunctionQualifiedArn": function_arn("f2"),
        "AuthLambdaFunctionQualifiedArn": function_arn("auth"),
    }


@pytest.fixture
def build_model():
    """Factory turning a ``functions`` block (and event types) into a model."""

    def _build(
        functions: dict[str, Any],
        event_types: dict[str, Any] | None = None,
    ) -> DeclaredModel:
        custom: dict[str, Any] = {"eventgateway": {"url": "localhost:4000"}}
        if event_types is not None:
            custom["eventTypes"] = event_types
        definition = ServiceDefinition.from_dict(
            {
                "service": SERVICE,
                "provider": {"stage": STAGE, "region": REGION},
                "functions": functions,
                "custom": custom,
            }
        )
        return extract_declarations(definition)

    return _build
