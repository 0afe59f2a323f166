"""Service definition parsing and declaration extraction.

Turns a ``serverless.yml``-style service definition into the normalized
:class:`DeclaredModel` the reconciler works from. Validation happens here, so
a malformed definition aborts the run before any remote call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .connectors import ConnectorSpec, validate_inputs
from .exceptions import ConfigurationError, DeclarationError, MissingOutputError
from .models import (
    COMPUTE_FUNCTION_TYPE,
    EventSubscription,
    EventTypeDeclaration,
    FunctionDeclaration,
    parse_event,
)
from .naming import (
    ACCESS_KEY_OUTPUT,
    SECRET_KEY_OUTPUT,
    function_id,
    lambda_version_output_logical_id,
)

logger = logging.getLogger(__name__)

EVENT_KEY = "eventgateway"

DEFAULT_STAGE = "dev"
DEFAULT_REGION = "us-east-1"


@dataclass(frozen=True)
class ServiceDefinition:
    """The parts of a service definition this tool reads."""

    service: str
    stage: str = DEFAULT_STAGE
    region: str = DEFAULT_REGION
    functions: dict[str, dict[str, Any]] = field(default_factory=dict)
    custom: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls,
        d: dict[str, Any],
        stage: str | None = None,
        region: str | None = None,
    ) -> ServiceDefinition:
        service = d.get("service")
        if isinstance(service, dict):
            service = service.get("name")
        if not service:
            raise DeclarationError("'service' is required in the service definition")

        provider = d.get("provider") or {}
        return cls(
            service=str(service),
            stage=stage or provider.get("stage") or DEFAULT_STAGE,
            region=region or provider.get("region") or DEFAULT_REGION,
            functions=dict(d.get("functions") or {}),
            custom=dict(d.get("custom") or {}),
        )

    @classmethod
    def from_yaml(
        cls,
        yaml_str: str,
        stage: str | None = None,
        region: str | None = None,
    ) -> ServiceDefinition:
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.from_dict(data, stage=stage, region=region)


@dataclass(frozen=True)
class FunctionSpec:
    """A compute function the gateway should know about."""

    name: str
    function_id: str
    events: tuple[EventSubscription, ...] = ()

    def to_declaration(
        self,
        outputs: dict[str, str],
        credentials: dict[str, str],
        region: str,
    ) -> FunctionDeclaration:
        """
        Resolve the provider payload from the stack outputs.

        Raises:
            MissingOutputError: If the function's qualified ARN output is missing
        """
        output_key = lambda_version_output_logical_id(self.name)
        arn = outputs.get(output_key)
        if not arn:
            raise MissingOutputError(output_key, self.name)
        return FunctionDeclaration(
            name=self.name,
            function_id=self.function_id,
            type=COMPUTE_FUNCTION_TYPE,
            provider={
                "arn": arn,
                "region": region,
                "awsAccessKeyId": credentials["awsAccessKeyId"],
                "awsSecretAccessKey": credentials["awsSecretAccessKey"],
            },
            events=self.events,
        )


@dataclass
class TemplateContributions:
    """IAM statements and stack outputs the deployment must carry."""

    policies: dict[str, dict[str, Any]] = field(default_factory=dict)
    outputs: dict[str, dict[str, Any]] = field(default_factory=dict)

    def policy_statements(self) -> list[dict[str, Any]]:
        return list(self.policies.values())


@dataclass(frozen=True)
class DeclaredModel:
    """Everything the service declares, normalized."""

    service: str
    stage: str
    region: str
    functions: dict[str, FunctionSpec]
    connectors: dict[str, ConnectorSpec]
    event_types: dict[str, EventTypeDeclaration]
    template: TemplateContributions

    def subscriptions(self) -> list[EventSubscription]:
        """Every declared subscription, compute and connector alike."""
        subs: list[EventSubscription] = []
        for function in self.functions.values():
            subs.extend(function.events)
        for connector in self.connectors.values():
            subs.extend(connector.events)
        return subs

    def used_event_types(self) -> set[str]:
        """Event types referenced by any declared subscription."""
        return {sub.event_type for sub in self.subscriptions()}

    def function_declarations(
        self, outputs: dict[str, str], credentials: dict[str, str]
    ) -> list[FunctionDeclaration]:
        return [
            function.to_declaration(outputs, credentials, self.region)
            for function in self.functions.values()
        ]


def gateway_credentials(outputs: dict[str, str]) -> dict[str, str]:
    """
    Access key pair the gateway invokes functions and sinks with.

    Raises:
        ConfigurationError: If either key is missing from the stack outputs
    """
    access_key = outputs.get(ACCESS_KEY_OUTPUT)
    secret_key = outputs.get(SECRET_KEY_OUTPUT)
    if not access_key or not secret_key:
        raise ConfigurationError("Event Gateway Access Key or Secret Key not found in outputs")
    return {"awsAccessKeyId": access_key, "awsSecretAccessKey": secret_key}


def _extract_events(func_id: str, func: dict[str, Any]) -> tuple[EventSubscription, ...]:
    events: list[EventSubscription] = []
    for entry in func.get("events") or []:
        if not isinstance(entry, dict) or EVENT_KEY not in entry:
            continue
        declared = parse_event(entry[EVENT_KEY] or {})
        events.append(EventSubscription.from_declared(func_id, declared))
    return tuple(events)


def extract_declarations(definition: ServiceDefinition) -> DeclaredModel:
    """
    Extract the gateway-relevant declarations of a service.

    Compute functions are kept when they have at least one gateway event or
    act as an authorizer. Functions declaring a ``type`` are connectors; they
    are validated, removed from the compute set, and contribute an IAM
    statement (plus an output for ``logicalId`` inputs).

    Raises:
        DeclarationError: On malformed events, connectors, or a missing
            authorizer function
    """
    service, stage = definition.service, definition.stage

    event_types = {
        name: EventTypeDeclaration.from_dict(name, value)
        for name, value in (definition.custom.get("eventTypes") or {}).items()
    }
    authorizers: set[str] = set()
    for decl in event_types.values():
        if decl.authorizer is None:
            continue
        if decl.authorizer not in definition.functions:
            raise DeclarationError(
                f'Authorizer function "{decl.authorizer}" of event type "{decl.name}" '
                "is not declared."
            )
        authorizers.add(decl.authorizer)

    template = TemplateContributions()
    functions: dict[str, FunctionSpec] = {}
    connectors: dict[str, ConnectorSpec] = {}

    for name, func in definition.functions.items():
        func = func or {}
        func_id = function_id(service, stage, name)

        if "type" in func:
            sink = validate_inputs(name, func["type"], func.get("inputs"))
            connector = ConnectorSpec(
                name=name,
                function_id=func_id,
                sink=sink,
                inputs=dict(func["inputs"]),
                events=_extract_events(func_id, func),
            )
            connectors[name] = connector
            template.policies[connector.policy_key()] = connector.policy_statement()
            descriptor = connector.output_descriptor()
            if descriptor is not None:
                template.outputs[connector.output_name] = descriptor
            continue

        events = _extract_events(func_id, func)
        if events or name in authorizers:
            functions[name] = FunctionSpec(name=name, function_id=func_id, events=events)

    logger.debug(
        "Extracted %d function(s), %d connector(s), %d event type(s) for %s-%s",
        len(functions),
        len(connectors),
        len(event_types),
        service,
        stage,
    )

    return DeclaredModel(
        service=service,
        stage=stage,
        region=definition.region,
        functions=functions,
        connectors=connectors,
        event_types=event_types,
        template=template,
    )
