"""Connector functions: typed pass-throughs into stream, queue and firehose sinks.

A connector function is not compute. The gateway writes events straight into
the sink, so registration needs the sink's resource identifier (stream name,
delivery stream name or queue URL) and the deployment needs an IAM statement
letting the gateway user write to it.

Inputs come in two forms:

- ``logicalId``: a resource in the same stack. The statement targets its
  ``Arn`` attribute and a stack output exports its identifier under
  :func:`~eventgateway_sync.naming.connector_output_name`.
- ``arn`` plus the sink field: an external resource given explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConnectorInputsError, DeclarationError, MissingOutputError
from .models import EventSubscription
from .naming import connector_output_name


@dataclass(frozen=True)
class Sink:
    """Static description of a connector kind."""

    type: str
    resource_field: str
    action: str


SINKS: dict[str, Sink] = {
    "awskinesis": Sink("awskinesis", "streamName", "kinesis:PutRecord"),
    "awsfirehose": Sink("awsfirehose", "deliveryStreamName", "firehose:PutRecord"),
    "awssqs": Sink("awssqs", "queueUrl", "sqs:SendMessage"),
}


def get_sink(function_type: str) -> Sink:
    """
    Look up a connector kind.

    Raises:
        DeclarationError: If the type is not a recognized connector kind
    """
    try:
        return SINKS[function_type]
    except KeyError:
        raise DeclarationError(
            f'Unrecognized connector function type "{function_type}". '
            f"Expected one of: {', '.join(sorted(SINKS))}"
        ) from None


@dataclass(frozen=True)
class ConnectorSpec:
    """
    A validated connector function declaration.

    Attributes:
        name: Function key in the service definition
        function_id: Gateway function id
        sink: Connector kind
        inputs: Declared inputs (``logicalId``, or ``arn`` plus the sink field)
        events: Normalized subscriptions
    """

    name: str
    function_id: str
    sink: Sink
    inputs: dict[str, Any] = field(hash=False)
    events: tuple[EventSubscription, ...] = ()

    @property
    def logical_id(self) -> str | None:
        return self.inputs.get("logicalId")

    @property
    def output_name(self) -> str:
        return connector_output_name(self.name, self.sink.resource_field)

    def policy_key(self) -> str:
        """Key the IAM statement is registered under (the arn, or the logical id)."""
        return self.logical_id or self.inputs["arn"]

    def policy_statement(self) -> dict[str, Any]:
        """IAM statement allowing the gateway user to write into the sink."""
        if self.logical_id:
            resource: Any = {"Fn::GetAtt": [self.logical_id, "Arn"]}
        else:
            resource = self.inputs["arn"]
        return {"Effect": "Allow", "Action": [self.sink.action], "Resource": resource}

    def output_descriptor(self) -> dict[str, Any] | None:
        """Stack output exporting the sink identifier, for ``logicalId`` inputs only."""
        if not self.logical_id:
            return None
        return {
            "Value": {"Ref": self.logical_id},
            "Description": f"{self.sink.resource_field} of {self.name} connector target",
        }


def validate_inputs(name: str, function_type: str, inputs: Any) -> Sink:
    """
    Check a connector's ``inputs`` block.

    Raises:
        DeclarationError: If the type is unknown or no inputs block is present
        ConnectorInputsError: If inputs hold neither ``logicalId`` nor
            ``arn`` plus the sink field
    """
    sink = get_sink(function_type)

    if inputs is None:
        raise DeclarationError(f'No inputs provided for {function_type} function "{name}".')
    if not isinstance(inputs, dict):
        raise DeclarationError(f'Inputs of {function_type} function "{name}" must be a mapping.')

    if inputs.get("logicalId"):
        return sink
    if inputs.get("arn") and inputs.get(sink.resource_field):
        return sink

    raise ConnectorInputsError(name, function_type, list(inputs.keys()), sink.resource_field)


def resolve_provider(
    connector: ConnectorSpec,
    outputs: dict[str, str],
    credentials: dict[str, str],
    region: str,
) -> dict[str, Any]:
    """
    Build the gateway provider payload of a connector.

    Explicit sink values are passed through; ``logicalId`` connectors read
    theirs from the stack output named after the function and field.

    Raises:
        MissingOutputError: If the derived output is not in ``outputs``
    """
    field_name = connector.sink.resource_field
    value = connector.inputs.get(field_name)
    if not value:
        output_name = connector.output_name
        if output_name not in outputs:
            raise MissingOutputError(output_name, connector.name)
        value = outputs[output_name]

    return {
        field_name: value,
        "region": region,
        "awsAccessKeyId": credentials["awsAccessKeyId"],
        "awsSecretAccessKey": credentials["awsSecretAccessKey"],
    }
