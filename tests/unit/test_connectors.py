"""Tests for connector function sinks."""

import pytest

from eventgateway_sync.connectors import (
    SINKS,
    ConnectorSpec,
    get_sink,
    resolve_provider,
    validate_inputs,
)
from eventgateway_sync.exceptions import ConnectorInputsError, MissingOutputError

CREDENTIALS = {"awsAccessKeyId": "k", "awsSecretAccessKey": "s"}


def _connector(function_type: str, inputs: dict) -> ConnectorSpec:
    return ConnectorSpec(
        name="sink",
        function_id="svc-dev-sink",
        sink=get_sink(function_type),
        inputs=inputs,
    )


class TestSinks:
    @pytest.mark.parametrize(
        ("function_type", "resource_field", "action"),
        [
            ("awskinesis", "streamName", "kinesis:PutRecord"),
            ("awsfirehose", "deliveryStreamName", "firehose:PutRecord"),
            ("awssqs", "queueUrl", "sqs:SendMessage"),
        ],
    )
    def test_sink_table(self, function_type: str, resource_field: str, action: str) -> None:
        sink = SINKS[function_type]
        assert sink.resource_field == resource_field
        assert sink.action == action


class TestValidateInputs:
    def test_logical_id(self) -> None:
        assert validate_inputs("s", "awssqs", {"logicalId": "Queue"}) is SINKS["awssqs"]

    def test_arn_and_field(self) -> None:
        inputs = {"arn": "arn:q", "queueUrl": "https://q"}
        assert validate_inputs("s", "awssqs", inputs) is SINKS["awssqs"]

    def test_arn_alone(self) -> None:
        with pytest.raises(ConnectorInputsError) as exc_info:
            validate_inputs("s", "awssqs", {"arn": "arn:q"})
        assert exc_info.value.provided == ["arn"]
        assert exc_info.value.resource_field == "queueUrl"


class TestResolveProvider:
    def test_explicit_value(self) -> None:
        connector = _connector("awsfirehose", {"arn": "a", "deliveryStreamName": "events"})
        provider = resolve_provider(connector, {}, CREDENTIALS, "eu-west-1")
        assert provider == {
            "deliveryStreamName": "events",
            "region": "eu-west-1",
            "awsAccessKeyId": "k",
            "awsSecretAccessKey": "s",
        }

    def test_value_from_output(self) -> None:
        connector = _connector("awssqs", {"logicalId": "Queue"})
        provider = resolve_provider(
            connector, {"SinkQueueUrl": "https://q"}, CREDENTIALS, "us-east-1"
        )
        assert provider["queueUrl"] == "https://q"

    def test_missing_output(self) -> None:
        connector = _connector("awssqs", {"logicalId": "Queue"})
        with pytest.raises(MissingOutputError, match="SinkQueueUrl") as exc_info:
            resolve_provider(connector, {}, CREDENTIALS, "us-east-1")
        assert exc_info.value.function_name == "sink"


class TestTemplate:
    def test_sqs_statement_by_arn(self) -> None:
        connector = _connector("awssqs", {"arn": "arn:q", "queueUrl": "https://q"})
        assert connector.policy_key() == "arn:q"
        assert connector.policy_statement() == {
            "Effect": "Allow",
            "Action": ["sqs:SendMessage"],
            "Resource": "arn:q",
        }
        assert connector.output_descriptor() is None

    def test_logical_id_output(self) -> None:
        connector = _connector("awskinesis", {"logicalId": "Stream"})
        assert connector.policy_key() == "Stream"
        assert connector.output_name == "SinkStreamName"
        assert connector.output_descriptor()["Value"] == {"Ref": "Stream"}
