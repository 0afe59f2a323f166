"""Tests for identifier and output-name derivation."""

import pytest

from eventgateway_sync.naming import (
    capitalize,
    connector_output_name,
    default_stack_name,
    event_path,
    function_id,
    lambda_version_output_logical_id,
    normalize_function_name,
    normalize_path,
    ownership_prefix,
)


class TestFunctionIds:
    def test_function_id(self) -> None:
        assert function_id("svc", "dev", "hello") == "svc-dev-hello"

    def test_ownership_prefix(self) -> None:
        assert function_id("svc", "dev", "hello").startswith(ownership_prefix("svc", "dev"))


class TestOutputNames:
    def test_capitalize_keeps_rest(self) -> None:
        assert capitalize("saveToKinesis") == "SaveToKinesis"
        assert capitalize("") == ""

    def test_connector_output_name(self) -> None:
        assert connector_output_name("toQueue", "queueUrl") == "ToQueueQueueUrl"

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("hello", "Hello"),
            ("hello-world", "HelloDashworld"),
            ("hello_world", "HelloUnderscoreworld"),
        ],
    )
    def test_normalize_function_name(self, name: str, expected: str) -> None:
        assert normalize_function_name(name) == expected

    def test_lambda_version_output(self) -> None:
        assert lambda_version_output_logical_id("f1") == "F1LambdaFunctionQualifiedArn"

    def test_default_stack_name(self) -> None:
        assert default_stack_name("svc", "prod") == "svc-prod"


class TestPaths:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [(None, "/"), ("", "/"), ("hello", "/hello"), ("/hello", "/hello")],
    )
    def test_normalize_path(self, path, expected: str) -> None:
        assert normalize_path(path) == expected

    def test_event_path(self) -> None:
        assert event_path("hello", "default") == "/default/hello"
        assert event_path(None, "team") == "/team/"
