"""Tests for CLI commands."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from eventgateway_sync.cli import cli
from eventgateway_sync.exceptions import StackOutputsError
from tests.unit.conftest import remote_function

SERVICE_YAML = """
service: test
provider:
  name: aws
custom:
  eventgateway:
    url: localhost:4000
functions:
  f1:
    handler: f1.handler
    events:
      - eventgateway:
          event: http
          path: hello
          method: GET
"""

EVENT_TYPES_ONLY_YAML = """
service: test
custom:
  eventgateway:
    url: localhost:4000
  eventTypes:
    user.created:
"""

CONNECTOR_YAML = """
service: test
custom:
  eventgateway:
    url: localhost:4000
functions:
  toStream:
    type: awskinesis
    inputs:
      logicalId: EventsStream
"""


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EVENT_GATEWAY_URL", raising=False)
    monkeypatch.delenv("EVENT_GATEWAY_SPACE", raising=False)


@pytest.fixture
def gateway(transport: MagicMock) -> Iterator[MagicMock]:
    """Patch the HTTP transport with the shared mock transport."""
    with patch("eventgateway_sync.cli.GatewayTransport") as mock_cls:
        mock_cls.return_value.__aenter__.return_value = transport
        transport.config.space = "default"
        yield mock_cls


def _write(content: str) -> None:
    Path("serverless.yml").write_text(content)


class TestHelp:
    def test_cli_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Reconcile serverless functions" in result.output

    def test_deploy_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["deploy", "--help"])
        assert result.exit_code == 0
        assert "--stack-name" in result.output
        assert "--endpoint-url" in result.output
        assert "--stage" in result.output


class TestDeploy:
    """deploy command."""

    def test_deploy_registers_function(
        self, runner: CliRunner, gateway: MagicMock, transport: MagicMock, outputs
    ) -> None:
        """Deploy prints every operation it performed."""
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            with patch(
                "eventgateway_sync.cli.fetch_stack_outputs",
                AsyncMock(return_value=outputs),
            ) as mock_fetch:
                result = runner.invoke(cli, ["deploy"])

        assert result.exit_code == 0, result.output
        assert "Event Gateway: https://localhost:4000 (space: default)" in result.output
        assert "+ create function: test-dev-f1" in result.output
        assert "+ create subscription: GET /hello" in result.output
        assert "Applied: 3 created, 0 updated, 0 deleted." in result.output
        mock_fetch.assert_awaited_once_with(
            "test-dev", region="us-east-1", endpoint_url=None
        )
        transport.create_function.assert_awaited_once()

    def test_deploy_custom_stack_and_stage(
        self, runner: CliRunner, gateway: MagicMock, outputs
    ) -> None:
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            with patch(
                "eventgateway_sync.cli.fetch_stack_outputs",
                AsyncMock(return_value=outputs),
            ) as mock_fetch:
                result = runner.invoke(
                    cli,
                    [
                        "deploy",
                        "--stage",
                        "prod",
                        "--stack-name",
                        "custom-stack",
                        "--endpoint-url",
                        "http://localhost:4566",
                    ],
                )

        assert result.exit_code == 0, result.output
        assert "Stage: prod" in result.output
        mock_fetch.assert_awaited_once_with(
            "custom-stack", region="us-east-1", endpoint_url="http://localhost:4566"
        )

    def test_deploy_up_to_date(
        self, runner: CliRunner, gateway: MagicMock, transport: MagicMock
    ) -> None:
        """Nothing to do reports an up-to-date gateway without reading outputs."""
        transport.list_event_types.return_value = [
            {"name": "user.created", "metadata": {"service": "test", "stage": "dev"}}
        ]
        with runner.isolated_filesystem():
            _write(EVENT_TYPES_ONLY_YAML)
            with patch("eventgateway_sync.cli.fetch_stack_outputs", AsyncMock()) as mock_fetch:
                result = runner.invoke(cli, ["deploy"])

        assert result.exit_code == 0, result.output
        assert "No changes. Event Gateway is up-to-date." in result.output
        mock_fetch.assert_not_awaited()

    def test_deploy_stack_error(self, runner: CliRunner, gateway: MagicMock) -> None:
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            with patch(
                "eventgateway_sync.cli.fetch_stack_outputs",
                AsyncMock(side_effect=StackOutputsError("test-dev", "Stack does not exist")),
            ):
                result = runner.invoke(cli, ["deploy"])

        assert result.exit_code == 1
        assert "✗ Deployment failed" in result.output
        assert "Stack does not exist" in result.output

    def test_deploy_without_gateway_config(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            _write("service: test\nfunctions: {}\n")
            result = runner.invoke(cli, ["deploy"])

        assert result.exit_code == 1
        assert "No Event Gateway configuration provided" in result.output

    def test_deploy_missing_file(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["deploy"])

        assert result.exit_code == 2


class TestRemove:
    """remove command."""

    def test_remove_with_yes(
        self, runner: CliRunner, gateway: MagicMock, transport: MagicMock
    ) -> None:
        transport.list_functions.return_value = [remote_function("f1")]
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            result = runner.invoke(cli, ["remove", "--yes"])

        assert result.exit_code == 0, result.output
        assert "- delete function: test-dev-f1" in result.output
        transport.delete_function.assert_awaited_once_with("test-dev-f1")

    def test_remove_aborted(
        self, runner: CliRunner, gateway: MagicMock, transport: MagicMock
    ) -> None:
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            result = runner.invoke(cli, ["remove"], input="n\n")

        assert result.exit_code == 1
        transport.delete_function.assert_not_awaited()


class TestEmit:
    """emit command."""

    def test_emit(self, runner: CliRunner, gateway: MagicMock, transport: MagicMock) -> None:
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            result = runner.invoke(
                cli, ["emit", "-e", "user.created", "-p", "users", "-d", '{"id": 1}']
            )

        assert result.exit_code == 0, result.output
        assert "✓ Event 'user.created' emitted" in result.output
        transport.emit.assert_awaited_once_with(
            {"eventType": "user.created", "data": {"id": 1}},
            path="/default/users",
            headers=None,
        )

    def test_emit_invalid_json(self, runner: CliRunner, gateway: MagicMock) -> None:
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            result = runner.invoke(cli, ["emit", "-e", "user.created", "-d", "{nope"])

        assert result.exit_code == 2
        assert "Invalid JSON" in result.output


class TestDashboard:
    def test_dashboard_lists_registrations(
        self, runner: CliRunner, gateway: MagicMock, transport: MagicMock
    ) -> None:
        transport.list_functions.return_value = [remote_function("f1")]
        transport.list_subscriptions.return_value = [
            {
                "subscriptionId": "s1",
                "functionId": "test-dev-f1",
                "eventType": "http.request",
                "type": "sync",
                "method": "GET",
                "path": "/default/hello",
                "metadata": {"service": "test", "stage": "dev"},
            }
        ]
        with runner.isolated_filesystem():
            _write(SERVICE_YAML)
            result = runner.invoke(cli, ["dashboard"])

        assert result.exit_code == 0, result.output
        assert "test-dev-f1" in result.output
        assert "/default/hello" in result.output
        assert "CORS" not in result.output


class TestTemplate:
    def test_template_prints_policy_and_outputs(self, runner: CliRunner) -> None:
        with runner.isolated_filesystem():
            _write(CONNECTOR_YAML)
            result = runner.invoke(cli, ["template"])

        assert result.exit_code == 0, result.output
        assert "kinesis:PutRecord" in result.output
        assert "ToStreamStreamName" in result.output
        assert "EventsStream" in result.output
