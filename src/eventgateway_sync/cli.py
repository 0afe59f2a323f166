"""Command-line interface for eventgateway-sync."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import yaml

from .client import GatewayClient
from .config import GatewayConfig
from .dashboard import format_cors, format_functions, format_subscriptions
from .declarations import DeclaredModel, ServiceDefinition, extract_declarations
from .exceptions import EventGatewaySyncError
from .naming import default_stack_name
from .outputs import fetch_stack_outputs
from .reconciler import ReconcileResult, Reconciler
from .transport import GatewayTransport

_SYMBOLS = {"create": "+", "update": "~", "delete": "-"}


def _file_option(f: Any) -> Any:
    return click.option(
        "--file",
        "-f",
        "file_path",
        default="serverless.yml",
        show_default=True,
        type=click.Path(exists=True, dir_okay=False),
        help="Service definition file.",
    )(f)


def _stage_options(f: Any) -> Any:
    f = click.option("--stage", "-s", help="Stage (default: provider.stage or 'dev').")(f)
    f = click.option("--region", "-r", help="AWS region (default: provider.region).")(f)
    return f


def _load_definition(file_path: str, stage: str | None, region: str | None) -> ServiceDefinition:
    return ServiceDefinition.from_yaml(Path(file_path).read_text(), stage=stage, region=region)


def _client(transport: GatewayTransport, definition: ServiceDefinition) -> GatewayClient:
    return GatewayClient(
        transport, definition.service, definition.stage, transport.config.space
    )


def _print_operations(result: ReconcileResult) -> None:
    if not result.operations:
        click.echo("No changes. Event Gateway is up-to-date.")
        return
    for op in result.operations:
        symbol = _SYMBOLS.get(op.action, "?")
        click.echo(f"  {symbol} {op.action} {op.kind.replace('_', ' ')}: {op.target}")
    click.echo(
        f"\nApplied: {result.created} created, "
        f"{result.updated} updated, "
        f"{result.deleted} deleted."
    )


@click.group()
@click.version_option(package_name="eventgateway-sync")
@click.option("--verbose", "-v", is_flag=True, help="Log every remote call.")
def cli(verbose: bool) -> None:
    """Reconcile serverless functions and subscriptions with an Event Gateway."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@cli.command()
@_file_option
@_stage_options
@click.option(
    "--stack-name",
    help="CloudFormation stack holding the function outputs (default: {service}-{stage}).",
)
@click.option(
    "--endpoint-url",
    help="CloudFormation endpoint URL (e.g., http://localhost:4566 for LocalStack).",
)
def deploy(
    file_path: str,
    stage: str | None,
    region: str | None,
    stack_name: str | None,
    endpoint_url: str | None,
) -> None:
    """Register functions, event types, subscriptions and CORS rules."""

    async def _deploy(config: GatewayConfig, model: DeclaredModel) -> ReconcileResult:
        outputs: dict[str, str] = {}
        if model.functions or model.connectors:
            outputs = await fetch_stack_outputs(
                stack_name or default_stack_name(model.service, model.stage),
                region=model.region,
                endpoint_url=endpoint_url,
            )
        async with GatewayTransport(config) as transport:
            client = GatewayClient(transport, model.service, model.stage, config.space)
            return await Reconciler(client, model, outputs).run()

    try:
        definition = _load_definition(file_path, stage, region)
        config = GatewayConfig.from_service(definition.custom)
        model = extract_declarations(definition)

        click.echo(f"Event Gateway: {config.url} (space: {config.space})")
        click.echo(f"  Service: {model.service}")
        click.echo(f"  Stage: {model.stage}")
        click.echo()

        result = asyncio.run(_deploy(config, model))
    except EventGatewaySyncError as e:
        click.echo(f"✗ Deployment failed: {e}", err=True)
        sys.exit(1)

    _print_operations(result)


@cli.command()
@_file_option
@_stage_options
@click.option("--yes", is_flag=True, help="Skip confirmation prompt.")
def remove(file_path: str, stage: str | None, region: str | None, yes: bool) -> None:
    """Delete everything this service and stage registered on the gateway."""
    try:
        definition = _load_definition(file_path, stage, region)
        config = GatewayConfig.from_service(definition.custom)
        model = extract_declarations(definition)
    except EventGatewaySyncError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    if not yes:
        click.confirm(
            f"Remove all Event Gateway resources of {model.service}-{model.stage}?",
            abort=True,
        )

    async def _remove() -> ReconcileResult:
        async with GatewayTransport(config) as transport:
            client = GatewayClient(transport, model.service, model.stage, config.space)
            return await Reconciler(client, model).remove()

    try:
        result = asyncio.run(_remove())
    except EventGatewaySyncError as e:
        click.echo(f"✗ Removal failed: {e}", err=True)
        sys.exit(1)

    _print_operations(result)


@cli.command()
@_file_option
@_stage_options
@click.option("--event", "-e", "event_type", required=True, help="Event type to emit.")
@click.option("--path", "-p", default="/", help="Path relative to the space.")
@click.option("--data", "-d", default=None, help="Event data as JSON.")
def emit(
    file_path: str,
    stage: str | None,
    region: str | None,
    event_type: str,
    path: str,
    data: str | None,
) -> None:
    """Emit a test event."""
    try:
        payload = json.loads(data) if data else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--data") from e

    async def _emit(config: GatewayConfig, definition: ServiceDefinition) -> Any:
        async with GatewayTransport(config) as transport:
            return await _client(transport, definition).emit(event_type, payload, path=path)

    try:
        definition = _load_definition(file_path, stage, region)
        config = GatewayConfig.from_service(definition.custom)
        response = asyncio.run(_emit(config, definition))
    except EventGatewaySyncError as e:
        click.echo(f"✗ Emit failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Event '{event_type}' emitted")
    if response is not None:
        click.echo(json.dumps(response, indent=2) if not isinstance(response, str) else response)


@cli.command()
@_file_option
@_stage_options
def dashboard(file_path: str, stage: str | None, region: str | None) -> None:
    """Show functions, subscriptions and CORS rules registered by this service."""

    async def _dashboard(
        config: GatewayConfig, definition: ServiceDefinition
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]], list[dict[str, Any]]]:
        async with GatewayTransport(config) as transport:
            client = _client(transport, definition)
            functions, subscriptions, cors = await asyncio.gather(
                client.list_service_functions(),
                client.list_service_subscriptions(),
                client.list_service_cors(),
            )
            return functions, subscriptions, cors

    try:
        definition = _load_definition(file_path, stage, region)
        config = GatewayConfig.from_service(definition.custom)
        functions, subscriptions, cors = asyncio.run(_dashboard(config, definition))
    except EventGatewaySyncError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    click.echo(f"Event Gateway: {config.url} (space: {config.space})\n")
    click.echo("Functions")
    click.echo(format_functions(functions))
    click.echo("\nSubscriptions")
    click.echo(format_subscriptions(subscriptions))
    if cors:
        click.echo("\nCORS")
        click.echo(format_cors(cors))


@cli.command()
@_file_option
@_stage_options
def template(file_path: str, stage: str | None, region: str | None) -> None:
    """Print the IAM statements and stack outputs connector functions need."""
    try:
        definition = _load_definition(file_path, stage, region)
        model = extract_declarations(definition)
    except EventGatewaySyncError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    document = {
        "PolicyStatements": model.template.policy_statements(),
        "Outputs": model.template.outputs,
    }
    click.echo(yaml.safe_dump(document, sort_keys=False, default_flow_style=False))


if __name__ == "__main__":
    cli()
