"""
eventgateway-sync: reconcile serverless functions with an Event Gateway.

Reads the functions, event types, subscriptions and CORS settings a service
declares, diffs them against what the gateway has registered for that
service and stage, and performs the creates, updates and deletes needed to
bring the two in line.

Example:
    from eventgateway_sync import (
        GatewayClient,
        GatewayConfig,
        GatewayTransport,
        Reconciler,
        ServiceDefinition,
        extract_declarations,
        fetch_stack_outputs,
    )

    definition = ServiceDefinition.from_yaml(open("serverless.yml").read())
    config = GatewayConfig.from_service(definition.custom)
    model = extract_declarations(definition)
    outputs = await fetch_stack_outputs(f"{model.service}-{model.stage}", model.region)

    async with GatewayTransport(config) as transport:
        client = GatewayClient(transport, model.service, model.stage, config.space)
        result = await Reconciler(client, model, outputs).run()
"""

from .client import GatewayClient
from .config import GatewayConfig
from .declarations import DeclaredModel, ServiceDefinition, extract_declarations
from .exceptions import (
    ConfigurationError,
    ConnectorInputsError,
    ConnectorRegistrationError,
    DeclarationError,
    EventGatewaySyncError,
    FunctionRegistrationError,
    GatewayError,
    GatewayRequestError,
    MissingOutputError,
    StackOutputsError,
    SubscriptionError,
)
from .models import CorsConfig, EventSubscription, EventTypeDeclaration, FunctionDeclaration
from .outputs import StackOutputs, fetch_stack_outputs
from .reconciler import Operation, ReconcileResult, Reconciler
from .transport import GatewayTransport
from .transport_protocol import GatewayTransportProtocol

__all__ = [
    # Core
    "GatewayClient",
    "GatewayConfig",
    "GatewayTransport",
    "GatewayTransportProtocol",
    "Reconciler",
    "ReconcileResult",
    "Operation",
    # Declarations
    "ServiceDefinition",
    "DeclaredModel",
    "extract_declarations",
    "CorsConfig",
    "EventSubscription",
    "EventTypeDeclaration",
    "FunctionDeclaration",
    # Stack outputs
    "StackOutputs",
    "fetch_stack_outputs",
    # Exceptions
    "EventGatewaySyncError",
    "ConfigurationError",
    "DeclarationError",
    "ConnectorInputsError",
    "GatewayError",
    "GatewayRequestError",
    "FunctionRegistrationError",
    "ConnectorRegistrationError",
    "SubscriptionError",
    "MissingOutputError",
    "StackOutputsError",
]
