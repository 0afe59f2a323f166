"""Exceptions for eventgateway-sync."""

from typing import Any

# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class EventGatewaySyncError(Exception):
    """
    Base exception for all eventgateway-sync errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Category Exceptions
# ---------------------------------------------------------------------------


class ConfigurationError(EventGatewaySyncError):
    """
    Raised when the gateway connection configuration is invalid.

    Missing required fields, deprecated fields, and missing gateway
    credentials in the stack outputs all end up here. Always raised
    before any remote call is made.
    """

    pass


class DeclarationError(EventGatewaySyncError):
    """
    Raised when the local service definition is malformed.

    This includes unrecognized connector types, missing connector inputs
    and event types pointing at an authorizer that is not declared.
    """

    pass


class GatewayError(EventGatewaySyncError):
    """
    Base exception for failures talking to the Event Gateway.
    """

    pass


# ---------------------------------------------------------------------------
# Declaration Exceptions
# ---------------------------------------------------------------------------


class ConnectorInputsError(DeclarationError):
    """
    Raised when a connector function declares unusable ``inputs``.

    Attributes:
        function_name: Declared function name
        function_type: Connector kind (awskinesis, awsfirehose, awssqs)
        provided: Input keys the user did provide
        resource_field: Sink-specific field required alongside ``arn``
    """

    def __init__(
        self,
        function_name: str,
        function_type: str,
        provided: list[str],
        resource_field: str,
    ) -> None:
        self.function_name = function_name
        self.function_type = function_type
        self.provided = provided
        self.resource_field = resource_field
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.provided:
            provided = ", ".join(f'"{name}"' for name in self.provided)
        else:
            provided = "none"
        return (
            f'Invalid inputs for {self.function_type} function "{self.function_name}". '
            f"You provided {provided}. "
            f'Please provide either "logicalId" or both "arn" and "{self.resource_field}" inputs.'
        )


# ---------------------------------------------------------------------------
# Gateway Exceptions
# ---------------------------------------------------------------------------


class GatewayRequestError(GatewayError):
    """
    Raised by the transport when the gateway answers with a non-2xx status.

    Attributes:
        status_code: HTTP status returned by the gateway (None if the request
            never got a response)
        method: HTTP method of the failed request
        url: Request URL
        body: Decoded response body, when there was one
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        *,
        method: str | None = None,
        url: str | None = None,
        body: Any = None,
    ) -> None:
        self.status_code = status_code
        self.method = method
        self.url = url
        self.body = body
        super().__init__(message)

    @property
    def already_exists(self) -> bool:
        """True if the gateway rejected a create because the resource exists."""
        return self.status_code == 409 or "already exists" in str(self)


class FunctionRegistrationError(GatewayError):
    """Raised when a function cannot be registered on the gateway."""

    def __init__(self, function_id: str, cause: Exception) -> None:
        self.function_id = function_id
        self.cause = cause
        super().__init__(f"Couldn't register a function {function_id}. {cause}")


class ConnectorRegistrationError(GatewayError):
    """Raised when a connector function cannot be registered on the gateway."""

    def __init__(self, function_name: str, cause: Exception) -> None:
        self.function_name = function_name
        self.cause = cause
        super().__init__(f'Couldn\'t register Connector Function "{function_name}": {cause}')


class SubscriptionError(GatewayError):
    """
    Raised when a subscription cannot be created.

    Attributes:
        function_id: Function the subscription targets
        path: Declared (space-relative) path
        conflict: True if another service owns the same endpoint
    """

    def __init__(
        self,
        function_id: str,
        path: str,
        cause: Exception,
        conflict: bool = False,
    ) -> None:
        self.function_id = function_id
        self.path = path
        self.cause = cause
        self.conflict = conflict
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.conflict:
            return (
                f"Could not subscribe the {self.function_id} function to the '{self.path}' "
                "endpoint. A subscription for that endpoint and method already "
                "exists in another service. Please remove that subscription before "
                "registering this subscription."
            )
        return f"Couldn't create subscriptions for {self.function_id}. {self.cause}"


# ---------------------------------------------------------------------------
# Stack Output Exceptions
# ---------------------------------------------------------------------------


class MissingOutputError(EventGatewaySyncError):
    """Raised when a required stack output is not present."""

    def __init__(self, output_name: str, function_name: str | None = None) -> None:
        self.output_name = output_name
        self.function_name = function_name
        msg = f'Output "{output_name}" not found in stack outputs'
        if function_name:
            msg += f' (function: "{function_name}")'
        super().__init__(msg)


class StackOutputsError(EventGatewaySyncError):
    """Raised when the CloudFormation stack cannot be described."""

    def __init__(self, stack_name: str, reason: str) -> None:
        self.stack_name = stack_name
        self.reason = reason
        super().__init__(f"Unable to fetch outputs of stack {stack_name}: {reason}")
