"""Identifier and output-name derivation.

Every name the reconciler has to agree on with something else lives here:
function ids shared with previous deployments, CloudFormation output keys
shared with the packaging step, and space-prefixed subscription paths shared
with the gateway.
"""


ACCESS_KEY_OUTPUT = "EventGatewayUserAccessKey"
"""Stack output holding the access key id the gateway invokes functions with."""

SECRET_KEY_OUTPUT = "EventGatewayUserSecretKey"
"""Stack output holding the matching secret access key."""

DEFAULT_SPACE = "default"
"""Space used when the configuration does not name one."""


def function_id(service: str, stage: str, name: str) -> str:
    """Gateway function id for a declared function: ``<service>-<stage>-<name>``."""
    return f"{service}-{stage}-{name}"


def ownership_prefix(service: str, stage: str) -> str:
    """Prefix shared by every function id this service+stage registers."""
    return f"{service}-{stage}-"


def capitalize(value: str) -> str:
    """Upper-case the first character and leave the rest untouched."""
    if not value:
        return value
    return value[0].upper() + value[1:]


def connector_output_name(function_name: str, resource_field: str) -> str:
    """
    Stack output key carrying a connector's resolved resource identifier.

    Example:
        >>> connector_output_name("saveToKinesis", "streamName")
        'SaveToKinesisStreamName'
    """
    return capitalize(function_name) + capitalize(resource_field)


def normalize_function_name(name: str) -> str:
    """Normalize a function name the way the serverless framework does for logical ids."""
    return capitalize(name).replace("-", "Dash").replace("_", "Underscore")


def lambda_version_output_logical_id(name: str) -> str:
    """Stack output key holding the qualified ARN of a compute function."""
    return f"{normalize_function_name(name)}LambdaFunctionQualifiedArn"


def default_stack_name(service: str, stage: str) -> str:
    """CloudFormation stack name the serverless framework deploys to."""
    return f"{service}-{stage}"


def normalize_path(path: str | None) -> str:
    """Relative subscription path with a leading slash (``/`` when empty)."""
    path = path or "/"
    if not path.startswith("/"):
        path = "/" + path
    return path


def event_path(path: str | None, space: str) -> str:
    """
    Fully-qualified subscription path: ``/<space><path>``.

    Example:
        >>> event_path("hello", "default")
        '/default/hello'
    """
    return f"/{space}{normalize_path(path)}"
