"""Gateway connection configuration.

The configuration is read once from the ``custom.eventgateway`` section of the
service definition (with environment overrides) and passed explicitly into
the transport. There is no module-level client.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any

from .exceptions import ConfigurationError
from .naming import DEFAULT_SPACE

URL_ENV_VAR = "EVENT_GATEWAY_URL"
CONFIGURATION_URL_ENV_VAR = "EVENT_GATEWAY_CONFIGURATION_URL"
SPACE_ENV_VAR = "EVENT_GATEWAY_SPACE"
ACCESS_KEY_ENV_VAR = "EVENT_GATEWAY_ACCESS_KEY"

DEFAULT_TIMEOUT = 30.0

# Deprecated field -> replacement
_DEPRECATED_FIELDS = {
    "subdomain": "space",
    "apikey": "accessKey",
}

_SCHEME_PATTERN = re.compile(r"^https?://")


@dataclass(frozen=True)
class GatewayConfig:
    """
    Connection settings for one Event Gateway.

    Attributes:
        url: Events API base URL (where events are emitted)
        configuration_url: Configuration API base URL
        space: Ownership space prefixed onto every subscription path
        access_key: Optional access key sent as the Authorization header
        timeout: Request timeout in seconds
    """

    url: str
    configuration_url: str
    space: str = DEFAULT_SPACE
    access_key: str | None = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_dict(cls, d: dict[str, Any] | None) -> GatewayConfig:
        """
        Build a config from the ``custom.eventgateway`` mapping.

        Environment variables override the mapping field by field.

        Raises:
            ConfigurationError: If ``url`` is missing or a deprecated field is used
        """
        d = dict(d or {})

        for deprecated, replacement in _DEPRECATED_FIELDS.items():
            if deprecated in d:
                raise ConfigurationError(
                    f'"{deprecated}" property is deprecated. '
                    f'Please use "{replacement}" property instead.'
                )

        url = os.environ.get(URL_ENV_VAR) or d.get("url")
        if not url:
            raise ConfigurationError(
                'Required "url" property is missing from Event Gateway configuration'
            )
        url = _with_scheme(str(url))

        configuration_url = os.environ.get(CONFIGURATION_URL_ENV_VAR) or d.get(
            "configurationUrl"
        )
        if configuration_url:
            configuration_url = _with_scheme(str(configuration_url))
        else:
            configuration_url = default_configuration_url(url)

        space = os.environ.get(SPACE_ENV_VAR) or d.get("space") or DEFAULT_SPACE
        access_key = os.environ.get(ACCESS_KEY_ENV_VAR) or d.get("accessKey")

        timeout = d.get("timeout", DEFAULT_TIMEOUT)
        try:
            timeout = float(timeout)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f'Invalid "timeout" value: {timeout!r}') from e

        return cls(
            url=url.rstrip("/"),
            configuration_url=configuration_url.rstrip("/"),
            space=str(space),
            access_key=access_key,
            timeout=timeout,
        )

    @classmethod
    def from_service(cls, custom: dict[str, Any] | None) -> GatewayConfig:
        """Build a config from a service's whole ``custom`` section."""
        custom = custom or {}
        if "eventgateway" not in custom and not os.environ.get(URL_ENV_VAR):
            raise ConfigurationError("No Event Gateway configuration provided in serverless.yml")
        return cls.from_dict(custom.get("eventgateway"))


def default_configuration_url(url: str) -> str:
    """
    Configuration API URL for a gateway when none is configured.

    A locally running gateway serves events on port 4000 and configuration on
    port 4001. Hosted gateways serve both from the same host.
    """
    stripped = url.rstrip("/")
    if stripped.endswith(":4000"):
        return stripped[: -len(":4000")] + ":4001"
    return stripped


def _with_scheme(url: str) -> str:
    if _SCHEME_PATTERN.match(url):
        return url
    return f"https://{url}"
