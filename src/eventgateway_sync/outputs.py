"""CloudFormation stack outputs.

Outputs are fetched once per run and handed to the reconciler as a plain
``{OutputKey: OutputValue}`` mapping.
"""

from typing import Any

import aioboto3  # type: ignore
from botocore.exceptions import ClientError

from .exceptions import StackOutputsError


def parse_outputs(stack: dict[str, Any]) -> dict[str, str]:
    """Fold a described stack's ``Outputs`` into a mapping, skipping incomplete entries."""
    outputs: dict[str, str] = {}
    for output in stack.get("Outputs", []):
        key = output.get("OutputKey")
        value = output.get("OutputValue")
        if key and value:
            outputs[key] = value
    return outputs


class StackOutputs:
    """
    Reads the outputs of one CloudFormation stack.

    Example:
        async with StackOutputs("my-service-dev", region="us-east-1") as stack:
            outputs = await stack.fetch()

    Attributes:
        stack_name: Stack to describe
        region: AWS region (default: use boto3 defaults)
        endpoint_url: Optional CloudFormation endpoint (for LocalStack)
    """

    def __init__(
        self,
        stack_name: str,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self.stack_name = stack_name
        self.region = region
        self.endpoint_url = endpoint_url
        self._session: aioboto3.Session | None = None
        self._client: Any = None

    async def _get_client(self) -> Any:
        """Get or create CloudFormation client."""
        if self._client is not None:
            return self._client

        if self._session is None:
            self._session = aioboto3.Session()

        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url

        session = self._session
        self._client = await session.client("cloudformation", **kwargs).__aenter__()
        return self._client

    async def fetch(self) -> dict[str, str]:
        """
        Describe the stack and return its outputs.

        Raises:
            StackOutputsError: If the stack does not exist or cannot be described
        """
        client = await self._get_client()
        try:
            response = await client.describe_stacks(StackName=self.stack_name)
        except ClientError as e:
            raise StackOutputsError(self.stack_name, str(e)) from e

        stacks = response.get("Stacks", [])
        if not stacks:
            raise StackOutputsError(
                self.stack_name, "Unable to fetch CloudFormation stack information"
            )
        return parse_outputs(stacks[-1])

    async def close(self) -> None:
        """Close the underlying session and client."""
        if self._client is not None:
            try:
                await self._client.__aexit__(None, None, None)
            finally:
                self._client = None
        self._session = None

    async def __aenter__(self) -> "StackOutputs":
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()


async def fetch_stack_outputs(
    stack_name: str,
    region: str | None = None,
    endpoint_url: str | None = None,
) -> dict[str, str]:
    """Fetch the outputs of ``stack_name`` in a single call."""
    async with StackOutputs(stack_name, region=region, endpoint_url=endpoint_url) as stack:
        return await stack.fetch()
