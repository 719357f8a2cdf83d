"""Lambda function create, code update and delete operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import (
    DeployError,
    DeployExhaustedError,
    ErrorKind,
    PackagingError,
    RemoveError,
    RetryExhaustedError,
    UpdateError,
    classify_error,
)
from ..models import DeployedFunction, ExecutionIdentity, PackageArtifact
from ..retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    return classify_error(exc) is ErrorKind.TRANSIENT


async def _read_artifact(name: str, artifact: PackageArtifact) -> bytes:
    try:
        return await asyncio.to_thread(artifact.read_bytes)
    except OSError as e:
        raise PackagingError(name, f"cannot read {artifact.artifact_path}: {e}", e) from e


class FunctionDeployer:
    """
    Creates new Lambda functions.

    A role created moments ago is often not yet visible to Lambda, which
    rejects the request with ``InvalidParameterValueException``. Those
    errors are retried with exponential backoff; any other error fails the
    deploy immediately.

    Args:
        lambda_client: aioboto3 Lambda client
        runtime: Runtime identifier for created functions
        handler: Handler for created functions
        retry_policy: Backoff for transient errors
        sleep: Awaitable sleep function (injected in tests)
    """

    def __init__(
        self,
        lambda_client: Any,
        runtime: str,
        handler: str,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._lambda = lambda_client
        self.runtime = runtime
        self.handler = handler
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    async def deploy(
        self,
        name: str,
        artifact: PackageArtifact,
        identity: ExecutionIdentity,
    ) -> DeployedFunction:
        """
        Create a function from a package and an execution role.

        Raises:
            DeployError: On a non-transient error (no retry)
            DeployExhaustedError: If every attempt failed with a transient
                error; carries the final attempt's error
            PackagingError: If the artifact cannot be read
        """
        zip_bytes = await _read_artifact(name, artifact)
        logger.debug(
            "CreateFunction %s: runtime=%s handler=%s role=%s (%d bytes)",
            name,
            self.runtime,
            self.handler,
            identity.role_arn,
            len(zip_bytes),
        )

        async def _create() -> Any:
            return await self._lambda.create_function(
                FunctionName=name,
                Runtime=self.runtime,
                Handler=self.handler,
                Role=identity.role_arn,
                Code={"ZipFile": zip_bytes},
            )

        try:
            response = await retry_async(
                _create,
                self.retry_policy,
                _is_transient,
                sleep=self._sleep,
                describe=f"create_function {name}",
            )
        except RetryExhaustedError as e:
            raise DeployExhaustedError(name, e.attempts, e.last_error) from e.last_error
        except (ClientError, BotoCoreError) as e:
            raise DeployError(name, cause=e) from e

        function = DeployedFunction.from_response(response)
        logger.info("Created function %s (%s)", function.name, function.arn)
        return function


class FunctionUpdater:
    """Replaces the code of existing functions. No retry."""

    def __init__(self, lambda_client: Any) -> None:
        self._lambda = lambda_client

    async def update(self, name: str, artifact: PackageArtifact) -> None:
        """
        Upload new code as the unpublished ``$LATEST`` revision.

        Raises:
            UpdateError: If the platform rejects the update
            PackagingError: If the artifact cannot be read
        """
        zip_bytes = await _read_artifact(name, artifact)
        logger.debug("UpdateFunctionCode %s (%d bytes)", name, len(zip_bytes))
        try:
            response = await self._lambda.update_function_code(
                FunctionName=name,
                ZipFile=zip_bytes,
                Publish=False,
            )
        except (ClientError, BotoCoreError) as e:
            raise UpdateError(name, cause=e) from e

        logger.info(
            "Updated function %s (sha256 %s)",
            response.get("FunctionName", name),
            response.get("CodeSha256", "unknown"),
        )


class FunctionRemover:
    """Deletes existing functions. No retry."""

    def __init__(self, lambda_client: Any) -> None:
        self._lambda = lambda_client

    async def remove(self, name: str) -> None:
        """
        Delete a function.

        Raises:
            RemoveError: If the platform rejects the delete (e.g. not found)
        """
        try:
            await self._lambda.delete_function(FunctionName=name)
        except (ClientError, BotoCoreError) as e:
            raise RemoveError(name, cause=e) from e

        logger.info("Deleted function %s", name)
