"""Tests for Lambda function create, update and delete."""

from pathlib import Path

import pytest

from lambda_reconciler.exceptions import (
    DeployError,
    DeployExhaustedError,
    PackagingError,
    RemoveError,
    UpdateError,
)
from lambda_reconciler.infra.function_manager import (
    FunctionDeployer,
    FunctionRemover,
    FunctionUpdater,
)
from lambda_reconciler.models import DeployedFunction, ExecutionIdentity, PackageArtifact
from lambda_reconciler.retry import RetryPolicy
from tests.fixtures.aws_clients import RecordingSleep, client_error, function_arn, role_arn

ZIP_BYTES = b"PK\x05\x06" + b"\x00" * 18


@pytest.fixture
def artifact(tmp_path: Path) -> PackageArtifact:
    path = tmp_path / "fn-a.zip"
    path.write_bytes(ZIP_BYTES)
    return PackageArtifact(source_path=tmp_path, artifact_path=path)


@pytest.fixture
def identity() -> ExecutionIdentity:
    return ExecutionIdentity("fn-a", "fn-a-ExecRole", role_arn("fn-a-ExecRole"))


@pytest.fixture
def missing_artifact(tmp_path: Path) -> PackageArtifact:
    return PackageArtifact(source_path=tmp_path, artifact_path=tmp_path / "gone.zip")


def _transient():
    return client_error(
        "InvalidParameterValueException",
        "The role defined for the function cannot be assumed by Lambda.",
        "CreateFunction",
    )


def _deployer(lambda_client, sleep: RecordingSleep) -> FunctionDeployer:
    return FunctionDeployer(
        lambda_client,
        runtime="nodejs20.x",
        handler="index.handler",
        retry_policy=RetryPolicy(),
        sleep=sleep,
    )


class TestFunctionDeployer:
    """Tests for FunctionDeployer.deploy."""

    @pytest.mark.asyncio
    async def test_deploy(self, lambda_client, artifact, identity, recording_sleep) -> None:
        deployer = _deployer(lambda_client, recording_sleep)
        function = await deployer.deploy("fn-a", artifact, identity)

        assert function == DeployedFunction(name="fn-a", arn=function_arn("fn-a"))
        lambda_client.create_function.assert_awaited_once_with(
            FunctionName="fn-a",
            Runtime="nodejs20.x",
            Handler="index.handler",
            Role=role_arn("fn-a-ExecRole"),
            Code={"ZipFile": ZIP_BYTES},
        )
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_until_role_propagates(
        self, lambda_client, artifact, identity, recording_sleep
    ) -> None:
        """Transient on attempts 1-3, success on attempt 4."""
        success = {"FunctionName": "fn-a", "FunctionArn": function_arn("fn-a")}
        lambda_client.create_function.side_effect = [*(_transient() for _ in range(3)), success]

        deployer = _deployer(lambda_client, recording_sleep)
        function = await deployer.deploy("fn-a", artifact, identity)

        assert function.arn == function_arn("fn-a")
        assert lambda_client.create_function.await_count == 4
        assert recording_sleep.delays == [5.0, 10.0, 15.0]
        assert all(5.0 <= d <= 15.0 for d in recording_sleep.delays)

    @pytest.mark.asyncio
    async def test_fatal_error_fails_immediately(
        self, lambda_client, artifact, identity, recording_sleep
    ) -> None:
        fatal = client_error("ResourceConflictException", "Function already exist: fn-a")
        lambda_client.create_function.side_effect = fatal

        with pytest.raises(DeployError) as exc_info:
            await _deployer(lambda_client, recording_sleep).deploy("fn-a", artifact, identity)

        assert exc_info.value.cause is fatal
        assert exc_info.value.code == "ResourceConflictException"
        assert lambda_client.create_function.await_count == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_exhausted_carries_last_error(
        self, lambda_client, artifact, identity, recording_sleep
    ) -> None:
        errors = [_transient() for _ in range(4)]
        lambda_client.create_function.side_effect = errors

        with pytest.raises(DeployExhaustedError) as exc_info:
            await _deployer(lambda_client, recording_sleep).deploy("fn-a", artifact, identity)

        assert exc_info.value.attempts == 4
        assert exc_info.value.last_error is errors[3]
        assert exc_info.value.last_error is not errors[0]
        assert exc_info.value.function_name == "fn-a"
        assert lambda_client.create_function.await_count == 4

    @pytest.mark.asyncio
    async def test_custom_retry_policy(
        self, lambda_client, artifact, identity, recording_sleep
    ) -> None:
        lambda_client.create_function.side_effect = [_transient(), _transient()]
        deployer = FunctionDeployer(
            lambda_client,
            runtime="python3.12",
            handler="app.handler",
            retry_policy=RetryPolicy(max_attempts=2, base_delay=1.0, max_delay=1.0),
            sleep=recording_sleep,
        )

        with pytest.raises(DeployExhaustedError):
            await deployer.deploy("fn-a", artifact, identity)

        assert recording_sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_unreadable_artifact(
        self, lambda_client, missing_artifact, identity, recording_sleep
    ) -> None:
        deployer = _deployer(lambda_client, recording_sleep)

        with pytest.raises(PackagingError, match="cannot read") as exc_info:
            await deployer.deploy("fn-a", missing_artifact, identity)

        assert isinstance(exc_info.value.cause, FileNotFoundError)
        lambda_client.create_function.assert_not_awaited()


class TestFunctionUpdater:
    """Tests for FunctionUpdater.update."""

    @pytest.mark.asyncio
    async def test_update_is_not_published(self, lambda_client, artifact) -> None:
        result = await FunctionUpdater(lambda_client).update("fn-a", artifact)

        assert result is None
        lambda_client.update_function_code.assert_awaited_once_with(
            FunctionName="fn-a",
            ZipFile=ZIP_BYTES,
            Publish=False,
        )

    @pytest.mark.asyncio
    async def test_update_failure_is_not_retried(self, lambda_client, artifact) -> None:
        lambda_client.update_function_code.side_effect = _transient()

        with pytest.raises(UpdateError) as exc_info:
            await FunctionUpdater(lambda_client).update("fn-a", artifact)

        assert exc_info.value.function_name == "fn-a"
        assert lambda_client.update_function_code.await_count == 1

    @pytest.mark.asyncio
    async def test_unreadable_artifact(self, lambda_client, missing_artifact) -> None:
        with pytest.raises(PackagingError, match="cannot read") as exc_info:
            await FunctionUpdater(lambda_client).update("fn-a", missing_artifact)

        assert exc_info.value.function_name == "fn-a"
        lambda_client.update_function_code.assert_not_awaited()


class TestFunctionRemover:
    """Tests for FunctionRemover.remove."""

    @pytest.mark.asyncio
    async def test_remove(self, lambda_client) -> None:
        await FunctionRemover(lambda_client).remove("fn-b")

        lambda_client.delete_function.assert_awaited_once_with(FunctionName="fn-b")

    @pytest.mark.asyncio
    async def test_remove_missing_function(self, lambda_client) -> None:
        lambda_client.delete_function.side_effect = client_error(
            "ResourceNotFoundException", "Function not found: fn-b", "DeleteFunction"
        )

        with pytest.raises(RemoveError) as exc_info:
            await FunctionRemover(lambda_client).remove("fn-b")

        assert exc_info.value.code == "ResourceNotFoundException"
        assert lambda_client.delete_function.await_count == 1
