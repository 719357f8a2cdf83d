"""Pytest fixtures for lambda-reconciler tests."""

from pathlib import Path

import pytest

from tests.fixtures.aws_clients import RecordingSleep, make_iam_client, make_lambda_client
from tests.fixtures.moto import aws_credentials, moto_endpoint  # noqa: F401
from tests.fixtures.sources import write_function_sources


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Workspace with sources for the function names used across tests."""
    for name in ("fn-a", "fn-b", "fn-c", "fn-d", "fn-x", "fn-y", "fn-z"):
        write_function_sources(tmp_path, name)
    return tmp_path


@pytest.fixture
def iam_client():
    """IAM client mock whose calls succeed."""
    return make_iam_client()


@pytest.fixture
def lambda_client():
    """Lambda client mock whose calls succeed."""
    return make_lambda_client()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Sleep replacement that records requested delays."""
    return RecordingSleep()
