"""Integration test fixtures backed by a local moto server."""

import json

import boto3
import pytest

from lambda_reconciler.config import ReconcilerConfig
from lambda_reconciler.retry import RetryPolicy

REGION = "us-east-1"

BASIC_EXECUTION_DOCUMENT = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Action": ["logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents"],
            "Resource": "*",
        }
    ],
}


@pytest.fixture
def iam(moto_endpoint):
    """Synchronous IAM client for inspecting server state."""
    return boto3.client("iam", region_name=REGION, endpoint_url=moto_endpoint)


@pytest.fixture
def lambda_(moto_endpoint):
    """Synchronous Lambda client for inspecting server state."""
    return boto3.client("lambda", region_name=REGION, endpoint_url=moto_endpoint)


@pytest.fixture
def execution_policy_arn(iam) -> str:
    """
    Customer-managed stand-in for AWSLambdaBasicExecutionRole.

    moto does not load AWS managed policies unless told to, so the tests
    attach their own policy with the same permissions.
    """
    response = iam.create_policy(
        PolicyName="lambda-basic-execution",
        PolicyDocument=json.dumps(BASIC_EXECUTION_DOCUMENT),
    )
    return response["Policy"]["Arn"]


@pytest.fixture
def config(workspace, moto_endpoint, execution_policy_arn) -> ReconcilerConfig:
    """Config pointing every client at the moto server, with short retry delays."""
    return ReconcilerConfig(
        workspace=workspace,
        policy_arn=execution_policy_arn,
        region=REGION,
        endpoint_url=moto_endpoint,
        retry=RetryPolicy(max_attempts=2, base_delay=0.1, max_delay=0.1),
    )
