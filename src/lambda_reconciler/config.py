"""Configuration for lambda-reconciler runs."""

import json
import os
from dataclasses import dataclass, field
from importlib.resources import files
from pathlib import Path

from .naming import ROLE_SUFFIX
from .retry import RetryPolicy

WORKSPACE_ENV_VAR = "GITHUB_WORKSPACE"
"""Environment variable holding the checked-out repository root."""

DEFAULT_SOURCE_ROOT = "REST"
"""Directory under the workspace holding one sub-directory per function."""

DEFAULT_RUNTIME = "nodejs20.x"
DEFAULT_HANDLER = "index.handler"

BASIC_EXECUTION_POLICY_ARN = "arn:aws:iam::aws:policy/service-role/AWSLambdaBasicExecutionRole"
"""Managed policy attached to every execution role."""

DEFAULT_TRUST_POLICY_RESOURCE = "default_trust_policy.json"


def default_workspace() -> Path:
    """Resolve the workspace root from ``GITHUB_WORKSPACE`` or the cwd."""
    return Path(os.environ.get(WORKSPACE_ENV_VAR) or os.getcwd())


def load_trust_policy(path: str | Path | None = None) -> str:
    """
    Load an IAM trust policy document.

    Args:
        path: Policy file to read. Defaults to the packaged policy allowing
            ``lambda.amazonaws.com`` to assume the role.

    Returns:
        The policy document as JSON text

    Raises:
        ValueError: If the document is not a JSON object
        OSError: If the file cannot be read
    """
    if path is None:
        text = (
            files("lambda_reconciler.infra")
            .joinpath("policies")
            .joinpath(DEFAULT_TRUST_POLICY_RESOURCE)
            .read_text()
        )
    else:
        text = Path(path).read_text()

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Trust policy is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ValueError("Trust policy must be a JSON object")

    # Compact form, as sent to IAM
    return json.dumps(document, separators=(",", ":"))


@dataclass(frozen=True)
class ReconcilerConfig:
    """
    Settings shared by every component of a reconciliation run.

    Attributes:
        workspace: Repository root containing ``source_root``
        source_root: Directory holding one sub-directory per function
        runtime: Lambda runtime identifier for created functions
        handler: Lambda handler for created functions
        policy_arn: Policy attached to each execution role
        role_suffix: Appended to the function name to name its role
        trust_policy: Trust policy JSON text (None: packaged default)
        region: AWS region (default: use boto3 defaults)
        endpoint_url: Optional endpoint URL (LocalStack, moto server)
        retry: Backoff for function creation
    """

    workspace: Path = field(default_factory=default_workspace)
    source_root: str = DEFAULT_SOURCE_ROOT
    runtime: str = DEFAULT_RUNTIME
    handler: str = DEFAULT_HANDLER
    policy_arn: str = BASIC_EXECUTION_POLICY_ARN
    role_suffix: str = ROLE_SUFFIX
    trust_policy: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def resolved_trust_policy(self) -> str:
        """Return the configured trust policy, or the packaged default."""
        if self.trust_policy is not None:
            return self.trust_policy
        return load_trust_policy()
