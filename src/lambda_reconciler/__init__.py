"""
lambda-reconciler: converge AWS Lambda functions to a declared change-set.

Given the names of functions to create, update and delete, lambda-reconciler:
- Packages each function's source directory into a zip artifact
- Provisions a dedicated IAM execution role for every new function
- Creates, updates and deletes functions concurrently
- Retries role propagation errors with bounded exponential backoff
- Reports a success or failure outcome for every item

Example:
    from lambda_reconciler import AwsClients, ChangeSet, ReconcilerConfig, ReconciliationEngine

    config = ReconcilerConfig(workspace=Path("."), region="us-east-1")
    async with AwsClients(config.region) as clients:
        engine = ReconciliationEngine.from_clients(config, clients.iam, clients.lambda_)
        result = await engine.reconcile(
            ChangeSet(created=("get-users",), deleted=("legacy-report",))
        )

    for failure in result.failures:
        print(failure.name, failure.error)
"""

from .clients import AwsClients
from .config import ReconcilerConfig, load_trust_policy
from .exceptions import (
    ChangeSetError,
    DeployError,
    DeployExhaustedError,
    DeploySkippedError,
    ErrorKind,
    FunctionError,
    ItemError,
    PackagingError,
    PolicyAttachError,
    ProvisioningError,
    ReconcilerError,
    RemoveError,
    RetryExhaustedError,
    RoleCreationError,
    UpdateError,
    ValidationError,
    classify_error,
)
from .models import (
    ChangeSet,
    DeployedFunction,
    ExecutionIdentity,
    Failure,
    Outcome,
    PackageArtifact,
    ReconciliationResult,
    Success,
)
from .reconciler import ReconciliationEngine, ReconciliationRun, RunState
from .retry import RetryPolicy, retry_async

__version__ = "0.1.0"

__all__ = [
    "AwsClients",
    "ChangeSet",
    "ChangeSetError",
    "DeployError",
    "DeployExhaustedError",
    "DeploySkippedError",
    "DeployedFunction",
    "ErrorKind",
    "ExecutionIdentity",
    "Failure",
    "FunctionError",
    "ItemError",
    "Outcome",
    "PackageArtifact",
    "PackagingError",
    "PolicyAttachError",
    "ProvisioningError",
    "ReconcilerConfig",
    "ReconcilerError",
    "ReconciliationEngine",
    "ReconciliationResult",
    "ReconciliationRun",
    "RemoveError",
    "RetryExhaustedError",
    "RetryPolicy",
    "RoleCreationError",
    "RunState",
    "Success",
    "UpdateError",
    "ValidationError",
    "__version__",
    "classify_error",
    "load_trust_policy",
    "retry_async",
]
