"""Exceptions for lambda-reconciler."""

from enum import Enum

from botocore.exceptions import ClientError

# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class ErrorKind(Enum):
    """Closed classification of platform errors.

    ``TRANSIENT`` errors are expected to clear after a short delay (typically
    a freshly created IAM role that Lambda cannot see yet) and are safe to
    retry. Everything else is ``FATAL``.
    """

    TRANSIENT = "transient"
    FATAL = "fatal"


TRANSIENT_ERROR_CODES = frozenset({"InvalidParameterValueException"})
"""Botocore error codes treated as transient by ``classify_error``."""


def error_code(exc: BaseException) -> str | None:
    """Return the AWS error code of a ``ClientError``, or None."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Classify an exception raised by a platform call."""
    if error_code(exc) in TRANSIENT_ERROR_CODES:
        return ErrorKind.TRANSIENT
    return ErrorKind.FATAL


def _describe(exc: BaseException) -> str:
    if isinstance(exc, ClientError):
        err = exc.response.get("Error", {})
        return f"{err.get('Code', 'Unknown')}: {err.get('Message', '')}".rstrip(": ")
    return str(exc) or type(exc).__name__


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------


class ReconcilerError(Exception):
    """
    Base exception for all lambda-reconciler errors.

    All exceptions raised by this library inherit from this class,
    allowing callers to catch all library-specific errors with a single
    except clause.
    """

    pass


# ---------------------------------------------------------------------------
# Input Exceptions
# ---------------------------------------------------------------------------


class ChangeSetError(ReconcilerError):
    """
    Raised when a change-set cannot be decoded or fails validation.

    This is an engine-level fault: no reconciliation is attempted and no
    partial result is produced.
    """

    pass


class ValidationError(ChangeSetError):
    """Raised when a function name is not usable on the platform."""

    def __init__(self, field: str, value: str, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} '{value}': {reason}")


# ---------------------------------------------------------------------------
# Per-item Exceptions
# ---------------------------------------------------------------------------


class ItemError(ReconcilerError):
    """
    Base exception for errors tied to a single function in a change-set.

    Attributes:
        function_name: The function the failing step was working on
        cause: The underlying exception, if any
        code: AWS error code of the cause, when it came from the platform
    """

    action = "process"

    def __init__(
        self,
        function_name: str,
        reason: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.function_name = function_name
        self.cause = cause
        self.code = error_code(cause) if cause is not None else None
        if reason is None:
            reason = _describe(cause) if cause is not None else "unknown error"
        self.reason = reason
        super().__init__(f"Failed to {self.action} {function_name}: {reason}")


class PackagingError(ItemError):
    """Raised when a source directory cannot be archived."""

    action = "package"


class ProvisioningError(ItemError):
    """Base exception for execution role provisioning failures."""

    def __init__(
        self,
        function_name: str,
        role_name: str,
        reason: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.role_name = role_name
        super().__init__(function_name, reason, cause)


class RoleCreationError(ProvisioningError):
    """
    Raised when the execution role cannot be created.

    No existence check precedes creation, so this is also what a re-run
    against an already provisioned function produces (``EntityAlreadyExists``).
    """

    action = "create execution role for"


class PolicyAttachError(ProvisioningError):
    """
    Raised when the baseline policy cannot be attached to a new role.

    The role itself was created and is left in place without its policy.
    """

    action = "attach policy to execution role for"


class FunctionError(ItemError):
    """Base exception for Lambda function operation failures."""

    pass


class DeployError(FunctionError):
    """Raised when function creation fails with a non-retryable error."""

    action = "deploy"


class DeployExhaustedError(FunctionError):
    """
    Raised when function creation keeps failing with a transient error.

    Attributes:
        attempts: Number of attempts made
        last_error: The error raised by the final attempt
    """

    action = "deploy"

    def __init__(self, function_name: str, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            function_name,
            f"gave up after {attempts} attempts ({_describe(last_error)})",
            last_error,
        )


class DeploySkippedError(FunctionError):
    """Raised for a create request that was never started."""

    action = "deploy"


class UpdateError(FunctionError):
    """Raised when replacing a function's code fails."""

    action = "update"


class RemoveError(FunctionError):
    """Raised when deleting a function fails."""

    action = "remove"


# ---------------------------------------------------------------------------
# Retry Exceptions
# ---------------------------------------------------------------------------


class RetryExhaustedError(ReconcilerError):
    """
    Raised by ``retry_async`` when every attempt failed with a retryable error.

    Attributes:
        attempts: Number of attempts made
        last_error: The error raised by the final attempt
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Retries exhausted after {attempts} attempts: {_describe(last_error)}")
