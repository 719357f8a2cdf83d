"""Core models for lambda-reconciler."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

from .exceptions import ChangeSetError, ItemError
from .naming import validate_function_name

T = TypeVar("T")

CHANGE_SET_KEYS = ("created", "updated", "deleted")


@dataclass(frozen=True)
class ChangeSet:
    """
    Function names to create, update and delete in one run.

    Names in ``created`` must not exist on the platform yet; names in
    ``updated`` and ``deleted`` must. This is not checked locally: a
    violation surfaces as a platform error for that item.
    """

    created: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChangeSet":
        """
        Build a change-set from a decoded mapping.

        Missing keys and JSON null values are treated as empty lists. Any
        other non-list value, including empty strings and objects, is rejected.

        Raises:
            ChangeSetError: If the mapping has unknown keys, non-list values,
                or invalid function names
        """
        if not isinstance(data, Mapping):
            raise ChangeSetError(
                f"Change-set must be an object, got {type(data).__name__}"
            )

        unknown = sorted(set(data) - set(CHANGE_SET_KEYS))
        if unknown:
            raise ChangeSetError(f"Unknown change-set keys: {', '.join(unknown)}")

        lists: dict[str, tuple[str, ...]] = {}
        for key in CHANGE_SET_KEYS:
            names = data.get(key)
            if names is None:
                names = []
            if not isinstance(names, list | tuple):
                raise ChangeSetError(f"'{key}' must be a list, got {type(names).__name__}")
            for name in names:
                if not isinstance(name, str):
                    raise ChangeSetError(
                        f"'{key}' entries must be strings, got {type(name).__name__}"
                    )
                validate_function_name(name)
            lists[key] = tuple(names)

        return cls(**lists)

    @classmethod
    def from_json(cls, text: str) -> "ChangeSet":
        """Decode a JSON change-set description."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ChangeSetError(f"Change-set is not valid JSON: {e}") from e
        return cls.from_dict(data)

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.deleted)

    def __len__(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)

    def to_dict(self) -> dict[str, list[str]]:
        return {key: list(getattr(self, key)) for key in CHANGE_SET_KEYS}


@dataclass(frozen=True)
class PackageArtifact:
    """A function's source directory and the zip archive built from it."""

    source_path: Path
    artifact_path: Path

    def read_bytes(self) -> bytes:
        return self.artifact_path.read_bytes()

    @property
    def size_bytes(self) -> int:
        return self.artifact_path.stat().st_size


@dataclass(frozen=True)
class ExecutionIdentity:
    """The IAM execution role provisioned for one function."""

    function_name: str
    role_name: str
    role_arn: str


@dataclass(frozen=True)
class DeployedFunction:
    """A function created on the platform."""

    name: str
    arn: str

    @classmethod
    def from_response(cls, response: Mapping[str, Any]) -> "DeployedFunction":
        """Build from a Lambda ``CreateFunction`` response."""
        return cls(name=response["FunctionName"], arn=response["FunctionArn"])

    def as_dict(self) -> dict[str, str]:
        return {"name": self.name, "arn": self.arn}


@dataclass(frozen=True)
class Success(Generic[T]):
    """A change-set item that settled successfully."""

    name: str
    value: T

    ok: ClassVar[bool] = True

    def as_dict(self) -> dict[str, Any]:
        value: Any = self.value
        if isinstance(value, DeployedFunction):
            value = value.as_dict()
        return {"name": self.name, "status": "success", "value": value}


@dataclass(frozen=True)
class Failure:
    """A change-set item that settled with an error."""

    name: str
    error: Exception

    ok: ClassVar[bool] = False

    def as_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "status": "failure",
            "error": type(self.error).__name__,
            "message": str(self.error),
        }
        if isinstance(self.error, ItemError) and self.error.code:
            result["code"] = self.error.code
        return result


Outcome = Success[T] | Failure


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Per-item outcomes of one reconciliation run.

    Each sequence is aligned index-for-index with the corresponding
    ``ChangeSet`` list: ``created[i]`` is the outcome of ``change_set.created[i]``.
    """

    created: tuple[Outcome[DeployedFunction], ...] = ()
    updated: tuple[Outcome[None], ...] = ()
    deleted: tuple[Outcome[str], ...] = ()

    @property
    def failures(self) -> list[Failure]:
        """All failed items, in created, updated, deleted order."""
        return [
            outcome
            for outcome in (*self.created, *self.updated, *self.deleted)
            if isinstance(outcome, Failure)
        ]

    @property
    def succeeded(self) -> bool:
        """True when no item failed."""
        return not self.failures

    def as_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "created": [o.as_dict() for o in self.created],
            "updated": [o.as_dict() for o in self.updated],
            "deleted": [o.as_dict() for o in self.deleted],
            "failed": len(self.failures),
        }
