"""Reconciliation of a change-set against the Lambda platform.

Three pipelines run concurrently for one change-set:

- create: package -> provision role -> deploy, per name
- update: package -> update code, per name
- delete: remove, per name

Every item runs as its own task and settles to ``Success`` or ``Failure``.
Errors never escape an item: one failing function cannot cancel or hide the
outcome of any other. The run completes once every item has settled.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, TypeVar

from .config import ReconcilerConfig
from .exceptions import DeploySkippedError
from .infra.function_manager import FunctionDeployer, FunctionRemover, FunctionUpdater
from .infra.package_builder import PackageBuilder
from .infra.role_provisioner import RoleProvisioner
from .models import (
    ChangeSet,
    DeployedFunction,
    Failure,
    Outcome,
    ReconciliationResult,
    Success,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunState(Enum):
    """Lifecycle of a single reconciliation run."""

    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_ALL = "awaiting_all"
    SETTLED = "settled"


class ReconciliationEngine:
    """
    Converges the Lambda platform to a change-set.

    Components are injected so that one set of long-lived clients serves
    the whole run. Use ``from_clients`` to wire them from a config.

    Example:
        async with AwsClients(region="us-east-1") as clients:
            engine = ReconciliationEngine.from_clients(config, clients.iam, clients.lambda_)
            result = await engine.reconcile(ChangeSet(created=("fn-a",)))
    """

    def __init__(
        self,
        builder: PackageBuilder,
        provisioner: RoleProvisioner,
        deployer: FunctionDeployer,
        updater: FunctionUpdater,
        remover: FunctionRemover,
    ) -> None:
        self.builder = builder
        self.provisioner = provisioner
        self.deployer = deployer
        self.updater = updater
        self.remover = remover

    @classmethod
    def from_clients(
        cls,
        config: ReconcilerConfig,
        iam_client: Any,
        lambda_client: Any,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> "ReconciliationEngine":
        """Build an engine whose components share the given clients."""
        return cls(
            builder=PackageBuilder(config.workspace, config.source_root),
            provisioner=RoleProvisioner(
                iam_client,
                trust_policy=config.resolved_trust_policy(),
                policy_arn=config.policy_arn,
                role_suffix=config.role_suffix,
            ),
            deployer=FunctionDeployer(
                lambda_client,
                runtime=config.runtime,
                handler=config.handler,
                retry_policy=config.retry,
                sleep=sleep,
            ),
            updater=FunctionUpdater(lambda_client),
            remover=FunctionRemover(lambda_client),
        )

    async def reconcile(self, change_set: ChangeSet | Mapping[str, Any]) -> ReconciliationResult:
        """
        Apply a change-set and return the outcome of every item.

        Args:
            change_set: A ``ChangeSet`` or a decoded mapping with
                ``created``/``updated``/``deleted`` lists

        Raises:
            ChangeSetError: If a mapping is malformed. Nothing is attempted.
        """
        if not isinstance(change_set, ChangeSet):
            change_set = ChangeSet.from_dict(change_set)
        return await ReconciliationRun(self, change_set).execute()

    async def create_function(self, name: str) -> DeployedFunction:
        """Package, provision and deploy one new function."""
        artifact = await self.builder.build(name)
        identity = await self.provisioner.provision(name)
        return await self.deployer.deploy(name, artifact, identity)

    async def update_function(self, name: str) -> None:
        """Package one existing function and replace its code."""
        artifact = await self.builder.build(name)
        await self.updater.update(name, artifact)

    async def delete_function(self, name: str) -> str:
        """Delete one existing function."""
        await self.remover.remove(name)
        return name


class ReconciliationRun:
    """
    One execution of a change-set: IDLE -> DISPATCHING -> AWAITING_ALL -> SETTLED.

    A run executes at most once and produces exactly one result.
    """

    def __init__(self, engine: ReconciliationEngine, change_set: ChangeSet) -> None:
        self.engine = engine
        self.change_set = change_set
        self.state = RunState.IDLE
        self.result: ReconciliationResult | None = None

    async def execute(self) -> ReconciliationResult:
        if self.state is not RunState.IDLE:
            raise RuntimeError(f"Reconciliation run already {self.state.value}")

        change_set = self.change_set
        logger.info(
            "Reconciling %d created, %d updated, %d deleted",
            len(change_set.created),
            len(change_set.updated),
            len(change_set.deleted),
        )

        self.state = RunState.DISPATCHING
        create_tasks = self._dispatch_creates()
        update_tasks = [
            asyncio.create_task(self._settle("update", name, self.engine.update_function))
            for name in change_set.updated
        ]
        delete_tasks = [
            asyncio.create_task(self._settle("delete", name, self.engine.delete_function))
            for name in change_set.deleted
        ]

        self.state = RunState.AWAITING_ALL
        created = await asyncio.gather(*create_tasks)
        updated = await asyncio.gather(*update_tasks)
        deleted = await asyncio.gather(*delete_tasks)

        self.result = ReconciliationResult(
            created=tuple(created),
            updated=tuple(updated),
            deleted=tuple(deleted),
        )
        self.state = RunState.SETTLED

        failures = self.result.failures
        logger.info(
            "Reconciliation settled: %d succeeded, %d failed",
            len(change_set) - len(failures),
            len(failures),
        )
        return self.result

    def _dispatch_creates(self) -> list[asyncio.Task[Outcome[DeployedFunction]]]:
        """Start one create chain per distinct name, in input order."""
        tasks: list[asyncio.Task[Outcome[DeployedFunction]]] = []
        seen: set[str] = set()
        for index, name in enumerate(self.change_set.created):
            if name in seen:
                # A role is created at most once per function per run
                tasks.append(asyncio.create_task(self._skip(index, name)))
                continue
            seen.add(name)
            tasks.append(
                asyncio.create_task(self._settle("create", name, self.engine.create_function))
            )
        return tasks

    @staticmethod
    async def _skip(index: int, name: str) -> Outcome[DeployedFunction]:
        error = DeploySkippedError(
            name, f"duplicate entry at created[{index}]; already being created in this run"
        )
        logger.warning("%s", error)
        return Failure(name, error)

    @staticmethod
    async def _settle(
        action: str,
        name: str,
        operation: Callable[[str], Awaitable[T]],
    ) -> Outcome[T]:
        """Run one item to completion, converting any error into a Failure."""
        try:
            value = await operation(name)
        except Exception as e:
            logger.warning("Failed to %s %s: %s", action, name, e)
            return Failure(name, e)

        logger.info("%s %s: ok", action.capitalize(), name)
        return Success(name, value)
