"""Command-line interface for lambda-reconciler."""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import click

from . import __version__
from .clients import AwsClients
from .config import (
    BASIC_EXECUTION_POLICY_ARN,
    DEFAULT_HANDLER,
    DEFAULT_RUNTIME,
    DEFAULT_SOURCE_ROOT,
    WORKSPACE_ENV_VAR,
    ReconcilerConfig,
    default_workspace,
    load_trust_policy,
)
from .exceptions import ChangeSetError, PackagingError
from .infra.package_builder import PackageBuilder
from .models import ChangeSet, DeployedFunction, Failure, Outcome, ReconciliationResult
from .reconciler import ReconciliationEngine

CHANGES_ENV_VAR = "INPUT_UPDATES"
"""GitHub Actions exposes the action's ``updates`` input under this name."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_change_set(changes: str) -> ChangeSet:
    """Decode ``--changes``: JSON text, or ``@path`` to a JSON file."""
    if changes.startswith("@"):
        path = Path(changes[1:])
        try:
            changes = path.read_text()
        except OSError as e:
            raise ChangeSetError(f"Cannot read change-set file {path}: {e}") from e
    return ChangeSet.from_json(changes)


async def _run_reconcile(config: ReconcilerConfig, change_set: ChangeSet) -> ReconciliationResult:
    async with AwsClients(config.region, config.endpoint_url) as clients:
        engine = ReconciliationEngine.from_clients(config, clients.iam, clients.lambda_)
        return await engine.reconcile(change_set)


def _echo_outcomes(title: str, outcomes: tuple[Outcome, ...]) -> None:
    click.echo(f"{title}:")
    if not outcomes:
        click.echo("  (none)")
        return
    for outcome in outcomes:
        if isinstance(outcome, Failure):
            click.echo(f"  ✗ {outcome.name}: {type(outcome.error).__name__}: {outcome.error}")
        elif isinstance(outcome.value, DeployedFunction):
            click.echo(f"  ✓ {outcome.name} ({outcome.value.arn})")
        else:
            click.echo(f"  ✓ {outcome.name}")


def _annotate_failures(result: ReconciliationResult) -> None:
    """Emit GitHub Actions ``::error`` workflow commands for failed items."""
    if os.environ.get("GITHUB_ACTIONS") != "true":
        return
    for failure in result.failures:
        message = str(failure.error).replace("\n", " ")
        click.echo(f"::error title={failure.name}::{message}")


@click.group()
@click.version_option(version=__version__, prog_name="lambda-reconciler")
def cli() -> None:
    """lambda-reconciler: deploy Lambda function change-sets."""
    pass


@cli.command()
@click.option(
    "--changes",
    envvar=CHANGES_ENV_VAR,
    required=True,
    help=(
        'Change-set as JSON ({"created": [...], "updated": [...], "deleted": [...]}) '
        f"or @path to a JSON file. Read from ${CHANGES_ENV_VAR} when omitted."
    ),
)
@click.option(
    "--workspace",
    envvar=WORKSPACE_ENV_VAR,
    type=click.Path(file_okay=False, path_type=Path),
    help=f"Repository root (default: ${WORKSPACE_ENV_VAR} or the current directory)",
)
@click.option(
    "--source-root",
    default=DEFAULT_SOURCE_ROOT,
    show_default=True,
    help="Directory under the workspace holding one sub-directory per function",
)
@click.option(
    "--runtime",
    default=DEFAULT_RUNTIME,
    show_default=True,
    help="Lambda runtime for new functions",
)
@click.option(
    "--handler",
    default=DEFAULT_HANDLER,
    show_default=True,
    help="Lambda handler for new functions",
)
@click.option(
    "--policy-arn",
    default=BASIC_EXECUTION_POLICY_ARN,
    show_default=True,
    help="Policy attached to each new execution role",
)
@click.option(
    "--trust-policy",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Trust policy JSON for new execution roles (default: Lambda service principal)",
)
@click.option(
    "--region",
    help="AWS region (default: use boto3 defaults)",
)
@click.option(
    "--endpoint-url",
    help=(
        "AWS endpoint URL "
        "(e.g., http://localhost:4566 for LocalStack, or other AWS-compatible services)"
    ),
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format",
)
@click.option(
    "--fail-on-error/--no-fail-on-error",
    default=True,
    help="Exit with status 1 when any item fails (default: enabled)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log progress of every step")
def reconcile(
    changes: str,
    workspace: Path | None,
    source_root: str,
    runtime: str,
    handler: str,
    policy_arn: str,
    trust_policy: Path | None,
    region: str | None,
    endpoint_url: str | None,
    output_format: str,
    fail_on_error: bool,
    verbose: bool,
) -> None:
    """Create, update and delete Lambda functions from a change-set."""
    _configure_logging(verbose)

    try:
        change_set = _load_change_set(changes)
        trust_document = load_trust_policy(trust_policy)
    except (ChangeSetError, ValueError, OSError) as e:
        click.echo(f"✗ Invalid input: {e}", err=True)
        sys.exit(1)

    config = ReconcilerConfig(
        workspace=workspace or default_workspace(),
        source_root=source_root,
        runtime=runtime,
        handler=handler,
        policy_arn=policy_arn,
        trust_policy=trust_document,
        region=region,
        endpoint_url=endpoint_url,
    )

    if change_set.is_empty:
        # No AWS session is opened for a no-op run
        click.echo("Nothing to reconcile.", err=True)
        if output_format == "json":
            click.echo(json.dumps(ReconciliationResult().as_dict(), indent=2))
        return

    try:
        result = asyncio.run(_run_reconcile(config, change_set))
    except Exception as e:
        click.echo(f"✗ Reconciliation failed: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(result.as_dict(), indent=2))
    else:
        _echo_outcomes("Created", result.created)
        _echo_outcomes("Updated", result.updated)
        _echo_outcomes("Deleted", result.deleted)
        click.echo()
        failed = len(result.failures)
        click.echo(f"{len(change_set) - failed} succeeded, {failed} failed")

    _annotate_failures(result)

    if fail_on_error and not result.succeeded:
        sys.exit(1)


@cli.command()
@click.argument("name")
@click.option(
    "--workspace",
    envvar=WORKSPACE_ENV_VAR,
    type=click.Path(file_okay=False, path_type=Path),
    help=f"Repository root (default: ${WORKSPACE_ENV_VAR} or the current directory)",
)
@click.option(
    "--source-root",
    default=DEFAULT_SOURCE_ROOT,
    show_default=True,
    help="Directory under the workspace holding one sub-directory per function",
)
def package(name: str, workspace: Path | None, source_root: str) -> None:
    """Build the deployment package for one function without deploying it."""
    builder = PackageBuilder(workspace or default_workspace(), source_root)
    try:
        artifact = builder.build_sync(name)
    except PackagingError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)

    size_kb = artifact.size_bytes / 1024
    click.echo(f"✓ Package written to: {artifact.artifact_path}")
    click.echo(f"  Size: {size_kb:.1f} KB")


@cli.command("trust-policy")
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    help="Output file (default: stdout)",
)
def trust_policy_cmd(output: str | None) -> None:
    """Export the default execution role trust policy."""
    document = json.dumps(json.loads(load_trust_policy()), indent=2)
    if output:
        Path(output).write_text(document + "\n")
        click.echo(f"Trust policy exported to: {output}")
    else:
        click.echo(document)


if __name__ == "__main__":
    cli()
