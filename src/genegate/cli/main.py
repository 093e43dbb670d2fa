"""Command-line interface for checking workflow conditions."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..core.config import WorkflowLoadError, load_settings, load_workflow
from ..workflow.condition import (
    instantiate_condition,
    validate_condition,
    validate_workflow_conditions,
)
from ..workflow.errors import ConditionInstantiationError

logger = logging.getLogger(__name__)

console = Console()

EXIT_INVALID = 1
EXIT_LOAD_ERROR = 2


def setup_logging(level: str):
    """Setup logging for CLI runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - genegate - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _print_errors(errors):
    table = Table(title="Condition errors")
    table.add_column("Path")
    table.add_column("Kind")
    table.add_column("Message")
    for error in errors:
        table.add_row(error.path, error.kind.value, error.message)
    console.print(table)


def _load_or_exit(workflow_file: Path):
    try:
        return load_workflow(workflow_file)
    except WorkflowLoadError as e:
        console.print(f"[red]Error: {e}[/]")
        sys.exit(EXIT_LOAD_ERROR)


def _parse_bindings(bindings) -> dict:
    data = {}
    for binding in bindings:
        name, sep, value = binding.partition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected name=value, got '{binding}'", param_hint="--set")
        data[name] = value
    return data


@click.group()
@click.option("--log-level", default=None, help="Log level (defaults to GENEGATE_LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx, log_level):
    """genegate - validate and instantiate conditional workflow jobs."""
    ctx.ensure_object(dict)
    settings = load_settings()
    setup_logging(log_level or settings.log_level)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("workflow_file", type=click.Path(path_type=Path), required=False)
@click.pass_context
def validate(ctx, workflow_file):
    """Validate every job condition in a workflow file."""
    workflow_file = workflow_file or ctx.obj["settings"].workflow_file
    workflow = _load_or_exit(workflow_file)

    errors = validate_workflow_conditions(workflow)

    if errors:
        _print_errors(errors)
        console.print(f"[red]✗ {len(errors)} error(s) found[/]")
        sys.exit(EXIT_INVALID)

    console.print(f"[green]✓ {len(workflow.conditional_jobs())} condition(s) valid[/]")


@cli.command()
@click.argument("workflow_file", type=click.Path(path_type=Path))
@click.argument("job_name")
@click.option("--set", "bindings", multiple=True, help="Variable binding name=value (repeatable)")
def instantiate(workflow_file, job_name, bindings):
    """Instantiate a job's condition with runtime variable bindings."""
    overrides = _parse_bindings(bindings)
    workflow = _load_or_exit(workflow_file)

    # Input defaults apply unless overridden on the command line
    data = {
        name: str(declared.default)
        for name, declared in workflow.inputs.items()
        if declared.default is not None
    }
    data.update(overrides)

    job = workflow.get_job(job_name)
    if job is None:
        console.print(f"[red]Error: job '{job_name}' not found in {workflow_file}[/]")
        sys.exit(EXIT_INVALID)

    if job.condition is None:
        console.print(f"[dim]Job '{job_name}' has no condition[/]")
        return

    errors = validate_condition(job.name, job.condition, workflow.inputs, workflow)
    if errors:
        _print_errors(errors)
        sys.exit(EXIT_INVALID)

    try:
        compiled = instantiate_condition(f"workflow.{job_name}.condition", job.condition, data)
    except ConditionInstantiationError as e:
        console.print(f"[red]Error: {e}[/]")
        sys.exit(EXIT_INVALID)

    table = Table(title=f"Condition of '{job_name}' on '{compiled.depend_job_name}'")
    table.add_column("Key")
    table.add_column("Operator")
    table.add_column("Values")
    for requirement in compiled.requirements:
        table.add_row(requirement.key, requirement.operator.value, ", ".join(requirement.values))
    console.print(table)
    console.print(f"[bold]Selector:[/] {compiled}")


if __name__ == "__main__":
    cli()
