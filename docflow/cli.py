"""Command line interface for the docflow document lifecycle."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer

from docflow import DocumentOrchestrator, load_config
from docflow.contracts import TaskAction, new_document_id
from docflow.engine import load_bpmn_definition
from docflow.errors import DocflowError, NotFoundError

T = TypeVar("T")

app = typer.Typer(help="CLI for docflow document workflows")

# Command groups
document_app = typer.Typer(help="Commands for processing documents")
task_app = typer.Typer(help="Commands for manual approval tasks")
workflow_app = typer.Typer(help="Commands for inspecting workflows")
engine_app = typer.Typer(help="Commands for the BPMN process engine")

app.add_typer(document_app, name="document")
app.add_typer(task_app, name="task")
app.add_typer(workflow_app, name="workflow")
app.add_typer(engine_app, name="engine")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, help="Logging level (defaults to the configured log_level)"
    ),
) -> None:
    """docflow CLI entry point."""
    level = (log_level or load_config().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _run(operation: Callable[[DocumentOrchestrator], Awaitable[T]]) -> T:
    """Run ``operation`` against a fresh orchestrator and report failures."""

    async def runner() -> T:
        orchestrator = DocumentOrchestrator()
        try:
            return await operation(orchestrator)
        finally:
            await orchestrator.close()

    try:
        return asyncio.run(runner())
    except NotFoundError as exc:
        typer.echo(str(exc.cause))
        raise typer.Exit(code=1)
    except DocflowError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@document_app.command("process")
def document_process(
    path: Path,
    document_id: Optional[str] = typer.Option(
        None, help="Identifier to use (default: a new DOC-XXXXXXXX id)"
    ),
    filename: Optional[str] = typer.Option(
        None, help="Original filename to record (default: the file's name)"
    ),
) -> None:
    """
    Extract invoice fields from a PDF or DOCX file and route it for approval.

    Amounts below the approval threshold are approved immediately; anything
    else creates a manual approval task.

    Example:
        docflow document process ./invoice.pdf
        docflow document process ./invoice.docx --document-id DOC-1A2B3C4D
    """
    doc_id = document_id or new_document_id()
    result = _run(lambda o: o.start_workflow(doc_id, path, original_filename=filename))
    typer.echo(result.model_dump_json(indent=2))


@document_app.command("show")
def document_show(document_id: str) -> None:
    """Show status, extracted fields and pending tasks of a document."""
    view = _run(lambda o: o.get_document_status(document_id))
    typer.echo(view.model_dump_json(indent=2))


@task_app.command("list")
def task_list() -> None:
    """List pending manual approval tasks, oldest first."""
    tasks = _run(lambda o: o.get_pending_tasks())
    if not tasks:
        typer.echo("No pending tasks")
        return
    for task in tasks:
        typer.echo(f"{task.task_id}\t{task.document_id}\t{task.filename}\t{task.amount}")


@task_app.command("complete")
def task_complete(
    task_id: str,
    action: TaskAction = typer.Option(..., help="Decision for the document"),
    reason: str = typer.Option("", help="Reason recorded with the decision"),
) -> None:
    """
    Approve or reject the document behind a pending task.

    Example:
        docflow task complete TASK-5E6F7A8B --action approve
        docflow task complete TASK-5E6F7A8B --action reject --reason "Duplicate invoice"
    """
    result = _run(lambda o: o.complete_task(task_id, action.value, reason=reason))
    typer.echo(result.model_dump_json(indent=2))


@workflow_app.command("list")
def workflow_list() -> None:
    """List every document workflow with its status, newest first."""
    workflows = _run(lambda o: o.get_all_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.document_id}\t{wf.status}\t{wf.filename}")


@workflow_app.command("reconcile")
def workflow_reconcile() -> None:
    """Finish documents whose approval task completed without a final status."""
    repaired = _run(lambda o: o.reconcile())
    if not repaired:
        typer.echo("Nothing to reconcile")
        return
    for document_id in repaired:
        typer.echo(f"Reconciled {document_id}")


@engine_app.command("deploy")
def engine_deploy() -> None:
    """Deploy the bundled BPMN process definition to the engine."""
    deployment_id = _run(lambda o: o.deploy_process())
    if deployment_id is None:
        typer.echo("Nothing deployed; definition already present or no engine configured")
    else:
        typer.echo(f"Deployed: {deployment_id}")


@engine_app.command("definition")
def engine_definition() -> None:
    """Print the bundled BPMN process definition."""
    typer.echo(load_bpmn_definition())


@engine_app.command("instances")
def engine_instances() -> None:
    """List process instances known to the engine."""
    instances = _run(lambda o: o.list_engine_instances())
    if not instances:
        typer.echo("No process instances found")
        return
    _echo_json(instances)


if __name__ == "__main__":
    app()
