import asyncio
import json

import docx
import pytest
from typer.testing import CliRunner

import docflow.persistence as persistence
from docflow.cli import app
from docflow.persistence import InMemoryRepository


@pytest.fixture(autouse=True)
def repo(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DOCFLOW_ENGINE_BACKEND", raising=False)
    monkeypatch.delenv("DOCFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    repo = InMemoryRepository()
    persistence._repository_instance = repo
    yield repo
    persistence._repository_instance = None


def _invoice(tmp_path, total: str):
    path = tmp_path / f"invoice-{total}.docx"
    document = docx.Document()
    document.add_paragraph("Invoice Number: INV-3001")
    document.add_paragraph("Customer Name: Jane Doe")
    document.add_paragraph(f"Total: ${total}")
    document.save(str(path))
    return path


def test_process_small_invoice_is_approved(tmp_path, repo):
    runner = CliRunner()
    result = runner.invoke(
        app, ["document", "process", str(_invoice(tmp_path, "99.00")), "--document-id", "DOC-CLI1"]
    )
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    output = json.loads(result.stdout)
    assert output["document_id"] == "DOC-CLI1"
    assert output["status"] == "approved"
    assert output["extracted"]["invoice_number"] == "INV-3001"

    doc = asyncio.run(repo.get_document("DOC-CLI1"))
    assert doc.status == "approved"


def test_manual_approval_round_trip(tmp_path):
    runner = CliRunner()
    result = runner.invoke(
        app, ["document", "process", str(_invoice(tmp_path, "2,500.00")), "--filename", "march.docx"]
    )
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    started = json.loads(result.stdout)
    assert started["status"] == "awaiting_approval"
    assert started["document_id"].startswith("DOC-")
    task_id = started["task_id"]

    listing = runner.invoke(app, ["task", "list"])
    assert listing.exit_code == 0
    assert task_id in listing.stdout
    assert "march.docx" in listing.stdout

    show = runner.invoke(app, ["document", "show", started["document_id"]])
    assert show.exit_code == 0
    view = json.loads(show.stdout)
    assert [t["task_id"] for t in view["pending_tasks"]] == [task_id]

    done = runner.invoke(
        app, ["task", "complete", task_id, "--action", "reject", "--reason", "duplicate"]
    )
    assert done.exit_code == 0, f"Command failed. Output: {done.stdout}"
    assert json.loads(done.stdout)["status"] == "rejected"

    again = runner.invoke(app, ["task", "complete", task_id, "--action", "approve"])
    assert again.exit_code == 1
    assert "Task not found or already completed" in again.stdout

    workflows = runner.invoke(app, ["workflow", "list"])
    assert workflows.exit_code == 0
    assert f"{started['document_id']}\trejected" in workflows.stdout


def test_show_missing_document():
    runner = CliRunner()
    result = runner.invoke(app, ["document", "show", "DOC-MISSING"])
    assert result.exit_code == 1
    assert "Document DOC-MISSING not found" in result.stdout


def test_process_unsupported_file_fails(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Total: $5.00")
    runner = CliRunner()
    result = runner.invoke(app, ["document", "process", str(path), "--document-id", "DOC-TXT"])
    assert result.exit_code == 1
    assert "Validation failed: Unsupported file type: .txt" in result.stdout

    show = runner.invoke(app, ["document", "show", "DOC-TXT"])
    assert json.loads(show.stdout)["status"] == "error"


def test_empty_listings():
    runner = CliRunner()
    assert "No pending tasks" in runner.invoke(app, ["task", "list"]).stdout
    assert "No workflows found" in runner.invoke(app, ["workflow", "list"]).stdout
    assert "Nothing to reconcile" in runner.invoke(app, ["workflow", "reconcile"]).stdout


def test_reconcile_command(repo):
    async def interrupted():
        await repo.create_document("DOC-R1", "a.pdf", "/tmp/a.pdf")
        await repo.update_document("DOC-R1", status="awaiting_approval")
        await repo.create_task("TASK-R1", "DOC-R1", "manual_approval", {})
        await repo.complete_task("TASK-R1", {"action": "approve", "completed_by": "ops"})

    asyncio.run(interrupted())

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "reconcile"])
    assert result.exit_code == 0
    assert "Reconciled DOC-R1" in result.stdout
    assert asyncio.run(repo.get_document("DOC-R1")).status == "approved"


def test_engine_commands(monkeypatch):
    runner = CliRunner()
    definition = runner.invoke(app, ["engine", "definition"])
    assert definition.exit_code == 0
    assert "Manual Approval" in definition.stdout

    assert "Nothing deployed" in runner.invoke(app, ["engine", "deploy"]).stdout

    monkeypatch.setenv("DOCFLOW_ENGINE_BACKEND", "inmemory")
    deployed = runner.invoke(app, ["engine", "deploy"])
    assert deployed.exit_code == 0
    assert "Deployed: deployment-1" in deployed.stdout
    assert "No process instances found" in runner.invoke(app, ["engine", "instances"]).stdout
