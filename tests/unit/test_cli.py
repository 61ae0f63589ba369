# tests/unit/test_cli.py
"""
CLI unit tests.

Tests each command via typer's CliRunner. Database-backed commands run
against a temporary SQLite file; run listings use mocked services so the
table contents are predictable.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from formiq.background.lifecycle import open_database
from formiq.cli import _state_color, app
from formiq.errors import ConflictError
from formiq.workflow import RunState, WorkflowRunRecord

from .fakes import project_input

runner = CliRunner()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def _make_run(workflow_id="wf-1", state=RunState.QUEUED, error=None, current_step=None):
    return WorkflowRunRecord(
        namespace="default",
        workflow_id=workflow_id,
        workflow_type="GenerateProjectRoadmap",
        task_queue="workflow",
        input={"userId": "test-user-id", "projectId": "p1"},
        state=state,
        current_step=current_step,
        attempt=1,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        updated_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        error=error,
    )


def _mock_services():
    services = MagicMock()
    services.close = AsyncMock()
    return services


@pytest.fixture
def cli_config(config):
    with patch("formiq.cli.load_config", return_value=config):
        yield config


def _create_project(config, **overrides) -> str:
    async def _create():
        engine, db = await open_database(config)
        try:
            return (await db.create_project(project_input(**overrides))).id
        finally:
            await engine.dispose()

    return asyncio.run(_create())


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestSeed:
    def test_seed_creates_default_user(self, cli_config):
        result = runner.invoke(app, ["seed"])

        assert result.exit_code == 0
        assert "default user 'test-user-id' exists" in result.output


class TestProjects:
    def test_no_projects(self, cli_config):
        result = runner.invoke(app, ["projects"])

        assert result.exit_code == 0
        assert "No projects found." in result.output

    def test_lists_projects(self, cli_config):
        _create_project(cli_config, title="Launch")

        result = runner.invoke(app, ["projects"])

        assert result.exit_code == 0
        assert "Launch" in result.output
        assert "draft" in result.output

    def test_other_user(self, cli_config):
        _create_project(cli_config, title="Launch")

        result = runner.invoke(app, ["projects", "--user", "someone-else"])

        assert "No projects found." in result.output


class TestStartRoadmap:
    def test_queues_workflow(self, cli_config):
        project_id = _create_project(cli_config)

        result = runner.invoke(app, ["start-roadmap", project_id])

        assert result.exit_code == 0
        assert f"Workflow generate-roadmap-{project_id} is queued." in result.output

    def test_second_start_leaves_run_queued(self, cli_config):
        project_id = _create_project(cli_config)
        runner.invoke(app, ["start-roadmap", project_id])

        result = runner.invoke(app, ["start-roadmap", project_id])

        assert result.exit_code == 0
        assert "is queued" in result.output

    def test_unknown_project(self, cli_config):
        result = runner.invoke(app, ["start-roadmap", "nope"])

        assert result.exit_code == 1
        assert "Project nope not found" in result.output


class TestRuns:
    @patch("formiq.cli._get_services", new_callable=AsyncMock)
    def test_no_runs(self, mock_get_services, cli_config):
        services = _mock_services()
        services.workflows.list_runs = AsyncMock(return_value=[])
        mock_get_services.return_value = services

        result = runner.invoke(app, ["runs"])

        assert result.exit_code == 0
        assert "No workflow runs found." in result.output
        services.close.assert_awaited_once()

    @patch("formiq.cli._get_services", new_callable=AsyncMock)
    def test_lists_runs_with_errors(self, mock_get_services, cli_config):
        services = _mock_services()
        services.workflows.list_runs = AsyncMock(
            return_value=[
                _make_run("wf-1", RunState.AWAITING_INPUT, current_step="awaiting"),
                _make_run("wf-2", RunState.FAILED, error="GenerationError: bad\n\ntraceback"),
            ]
        )
        mock_get_services.return_value = services

        result = runner.invoke(app, ["runs"])

        assert result.exit_code == 0
        assert "wf-1" in result.output
        assert "awaiting_input" in result.output
        assert "wf-2: GenerationError: bad" in result.output
        assert "traceback" not in result.output

    @patch("formiq.cli._get_services", new_callable=AsyncMock)
    def test_state_filter(self, mock_get_services, cli_config):
        services = _mock_services()
        services.workflows.list_runs = AsyncMock(return_value=[])
        mock_get_services.return_value = services

        runner.invoke(app, ["runs", "--state", "failed"])

        services.workflows.list_runs.assert_awaited_once_with(RunState.FAILED)


class TestRetry:
    @patch("formiq.cli._get_services", new_callable=AsyncMock)
    def test_retry(self, mock_get_services, cli_config):
        services = _mock_services()
        services.workflows.retry = AsyncMock(return_value=MagicMock(workflow_id="wf-1"))
        mock_get_services.return_value = services

        result = runner.invoke(app, ["retry", "wf-1"])

        assert result.exit_code == 0
        assert "Workflow wf-1 re-queued." in result.output

    @patch("formiq.cli._get_services", new_callable=AsyncMock)
    def test_retry_rejected(self, mock_get_services, cli_config):
        services = _mock_services()
        services.workflows.retry = AsyncMock(
            side_effect=ConflictError("Workflow wf-1 is in 'complete' state.")
        )
        mock_get_services.return_value = services

        result = runner.invoke(app, ["retry", "wf-1"])

        assert result.exit_code == 1
        assert "Error: Workflow wf-1 is in 'complete' state." in result.output
        services.close.assert_awaited_once()


class TestWorker:
    @patch("formiq.cli.configure_logging")
    @patch("formiq.background.lifecycle.ServerLifecycle")
    def test_once_drains_queue(self, mock_lifecycle_cls, _logging, cli_config):
        lifecycle = MagicMock()
        lifecycle.startup = AsyncMock()
        lifecycle.shutdown = AsyncMock()
        lifecycle.workflow_worker.drain = AsyncMock(return_value=2)
        mock_lifecycle_cls.return_value = lifecycle

        result = runner.invoke(app, ["worker", "--once"])

        assert result.exit_code == 0
        assert "Processed 2 workflow run(s)." in result.output
        lifecycle.startup.assert_awaited_once_with(start_workers=False)
        lifecycle.shutdown.assert_awaited_once()


class TestServe:
    @patch("formiq.cli.configure_logging")
    @patch("formiq.api.app.create_app")
    @patch("uvicorn.run")
    def test_serve_options(self, mock_run, mock_create_app, _logging, cli_config):
        result = runner.invoke(app, ["serve", "--port", "8080", "--no-worker"])

        assert result.exit_code == 0
        mock_create_app.assert_called_once_with(cli_config)
        assert cli_config.workflow.embedded_worker is False
        kwargs = mock_run.call_args.kwargs
        assert kwargs["port"] == 8080
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["log_config"] is None


class TestStateColor:
    def test_known_states(self):
        assert _state_color("complete") == "green"
        assert _state_color("failed") == "red"
        assert _state_color("awaiting_input") == "magenta"

    def test_unknown_state(self):
        assert _state_color("bogus") == "white"
