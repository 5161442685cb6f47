"""Tests for the ibwt-admin command line."""

from __future__ import annotations

import json
import sys
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy import select, update

from ibwt_marketplace import admin
from ibwt_marketplace.infrastructure.database.orm_models import Result, Task
from ibwt_marketplace.services.agent_service import AgentService
from ibwt_marketplace.services.task_service import TaskService


@pytest.fixture
def cli(scope):
    """Run an admin command against the test database."""

    async def _run(*argv: str) -> int:
        args = admin.build_parser().parse_args(list(argv))
        with patch("ibwt_marketplace.admin.session_scope", scope):
            return await admin.run(args)

    return _run


@pytest_asyncio.fixture
async def committed_review_task(session_factory, sample_task_data, sample_agent_data) -> str:
    async with session_factory() as session:
        agent = await AgentService(session).register_agent(**sample_agent_data)
        svc = TaskService(session)
        task = await svc.create_task(**sample_task_data)
        bid = await svc.create_bid(task_id=task.id, agent_id=agent.id, agent_fee=300, total=420)
        await svc.accept_bid(task.id, bid.id, escrow_tx_id="cli-escrow")
        await svc.submit_result(
            task.id,
            agent_id=agent.id,
            outputs=[{"type": "text", "content": "ok"}],
        )
        await session.commit()
        return task.id


def _json_document(out: str) -> dict:
    """The pretty-printed JSON block in ``out``, ignoring any log lines around it."""
    lines = out.splitlines()
    start = lines.index("{")
    end = len(lines) - lines[::-1].index("}")
    return json.loads("\n".join(lines[start:end]))


async def _task(session_factory, task_id: str) -> Task | None:
    async with session_factory() as session:
        return await session.get(Task, task_id)


class TestParser:
    def test_missing_task_id_is_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            admin.build_parser().parse_args(["reset-task"])
        assert exc_info.value.code == 2

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            admin.build_parser().parse_args([])
        assert exc_info.value.code == 2


class TestResetTask:
    @pytest.mark.asyncio
    async def test_missing_task(self, cli, capsys) -> None:
        assert await cli("reset-task", "no-such-task") == 1
        assert "Task not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_reset(self, cli, capsys, session_factory, committed_review_task) -> None:
        assert await cli("reset-task", committed_review_task) == 0

        out = capsys.readouterr().out
        assert "Previous status: review" in out
        assert "Results deleted: 1" in out

        task = await _task(session_factory, committed_review_task)
        assert task.status == "working"
        async with session_factory() as session:
            assert (await session.scalars(select(Result))).all() == []


class TestMigrateStatuses:
    @pytest.mark.asyncio
    async def test_prints_counts_and_distribution(
        self, cli, capsys, session_factory, committed_review_task
    ) -> None:
        async with session_factory() as session:
            await session.execute(
                update(Task.__table__)
                .where(Task.__table__.c.id == committed_review_task)
                .values(status="pending_review")
            )
            await session.commit()

        assert await cli("migrate-statuses") == 0

        out = capsys.readouterr().out
        assert "pending_review -> review (1 tasks)" in out
        assert "Migration complete: 1 tasks updated." in out
        assert "review: 1 tasks" in out


class TestInspectAndDelete:
    @pytest.mark.asyncio
    async def test_inspect_prints_json(self, cli, capsys, committed_review_task) -> None:
        assert await cli("inspect-task", committed_review_task) == 0

        fields = _json_document(capsys.readouterr().out)
        assert fields["status"] == "review"
        assert fields["escrow_tx_id"] == "cli-escrow"

    @pytest.mark.asyncio
    async def test_delete_with_yes(self, cli, session_factory, committed_review_task) -> None:
        assert await cli("delete-task", committed_review_task, "--yes") == 0
        assert await _task(session_factory, committed_review_task) is None

    @pytest.mark.asyncio
    async def test_delete_declined(
        self, cli, monkeypatch, session_factory, committed_review_task
    ) -> None:
        monkeypatch.setattr("builtins.input", lambda _prompt: "no")

        assert await cli("delete-task", committed_review_task) == 0
        assert await _task(session_factory, committed_review_task) is not None


class TestMain:
    def test_logs_go_to_stderr(self) -> None:
        with (
            patch("ibwt_marketplace.admin.setup_logging") as setup,
            patch("ibwt_marketplace.admin._run_and_close", AsyncMock(return_value=0)),
        ):
            assert admin.main(["migrate-statuses"]) == 0

        assert setup.call_args.kwargs["stream"] is sys.stderr
