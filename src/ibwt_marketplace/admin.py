"""Operator CLI for one-off data maintenance.

Usage:
    ibwt-admin migrate-statuses
    ibwt-admin reset-task <task_id>
    ibwt-admin reopen-task <task_id>
    ibwt-admin inspect-task <task_id>
    ibwt-admin delete-task <task_id> [--yes]

Each command runs in a single database transaction against DATABASE_URL.
Exit codes: 0 on success, 1 when the task is missing or the command fails,
2 for usage errors.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from sqlalchemy.exc import SQLAlchemyError

from ibwt_marketplace.config import get_settings
from ibwt_marketplace.domain.enums import STATUS_MIGRATION_MAP
from ibwt_marketplace.domain.exceptions import IbwtError, NotFoundError
from ibwt_marketplace.infrastructure.database.engine import close_db, session_scope
from ibwt_marketplace.logging_config import get_logger, setup_logging
from ibwt_marketplace.services.maintenance_service import MaintenanceService

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_migrate_statuses(args: argparse.Namespace) -> int:
    """Rewrite legacy task statuses to canonical values."""
    print("\nMigrating task status values...\n")
    async with session_scope() as session:
        report = await MaintenanceService(session).migrate_statuses()

    for old_status, count in report.updated.items():
        if count:
            print(f"  {old_status} -> {_target(old_status)} ({count} tasks)")
    print(f"\nMigration complete: {report.total_updated} tasks updated.\n")

    print("Current status distribution:")
    for status, count in report.distribution.items():
        print(f"  {status}: {count} tasks")
    if report.unknown:
        print("\nUnrecognized statuses left untouched:")
        for status, count in report.unknown.items():
            print(f"  {status}: {count} tasks")
    print()
    return 0


async def cmd_reset_task(args: argparse.Namespace) -> int:
    """Force a task back to working and delete its results."""
    print(f"Resetting task {args.task_id} to working status...")
    async with session_scope() as session:
        report = await MaintenanceService(session).reset_to_working(args.task_id)

    print(f"  Previous status: {report.previous_status}")
    print(f"  Task reset to '{report.new_status}'")
    print(f"  Results deleted: {report.results_deleted}")
    return 0


async def cmd_reopen_task(args: argparse.Namespace) -> int:
    """Put a task back to open so a bid can be accepted again."""
    print(f"Reopening task {args.task_id}...")
    async with session_scope() as session:
        report = await MaintenanceService(session).reopen_task(args.task_id)

    print(f"  Previous status: {report.previous_status}")
    print(f"  Task reset to '{report.new_status}'")
    print(f"  Bids reset to pending: {report.bids_reset}")
    print(f"  Results deleted: {report.results_deleted}")
    return 0


async def cmd_inspect_task(args: argparse.Namespace) -> int:
    async with session_scope() as session:
        fields = await MaintenanceService(session).inspect_task(args.task_id)
    print(json.dumps(fields, indent=2))
    return 0


async def cmd_delete_task(args: argparse.Namespace) -> int:
    """Delete a task and everything attached to it, after confirmation."""
    async with session_scope() as session:
        svc = MaintenanceService(session)
        fields = await svc.inspect_task(args.task_id)
        print(f"\nTask {fields['id']}")
        print(f"  Status: {fields['status']}")
        print(f"  Bids: {fields['bids']}")
        print(f"  Results: {fields['results']}")

        if not args.yes:
            print("\nThis will permanently delete the task and all related data.")
            answer = input("Type 'yes' to confirm: ").strip().lower()
            if answer != "yes":
                print("Deletion cancelled")
                return 0

        await svc.delete_task(args.task_id)

    print(f"Task {args.task_id} deleted.")
    return 0


def _target(old_status: str) -> str:
    return STATUS_MIGRATION_MAP[old_status].value


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ibwt-admin",
        description="IBWT marketplace maintenance commands",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("migrate-statuses", help="Rewrite legacy task statuses")
    p.set_defaults(func=cmd_migrate_statuses)

    p = sub.add_parser("reset-task", help="Force a task to working and delete its results")
    p.add_argument("task_id")
    p.set_defaults(func=cmd_reset_task)

    p = sub.add_parser("reopen-task", help="Reset a task to open so a bid can be re-accepted")
    p.add_argument("task_id")
    p.set_defaults(func=cmd_reopen_task)

    p = sub.add_parser("inspect-task", help="Print a task's raw lifecycle fields")
    p.add_argument("task_id")
    p.set_defaults(func=cmd_inspect_task)

    p = sub.add_parser("delete-task", help="Delete a task with its bids, result and events")
    p.add_argument("task_id")
    p.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    p.set_defaults(func=cmd_delete_task)

    return parser


async def run(args: argparse.Namespace) -> int:
    """Execute a parsed command and map failures to an exit code."""
    try:
        return await args.func(args)
    except NotFoundError as exc:
        logger.error("admin.not_found", command=args.command, error=exc.message)
        print(exc.message, file=sys.stderr)
        return 1
    except IbwtError as exc:
        logger.error("admin.rejected", command=args.command, error=exc.message, code=exc.code)
        print(exc.message, file=sys.stderr)
        return 1
    except SQLAlchemyError as exc:
        logger.exception("admin.database_error", command=args.command)
        print(f"Database error: {exc}", file=sys.stderr)
        return 1


async def _run_and_close(args: argparse.Namespace) -> int:
    try:
        return await run(args)
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
        stream=sys.stderr,
    )
    return asyncio.run(_run_and_close(args))


if __name__ == "__main__":
    sys.exit(main())
