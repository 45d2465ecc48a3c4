"""Review pipeline command line interface.

Provides operator tools for:
- Listing and reordering reviewers
- Listing and deciding review items
- Review summary and stage gate queries

Usage:
    python -m payroll_review.cli reviewers --company-id C
    python -m payroll_review.cli move-up R1 --company-id C
    python -m payroll_review.cli items RUN --status PENDING --search jane
    python -m payroll_review.cli set-status RUN REVIEW APPROVED --level 1
    python -m payroll_review.cli summary RUN
    python -m payroll_review.cli stage RUN
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable

from payroll_review.client import Credential, HttpPayrollService, PayrollService
from payroll_review.config import Settings, get_settings
from payroll_review.errors import ReviewPipelineError
from payroll_review.events import EventEmitter, log_event
from payroll_review.services import PipelineOrchestrator

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[str, Credential], PayrollService]
CommandHandler = Callable[[PipelineOrchestrator, argparse.Namespace], Awaitable[Any]]


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_jsonable(value: Any) -> Any:
    """Convert result dataclasses (and lists of them) into plain data."""
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


class ReviewCli:
    """Review pipeline Command Line Interface."""

    def __init__(
        self,
        settings: Settings | None = None,
        service_factory: ServiceFactory | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.service_factory = service_factory or self._http_service
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m payroll_review.cli",
            description="Payroll review pipeline tools",
        )
        parser.add_argument(
            "--company-id",
            type=str,
            default=self.settings.company_id,
            help="Company ID (default: $PAYROLL_COMPANY_ID)",
        )
        parser.add_argument(
            "--token",
            type=str,
            default=self.settings.api_token,
            help="Bearer token for the payroll service (default: $PAYROLL_API_TOKEN)",
        )
        parser.add_argument(
            "--user-id",
            type=str,
            help="Acting user ID, recorded on emitted events",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # reviewers command
        subparsers.add_parser("reviewers", help="List reviewers ascending by level")

        # move-up / move-down commands
        for name, help_text in (
            ("move-up", "Swap a reviewer's level with the previous reviewer"),
            ("move-down", "Swap a reviewer's level with the next reviewer"),
        ):
            move = subparsers.add_parser(name, help=help_text)
            move.add_argument("reviewer_id", type=str, help="Reviewer ID")

        # items command
        items = subparsers.add_parser("items", help="List review items of a payroll run")
        items.add_argument("run_id", type=str, help="Payroll run ID")
        items.add_argument(
            "--status",
            type=str,
            choices=["PENDING", "APPROVED", "REJECTED"],
            help="Only items in this review status",
        )
        items.add_argument(
            "--search",
            type=str,
            default="",
            help="Case-insensitive match on name, job title, department or employee ID",
        )
        items.add_argument(
            "--level",
            type=int,
            help="Acting reviewer level for items without one",
        )

        # set-status command
        set_status = subparsers.add_parser(
            "set-status",
            help="Approve, reject or reopen a review item",
        )
        set_status.add_argument("run_id", type=str, help="Payroll run ID")
        set_status.add_argument("review_id", type=str, help="Review ID")
        set_status.add_argument(
            "status",
            type=str.upper,
            choices=["PENDING", "APPROVED", "REJECTED"],
            help="Target review status",
        )
        set_status.add_argument(
            "--level",
            type=int,
            help="Acting reviewer level",
        )

        # summary command
        summary = subparsers.add_parser("summary", help="Per-reviewer progress of a run")
        summary.add_argument("run_id", type=str, help="Payroll run ID")

        # stage command
        stage = subparsers.add_parser(
            "stage",
            help="Whether a run may continue to disbursement",
        )
        stage.add_argument("run_id", type=str, help="Payroll run ID")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        logging.basicConfig(
            level=self.settings.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        # Dispatch to command handler
        handlers: dict[str, CommandHandler] = {
            "reviewers": self._cmd_reviewers,
            "move-up": self._cmd_move_up,
            "move-down": self._cmd_move_down,
            "items": self._cmd_items,
            "set-status": self._cmd_set_status,
            "summary": self._cmd_summary,
            "stage": self._cmd_stage,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        if not parsed.company_id:
            print("ERROR: --company-id or $PAYROLL_COMPANY_ID is required", file=sys.stderr)
            return 1

        try:
            result = asyncio.run(self._execute(handler, parsed))
        except ReviewPipelineError as e:
            print(f"ERROR: {e.user_message}", file=sys.stderr)
            return 1

        print(json.dumps(to_jsonable(result), indent=2, default=_json_default))
        return 0

    async def _execute(self, handler: CommandHandler, args: argparse.Namespace) -> Any:
        credential = Credential(access_token=args.token or "", user_id=args.user_id)
        service = self.service_factory(args.company_id, credential)
        emitter = EventEmitter()
        emitter.on_all(log_event)
        orchestrator = PipelineOrchestrator(
            service,
            policy=self.settings.policy,
            emitter=emitter,
            actor_id=args.user_id,
        )
        try:
            return await handler(orchestrator, args)
        finally:
            aclose = getattr(service, "aclose", None)
            if aclose is not None:
                await aclose()

    def _http_service(self, company_id: str, credential: Credential) -> PayrollService:
        return HttpPayrollService.from_settings(self.settings, credential, company_id=company_id)

    # =========================================================================
    # Commands
    # =========================================================================

    async def _cmd_reviewers(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        return await orchestrator.reviewers_in_order()

    async def _cmd_move_up(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        result = await orchestrator.roster.move_up(args.reviewer_id)
        return {"changed": result.changed, "reviewers": to_jsonable(result.roster.in_order())}

    async def _cmd_move_down(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        result = await orchestrator.roster.move_down(args.reviewer_id)
        return {"changed": result.changed, "reviewers": to_jsonable(result.roster.in_order())}

    async def _cmd_items(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        store = await orchestrator.load_items(args.run_id, args.level)
        return store.global_search(args.search or "", status=args.status)

    async def _cmd_set_status(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        result = await orchestrator.transition(
            args.run_id, args.review_id, args.status, reviewer_level=args.level
        )
        return {
            "applied": result.applied,
            "item": to_jsonable(result.item),
            "level_summary": to_jsonable(result.after),
            "overall_completion": result.progress.overall_completion,
        }

    async def _cmd_summary(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        summary = await orchestrator.review_summary(args.run_id)
        return {
            "payroll_run": to_jsonable(summary.payroll_run),
            "steps": to_jsonable(summary.steps),
            "overall_completion": summary.progress.overall_completion,
            "source": summary.source,
        }

    async def _cmd_stage(self, orchestrator: PipelineOrchestrator, args: argparse.Namespace) -> Any:
        return await orchestrator.unlock_next_stage(args.run_id)


def main() -> int:
    """CLI entry point."""
    cli = ReviewCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
