"""Reconciliation engine command line interface.

Operational tools for running the reconciliation batches by hand:
- Invoice status and payroll reconciliation
- Timesheet to invoice generation
- Moving paid payroll entries to history
- Payment reminder generation
- Status calculation for a single issue date

Usage:
    reconciliation-engine process-invoices [--today 2025-04-20]
    reconciliation-engine process-invoice --invoice-id X
    reconciliation-engine process-timesheets --year 2025 --month 3
    reconciliation-engine move-to-history
    reconciliation-engine generate-reminders [--today 2025-04-15]
    reconciliation-engine status --issue-date 01.03.2025 --today 2025-04-20

Results are printed as JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from datetime import date
from typing import Any, Awaitable, Callable

from reconciliation_engine.config import get_settings
from reconciliation_engine.database import create_tables, dispose_db, init_db
from reconciliation_engine.domain.dates import parse_date
from reconciliation_engine.domain.status import compute_status
from reconciliation_engine.domain.types import PaymentStatus
from reconciliation_engine.services.notifications import notifier_from_settings
from reconciliation_engine.services.orchestrator import ReconciliationOrchestrator
from reconciliation_engine.store.base import DocumentStore
from reconciliation_engine.store.sql import SqlDocumentStore

logger = logging.getLogger(__name__)


def parse_date_arg(s: str) -> date:
    """Parse a DD.MM.YYYY or ISO date argument."""
    value = parse_date(s)
    if value is None:
        raise argparse.ArgumentTypeError(f"invalid date: {s!r}")
    return value


def to_json(result: Any) -> str:
    """Render a result dataclass as JSON."""
    if dataclasses.is_dataclass(result):
        result = dataclasses.asdict(result)
    return json.dumps(result, indent=2, default=str)


class ReconciliationCli:
    """Reconciliation engine command line interface."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="reconciliation-engine",
            description="Timesheet, invoice and payroll reconciliation tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # process-invoices command
        invoices = subparsers.add_parser(
            "process-invoices",
            help="Update invoice statuses and create missing payroll entries",
        )
        invoices.add_argument(
            "--today",
            type=parse_date_arg,
            help="Evaluate statuses as of this date (default: today)",
        )

        # process-invoice command
        invoice = subparsers.add_parser(
            "process-invoice",
            help="Reconcile a single invoice",
        )
        invoice.add_argument(
            "--invoice-id",
            type=str,
            required=True,
            help="Invoice document id",
        )
        invoice.add_argument(
            "--today",
            type=parse_date_arg,
            help="Evaluate status as of this date (default: today)",
        )

        # process-timesheets command
        timesheets = subparsers.add_parser(
            "process-timesheets",
            help="Generate invoices from pending timesheets",
        )
        timesheets.add_argument("--year", type=int, required=True)
        timesheets.add_argument(
            "--month",
            type=int,
            required=True,
            choices=range(1, 13),
            metavar="MONTH",
        )
        timesheets.add_argument(
            "--employee-id",
            type=str,
            help="Only process this employee (requires --employee-name)",
        )
        timesheets.add_argument(
            "--employee-name",
            type=str,
            help="Employee name used for the invoice number",
        )
        timesheets.add_argument(
            "--today",
            type=parse_date_arg,
            help="Evaluate payroll statuses as of this date (default: today)",
        )

        # move-to-history command
        subparsers.add_parser(
            "move-to-history",
            help="Stamp paid payroll entries as moved to history",
        )

        # generate-reminders command
        reminders = subparsers.add_parser(
            "generate-reminders",
            help="Create or escalate payment reminders due this month",
        )
        reminders.add_argument(
            "--today",
            type=parse_date_arg,
            help="Run as of this date (default: today)",
        )

        # status command
        status = subparsers.add_parser(
            "status",
            help="Compute the calendar status for an issue date",
        )
        status.add_argument(
            "--issue-date",
            type=parse_date_arg,
            required=True,
            help="Issue date (DD.MM.YYYY or ISO)",
        )
        status.add_argument(
            "--today",
            type=parse_date_arg,
            help="Evaluate as of this date (default: today)",
        )
        status.add_argument(
            "--current",
            type=PaymentStatus,
            choices=list(PaymentStatus),
            help="Existing status; terminal statuses are returned unchanged",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        if parsed.command == "process-timesheets" and bool(parsed.employee_id) != bool(
            parsed.employee_name
        ):
            self.parser.error("--employee-id and --employee-name must be given together")

        # Dispatch to command handler
        handlers: dict[str, Callable[..., Awaitable[int]]] = {
            "process-invoices": self._cmd_process_invoices,
            "process-invoice": self._cmd_process_invoice,
            "process-timesheets": self._cmd_process_timesheets,
            "move-to-history": self._cmd_move_to_history,
            "generate-reminders": self._cmd_generate_reminders,
        }

        if parsed.command == "status":
            return self._cmd_status(parsed)

        handler = handlers.get(parsed.command)
        if handler:
            return asyncio.run(self._with_orchestrator(handler, parsed))

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    async def _with_orchestrator(
        self,
        handler: Callable[..., Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        """Open the store, run one command and release the store."""
        settings = get_settings()
        store = self.store
        owns_db = store is None
        if owns_db:
            engine, session_factory = init_db()
            await create_tables(engine)
            store = SqlDocumentStore(session_factory)

        orchestrator = ReconciliationOrchestrator.from_settings(
            store, settings, notifier=notifier_from_settings(settings)
        )
        try:
            return await handler(orchestrator, args)
        finally:
            if owns_db:
                await dispose_db()

    async def _cmd_process_invoices(
        self, orchestrator: ReconciliationOrchestrator, args: argparse.Namespace
    ) -> int:
        """Reconcile every invoice."""
        result = await orchestrator.process_all_invoices(today=args.today)
        print(to_json(result))
        return 0 if result.success else 1

    async def _cmd_process_invoice(
        self, orchestrator: ReconciliationOrchestrator, args: argparse.Namespace
    ) -> int:
        """Reconcile one invoice."""
        try:
            result = await orchestrator.process_single_invoice(args.invoice_id, today=args.today)
        except Exception as e:
            logger.error("Failed to process invoice %s: %s", args.invoice_id, e)
            print(to_json({"invoice_id": args.invoice_id, "error": str(e)}))
            return 1
        print(to_json(result))
        return 0

    async def _cmd_process_timesheets(
        self, orchestrator: ReconciliationOrchestrator, args: argparse.Namespace
    ) -> int:
        """Generate invoices from one month of pending timesheets."""
        if args.employee_id:
            try:
                result = await orchestrator.process_employee_timesheet(
                    args.employee_id, args.employee_name, args.year, args.month, args.today
                )
            except Exception as e:
                logger.error("Failed to process timesheets for %s: %s", args.employee_name, e)
                print(to_json({"employee_id": args.employee_id, "error": str(e)}))
                return 1
            print(to_json(result))
            return 0

        batch = await orchestrator.process_all_pending_timesheets(
            args.year, args.month, args.today
        )
        print(to_json(batch))
        return 0 if batch.success else 1

    async def _cmd_move_to_history(
        self, orchestrator: ReconciliationOrchestrator, args: argparse.Namespace
    ) -> int:
        """Move paid payroll entries to history."""
        result = await orchestrator.move_paid_payrolls_to_history()
        print(to_json(result))
        return 0 if not result.errors else 1

    async def _cmd_generate_reminders(
        self, orchestrator: ReconciliationOrchestrator, args: argparse.Namespace
    ) -> int:
        """Generate payment reminders."""
        result = await orchestrator.generate_payment_reminders(today=args.today)
        print(to_json(result))
        return 0 if result.success else 1

    def _cmd_status(self, args: argparse.Namespace) -> int:
        """Compute a calendar status without touching the store."""
        today = args.today or date.today()
        status = compute_status(args.issue_date, today, args.current)
        print(
            to_json(
                {
                    "issue_date": args.issue_date.isoformat(),
                    "today": today.isoformat(),
                    "status": status.value,
                }
            )
        )
        return 0


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = ReconciliationCli()
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
