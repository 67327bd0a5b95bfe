"""Reconciliation orchestrator.

Batch procedures that pull source documents from the store, derive
statuses, check for existing counterparts and create the missing
invoices, payroll entries and payment reminders.

Key invariants:
1. One invoice per employee and month (keyed by the derived invoice number)
2. One payroll entry per invoice (found by MatchFinder before creating)
3. Calendar logic never overwrites a paid/received status
4. A failure on one entity never aborts a batch; it becomes an error string

No state survives between calls; everything lives in the store. Re-running
any operation is safe because every creation is preceded by a lookup.
Two runs overlapping on the same employee and month can still both miss
each other's writes, since lookup and create are separate store calls.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable

from reconciliation_engine.calculators.earnings import EarningsCalculator
from reconciliation_engine.config import Settings
from reconciliation_engine.domain.dates import format_date, in_month, parse_date
from reconciliation_engine.domain.status import OVERDUE_DAY, PaymentStatusPolicy, compute_status
from reconciliation_engine.domain.types import (
    ApprovalStatus,
    DocumentDateError,
    Employee,
    Invoice,
    PaymentStatus,
    PayrollEntry,
    Reminder,
    ReminderPriority,
    ReminderStatus,
    TimesheetRecord,
)
from reconciliation_engine.services.generator import (
    DocumentGenerator,
    generate_invoice_number,
    reminder_key,
)
from reconciliation_engine.services.matching import MatchFinder
from reconciliation_engine.services.notifications import Notifier
from reconciliation_engine.store.base import DocumentStore, EmployeeDirectory

logger = logging.getLogger(__name__)

PAYROLL_TRIGGER_STATUSES = frozenset({PaymentStatus.PENDING, PaymentStatus.OVERDUE})


class InvoiceNotFoundError(Exception):
    """Raised when a single-invoice operation names an unknown invoice."""

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


class EmployeeNotFoundError(Exception):
    """Raised when an employee cannot be resolved from the directory."""

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


# ===== Results =====


@dataclass
class InvoiceProcessResult:
    """Outcome of reconciling one invoice."""

    invoice_id: str | None
    invoice_number: str
    previous_status: PaymentStatus
    status: PaymentStatus
    status_updated: bool = False
    payroll_created: bool = False
    payroll_id: str | None = None
    matched_payroll_id: str | None = None


@dataclass
class InvoiceBatchResult:
    """Aggregate result of reconciling every invoice."""

    processed: int = 0
    statuses_updated: int = 0
    payrolls_created: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class TimesheetProcessResult:
    """Outcome of turning one employee's month of timesheets into documents.

    ``reason`` explains a normal non-creation (existing invoice, nothing to
    invoice); it is not an error.
    """

    employee_id: str
    employee_name: str
    invoice_number: str
    invoice_created: bool = False
    invoice_id: str | None = None
    payroll_created: bool = False
    payroll_id: str | None = None
    reason: str | None = None
    notified: bool = False


@dataclass
class TimesheetBatchResult:
    """Aggregate result of processing every employee's pending timesheets."""

    year: int
    month: int
    processed: int = 0
    invoices_created: int = 0
    payrolls_created: int = 0
    errors: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class PaymentResult:
    """Outcome of an explicit payment action on an invoice."""

    invoice_id: str
    previous_status: PaymentStatus
    status: PaymentStatus
    payment_date: date
    payroll_id: str | None = None


@dataclass
class HistoryResult:
    """Outcome of moving paid payroll entries to history."""

    moved: int = 0
    moved_at: str | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class ReminderBatchResult:
    """Aggregate result of a payment reminder run.

    ``ran`` is False on days reminders are not generated.
    """

    run_date: date
    ran: bool = False
    processed: int = 0
    created: int = 0
    escalated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class ReconciliationOrchestrator:
    """Drives timesheet → invoice → payroll generation and status updates.

    Collaborators are injected; ``clock`` supplies "today" when a call
    does not pass one explicitly.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        directory: EmployeeDirectory | None = None,
        calculator: EarningsCalculator | None = None,
        generator: DocumentGenerator | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], date] = date.today,
    ):
        self.store = store
        self.directory = directory or EmployeeDirectory(store)
        self.calculator = calculator or EarningsCalculator()
        self.generator = generator or DocumentGenerator()
        self.notifier = notifier
        self.clock = clock

    @classmethod
    def from_settings(
        cls,
        store: DocumentStore,
        settings: Settings,
        notifier: Notifier | None = None,
    ) -> ReconciliationOrchestrator:
        """Build an orchestrator configured from settings."""
        return cls(
            store,
            calculator=EarningsCalculator(default_currency=settings.default_currency),
            generator=DocumentGenerator(
                payment_cycle_days=settings.payment_cycle_days,
                tax_rate=settings.tax_rate,
                payment_method=settings.default_payment_method,
            ),
            notifier=notifier,
        )

    # ========================================================================
    # Invoice → payroll
    # ========================================================================

    async def process_single_invoice(
        self, invoice_id: str, today: date | None = None
    ) -> InvoiceProcessResult:
        """Reconcile one invoice against the payroll collection.

        Raises:
            InvoiceNotFoundError: If the invoice does not exist
            DocumentDateError: If its issue date is unparseable
        """
        doc = await self.store.invoices.get_by_id(invoice_id)
        if doc is None:
            raise InvoiceNotFoundError(invoice_id)

        invoice = self._invoice_from_document(doc)
        payrolls = await self._load_payrolls()
        return await self._reconcile_invoice(invoice, payrolls, today or self.clock())

    async def process_all_invoices(self, today: date | None = None) -> InvoiceBatchResult:
        """Reconcile every invoice, creating missing payroll entries.

        Payroll entries are loaded once; entries created during the run are
        appended to that list so later invoices in the same batch see them.
        """
        today = today or self.clock()
        result = InvoiceBatchResult()

        try:
            invoice_docs = await self.store.invoices.list_all()
            payrolls = await self._load_payrolls(result.errors)
        except Exception as e:
            logger.exception("Failed to load invoices or payroll entries")
            result.errors.append(f"Error fetching invoices: {e}")
            return result

        for doc in invoice_docs:
            result.processed += 1
            label = doc.get("invoice_number") or doc.get("id")
            try:
                invoice = self._invoice_from_document(doc)
                outcome = await self._reconcile_invoice(invoice, payrolls, today)
            except Exception as e:
                logger.exception("Error processing invoice %s", label)
                result.errors.append(f"Error processing invoice {label}: {e}")
                continue

            if outcome.status_updated:
                result.statuses_updated += 1
            if outcome.payroll_created:
                result.payrolls_created += 1

        logger.info(
            "Processed %d invoices: %d statuses updated, %d payroll entries created, %d errors",
            result.processed,
            result.statuses_updated,
            result.payrolls_created,
            len(result.errors),
        )
        return result

    async def _reconcile_invoice(
        self,
        invoice: Invoice,
        payrolls: list[PayrollEntry],
        today: date,
    ) -> InvoiceProcessResult:
        """Advance an invoice's status and ensure its payroll entry exists."""
        if invoice.issue_date is None:
            raise DocumentDateError("invoices", invoice.id, "issue_date", None)

        outcome = InvoiceProcessResult(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            previous_status=invoice.status,
            status=invoice.status,
        )

        target = compute_status(invoice.issue_date, today, invoice.status)
        if PaymentStatusPolicy.can_advance(invoice.status, target):
            await self.store.invoices.update(invoice.id, {"status": target.value})
            logger.info(
                "Invoice %s status %s -> %s",
                invoice.invoice_number,
                invoice.status.value,
                target.value,
            )
            invoice.status = target
            outcome.status = target
            outcome.status_updated = True
        elif target != invoice.status and not invoice.is_terminal:
            logger.warning(
                "Invoice %s is %s; not moving it back to %s",
                invoice.invoice_number,
                invoice.status.value,
                target.value,
            )

        if invoice.status not in PAYROLL_TRIGGER_STATUSES:
            return outcome

        match = MatchFinder.find_payroll_for_invoice(invoice, payrolls)
        if match is not None:
            logger.debug(
                "Invoice %s already has payroll entry %s (%s match)",
                invoice.invoice_number,
                match.payroll.id,
                match.strategy.value,
            )
            outcome.matched_payroll_id = match.payroll.id
            return outcome

        payroll = self.generator.payroll_from_invoice(invoice, invoice.status)
        payroll.id = await self.store.payroll.add(payroll.to_document())
        payrolls.append(payroll)
        logger.info(
            "Created payroll entry %s for invoice %s",
            payroll.id,
            invoice.invoice_number,
        )

        outcome.payroll_created = True
        outcome.payroll_id = payroll.id
        return outcome

    # ========================================================================
    # Timesheet → invoice
    # ========================================================================

    async def process_employee_timesheet(
        self,
        employee_id: str,
        employee_name: str,
        year: int,
        month: int,
        today: date | None = None,
    ) -> TimesheetProcessResult:
        """Create the invoice (and its payroll entry) for an employee's month.

        Raises:
            EmployeeNotFoundError: If pending records exist but the employee
                cannot be resolved
        """
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")

        invoice_number = generate_invoice_number(employee_name, year, month)
        result = TimesheetProcessResult(
            employee_id=employee_id,
            employee_name=employee_name,
            invoice_number=invoice_number,
        )

        existing = await self.store.invoices.query({"invoice_number": invoice_number})
        if existing:
            linked = MatchFinder.find_payroll_by_invoice_number(
                await self._load_payrolls(), invoice_number
            )
            result.invoice_id = existing[0]["id"]
            result.payroll_id = linked.id if linked else None
            result.reason = f"Invoice {invoice_number} already exists"
            return result

        records = await self._pending_records(employee_id, year, month)
        if not records:
            result.reason = "No pending timesheet records found for this month"
            return result

        employee = await self.directory.get_employee(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        # The invoice must carry the name its number was derived from
        employee = dataclasses.replace(employee, name=employee_name)

        rates = await self.directory.rates_for(employee_id)
        if not rates and employee.id != employee_id:
            rates = await self.directory.rates_for(employee.id)

        earnings = self.calculator.calculate(records, rates)
        if not earnings.has_earnings:
            result.reason = "No earnings calculated from timesheet records"
            return result

        invoice = self.generator.invoice_from_timesheet_month(
            employee, year, month, earnings, records
        )
        if invoice.site_of_work is None and invoice.site_id:
            site = await self.directory.get_site(invoice.site_id)
            invoice.site_of_work = site.name if site is not None else None
        invoice.id = await self.store.invoices.add(invoice.to_document())
        result.invoice_created = True
        result.invoice_id = invoice.id
        logger.info(
            "Created invoice %s (%s %s) for %s",
            invoice.invoice_number,
            invoice.total_amount,
            invoice.currency,
            employee_name,
        )

        # Payroll creation runs in-process as part of the same unit of work
        payrolls = await self._load_payrolls()
        outcome = await self._reconcile_invoice(invoice, payrolls, today or self.clock())
        result.payroll_created = outcome.payroll_created
        result.payroll_id = outcome.payroll_id or outcome.matched_payroll_id

        result.notified = await self._notify_invoice_created(employee, invoice)
        return result

    async def process_all_pending_timesheets(
        self,
        year: int,
        month: int,
        today: date | None = None,
    ) -> TimesheetBatchResult:
        """Process the month's pending timesheets for every employee."""
        result = TimesheetBatchResult(year=year, month=month)

        try:
            docs = await self.store.timesheets.list_all()
        except Exception as e:
            logger.exception("Failed to load timesheet records")
            result.errors.append(f"Error processing timesheets: {e}")
            return result

        # employee_id -> employee_name, in first-seen order
        employees: dict[str, str] = {}
        for doc in docs:
            record = self._timesheet_from_document(doc, result.errors)
            if record is None:
                continue
            if self._is_pending_in_month(record, year, month):
                employees.setdefault(record.employee_id, record.employee_name)

        for employee_id, employee_name in employees.items():
            result.processed += 1
            try:
                outcome = await self.process_employee_timesheet(
                    employee_id, employee_name, year, month, today
                )
            except Exception as e:
                logger.exception("Error processing timesheets for %s", employee_name)
                result.errors.append(f"{employee_name}: {e}")
                continue

            if outcome.invoice_created:
                result.invoices_created += 1
            if outcome.payroll_created:
                result.payrolls_created += 1
            if outcome.reason:
                result.skipped.append(f"{employee_name}: {outcome.reason}")

        logger.info(
            "Processed timesheets for %d employees (%d-%02d): %d invoices, %d payroll entries, %d errors",
            result.processed,
            year,
            month,
            result.invoices_created,
            result.payrolls_created,
            len(result.errors),
        )
        return result

    async def process_timesheet_on_status_change(
        self,
        employee_id: str,
        employee_name: str,
        record_date: str | date,
        today: date | None = None,
    ) -> TimesheetProcessResult | None:
        """Background hook for a timesheet record that became pending.

        Never raises; failures are logged and None is returned.
        """
        work_date = parse_date(record_date)
        if work_date is None:
            logger.warning(
                "Skipping timesheet status change for %s: unparseable date %r",
                employee_name,
                record_date,
            )
            return None

        try:
            return await self.process_employee_timesheet(
                employee_id, employee_name, work_date.year, work_date.month, today
            )
        except Exception:
            logger.exception(
                "Error processing timesheet status change for %s (%s)",
                employee_name,
                work_date,
            )
            return None

    # ========================================================================
    # Explicit payment actions
    # ========================================================================

    async def mark_invoice_paid(
        self,
        invoice_id: str,
        status: PaymentStatus = PaymentStatus.PAID,
        payment_date: date | None = None,
    ) -> PaymentResult:
        """Mark an invoice (and its payroll entry) paid or received.

        Raises:
            InvalidStatusTransitionError: If ``status`` is not terminal
            InvoiceNotFoundError: If the invoice does not exist
        """
        doc = await self.store.invoices.get_by_id(invoice_id)
        if doc is None:
            raise InvoiceNotFoundError(invoice_id)

        invoice = Invoice.from_document(doc)
        PaymentStatusPolicy.validate_payment(invoice.status, status)
        status = PaymentStatus(status)
        paid_on = payment_date or self.clock()

        await self.store.invoices.update(
            invoice_id,
            {"status": status.value, "payment_date": format_date(paid_on)},
        )
        result = PaymentResult(
            invoice_id=invoice_id,
            previous_status=invoice.status,
            status=status,
            payment_date=paid_on,
        )

        match = MatchFinder.find_payroll_for_invoice(invoice, await self._load_payrolls())
        if match is not None and not match.payroll.is_terminal:
            await self.store.payroll.update(
                match.payroll.id,
                {"status": status.value, "payment_date": format_date(paid_on)},
            )
            result.payroll_id = match.payroll.id

        logger.info("Invoice %s marked %s", invoice.invoice_number, status.value)
        return result

    async def move_paid_payrolls_to_history(self, now: datetime | None = None) -> HistoryResult:
        """Stamp paid payroll entries with the end of the current day."""
        now = now or datetime.now(timezone.utc)
        stamp = now.replace(hour=23, minute=59, second=59, microsecond=999000).isoformat()
        result = HistoryResult(moved_at=stamp)

        docs = await self.store.payroll.query({"status": PaymentStatus.PAID.value})
        for doc in docs:
            if doc.get("moved_to_history_at"):
                continue
            try:
                await self.store.payroll.update(doc["id"], {"moved_to_history_at": stamp})
            except Exception as e:
                logger.exception("Error moving payroll entry %s to history", doc["id"])
                result.errors.append(f"Error moving payroll entry {doc['id']}: {e}")
                continue
            result.moved += 1

        return result

    # ========================================================================
    # Payment reminders
    # ========================================================================

    async def generate_payment_reminders(self, today: date | None = None) -> ReminderBatchResult:
        """Create or escalate payment reminders for work months due this month.

        Runs on the 1st of the month (pending reminders) and from the
        overdue day onward (overdue reminders); other days do nothing.
        One reminder exists per employee and work month, keyed by
        ``reminder_key``. Completed reminders and months whose payroll
        entry is already paid are left alone.
        """
        today = today or self.clock()
        result = ReminderBatchResult(run_date=today)
        if today.day != 1 and today.day < OVERDUE_DAY:
            logger.debug("No payment reminders on %s", today)
            return result
        result.ran = True

        try:
            employees = await self.directory.all_employees()
            reminders = await self._load_reminders(result.errors)
            payrolls = await self._load_payrolls(result.errors)
        except Exception as e:
            logger.exception("Failed to load reminder inputs")
            result.errors.append(f"Error loading reminders: {e}")
            return result

        overdue = today.day >= OVERDUE_DAY
        for employee in employees:
            result.processed += 1
            try:
                for year, month in await self._work_months(employee, result.errors):
                    due = self.generator.payment_due_date(year, month)
                    if (due.year, due.month) != (today.year, today.month):
                        continue
                    outcome = await self._remind(employee, year, month, overdue, reminders, payrolls)
                    if outcome == "created":
                        result.created += 1
                    elif outcome == "escalated":
                        result.escalated += 1
            except Exception as e:
                logger.exception("Error generating payment reminders for %s", employee.name)
                result.errors.append(f"{employee.name}: {e}")

        logger.info(
            "Payment reminders for %s: %d created, %d escalated, %d errors",
            today,
            result.created,
            result.escalated,
            len(result.errors),
        )
        return result

    async def _remind(
        self,
        employee: Employee,
        year: int,
        month: int,
        overdue: bool,
        reminders: list[Reminder],
        payrolls: list[PayrollEntry],
    ) -> str | None:
        """Create or escalate one reminder. Returns what was done, if anything."""
        existing = MatchFinder.find_reminder(reminders, reminder_key(employee.id, year, month))
        if existing is not None and existing.status == ReminderStatus.COMPLETED:
            return None

        payroll = MatchFinder.find_payroll_by_invoice_number(
            payrolls, generate_invoice_number(employee.name, year, month)
        )
        if payroll is not None and payroll.is_terminal:
            return None

        reminder = self.generator.payment_reminder(employee, year, month, overdue=overdue)
        if existing is None:
            reminder.id = await self.store.reminders.add(reminder.to_document())
            reminders.append(reminder)
            logger.info("Created payment reminder %s", reminder.related_id)
            return "created"

        if overdue and existing.priority != ReminderPriority.HIGH:
            await self.store.reminders.update(existing.id, reminder.to_document())
            existing.priority = reminder.priority
            logger.info("Escalated payment reminder %s to overdue", reminder.related_id)
            return "escalated"
        return None

    # ========================================================================
    # Helpers
    # ========================================================================

    @staticmethod
    def _invoice_from_document(doc: dict[str, Any]) -> Invoice:
        invoice = Invoice.from_document(doc)
        if invoice.issue_date is None:
            raise DocumentDateError("invoices", doc.get("id"), "issue_date", doc.get("issue_date"))
        return invoice

    @staticmethod
    def _timesheet_from_document(
        doc: dict[str, Any], errors: list[str]
    ) -> TimesheetRecord | None:
        """Convert a timesheet document, recording why it was skipped."""
        try:
            record = TimesheetRecord.from_document(doc)
        except (ValueError, ArithmeticError) as e:
            logger.warning("Skipping timesheet record %s: %s", doc.get("id"), e)
            errors.append(f"Invalid timesheet record {doc.get('id')}: {e}")
            return None

        if record.work_date is None:
            error = DocumentDateError("timesheets", doc.get("id"), "work_date", doc.get("work_date"))
            logger.warning("Skipping timesheet record: %s", error)
            errors.append(str(error))
            return None
        return record

    @staticmethod
    def _is_pending_in_month(record: TimesheetRecord, year: int, month: int) -> bool:
        return (
            record.work_date is not None
            and in_month(record.work_date, year, month)
            and record.approval_status == ApprovalStatus.PENDING
            and record.is_complete
        )

    async def _pending_records(
        self, employee_id: str, year: int, month: int
    ) -> list[TimesheetRecord]:
        docs = await self.store.timesheets.query({"employee_id": employee_id})
        skipped: list[str] = []
        records = []
        for doc in docs:
            record = self._timesheet_from_document(doc, skipped)
            if record is not None and self._is_pending_in_month(record, year, month):
                records.append(record)
        return records

    async def _load_payrolls(self, errors: list[str] | None = None) -> list[PayrollEntry]:
        """Load every payroll entry.

        An entry that cannot be read is reported and kept in identity-only
        form, so it still blocks creation of a duplicate.
        """
        payrolls = []
        for doc in await self.store.payroll.list_all():
            try:
                payrolls.append(PayrollEntry.from_document(doc))
            except (ValueError, ArithmeticError) as e:
                logger.warning("Unreadable payroll entry %s: %s", doc.get("id"), e)
                if errors is not None:
                    errors.append(f"Invalid payroll entry {doc.get('id')}: {e}")
                payrolls.append(PayrollEntry.identity_only(doc))
        return payrolls

    async def _load_reminders(self, errors: list[str]) -> list[Reminder]:
        reminders = []
        for doc in await self.store.reminders.list_all():
            try:
                reminders.append(Reminder.from_document(doc))
            except ValueError as e:
                logger.warning("Unreadable reminder %s: %s", doc.get("id"), e)
                errors.append(f"Invalid reminder {doc.get('id')}: {e}")
                reminders.append(Reminder.identity_only(doc))
        return reminders

    async def _work_months(
        self, employee: Employee, errors: list[str]
    ) -> list[tuple[int, int]]:
        """Months in which the employee has completed, non-leave shifts."""
        docs = await self.store.timesheets.query({"employee_id": employee.id})
        if employee.user_id and employee.user_id != employee.id:
            docs += await self.store.timesheets.query({"employee_id": employee.user_id})

        months = set()
        for doc in docs:
            record = self._timesheet_from_document(doc, errors)
            if record is not None and record.is_complete and not record.is_leave:
                months.add((record.work_date.year, record.work_date.month))
        return sorted(months)

    async def _notify_invoice_created(self, employee: Employee, invoice: Invoice) -> bool:
        """Send the invoice-created notification. Best effort."""
        if self.notifier is None or not employee.email:
            return False

        template_data = {
            "employee_name": employee.name,
            "invoice_number": invoice.invoice_number,
            "total_amount": str(invoice.total_amount),
            "currency": invoice.currency,
            "due_date": format_date(invoice.due_date) if invoice.due_date else "",
        }
        try:
            sent = await self.notifier.send(employee.email, template_data)
        except Exception:
            logger.exception("Notifier failed for invoice %s", invoice.invoice_number)
            return False

        if not sent.success:
            logger.warning(
                "Notification for invoice %s not sent: %s",
                invoice.invoice_number,
                sent.error,
            )
        return sent.success
