"""Tests for the reconciliation orchestrator.

Tests verify:
1. Timesheet month → one invoice → one payroll entry
2. Re-running any operation creates nothing new
3. Calendar status updates never touch paid documents
4. Per-entity failures are collected, not raised, by batches
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from reconciliation_engine.domain.status import InvalidStatusTransitionError
from reconciliation_engine.domain.types import DocumentDateError, PaymentStatus
from reconciliation_engine.services.orchestrator import (
    EmployeeNotFoundError,
    InvoiceNotFoundError,
)
from reconciliation_engine.store.memory import InMemoryCollection, InMemoryDocumentStore

from .conftest import JANE_ID, jane_seed, make_orchestrator, timesheet


pytestmark = pytest.mark.asyncio


def invoice_doc(number, issue_date="2025-03-01", status="pending", name="Acme", site="Site A", **extra):
    doc = {
        "invoice_number": number,
        "client_name": name,
        "name": name,
        "site_of_work": site,
        "amount": Decimal("100.00"),
        "tax_amount": Decimal("10.00"),
        "total_amount": Decimal("110.00"),
        "currency": "AUD",
        "issue_date": issue_date,
        "due_date": None,
        "status": status,
    }
    doc.update(extra)
    return doc


class TestProcessEmployeeTimesheet:
    """Test invoice generation for one employee and month."""

    async def test_creates_invoice_and_payroll(self, store, orchestrator):
        """Jane's two 8 hour shifts at $25 become one $400 invoice."""
        result = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)

        assert result.invoice_created is True
        assert result.invoice_number == "EMP-JANE-DOE-2025-03"
        assert result.reason is None

        invoices = await store.invoices.list_all()
        assert len(invoices) == 1
        invoice = invoices[0]
        assert invoice["id"] == result.invoice_id
        assert invoice["invoice_number"] == "EMP-JANE-DOE-2025-03"
        assert invoice["amount"] == Decimal("400.00")
        assert invoice["tax_amount"] == Decimal("0.00")
        assert invoice["total_amount"] == Decimal("400.00")
        assert invoice["issue_date"] == "2025-03-01"
        assert invoice["due_date"] == "2025-04-15"
        assert invoice["status"] == "pending"
        assert invoice["site_of_work"] == "Site A"

        assert result.payroll_created is True
        payrolls = await store.payroll.list_all()
        assert len(payrolls) == 1
        payroll = payrolls[0]
        assert payroll["id"] == result.payroll_id
        assert payroll["invoice_number"] == "EMP-JANE-DOE-2025-03"
        assert payroll["date"] == "01.04.2025"
        assert payroll["month"] == "April"
        assert payroll["status"] == "pending"
        assert payroll["total_amount"] == Decimal("400.00")

    async def test_tax_registered_employee(self, notifier):
        store = InMemoryDocumentStore(jane_seed(tax_registered=True))
        orchestrator = make_orchestrator(store, notifier)

        await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)

        [invoice] = await store.invoices.list_all()
        assert invoice["tax_amount"] == Decimal("40.00")
        assert invoice["total_amount"] == Decimal("440.00")

    async def test_second_call_is_idempotent(self, store, orchestrator):
        """Re-running reports the existing invoice and writes nothing."""
        first = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)
        adds = store.invoices.add_calls + store.payroll.add_calls

        second = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)

        assert second.invoice_created is False
        assert second.payroll_created is False
        assert second.invoice_id == first.invoice_id
        assert second.payroll_id == first.payroll_id
        assert "already exists" in second.reason
        assert store.invoices.add_calls + store.payroll.add_calls == adds
        assert len(store.invoices) == 1
        assert len(store.payroll) == 1

    async def test_no_pending_records(self, store, orchestrator):
        result = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 4)

        assert result.invoice_created is False
        assert result.reason == "No pending timesheet records found for this month"
        assert len(store.invoices) == 0

    async def test_approved_and_open_records_ignored(self, notifier):
        seed = jane_seed()
        seed["timesheets"] = [
            timesheet(approval_status="approved"),
            timesheet(clocked_out=False),
        ]
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).process_employee_timesheet(
            JANE_ID, "Jane Doe", 2025, 3
        )

        assert result.invoice_created is False
        assert len(store.invoices) == 0

    async def test_only_leave_records_give_no_earnings(self, notifier):
        seed = jane_seed()
        seed["timesheets"] = [timesheet(is_leave=True)]
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).process_employee_timesheet(
            JANE_ID, "Jane Doe", 2025, 3
        )

        assert result.invoice_created is False
        assert result.reason == "No earnings calculated from timesheet records"

    async def test_no_rates_gives_no_earnings(self, notifier):
        seed = jane_seed()
        seed["rate_entries"] = []
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).process_employee_timesheet(
            JANE_ID, "Jane Doe", 2025, 3
        )

        assert result.invoice_created is False
        assert len(store.invoices) == 0

    async def test_unknown_employee_raises(self, notifier):
        seed = jane_seed()
        seed["employees"] = []
        store = InMemoryDocumentStore(seed)

        with pytest.raises(EmployeeNotFoundError) as exc_info:
            await make_orchestrator(store, notifier).process_employee_timesheet(
                JANE_ID, "Jane Doe", 2025, 3
            )

        assert exc_info.value.employee_id == JANE_ID
        assert len(store.invoices) == 0

    async def test_employee_found_by_user_id(self, notifier):
        seed = jane_seed()
        seed["employees"] = [{"id": "emp-7", "name": "Jane Doe", "user_id": JANE_ID}]
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).process_employee_timesheet(
            JANE_ID, "Jane Doe", 2025, 3
        )

        assert result.invoice_created is True

    async def test_notification_sent(self, orchestrator, notifier):
        result = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)

        assert result.notified is True
        [(recipient, data)] = notifier.sent
        assert recipient == "jane@example.com"
        assert data["invoice_number"] == "EMP-JANE-DOE-2025-03"
        assert data["due_date"] == "15.04.2025"

    async def test_invalid_month(self, orchestrator):
        with pytest.raises(ValueError):
            await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 13)

    async def test_leave_flag_stored_as_text(self, notifier):
        """A stored "false" is a worked shift; only "true" marks leave."""
        seed = jane_seed()
        seed["timesheets"] = [
            timesheet(work_date="2025-03-03", is_leave="false"),
            timesheet(work_date="2025-03-04", is_leave="true"),
        ]
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).process_employee_timesheet(
            JANE_ID, "Jane Doe", 2025, 3
        )

        assert result.invoice_created is True
        [invoice] = await store.invoices.list_all()
        assert invoice["amount"] == Decimal("200.00")

    async def test_site_of_work_from_site_record(self, notifier):
        """Without a site name on rates or shifts, the site record names it."""
        seed = jane_seed()
        seed["rate_entries"][0]["site_name"] = None
        seed["timesheets"] = [timesheet(site_name=None)]
        store = InMemoryDocumentStore(seed)

        await make_orchestrator(store, notifier).process_employee_timesheet(
            JANE_ID, "Jane Doe", 2025, 3
        )

        [invoice] = await store.invoices.list_all()
        assert invoice["site_of_work"] == "Site A"


class TestProcessAllPendingTimesheets:
    """Test the all-employees batch."""

    async def test_batch_collects_errors_and_continues(self, store, orchestrator):
        """John has timesheets but no employee record; Jane still gets invoiced."""
        store.timesheets.seed(timesheet(employee_id="john-id", employee_name="John Smith"))

        result = await orchestrator.process_all_pending_timesheets(2025, 3)

        assert result.processed == 2
        assert result.invoices_created == 1
        assert result.payrolls_created == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("John Smith:")
        assert result.success is False

    async def test_rerun_creates_nothing(self, store, orchestrator):
        await orchestrator.process_all_pending_timesheets(2025, 3)

        result = await orchestrator.process_all_pending_timesheets(2025, 3)

        assert result.invoices_created == 0
        assert result.payrolls_created == 0
        assert result.errors == []
        assert result.skipped == ["Jane Doe: Invoice EMP-JANE-DOE-2025-03 already exists"]
        assert len(store.invoices) == 1
        assert len(store.payroll) == 1

    async def test_other_months_ignored(self, store, orchestrator):
        result = await orchestrator.process_all_pending_timesheets(2025, 2)

        assert result.processed == 0
        assert len(store.invoices) == 0

    async def test_dotted_work_dates(self, notifier):
        seed = jane_seed()
        seed["timesheets"] = [timesheet(work_date="03.03.2025")]
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).process_all_pending_timesheets(2025, 3)

        assert result.invoices_created == 1

    async def test_unparseable_work_date_reported(self, store, orchestrator):
        store.timesheets.seed(timesheet(work_date="someday", id="bad-record"))

        result = await orchestrator.process_all_pending_timesheets(2025, 3)

        assert result.invoices_created == 1
        assert any("bad-record" in error for error in result.errors)

    async def test_store_failure_returns_early(self, store, orchestrator):
        class BrokenCollection(InMemoryCollection):
            async def list_all(self):
                raise ConnectionError("store offline")

        store.timesheets = BrokenCollection("timesheets")

        result = await orchestrator.process_all_pending_timesheets(2025, 3)

        assert result.processed == 0
        assert result.errors == ["Error processing timesheets: store offline"]

    async def test_non_numeric_hours_reported(self, store, orchestrator):
        """Bob's unreadable shift is reported; Jane is still invoiced."""
        store.timesheets.seed(
            timesheet(
                employee_id="bob-id",
                employee_name="Bob Lee",
                hours=None,
                hours_worked="n/a",
                id="bob-record",
            )
        )

        result = await orchestrator.process_all_pending_timesheets(2025, 3)

        assert result.processed == 1
        assert result.invoices_created == 1
        assert result.payrolls_created == 1
        assert len(result.errors) == 1
        assert "bob-record" in result.errors[0]

    async def test_non_numeric_rate_reported(self, store, orchestrator):
        [rate] = await store.rate_entries.list_all()
        await store.rate_entries.update(rate["id"], {"hourly_rate": "twenty"})

        result = await orchestrator.process_all_pending_timesheets(2025, 3)

        assert result.processed == 1
        assert result.invoices_created == 0
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Jane Doe:")


class TestStatusChangeHook:
    """Test the background hook for a record becoming pending."""

    async def test_processes_record_month(self, store, orchestrator):
        result = await orchestrator.process_timesheet_on_status_change(
            JANE_ID, "Jane Doe", "04.03.2025"
        )

        assert result is not None
        assert result.invoice_number == "EMP-JANE-DOE-2025-03"
        assert result.invoice_created is True

    async def test_unparseable_date(self, store, orchestrator):
        assert await orchestrator.process_timesheet_on_status_change(JANE_ID, "Jane Doe", "?") is None
        assert len(store.invoices) == 0

    async def test_failures_are_swallowed(self, store, orchestrator):
        """Timesheets for an unknown employee are logged, not raised."""
        store.timesheets.seed(timesheet(employee_id="ghost", employee_name="Ghost"))

        result = await orchestrator.process_timesheet_on_status_change(
            "ghost", "Ghost", "2025-03-04"
        )
        assert result is None


class TestProcessAllInvoices:
    """Test invoice status updates and payroll creation."""

    async def test_mixed_batch(self, orchestrator, store):
        overdue_id = store.invoices.seed(invoice_doc("INV-A", issue_date="01.02.2025"))
        paid_id = store.invoices.seed(invoice_doc("INV-B", status="paid"))
        store.invoices.seed(invoice_doc("INV-C"))
        store.invoices.seed(invoice_doc("INV-D", issue_date="not a date"))
        store.payroll.seed(
            {
                "month": "April",
                "date": "01.04.2025",
                "name": "Acme",
                "invoice_number": "INV-C",
                "amount_excl_tax": Decimal("100.00"),
                "tax_amount": Decimal("10.00"),
                "total_amount": Decimal("110.00"),
                "status": "pending",
            }
        )

        result = await orchestrator.process_all_invoices()

        assert result.processed == 4
        assert result.statuses_updated == 1
        assert result.payrolls_created == 1
        assert len(result.errors) == 1
        assert "INV-D" in result.errors[0]

        overdue = await store.invoices.get_by_id(overdue_id)
        assert overdue["status"] == "overdue"
        paid = await store.invoices.get_by_id(paid_id)
        assert paid["status"] == "paid"

        [created] = await store.payroll.query({"invoice_number": "INV-A"})
        assert created["status"] == "overdue"
        assert created["date"] == "01.03.2025"
        assert created["month"] == "March"
        assert await store.payroll.query({"invoice_number": "INV-B"}) == []

    async def test_rerun_is_idempotent(self, orchestrator, store):
        store.invoices.seed(invoice_doc("INV-A", issue_date="2025-02-01"))
        await orchestrator.process_all_invoices()
        writes = store.invoices.update_calls + store.payroll.add_calls

        result = await orchestrator.process_all_invoices()

        assert result.statuses_updated == 0
        assert result.payrolls_created == 0
        assert store.invoices.update_calls + store.payroll.add_calls == writes
        assert len(store.payroll) == 1

    async def test_batch_sees_payrolls_created_earlier_in_run(self, orchestrator, store):
        """Two invoices with one number get one payroll entry."""
        store.invoices.seed(invoice_doc("INV-DUP"))
        store.invoices.seed(invoice_doc("INV-DUP"))

        result = await orchestrator.process_all_invoices()

        assert result.payrolls_created == 1
        assert len(store.payroll) == 1

    async def test_proximity_match_prevents_duplicate(self, orchestrator, store):
        """A hand-entered payroll entry without an invoice number still counts."""
        store.invoices.seed(invoice_doc("INV-A"))
        store.payroll.seed(
            {
                "month": "March",
                "date": "02.03.2025",
                "name": "Acme",
                "site_of_work": "Site A",
                "amount_excl_tax": Decimal("100.00"),
                "total_amount": Decimal("110.00"),
            }
        )

        result = await orchestrator.process_all_invoices()

        assert result.payrolls_created == 0
        assert len(store.payroll) == 1

    async def test_overdue_never_downgraded(self, store, notifier):
        invoice_id = store.invoices.seed(invoice_doc("INV-A", status="overdue"))
        orchestrator = make_orchestrator(store, notifier, today=date(2025, 3, 10))

        result = await orchestrator.process_all_invoices()

        assert result.statuses_updated == 0
        assert (await store.invoices.get_by_id(invoice_id))["status"] == "overdue"
        [payroll] = await store.payroll.list_all()
        assert payroll["status"] == "overdue"

    async def test_explicit_today(self, store, orchestrator):
        invoice_id = store.invoices.seed(invoice_doc("INV-A"))

        await orchestrator.process_all_invoices(today=date(2025, 4, 15))

        assert (await store.invoices.get_by_id(invoice_id))["status"] == "overdue"

    async def test_store_failure_returns_early(self, store, orchestrator):
        class BrokenCollection(InMemoryCollection):
            async def list_all(self):
                raise ConnectionError("store offline")

        store.invoices = BrokenCollection("invoices")

        result = await orchestrator.process_all_invoices()

        assert result.processed == 0
        assert result.errors == ["Error fetching invoices: store offline"]


class TestProcessSingleInvoice:
    async def test_creates_payroll(self, store, orchestrator):
        invoice_id = store.invoices.seed(invoice_doc("INV-A"))

        result = await orchestrator.process_single_invoice(invoice_id)

        assert result.payroll_created is True
        assert result.status == PaymentStatus.PENDING
        assert (await store.payroll.get_by_id(result.payroll_id))["invoice_number"] == "INV-A"

    async def test_existing_payroll_reported(self, store, orchestrator):
        invoice_id = store.invoices.seed(invoice_doc("INV-A"))
        first = await orchestrator.process_single_invoice(invoice_id)

        second = await orchestrator.process_single_invoice(invoice_id)

        assert second.payroll_created is False
        assert second.matched_payroll_id == first.payroll_id

    async def test_unknown_invoice(self, orchestrator):
        with pytest.raises(InvoiceNotFoundError):
            await orchestrator.process_single_invoice("missing")

    async def test_unparseable_issue_date(self, store, orchestrator):
        invoice_id = store.invoices.seed(invoice_doc("INV-A", issue_date="31.02.2025"))

        with pytest.raises(DocumentDateError) as exc_info:
            await orchestrator.process_single_invoice(invoice_id)

        assert exc_info.value.value == "31.02.2025"


class TestMarkInvoicePaid:
    """Test explicit payment actions."""

    async def test_marks_invoice_and_payroll(self, store, orchestrator):
        created = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)

        result = await orchestrator.mark_invoice_paid(
            created.invoice_id, payment_date=date(2025, 4, 12)
        )

        assert result.status == PaymentStatus.PAID
        assert result.payroll_id == created.payroll_id
        invoice = await store.invoices.get_by_id(created.invoice_id)
        assert invoice["status"] == "paid"
        assert invoice["payment_date"] == "12.04.2025"
        payroll = await store.payroll.get_by_id(created.payroll_id)
        assert payroll["status"] == "paid"

    async def test_paid_invoice_survives_calendar_run(self, store, notifier):
        invoice_id = store.invoices.seed(invoice_doc("INV-A"))
        orchestrator = make_orchestrator(store, notifier)
        await orchestrator.mark_invoice_paid(invoice_id, PaymentStatus.RECEIVED)

        later = make_orchestrator(store, notifier, today=date(2026, 1, 1))
        result = await later.process_all_invoices()

        assert result.statuses_updated == 0
        assert (await store.invoices.get_by_id(invoice_id))["status"] == "received"
        assert len(store.payroll) == 0

    async def test_non_terminal_target_rejected(self, store, orchestrator):
        invoice_id = store.invoices.seed(invoice_doc("INV-A", status="paid"))

        with pytest.raises(InvalidStatusTransitionError):
            await orchestrator.mark_invoice_paid(invoice_id, PaymentStatus.PENDING)

        assert (await store.invoices.get_by_id(invoice_id))["status"] == "paid"

    async def test_unknown_invoice(self, orchestrator):
        with pytest.raises(InvoiceNotFoundError):
            await orchestrator.mark_invoice_paid("missing")


class TestMovePaidPayrollsToHistory:
    async def test_moves_once(self, store, orchestrator):
        paid_id = store.payroll.seed({"month": "April", "name": "A", "status": "paid"})
        pending_id = store.payroll.seed({"month": "April", "name": "B", "status": "pending"})
        now = datetime(2025, 4, 30, 9, 15, tzinfo=timezone.utc)

        result = await orchestrator.move_paid_payrolls_to_history(now)

        assert result.moved == 1
        assert result.moved_at == "2025-04-30T23:59:59.999000+00:00"
        assert (await store.payroll.get_by_id(paid_id))["moved_to_history_at"] == result.moved_at
        assert "moved_to_history_at" not in await store.payroll.get_by_id(pending_id)

        again = await orchestrator.move_paid_payrolls_to_history(now)
        assert again.moved == 0


def cancelled_payroll(number="INV-A", **extra):
    """Payroll entry whose status is outside the known statuses."""
    doc = {
        "month": "April",
        "date": "01.04.2025",
        "name": "Acme",
        "site_of_work": "Site A",
        "invoice_number": number,
        "amount_excl_tax": Decimal("100.00"),
        "tax_amount": Decimal("10.00"),
        "total_amount": Decimal("110.00"),
        "status": "cancelled",
    }
    doc.update(extra)
    return doc


class TestUnreadablePayrollEntries:
    """An unreadable payroll entry is reported but still counts as a match."""

    async def test_invoice_batch_continues(self, store, orchestrator):
        bad_id = store.payroll.seed(cancelled_payroll("INV-A", id="bad-payroll"))
        store.invoices.seed(invoice_doc("INV-A"))
        store.invoices.seed(invoice_doc("INV-B", name="Other", site="Site B"))

        result = await orchestrator.process_all_invoices()

        assert result.processed == 2
        assert result.payrolls_created == 1
        assert len(result.errors) == 1
        assert "bad-payroll" in result.errors[0]
        numbers = [doc["invoice_number"] for doc in await store.payroll.list_all()]
        assert numbers == ["INV-A", "INV-B"]
        assert (await store.payroll.get_by_id(bad_id))["status"] == "cancelled"

    async def test_proximity_match_on_unreadable_entry(self, store, orchestrator):
        """Name, site and date are still read when the cash flow mode is not."""
        store.payroll.seed(
            cancelled_payroll(None, status="pending", cash_flow_mode="sideways", date="02.03.2025")
        )
        store.invoices.seed(invoice_doc("INV-A"))

        result = await orchestrator.process_all_invoices()

        assert result.payrolls_created == 0
        assert len(result.errors) == 1
        assert len(store.payroll) == 1

    async def test_single_invoice(self, store, orchestrator):
        bad_id = store.payroll.seed(cancelled_payroll("INV-A"))
        invoice_id = store.invoices.seed(invoice_doc("INV-A"))

        result = await orchestrator.process_single_invoice(invoice_id)

        assert result.payroll_created is False
        assert result.matched_payroll_id == bad_id

    async def test_new_invoice_still_gets_payroll(self, store, orchestrator):
        store.payroll.seed(cancelled_payroll("INV-OTHER", name="Someone Else"))

        result = await orchestrator.process_employee_timesheet(JANE_ID, "Jane Doe", 2025, 3)

        assert result.invoice_created is True
        assert result.payroll_created is True
        assert len(store.payroll) == 2


class TestPaymentReminders:
    """Test calendar-driven payment reminders.

    Jane's March 2025 work falls due on 15 April 2025.
    """

    async def test_pending_reminder_on_the_first(self, store, orchestrator):
        result = await orchestrator.generate_payment_reminders(date(2025, 4, 1))

        assert result.ran is True
        assert result.processed == 1
        assert result.created == 1
        assert result.errors == []
        [reminder] = await store.reminders.list_all()
        assert reminder["related_id"] == "payment-jane-id-2025-3"
        assert reminder["type"] == "payment"
        assert reminder["priority"] == "medium"
        assert reminder["status"] == "pending"
        assert reminder["due_date"] == "2025-04-15"
        assert reminder["title"] == "Employee Payment Pending - Jane Doe"
        assert reminder["description"] == (
            "Payment for work done in March 2025 is pending. Due date: April 15, 2025."
        )

    async def test_rerun_creates_nothing(self, store, orchestrator):
        await orchestrator.generate_payment_reminders(date(2025, 4, 1))

        again = await orchestrator.generate_payment_reminders(date(2025, 4, 1))

        assert again.created == 0
        assert len(store.reminders) == 1

    @pytest.mark.parametrize("day", [2, 10, 14])
    async def test_quiet_days(self, store, orchestrator, day):
        result = await orchestrator.generate_payment_reminders(date(2025, 4, day))

        assert result.ran is False
        assert result.processed == 0
        assert len(store.reminders) == 0

    async def test_escalates_from_the_fifteenth(self, store, orchestrator):
        await orchestrator.generate_payment_reminders(date(2025, 4, 1))

        result = await orchestrator.generate_payment_reminders(date(2025, 4, 15))
        again = await orchestrator.generate_payment_reminders(date(2025, 4, 20))

        assert result.escalated == 1
        assert again.escalated == 0
        [reminder] = await store.reminders.list_all()
        assert reminder["priority"] == "high"
        assert reminder["title"] == "Employee Payment Overdue - Jane Doe"
        assert reminder["description"].endswith("Due date was: April 15, 2025.")

    async def test_overdue_reminder_created_directly(self, store, orchestrator):
        result = await orchestrator.generate_payment_reminders(date(2025, 4, 20))

        assert result.created == 1
        [reminder] = await store.reminders.list_all()
        assert reminder["priority"] == "high"

    async def test_only_months_due_now(self, store, orchestrator):
        """March work is not due in May."""
        result = await orchestrator.generate_payment_reminders(date(2025, 5, 1))

        assert result.ran is True
        assert result.created == 0

    async def test_completed_reminder_left_alone(self, store, orchestrator):
        store.reminders.seed(
            {
                "type": "payment",
                "related_id": "payment-jane-id-2025-3",
                "title": "Employee Payment Pending - Jane Doe",
                "priority": "medium",
                "status": "completed",
            }
        )

        result = await orchestrator.generate_payment_reminders(date(2025, 4, 20))

        assert result.created == 0
        assert result.escalated == 0
        [reminder] = await store.reminders.list_all()
        assert reminder["status"] == "completed"

    async def test_paid_payroll_means_no_reminder(self, store, orchestrator):
        store.payroll.seed(cancelled_payroll("EMP-JANE-DOE-2025-03", status="paid"))

        result = await orchestrator.generate_payment_reminders(date(2025, 4, 1))

        assert result.created == 0

    async def test_leave_and_open_shifts_ignored(self, notifier):
        seed = jane_seed()
        seed["timesheets"] = [timesheet(is_leave=True), timesheet(clocked_out=False)]
        store = InMemoryDocumentStore(seed)

        result = await make_orchestrator(store, notifier).generate_payment_reminders(
            date(2025, 4, 1)
        )

        assert result.created == 0

    async def test_unreadable_reminder_blocks_duplicate(self, store, orchestrator):
        store.reminders.seed(
            {
                "id": "odd-reminder",
                "type": "payment",
                "related_id": "payment-jane-id-2025-3",
                "title": "Pay Jane",
                "priority": "urgent",
                "status": "pending",
            }
        )

        result = await orchestrator.generate_payment_reminders(date(2025, 4, 20))

        assert result.created == 0
        assert result.escalated == 0
        assert len(result.errors) == 1
        assert "odd-reminder" in result.errors[0]
        assert (await store.reminders.get_by_id("odd-reminder"))["priority"] == "urgent"

    async def test_clock_supplies_default_date(self, store, notifier):
        orchestrator = make_orchestrator(store, notifier, today=date(2025, 4, 1))

        result = await orchestrator.generate_payment_reminders()

        assert result.run_date == date(2025, 4, 1)
        assert result.created == 1
