"""Builders for generated invoices and payroll entries.

Generators compute complete records but never persist them; the
orchestrator decides whether and when a record is written.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from reconciliation_engine.calculators.earnings import EarningsSummary
from reconciliation_engine.domain.dates import (
    calculate_payment_date,
    first_of_next_month,
    month_name,
)
from reconciliation_engine.domain.types import (
    CashFlowMode,
    CashFlowType,
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

_WHITESPACE = re.compile(r"\s+")


def generate_invoice_number(employee_name: str, year: int, month: int) -> str:
    """Deterministic invoice number: ``EMP-{NAME}-{YYYY}-{MM}``.

    This is also the dedup key for the employee's month, so renaming an
    employee breaks dedup against invoices issued under the old name.
    """
    name_part = _WHITESPACE.sub("-", employee_name).upper()
    return f"EMP-{name_part}-{year}-{month:02d}"


def reminder_key(employee_id: str, year: int, month: int) -> str:
    """Dedup key of a payment reminder: ``payment-{employee_id}-{year}-{month}``."""
    return f"payment-{employee_id}-{year}-{month}"


def _long_date(value: date) -> str:
    return f"{month_name(value)} {value.day}, {value.year}"


class DocumentGenerator:
    """Builds invoices, payroll entries and payment reminders."""

    def __init__(
        self,
        payment_cycle_days: int = 45,
        tax_rate: Decimal = Decimal("0.10"),
        payment_method: str = "bank_transfer",
    ):
        self.payment_cycle_days = payment_cycle_days
        self.tax_rate = tax_rate
        self.payment_method = payment_method

    def tax_for(self, employee: Employee, amount: Decimal) -> Decimal:
        """Tax owed on an amount; zero unless the employee is tax-registered."""
        if not employee.tax_registered:
            return Decimal("0.00")
        return (amount * self.tax_rate).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def invoice_from_timesheet_month(
        self,
        employee: Employee,
        year: int,
        month: int,
        earnings: EarningsSummary,
        records: Sequence[TimesheetRecord] = (),
    ) -> Invoice:
        """Build the invoice for an employee's month of work.

        Issue date is the first of the month; due date follows after the
        payment cycle.
        """
        issue_date = date(year, month, 1)
        due_date = calculate_payment_date(issue_date, self.payment_cycle_days)

        amount = earnings.total_earnings
        tax_amount = self.tax_for(employee, amount)

        first_record = records[0] if records else None
        site_of_work = earnings.site_of_work or (first_record.site_name if first_record else None)

        return Invoice(
            invoice_number=generate_invoice_number(employee.name, year, month),
            client_name=employee.name,
            name=employee.name,
            site_id=first_record.site_id if first_record else None,
            site_of_work=site_of_work,
            amount=amount,
            tax_amount=tax_amount,
            total_amount=amount + tax_amount,
            currency=earnings.currency,
            issue_date=issue_date,
            due_date=due_date,
            status=PaymentStatus.PENDING,
            notes=(
                f"Auto-generated from timesheet for {year}-{month:02d}. "
                f"Total hours: {earnings.total_hours}"
            ),
        )

    def payroll_from_invoice(self, invoice: Invoice, status: PaymentStatus) -> PayrollEntry:
        """Build the payroll entry paying out an invoice.

        The entry is dated the 1st of the month after the invoice's issue
        month, which is when payment falls due.

        Raises:
            DocumentDateError: If the invoice has no usable issue date
        """
        if invoice.issue_date is None:
            raise DocumentDateError("invoices", invoice.id, "issue_date", None)

        payment_date = first_of_next_month(invoice.issue_date)

        return PayrollEntry(
            month=month_name(payment_date),
            date=payment_date,
            cash_flow_mode=CashFlowMode.OUTFLOW,
            cash_flow_type=CashFlowType.INTERNAL_PAYROLL,
            name=invoice.name or invoice.client_name or "",
            site_of_work=invoice.site_of_work,
            invoice_number=invoice.invoice_number,
            tax_registered=invoice.tax_amount > 0,
            business_registered=False,
            amount_excl_tax=invoice.amount,
            tax_amount=invoice.tax_amount,
            total_amount=invoice.total_amount,
            currency=invoice.currency,
            payment_method=self.payment_method,
            status=status,
            notes=f"Auto-generated from invoice {invoice.invoice_number}",
        )

    def payment_due_date(self, year: int, month: int) -> date:
        """Date payment for a month of work falls due."""
        return calculate_payment_date(date(year, month, 1), self.payment_cycle_days)

    def payment_reminder(
        self,
        employee: Employee,
        year: int,
        month: int,
        overdue: bool = False,
    ) -> Reminder:
        """Build the payment reminder for an employee's month of work.

        Pending reminders are medium priority; overdue ones are high.
        """
        due_date = self.payment_due_date(year, month)
        work_month = f"{month_name(date(year, month, 1))} {year}"
        if overdue:
            title = f"Employee Payment Overdue - {employee.name}"
            description = (
                f"Payment for work done in {work_month} is overdue. "
                f"Due date was: {_long_date(due_date)}."
            )
            priority = ReminderPriority.HIGH
        else:
            title = f"Employee Payment Pending - {employee.name}"
            description = (
                f"Payment for work done in {work_month} is pending. "
                f"Due date: {_long_date(due_date)}."
            )
            priority = ReminderPriority.MEDIUM

        return Reminder(
            related_id=reminder_key(employee.id, year, month),
            title=title,
            description=description,
            due_date=due_date,
            priority=priority,
            status=ReminderStatus.PENDING,
        )
