"""Document tables backing the SQL store.

Date fields are stored as text, exactly as written by their producers
(``DD.MM.YYYY`` or ISO). Normalization happens when documents are read
into domain types.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from reconciliation_engine.models.base import Base, DocumentMixin

_PAYMENT_STATUSES = "('work_in_progress', 'pending', 'overdue', 'paid', 'received')"


# ===== Reference data =====


class EmployeeDocument(DocumentMixin, Base):
    """Employee record."""

    __tablename__ = "employee"

    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    tax_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    business_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class SiteDocument(DocumentMixin, Base):
    """Work site."""

    __tablename__ = "site"

    name: Mapped[str] = mapped_column(String, nullable=False)
    client_name: Mapped[str | None] = mapped_column(String, nullable=True)


class RateEntryDocument(DocumentMixin, Base):
    """Hourly pay rate for an employee at a site."""

    __tablename__ = "rate_entry"

    employee_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    site_id: Mapped[str | None] = mapped_column(String, nullable=True)
    site_name: Mapped[str | None] = mapped_column(String, nullable=True)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    travel_allowance: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    __table_args__ = (
        CheckConstraint("hourly_rate >= 0", name="rate_entry_rate_non_negative"),
    )


# ===== Timesheets =====


class TimesheetDocument(DocumentMixin, Base):
    """Clocked shift written by the clock-in/out subsystem."""

    __tablename__ = "timesheet_record"

    employee_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    site_id: Mapped[str | None] = mapped_column(String, nullable=True)
    site_name: Mapped[str | None] = mapped_column(String, nullable=True)
    work_date: Mapped[str] = mapped_column(String, nullable=False)
    clock_in: Mapped[str | None] = mapped_column(String, nullable=True)
    clock_out: Mapped[str | None] = mapped_column(String, nullable=True)
    hours_worked: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    approval_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    is_leave: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="timesheet_approval_status_check",
        ),
    )


# ===== Financial documents =====


class InvoiceDocument(DocumentMixin, Base):
    """Invoice."""

    __tablename__ = "invoice"

    invoice_number: Mapped[str] = mapped_column(String, nullable=False, index=True)
    client_name: Mapped[str | None] = mapped_column(String, nullable=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    site_id: Mapped[str | None] = mapped_column(String, nullable=True)
    site_of_work: Mapped[str | None] = mapped_column(String, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="AUD")
    issue_date: Mapped[str | None] = mapped_column(String, nullable=True)
    due_date: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    payment_date: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(f"status IN {_PAYMENT_STATUSES}", name="invoice_status_check"),
    )


class PayrollDocument(DocumentMixin, Base):
    """Payroll (cash flow) entry."""

    __tablename__ = "payroll_entry"

    month: Mapped[str] = mapped_column(String, nullable=False)
    date: Mapped[str | None] = mapped_column(String, nullable=True)
    cash_flow_mode: Mapped[str] = mapped_column(String, nullable=False, default="outflow")
    cash_flow_type: Mapped[str] = mapped_column(String, nullable=False, default="cleaner_payroll")
    name: Mapped[str] = mapped_column(String, nullable=False)
    site_of_work: Mapped[str | None] = mapped_column(String, nullable=True)
    invoice_number: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    tax_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    business_registered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    amount_excl_tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="AUD")
    payment_method: Mapped[str] = mapped_column(String, nullable=False, default="bank_transfer")
    payment_date: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    moved_to_history_at: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "cash_flow_mode IN ('inflow', 'outflow')",
            name="payroll_cash_flow_mode_check",
        ),
        CheckConstraint(
            "cash_flow_type IN ('invoice', 'internal_payroll', 'cleaner_payroll')",
            name="payroll_cash_flow_type_check",
        ),
        CheckConstraint(f"status IN {_PAYMENT_STATUSES}", name="payroll_status_check"),
    )


# ===== Reminders =====


class ReminderDocument(DocumentMixin, Base):
    """Calendar reminder, deduplicated on ``related_id``."""

    __tablename__ = "reminder"

    type: Mapped[str] = mapped_column(String, nullable=False, default="payment")
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[str | None] = mapped_column(String, nullable=True)
    priority: Mapped[str] = mapped_column(String, nullable=False, default="medium")
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    related_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint(
            "priority IN ('low', 'medium', 'high')",
            name="reminder_priority_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'completed')",
            name="reminder_status_check",
        ),
    )


# Collection name -> table model
COLLECTION_MODELS: dict[str, type[Base]] = {
    "employees": EmployeeDocument,
    "sites": SiteDocument,
    "rate_entries": RateEntryDocument,
    "timesheets": TimesheetDocument,
    "invoices": InvoiceDocument,
    "payroll": PayrollDocument,
    "reminders": ReminderDocument,
}
