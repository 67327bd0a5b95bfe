"""Typed value objects for the documents the engine reads and writes.

Store documents are plain dicts with text dates. These classes are the
boundary: ``from_document`` normalizes dates and amounts on the way in,
``to_document`` renders the persisted text form on the way out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any

from reconciliation_engine.domain.dates import format_date, format_iso, parse_date

CENTS = Decimal("0.01")

_TRUE_STRINGS = frozenset({"true", "t", "yes", "y", "on", "1"})


def to_decimal(value: Any) -> Decimal:
    """Convert a stored number to a Decimal.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            # str() keeps floats like 0.1 from dragging binary noise along
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Not a number: {value!r}") from None
    if not result.is_finite():
        raise ValueError(f"Not a number: {value!r}")
    return result


def money(value: Any) -> Decimal:
    """Coerce a stored amount to a Decimal rounded half-up to cents."""
    if value is None or value == "":
        return Decimal("0.00")
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def to_flag(value: Any) -> bool:
    """Read a stored boolean, accepting the text forms a document may hold."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


class PaymentStatus(str, Enum):
    """Payment status shared by invoices and payroll entries."""

    WORK_IN_PROGRESS = "work_in_progress"
    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
    RECEIVED = "received"


class ApprovalStatus(str, Enum):
    """Timesheet approval status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CashFlowMode(str, Enum):
    """Direction of money for a payroll entry."""

    INFLOW = "inflow"
    OUTFLOW = "outflow"


class CashFlowType(str, Enum):
    """Kind of payroll entry."""

    INVOICE = "invoice"
    INTERNAL_PAYROLL = "internal_payroll"
    CLEANER_PAYROLL = "cleaner_payroll"


class DocumentDateError(Exception):
    """Raised when a required date field of a document cannot be parsed."""

    def __init__(self, collection: str, document_id: str | None, field_name: str, value: Any):
        self.collection = collection
        self.document_id = document_id
        self.field_name = field_name
        self.value = value
        super().__init__(
            f"Invalid {field_name} {value!r} on {collection} document {document_id}"
        )


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


# ===== Reference data =====


@dataclass(frozen=True)
class Employee:
    """Employee as seen by the engine."""

    id: str
    name: str
    email: str | None = None
    user_id: str | None = None
    tax_registered: bool = False
    business_registered: bool = False

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Employee:
        return cls(
            id=doc["id"],
            name=doc.get("name") or "",
            email=doc.get("email") or None,
            user_id=doc.get("user_id") or None,
            tax_registered=to_flag(doc.get("tax_registered")),
            business_registered=to_flag(doc.get("business_registered")),
        )


@dataclass(frozen=True)
class Site:
    """Work site."""

    id: str
    name: str
    client_name: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Site:
        return cls(
            id=doc["id"],
            name=doc.get("name") or "",
            client_name=doc.get("client_name") or None,
        )


@dataclass(frozen=True)
class RateEntry:
    """Hourly pay rate for an employee at a site."""

    employee_id: str
    site_id: str | None
    hourly_rate: Decimal
    currency: str | None = None
    site_name: str | None = None
    travel_allowance: Decimal | None = None
    id: str | None = None

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> RateEntry:
        allowance = doc.get("travel_allowance")
        return cls(
            id=doc.get("id"),
            employee_id=doc.get("employee_id") or "",
            site_id=doc.get("site_id") or None,
            hourly_rate=to_decimal(doc.get("hourly_rate") or 0),
            currency=doc.get("currency") or None,
            site_name=doc.get("site_name") or None,
            travel_allowance=to_decimal(allowance) if allowance else None,
        )


# ===== Source documents =====


@dataclass(frozen=True)
class TimesheetRecord:
    """One clocked shift. Read-only input."""

    id: str | None
    employee_id: str
    employee_name: str
    work_date: date | None
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    site_id: str | None = None
    site_name: str | None = None
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    is_leave: bool = False
    hours_worked: Decimal | None = None

    @property
    def is_complete(self) -> bool:
        """A shift counts only once it has been clocked out."""
        return self.clock_out is not None

    @property
    def hours(self) -> Decimal:
        """Hours worked: the stored figure, else derived from clock times."""
        if self.hours_worked is not None:
            return self.hours_worked
        if self.clock_in is None or self.clock_out is None:
            return Decimal("0")
        seconds = Decimal(str((self.clock_out - self.clock_in).total_seconds()))
        return (seconds / Decimal("3600")).quantize(CENTS, rounding=ROUND_HALF_UP)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> TimesheetRecord:
        hours = doc.get("hours_worked")
        return cls(
            id=doc.get("id"),
            employee_id=doc.get("employee_id") or "",
            employee_name=doc.get("employee_name") or "",
            work_date=parse_date(doc.get("work_date")),
            clock_in=_parse_timestamp(doc.get("clock_in")),
            clock_out=_parse_timestamp(doc.get("clock_out")),
            site_id=doc.get("site_id") or None,
            site_name=doc.get("site_name") or None,
            approval_status=ApprovalStatus(doc.get("approval_status") or "pending"),
            is_leave=to_flag(doc.get("is_leave")),
            hours_worked=to_decimal(hours) if hours not in (None, "") else None,
        )


# ===== Generated documents =====


@dataclass
class Invoice:
    """Invoice for one employee and month (or manual entry)."""

    invoice_number: str
    name: str
    amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    issue_date: date | None
    due_date: date | None
    status: PaymentStatus = PaymentStatus.PENDING
    client_name: str | None = None
    site_id: str | None = None
    site_of_work: str | None = None
    currency: str = "AUD"
    notes: str | None = None
    payment_date: date | None = None
    id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (PaymentStatus.PAID, PaymentStatus.RECEIVED)

    def to_document(self) -> dict[str, Any]:
        """Render the persisted form (without id)."""
        return {
            "invoice_number": self.invoice_number,
            "client_name": self.client_name or self.name,
            "name": self.name,
            "site_id": self.site_id,
            "site_of_work": self.site_of_work,
            "amount": self.amount,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "issue_date": format_iso(self.issue_date) if self.issue_date else None,
            "due_date": format_iso(self.due_date) if self.due_date else None,
            "status": self.status.value,
            "payment_date": format_date(self.payment_date) if self.payment_date else None,
            "notes": self.notes,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Invoice:
        name = doc.get("name") or doc.get("client_name") or ""
        return cls(
            id=doc.get("id"),
            invoice_number=doc.get("invoice_number") or "",
            client_name=doc.get("client_name") or None,
            name=name,
            site_id=doc.get("site_id") or None,
            site_of_work=doc.get("site_of_work") or None,
            amount=money(doc.get("amount")),
            tax_amount=money(doc.get("tax_amount")),
            total_amount=money(doc.get("total_amount")),
            currency=doc.get("currency") or "AUD",
            issue_date=parse_date(doc.get("issue_date")),
            due_date=parse_date(doc.get("due_date")),
            status=PaymentStatus(doc.get("status") or "pending"),
            payment_date=parse_date(doc.get("payment_date")),
            notes=doc.get("notes") or None,
        )


@dataclass
class PayrollEntry:
    """Payroll (cash flow) entry correlated to an invoice by invoice number."""

    month: str
    date: date | None
    name: str
    amount_excl_tax: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    cash_flow_mode: CashFlowMode = CashFlowMode.OUTFLOW
    cash_flow_type: CashFlowType = CashFlowType.INTERNAL_PAYROLL
    site_of_work: str | None = None
    invoice_number: str | None = None
    currency: str = "AUD"
    payment_method: str = "bank_transfer"
    status: PaymentStatus = PaymentStatus.PENDING
    tax_registered: bool = False
    business_registered: bool = False
    notes: str | None = None
    payment_date: date | None = None
    moved_to_history_at: str | None = None
    id: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (PaymentStatus.PAID, PaymentStatus.RECEIVED)

    def to_document(self) -> dict[str, Any]:
        """Render the persisted form (without id)."""
        return {
            "month": self.month,
            "date": format_date(self.date) if self.date else None,
            "cash_flow_mode": self.cash_flow_mode.value,
            "cash_flow_type": self.cash_flow_type.value,
            "name": self.name,
            "site_of_work": self.site_of_work,
            "invoice_number": self.invoice_number,
            "tax_registered": self.tax_registered,
            "business_registered": self.business_registered,
            "amount_excl_tax": self.amount_excl_tax,
            "tax_amount": self.tax_amount,
            "total_amount": self.total_amount,
            "currency": self.currency,
            "payment_method": self.payment_method,
            "payment_date": format_date(self.payment_date) if self.payment_date else None,
            "status": self.status.value,
            "notes": self.notes,
            "moved_to_history_at": self.moved_to_history_at,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> PayrollEntry:
        return cls(
            id=doc.get("id"),
            month=doc.get("month") or "",
            date=parse_date(doc.get("date")),
            cash_flow_mode=CashFlowMode(doc.get("cash_flow_mode") or "outflow"),
            cash_flow_type=CashFlowType(doc.get("cash_flow_type") or "cleaner_payroll"),
            name=doc.get("name") or "",
            site_of_work=doc.get("site_of_work") or None,
            invoice_number=doc.get("invoice_number") or None,
            tax_registered=to_flag(doc.get("tax_registered")),
            business_registered=to_flag(doc.get("business_registered")),
            amount_excl_tax=money(doc.get("amount_excl_tax")),
            tax_amount=money(doc.get("tax_amount")),
            total_amount=money(doc.get("total_amount")),
            currency=doc.get("currency") or "AUD",
            payment_method=doc.get("payment_method") or "bank_transfer",
            payment_date=parse_date(doc.get("payment_date")),
            status=PaymentStatus(doc.get("status") or "pending"),
            notes=doc.get("notes") or None,
            moved_to_history_at=doc.get("moved_to_history_at") or None,
        )

    @classmethod
    def identity_only(cls, doc: dict[str, Any]) -> PayrollEntry:
        """Read just the fields duplicate detection looks at.

        Used for entries whose other fields cannot be read. The entry
        still blocks creation of a duplicate; its status reads as
        ``work_in_progress`` and its amounts as zero.
        """
        return cls(
            id=doc.get("id"),
            month=str(doc.get("month") or ""),
            date=parse_date(doc.get("date")),
            name=str(doc.get("name") or ""),
            site_of_work=doc.get("site_of_work") or None,
            invoice_number=doc.get("invoice_number") or None,
            amount_excl_tax=Decimal("0.00"),
            tax_amount=Decimal("0.00"),
            total_amount=Decimal("0.00"),
            status=PaymentStatus.WORK_IN_PROGRESS,
        )


# ===== Reminders =====


class ReminderPriority(str, Enum):
    """Reminder urgency."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReminderStatus(str, Enum):
    """Reminder lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"


@dataclass
class Reminder:
    """Payment reminder for one employee and work month.

    ``related_id`` is the dedup key: ``payment-{employee_id}-{year}-{month}``.
    """

    related_id: str
    title: str
    description: str
    due_date: date | None
    priority: ReminderPriority = ReminderPriority.MEDIUM
    status: ReminderStatus = ReminderStatus.PENDING
    type: str = "payment"
    id: str | None = None

    def to_document(self) -> dict[str, Any]:
        """Render the persisted form (without id)."""
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "due_date": format_iso(self.due_date) if self.due_date else None,
            "priority": self.priority.value,
            "status": self.status.value,
            "related_id": self.related_id,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Reminder:
        return cls(
            id=doc.get("id"),
            type=doc.get("type") or "payment",
            related_id=doc.get("related_id") or "",
            title=doc.get("title") or "",
            description=doc.get("description") or "",
            due_date=parse_date(doc.get("due_date")),
            priority=ReminderPriority(doc.get("priority") or "medium"),
            status=ReminderStatus(doc.get("status") or "pending"),
        )

    @classmethod
    def identity_only(cls, doc: dict[str, Any]) -> Reminder:
        """Read just the dedup key of a reminder whose other fields are invalid.

        It reads as a pending high-priority reminder, so it is never
        recreated and never escalated.
        """
        return cls(
            id=doc.get("id"),
            type=str(doc.get("type") or "payment"),
            related_id=str(doc.get("related_id") or ""),
            title=str(doc.get("title") or ""),
            description="",
            due_date=None,
            priority=ReminderPriority.HIGH,
            status=ReminderStatus.PENDING,
        )
