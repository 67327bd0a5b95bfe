"""Domain types, date normalization and status rules."""

from reconciliation_engine.domain.dates import format_date, format_iso, parse_date
from reconciliation_engine.domain.status import (
    InvalidStatusTransitionError,
    PaymentStatusPolicy,
    compute_status,
)
from reconciliation_engine.domain.types import (
    ApprovalStatus,
    CashFlowMode,
    CashFlowType,
    DocumentDateError,
    Employee,
    Invoice,
    PaymentStatus,
    PayrollEntry,
    RateEntry,
    Reminder,
    ReminderPriority,
    ReminderStatus,
    Site,
    TimesheetRecord,
)

__all__ = [
    "ApprovalStatus",
    "CashFlowMode",
    "CashFlowType",
    "DocumentDateError",
    "Employee",
    "InvalidStatusTransitionError",
    "Invoice",
    "PaymentStatus",
    "PaymentStatusPolicy",
    "PayrollEntry",
    "RateEntry",
    "Reminder",
    "ReminderPriority",
    "ReminderStatus",
    "Site",
    "TimesheetRecord",
    "compute_status",
    "format_date",
    "format_iso",
    "parse_date",
]
