"""Reconciliation engine services."""

from reconciliation_engine.services.generator import (
    DocumentGenerator,
    generate_invoice_number,
    reminder_key,
)
from reconciliation_engine.services.matching import MatchFinder, MatchStrategy, PayrollMatch
from reconciliation_engine.services.notifications import (
    HttpEmailNotifier,
    LoggingNotifier,
    NotificationResult,
    Notifier,
    notifier_from_settings,
)
from reconciliation_engine.services.orchestrator import (
    EmployeeNotFoundError,
    HistoryResult,
    InvoiceBatchResult,
    InvoiceNotFoundError,
    InvoiceProcessResult,
    PaymentResult,
    ReconciliationOrchestrator,
    ReminderBatchResult,
    TimesheetBatchResult,
    TimesheetProcessResult,
)

__all__ = [
    "DocumentGenerator",
    "EmployeeNotFoundError",
    "HistoryResult",
    "HttpEmailNotifier",
    "InvoiceBatchResult",
    "InvoiceNotFoundError",
    "InvoiceProcessResult",
    "LoggingNotifier",
    "MatchFinder",
    "MatchStrategy",
    "NotificationResult",
    "Notifier",
    "PaymentResult",
    "PayrollMatch",
    "ReconciliationOrchestrator",
    "ReminderBatchResult",
    "TimesheetBatchResult",
    "TimesheetProcessResult",
    "generate_invoice_number",
    "notifier_from_settings",
    "reminder_key",
]
