"""SQLAlchemy models for the SQL document store."""

from reconciliation_engine.models.base import Base, DocumentMixin
from reconciliation_engine.models.documents import (
    COLLECTION_MODELS,
    EmployeeDocument,
    InvoiceDocument,
    PayrollDocument,
    RateEntryDocument,
    ReminderDocument,
    SiteDocument,
    TimesheetDocument,
)

__all__ = [
    "Base",
    "COLLECTION_MODELS",
    "DocumentMixin",
    "EmployeeDocument",
    "InvoiceDocument",
    "PayrollDocument",
    "RateEntryDocument",
    "ReminderDocument",
    "SiteDocument",
    "TimesheetDocument",
]
