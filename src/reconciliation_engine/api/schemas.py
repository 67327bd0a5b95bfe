"""Pydantic schemas for API request/response models."""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field, model_validator

from reconciliation_engine.domain.types import PaymentStatus


class AutomationResponse(BaseModel):
    """Common envelope for automation endpoints."""

    success: bool
    message: str


# ============================================================================
# Invoice schemas
# ============================================================================


class InvoiceProcessRequest(BaseModel):
    """Reconcile a single invoice."""

    invoice_id: str = Field(min_length=1)


class InvoiceProcessResponse(AutomationResponse):
    invoice_id: str | None = None
    invoice_number: str
    status: PaymentStatus
    status_updated: bool
    payroll_created: bool
    payroll_id: str | None = None


class InvoiceBatchResponse(AutomationResponse):
    processed: int
    statuses_updated: int
    payrolls_created: int
    errors: list[str]


class PaymentRequest(BaseModel):
    """Explicit payment action on an invoice."""

    status: PaymentStatus = PaymentStatus.PAID
    payment_date: date | None = None


class PaymentResponse(AutomationResponse):
    invoice_id: str
    previous_status: PaymentStatus
    status: PaymentStatus
    payment_date: date
    payroll_id: str | None = None


# ============================================================================
# Timesheet schemas
# ============================================================================


class TimesheetProcessRequest(BaseModel):
    """Timesheet processing request.

    Three shapes are accepted:
    - ``employee_id`` + ``employee_name`` + ``record_date``: status-change hook
    - ``employee_id`` + ``employee_name`` + ``year`` + ``month``: one employee
    - optional ``year``/``month`` only: every employee (defaults to this month)
    """

    employee_id: str | None = None
    employee_name: str | None = None
    record_date: str | None = None
    year: int | None = Field(default=None, ge=1900, le=9999)
    month: int | None = Field(default=None, ge=1, le=12)

    @model_validator(mode="after")
    def check_employee_fields(self) -> "TimesheetProcessRequest":
        if bool(self.employee_id) != bool(self.employee_name):
            raise ValueError("employee_id and employee_name must be given together")
        if self.record_date and not self.employee_id:
            raise ValueError("record_date requires employee_id and employee_name")
        return self

    @property
    def targets_employee(self) -> bool:
        return bool(self.employee_id and self.employee_name)


class TimesheetProcessResponse(AutomationResponse):
    employee_id: str
    employee_name: str
    invoice_number: str
    invoice_created: bool
    invoice_id: str | None = None
    payroll_created: bool
    payroll_id: str | None = None
    reason: str | None = None


class TimesheetBatchResponse(AutomationResponse):
    year: int
    month: int
    processed: int
    invoices_created: int
    payrolls_created: int
    errors: list[str]
    skipped: list[str]


# ============================================================================
# Payroll schemas
# ============================================================================


class HistoryResponse(AutomationResponse):
    moved: int
    moved_at: str | None = None
    errors: list[str]


# ============================================================================
# Reminder schemas
# ============================================================================


class ReminderBatchResponse(AutomationResponse):
    run_date: date
    ran: bool
    processed: int
    created: int
    escalated: int
    errors: list[str]


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
