"""Reconciliation automation endpoints.

Thin wrappers over ReconciliationOrchestrator. Not-found and invalid
transition errors propagate to the application exception handlers.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from reconciliation_engine.api.dependencies import Orchestrator
from reconciliation_engine.api.schemas import (
    ErrorResponse,
    HistoryResponse,
    InvoiceBatchResponse,
    InvoiceProcessRequest,
    InvoiceProcessResponse,
    PaymentRequest,
    PaymentResponse,
    ReminderBatchResponse,
    TimesheetBatchResponse,
    TimesheetProcessRequest,
    TimesheetProcessResponse,
)
from reconciliation_engine.domain.dates import parse_date
from reconciliation_engine.services.orchestrator import (
    TimesheetBatchResult,
    TimesheetProcessResult,
)

router = APIRouter(tags=["automation"])


# ============================================================================
# Invoices
# ============================================================================


@router.get("/invoices/process", response_model=InvoiceBatchResponse)
async def process_all_invoices(orchestrator: Orchestrator) -> InvoiceBatchResponse:
    """Reconcile every invoice and create missing payroll entries."""
    result = await orchestrator.process_all_invoices()
    return InvoiceBatchResponse(
        success=result.success,
        message=(
            f"Processed {result.processed} invoices, "
            f"created {result.payrolls_created} payroll entries"
        ),
        processed=result.processed,
        statuses_updated=result.statuses_updated,
        payrolls_created=result.payrolls_created,
        errors=result.errors,
    )


@router.post(
    "/invoices/process",
    response_model=InvoiceProcessResponse,
    responses={404: {"model": ErrorResponse}},
)
async def process_single_invoice(
    orchestrator: Orchestrator,
    payload: InvoiceProcessRequest,
) -> InvoiceProcessResponse:
    """Reconcile one invoice."""
    outcome = await orchestrator.process_single_invoice(payload.invoice_id)
    if outcome.payroll_created:
        message = f"Payroll entry created for invoice {outcome.invoice_number}"
    else:
        message = f"Invoice {outcome.invoice_number} processed"
    return InvoiceProcessResponse(
        success=True,
        message=message,
        invoice_id=outcome.invoice_id,
        invoice_number=outcome.invoice_number,
        status=outcome.status,
        status_updated=outcome.status_updated,
        payroll_created=outcome.payroll_created,
        payroll_id=outcome.payroll_id or outcome.matched_payroll_id,
    )


@router.post(
    "/invoices/{invoice_id}/payment",
    response_model=PaymentResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_invoice_paid(
    orchestrator: Orchestrator,
    invoice_id: Annotated[str, Path()],
    payload: PaymentRequest,
) -> PaymentResponse:
    """Explicitly mark an invoice paid or received."""
    result = await orchestrator.mark_invoice_paid(
        invoice_id, payload.status, payload.payment_date
    )
    return PaymentResponse(
        success=True,
        message=f"Invoice marked {result.status.value}",
        invoice_id=result.invoice_id,
        previous_status=result.previous_status,
        status=result.status,
        payment_date=result.payment_date,
        payroll_id=result.payroll_id,
    )


# ============================================================================
# Timesheets
# ============================================================================


def _batch_response(result: TimesheetBatchResult) -> TimesheetBatchResponse:
    return TimesheetBatchResponse(
        success=result.success,
        message=(
            f"Processed {result.processed} employees, "
            f"created {result.invoices_created} invoices"
        ),
        year=result.year,
        month=result.month,
        processed=result.processed,
        invoices_created=result.invoices_created,
        payrolls_created=result.payrolls_created,
        errors=result.errors,
        skipped=result.skipped,
    )


def _employee_response(result: TimesheetProcessResult) -> TimesheetProcessResponse:
    if result.invoice_created:
        message = f"Invoice {result.invoice_number} created"
    else:
        message = result.reason or "No invoice created"
    return TimesheetProcessResponse(
        success=True,
        message=message,
        employee_id=result.employee_id,
        employee_name=result.employee_name,
        invoice_number=result.invoice_number,
        invoice_created=result.invoice_created,
        invoice_id=result.invoice_id,
        payroll_created=result.payroll_created,
        payroll_id=result.payroll_id,
        reason=result.reason,
    )


@router.get("/timesheets/process", response_model=TimesheetBatchResponse)
async def process_all_timesheets(
    orchestrator: Orchestrator,
    year: Annotated[int | None, Query(ge=1900, le=9999)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> TimesheetBatchResponse:
    """Process pending timesheets for every employee (default: this month)."""
    today = orchestrator.clock()
    result = await orchestrator.process_all_pending_timesheets(
        year or today.year, month or today.month
    )
    return _batch_response(result)


@router.post(
    "/timesheets/process",
    response_model=TimesheetProcessResponse | TimesheetBatchResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def process_timesheets(
    orchestrator: Orchestrator,
    payload: TimesheetProcessRequest,
) -> TimesheetProcessResponse | TimesheetBatchResponse:
    """Process timesheets for one employee, one record date, or everyone."""
    today = orchestrator.clock()
    year = payload.year or today.year
    month = payload.month or today.month

    if payload.targets_employee and payload.record_date:
        if parse_date(payload.record_date) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unparseable record_date {payload.record_date!r}",
            )
        result = await orchestrator.process_timesheet_on_status_change(
            payload.employee_id, payload.employee_name, payload.record_date
        )
        if result is None:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Timesheet processing failed for {payload.employee_name}",
            )
        return _employee_response(result)

    if payload.targets_employee:
        result = await orchestrator.process_employee_timesheet(
            payload.employee_id, payload.employee_name, year, month
        )
        return _employee_response(result)

    return _batch_response(await orchestrator.process_all_pending_timesheets(year, month))


# ============================================================================
# Payroll
# ============================================================================


@router.post(
    "/payroll/history",
    response_model=HistoryResponse,
    status_code=status.HTTP_200_OK,
)
async def move_paid_payrolls_to_history(orchestrator: Orchestrator) -> HistoryResponse:
    """Stamp paid payroll entries as moved to history."""
    result = await orchestrator.move_paid_payrolls_to_history()
    return HistoryResponse(
        success=not result.errors,
        message=f"Moved {result.moved} payroll entries to history",
        moved=result.moved,
        moved_at=result.moved_at,
        errors=result.errors,
    )


# ============================================================================
# Reminders
# ============================================================================


@router.post("/reminders/generate", response_model=ReminderBatchResponse)
async def generate_payment_reminders(
    orchestrator: Orchestrator,
    today: Annotated[date | None, Query(description="Run as of this date")] = None,
) -> ReminderBatchResponse:
    """Create or escalate payment reminders for this month's due payments."""
    result = await orchestrator.generate_payment_reminders(today)
    if result.ran:
        message = (
            f"Created {result.created} payment reminders, "
            f"escalated {result.escalated}"
        )
    else:
        message = f"No payment reminders are generated on {result.run_date.isoformat()}"
    return ReminderBatchResponse(
        success=result.success,
        message=message,
        run_date=result.run_date,
        ran=result.ran,
        processed=result.processed,
        created=result.created,
        escalated=result.escalated,
        errors=result.errors,
    )
