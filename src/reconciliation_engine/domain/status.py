"""Calendar-driven payment status calculation.

A document issued in month M is due from the 1st of month M+1 and becomes
overdue from the 15th of month M+1 onward. ``paid`` and ``received`` are
terminal: calendar logic never moves a document out of them.
"""

from __future__ import annotations

from datetime import date

from reconciliation_engine.domain.dates import first_of_next_month
from reconciliation_engine.domain.types import PaymentStatus

OVERDUE_DAY = 15

TERMINAL_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.RECEIVED})

# Rank along the calendar-driven path; terminal statuses are off the path.
_CALENDAR_RANK = {
    PaymentStatus.WORK_IN_PROGRESS: 0,
    PaymentStatus.PENDING: 1,
    PaymentStatus.OVERDUE: 2,
}


class InvalidStatusTransitionError(Exception):
    """Raised when a status change is not allowed."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid status transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


def is_terminal(status: PaymentStatus | str | None) -> bool:
    """Check whether a status is terminal (paid/received)."""
    return status is not None and status in TERMINAL_STATUSES


def compute_status(
    issue_date: date,
    today: date,
    existing_status: PaymentStatus | str | None = None,
    *,
    pre_due_status: PaymentStatus = PaymentStatus.PENDING,
) -> PaymentStatus:
    """Derive the payment status of a document from the calendar.

    Args:
        issue_date: Business date of the document
        today: Current date, supplied by the caller
        existing_status: Current status; returned unchanged when terminal
        pre_due_status: Status reported before the payment month begins.
            Invoice reconciliation reports ``pending``; call sites that
            track work still being accrued pass ``work_in_progress``.

    Returns:
        The status the document should carry on ``today``.
    """
    if is_terminal(existing_status):
        return PaymentStatus(existing_status)

    payment_month_start = first_of_next_month(issue_date)
    if today < payment_month_start:
        return pre_due_status

    overdue_date = payment_month_start.replace(day=OVERDUE_DAY)
    if today >= overdue_date:
        return PaymentStatus.OVERDUE

    return PaymentStatus.PENDING


class PaymentStatusPolicy:
    """Rules for moving a document between payment statuses.

    Two kinds of change exist:
    - calendar-driven: forward only along work_in_progress → pending → overdue,
      never out of a terminal status
    - explicit payment action: any status → paid/received
    """

    @classmethod
    def can_advance(cls, current: PaymentStatus | str, target: PaymentStatus | str) -> bool:
        """Check whether calendar logic may move ``current`` to ``target``."""
        current = PaymentStatus(current)
        target = PaymentStatus(target)
        if current == target or is_terminal(current) or is_terminal(target):
            return False
        return _CALENDAR_RANK[target] > _CALENDAR_RANK[current]

    @classmethod
    def validate_payment(cls, current: PaymentStatus | str, target: PaymentStatus | str) -> None:
        """Validate an explicit payment action.

        Raises:
            InvalidStatusTransitionError: If the target is not terminal
        """
        if not is_terminal(target):
            raise InvalidStatusTransitionError(
                str(PaymentStatus(current).value),
                str(target.value if isinstance(target, PaymentStatus) else target),
                "payment actions must set 'paid' or 'received'",
            )
