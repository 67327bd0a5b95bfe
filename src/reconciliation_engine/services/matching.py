"""Duplicate detection for generated documents.

Before any invoice or payroll entry is created, the engine checks whether
an equivalent document already exists. A missed match produces a
duplicate downstream document, so every lookup here is read-only and
repeatable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable

from reconciliation_engine.domain.types import Invoice, PayrollEntry, Reminder


class MatchStrategy(str, Enum):
    """How an existing document was matched."""

    INVOICE_NUMBER = "invoice_number"
    PROXIMITY = "proximity"


@dataclass(frozen=True)
class PayrollMatch:
    """An existing payroll entry found for an invoice."""

    payroll: PayrollEntry
    strategy: MatchStrategy


class MatchFinder:
    """Finds existing counterparts of candidate documents.

    Payroll lookup for an invoice tries, in order:
    1. Exact key: identical invoice number
    2. Proximity: identical (name, site of work) with dates no more than
       one calendar day apart

    First match wins. No match means the candidate is new.
    """

    PROXIMITY_WINDOW = timedelta(days=1)

    @classmethod
    def find_payroll_for_invoice(
        cls,
        invoice: Invoice,
        payrolls: Iterable[PayrollEntry],
    ) -> PayrollMatch | None:
        """Find the payroll entry that already represents ``invoice``."""
        candidates = list(payrolls)

        if invoice.invoice_number:
            for payroll in candidates:
                if payroll.invoice_number and payroll.invoice_number == invoice.invoice_number:
                    return PayrollMatch(payroll, MatchStrategy.INVOICE_NUMBER)

        for payroll in candidates:
            if (
                payroll.name == invoice.name
                and payroll.site_of_work == invoice.site_of_work
                and cls.within_window(payroll.date, invoice.issue_date)
            ):
                return PayrollMatch(payroll, MatchStrategy.PROXIMITY)

        return None

    @classmethod
    def within_window(cls, first: date | None, second: date | None) -> bool:
        """Check two dates are within the proximity window of each other.

        A missing date on either side never matches.
        """
        if first is None or second is None:
            return False
        return abs(first - second) <= cls.PROXIMITY_WINDOW

    @staticmethod
    def find_payroll_by_invoice_number(
        payrolls: Iterable[PayrollEntry],
        invoice_number: str,
    ) -> PayrollEntry | None:
        """Find the payroll entry correlated to an invoice number."""
        for payroll in payrolls:
            if payroll.invoice_number == invoice_number:
                return payroll
        return None

    @staticmethod
    def find_reminder(
        reminders: Iterable[Reminder],
        related_id: str,
        reminder_type: str = "payment",
    ) -> Reminder | None:
        """Find a reminder by its dedup key, whatever its status."""
        for reminder in reminders:
            if reminder.related_id == related_id and reminder.type == reminder_type:
                return reminder
        return None
