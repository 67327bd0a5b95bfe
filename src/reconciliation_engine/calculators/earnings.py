"""Earnings calculation from timesheet records and rate tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from reconciliation_engine.domain.types import RateEntry, TimesheetRecord


@dataclass
class EarningsSummary:
    """Hours and earnings for one employee over one period."""

    total_hours: Decimal
    total_earnings: Decimal
    currency: str
    site_of_work: str | None = None
    records_counted: int = 0
    sites: list[str] = field(default_factory=list)

    @property
    def has_earnings(self) -> bool:
        """Zero earnings means there is nothing to invoice."""
        return self.total_earnings > 0


class EarningsCalculator:
    """Computes total hours and earnings for a set of shifts.

    Rate selection per record:
    1. Rate entry whose site matches the record's site
    2. Otherwise the first rate entry for the employee
    3. Otherwise a rate of zero

    Amounts accumulate at full precision and are rounded half-up to two
    places once, at the end.

    The primary site is the first site name collected from site-matched
    rate entries. When shifts span several sites this is an arbitrary
    choice among them; ``sites`` lists all of them in first-seen order.
    """

    OUTPUT_PRECISION = Decimal("0.01")

    def __init__(self, default_currency: str = "AUD"):
        self.default_currency = default_currency

    @staticmethod
    def eligible_records(records: Iterable[TimesheetRecord]) -> list[TimesheetRecord]:
        """Drop leave records and shifts that were never clocked out."""
        return [r for r in records if not r.is_leave and r.is_complete]

    @staticmethod
    def select_rate(
        record: TimesheetRecord, rates: list[RateEntry]
    ) -> tuple[RateEntry | None, bool]:
        """Pick the rate entry for a record.

        Returns:
            (rate entry or None, whether it matched the record's site)
        """
        if not rates:
            return None, False
        if record.site_id:
            for rate in rates:
                if rate.site_id == record.site_id:
                    return rate, True
        return rates[0], False

    def calculate(
        self,
        records: Iterable[TimesheetRecord],
        rates: list[RateEntry],
    ) -> EarningsSummary:
        """Compute hours and earnings for the eligible records."""
        total_hours = Decimal("0")
        total_earnings = Decimal("0")
        currency = self.default_currency
        sites: dict[str, None] = {}
        counted = 0

        for record in self.eligible_records(records):
            hours = record.hours
            rate, site_matched = self.select_rate(record, rates)
            hourly_rate = rate.hourly_rate if rate is not None else Decimal("0")

            if rate is not None and rate.currency:
                currency = rate.currency
            if site_matched and rate.site_name:
                sites.setdefault(rate.site_name, None)

            total_hours += hours
            total_earnings += hours * hourly_rate
            counted += 1

        site_names = list(sites)
        return EarningsSummary(
            total_hours=self._round(total_hours),
            total_earnings=self._round(total_earnings),
            currency=currency,
            site_of_work=site_names[0] if site_names else None,
            records_counted=counted,
            sites=site_names,
        )

    @classmethod
    def _round(cls, amount: Decimal) -> Decimal:
        return amount.quantize(cls.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)
