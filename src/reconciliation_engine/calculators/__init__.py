"""Earnings calculation."""

from reconciliation_engine.calculators.earnings import EarningsCalculator, EarningsSummary

__all__ = [
    "EarningsCalculator",
    "EarningsSummary",
]
