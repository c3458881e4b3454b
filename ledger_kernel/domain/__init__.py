"""
Pure domain layer.

Immutable value objects, the case aggregate, validation and payload
parsing, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (the Clock is injected)
- I/O
"""

from ledger_kernel.domain.case import (
    Case,
    CaseStatus,
    CommissionEligibility,
    CommissionLine,
    CommissionRule,
    CommissionType,
    IncurredCost,
    Installment,
    InstallmentStatus,
    Participant,
    Pricing,
    Tax,
    TaxMode,
    TaxScope,
    TotalsCache,
)
from ledger_kernel.domain.clock import (
    Clock,
    DeterministicClock,
    SequentialClock,
    SystemClock,
)
from ledger_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from ledger_kernel.domain.values import Currency, Money

__all__ = [
    "Case",
    "CaseStatus",
    "Clock",
    "CommissionEligibility",
    "CommissionLine",
    "CommissionRule",
    "CommissionType",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "DeterministicClock",
    "IncurredCost",
    "Installment",
    "InstallmentStatus",
    "Money",
    "Participant",
    "Pricing",
    "SequentialClock",
    "SystemClock",
    "Tax",
    "TaxMode",
    "TaxScope",
    "TotalsCache",
]
