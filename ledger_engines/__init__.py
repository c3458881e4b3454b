"""
Ledger Engines - pure calculators behind the case totals cache.

No I/O, no clock reads, no persistence.  Every calculator returns frozen
results and rounds each reported total exactly once.
"""

from ledger_engines.commission import CommissionCalculator, CommissionResult
from ledger_engines.incurred_costs import IncurredCostAggregator, IncurredCostSummary
from ledger_engines.installments import InstallmentScheduler, ScheduleSummary
from ledger_engines.pricing import PricingCalculator, PricingResult, TaxLine
from ledger_engines.totals import TotalsBuild, TotalsCacheBuilder
from ledger_engines.tracer import traced_engine

__all__ = [
    "CommissionCalculator",
    "CommissionResult",
    "IncurredCostAggregator",
    "IncurredCostSummary",
    "InstallmentScheduler",
    "PricingCalculator",
    "PricingResult",
    "ScheduleSummary",
    "TaxLine",
    "TotalsBuild",
    "TotalsCacheBuilder",
    "traced_engine",
]
