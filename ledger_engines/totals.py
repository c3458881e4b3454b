"""
Totals Cache Builder - merge the four calculators into one TotalsCache.

Responsibility:
    The only producer of ``TotalsCache``.  Runs, in dependency order:

        incurred_cost_total     <- IncurredCostAggregator
        net_base, tax_computed  <- PricingCalculator(incurred_cost_total)
        schedule aggregates     <- InstallmentScheduler(now)
        commission_total        <- CommissionCalculator(net_base, tax, costs)

    and derives ``net_final = net_base - tax - costs - commission``, which is
    never clamped (a loss-making case reports a negative net_final).

Architecture position:
    Engines -- pure.  The clock reading is an argument; nothing here reads
    the wall clock, loads, or persists.

Invariants enforced:
    - Deterministic: identical inputs and ``now`` give equal output.
    - Recomputed wholesale; a cache is never patched field by field.
    - Installment statuses in the result are the ones the cache counted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Sequence

from ledger_engines.commission import CommissionCalculator, CommissionResult
from ledger_engines.incurred_costs import IncurredCostAggregator, IncurredCostSummary
from ledger_engines.installments import InstallmentScheduler, ScheduleSummary
from ledger_engines.pricing import PricingCalculator, PricingResult
from ledger_kernel.domain.case import (
    Case,
    IncurredCost,
    Installment,
    Participant,
    Pricing,
    TotalsCache,
)
from ledger_kernel.domain.values import Currency


@dataclass(frozen=True)
class TotalsBuild:
    """A built cache with the intermediate results it was merged from."""

    totals: TotalsCache
    installments: tuple[Installment, ...]
    pricing: PricingResult
    schedule: ScheduleSummary
    commission: CommissionResult
    incurred_costs: IncurredCostSummary


class TotalsCacheBuilder:
    """Pure merge of pricing, schedule, commission and incurred-cost results."""

    def __init__(
        self,
        due_soon_days: int = InstallmentScheduler.DEFAULT_DUE_SOON_DAYS,
        pricing_calculator: PricingCalculator | None = None,
        commission_calculator: CommissionCalculator | None = None,
        cost_aggregator: IncurredCostAggregator | None = None,
    ):
        self.scheduler = InstallmentScheduler(due_soon_days)
        self.pricing_calculator = pricing_calculator or PricingCalculator()
        self.commission_calculator = commission_calculator or CommissionCalculator()
        self.cost_aggregator = cost_aggregator or IncurredCostAggregator()

    def build(
        self,
        pricing: Pricing,
        participants: Sequence[Participant],
        installments: Sequence[Installment],
        incurred_costs: Sequence[IncurredCost],
        now: datetime,
        currency: str | Currency,
    ) -> TotalsBuild:
        """
        Build the totals cache for one case state at ``now``.

        Raises:
            DuplicateInstallmentSeqError: from the scheduler.
        """
        costs = self.cost_aggregator.aggregate(incurred_costs, currency)
        priced = self.pricing_calculator.calculate(pricing, currency, costs.total)
        schedule = self.scheduler.schedule(installments, now, currency)
        commission = self.commission_calculator.calculate(
            participants, priced.net_base, priced.tax_computed, costs.total,
        )

        net_final = (
            priced.net_base
            - priced.tax_computed
            - costs.total
            - commission.commission_total
        )

        totals = TotalsCache(
            scheduled=schedule.scheduled,
            paid=schedule.paid,
            outstanding=schedule.outstanding,
            net_base=priced.net_base,
            tax_computed=priced.tax_computed,
            incurred_cost_total=costs.total,
            commission_total=commission.commission_total,
            net_final=net_final,
            overdue_count=schedule.overdue_count,
            computed_at=now,
            next_due_date=schedule.next_due_date,
            commission_breakdown=commission.lines,
        )
        return TotalsBuild(
            totals=totals,
            installments=schedule.installments,
            pricing=priced,
            schedule=schedule,
            commission=commission,
            incurred_costs=costs,
        )

    def apply_to_case(self, case: Case, now: datetime) -> Case:
        """Return ``case`` with its installments and totals re-derived at ``now``."""
        built = self.build(
            case.pricing,
            case.participants,
            case.installments,
            case.incurred_costs,
            now,
            case.currency,
        )
        return replace(case, installments=built.installments, totals=built.totals)
