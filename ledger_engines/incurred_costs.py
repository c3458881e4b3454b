"""
Incurred Cost Aggregator - total and per-category totals of case expenses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.case import IncurredCost
from ledger_kernel.domain.values import Currency, Money


@dataclass(frozen=True)
class IncurredCostSummary:
    """Rounded total, rounded per-category totals and the item count."""

    total: Money
    by_category: dict[str, Money] = field(default_factory=dict)
    count: int = 0


class IncurredCostAggregator:
    """Sum incurred costs. Pure; rounds each total once."""

    @traced_engine("incurred_costs", "1.0", fingerprint_fields=("incurred_costs", "currency"))
    def aggregate(
        self,
        incurred_costs: Sequence[IncurredCost],
        currency: str | Currency,
    ) -> IncurredCostSummary:
        grouped: dict[str, list[Decimal]] = {}
        for cost in incurred_costs:
            grouped.setdefault(cost.category, []).append(cost.amount)

        return IncurredCostSummary(
            total=Money.sum((c.amount for c in incurred_costs), currency).round(),
            by_category={
                category: Money.sum(amounts, currency).round()
                for category, amounts in sorted(grouped.items())
            },
            count=len(incurred_costs),
        )
