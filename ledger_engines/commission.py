"""
Commission Engine - per-participant commission and the case total.

Pure functions with no I/O.

Rules:
    PERCENT_OF_GROSS  value% of net_base
    PERCENT_OF_NET    value% of max(0, net_base - tax - incurred costs)
    FLAT              value

floor_amount is applied first, then cap_amount, so a cap below the floor
wins.  Line amounts stay unrounded; commission_total is rounded once.
``eligible_on`` is carried through for settlement and never changes an
amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.case import CommissionLine, CommissionType, Participant
from ledger_kernel.domain.values import Money
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.commission")

_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


@dataclass(frozen=True)
class CommissionResult:
    """Commission lines and their rounded total."""

    lines: tuple[CommissionLine, ...]
    commission_total: Money

    def for_employee(self, employee_id: str) -> tuple[CommissionLine, ...]:
        return tuple(line for line in self.lines if line.employee_id == employee_id)


class CommissionCalculator:
    """Compute commissions for a case's participants."""

    def _line(
        self,
        participant: Participant,
        gross_base: Decimal,
        net_base: Decimal,
    ) -> CommissionLine:
        rule = participant.commission

        match rule.type:
            case CommissionType.PERCENT_OF_GROSS:
                base = gross_base
                raw = rule.value / _HUNDRED * base
            case CommissionType.PERCENT_OF_NET:
                base = net_base
                raw = rule.value / _HUNDRED * base
            case CommissionType.FLAT:
                base = rule.value
                raw = rule.value
            case _:
                raise ValueError(f"Unknown commission type: {rule.type!r}")

        amount = raw
        floored = capped = False
        if rule.floor_amount is not None and amount < rule.floor_amount:
            amount = rule.floor_amount
            floored = True
        if rule.cap_amount is not None and amount > rule.cap_amount:
            amount = rule.cap_amount
            capped = True

        return CommissionLine(
            employee_id=participant.employee_id,
            role=participant.role,
            commission_type=rule.type,
            eligible_on=rule.eligible_on,
            calculation_base=base,
            raw_amount=raw,
            amount=amount,
            floored=floored,
            capped=capped,
        )

    @traced_engine(
        "commission", "1.0",
        fingerprint_fields=("participants", "net_base", "tax_computed", "incurred_cost_total"),
    )
    def calculate(
        self,
        participants: Sequence[Participant],
        net_base: Money,
        tax_computed: Money,
        incurred_cost_total: Money,
    ) -> CommissionResult:
        """
        Calculate each participant's commission.

        Args:
            participants: Validated participant list.
            net_base: Pre-tax base from PricingCalculator.
            tax_computed: Tax from PricingCalculator.
            incurred_cost_total: Total from IncurredCostAggregator.

        Returns:
            CommissionResult with one line per participant, in input order.
        """
        currency = net_base.currency
        distributable = max(
            _ZERO, (net_base - tax_computed - incurred_cost_total).amount
        )

        lines = tuple(
            self._line(participant, net_base.amount, distributable)
            for participant in participants
        )
        total = Money.sum((line.amount for line in lines), currency).round()

        capped = sum(1 for line in lines if line.capped)
        if capped:
            logger.debug("commission_capped", extra={
                "capped_count": capped,
                "participant_count": len(lines),
            })

        return CommissionResult(lines=lines, commission_total=total)
