"""
Pricing Engine - Net pre-tax base and computed tax for a case quote.

Pure functions with no I/O. The incurred-cost total is supplied by the
caller so that ON_BASE_PLUS_INCIDENTALS taxes can be levied on it.

Usage:
    from ledger_engines.pricing import PricingCalculator
    from ledger_kernel.domain import Pricing, Tax, TaxMode
    from decimal import Decimal

    pricing = Pricing(
        base_amount=Decimal("1000"),
        taxes=(Tax(name="VAT", mode=TaxMode.PERCENT, value=Decimal("10")),),
    )
    result = PricingCalculator().calculate(pricing, "USD")
    print(result.net_base)      # Money: 1000.00 USD
    print(result.tax_computed)  # Money: 100.00 USD
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.case import Pricing, Tax, TaxMode, TaxScope
from ledger_kernel.domain.values import Currency, Money
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")

_HUNDRED = Decimal("100")
_ZERO = Decimal("0")


@dataclass(frozen=True)
class TaxLine:
    """
    Contribution of one tax to the computed tax.

    ``amount`` is unrounded; only the total is rounded.
    """

    name: str
    mode: TaxMode
    scope: TaxScope
    rate_or_value: Decimal
    taxable_amount: Decimal | None  # None for FIXED taxes
    amount: Decimal


@dataclass(frozen=True)
class PricingResult:
    """Net base and tax for a pricing quote."""

    net_base: Money
    tax_computed: Money
    tax_lines: tuple[TaxLine, ...] = ()

    @property
    def gross_with_tax(self) -> Money:
        return self.net_base + self.tax_computed


class PricingCalculator:
    """
    Compute the net pre-tax base and total tax of a quote.

    Rules:
        - pre_tax_base = base_amount - discounts + add_ons, floored at zero.
        - FIXED contributes its value.
        - PERCENT contributes value% of base_amount (ON_BASE) or of
          base_amount + incurred_cost_total (ON_BASE_PLUS_INCIDENTALS).
        - tax_computed is the sum of contributions, rounded half-up once.
    """

    def _line(self, tax: Tax, pricing: Pricing, incurred_cost_total: Decimal) -> TaxLine:
        match tax.mode:
            case TaxMode.FIXED:
                return TaxLine(
                    name=tax.name,
                    mode=tax.mode,
                    scope=tax.scope,
                    rate_or_value=tax.value,
                    taxable_amount=None,
                    amount=tax.value,
                )
            case TaxMode.PERCENT:
                match tax.scope:
                    case TaxScope.ON_BASE:
                        taxable = pricing.base_amount
                    case TaxScope.ON_BASE_PLUS_INCIDENTALS:
                        taxable = pricing.base_amount + incurred_cost_total
                    case _:
                        raise ValueError(f"Unknown tax scope: {tax.scope!r}")
                return TaxLine(
                    name=tax.name,
                    mode=tax.mode,
                    scope=tax.scope,
                    rate_or_value=tax.value,
                    taxable_amount=taxable,
                    amount=tax.value / _HUNDRED * taxable,
                )
            case _:
                raise ValueError(f"Unknown tax mode: {tax.mode!r}")

    @traced_engine("pricing", "1.0", fingerprint_fields=("pricing", "currency", "incurred_cost_total"))
    def calculate(
        self,
        pricing: Pricing,
        currency: str | Currency,
        incurred_cost_total: Money | None = None,
    ) -> PricingResult:
        """
        Calculate net base and tax.

        Args:
            pricing: The validated quote.
            currency: Case currency (decides rounding precision).
            incurred_cost_total: Incurred-cost total for
                ON_BASE_PLUS_INCIDENTALS taxes. Defaults to zero.

        Returns:
            PricingResult with rounded net_base and tax_computed.
        """
        incidentals = incurred_cost_total.amount if incurred_cost_total is not None else _ZERO

        pre_tax_base = max(_ZERO, pricing.pre_tax_base)
        lines = tuple(self._line(tax, pricing, incidentals) for tax in pricing.taxes)

        net_base = Money.of(pre_tax_base, currency).round()
        tax_computed = Money.sum((line.amount for line in lines), currency).round()

        logger.debug("pricing_calculated", extra={
            "net_base": str(net_base.amount),
            "tax_computed": str(tax_computed.amount),
            "tax_line_count": len(lines),
            "currency": net_base.currency.code,
        })

        return PricingResult(net_base=net_base, tax_computed=tax_computed, tax_lines=lines)
