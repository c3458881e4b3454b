"""
Validation -- reject invalid sub-collection replacements before any write.

Responsibility:
    Checks a candidate pricing quote, participant list, installment list or
    incurred-cost list against the ledger's invariants and raises a typed
    ``ValidationError`` naming the offending field path.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.  Called by the service
    before it loads or writes anything, and by payload parsing.

Invariants enforced:
    - Amounts and rule values are Decimal and >= 0 (discounts excepted).
    - Installment seq is a positive int, unique within the list.
    - Installment paid_amount <= amount.
    - Pricing pre-tax base (base - discounts + add_ons) is >= 0.
    - Enumerated fields hold members of their closed Enum.

Failure modes:
    - ValidationError subclasses from ledger_kernel.exceptions; the first
      violation found is raised (lists are scanned in order).
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Sequence

from ledger_kernel.domain.case import (
    CommissionEligibility,
    CommissionRule,
    CommissionType,
    IncurredCost,
    Installment,
    Participant,
    Pricing,
    Tax,
    TaxMode,
    TaxScope,
)
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.exceptions import (
    DuplicateInstallmentSeqError,
    InvalidCurrencyError,
    InvalidEnumValueError,
    NegativeAmountError,
    NegativePricingBaseError,
    PaidAmountExceedsAmountError,
    ValidationError,
)

_ZERO = Decimal("0")


def _require_decimal(value: object, field: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, Decimal):
        raise ValidationError(field, f"expected a Decimal amount, got {type(value).__name__}")
    if not value.is_finite():
        raise ValidationError(field, f"amount must be finite, got {value}")
    return value


def _require_non_negative(value: object, field: str) -> Decimal:
    amount = _require_decimal(value, field)
    if amount < _ZERO:
        raise NegativeAmountError(field, str(amount))
    return amount


def _require_member(value: object, enum_cls: type[Enum], field: str) -> None:
    if not isinstance(value, enum_cls):
        raise InvalidEnumValueError(
            field, value, tuple(member.value for member in enum_cls)
        )


def _require_text(value: object, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "must be a non-empty string")


def _require_list(value: object, field: str) -> None:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(field, f"expected a list, got {type(value).__name__}")


def validate_currency(code: object, field: str = "currency") -> str:
    """Return the normalized currency code or raise InvalidCurrencyError."""
    if not isinstance(code, str) or not CurrencyRegistry.is_valid(code):
        raise InvalidCurrencyError(field, code)
    return code.upper().strip()


def validate_pricing(pricing: Pricing, field: str = "pricing") -> Pricing:
    """Validate a pricing quote. Returns it unchanged."""
    if not isinstance(pricing, Pricing):
        raise ValidationError(field, f"expected Pricing, got {type(pricing).__name__}")

    _require_non_negative(pricing.base_amount, f"{field}.base_amount")
    _require_decimal(pricing.discounts, f"{field}.discounts")
    _require_non_negative(pricing.add_ons, f"{field}.add_ons")
    _require_list(pricing.taxes, f"{field}.taxes")

    for index, tax in enumerate(pricing.taxes):
        tax_field = f"{field}.taxes[{index}]"
        if not isinstance(tax, Tax):
            raise ValidationError(tax_field, f"expected Tax, got {type(tax).__name__}")
        _require_text(tax.name, f"{tax_field}.name")
        _require_member(tax.mode, TaxMode, f"{tax_field}.mode")
        _require_member(tax.scope, TaxScope, f"{tax_field}.scope")
        _require_non_negative(tax.value, f"{tax_field}.value")

    # The calculator clamps at zero; a negative quote must never get that far.
    pre_tax_base = pricing.pre_tax_base
    if pre_tax_base < _ZERO:
        raise NegativePricingBaseError(field, str(pre_tax_base))
    return pricing


def validate_participants(
    participants: Sequence[Participant],
    field: str = "participants",
) -> tuple[Participant, ...]:
    """Validate a participant list. Returns it as a tuple."""
    _require_list(participants, field)
    for index, participant in enumerate(participants):
        item = f"{field}[{index}]"
        if not isinstance(participant, Participant):
            raise ValidationError(
                item, f"expected Participant, got {type(participant).__name__}"
            )
        _require_text(participant.employee_id, f"{item}.employee_id")

        rule = participant.commission
        if not isinstance(rule, CommissionRule):
            raise ValidationError(
                f"{item}.commission", f"expected CommissionRule, got {type(rule).__name__}"
            )
        _require_member(rule.type, CommissionType, f"{item}.commission.type")
        _require_member(rule.eligible_on, CommissionEligibility, f"{item}.commission.eligible_on")
        _require_non_negative(rule.value, f"{item}.commission.value")
        if rule.cap_amount is not None:
            _require_non_negative(rule.cap_amount, f"{item}.commission.cap_amount")
        if rule.floor_amount is not None:
            _require_non_negative(rule.floor_amount, f"{item}.commission.floor_amount")
    return tuple(participants)


def check_unique_seqs(
    installments: Sequence[Installment],
    field: str = "installments",
) -> None:
    """Raise DuplicateInstallmentSeqError on the first repeated seq."""
    seen: set[int] = set()
    for index, installment in enumerate(installments):
        if installment.seq in seen:
            raise DuplicateInstallmentSeqError(f"{field}[{index}].seq", installment.seq)
        seen.add(installment.seq)


def validate_installments(
    installments: Sequence[Installment],
    field: str = "installments",
) -> tuple[Installment, ...]:
    """Validate an installment list. Returns it as a tuple."""
    _require_list(installments, field)
    for index, installment in enumerate(installments):
        item = f"{field}[{index}]"
        if not isinstance(installment, Installment):
            raise ValidationError(
                item, f"expected Installment, got {type(installment).__name__}"
            )
        seq = installment.seq
        if isinstance(seq, bool) or not isinstance(seq, int) or seq <= 0:
            raise ValidationError(f"{item}.seq", f"must be a positive integer, got {seq!r}")
        if not isinstance(installment.due_date, date):
            raise ValidationError(f"{item}.due_date", "must be a date")

        amount = _require_non_negative(installment.amount, f"{item}.amount")
        paid = _require_non_negative(installment.paid_amount, f"{item}.paid_amount")
        if paid > amount:
            raise PaidAmountExceedsAmountError(f"{item}.paid_amount", str(paid), str(amount))

    check_unique_seqs(installments, field)
    return tuple(installments)


def validate_incurred_costs(
    incurred_costs: Sequence[IncurredCost],
    field: str = "incurred_costs",
) -> tuple[IncurredCost, ...]:
    """Validate an incurred-cost list. Returns it as a tuple."""
    _require_list(incurred_costs, field)
    for index, cost in enumerate(incurred_costs):
        item = f"{field}[{index}]"
        if not isinstance(cost, IncurredCost):
            raise ValidationError(item, f"expected IncurredCost, got {type(cost).__name__}")
        if not isinstance(cost.date, date):
            raise ValidationError(f"{item}.date", "must be a date")
        _require_text(cost.category, f"{item}.category")
        _require_non_negative(cost.amount, f"{item}.amount")
    return tuple(incurred_costs)
