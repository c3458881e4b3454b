"""
Case -- the aggregate root of the case financial ledger.

Responsibility:
    Defines the frozen domain objects that make up a legal case's finances:
    the pricing quote (with its taxes), participant commission rules, the
    installment schedule, incurred costs, and the derived TotalsCache.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.  Engines read these objects,
    services replace them wholesale, repositories map them to storage.

Invariants enforced:
    - Everything is immutable; a mutation is a ``dataclasses.replace`` of one
      sub-collection on the Case, never an in-place edit.
    - Enumerated fields are closed ``str`` Enums.
    - TotalsCache is only ever produced by TotalsCacheBuilder.

Validation of amounts and uniqueness lives in
``ledger_kernel.domain.validation``; these classes stay plain records so
that invalid payloads can be represented long enough to be rejected with a
field-level message.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.domain.values import Money


class TaxMode(str, Enum):
    """How a tax line contributes to the computed tax."""

    PERCENT = "PERCENT"
    FIXED = "FIXED"


class TaxScope(str, Enum):
    """Which amount a PERCENT tax is levied on."""

    ON_BASE = "ON_BASE"
    ON_BASE_PLUS_INCIDENTALS = "ON_BASE_PLUS_INCIDENTALS"


class CommissionType(str, Enum):
    """Commission rule kind."""

    PERCENT_OF_GROSS = "PERCENT_OF_GROSS"
    PERCENT_OF_NET = "PERCENT_OF_NET"
    FLAT = "FLAT"


class CommissionEligibility(str, Enum):
    """When a commission becomes payable (consumed by settlement, not here)."""

    AT_CLOSURE = "AT_CLOSURE"
    ON_PAYMENT = "ON_PAYMENT"


class InstallmentStatus(str, Enum):
    """Derived installment status."""

    PLANNED = "PLANNED"
    DUE = "DUE"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class CaseStatus(str, Enum):
    """Engagement lifecycle status. Informational for the ledger."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


@dataclass(frozen=True)
class Tax:
    """One tax line on a pricing quote."""

    name: str
    mode: TaxMode
    value: Decimal
    scope: TaxScope = TaxScope.ON_BASE


@dataclass(frozen=True)
class Pricing:
    """
    Pricing quote for a case.

    ``discounts`` is always subtracted: a negative discount therefore raises
    the pre-tax base.
    """

    base_amount: Decimal
    discounts: Decimal = Decimal("0")
    add_ons: Decimal = Decimal("0")
    taxes: tuple[Tax, ...] = ()

    @property
    def pre_tax_base(self) -> Decimal:
        """base_amount - discounts + add_ons, unclamped."""
        return self.base_amount - self.discounts + self.add_ons


@dataclass(frozen=True)
class CommissionRule:
    """How a participant's commission is computed."""

    type: CommissionType
    value: Decimal
    cap_amount: Decimal | None = None
    floor_amount: Decimal | None = None
    eligible_on: CommissionEligibility = CommissionEligibility.AT_CLOSURE


@dataclass(frozen=True)
class Participant:
    """An employee assigned to the case with a commission rule."""

    employee_id: str
    commission: CommissionRule
    role: str | None = None


@dataclass(frozen=True)
class Installment:
    """One scheduled payment. ``status`` is overwritten on every recompute."""

    seq: int
    due_date: date
    amount: Decimal
    paid_amount: Decimal = Decimal("0")
    status: InstallmentStatus = InstallmentStatus.PLANNED
    notes: str | None = None


@dataclass(frozen=True)
class IncurredCost:
    """An expense charged against the case (filing fees, travel, ...)."""

    date: date
    category: str
    amount: Decimal
    description: str | None = None


@dataclass(frozen=True)
class CommissionLine:
    """Computed commission for one participant."""

    employee_id: str
    role: str | None
    commission_type: CommissionType
    eligible_on: CommissionEligibility
    calculation_base: Decimal
    raw_amount: Decimal
    amount: Decimal
    floored: bool = False
    capped: bool = False


@dataclass(frozen=True)
class TotalsCache:
    """
    Derived financial summary for a case.

    Contract:
        Equal to ``TotalsCacheBuilder.build(...)`` over the case's current
        pricing, participants, installments and incurred costs at
        ``computed_at``.  Never edited on its own.
    """

    scheduled: Money
    paid: Money
    outstanding: Money
    net_base: Money
    tax_computed: Money
    incurred_cost_total: Money
    commission_total: Money
    net_final: Money
    overdue_count: int
    computed_at: datetime
    next_due_date: date | None = None
    commission_breakdown: tuple[CommissionLine, ...] = ()

    @property
    def currency(self) -> str:
        return self.net_base.currency.code

    @property
    def is_loss_making(self) -> bool:
        return self.net_final.is_negative


@dataclass(frozen=True)
class Case:
    """
    Aggregate root: one legal engagement and everything it owns.

    ``version`` is the optimistic-concurrency revision; repositories bump it
    on every successful save and reject saves whose version is stale.
    """

    case_id: UUID
    code: str
    currency: str
    pricing: Pricing
    totals: TotalsCache
    created_at: datetime
    updated_at: datetime
    participants: tuple[Participant, ...] = ()
    installments: tuple[Installment, ...] = ()
    incurred_costs: tuple[IncurredCost, ...] = ()
    version: int = 1
    status: CaseStatus = CaseStatus.OPEN
    notes: str | None = None
