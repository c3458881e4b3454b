"""
Values -- Immutable, self-validating monetary value objects.

Responsibility:
    Provides Currency and Money, the value types every ledger calculation
    produces.  Money pairs a Decimal amount with its Currency so that
    rounding to the currency's minor unit is always well-defined.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    No outward dependencies except ledger_kernel.domain.currency.

Invariants enforced:
    - Amounts are Decimal, never float.
    - Currency codes are validated against CurrencyRegistry at construction.
    - Rounding precision is derived from the currency, never hardcoded.

Failure modes:
    - ValueError on construction with invalid amounts or currencies.
    - TypeError when a float amount is supplied.
    - ValueError when arithmetic mixes different currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from ledger_kernel.domain.currency import CurrencyRegistry


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Guarantees:
        - Immutable and hashable
        - code is always uppercase and stripped of whitespace
        - code is always registered in CurrencyRegistry
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if isinstance(self.code, str) else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        """Number of minor-unit decimal places for this currency."""
        return CurrencyRegistry.get_decimal_places(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@total_ordering
@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency.  Arithmetic never rounds;
        callers round explicitly, once, at the end of an aggregation.

    Non-goals:
        - Does NOT perform currency conversion.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.amount, float):
            raise TypeError(f"Money amount must not be float, got {self.amount!r}")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """Factory method for creating Money."""
        if isinstance(amount, (str, int)):
            amount = Decimal(str(amount))
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=Decimal("0"), currency=currency)

    @classmethod
    def sum(cls, amounts: Iterable[Decimal], currency: str | Currency) -> Money:
        """Sum raw Decimal amounts into an unrounded Money."""
        total = Decimal("0")
        for amount in amounts:
            total += amount
        return cls(amount=total, currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """
        Round to the currency's minor unit (half-up by default).

        Returns a new Money; the original is unchanged.
        """
        quantum = CurrencyRegistry.get_info(self.currency.code).quantum
        rounded = self.amount.quantize(quantum, rounding=rounding)
        return Money(amount=rounded, currency=self.currency)

    def _check_currency(self, other: Money, verb: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {verb} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
