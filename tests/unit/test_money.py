"""Tests for Money and Currency value objects (ledger_kernel/domain/values.py)."""

from decimal import ROUND_HALF_EVEN, Decimal

import pytest

from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.values import Currency, Money


class TestCurrency:
    def test_normalizes_code(self):
        assert Currency(" usd ").code == "USD"

    def test_invalid_code_rejected(self):
        with pytest.raises(ValueError):
            Currency("ABC")

    @pytest.mark.parametrize("code,places", [("VND", 0), ("JPY", 0), ("USD", 2), ("EUR", 2), ("BHD", 3)])
    def test_decimal_places(self, code, places):
        assert Currency(code).decimal_places == places
        assert CurrencyRegistry.get_decimal_places(code) == places

    def test_registry_quantum(self):
        assert CurrencyRegistry.get_info("VND").quantum == Decimal("1")
        assert str(CurrencyRegistry.get_info("BHD").quantum) == "0.001"
        assert CurrencyRegistry.get_info(" usd ").code == "USD"
        assert CurrencyRegistry.get_info("ZZZ") is None

    def test_unknown_decimal_places_raises(self):
        with pytest.raises(ValueError):
            CurrencyRegistry.get_decimal_places("ZZZ")


class TestMoney:
    def test_float_rejected(self):
        with pytest.raises(TypeError):
            Money(1.5, "USD")

    def test_of_coerces_strings(self):
        money = Money.of("10.25", "usd")
        assert money.amount == Decimal("10.25")
        assert money.currency == Currency("USD")

    def test_arithmetic(self):
        a = Money.of("10", "USD")
        b = Money.of("2.5", "USD")
        assert (a + b).amount == Decimal("12.5")
        assert (a - b).amount == Decimal("7.5")
        assert (-a).amount == Decimal("-10")

    def test_mixed_currency_rejected(self):
        with pytest.raises(ValueError):
            Money.of("1", "USD") + Money.of("1", "EUR")
        with pytest.raises(ValueError):
            Money.of("1", "USD") < Money.of("1", "EUR")

    def test_comparisons(self):
        assert Money.of("1", "USD") < Money.of("2", "USD")
        assert Money.of("2", "USD") >= Money.of("2.00", "USD")

    def test_round_half_up_by_default(self):
        assert Money.of("2.345", "USD").round().amount == Decimal("2.35")
        assert Money.of("2.345", "USD").round(ROUND_HALF_EVEN).amount == Decimal("2.34")
        assert Money.of("2.5", "VND").round().amount == Decimal("3")

    def test_sum_is_unrounded(self):
        total = Money.sum([Decimal("0.004"), Decimal("0.004")], "USD")
        assert total.amount == Decimal("0.008")
        assert total.round().amount == Decimal("0.01")

    def test_predicates(self):
        assert Money.zero("USD").is_zero
        assert Money.of("-1", "USD").is_negative
        assert not Money.of("1", "USD").is_negative

    def test_str(self):
        assert str(Money.of("1.50", "USD")) == "1.50 USD"
