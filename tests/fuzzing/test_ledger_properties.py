"""
Property-based tests for the totals cache.

Hypothesis generates pricing quotes, participant lists, payment schedules
and incurred costs, and checks the arithmetic relations that must hold for
every cache the builder produces.

Boundaries fuzzed here:
- Amounts: 0 to 1,000,000 with two places, paid amounts never above amount
- Due dates: 60 days either side of the build date
- Commission rules: every type, with and without floor and cap
- Input order: shuffled schedules and repeated builds
"""

import random
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from ledger_engines.installments import InstallmentScheduler
from ledger_engines.totals import TotalsCacheBuilder
from ledger_kernel.domain.case import (
    CommissionType,
    InstallmentStatus,
    Tax,
    TaxMode,
    TaxScope,
)
from ledger_kernel.exceptions import DuplicateInstallmentSeqError

from tests.builders import (
    NOW,
    TODAY,
    make_cost,
    make_installment,
    make_participant,
    make_pricing,
)

CURRENCY = "USD"
CENT = Decimal("0.01")

FUZZ_SETTINGS = settings(
    max_examples=75,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


def amounts(max_value="1000000"):
    return st.decimals(
        min_value=Decimal("0"),
        max_value=Decimal(max_value),
        places=2,
        allow_nan=False,
        allow_infinity=False,
    )


@composite
def taxes(draw):
    mode = draw(st.sampled_from(list(TaxMode)))
    if mode == TaxMode.PERCENT:
        value = draw(amounts("30"))
    else:
        value = draw(amounts("1000"))
    return Tax(
        name=draw(st.sampled_from(["VAT", "PIT", "Stamp duty"])),
        mode=mode,
        value=value,
        scope=draw(st.sampled_from(list(TaxScope))),
    )


@composite
def pricings(draw):
    return make_pricing(
        base=str(draw(amounts())),
        discounts=str(draw(amounts("200000"))),
        add_ons=str(draw(amounts("200000"))),
        taxes=draw(st.lists(taxes(), max_size=3)),
    )


@composite
def participants(draw):
    count = draw(st.integers(min_value=0, max_value=4))
    result = []
    for index in range(count):
        commission_type = draw(st.sampled_from(list(CommissionType)))
        value = draw(amounts("100" if commission_type != CommissionType.FLAT else "50000"))
        cap = draw(st.none() | amounts("50000"))
        floor = draw(st.none() | amounts("5000"))
        result.append(make_participant(
            employee_id=f"emp-{index}",
            type=commission_type,
            value=str(value),
            cap=str(cap) if cap is not None else None,
            floor=str(floor) if floor is not None else None,
        ))
    return result


@composite
def installments(draw):
    count = draw(st.integers(min_value=0, max_value=8))
    seqs = draw(st.lists(
        st.integers(min_value=1, max_value=100), min_size=count, max_size=count, unique=True,
    ))
    result = []
    for seq in seqs:
        amount = draw(amounts("100000"))
        paid = draw(st.decimals(
            min_value=Decimal("0"), max_value=amount, places=2,
            allow_nan=False, allow_infinity=False,
        ))
        offset = draw(st.integers(min_value=-60, max_value=60))
        result.append(make_installment(seq, TODAY + timedelta(days=offset), str(amount), str(paid)))
    return result


@composite
def incurred_costs(draw):
    return [
        make_cost(str(amount), category=draw(st.sampled_from(["filing", "travel", "expert"])))
        for amount in draw(st.lists(amounts("50000"), max_size=5))
    ]


def build(pricing, people=(), schedule=(), costs=(), now=NOW):
    return TotalsCacheBuilder().build(pricing, people, schedule, costs, now, CURRENCY)


def cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class TestTotalsArithmetic:
    @given(pricings(), participants(), installments(), incurred_costs())
    @FUZZ_SETTINGS
    def test_net_final_identity(self, pricing, people, schedule, costs):
        totals = build(pricing, people, schedule, costs).totals
        assert totals.net_final == (
            totals.net_base
            - totals.tax_computed
            - totals.incurred_cost_total
            - totals.commission_total
        )

    @given(pricings(), participants(), incurred_costs())
    @FUZZ_SETTINGS
    def test_components_non_negative(self, pricing, people, costs):
        totals = build(pricing, people, (), costs).totals
        assert totals.net_base.amount >= 0
        assert totals.tax_computed.amount >= 0
        assert totals.incurred_cost_total.amount >= 0
        assert totals.commission_total.amount >= 0

    @given(pricings())
    @FUZZ_SETTINGS
    def test_net_base_floor(self, pricing):
        totals = build(pricing).totals
        expected = max(
            Decimal("0"), pricing.base_amount - pricing.discounts + pricing.add_ons
        )
        assert totals.net_base.amount == cents(expected)

    @given(incurred_costs())
    @FUZZ_SETTINGS
    def test_incurred_cost_total_is_sum(self, costs):
        totals = build(make_pricing("0"), (), (), costs).totals
        assert totals.incurred_cost_total.amount == cents(sum((c.amount for c in costs), Decimal("0")))


class TestScheduleProperties:
    @given(installments())
    @FUZZ_SETTINGS
    def test_schedule_sums(self, schedule):
        totals = build(make_pricing(), (), schedule).totals
        scheduled = sum((i.amount for i in schedule), Decimal("0"))
        paid = sum((i.paid_amount for i in schedule), Decimal("0"))
        assert totals.scheduled.amount == cents(scheduled)
        assert totals.paid.amount == cents(paid)
        assert totals.outstanding == totals.scheduled - totals.paid
        assert totals.outstanding.amount >= 0

    @given(installments())
    @FUZZ_SETTINGS
    def test_overdue_count_and_next_due(self, schedule):
        result = build(make_pricing(), (), schedule)
        derived = result.installments
        assert result.totals.overdue_count == sum(
            1 for i in derived if i.status == InstallmentStatus.OVERDUE
        )
        open_dates = [i.due_date for i in derived if i.status != InstallmentStatus.PAID]
        assert result.totals.next_due_date == (min(open_dates) if open_dates else None)
        assert [i.seq for i in derived] == sorted(i.seq for i in schedule)

    @given(installments(), st.integers(min_value=-400, max_value=400))
    @FUZZ_SETTINGS
    def test_paid_installments_stay_paid(self, schedule, day_offset):
        scheduler = InstallmentScheduler()
        today = TODAY + timedelta(days=day_offset)
        for installment in schedule:
            status = scheduler.derive_status(installment, today)
            if installment.paid_amount >= installment.amount:
                assert status == InstallmentStatus.PAID
            else:
                assert status != InstallmentStatus.PAID

    @given(installments(), st.randoms(use_true_random=False))
    @FUZZ_SETTINGS
    def test_input_order_irrelevant(self, schedule, rng: random.Random):
        shuffled = list(schedule)
        rng.shuffle(shuffled)
        assert build(make_pricing(), (), schedule).totals == build(make_pricing(), (), shuffled).totals

    @given(installments())
    @FUZZ_SETTINGS
    def test_duplicate_seq_rejected(self, schedule):
        assume(schedule)
        duplicated = schedule + [schedule[0]]
        with pytest.raises(DuplicateInstallmentSeqError):
            build(make_pricing(), (), duplicated)


class TestCommissionProperties:
    @given(pricings(), participants(), incurred_costs())
    @FUZZ_SETTINGS
    def test_floor_then_cap(self, pricing, people, costs):
        lines = build(pricing, people, (), costs).commission.lines
        assert len(lines) == len(people)
        for person, line in zip(people, lines):
            rule = person.commission
            assert line.employee_id == person.employee_id
            if rule.cap_amount is not None:
                assert line.amount <= rule.cap_amount
            if rule.floor_amount is not None and (
                rule.cap_amount is None or rule.floor_amount <= rule.cap_amount
            ):
                assert line.amount >= rule.floor_amount
            assert line.amount >= 0

    @given(pricings(), participants(), incurred_costs())
    @FUZZ_SETTINGS
    def test_percent_of_net_base_never_negative(self, pricing, people, costs):
        for line in build(pricing, people, (), costs).commission.lines:
            if line.commission_type == CommissionType.PERCENT_OF_NET:
                assert line.calculation_base >= 0


class TestDeterminism:
    @given(pricings(), participants(), installments(), incurred_costs())
    @FUZZ_SETTINGS
    def test_rebuild_is_identical(self, pricing, people, schedule, costs):
        first = build(pricing, people, schedule, costs)
        second = build(pricing, people, first.installments, costs)
        assert first.totals == second.totals
        assert first.installments == second.installments
