"""Tests for CaseLedgerService (ledger_services/case_ledger_service.py)."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_engines.totals import TotalsCacheBuilder
from ledger_kernel.domain.case import CaseStatus, CommissionType, InstallmentStatus
from ledger_kernel.exceptions import (
    CaseAlreadyExistsError,
    CaseNotFoundError,
    DuplicateInstallmentSeqError,
    InvalidCurrencyError,
    NegativePricingBaseError,
    PaidAmountExceedsAmountError,
    ValidationError,
)

from tests.builders import (
    NOW,
    TODAY,
    make_cost,
    make_installment,
    make_participant,
    make_pricing,
    vat,
)


def assert_cache_consistent(case, now, due_soon_days=3):
    expected = TotalsCacheBuilder(due_soon_days).build(
        case.pricing, case.participants, case.installments, case.incurred_costs, now, case.currency,
    )
    assert case.totals == expected.totals
    assert case.installments == expected.installments


class TestCreateCase:
    def test_creates_version_one_with_cache(self, service):
        case = service.create_case("HS-001", make_pricing("1000", taxes=[vat("10")]), currency="USD")
        assert case.version == 1
        assert case.code == "HS-001"
        assert case.status == CaseStatus.OPEN
        assert case.created_at == NOW
        assert case.participants == () and case.installments == () and case.incurred_costs == ()
        assert case.totals.net_base.amount == Decimal("1000.00")
        assert case.totals.tax_computed.amount == Decimal("100.00")
        assert case.totals.net_final.amount == Decimal("900.00")

    def test_default_currency_from_settings(self, service):
        case = service.create_case("HS-002", make_pricing("10"))
        assert case.currency == "USD"

    def test_duplicate_code_rejected(self, service):
        service.create_case("HS-003", make_pricing("10"))
        with pytest.raises(CaseAlreadyExistsError):
            service.create_case("HS-003", make_pricing("20"))

    def test_invalid_currency_rejected(self, service, memory_repository):
        with pytest.raises(InvalidCurrencyError):
            service.create_case("HS-004", make_pricing("10"), currency="DOGE")
        assert len(memory_repository) == 0

    def test_blank_code_rejected(self, service):
        with pytest.raises(ValidationError):
            service.create_case("  ", make_pricing("10"))

    def test_negative_pricing_rejected(self, service, memory_repository):
        with pytest.raises(NegativePricingBaseError):
            service.create_case("HS-005", make_pricing("10", discounts="20"))
        assert len(memory_repository) == 0

    def test_explicit_case_id(self, service):
        case_id = uuid4()
        case = service.create_case("HS-006", make_pricing("10"), case_id=case_id)
        assert case.case_id == case_id


class TestUpdates:
    @pytest.fixture
    def case(self, service):
        return service.create_case("HS-100", make_pricing("1000", taxes=[vat("10")]), currency="USD")

    def test_update_pricing(self, service, case):
        updated = service.update_pricing(case.case_id, make_pricing("2000", taxes=[vat("5")]))
        assert updated.version == 2
        assert updated.totals.net_base.amount == Decimal("2000.00")
        assert updated.totals.tax_computed.amount == Decimal("100.00")
        assert_cache_consistent(updated, NOW)

    def test_update_participants(self, service, case):
        updated = service.update_participants(case.case_id, [
            make_participant("emp-1", type=CommissionType.FLAT, value="500", cap="300"),
        ])
        assert updated.totals.commission_total.amount == Decimal("300.00")
        assert updated.totals.net_final.amount == Decimal("600.00")
        line = updated.totals.commission_breakdown[0]
        assert line.raw_amount == Decimal("500") and line.capped

    def test_update_installments(self, service, case):
        updated = service.update_installments(case.case_id, [
            make_installment(2, date(2024, 1, 10), "500"),
            make_installment(1, date(2024, 1, 1), "500", paid="500"),
        ])
        assert [i.seq for i in updated.installments] == [1, 2]
        assert [i.status for i in updated.installments] == [
            InstallmentStatus.PAID, InstallmentStatus.OVERDUE,
        ]
        totals = updated.totals
        assert totals.scheduled.amount == Decimal("1000.00")
        assert totals.paid.amount == Decimal("500.00")
        assert totals.outstanding.amount == Decimal("500.00")
        assert totals.overdue_count == 1
        assert totals.next_due_date == date(2024, 1, 10)

    def test_update_incurred_costs_feeds_commission(self, service, case):
        service.update_participants(case.case_id, [
            make_participant(type=CommissionType.PERCENT_OF_NET, value="10"),
        ])
        updated = service.update_incurred_costs(case.case_id, [make_cost("100")])
        totals = updated.totals
        assert totals.incurred_cost_total.amount == Decimal("100.00")
        assert totals.commission_total.amount == Decimal("80.00")
        assert totals.net_final.amount == Decimal("720.00")
        assert updated.version == 3

    def test_other_sub_collections_untouched(self, service, case):
        service.update_participants(case.case_id, [make_participant()])
        service.update_installments(case.case_id, [make_installment(1, TODAY, "100")])
        updated = service.update_incurred_costs(case.case_id, [make_cost("5")])
        assert len(updated.participants) == 1
        assert len(updated.installments) == 1
        assert updated.pricing == case.pricing
        assert_cache_consistent(updated, NOW)

    def test_updated_at_follows_clock(self, service, case, deterministic_clock):
        deterministic_clock.advance_days(1)
        updated = service.update_incurred_costs(case.case_id, [])
        assert updated.updated_at == NOW + timedelta(days=1)
        assert updated.created_at == NOW
        assert updated.totals.computed_at == NOW + timedelta(days=1)

    def test_unknown_case(self, service):
        with pytest.raises(CaseNotFoundError):
            service.update_pricing(uuid4(), make_pricing("1"))


class TestRejection:
    @pytest.fixture
    def case(self, service):
        return service.create_case("HS-200", make_pricing("1000"), currency="USD")

    def test_duplicate_seq_writes_nothing(self, service, memory_repository, case):
        with pytest.raises(DuplicateInstallmentSeqError):
            service.update_installments(case.case_id, [
                make_installment(1, TODAY, "100"),
                make_installment(1, TODAY, "100"),
            ])
        stored = memory_repository.load_case(case.case_id)
        assert stored.version == 1
        assert stored.installments == ()

    def test_paid_exceeding_amount_writes_nothing(self, service, memory_repository, case):
        with pytest.raises(PaidAmountExceedsAmountError) as exc_info:
            service.update_installments(case.case_id, [make_installment(1, TODAY, "100", paid="101")])
        assert exc_info.value.field == "installments[0].paid_amount"
        assert memory_repository.load_case(case.case_id).version == 1

    def test_validation_before_lookup(self, service):
        """Invalid input is rejected even for an unknown case."""
        with pytest.raises(ValidationError):
            service.update_incurred_costs(uuid4(), [make_cost("-1")])

    def test_rejection_logged(self, service, case, captured_logs):
        with pytest.raises(ValidationError):
            service.update_installments(case.case_id, [make_installment(1, TODAY, "1", paid="2")])
        rejected = [r for r in captured_logs() if r["message"] == "case_mutation_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["error_code"] == "PAID_EXCEEDS_AMOUNT"
        assert rejected[0]["operation"] == "update_installments"
        assert rejected[0]["case_id"] == str(case.case_id)


class TestReadModel:
    def test_get_case_rederives_for_current_time(self, service, deterministic_clock, memory_repository):
        case = service.create_case("HS-300", make_pricing("1000"), currency="USD")
        service.update_installments(case.case_id, [make_installment(1, TODAY + timedelta(days=10), "1000")])

        deterministic_clock.advance_days(11)
        current = service.get_case(case.case_id)

        assert current.installments[0].status == InstallmentStatus.OVERDUE
        assert current.totals.overdue_count == 1
        assert_cache_consistent(current, deterministic_clock.now())
        # read-only: storage still holds the snapshot of the last write
        stored = memory_repository.load_case(case.case_id)
        assert stored.installments[0].status == InstallmentStatus.PLANNED
        assert stored.version == current.version == 2

    def test_refresh_case_persists(self, service, deterministic_clock, memory_repository):
        case = service.create_case("HS-301", make_pricing("1000"), currency="USD")
        service.update_installments(case.case_id, [make_installment(1, TODAY + timedelta(days=10), "1000")])

        deterministic_clock.advance_days(8)
        refreshed = service.refresh_case(case.case_id)
        assert refreshed.installments[0].status == InstallmentStatus.DUE
        assert refreshed.version == 3
        assert memory_repository.load_case(case.case_id).installments[0].status == InstallmentStatus.DUE

    def test_paid_never_reverts_with_time(self, service, deterministic_clock):
        case = service.create_case("HS-302", make_pricing("1000"), currency="USD")
        service.update_installments(case.case_id, [make_installment(1, TODAY, "100", paid="100")])
        for _ in range(3):
            deterministic_clock.advance_days(30)
            assert service.get_case(case.case_id).installments[0].status == InstallmentStatus.PAID


class TestDelete:
    def test_delete_case(self, service, memory_repository):
        case = service.create_case("HS-400", make_pricing("1"))
        service.delete_case(case.case_id)
        assert len(memory_repository) == 0
        with pytest.raises(CaseNotFoundError):
            service.get_case(case.case_id)

    def test_code_reusable_after_delete(self, service):
        case = service.create_case("HS-401", make_pricing("1"))
        service.delete_case(case.case_id)
        service.create_case("HS-401", make_pricing("1"))

    def test_delete_unknown(self, service):
        with pytest.raises(CaseNotFoundError):
            service.delete_case(uuid4())


class TestMutationLogging:
    def test_started_and_committed(self, service, captured_logs):
        case = service.create_case("HS-500", make_pricing("1000"), currency="USD")
        service.update_incurred_costs(case.case_id, [make_cost("10")])

        logs = captured_logs()
        messages = [r["message"] for r in logs]
        assert "case_created" in messages
        assert messages.index("case_mutation_started") < messages.index("case_mutation_committed")

        committed = next(r for r in logs if r["message"] == "case_mutation_committed")
        assert committed["operation"] == "update_incurred_costs"
        assert committed["version"] == 2
        assert committed["attempts"] == 1
        assert committed["net_final"] == "990.00"

    def test_engine_traces_emitted(self, service, captured_logs):
        service.create_case("HS-501", make_pricing("1000"), currency="USD")
        engines = {r["engine_name"] for r in captured_logs() if r["message"] == "LEDGER_ENGINE_TRACE"}
        assert engines == {"pricing", "installments", "commission", "incurred_costs"}
