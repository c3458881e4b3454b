"""
SqlAlchemyCaseRepository -- relational persistence for case aggregates.

Responsibility:
    Maps ``Case`` to ``CaseRecord`` plus its child tables and back.  Each
    call runs in its own ``session_scope`` so a call is one transaction.

Invariants enforced:
    - Optimistic versioning: ``save_case`` issues
      ``UPDATE cases SET ... version = :v + 1 WHERE id = :id AND version = :v``.
      A zero rowcount means another writer got there first; nothing is
      written and OptimisticLockError is raised.
    - Sub-collections are replaced wholesale inside the same transaction
      as the case row, so case, children and totals commit together.

Failure modes:
    - CaseNotFoundError -- no row for the id.
    - OptimisticLockError -- stale version on save.
    - CaseAlreadyExistsError -- duplicate id or code on insert.
    - Any other SQLAlchemyError rolls the transaction back and propagates.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.case import (
    Case,
    CaseStatus,
    CommissionEligibility,
    CommissionLine,
    CommissionRule,
    CommissionType,
    IncurredCost,
    Installment,
    InstallmentStatus,
    Participant,
    Pricing,
    Tax,
    TaxMode,
    TaxScope,
    TotalsCache,
)
from ledger_kernel.domain.values import Money
from ledger_kernel.exceptions import (
    CaseAlreadyExistsError,
    CaseNotFoundError,
    OptimisticLockError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.case import (
    CaseIncurredCostRecord,
    CaseInstallmentRecord,
    CaseParticipantRecord,
    CaseRecord,
    CaseTaxRecord,
)
from ledger_services.repository import CaseRepository

logger = get_logger("services.sql_repository")


def _money(amount: Decimal, currency: str) -> Money:
    return Money.of(amount, currency).round()


def _line_to_json(line: CommissionLine) -> dict[str, Any]:
    return {
        "employee_id": line.employee_id,
        "role": line.role,
        "commission_type": line.commission_type.value,
        "eligible_on": line.eligible_on.value,
        "calculation_base": str(line.calculation_base),
        "raw_amount": str(line.raw_amount),
        "amount": str(line.amount),
        "floored": line.floored,
        "capped": line.capped,
    }


def _line_from_json(data: dict[str, Any]) -> CommissionLine:
    return CommissionLine(
        employee_id=data["employee_id"],
        role=data.get("role"),
        commission_type=CommissionType(data["commission_type"]),
        eligible_on=CommissionEligibility(data["eligible_on"]),
        calculation_base=Decimal(data["calculation_base"]),
        raw_amount=Decimal(data["raw_amount"]),
        amount=Decimal(data["amount"]),
        floored=bool(data.get("floored", False)),
        capped=bool(data.get("capped", False)),
    )


def _case_columns(case: Case) -> dict[str, Any]:
    """Scalar columns of the case row (everything except id and version)."""
    totals = case.totals
    return {
        "code": case.code,
        "currency": case.currency,
        "status": case.status.value,
        "notes": case.notes,
        "base_amount": case.pricing.base_amount,
        "discounts": case.pricing.discounts,
        "add_ons": case.pricing.add_ons,
        "scheduled": totals.scheduled.amount,
        "paid": totals.paid.amount,
        "outstanding": totals.outstanding.amount,
        "net_base": totals.net_base.amount,
        "tax_computed": totals.tax_computed.amount,
        "incurred_cost_total": totals.incurred_cost_total.amount,
        "commission_total": totals.commission_total.amount,
        "net_final": totals.net_final.amount,
        "overdue_count": totals.overdue_count,
        "next_due_date": totals.next_due_date,
        "totals_computed_at": totals.computed_at,
        "commission_breakdown": [_line_to_json(line) for line in totals.commission_breakdown],
        "created_at": case.created_at,
        "updated_at": case.updated_at,
    }


def _child_records(case: Case) -> list[Any]:
    records: list[Any] = []
    for position, tax in enumerate(case.pricing.taxes):
        records.append(CaseTaxRecord(
            case_id=case.case_id,
            position=position,
            name=tax.name,
            mode=tax.mode.value,
            value=tax.value,
            scope=tax.scope.value,
        ))
    for position, participant in enumerate(case.participants):
        rule = participant.commission
        records.append(CaseParticipantRecord(
            case_id=case.case_id,
            position=position,
            employee_id=participant.employee_id,
            role=participant.role,
            commission_type=rule.type.value,
            commission_value=rule.value,
            cap_amount=rule.cap_amount,
            floor_amount=rule.floor_amount,
            eligible_on=rule.eligible_on.value,
        ))
    for installment in case.installments:
        records.append(CaseInstallmentRecord(
            case_id=case.case_id,
            seq=installment.seq,
            due_date=installment.due_date,
            amount=installment.amount,
            paid_amount=installment.paid_amount,
            status=installment.status.value,
            notes=installment.notes,
        ))
    for position, cost in enumerate(case.incurred_costs):
        records.append(CaseIncurredCostRecord(
            case_id=case.case_id,
            position=position,
            cost_date=cost.date,
            category=cost.category,
            description=cost.description,
            amount=cost.amount,
        ))
    return records


def _to_domain(record: CaseRecord) -> Case:
    currency = record.currency
    pricing = Pricing(
        base_amount=record.base_amount,
        discounts=record.discounts,
        add_ons=record.add_ons,
        taxes=tuple(
            Tax(name=t.name, mode=TaxMode(t.mode), value=t.value, scope=TaxScope(t.scope))
            for t in record.taxes
        ),
    )
    participants = tuple(
        Participant(
            employee_id=p.employee_id,
            role=p.role,
            commission=CommissionRule(
                type=CommissionType(p.commission_type),
                value=p.commission_value,
                cap_amount=p.cap_amount,
                floor_amount=p.floor_amount,
                eligible_on=CommissionEligibility(p.eligible_on),
            ),
        )
        for p in record.participants
    )
    installments = tuple(
        Installment(
            seq=i.seq,
            due_date=i.due_date,
            amount=i.amount,
            paid_amount=i.paid_amount,
            status=InstallmentStatus(i.status),
            notes=i.notes,
        )
        for i in record.installments
    )
    incurred_costs = tuple(
        IncurredCost(
            date=c.cost_date,
            category=c.category,
            description=c.description,
            amount=c.amount,
        )
        for c in record.incurred_costs
    )
    totals = TotalsCache(
        scheduled=_money(record.scheduled, currency),
        paid=_money(record.paid, currency),
        outstanding=_money(record.outstanding, currency),
        net_base=_money(record.net_base, currency),
        tax_computed=_money(record.tax_computed, currency),
        incurred_cost_total=_money(record.incurred_cost_total, currency),
        commission_total=_money(record.commission_total, currency),
        net_final=_money(record.net_final, currency),
        overdue_count=record.overdue_count,
        computed_at=record.totals_computed_at,
        next_due_date=record.next_due_date,
        commission_breakdown=tuple(_line_from_json(d) for d in record.commission_breakdown or ()),
    )
    return Case(
        case_id=record.id,
        code=record.code,
        currency=currency,
        pricing=pricing,
        totals=totals,
        created_at=record.created_at,
        updated_at=record.updated_at,
        participants=participants,
        installments=installments,
        incurred_costs=incurred_costs,
        version=record.version,
        status=CaseStatus(record.status),
        notes=record.notes,
    )


_CHILD_MODELS = (CaseTaxRecord, CaseParticipantRecord, CaseInstallmentRecord, CaseIncurredCostRecord)


class SqlAlchemyCaseRepository(CaseRepository):
    """CaseRepository backed by the ``cases`` table family."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _load_record(self, session: Session, case_id: UUID) -> CaseRecord | None:
        return session.scalars(
            select(CaseRecord)
            .where(CaseRecord.id == case_id)
            .options(
                selectinload(CaseRecord.taxes),
                selectinload(CaseRecord.participants),
                selectinload(CaseRecord.installments),
                selectinload(CaseRecord.incurred_costs),
            )
        ).one_or_none()

    def load_case(self, case_id: UUID) -> Case:
        with session_scope(self._session_factory) as session:
            record = self._load_record(session, case_id)
            if record is None:
                raise CaseNotFoundError(str(case_id))
            return _to_domain(record)

    def save_case(self, case: Case) -> Case:
        new_version = case.version + 1
        with session_scope(self._session_factory) as session:
            result = session.execute(
                update(CaseRecord)
                .where(CaseRecord.id == case.case_id, CaseRecord.version == case.version)
                .values(version=new_version, **_case_columns(case))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                actual = session.scalar(
                    select(CaseRecord.version).where(CaseRecord.id == case.case_id)
                )
                if actual is None:
                    raise CaseNotFoundError(str(case.case_id))
                raise OptimisticLockError(str(case.case_id), case.version, actual)

            for model in _CHILD_MODELS:
                session.execute(delete(model).where(model.case_id == case.case_id))
            session.add_all(_child_records(case))

        logger.debug("case_saved", extra={
            "case_id": str(case.case_id),
            "version": new_version,
        })
        return replace(case, version=new_version)

    def add_case(self, case: Case) -> Case:
        with session_scope(self._session_factory) as session:
            record = CaseRecord(id=case.case_id, version=case.version, **_case_columns(case))
            session.add(record)
            try:
                session.flush()
            except IntegrityError as e:
                raise CaseAlreadyExistsError(case.code) from e
            session.add_all(_child_records(case))
        return case

    def delete_case(self, case_id: UUID) -> None:
        with session_scope(self._session_factory) as session:
            record = session.get(CaseRecord, case_id)
            if record is None:
                raise CaseNotFoundError(str(case_id))
            session.delete(record)

    def find_by_code(self, code: str) -> Case | None:
        with session_scope(self._session_factory) as session:
            case_id = session.scalar(select(CaseRecord.id).where(CaseRecord.code == code))
        if case_id is None:
            return None
        return self.load_case(case_id)
