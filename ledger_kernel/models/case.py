"""
Module: ledger_kernel.models.case
Responsibility: ORM persistence model for the case aggregate -- the case row
    (pricing scalars, version, totals cache columns) and one child table per
    owned sub-collection.
Architecture position: Kernel > Models.  May import from db/base.py only.
    Mapping to and from domain objects lives in the SQLAlchemy repository.

Invariants enforced:
    - Composition: every child row belongs to exactly one case and is removed
      with it (ON DELETE CASCADE plus delete-orphan).
    - Installment seq is unique per case (uq_case_installment_seq).
    - Case code is globally unique (uq_case_code).
    - ``version`` is the optimistic-concurrency revision; writers update the
      case row with ``WHERE version = :read_version``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TrackedBase, UUIDString


class CaseRecord(TrackedBase):
    """
    One legal case with its pricing quote and persisted totals cache.

    Non-goals:
        - Does NOT compute anything; totals columns are written verbatim from
          the TotalsCache the service built.
    """

    __tablename__ = "cases"

    __table_args__ = (
        UniqueConstraint("code", name="uq_case_code"),
        Index("idx_case_status", "status"),
        Index("idx_case_next_due_date", "next_due_date"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Pricing quote
    base_amount: Mapped[Decimal] = mapped_column(nullable=False)
    discounts: Mapped[Decimal] = mapped_column(nullable=False)
    add_ons: Mapped[Decimal] = mapped_column(nullable=False)

    # Totals cache
    scheduled: Mapped[Decimal] = mapped_column(nullable=False)
    paid: Mapped[Decimal] = mapped_column(nullable=False)
    outstanding: Mapped[Decimal] = mapped_column(nullable=False)
    net_base: Mapped[Decimal] = mapped_column(nullable=False)
    tax_computed: Mapped[Decimal] = mapped_column(nullable=False)
    incurred_cost_total: Mapped[Decimal] = mapped_column(nullable=False)
    commission_total: Mapped[Decimal] = mapped_column(nullable=False)
    net_final: Mapped[Decimal] = mapped_column(nullable=False)
    overdue_count: Mapped[int] = mapped_column(Integer, nullable=False)
    next_due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    totals_computed_at: Mapped[datetime] = mapped_column(nullable=False)
    commission_breakdown: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    taxes: Mapped[list[CaseTaxRecord]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseTaxRecord.position",
        passive_deletes=True,
    )
    participants: Mapped[list[CaseParticipantRecord]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseParticipantRecord.position",
        passive_deletes=True,
    )
    installments: Mapped[list[CaseInstallmentRecord]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseInstallmentRecord.seq",
        passive_deletes=True,
    )
    incurred_costs: Mapped[list[CaseIncurredCostRecord]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CaseIncurredCostRecord.position",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<CaseRecord {self.code} v{self.version}>"


class _CaseChild(Base):
    """Common foreign key for rows owned by a case."""

    __abstract__ = True

    case_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class CaseTaxRecord(_CaseChild):
    __tablename__ = "case_taxes"

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    mode: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(nullable=False)
    scope: Mapped[str] = mapped_column(String(30), nullable=False)

    case: Mapped[CaseRecord] = relationship(back_populates="taxes")


class CaseParticipantRecord(_CaseChild):
    __tablename__ = "case_participants"

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    role: Mapped[str | None] = mapped_column(String(100), nullable=True)
    commission_type: Mapped[str] = mapped_column(String(30), nullable=False)
    commission_value: Mapped[Decimal] = mapped_column(nullable=False)
    cap_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    floor_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    eligible_on: Mapped[str] = mapped_column(String(20), nullable=False)

    case: Mapped[CaseRecord] = relationship(back_populates="participants")


class CaseInstallmentRecord(_CaseChild):
    __tablename__ = "case_installments"

    __table_args__ = (
        UniqueConstraint("case_id", "seq", name="uq_case_installment_seq"),
        Index("idx_installment_due_date", "due_date"),
    )

    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    case: Mapped[CaseRecord] = relationship(back_populates="installments")


class CaseIncurredCostRecord(_CaseChild):
    __tablename__ = "case_incurred_costs"

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    cost_date: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    case: Mapped[CaseRecord] = relationship(back_populates="incurred_costs")
