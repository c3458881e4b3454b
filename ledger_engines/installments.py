"""
Installment Scheduler - derive installment status and schedule aggregates.

Status is a pure function of (amount, paid_amount, due_date, today); the
first matching rule wins:

    paid >= amount              -> PAID
    0 < paid < amount           -> PARTIALLY_PAID
    due_date < today            -> OVERDUE
    due_date <= today + N days  -> DUE        (N = due_soon_days, default 3)
    otherwise                   -> PLANNED

A partially paid installment stays PARTIALLY_PAID even once its due date has
passed, so it never counts as overdue.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Sequence

from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.case import Installment, InstallmentStatus
from ledger_kernel.domain.validation import check_unique_seqs
from ledger_kernel.domain.values import Currency, Money
from ledger_kernel.logging_config import get_logger

logger = get_logger("engines.installments")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class ScheduleSummary:
    """Installments with derived statuses plus schedule aggregates."""

    installments: tuple[Installment, ...]
    scheduled: Money
    paid: Money
    outstanding: Money
    next_due_date: date | None
    overdue_count: int

    def by_status(self, status: InstallmentStatus) -> tuple[Installment, ...]:
        return tuple(i for i in self.installments if i.status == status)


class InstallmentScheduler:
    """Derive statuses and totals for a payment schedule."""

    DEFAULT_DUE_SOON_DAYS = 3

    def __init__(self, due_soon_days: int = DEFAULT_DUE_SOON_DAYS):
        if due_soon_days < 0:
            raise ValueError(f"due_soon_days must be >= 0, got {due_soon_days}")
        self.due_soon_days = due_soon_days

    def derive_status(self, installment: Installment, today: date) -> InstallmentStatus:
        paid = installment.paid_amount
        if paid >= installment.amount:
            return InstallmentStatus.PAID
        if paid > _ZERO:
            return InstallmentStatus.PARTIALLY_PAID
        if installment.due_date < today:
            return InstallmentStatus.OVERDUE
        if installment.due_date <= today + timedelta(days=self.due_soon_days):
            return InstallmentStatus.DUE
        return InstallmentStatus.PLANNED

    @traced_engine("installments", "1.0", fingerprint_fields=("installments", "now", "currency"))
    def schedule(
        self,
        installments: Sequence[Installment],
        now: datetime,
        currency: str | Currency,
    ) -> ScheduleSummary:
        """
        Re-derive every status and aggregate the schedule.

        Raises:
            DuplicateInstallmentSeqError: two installments share a seq.
        """
        check_unique_seqs(installments)

        today = now.astimezone(UTC).date()
        derived = tuple(
            replace(item, status=self.derive_status(item, today))
            for item in sorted(installments, key=lambda i: i.seq)
        )

        scheduled = Money.sum((i.amount for i in derived), currency).round()
        paid = Money.sum((i.paid_amount for i in derived), currency).round()

        open_dates = [i.due_date for i in derived if i.status != InstallmentStatus.PAID]
        next_due_date = min(open_dates) if open_dates else None
        overdue_count = sum(1 for i in derived if i.status == InstallmentStatus.OVERDUE)

        if overdue_count:
            logger.info("installments_overdue", extra={
                "overdue_count": overdue_count,
                "as_of": today.isoformat(),
            })

        return ScheduleSummary(
            installments=derived,
            scheduled=scheduled,
            paid=paid,
            outstanding=scheduled - paid,
            next_due_date=next_due_date,
            overdue_count=overdue_count,
        )
