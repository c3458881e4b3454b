"""ORM models for the case ledger."""

from ledger_kernel.models.case import (
    CaseIncurredCostRecord,
    CaseInstallmentRecord,
    CaseParticipantRecord,
    CaseRecord,
    CaseTaxRecord,
)

__all__ = [
    "CaseIncurredCostRecord",
    "CaseInstallmentRecord",
    "CaseParticipantRecord",
    "CaseRecord",
    "CaseTaxRecord",
]
