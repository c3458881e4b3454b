"""
ledger_services -- imperative shell of the case ledger.

CaseLedgerService plus its collaborators: the per-case lock registry and
the persistence contract with in-memory and SQLAlchemy implementations.
"""

from ledger_services.case_ledger_service import CaseLedgerService
from ledger_services.case_locks import CaseLockRegistry
from ledger_services.repository import CaseRepository, InMemoryCaseRepository
from ledger_services.sql_repository import SqlAlchemyCaseRepository

__all__ = [
    "CaseLedgerService",
    "CaseLockRegistry",
    "CaseRepository",
    "InMemoryCaseRepository",
    "SqlAlchemyCaseRepository",
]
