"""
CaseRepository -- persistence collaborator contract for the case ledger.

Responsibility:
    Loads and stores whole ``Case`` aggregates.  The service never touches
    storage except through this interface.

Contract:
    - ``load_case`` returns the full aggregate (pricing, participants,
      installments, incurred costs, totals) or raises CaseNotFoundError.
    - ``save_case`` persists the aggregate only if the stored version still
      equals ``case.version`` (the version that was read), and returns the
      stored case with ``version + 1``.  Otherwise it raises
      OptimisticLockError and stores nothing.
    - ``add_case`` inserts a new case at its given version.
    - ``delete_case`` removes the case and everything it owns.

Two implementations ship: ``InMemoryCaseRepository`` (below) and
``SqlAlchemyCaseRepository`` (``ledger_services.sql_repository``).
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from uuid import UUID

from ledger_kernel.domain.case import Case
from ledger_kernel.exceptions import (
    CaseAlreadyExistsError,
    CaseNotFoundError,
    OptimisticLockError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.repository")


class CaseRepository(ABC):
    """Abstract persistence collaborator for case aggregates."""

    @abstractmethod
    def load_case(self, case_id: UUID) -> Case:
        """Load the full case. Raises CaseNotFoundError."""

    @abstractmethod
    def save_case(self, case: Case) -> Case:
        """Version-checked save. Raises OptimisticLockError or CaseNotFoundError."""

    @abstractmethod
    def add_case(self, case: Case) -> Case:
        """Insert a new case. Raises CaseAlreadyExistsError."""

    @abstractmethod
    def delete_case(self, case_id: UUID) -> None:
        """Delete the case and its sub-collections. Raises CaseNotFoundError."""

    @abstractmethod
    def find_by_code(self, code: str) -> Case | None:
        """Look a case up by its business code."""


class InMemoryCaseRepository(CaseRepository):
    """
    Dict-backed repository.

    Cases are immutable, so storing the object itself is a snapshot.  A
    single lock makes each call atomic, which is all the version check
    needs.
    """

    def __init__(self) -> None:
        self._cases: dict[UUID, Case] = {}
        self._codes: dict[str, UUID] = {}
        self._lock = threading.Lock()

    def load_case(self, case_id: UUID) -> Case:
        with self._lock:
            case = self._cases.get(case_id)
        if case is None:
            raise CaseNotFoundError(str(case_id))
        return case

    def save_case(self, case: Case) -> Case:
        with self._lock:
            current = self._cases.get(case.case_id)
            if current is None:
                raise CaseNotFoundError(str(case.case_id))
            if current.version != case.version:
                raise OptimisticLockError(str(case.case_id), case.version, current.version)

            stored = replace(case, version=case.version + 1)
            self._cases[case.case_id] = stored

        logger.debug("case_saved", extra={
            "case_id": str(case.case_id),
            "version": stored.version,
        })
        return stored

    def add_case(self, case: Case) -> Case:
        with self._lock:
            if case.case_id in self._cases or case.code in self._codes:
                raise CaseAlreadyExistsError(case.code)
            self._cases[case.case_id] = case
            self._codes[case.code] = case.case_id
        return case

    def delete_case(self, case_id: UUID) -> None:
        with self._lock:
            case = self._cases.pop(case_id, None)
            if case is None:
                raise CaseNotFoundError(str(case_id))
            self._codes.pop(case.code, None)

    def find_by_code(self, code: str) -> Case | None:
        with self._lock:
            case_id = self._codes.get(code)
            return self._cases.get(case_id) if case_id is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._cases)
