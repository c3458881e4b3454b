"""
CaseLedgerService -- the only writer of case financial state.

Responsibility:
    Accepts a replacement for exactly one sub-collection of a case (pricing,
    participants, installments, incurred costs), re-reads the full case,
    rebuilds the whole totals cache and persists case and cache as one unit.
    Also owns the case lifecycle (create, read, refresh, delete).

Architecture position:
    Services -- imperative shell around the pure engines.  Storage is
    reached only through a ``CaseRepository``; time only through ``Clock``.

Invariants enforced:
    - Validate first: a mutation that fails validation raises before the
      case is loaded, locked or written.
    - Wholesale recompute: every write stores a cache equal to
      ``TotalsCacheBuilder.build`` over the stored sub-collections at the
      clock time of the write.
    - Never last-write-wins: a concurrent writer is detected by the
      repository's version check; the mutation is re-applied to the fresh
      case (so the other writer's sub-collection survives) and recomputed,
      up to ``max_conflict_retries`` times.
    - Per-case serialization in-process via ``CaseLockRegistry``.

Failure modes:
    - ValidationError subclasses -- rejected input, nothing written.
    - CaseNotFoundError -- unknown case id.
    - CaseAlreadyExistsError -- duplicate case code on create.
    - CaseLockTimeoutError -- per-case lock not acquired in time.
    - ConflictRetriesExhaustedError -- version conflicts outlasted retries.

Usage:
    service = CaseLedgerService(repository, clock, settings)
    case = service.create_case("HS-2024-001", pricing, currency="USD")
    case = service.update_installments(case.case_id, installments)
    print(case.totals.outstanding)
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import NoReturn, TypeVar
from uuid import UUID, uuid4

from ledger_config import LedgerSettings, get_active_settings
from ledger_engines.totals import TotalsCacheBuilder
from ledger_kernel.domain.case import (
    Case,
    CaseStatus,
    IncurredCost,
    Installment,
    Participant,
    Pricing,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.validation import (
    validate_currency,
    validate_incurred_costs,
    validate_installments,
    validate_participants,
    validate_pricing,
)
from ledger_kernel.exceptions import (
    CaseAlreadyExistsError,
    ConflictRetriesExhaustedError,
    OptimisticLockError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_services.case_locks import CaseLockRegistry
from ledger_services.repository import CaseRepository

logger = get_logger("services.case_ledger")

T = TypeVar("T")


class CaseLedgerService:
    """
    Mutations and lifecycle for case financial ledgers.

    Contract:
        Each update operation replaces one sub-collection and returns the
        full updated ``Case`` (new version, rebuilt cache).  Callers never
        observe a case whose cache disagrees with its sub-collections.

    Non-goals:
        - Does NOT merge two writers' changes to the same sub-collection;
          the later re-application replaces that list.
        - Does NOT post to a general ledger or convert currencies.
    """

    def __init__(
        self,
        repository: CaseRepository,
        clock: Clock,
        settings: LedgerSettings | None = None,
        builder: TotalsCacheBuilder | None = None,
        locks: CaseLockRegistry | None = None,
    ):
        self._repository = repository
        self._clock = clock
        self._settings = settings or get_active_settings()
        self._builder = builder or TotalsCacheBuilder(self._settings.due_soon_days)
        self._locks = locks or CaseLockRegistry(self._settings.lock_timeout_seconds)

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_case(
        self,
        code: str,
        pricing: Pricing,
        currency: str | None = None,
        notes: str | None = None,
        case_id: UUID | None = None,
        status: CaseStatus = CaseStatus.OPEN,
    ) -> Case:
        """
        Create a version-1 case with empty sub-collections.

        Raises:
            ValidationError: blank code, unknown currency or invalid pricing.
            CaseAlreadyExistsError: the code is taken.
        """
        with LogContext.bind(operation="create_case"):
            if not isinstance(code, str) or not code.strip():
                self._reject(ValidationError("code", "must be a non-empty string"))
            code = code.strip()
            currency = self._validated(
                validate_currency, currency or self._settings.default_currency
            )
            pricing = self._validated(validate_pricing, pricing)

            if self._repository.find_by_code(code) is not None:
                raise CaseAlreadyExistsError(code)

            now = self._clock.now()
            built = self._builder.build(pricing, (), (), (), now, currency)
            case = Case(
                case_id=case_id or uuid4(),
                code=code,
                currency=currency,
                pricing=pricing,
                totals=built.totals,
                created_at=now,
                updated_at=now,
                status=status,
                notes=notes,
            )
            stored = self._repository.add_case(case)

            logger.info("case_created", extra={
                "case_id": str(stored.case_id),
                "case_code": stored.code,
                "currency": stored.currency,
                "net_base": str(stored.totals.net_base.amount),
            })
            return stored

    def get_case(self, case_id: UUID) -> Case:
        """
        Return the stored case with its cache re-derived at the current time.

        Read-only: installment statuses and overdue counts move with the
        clock, so the returned cache reflects "now" while storage keeps the
        snapshot of the last write.
        """
        case = self._repository.load_case(case_id)
        return self._builder.apply_to_case(case, self._clock.now())

    def refresh_case(self, case_id: UUID) -> Case:
        """Re-derive and persist the cache without changing any input."""
        return self._mutate(case_id, "refresh_case", lambda case: case)

    def delete_case(self, case_id: UUID) -> None:
        """Delete the case and everything it owns."""
        with LogContext.bind(case_id=str(case_id), operation="delete_case"):
            with self._locks.hold(case_id, self._settings.lock_timeout_seconds):
                self._repository.delete_case(case_id)
            self._locks.forget(case_id)
            logger.info("case_deleted")

    # ------------------------------------------------------------------
    # Sub-collection mutations
    # ------------------------------------------------------------------

    def update_pricing(self, case_id: UUID, pricing: Pricing) -> Case:
        """Replace the pricing quote and rebuild the cache."""
        with LogContext.bind(case_id=str(case_id), operation="update_pricing"):
            pricing = self._validated(validate_pricing, pricing)
            return self._mutate(
                case_id, "update_pricing", lambda case: replace(case, pricing=pricing)
            )

    def update_participants(
        self, case_id: UUID, participants: Sequence[Participant]
    ) -> Case:
        """Replace the participant list and rebuild the cache."""
        with LogContext.bind(case_id=str(case_id), operation="update_participants"):
            participants = self._validated(validate_participants, participants)
            return self._mutate(
                case_id,
                "update_participants",
                lambda case: replace(case, participants=participants),
            )

    def update_installments(
        self, case_id: UUID, installments: Sequence[Installment]
    ) -> Case:
        """Replace the installment schedule and rebuild the cache."""
        with LogContext.bind(case_id=str(case_id), operation="update_installments"):
            installments = self._validated(validate_installments, installments)
            return self._mutate(
                case_id,
                "update_installments",
                lambda case: replace(case, installments=installments),
            )

    def update_incurred_costs(
        self, case_id: UUID, incurred_costs: Sequence[IncurredCost]
    ) -> Case:
        """Replace the incurred-cost list and rebuild the cache."""
        with LogContext.bind(case_id=str(case_id), operation="update_incurred_costs"):
            incurred_costs = self._validated(validate_incurred_costs, incurred_costs)
            return self._mutate(
                case_id,
                "update_incurred_costs",
                lambda case: replace(case, incurred_costs=incurred_costs),
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reject(self, error: ValidationError) -> NoReturn:
        logger.info("case_mutation_rejected", extra={
            "error_code": error.code,
            "field": error.field,
            "reason": error.reason,
        })
        raise error

    def _validated(self, validator: Callable[[T], T], value: T) -> T:
        try:
            return validator(value)
        except ValidationError as e:
            self._reject(e)

    def _mutate(
        self,
        case_id: UUID,
        operation: str,
        apply: Callable[[Case], Case],
    ) -> Case:
        """
        Locked read-apply-recompute-save loop.

        ``apply`` must be a pure replacement of one sub-collection; it is
        re-run against the freshly loaded case after every conflict.
        """
        with LogContext.bind(case_id=str(case_id), operation=operation):
            logger.info("case_mutation_started")
            max_retries = self._settings.max_conflict_retries

            with self._locks.hold(case_id, self._settings.lock_timeout_seconds):
                attempt = 0
                while True:
                    attempt += 1
                    current = self._repository.load_case(case_id)
                    now = self._clock.now()
                    candidate = self._builder.apply_to_case(
                        replace(apply(current), updated_at=now), now
                    )
                    try:
                        saved = self._repository.save_case(candidate)
                    except OptimisticLockError as e:
                        logger.warning("case_version_conflict", extra={
                            "attempt": attempt,
                            "expected_version": e.expected_version,
                            "actual_version": e.actual_version,
                        })
                        if attempt > max_retries:
                            raise ConflictRetriesExhaustedError(
                                str(case_id), operation, attempt
                            ) from e
                        continue

                    logger.info("case_mutation_committed", extra={
                        "version": saved.version,
                        "attempts": attempt,
                        "net_final": str(saved.totals.net_final.amount),
                        "outstanding": str(saved.totals.outstanding.amount),
                        "overdue_count": saved.totals.overdue_count,
                    })
                    return saved
