"""
Typed Exception Hierarchy for the Case Ledger.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (controllers, schedulers, import jobs) must react to
failures precisely: a validation failure becomes a field-level message, a
conflict becomes a retry prompt, a missing case becomes a 404.  Parsing
message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (field paths, case ids, versions)

Example:
    try:
        service.update_installments(case_id, installments)
    except ValidationError as e:
        return {"error": e.code, "field": e.field, "message": e.reason}
    except ConflictError as e:
        return {"error": e.code, "retry": True}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CaseLedgerError (base)
    |
    +-- ValidationError
    |   +-- DuplicateInstallmentSeqError
    |   +-- PaidAmountExceedsAmountError
    |   +-- NegativeAmountError
    |   +-- InvalidEnumValueError
    |   +-- NegativePricingBaseError
    |   +-- InvalidCurrencyError
    |
    +-- NotFoundError
    |   +-- CaseNotFoundError
    |
    +-- CaseAlreadyExistsError
    |
    +-- ConflictError
        +-- OptimisticLockError
        +-- CaseLockTimeoutError
        +-- ConflictRetriesExhaustedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                          | When Raised
------------|-------------------------------|-------------------------------------
Validation  | VALIDATION_ERROR              | Malformed sub-collection input
            | DUPLICATE_INSTALLMENT_SEQ     | Two installments share a seq
            | PAID_EXCEEDS_AMOUNT           | paid_amount > amount
            | NEGATIVE_AMOUNT               | Amount/value below zero
            | INVALID_ENUM_VALUE            | Unknown mode/scope/type/status
            | NEGATIVE_PRICING_BASE         | base - discounts + add_ons < 0
            | INVALID_CURRENCY              | Not a valid ISO 4217 code
------------|-------------------------------|-------------------------------------
Not found   | CASE_NOT_FOUND                | Case id unknown to persistence
------------|-------------------------------|-------------------------------------
Lifecycle   | CASE_ALREADY_EXISTS           | Duplicate case code or id
------------|-------------------------------|-------------------------------------
Conflict    | OPTIMISTIC_LOCK_CONFLICT      | Stored version moved since read
            | CASE_LOCK_TIMEOUT             | Per-case lock not acquired in time
            | CONFLICT_RETRIES_EXHAUSTED    | Re-read/recompute retries used up

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Domain exceptions inherit from Exception (not ValueError) so they are
   catchable as a group without mixing in programming errors.
2. ``code`` is a class attribute so middleware can map codes without
   instantiating anything.
3. ConflictError subclasses are all retryable by the caller; nothing in the
   core merges concurrent writes.
"""


class CaseLedgerError(Exception):
    """
    Base exception for all case ledger errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CASE_LEDGER_ERROR"


# Validation-related exceptions


class ValidationError(CaseLedgerError):
    """Sub-collection input is malformed or violates an invariant."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class DuplicateInstallmentSeqError(ValidationError):
    """Two installments in one list share the same seq."""

    code: str = "DUPLICATE_INSTALLMENT_SEQ"

    def __init__(self, field: str, seq: int):
        self.seq = seq
        super().__init__(field, f"duplicate installment seq {seq}")


class PaidAmountExceedsAmountError(ValidationError):
    """Installment paid_amount is greater than its amount."""

    code: str = "PAID_EXCEEDS_AMOUNT"

    def __init__(self, field: str, paid_amount: str, amount: str):
        self.paid_amount = paid_amount
        self.amount = amount
        super().__init__(
            field, f"paid amount {paid_amount} exceeds installment amount {amount}"
        )


class NegativeAmountError(ValidationError):
    """A monetary amount or rule value is below zero."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, field: str, value: str):
        self.value = value
        super().__init__(field, f"must not be negative, got {value}")


class InvalidEnumValueError(ValidationError):
    """An enumerated field carries a value outside its closed set."""

    code: str = "INVALID_ENUM_VALUE"

    def __init__(self, field: str, value: object, allowed: tuple[str, ...]):
        self.value = value
        self.allowed = allowed
        super().__init__(
            field, f"unknown value {value!r}, expected one of {', '.join(allowed)}"
        )


class NegativePricingBaseError(ValidationError):
    """Pricing quote nets to a negative pre-tax base."""

    code: str = "NEGATIVE_PRICING_BASE"

    def __init__(self, field: str, pre_tax_base: str):
        self.pre_tax_base = pre_tax_base
        super().__init__(
            field,
            f"base amount less discounts plus add-ons is negative ({pre_tax_base})",
        )


class InvalidCurrencyError(ValidationError):
    """Currency code is not a valid ISO 4217 code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, field: str, currency: object):
        self.currency = currency
        super().__init__(field, f"invalid ISO 4217 currency code: {currency!r}")


# Lookup-related exceptions


class NotFoundError(CaseLedgerError):
    """Base exception for lookups that found nothing."""

    code: str = "NOT_FOUND"


class CaseNotFoundError(NotFoundError):
    """Case id is unknown to the persistence collaborator."""

    code: str = "CASE_NOT_FOUND"

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Case not found: {case_id}")


class CaseAlreadyExistsError(CaseLedgerError):
    """A case with the same id or business code already exists."""

    code: str = "CASE_ALREADY_EXISTS"

    def __init__(self, case_code: str):
        self.case_code = case_code
        super().__init__(f"Case already exists: {case_code}")


# Concurrency-related exceptions


class ConflictError(CaseLedgerError):
    """Base exception for concurrent-write conflicts. Always retryable."""

    code: str = "CONFLICT"


class OptimisticLockError(ConflictError):
    """Stored case version differs from the version the writer read."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, case_id: str, expected_version: int, actual_version: int | None):
        self.case_id = case_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on case {case_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


class CaseLockTimeoutError(ConflictError):
    """Per-case critical section could not be entered within the bound."""

    code: str = "CASE_LOCK_TIMEOUT"

    def __init__(self, case_id: str, timeout_seconds: float):
        self.case_id = case_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Could not lock case {case_id} within {timeout_seconds}s"
        )


class ConflictRetriesExhaustedError(ConflictError):
    """Every re-read/recompute attempt lost the race to another writer."""

    code: str = "CONFLICT_RETRIES_EXHAUSTED"

    def __init__(self, case_id: str, operation: str, attempts: int):
        self.case_id = case_id
        self.operation = operation
        self.attempts = attempts
        super().__init__(
            f"{operation} on case {case_id} conflicted on all {attempts} attempts"
        )
