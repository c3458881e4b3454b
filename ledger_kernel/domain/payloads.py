"""
Payloads -- turn loosely typed request data into ledger domain objects.

Controllers receive pricing, participants, installments and incurred costs
as JSON-ish mappings: camelCase keys, string or integer amounts, ISO date
strings, enum names.  These helpers parse them into the frozen domain
objects and then run the matching validator, so the caller gets one typed
``ValidationError`` with a field path for anything malformed.

Both ``snake_case`` and ``camelCase`` keys are accepted.  Floats are
accepted at this boundary only and converted through ``str()`` so that
``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.

Usage:
    from ledger_kernel.domain.payloads import parse_installments

    installments = parse_installments([
        {"seq": 1, "dueDate": "2024-03-01", "amount": "500", "paidAmount": "0"},
    ])
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Sequence, TypeVar

from ledger_kernel.domain.case import (
    CommissionEligibility,
    CommissionRule,
    CommissionType,
    IncurredCost,
    Installment,
    Participant,
    Pricing,
    Tax,
    TaxMode,
    TaxScope,
)
from ledger_kernel.domain.validation import (
    validate_incurred_costs,
    validate_installments,
    validate_participants,
    validate_pricing,
)
from ledger_kernel.exceptions import InvalidEnumValueError, ValidationError

E = TypeVar("E", bound=Enum)

_MISSING = object()


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _get(data: Mapping[str, Any], key: str, default: Any = _MISSING) -> Any:
    if key in data:
        return data[key]
    camel = _camel(key)
    if camel in data:
        return data[camel]
    return default


def _required(data: Mapping[str, Any], key: str, field: str) -> Any:
    value = _get(data, key)
    if value is _MISSING or value is None:
        raise ValidationError(f"{field}.{key}", "is required")
    return value


def _mapping(value: Any, field: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(field, f"expected an object, got {type(value).__name__}")
    return value


def _sequence(value: Any, field: str) -> Sequence[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValidationError(field, f"expected a list, got {type(value).__name__}")
    return value


def parse_decimal(value: Any, field: str) -> Decimal:
    """Parse an amount from Decimal, int, float or numeric string."""
    if isinstance(value, bool):
        raise ValidationError(field, "expected a number, got bool")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValidationError(field, f"not a number: {value!r}") from e
        if not parsed.is_finite():
            raise ValidationError(field, f"amount must be finite, got {value!r}")
        return parsed
    raise ValidationError(field, f"expected a number, got {type(value).__name__}")


def _optional_decimal(data: Mapping[str, Any], key: str, field: str) -> Decimal | None:
    value = _get(data, key, None)
    if value is None:
        return None
    return parse_decimal(value, f"{field}.{key}")


def parse_enum(enum_cls: type[E], value: Any, field: str) -> E:
    """Parse an enum member from its value or name, case-insensitively."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        for member in enum_cls:
            if candidate.upper() in (member.value.upper(), member.name):
                return member
    raise InvalidEnumValueError(field, value, tuple(m.value for m in enum_cls))


def parse_date(value: Any, field: str) -> date:
    """Parse a date from a date, datetime or ISO-8601 string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) > 10:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            return date.fromisoformat(text)
        except ValueError as e:
            raise ValidationError(field, f"not an ISO date: {value!r}") from e
    raise ValidationError(field, f"expected a date, got {type(value).__name__}")


def _optional_text(data: Mapping[str, Any], key: str) -> str | None:
    value = _get(data, key, None)
    if value is None:
        return None
    return str(value)


def parse_tax(data: Any, field: str) -> Tax:
    data = _mapping(data, field)
    scope = _get(data, "scope", None)
    return Tax(
        name=str(_required(data, "name", field)),
        mode=parse_enum(TaxMode, _required(data, "mode", field), f"{field}.mode"),
        value=parse_decimal(_required(data, "value", field), f"{field}.value"),
        scope=TaxScope.ON_BASE if scope is None else parse_enum(TaxScope, scope, f"{field}.scope"),
    )


def parse_pricing(data: Any, field: str = "pricing") -> Pricing:
    """Parse and validate a pricing quote."""
    data = _mapping(data, field)
    taxes = _sequence(_get(data, "taxes", []) or [], f"{field}.taxes")
    pricing = Pricing(
        base_amount=parse_decimal(_required(data, "base_amount", field), f"{field}.base_amount"),
        discounts=parse_decimal(_get(data, "discounts", 0) or 0, f"{field}.discounts"),
        add_ons=parse_decimal(_get(data, "add_ons", 0) or 0, f"{field}.add_ons"),
        taxes=tuple(
            parse_tax(tax, f"{field}.taxes[{index}]") for index, tax in enumerate(taxes)
        ),
    )
    return validate_pricing(pricing, field)


def parse_participant(data: Any, field: str) -> Participant:
    data = _mapping(data, field)
    commission_field = f"{field}.commission"
    commission = _mapping(_required(data, "commission", field), commission_field)
    eligible_on = _get(commission, "eligible_on", None)
    rule = CommissionRule(
        type=parse_enum(
            CommissionType, _required(commission, "type", commission_field),
            f"{commission_field}.type",
        ),
        value=parse_decimal(
            _required(commission, "value", commission_field), f"{commission_field}.value"
        ),
        cap_amount=_optional_decimal(commission, "cap_amount", commission_field),
        floor_amount=_optional_decimal(commission, "floor_amount", commission_field),
        eligible_on=(
            CommissionEligibility.AT_CLOSURE
            if eligible_on is None
            else parse_enum(CommissionEligibility, eligible_on, f"{commission_field}.eligible_on")
        ),
    )
    return Participant(
        employee_id=str(_required(data, "employee_id", field)),
        role=_optional_text(data, "role"),
        commission=rule,
    )


def parse_participants(items: Any, field: str = "participants") -> tuple[Participant, ...]:
    """Parse and validate a full participant list."""
    items = _sequence(items, field)
    participants = [parse_participant(item, f"{field}[{i}]") for i, item in enumerate(items)]
    return validate_participants(participants, field)


def parse_installment(data: Any, field: str) -> Installment:
    data = _mapping(data, field)
    seq = _required(data, "seq", field)
    if isinstance(seq, str) and seq.strip().isdigit():
        seq = int(seq)
    # status is derived; whatever the caller sent is discarded on recompute
    return Installment(
        seq=seq,
        due_date=parse_date(_required(data, "due_date", field), f"{field}.due_date"),
        amount=parse_decimal(_required(data, "amount", field), f"{field}.amount"),
        paid_amount=parse_decimal(_get(data, "paid_amount", 0) or 0, f"{field}.paid_amount"),
        notes=_optional_text(data, "notes"),
    )


def parse_installments(items: Any, field: str = "installments") -> tuple[Installment, ...]:
    """Parse and validate a full installment list."""
    items = _sequence(items, field)
    installments = [parse_installment(item, f"{field}[{i}]") for i, item in enumerate(items)]
    return validate_installments(installments, field)


def parse_incurred_cost(data: Any, field: str) -> IncurredCost:
    data = _mapping(data, field)
    return IncurredCost(
        date=parse_date(_required(data, "date", field), f"{field}.date"),
        category=str(_required(data, "category", field)),
        description=_optional_text(data, "description"),
        amount=parse_decimal(_required(data, "amount", field), f"{field}.amount"),
    )


def parse_incurred_costs(items: Any, field: str = "incurred_costs") -> tuple[IncurredCost, ...]:
    """Parse and validate a full incurred-cost list."""
    items = _sequence(items, field)
    costs = [parse_incurred_cost(item, f"{field}[{i}]") for i, item in enumerate(items)]
    return validate_incurred_costs(costs, field)
