"""
Currencies a case may be quoted in, and the minor unit each rounds to.

Totals round once to the minor unit of the case currency, so VND and JPY
totals are whole numbers while BHD keeps three places.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    decimal_places: int

    @property
    def quantum(self) -> Decimal:
        """Smallest representable amount, for ``Decimal.quantize``."""
        return Decimal(1).scaleb(-self.decimal_places)


_CODES_BY_MINOR_UNITS: dict[int, tuple[str, ...]] = {
    0: ("VND", "JPY", "KRW", "CLP", "ISK", "XAF", "XOF"),
    2: (
        "USD", "EUR", "GBP", "CHF", "CAD", "AUD", "NZD", "SGD", "HKD", "CNY",
        "THB", "MYR", "PHP", "IDR", "INR", "SEK", "NOK", "DKK", "PLN", "MXN",
        "BRL", "ZAR", "AED",
    ),
    3: ("BHD", "JOD", "KWD", "OMR", "TND"),
}


def _normalize(code: object) -> str | None:
    if not isinstance(code, str) or not code.strip():
        return None
    return code.strip().upper()


class CurrencyRegistry:
    """Lookup of supported ISO 4217 codes."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        code: CurrencyInfo(code, places)
        for places, codes in _CODES_BY_MINOR_UNITS.items()
        for code in codes
    }

    @classmethod
    def get_info(cls, code: object) -> CurrencyInfo | None:
        normalized = _normalize(code)
        return cls._CURRENCIES.get(normalized) if normalized else None

    @classmethod
    def is_valid(cls, code: object) -> bool:
        return cls.get_info(code) is not None

    @classmethod
    def get_decimal_places(cls, code: object) -> int:
        """Minor-unit places. Raises ValueError for an unsupported code."""
        info = cls.get_info(code)
        if info is None:
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")
        return info.decimal_places
