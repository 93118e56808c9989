"""Fixed-point money and percentage parsing.

All monetary values in the domain are `decimal.Decimal`.  Floats are
accepted at the edges but converted through their shortest string form,
so ``12.1`` becomes ``Decimal("12.1")``, never the binary expansion.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from salesdesk.middleware.exceptions import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Rates and percentages keep at most this many decimal places
RATE_EXPONENT = Decimal("0.0001")

# ISO 4217 minor units; anything unlisted rounds to cents
MINOR_UNITS: dict[str, int] = {
    "USD": 2, "EUR": 2, "GBP": 2, "INR": 2, "ZAR": 2, "AUD": 2, "CAD": 2,
    "JPY": 0, "KRW": 0, "VND": 0,
    "BHD": 3, "KWD": 3, "OMR": 3,
}
DEFAULT_MINOR_UNITS = 2

_STRIP_RE = re.compile(r"[\s,$€£₹¥]")


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(field, "must be a number", value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, str):
        cleaned = _STRIP_RE.sub("", value)
        if not cleaned:
            raise ValidationError(field, "is required")
        try:
            result = Decimal(cleaned)
        except InvalidOperation:
            raise ValidationError(field, "must be a number", value)
    elif value is None:
        raise ValidationError(field, "is required")
    else:
        raise ValidationError(field, "must be a number", value)

    if not result.is_finite():
        raise ValidationError(field, "must be a finite number", value)
    return result


def _limit_places(value: Decimal) -> Decimal:
    if value.as_tuple().exponent < RATE_EXPONENT.as_tuple().exponent:
        return value.quantize(RATE_EXPONENT, rounding=ROUND_HALF_UP)
    return value


def parse_money(value, field: str = "rate") -> Decimal:
    """Parse a monetary input such as ``"$1,200.50"``, ``12.5`` or ``Decimal``.

    Currency symbols, thousands separators and whitespace are stripped.
    The sign is preserved; callers decide whether negatives are allowed.
    """
    return _limit_places(_to_decimal(value, field))


def parse_non_negative_money(value, field: str = "rate") -> Decimal:
    amount = parse_money(value, field)
    if amount < ZERO:
        raise ValidationError(field, "must be >= 0", value)
    return amount


def parse_percent(value, field: str = "tax1_rate") -> Decimal:
    """Parse a percentage such as ``"5%"``, ``"7.5"`` or ``10``.

    Empty input means no rate (0).  The result must lie in [0, 100].
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return ZERO
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    pct = _limit_places(_to_decimal(value, field))
    if pct < ZERO or pct > HUNDRED:
        raise ValidationError(field, "must be between 0 and 100", value)
    return pct


def minor_unit_exponent(currency: str) -> Decimal:
    places = MINOR_UNITS.get((currency or "").upper(), DEFAULT_MINOR_UNITS)
    return Decimal(1).scaleb(-places)


def round_to_currency(amount: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return amount.quantize(minor_unit_exponent(currency), rounding=ROUND_HALF_UP)


def to_cents(amount: Decimal) -> Decimal:
    """Two-place display value, as stored in `Numeric(14, 2)` columns."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
