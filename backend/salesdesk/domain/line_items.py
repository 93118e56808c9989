"""Line item composition.

A LineItem is immutable; every edit returns a new line with `amount`
recomputed as ``quantity × rate`` (exact, unrounded).
"""

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation

from salesdesk.domain.catalog import CatalogItem
from salesdesk.domain.money import ZERO, parse_non_negative_money, parse_percent
from salesdesk.middleware.exceptions import ValidationError

EDITABLE_FIELDS = frozenset({
    "description", "long_description", "quantity", "rate",
    "tax1_rate", "tax2_rate", "unit",
})


@dataclass(frozen=True)
class LineItem:
    description: str
    quantity: int
    rate: Decimal
    tax1_rate: Decimal = ZERO
    tax2_rate: Decimal = ZERO
    long_description: str | None = None
    unit: str | None = None
    # Catalog entry this line was cloned from, for display only
    source_item_id: str | None = None
    amount: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "amount", self.rate * self.quantity)

    @property
    def tax(self) -> Decimal:
        return self.amount * (self.tax1_rate + self.tax2_rate) / 100

    def to_dict(self) -> dict:
        """JSON-safe form; decimals travel as exact strings."""
        return {
            "description": self.description,
            "long_description": self.long_description,
            "quantity": self.quantity,
            "rate": str(self.rate),
            "tax1_rate": str(self.tax1_rate),
            "tax2_rate": str(self.tax2_rate),
            "unit": self.unit,
            "source_item_id": self.source_item_id,
            "amount": str(self.amount),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        return custom(data)


def coerce_quantity(value) -> int:
    """Integer quantity, truncated, clamped to at least 1.

    Zero and negative inputs become 1 rather than errors, so re-applying
    the same edit is always safe.
    """
    if isinstance(value, bool):
        raise ValidationError("quantity", "must be a whole number", value)
    if value is None or (isinstance(value, str) and not value.strip()):
        return 1
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("quantity", "must be a whole number", value)
    if not parsed.is_finite():
        raise ValidationError("quantity", "must be a whole number", value)
    return max(int(parsed), 1)


def _text(value, field: str, required: bool = False) -> str | None:
    text = str(value).strip() if value is not None else ""
    if required and not text:
        raise ValidationError(field, "is required")
    return text or None


def from_catalog(item: CatalogItem, quantity=1) -> LineItem:
    """Clone a catalog entry into a line; later catalog edits do not leak in."""
    return LineItem(
        description=item.description,
        long_description=item.long_description,
        quantity=coerce_quantity(quantity),
        rate=item.rate,
        tax1_rate=item.tax1_rate,
        tax2_rate=item.tax2_rate,
        unit=item.unit,
        source_item_id=item.id,
    )


def custom(fields: dict) -> LineItem:
    """Build an ad-hoc line.  Any `amount` in `fields` is ignored."""
    return LineItem(
        description=_text(fields.get("description"), "description", required=True),
        long_description=_text(fields.get("long_description"), "long_description"),
        quantity=coerce_quantity(fields.get("quantity", 1)),
        rate=parse_non_negative_money(fields.get("rate"), "rate"),
        tax1_rate=parse_percent(fields.get("tax1_rate"), "tax1_rate"),
        tax2_rate=parse_percent(fields.get("tax2_rate"), "tax2_rate"),
        unit=_text(fields.get("unit"), "unit"),
        source_item_id=fields.get("source_item_id"),
    )


def update(line: LineItem, field: str, value) -> LineItem:
    """Return `line` with one field changed.  On error `line` is untouched."""
    if field not in EDITABLE_FIELDS:
        raise ValidationError(field, "is not an editable line field")

    if field == "quantity":
        coerced = coerce_quantity(value)
    elif field == "rate":
        coerced = parse_non_negative_money(value, "rate")
    elif field in ("tax1_rate", "tax2_rate"):
        coerced = parse_percent(value, field)
    else:
        coerced = _text(value, field, required=(field == "description"))

    return replace(line, **{field: coerced})
