"""Item catalog: reusable, owner-scoped line templates.

Catalog entries are validated once here, on the way in.  Line items are
cloned from them (see `line_items.from_catalog`), so editing an entry
never touches documents that already used it.
"""

import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal

from salesdesk.domain.money import ZERO, parse_non_negative_money, parse_percent
from salesdesk.middleware.exceptions import ValidationError


@dataclass(frozen=True)
class CatalogItem:
    owner_id: str
    description: str
    rate: Decimal
    tax1_rate: Decimal = ZERO
    tax2_rate: Decimal = ZERO
    long_description: str | None = None
    unit: str | None = None
    group_name: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass(frozen=True)
class RejectedRow:
    """One import row that failed validation."""
    row: int                # 1-based position in the submitted batch
    data: dict
    reason: str


# ── Column-name normalization ───────────────────────────────

# Keys are compared after lowercasing and dropping spaces, "_" and "-"
FIELD_ALIASES: dict[str, str] = {
    "description": "description",
    "item": "description",
    "itemdescription": "description",
    "longdescription": "long_description",
    "longdesc": "long_description",
    "rate": "rate",
    "price": "rate",
    "unitprice": "rate",
    "tax": "tax1_rate",
    "tax1": "tax1_rate",
    "tax1rate": "tax1_rate",
    "tax2": "tax2_rate",
    "tax2rate": "tax2_rate",
    "unit": "unit",
    "group": "group_name",
    "groupname": "group_name",
}

EDITABLE_FIELDS = (
    "description", "long_description", "rate",
    "tax1_rate", "tax2_rate", "unit", "group_name",
)


def _squash(key: str) -> str:
    return "".join(ch for ch in str(key).lower() if ch not in " _-")


def normalize_fields(raw: dict) -> dict:
    """Map column-name variants (``Rate``, ``Group Name``, ``groupName``...)
    onto canonical field names.  Unknown columns are dropped."""
    fields: dict = {}
    for key, value in raw.items():
        canonical = FIELD_ALIASES.get(_squash(key))
        if canonical is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        fields[canonical] = value
    return fields


def _optional_text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _validated(fields: dict) -> dict:
    description = _optional_text(fields.get("description"))
    if not description:
        raise ValidationError("description", "is required")
    return {
        "description": description,
        "long_description": _optional_text(fields.get("long_description")),
        "rate": parse_non_negative_money(fields.get("rate"), "rate"),
        "tax1_rate": parse_percent(fields.get("tax1_rate"), "tax1_rate"),
        "tax2_rate": parse_percent(fields.get("tax2_rate"), "tax2_rate"),
        "unit": _optional_text(fields.get("unit")),
        "group_name": _optional_text(fields.get("group_name")),
    }


# ── Operations ──────────────────────────────────────────────

def create_item(owner_id: str, fields: dict) -> CatalogItem:
    """Validate `fields` and build a catalog entry owned by `owner_id`."""
    return CatalogItem(owner_id=owner_id, **_validated(normalize_fields(fields)))


def update_item(item: CatalogItem, fields: dict) -> CatalogItem:
    """Return a copy of `item` with `fields` applied and re-validated."""
    current = {name: getattr(item, name) for name in EDITABLE_FIELDS}
    current.update(normalize_fields(fields))
    return replace(item, **_validated(current))


def prepare_import(
    owner_id: str, rows: list[dict],
) -> tuple[list[CatalogItem], list[RejectedRow]]:
    """Validate each row independently; bad rows never sink the batch."""
    imported: list[CatalogItem] = []
    rejected: list[RejectedRow] = []
    for position, raw in enumerate(rows, start=1):
        try:
            imported.append(create_item(owner_id, raw))
        except ValidationError as exc:
            rejected.append(RejectedRow(row=position, data=dict(raw), reason=exc.message))
    return imported, rejected


def matches(item: CatalogItem, search: str | None = None, group: str | None = None) -> bool:
    """Filter predicate used by catalog listings."""
    if group and (item.group_name or "").lower() != group.lower():
        return False
    if search:
        needle = search.lower()
        haystack = " ".join(
            filter(None, (item.description, item.long_description, item.group_name))
        ).lower()
        if needle not in haystack:
            return False
    return True
