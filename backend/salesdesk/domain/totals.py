"""Document totals.

    subtotal = Σ line.amount                       (exact)
    discount = subtotal × clamp(value, 0, 100) / 100   for percent
             = min(value, subtotal)                    for fixed
    tax      = Σ line.amount × (tax1 + tax2) / 100     only with apply_line_taxes
    total    = round_half_up(subtotal − discount + tax, currency minor unit)

Only the total is rounded.  Tax is computed on undiscounted line amounts.
"""

from dataclasses import dataclass, replace
from decimal import Decimal

from salesdesk.domain.money import HUNDRED, ZERO, round_to_currency, to_cents
from salesdesk.middleware.exceptions import ConsistencyError

PERCENT = "percent"
FIXED = "fixed"
DISCOUNT_TYPES = (PERCENT, FIXED)


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(
    items,
    discount_type: str,
    discount_value: Decimal,
    currency: str,
    apply_line_taxes: bool = False,
) -> Totals:
    subtotal = sum((line.amount for line in items), ZERO)

    if discount_type == FIXED:
        discount = min(max(discount_value, ZERO), subtotal)
    else:
        pct = min(max(discount_value, ZERO), HUNDRED)
        discount = subtotal * pct / HUNDRED

    tax = ZERO
    if apply_line_taxes:
        tax = sum((line.tax for line in items), ZERO)

    total = round_to_currency(subtotal - discount + tax, currency)
    return Totals(subtotal=subtotal, discount=discount, tax=tax, total=total)


def recompute(document):
    """Return `document` with subtotal, discount, tax and total re-derived.

    Pure and idempotent; nothing on the input is trusted except the
    items and the discount settings.
    """
    totals = compute_totals(
        document.items,
        document.discount_type,
        document.discount_value,
        document.currency,
        document.apply_line_taxes,
    )
    return replace(
        document,
        subtotal=totals.subtotal,
        discount=totals.discount,
        tax=totals.tax,
        total=totals.total,
    )


def verify_totals(document, stored: dict) -> None:
    """Raise ConsistencyError if stored totals disagree with a re-derivation.

    `stored` maps any of subtotal / discount / tax / total to the value
    found in storage (two decimal places).  Missing keys are not checked.
    """
    derived = recompute(document)
    mismatches = {}
    for name in ("subtotal", "discount", "tax", "total"):
        if name not in stored or stored[name] is None:
            continue
        expected = to_cents(getattr(derived, name))
        actual = to_cents(Decimal(str(stored[name])))
        if expected != actual:
            mismatches[name] = (str(actual), str(expected))
    if mismatches:
        raise ConsistencyError(document.id, mismatches)
