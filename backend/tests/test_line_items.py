"""Line item composition."""

from decimal import Decimal

import pytest

from salesdesk.domain import catalog, line_items
from salesdesk.domain.line_items import LineItem
from salesdesk.middleware.exceptions import ValidationError


@pytest.fixture
def catalog_item():
    return catalog.create_item("owner-1", {
        "description": "Consulting",
        "long_description": "Hourly consulting",
        "rate": "150",
        "tax1_rate": "10",
        "unit": "hour",
    })


@pytest.mark.unit
class TestFromCatalog:

    def test_clones_fields(self, catalog_item):
        line = line_items.from_catalog(catalog_item, quantity=3)
        assert line.description == "Consulting"
        assert line.rate == Decimal("150")
        assert line.tax1_rate == Decimal("10")
        assert line.unit == "hour"
        assert line.source_item_id == catalog_item.id
        assert line.amount == Decimal("450")

    def test_later_catalog_edits_do_not_leak(self, catalog_item):
        line = line_items.from_catalog(catalog_item)
        catalog.update_item(catalog_item, {"rate": "999"})
        assert line.rate == Decimal("150")


@pytest.mark.unit
class TestQuantity:

    @pytest.mark.parametrize("raw, expected", [
        (0, 1), (-4, 1), ("2.7", 2), (2.9, 2), ("", 1), (None, 1), ("7", 7),
    ])
    def test_coerced_and_clamped(self, raw, expected):
        assert line_items.coerce_quantity(raw) == expected

    @pytest.mark.parametrize("raw", ["two", True, "Infinity", "-inf", "NaN", float("inf")])
    def test_rejects_non_numbers(self, raw):
        with pytest.raises(ValidationError) as exc:
            line_items.coerce_quantity(raw)
        assert exc.value.field == "quantity"


@pytest.mark.unit
class TestCustomAndUpdate:

    def test_custom_ignores_supplied_amount(self):
        line = line_items.custom({
            "description": "Setup", "quantity": 2, "rate": "12.50", "amount": "9999",
        })
        assert line.amount == Decimal("25.00")

    def test_infinite_quantity_names_the_field(self):
        with pytest.raises(ValidationError) as exc:
            line_items.custom({"description": "x", "quantity": "Infinity", "rate": "1"})
        assert exc.value.field == "quantity"

        line = line_items.custom({"description": "x", "quantity": 2, "rate": "1"})
        with pytest.raises(ValidationError):
            line_items.update(line, "quantity", float("inf"))
        assert line.quantity == 2

    def test_update_recomputes_amount(self):
        line = line_items.custom({"description": "Setup", "quantity": 2, "rate": "10"})
        assert line_items.update(line, "quantity", 5).amount == Decimal("50")
        assert line_items.update(line, "rate", "$3.25").amount == Decimal("6.50")

    def test_negative_rate_leaves_line_unchanged(self):
        line = line_items.custom({"description": "Setup", "quantity": 2, "rate": "10"})
        with pytest.raises(ValidationError) as exc:
            line_items.update(line, "rate", -1)
        assert exc.value.field == "rate"
        assert line.rate == Decimal("10")
        assert line.amount == Decimal("20")

    def test_amount_is_not_editable(self):
        line = line_items.custom({"description": "Setup", "rate": "10"})
        with pytest.raises(ValidationError):
            line_items.update(line, "amount", "1")

    def test_dict_form_keeps_exact_decimals(self):
        line = line_items.custom({"description": "Widget", "quantity": 3, "rate": "0.1"})
        data = line.to_dict()
        assert data["rate"] == "0.1"
        assert data["amount"] == "0.3"
        assert LineItem.from_dict(data) == line
