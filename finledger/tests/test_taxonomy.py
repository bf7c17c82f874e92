"""Tests for the category taxonomy."""

from decimal import Decimal

from finledger.taxonomy import (
    CATEGORY_CODES,
    DEFAULT_RULES,
    OTHER,
    PARENT_GROUPS,
    UNGROUPED,
    group_by_parent,
    is_known_category,
    parent_category,
)


class TestTaxonomy:
    """Test taxonomy lookups."""

    def test_every_code_has_a_division(self):
        grouped = {code for codes in PARENT_GROUPS.values() for code in codes}

        assert set(CATEGORY_CODES) - grouped == {
            "SHOPPING_ONLINE",
            "TRANSFERS",
            "CASH_WITHDRAWAL",
            "GOVERNMENT",
            "INVESTMENTS",
        }

    def test_default_rules_use_known_codes(self):
        assert all(is_known_category(category) for _, category, _ in DEFAULT_RULES)

    def test_known_category(self):
        assert is_known_category("FOOD_GROCERIES") is True
        assert is_known_category(OTHER) is True
        assert is_known_category("GROCERIES") is False

    def test_parent_category(self):
        assert parent_category("TRANSPORT_FUEL") == "TRANSPORT"
        assert parent_category("TRANSFERS") == UNGROUPED


class TestGroupByParent:
    """Test rolling a breakdown up to divisions."""

    def test_sums_by_division(self):
        breakdown = {
            "FOOD_GROCERIES": Decimal("120.00"),
            "FOOD_SPECIALTY": Decimal("10.00"),
            "TRANSPORT_FUEL": Decimal("45.00"),
            "TRANSFERS": Decimal("5.00"),
        }

        assert group_by_parent(breakdown) == {
            "FOOD": Decimal("130.00"),
            UNGROUPED: Decimal("5.00"),
            "TRANSPORT": Decimal("45.00"),
        }
        assert list(group_by_parent(breakdown)) == ["FOOD", UNGROUPED, "TRANSPORT"]
