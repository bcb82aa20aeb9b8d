"""Tests for the Product, Subgroup and Category entity models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from product_inventory import (
    Category,
    DuplicateEntityError,
    InvalidEntityError,
    Product,
    Subgroup,
)
from product_inventory.models import (
    fit_text,
    format_timestamp,
    parse_timestamp,
    to_float32,
)


FIXED_TIME = datetime(2024, 1, 2, 3, 4, 5)


# ============================================================================
# Text Helpers
# ============================================================================


class TestFitText:
    """Tests for bounded text normalization."""

    def test_short_text_is_stripped(self) -> None:
        """Test that surrounding whitespace is removed."""
        assert fit_text("  Laptops \n", 50) == "Laptops"

    def test_none_becomes_empty(self) -> None:
        """Test that a missing value becomes an empty string."""
        assert fit_text(None, 50) == ""

    def test_overlong_text_is_truncated(self) -> None:
        """Test truncation to size - 1 bytes."""
        assert fit_text("A" * 150, 100) == "A" * 99

    def test_multibyte_character_is_not_split(self) -> None:
        """Test that a character cut in half by the byte limit is dropped."""
        # 60 two-byte characters, only 99 bytes fit: 49 whole characters
        assert fit_text("é" * 60, 100) == "é" * 49

    def test_non_string_rejected(self) -> None:
        """Test that non-string values are rejected."""
        with pytest.raises(ValueError):
            fit_text(42, 20)


class TestTimestampHelpers:
    """Tests for timestamp formatting."""

    def test_format_and_parse(self) -> None:
        """Test the stored timestamp text format."""
        assert format_timestamp(FIXED_TIME) == "2024-01-02 03:04:05"
        assert parse_timestamp("2024-01-02 03:04:05") == FIXED_TIME

    def test_parse_rejects_other_formats(self) -> None:
        """Test that malformed timestamps raise ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp("02/01/2024")

    def test_to_float32_rounds(self) -> None:
        """Test rounding to single precision."""
        assert to_float32(999.0) == 999.0
        assert to_float32(9.99) != 9.99
        assert to_float32(9.99) == pytest.approx(9.99, rel=1e-6)

    def test_to_float32_rejects_overflow(self) -> None:
        """Test that values outside the float32 range are rejected."""
        with pytest.raises(ValueError):
            to_float32(1e300)


# ============================================================================
# Product Tests
# ============================================================================


class TestProductCreate:
    """Tests for Product.create validation."""

    def test_create_populates_fields(self) -> None:
        """Test a fully specified product."""
        product = Product.create(1, 2, "LAP-001", "ThinkPad X1", "Business ultrabook", 999.0, 3)

        assert product.id == 1
        assert product.subgroup_id == 2
        assert product.code == "LAP-001"
        assert product.name == "ThinkPad X1"
        assert product.description == "Business ultrabook"
        assert product.price == 999.0
        assert product.quantity == 3
        assert product.total_value == 2997.0
        assert product.is_valid()

    def test_create_stamps_both_timestamps(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that created_at and updated_at are the same whole-second time."""
        monkeypatch.setattr("product_inventory.models.now", lambda: FIXED_TIME)

        product = Product.create(1, 1, None, "Widget")

        assert product.created_at == FIXED_TIME
        assert product.updated_at == FIXED_TIME

    def test_timestamps_have_no_microseconds(self) -> None:
        """Test that timestamps are truncated to seconds."""
        product = Product(id=1, subgroup_id=1, name="Widget", created_at=datetime(2024, 1, 1, 12, 0, 0, 123456))
        assert product.created_at.microsecond == 0
        assert product.updated_at.microsecond == 0

    def test_optional_text_defaults_to_empty(self) -> None:
        """Test that absent code and description become empty strings."""
        product = Product.create(1, 1, None, "Widget", None)
        assert product.code == ""
        assert product.description == ""

    def test_zero_price_and_quantity_accepted(self) -> None:
        """Test the lower boundary of price and quantity."""
        product = Product.create(1, 1, None, "Freebie", price=0.0, quantity=0)
        assert product.price == 0.0
        assert product.quantity == 0

    def test_negative_price_rejected(self) -> None:
        """Test that a price of -0.01 is rejected."""
        with pytest.raises(ValidationError):
            Product.create(1, 1, None, "Widget", price=-0.01)

    def test_negative_quantity_rejected(self) -> None:
        """Test that a quantity of -1 is rejected."""
        with pytest.raises(ValidationError):
            Product.create(1, 1, None, "Widget", quantity=-1)

    def test_non_finite_price_rejected(self) -> None:
        """Test that NaN and infinity are rejected."""
        with pytest.raises(ValidationError):
            Product.create(1, 1, None, "Widget", price=float("nan"))
        with pytest.raises(ValidationError):
            Product.create(1, 1, None, "Widget", price=float("inf"))

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, name: str) -> None:
        """Test that empty and whitespace-only names are rejected."""
        with pytest.raises(ValidationError):
            Product.create(1, 1, None, name)

    @pytest.mark.parametrize("product_id", [0, -1])
    def test_non_positive_id_rejected(self, product_id: int) -> None:
        """Test that ids must be positive."""
        with pytest.raises(ValidationError):
            Product.create(product_id, 1, None, "Widget")

    def test_overlong_fields_truncated(self) -> None:
        """Test silent truncation of every bounded text field."""
        product = Product.create(1, 1, "C" * 30, "N" * 150, "D" * 250)
        assert product.code == "C" * 19
        assert product.name == "N" * 99
        assert product.description == "D" * 199

    def test_price_stored_as_float32(self) -> None:
        """Test that prices are rounded to the stored precision."""
        product = Product.create(1, 1, None, "Paper", price=9.99)
        assert product.price == to_float32(9.99)

    def test_unknown_field_rejected(self) -> None:
        """Test that extra fields are not accepted."""
        with pytest.raises(ValidationError):
            Product(id=1, subgroup_id=1, name="Widget", colour="red")


class TestProductUpdates:
    """Tests for per-field product updates."""

    def test_update_refreshes_updated_at(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a successful update touches updated_at only."""
        product = Product.create(1, 1, None, "Widget", price=5.0, quantity=1)
        created_at = product.created_at
        monkeypatch.setattr("product_inventory.models.now", lambda: FIXED_TIME)

        product.update_quantity(7)

        assert product.quantity == 7
        assert product.updated_at == FIXED_TIME
        assert product.created_at == created_at

    def test_rejected_update_keeps_previous_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a failed update changes nothing."""
        product = Product.create(1, 1, None, "Widget", price=5.0)
        updated_at = product.updated_at
        monkeypatch.setattr("product_inventory.models.now", lambda: FIXED_TIME)

        with pytest.raises(ValidationError):
            product.update_price(-1.0)
        with pytest.raises(ValidationError):
            product.update_name("   ")

        assert product.price == 5.0
        assert product.name == "Widget"
        assert product.updated_at == updated_at

    def test_update_text_is_truncated(self) -> None:
        """Test that updates go through the same text normalization."""
        product = Product.create(1, 1, None, "Widget")
        product.update_code("  X" * 20)
        product.update_description(None)

        assert len(product.code.encode("utf-8")) <= 19
        assert product.description == ""


# ============================================================================
# Subgroup and Category Tests
# ============================================================================


class TestSubgroup:
    """Tests for Subgroup ownership of products."""

    def test_create(self) -> None:
        """Test a new subgroup is empty and valid."""
        subgroup = Subgroup.create(1, 1, "Laptops", "Portable computers")

        assert subgroup.product_count == 0
        assert subgroup.products.capacity == 10
        assert subgroup.is_valid()

    def test_blank_name_rejected(self) -> None:
        """Test that a subgroup needs a name."""
        with pytest.raises(ValidationError):
            Subgroup.create(1, 1, " ")

    def test_add_product_checks_back_reference(self) -> None:
        """Test that a product pointing at another subgroup is rejected."""
        subgroup = Subgroup.create(1, 1, "Laptops")

        with pytest.raises(InvalidEntityError):
            subgroup.add_product(Product.create(1, 2, None, "Widget"))
        assert subgroup.product_count == 0

    def test_totals(self) -> None:
        """Test quantity and value aggregation."""
        subgroup = Subgroup.create(1, 1, "Laptops")
        subgroup.add_product(Product.create(1, 1, None, "A", price=10.0, quantity=2))
        subgroup.add_product(Product.create(2, 1, None, "B", price=5.0, quantity=4))

        assert subgroup.product_count == 2
        assert subgroup.total_quantity == 6
        assert subgroup.total_value == 40.0

    def test_release_clears_products(self) -> None:
        """Test that releasing a subgroup releases its products."""
        subgroup = Subgroup.create(1, 1, "Laptops")
        subgroup.add_product(Product.create(1, 1, None, "A"))

        subgroup.release()

        assert subgroup.product_count == 0


class TestCategory:
    """Tests for Category ownership of subgroups."""

    def test_subgroup_names_unique_case_insensitive(self) -> None:
        """Test that sibling subgroup names cannot collide ignoring case."""
        category = Category.create(1, "Electronics")
        category.add_subgroup(Subgroup.create(1, 1, "Laptops"))

        with pytest.raises(DuplicateEntityError):
            category.add_subgroup(Subgroup.create(2, 1, "LAPTOPS"))
        assert category.subgroup_count == 1

    def test_same_subgroup_name_in_other_category(self) -> None:
        """Test that names only need to be unique within one category."""
        first = Category.create(1, "Electronics")
        second = Category.create(2, "Office")

        first.add_subgroup(Subgroup.create(1, 1, "Misc"))
        second.add_subgroup(Subgroup.create(2, 2, "Misc"))

        assert first.subgroup_count == second.subgroup_count == 1

    def test_find_subgroup_by_name(self) -> None:
        """Test lookup by name ignores case and surrounding whitespace."""
        category = Category.create(1, "Electronics")
        laptops = category.add_subgroup(Subgroup.create(1, 1, "Laptops"))

        assert category.find_subgroup_by_name("  laptops ") is laptops
        assert category.find_subgroup_by_name("Phones") is None

    def test_add_subgroup_checks_back_reference(self) -> None:
        """Test that a subgroup pointing at another category is rejected."""
        category = Category.create(1, "Electronics")

        with pytest.raises(InvalidEntityError):
            category.add_subgroup(Subgroup.create(1, 2, "Laptops"))

    def test_counts_and_totals(self) -> None:
        """Test aggregation over subgroups."""
        category = Category.create(1, "Electronics")
        laptops = category.add_subgroup(Subgroup.create(1, 1, "Laptops"))
        phones = category.add_subgroup(Subgroup.create(2, 1, "Phones"))
        laptops.add_product(Product.create(1, 1, None, "X1", price=999.0, quantity=3))
        phones.add_product(Product.create(2, 2, None, "Pixel", price=500.0, quantity=1))

        assert category.subgroup_count == 2
        assert category.product_count == 2
        assert category.total_quantity == 4
        assert category.total_value == 3497.0

    def test_update_name_validates(self) -> None:
        """Test that renaming to a blank name fails and keeps the old name."""
        category = Category.create(1, "Electronics")

        with pytest.raises(ValidationError):
            category.update_name("")
        category.update_description("Devices")

        assert category.name == "Electronics"
        assert category.description == "Devices"
