"""Tests for typed parameterized join declarations and reference binding."""

import pytest

from joinscope.parameterized.declarations import (
    ParameterDecl,
    ParameterizedJoin,
    accepts,
    find_placeholders,
)
from joinscope.parameterized.reference_parser import parse_field_reference


@pytest.fixture
def products_join():
    return ParameterizedJoin(
        name="products",
        path="products",
        parameters=(
            ParameterDecl("category", "string", required=True),
            ParameterDecl("min_price", "decimal", default="0"),
            ParameterDecl("since", "date"),
        ),
        fields={"name": "string", "price": "decimal"},
        join_condition="products.category = :category AND products.price >= :min_price",
    )


def bind(join, reference):
    return join.bind(parse_field_reference(reference).reference)


class TestParameterizedJoin:
    """Tests for ParameterizedJoin invariants."""

    def test_duplicate_parameters_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            ParameterizedJoin(
                name="products", path="products",
                parameters=(ParameterDecl("category", "string"), ParameterDecl("category", "integer")),
            )

    def test_unknown_placeholder_rejected(self):
        with pytest.raises(ValueError, match="missing"):
            ParameterizedJoin(
                name="products", path="products",
                parameters=(ParameterDecl("category", "string"),),
                join_condition="category = :category AND region = :missing",
            )

    def test_placeholders(self, products_join):
        assert products_join.placeholders == ["category", "min_price"]
        assert products_join.required_count == 1
        assert find_placeholders("a = :x OR b = :x OR c::text = :y") == ["x", "y"]


class TestBinding:
    """Tests for binding parsed references to a declaration."""

    def test_bind_fills_defaults(self, products_join):
        result = bind(products_join, "products:electronics.name")

        assert result.ok
        assert result.values == {"category": "electronics", "min_price": "0", "since": None}

    def test_bind_all_parameters(self, products_join):
        result = bind(products_join, "products:'home office':12.5:'2024-01-31'.price")

        assert result.ok
        assert result.values == {"category": "home office", "min_price": 12.5, "since": "2024-01-31"}

    def test_too_few_parameters(self, products_join):
        result = bind(products_join, "products.name")

        assert not result.ok
        assert "expects 1 to 3 parameters, got 0" in result.errors[0]

    def test_too_many_parameters(self, products_join):
        result = bind(products_join, "products:a:1:'2024-01-01':extra.name")

        assert not result.ok

    def test_wrong_join_and_field(self, products_join):
        result = bind(products_join, "vendors:a.address")

        assert "Reference targets join 'vendors', not 'products'" in result.errors
        assert "Join 'products' has no field 'address'" in result.errors

    def test_type_mismatch(self, products_join):
        result = bind(products_join, "products:42:cheap.name")

        assert result.errors == [
            "Parameter 'category' expects string, got 42",
            "Parameter 'min_price' expects decimal, got 'cheap'",
        ]

    def test_required_parameter_cannot_be_nil(self, products_join):
        result = bind(products_join, "products:nil.name")

        assert result.errors == ["Parameter 'category' is required"]


class TestAccepts:
    """Tests for parameter type compatibility."""

    @pytest.mark.parametrize("type_name, value, expected", [
        ("integer", 3, True),
        ("integer", True, False),
        ("float", 3, True),
        ("float", 2.5, True),
        ("boolean", False, True),
        ("boolean", 0, False),
        ("decimal", "19.99", True),
        ("decimal", "abc", False),
        ("date", "2024-02-29", True),
        ("date", "2024-02-30", False),
        ("datetime", "2024-01-01T10:00:00", True),
        ("utc_datetime", 5, False),
        ("json", {}, False),
    ])
    def test_accepts(self, type_name, value, expected):
        assert accepts(type_name, value) is expected
