"""Tests for the parameterized field reference parser."""

import pytest

from joinscope.parameterized.reference_parser import (
    ParseErrorCode,
    ReferenceKind,
    ReferenceParser,
    parse_field_reference,
    split_last_unquoted,
    split_unquoted,
)


class TestReferenceParser:
    """Tests for ReferenceParser.parse."""

    def test_dot_notation(self):
        """Test parsing a plain join.field reference."""
        result = parse_field_reference("products.name")

        assert result.is_valid
        assert result.error is None
        assert result.reference.kind == ReferenceKind.DOT_NOTATION
        assert result.reference.join == "products"
        assert result.reference.field == "name"
        assert result.reference.parameters == ()

    def test_parameterized(self):
        """Test typed parameters, including a quoted value and a decimal before the field dot."""
        result = parse_field_reference("products:'consumer electronics':true:12.5.price")

        assert result.is_valid
        assert result.reference.kind == ReferenceKind.PARAMETERIZED
        assert result.reference.join == "products"
        assert result.reference.field == "price"
        assert result.reference.parameters == ("consumer electronics", True, 12.5)

    def test_parameter_types(self):
        result = parse_field_reference('discounts:42:-3:false:nil:null:"a.b:c":seasonal.amount')

        assert result.reference.parameters == (42, -3, False, None, None, "a.b:c", "seasonal")
        assert isinstance(result.reference.parameters[0], int)

    def test_whitespace_is_trimmed(self):
        result = parse_field_reference(" products : electronics . name ")

        assert result.reference.join == "products"
        assert result.reference.parameters == ("electronics",)
        assert result.reference.field == "name"

    def test_quoted_dot_is_not_a_split_point(self):
        result = parse_field_reference("files:'report.pdf'.size")

        assert result.reference.parameters == ("report.pdf",)
        assert result.reference.field == "size"

    def test_other_quote_kind_inside_span(self):
        result = parse_field_reference("""notes:"it's":'say "hi"'.body""")

        assert result.reference.parameters == ("it's", 'say "hi"')

    @pytest.mark.parametrize("reference, code", [
        ("products_only", ParseErrorCode.INVALID_FORMAT),
        ("products.", ParseErrorCode.INVALID_FORMAT),
        (".name", ParseErrorCode.INVALID_FORMAT),
        ("products.2name", ParseErrorCode.INVALID_FIELD),
        ("products.first-name", ParseErrorCode.INVALID_FIELD),
        ("1products.name", ParseErrorCode.INVALID_JOIN),
        ("products::true.name", ParseErrorCode.EMPTY_PARAMETER),
        ("products:electronics:.name", ParseErrorCode.EMPTY_PARAMETER),
        ("products:'a''b'.name", ParseErrorCode.EMBEDDED_QUOTE),
        ("products:'it's'.name", ParseErrorCode.INVALID_FORMAT),
    ])
    def test_failures(self, reference, code):
        result = parse_field_reference(reference)

        assert not result.is_valid
        assert result.reference is None
        assert result.error.code == code

    def test_failure_never_raises(self):
        results = ReferenceParser().parse_multiple(["", ":", ".", "'.'", "a.b"])

        assert [r.is_valid for r in results] == [False, False, False, False, True]

    def test_to_dict(self):
        data = parse_field_reference("products:electronics.name").to_dict()

        assert data["reference"] == {
            "kind": "parameterized",
            "join": "products",
            "field": "name",
            "parameters": ["electronics"],
        }
        assert data["error"] is None


class TestQuoteAwareSplitting:
    """Tests for the quote-aware scanners."""

    def test_split_last_unquoted(self):
        assert split_last_unquoted("a.b.c", ".") == ("a.b", "c")
        assert split_last_unquoted("a:'x.y'", ".") is None

    def test_split_unquoted(self):
        assert split_unquoted("a:'b:c':d", ":") == ["a", "'b:c'", "d"]
        assert split_unquoted("a", ":") == ["a"]
