"""Tests for literal-only joins extraction."""

import ast

import pytest

from joinscope.parameterized.literal import (
    LiteralEvaluationError,
    extract_joins_from_content,
    literal_value,
)


def evaluate(source):
    return literal_value(ast.parse(source, mode="eval"))


class TestLiteralValue:
    """Tests for the literal evaluator."""

    def test_scalars_and_containers(self):
        assert evaluate("{'a': [1, -2.5, True, None], 'b': ('x', 'y')}") == {
            "a": [1, -2.5, True, None],
            "b": ("x", "y"),
        }

    @pytest.mark.parametrize("source, description", [
        ("{'a': some_variable}", "variable reference"),
        ("{'a': load()}", "function call"),
        ("{'a': f'{x}'}", "string interpolation"),
        ("{'a': 1 + 2}", "expression"),
        ("{'a': [x for x in y]}", "ListComp"),
    ])
    def test_non_literals_rejected(self, source, description):
        with pytest.raises(LiteralEvaluationError, match=description):
            evaluate(source)

    def test_dict_unpacking_rejected(self):
        with pytest.raises(LiteralEvaluationError, match="unpacking"):
            evaluate("{**base, 'a': 1}")

    def test_sign_on_string_rejected(self):
        with pytest.raises(LiteralEvaluationError):
            evaluate("-'a'")

    def test_error_reports_line(self):
        with pytest.raises(LiteralEvaluationError, match="line 2"):
            literal_value(ast.parse("{\n'a': name}", mode="eval"))


class TestExtractJoins:
    """Tests for locating the joins mapping in source text."""

    def test_dict_key(self, domain_source):
        result = extract_joins_from_content(domain_source)

        assert result.ok
        assert result.found
        assert list(result.joins) == ["products"]

    def test_keyword_argument(self):
        result = extract_joins_from_content("domain = Domain(name='x', joins={'a': {'type': 'left'}})")

        assert result.joins == {"a": {"type": "left"}}

    def test_outermost_joins_wins(self):
        source = "D = {'joins': {'a': {'joins': {'b': {}}}}}"

        assert list(extract_joins_from_content(source).joins) == ["a"]

    def test_no_joins(self):
        result = extract_joins_from_content("DOMAIN = {'name': 'orders'}")

        assert not result.found
        assert result.ok
        assert result.joins == {}

    def test_non_literal_joins(self):
        result = extract_joins_from_content("DOMAIN = {'joins': build_joins()}")

        assert result.found
        assert not result.ok
        assert "function call" in result.error

    def test_joins_must_be_mapping(self):
        result = extract_joins_from_content("DOMAIN = {'joins': ['a', 'b']}")

        assert result.found
        assert "mapping" in result.error

    def test_fragment_fallback(self):
        """Test extraction from text that is not valid Python as a whole."""
        content = """
        %{name: "orders",
          joins: {"products": {"fields": {"name": {"type": "string"}}, "note": "}"}},
          other: ???
        """
        result = extract_joins_from_content(content)

        assert result.ok
        assert result.joins["products"]["note"] == "}"

    def test_unclosed_fragment(self):
        result = extract_joins_from_content("<<< joins: {'a': {'type': 'left'}")

        assert result.found
        assert "not closed" in result.error

    def test_unparseable_without_joins(self):
        result = extract_joins_from_content("def broken(:")

        assert not result.found
