"""
Literal-only extraction of a ``joins`` mapping from Python source text.

Domain files are never executed. The source is parsed with ``ast`` and the
value found under a ``"joins"`` key (or a ``joins=`` keyword argument) is
materialized by a small evaluator that understands only literals:
strings, numbers, booleans, None, lists, tuples and dicts. Any other node
(names, calls, f-strings, comprehensions, ...) fails the extraction.
"""

from __future__ import annotations

import ast
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

JOINS_KEY = "joins"

# Used when the whole file is not valid Python: locate `joins: {` / `joins = {`
JOINS_FALLBACK_PATTERN = re.compile(r'''["']?\bjoins\b["']?\s*[:=]\s*\{''')

NODE_DESCRIPTIONS = {
    ast.Name: "variable reference",
    ast.Attribute: "attribute access",
    ast.Call: "function call",
    ast.JoinedStr: "string interpolation",
    ast.BinOp: "expression",
    ast.Subscript: "subscript",
    ast.Lambda: "lambda",
    ast.Starred: "unpacking",
}


class LiteralEvaluationError(ValueError):
    """A non-literal node was found where a literal was required."""

    def __init__(self, message: str, node: Optional[ast.AST] = None):
        line = getattr(node, "lineno", None)
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)
        self.node = node


def literal_value(node: ast.AST) -> Any:
    """
    Evaluate a literal expression node.

    Args:
        node: Expression node from ``ast.parse``

    Returns:
        The Python value the literal denotes

    Raises:
        LiteralEvaluationError: On any non-literal construct
    """
    if isinstance(node, ast.Expression):
        return literal_value(node.body)

    if isinstance(node, ast.Constant):
        if isinstance(node.value, (str, int, float, bool)) or node.value is None:
            return node.value
        raise LiteralEvaluationError(f"Unsupported constant {node.value!r}", node)

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.USub, ast.UAdd)):
        operand = literal_value(node.operand)
        if isinstance(operand, bool) or not isinstance(operand, (int, float)):
            raise LiteralEvaluationError("Sign applied to a non-numeric literal", node)
        return -operand if isinstance(node.op, ast.USub) else operand

    if isinstance(node, ast.List):
        return [literal_value(item) for item in node.elts]

    if isinstance(node, ast.Tuple):
        return tuple(literal_value(item) for item in node.elts)

    if isinstance(node, ast.Dict):
        result: Dict[Any, Any] = {}
        for key_node, value_node in zip(node.keys, node.values):
            if key_node is None:
                raise LiteralEvaluationError("Dict unpacking (**) is not a literal", value_node)
            key = literal_value(key_node)
            try:
                hash(key)
            except TypeError:
                raise LiteralEvaluationError(f"Unhashable dict key {key!r}", key_node) from None
            result[key] = literal_value(value_node)
        return result

    description = NODE_DESCRIPTIONS.get(type(node), type(node).__name__)
    raise LiteralEvaluationError(f"Non-literal {description} is not allowed", node)


def _preorder(node: ast.AST) -> Iterator[ast.AST]:
    """Depth-first pre-order walk (outermost nodes first)."""
    yield node
    for child in ast.iter_child_nodes(node):
        yield from _preorder(child)


def find_joins_node(tree: ast.AST) -> Optional[ast.AST]:
    """Return the value node of the first ``joins`` key or keyword in the tree."""
    for node in _preorder(tree):
        if isinstance(node, ast.Dict):
            for key, value in zip(node.keys, node.values):
                if isinstance(key, ast.Constant) and key.value == JOINS_KEY:
                    return value
        elif isinstance(node, ast.keyword) and node.arg == JOINS_KEY:
            return node.value
    return None


@dataclass
class ExtractionResult:
    """Outcome of extracting the joins mapping from source text."""
    joins: Dict[Any, Any] = field(default_factory=dict)
    found: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_joins_from_content(content: str) -> ExtractionResult:
    """
    Extract the literal ``joins`` mapping from Python source.

    Returns:
        ExtractionResult; ``found`` is False when no joins key exists,
        ``error`` is set when one exists but is not a literal mapping.
    """
    try:
        tree = ast.parse(content)
    except SyntaxError as e:
        logger.debug(f"Source is not valid Python ({e.msg}), trying fragment extraction")
        return _extract_from_fragment(content)

    joins_node = find_joins_node(tree)
    if joins_node is None:
        return ExtractionResult(found=False)
    return _materialize(joins_node)


def _materialize(joins_node: ast.AST) -> ExtractionResult:
    try:
        joins = literal_value(joins_node)
    except LiteralEvaluationError as e:
        return ExtractionResult(found=True, error=f"joins is not a literal: {e}")

    if not isinstance(joins, dict):
        return ExtractionResult(found=True, error=f"joins must be a mapping, got {type(joins).__name__}")
    return ExtractionResult(joins=joins, found=True)


def _extract_from_fragment(content: str) -> ExtractionResult:
    """Locate a brace-balanced ``joins`` mapping in text that does not parse as a whole."""
    match = JOINS_FALLBACK_PATTERN.search(content)
    if not match:
        return ExtractionResult(found=False)

    start = match.end() - 1
    end = _matching_brace(content, start)
    if end is None:
        return ExtractionResult(found=True, error="joins mapping is not closed")

    fragment = content[start:end + 1]
    try:
        expression = ast.parse(fragment, mode="eval")
    except SyntaxError as e:
        return ExtractionResult(found=True, error=f"joins mapping could not be parsed: {e.msg}")
    return _materialize(expression.body)


def _matching_brace(text: str, start: int) -> Optional[int]:
    """Index of the brace closing ``text[start]``, skipping quoted strings."""
    depth = 0
    quote: Optional[str] = None
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if quote is not None:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue
        if char in ("'", '"'):
            quote = char
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None
