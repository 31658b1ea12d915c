"""
Parser for dot-notation field references with optional join parameters.

Grammar:
    reference    := join_segment "." field
    join_segment := identifier (":" param_value)*
    param_value  := quoted_string | integer | float | true | false | nil | bare_token

Examples:
    products.name
    products:electronics:true.name
    products:'consumer electronics':12.5.price

Quoted values have no escape mechanism. A single-quoted value may contain
double quotes and vice versa; a value containing its own quote character is
rejected.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

QUOTE_CHARS = ("'", '"')


class ReferenceKind(str, Enum):
    """Shape of a parsed reference."""
    DOT_NOTATION = "dot_notation"
    PARAMETERIZED = "parameterized"


class ParseErrorCode(str, Enum):
    """Why a reference failed to parse."""
    INVALID_FORMAT = "invalid_format"
    INVALID_JOIN = "invalid_join"
    INVALID_FIELD = "invalid_field"
    EMPTY_PARAMETER = "empty_parameter"
    EMBEDDED_QUOTE = "embedded_quote"


@dataclass(frozen=True)
class ParsedReference:
    """A successfully parsed field reference."""
    kind: ReferenceKind
    join: str
    field: str
    parameters: Tuple[Any, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "join": self.join,
            "field": self.field,
            "parameters": list(self.parameters),
        }


@dataclass(frozen=True)
class ParseFailure:
    """A tagged parse failure."""
    code: ParseErrorCode
    message: str
    token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "token": self.token}


@dataclass(frozen=True)
class ReferenceParseResult:
    """Result of parsing one reference: exactly one of reference/error is set."""
    source: str
    reference: Optional[ParsedReference] = None
    error: Optional[ParseFailure] = None

    @property
    def is_valid(self) -> bool:
        return self.reference is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "reference": self.reference.to_dict() if self.reference else None,
            "error": self.error.to_dict() if self.error else None,
        }


class _Abort(Exception):
    """Internal: carries a ParseFailure out of nested helpers."""

    def __init__(self, failure: ParseFailure):
        super().__init__(failure.message)
        self.failure = failure


class ReferenceParser:
    """
    Parses parameterized field references.

    Parsing never raises; failures come back as ReferenceParseResult.error.
    """

    IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
    INTEGER_PATTERN = re.compile(r'^-?\d+$')
    DECIMAL_PATTERN = re.compile(r'^-?\d+\.\d+$')

    def parse(self, reference: str) -> ReferenceParseResult:
        """
        Parse a field reference.

        Args:
            reference: Reference such as ``join:param.field``

        Returns:
            ReferenceParseResult holding the ParsedReference or a ParseFailure
        """
        try:
            join_segment, field_name = self._split_reference(reference)
            join, parameters = self._parse_join_segment(join_segment)
        except _Abort as abort:
            logger.debug(f"Rejected reference {reference!r}: {abort.failure.message}")
            return ReferenceParseResult(source=reference, error=abort.failure)

        kind = ReferenceKind.PARAMETERIZED if parameters else ReferenceKind.DOT_NOTATION
        return ReferenceParseResult(
            source=reference,
            reference=ParsedReference(kind=kind, join=join, field=field_name, parameters=tuple(parameters)),
        )

    def parse_multiple(self, references: List[str]) -> List[ReferenceParseResult]:
        """Parse several references."""
        return [self.parse(ref) for ref in references]

    def is_identifier(self, value: str) -> bool:
        return bool(self.IDENTIFIER_PATTERN.match(value))

    def _split_reference(self, reference: str) -> Tuple[str, str]:
        """Split at the last unquoted dot into (join_segment, field)."""
        split = split_last_unquoted(reference, ".")
        if split is None or not split[0] or not split[1]:
            raise _Abort(ParseFailure(
                ParseErrorCode.INVALID_FORMAT,
                "Expected format join.field or join:param1:param2.field",
                reference,
            ))

        join_segment, field_name = split
        if not self.is_identifier(field_name):
            raise _Abort(ParseFailure(
                ParseErrorCode.INVALID_FIELD,
                f"Invalid field identifier '{field_name}'",
                field_name,
            ))
        return join_segment, field_name

    def _parse_join_segment(self, join_segment: str) -> Tuple[str, List[Any]]:
        join, *raw_params = split_unquoted(join_segment, ":")
        if not self.is_identifier(join):
            raise _Abort(ParseFailure(
                ParseErrorCode.INVALID_JOIN,
                f"Invalid join identifier '{join}'",
                join,
            ))
        return join, [self.parse_parameter_value(raw) for raw in raw_params]

    def parse_parameter_value(self, raw: str) -> Any:
        """
        Convert one raw parameter token to a typed value.

        Raises:
            _Abort: For empty tokens and quoted values with embedded quotes
        """
        token = raw.strip()

        if not token:
            raise _Abort(ParseFailure(ParseErrorCode.EMPTY_PARAMETER, "Empty parameter value", raw))

        if len(token) >= 2 and token[0] in QUOTE_CHARS and token[-1] == token[0]:
            content = token[1:-1]
            if token[0] in content:
                raise _Abort(ParseFailure(
                    ParseErrorCode.EMBEDDED_QUOTE,
                    f"Quoted parameter {token} contains its own quote character",
                    token,
                ))
            return content

        if token == "true":
            return True
        if token == "false":
            return False
        if token in ("nil", "null"):
            return None
        if self.INTEGER_PATTERN.match(token):
            return int(token)
        if self.DECIMAL_PATTERN.match(token):
            return float(token)
        return token


def _scan_unquoted(value: str, separator: str) -> List[int]:
    """Positions of ``separator`` outside single/double quoted spans."""
    positions: List[int] = []
    quote: Optional[str] = None

    for index, char in enumerate(value):
        if quote is None and char in QUOTE_CHARS:
            quote = char
        elif quote is not None and char == quote:
            quote = None
        elif quote is None and char == separator:
            positions.append(index)

    return positions


def split_last_unquoted(value: str, separator: str) -> Optional[Tuple[str, str]]:
    """
    Split ``value`` at the last unquoted ``separator``.

    Returns:
        (left, right) with surrounding whitespace trimmed, or None
    """
    positions = _scan_unquoted(value, separator)
    if not positions:
        return None
    index = positions[-1]
    return value[:index].strip(), value[index + 1:].strip()


def split_unquoted(value: str, separator: str) -> List[str]:
    """Split ``value`` on every unquoted ``separator``, trimming each segment."""
    segments: List[str] = []
    start = 0
    for index in _scan_unquoted(value, separator):
        segments.append(value[start:index].strip())
        start = index + 1
    segments.append(value[start:].strip())
    return segments


def parse_field_reference(reference: str) -> ReferenceParseResult:
    """Convenience function: parse one reference with a fresh parser."""
    return ReferenceParser().parse(reference)
