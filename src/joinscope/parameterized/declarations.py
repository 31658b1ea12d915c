"""
Typed declarations of parameterized joins and binding of parsed references.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from joinscope.parameterized.reference_parser import ParsedReference

ALLOWED_PARAMETER_TYPES = (
    "string",
    "integer",
    "float",
    "decimal",
    "boolean",
    "date",
    "datetime",
    "utc_datetime",
    "naive_datetime",
)

ALLOWED_FIELD_TYPES = ALLOWED_PARAMETER_TYPES + ("json", "jsonb", "array")

# `::type` casts are not placeholders
PLACEHOLDER_PATTERN = re.compile(r'(?<!:):([A-Za-z_][A-Za-z0-9_]*)')


def find_placeholders(template: str) -> List[str]:
    """Unique ``:name`` placeholders of a join condition, in order of appearance."""
    seen: List[str] = []
    for name in PLACEHOLDER_PATTERN.findall(template):
        if name not in seen:
            seen.append(name)
    return seen


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parses(parser, value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parser(value)
    except ValueError:
        return False
    return True


def _is_decimal(value: Any) -> bool:
    if _is_number(value):
        return True
    if isinstance(value, str):
        try:
            Decimal(value)
        except InvalidOperation:
            return False
        return True
    return False


def accepts(type_name: str, value: Any) -> bool:
    """Whether a parsed parameter value is acceptable for a declared type."""
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if type_name == "float":
        return _is_number(value)
    if type_name == "decimal":
        return _is_decimal(value)
    if type_name == "boolean":
        return isinstance(value, bool)
    if type_name == "date":
        return _parses(date.fromisoformat, value)
    if type_name in ("datetime", "utc_datetime", "naive_datetime"):
        return _parses(datetime.fromisoformat, value)
    return False


@dataclass(frozen=True)
class ParameterDecl:
    """One declared join parameter."""
    name: str
    type: str
    required: bool = False
    default: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "required": self.required, "default": self.default}


@dataclass
class BindingResult:
    """Parameter values bound from a reference, or the reasons binding failed."""
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ParameterizedJoin:
    """A validated parameterized join declaration."""
    name: str
    path: str
    parameters: Tuple[ParameterDecl, ...] = ()
    fields: Dict[str, str] = field(default_factory=dict)  # field name -> type
    join_condition: Optional[str] = None

    def __post_init__(self) -> None:
        names = [p.name for p in self.parameters]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Join '{self.path}' defines duplicate parameters: {', '.join(duplicates)}")
        unknown = [p for p in self.placeholders if p not in names]
        if unknown:
            raise ValueError(f"Join '{self.path}' join_condition references unknown parameters: {', '.join(unknown)}")

    @property
    def placeholders(self) -> List[str]:
        return find_placeholders(self.join_condition) if self.join_condition else []

    @property
    def required_count(self) -> int:
        return sum(1 for p in self.parameters if p.required)

    def bind(self, reference: ParsedReference) -> BindingResult:
        """
        Bind the positional parameters of a parsed reference to this declaration.

        Missing optional parameters take their declared default.
        """
        result = BindingResult()

        if reference.join != self.name:
            result.errors.append(f"Reference targets join '{reference.join}', not '{self.name}'")
        if reference.field not in self.fields:
            result.errors.append(f"Join '{self.path}' has no field '{reference.field}'")

        given = len(reference.parameters)
        if given < self.required_count or given > len(self.parameters):
            result.errors.append(
                f"Join '{self.path}' expects {self.required_count} to {len(self.parameters)} "
                f"parameters, got {given}"
            )
            return result

        for index, decl in enumerate(self.parameters):
            if index < given:
                value = reference.parameters[index]
                if value is None and decl.required:
                    result.errors.append(f"Parameter '{decl.name}' is required")
                elif value is not None and not accepts(decl.type, value):
                    result.errors.append(f"Parameter '{decl.name}' expects {decl.type}, got {value!r}")
                result.values[decl.name] = value
            else:
                result.values[decl.name] = decl.default

        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "parameters": [p.to_dict() for p in self.parameters],
            "fields": dict(self.fields),
            "join_condition": self.join_condition,
        }
