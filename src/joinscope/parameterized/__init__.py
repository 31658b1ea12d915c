"""
Parameterized joins: reference parsing and configuration validation.

- ReferenceParser: ``join:param1:param2.field`` references
- ParameterizedJoinsValidator: checks joins mappings or Python domain source
- ParameterizedJoin: typed declaration that binds parsed references

Usage:
    from joinscope.parameterized import parse_field_reference, validate_joins_config

    result = parse_field_reference("products:electronics:true.name")
    report = validate_joins_config(joins)
"""

from joinscope.parameterized.declarations import BindingResult, ParameterDecl, ParameterizedJoin
from joinscope.parameterized.literal import LiteralEvaluationError, extract_joins_from_content
from joinscope.parameterized.reference_parser import (
    ParsedReference,
    ParseErrorCode,
    ReferenceKind,
    ReferenceParser,
    parse_field_reference,
)
from joinscope.parameterized.validator import (
    ParameterizedJoinsValidator,
    ValidationReport,
    validate_domain_content,
    validate_joins_config,
)

__all__ = [
    "BindingResult",
    "ParameterDecl",
    "ParameterizedJoin",
    "LiteralEvaluationError",
    "extract_joins_from_content",
    "ParsedReference",
    "ParseErrorCode",
    "ReferenceKind",
    "ReferenceParser",
    "parse_field_reference",
    "ParameterizedJoinsValidator",
    "ValidationReport",
    "validate_domain_content",
    "validate_joins_config",
]
