"""
Join Configuration Validator - structural checks for parameterized joins.

Walks a literal joins mapping depth-first, collects every join that declares
``parameters`` and checks it in four independent categories:
- syntax_valid: join entries and nested ``joins`` values are mappings
- parameters_valid: parameter names, types, ``required`` flags, duplicates
- field_types_valid: a non-empty ``fields`` mapping with supported types
- join_conditions_valid: ``:placeholders`` refer to declared parameters

Problems never raise; they are collected as issues on the report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from joinscope.parameterized.declarations import (
    ALLOWED_FIELD_TYPES,
    ALLOWED_PARAMETER_TYPES,
    ParameterDecl,
    ParameterizedJoin,
    find_placeholders,
)
from joinscope.parameterized.literal import extract_joins_from_content
from joinscope.parameterized.reference_parser import ReferenceParser

logger = logging.getLogger(__name__)


class ValidationCategory(str, Enum):
    """Check category an issue belongs to."""
    SYNTAX = "syntax_valid"
    PARAMETERS = "parameters_valid"
    FIELD_TYPES = "field_types_valid"
    JOIN_CONDITIONS = "join_conditions_valid"


@dataclass(frozen=True)
class ValidationIssue:
    """One violation found by the validator."""
    category: ValidationCategory
    message: str


@dataclass
class ParameterizedJoinDetail:
    """Raw declaration of a parameterized join as found in the configuration."""
    name: str
    path: str
    parameters: Any
    fields: Any
    join_condition: Any = None
    declaration: Optional[ParameterizedJoin] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "parameters": self.parameters,
            "fields": self.fields,
            "join_condition": self.join_condition,
        }


@dataclass
class ValidationChecks:
    """Aggregated pass/fail flags plus the issue messages."""
    syntax_valid: bool = True
    parameters_valid: bool = True
    field_types_valid: bool = True
    join_conditions_valid: bool = True
    issues: List[str] = field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: List[ValidationIssue]) -> "ValidationChecks":
        failed = {issue.category for issue in issues}
        return cls(
            syntax_valid=ValidationCategory.SYNTAX not in failed,
            parameters_valid=ValidationCategory.PARAMETERS not in failed,
            field_types_valid=ValidationCategory.FIELD_TYPES not in failed,
            join_conditions_valid=ValidationCategory.JOIN_CONDITIONS not in failed,
            issues=[issue.message for issue in issues],
        )

    @property
    def all_valid(self) -> bool:
        return (self.syntax_valid and self.parameters_valid
                and self.field_types_valid and self.join_conditions_valid)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "syntax_valid": self.syntax_valid,
            "parameters_valid": self.parameters_valid,
            "field_types_valid": self.field_types_valid,
            "join_conditions_valid": self.join_conditions_valid,
            "issues": list(self.issues),
        }


@dataclass
class ValidationReport:
    """Result of validating one joins configuration."""
    parameterized_joins: List[str] = field(default_factory=list)
    parameterized_join_details: List[ParameterizedJoinDetail] = field(default_factory=list)
    checks: ValidationChecks = field(default_factory=ValidationChecks)
    joins_found: bool = True

    @property
    def is_valid(self) -> bool:
        return self.checks.all_valid

    def get_declaration(self, path: str) -> Optional[ParameterizedJoin]:
        for detail in self.parameterized_join_details:
            if detail.path == path:
                return detail.declaration
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameterized_joins": list(self.parameterized_joins),
            "parameterized_join_details": [d.to_dict() for d in self.parameterized_join_details],
            "validation_checks": self.checks.to_dict(),
            "joins_found": self.joins_found,
        }


def _join_name(name: Any) -> str:
    return name if isinstance(name, str) else repr(name)


class ParameterizedJoinsValidator:
    """
    Validates parameterized join declarations.

    Usage:
        validator = ParameterizedJoinsValidator()
        report = validator.validate_joins_config(joins)
        if not report.checks.syntax_valid:
            ...
    """

    def __init__(self):
        self.parser = ReferenceParser()

    def validate_joins_config(self, joins: Mapping[Any, Any]) -> ValidationReport:
        """
        Validate a literal joins mapping.

        Args:
            joins: Mapping of join name -> join configuration

        Returns:
            ValidationReport with per-category flags and issue messages
        """
        details, traversal_issues = self._collect(joins, [])

        issues: List[ValidationIssue] = []
        for detail in details:
            join_issues = self._validate_detail(detail)
            if not join_issues:
                detail.declaration = self._build_declaration(detail)
            issues.extend(join_issues)
        issues.extend(traversal_issues)

        report = ValidationReport(
            parameterized_joins=[d.path for d in details],
            parameterized_join_details=details,
            checks=ValidationChecks.from_issues(issues),
        )
        logger.info(f"Validated {len(details)} parameterized joins, {len(issues)} issues")
        return report

    def validate_domain_content(self, content: str) -> ValidationReport:
        """
        Locate the literal ``joins`` mapping in Python source and validate it.

        Source without a joins mapping yields an empty, valid report with
        ``joins_found`` False. A joins value that is not a literal mapping
        fails ``syntax_valid``.
        """
        extraction = extract_joins_from_content(content)
        if not extraction.found:
            logger.debug("No joins mapping found in content")
            return ValidationReport(joins_found=False)
        if not extraction.ok:
            logger.warning(f"Could not extract joins: {extraction.error}")
            issue = ValidationIssue(ValidationCategory.SYNTAX, extraction.error)
            return ValidationReport(checks=ValidationChecks.from_issues([issue]))
        return self.validate_joins_config(extraction.joins)

    def _collect(
        self, joins: Mapping[Any, Any], path: List[str]
    ) -> Tuple[List[ParameterizedJoinDetail], List[ValidationIssue]]:
        """Depth-first collection of parameterized joins and traversal issues."""
        details: List[ParameterizedJoinDetail] = []
        issues: List[ValidationIssue] = []

        for join_name, join_config in joins.items():
            current = path + [_join_name(join_name)]
            current_path = ".".join(current)

            if not isinstance(join_config, Mapping):
                issues.append(ValidationIssue(
                    ValidationCategory.SYNTAX,
                    f"Join '{current_path}' configuration is not a map",
                ))
                continue

            if "parameters" in join_config:
                details.append(ParameterizedJoinDetail(
                    name=_join_name(join_name),
                    path=current_path,
                    parameters=join_config["parameters"],
                    fields=join_config.get("fields", {}),
                    join_condition=join_config.get("join_condition"),
                ))

            nested = join_config.get("joins", {})
            if isinstance(nested, Mapping):
                nested_details, nested_issues = self._collect(nested, current)
                details.extend(nested_details)
                issues.extend(nested_issues)
            else:
                issues.append(ValidationIssue(
                    ValidationCategory.SYNTAX,
                    f"Join '{current_path}' has invalid nested joins configuration (expected map)",
                ))

        return details, issues

    def _validate_detail(self, detail: ParameterizedJoinDetail) -> List[ValidationIssue]:
        return (
            self._validate_parameters(detail)
            + self._validate_fields(detail)
            + self._validate_join_condition(detail)
        )

    def _validate_parameters(self, detail: ParameterizedJoinDetail) -> List[ValidationIssue]:
        path, parameters = detail.path, detail.parameters
        if not isinstance(parameters, (list, tuple)):
            return [ValidationIssue(
                ValidationCategory.PARAMETERS,
                f"Join '{path}' has invalid parameters (expected list)",
            )]

        issues: List[ValidationIssue] = []
        names: List[str] = []
        for index, param in enumerate(parameters, start=1):
            if not isinstance(param, Mapping):
                issues.append(ValidationIssue(
                    ValidationCategory.PARAMETERS,
                    f"Join '{path}' parameter {index} is not a map",
                ))
                continue

            name = param.get("name")
            param_type = param.get("type")
            required = param.get("required", False)

            if isinstance(name, str) and self.parser.is_identifier(name):
                names.append(name)
            else:
                issues.append(ValidationIssue(
                    ValidationCategory.PARAMETERS,
                    f"Join '{path}' parameter {index} is missing an identifier name",
                ))
            if param_type not in ALLOWED_PARAMETER_TYPES:
                issues.append(ValidationIssue(
                    ValidationCategory.PARAMETERS,
                    f"Join '{path}' parameter {name!r} has unsupported type {param_type!r}",
                ))
            if not isinstance(required, bool):
                issues.append(ValidationIssue(
                    ValidationCategory.PARAMETERS,
                    f"Join '{path}' parameter {name!r} has non-boolean required",
                ))

        duplicates = sorted({n for n in names if names.count(n) > 1})
        for name in duplicates:
            issues.append(ValidationIssue(
                ValidationCategory.PARAMETERS,
                f"Join '{path}' defines duplicate parameter '{name}'",
            ))
        return issues

    def _validate_fields(self, detail: ParameterizedJoinDetail) -> List[ValidationIssue]:
        path, fields = detail.path, detail.fields
        if not isinstance(fields, Mapping):
            return [ValidationIssue(
                ValidationCategory.FIELD_TYPES,
                f"Join '{path}' has invalid fields (expected map)",
            )]
        if not fields:
            return [ValidationIssue(
                ValidationCategory.FIELD_TYPES,
                f"Join '{path}' should define at least one field in fields",
            )]

        issues: List[ValidationIssue] = []
        for field_name, field_config in fields.items():
            if not isinstance(field_config, Mapping):
                issues.append(ValidationIssue(
                    ValidationCategory.FIELD_TYPES,
                    f"Join '{path}' field {field_name!r} config is not a map",
                ))
            elif field_config.get("type") not in ALLOWED_FIELD_TYPES:
                issues.append(ValidationIssue(
                    ValidationCategory.FIELD_TYPES,
                    f"Join '{path}' field {field_name!r} has unsupported type {field_config.get('type')!r}",
                ))
        return issues

    def _validate_join_condition(self, detail: ParameterizedJoinDetail) -> List[ValidationIssue]:
        path, condition = detail.path, detail.join_condition
        if condition is None:
            return []
        if not isinstance(condition, str):
            return [ValidationIssue(
                ValidationCategory.JOIN_CONDITIONS,
                f"Join '{path}' has invalid join_condition (expected string)",
            )]

        declared = set()
        if isinstance(detail.parameters, (list, tuple)):
            declared = {
                p["name"] for p in detail.parameters
                if isinstance(p, Mapping) and isinstance(p.get("name"), str)
            }

        return [
            ValidationIssue(
                ValidationCategory.JOIN_CONDITIONS,
                f"Join '{path}' join_condition references unknown parameter :{placeholder}",
            )
            for placeholder in find_placeholders(condition)
            if placeholder not in declared
        ]

    def _build_declaration(self, detail: ParameterizedJoinDetail) -> ParameterizedJoin:
        """Typed declaration of a join that passed every check."""
        parameters = tuple(
            ParameterDecl(
                name=param["name"],
                type=param["type"],
                required=param.get("required", False),
                default=param.get("default"),
            )
            for param in detail.parameters
        )
        fields = {str(name): config["type"] for name, config in detail.fields.items()}
        return ParameterizedJoin(
            name=detail.name,
            path=detail.path,
            parameters=parameters,
            fields=fields,
            join_condition=detail.join_condition,
        )


def validate_joins_config(joins: Mapping[Any, Any]) -> ValidationReport:
    """Convenience function: validate a joins mapping with a fresh validator."""
    return ParameterizedJoinsValidator().validate_joins_config(joins)


def validate_domain_content(content: str) -> ValidationReport:
    """Convenience function: validate the joins mapping embedded in Python source."""
    return ParameterizedJoinsValidator().validate_domain_content(content)
