"""
joinscope - Join relationship analysis for schema graphs

Turns introspected entity and association metadata into join
configurations and checks parameterized join declarations.

Features:
- Relationship classification (belongs_to, has_one, has_many, many_to_many, self references)
- Hierarchy pattern detection (adjacency list, materialized path, nested set)
- Star and slowly-changing dimension candidates
- Depth-bounded cycle detection
- Adapter-aware join kinds (MySQL, SQLite version gates)
- Parameterized field references (``products:electronics:true.name``) and their validation
"""

__version__ = "0.1.0"

from joinscope.models import (
    AnalysisResult,
    AssociationRecord,
    EntityMetadata,
    FieldMetadata,
    JoinConfig,
    SchemaGraph,
)

from joinscope.config import AnalyzerConfig, ConfigError, load_config

from joinscope.analysis import (
    JoinAnalyzer,
    RelationshipClassifier,
    CycleDetector,
    JoinOptimizer,
    analyze_schema,
)

from joinscope.parameterized import (
    ParameterizedJoinsValidator,
    ReferenceParser,
    parse_field_reference,
    validate_joins_config,
)

from joinscope.metadata import SchemaLoadError, load_schema

__all__ = [
    # Core models
    "AnalysisResult",
    "AssociationRecord",
    "EntityMetadata",
    "FieldMetadata",
    "JoinConfig",
    "SchemaGraph",
    # Configuration
    "AnalyzerConfig",
    "ConfigError",
    "load_config",
    # Analysis
    "JoinAnalyzer",
    "RelationshipClassifier",
    "CycleDetector",
    "JoinOptimizer",
    "analyze_schema",
    # Parameterized joins
    "ParameterizedJoinsValidator",
    "ReferenceParser",
    "parse_field_reference",
    "validate_joins_config",
    # Metadata loading
    "SchemaLoadError",
    "load_schema",
]
