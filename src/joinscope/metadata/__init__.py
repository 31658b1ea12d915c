"""
Loading of introspected schema metadata into a SchemaGraph.
"""

from joinscope.metadata.loader import SchemaLoadError, load_schema, load_schema_dict

__all__ = [
    "SchemaLoadError",
    "load_schema",
    "load_schema_dict",
]
