"""
Builds a SchemaGraph from an introspection export.

The export is YAML (or an already-loaded dict) in one of two shapes:

    entities:
      - name: orders
        table: orders
        fields: [{name: id, type: integer}, ...]
        associations: [{name: customer, kind: belongs_to, related_entity: customers}]

or a mapping keyed by entity name:

    entities:
      orders:
        fields: [...]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from joinscope.models import EntityMetadata, SchemaGraph

logger = logging.getLogger(__name__)


class SchemaLoadError(ValueError):
    """The introspection export is missing or malformed."""


def _entity_entries(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    entities = data.get("entities")
    if entities is None:
        raise SchemaLoadError("Schema export has no 'entities' key")

    if isinstance(entities, dict):
        entries = []
        for name, entry in entities.items():
            if not isinstance(entry, dict):
                raise SchemaLoadError(f"Entity '{name}' must be a mapping")
            entries.append({"name": name, **entry})
        return entries

    if isinstance(entities, list):
        for index, entry in enumerate(entities, start=1):
            if not isinstance(entry, dict):
                raise SchemaLoadError(f"Entity #{index} must be a mapping")
        return entities

    raise SchemaLoadError(f"'entities' must be a list or mapping, got {type(entities).__name__}")


def load_schema_dict(data: Any) -> SchemaGraph:
    """
    Build a schema graph from a loaded export.

    Raises:
        SchemaLoadError: On a malformed export
    """
    if not isinstance(data, dict):
        raise SchemaLoadError("Schema export must be a mapping")

    graph = SchemaGraph()
    for entry in _entity_entries(data):
        try:
            entity = EntityMetadata.from_dict(entry)
        except KeyError as e:
            raise SchemaLoadError(f"Entity {entry.get('name', '?')!r} is missing key {e}") from e
        except (AttributeError, TypeError, ValueError, IndexError) as e:
            raise SchemaLoadError(f"Entity {entry.get('name', '?')!r} is malformed: {e}") from e

        if graph.get_entity(entity.name) is not None:
            logger.warning(f"Duplicate entity '{entity.name}' in schema export, keeping the last")
        graph.add_entity(entity)

    logger.info(f"Loaded {len(graph.entities)} entities")
    return graph


def load_schema(path: Union[str, Path]) -> SchemaGraph:
    """
    Load a schema graph from a YAML introspection export.

    Raises:
        SchemaLoadError: If the file is missing, not YAML, or malformed
    """
    path = Path(path)
    if not path.exists():
        raise SchemaLoadError(f"Schema file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SchemaLoadError(f"Invalid YAML in {path}: {e}") from e

    logger.debug(f"Read schema export {path}")
    return load_schema_dict(data or {})
