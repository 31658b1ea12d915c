"""
Relationship Classifier - turns raw associations into relationship variants.

For every association reported by the introspector the classifier decides:
1. The structural category (belongs_to, has_one, has_many, many_to_many,
   self_reference)
2. The hierarchy pattern of self references (adjacency list, nested set,
   materialized path, generic)
3. The default join configuration (kind, condition pairs, through path)

It also runs the advisory dimension / slowly changing dimension heuristics.
None of this raises on unusual schemas; no match is a normal outcome.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from joinscope.models import (
    AssociationRecord,
    BelongsTo,
    Cardinality,
    DimensionInfo,
    EntityMetadata,
    HasMany,
    HasOne,
    HierarchyInfo,
    HierarchyPattern,
    JoinConfig,
    JoinKind,
    LoadStrategy,
    ManyToMany,
    Relationship,
    SchemaGraph,
    ScdDimension,
    SelfReference,
    StarDimension,
    TraversalStrategy,
)

logger = logging.getLogger(__name__)

DEFAULT_JOIN_KINDS: Dict[Cardinality, JoinKind] = {
    Cardinality.BELONGS_TO: JoinKind.INNER,   # Usually a required parent
    Cardinality.HAS_ONE: JoinKind.LEFT,       # May not exist
    Cardinality.HAS_MANY: JoinKind.LEFT,      # May have zero rows
    Cardinality.MANY_TO_MANY: JoinKind.INNER,  # Junction rows are required
}

# Association kind spellings accepted from introspectors
KIND_ALIASES: Dict[str, Cardinality] = {
    "belongs_to": Cardinality.BELONGS_TO,
    "many_to_one": Cardinality.BELONGS_TO,
    "has_one": Cardinality.HAS_ONE,
    "one_to_one": Cardinality.HAS_ONE,
    "has_many": Cardinality.HAS_MANY,
    "one_to_many": Cardinality.HAS_MANY,
    "many_to_many": Cardinality.MANY_TO_MANY,
}

TRAVERSALS: Dict[HierarchyPattern, TraversalStrategy] = {
    HierarchyPattern.ADJACENCY_LIST: TraversalStrategy.RECURSIVE_CTE,
    HierarchyPattern.NESTED_SET: TraversalStrategy.RANGE_QUERY,
    HierarchyPattern.MATERIALIZED_PATH: TraversalStrategy.PREFIX_MATCH,
    HierarchyPattern.GENERIC: TraversalStrategy.STANDARD_JOIN,
}

ADJACENCY_KEYS = ("parent_id", "parent")
NESTED_SET_FIELDS = [("lft", "rgt"), ("left_bound", "right_bound"), ("nested_left", "nested_right")]
PATH_FIELDS = ("path", "materialized_path")

# Dimension indicators
SURROGATE_KEY_FIELDS = ("dimension_key", "surrogate_key", "business_key")
SCD_BRACKETS = [("valid_from", "valid_to"), ("effective_date", "expiry_date"), ("effective_from", "effective_to")]
CURRENT_FLAG_FIELDS = ("is_current", "current_flag", "version", "row_version")
DIMENSION_SUFFIXES = ("dim", "dimension")

# SCD type 2 report fields
NATURAL_KEY_FIELDS = ("business_key", "natural_key", "code", "sku", "email", "username")
VALID_FROM_FIELDS = ("valid_from", "effective_date", "effective_from", "created_at")
VALID_TO_FIELDS = ("valid_to", "expiry_date", "effective_to", "end_date")
IS_CURRENT_FIELDS = ("is_current", "current_flag", "active")
CHANGE_TRACKING_FIELDS = ("change_reason", "change_type", "modified_by", "audit_action")
COMPANION_SUFFIXES = ("_history", "History", "_dim", "Dim", "_dimension", "Dimension")

HIERARCHY_LEVEL_MARKERS = ("level", "tier", "category", "group")
NON_ATTRIBUTE_FIELDS = ("id", "inserted_at", "updated_at", "created_at")


def singularize(name: str) -> str:
    """Naive singular form of an entity name ("categories" -> "category")."""
    lower = name.lower()
    if lower.endswith("ies") and len(lower) > 3:
        return lower[:-3] + "y"
    if lower.endswith(("sses", "xes", "ches", "shes")):
        return lower[:-2]
    if lower.endswith("s") and not lower.endswith("ss"):
        return lower[:-1]
    return lower


def default_join_kind(cardinality: Cardinality) -> JoinKind:
    """Default join kind for a cardinality (unknown cardinalities join LEFT)."""
    return DEFAULT_JOIN_KINDS.get(cardinality, JoinKind.LEFT)


class RelationshipClassifier:
    """
    Classifies the associations of entities in a schema graph.

    The classifier holds no state besides the graph it reads, so classifying
    the same graph twice yields equal output.
    """

    def __init__(self, graph: SchemaGraph):
        self.graph = graph

    # ------------------------------------------------------------------
    # Relationship classification
    # ------------------------------------------------------------------

    def classify(self, entity_name: str) -> List[Relationship]:
        """
        Classify every association declared on an entity.

        Args:
            entity_name: Identifier of the owning entity

        Returns:
            Relationships in association declaration order
        """
        entity = self.graph.require_entity(entity_name)
        relationships: List[Relationship] = []

        for record in entity.associations:
            rel = self.classify_association(entity, record)
            if rel is not None:
                relationships.append(rel)

        logger.debug(f"Classified {len(relationships)} relationships for entity {entity.name}")
        return relationships

    def classify_all(self) -> Dict[str, List[Relationship]]:
        """Classify every entity of the graph, keyed by entity name."""
        return {name: self.classify(name) for name in self.graph.entity_names}

    def classify_association(
        self,
        entity: EntityMetadata,
        record: AssociationRecord,
    ) -> Optional[Relationship]:
        """Classify one association, or return None for an unknown kind."""
        declared = KIND_ALIASES.get(record.kind.lower())
        if declared is None:
            logger.warning(
                f"Skipping association {entity.name}.{record.name}: unknown kind '{record.kind}'"
            )
            return None

        related = self.graph.get_entity(record.related_entity)
        related_pk = related.primary_key if related else ("id",)

        if declared == Cardinality.MANY_TO_MANY:
            return self._many_to_many(entity, record, related_pk)

        if declared == Cardinality.BELONGS_TO:
            owner_key = record.owner_key or (f"{record.name}_id",)
            related_key = record.related_key or related_pk
        else:
            owner_key = record.owner_key or entity.primary_key
            related_key = record.related_key or (f"{singularize(entity.name)}_id",)

        common = dict(
            name=record.name,
            source=entity.name,
            target=record.related_entity,
            owner_key=tuple(owner_key),
            related_key=tuple(related_key),
            through_path=record.through_path,
        )

        if record.related_entity == entity.name:
            candidate = SelfReference(declared=declared, **common)
            pattern = self.detect_hierarchy_pattern(entity, candidate)
            return SelfReference(declared=declared, pattern=pattern, **common)

        if declared == Cardinality.BELONGS_TO:
            return BelongsTo(**common)
        if declared == Cardinality.HAS_ONE:
            return HasOne(**common)
        return HasMany(**common)

    def _many_to_many(
        self,
        entity: EntityMetadata,
        record: AssociationRecord,
        related_pk: Sequence[str],
    ) -> Optional[Relationship]:
        junction = record.junction_entity or (record.through_path[0] if record.through_path else None)
        if not junction:
            logger.warning(
                f"Skipping many-to-many {entity.name}.{record.name}: no junction entity reported"
            )
            return None

        if record.junction_keys:
            junction_owner_key, junction_related_key = record.junction_keys
        else:
            junction_owner_key = f"{singularize(entity.name)}_id"
            junction_related_key = f"{singularize(record.related_entity)}_id"

        try:
            return ManyToMany(
                name=record.name,
                source=entity.name,
                target=record.related_entity,
                owner_key=tuple(record.owner_key or entity.primary_key),
                related_key=tuple(record.related_key or related_pk),
                through_path=record.through_path,
                junction=junction,
                junction_owner_key=junction_owner_key,
                junction_related_key=junction_related_key,
            )
        except ValueError as e:
            logger.warning(f"Skipping many-to-many {entity.name}.{record.name}: {e}")
            return None

    # ------------------------------------------------------------------
    # Hierarchies
    # ------------------------------------------------------------------

    def detect_hierarchy_pattern(self, entity: EntityMetadata, rel: Relationship) -> HierarchyPattern:
        """Pick the hierarchy encoding of a self reference, first match wins."""
        if len(rel.foreign_key) == 1 and rel.foreign_key[0] in ADJACENCY_KEYS:
            return HierarchyPattern.ADJACENCY_LIST
        if self._nested_set_fields(entity):
            return HierarchyPattern.NESTED_SET
        if self._path_field(entity):
            return HierarchyPattern.MATERIALIZED_PATH
        return HierarchyPattern.GENERIC

    def describe_hierarchy(self, entity: EntityMetadata, rel: SelfReference) -> HierarchyInfo:
        """Build the hierarchy report for a classified self reference."""
        fields: Dict[str, str] = {}
        if rel.pattern == HierarchyPattern.ADJACENCY_LIST:
            fields["parent_field"] = rel.foreign_key[0]
        elif rel.pattern == HierarchyPattern.NESTED_SET:
            left, right = self._nested_set_fields(entity)
            fields.update(left_field=left, right_field=right)
        elif rel.pattern == HierarchyPattern.MATERIALIZED_PATH:
            fields["path_field"] = self._path_field(entity)
        else:
            fields["foreign_key"] = ",".join(rel.foreign_key)

        return HierarchyInfo(
            entity=entity.name,
            association=rel.name,
            pattern=rel.pattern,
            traversal=TRAVERSALS[rel.pattern],
            fields=fields,
        )

    def analyze_hierarchies(
        self,
        entity_name: str,
        relationships: Optional[List[Relationship]] = None,
    ) -> List[HierarchyInfo]:
        """Report every self-referential hierarchy on an entity."""
        entity = self.graph.require_entity(entity_name)
        if relationships is None:
            relationships = self.classify(entity_name)
        return [
            self.describe_hierarchy(entity, rel)
            for rel in relationships
            if isinstance(rel, SelfReference)
        ]

    def _nested_set_fields(self, entity: EntityMetadata) -> Optional[Tuple[str, str]]:
        for left, right in NESTED_SET_FIELDS:
            if entity.has_field(left) and entity.has_field(right):
                return left, right
        return None

    def _path_field(self, entity: EntityMetadata) -> Optional[str]:
        return _first_present(entity, PATH_FIELDS)

    # ------------------------------------------------------------------
    # Join configuration
    # ------------------------------------------------------------------

    def build_join_config(self, rel: Relationship, override_kind: Optional[str] = None) -> JoinConfig:
        """
        Default join configuration for a relationship.

        Args:
            rel: Classified relationship
            override_kind: Join kind requested by the association record

        Returns:
            JoinConfig with LAZY strategy (OPTIMIZED for many-to-many);
            the optimizer assigns the final strategy.
        """
        cardinality = rel.effective_cardinality
        kind = default_join_kind(cardinality)
        if override_kind:
            try:
                kind = JoinKind(override_kind.lower())
            except ValueError:
                logger.warning(
                    f"Ignoring unknown join kind '{override_kind}' on {rel.source}.{rel.name}"
                )
        metadata = {
            "cardinality": cardinality.value,
            "foreign_key": ",".join(rel.foreign_key),
            "owner_key": ",".join(rel.owner_key),
        }

        if isinstance(rel, ManyToMany):
            junction = self.graph.get_entity(rel.junction)
            metadata.update(
                junction_table=rel.junction,
                join_keys=[rel.junction_owner_key, rel.junction_related_key],
            )
            return JoinConfig(
                name=rel.name,
                kind=kind,
                target=rel.target,
                conditions=[
                    (rel.owner_key[0], rel.junction_owner_key),
                    (rel.junction_related_key, rel.related_key[0]),
                ],
                through=list(rel.through_path) or [rel.junction],
                strategy=LoadStrategy.OPTIMIZED,
                required_fields=junction.field_names if junction else [],
                metadata=metadata,
            )

        if isinstance(rel, SelfReference):
            metadata.update(self_reference=True, hierarchy_pattern=rel.pattern.value)

        return JoinConfig(
            name=rel.name,
            kind=kind,
            target=rel.target,
            conditions=list(zip(rel.owner_key, rel.related_key)),
            through=list(rel.through_path) or None,
            strategy=LoadStrategy.LAZY,
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    def dimension_indicators(self, entity: EntityMetadata) -> List[str]:
        """Return the names of the dimension indicators an entity matches."""
        indicators = []
        if _first_present(entity, SURROGATE_KEY_FIELDS):
            indicators.append("surrogate_key")
        if any(entity.has_field(a) and entity.has_field(b) for a, b in SCD_BRACKETS):
            indicators.append("scd_bracket")
        if _first_present(entity, CURRENT_FLAG_FIELDS):
            indicators.append("current_flag")
        if any(
            name.lower().endswith(suffix)
            for name in {entity.name, entity.source_name}
            for suffix in DIMENSION_SUFFIXES
        ):
            indicators.append("name_suffix")
        return indicators

    def find_companion(self, entity: EntityMetadata) -> Optional[str]:
        """Find a history/dimension companion entity by name."""
        candidates = [f"{base}{suffix}" for base in (entity.name, entity.source_name)
                      for suffix in COMPANION_SUFFIXES]
        match = self.graph.find_by_name(c for c in candidates if c != entity.name)
        if match is not None and match.name != entity.name:
            return match.name
        return None

    def detect_dimensions(self, entity_name: str) -> List[DimensionInfo]:
        """
        Advisory dimension / SCD detection for one entity.

        An entity is dimension-like when at least two indicators match. It is
        an SCD type 2 candidate when a companion history/dimension entity
        exists, or when its own name marks it as one.
        """
        entity = self.graph.require_entity(entity_name)
        dimensions: List[DimensionInfo] = []

        companion = self.find_companion(entity)
        self_named = entity.name.endswith(("History", "_history", "Dimension", "_dimension"))
        if companion or self_named:
            dimensions.append(self._build_scd(entity, companion))

        indicators = self.dimension_indicators(entity)
        if len(indicators) >= 2:
            dimensions.append(StarDimension(
                entity=entity.name,
                table=entity.source_name,
                indicators=indicators,
                hierarchy_levels=[
                    f for f in entity.field_names
                    if any(marker in f.lower() for marker in HIERARCHY_LEVEL_MARKERS)
                ],
                attributes=[
                    f for f in entity.field_names
                    if f not in NON_ATTRIBUTE_FIELDS
                    and f not in entity.primary_key
                    and not f.endswith("_id")
                    and not f.endswith("_key")
                ],
            ))

        if dimensions:
            logger.debug(f"Entity {entity.name} flagged as {[d.kind for d in dimensions]}")
        return dimensions

    def _build_scd(self, entity: EntityMetadata, companion: Optional[str]) -> ScdDimension:
        surrogate = entity.primary_key[0] if entity.primary_key else "id"
        return ScdDimension(
            entity=entity.name,
            table=entity.source_name,
            companion=companion,
            natural_key=_first_present(entity, NATURAL_KEY_FIELDS) or surrogate,
            surrogate_key=surrogate,
            valid_from=_first_present(entity, VALID_FROM_FIELDS),
            valid_to=_first_present(entity, VALID_TO_FIELDS),
            is_current=_first_present(entity, IS_CURRENT_FIELDS),
            change_tracking=[f for f in entity.field_names if f in CHANGE_TRACKING_FIELDS],
        )


def _first_present(entity: EntityMetadata, candidates: Sequence[str]) -> Optional[str]:
    """First candidate field name the entity declares."""
    for candidate in candidates:
        if entity.has_field(candidate):
            return candidate
    return None
