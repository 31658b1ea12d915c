"""
Core data models for the joinscope package.

Defines the schema graph handed over by an introspector, the closed set of
relationship variants produced by classification, and the join configuration
records that make up an analysis result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, Union


class Cardinality(str, Enum):
    """Multiplicity of a relationship."""
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    MANY_TO_MANY = "many_to_many"
    SELF_REFERENCE = "self_reference"


class JoinKind(str, Enum):
    """SQL join kinds a configuration can carry."""
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"
    CROSS = "cross"


class LoadStrategy(str, Enum):
    """Loading strategy for a join (also used as the optimizer mode)."""
    EAGER = "eager"
    LAZY = "lazy"
    OPTIMIZED = "optimized"


class HierarchyPattern(str, Enum):
    """Physical encodings of a self-referential hierarchy."""
    ADJACENCY_LIST = "adjacency_list"
    NESTED_SET = "nested_set"
    MATERIALIZED_PATH = "materialized_path"
    GENERIC = "generic"


class TraversalStrategy(str, Enum):
    """How a hierarchy is walked in generated queries."""
    RECURSIVE_CTE = "recursive_cte"   # Recursive expansion
    RANGE_QUERY = "range_query"       # lft/rgt BETWEEN
    PREFIX_MATCH = "prefix_match"     # path LIKE 'prefix%'
    STANDARD_JOIN = "standard_join"   # No special handling


KeySpec = Union[str, Sequence[str], None]


def normalize_key(key: KeySpec) -> Tuple[str, ...]:
    """Normalize a single or composite key to a tuple of field names."""
    if key is None:
        return ()
    if isinstance(key, str):
        return (key,)
    return tuple(str(k) for k in key)


@dataclass(frozen=True)
class FieldMetadata:
    """A single field of an entity."""
    name: str
    data_type: str = "string"
    nullable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "type": self.data_type,
            "nullable": self.nullable,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FieldMetadata:
        """Create from dictionary."""
        return cls(
            name=str(data["name"]),
            data_type=str(data.get("type", data.get("data_type", "string"))),
            nullable=bool(data.get("nullable", True)),
        )


@dataclass(frozen=True)
class AssociationRecord:
    """
    A raw association as reported by the introspection layer.

    ``kind`` is kept as the introspector's string; the classifier turns the
    record into one of the relationship variants below.
    """
    name: str
    kind: str
    related_entity: str
    owner_key: Tuple[str, ...] = ()
    related_key: Tuple[str, ...] = ()
    junction_entity: Optional[str] = None
    junction_keys: Optional[Tuple[str, str]] = None  # (owner side, related side)
    through_path: Tuple[str, ...] = ()
    join_kind: Optional[str] = None  # Explicit override, e.g. "full"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "kind": self.kind,
            "related_entity": self.related_entity,
            "owner_key": list(self.owner_key),
            "related_key": list(self.related_key),
            "junction_entity": self.junction_entity,
            "junction_keys": list(self.junction_keys) if self.junction_keys else None,
            "through_path": list(self.through_path),
            "join_kind": self.join_kind,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AssociationRecord:
        """Create from dictionary."""
        junction_keys = data.get("junction_keys")
        return cls(
            name=str(data["name"]),
            kind=str(data["kind"]),
            related_entity=str(data["related_entity"]),
            owner_key=normalize_key(data.get("owner_key")),
            related_key=normalize_key(data.get("related_key")),
            junction_entity=data.get("junction_entity"),
            junction_keys=(str(junction_keys[0]), str(junction_keys[1])) if junction_keys else None,
            through_path=normalize_key(data.get("through_path", data.get("through"))),
            join_kind=data.get("join_kind"),
        )


@dataclass(frozen=True)
class EntityMetadata:
    """Metadata for a schema entity (table or schema module)."""
    name: str
    table: Optional[str] = None
    fields: Tuple[FieldMetadata, ...] = ()
    primary_key: Tuple[str, ...] = ("id",)
    associations: Tuple[AssociationRecord, ...] = ()
    indexes: Optional[Tuple[Tuple[str, ...], ...]] = None  # None when unknown

    @property
    def source_name(self) -> str:
        """Return the storage name, falling back to the entity name."""
        return self.table or self.name

    @property
    def field_names(self) -> List[str]:
        """Return list of field names in declaration order."""
        return [f.name for f in self.fields]

    def has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)

    def get_field(self, name: str) -> Optional[FieldMetadata]:
        """Get field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_association(self, name: str) -> Optional[AssociationRecord]:
        """Get association by name."""
        for assoc in self.associations:
            if assoc.name == name:
                return assoc
        return None

    def is_indexed(self, columns: Sequence[str]) -> Optional[bool]:
        """
        Whether ``columns`` are the leading columns of some index.

        Returns None when the introspector did not report index data.
        """
        if self.indexes is None:
            return None
        wanted = tuple(columns)
        return any(index[:len(wanted)] == wanted for index in self.indexes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "table": self.table,
            "fields": [f.to_dict() for f in self.fields],
            "primary_key": list(self.primary_key),
            "associations": [a.to_dict() for a in self.associations],
            "indexes": [list(i) for i in self.indexes] if self.indexes is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> EntityMetadata:
        """Create from dictionary."""
        indexes = data.get("indexes")
        return cls(
            name=str(data["name"]),
            table=data.get("table") or data.get("source"),
            fields=tuple(FieldMetadata.from_dict(f) for f in data.get("fields", [])),
            primary_key=normalize_key(data.get("primary_key", "id")),
            associations=tuple(AssociationRecord.from_dict(a) for a in data.get("associations", [])),
            indexes=tuple(normalize_key(i) for i in indexes) if indexes is not None else None,
        )


@dataclass
class SchemaGraph:
    """Entities of one analysis run, keyed by entity identifier."""
    entities: Dict[str, EntityMetadata] = field(default_factory=dict)

    def add_entity(self, entity: EntityMetadata) -> None:
        """Add an entity to the graph."""
        self.entities[entity.name] = entity

    def get_entity(self, name: str) -> Optional[EntityMetadata]:
        return self.entities.get(name)

    def require_entity(self, name: str) -> EntityMetadata:
        """Get an entity or raise KeyError listing the known entities."""
        entity = self.entities.get(name)
        if entity is None:
            known = ", ".join(self.entity_names) or "none"
            raise KeyError(f"Entity '{name}' not found. Known entities: {known}")
        return entity

    @property
    def entity_names(self) -> List[str]:
        """Return entity names in sorted order."""
        return sorted(self.entities)

    def find_by_name(self, candidates: Iterable[str]) -> Optional[EntityMetadata]:
        """Return the first entity whose name or table matches a candidate (case-insensitive)."""
        lookup: Dict[str, EntityMetadata] = {}
        for name in self.entity_names:
            entity = self.entities[name]
            lookup.setdefault(entity.name.lower(), entity)
            lookup.setdefault(entity.source_name.lower(), entity)
        for candidate in candidates:
            match = lookup.get(candidate.lower())
            if match is not None:
                return match
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"entities": [self.entities[n].to_dict() for n in self.entity_names]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SchemaGraph:
        """Create from dictionary."""
        graph = cls()
        for edata in data.get("entities", []):
            graph.add_entity(EntityMetadata.from_dict(edata))
        return graph


# ---------------------------------------------------------------------------
# Relationship variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Relationship:
    """
    A classified, directed relationship ``source -> target``.

    Concrete relationships are always one of the subclasses below; each one
    carries only the fields relevant to its shape.
    """
    name: str
    source: str
    target: str
    owner_key: Tuple[str, ...]
    related_key: Tuple[str, ...]
    through_path: Tuple[str, ...] = ()

    cardinality: ClassVar[Cardinality]

    @property
    def effective_cardinality(self) -> Cardinality:
        """Cardinality that drives join kind and strategy."""
        return self.cardinality

    @property
    def foreign_key(self) -> Tuple[str, ...]:
        """The field(s) holding the reference, on whichever side they live."""
        return self.related_key

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "cardinality": self.cardinality.value,
            "name": self.name,
            "source": self.source,
            "target": self.target,
            "owner_key": list(self.owner_key),
            "related_key": list(self.related_key),
            "through_path": list(self.through_path),
        }


@dataclass(frozen=True)
class BelongsTo(Relationship):
    """Owner holds the foreign key to the target's primary key."""
    cardinality: ClassVar[Cardinality] = Cardinality.BELONGS_TO

    @property
    def foreign_key(self) -> Tuple[str, ...]:
        return self.owner_key


@dataclass(frozen=True)
class HasOne(Relationship):
    """Target holds a foreign key to the owner, at most one row."""
    cardinality: ClassVar[Cardinality] = Cardinality.HAS_ONE


@dataclass(frozen=True)
class HasMany(Relationship):
    """Target holds a foreign key to the owner, any number of rows."""
    cardinality: ClassVar[Cardinality] = Cardinality.HAS_MANY


@dataclass(frozen=True)
class ManyToMany(Relationship):
    """Owner and target linked through a junction entity."""
    junction: Optional[str] = None
    junction_owner_key: Optional[str] = None
    junction_related_key: Optional[str] = None

    cardinality: ClassVar[Cardinality] = Cardinality.MANY_TO_MANY

    def __post_init__(self) -> None:
        if not self.junction:
            raise ValueError(f"Many-to-many relationship '{self.name}' requires a junction entity")
        if not self.junction_owner_key or not self.junction_related_key:
            raise ValueError(f"Many-to-many relationship '{self.name}' requires both junction keys")
        # each junction column pairs with exactly one key column
        if len(self.owner_key) != 1 or len(self.related_key) != 1:
            raise ValueError(
                f"Many-to-many relationship '{self.name}' requires single-column owner and related keys, "
                f"got ({', '.join(self.owner_key)}) and ({', '.join(self.related_key)})"
            )

    @property
    def foreign_key(self) -> Tuple[str, ...]:
        return (self.junction_owner_key,)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "junction": self.junction,
            "junction_keys": [self.junction_owner_key, self.junction_related_key],
        })
        return data


@dataclass(frozen=True)
class SelfReference(Relationship):
    """A relationship whose target is its own source entity."""
    declared: Cardinality = Cardinality.BELONGS_TO
    pattern: HierarchyPattern = HierarchyPattern.GENERIC

    cardinality: ClassVar[Cardinality] = Cardinality.SELF_REFERENCE

    def __post_init__(self) -> None:
        if self.source != self.target:
            raise ValueError(
                f"Self reference '{self.name}' must point at its own entity "
                f"({self.source} -> {self.target})"
            )
        if self.declared not in (Cardinality.BELONGS_TO, Cardinality.HAS_ONE, Cardinality.HAS_MANY):
            raise ValueError(f"Self reference '{self.name}' cannot be declared as {self.declared.value}")

    @property
    def effective_cardinality(self) -> Cardinality:
        return self.declared

    @property
    def foreign_key(self) -> Tuple[str, ...]:
        return self.owner_key if self.declared == Cardinality.BELONGS_TO else self.related_key

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"declared": self.declared.value, "pattern": self.pattern.value})
        return data


RELATIONSHIP_TYPES: Dict[Cardinality, type] = {
    Cardinality.BELONGS_TO: BelongsTo,
    Cardinality.HAS_ONE: HasOne,
    Cardinality.HAS_MANY: HasMany,
    Cardinality.MANY_TO_MANY: ManyToMany,
    Cardinality.SELF_REFERENCE: SelfReference,
}


def relationship_from_dict(data: Dict[str, Any]) -> Relationship:
    """Rebuild a relationship variant from its ``to_dict`` form."""
    cardinality = Cardinality(data["cardinality"])
    kwargs: Dict[str, Any] = {
        "name": data["name"],
        "source": data["source"],
        "target": data["target"],
        "owner_key": normalize_key(data.get("owner_key")),
        "related_key": normalize_key(data.get("related_key")),
        "through_path": normalize_key(data.get("through_path")),
    }
    if cardinality == Cardinality.MANY_TO_MANY:
        owner_side, related_side = data["junction_keys"]
        kwargs.update(junction=data["junction"], junction_owner_key=owner_side,
                      junction_related_key=related_side)
    elif cardinality == Cardinality.SELF_REFERENCE:
        kwargs.update(declared=Cardinality(data["declared"]), pattern=HierarchyPattern(data["pattern"]))
    return RELATIONSHIP_TYPES[cardinality](**kwargs)


# ---------------------------------------------------------------------------
# Analysis output
# ---------------------------------------------------------------------------

@dataclass
class JoinConfig:
    """One join as configured by the analyzer."""
    name: str
    kind: JoinKind
    target: str
    conditions: List[Tuple[str, str]]  # (left_key, right_key) pairs
    through: Optional[List[str]] = None
    strategy: LoadStrategy = LoadStrategy.LAZY
    required_fields: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def cardinality(self) -> Optional[Cardinality]:
        value = self.metadata.get("cardinality")
        return Cardinality(value) if value else None

    @property
    def original_kind(self) -> Optional[JoinKind]:
        """Kind before an adapter downgrade, if one happened."""
        value = self.metadata.get("original_kind")
        return JoinKind(value) if value else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "target": self.target,
            "conditions": [list(c) for c in self.conditions],
            "through": self.through,
            "strategy": self.strategy.value,
            "required_fields": self.required_fields,
            "metadata": dict(self.metadata),
        }


@dataclass
class HierarchyInfo:
    """A self-referential hierarchy detected on an entity."""
    entity: str
    association: str
    pattern: HierarchyPattern
    traversal: TraversalStrategy
    fields: Dict[str, str] = field(default_factory=dict)  # role -> field name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "association": self.association,
            "pattern": self.pattern.value,
            "traversal": self.traversal.value,
            "fields": dict(self.fields),
        }


@dataclass
class StarDimension:
    """An entity that looks like a star-schema dimension table."""
    entity: str
    table: str
    indicators: List[str] = field(default_factory=list)
    hierarchy_levels: List[str] = field(default_factory=list)
    attributes: List[str] = field(default_factory=list)

    kind: ClassVar[str] = "star_dimension"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "entity": self.entity,
            "table": self.table,
            "indicators": self.indicators,
            "hierarchy_levels": self.hierarchy_levels,
            "attributes": self.attributes,
        }


@dataclass
class ScdDimension:
    """A slowly changing dimension (type 2) candidate."""
    entity: str
    table: str
    companion: Optional[str]
    natural_key: str
    surrogate_key: str
    valid_from: Optional[str] = None
    valid_to: Optional[str] = None
    is_current: Optional[str] = None
    change_tracking: List[str] = field(default_factory=list)

    kind: ClassVar[str] = "scd_type2"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "entity": self.entity,
            "table": self.table,
            "companion": self.companion,
            "natural_key": self.natural_key,
            "surrogate_key": self.surrogate_key,
            "valid_from": self.valid_from,
            "valid_to": self.valid_to,
            "is_current": self.is_current,
            "change_tracking": self.change_tracking,
        }


DimensionInfo = Union[StarDimension, ScdDimension]


@dataclass
class AnalysisResult:
    """Everything the analyzer found for one entity."""
    entity: str
    joins: Dict[str, JoinConfig] = field(default_factory=dict)
    relationships: Dict[str, List[str]] = field(default_factory=dict)  # cardinality -> names
    hierarchies: List[HierarchyInfo] = field(default_factory=list)
    dimensions: List[DimensionInfo] = field(default_factory=list)
    junction_tables: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "entity": self.entity,
            "joins": {name: j.to_dict() for name, j in self.joins.items()},
            "relationships": {k: list(v) for k, v in self.relationships.items()},
            "hierarchies": [h.to_dict() for h in self.hierarchies],
            "dimensions": [d.to_dict() for d in self.dimensions],
            "junction_tables": list(self.junction_tables),
            "cycles": [list(c) for c in self.cycles],
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }
