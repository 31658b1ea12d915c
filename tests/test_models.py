"""Tests for core data models."""

import pytest

from joinscope.models import (
    AnalysisResult,
    AssociationRecord,
    BelongsTo,
    Cardinality,
    EntityMetadata,
    FieldMetadata,
    HierarchyPattern,
    JoinConfig,
    JoinKind,
    LoadStrategy,
    ManyToMany,
    SchemaGraph,
    SelfReference,
    normalize_key,
    relationship_from_dict,
)


class TestNormalizeKey:
    """Tests for key normalization."""

    def test_single_and_composite_keys(self):
        assert normalize_key("id") == ("id",)
        assert normalize_key(["tenant_id", "id"]) == ("tenant_id", "id")
        assert normalize_key(None) == ()


class TestEntityMetadata:
    """Tests for EntityMetadata."""

    def test_from_dict(self):
        entity = EntityMetadata.from_dict({
            "name": "orders",
            "source": "shop_orders",
            "fields": [{"name": "id", "type": "integer", "nullable": False}, {"name": "note"}],
            "associations": [{"name": "customer", "kind": "belongs_to", "related_entity": "customers"}],
        })

        assert entity.source_name == "shop_orders"
        assert entity.primary_key == ("id",)
        assert entity.field_names == ["id", "note"]
        assert entity.get_field("id").nullable is False
        assert entity.get_field("note").data_type == "string"
        assert entity.get_association("customer").related_entity == "customers"
        assert entity.get_association("missing") is None

    def test_index_lookup(self):
        entity = EntityMetadata(name="orders", indexes=(("customer_id", "inserted_at"),))

        assert entity.is_indexed(["customer_id"]) is True
        assert entity.is_indexed(["inserted_at"]) is False
        assert EntityMetadata(name="orders").is_indexed(["customer_id"]) is None

    def test_serialization(self):
        entity = EntityMetadata(
            name="order_items",
            fields=(FieldMetadata("id", "integer", False),),
            primary_key=("order_id", "line"),
            associations=(AssociationRecord(name="order", kind="belongs_to", related_entity="orders"),),
        )
        restored = EntityMetadata.from_dict(entity.to_dict())

        assert restored == entity


class TestSchemaGraph:
    """Tests for SchemaGraph."""

    def test_require_entity_lists_known_entities(self, shop_graph):
        with pytest.raises(KeyError, match="customers"):
            shop_graph.require_entity("invoices")

    def test_entity_names_sorted(self, shop_graph):
        assert shop_graph.entity_names == sorted(shop_graph.entities)

    def test_find_by_name_is_case_insensitive(self):
        graph = SchemaGraph()
        graph.add_entity(EntityMetadata(name="ProductHistory", table="product_history"))

        assert graph.find_by_name(["producthistory"]).name == "ProductHistory"
        assert graph.find_by_name(["PRODUCT_HISTORY"]).name == "ProductHistory"
        assert graph.find_by_name(["nothing"]) is None


class TestRelationshipVariants:
    """Tests for the relationship variants."""

    def test_many_to_many_requires_junction(self):
        with pytest.raises(ValueError, match="junction"):
            ManyToMany(
                name="tags", source="orders", target="tags",
                owner_key=("id",), related_key=("id",),
                junction_owner_key="order_id", junction_related_key="tag_id",
            )

    @pytest.mark.parametrize("owner_key", [(), ("tenant_id", "id")])
    def test_many_to_many_requires_single_column_keys(self, owner_key):
        with pytest.raises(ValueError, match="single-column"):
            ManyToMany(
                name="tags", source="orders", target="tags",
                owner_key=owner_key, related_key=("id",),
                junction="order_tags", junction_owner_key="order_id", junction_related_key="tag_id",
            )

    def test_hierarchy_patterns(self):
        assert [p.value for p in HierarchyPattern] == [
            "adjacency_list", "nested_set", "materialized_path", "generic",
        ]

    def test_self_reference_must_point_at_itself(self):
        with pytest.raises(ValueError, match="own entity"):
            SelfReference(name="parent", source="categories", target="products",
                          owner_key=("parent_id",), related_key=("id",))

    def test_self_reference_uses_declared_cardinality(self):
        rel = SelfReference(
            name="children", source="categories", target="categories",
            owner_key=("id",), related_key=("parent_id",),
            declared=Cardinality.HAS_MANY, pattern=HierarchyPattern.ADJACENCY_LIST,
        )

        assert rel.cardinality == Cardinality.SELF_REFERENCE
        assert rel.effective_cardinality == Cardinality.HAS_MANY
        assert rel.foreign_key == ("parent_id",)

    def test_relationship_from_dict(self):
        rel = ManyToMany(
            name="tags", source="orders", target="tags",
            owner_key=("id",), related_key=("id",),
            junction="order_tags", junction_owner_key="order_id", junction_related_key="tag_id",
        )

        assert relationship_from_dict(rel.to_dict()) == rel

    def test_belongs_to_foreign_key(self):
        rel = BelongsTo(name="customer", source="orders", target="customers",
                        owner_key=("customer_id",), related_key=("id",))

        assert rel.foreign_key == ("customer_id",)


class TestJoinConfig:
    """Tests for JoinConfig."""

    def test_metadata_properties(self):
        config = JoinConfig(
            name="audit", kind=JoinKind.LEFT, target="audits", conditions=[("id", "order_id")],
            metadata={"cardinality": "has_many", "original_kind": "full"},
        )

        assert config.cardinality == Cardinality.HAS_MANY
        assert config.original_kind == JoinKind.FULL
        assert config.to_dict()["conditions"] == [["id", "order_id"]]

    def test_analysis_result_to_dict(self):
        result = AnalysisResult(
            entity="orders",
            joins={"customer": JoinConfig(
                name="customer", kind=JoinKind.INNER, target="customers",
                conditions=[("customer_id", "id")], strategy=LoadStrategy.EAGER,
            )},
            cycles=[["orders", "customers", "orders"]],
        )
        data = result.to_dict()

        assert data["joins"]["customer"]["kind"] == "inner"
        assert data["joins"]["customer"]["strategy"] == "eager"
        assert data["cycles"] == [["orders", "customers", "orders"]]
