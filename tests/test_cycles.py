"""Tests for depth-bounded cycle detection."""

import pytest

from joinscope.analysis.classifier import RelationshipClassifier
from joinscope.analysis.cycles import CycleDetector, canonical_cycle, detect_cycles
from joinscope.models import BelongsTo, Cardinality, HierarchyPattern, ManyToMany, SelfReference


def edge(source, target):
    return BelongsTo(name=target, source=source, target=target,
                     owner_key=(f"{target}_id",), related_key=("id",))


def chain(*names):
    return [edge(a, b) for a, b in zip(names, names[1:])]


class TestCycleDetector:
    """Tests for CycleDetector."""

    def test_two_entity_cycle(self):
        cycles = detect_cycles([edge("a", "b"), edge("b", "a")], max_depth=2)

        assert ["a", "b", "a"] in cycles
        assert all(cycle[0] == cycle[-1] for cycle in cycles)

    def test_acyclic_graph(self):
        relationships = chain("a", "b", "c", "d", "e") + [edge("a", "c"), edge("b", "e")]

        assert detect_cycles(relationships, max_depth=3) == []

    def test_depth_bounds_the_search(self):
        """Test that a cycle longer than max_depth hops is not reported."""
        relationships = chain("a", "b", "c", "d", "a")

        assert detect_cycles(relationships, max_depth=3) == []
        assert ["a", "b", "c", "d", "a"] in detect_cycles(relationships, max_depth=4)

    def test_zero_depth_finds_nothing(self):
        assert detect_cycles([edge("a", "b"), edge("b", "a")], max_depth=0) == []

    def test_negative_depth_rejected(self):
        with pytest.raises(ValueError):
            CycleDetector(max_depth=-1)

    def test_self_references_are_ignored(self):
        rel = SelfReference(
            name="parent", source="categories", target="categories",
            owner_key=("parent_id",), related_key=("id",),
            declared=Cardinality.BELONGS_TO, pattern=HierarchyPattern.ADJACENCY_LIST,
        )

        assert detect_cycles([rel]) == []

    def test_junction_edges_are_opt_in(self):
        relationships = [
            ManyToMany(name="tags", source="posts", target="tags", owner_key=("id",), related_key=("id",),
                       junction="post_tags", junction_owner_key="post_id", junction_related_key="tag_id"),
            ManyToMany(name="posts", source="tags", target="posts", owner_key=("id",), related_key=("id",),
                       junction="post_tags", junction_owner_key="tag_id", junction_related_key="post_id"),
        ]

        assert detect_cycles(relationships) == []
        adjacency = CycleDetector(include_junction_edges=True).build_adjacency(relationships)
        assert adjacency["posts"] == ["post_tags"]
        assert adjacency["post_tags"] == ["tags", "posts"]
        assert ["post_tags", "posts", "post_tags"] in detect_cycles(relationships, include_junction_edges=True)

    def test_duplicate_cycles_reported_once(self):
        cycles = detect_cycles([edge("a", "b"), edge("b", "a"), edge("c", "a")], max_depth=3)

        assert len(cycles) == len({tuple(c) for c in cycles})

    def test_shop_schema_cycles(self, shop_graph):
        relationships = [
            rel
            for rels in RelationshipClassifier(shop_graph).classify_all().values()
            for rel in rels
        ]
        cycles = CycleDetector().find_cycles(relationships)

        assert ["customers", "orders", "customers"] in cycles
        assert not any("categories" in cycle for cycle in cycles)

    def test_rotations_reported_once(self):
        """Test that a cycle found from each of its members is reported once."""
        cycles = detect_cycles([edge("orders", "customers"), edge("customers", "orders")])

        assert cycles == [["customers", "orders", "customers"]]

    def test_longer_cycle_rotations(self):
        cycles = detect_cycles(chain("c", "a", "b", "c"), max_depth=3)

        assert cycles == [["a", "b", "c", "a"]]


class TestCanonicalCycle:
    """Tests for canonical_cycle."""

    def test_rotates_to_smallest_member(self):
        assert canonical_cycle(["orders", "customers", "orders"]) == ["customers", "orders", "customers"]
        assert canonical_cycle(["b", "c", "a", "b"]) == ["a", "b", "c", "a"]

    def test_already_canonical(self):
        assert canonical_cycle(["a", "b", "a"]) == ["a", "b", "a"]
