"""
Depth-bounded cycle detection over classified relationships.

The search is advisory: a graph with no reported cycle at a given depth may
still contain longer ones.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Set, Tuple

from joinscope.models import ManyToMany, Relationship, SelfReference

logger = logging.getLogger(__name__)


class CycleDetector:
    """
    Finds closed paths in the entity -> related entity graph.

    Every recursive step consumes one unit of ``max_depth``; the search never
    goes further than ``max_depth`` hops from its start node, however dense the
    graph is.
    """

    def __init__(self, max_depth: int = 3, include_junction_edges: bool = False):
        """
        Initialize the detector.

        Args:
            max_depth: Maximum number of hops explored from each start node
            include_junction_edges: Route many-to-many relationships through
                their junction entity instead of leaving them out
        """
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        self.max_depth = max_depth
        self.include_junction_edges = include_junction_edges

    def build_adjacency(self, relationships: Iterable[Relationship]) -> Dict[str, List[str]]:
        """Build an adjacency list keyed by entity identifier."""
        graph: Dict[str, List[str]] = {}

        def add_edge(source: str, target: str) -> None:
            neighbors = graph.setdefault(source, [])
            if target not in neighbors:
                neighbors.append(target)

        for rel in relationships:
            if isinstance(rel, SelfReference):
                # Hierarchies are reported separately
                continue
            if isinstance(rel, ManyToMany):
                if self.include_junction_edges:
                    add_edge(rel.source, rel.junction)
                    add_edge(rel.junction, rel.target)
                continue
            add_edge(rel.source, rel.target)

        return graph

    def find_cycles(self, relationships: Iterable[Relationship]) -> List[List[str]]:
        """
        Find cycles reachable within ``max_depth`` hops of each entity.

        Args:
            relationships: Classified relationships of the whole schema

        Returns:
            Closed paths, each reported once and rotated to start at its
            smallest entity
        """
        graph = self.build_adjacency(relationships)
        cycles: List[List[str]] = []
        seen: Set[Tuple[str, ...]] = set()

        # Sort for determinism
        for start in sorted(graph):
            for cycle in self._search(graph, start, [start], self.max_depth):
                cycle = canonical_cycle(cycle)
                key = tuple(cycle)
                if key not in seen:
                    seen.add(key)
                    cycles.append(cycle)

        if cycles:
            logger.info(f"Detected {len(cycles)} cycle(s) within depth {self.max_depth}")
        return cycles

    def _search(
        self,
        graph: Dict[str, List[str]],
        current: str,
        path: List[str],
        depth: int,
    ) -> List[List[str]]:
        """Depth-first search from ``current``; ``depth`` is the hop budget left."""
        if depth <= 0:
            return []

        found: List[List[str]] = []
        for neighbor in graph.get(current, []):
            if neighbor in path:
                found.append(path[path.index(neighbor):] + [neighbor])
            else:
                found.extend(self._search(graph, neighbor, path + [neighbor], depth - 1))
        return found


def canonical_cycle(cycle: List[str]) -> List[str]:
    """Rotate a closed path to start (and end) at its smallest entity."""
    members = cycle[:-1]
    if not members:
        return list(cycle)
    pivot = members.index(min(members))
    rotated = members[pivot:] + members[:pivot]
    return rotated + [rotated[0]]


def detect_cycles(
    relationships: Iterable[Relationship],
    max_depth: int = 3,
    include_junction_edges: bool = False,
) -> List[List[str]]:
    """Convenience wrapper around CycleDetector.find_cycles."""
    return CycleDetector(max_depth, include_junction_edges).find_cycles(relationships)
