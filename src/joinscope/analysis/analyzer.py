"""
Join Analyzer - end-to-end relationship analysis for a schema graph.

Runs the classifier, cycle detector and optimizer over a schema graph and
collects the result into an AnalysisResult per entity:
- Join configurations with strategies and adapter-safe join kinds
- Hierarchies (self references) and dimension candidates
- Junction tables of many-to-many relationships
- Advisory warnings (cycles, competing hierarchies, adapter limits)
- Suggestions (missing foreign key indexes)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from joinscope.analysis.classifier import RelationshipClassifier
from joinscope.analysis.cycles import CycleDetector
from joinscope.analysis.optimizer import JoinOptimizer
from joinscope.config import AnalyzerConfig, merge_with_cli
from joinscope.models import (
    AnalysisResult,
    Cardinality,
    EntityMetadata,
    HierarchyInfo,
    HierarchyPattern,
    JoinConfig,
    ManyToMany,
    Relationship,
    SchemaGraph,
)

logger = logging.getLogger(__name__)


def categorize_relationships(relationships: List[Relationship]) -> Dict[str, List[str]]:
    """Group relationship names by cardinality, in first-seen order."""
    categories: Dict[str, List[str]] = {}
    for rel in relationships:
        categories.setdefault(rel.cardinality.value, []).append(rel.name)
    return categories


def detect_junction_tables(relationships: List[Relationship]) -> List[str]:
    """Unique junction entity names of many-to-many relationships."""
    junctions: List[str] = []
    for rel in relationships:
        if isinstance(rel, ManyToMany) and rel.junction not in junctions:
            junctions.append(rel.junction)
    return junctions


class JoinAnalyzer:
    """
    Analyzes the join relationships of entities in a schema graph.

    Usage:
        analyzer = JoinAnalyzer(graph, AnalyzerConfig(adapter="mysql"))
        result = analyzer.analyze("orders")
        joins = analyzer.generate_join_config(result)
    """

    def __init__(self, graph: SchemaGraph, config: Optional[AnalyzerConfig] = None):
        """
        Initialize the analyzer.

        Args:
            graph: Schema graph built from introspected metadata
            config: Analysis options (defaults when omitted)
        """
        self.graph = graph
        self.config = config or AnalyzerConfig()
        self.classifier = RelationshipClassifier(graph)
        self.optimizer = JoinOptimizer(
            strategy=self.config.join_strategy,
            adapter=self.config.adapter,
            adapter_version=self.config.adapter_version,
        )
        self.cycle_detector = CycleDetector(
            max_depth=self.config.join_depth,
            include_junction_edges=self.config.include_junction_edges,
        )

    def analyze(self, entity_name: str) -> AnalysisResult:
        """
        Analyze one entity.

        Cycle search runs over the whole graph; only cycles passing through
        this entity are reported.
        """
        cycles = self.detect_cycles() if self.config.detect_cycles else []
        return self._analyze_entity(self.graph.require_entity(entity_name), cycles)

    def analyze_all(self) -> Dict[str, AnalysisResult]:
        """Analyze every entity of the graph, keyed by entity name."""
        logger.info(f"Analyzing {len(self.graph.entities)} entities "
                    f"(adapter={self.config.adapter}, strategy={self.config.join_strategy.value})")
        cycles = self.detect_cycles() if self.config.detect_cycles else []
        return {
            name: self._analyze_entity(self.graph.entities[name], cycles)
            for name in self.graph.entity_names
        }

    def detect_cycles(self) -> List[List[str]]:
        """Depth-bounded cycle search over every classified relationship."""
        relationships = [
            rel
            for rels in self.classifier.classify_all().values()
            for rel in rels
        ]
        return self.cycle_detector.find_cycles(relationships)

    def _analyze_entity(self, entity: EntityMetadata, all_cycles: List[List[str]]) -> AnalysisResult:
        relationships = self.classifier.classify(entity.name)

        joins: Dict[str, JoinConfig] = {}
        for rel in relationships:
            if rel.name in joins:
                logger.warning(f"Duplicate association name {entity.name}.{rel.name}, keeping the first")
                continue
            record = entity.get_association(rel.name)
            joins[rel.name] = self.classifier.build_join_config(
                rel, record.join_kind if record else None
            )
        joins = self.optimizer.optimize(joins)

        hierarchies = self.classifier.analyze_hierarchies(entity.name, relationships)
        cycles = [cycle for cycle in all_cycles if entity.name in cycle]

        result = AnalysisResult(
            entity=entity.name,
            joins=joins,
            relationships=categorize_relationships(relationships),
            hierarchies=hierarchies,
            dimensions=self.classifier.detect_dimensions(entity.name),
            junction_tables=detect_junction_tables(relationships),
            cycles=cycles,
        )
        result.warnings = self._generate_warnings(entity, relationships, joins, hierarchies, cycles)
        result.suggestions = self._generate_suggestions(entity, joins)

        logger.info(
            f"Analyzed {entity.name}: {len(joins)} joins, {len(hierarchies)} hierarchies, "
            f"{len(result.warnings)} warnings"
        )
        return result

    def _generate_warnings(
        self,
        entity: EntityMetadata,
        relationships: List[Relationship],
        joins: Dict[str, JoinConfig],
        hierarchies: List[HierarchyInfo],
        cycles: List[List[str]],
    ) -> List[str]:
        warnings = [f"Circular dependency detected: {' -> '.join(cycle)}" for cycle in cycles]

        if len(hierarchies) > 1:
            warnings.append(
                f"Multiple hierarchical relationships detected on {entity.name}. "
                f"Consider using only one hierarchy pattern."
            )

        capabilities = self.optimizer.capabilities
        if not capabilities.supports_feature("recursive_ctes"):
            for hierarchy in hierarchies:
                if hierarchy.pattern == HierarchyPattern.ADJACENCY_LIST:
                    warnings.append(
                        f"Adapter {capabilities.adapter} {capabilities.version or '(unknown version)'} "
                        f"lacks recursive CTEs; hierarchy {entity.name}.{hierarchy.association} "
                        f"cannot be expanded recursively"
                    )

        for rel in relationships:
            if isinstance(rel, ManyToMany) and self.graph.get_entity(rel.junction) is None:
                warnings.append(
                    f"Junction entity '{rel.junction}' of {entity.name}.{rel.name} "
                    f"is not part of the schema graph"
                )

        for name, config in joins.items():
            if config.original_kind is not None:
                warnings.append(
                    f"Join {entity.name}.{name}: {config.original_kind.value} join is not supported "
                    f"by {capabilities.adapter}, using {config.kind.value}"
                )

        return warnings

    def _generate_suggestions(self, entity: EntityMetadata, joins: Dict[str, JoinConfig]) -> List[str]:
        suggestions = []
        for config in joins.values():
            if config.cardinality != Cardinality.BELONGS_TO:
                continue
            foreign_key = [k for k in config.metadata.get("foreign_key", "").split(",") if k]
            if not foreign_key or entity.is_indexed(foreign_key):
                continue
            suggestion = f"Consider adding index on {entity.source_name}.{','.join(foreign_key)}"
            if suggestion not in suggestions:
                suggestions.append(suggestion)
        return suggestions

    def generate_join_config(self, result: AnalysisResult) -> Dict[str, Dict[str, Any]]:
        """
        Format an analysis result for a code emitter.

        Returns:
            Dict of join name -> {type, target, on, strategy, through?, adapter_note?}
        """
        adapter = self.config.adapter
        formatted: Dict[str, Dict[str, Any]] = {}
        for name, config in result.joins.items():
            entry: Dict[str, Any] = {
                "type": config.kind.value,
                "target": config.target,
                "on": [list(pair) for pair in config.conditions],
                "strategy": config.strategy.value,
            }
            if config.through:
                entry["through"] = list(config.through)
            if adapter != "postgres" and config.original_kind is not None:
                entry["adapter_note"] = f"Originally {config.original_kind.value}, adapted for {adapter}"
            formatted[name] = entry
        return formatted


def analyze_schema(
    graph: SchemaGraph,
    entity: Optional[str] = None,
    config: Optional[AnalyzerConfig] = None,
    **options: Any,
) -> Dict[str, AnalysisResult]:
    """
    Convenience function for one-shot analysis.

    Args:
        graph: Schema graph to analyze
        entity: Restrict the analysis to one entity
        config: Base configuration
        **options: AnalyzerConfig overrides (adapter, join_depth, ...)

    Returns:
        Dict of entity name -> AnalysisResult
    """
    analyzer = JoinAnalyzer(graph, merge_with_cli(config or AnalyzerConfig(), **options))
    if entity is not None:
        return {entity: analyzer.analyze(entity)}
    return analyzer.analyze_all()
