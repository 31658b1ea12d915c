"""
Relationship analysis for schema graphs.

This module classifies associations, finds cycles and configures joins:
- RelationshipClassifier: association -> relationship variant, hierarchies, dimensions
- CycleDetector: depth-bounded cycle search
- JoinOptimizer: loading strategies and adapter-safe join kinds
- JoinAnalyzer: runs all of the above for one entity or a whole schema

Usage:
    from joinscope.analysis import JoinAnalyzer

    result = JoinAnalyzer(graph).analyze("orders")
"""

from joinscope.analysis.adapters import AdapterCapabilities, get_capabilities
from joinscope.analysis.analyzer import JoinAnalyzer, analyze_schema
from joinscope.analysis.classifier import RelationshipClassifier
from joinscope.analysis.cycles import CycleDetector, detect_cycles
from joinscope.analysis.optimizer import JoinOptimizer, optimize_joins

__all__ = [
    "AdapterCapabilities",
    "get_capabilities",
    "JoinAnalyzer",
    "analyze_schema",
    "RelationshipClassifier",
    "CycleDetector",
    "detect_cycles",
    "JoinOptimizer",
    "optimize_joins",
]
