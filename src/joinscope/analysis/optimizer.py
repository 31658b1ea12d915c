"""
Join Optimizer - loading strategies and adapter-specific join kinds.

Two independent passes over join configurations:
1. Strategy assignment (fixed eager/lazy, or cardinality-driven when optimized)
2. Adapter adjustment (unsupported kinds rewritten to the nearest supported one)

Both passes return new JoinConfig objects and leave their input untouched.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import replace
from typing import Dict, Optional

from joinscope.analysis.adapters import AdapterCapabilities, get_capabilities
from joinscope.models import Cardinality, JoinConfig, LoadStrategy

logger = logging.getLogger(__name__)

OPTIMIZED_STRATEGIES: Dict[Cardinality, LoadStrategy] = {
    Cardinality.BELONGS_TO: LoadStrategy.EAGER,    # Parent data is usually wanted
    Cardinality.HAS_ONE: LoadStrategy.LAZY,
    Cardinality.HAS_MANY: LoadStrategy.LAZY,       # Often large
    Cardinality.MANY_TO_MANY: LoadStrategy.LAZY,   # Complex, load on demand
}


class JoinOptimizer:
    """Assigns loading strategies and adapts join kinds to an adapter."""

    def __init__(
        self,
        strategy: LoadStrategy = LoadStrategy.OPTIMIZED,
        adapter: str = "postgres",
        adapter_version: Optional[str] = None,
    ):
        """
        Initialize the optimizer.

        Args:
            strategy: Strategy mode (eager, lazy or optimized)
            adapter: Target adapter identifier
            adapter_version: Optional adapter version for version-gated features
        """
        self.strategy = LoadStrategy(strategy)
        self.capabilities: AdapterCapabilities = get_capabilities(adapter, adapter_version)

    def optimize(self, joins: Dict[str, JoinConfig]) -> Dict[str, JoinConfig]:
        """Run both passes over a mapping of join configurations."""
        return {
            name: self.adjust_for_adapter(self.assign_strategy(config))
            for name, config in joins.items()
        }

    def assign_strategy(self, config: JoinConfig) -> JoinConfig:
        """Return a copy of ``config`` carrying the strategy for the current mode."""
        if self.strategy == LoadStrategy.OPTIMIZED:
            strategy = OPTIMIZED_STRATEGIES.get(config.cardinality, LoadStrategy.LAZY)
        else:
            strategy = self.strategy
        return replace(config, strategy=strategy, metadata=copy.deepcopy(config.metadata))

    def adjust_for_adapter(self, config: JoinConfig) -> JoinConfig:
        """
        Rewrite a join kind the adapter cannot execute.

        The original kind is kept in ``metadata["original_kind"]``. Applying
        this twice is a no-op the second time since the rewritten kind is
        itself supported.
        """
        metadata = copy.deepcopy(config.metadata)
        if self.capabilities.supports(config.kind):
            return replace(config, metadata=metadata)

        fallback = self.capabilities.fallback_for(config.kind)
        logger.debug(
            f"Join {config.name}: {config.kind.value} not supported by "
            f"{self.capabilities.adapter}, using {fallback.value}"
        )
        metadata["original_kind"] = config.kind.value
        return replace(config, kind=fallback, metadata=metadata)


def optimize_joins(
    joins: Dict[str, JoinConfig],
    strategy: LoadStrategy = LoadStrategy.OPTIMIZED,
    adapter: str = "postgres",
    adapter_version: Optional[str] = None,
) -> Dict[str, JoinConfig]:
    """Convenience wrapper around JoinOptimizer.optimize."""
    return JoinOptimizer(strategy, adapter, adapter_version).optimize(joins)
