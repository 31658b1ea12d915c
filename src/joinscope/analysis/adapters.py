"""
Database adapter capabilities.

Feature flags are either plain booleans or a version gate of the form
``(">= 8.0", supported, unsupported)`` resolved against the adapter version.
An unknown version never satisfies a gate.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

from joinscope.models import JoinKind

logger = logging.getLogger(__name__)

FeatureSpec = Union[bool, Tuple[str, bool, bool]]

ADAPTER_FEATURES: Dict[str, Dict[str, FeatureSpec]] = {
    "postgres": {
        "right_join": True,
        "full_outer_join": True,
        "recursive_ctes": True,
    },
    "mysql": {
        "right_join": True,
        "full_outer_join": False,
        "recursive_ctes": (">= 8.0", True, False),
    },
    "sqlite": {
        "right_join": (">= 3.39", True, False),
        "full_outer_join": (">= 3.39", True, False),
        "recursive_ctes": True,
    },
}

# Join kinds that depend on an adapter feature
KIND_FEATURES: Dict[JoinKind, str] = {
    JoinKind.RIGHT: "right_join",
    JoinKind.FULL: "full_outer_join",
}

# Nearest supported kind for each optional kind
DOWNGRADES: Dict[JoinKind, JoinKind] = {
    JoinKind.RIGHT: JoinKind.LEFT,
    JoinKind.FULL: JoinKind.LEFT,
}

REQUIREMENT_PATTERN = re.compile(r'^\s*(>=|>|<=|<|==)\s*([0-9][0-9.]*)\s*$')


def parse_version(version: str) -> Tuple[int, ...]:
    """Parse the leading numeric part of a version string ("8.0.32-log" -> (8, 0, 32))."""
    match = re.match(r'\s*v?(\d+(?:\.\d+)*)', version)
    if not match:
        raise ValueError(f"Unparseable version: {version!r}")
    return tuple(int(part) for part in match.group(1).split("."))


def version_satisfies(version: Optional[str], requirement: str) -> bool:
    """Check a version against a requirement like ">= 8.0"."""
    if not version:
        return False

    match = REQUIREMENT_PATTERN.match(requirement)
    if not match:
        raise ValueError(f"Invalid version requirement: {requirement!r}")
    operator, wanted = match.groups()

    try:
        have = parse_version(version)
    except ValueError:
        logger.warning(f"Ignoring unparseable adapter version {version!r}")
        return False
    need = parse_version(wanted)

    # Pad so that 8.0 == 8.0.0
    width = max(len(have), len(need))
    have = have + (0,) * (width - len(have))
    need = need + (0,) * (width - len(need))

    if operator == ">=":
        return have >= need
    if operator == ">":
        return have > need
    if operator == "<=":
        return have <= need
    if operator == "<":
        return have < need
    return have == need


@dataclass(frozen=True)
class AdapterCapabilities:
    """Resolved feature set of one adapter at one version."""
    adapter: str
    version: Optional[str] = None
    features: Dict[str, bool] = field(default_factory=dict)
    known: bool = True

    def supports_feature(self, feature: str) -> bool:
        # Unknown adapters are assumed to be fully capable
        return self.features.get(feature, not self.known)

    def supports(self, kind: JoinKind) -> bool:
        """Whether the adapter can execute a join of this kind."""
        feature = KIND_FEATURES.get(kind)
        if feature is None:
            return True
        return self.supports_feature(feature)

    def fallback_for(self, kind: JoinKind) -> JoinKind:
        """Nearest supported kind (the kind itself when supported)."""
        if self.supports(kind):
            return kind
        return DOWNGRADES.get(kind, JoinKind.LEFT)


def get_capabilities(adapter: str, version: Optional[str] = None) -> AdapterCapabilities:
    """
    Resolve the capabilities of an adapter.

    Args:
        adapter: Adapter identifier (postgres, mysql, sqlite, ...)
        version: Optional server version used for version-gated features

    Returns:
        AdapterCapabilities with every feature resolved to a boolean
    """
    key = adapter.lower()
    table = ADAPTER_FEATURES.get(key)
    if table is None:
        logger.warning(f"Unknown adapter '{adapter}', assuming all join kinds are supported")
        return AdapterCapabilities(adapter=key, version=version, known=False)

    features: Dict[str, bool] = {}
    for feature, value in table.items():
        if isinstance(value, tuple):
            requirement, supported, unsupported = value
            features[feature] = supported if version_satisfies(version, requirement) else unsupported
        else:
            features[feature] = value

    return AdapterCapabilities(adapter=key, version=version, features=features)
