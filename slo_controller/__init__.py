"""SLO controller: per-node colocation strategy resolution."""

from .errors import ConfigError, MergeError, SelectorError, SloControllerError
from .resolver import get_node_colocation_strategy, resolve_strategy
from .strategy import (
    ColocationConfig,
    ColocationStrategy,
    NodeColocationConfig,
    default_colocation_config,
    default_colocation_strategy,
    is_colocation_strategy_valid,
    is_node_colocation_config_valid,
    merge_strategy,
)

__all__ = [
    "ColocationConfig",
    "ColocationStrategy",
    "ConfigError",
    "MergeError",
    "NodeColocationConfig",
    "SelectorError",
    "SloControllerError",
    "default_colocation_config",
    "default_colocation_strategy",
    "get_node_colocation_strategy",
    "is_colocation_strategy_valid",
    "is_node_colocation_config_valid",
    "merge_strategy",
    "resolve_strategy",
]
