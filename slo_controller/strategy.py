"""Colocation strategy data model, defaults and validation."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple

from .errors import ConfigError, MergeError, SelectorError
from .selector import LabelSelector

logger = logging.getLogger(__name__)

# Built-in defaults, the last layer of the fallback chain
DEFAULT_ENABLE = False
DEFAULT_CPU_RECLAIM_THRESHOLD_PERCENT = 65
DEFAULT_MEMORY_RECLAIM_THRESHOLD_PERCENT = 65
DEFAULT_DEGRADE_TIME_MINUTES = 15
DEFAULT_UPDATE_TIME_THRESHOLD_SECONDS = 300
DEFAULT_RESOURCE_DIFF_THRESHOLD = 0.1


def _get_bool(data: Dict[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be a boolean, got {value!r}")
    return value


def _get_int(data: Dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return value


def _get_float(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    return float(value)


@dataclass
class ColocationStrategy:
    """
    Reclamation policy for a node. Every field is optional; None means unset
    and falls back to the next layer.
    """
    enable: Optional[bool] = None
    cpu_reclaim_threshold_percent: Optional[int] = None
    memory_reclaim_threshold_percent: Optional[int] = None
    degrade_time_minutes: Optional[int] = None
    update_time_threshold_seconds: Optional[int] = None
    resource_diff_threshold: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColocationStrategy":
        """
        Create a ColocationStrategy from its JSON form.

        Raises:
            ConfigError: if a field has the wrong type
        """
        if not isinstance(data, dict):
            raise ConfigError(f"colocation strategy must be an object, got {type(data).__name__}")

        return cls(
            enable=_get_bool(data, "enable"),
            cpu_reclaim_threshold_percent=_get_int(data, "cpuReclaimThresholdPercent"),
            memory_reclaim_threshold_percent=_get_int(data, "memoryReclaimThresholdPercent"),
            degrade_time_minutes=_get_int(data, "degradeTimeMinutes"),
            update_time_threshold_seconds=_get_int(data, "updateTimeThresholdSeconds"),
            resource_diff_threshold=_get_float(data, "resourceDiffThreshold"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the set fields only."""
        result: Dict[str, Any] = {}
        if self.enable is not None:
            result["enable"] = self.enable
        if self.cpu_reclaim_threshold_percent is not None:
            result["cpuReclaimThresholdPercent"] = self.cpu_reclaim_threshold_percent
        if self.memory_reclaim_threshold_percent is not None:
            result["memoryReclaimThresholdPercent"] = self.memory_reclaim_threshold_percent
        if self.degrade_time_minutes is not None:
            result["degradeTimeMinutes"] = self.degrade_time_minutes
        if self.update_time_threshold_seconds is not None:
            result["updateTimeThresholdSeconds"] = self.update_time_threshold_seconds
        if self.resource_diff_threshold is not None:
            result["resourceDiffThreshold"] = self.resource_diff_threshold
        return result

    def copy(self) -> "ColocationStrategy":
        """Return an independent copy."""
        return ColocationStrategy(
            enable=self.enable,
            cpu_reclaim_threshold_percent=self.cpu_reclaim_threshold_percent,
            memory_reclaim_threshold_percent=self.memory_reclaim_threshold_percent,
            degrade_time_minutes=self.degrade_time_minutes,
            update_time_threshold_seconds=self.update_time_threshold_seconds,
            resource_diff_threshold=self.resource_diff_threshold,
        )

    def is_empty(self) -> bool:
        """True when no field is set."""
        return (
            self.enable is None
            and self.cpu_reclaim_threshold_percent is None
            and self.memory_reclaim_threshold_percent is None
            and self.degrade_time_minutes is None
            and self.update_time_threshold_seconds is None
            and self.resource_diff_threshold is None
        )


def merge_strategy(base: ColocationStrategy, override: ColocationStrategy) -> ColocationStrategy:
    """
    Merge an override onto a base strategy.

    Fields set in the override replace the base value; unset fields keep it.
    Neither argument is modified.

    Args:
        base: The lower-priority strategy
        override: The higher-priority strategy

    Returns:
        A new ColocationStrategy

    Raises:
        MergeError: if either side is not a ColocationStrategy
    """
    if not isinstance(base, ColocationStrategy) or not isinstance(override, ColocationStrategy):
        raise MergeError(
            f"cannot merge {type(override).__name__} onto {type(base).__name__}"
        )

    merged = base.copy()
    if override.enable is not None:
        merged.enable = override.enable
    if override.cpu_reclaim_threshold_percent is not None:
        merged.cpu_reclaim_threshold_percent = override.cpu_reclaim_threshold_percent
    if override.memory_reclaim_threshold_percent is not None:
        merged.memory_reclaim_threshold_percent = override.memory_reclaim_threshold_percent
    if override.degrade_time_minutes is not None:
        merged.degrade_time_minutes = override.degrade_time_minutes
    if override.update_time_threshold_seconds is not None:
        merged.update_time_threshold_seconds = override.update_time_threshold_seconds
    if override.resource_diff_threshold is not None:
        merged.resource_diff_threshold = override.resource_diff_threshold
    return merged


def default_colocation_strategy() -> ColocationStrategy:
    """Built-in colocation defaults: reclamation off, 65% thresholds."""
    return ColocationStrategy(
        enable=DEFAULT_ENABLE,
        cpu_reclaim_threshold_percent=DEFAULT_CPU_RECLAIM_THRESHOLD_PERCENT,
        memory_reclaim_threshold_percent=DEFAULT_MEMORY_RECLAIM_THRESHOLD_PERCENT,
        degrade_time_minutes=DEFAULT_DEGRADE_TIME_MINUTES,
        update_time_threshold_seconds=DEFAULT_UPDATE_TIME_THRESHOLD_SECONDS,
        resource_diff_threshold=DEFAULT_RESOURCE_DIFF_THRESHOLD,
    )


def _positive_or_unset(value) -> bool:
    return value is None or value > 0


def is_colocation_strategy_valid(strategy: Optional[ColocationStrategy]) -> bool:
    """Check that every set numeric field of a strategy is strictly positive."""
    return (
        strategy is not None
        and _positive_or_unset(strategy.cpu_reclaim_threshold_percent)
        and _positive_or_unset(strategy.memory_reclaim_threshold_percent)
        and _positive_or_unset(strategy.degrade_time_minutes)
        and _positive_or_unset(strategy.update_time_threshold_seconds)
        and _positive_or_unset(strategy.resource_diff_threshold)
    )


@dataclass
class NodeColocationConfig:
    """Strategy override for the nodes selected by node_selector."""
    node_selector: Optional[LabelSelector] = None
    strategy: ColocationStrategy = field(default_factory=ColocationStrategy)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NodeColocationConfig":
        """Create a NodeColocationConfig; strategy fields sit beside nodeSelector."""
        if not isinstance(data, dict):
            raise ConfigError(f"nodeConfigs entry must be an object, got {type(data).__name__}")

        return cls(
            node_selector=LabelSelector.from_dict(data.get("nodeSelector")),
            strategy=ColocationStrategy.from_dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = self.strategy.to_dict()
        if self.node_selector is not None:
            result["nodeSelector"] = self.node_selector.to_dict()
        return result


def is_node_colocation_config_valid(node_cfg: Optional[NodeColocationConfig]) -> bool:
    """
    Check a node-group override.

    Valid when the selector has at least one matchLabels entry and compiles,
    and the strategy is valid and sets at least one field.
    """
    if node_cfg is None or node_cfg.node_selector is None:
        return False
    if not node_cfg.node_selector.match_labels:
        return False
    try:
        node_cfg.node_selector.compile()
    except SelectorError as e:
        logger.debug(f"Invalid node selector {node_cfg.node_selector}: {e}")
        return False
    # an override that changes nothing is rejected
    if node_cfg.strategy is None or node_cfg.strategy.is_empty():
        return False
    return is_colocation_strategy_valid(node_cfg.strategy)


@dataclass(frozen=True)
class ColocationConfig:
    """
    Cluster-wide strategy plus ordered node-group overrides.

    Published snapshots are never mutated; replace the whole object instead.
    """
    strategy: ColocationStrategy = field(default_factory=ColocationStrategy)
    node_configs: Tuple[NodeColocationConfig, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColocationConfig":
        """Create a ColocationConfig; cluster strategy fields sit beside nodeConfigs."""
        if not isinstance(data, dict):
            raise ConfigError(f"colocation config must be an object, got {type(data).__name__}")

        node_configs = data.get("nodeConfigs") or []
        if not isinstance(node_configs, list):
            raise ConfigError(f"nodeConfigs must be a list, got {type(node_configs).__name__}")

        return cls(
            strategy=ColocationStrategy.from_dict(data),
            node_configs=tuple(NodeColocationConfig.from_dict(n) for n in node_configs),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = self.strategy.to_dict()
        if self.node_configs:
            result["nodeConfigs"] = [n.to_dict() for n in self.node_configs]
        return result


def default_colocation_config() -> ColocationConfig:
    """Config with the built-in default strategy and no overrides."""
    return ColocationConfig(strategy=default_colocation_strategy())
