"""Holds the published colocation config and loads new ones."""

import json
import logging
import threading
from typing import Optional

from .config import COLOCATION_CONFIG_KEY
from .errors import ConfigError
from .strategy import (
    ColocationConfig,
    default_colocation_config,
    default_colocation_strategy,
    is_colocation_strategy_valid,
    is_node_colocation_config_valid,
    merge_strategy,
)

logger = logging.getLogger(__name__)


def load_colocation_config(raw: str) -> ColocationConfig:
    """
    Parse a colocation config document and apply built-in defaults.

    Fields missing from the cluster strategy take the built-in default.
    Invalid node configs are dropped.

    Args:
        raw: JSON document

    Returns:
        A ColocationConfig ready to publish

    Raises:
        ConfigError: if the document cannot be parsed or the cluster strategy is invalid
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ConfigError(f"failed to parse colocation config: {e}") from e

    parsed = ColocationConfig.from_dict(data)

    strategy = merge_strategy(default_colocation_strategy(), parsed.strategy)
    if not is_colocation_strategy_valid(strategy):
        raise ConfigError(f"invalid cluster colocation strategy: {strategy}")

    node_configs = []
    for index, node_cfg in enumerate(parsed.node_configs):
        if is_node_colocation_config_valid(node_cfg):
            node_configs.append(node_cfg)
        else:
            logger.warning(f"Dropping invalid node colocation config #{index}: {node_cfg.to_dict()}")

    return ColocationConfig(strategy=strategy, node_configs=tuple(node_configs))


class ColocationConfigStore:
    """Thread-safe holder of the current ColocationConfig snapshot."""

    def __init__(self, initial: Optional[ColocationConfig] = None):
        """
        Initialize the store.

        Args:
            initial: First snapshot (built-in defaults if omitted)
        """
        self._config = initial if initial is not None else default_colocation_config()
        self._lock = threading.Lock()

    def get(self) -> ColocationConfig:
        """Return the published snapshot. Callers must not mutate it."""
        with self._lock:
            return self._config

    def publish(self, cfg: ColocationConfig) -> None:
        """Replace the snapshot."""
        with self._lock:
            self._config = cfg
        logger.info(
            f"Published colocation config: {len(cfg.node_configs)} node config(s), "
            f"cluster strategy {cfg.strategy.to_dict()}"
        )

    def update_from_config_map(self, config_map) -> bool:
        """
        Load the colocation config from a ConfigMap.

        A missing ConfigMap or key resets to defaults. A bad document keeps
        the current snapshot.

        Args:
            config_map: Kubernetes V1ConfigMap object or None

        Returns:
            True if a new snapshot was published
        """
        data = getattr(config_map, "data", None) or {}
        raw = data.get(COLOCATION_CONFIG_KEY)

        if raw is None:
            logger.info("No colocation config found, using defaults")
            new_config = default_colocation_config()
        else:
            try:
                new_config = load_colocation_config(raw)
            except ConfigError as e:
                logger.error(f"Rejected colocation config, keeping previous: {e}")
                return False

        if new_config == self.get():
            logger.debug("Colocation config unchanged")
            return False

        self.publish(new_config)
        return True
