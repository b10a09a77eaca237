"""Per-node colocation strategy resolution."""

import logging
from typing import Dict, Optional

from .errors import MergeError, SelectorError
from .selector import label_selector_as_selector
from .strategy import (
    ColocationConfig,
    ColocationStrategy,
    is_colocation_strategy_valid,
    is_node_colocation_config_valid,
    merge_strategy,
)

logger = logging.getLogger(__name__)


def resolve_strategy(
    cfg: Optional[ColocationConfig],
    node_labels: Optional[Dict[str, str]]
) -> Optional[ColocationStrategy]:
    """
    Resolve the colocation strategy for a node.

    The cluster strategy is copied and the first node config whose selector
    matches the labels is merged onto the copy. Later matches are ignored.

    Args:
        cfg: The published colocation config
        node_labels: The node's labels

    Returns:
        The resolved strategy, or None when there is nothing safe to return
    """
    if cfg is None or node_labels is None:
        return None

    if not is_colocation_strategy_valid(cfg.strategy):
        logger.error(f"Cluster colocation strategy is invalid: {cfg.strategy}")
        return None

    try:
        strategy = cfg.strategy.copy()

        for index, node_cfg in enumerate(cfg.node_configs):
            if not is_node_colocation_config_valid(node_cfg):
                logger.debug(f"Skipping invalid node config #{index}")
                continue

            try:
                selector = label_selector_as_selector(node_cfg.node_selector)
            except SelectorError as e:
                logger.debug(f"Skipping node config #{index} with bad selector: {e}")
                continue

            if selector is not None and selector.matches(node_labels):
                logger.debug(f"Node config #{index} matches labels {node_labels}")
                strategy = merge_strategy(strategy, node_cfg.strategy)
                break

    except MergeError as e:
        logger.error(f"Failed to resolve colocation strategy: {e}")
        return None

    return strategy


def get_node_colocation_strategy(cfg: Optional[ColocationConfig], node) -> Optional[ColocationStrategy]:
    """
    Resolve the colocation strategy for a Kubernetes node.

    Args:
        cfg: The published colocation config
        node: Kubernetes V1Node object

    Returns:
        The resolved strategy or None
    """
    if node is None or getattr(node, "metadata", None) is None:
        return None
    return resolve_strategy(cfg, node.metadata.labels or {})
