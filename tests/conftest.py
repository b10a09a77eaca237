"""Pytest configuration and fixtures for SLO controller tests."""

import json
from typing import Any, Dict, Optional
from unittest.mock import Mock

import pytest
from kubernetes import client

from slo_controller.config import COLOCATION_CONFIG_KEY, CONFIG_MAP_NAME, CONFIG_MAP_NAMESPACE
from slo_controller.selector import LabelSelector
from slo_controller.strategy import ColocationConfig, ColocationStrategy, NodeColocationConfig


def make_node(name: str, labels: Optional[Dict[str, str]] = None) -> client.V1Node:
    """Build a V1Node with the given labels."""
    return client.V1Node(metadata=client.V1ObjectMeta(name=name, labels=labels))


def make_config_map(document: Optional[Dict[str, Any]] = None, raw: Optional[str] = None) -> client.V1ConfigMap:
    """Build the colocation ConfigMap from a document or a raw string."""
    data = {}
    if document is not None:
        data[COLOCATION_CONFIG_KEY] = json.dumps(document)
    if raw is not None:
        data[COLOCATION_CONFIG_KEY] = raw
    return client.V1ConfigMap(
        metadata=client.V1ObjectMeta(name=CONFIG_MAP_NAME, namespace=CONFIG_MAP_NAMESPACE),
        data=data,
    )


def node_config(match_labels: Dict[str, str], **strategy: Any) -> NodeColocationConfig:
    """Build a node-group override."""
    return NodeColocationConfig(
        node_selector=LabelSelector(match_labels=match_labels),
        strategy=ColocationStrategy(**strategy),
    )


@pytest.fixture
def sample_config() -> ColocationConfig:
    """Cluster default plus two overlapping zone overrides and a pool override."""
    return ColocationConfig(
        strategy=ColocationStrategy(
            enable=False,
            cpu_reclaim_threshold_percent=65,
            memory_reclaim_threshold_percent=65,
            degrade_time_minutes=15,
            update_time_threshold_seconds=300,
            resource_diff_threshold=0.1,
        ),
        node_configs=(
            node_config({"zone": "a"}, enable=True),
            node_config({"zone": "a", "pool": "batch"}, cpu_reclaim_threshold_percent=90),
            node_config({"pool": "batch"}, enable=True, memory_reclaim_threshold_percent=80),
        ),
    )


@pytest.fixture
def sample_document() -> Dict[str, Any]:
    """ConfigMap colocation document in its JSON form."""
    return {
        "enable": True,
        "cpuReclaimThresholdPercent": 70,
        "nodeConfigs": [
            {
                "nodeSelector": {"matchLabels": {"zone": "a"}},
                "cpuReclaimThresholdPercent": 80,
            },
            {
                "nodeSelector": {"matchLabels": {}},
                "enable": False,
            },
        ],
    }


@pytest.fixture
def mock_config_client() -> Mock:
    """Mock ColocationConfigClient."""
    mock = Mock()
    mock.namespace = CONFIG_MAP_NAMESPACE
    mock.name = CONFIG_MAP_NAME
    mock.get_config_map.return_value = None
    mock.list_nodes.return_value = []
    return mock
