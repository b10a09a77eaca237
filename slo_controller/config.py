"""Configuration settings for the SLO controller."""

import argparse
from dataclasses import dataclass, field
from typing import Dict

# ConfigMap holding the colocation configuration
CONFIG_MAP_NAMESPACE = "koordinator-system"
CONFIG_MAP_NAME = "slo-controller-config"
COLOCATION_CONFIG_KEY = "colocation-config"

# Watch settings
WATCH_TIMEOUT_SECONDS = 300
WATCH_RETRY_SECONDS = 5


def parse_feature_gates(value: str) -> Dict[str, bool]:
    """
    Parse a feature gate string into a map.

    Examples:
        "A=true,B=false" -> {"A": True, "B": False}
        "" -> {}
    """
    gates: Dict[str, bool] = {}
    if not value:
        return gates

    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, raw = item.partition("=")
        key = key.strip()
        raw = raw.strip().lower()
        if not sep or not key:
            raise ValueError(f"missing bool value for feature gate: {item!r}")
        if raw not in ("true", "false"):
            raise ValueError(f"invalid value of {key}={raw}, expected true or false")
        gates[key] = raw == "true"

    return gates


@dataclass
class ControllerConfiguration:
    """Client and reconciler settings of the upstream slo-controller, kept as flags."""
    feature_gates: Dict[str, bool] = field(default_factory=dict)
    client_qps: int = 0
    client_burst: int = 0
    node_metric_reconciler_qps: int = 10
    node_metric_reconciler_burst: int = 20
    node_metric_reconciler_max_concurrent: int = 1
    node_resource_reconciler_qps: int = 10
    node_resource_reconciler_burst: int = 20
    node_resource_reconciler_max_concurrent: int = 1

    @staticmethod
    def add_flags(parser: argparse.ArgumentParser) -> None:
        """Register the configuration flags on an argument parser."""
        defaults = ControllerConfiguration()
        group = parser.add_argument_group(
            "reconciler flags",
            "Accepted with their upstream slo-controller spellings and logged at start-up. "
            "This process does not rate-limit its API client or run reconcilers, "
            "so they have no effect on strategy resolution."
        )
        group.add_argument(
            "--feature-gates",
            dest="feature_gates",
            type=parse_feature_gates,
            default={},
            help="A set of key=value pairs that describe feature gates for alpha/experimental features"
        )
        flags = (
            ("ClientQPS", "client_qps", "Client QPS"),
            ("ClientBurst", "client_burst", "Client Burst"),
            ("NodeMetricReconcilerQPS", "node_metric_reconciler_qps", "NodeMetric Reconciler QPS"),
            ("NodeMetricReconcilerBurst", "node_metric_reconciler_burst", "NodeMetric Reconciler Burst"),
            ("NodeMetricReconcilerMaxConcurrent", "node_metric_reconciler_max_concurrent",
             "NodeMetric Reconciler MaxConcurrent"),
            ("NodeResourceReconcilerQPS", "node_resource_reconciler_qps", "NodeResource Reconciler QPS"),
            ("NodeResourceReconcilerBurst", "node_resource_reconciler_burst", "NodeResource Reconciler Burst"),
            ("NodeResourceReconcilerMaxConcurrent", "node_resource_reconciler_max_concurrent",
             "NodeResource Reconciler MaxConcurrent"),
        )
        for flag, dest, help_text in flags:
            group.add_argument(
                f"--{flag}",
                dest=dest,
                type=int,
                default=getattr(defaults, dest),
                help=f"{help_text} (default: %(default)s)"
            )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "ControllerConfiguration":
        """Create a ControllerConfiguration from parsed arguments."""
        return cls(
            feature_gates=dict(args.feature_gates or {}),
            client_qps=args.client_qps,
            client_burst=args.client_burst,
            node_metric_reconciler_qps=args.node_metric_reconciler_qps,
            node_metric_reconciler_burst=args.node_metric_reconciler_burst,
            node_metric_reconciler_max_concurrent=args.node_metric_reconciler_max_concurrent,
            node_resource_reconciler_qps=args.node_resource_reconciler_qps,
            node_resource_reconciler_burst=args.node_resource_reconciler_burst,
            node_resource_reconciler_max_concurrent=args.node_resource_reconciler_max_concurrent,
        )
