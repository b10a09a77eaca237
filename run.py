#!/usr/bin/env python3
"""
SLO Controller - Entry Point

Watches the slo-controller ConfigMap and cluster nodes, and resolves the
colocation strategy that applies to each node.

Usage:
    python run.py [--namespace NAMESPACE] [--in-cluster] [--verbose]
"""

import argparse
import logging
import sys

from kubernetes import config

from slo_controller.config import CONFIG_MAP_NAMESPACE, CONFIG_MAP_NAME, ControllerConfiguration
from slo_controller.config_client import ColocationConfigClient
from slo_controller.controller import NodeColocationController

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)


def log_strategy(node_name, strategy) -> None:
    """Log each resolved strategy."""
    if strategy is None:
        logger.info(f"Node {node_name}: no colocation strategy")
    else:
        logger.info(f"Node {node_name}: {strategy.to_dict()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SLO Controller - Resolve per-node colocation strategies"
    )
    parser.add_argument(
        "--namespace", "-n",
        default=CONFIG_MAP_NAMESPACE,
        help=f"Namespace of the {CONFIG_MAP_NAME} ConfigMap (default: {CONFIG_MAP_NAMESPACE})"
    )
    parser.add_argument(
        "--config-map",
        default=CONFIG_MAP_NAME,
        help=f"Name of the colocation ConfigMap (default: {CONFIG_MAP_NAME})"
    )
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use in-cluster config (for running inside Kubernetes)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose/debug logging"
    )
    ControllerConfiguration.add_flags(parser)
    return parser


def main():
    """Main entry point."""
    args = build_parser().parse_args()

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    configuration = ControllerConfiguration.from_args(args)
    logger.info(f"Controller configuration: {configuration}")

    # Load Kubernetes configuration
    try:
        if args.in_cluster:
            config.load_incluster_config()
            logger.info("Loaded in-cluster configuration")
        else:
            config.load_kube_config()
            logger.info("Loaded kubeconfig from default location")
    except Exception as e:
        logger.error(f"Failed to load Kubernetes config: {e}")
        sys.exit(1)

    # Create and run controller
    controller = NodeColocationController(
        config_client=ColocationConfigClient(namespace=args.namespace, name=args.config_map),
        strategy_handler=log_strategy
    )

    try:
        controller.run()
    except KeyboardInterrupt:
        controller.stop()
        logger.info("Controller stopped")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Controller error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
