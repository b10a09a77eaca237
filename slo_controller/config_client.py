"""Client for reading the colocation ConfigMap and nodes."""

import logging
from typing import List, Optional

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from .config import CONFIG_MAP_NAME, CONFIG_MAP_NAMESPACE, WATCH_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class ColocationConfigClient:
    """Client for the slo-controller ConfigMap and Node objects."""

    def __init__(
        self,
        namespace: str = CONFIG_MAP_NAMESPACE,
        name: str = CONFIG_MAP_NAME,
        core_api: Optional[client.CoreV1Api] = None
    ):
        """
        Initialize the client.

        Args:
            namespace: Namespace of the ConfigMap
            name: Name of the ConfigMap
            core_api: CoreV1Api to use (a new one if omitted)
        """
        self.namespace = namespace
        self.name = name
        self.v1 = core_api if core_api is not None else client.CoreV1Api()

    def get_config_map(self) -> Optional[client.V1ConfigMap]:
        """
        Read the colocation ConfigMap.

        Returns:
            The ConfigMap or None if it does not exist
        """
        try:
            return self.v1.read_namespaced_config_map(name=self.name, namespace=self.namespace)
        except ApiException as e:
            if e.status == 404:
                logger.warning(f"ConfigMap {self.namespace}/{self.name} not found")
                return None
            logger.error(f"Error reading ConfigMap {self.namespace}/{self.name}: {e}")
            raise

    def watch_config_map(self, timeout: int = WATCH_TIMEOUT_SECONDS):
        """
        Create a watch stream for the colocation ConfigMap.

        Yields:
            Watch events
        """
        w = watch.Watch()
        try:
            for event in w.stream(
                self.v1.list_namespaced_config_map,
                namespace=self.namespace,
                field_selector=f"metadata.name={self.name}",
                timeout_seconds=timeout
            ):
                yield event
        except ApiException as e:
            logger.error(f"ConfigMap watch error: {e}")
            raise

    def list_nodes(self) -> List[client.V1Node]:
        """List all nodes."""
        try:
            return self.v1.list_node().items
        except ApiException as e:
            logger.error(f"Error listing nodes: {e}")
            raise

    def watch_nodes(self, timeout: int = WATCH_TIMEOUT_SECONDS):
        """
        Create a watch stream for nodes.

        Yields:
            Watch events
        """
        w = watch.Watch()
        try:
            for event in w.stream(self.v1.list_node, timeout_seconds=timeout):
                yield event
        except ApiException as e:
            logger.error(f"Node watch error: {e}")
            raise
