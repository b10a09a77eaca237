"""Main controller logic for the SLO controller."""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from kubernetes.client.rest import ApiException

from .config import WATCH_RETRY_SECONDS, WATCH_TIMEOUT_SECONDS
from .config_client import ColocationConfigClient
from .config_store import ColocationConfigStore
from .resolver import resolve_strategy
from .strategy import ColocationStrategy

logger = logging.getLogger(__name__)

StrategyHandler = Callable[[str, Optional[ColocationStrategy]], None]


class NodeColocationController:
    """
    Watches the colocation ConfigMap and nodes, and hands each node's
    resolved colocation strategy to a handler.
    """

    def __init__(
        self,
        config_client: ColocationConfigClient,
        strategy_handler: Optional[StrategyHandler] = None,
        store: Optional[ColocationConfigStore] = None
    ):
        """
        Initialize the controller.

        Args:
            config_client: Client for the ConfigMap and nodes
            strategy_handler: Called with (node_name, strategy) on every resolution;
                strategy is None when the node is gone or nothing could be resolved
            store: Config store (a new one with defaults if omitted)
        """
        self.config_client = config_client
        self.strategy_handler = strategy_handler
        self.store = store if store is not None else ColocationConfigStore()

        self._node_labels: Dict[str, Dict[str, str]] = {}
        self._nodes_lock = threading.Lock()
        # held across snapshot read, resolution and handler call
        self._notify_lock = threading.RLock()
        self._stop_event = threading.Event()

    def load_config(self) -> bool:
        """
        Load the current ConfigMap into the store on startup.

        Returns:
            True if a new snapshot was published
        """
        logger.info("Loading colocation config...")
        return self.store.update_from_config_map(self.config_client.get_config_map())

    def load_nodes(self) -> int:
        """
        Resolve every existing node on startup.

        Returns:
            Number of nodes loaded
        """
        nodes = self.config_client.list_nodes()
        for node in nodes:
            self.handle_node_event("ADDED", node)
        logger.info(f"Loaded {len(nodes)} existing nodes")
        return len(nodes)

    def resolve_node(self, name: str) -> Optional[ColocationStrategy]:
        """Resolve the strategy for a known node against the current snapshot."""
        with self._nodes_lock:
            labels = self._node_labels.get(name)
        return resolve_strategy(self.store.get(), labels)

    def _notify(self, name: str, strategy: Optional[ColocationStrategy]) -> None:
        if strategy is None:
            logger.warning(f"No colocation strategy for node {name}")
        else:
            logger.debug(f"Node {name} colocation strategy: {strategy.to_dict()}")

        if self.strategy_handler is not None:
            self.strategy_handler(name, strategy)

    def _resolve_and_notify(self, name: str) -> bool:
        """
        Resolve a known node and hand the result to the handler.

        Runs under the notify lock and repeats until the snapshot it resolved
        against is still the published one, so the last notification for a
        node always reflects the current config.

        Returns:
            False if the node is no longer known
        """
        with self._notify_lock:
            while True:
                cfg = self.store.get()
                with self._nodes_lock:
                    labels = self._node_labels.get(name)
                if labels is None:
                    return False

                self._notify(name, resolve_strategy(cfg, labels))

                if self.store.get() is cfg:
                    return True
                logger.debug(f"Colocation config changed while resolving node {name}, resolving again")

    def handle_config_event(self, event_type: str, config_map) -> None:
        """
        Handle a ConfigMap watch event.

        Args:
            event_type: ADDED, MODIFIED, or DELETED
            config_map: The ConfigMap object from the event
        """
        if event_type in ("ADDED", "MODIFIED"):
            changed = self.store.update_from_config_map(config_map)
        elif event_type == "DELETED":
            logger.info("Colocation ConfigMap DELETED, falling back to defaults")
            changed = self.store.update_from_config_map(None)
        else:
            return

        if changed:
            self.resync_nodes()

    def handle_node_event(self, event_type: str, node) -> None:
        """
        Handle a node watch event.

        Args:
            event_type: ADDED, MODIFIED, or DELETED
            node: The V1Node object from the event
        """
        name = node.metadata.name

        if event_type == "DELETED":
            with self._notify_lock:
                with self._nodes_lock:
                    self._node_labels.pop(name, None)
                logger.info(f"Node DELETED: {name}")
                self._notify(name, None)
            return

        labels = dict(node.metadata.labels or {})
        with self._nodes_lock:
            previous = self._node_labels.get(name)
            self._node_labels[name] = labels

        if event_type == "MODIFIED" and previous == labels:
            return

        self._resolve_and_notify(name)

    def resync_nodes(self) -> int:
        """
        Re-resolve every known node against the current snapshot.

        Returns:
            Number of nodes resolved
        """
        with self._nodes_lock:
            names = list(self._node_labels)

        count = 0
        for name in names:
            if self._resolve_and_notify(name):
                count += 1

        logger.info(f"Resynced {count} node(s)")
        return count

    def watch_config(self) -> None:
        """Watch for ConfigMap events in a loop."""
        logger.info("Starting config watcher...")

        while not self._stop_event.is_set():
            try:
                for event in self.config_client.watch_config_map(timeout=WATCH_TIMEOUT_SECONDS):
                    if self._stop_event.is_set():
                        break
                    self.handle_config_event(event["type"], event["object"])

            except ApiException as e:
                logger.error(f"Config watch error: {e}")
                self._stop_event.wait(WATCH_RETRY_SECONDS)
            except Exception as e:
                logger.error(f"Unexpected error in config watcher: {e}")
                self._stop_event.wait(WATCH_RETRY_SECONDS)

    def watch_nodes(self) -> None:
        """Watch for Node events in a loop."""
        logger.info("Starting node watcher...")

        while not self._stop_event.is_set():
            try:
                for event in self.config_client.watch_nodes(timeout=WATCH_TIMEOUT_SECONDS):
                    if self._stop_event.is_set():
                        break
                    self.handle_node_event(event["type"], event["object"])

            except ApiException as e:
                logger.error(f"Node watch error: {e}")
                self._stop_event.wait(WATCH_RETRY_SECONDS)
            except Exception as e:
                logger.error(f"Unexpected error in node watcher: {e}")
                self._stop_event.wait(WATCH_RETRY_SECONDS)

    def run(self) -> None:
        """Run the controller."""
        logger.info("=" * 60)
        logger.info("Starting SLO Controller")
        logger.info("=" * 60)
        logger.info(
            f"Colocation ConfigMap: {self.config_client.namespace}/{self.config_client.name}"
        )

        self.load_config()
        self.load_nodes()

        config_thread = threading.Thread(
            target=self.watch_config,
            name="config-watcher",
            daemon=True
        )

        node_thread = threading.Thread(
            target=self.watch_nodes,
            name="node-watcher",
            daemon=True
        )

        config_thread.start()
        node_thread.start()

        logger.info("Controller is running. Press Ctrl+C to stop.")

        try:
            while not self._stop_event.is_set():
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Shutdown requested...")
            self._stop_event.set()

    def stop(self) -> None:
        """Stop the controller."""
        logger.info("Stopping controller...")
        self._stop_event.set()
