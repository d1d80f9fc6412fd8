# probe/membership.py
import json
import logging
from typing import Callable, Iterable, Optional, Protocol
from urllib.parse import unquote

from kazoo.client import KazooClient
from kazoo.exceptions import KazooException, NoNodeError
from kazoo.handlers.threading import KazooTimeoutError

from utils.errors import CoordinatorUnavailableError, NoLiveMembersError
from utils.models import ClusterMember

logger = logging.getLogger(__name__)

LIVE_NODES_PATH = "/live_nodes"
CLUSTER_PROPS_PATH = "/clusterprops.json"
CONNECT_TIMEOUT_SECONDS = 15.0


class Coordinator(Protocol):
    def connect(self) -> None:
        ...

    def get_live_members(self) -> Iterable[str]:
        ...

    def resolve_base_url(self, member: str) -> str:
        ...

    def close(self) -> None:
        ...


class ZooKeeperCoordinator:
    """Reads SolrCloud membership out of ZooKeeper.

    Every live node registers an ephemeral child of /live_nodes named
    ``host:port_context``; the URL scheme is a cluster-wide property.
    """

    def __init__(self, address: str, client: Optional[KazooClient] = None,
                 timeout: float = CONNECT_TIMEOUT_SECONDS) -> None:
        self.address = address
        self._timeout = timeout
        self._client = client
        self._url_scheme: Optional[str] = None

    def connect(self) -> None:
        if self._client is None:
            self._client = KazooClient(hosts=self.address, read_only=True)
        logger.info("[Probe] Connecting to ZooKeeper at %s", self.address)
        try:
            self._client.start(timeout=self._timeout)
        except (KazooTimeoutError, KazooException) as e:
            raise CoordinatorUnavailableError(
                f"Could not connect to ZooKeeper at {self.address}: {e}"
            ) from e

    def get_live_members(self) -> Iterable[str]:
        try:
            return set(self._client.get_children(LIVE_NODES_PATH))
        except NoNodeError:
            return set()
        except KazooException as e:
            raise CoordinatorUnavailableError(
                f"Failed to read {LIVE_NODES_PATH} from {self.address}: {e}"
            ) from e

    def resolve_base_url(self, member: str) -> str:
        host_and_port, _, context = member.partition("_")
        path = unquote(context)
        base_url = f"{self._get_url_scheme()}://{host_and_port}"
        return f"{base_url}/{path}" if path else base_url

    def _get_url_scheme(self) -> str:
        if self._url_scheme is None:
            try:
                data, _ = self._client.get(CLUSTER_PROPS_PATH)
                props = json.loads(data) if data else {}
            except NoNodeError:
                props = {}
            except KazooException as e:
                raise CoordinatorUnavailableError(
                    f"Failed to read {CLUSTER_PROPS_PATH} from {self.address}: {e}"
                ) from e
            self._url_scheme = props.get("urlScheme") or "http"
        return self._url_scheme

    def close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.stop()
            self._client.close()
        except Exception as e:
            # shutting down; must not mask the error that brought us here
            logger.debug("[Probe] Ignoring error while closing ZooKeeper connection: %s", e, exc_info=True)


def resolve_one_live_member(
    address: str,
    coordinator_factory: Callable[[str], Coordinator] = ZooKeeperCoordinator,
) -> ClusterMember:
    """Picks one live cluster member and resolves its base URL.

    The pick is whichever member the set yields first; any live node will do
    for a smoke test.
    """
    coordinator = coordinator_factory(address)
    try:
        coordinator.connect()
        live_members = coordinator.get_live_members()
        node_id = next(iter(live_members), None)
        if node_id is None:
            logger.error("[Probe] ERROR: No live nodes found at %s", address)
            raise NoLiveMembersError(f"No live nodes found at {address}!")

        base_url = coordinator.resolve_base_url(node_id)
        if not base_url.endswith("/"):
            base_url += "/"
        return ClusterMember(node_id=node_id, base_url=base_url)
    finally:
        coordinator.close()
