# probe/health.py
import logging
from typing import Any, Callable, Dict

from probe.fetcher import fetch_json
from probe.membership import Coordinator, ZooKeeperCoordinator, resolve_one_live_member

logger = logging.getLogger(__name__)

SYSTEM_INFO_PATH = "admin/info/system"
HEALTH_CHECK_ATTEMPTS = 2


def verify_cluster_health(
    coordinator_address: str,
    coordinator_factory: Callable[[str], Coordinator] = ZooKeeperCoordinator,
    fetch: Callable[[str, int], Dict[str, Any]] = fetch_json,
) -> Dict[str, Any]:
    """Smoke test: fetches the system info of one live node."""
    member = resolve_one_live_member(coordinator_address, coordinator_factory)
    system_info_url = member.base_url + SYSTEM_INFO_PATH
    logger.info("[Probe] Fetching system info for node %s from %s", member.node_id, system_info_url)
    return fetch(system_info_url, HEALTH_CHECK_ATTEMPTS)
