# backends/yarn.py
"""YARN resource manager backed by the ResourceManager REST API."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from utils.errors import ResourceManagerError
from utils.models import ApplicationState, ClusterMetrics, LaunchSpec, NodeReport, QueueInfo

logger = logging.getLogger(__name__)


class YarnResourceManager:
    def __init__(self, rm_url: str, timeout: float = 30.0, client: Optional[httpx.Client] = None) -> None:
        self._base_url = rm_url.rstrip("/") + "/ws/v1/cluster"
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = self._client.request(method, url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ResourceManagerError(
                f"ResourceManager error {e.response.status_code} for {method} {url}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ResourceManagerError(f"Could not reach ResourceManager at {url}: {e}") from e
        return response.json() if response.content else None

    def create_application(self) -> str:
        response = self._request("POST", "/apps/new-application")
        if not isinstance(response, dict) or "application-id" not in response:
            raise ResourceManagerError("Unexpected response from ResourceManager.")
        return response["application-id"]

    def submit_application(self, application_id: str, spec: LaunchSpec) -> str:
        local_resources = [
            {
                "key": name,
                "value": {
                    "resource": artifact.location,
                    "type": artifact.type,
                    "visibility": artifact.visibility,
                    "size": artifact.size,
                    "timestamp": artifact.timestamp,
                },
            }
            for name, artifact in spec.staged_artifacts.items()
        ]
        payload = {
            "application-id": application_id,
            "application-name": spec.app_name,
            "queue": spec.queue_name,
            "am-container-spec": {
                "local-resources": {"entry": local_resources},
                "commands": {"command": spec.command_line()},
                "environment": {
                    "entry": [{"key": k, "value": v} for k, v in spec.environment.items()]
                },
            },
            "unmanaged-AM": False,
            "max-app-attempts": 1,
            "resource": {"memory": spec.resources.memory_mb, "vCores": spec.resources.vcores},
            "application-type": "YARN",
        }
        self._request("POST", "/apps", payload)
        return application_id

    def get_application_state(self, handle: str) -> ApplicationState:
        response = self._request("GET", f"/apps/{handle}/state")
        try:
            return ApplicationState(response["state"])
        except (TypeError, KeyError, ValueError) as e:
            raise ResourceManagerError(f"Unexpected application state response: {response!r}") from e

    def get_cluster_metrics(self) -> ClusterMetrics:
        metrics = (self._request("GET", "/metrics") or {}).get("clusterMetrics") or {}
        return ClusterMetrics(active_nodes=metrics.get("activeNodes", 0))

    def get_node_reports(self) -> List[NodeReport]:
        nodes = (self._request("GET", "/nodes") or {}).get("nodes") or {}
        return [
            NodeReport(
                node_id=node.get("id", ""),
                http_address=node.get("nodeHTTPAddress"),
                rack=node.get("rack"),
                num_containers=node.get("numContainers"),
            )
            for node in nodes.get("node") or []
        ]

    def get_queue_info(self, name: str) -> QueueInfo:
        scheduler = (self._request("GET", "/scheduler") or {}).get("scheduler") or {}
        queue = _find_queue(scheduler.get("schedulerInfo") or {}, name)
        if queue is None:
            logger.debug("[YARN] Queue %s not reported by the scheduler", name)
            return QueueInfo(queue_name=name)
        return QueueInfo(
            queue_name=name,
            capacity=queue.get("capacity"),
            max_capacity=queue.get("maxCapacity"),
            application_count=queue.get("numApplications", 0),
            child_queue_count=len(_child_queues(queue)),
        )

    def close(self) -> None:
        self._client.close()


def _child_queues(queue: Dict[str, Any]) -> List[Dict[str, Any]]:
    return (queue.get("queues") or {}).get("queue") or []


def _find_queue(queue: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    if queue.get("queueName") == name:
        return queue
    for child in _child_queues(queue):
        found = _find_queue(child, name)
        if found is not None:
            return found
    return None
