# backends/kube.py
"""Kubernetes stand-in for the resource manager: queues are namespaces and the
application master runs as a single pod."""

import logging
import re
import shlex
from typing import Dict, List, Optional
from urllib.parse import urlsplit
from uuid import uuid4

from kubernetes import client, config
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from launcher.builder import LOG_DIR_PLACEHOLDER
from utils.errors import ResourceManagerError
from utils.models import ApplicationState, ClusterMetrics, LaunchSpec, LocalResource, NodeReport, QueueInfo

logger = logging.getLogger(__name__)

CONTAINER_LOG_DIR = "/var/log/solr-launcher"
# Staged artifacts land here; it is also the master's working directory
STAGING_DIR = "/opt/solr-launcher"
STAGING_VOLUME = "staged-artifacts"
STAGING_IMAGE = "curlimages/curl:8.5.0"

POD_PHASES = {
    "Pending": ApplicationState.ACCEPTED,
    "Running": ApplicationState.RUNNING,
    "Succeeded": ApplicationState.FINISHED,
    "Failed": ApplicationState.FAILED,
}


def _label_value(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "-", value)[:63].strip("-._") or "app"


class KubernetesResourceManager:
    def __init__(self, image: str, api: Optional[client.CoreV1Api] = None,
                 webhdfs_url: Optional[str] = None) -> None:
        self.image = image
        self.webhdfs_url = webhdfs_url
        self.k8s_api = api or self._get_k8s_client()
        # pod name -> namespace it was submitted to
        self._namespaces: Dict[str, str] = {}

    def _get_k8s_client(self) -> client.CoreV1Api:
        """Uses the in-cluster config when available, the local kubeconfig otherwise."""
        try:
            config.load_incluster_config()
            logger.info("[K8s] Loaded in-cluster Kubernetes config.")
        except config.ConfigException:
            config.load_kube_config()
            logger.info("[K8s] Loaded local kubeconfig.")
        return client.CoreV1Api()

    def _download_url(self, artifact: LocalResource) -> str:
        location = artifact.location
        if location.startswith("hdfs://"):
            if not self.webhdfs_url:
                raise ResourceManagerError(f"Cannot stage {location}: no WebHDFS URL is configured")
            return f"{self.webhdfs_url.rstrip('/')}/webhdfs/v1{urlsplit(location).path}?op=OPEN"
        if location.startswith(("http://", "https://")):
            return location
        raise ResourceManagerError(
            f"Cannot stage {location} into a pod; use an hdfs:// or http(s):// location"
        )

    def _staging_container(self, spec: LaunchSpec) -> dict:
        fetches = [
            f"curl -fsSL -o {shlex.quote(STAGING_DIR + '/' + name)} {shlex.quote(self._download_url(artifact))}"
            for name, artifact in spec.staged_artifacts.items()
        ]
        return {
            "name": "stage-artifacts",
            "image": STAGING_IMAGE,
            "command": ["/bin/sh", "-c", " && ".join(fetches)],
            "volumeMounts": [{"name": STAGING_VOLUME, "mountPath": STAGING_DIR}],
        }

    def _master_script(self, spec: LaunchSpec) -> str:
        # exported through the shell so $PWD and friends expand the way a
        # NodeManager would expand them
        exports = [f'export {name}="{value}"' for name, value in spec.environment.items()]
        command = spec.command_line().replace(LOG_DIR_PLACEHOLDER, CONTAINER_LOG_DIR)
        return " && ".join([f"mkdir -p {CONTAINER_LOG_DIR}", *exports, command])

    def create_application(self) -> str:
        return f"solr-launch-{uuid4().hex[:8]}"

    def submit_application(self, application_id: str, spec: LaunchSpec) -> str:
        pod_manifest = {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {
                "name": application_id,
                "labels": {"app.kubernetes.io/name": _label_value(spec.app_name)},
            },
            "spec": {
                "initContainers": [self._staging_container(spec)],
                "containers": [{
                    "name": "application-master",
                    "image": self.image,
                    "workingDir": STAGING_DIR,
                    "command": ["/bin/sh", "-c", self._master_script(spec)],
                    "volumeMounts": [{"name": STAGING_VOLUME, "mountPath": STAGING_DIR}],
                    "resources": {
                        "requests": {
                            "cpu": str(spec.resources.vcores),
                            "memory": f"{spec.resources.memory_mb}Mi",
                        }
                    },
                }],
                "volumes": [{"name": STAGING_VOLUME, "emptyDir": {}}],
                "restartPolicy": "Never",
            },
        }
        try:
            self.k8s_api.create_namespaced_pod(namespace=spec.queue_name, body=pod_manifest)
        except client.ApiException as e:
            raise ResourceManagerError(
                f"Kubernetes rejected pod {application_id}: {e.reason}", status_code=e.status
            ) from e
        except Urllib3HTTPError as e:
            raise ResourceManagerError(f"Could not reach the Kubernetes API: {e}") from e
        self._namespaces[application_id] = spec.queue_name
        return application_id

    def get_application_state(self, handle: str) -> ApplicationState:
        namespace = self._namespaces.get(handle, "default")
        try:
            pod = self.k8s_api.read_namespaced_pod(name=handle, namespace=namespace)
        except client.ApiException as e:
            if e.status == 404:
                return ApplicationState.KILLED
            raise ResourceManagerError(
                f"Failed to read pod {handle}: {e.reason}", status_code=e.status
            ) from e
        except Urllib3HTTPError as e:
            raise ResourceManagerError(f"Could not reach the Kubernetes API: {e}") from e
        phase = pod.status.phase if pod.status else None
        return POD_PHASES.get(phase, ApplicationState.SUBMITTED)

    def get_cluster_metrics(self) -> ClusterMetrics:
        return ClusterMetrics(active_nodes=len(self._list_nodes()))

    def get_node_reports(self) -> List[NodeReport]:
        reports = []
        for node in self._list_nodes():
            addresses = (node.status.addresses or []) if node.status else []
            internal_ip = next((a.address for a in addresses if a.type == "InternalIP"), None)
            labels = node.metadata.labels or {}
            reports.append(NodeReport(
                node_id=node.metadata.name,
                http_address=internal_ip,
                rack=labels.get("topology.kubernetes.io/zone"),
            ))
        return reports

    def get_queue_info(self, name: str) -> QueueInfo:
        try:
            self.k8s_api.read_namespace(name=name)
            pods = self.k8s_api.list_namespaced_pod(namespace=name).items
        except client.ApiException as e:
            raise ResourceManagerError(
                f"Failed to read namespace {name}: {e.reason}", status_code=e.status
            ) from e
        except Urllib3HTTPError as e:
            raise ResourceManagerError(f"Could not reach the Kubernetes API: {e}") from e
        return QueueInfo(queue_name=name, application_count=len(pods))

    def _list_nodes(self):
        try:
            return self.k8s_api.list_node().items
        except client.ApiException as e:
            raise ResourceManagerError(f"Failed to list nodes: {e.reason}", status_code=e.status) from e
        except Urllib3HTTPError as e:
            raise ResourceManagerError(f"Could not reach the Kubernetes API: {e}") from e

    def close(self) -> None:
        self.k8s_api.api_client.close()
