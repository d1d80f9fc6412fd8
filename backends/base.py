# backends/base.py
"""Resource manager interface."""

from typing import List, Protocol

from utils.models import ApplicationState, ClusterMetrics, LaunchSpec, NodeReport, QueueInfo


class ResourceManager(Protocol):
    def create_application(self) -> str:
        ...

    def submit_application(self, application_id: str, spec: LaunchSpec) -> str:
        ...

    def get_application_state(self, handle: str) -> ApplicationState:
        ...

    def get_cluster_metrics(self) -> ClusterMetrics:
        ...

    def get_node_reports(self) -> List[NodeReport]:
        ...

    def get_queue_info(self, name: str) -> QueueInfo:
        ...

    def close(self) -> None:
        ...
