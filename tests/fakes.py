"""In-memory stand-ins for the resource manager and coordination service."""

from typing import Iterable, List, Optional, Sequence

from utils.errors import CoordinatorUnavailableError, ResourceManagerError
from utils.models import (
    ApplicationState,
    ClusterMetrics,
    LaunchSpec,
    LocalResource,
    NodeReport,
    QueueInfo,
    Resources,
)


def make_spec(**overrides) -> LaunchSpec:
    values = dict(
        command=("$JAVA_HOME/bin/java", "-Xmx128M", "org.apache.solr.cloud.yarn.SolrMaster",
                 "1><LOG_DIR>/stdout", "2><LOG_DIR>/stderr"),
        resources=Resources(memory_mb=128, vcores=1),
        staged_artifacts={
            "app.jar": LocalResource(location="hdfs://nn:8020/apps/solr-yarn.jar", size=2048, timestamp=1700000000000)
        },
        environment={"CLASSPATH": "$HADOOP_CONF_DIR:$PWD/*"},
        queue_name="default",
        app_name="SolrCloud",
    )
    values.update(overrides)
    return LaunchSpec(**values)


class FakeResourceManager:
    """Replays a fixed sequence of application states, repeating the last one."""

    def __init__(self, states: Sequence[ApplicationState], reject: bool = False,
                 diagnostics_error: Optional[Exception] = None):
        self.states = list(states)
        self.reject = reject
        self.diagnostics_error = diagnostics_error
        self.state_queries = 0
        self.submitted: List[tuple] = []
        self.closed = False

    def create_application(self) -> str:
        return "application_1700000000000_0001"

    def submit_application(self, application_id: str, spec: LaunchSpec) -> str:
        if self.reject:
            raise ResourceManagerError("Queue default is full", status_code=400)
        self.submitted.append((application_id, spec))
        return application_id

    def get_application_state(self, handle: str) -> ApplicationState:
        state = self.states[min(self.state_queries, len(self.states) - 1)]
        self.state_queries += 1
        return state

    def get_cluster_metrics(self) -> ClusterMetrics:
        if self.diagnostics_error:
            raise self.diagnostics_error
        return ClusterMetrics(active_nodes=3)

    def get_node_reports(self) -> List[NodeReport]:
        return [NodeReport(node_id="nm1:45454", http_address="nm1:8042", rack="/default-rack", num_containers=2)]

    def get_queue_info(self, name: str) -> QueueInfo:
        return QueueInfo(queue_name=name, capacity=100.0, max_capacity=100.0)

    def close(self) -> None:
        self.closed = True


class FakeCoordinator:
    def __init__(self, address: str, members: Iterable[str] = (), fail_connect: bool = False):
        self.address = address
        self.members = list(members)
        self.fail_connect = fail_connect
        self.connected = False
        self.closed = False
        self.resolved: List[str] = []

    def connect(self) -> None:
        if self.fail_connect:
            raise CoordinatorUnavailableError(f"Could not connect to ZooKeeper at {self.address}")
        self.connected = True

    def get_live_members(self):
        return set(self.members)

    def resolve_base_url(self, member: str) -> str:
        self.resolved.append(member)
        host_and_port, _, context = member.partition("_")
        return f"http://{host_and_port}/{context}"

    def close(self) -> None:
        self.closed = True
