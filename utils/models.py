# utils/models.py
from enum import Enum
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ApplicationState(str, Enum):
    NEW = "NEW"
    NEW_SAVING = "NEW_SAVING"
    SUBMITTED = "SUBMITTED"
    ACCEPTED = "ACCEPTED"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    KILLED = "KILLED"


# States at which the launcher stops polling the resource manager
STOP_POLLING_STATES = frozenset(
    {ApplicationState.RUNNING, ApplicationState.KILLED, ApplicationState.FAILED}
)


class Resources(BaseModel):
    model_config = ConfigDict(frozen=True)

    memory_mb: int
    vcores: int


class LocalResource(BaseModel):
    """A file the resource manager copies into the container before launch."""
    model_config = ConfigDict(frozen=True)

    location: str
    size: int
    timestamp: int  # modification time, epoch millis
    type: str = "FILE"
    visibility: str = "APPLICATION"


class LaunchSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    command: Tuple[str, ...]
    resources: Resources
    staged_artifacts: Dict[str, LocalResource]
    environment: Dict[str, str]
    queue_name: str
    app_name: str

    def command_line(self) -> str:
        return " ".join(self.command)


class ClusterMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    node_id: str
    base_url: str


# Diagnostics reported by the resource manager; logged only
class ClusterMetrics(BaseModel):
    active_nodes: int


class NodeReport(BaseModel):
    node_id: str
    http_address: Optional[str] = None
    rack: Optional[str] = None
    num_containers: Optional[int] = None


class QueueInfo(BaseModel):
    queue_name: str
    capacity: Optional[float] = None
    max_capacity: Optional[float] = None
    application_count: int = 0
    child_queue_count: int = 0
