# launcher/submitter.py
import logging
import time
from typing import Callable, Optional, Tuple

from pydantic import ValidationError

from backends.base import ResourceManager
from utils.errors import PollTimeoutError, ResourceManagerError, SubmissionError
from utils.models import STOP_POLLING_STATES, ApplicationState, LaunchSpec

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 10.0


def log_diagnostics(rm: ResourceManager, queue_name: str) -> None:
    """Logs what the resource manager knows about the cluster and the target queue."""
    try:
        metrics = rm.get_cluster_metrics()
        logger.info("[Submitter] Got cluster metric info, numNodeManagers=%d", metrics.active_nodes)

        for node in rm.get_node_reports():
            logger.info(
                "[Submitter] Got node report, nodeId=%s, nodeAddress=%s, nodeRackName=%s, nodeNumContainers=%s",
                node.node_id, node.http_address, node.rack, node.num_containers,
            )

        queue = rm.get_queue_info(queue_name)
        logger.info(
            "[Submitter] Queue info, queueName=%s, queueCurrentCapacity=%s, queueMaxCapacity=%s, "
            "queueApplicationCount=%d, queueChildQueueCount=%d",
            queue.queue_name, queue.capacity, queue.max_capacity,
            queue.application_count, queue.child_queue_count,
        )
    except (ResourceManagerError, ValidationError, AttributeError) as e:
        # malformed reports land here too; diagnostics never stop a launch
        logger.warning("[Submitter] Could not collect cluster diagnostics: %s", e)


def submit_and_wait_for_running(
    rm: ResourceManager,
    spec: LaunchSpec,
    poll_timeout: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Tuple[str, ApplicationState]:
    """Submits spec and polls until the application is RUNNING, KILLED or FAILED.

    Polls forever unless poll_timeout (seconds) is given. Reaching KILLED or
    FAILED is reported through the returned state, not raised.
    """
    try:
        application_id = rm.create_application()
        logger.info("[Submitter] Submitting application %s", application_id)
        handle = rm.submit_application(application_id, spec)
    except ResourceManagerError as e:
        raise SubmissionError(f"Failed to submit application '{spec.app_name}': {e}") from e

    deadline = None if poll_timeout is None else clock() + poll_timeout
    state = rm.get_application_state(handle)
    while state not in STOP_POLLING_STATES:
        if deadline is not None and clock() >= deadline:
            raise PollTimeoutError(
                f"Application {handle} still {state.value} after {poll_timeout:g} seconds",
                last_state=state,
            )
        logger.debug("[Submitter] Application %s is %s", handle, state.value)
        sleep(POLL_INTERVAL_SECONDS)
        state = rm.get_application_state(handle)

    logger.info("[Submitter] Application (%s) is %s", handle, state.value)
    return handle, state
