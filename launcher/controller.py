# launcher/controller.py
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from backends.base import ResourceManager
from launcher.builder import build_launch_spec, external_config_path
from launcher.submitter import log_diagnostics, submit_and_wait_for_running
from probe.health import verify_cluster_health
from utils.config import ClusterConfig, SubmitOptions
from utils.models import ApplicationState

logger = logging.getLogger(__name__)

# Gives freshly started nodes time to register with ZooKeeper
SETTLE_DELAY_SECONDS = 10.0


class LaunchController:
    def __init__(
        self,
        rm: ResourceManager,
        cluster_config: ClusterConfig,
        health_check: Callable[[str], Dict[str, Any]] = verify_cluster_health,
        poll_timeout: Optional[float] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.rm = rm
        self.cluster_config = cluster_config
        self.health_check = health_check
        self.poll_timeout = poll_timeout
        self.sleep = sleep

    def run(self, options: SubmitOptions) -> Tuple[str, ApplicationState]:
        """Full pipeline: build -> submit -> poll -> smoke test.

        The smoke test is advisory. Once the resource manager reports the
        application RUNNING the launch counts as done, whatever the probe says.
        """
        logger.info("[Launcher] Starting with options: %s", options.model_dump(exclude_none=True))
        spec = build_launch_spec(options, self.cluster_config)

        log_diagnostics(self.rm, options.queue)

        conf_path = external_config_path(options)
        if conf_path:
            logger.info("[Launcher] Writing cluster configuration to %s", conf_path)
            self.cluster_config.write_xml(conf_path)

        handle, state = submit_and_wait_for_running(
            self.rm, spec, poll_timeout=self.poll_timeout, sleep=self.sleep
        )

        if state == ApplicationState.RUNNING:
            logger.info("[Launcher] Pinging Solr cluster via %s", options.zk_host)
            self.sleep(SETTLE_DELAY_SECONDS)
            try:
                system_info = self.health_check(options.zk_host)
                logger.info("[Launcher] Ping response: %s", system_info)
            except Exception as e:
                logger.error("[Launcher] FAILED TO PING SOLR due to: %s", e, exc_info=True)

        return handle, state
