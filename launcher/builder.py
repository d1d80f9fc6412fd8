# launcher/builder.py
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import urlsplit

import httpx

from utils.config import ClusterConfig, SubmitOptions
from utils.errors import ArtifactError, ArtifactNotFoundError
from utils.models import LaunchSpec, LocalResource, Resources

logger = logging.getLogger(__name__)

MASTER_CLASS = "org.apache.solr.cloud.yarn.SolrMaster"
MASTER_RESOURCES = Resources(memory_mb=128, vcores=1)
APP_JAR_NAME = "app.jar"
EXT_CONF_FILE = "ext-yarn-conf.xml"
# Expanded by the resource manager when the container starts
LOG_DIR_PLACEHOLDER = "<LOG_DIR>"
CLASSPATH_SEPARATOR = ":"


def _stat_hdfs(location: str, webhdfs_url: Optional[str]) -> LocalResource:
    if not webhdfs_url:
        raise ArtifactError(f"{location} is on HDFS but no WebHDFS URL is configured")
    status_url = f"{webhdfs_url.rstrip('/')}/webhdfs/v1{urlsplit(location).path}"
    try:
        response = httpx.get(status_url, params={"op": "GETFILESTATUS"})
    except httpx.HTTPError as e:
        raise ArtifactError(f"Could not reach WebHDFS at {webhdfs_url}: {e}") from e
    if response.status_code == 404:
        raise ArtifactNotFoundError(f"Artifact not found: {location}")
    if not response.is_success:
        raise ArtifactError(f"WebHDFS returned {response.status_code} for {location}: {response.text}")
    try:
        status = response.json()["FileStatus"]
        file_type, length, modified = status["type"], status["length"], status["modificationTime"]
    except (ValueError, KeyError, TypeError) as e:
        raise ArtifactError(f"Unexpected WebHDFS file status for {location}: {response.text!r}") from e
    if file_type != "FILE":
        raise ArtifactNotFoundError(f"Artifact is not a file: {location}")
    return LocalResource(location=location, size=length, timestamp=modified)


def stat_artifact(location: str, webhdfs_url: Optional[str] = None) -> LocalResource:
    """Resolves an artifact reference to something the resource manager can stage."""
    if location.startswith("hdfs://"):
        return _stat_hdfs(location, webhdfs_url)

    path = Path(location[len("file://"):] if location.startswith("file://") else location)
    path = path.expanduser().resolve()
    if not path.is_file() or not os.access(path, os.R_OK):
        raise ArtifactNotFoundError(f"Artifact not found or not readable: {location}")
    stat_info = path.stat()
    return LocalResource(
        location=path.as_uri(),
        size=stat_info.st_size,
        timestamp=int(stat_info.st_mtime * 1000),
    )


def read_classpath_file(path: str) -> List[str]:
    """One or more ':'-separated entries per line; blanks are dropped."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            joined = CLASSPATH_SEPARATOR.join(line.strip() for line in handle)
    except OSError as e:
        raise ArtifactNotFoundError(f"Cannot read classpath file {path}: {e}") from e
    return [part for part in joined.split(CLASSPATH_SEPARATOR) if part]


def build_environment(application_classpath: Iterable[str], extclasspath: Optional[str] = None) -> Dict[str, str]:
    entries = [entry.strip() for entry in application_classpath if entry.strip()]
    entries.append("$PWD" + os.sep + "*")
    if extclasspath:
        entries.extend(read_classpath_file(extclasspath))
    return {"CLASSPATH": CLASSPATH_SEPARATOR.join(entries)}


def external_config_path(options: SubmitOptions) -> Optional[str]:
    """Where the cluster settings are written for the master, if it needs them."""
    if not options.extclasspath:
        return None
    return os.path.abspath(EXT_CONF_FILE)


def build_command(options: SubmitOptions) -> List[str]:
    command = [
        "$JAVA_HOME/bin/java",
        "-Xmx128M",
        MASTER_CLASS,
        f"-nodes={options.nodes}",
        f"-memory={options.memory}",
        f"-virtualCores={options.virtual_cores}",
        f"-zkHost={options.zk_host}",
        f"-port={options.port}",
        f"-solr={options.solr}",
    ]
    conf_path = external_config_path(options)
    if conf_path:
        command.append(f"-conf={conf_path}")
    if options.hdfs_home:
        command.append(f"-hdfs_home={options.hdfs_home}")
    command.append(f"1>{LOG_DIR_PLACEHOLDER}/stdout")
    command.append(f"2>{LOG_DIR_PLACEHOLDER}/stderr")
    return command


def build_launch_spec(
    options: SubmitOptions,
    cluster_config: Optional[ClusterConfig] = None,
    stat: Callable[[str, Optional[str]], LocalResource] = stat_artifact,
) -> LaunchSpec:
    cluster_config = cluster_config or ClusterConfig()

    app_jar = stat(options.jar, cluster_config.webhdfs_url)
    # the archive is fetched by the master itself; only make sure it is there
    stat(options.solr, cluster_config.webhdfs_url)
    logger.debug("[Builder] Staging %s (%d bytes) as %s", app_jar.location, app_jar.size, APP_JAR_NAME)

    return LaunchSpec(
        command=tuple(build_command(options)),
        resources=MASTER_RESOURCES,
        staged_artifacts={APP_JAR_NAME: app_jar},
        environment=build_environment(cluster_config.application_classpath, options.extclasspath),
        queue_name=options.queue,
        app_name=options.name,
    )
