# utils/config.py
import os
import xml.etree.ElementTree as ET
from typing import Any, Literal, Mapping, Optional, Tuple
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from utils.errors import InvalidOptionError

# Mirrors yarn.application.classpath's stock value
DEFAULT_APPLICATION_CLASSPATH: Tuple[str, ...] = (
    "$HADOOP_CONF_DIR",
    "$HADOOP_COMMON_HOME/share/hadoop/common/*",
    "$HADOOP_COMMON_HOME/share/hadoop/common/lib/*",
    "$HADOOP_HDFS_HOME/share/hadoop/hdfs/*",
    "$HADOOP_HDFS_HOME/share/hadoop/hdfs/lib/*",
    "$HADOOP_YARN_HOME/share/hadoop/yarn/*",
    "$HADOOP_YARN_HOME/share/hadoop/yarn/lib/*",
)


def _validated(model, values: Mapping[str, Any]):
    # argparse reports absent options as None; let the model defaults apply
    present = {k: v for k, v in values.items() if v is not None}
    try:
        return model.model_validate(present)
    except ValidationError as e:
        raise InvalidOptionError(f"Invalid options: {e}") from e


class SubmitOptions(BaseModel):
    """Options describing the search cluster to launch."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = "SolrCloud"
    queue: str = "default"
    zk_host: str = "localhost:2181"
    port: int = Field(8983, ge=1, le=65535)
    hdfs_home: Optional[str] = None
    jar: str
    solr: str
    nodes: int = Field(1, gt=0)
    memory: int = Field(512, gt=0)
    virtual_cores: int = Field(2, gt=0)
    extclasspath: Optional[str] = None

    @classmethod
    def parse(cls, values: Mapping[str, Any]) -> "SubmitOptions":
        return _validated(cls, values)


class ClusterConfig(BaseModel):
    """Where the resource manager lives and how containers are set up."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    backend: Literal["yarn", "kubernetes"] = "yarn"
    rm_url: str = "http://localhost:8088"
    webhdfs_url: Optional[str] = None
    application_classpath: Tuple[str, ...] = DEFAULT_APPLICATION_CLASSPATH
    image: str = "eclipse-temurin:8-jre"
    request_timeout: float = Field(30.0, gt=0)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ClusterConfig":
        environ = os.environ if environ is None else environ
        values: dict = {
            "rm_url": environ.get("YARN_RM_URL"),
            "webhdfs_url": environ.get("WEBHDFS_URL"),
            "image": environ.get("LAUNCHER_IMAGE"),
        }
        classpath = environ.get("YARN_APPLICATION_CLASSPATH")
        if classpath:
            values["application_classpath"] = tuple(
                entry.strip() for entry in classpath.split(",") if entry.strip()
            )
        values.update((k, v) for k, v in overrides.items() if v is not None)
        return _validated(cls, values)

    def write_xml(self, path: str) -> None:
        """Writes the settings as a Hadoop configuration file."""
        properties = {
            "yarn.resourcemanager.webapp.address": urlsplit(self.rm_url).netloc,
            "yarn.application.classpath": ",".join(self.application_classpath),
        }
        if self.webhdfs_url:
            properties["dfs.namenode.http-address"] = urlsplit(self.webhdfs_url).netloc

        root = ET.Element("configuration")
        for name, value in properties.items():
            prop = ET.SubElement(root, "property")
            ET.SubElement(prop, "name").text = name
            ET.SubElement(prop, "value").text = value
        ET.ElementTree(root).write(path, encoding="UTF-8", xml_declaration=True)
