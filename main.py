# main.py
import argparse
import json
import logging
import sys

from backends.base import ResourceManager
from backends.kube import KubernetesResourceManager
from backends.yarn import YarnResourceManager
from launcher.controller import LaunchController
from probe.health import verify_cluster_health
from utils.config import ClusterConfig, SubmitOptions
from utils.errors import LauncherError
from utils.models import ApplicationState

logger = logging.getLogger("launcher")


def create_resource_manager(cluster_config: ClusterConfig) -> ResourceManager:
    if cluster_config.backend == "kubernetes":
        return KubernetesResourceManager(image=cluster_config.image, webhdfs_url=cluster_config.webhdfs_url)
    return YarnResourceManager(cluster_config.rm_url, timeout=cluster_config.request_timeout)


def run_submit(args) -> int:
    options = SubmitOptions.parse(vars(args))
    cluster_config = ClusterConfig.from_env(
        backend=args.backend,
        rm_url=args.rm_url,
        webhdfs_url=args.webhdfs_url,
        image=args.image,
    )
    rm = create_resource_manager(cluster_config)
    try:
        controller = LaunchController(rm, cluster_config, poll_timeout=args.poll_timeout)
        handle, state = controller.run(options)
    finally:
        rm.close()

    if state != ApplicationState.RUNNING:
        logger.error("Application %s ended up %s; check the resource manager logs", handle, state.value)
    return 0


def run_ping(args) -> int:
    system_info = verify_cluster_health(args.zk_host)
    print(json.dumps(system_info, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Launch SolrCloud on a shared cluster")
    parser.add_argument("-v", "--verbose", action="store_true", help="Generate verbose log messages")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Submit parser
    parser_submit = subparsers.add_parser("submit", help="Submit a SolrCloud cluster and wait for it to run")
    parser_submit.add_argument("--name", type=str, help="Application name; defaults to: SolrCloud")
    parser_submit.add_argument("--queue", type=str, help="Resource manager queue; default is default")
    parser_submit.add_argument("--zkHost", dest="zk_host", type=str,
                               help="Address of the Zookeeper ensemble; defaults to: localhost:2181")
    parser_submit.add_argument("--port", type=str, help="Solr port; default is 8983")
    parser_submit.add_argument("--hdfs_home", type=str,
                               help="Solr HDFS home directory; if provided, Solr will store indexes in HDFS")
    parser_submit.add_argument("--jar", type=str, required=True,
                               help="JAR file containing the SolrCloud YARN Application Master")
    parser_submit.add_argument("--solr", type=str, required=True, help="tgz file containing a Solr distribution")
    parser_submit.add_argument("--nodes", type=str, help="Number of Solr nodes to deploy; default is 1")
    parser_submit.add_argument("--memory", type=str, help="Memory (mb) to allocate to each Solr node; default is 512")
    parser_submit.add_argument("--virtualCores", dest="virtual_cores", type=str,
                               help="Virtual cores to allocate to each Solr node; default is 2")
    parser_submit.add_argument("--extclasspath", type=str,
                               help="Path to file containing additional classpath entries")
    parser_submit.add_argument("--backend", choices=["yarn", "kubernetes"], help="Resource manager; default is yarn")
    parser_submit.add_argument("--rm-url", type=str, help="ResourceManager REST URL; defaults to $YARN_RM_URL")
    parser_submit.add_argument("--webhdfs-url", type=str, help="WebHDFS URL for hdfs:// artifacts")
    parser_submit.add_argument("--image", type=str, help="Container image (kubernetes backend)")
    parser_submit.add_argument("--poll-timeout", type=float,
                               help="Give up waiting for the application after this many seconds")
    parser_submit.set_defaults(func=run_submit)

    # Ping parser
    parser_ping = subparsers.add_parser("ping", help="Fetch system info from one live Solr node")
    parser_ping.add_argument("--zkHost", dest="zk_host", type=str, default="localhost:2181",
                             help="Address of the Zookeeper ensemble; defaults to: localhost:2181")
    parser_ping.set_defaults(func=run_ping)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )
    try:
        return args.func(args)
    except LauncherError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
