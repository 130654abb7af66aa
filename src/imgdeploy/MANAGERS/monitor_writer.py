"""
Writes the files the host supervisor reads after a successful start: the
container PID file, the marker properties files and monitor.json.
"""
import logging
import os

from jinja2 import Template

from .. import __version__
from ..ENGINE.container_engine import ContainerInfo
from ..exceptions import ConfigurationError, DeployerError
from ..MODELS.instance_descriptor import InstanceDescriptor
from ..MODELS.monitor import Monitor, ResourceConfig, ResourcePolicyConfig

logger = logging.getLogger(__name__)

MARKER_FILE_NAME = "apprenda-docker.properties"
MONITOR_FILE_NAME = "monitor.json"

MARKER_TEMPLATE = Template(
    "docker.version={{ docker_version }}\n"
    "deployer.version={{ deployer_version }}\n",
    keep_trailing_newline=True,
)


def write_file(path: str, content: str) -> None:
    try:
        with open(path, 'w') as f:
            f.write(content)
    except OSError as e:
        raise DeployerError(f"Cannot write {path}: {e}") from e


class MonitorWriter:
    """
    Emits the monitor artifacts for a running container.
    """
    def __init__(self, descriptor: InstanceDescriptor, pid_file: str):
        """
        :param descriptor: The instance descriptor.
        :param pid_file: Path of the workload PID file expected by the host.
        """
        self.descriptor = descriptor
        self.pid_file = pid_file

    @property
    def base_path(self) -> str:
        return self.descriptor.get_token("BASEPATH")

    def build_monitor(self, container: ContainerInfo) -> Monitor:
        d = self.descriptor
        policy = d.resource.resource_policy
        return Monitor(
            pid_file_path=self.pid_file,
            cgroup=f"/system.slice/docker-{container.id}.scope",
            launch_log_path=os.path.join(d.get_token("DEPLOYER_BASEDIR"), "startWorkload.out"),
            workload_log_path=os.path.join(self.base_path, "dockerStart.out"),
            resource_config=ResourceConfig(
                stats_polling_interval=d.resource.stats_polling_interval,
                stats_publishing_interval=d.resource.stats_publishing_interval,
                resource_policy=ResourcePolicyConfig(
                    cpu_limit=policy.cpu_limit,
                    memory_limit=policy.memory_limit,
                    memory_limit_bytes=policy.memory_limit_bytes,
                    name=policy.name,
                    version_id=policy.version_id,
                ),
            ),
        )

    def write(self, container: ContainerInfo, docker_version: str) -> None:
        """
        Writes the PID file, both marker files and monitor.json.

        :raises ConfigurationError: If no workload PID file is configured.
        :raises DeployerError: If one of the files cannot be written.
        """
        if not self.pid_file:
            raise ConfigurationError("$APPRENDA_WORKLOAD_PIDFILE environment variable not defined")

        monitor = self.build_monitor(container)

        write_file(self.pid_file, str(container.pid))
        logger.info("Created container PID file")

        marker = MARKER_TEMPLATE.render(docker_version=docker_version, deployer_version=__version__)
        for directory in (self.base_path, self.descriptor.get_token("DEPLOYER_EVENTS_BASEDIR")):
            write_file(os.path.join(directory, MARKER_FILE_NAME), marker)
        logger.info("Created Apprenda-Docker marker files")

        write_file(os.path.join(self.base_path, MONITOR_FILE_NAME),
                   monitor.model_dump_json(by_alias=True, indent=2))
        logger.info("Created workload monitor.json file")
