"""
Hand-off of container log shipping to the host's log forwarder.
"""
import logging
import os
import subprocess

import psutil

from ..ENGINE.container_engine import ContainerInfo
from ..exceptions import LogForwarderError
from ..MODELS.instance_descriptor import InstanceDescriptor
from ..MODELS.monitor import ForwarderFields, ForwarderFile, ForwarderNetwork, LogForwarderConfig

logger = logging.getLogger(__name__)

FORWARDER_SERVER = "localhost:6782"
FORWARDER_TIMEOUT = 15
FORWARDER_LOG_TYPE = "v1 stdout/sderr"
CONFIG_FILE_NAME = "logstash-forwarder-config.json"
PID_FILE_NAME = "logstash_forwarder.pid"


class LogForwarder:
    """
    Writes the forwarder configuration, launches the forwarder start
    script and later stops the forwarder through its PID file.
    """
    def __init__(self, descriptor: InstanceDescriptor):
        self.descriptor = descriptor

    @property
    def base_path(self) -> str:
        return self.descriptor.get_token("BASEPATH")

    @property
    def config_path(self) -> str:
        return os.path.join(self.base_path, CONFIG_FILE_NAME)

    @property
    def pid_path(self) -> str:
        return os.path.join(self.base_path, PID_FILE_NAME)

    @property
    def start_script(self) -> str:
        return os.path.join(
            self.descriptor.host.provided_package_dir,
            "logstash-forwarder", "bin", "start-log-monitor.sh",
        )

    def build_config(self, container: ContainerInfo) -> LogForwarderConfig:
        w = self.descriptor.workload
        return LogForwarderConfig(
            network=ForwarderNetwork(
                servers=[FORWARDER_SERVER],
                ssl_ca=os.path.join(
                    self.descriptor.host.provided_package_dir,
                    "logstash-forwarder", "etc", "apprenda-logstash2.crt",
                ),
                timeout=FORWARDER_TIMEOUT,
            ),
            files=[
                ForwarderFile(
                    paths=[container.log_path],
                    fields=ForwarderFields(
                        type=FORWARDER_LOG_TYPE,
                        instance_id=w.instance_id,
                        provider_id=w.provider_id,
                        version_id=w.version_id,
                    ),
                ),
            ],
        )

    def write_config(self, container: ContainerInfo) -> None:
        config = self.build_config(container)
        try:
            with open(self.config_path, 'w') as f:
                f.write(config.model_dump_json(by_alias=True, indent=2))
        except OSError as e:
            raise LogForwarderError(f"Cannot write forwarder config {self.config_path}: {e}") from e
        logger.info("Created %s file", CONFIG_FILE_NAME)

    def start(self, container: ContainerInfo) -> None:
        """
        Writes the forwarder configuration and runs the start script.

        :raises LogForwarderError: If the script cannot be run or fails.
        """
        self.write_config(container)
        try:
            subprocess.run([self.start_script, self.config_path], check=True, shell=False)
        except (OSError, subprocess.CalledProcessError) as e:
            raise LogForwarderError(f"Failed to start log forwarder: {e}") from e
        logger.info("Started logstash-forwarder")

    def stop(self) -> None:
        """
        Kills the forwarder process named in its PID file.

        :raises LogForwarderError: If the PID file is missing or unreadable,
            or the process cannot be killed.
        """
        try:
            with open(self.pid_path, 'r') as f:
                pid = int(f.read().split()[0])
        except (OSError, ValueError, IndexError) as e:
            raise LogForwarderError(f"Cannot read forwarder PID file {self.pid_path}: {e}") from e

        try:
            psutil.Process(pid).kill()
        except psutil.Error as e:
            raise LogForwarderError(f"Cannot kill log forwarder (pid {pid}): {e}") from e
        logger.info("Stopped logstash-forwarder")
