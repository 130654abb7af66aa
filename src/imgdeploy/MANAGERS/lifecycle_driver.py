# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Lifecycle phases of the workload container: deploy, start, stop and
remove. Each phase runs in its own process; state lives in the engine.
"""
import logging
from enum import Enum
from typing import Optional

from ..BUILDERS.launch_spec_builder import LaunchSpecBuilder
from ..CONFIG.runtime_settings import RuntimeSettings
from ..ENGINE.container_engine import ContainerEngine
from ..exceptions import EngineError, NotFoundError
from ..MODELS.deployer_settings import DeployerSettings
from ..MODELS.instance_descriptor import InstanceDescriptor
from .bind_resolver import BindResolver, BindResolution
from .log_forwarder import LogForwarder
from .monitor_writer import MonitorWriter
from .network_resolver import NetworkScopeResolver
from .readiness_prober import ReadinessProber, readiness_url

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    """State of the workload container as reported by the engine."""

    ABSENT = "absent"
    CREATED = "created"
    RUNNING = "running"
    STOPPED = "stopped"


class LifecycleDriver:
    """
    Sequences the resolvers and engine calls for each lifecycle phase.
    """

    def __init__(
        self,
        descriptor: InstanceDescriptor,
        engine: ContainerEngine,
        runtime: Optional[RuntimeSettings] = None,
        prober: Optional[ReadinessProber] = None,
    ):
        """
        Initializes the driver.

        :param descriptor: The instance descriptor.
        :param engine: Container engine to drive.
        :param runtime: Process-level settings.
        :param prober: Readiness prober used by start.
        """
        self.descriptor = descriptor
        self.engine = engine
        self.runtime = runtime or RuntimeSettings()
        self.prober = prober or ReadinessProber()
        self.settings = DeployerSettings.from_descriptor(descriptor)
        self.network_resolver = NetworkScopeResolver(descriptor, self.settings)
        self.log_forwarder = LogForwarder(descriptor)

    @property
    def container_name(self) -> str:
        return self.descriptor.container_name

    def state(self) -> LifecycleState:
        """
        Queries the engine for the container's current state.
        """
        try:
            info = self.engine.inspect(self.container_name)
        except NotFoundError:
            return LifecycleState.ABSENT
        if info.status == "created":
            return LifecycleState.CREATED
        if info.status in ("running", "paused", "restarting"):
            return LifecycleState.RUNNING
        return LifecycleState.STOPPED

    def deploy(self) -> BindResolution:
        """
        absent -> created. Resolves binds and network, then creates the
        container.

        :return: The bind resolution, including archive copy failures.
        """
        binds = BindResolver(self.descriptor, self.settings).resolve()

        network_name, alias = self.network_resolver.resolve()
        if alias is not None:
            self.network_resolver.ensure_network(self.engine, network_name)

        builder = LaunchSpecBuilder(self.descriptor, self.settings)
        builder.build_and_create(self.engine, binds.specs, network_name, alias)
        return binds

    def start(self) -> None:
        """
        created -> running. A readiness failure leaves the container
        running and fails the phase.
        """
        self.engine.start(self.container_name)
        logger.info("Container started")

        info = self.engine.inspect(self.container_name)
        docker_version = self.engine.server_version()

        self.check_readiness()

        MonitorWriter(self.descriptor, self.runtime.workload_pidfile).write(info, docker_version)
        self.log_forwarder.start(info)

    def check_readiness(self) -> None:
        check = self.settings.readiness
        if not check.enabled:
            return
        url = readiness_url(self.descriptor, check)
        if url is None:
            logger.info("No HTTP port allocated, skipping readiness checks")
            return
        logger.info("Starting readiness checks against %s", url)
        self.prober.await_ready(url, check.timeout)

    def stop(self) -> None:
        """
        running -> stopped. Stops the container, then the log forwarder.
        """
        self.engine.stop(self.container_name, timeout=self.runtime.stop_timeout)
        logger.info("Container stopped")
        self.log_forwarder.stop()

    def remove(self) -> None:
        """
        created/running/stopped -> absent. Network and image removal are
        best-effort.
        """
        try:
            self.engine.remove(self.container_name, force=True, volumes=True)
            logger.info("Container removed")
        except NotFoundError:
            logger.info("Container %s does not exist, nothing to remove", self.container_name)

        if self.network_resolver.scoped:
            self.network_resolver.remove_network(self.engine, self.network_resolver.network_name())

        if self.settings.remove_image:
            self.remove_image()

    def remove_image(self) -> None:
        if not self.settings.image_repository:
            return
        ref = self.settings.image_ref
        try:
            self.engine.image_remove(ref)
        except EngineError as e:
            logger.info("Image %s not removed because other containers are still using it: %s", ref, e)
            return
        logger.info("Image removed")
