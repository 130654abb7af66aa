"""
Builder composing the container launch specification and creating the
container through the engine.
"""
import logging
from typing import List, Optional

from ..ENGINE.container_engine import ContainerEngine
from ..exceptions import ConfigurationError, ImageNotFoundError
from ..MODELS.deployer_settings import DeployerSettings
from ..MODELS.instance_descriptor import InstanceDescriptor
from ..MODELS.launch_spec import LaunchSpec
from ..UTILS.port_specs import parse_port_specs, port_spec_for

logger = logging.getLogger(__name__)

MB = 1024 * 1024


class LaunchSpecBuilder:
    """
    Builds a LaunchSpec from the descriptor and creates the container.
    """
    def __init__(self, descriptor: InstanceDescriptor, settings: DeployerSettings):
        """
        Initializes the builder.

        :param descriptor: The instance descriptor.
        :param settings: Deployer settings derived from the descriptor.
        """
        self.descriptor = descriptor
        self.settings = settings

    def image_ref(self) -> str:
        """
        Returns 'repository:tag'.

        :raises ConfigurationError: If DockerImageName is not set.
        """
        if not self.settings.image_repository:
            raise ConfigurationError(
                "DockerImageName Custom Property for the component must be "
                "populated with a valid Registry name"
            )
        return self.settings.image_ref

    def port_specs(self) -> List[str]:
        return [port_spec_for(p) for p in self.descriptor.process.ports.allocated]

    def build(self,
              binds: List[str],
              network_name: str = "",
              network_alias: Optional[str] = None) -> LaunchSpec:
        """
        Composes the launch specification.

        :param binds: Engine bind strings.
        :param network_name: Network (mode) the container joins.
        :param network_alias: Endpoint alias on that network.
        :return: The launch specification.
        """
        exposed, bindings = parse_port_specs(self.port_specs())
        policy = self.descriptor.resource.resource_policy

        return LaunchSpec(
            name=self.descriptor.container_name,
            image=self.image_ref(),
            exposed_ports=exposed,
            port_bindings=bindings,
            env=self.descriptor.get_env(),
            cmd=self.settings.cmd,
            entrypoint=self.settings.entrypoint,
            memory_bytes=policy.memory_limit * MB if policy.memory_limit > 0 else None,
            cpu_shares=policy.cpu_limit if policy.cpu_limit > 0 else None,
            binds=binds,
            network_name=network_name,
            network_alias=network_alias,
        )

    def build_and_create(self,
                         engine: ContainerEngine,
                         binds: List[str],
                         network_name: str = "",
                         network_alias: Optional[str] = None) -> str:
        """
        Builds the launch specification and creates the container. When the
        image is missing locally it is pulled and creation retried once.

        :return: The new container ID.
        """
        spec = self.build(binds, network_name, network_alias)

        if self.settings.force_pull:
            logger.info("Forcing an image pull")
            engine.pull(spec.image)

        try:
            container_id = engine.create(spec)
        except ImageNotFoundError:
            logger.info("Image not found locally, trying to pull it")
            engine.pull(spec.image)
            container_id = engine.create(spec)

        logger.info("Container created from %s", spec.image)
        return container_id
