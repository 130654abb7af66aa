"""
Network placement for the workload container: scoped network naming,
endpoint aliases and create-if-absent.
"""
import logging
from typing import Optional, Tuple

from ..ENGINE.container_engine import ContainerEngine
from ..exceptions import ConflictError, EngineError
from ..MODELS.deployer_settings import DeployerSettings
from ..MODELS.instance_descriptor import InstanceDescriptor
from ..MODELS.launch_spec import NetworkScope

logger = logging.getLogger(__name__)

NETWORK_DRIVER = "overlay"


def scoped_network_name(scope: Optional[NetworkScope],
                        tenant: str,
                        app_alias: str,
                        version_alias: str,
                        configured_name: str) -> str:
    """
    Builds the network name for a scope.

    app    -> app-{tenant}-{app}-{version}
    tenant -> tenant-{tenant}-{name}
    global -> global--{name}
    other  -> {name}
    """
    if scope == NetworkScope.APP:
        parts = ["app", tenant, app_alias, version_alias]
    elif scope == NetworkScope.TENANT:
        parts = ["tenant", tenant, configured_name]
    elif scope == NetworkScope.GLOBAL:
        # 'global-' keeps the historical double hyphen
        parts = ["global-", configured_name]
    else:
        parts = [configured_name]
    return "-".join(parts)


class NetworkScopeResolver:
    """
    Resolves the network name and alias for a workload and makes sure the
    network exists.
    """
    def __init__(self, descriptor: InstanceDescriptor, settings: DeployerSettings):
        self.descriptor = descriptor
        self.settings = settings

    @property
    def scoped(self) -> bool:
        return self.settings.network_scope is not None

    def network_name(self) -> str:
        """
        The network the container joins. Without a scope this is the
        configured DockerNetwork value as-is (possibly empty).
        """
        if not self.scoped:
            return self.settings.network
        w = self.descriptor.workload
        name = scoped_network_name(
            self.settings.network_scope,
            self.descriptor.tenant_alias,
            w.application_alias,
            w.version_alias,
            self.settings.network.lower(),
        )
        logger.info("Network name is '%s'", name)
        return name

    def network_alias(self) -> str:
        w = self.descriptor.workload
        if self.settings.network_scope == NetworkScope.APP:
            return w.bundle_name
        return "-".join([w.application_alias, w.version_alias, w.bundle_name])

    def resolve(self) -> Tuple[str, Optional[str]]:
        """
        :return: (network name, endpoint alias). The alias is None when no
            scope is configured.
        """
        if not self.scoped:
            return self.network_name(), None
        return self.network_name(), self.network_alias()

    @staticmethod
    def ensure_network(engine: ContainerEngine, name: str) -> None:
        """
        Creates the network unless one with this name exists. A concurrent
        deploy creating it first is not an error.
        """
        if name in engine.network_list():
            logger.info("Network '%s' already exists", name)
            return
        try:
            engine.network_create(name, driver=NETWORK_DRIVER, attachable=True)
        except ConflictError:
            logger.info("Network '%s' was created concurrently", name)
            return
        logger.info("Successfully created network '%s'", name)

    @staticmethod
    def remove_network(engine: ContainerEngine, name: str) -> None:
        """
        Removes the network, logging failures (other workloads in the same
        scope may still be attached).
        """
        try:
            engine.network_remove(name)
        except EngineError as e:
            logger.warning("Network '%s' not removed: %s", name, e)
            return
        logger.info("Network '%s' removed", name)
