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
Typed view of the deployer custom properties.

Each setting is read from an ordered tuple of candidate property names;
the first one carrying a value wins. Legacy names come after the current
ones and are scheduled for removal.
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .instance_descriptor import InstanceDescriptor
from .launch_spec import NetworkScope, ReadinessCheck

DEFAULT_IMAGE_TAG = "latest"
DEFAULT_BINDS_DIR_SHARED = "/apprenda/docker-binds"
DEFAULT_BINDS_DIR_PERMISSIONS = 0o777
DEFAULT_READINESS_TIMEOUT = 300

IMAGE_NAME_KEYS = ("DockerImageName",)
IMAGE_TAG_KEYS = ("DockerImageTag",)
CMD_KEYS = ("DockerCmd",)
ENTRYPOINT_KEYS = ("DockerEntrypoint",)
FORCE_PULL_KEYS = ("DockerForcePull",)
BIND_LOCAL_KEYS = ("DockerBindLocal",)
BIND_SHARED_KEYS = ("DockerBindShared",)
BIND_HOST_KEYS = ("DockerBindHost",)
BIND_SHARED_ROOT_KEYS = ("DockerBindSharedRootDir",)
BIND_DIR_PERMISSIONS_KEYS = ("DockerBindDirPermissions",)
BIND_HOST_APPROVED_KEYS = ("DockerBindHostApprovedDirs",)
NETWORK_KEYS = ("DockerNetwork",)
NETWORK_SCOPE_KEYS = ("DockerNetworkScope",)
READINESS_KEYS = ("DockerReadinessCheck", "DockerHealthCheck")
READINESS_SCHEME_KEYS = ("DockerReadinessCheckScheme", "DockerHealthCheckScheme")
READINESS_PATH_KEYS = ("DockerReadinessCheckPath", "DockerHealthCheckPath")
READINESS_TIMEOUT_KEYS = ("DockerReadinessCheckTimeoutSecs", "DockerHealthCheckTimeoutSecs")
REMOVE_IMAGE_KEYS = ("DockerRemoveImage", "DockerImageRemove")


def _is_yes(value: str) -> bool:
    return value.strip().lower() == "yes"


class DeployerSettings(BaseModel):
    """
    Deployer configuration derived once from the descriptor's custom
    properties.
    """
    model_config = ConfigDict(frozen=True)

    image_repository: str = ""
    image_tag: str = DEFAULT_IMAGE_TAG
    force_pull: bool = False
    cmd: List[str] = []
    entrypoint: List[str] = []

    bind_local: List[str] = []
    bind_shared: List[str] = []
    bind_host: List[str] = []
    bind_shared_root: str = DEFAULT_BINDS_DIR_SHARED
    bind_dir_permissions: int = DEFAULT_BINDS_DIR_PERMISSIONS
    bind_host_approved_dirs: List[str] = []

    network: str = ""
    network_scope: Optional[NetworkScope] = None

    readiness: ReadinessCheck = Field(default_factory=ReadinessCheck)
    remove_image: bool = False

    descriptor: Optional[InstanceDescriptor] = Field(None, exclude=True, repr=False)

    @property
    def image_ref(self) -> str:
        return f"{self.image_repository}:{self.image_tag}"

    def extra(self, name: str) -> str:
        """
        Generic lookup for custom properties without a typed field.
        """
        if self.descriptor is None:
            return ""
        return self.descriptor.get_prop_first_value(name)

    @classmethod
    def from_descriptor(cls, descriptor: InstanceDescriptor) -> "DeployerSettings":
        """
        Maps the custom properties of a descriptor onto typed settings.

        :param descriptor: The loaded instance descriptor.
        :return: The deployer settings.
        """
        def first(keys: Tuple[str, ...]) -> str:
            for key in keys:
                value = descriptor.get_prop_first_value(key)
                if value:
                    return value
            return ""

        def all_values(keys: Tuple[str, ...]) -> List[str]:
            for key in keys:
                values = descriptor.get_prop(key)
                if values:
                    return values
            return []

        def first_int(keys: Tuple[str, ...]) -> Optional[int]:
            for key in keys:
                try:
                    return int(descriptor.get_prop_first_value(key))
                except ValueError:
                    continue
            return None

        try:
            permissions = int(first(BIND_DIR_PERMISSIONS_KEYS), 8)
        except ValueError:
            permissions = DEFAULT_BINDS_DIR_PERMISSIONS

        approved = first(BIND_HOST_APPROVED_KEYS)

        timeout = first_int(READINESS_TIMEOUT_KEYS)
        readiness = ReadinessCheck.from_values(
            enabled=_is_yes(first(READINESS_KEYS)),
            scheme=first(READINESS_SCHEME_KEYS),
            path=first(READINESS_PATH_KEYS),
            timeout=timeout if timeout is not None else DEFAULT_READINESS_TIMEOUT,
        )

        return cls(
            image_repository=first(IMAGE_NAME_KEYS),
            image_tag=first(IMAGE_TAG_KEYS) or DEFAULT_IMAGE_TAG,
            force_pull=_is_yes(first(FORCE_PULL_KEYS)),
            cmd=first(CMD_KEYS).split(),
            entrypoint=first(ENTRYPOINT_KEYS).split(),
            bind_local=all_values(BIND_LOCAL_KEYS),
            bind_shared=all_values(BIND_SHARED_KEYS),
            bind_host=all_values(BIND_HOST_KEYS),
            bind_shared_root=first(BIND_SHARED_ROOT_KEYS) or DEFAULT_BINDS_DIR_SHARED,
            bind_dir_permissions=permissions,
            bind_host_approved_dirs=[d for d in approved.split(":") if d],
            network=first(NETWORK_KEYS),
            network_scope=NetworkScope.parse(first(NETWORK_SCOPE_KEYS)),
            readiness=readiness,
            remove_image=_is_yes(first(REMOVE_IMAGE_KEYS)),
            descriptor=descriptor,
        )
