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
Bind mount resolution: computes host directories for local, shared and
host binds, pre-creates them and seeds them from the staged workload
archive.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import List, Tuple

from ..exceptions import ConfigurationError, CopyError, DeployerError
from ..MODELS.deployer_settings import DeployerSettings
from ..MODELS.instance_descriptor import InstanceDescriptor
from ..MODELS.launch_spec import BindClass, BindEntry
from ..UTILS.fs_utils import copy_dir_if_exists, scoped_umask

logger = logging.getLogger(__name__)

LEGACY_PLATFORM_PREFIX = "6.5"


@dataclass
class BindResolution:
    """Result of bind resolution."""

    binds: List[BindEntry] = field(default_factory=list)
    copy_errors: List[CopyError] = field(default_factory=list)

    @property
    def specs(self) -> List[str]:
        """The binds formatted as engine bind strings, in order."""
        return [b.spec for b in self.binds]


def split_bind_path(path: str, root: str) -> Tuple[str, str]:
    """
    Maps a declared container path onto a host directory under root.

    :param path: Absolute container path, optionally followed by ':options'.
    :param root: Host directory the bind class lives under.
    :return: (host path, path relative to '/' without options).
    :raises ConfigurationError: If the path is not absolute.
    """
    if not path.startswith("/"):
        raise ConfigurationError(f"All bind mounts must be absolute paths: {path!r}")
    relative = path[1:].split(":", 1)[0]
    return os.path.normpath(os.path.join(root, relative)), relative


def path_is_approved(path: str, approved_dirs: List[str]) -> bool:
    return any(path.startswith(approved) for approved in approved_dirs)


class BindResolver:
    """
    Resolves the bind list for a workload.
    """
    def __init__(self,
                 descriptor: InstanceDescriptor,
                 settings: DeployerSettings,
                 fail_fast: bool = False):
        """
        Initializes the bind resolver.

        :param descriptor: The instance descriptor.
        :param settings: Deployer settings derived from the descriptor.
        :param fail_fast: Abort on the first archive copy failure instead of
            collecting failures in the result.
        """
        self.descriptor = descriptor
        self.settings = settings
        self.fail_fast = fail_fast

    @property
    def archive_src_dir(self) -> str:
        """
        Directory holding the staged workload content. 6.5 platforms stage
        it in the repository; later ones in the instance temp directory.
        """
        d = self.descriptor
        w = d.workload
        if d.platform.platform_version.startswith(LEGACY_PLATFORM_PREFIX):
            return os.path.join(
                d.host.repository_dir,
                d.tenant_alias,
                w.application_alias,
                w.version_alias,
                "base", "linuxServices",
                w.bundle_name,
            )
        return os.path.join(d.host.root, w.instance_id, f"{w.instance_id}_temp", "workload")

    @property
    def local_root(self) -> str:
        return os.path.join(self.descriptor.host.root, self.descriptor.workload.instance_id, "docker-binds")

    @property
    def shared_root(self) -> str:
        w = self.descriptor.workload
        return os.path.join(
            self.settings.bind_shared_root,
            self.descriptor.tenant_alias,
            w.application_alias,
            w.version_alias,
        )

    def resolve(self) -> BindResolution:
        """
        Resolves local, shared and host binds, in that order.

        :return: The binds and any archive entries that failed to copy.
        :raises ConfigurationError: On invalid paths or disallowed host binds.
        """
        result = BindResolution()
        for bind_class, paths, root in (
            (BindClass.LOCAL, self.settings.bind_local, self.local_root),
            (BindClass.SHARED, self.settings.bind_shared, self.shared_root),
        ):
            if not paths:
                continue
            self.pre_create_dirs(paths, root)
            binds, errors = self.binds_for_paths(bind_class, paths, root)
            result.binds.extend(binds)
            result.copy_errors.extend(errors)

        if self.settings.bind_host:
            result.binds.extend(self.binds_for_host_paths(self.settings.bind_host))

        logger.info("Resolved %d bind(s)", len(result.binds))
        return result

    def pre_create_dirs(self, paths: List[str], root: str) -> None:
        """
        Creates the host directory of every path with the configured mode.
        """
        mode = self.settings.bind_dir_permissions
        targets = [split_bind_path(path, root)[0] for path in paths]
        with scoped_umask(0):
            for target in targets:
                try:
                    os.makedirs(target, mode=mode, exist_ok=True)
                except OSError as e:
                    raise DeployerError(f"Cannot create bind directory {target}: {e}") from e

    def binds_for_paths(self,
                        bind_class: BindClass,
                        paths: List[str],
                        root: str) -> Tuple[List[BindEntry], List[CopyError]]:
        """
        Builds the binds for one class, seeding each host directory from
        the archive when the archive holds that path.
        """
        binds = []
        errors: List[CopyError] = []
        for path in paths:
            host_path, relative = split_bind_path(path, root)
            binds.append(BindEntry(bind_class=bind_class, host_path=host_path, container_path=path))

            src_dir = os.path.join(self.archive_src_dir, relative)
            errors.extend(copy_dir_if_exists(src_dir, host_path, fail_fast=self.fail_fast))
        return binds, errors

    def binds_for_host_paths(self, paths: List[str]) -> List[BindEntry]:
        """
        Admits host binds only if every one of them is under an approved
        directory.

        :raises ConfigurationError: If host binds are not allowed or any
            path is outside the approved directories.
        """
        approved = self.settings.bind_host_approved_dirs
        if not approved:
            raise ConfigurationError("Host binding is not currently allowed")

        rejected = [path for path in paths if not path_is_approved(path, approved)]
        if rejected:
            raise ConfigurationError(
                f"The following host binds are not allowed: {', '.join(rejected)}"
            )
        return [BindEntry(bind_class=BindClass.HOST, host_path=path, container_path=path) for path in paths]
