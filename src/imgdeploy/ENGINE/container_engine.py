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
Container engine interface and its Docker implementation.

The deployer only relies on the verbs below and on the error classes from
imgdeploy.exceptions (NotFoundError, ImageNotFoundError, ConflictError).
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from ..exceptions import ConflictError, EngineError, ImageNotFoundError, NotFoundError
from ..MODELS.launch_spec import LaunchSpec

logger = logging.getLogger(__name__)


@dataclass
class ContainerInfo:
    """The parts of a container inspection the deployer uses."""

    id: str
    name: str
    status: str  # created, running, exited, paused, ...
    pid: int = 0
    log_path: str = ""


class ContainerEngine(ABC):
    """
    The container runtime primitives used by the lifecycle driver.
    """

    @abstractmethod
    def create(self, spec: LaunchSpec) -> str:
        """Creates a container from a launch spec and returns its ID."""

    @abstractmethod
    def start(self, container: str) -> None:
        """Starts a created or stopped container."""

    @abstractmethod
    def stop(self, container: str, timeout: int) -> None:
        """Stops a container, killing it after timeout seconds."""

    @abstractmethod
    def remove(self, container: str, force: bool = True, volumes: bool = True) -> None:
        """Removes a container."""

    @abstractmethod
    def inspect(self, container: str) -> ContainerInfo:
        """Returns the current state of a container."""

    @abstractmethod
    def pull(self, ref: str) -> None:
        """Pulls an image reference from its registry."""

    @abstractmethod
    def network_list(self) -> List[str]:
        """Returns the names of all networks."""

    @abstractmethod
    def network_create(self, name: str, driver: str = "overlay", attachable: bool = True) -> None:
        """Creates a network. Raises ConflictError if it already exists."""

    @abstractmethod
    def network_remove(self, name: str) -> None:
        """Removes a network."""

    @abstractmethod
    def image_remove(self, ref: str) -> None:
        """Removes an image. Raises ConflictError while containers use it."""

    @abstractmethod
    def server_version(self) -> str:
        """Returns the engine version string."""


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """
    Maps docker SDK errors onto the deployer's engine error classes.
    """
    try:
        yield
    except ImageNotFound as e:
        raise ImageNotFoundError(f"{action}: {e.explanation or e}") from e
    except NotFound as e:
        raise NotFoundError(f"{action}: {e.explanation or e}") from e
    except APIError as e:
        if e.status_code == 409:
            raise ConflictError(f"{action}: {e.explanation or e}") from e
        raise EngineError(f"{action}: {e.explanation or e}") from e
    except DockerException as e:
        raise EngineError(f"{action}: {e}") from e


class DockerEngine(ContainerEngine):
    """
    ContainerEngine backed by the Docker Engine API (low-level client).
    """

    def __init__(self, client: Optional[docker.APIClient] = None):
        """
        Initializes the engine.

        :param client: A low-level docker API client. Defaults to one built
            from the DOCKER_* environment variables.
        """
        if client is None:
            with _translate_errors("connect to docker"):
                client = docker.from_env().api
        self.api = client

    def create(self, spec: LaunchSpec) -> str:
        # docker-py expects (port, proto) tuples for exposed ports
        ports = [tuple(p.split("/", 1)) for p in spec.exposed_ports]

        with _translate_errors(f"create container {spec.name}"):
            host_config = self.api.create_host_config(
                binds=spec.binds or None,
                port_bindings=spec.port_bindings or None,
                mem_limit=spec.memory_bytes,
                cpu_shares=spec.cpu_shares,
                network_mode=spec.network_name or None,
            )

            networking_config = None
            if spec.network_name and spec.network_alias:
                networking_config = self.api.create_networking_config({
                    spec.network_name: self.api.create_endpoint_config(
                        aliases=[spec.network_alias],
                    ),
                })

            result = self.api.create_container(
                image=spec.image,
                name=spec.name,
                command=spec.cmd or None,
                entrypoint=spec.entrypoint or None,
                environment=spec.env,
                ports=ports or None,
                host_config=host_config,
                networking_config=networking_config,
                detach=True,
                tty=False,
                stdin_open=False,
            )
        return result["Id"]

    def start(self, container: str) -> None:
        with _translate_errors(f"start container {container}"):
            self.api.start(container)

    def stop(self, container: str, timeout: int) -> None:
        with _translate_errors(f"stop container {container}"):
            self.api.stop(container, timeout=timeout)

    def remove(self, container: str, force: bool = True, volumes: bool = True) -> None:
        with _translate_errors(f"remove container {container}"):
            self.api.remove_container(container, v=volumes, force=force)

    def inspect(self, container: str) -> ContainerInfo:
        with _translate_errors(f"inspect container {container}"):
            data = self.api.inspect_container(container)
        state = data.get("State") or {}
        return ContainerInfo(
            id=data["Id"],
            name=data.get("Name", "").lstrip("/"),
            status=state.get("Status", ""),
            pid=state.get("Pid", 0),
            log_path=data.get("LogPath", ""),
        )

    def pull(self, ref: str) -> None:
        logger.info("Pulling %r from the registry...", ref)
        with _translate_errors(f"pull image {ref}"):
            for event in self.api.pull(ref, stream=True, decode=True):
                if "error" in event:
                    raise EngineError(f"pull image {ref}: {event['error']}")
        logger.info("Image pull complete")

    def network_list(self) -> List[str]:
        with _translate_errors("list networks"):
            return [n["Name"] for n in self.api.networks()]

    def network_create(self, name: str, driver: str = "overlay", attachable: bool = True) -> None:
        with _translate_errors(f"create network {name}"):
            self.api.create_network(name, driver=driver, attachable=attachable)

    def network_remove(self, name: str) -> None:
        with _translate_errors(f"remove network {name}"):
            self.api.remove_network(name)

    def image_remove(self, ref: str) -> None:
        with _translate_errors(f"remove image {ref}"):
            self.api.remove_image(ref)

    def server_version(self) -> str:
        with _translate_errors("query engine version"):
            return self.api.version()["Version"]
