"""
Shared fixtures: a recording in-memory container engine and descriptor
builders.
"""
from typing import Any, Dict, List, Optional

import pytest

from imgdeploy.ENGINE.container_engine import ContainerEngine, ContainerInfo
from imgdeploy.exceptions import ConflictError, ImageNotFoundError, NotFoundError
from imgdeploy.MODELS.instance_descriptor import InstanceDescriptor
from imgdeploy.MODELS.launch_spec import LaunchSpec


class FakeEngine(ContainerEngine):
    """
    In-memory engine recording every call as (verb, args...).
    """

    def __init__(self, local_images: Optional[List[str]] = None):
        self.calls: List[tuple] = []
        self.containers: Dict[str, Dict[str, Any]] = {}
        self.networks: List[str] = []
        self.local_images = set(local_images or [])
        self.images_in_use: set = set()
        self.network_create_conflict = False
        self.network_remove_error: Optional[Exception] = None
        self.version = "24.0.7"

    def create(self, spec: LaunchSpec) -> str:
        self.calls.append(("create", spec))
        if spec.name in self.containers:
            raise ConflictError(f"container {spec.name} already exists")
        if spec.image not in self.local_images:
            raise ImageNotFoundError(f"No such image: {spec.image}")
        cid = f"cid-{len(self.containers) + 1}"
        self.containers[spec.name] = {"id": cid, "status": "created", "spec": spec}
        return cid

    def _get(self, name: str) -> Dict[str, Any]:
        if name not in self.containers:
            raise NotFoundError(f"No such container: {name}")
        return self.containers[name]

    def start(self, container: str) -> None:
        self.calls.append(("start", container))
        self._get(container)["status"] = "running"

    def stop(self, container: str, timeout: int) -> None:
        self.calls.append(("stop", container, timeout))
        self._get(container)["status"] = "exited"

    def remove(self, container: str, force: bool = True, volumes: bool = True) -> None:
        self.calls.append(("remove", container, force, volumes))
        self._get(container)
        del self.containers[container]

    def inspect(self, container: str) -> ContainerInfo:
        self.calls.append(("inspect", container))
        c = self._get(container)
        return ContainerInfo(
            id=c["id"],
            name=container,
            status=c["status"],
            pid=4242 if c["status"] == "running" else 0,
            log_path=f"/var/lib/docker/containers/{c['id']}/{c['id']}-json.log",
        )

    def pull(self, ref: str) -> None:
        self.calls.append(("pull", ref))
        self.local_images.add(ref)

    def network_list(self) -> List[str]:
        self.calls.append(("network_list",))
        return list(self.networks)

    def network_create(self, name: str, driver: str = "overlay", attachable: bool = True) -> None:
        self.calls.append(("network_create", name, driver, attachable))
        if self.network_create_conflict or name in self.networks:
            self.networks.append(name)
            raise ConflictError(f"network with name {name} already exists")
        self.networks.append(name)

    def network_remove(self, name: str) -> None:
        self.calls.append(("network_remove", name))
        if self.network_remove_error is not None:
            raise self.network_remove_error
        if name not in self.networks:
            raise NotFoundError(f"network {name} not found")
        self.networks.remove(name)

    def image_remove(self, ref: str) -> None:
        self.calls.append(("image_remove", ref))
        if ref in self.images_in_use:
            raise ConflictError(f"image {ref} is being used by running container")
        self.local_images.discard(ref)

    def server_version(self) -> str:
        self.calls.append(("server_version",))
        return self.version

    def verbs(self) -> List[str]:
        return [c[0] for c in self.calls]


def make_descriptor_data(props: Optional[Dict[str, List[str]]] = None, **overrides) -> Dict[str, Any]:
    """
    Builds a raw instance.json document. overrides replace top-level
    sections.
    """
    data: Dict[str, Any] = {
        "componentType": "LinuxService",
        "platform": {"platformVersion": "7.0.0"},
        "host": {
            "hostName": "node1",
            "root": "/apprenda/instances",
            "repositoryDir": "/apprenda/repo",
            "providedPackageDir": "/apprenda/provided",
        },
        "process": {
            "environmentVariables": [["JAVA_OPTS", "-Xmx256m"]],
            "ports": {
                "allocated": [
                    {"name": "http_8080", "port": 30010,
                     "portType": {"enumClass": "PortType", "value": "Http"}},
                ],
            },
        },
        "workload": {
            "applicationAlias": "shop",
            "versionAlias": "v1",
            "bundleName": "web",
            "instanceId": "inst-1",
            "providerId": "prov-1",
            "versionId": "ver-1",
            "source": "/acme/shop/v1",
            "customProps": [
                {"name": name, "values": values}
                for name, values in (props if props is not None else {"DockerImageName": ["myrepo"]}).items()
            ],
        },
        "resource": {
            "statsPollingInterval": 10,
            "statsPublishingInterval": 60,
            "resourcePolicy": {
                "cpuLimit": 512, "memoryLimit": 256, "memoryLimitBytes": 268435456,
                "name": "small", "versionId": "rp-1",
            },
        },
        "token": {"tokens": {"BASEPATH": "/tmp/base"}},
    }
    data.update(overrides)
    return data


def make_descriptor(props: Optional[Dict[str, List[str]]] = None, **overrides) -> InstanceDescriptor:
    return InstanceDescriptor.model_validate(make_descriptor_data(props, **overrides))


@pytest.fixture
def engine():
    return FakeEngine()
