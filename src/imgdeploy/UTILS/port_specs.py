"""
Utilities for turning allocated platform ports into engine port specs.
"""
from typing import Dict, List, Tuple

from ..exceptions import ConfigurationError
from ..MODELS.instance_descriptor import AllocatedPort

PortMap = Tuple[List[str], Dict[str, List[str]]]


def port_spec_for(port: AllocatedPort) -> str:
    """
    Builds an 'outPort:innerPort' spec. The inner port is the suffix after
    the last '_' of the port name, e.g. 'http_8080' on 30010 -> '30010:8080'.
    """
    inner = ""
    idx = port.name.rfind("_")
    if idx != -1:
        inner = port.name[idx + 1:]
    return f"{port.port}:{inner}"


def parse_port_specs(specs: List[str]) -> PortMap:
    """
    Parses 'hostPort:containerPort[/proto]' specs.

    :param specs: The port specs.
    :return: Exposed container ports ('8080/tcp') and the bindings from
        each container port to its host ports.
    :raises ConfigurationError: If a spec has no valid container port.
    """
    exposed: List[str] = []
    bindings: Dict[str, List[str]] = {}
    for spec in specs:
        host_port, _, container_part = spec.rpartition(":")
        container_port, _, proto = container_part.partition("/")
        proto = proto or "tcp"

        if not container_port.isdigit():
            raise ConfigurationError(f"Invalid port spec {spec!r}: no container port specified")
        if host_port and not host_port.isdigit():
            raise ConfigurationError(f"Invalid port spec {spec!r}: bad host port")

        key = f"{int(container_port)}/{proto}"
        if key not in bindings:
            exposed.append(key)
            bindings[key] = []
        if host_port:
            bindings[key].append(str(int(host_port)))
    return exposed, bindings
