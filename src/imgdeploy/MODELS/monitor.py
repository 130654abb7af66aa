"""
Models for the documents handed to host-side collaborators: the workload
monitor file and the log forwarder configuration.
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ResourcePolicyConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cpu_limit: int = Field(0, alias="cpuLimit")
    memory_limit: int = Field(0, alias="memoryLimit")
    memory_limit_bytes: int = Field(0, alias="memoryLimitBytes")
    name: str = ""
    version_id: str = Field("", alias="versionId")


class ResourceConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    stats_polling_interval: int = Field(0, alias="statsPollingInterval")
    stats_publishing_interval: int = Field(0, alias="statsPublishingInterval")
    resource_policy: ResourcePolicyConfig = Field(
        default_factory=ResourcePolicyConfig, alias="resourcePolicy"
    )


class Monitor(BaseModel):
    """
    Process, cgroup and log locations read by the host supervisor.
    """
    model_config = ConfigDict(populate_by_name=True)

    pid_file_path: str = Field(alias="pidFilePath")
    cgroup: str
    launch_log_path: str = Field(alias="launchLogPath")
    workload_log_path: str = Field(alias="workloadLogPath")
    resource_config: ResourceConfig = Field(alias="resourceConfig")


class ForwarderNetwork(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    servers: List[str]
    ssl_ca: str = Field(alias="ssl ca")
    timeout: int = 15


class ForwarderFields(BaseModel):
    instance_id: str
    provider_id: str
    type: str
    version_id: str


class ForwarderFile(BaseModel):
    fields: ForwarderFields
    paths: List[str]


class LogForwarderConfig(BaseModel):
    """
    Configuration file format of the external log forwarder.
    """
    network: ForwarderNetwork
    files: List[ForwarderFile]
