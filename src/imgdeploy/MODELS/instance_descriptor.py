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
Models for the instance descriptor (instance.json) handed over by the
platform host agent.
"""
import json
from typing import List, Dict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import ConfigurationError


class DescriptorModel(BaseModel):
    """
    Base for all descriptor sections: camelCase JSON keys, unknown keys
    ignored, read-only once loaded.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class PlatformInfo(DescriptorModel):
    platform_version: str = Field("", alias="platformVersion")
    cloud_url: str = Field("", alias="cloudUrl")


class HostInfo(DescriptorModel):
    host_name: str = Field("", alias="hostName")
    root: str = ""
    provided_package_dir: str = Field("", alias="providedPackageDir")
    repository_dir: str = Field("", alias="repositoryDir")
    fqdn: str = ""


class PortType(DescriptorModel):
    enum_class: str = Field("", alias="enumClass")
    value: str = ""


class AllocatedPort(DescriptorModel):
    """
    A host port allocated by the platform. The container port is encoded
    as the suffix after the last '_' in the name (e.g. 'http_8080').
    """
    name: str
    port: int
    port_type: PortType = Field(default_factory=PortType, alias="portType")

    @property
    def is_http(self) -> bool:
        return self.port_type.value == "Http"


class PortAllocation(DescriptorModel):
    min_dynamic: int = Field(0, alias="minDynamic")
    max_dynamic: int = Field(0, alias="maxDynamic")
    allocated: List[AllocatedPort] = []


class ProcessInfo(DescriptorModel):
    workload_user_account: str = Field("", alias="workloadUserAccount")
    environment_variables: List[List[str]] = Field([], alias="environmentVariables")
    ports: PortAllocation = Field(default_factory=PortAllocation)


class CustomProperty(DescriptorModel):
    name: str
    values: List[str] = []


class WorkloadInfo(DescriptorModel):
    application_alias: str = Field("", alias="applicationAlias")
    application_id: str = Field("", alias="applicationId")
    bundle_name: str = Field("", alias="bundleName")
    instance_id: str = Field("", alias="instanceId")
    provider_id: str = Field("", alias="providerId")
    source: str = ""
    version_alias: str = Field("", alias="versionAlias")
    version_id: str = Field("", alias="versionId")
    custom_props: List[CustomProperty] = Field([], alias="customProps")


class ResourcePolicy(DescriptorModel):
    cpu_limit: int = Field(0, alias="cpuLimit")
    memory_limit: int = Field(0, alias="memoryLimit")  # MB
    memory_limit_bytes: int = Field(0, alias="memoryLimitBytes")
    name: str = ""
    version_id: str = Field("", alias="versionId")


class ResourceInfo(DescriptorModel):
    stats_polling_interval: int = Field(0, alias="statsPollingInterval")
    stats_publishing_interval: int = Field(0, alias="statsPublishingInterval")
    resource_policy: ResourcePolicy = Field(default_factory=ResourcePolicy, alias="resourcePolicy")


class TokenInfo(DescriptorModel):
    tokens: Dict[str, str] = {}


class InstanceDescriptor(DescriptorModel):
    """
    The declarative description of one workload deployment request.
    """
    component_type: str = Field("", alias="componentType")
    platform: PlatformInfo = Field(default_factory=PlatformInfo)
    host: HostInfo = Field(default_factory=HostInfo)
    process: ProcessInfo = Field(default_factory=ProcessInfo)
    workload: WorkloadInfo = Field(default_factory=WorkloadInfo)
    resource: ResourceInfo = Field(default_factory=ResourceInfo)
    token: TokenInfo = Field(default_factory=TokenInfo)

    @model_validator(mode="after")
    def _check_source(self) -> "InstanceDescriptor":
        if "/" not in self.workload.source[1:]:
            raise ValueError(
                f"workload source {self.workload.source!r} does not contain a tenant segment"
            )
        return self

    @classmethod
    def load(cls, path: str) -> "InstanceDescriptor":
        """
        Loads and validates a descriptor from a JSON file.

        :param path: Path to instance.json.
        :return: The parsed descriptor.
        :raises ConfigurationError: If the file cannot be read or is invalid.
        """
        try:
            with open(path, 'r') as f:
                content = f.read()
        except OSError as e:
            raise ConfigurationError(f"Cannot read instance descriptor {path}: {e}") from e
        return cls.parse_from_string(content)

    @classmethod
    def parse_from_string(cls, content: str) -> "InstanceDescriptor":
        try:
            return cls.model_validate(json.loads(content))
        except (ValueError, ValidationError) as e:
            raise ConfigurationError(f"Invalid instance descriptor: {e}") from e

    @property
    def tenant_alias(self) -> str:
        """
        The tenant segment of the workload source, e.g. 'acme' for
        '/acme/app/v1'.
        """
        rest = self.workload.source[1:]
        return rest[:rest.index("/")]

    @property
    def container_name(self) -> str:
        return "-".join([
            "apprenda",
            self.workload.application_alias,
            self.workload.version_alias,
            self.workload.instance_id,
        ])

    def get_prop(self, name: str) -> List[str]:
        """
        Returns the values of the first custom property with this name that
        has any values, or an empty list.
        """
        for prop in self.workload.custom_props:
            if prop.name == name and prop.values:
                return list(prop.values)
        return []

    def get_prop_first_value(self, name: str) -> str:
        """
        Returns the first value of a custom property, or '' when it is not
        configured.
        """
        values = self.get_prop(name)
        return values[0] if values else ""

    def get_env(self) -> List[str]:
        """
        Builds the container environment: platform tokens first, then the
        declared environment variables. Duplicate keys are kept.
        """
        env = [f"{key}={val}" for key, val in self.token.tokens.items()]
        for pair in self.process.environment_variables:
            env.append("=".join(pair))
        return env

    def get_token(self, name: str) -> str:
        return self.token.tokens.get(name, "")
