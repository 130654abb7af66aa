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
Unit tests for the instance descriptor model.
"""
import json

import pytest

from imgdeploy.exceptions import ConfigurationError
from imgdeploy.MODELS.instance_descriptor import InstanceDescriptor
from conftest import make_descriptor, make_descriptor_data


class TestInstanceDescriptor:
    """Tests for InstanceDescriptor."""

    def test_load_from_file(self, tmp_path):
        """Test loading a descriptor from instance.json."""
        path = tmp_path / "instance.json"
        path.write_text(json.dumps(make_descriptor_data()))
        d = InstanceDescriptor.load(str(path))
        assert d.workload.application_alias == "shop"
        assert d.process.ports.allocated[0].port == 30010
        assert d.process.ports.allocated[0].is_http
        assert d.resource.resource_policy.memory_limit == 256

    def test_unknown_fields_ignored(self):
        """Test that fields the deployer does not use are accepted."""
        data = make_descriptor_data()
        data["webDeploy"] = {"urlAlias": "shop"}
        data["platform"]["zkConnString"] = "zk:2181"
        d = InstanceDescriptor.model_validate(data)
        assert d.platform.platform_version == "7.0.0"

    def test_missing_file_raises(self, tmp_path):
        """Test that a missing descriptor is a configuration error."""
        with pytest.raises(ConfigurationError):
            InstanceDescriptor.load(str(tmp_path / "missing.json"))

    def test_malformed_json_raises(self):
        """Test that malformed JSON is a configuration error."""
        with pytest.raises(ConfigurationError):
            InstanceDescriptor.parse_from_string("{not json")

    def test_tenant_alias(self):
        """Test tenant alias derivation from the workload source."""
        d = make_descriptor()
        assert d.tenant_alias == "acme"

    def test_source_without_tenant_segment_is_invalid(self):
        """Test that a source lacking a second '/' is rejected."""
        data = make_descriptor_data()
        data["workload"]["source"] = "/acme"
        with pytest.raises(ConfigurationError):
            InstanceDescriptor.parse_from_string(json.dumps(data))

    def test_container_name(self):
        """Test the derived container name."""
        assert make_descriptor().container_name == "apprenda-shop-v1-inst-1"

    def test_is_read_only(self):
        """Test that a loaded descriptor cannot be modified."""
        d = make_descriptor()
        with pytest.raises(Exception):
            d.workload = None


class TestCustomProperties:
    """Tests for custom property lookup."""

    def test_get_prop_returns_all_values(self):
        d = make_descriptor({"DockerBindLocal": ["/data", "/logs"]})
        assert d.get_prop("DockerBindLocal") == ["/data", "/logs"]

    def test_absent_property(self):
        """Test that absent properties look like empty values."""
        d = make_descriptor({"DockerImageName": ["myrepo"]})
        assert d.get_prop("DockerImageTag") == []
        assert d.get_prop_first_value("DockerImageTag") == ""

    def test_first_match_wins(self):
        """Test that the first property carrying values wins."""
        data = make_descriptor_data()
        data["workload"]["customProps"] = [
            {"name": "DockerImageTag", "values": []},
            {"name": "DockerImageTag", "values": ["1.0"]},
            {"name": "DockerImageTag", "values": ["2.0"]},
        ]
        d = InstanceDescriptor.model_validate(data)
        assert d.get_prop_first_value("DockerImageTag") == "1.0"


class TestEnvironment:
    """Tests for container environment derivation."""

    def test_tokens_then_declared_variables(self):
        data = make_descriptor_data()
        data["token"] = {"tokens": {"BASEPATH": "/base", "JAVA_OPTS": "-Xmx1g"}}
        d = InstanceDescriptor.model_validate(data)
        env = d.get_env()
        assert env == ["BASEPATH=/base", "JAVA_OPTS=-Xmx1g", "JAVA_OPTS=-Xmx256m"]

    def test_duplicates_kept(self):
        """Test that conflicting keys are both passed on, in order."""
        data = make_descriptor_data()
        data["token"] = {"tokens": {}}
        data["process"]["environmentVariables"] = [["A", "1"], ["A", "2"]]
        d = InstanceDescriptor.model_validate(data)
        assert d.get_env() == ["A=1", "A=2"]
