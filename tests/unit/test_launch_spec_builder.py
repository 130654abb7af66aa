"""
Unit tests for the launch spec builder and port spec parsing.
"""
import pytest

from imgdeploy.BUILDERS.launch_spec_builder import LaunchSpecBuilder
from imgdeploy.exceptions import ConfigurationError, EngineError
from imgdeploy.MODELS.deployer_settings import DeployerSettings
from imgdeploy.MODELS.instance_descriptor import AllocatedPort, InstanceDescriptor
from imgdeploy.UTILS.port_specs import parse_port_specs, port_spec_for
from conftest import FakeEngine, make_descriptor, make_descriptor_data


def make_builder(props, **overrides):
    d = make_descriptor(props, **overrides)
    return LaunchSpecBuilder(d, DeployerSettings.from_descriptor(d))


class TestPortSpecs:
    """Tests for port spec derivation."""

    def test_port_spec_for(self):
        assert port_spec_for(AllocatedPort(name="http_8080", port=30010)) == "30010:8080"
        assert port_spec_for(AllocatedPort(name="my_app_http_9000", port=30011)) == "30011:9000"

    def test_parse(self):
        exposed, bindings = parse_port_specs(["30010:8080"])
        assert exposed == ["8080/tcp"]
        assert bindings == {"8080/tcp": ["30010"]}

    def test_parse_protocol(self):
        exposed, bindings = parse_port_specs(["30012:53/udp"])
        assert exposed == ["53/udp"]
        assert bindings == {"53/udp": ["30012"]}

    def test_same_container_port_twice(self):
        exposed, bindings = parse_port_specs(["30010:8080", "30011:8080"])
        assert exposed == ["8080/tcp"]
        assert bindings == {"8080/tcp": ["30010", "30011"]}

    def test_missing_container_port(self):
        with pytest.raises(ConfigurationError):
            parse_port_specs([port_spec_for(AllocatedPort(name="http", port=30010))])


class TestLaunchSpecBuilder:
    """Tests for LaunchSpecBuilder.build."""

    def test_default_tag(self):
        spec = make_builder({"DockerImageName": ["myrepo"]}).build([])
        assert spec.image == "myrepo:latest"

    def test_missing_repository(self):
        with pytest.raises(ConfigurationError):
            make_builder({"DockerImageTag": ["1.0"]}).build([])

    def test_ports(self):
        spec = make_builder({"DockerImageName": ["myrepo"]}).build([])
        assert spec.exposed_ports == ["8080/tcp"]
        assert spec.port_bindings == {"8080/tcp": ["30010"]}

    def test_resources(self):
        spec = make_builder({"DockerImageName": ["myrepo"]}).build([])
        assert spec.memory_bytes == 256 * 1024 * 1024
        assert spec.cpu_shares == 512

    def test_no_resource_limits(self):
        data = make_descriptor_data({"DockerImageName": ["myrepo"]})
        data["resource"]["resourcePolicy"] = {"cpuLimit": 0, "memoryLimit": 0}
        d = InstanceDescriptor.model_validate(data)
        spec = LaunchSpecBuilder(d, DeployerSettings.from_descriptor(d)).build([])
        assert spec.memory_bytes is None
        assert spec.cpu_shares is None

    def test_env_cmd_binds_network(self):
        spec = make_builder({
            "DockerImageName": ["myrepo"],
            "DockerCmd": ["run --fast"],
        }).build(["/a:/b"], "tenant-acme-net", "shop-v1-web")
        assert spec.name == "apprenda-shop-v1-inst-1"
        assert spec.env == ["BASEPATH=/tmp/base", "JAVA_OPTS=-Xmx256m"]
        assert spec.cmd == ["run", "--fast"]
        assert spec.entrypoint == []
        assert spec.binds == ["/a:/b"]
        assert spec.network_name == "tenant-acme-net"
        assert spec.network_alias == "shop-v1-web"


class TestBuildAndCreate:
    """Tests for container creation with the image pull fallback."""

    def test_create_with_local_image(self):
        engine = FakeEngine(local_images=["myrepo:latest"])
        cid = make_builder({"DockerImageName": ["myrepo"]}).build_and_create(engine, [])
        assert cid == "cid-1"
        assert engine.verbs() == ["create"]

    def test_pull_and_retry_on_missing_image(self):
        engine = FakeEngine()
        make_builder({"DockerImageName": ["myrepo"]}).build_and_create(engine, [])
        assert engine.verbs() == ["create", "pull", "create"]
        assert ("pull", "myrepo:latest") in engine.calls

    def test_force_pull(self):
        engine = FakeEngine(local_images=["myrepo:2"])
        make_builder({
            "DockerImageName": ["myrepo"],
            "DockerImageTag": ["2"],
            "DockerForcePull": ["yes"],
        }).build_and_create(engine, [])
        assert engine.verbs() == ["pull", "create"]

    def test_other_create_errors_propagate(self):
        engine = FakeEngine()

        def broken_create(spec):
            raise EngineError("daemon unavailable")

        engine.create = broken_create
        with pytest.raises(EngineError):
            make_builder({"DockerImageName": ["myrepo"]}).build_and_create(engine, [])
        assert "pull" not in engine.verbs()
