"""Tests for the container and SSH node providers."""

from typing import Dict, List

import pytest

from cluster.providers import create_provider
from cluster.providers import docker as docker_provider
from cluster.providers.docker import ContainerNode, ContainerProvider
from cluster.providers.ssh import NodeSpec, SSHProvider
from conftest import fail, ok
from core.command import CommandError
from core.config import Application, ConfigDict, apply_config_mapping
from core.errors import KrustkindError, WrappedError

LABELS = {
    "kind-control-plane": "control-plane",
    "kind-krustlet": "krustlet",
}


class FakeDocker:
    """Stands in for execute_command in the docker provider."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.inputs: List[object] = []
        self.port_output = "0.0.0.0:34567"
        self.labels: Dict[str, str] = dict(LABELS)

    async def __call__(self, argv, *, input=None, fail_action='none', **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        self.inputs.append(input)
        result = self._answer(argv)
        if fail_action == 'raise':
            result.raise_if_failed(argv)
        return result

    def _answer(self, argv):
        verb = argv[1]
        if verb == "ps":
            return ok("\n".join(self.labels))
        if verb == "inspect":
            name = argv[-1]
            return ok(self.labels[name]) if name in self.labels else fail("No such object")
        if verb == "port":
            return ok(self.port_output) if self.port_output else fail("no public port")
        return ok("ran")


@pytest.fixture
def fake_docker(monkeypatch):
    fake = FakeDocker()
    monkeypatch.setattr(docker_provider, "execute_command", fake)
    return fake


@pytest.mark.asyncio
async def test_list_nodes_filters_by_cluster_label(fake_docker):
    nodes = await ContainerProvider().list_nodes("kind")

    assert [n.name for n in nodes] == ["kind-control-plane", "kind-krustlet"]
    assert fake_docker.calls[0] == [
        "docker", "ps", "-a", "--filter", "label=io.x-k8s.kind.cluster=kind",
        "--format", "{{.Names}}"]


@pytest.mark.asyncio
async def test_node_role_read_from_label_once(fake_docker):
    node = ContainerNode("kind-krustlet", "podman")

    assert await node.role() == "krustlet"
    assert await node.role() == "krustlet"

    inspects = [c for c in fake_docker.calls if c[1] == "inspect"]
    assert inspects == [[
        "podman", "inspect", "--format",
        '{{ index .Config.Labels "io.x-k8s.kind.role"}}', "kind-krustlet"]]


@pytest.mark.asyncio
async def test_node_role_failure(fake_docker):
    with pytest.raises(CommandError):
        await ContainerNode("gone").role()


@pytest.mark.asyncio
async def test_container_command_exec(fake_docker):
    node = ContainerNode("kind-krustlet")

    await node.command("systemctl", "start", "krustlet").run()
    await node.command("cp", "/dev/stdin", "/etc/kubernetes/kubeconfig").set_stdin("cfg").run()

    assert fake_docker.calls == [
        ["docker", "exec", "--privileged", "kind-krustlet", "systemctl", "start", "krustlet"],
        ["docker", "exec", "--privileged", "-i", "kind-krustlet",
         "cp", "/dev/stdin", "/etc/kubernetes/kubeconfig"],
    ]
    assert fake_docker.inputs == [None, "cfg"]


@pytest.mark.asyncio
async def test_api_server_endpoint(fake_docker):
    provider = ContainerProvider()

    assert await provider.get_api_server_endpoint("kind") == "127.0.0.1:34567"
    assert ["docker", "port", "kind-control-plane", "6443/tcp"] in fake_docker.calls

    fake_docker.port_output = "192.168.1.5:40000"
    assert await provider.get_api_server_endpoint("kind") == "192.168.1.5:40000"


@pytest.mark.asyncio
async def test_api_server_endpoint_prefers_load_balancer(fake_docker):
    fake_docker.labels["kind-external-load-balancer"] = "external-load-balancer"
    provider = ContainerProvider()

    assert await provider.get_api_server_internal_endpoint("kind") == "kind-external-load-balancer:6443"
    await provider.get_api_server_endpoint("kind")
    assert ["docker", "port", "kind-external-load-balancer", "6443/tcp"] in fake_docker.calls


@pytest.mark.asyncio
async def test_api_server_endpoint_port_failure(fake_docker):
    fake_docker.port_output = ""
    with pytest.raises(WrappedError, match="^failed to get api server port"):
        await ContainerProvider().get_api_server_endpoint("kind")


class FakeSSHClient:
    def __init__(self, results=None) -> None:
        self.calls = []
        self.results = results or {}
        self.closed = False

    async def execute_command(self, host, command, input=None, **kwargs):
        self.calls.append((host, command, input, kwargs))
        default = {'stdout': 'ok\n', 'stderr': '', 'exit_status': 0, 'error': None}
        return {'host': host, 'command': command, **self.results.get(host, default)}

    async def close_all_connections(self) -> None:
        self.closed = True


SPECS = [
    NodeSpec(name="cp", host="10.0.0.1", role="control-plane"),
    NodeSpec(name="wasm-1", host="10.0.0.2", role="krustlet", username="ubuntu", port=2222),
    NodeSpec(name="other", host="10.0.0.3", role="krustlet", cluster="other"),
]


@pytest.mark.asyncio
async def test_ssh_list_nodes_filters_by_cluster():
    provider = SSHProvider(SPECS, client=FakeSSHClient())

    nodes = await provider.list_nodes("kind")

    assert [n.name for n in nodes] == ["cp", "wasm-1"]
    assert [await n.role() for n in nodes] == ["control-plane", "krustlet"]


@pytest.mark.asyncio
async def test_ssh_command_quotes_argv_and_uses_node_credentials():
    client = FakeSSHClient()
    provider = SSHProvider(SPECS, username="root", port=22, client_keys=["/k"], client=client)
    node = (await provider.list_nodes("kind"))[1]

    result = await node.command("bash", "-c", "echo hi").set_stdin("in").run()

    assert result.stdout == "ok"
    host, command, stdin, kwargs = client.calls[0]
    assert host == "10.0.0.2"
    assert command == "bash -c 'echo hi'"
    assert stdin == "in"
    assert kwargs == {'username': 'ubuntu', 'port': 2222, 'connect_timeout': 10, 'client_keys': ['/k']}


@pytest.mark.asyncio
async def test_ssh_command_failures():
    client = FakeSSHClient({
        "10.0.0.1": {'stdout': '', 'stderr': 'not found', 'exit_status': 1, 'error': None},
        "10.0.0.2": {'stdout': '', 'stderr': '', 'exit_status': None, 'error': 'connection refused'},
    })
    cp, worker = await SSHProvider(SPECS, client=client).list_nodes("kind")

    result = await cp.command("kubectl", "get", "csr", "x").execute()
    assert result.return_code == 1
    assert result.stderr == "not found"

    result = await worker.command("true").execute()
    assert result.return_code == 255
    assert "connection refused" in result.stderr


@pytest.mark.asyncio
async def test_ssh_endpoints_and_close():
    client = FakeSSHClient()
    provider = SSHProvider(SPECS, client=client)

    assert await provider.get_api_server_endpoint("kind") == "10.0.0.1:6443"
    assert await provider.get_api_server_internal_endpoint("kind") == "10.0.0.1:6443"
    await provider.close()
    assert client.closed


@pytest.mark.asyncio
async def test_ssh_endpoint_requires_inventory_node(make_nodes, monkeypatch):
    provider = SSHProvider(SPECS, client=FakeSSHClient())
    foreign = make_nodes(("cp", "control-plane"))

    async def list_foreign_nodes(cluster):
        return foreign

    monkeypatch.setattr(provider, "list_nodes", list_foreign_nodes)

    with pytest.raises(KrustkindError, match="node cp is not an inventory node"):
        await provider.get_api_server_endpoint("kind")


@pytest.fixture
def ssh_config(tmp_path):
    config_file = tmp_path / "application.yaml"
    config_file.write_text(
        "provider:\n"
        "  name: ssh\n"
        "  ssh:\n"
        "    username: admin\n"
        "    port: 2200\n"
        "  nodes:\n"
        "    - {name: cp, host: 10.0.0.1, role: control-plane}\n"
        "    - {name: wasm, host: 10.0.0.2, role: krustlet}\n"
    )
    Application.load(str(config_file))
    yield config_file
    ConfigDict.reset_instance()
    apply_config_mapping(Application, ConfigDict())


def test_ssh_provider_from_config(ssh_config):
    provider = create_provider("ssh")

    assert isinstance(provider, SSHProvider)
    assert [s.name for s in provider.specs] == ["cp", "wasm"]
    assert provider.username == "admin"
    assert provider.port == 2200


def test_ssh_provider_invalid_inventory(tmp_path):
    config_file = tmp_path / "application.yaml"
    config_file.write_text("provider:\n  nodes:\n    - {name: cp}\n")
    Application.load(str(config_file))
    try:
        with pytest.raises(KrustkindError, match="invalid provider.nodes inventory"):
            SSHProvider.from_config()
    finally:
        ConfigDict.reset_instance()
        apply_config_mapping(Application, ConfigDict())


def test_create_provider():
    assert isinstance(create_provider("docker"), ContainerProvider)
    podman = create_provider("podman")
    assert isinstance(podman, ContainerProvider)
    assert podman.binary == "podman"
    with pytest.raises(KrustkindError, match="unknown provider 'lxd'"):
        create_provider("lxd")
