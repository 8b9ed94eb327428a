"""CLI tests using click's CliRunner with the async entry points replaced."""

import pytest
from click.testing import CliRunner

import cli.app as app_module
import cli.get as get_module
import cli.join as join_module
from actions.krustletjoin import CredentialMode
from cli import __version__
from cli.app import cli
from core.config import Application, ConfigDict, apply_config_mapping
from core.errors import KrustkindError, wrap


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(app_module, "setup_cli_logging", lambda **kwargs: None)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def join_calls(monkeypatch):
    calls = []

    async def fake_run_join(cluster_name, provider_name, options, console=None):
        calls.append((cluster_name, provider_name, options))

    monkeypatch.setattr(join_module, "run_join", fake_run_join)
    return calls


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_join_defaults(runner, join_calls):
    result = runner.invoke(cli, ["join"])

    assert result.exit_code == 0, result.output
    (cluster_name, provider_name, options), = join_calls
    assert cluster_name == "kind"
    assert provider_name == "docker"
    assert options.mode is CredentialMode.KUBECONFIG
    assert options.retries == 10
    assert options.csr_poll_interval == 1.0
    assert options.kubeconfig_internal is False


def test_join_options(runner, join_calls):
    result = runner.invoke(cli, [
        "join", "--name", "wasm", "--provider", "podman", "--mode", "bootstrap-token",
        "--interval", "0.5", "--bootstrap-script-url", "https://example.test/b.sh", "--internal",
    ])

    assert result.exit_code == 0, result.output
    (cluster_name, provider_name, options), = join_calls
    assert (cluster_name, provider_name) == ("wasm", "podman")
    assert options.mode is CredentialMode.BOOTSTRAP_TOKEN
    assert options.retries == 30
    assert options.csr_poll_interval == 0.5
    assert options.bootstrap_script_url == "https://example.test/b.sh"
    assert options.kubeconfig_internal is True


def test_join_retries_override(runner, join_calls):
    result = runner.invoke(cli, ["join", "--retries", "3"])
    assert result.exit_code == 0, result.output
    assert join_calls[0][2].retries == 3


def test_join_rejects_negative_retries(runner, join_calls):
    result = runner.invoke(cli, ["join", "--retries", "-1"])
    assert result.exit_code == 2
    assert join_calls == []


def test_join_error_exits_1(runner, monkeypatch):
    async def failing_run_join(*args, **kwargs):
        cause = KrustkindError("exit status 5")
        raise wrap(cause, "failed to run `systemctl start krustlet`")

    monkeypatch.setattr(join_module, "run_join", failing_run_join)

    result = runner.invoke(cli, ["join"])

    assert result.exit_code == 1
    assert "ERROR: failed to join krustlet nodes: failed to run `systemctl start krustlet`: exit status 5" in result.output


def test_join_uses_config_file(runner, join_calls, tmp_path):
    config_file = tmp_path / "application.yaml"
    config_file.write_text(
        "provider:\n  name: podman\n"
        "krustlet:\n  mode: bootstrap-token\n  csr_poll:\n    bootstrap_retries: 7\n"
    )
    try:
        result = runner.invoke(cli, ["--config", str(config_file), "join"])
    finally:
        ConfigDict.reset_instance()
        apply_config_mapping(Application, ConfigDict())

    assert result.exit_code == 0, result.output
    (cluster_name, provider_name, options), = join_calls
    assert provider_name == "podman"
    assert options.mode is CredentialMode.BOOTSTRAP_TOKEN
    assert options.retries == 7


def test_get_nodes(runner, monkeypatch):
    async def fake_list_nodes(cluster_name, provider_name, role=None):
        assert (cluster_name, provider_name, role) == ("kind", "docker", None)
        return [("kind-control-plane", "control-plane"), ("kind-krustlet", "krustlet")]

    monkeypatch.setattr(get_module, "list_nodes", fake_list_nodes)

    result = runner.invoke(cli, ["get", "nodes"])

    assert result.exit_code == 0, result.output
    assert "NAME" in result.output
    assert "kind-krustlet" in result.output
    assert "krustlet" in result.output


def test_get_nodes_empty(runner, monkeypatch):
    async def fake_list_nodes(cluster_name, provider_name, role=None):
        return []

    monkeypatch.setattr(get_module, "list_nodes", fake_list_nodes)

    result = runner.invoke(cli, ["get", "nodes", "--name", "missing"])

    assert result.exit_code == 0
    assert 'No nodes found for cluster "missing".' in result.output


def test_get_kubeconfig(runner, monkeypatch):
    async def fake_get_kubeconfig(cluster_name, provider_name, internal):
        return f"current-context: kind-{cluster_name}\ninternal: {internal}\n"

    monkeypatch.setattr(get_module, "get_kubeconfig", fake_get_kubeconfig)

    result = runner.invoke(cli, ["get", "kubeconfig", "--name", "dev", "--internal"])

    assert result.exit_code == 0, result.output
    assert result.output == "current-context: kind-dev\ninternal: True\n"


def test_get_kubeconfig_error(runner, monkeypatch):
    async def fake_get_kubeconfig(cluster_name, provider_name, internal):
        raise KrustkindError("could not locate any nodes for cluster 'kind'")

    monkeypatch.setattr(get_module, "get_kubeconfig", fake_get_kubeconfig)

    result = runner.invoke(cli, ["get", "kubeconfig"])

    assert result.exit_code == 1
    assert "ERROR: failed to get kubeconfig: could not locate any nodes" in result.output
