"""Retrieval of the cluster admin kubeconfig."""

from typing import Any, Dict

import yaml

from cluster import nodeutils
from cluster.constants import ADMIN_KUBECONFIG_PATH
from cluster.providers import Provider
from core.errors import KrustkindError, wrap
from core.command import CommandError


def context_name(cluster_name: str) -> str:
    """Return the kubeconfig cluster/user/context name for cluster_name."""
    return f"kind-{cluster_name}"


async def get(provider: Provider, name: str, internal: bool = False) -> str:
    """Return the admin kubeconfig of cluster name as YAML text.

    The file is read from the bootstrap control-plane node, every cluster
    entry is pointed at the API server endpoint (the one reachable from the
    nodes when internal is set, from this machine otherwise) and the entries
    are renamed to ``kind-<name>``.

    Raises:
        KrustkindError: If the cluster has no nodes or the file cannot be read
    """
    all_nodes = await provider.list_nodes(name)
    if not all_nodes:
        raise KrustkindError(f"could not locate any nodes for cluster {name!r}")

    node = await nodeutils.bootstrap_control_plane_node(all_nodes)
    try:
        result = await node.command("cat", ADMIN_KUBECONFIG_PATH).run()
    except CommandError as e:
        raise wrap(e, "failed to get cluster internal kubeconfig") from e

    if internal:
        endpoint = await provider.get_api_server_internal_endpoint(name)
    else:
        endpoint = await provider.get_api_server_endpoint(name)

    try:
        config = yaml.safe_load(result.stdout)
    except yaml.YAMLError as e:
        raise wrap(e, "failed to parse kubeconfig") from e
    if not isinstance(config, dict):
        raise KrustkindError("failed to parse kubeconfig: not a mapping")

    return yaml.safe_dump(_rewrite(config, name, f"https://{endpoint}"), sort_keys=False)


def _rewrite(config: Dict[str, Any], cluster_name: str, server: str) -> Dict[str, Any]:
    new_name = context_name(cluster_name)
    for cluster in config.get("clusters") or []:
        cluster["name"] = new_name
        cluster.setdefault("cluster", {})["server"] = server
    for user in config.get("users") or []:
        user["name"] = new_name
    for context in config.get("contexts") or []:
        context["name"] = new_name
        ctx = context.setdefault("context", {})
        ctx["cluster"] = new_name
        ctx["user"] = new_name
    config["current-context"] = new_name
    return config
