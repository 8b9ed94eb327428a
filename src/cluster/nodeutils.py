"""Helpers operating on lists of nodes."""

import posixpath
from typing import List, Optional, Sequence

from cluster.constants import (
    CONTROL_PLANE_NODE_ROLE_VALUE,
    EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE,
)
from cluster.nodes import Node
from core.command import CommandError
from core.errors import KrustkindError, wrap


async def select_nodes_by_role(all_nodes: Sequence[Node], role: str) -> List[Node]:
    """Return the nodes whose role equals role, keeping their order.

    Raises:
        WrappedError: If a node's role cannot be determined
    """
    out: List[Node] = []
    for node in all_nodes:
        try:
            node_role = await node.role()
        except (CommandError, KrustkindError) as e:
            raise wrap(e, f"failed to get role for node {node}") from e
        if node_role == role:
            out.append(node)
    return out


async def control_plane_nodes(all_nodes: Sequence[Node]) -> List[Node]:
    """Return the control-plane nodes sorted by name."""
    nodes = await select_nodes_by_role(all_nodes, CONTROL_PLANE_NODE_ROLE_VALUE)
    return sorted(nodes, key=lambda n: n.name)


async def bootstrap_control_plane_node(all_nodes: Sequence[Node]) -> Node:
    """Return the control-plane node the cluster was initialised on.

    Raises:
        KrustkindError: If there is no control-plane node
    """
    nodes = await control_plane_nodes(all_nodes)
    if not nodes:
        raise KrustkindError("expected at least one control plane node")
    return nodes[0]


async def external_load_balancer_node(all_nodes: Sequence[Node]) -> Optional[Node]:
    """Return the external load balancer node, if the cluster has one.

    Raises:
        KrustkindError: If there is more than one
    """
    nodes = await select_nodes_by_role(all_nodes, EXTERNAL_LOAD_BALANCER_NODE_ROLE_VALUE)
    if len(nodes) > 1:
        raise KrustkindError(
            f"unexpected number of external load balancers: {len(nodes)}")
    return nodes[0] if nodes else None


async def write_file(node: Node, dest: str, contents: str) -> None:
    """Write contents to dest on node, creating the parent directory."""
    await node.command("mkdir", "-p", posixpath.dirname(dest)).run()
    await node.command("cp", "/dev/stdin", dest).set_stdin(contents).run()
