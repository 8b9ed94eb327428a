"""``krustkind get``: inspect a running cluster."""

import asyncio
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from cli.errors import handle_errors
from cluster import kubeconfig
from cluster.constants import DEFAULT_CLUSTER_NAME
from cluster.providers import PROVIDER_NAMES, create_provider
from core.config import Application


@click.group(help="Get information about a cluster")
def cli() -> None:
    """Cluster inspection commands.

    Core functionalities:
        1. List nodes with their role
        2. Print the admin kubeconfig
    """
    pass


async def list_nodes(cluster_name: str, provider_name: str, role: Optional[str] = None) -> List[Tuple[str, str]]:
    """Return (name, role) for every node of cluster_name, optionally filtered by role."""
    provider = create_provider(provider_name)
    try:
        rows: List[Tuple[str, str]] = []
        for node in await provider.list_nodes(cluster_name):
            node_role = await node.role()
            if role is None or node_role == role:
                rows.append((node.name, node_role))
        return rows
    finally:
        await provider.close()


async def get_kubeconfig(cluster_name: str, provider_name: str, internal: bool) -> str:
    """Return the admin kubeconfig of cluster_name."""
    provider = create_provider(provider_name)
    try:
        return await kubeconfig.get(provider, cluster_name, internal)
    finally:
        await provider.close()


@cli.command(name="nodes")
@click.option("--name", default=DEFAULT_CLUSTER_NAME, show_default=True, help="cluster name")
@click.option("--provider", type=click.Choice(PROVIDER_NAMES), default=None, help="node provider")
@click.option("--role", default=None, help="only list nodes with this role")
@handle_errors("list nodes")
def nodes(name: str, provider: Optional[str], role: Optional[str]) -> None:
    """List the nodes of a cluster."""
    rows = asyncio.run(list_nodes(name, provider or Application.PROVIDER.NAME, role))
    if not rows:
        click.echo(f"No nodes found for cluster \"{name}\".", err=True)
        return

    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("NAME")
    table.add_column("ROLE")
    for node_name, node_role in rows:
        table.add_row(node_name, node_role)
    Console().print(table)


@cli.command(name="kubeconfig")
@click.option("--name", default=DEFAULT_CLUSTER_NAME, show_default=True, help="cluster name")
@click.option("--provider", type=click.Choice(PROVIDER_NAMES), default=None, help="node provider")
@click.option("--internal", is_flag=True, help="use the API server endpoint reachable from the nodes")
@handle_errors("get kubeconfig")
def kubeconfig_cmd(name: str, provider: Optional[str], internal: bool) -> None:
    """Print the admin kubeconfig of a cluster."""
    click.echo(asyncio.run(get_kubeconfig(name, provider or Application.PROVIDER.NAME, internal)), nl=False)
