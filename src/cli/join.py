"""``krustkind join``: join krustlet nodes to a running cluster."""

import asyncio
from typing import Optional

import click
from rich.console import Console

from actions import ActionContext
from actions import krustletjoin
from actions.krustletjoin import CredentialMode, JoinOptions
from cli.errors import handle_errors
from cluster.constants import DEFAULT_CLUSTER_NAME
from cluster.providers import PROVIDER_NAMES, create_provider
from core.config import Application
from core.errors import wait_background
from core.logger import get_logger
from core.status import Status

logger = get_logger(__name__)


async def run_join(
    cluster_name: str,
    provider_name: str,
    options: JoinOptions,
    console: Optional[Console] = None,
) -> None:
    """Run the krustlet join action against cluster_name.

    Tasks left running by a failing worker are awaited before returning, and
    the provider is always closed.
    """
    provider = create_provider(provider_name)
    ctx = ActionContext(
        logger=get_logger("krustkind.join"),
        status=Status(console),
        provider=provider,
        cluster_name=cluster_name,
    )
    try:
        await krustletjoin.Action(options).execute(ctx)
    finally:
        await wait_background()
        await provider.close()


@click.command(name="join", help="Join krustlet nodes to an existing cluster")
@click.option(
    "--name",
    default=DEFAULT_CLUSTER_NAME,
    show_default=True,
    help="cluster name",
)
@click.option(
    "--provider",
    type=click.Choice(PROVIDER_NAMES),
    default=None,
    help="node provider (default: provider.name from the config, docker)",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in CredentialMode]),
    default=None,
    help="how nodes get their kubeconfig (default: krustlet.mode, kubeconfig)",
)
@click.option(
    "--retries",
    type=click.IntRange(min=0),
    default=None,
    help="maximum CSR lookups per node (default: 10, or 30 in bootstrap-token mode)",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0),
    default=None,
    help="seconds to wait before each CSR lookup (default: 1)",
)
@click.option(
    "--bootstrap-script-url",
    default=None,
    help="bootstrap script run on the control plane in bootstrap-token mode",
)
@click.option(
    "--internal/--external",
    "internal",
    default=None,
    help="point the copied kubeconfig at the in-cluster API server endpoint (default: external)",
)
@click.pass_context
@handle_errors("join krustlet nodes")
def join(
    ctx: click.Context,
    name: str,
    provider: Optional[str],
    mode: Optional[str],
    retries: Optional[int],
    interval: Optional[float],
    bootstrap_script_url: Optional[str],
    internal: Optional[bool],
) -> None:
    """Join every krustlet-role node of the cluster.

    Example:
        $ krustkind join --name kind
        $ krustkind join --mode bootstrap-token --retries 60 -vvv
    """
    options = JoinOptions.from_config(
        mode=mode,
        csr_poll_retries=retries,
        csr_poll_interval=interval,
        bootstrap_script_url=bootstrap_script_url,
        kubeconfig_internal=internal,
    )
    provider_name = provider or Application.PROVIDER.NAME
    logger.info(f"joining krustlet nodes of cluster {name} via {provider_name} ({options.mode.value} mode)")

    console = ctx.obj.get("console") if ctx.obj else None
    asyncio.run(run_join(name, provider_name, options, console))
