"""Join krustlet nodes to an existing cluster.

For every node with the ``krustlet`` role, concurrently:

1. put credentials on the node: the admin kubeconfig (``kubeconfig`` mode)
   or a bootstrap kubeconfig generated on the control plane by the krustlet
   bootstrap script (``bootstrap-token`` mode),
2. enable and start the krustlet systemd unit,
3. wait for the node's ``<node>-tls`` certificate signing request to show up,
4. approve it from the first control-plane node.

The wait in step 3 is bounded and not fatal: approval is attempted once the
retries run out, and its failure is what gets reported.
"""

import asyncio
import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from actions import Action as BaseAction
from actions import ActionContext
from cluster import kubeconfig
from cluster.constants import (
    ADMIN_KUBECONFIG_PATH,
    CONTROL_PLANE_NODE_ROLE_VALUE,
    GENERATED_BOOTSTRAP_KUBECONFIG_PATH,
    KRUSTLET_NODE_ROLE_VALUE,
    NODE_BOOTSTRAP_KUBECONFIG_PATH,
    NODE_KUBECONFIG_PATH,
)
from cluster.nodes import Cmd, Node
from cluster.nodeutils import select_nodes_by_role, write_file
from core.command import CommandError, CommandResult
from core.config import Application
from core.errors import KrustkindError, until_error_concurrent, wrap


class CredentialMode(str, enum.Enum):
    """How a krustlet node gets its kubeconfig."""
    KUBECONFIG = "kubeconfig"
    BOOTSTRAP_TOKEN = "bootstrap-token"


class PollState(enum.Enum):
    POLLING = "polling"
    FOUND = "found"
    EXHAUSTED = "exhausted"


@dataclass
class PollResult:
    """Outcome of waiting for a certificate signing request."""
    state: PollState
    attempts: int


@dataclass
class JoinOptions:
    """Options of the krustlet join action.

    Attributes:
        mode: Credential provisioning mode
        service: systemd unit started on the node
        csr_poll_retries: Maximum CSR lookups, None picks the mode default
        csr_poll_interval: Seconds slept before every CSR lookup
        bootstrap_script_url: Script generating the bootstrap kubeconfig
        kubeconfig_internal: Point the copied kubeconfig at the in-cluster endpoint
    """
    mode: CredentialMode = CredentialMode.KUBECONFIG
    service: str = "krustlet"
    csr_poll_retries: Optional[int] = None
    csr_poll_interval: float = 1.0
    bootstrap_script_url: str = ""
    kubeconfig_internal: bool = False
    bootstrap_csr_poll_retries: int = 30
    kubeconfig_csr_poll_retries: int = 10

    @classmethod
    def from_config(cls, **overrides: Any) -> "JoinOptions":
        """Build options from ``Application.KRUSTLET``; None overrides are ignored."""
        config = Application.KRUSTLET
        values = {
            'mode': CredentialMode(config.MODE),
            'service': config.SERVICE,
            'csr_poll_interval': float(config.CSR_POLL_INTERVAL),
            'bootstrap_script_url': config.BOOTSTRAP_SCRIPT_URL,
            'kubeconfig_internal': bool(config.KUBECONFIG_INTERNAL),
            'kubeconfig_csr_poll_retries': int(config.CSR_POLL_RETRIES),
            'bootstrap_csr_poll_retries': int(config.CSR_POLL_BOOTSTRAP_RETRIES),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        values['mode'] = CredentialMode(values['mode'])
        return cls(**values)

    @property
    def retries(self) -> int:
        """CSR lookup ceiling for the selected mode."""
        if self.csr_poll_retries is not None:
            return self.csr_poll_retries
        if self.mode is CredentialMode.BOOTSTRAP_TOKEN:
            return self.bootstrap_csr_poll_retries
        return self.kubeconfig_csr_poll_retries


def csr_name(node: Node) -> str:
    """Name of the CSR the krustlet on node files for its serving certificate."""
    return f"{node}-tls"


async def _run(logger: logging.Logger, cmd: Cmd, message: str) -> CommandResult:
    """Execute cmd, log its output, raise a wrapped CommandError on failure."""
    result = await cmd.execute()
    lines = result.combined_output_lines()
    if lines:
        logger.debug("\n".join(lines))
    if result.is_failure():
        err = CommandError(cmd.argv, result)
        raise wrap(err, message) from err
    return result


class Action(BaseAction):
    """Joins every krustlet-role node, approving its CSR on the control plane."""

    def __init__(self, options: Optional[JoinOptions] = None) -> None:
        self.options = options or JoinOptions.from_config()

    async def execute(self, ctx: ActionContext) -> None:
        all_nodes = await ctx.nodes()

        workers = await select_nodes_by_role(all_nodes, KRUSTLET_NODE_ROLE_VALUE)
        if not workers:
            return

        cp_nodes = await select_nodes_by_role(all_nodes, CONTROL_PLANE_NODE_ROLE_VALUE)
        if not cp_nodes:
            raise KrustkindError(
                f"no control-plane node found in cluster {ctx.cluster_name!r} "
                "to approve krustlet certificates")

        await self._join_workers(ctx, workers, cp_nodes[0])

    async def _join_workers(self, ctx: ActionContext, workers: List[Node], cp_node: Node) -> None:
        ctx.status.start("Joining krustlet nodes 🦀")
        try:
            # one task per worker, each bound to its own node
            fns = [functools.partial(self.join_node, ctx, node, cp_node) for node in workers]
            await until_error_concurrent(fns)
            ctx.status.end(True)
        finally:
            ctx.status.end(False)

    async def join_node(self, ctx: ActionContext, node: Node, cp_node: Node) -> None:
        """Run the join recipe for one krustlet node."""
        logger = ctx.logger
        service = self.options.service
        name = csr_name(node)

        if self.options.mode is CredentialMode.BOOTSTRAP_TOKEN:
            await self._write_bootstrap_kubeconfig(logger, node, cp_node)
        else:
            await self._write_kubeconfig(ctx, node)

        await _run(logger, node.command("systemctl", "enable", service),
                   f"failed to enable {service} service")
        await _run(logger, node.command("systemctl", "start", service),
                   f"failed to run `systemctl start {service}`")

        await self.wait_for_csr(logger, cp_node, name)

        await _run(
            logger,
            cp_node.command("kubectl", "--kubeconfig", ADMIN_KUBECONFIG_PATH,
                            "certificate", "approve", name),
            f"failed to approve certificate signing request {name}",
        )
        logger.info(f"krustlet node {node} joined, certificate {name} approved")

    async def _write_kubeconfig(self, ctx: ActionContext, node: Node) -> None:
        try:
            config = await kubeconfig.get(
                ctx.provider, ctx.cluster_name, self.options.kubeconfig_internal)
        except (KrustkindError, CommandError) as e:
            raise wrap(e, "failed to get kubeconfig") from e

        try:
            await write_file(node, NODE_KUBECONFIG_PATH, config)
        except CommandError as e:
            raise wrap(e, "failed to write kubeconfig") from e

    async def _write_bootstrap_kubeconfig(self, logger: logging.Logger, node: Node, cp_node: Node) -> None:
        script = await _run(
            logger, cp_node.command("curl", "-sSL", self.options.bootstrap_script_url),
            "failed to download bootstrap script")
        await _run(logger, cp_node.command("bash", "-c", script.stdout),
                   "failed to run bootstrap script")
        bootstrap_config = await _run(
            logger, cp_node.command("cat", GENERATED_BOOTSTRAP_KUBECONFIG_PATH),
            "failed to read bootstrap kubeconfig")

        try:
            await write_file(node, NODE_BOOTSTRAP_KUBECONFIG_PATH, bootstrap_config.stdout)
        except CommandError as e:
            raise wrap(e, "failed to write bootstrap kubeconfig") from e

    async def wait_for_csr(self, logger: logging.Logger, cp_node: Node, name: str) -> PollResult:
        """Look up CSR name until it exists or the retries run out.

        Every lookup is preceded by a sleep of ``csr_poll_interval``; misses
        are logged, exhaustion is logged and returned, never raised.
        """
        retries = self.options.retries
        state = PollState.POLLING
        attempts = 0

        while state is PollState.POLLING:
            if attempts >= retries:
                state = PollState.EXHAUSTED
                break
            await asyncio.sleep(self.options.csr_poll_interval)
            attempts += 1
            cmd = cp_node.command("kubectl", "--kubeconfig", ADMIN_KUBECONFIG_PATH,
                                  "get", "csr", name)
            result = await cmd.execute()
            if result.is_success():
                state = PollState.FOUND
            else:
                logger.error(str(CommandError(cmd.argv, result)))

        if state is PollState.EXHAUSTED:
            logger.warning(
                f"certificate signing request {name} not found after {attempts} attempts, "
                "approving anyway")
        return PollResult(state, attempts)
