"""Container runtime provider: nodes are docker or podman containers."""

from typing import List, Optional

from cluster import nodeutils
from cluster.constants import API_SERVER_PORT, CLUSTER_LABEL_KEY, NODE_ROLE_LABEL_KEY
from cluster.nodes import Cmd, Node
from cluster.providers import Provider
from core.command import CommandError, CommandResult, execute_command
from core.errors import KrustkindError, wrap
from core.logger import get_logger

logger = get_logger(__name__)


class ContainerCmd(Cmd):
    """Runs argv inside a node container with ``<binary> exec``."""

    def __init__(self, binary: str, container: str, argv: List[str]) -> None:
        super().__init__(argv)
        self.binary = binary
        self.container = container

    async def execute(self) -> CommandResult:
        exec_argv = [self.binary, "exec", "--privileged"]
        if self.stdin is not None:
            exec_argv.append("-i")
        exec_argv.append(self.container)
        exec_argv.extend(self.argv)
        return await execute_command(exec_argv, input=self.stdin)


class ContainerNode(Node):
    """A node container; the role is read from its labels once and cached."""

    def __init__(self, name: str, binary: str = "docker") -> None:
        super().__init__(name)
        self.binary = binary
        self._role: Optional[str] = None

    async def role(self) -> str:
        if self._role is None:
            result = await execute_command(
                [self.binary, "inspect",
                 "--format", f'{{{{ index .Config.Labels "{NODE_ROLE_LABEL_KEY}"}}}}',
                 self.name],
                fail_action='raise',
            )
            lines = result.get_output_lines()
            if len(lines) != 1:
                raise KrustkindError(
                    f"failed to get role for node {self.name}: output lines {len(lines)} != 1")
            self._role = lines[0].strip()
        return self._role

    def command(self, command: str, *args: str) -> Cmd:
        return ContainerCmd(self.binary, self.name, [command, *args])


class ContainerProvider(Provider):
    """Provider backed by the docker (or podman) command line."""

    def __init__(self, binary: str = "docker") -> None:
        self.binary = binary

    async def list_nodes(self, cluster: str) -> List[Node]:
        result = await execute_command([
            self.binary, "ps",
            "-a",
            "--filter", f"label={CLUSTER_LABEL_KEY}={cluster}",
            "--format", "{{.Names}}",
        ])
        if result.is_failure():
            raise KrustkindError(
                f"failed to list nodes: {'; '.join(result.combined_output_lines())}")
        names = [name.strip() for name in result.get_output_lines()]
        logger.debug(f"{self.binary} lists {len(names)} node(s) for cluster {cluster}")
        return [ContainerNode(name, self.binary) for name in names]

    async def _endpoint_node(self, cluster: str) -> Node:
        all_nodes = await self.list_nodes(cluster)
        lb = await nodeutils.external_load_balancer_node(all_nodes)
        if lb is not None:
            return lb
        return await nodeutils.bootstrap_control_plane_node(all_nodes)

    async def get_api_server_endpoint(self, cluster: str) -> str:
        node = await self._endpoint_node(cluster)
        try:
            result = await execute_command(
                [self.binary, "port", node.name, f"{API_SERVER_PORT}/tcp"],
                fail_action='raise',
            )
        except CommandError as e:
            raise wrap(e, "failed to get api server port") from e

        lines = result.get_output_lines()
        if not lines:
            raise KrustkindError(f"no host port mapped for {API_SERVER_PORT}/tcp on {node}")
        host, _, port = lines[0].strip().rpartition(":")
        if host in ("0.0.0.0", "[::]", ""):
            host = "127.0.0.1"
        return f"{host}:{port}"

    async def get_api_server_internal_endpoint(self, cluster: str) -> str:
        node = await self._endpoint_node(cluster)
        return f"{node.name}:{API_SERVER_PORT}"
