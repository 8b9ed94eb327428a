"""SSH provider: nodes are hosts listed in the configuration inventory."""

import shlex
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from cluster import nodeutils
from cluster.constants import API_SERVER_PORT
from cluster.nodes import Cmd, Node
from cluster.providers import Provider
from core.command import CommandResult
from core.config import Application
from core.errors import KrustkindError
from core.logger import get_logger
from core.ssh import AsyncSSHClient

logger = get_logger(__name__)


class NodeSpec(BaseModel):
    """One inventory entry under ``provider.nodes``."""

    name: str = Field(..., description="Kubernetes node name")
    host: str = Field(..., description="SSH address of the node")
    role: str = Field(..., description="Node role, e.g. control-plane or krustlet")
    cluster: Optional[str] = Field(None, description="Cluster name, matches every cluster when unset")
    port: Optional[int] = Field(None, description="SSH port, defaults to provider.ssh.port")
    username: Optional[str] = Field(None, description="SSH user, defaults to provider.ssh.username")


class SSHCmd(Cmd):
    """Runs argv on a host over a pooled SSH connection."""

    def __init__(self, node: "SSHNode", argv: List[str]) -> None:
        super().__init__(argv)
        self.node = node

    async def execute(self) -> CommandResult:
        result = await self.node.client.execute_command(
            self.node.spec.host,
            shlex.join(self.argv),
            input=self.stdin,
            **self.node.connect_kwargs,
        )
        if result['error'] is not None:
            return CommandResult(255, '', f"ssh {self.node.spec.host}: {result['error']}")
        exit_status = result['exit_status']
        return CommandResult(
            exit_status if isinstance(exit_status, int) else 255,
            str(result['stdout']).rstrip('\n'),
            str(result['stderr']).rstrip('\n'),
        )


class SSHNode(Node):
    def __init__(self, spec: NodeSpec, client: AsyncSSHClient, connect_kwargs: Dict[str, Any]) -> None:
        super().__init__(spec.name)
        self.spec = spec
        self.client = client
        self.connect_kwargs = connect_kwargs

    async def role(self) -> str:
        return self.spec.role

    def command(self, command: str, *args: str) -> Cmd:
        return SSHCmd(self, [command, *args])


class SSHProvider(Provider):
    """Provider over a static inventory of SSH reachable hosts."""

    def __init__(
        self,
        specs: Sequence[NodeSpec],
        username: str = "root",
        port: int = 22,
        client_keys: Optional[List[str]] = None,
        connect_timeout: int = 10,
        client: Optional[AsyncSSHClient] = None,
    ) -> None:
        self.specs = list(specs)
        self.username = username
        self.port = port
        self.client_keys = client_keys or []
        self.connect_timeout = connect_timeout
        self.client = client or AsyncSSHClient()

    @classmethod
    def from_config(cls) -> "SSHProvider":
        """Build the provider from ``Application.PROVIDER``.

        Raises:
            KrustkindError: If an inventory entry is invalid
        """
        provider_config = Application.PROVIDER
        try:
            specs = [NodeSpec(**dict(entry)) for entry in provider_config.NODES or []]
        except ValidationError as e:
            raise KrustkindError(f"invalid provider.nodes inventory: {e}") from e
        return cls(
            specs,
            username=provider_config.SSH_USERNAME,
            port=int(provider_config.SSH_PORT),
            client_keys=list(provider_config.SSH_CLIENT_KEYS or []),
            connect_timeout=int(provider_config.SSH_CONNECT_TIMEOUT),
        )

    def _connect_kwargs(self, spec: NodeSpec) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            'username': spec.username or self.username,
            'port': spec.port or self.port,
            'connect_timeout': self.connect_timeout,
        }
        if self.client_keys:
            kwargs['client_keys'] = self.client_keys
        return kwargs

    async def list_nodes(self, cluster: str) -> List[Node]:
        nodes: List[Node] = [
            SSHNode(spec, self.client, self._connect_kwargs(spec))
            for spec in self.specs
            if spec.cluster is None or spec.cluster == cluster
        ]
        logger.debug(f"inventory lists {len(nodes)} node(s) for cluster {cluster}")
        return nodes

    async def _endpoint_host(self, cluster: str) -> str:
        all_nodes = await self.list_nodes(cluster)
        node = await nodeutils.external_load_balancer_node(all_nodes)
        if node is None:
            node = await nodeutils.bootstrap_control_plane_node(all_nodes)
        if not isinstance(node, SSHNode):
            raise KrustkindError(f"node {node} is not an inventory node")
        return node.spec.host

    async def get_api_server_endpoint(self, cluster: str) -> str:
        return f"{await self._endpoint_host(cluster)}:{API_SERVER_PORT}"

    async def get_api_server_internal_endpoint(self, cluster: str) -> str:
        return await self.get_api_server_endpoint(cluster)

    async def close(self) -> None:
        await self.client.close_all_connections()
