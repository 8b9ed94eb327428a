"""
Shared pytest fixtures for krustkind tests.

This module provides an in-memory cluster:
- FakeNode / FakeCmd: nodes whose commands are answered by FakeCluster rules
- FakeProvider: a provider over a fixed node list
- FakeCluster: records every command and answers it from registered rules
"""

import asyncio
import io
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))

from cluster.nodes import Cmd, Node  # noqa: E402
from cluster.providers import Provider  # noqa: E402
from core.command import CommandResult  # noqa: E402
from core.status import Status  # noqa: E402
from rich.console import Console  # noqa: E402


ADMIN_CONF = """apiVersion: v1
kind: Config
clusters:
- cluster:
    certificate-authority-data: Q0EK
    server: https://kind-control-plane:6443
  name: kubernetes
contexts:
- context:
    cluster: kubernetes
    user: kubernetes-admin
  name: kubernetes-admin@kubernetes
current-context: kubernetes-admin@kubernetes
users:
- name: kubernetes-admin
  user:
    client-certificate-data: Q0VSVAo=
    client-key-data: S0VZCg==
"""


def ok(stdout: str = "") -> CommandResult:
    return CommandResult(0, stdout, "")


def fail(stderr: str = "error", code: int = 1) -> CommandResult:
    return CommandResult(code, "", stderr)


@dataclass
class Call:
    """Record of a command run on a fake node."""
    node: str
    argv: List[str]
    stdin: Optional[str] = None


@dataclass
class Rule:
    prefix: Tuple[str, ...]
    results: List[CommandResult]
    node: Optional[str] = None
    delay: float = 0.0
    _served: int = field(default=0, repr=False)

    def matches(self, node: str, argv: Sequence[str]) -> bool:
        if self.node is not None and self.node != node:
            return False
        return tuple(argv[:len(self.prefix)]) == self.prefix

    def next_result(self) -> CommandResult:
        index = min(self._served, len(self.results) - 1)
        self._served += 1
        return self.results[index]


class FakeCluster:
    """Answers fake node commands; unmatched commands succeed with no output."""

    def __init__(self) -> None:
        self.calls: List[Call] = []
        self.rules: List[Rule] = []
        self.files: Dict[Tuple[str, str], str] = {}
        self.on(("cat", "/etc/kubernetes/admin.conf"), ok(ADMIN_CONF))

    def on(
        self,
        prefix: Sequence[str],
        *results: CommandResult,
        node: Optional[str] = None,
        delay: float = 0.0,
    ) -> "FakeCluster":
        """Answer commands starting with prefix with results, in order; the last one repeats."""
        self.rules.append(Rule(tuple(prefix), list(results) or [ok()], node, delay))
        return self

    async def respond(self, node: str, argv: List[str], stdin: Optional[str]) -> CommandResult:
        self.calls.append(Call(node, list(argv), stdin))
        for rule in reversed(self.rules):
            if rule.matches(node, argv):
                await asyncio.sleep(rule.delay)
                result = rule.next_result()
                break
        else:
            await asyncio.sleep(0)
            result = ok()
        if result.is_success() and argv[:2] == ["cp", "/dev/stdin"]:
            self.files[(node, argv[2])] = stdin or ""
        return result

    def commands(self, node: Optional[str] = None, prefix: Sequence[str] = ()) -> List[List[str]]:
        """Return argv of recorded calls, filtered by node and argv prefix."""
        return [
            call.argv for call in self.calls
            if (node is None or call.node == node) and tuple(call.argv[:len(prefix)]) == tuple(prefix)
        ]


class FakeCmd(Cmd):
    def __init__(self, node: "FakeNode", argv: List[str]) -> None:
        super().__init__(argv)
        self.node = node

    async def execute(self) -> CommandResult:
        return await self.node.cluster.respond(self.node.name, self.argv, self.stdin)


class FakeNode(Node):
    def __init__(self, name: str, node_role: str, cluster: FakeCluster) -> None:
        super().__init__(name)
        self._role = node_role
        self.cluster = cluster

    async def role(self) -> str:
        return self._role

    def command(self, command: str, *args: str) -> Cmd:
        return FakeCmd(self, [command, *args])


class FakeProvider(Provider):
    def __init__(self, nodes: List[Node]) -> None:
        self.nodes = nodes
        self.closed = False

    async def list_nodes(self, cluster: str) -> List[Node]:
        return list(self.nodes)

    async def get_api_server_endpoint(self, cluster: str) -> str:
        return "127.0.0.1:34567"

    async def get_api_server_internal_endpoint(self, cluster: str) -> str:
        return f"{cluster}-control-plane:6443"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def make_nodes(fake_cluster: FakeCluster):
    """Build FakeNode objects from (name, role) pairs."""
    def _make(*specs: Tuple[str, str]) -> List[Node]:
        return [FakeNode(name, node_role, fake_cluster) for name, node_role in specs]
    return _make


@pytest.fixture
def action_context(fake_cluster: FakeCluster, make_nodes):
    """Build an ActionContext over fake nodes for cluster "kind"."""
    from actions import ActionContext

    def _make(*specs: Tuple[str, str]) -> ActionContext:
        provider = FakeProvider(make_nodes(*specs))
        return ActionContext(
            logger=logging.getLogger("krustkind.test"),
            status=Status(Console(file=io.StringIO(), force_terminal=False)),
            provider=provider,
            cluster_name="kind",
        )
    return _make
