"""Node and command abstractions implemented by every provider."""

import shlex
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from core.command import CommandResult


class Cmd(ABC):
    """A command prepared against one node.

    ``execute`` never raises on a non-zero exit status; ``run`` raises
    CommandError instead.
    """

    def __init__(self, argv: Sequence[str]) -> None:
        self.argv: List[str] = list(argv)
        self.stdin: Optional[str] = None

    def set_stdin(self, data: str) -> "Cmd":
        """Feed data to the command's stdin."""
        self.stdin = data
        return self

    @abstractmethod
    async def execute(self) -> CommandResult:
        """Run the command and capture its exit status and output."""

    async def run(self) -> CommandResult:
        """Run the command, raising CommandError on failure."""
        result = await self.execute()
        return result.raise_if_failed(self.argv)

    def __str__(self) -> str:
        return shlex.join(self.argv)


class Node(ABC):
    """A cluster node able to run commands.

    ``str(node)`` is the node name, which is also its Kubernetes node name.
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def role(self) -> str:
        """Return the node role label value."""

    @abstractmethod
    def command(self, command: str, *args: str) -> Cmd:
        """Prepare command with args for execution on this node."""

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
