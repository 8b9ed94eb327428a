"""Node providers.

A provider knows how to find the nodes of a named cluster and where its API
server can be reached. ``create_provider`` builds one from its name.
"""

from abc import ABC, abstractmethod
from typing import List

from cluster.nodes import Node
from core.errors import KrustkindError


class Provider(ABC):
    """Discovers cluster nodes and API server endpoints."""

    @abstractmethod
    async def list_nodes(self, cluster: str) -> List[Node]:
        """Return every node belonging to cluster."""

    @abstractmethod
    async def get_api_server_endpoint(self, cluster: str) -> str:
        """Return the ``host:port`` the API server is reachable on from this machine."""

    @abstractmethod
    async def get_api_server_internal_endpoint(self, cluster: str) -> str:
        """Return the ``host:port`` the API server is reachable on from the nodes."""

    async def close(self) -> None:
        """Release any resources held by the provider."""
        return None


PROVIDER_NAMES = ("docker", "podman", "ssh")


def create_provider(name: str) -> Provider:
    """Create a provider by name.

    Raises:
        KrustkindError: If name is not one of PROVIDER_NAMES
    """
    if name in ("docker", "podman"):
        from cluster.providers.docker import ContainerProvider
        return ContainerProvider(binary=name)
    if name == "ssh":
        from cluster.providers.ssh import SSHProvider
        return SSHProvider.from_config()
    raise KrustkindError(
        f"unknown provider {name!r}, expected one of: {', '.join(PROVIDER_NAMES)}")


__all__ = ["Provider", "PROVIDER_NAMES", "create_provider"]
