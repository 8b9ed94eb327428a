"""Cluster actions and the context they run in."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from cluster.nodes import Node
from cluster.providers import Provider
from core.status import Status


class ActionContext:
    """Everything an action needs: logger, status line, provider and cluster name.

    The node list is fetched from the provider once and shared by every
    action run with this context.
    """

    def __init__(
        self,
        logger: logging.Logger,
        status: Status,
        provider: Provider,
        cluster_name: str,
    ) -> None:
        self.logger = logger
        self.status = status
        self.provider = provider
        self.cluster_name = cluster_name
        self._nodes: Optional[List[Node]] = None
        self._nodes_lock = asyncio.Lock()

    async def nodes(self) -> List[Node]:
        """Return the cluster nodes, listing them on first use."""
        async with self._nodes_lock:
            if self._nodes is None:
                self._nodes = await self.provider.list_nodes(self.cluster_name)
            return list(self._nodes)


class Action(ABC):
    """A step run against an existing cluster."""

    @abstractmethod
    async def execute(self, ctx: ActionContext) -> None:
        """Run the action; raise on failure."""


__all__ = ["Action", "ActionContext"]
