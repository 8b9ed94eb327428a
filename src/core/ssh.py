"""Asynchronous SSH client wrapper module.

This module provides an asynchronous SSH client wrapper based on asyncssh library,
supporting connection reuse across concurrent commands on the same host.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple, Union

import asyncssh

from core.logger import get_logger

logger = get_logger(__name__)


class AsyncSSHClient:
    """Asynchronous SSH client wrapper with connection pooling.

    Several join tasks talk to the same control-plane host at once, so one
    connection per (host, port, username) is opened and shared; asyncssh
    multiplexes the sessions over it.
    """

    def __init__(self) -> None:
        """Initialize SSH client with connection pool."""
        self._connections: Dict[Tuple[str, Any, Any], asyncssh.SSHClientConnection] = {}
        self._lock = asyncio.Lock()

    async def _get_connection(
        self,
        host: str,
        **kwargs: Any
    ) -> asyncssh.SSHClientConnection:
        """Get connection from pool, create new one if not exists.

        Args:
            host: Target host address
            **kwargs: Connection parameters for asyncssh.connect

        Returns:
            SSH client connection object
        """
        key = (host, kwargs.get('port'), kwargs.get('username'))
        async with self._lock:
            if key in self._connections:
                return self._connections[key]

            logger.debug(f"opening ssh connection to {host}")
            conn = await asyncssh.connect(host, known_hosts=None, **kwargs)
            self._connections[key] = conn
            return conn

    async def close_all_connections(self) -> None:
        """Close all connections in the pool."""
        async with self._lock:
            for conn in self._connections.values():
                conn.close()
            for conn in self._connections.values():
                await conn.wait_closed()
            self._connections.clear()

    async def execute_command(
        self,
        host: str,
        command: str,
        input: Optional[str] = None,
        **kwargs: Any
    ) -> Dict[str, Union[str, int, None]]:
        """Execute command on single host (using connection pool).

        Args:
            host: Target host address
            command: Command line to execute
            input: Text sent to the remote stdin
            **kwargs: Parameters passed to asyncssh.connect
                     (username, port, client_keys, etc.)

        Returns:
            Dictionary containing execution result including stdout, stderr,
            exit_status, and error information
        """
        result: Dict[str, Union[str, int, None]] = {
            'host': host,
            'command': command,
            'stdout': '',
            'stderr': '',
            'exit_status': None,
            'error': None
        }

        try:
            conn = await self._get_connection(host, **kwargs)
            process = await conn.run(command, input=input, check=False)
            result['stdout'] = str(process.stdout or '')
            result['stderr'] = str(process.stderr or '')
            result['exit_status'] = process.exit_status
        except (OSError, asyncssh.Error) as e:
            result['error'] = str(e)

        return result
