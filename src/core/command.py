"""Command execution utility module.

This module provides the result/error types shared by every command runner
(local subprocess, container exec, SSH) and an asynchronous local runner
with optional timeout and stdin.
"""

import asyncio
import shlex
from typing import List, Literal, Optional, Sequence

from core.logger import get_logger


log = get_logger(__name__)


class CommandResult:
    """Encapsulates result of command execution with convenient access methods."""

    def __init__(self, return_code: int, stdout: str, stderr: str) -> None:
        """Initialize command result.

        Args:
            return_code: The exit code of command.
            stdout: Standard output content.
            stderr: Standard error content.
        """
        self._return_code = return_code
        self._stdout = stdout
        self._stderr = stderr

    @property
    def return_code(self) -> int:
        """Get return code of command."""
        return self._return_code

    @property
    def stdout(self) -> str:
        """Get standard output of command."""
        return self._stdout

    @property
    def stderr(self) -> str:
        """Get standard error output of the command."""
        return self._stderr

    def is_success(self) -> bool:
        """Check if command executed successfully.

        Returns:
            True if return code is 0, False otherwise.
        """
        return self._return_code == 0

    def is_failure(self) -> bool:
        """Check if command execution failed.

        Returns:
            True if return code is not 0, False otherwise.
        """
        return self._return_code != 0

    def get_output_lines(self) -> List[str]:
        """Get stdout as a list of lines.

        Returns:
            List of lines from stdout, excluding empty lines.
        """
        return [line for line in self._stdout.split('\n') if line.strip()]

    def get_error_lines(self) -> List[str]:
        """Get stderr as a list of lines.

        Returns:
            List of lines from stderr, excluding empty lines.
        """
        return [line for line in self._stderr.split('\n') if line.strip()]

    def combined_output_lines(self) -> List[str]:
        """Get stdout followed by stderr as a list of lines."""
        return self.get_output_lines() + self.get_error_lines()

    def raise_if_failed(self, command: Sequence[str], error_message: Optional[str] = None) -> 'CommandResult':
        """Raise CommandError if command failed.

        Args:
            command: The argv that produced this result
            error_message: Custom error message

        Returns:
            Self for method chaining

        Raises:
            CommandError: If command failed
        """
        if self.is_failure():
            raise CommandError(command, self, error_message)
        return self

    def __str__(self) -> str:
        """String representation of command result."""
        status = "SUCCESS" if self.is_success() else "FAILURE"
        return f"CommandResult[{status}](return_code={self._return_code})"

    def __repr__(self) -> str:
        """Detailed string representation of command result."""
        return (f"CommandResult(return_code={self._return_code}, "
                f"stdout_length={len(self._stdout)}, "
                f"stderr_length={len(self._stderr)})")


class CommandError(Exception):
    """Exception raised when command execution fails."""

    def __init__(self, command: Sequence[str], result: CommandResult, message: Optional[str] = None):
        """Initialize command error.

        Args:
            command: The argv that failed
            result: Command result object
            message: Custom error message
        """
        self.command = list(command)
        self.result = result
        self.message = message or (
            f"command \"{shlex.join(self.command)}\" failed with exit code {result.return_code}"
        )
        output = result.combined_output_lines()
        if output:
            self.message += ": " + "; ".join(output)

        super().__init__(self.message)


async def execute_command(
    argv: Sequence[str],
    *,
    input: Optional[str] = None,
    timeout: Optional[float] = None,
    log_output: bool = True,
    fail_action: Literal['raise', 'none'] = 'none',
    error_message: Optional[str] = None,
) -> CommandResult:
    """Execute a local command without a shell.

    Args:
        argv: Program and arguments.
        input: Text written to the process stdin, if any.
        timeout: Timeout in seconds, None waits forever.
        log_output: Whether to log output lines at DEBUG.
        fail_action: How to handle a non-zero exit:
            - 'raise': Raise CommandError
            - 'none': Return result (default)
        error_message: Custom error message for CommandError

    Returns:
        CommandResult object containing execution results.

    Raises:
        CommandError: If fail_action='raise' and command fails
    """
    command = list(argv)
    log.debug(f"Executing command: {shlex.join(command)}")

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        log.error(f'Execute command [{shlex.join(command)}] got exception [{e}]!')
        result = CommandResult(127, '', str(e))
    else:
        stdin_data = input.encode() if input is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(stdin_data), timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            log.error(f'Execute command [{shlex.join(command)}] timeout [{timeout}]s!')
            result = CommandResult(124, '', 'execute command timeout!')
        else:
            result = CommandResult(
                process.returncode if process.returncode is not None else 1,
                stdout.decode(errors="replace").rstrip('\n'),
                stderr.decode(errors="replace").rstrip('\n'),
            )

    if log_output:
        for line in result.get_output_lines():
            log.debug(f"[STDOUT] {line}")
        for line in result.get_error_lines():
            log.debug(f"[STDERR] {line}")
    log.debug(f'Command [{shlex.join(command)}] finished with return code: {result.return_code}')

    if fail_action == 'raise':
        result.raise_if_failed(command, error_message)

    return result
