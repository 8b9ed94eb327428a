"""Error handling shared by CLI commands."""

import sys
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

import click

from core.command import CommandError
from core.errors import KrustkindError
from core.logger import get_logger

logger = get_logger(__name__)

P = ParamSpec('P')
T = TypeVar('T')


def handle_errors(action: str) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Print ``ERROR: failed to <action>: <err>`` and exit 1 on known errors.

    Args:
        action: What the command does, e.g. "join krustlet nodes"
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except (KrustkindError, CommandError, FileNotFoundError, ValueError) as e:
                logger.debug(f"failed to {action}", exc_info=True)
                click.echo(click.style(f"ERROR: failed to {action}: {e}", fg="red"), err=True)
                sys.exit(1)

        return wrapper
    return decorator
