"""Console status line with a spinner, backed by rich."""

from typing import Optional

from rich.console import Console
from rich.status import Status as RichStatus


class Status:
    """Shows one in-progress step at a time.

    ``end`` only has an effect after a matching ``start``, so callers can
    pair an unconditional ``end(False)`` in a ``finally`` with an ``end(True)``
    on the success path.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(stderr=True)
        self._status: Optional[RichStatus] = None
        self._message = ""
        self._active = False

    def start(self, message: str) -> None:
        """Start a new step, ending the previous one as successful."""
        self.end(True)
        self._message = message
        if self.console.is_terminal:
            self._status = self.console.status(f" {message}", spinner="dots")
            self._status.start()
        else:
            self._status = None
            self.console.print(f" • {message}")
        self._active = True

    def end(self, success: bool) -> None:
        """Finish the current step, printing a check mark or a cross."""
        if not self._active:
            return
        self._active = False
        if self._status is not None:
            self._status.stop()
            self._status = None
        if success:
            self.console.print(f" [green]✓[/green] {self._message}")
        else:
            self.console.print(f" [red]✗[/red] {self._message}")
