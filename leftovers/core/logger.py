"""
Console Logger
==============

User-facing output and confirmation prompts, safe under concurrent
callers.

Per-resource lines written by the deletion orchestrator and by the
listers go through :class:`Logger` rather than the ``logging`` module:
they are part of the tool's output, not diagnostics.

Example
-------
>>> from leftovers.core.logger import Logger
>>>
>>> logger = Logger()
>>> if logger.prompt_with_details("EC2 Volume", "vol-123"):
...     logger.printf("SUCCESS deleting %s %s", "EC2 Volume", "vol-123")
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm


class Logger:
    """
    Serialized console writer with an interactive confirmation prompt.

    Parameters
    ----------
    console : Console, optional
        Rich Console to write to. Defaults to a new stdout console.
    no_confirm : bool, default=False
        Answer every prompt with yes without asking.

    Notes
    -----
    A single lock guards every write and prompt, so lines from concurrent
    deletes never interleave and a prompt is never split by a log line.
    """

    def __init__(self, console: Optional[Console] = None, no_confirm: bool = False) -> None:
        self.console = console or Console()
        self._no_confirm = no_confirm
        self._lock = threading.Lock()

    @property
    def confirms(self) -> bool:
        """Whether prompts are shown to the user."""
        return not self._no_confirm

    def printf(self, message: str, *args: Any, style: Optional[str] = None) -> None:
        """
        Write one ``%``-formatted line.

        A trailing newline in ``message`` is dropped; every call produces
        exactly one line.
        """
        text = message % args if args else message
        with self._lock:
            self.console.print(
                text.rstrip("\n"), style=style, markup=False, highlight=False
            )

    def println(self, message: str, style: Optional[str] = None) -> None:
        """Write ``message`` verbatim as one line."""
        with self._lock:
            self.console.print(message, style=style, markup=False, highlight=False)

    def prompt_with_details(self, resource_type: str, resource_name: str) -> bool:
        """
        Ask whether a resource should be deleted.

        Returns
        -------
        bool
            True if the user confirmed, or if no-confirm mode is on.
        """
        if self._no_confirm:
            return True

        with self._lock:
            return Confirm.ask(
                escape(f"Are you sure you want to delete {resource_type} {resource_name}?"),
                console=self.console,
                default=False,
            )

    def no_confirm(self) -> None:
        """Stop prompting; every later prompt is answered with yes."""
        self._no_confirm = True

    def __repr__(self) -> str:
        return f"Logger(no_confirm={self._no_confirm})"
