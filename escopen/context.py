"""Execution context handed to CLI commands.

Holds the settings, the output sinks and a factory for service clients,
so commands never reach for module-level state.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import sys
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator, TextIO

from box import Box

from common.settings import load_settings
from connectors.connections_manager import get_client
from connectors.environment_interface import EnvironmentsClient

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """Container for command dependencies."""

    settings: Box
    client_factory: Callable[[Box], EnvironmentsClient] = get_client
    stdout: TextIO | None = None
    stderr: TextIO | None = None
    cancel: threading.Event = field(default_factory=threading.Event)

    @property
    def out(self) -> TextIO:
        return self.stdout if self.stdout is not None else sys.stdout

    @property
    def err(self) -> TextIO:
        return self.stderr if self.stderr is not None else sys.stderr

    def client(self) -> EnvironmentsClient:
        """Build a new client; the caller closes it."""
        return self.client_factory(self.settings)

    @contextlib.contextmanager
    def cancel_on_interrupt(self) -> Iterator[threading.Event]:
        """Turn the first Ctrl-C into ``cancel.set()``.

        The remote call in flight finishes (bounded by the client timeout)
        and the open stops before the next one. A second Ctrl-C raises
        KeyboardInterrupt as usual. Signal handlers can only be installed
        from the main thread; elsewhere this is a no-op.
        """
        if threading.current_thread() is not threading.main_thread():
            yield self.cancel
            return

        def on_interrupt(signum, frame):
            if self.cancel.is_set():
                raise KeyboardInterrupt
            logger.info("Interrupt received; cancelling after the current request")
            self.cancel.set()

        previous = signal.signal(signal.SIGINT, on_interrupt)
        try:
            yield self.cancel
        finally:
            signal.signal(signal.SIGINT, previous)


def build_context(config_path: str | None = None) -> ExecutionContext:
    """Build the context from settings on disk and in the environment."""
    return ExecutionContext(settings=load_settings(config_path))
