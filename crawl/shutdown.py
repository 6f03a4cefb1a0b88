"""Graceful stop for long crawls.

The first SIGINT/SIGTERM only raises a flag. The paginator, the category loop
and the resume pass poll it between units of work, so a run always stops
right after a complete CSV row has been written. A second signal raises
``KeyboardInterrupt`` in the main thread; that unwinds through the browser
context manager, which closes Chromium before the process exits.
"""

import signal
import threading
from types import FrameType
from typing import Any, Dict, Optional

from crawl.logging_config import get_logger

__all__ = [
    "ShutdownHandler",
    "get_shutdown_handler",
    "shutdown_requested",
]

logger = get_logger("shutdown")

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownHandler:
    """Turns the first stop signal into a flag and the second into an interrupt.

    Usage:
        with get_shutdown_handler():
            orchestrator.run()   # polls shutdown_requested()
    """

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._previous: Dict[int, Any] = {}
        self.signals_received = 0

    @property
    def installed(self) -> bool:
        return bool(self._previous)

    @property
    def shutdown_requested(self) -> bool:
        return self._stop.is_set()

    def install(self) -> "ShutdownHandler":
        if self.installed:
            return self
        for signum in HANDLED_SIGNALS:
            self._previous[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle_signal)
        return self

    def uninstall(self) -> None:
        for signum, previous in self._previous.items():
            if previous is not None:
                signal.signal(signum, previous)
        self._previous.clear()

    def __enter__(self) -> "ShutdownHandler":
        return self.install()

    def __exit__(self, *exc_info) -> None:
        self.uninstall()

    def _handle_signal(self, signum: int, frame: Optional[FrameType]) -> None:
        self.signals_received += 1
        name = signal.Signals(signum).name

        if self.signals_received > 1:
            logger.warning(f"Received {name} again, stopping immediately")
            raise KeyboardInterrupt

        logger.warning(
            f"Received {name}: finishing the current product, then stopping "
            "(send it again to stop immediately)"
        )
        self._stop.set()

    def request_shutdown(self) -> None:
        """Ask the crawl to stop at its next checkpoint, as a first signal would."""
        self._stop.set()

    def reset(self) -> None:
        self._stop.clear()
        self.signals_received = 0


_handler = ShutdownHandler()


def get_shutdown_handler() -> ShutdownHandler:
    """Process-wide handler shared by the CLI and the crawl loops."""
    return _handler


def shutdown_requested() -> bool:
    return _handler.shutdown_requested
