"""Keep Ctrl-C from interrupting multi-file writes."""

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List

logger = logging.getLogger(__name__)


@contextmanager
def deferred_interrupts() -> Iterator[None]:
    """Hold SIGINT until the block finishes, then re-deliver it.

    Outside the main thread signal handlers cannot be installed, so the block
    runs unprotected.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    received: List[Any] = []

    def handle_sigint(signum: int, frame: Any) -> None:
        logger.warning("Interrupt received; finishing write before exiting")
        received.append((signum, frame))

    previous = signal.signal(signal.SIGINT, handle_sigint)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)
        if received and callable(previous):
            previous(*received[0])
