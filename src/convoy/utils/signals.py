"""Signal deferral for steps that must not be interrupted halfway."""

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

DEFERRED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def deferred_interrupts() -> Iterator[None]:
    """Hold back SIGINT/SIGTERM until the block (including its cleanup) has finished.

    Signals received inside the block are re-raised, in order, once the original
    handlers are restored. Signal handlers can only be swapped from the main
    thread; worker threads never receive signals, so the block runs unchanged there.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    received: list[int] = []

    def _record(signum, frame):
        logger.warning(f"Deferring signal {signal.Signals(signum).name} until transition completes")
        received.append(signum)

    previous = {sig: signal.signal(sig, _record) for sig in DEFERRED_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        for signum in received:
            signal.raise_signal(signum)
