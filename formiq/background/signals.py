# formiq/background/signals.py
"""
SIGINT/SIGTERM handling for the standalone worker.

The first signal shuts the lifecycle down (workers first, which marks the
in-flight run as interrupted, then the database engine); repeats while that
is in progress are ignored.
"""

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lifecycle import ServerLifecycle

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def setup_signal_handlers(lifecycle: "ServerLifecycle") -> None:
    """
    Shut the lifecycle down on SIGINT/SIGTERM.

    Uses loop.add_signal_handler where the event loop supports it and falls
    back to signal.signal() where it doesn't (Windows ProactorEventLoop).

    Args:
        lifecycle: Started lifecycle to shut down
    """
    loop = asyncio.get_running_loop()
    shutdown_task: asyncio.Task | None = None

    def _request_shutdown(sig: signal.Signals) -> None:
        nonlocal shutdown_task
        if shutdown_task is not None:
            logger.info(f"Received {sig.name} again, shutdown already in progress")
            return
        logger.info(f"Received {sig.name}, shutting down gracefully...")
        shutdown_task = loop.create_task(lifecycle.shutdown())

    try:
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, _request_shutdown, sig)
        logger.info("Signal handlers registered (loop-based)")

    except NotImplementedError:

        def _fallback(sig_num, frame) -> None:
            loop.call_soon_threadsafe(_request_shutdown, signal.Signals(sig_num))

        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, _fallback)
        logger.info("Signal handlers registered (signal.signal fallback)")
