"""Process lifecycle: startup, crash recovery, workers and graceful shutdown."""

from .lifecycle import ServerLifecycle, open_database
from .signals import setup_signal_handlers

__all__ = ["ServerLifecycle", "open_database", "setup_signal_handlers"]
