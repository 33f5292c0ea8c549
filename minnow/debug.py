"""Debug output that goes to stderr unless a handler is installed."""

from __future__ import annotations

import sys
from collections.abc import Callable

DebugHandler = Callable[[str], None]


def _default_handler(message: str) -> None:
    sys.stderr.write(f"DEBUG: {message}\n")


class _HandlerSlot:
    def __init__(self) -> None:
        self.handler: DebugHandler = _default_handler


_slot = _HandlerSlot()


def debug_str(message: str) -> None:
    """Pass a message to the current debug handler."""
    _slot.handler(message)


def debug(fmt: str, *args, **kwargs) -> None:
    """Format with ``str.format`` and emit, unless running with optimisations."""
    if __debug__:
        debug_str(fmt.format(*args, **kwargs))


def set_debug_handler(handler: DebugHandler) -> None:
    """Send debug messages to ``handler`` instead of stderr."""
    _slot.handler = handler


def reset_debug_handler() -> None:
    """Restore the default stderr handler."""
    _slot.handler = _default_handler