"""Terminal input module for devterm.

Turns raw terminal bytes into tokens and routes them to exactly one
listener at a time.

Public API:
    InputSource -- Abstract keypress stream
    InputSession -- Owner of the stream and its listening mode
    StdinInput -- termios-backed source for the controlling tty
"""

from devterm.terminal.base import InputError, InputSource
from devterm.terminal.session import InputSession

__all__ = ["InputError", "InputSession", "InputSource", "StdinInput"]


def __getattr__(name: str) -> type:
    """Lazy import for the termios-backed source (POSIX only)."""
    if name == "StdinInput":
        from devterm.terminal.stdin import StdinInput
        return StdinInput
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
