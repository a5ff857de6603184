"""Keypress input from the controlling terminal on stdin.

Puts the tty into raw mode with termios (no echo, no line buffering, no
signal generation, output post-processing kept so ``\\n`` still returns
the carriage) and reads it through the event loop's reader callbacks.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import termios
from typing import TextIO

from devterm.terminal.base import InputError, InputSource

logger = logging.getLogger(__name__)

READ_SIZE = 1024


def raw_attributes(attrs: list) -> list:
    """Return a copy of tcgetattr() attributes switched to raw input."""
    iflag, oflag, cflag, lflag, ispeed, ospeed, cc = attrs
    iflag &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
    oflag |= termios.OPOST | termios.ONLCR
    cflag |= termios.CS8
    lflag &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
    cc = list(cc)
    cc[termios.VMIN] = 1
    cc[termios.VTIME] = 0
    return [iflag, oflag, cflag, lflag, ispeed, ospeed, cc]


class StdinInput(InputSource):
    """Reads keypresses from a tty file descriptor."""

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__()
        self._stream = stream or sys.stdin
        self._fd: int | None = None
        self._saved_attrs: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._reading = False

    @property
    def is_reading(self) -> bool:
        return self._reading

    async def open(self) -> None:
        """Check that stdin is a terminal and save its attributes."""
        try:
            fd = self._stream.fileno()
        except (AttributeError, OSError, ValueError) as e:
            raise InputError(f"Input stream has no file descriptor: {e}") from e
        if not os.isatty(fd):
            raise InputError("Input stream is not a terminal; raw keypress input needs a tty")

        self._fd = fd
        self._saved_attrs = termios.tcgetattr(fd)
        self._loop = asyncio.get_running_loop()
        self._is_open = True
        logger.debug("Opened terminal input on fd %d", fd)

    async def close(self) -> None:
        """Stop reading and restore the saved terminal attributes."""
        if not self._is_open:
            return
        self.pause()
        self._is_open = False
        logger.debug("Closed terminal input")

    def resume(self) -> None:
        if not self._is_open:
            raise InputError("Input source is not open. Call open() first.")
        if self._reading:
            return
        termios.tcsetattr(self._fd, termios.TCSANOW, raw_attributes(self._saved_attrs))
        self._loop.add_reader(self._fd, self._on_readable)
        self._reading = True

    def pause(self) -> None:
        if not self._reading:
            return
        self._loop.remove_reader(self._fd)
        termios.tcsetattr(self._fd, termios.TCSANOW, self._saved_attrs)
        self._reading = False

    def _on_readable(self) -> None:
        try:
            data = os.read(self._fd, READ_SIZE)
        except BlockingIOError:
            return
        except OSError as e:
            logger.warning("Terminal read failed: %s", e)
            self.pause()
            return
        if not data:
            logger.info("Terminal input reached EOF")
            self.pause()
            return
        self._emit(data.decode("utf-8", errors="replace"))
