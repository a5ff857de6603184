"""Abstract base class for terminal input sources.

An input source turns raw terminal bytes into tokens and hands them to a
single attached callback. The InputSession attaches itself once and
decides which listener a token reaches, so a source never needs to know
about listening modes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable

from devterm.terminal.keys import decode_keys

logger = logging.getLogger(__name__)

TokenCallback = Callable[[str], None]


class InputSource(ABC):
    """Abstract interface for a keypress stream.

    Example usage::

        async with StdinInput() as source:
            source.attach(print)
            source.resume()
    """

    def __init__(self) -> None:
        self._callback: TokenCallback | None = None
        self._is_open = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    def attach(self, callback: TokenCallback) -> None:
        """Route every decoded token to ``callback``."""
        self._callback = callback

    def detach(self) -> None:
        self._callback = None

    @abstractmethod
    async def open(self) -> None:
        """Acquire the terminal and remember its original state.

        Raises:
            InputError: If the source cannot be used for raw input.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Stop reading and restore the terminal. Safe to call twice."""
        ...

    @abstractmethod
    def resume(self) -> None:
        """Switch the terminal to raw mode and start delivering tokens."""
        ...

    @abstractmethod
    def pause(self) -> None:
        """Stop delivering tokens and give the terminal back in cooked mode.

        Used while something else (an interactive login) reads the
        terminal on its own.
        """
        ...

    def _emit(self, data: str) -> None:
        """Decode a chunk of terminal input and deliver each token."""
        for token in decode_keys(data):
            if self._callback is None:
                logger.debug("Dropping token %r, no callback attached", token)
                continue
            self._callback(token)

    async def __aenter__(self) -> InputSource:
        await self.open()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.close()


class InputError(Exception):
    """Raised when the terminal cannot be used for keypress input."""
