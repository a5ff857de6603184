"""Ownership of the terminal input stream.

The InputSession is the only subscriber of its InputSource and holds a
single listener slot. Switching modes replaces the listener in that slot,
so the raw command listener and a prompt listener can never both receive
tokens.
"""

from __future__ import annotations

import logging
from typing import Callable

from devterm.domain.models import ListeningMode
from devterm.terminal.base import InputSource

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]


class InputSession:
    """Explicit mode transitions over one input source.

    Usage::

        session = InputSession(StdinInput())
        await session.open()
        session.enter_raw(router.on_input)
        ...
        session.enter_prompt(prompt.on_key)
        ...
        await session.release()
    """

    def __init__(self, source: InputSource) -> None:
        self._source = source
        self._mode = ListeningMode.SUSPENDED
        self._listener: Listener | None = None

    @property
    def mode(self) -> ListeningMode:
        return self._mode

    @property
    def listener(self) -> Listener | None:
        return self._listener

    @property
    def source(self) -> InputSource:
        return self._source

    async def open(self) -> None:
        await self._source.open()
        self._source.attach(self._dispatch)

    def enter_raw(self, listener: Listener) -> None:
        """Deliver tokens to the single-key command listener."""
        self._switch(ListeningMode.RAW_COMMAND, listener)
        self._source.resume()

    def enter_prompt(self, listener: Listener) -> None:
        """Deliver tokens to a line-editing listener."""
        self._switch(ListeningMode.LINE_PROMPT, listener)
        self._source.resume()

    def suspend(self) -> None:
        """Unsubscribe every listener and hand the terminal back in cooked mode."""
        self._switch(ListeningMode.SUSPENDED, None)
        self._source.pause()

    async def release(self) -> None:
        """Suspend and close the underlying source."""
        self.suspend()
        self._source.detach()
        await self._source.close()

    def _switch(self, mode: ListeningMode, listener: Listener | None) -> None:
        if mode != self._mode:
            logger.debug("Input mode %s -> %s", self._mode.value, mode.value)
        self._mode = mode
        self._listener = listener

    def _dispatch(self, token: str) -> None:
        listener = self._listener
        if listener is None:
            logger.debug("Input suspended, dropping token %r", token)
            return
        listener(token)
