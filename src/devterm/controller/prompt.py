"""Line prompt sub-mode.

A PromptSession takes the input stream away from the raw command listener,
edits one line of text, and gives the stream back exactly once, on submit
or on cancel.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from devterm.console.renderer import ConsoleRenderer
from devterm.domain.models import PromptState, PromptStatus
from devterm.terminal.keys import BACKSPACE, ESCAPE, INTERRUPT_TOKENS, RETURN, is_printable
from devterm.terminal.session import InputSession

logger = logging.getLogger(__name__)


def resolve_recipient(answer: str | None, default: str | None) -> str | None:
    """Apply the default to a prompt answer.

    An empty answer falls back to ``default``. The result is trimmed; if
    nothing is left, or the prompt was cancelled (``answer`` is None),
    there is no recipient.
    """
    if answer is None:
        return None
    if not answer and default:
        answer = default
    answer = (answer or "").strip()
    return answer or None


class PromptSession:
    """Collects one line of free text with a visible default.

    Args:
        session: The input session to take over while the prompt is active.
        renderer: Where the prompt and the echoed text are written.
        on_close: Called once when the prompt ends; restores raw command
                  listening.
        message: Instruction line shown above the prompt.
        default: Value used when the user submits an empty line.
    """

    def __init__(
        self,
        session: InputSession,
        renderer: ConsoleRenderer,
        on_close: Callable[[], None],
        message: str,
        default: str | None = None,
    ) -> None:
        self._session = session
        self._renderer = renderer
        self._on_close = on_close
        self._message = message
        self._state = PromptState(default=default)
        self._result: asyncio.Future[str | None] | None = None

    @property
    def state(self) -> PromptState:
        return self._state

    @property
    def prompt_text(self) -> str:
        if self._state.default:
            return f"[default: {self._state.default}]> "
        return "> "

    async def run(self) -> str | None:
        """Show the prompt and wait for it to end.

        Returns:
            The submitted line as typed, or None when cancelled.
        """
        if self._state.status != PromptStatus.IDLE:
            raise RuntimeError("A prompt session can only run once")
        self._result = asyncio.get_running_loop().create_future()
        self._state.status = PromptStatus.ACTIVE

        self._renderer.clear()
        self._renderer.log(self._message)
        self._echo(self.prompt_text)
        self._session.enter_prompt(self.on_key)
        return await self._result

    def on_key(self, token: str) -> None:
        """Line-editing listener for the input session."""
        if not self._state.is_active:
            return
        if token == ESCAPE or token in INTERRUPT_TOKENS:
            self.cancel()
        elif token == RETURN:
            self._echo("\n")
            self._finish(PromptStatus.SUBMITTED, self._state.buffer)
        elif token == BACKSPACE:
            if self._state.buffer:
                self._state.buffer = self._state.buffer[:-1]
                self._echo("\b \b")
        elif is_printable(token):
            self._state.buffer += token
            self._echo(token)

    def cancel(self) -> None:
        """Abort the prompt. Does nothing once the prompt has ended."""
        if not self._state.is_active:
            return
        self._echo("\n")
        self._finish(PromptStatus.CANCELLED, None)

    def _finish(self, status: PromptStatus, result: str | None) -> None:
        self._state.status = status
        logger.debug("Prompt %s", status.value)
        self._on_close()
        if self._result is not None and not self._result.done():
            self._result.set_result(result)

    def _echo(self, text: str) -> None:
        stream = self._renderer.console.file
        stream.write(text)
        stream.flush()
