"""Input tokens and raw byte decoding.

A token is either a single literal character (``"a"``, ``"?"``, ``"\\x03"``)
or one of the named keys below. Terminal escape sequences other than a
lone ESC are passed through whole so that listeners can ignore them.
"""

from __future__ import annotations

from devterm.domain.models import TokenKind

CTRL_C = "\x03"
CTRL_D = "\x04"
CTRL_L = "\x0c"

ESCAPE = "escape"
RETURN = "return"
BACKSPACE = "backspace"

INTERRUPT_TOKENS = frozenset({CTRL_C, CTRL_D})

_NAMED_CHARS = {
    "\r": RETURN,
    "\n": RETURN,
    "\x7f": BACKSPACE,
    "\x08": BACKSPACE,
}


def classify_token(token: str) -> TokenKind:
    """Decide whether a token is a process interrupt, a clear, or a command."""
    if token in INTERRUPT_TOKENS:
        return TokenKind.INTERRUPT
    if token == CTRL_L:
        return TokenKind.CLEAR
    return TokenKind.COMMAND


def decode_keys(data: str) -> list[str]:
    """Split a chunk read from a raw-mode terminal into tokens.

    A chunk that is exactly ``"\\x1b"`` is the escape key. A chunk that
    starts with ESC and carries more bytes is an escape sequence (arrow
    keys, function keys) and is returned as a single opaque token.
    ``"\\r\\n"`` collapses into one ``return``.
    """
    if not data:
        return []
    if data == "\x1b":
        return [ESCAPE]
    if data.startswith("\x1b"):
        return [data]

    tokens: list[str] = []
    previous = ""
    for char in data:
        if char == "\n" and previous == "\r":
            previous = char
            continue
        tokens.append(_NAMED_CHARS.get(char, char))
        previous = char
    return tokens


def is_printable(token: str) -> bool:
    """Whether a token is text that a line editor should insert."""
    return len(token) == 1 and token.isprintable()
