"""Command routing module for devterm.

Contains the input state machine that dispatches keypresses to platform
commands and the line prompt used to collect free text.

Public API:
    CommandRouter -- Keypress dispatcher and listening-mode owner
    PromptSession -- One-line text prompt with default and cancel
    COMMAND_TABLE -- The fixed set of key bindings
"""

from devterm.controller.commands import COMMAND_TABLE, CommandContext
from devterm.controller.prompt import PromptSession, resolve_recipient
from devterm.controller.router import CommandRouter

__all__ = [
    "COMMAND_TABLE",
    "CommandContext",
    "CommandRouter",
    "PromptSession",
    "resolve_recipient",
]
