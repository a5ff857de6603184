"""Core domain models for the devterm system.

These models represent the data flowing through the terminal control
surface: the listening mode of the input stream, the command table
entries, the prompt state, and the values exchanged with the development
platform façade.
"""

from __future__ import annotations

import enum
from typing import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ListeningMode(str, enum.Enum):
    """Which listener currently owns the terminal input stream."""

    RAW_COMMAND = "raw_command"  # Single keypresses dispatched as commands
    LINE_PROMPT = "line_prompt"  # Keypresses edit a line of free text
    SUSPENDED = "suspended"  # Nobody listens; terminal handed to someone else


class TokenKind(str, enum.Enum):
    """How the router treats an input token before the command table."""

    COMMAND = "command"
    INTERRUPT = "interrupt"
    CLEAR = "clear"


class PromptStatus(str, enum.Enum):
    """Lifecycle of a single prompt session."""

    IDLE = "idle"
    ACTIVE = "active"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


class HostType(str, enum.Enum):
    """Which address a shareable URL points at."""

    LAN = "lan"
    LOCALHOST = "localhost"


# ---------------------------------------------------------------------------
# Command table
# ---------------------------------------------------------------------------


# Handlers take a devterm.controller.commands.CommandContext.
CommandHandler = Callable[..., Awaitable[None]]


class CommandBinding(BaseModel):
    """Binds one input token to a handler and its rendering contract.

    The router performs the synchronous part of the contract (suspend raw
    input, clear, announce) before scheduling the handler, and renders the
    short help line after the handler finishes unless ``own_banner`` is set.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    token: str = Field(min_length=1, description="Literal character or named key")
    handler: CommandHandler
    description: str = Field(default="")
    clears_screen: bool = Field(default=False)
    announce: str | None = Field(
        default=None, description="Transient status line printed before the handler runs"
    )
    suspends_input: bool = Field(
        default=False, description="Unsubscribe raw command dispatch before the handler runs"
    )
    own_banner: bool = Field(
        default=False, description="Handler renders a full banner; skip the short help"
    )


# ---------------------------------------------------------------------------
# Prompt state
# ---------------------------------------------------------------------------


class PromptState(BaseModel):
    """In-progress line input of an active prompt session."""

    buffer: str = Field(default="")
    default: str | None = Field(default=None)
    status: PromptStatus = Field(default=PromptStatus.IDLE)

    @property
    def is_active(self) -> bool:
        return self.status == PromptStatus.ACTIVE


# ---------------------------------------------------------------------------
# Façade values
# ---------------------------------------------------------------------------


class ProjectSettings(BaseModel):
    """Per-project bundler settings persisted by the platform."""

    model_config = ConfigDict(populate_by_name=True)

    host_type: HostType = Field(default=HostType.LAN, alias="hostType")
    dev: bool = Field(default=True)
    minify: bool = Field(default=False)


class PackagerInfo(BaseModel):
    """Ports published by the running development server."""

    model_config = ConfigDict(populate_by_name=True)

    packager_port: int | None = Field(default=None, alias="packagerPort", ge=1, le=65535)
    dev_tools_port: int | None = Field(default=None, alias="devToolsPort", ge=1, le=65535)


class OpenResult(BaseModel):
    """Outcome of opening the project on a device or simulator."""

    model_config = ConfigDict(frozen=True)

    success: bool
    error: str | None = Field(default=None)
