"""Domain models for devterm.

This package contains the core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from devterm.domain.models import (
    CommandBinding,
    HostType,
    ListeningMode,
    OpenResult,
    PackagerInfo,
    ProjectSettings,
    PromptState,
    PromptStatus,
    TokenKind,
)

__all__ = [
    "CommandBinding",
    "HostType",
    "ListeningMode",
    "OpenResult",
    "PackagerInfo",
    "ProjectSettings",
    "PromptState",
    "PromptStatus",
    "TokenKind",
]
