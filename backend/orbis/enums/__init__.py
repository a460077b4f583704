"""
Centralized enum definitions for the application.

Usage:
    from orbis.enums import Rating, HarnessState, OutcomeKind
"""

from orbis.enums.learning import (
    ConsoleChannel,
    HarnessState,
    OutcomeKind,
    Rating,
    RuntimeMessageType,
)

__all__ = [
    "ConsoleChannel",
    "HarnessState",
    "OutcomeKind",
    "Rating",
    "RuntimeMessageType",
]
