"""
Core components for the Discord Jukebox system.

This package contains the stateful pieces of the bot: supervision of the
audio node connection and the per-user search sessions.
"""

from .connection_supervisor import (
    ConnectionState,
    ConnectionSupervisor,
    SupervisorPhase,
    SupervisorSettings,
    TimerPurpose,
)
from .search_sessions import (
    PageData,
    SearchSession,
    SearchSessionManager,
    SelectionAction,
    SessionError,
    ToggleResult,
)

__all__ = [
    "ConnectionState",
    "ConnectionSupervisor",
    "SupervisorPhase",
    "SupervisorSettings",
    "TimerPurpose",
    "PageData",
    "SearchSession",
    "SearchSessionManager",
    "SelectionAction",
    "SessionError",
    "ToggleResult",
]
