"""Top-level package for teamterm."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .agent_session import AgentSession
    from .app import TeammateChatApp
    from .composer.controller import CompositionController
    from .composer.submission import SubmissionGate
    from .config import ensure_config_dir, load_config
    from .dispatch import MentionDispatcher, TeamRoster
    from .exceptions import (
        AgentSessionError,
        AlreadyRunningError,
        ConfigValidationError,
        DispatchError,
        HostCommunicationError,
        NotRunningError,
        ResynchronizationError,
        SessionCancelledError,
        TeammateChatError,
    )
    from .state import SessionState

_EXCEPTION_NAMES = {
    "AgentSessionError",
    "AlreadyRunningError",
    "ConfigValidationError",
    "DispatchError",
    "HostCommunicationError",
    "NotRunningError",
    "ResynchronizationError",
    "SessionCancelledError",
    "TeammateChatError",
}

__all__ = [
    "AgentSession",
    "AgentSessionError",
    "AlreadyRunningError",
    "CompositionController",
    "ConfigValidationError",
    "DispatchError",
    "HostCommunicationError",
    "MentionDispatcher",
    "NotRunningError",
    "ResynchronizationError",
    "SessionCancelledError",
    "SessionState",
    "SubmissionGate",
    "TeamRoster",
    "TeammateChatApp",
    "TeammateChatError",
    "ensure_config_dir",
    "load_config",
]


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep optional UI dependencies optional at import time."""
    if name == "AgentSession":
        from .agent_session import AgentSession

        return AgentSession
    if name == "CompositionController":
        from .composer.controller import CompositionController

        return CompositionController
    if name == "SubmissionGate":
        from .composer.submission import SubmissionGate

        return SubmissionGate
    if name in {"ensure_config_dir", "load_config"}:
        from .config import ensure_config_dir, load_config

        return {"ensure_config_dir": ensure_config_dir, "load_config": load_config}[name]
    if name in {"MentionDispatcher", "TeamRoster"}:
        from .dispatch import MentionDispatcher, TeamRoster

        return {"MentionDispatcher": MentionDispatcher, "TeamRoster": TeamRoster}[name]
    if name in _EXCEPTION_NAMES:
        from . import exceptions

        return getattr(exceptions, name)
    if name == "SessionState":
        from .state import SessionState

        return SessionState
    if name == "TeammateChatApp":
        from .app import TeammateChatApp

        return TeammateChatApp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
