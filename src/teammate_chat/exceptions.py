"""Domain exception hierarchy for the teammate chat application."""

from __future__ import annotations


class TeammateChatError(RuntimeError):
    """Base class for all domain-level chat errors."""


class ResynchronizationError(TeammateChatError):
    """Raised when picker state no longer matches the composition buffer."""


class AgentSessionError(TeammateChatError):
    """Base class for agent session lifecycle errors."""


class NotRunningError(AgentSessionError):
    """Raised when an operation requires a running agent session."""


class AlreadyRunningError(AgentSessionError):
    """Raised when starting a session that is not idle."""


class SessionCancelledError(AgentSessionError):
    """Raised when a pending start is abandoned by kill or destroy."""


class HostCommunicationError(TeammateChatError):
    """Raised when the process host fails to start, feed, or stop an agent."""


class DispatchError(TeammateChatError):
    """Raised when an agent-mention message cannot be delivered."""


class ConfigValidationError(TeammateChatError):
    """Raised when configuration cannot be validated safely."""
