"""Agent session lifecycle states."""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of one agent session: IDLE -> STARTING -> RUNNING -> IDLE."""

    IDLE = "IDLE"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
