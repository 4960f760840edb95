"""Process hosts and the construction-time choice between them."""

from __future__ import annotations

import logging
import shutil
from typing import Any

from ..events.bus import EventBus
from .base import HOST_TOPICS, TOPIC_COMPLETE, TOPIC_ERROR, TOPIC_OUTPUT, ProcessHost
from .memory import InMemoryProcessHost
from .subprocess_host import SubprocessHost

LOGGER = logging.getLogger(__name__)

__all__ = [
    "HOST_TOPICS",
    "InMemoryProcessHost",
    "ProcessHost",
    "SubprocessHost",
    "TOPIC_COMPLETE",
    "TOPIC_ERROR",
    "TOPIC_OUTPUT",
    "build_process_host",
]


def build_process_host(
    host_config: dict[str, Any], bus: EventBus | None = None
) -> ProcessHost:
    """Pick the process host implementation once, from configuration.

    ``kind = "auto"`` probes ``PATH`` for the agent executable and falls back
    to the in-memory echo host when it is missing.
    """
    kind = str(host_config.get("kind", "auto"))
    command = [str(part) for part in host_config.get("command", [])]

    if kind == "memory":
        return InMemoryProcessHost(bus)

    if kind == "auto" and (not command or shutil.which(command[0]) is None):
        LOGGER.warning(
            "host.fallback.memory",
            extra={
                "event": "host.fallback.memory",
                "command": command[0] if command else "",
            },
        )
        return InMemoryProcessHost(bus)

    return SubprocessHost(
        command,
        bus,
        model_flag=str(host_config.get("model_flag", "--model")),
        terminate_timeout_seconds=float(
            host_config.get("terminate_timeout_seconds", 5.0)
        ),
    )
