"""Route ``@agent`` messages to per-agent sessions."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
import logging
import re
from typing import Any

from .agent_session import AgentSession
from .exceptions import DispatchError
from .host.base import ProcessHost
from .models import TeamMember

LOGGER = logging.getLogger(__name__)

RUN_TARGET = re.compile(r"@([0-9a-f-]{36}):(.*)", re.DOTALL)
AGENT_TARGET = re.compile(r"@(\w+)")


class TargetKind(str, Enum):
    RUN = "run"
    AGENT = "agent"
    LEAD = "lead"


@dataclass(frozen=True)
class MessageTarget:
    """Who a message is for and what should be delivered to them."""

    kind: TargetKind
    value: str | None
    message: str


def parse_message_target(text: str) -> MessageTarget:
    """Classify ``text`` by its first mention.

    ``@<run token>:message`` targets a running agent directly and delivers
    only the part after the colon. ``@name`` targets an agent by name and
    delivers the whole text. Anything else goes to the team lead.
    """
    match = RUN_TARGET.search(text)
    if match is not None:
        return MessageTarget(TargetKind.RUN, match.group(1), match.group(2))
    match = AGENT_TARGET.search(text)
    if match is not None:
        return MessageTarget(TargetKind.AGENT, match.group(1), text)
    return MessageTarget(TargetKind.LEAD, None, text)


class TeamRoster:
    """The agents of one team, searchable by name, nickname, or type."""

    LEAD_ROLE = "lead"

    def __init__(self, members: Iterable[TeamMember] = ()) -> None:
        self._members: tuple[TeamMember, ...] = tuple(members)

    @classmethod
    def from_config(cls, team_config: dict[str, Any]) -> TeamRoster:
        members = [
            TeamMember(
                id=str(item["id"]),
                name=str(item["name"]),
                nickname=item.get("nickname") or None,
                agent_type=item.get("agent_type") or None,
                role=item.get("role") or None,
                model=item.get("model") or None,
            )
            for item in team_config.get("members", [])
        ]
        return cls(members)

    @property
    def members(self) -> tuple[TeamMember, ...]:
        return self._members

    @property
    def lead(self) -> TeamMember | None:
        """The member with the lead role, or the first member."""
        for member in self._members:
            if (member.role or "").lower() == self.LEAD_ROLE:
                return member
        return self._members[0] if self._members else None

    def get(self, member_id: str) -> TeamMember | None:
        for member in self._members:
            if member.id == member_id:
                return member
        return None

    def find(self, name: str) -> TeamMember | None:
        """Look a member up by nickname, name, or id (case-insensitive)."""
        needle = name.lower()
        for member in self._members:
            candidates = (member.nickname, member.name, member.id)
            if any(value and value.lower() == needle for value in candidates):
                return member
        return None

    def filter(self, query: str) -> list[TeamMember]:
        """Members whose name, nickname, or agent type contains ``query``."""
        needle = query.strip().lower()
        if not needle:
            return list(self._members)
        return [
            member
            for member in self._members
            if any(
                needle in value.lower()
                for value in (member.name, member.nickname, member.agent_type)
                if value
            )
        ]

    def __len__(self) -> int:
        return len(self._members)


SessionFactory = Callable[..., AgentSession]


class MentionDispatcher:
    """Deliver mention messages to one :class:`AgentSession` per agent.

    A running session for the target agent is reused; otherwise one is
    created (or restarted) before the message is sent.
    """

    def __init__(
        self,
        host: ProcessHost,
        roster: TeamRoster,
        work_directory: str,
        *,
        model: str | None = None,
        session_factory: SessionFactory = AgentSession,
        on_session_created: Callable[[AgentSession, TeamMember], None] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            host: Process host shared by all sessions
            roster: Team the mentions are resolved against
            work_directory: Directory agents are started in
            model: Model used when a member has no model of its own
            session_factory: Callable building sessions; tests may swap it
            on_session_created: Hook for wiring callbacks on new sessions
        """
        self._host = host
        self.roster = roster
        self.work_directory = work_directory
        self.model = model
        self._session_factory = session_factory
        self._on_session_created = on_session_created
        self._sessions: dict[str, AgentSession] = {}

    @property
    def sessions(self) -> dict[str, AgentSession]:
        return dict(self._sessions)

    def session_for(self, member_id: str) -> AgentSession | None:
        return self._sessions.get(member_id)

    def _session_for_run(self, run_token: str) -> AgentSession | None:
        for session in self._sessions.values():
            if session.run_token == run_token:
                return session
        return None

    def _ensure_session(self, member: TeamMember) -> AgentSession:
        session = self._sessions.get(member.id)
        if session is None:
            session = self._session_factory(
                self._host,
                member.id,
                self.work_directory,
                member.model or self.model,
            )
            self._sessions[member.id] = session
            if self._on_session_created is not None:
                self._on_session_created(session, member)
        return session

    async def dispatch(self, text: str) -> AgentSession:
        """Send ``text`` to the agent it addresses.

        Raises:
            DispatchError: If the target agent or run cannot be found
        """
        target = parse_message_target(text)
        if target.kind is TargetKind.RUN:
            session = self._session_for_run(target.value or "")
            if session is None:
                raise DispatchError(f"No running agent with run token {target.value!r}.")
            await session.send_message(target.message)
            return session

        if target.kind is TargetKind.AGENT:
            member = self.roster.find(target.value or "")
            if member is None:
                raise DispatchError(f"No team member named {target.value!r}.")
        else:
            member = self.roster.lead
            if member is None:
                raise DispatchError("The team has no members to receive the message.")

        session = self._ensure_session(member)
        if not session.is_running:
            await session.start()
        await session.send_message(target.message)
        LOGGER.info(
            "dispatch.delivered",
            extra={
                "event": "dispatch.delivered",
                "agent_id": member.id,
                "run_token": session.run_token,
            },
        )
        return session

    async def close(self, member_id: str) -> None:
        session = self._sessions.pop(member_id, None)
        if session is not None:
            await session.destroy()

    async def close_all(self) -> None:
        """Destroy every session this dispatcher created."""
        for member_id in list(self._sessions):
            await self.close(member_id)
