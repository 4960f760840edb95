"""Tests for mention parsing, the team roster, and the mention dispatcher."""

from __future__ import annotations

import unittest

from teammate_chat.agent_session import AgentSession
from teammate_chat.dispatch import (
    MentionDispatcher,
    TargetKind,
    TeamRoster,
    parse_message_target,
)
from teammate_chat.exceptions import DispatchError
from teammate_chat.host.memory import InMemoryProcessHost
from teammate_chat.models import TeamMember

TEAM = (
    TeamMember(id="dev", name="Developer", nickname="Dex", agent_type="coder"),
    TeamMember(id="qa", name="Tester", agent_type="reviewer", role="lead", model="opus"),
)


class ParseMessageTargetTests(unittest.TestCase):
    """Classify messages by their first mention."""

    def test_run_token_target_strips_prefix(self) -> None:
        token = "0f8fad5b-d9cb-469f-a165-70867728950e"
        target = parse_message_target(f"@{token}:check the logs")
        self.assertIs(target.kind, TargetKind.RUN)
        self.assertEqual(target.value, token)
        self.assertEqual(target.message, "check the logs")

    def test_agent_target_keeps_whole_text(self) -> None:
        target = parse_message_target("please @Dex fix it")
        self.assertIs(target.kind, TargetKind.AGENT)
        self.assertEqual(target.value, "Dex")
        self.assertEqual(target.message, "please @Dex fix it")

    def test_plain_text_goes_to_lead(self) -> None:
        target = parse_message_target("status update")
        self.assertIs(target.kind, TargetKind.LEAD)
        self.assertIsNone(target.value)


class TeamRosterTests(unittest.TestCase):
    """Validate lookups over the configured team."""

    def setUp(self) -> None:
        self.roster = TeamRoster(TEAM)

    def test_find_matches_nickname_name_or_id(self) -> None:
        self.assertEqual(self.roster.find("dex").id, "dev")  # type: ignore[union-attr]
        self.assertEqual(self.roster.find("developer").id, "dev")  # type: ignore[union-attr]
        self.assertEqual(self.roster.find("QA").id, "qa")  # type: ignore[union-attr]
        self.assertIsNone(self.roster.find("nobody"))

    def test_filter_by_name_nickname_or_type(self) -> None:
        self.assertEqual([m.id for m in self.roster.filter("")], ["dev", "qa"])
        self.assertEqual([m.id for m in self.roster.filter("rev")], ["qa"])
        self.assertEqual([m.id for m in self.roster.filter("DE")], ["dev"])
        self.assertEqual(self.roster.filter("zzz"), [])

    def test_lead_prefers_lead_role(self) -> None:
        self.assertEqual(self.roster.lead.id, "qa")  # type: ignore[union-attr]
        self.assertEqual(TeamRoster(TEAM[:1]).lead.id, "dev")  # type: ignore[union-attr]
        self.assertIsNone(TeamRoster().lead)

    def test_from_config_normalizes_empty_strings(self) -> None:
        roster = TeamRoster.from_config(
            {"members": [{"id": "a", "name": "Alpha", "nickname": "", "model": ""}]}
        )
        member = roster.get("a")
        assert member is not None
        self.assertIsNone(member.nickname)
        self.assertIsNone(member.model)
        self.assertEqual(member.display_name, "Alpha")
        self.assertEqual(len(roster), 1)


class MentionDispatcherTests(unittest.IsolatedAsyncioTestCase):
    """Deliver mention messages through per-agent sessions."""

    def setUp(self) -> None:
        self.host = InMemoryProcessHost(echo=False)
        self.created: list[tuple[AgentSession, TeamMember]] = []
        self.dispatcher = MentionDispatcher(
            self.host,
            TeamRoster(TEAM),
            "/work",
            model="sonnet",
            on_session_created=lambda session, member: self.created.append(
                (session, member)
            ),
        )

    def _inbox(self, session: AgentSession) -> list[str]:
        run = self.host.run(session.run_token or "")
        assert run is not None
        return run.inbox

    async def test_mention_starts_session_and_delivers_text(self) -> None:
        session = await self.dispatcher.dispatch("@Dex fix the build")
        self.assertTrue(session.is_running)
        self.assertEqual(session.agent_id, "dev")
        self.assertEqual(session.model, "sonnet")
        self.assertEqual(self._inbox(session), ["@Dex fix the build"])
        self.assertEqual([member.id for _, member in self.created], ["dev"])

    async def test_running_session_is_reused(self) -> None:
        first = await self.dispatcher.dispatch("@dev one")
        token = first.run_token
        second = await self.dispatcher.dispatch("@dev two")
        self.assertIs(first, second)
        self.assertEqual(second.run_token, token)
        self.assertEqual(self._inbox(second), ["@dev one", "@dev two"])
        self.assertEqual(len(self.created), 1)

    async def test_completed_session_is_restarted(self) -> None:
        session = await self.dispatcher.dispatch("@dev one")
        old_token = session.run_token or ""
        await self.host.complete(old_token)
        again = await self.dispatcher.dispatch("@dev two")
        self.assertIs(session, again)
        self.assertNotEqual(again.run_token, old_token)

    async def test_plain_text_goes_to_lead_with_member_model(self) -> None:
        session = await self.dispatcher.dispatch("who is on call")
        self.assertEqual(session.agent_id, "qa")
        self.assertEqual(session.model, "opus")

    async def test_run_token_target_delivers_suffix(self) -> None:
        session = await self.dispatcher.dispatch("@dev start")
        await self.dispatcher.dispatch(f"@{session.run_token}:follow up")
        self.assertEqual(self._inbox(session), ["@dev start", "follow up"])

    async def test_unknown_targets_raise(self) -> None:
        with self.assertRaises(DispatchError):
            await self.dispatcher.dispatch("@ghost hello")
        with self.assertRaises(DispatchError):
            await self.dispatcher.dispatch(
                "@0f8fad5b-d9cb-469f-a165-70867728950e:hello"
            )
        empty = MentionDispatcher(self.host, TeamRoster(), "/work")
        with self.assertRaises(DispatchError):
            await empty.dispatch("anyone?")

    async def test_close_all_destroys_sessions(self) -> None:
        await self.dispatcher.dispatch("@dev a")
        await self.dispatcher.dispatch("@qa b")
        self.assertEqual(len(self.host.active_runs), 2)
        await self.dispatcher.close_all()
        self.assertEqual(self.host.active_runs, [])
        self.assertEqual(self.dispatcher.sessions, {})
        self.assertIsNone(self.dispatcher.session_for("dev"))


if __name__ == "__main__":
    unittest.main()
