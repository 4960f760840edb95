"""Main Textual application for composing messages to a team of agents."""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import sys
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.message import Message
from textual.widgets import Footer, Header

from .agent_session import AgentSession
from .catalog import (
    MODELS,
    THINKING_MODES,
    apply_depth_phrase,
    get_model,
    get_thinking_mode,
)
from .composer.controller import CompositionController
from .composer.files import FileIndex
from .composer.picker import PickerContext
from .composer.submission import SubmissionGate
from .config import load_config
from .dispatch import MentionDispatcher, TeamRoster
from .events.bus import EventBus
from .exceptions import TeammateChatError
from .host import build_process_host
from .logging_utils import configure_logging
from .managers.command import CommandManager
from .models import TeamMember
from .widgets.conversation import ConversationView
from .widgets.message import MessageBubble
from .widgets.prompt_input import Composer
from .widgets.status_bar import StatusBar

LOGGER = logging.getLogger(__name__)

ARGUMENTS_PLACEHOLDER = "$ARGUMENTS"


class TeammateChatApp(App[None]):
    """Chat TUI that sends composed messages to agent processes."""

    CSS = """
    Screen {
        layout: vertical;
        background: $background;
    }

    #app-root {
        layout: vertical;
        width: 100%;
        height: 1fr;
        background: $background;
    }

    Header {
        border-bottom: solid $panel;
        background: $surface;
    }

    Footer {
        border-top: solid $panel;
        background: $surface;
    }

    #conversation {
        height: 1fr;
        padding: 1;
    }

    Composer {
        padding: 0 1 1 1;
        border-top: solid $panel;
        background: $surface;
    }

    #status_bar {
        height: auto;
        padding: 0 1;
        border-top: solid $panel;
        background: $surface;
    }

    MessageBubble {
        width: 85%;
        margin: 1 0;
        padding: 1 2;
        border: round $panel;
    }

    .message-user {
        align-horizontal: right;
        background: $primary;
    }

    .message-assistant {
        align-horizontal: left;
        background: $surface;
    }

    .message-error {
        border: round $error;
    }

    .message-system {
        color: $text-muted;
    }
    """

    DEFAULT_ACTION_DESCRIPTIONS: dict[str, str] = {
        "toggle_expanded": "Expand",
        "kill_agent": "Kill Agent",
        "clear_conversation": "Clear",
        "quit": "Quit",
    }

    class AgentOutput(Message):
        """A line of output from an agent run."""

        def __init__(self, author: str, text: str) -> None:
            self.author = author
            self.text = text
            super().__init__()

    class AgentError(Message):
        """A line of error output from an agent run."""

        def __init__(self, author: str, text: str) -> None:
            self.author = author
            self.text = text
            super().__init__()

    class AgentCompleted(Message):
        """An agent run finished."""

        def __init__(self, author: str, success: bool) -> None:
            self.author = author
            self.success = success
            super().__init__()

    def __init__(self, config_path: Path | None = None) -> None:
        self.config = load_config(config_path)
        self.window_title = str(self.config["app"]["title"])
        configure_logging(self.config["logging"])
        LOGGER.info(
            "app.python",
            extra={
                "event": "app.python",
                "executable": sys.executable,
                "version": sys.version.split()[0],
            },
        )

        agent_cfg = self.config["agent"]
        composer_cfg = self.config["composer"]
        self.work_directory = str(Path(agent_cfg["work_directory"]).expanduser())
        self.bus = EventBus()
        self.host = build_process_host(self.config["host"], self.bus)
        self.roster = TeamRoster.from_config(self.config["team"])
        self.command_manager = CommandManager()

        self.session = AgentSession(
            self.host,
            str(agent_cfg["id"]),
            self.work_directory,
            str(agent_cfg["model"]) or None,
        )
        self._wire_session(self.session, str(agent_cfg["id"]))

        self.dispatcher = MentionDispatcher(
            self.host,
            self.roster,
            self.work_directory,
            model=str(agent_cfg["model"]) or None,
            on_session_created=self._on_dispatch_session_created,
        )
        self.gate = SubmissionGate(
            self._send_to_primary,
            agent_dispatch=self._dispatch_to_agent if len(self.roster) else None,
        )

        base_path = str(composer_cfg["base_path"]) or self.work_directory
        base_path = str(Path(base_path).expanduser())
        agent_context = (
            (str(composer_cfg["project_id"]) or "team") if len(self.roster) else None
        )
        self.file_index = FileIndex(
            base_path, result_limit=int(composer_cfg["max_file_results"])
        )
        self.controller = CompositionController(
            PickerContext(agent_context=agent_context, base_path=base_path),
            gate=self.gate,
            roster=self.roster,
            commands=self.command_manager,
            files=self.file_index,
            thinking_mode=str(composer_cfg["thinking_mode"]),
            model_id=str(composer_cfg["model"]),
        )
        if bool(self.config["app"]["expanded_on_start"]):
            self.controller.toggle_expanded()

        # Bubbles still receiving output, keyed by author.
        self._open_bubbles: dict[str, MessageBubble] = {}
        self._w_conversation: ConversationView | None = None
        self._w_status: StatusBar | None = None
        self._w_composer: Composer | None = None

        self._register_builtin_commands()
        self._register_custom_commands(self.config["commands"]["custom"])
        self._binding_specs = self._binding_specs_from_config(self.config)
        super().__init__()

    @classmethod
    def _binding_specs_from_config(
        cls, config: dict[str, dict[str, Any]]
    ) -> list[Binding]:
        keybinds = config.get("keybinds", {})
        bindings: list[Binding] = []
        for action_name in cls.DEFAULT_ACTION_DESCRIPTIONS:
            binding_key = keybinds.get(action_name)
            if isinstance(binding_key, str) and binding_key.strip():
                bindings.append(
                    Binding(
                        key=binding_key.strip(),
                        action=action_name,
                        description=cls.DEFAULT_ACTION_DESCRIPTIONS[action_name],
                        show=True,
                    )
                )
        return bindings

    def compose(self) -> ComposeResult:
        """Compose app widgets."""
        yield Header(name=self.window_title)
        with Container(id="app-root"):
            yield ConversationView(id="conversation")
            yield Composer(self.controller, id="composer")
            yield StatusBar(id="status_bar")
        yield Footer()

    async def on_mount(self) -> None:
        """Register runtime keybindings and cache widget references."""
        self.title = self.window_title
        self.sub_title = f"Agent: {self.session.agent_id}"
        for binding in self._binding_specs:
            self.bind(
                binding.key,
                binding.action,
                description=binding.description,
                show=binding.show,
                key_display=binding.key_display,
            )
        self._w_conversation = self.query_one(ConversationView)
        self._w_status = self.query_one("#status_bar", StatusBar)
        self._w_composer = self.query_one(Composer)
        self.controller.on_change(self._on_composer_change)
        self._update_status_bar()
        LOGGER.info(
            "app.mounted",
            extra={
                "event": "app.mounted",
                "host": self.host.kind,
                "team_size": len(self.roster),
            },
        )

    async def on_unmount(self) -> None:
        """Tear down every agent run this app started."""
        self.controller.remove_change_listener(self._on_composer_change)
        await self.dispatcher.close_all()
        await self.session.destroy()
        await self.host.close()

    # Agent sessions

    def _wire_session(self, session: AgentSession, author: str) -> None:
        session.on_output(lambda text: self.post_message(self.AgentOutput(author, text)))
        session.on_error(lambda text: self.post_message(self.AgentError(author, text)))
        session.on_complete(
            lambda success: self.post_message(self.AgentCompleted(author, success))
        )

    def _on_dispatch_session_created(
        self, session: AgentSession, member: TeamMember
    ) -> None:
        self._wire_session(session, member.display_name)

    async def _send_to_primary(self, text: str, model_id: str) -> None:
        if not self.session.is_running:
            self.session.model = model_id
            self._set_submission_disabled(True)
            try:
                await self.session.start()
            finally:
                self._set_submission_disabled(False)
            self._update_status_bar()
        await self.session.send_message(text)
        await self._add_message(text, "user")

    def _set_submission_disabled(self, disabled: bool) -> None:
        """Block submits and slash commands while the primary agent starts."""
        self.gate.disabled = disabled
        if self._w_composer is not None:
            self._w_composer.set_disabled(disabled=disabled)
            if not disabled:
                self._w_composer.focus_input()

    async def _dispatch_to_agent(self, text: str) -> None:
        session = await self.dispatcher.dispatch(text)
        await self._add_message(text, "user")
        self.sub_title = f"Sent to {session.agent_id}"

    # Conversation rendering

    @staticmethod
    def _timestamp() -> str:
        return datetime.now().strftime("%H:%M")

    async def _add_message(
        self, content: str, role: str, author: str = ""
    ) -> MessageBubble | None:
        if self._w_conversation is None:
            return None
        return await self._w_conversation.add_message(
            content, role, author=author, timestamp=self._timestamp()
        )

    async def on_teammate_chat_app_agent_output(self, event: AgentOutput) -> None:
        bubble = self._open_bubbles.get(event.author)
        if bubble is not None:
            bubble.append_content(f"\n{event.text}")
            if self._w_conversation is not None:
                self._w_conversation.scroll_end(animate=False)
            return
        bubble = await self._add_message(event.text, "assistant", author=event.author)
        if bubble is not None:
            self._open_bubbles[event.author] = bubble

    async def on_teammate_chat_app_agent_error(self, event: AgentError) -> None:
        await self._add_message(event.text, "error", author=event.author)

    async def on_teammate_chat_app_agent_completed(self, event: AgentCompleted) -> None:
        self._open_bubbles.pop(event.author, None)
        if not event.success:
            await self._add_message(f"{event.author} exited with an error.", "error")
        self._update_status_bar()

    def _on_composer_change(self, _controller: CompositionController) -> None:
        self._update_status_bar()

    def _update_status_bar(self) -> None:
        if self._w_status is None:
            return
        self._w_status.set_status(
            session_state=self.session.state.value.lower(),
            agent=self.session.agent_id,
            model=get_model(self.controller.model_id).name,
            thinking_mode=get_thinking_mode(self.controller.thinking_mode).name,
            attachment_count=len(self.controller.attachments),
        )

    # Submission

    async def on_composer_submitted(self, event: Composer.Submitted) -> None:
        event.stop()
        text = event.value.strip()
        if self.gate.disabled:
            LOGGER.debug(
                "app.submit.suppressed",
                extra={"event": "app.submit.suppressed", "reason": "disabled"},
            )
            return
        if self.command_manager.is_command(text):
            # Commands may write to the buffer themselves (e.g. /image).
            self.controller.clear()
            try:
                await self.command_manager.execute(text)
            except TeammateChatError as exc:
                await self._add_message(str(exc), "error")
            return
        try:
            outcome = await self.controller.submit()
        except TeammateChatError as exc:
            LOGGER.warning(
                "app.submit.failed",
                extra={
                    "event": "app.submit.failed",
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            await self._add_message(str(exc), "error")
            return
        LOGGER.debug(
            "app.submit.outcome",
            extra={"event": "app.submit.outcome", "outcome": outcome.value},
        )

    # Slash commands

    def _register_builtin_commands(self) -> None:
        async def _handle_help(_args: str) -> None:
            lines = ["Commands:", ""]
            for command in self.command_manager.get_commands():
                lines.append(f"/{command.qualified_name} - {command.description}")
            lines.append("")
            lines.append("Keybind actions:")
            for binding in self._binding_specs:
                lines.append(f"{binding.key.upper()} - {binding.description}")
            await self._add_message("\n".join(lines), "system")

        async def _handle_clear(_args: str) -> None:
            await self.action_clear_conversation()

        async def _handle_kill(_args: str) -> None:
            await self.action_kill_agent()

        async def _handle_status(_args: str) -> None:
            status = await self.session.get_status()
            state = self.session.state.value.lower()
            await self._add_message(
                f"{self.session.agent_id}: {status or state}", "system"
            )

        async def _handle_model(args: str) -> None:
            model_id = args.strip()
            try:
                self.controller.model_id = model_id
            except ValueError:
                choices = ", ".join(model.id for model in MODELS)
                self.sub_title = f"Unknown model {model_id!r}. Choose one of: {choices}"
                return
            self.sub_title = f"Model set: {get_model(model_id).name}"

        async def _handle_think(args: str) -> None:
            mode_id = args.strip()
            try:
                self.controller.thinking_mode = mode_id
            except ValueError:
                choices = ", ".join(mode.id for mode in THINKING_MODES)
                self.sub_title = (
                    f"Unknown thinking mode {mode_id!r}. Choose one of: {choices}"
                )
                return
            self.sub_title = f"Thinking: {get_thinking_mode(mode_id).name}"

        async def _handle_image(args: str) -> None:
            path = args.strip()
            if not path:
                self.sub_title = "Usage: /image <path>"
                return
            self.controller.add_image(path)

        register = self.command_manager.register
        register("/help", _handle_help, "Show commands and keybinds")
        register("/clear", _handle_clear, "Clear the conversation view")
        register("/kill", _handle_kill, "Stop the running agent")
        register("/status", _handle_status, "Show the agent status")
        register(
            "/model", _handle_model, "Switch the agent model", accepts_arguments=True
        )
        register(
            "/think", _handle_think, "Set the thinking depth", accepts_arguments=True
        )
        register(
            "/image", _handle_image, "Attach an image by path", accepts_arguments=True
        )

    def _register_custom_commands(self, custom: list[dict[str, Any]]) -> None:
        for item in custom:
            prompt = str(item["prompt"])

            async def _handle_custom(args: str, prompt: str = prompt) -> None:
                text = prompt.replace(ARGUMENTS_PLACEHOLDER, args.strip())
                await self._send_to_primary(
                    apply_depth_phrase(text, self.controller.thinking_mode),
                    self.controller.model_id,
                )

            self.command_manager.register(
                str(item["name"]),
                _handle_custom,
                str(item.get("description") or ""),
                namespace=str(item.get("namespace") or "") or None,
                accepts_arguments=bool(item.get("accepts_arguments", False)),
            )

    # Actions

    def action_toggle_expanded(self) -> None:
        self.controller.toggle_expanded()

    async def action_kill_agent(self) -> None:
        """Stop the primary agent run."""
        try:
            stopped = await self.session.kill()
        except TeammateChatError as exc:
            self.sub_title = f"Kill failed: {exc}"
            return
        finally:
            self._open_bubbles.pop(self.session.agent_id, None)
            self._update_status_bar()
        self.sub_title = "Agent stopped." if stopped else "No agent running."

    async def action_clear_conversation(self) -> None:
        self._open_bubbles.clear()
        if self._w_conversation is not None:
            await self._w_conversation.clear_messages()

    async def action_quit(self) -> None:
        self.exit()
