"""Lifecycle manager for one external agent run and its event subscriptions."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from functools import partial
import logging
from typing import NoReturn

from .events.bus import Event, Subscription
from .events.observers import CallbackList
from .exceptions import (
    AlreadyRunningError,
    HostCommunicationError,
    NotRunningError,
    SessionCancelledError,
)
from .host.base import TOPIC_COMPLETE, TOPIC_ERROR, TOPIC_OUTPUT, ProcessHost
from .state import SessionState

LOGGER = logging.getLogger(__name__)


class AgentSession:
    """Start, feed, and tear down one agent run.

    A session owns at most one run token at a time and exactly the three
    subscriptions (output, error, completion) registered for it. Whichever of
    completion, :meth:`kill`, or :meth:`destroy` happens first unregisters
    them and returns the session to ``IDLE``.

    Concurrent starts are rejected by state check: a second :meth:`start`
    while the first is still awaiting the host raises
    :class:`AlreadyRunningError`.
    """

    def __init__(
        self,
        host: ProcessHost,
        agent_id: str,
        work_directory: str,
        model: str | None = None,
    ) -> None:
        """Initialize an idle session.

        Args:
            host: Process host that runs the agent
            agent_id: Identifier handed to the host on start
            work_directory: Directory the agent runs in
            model: Optional model override passed to the host
        """
        self._host = host
        self.agent_id = agent_id
        self.work_directory = work_directory
        self.model = model
        self._state = SessionState.IDLE
        self._run_token: str | None = None
        self._subscriptions: list[Subscription] = []
        # Bumped by kill/destroy so an in-flight start can tell it was abandoned.
        self._generation = 0
        self._output_callbacks: CallbackList[str] = CallbackList("session.output")
        self._error_callbacks: CallbackList[str] = CallbackList("session.error")
        self._complete_callbacks: CallbackList[bool] = CallbackList(
            "session.complete"
        )

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def run_token(self) -> str | None:
        return self._run_token

    @property
    def is_running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def subscription_count(self) -> int:
        return sum(1 for sub in self._subscriptions if sub.active)

    def _log(self, event: str, level: int = logging.INFO, **fields: object) -> None:
        LOGGER.log(
            level,
            event,
            extra={
                "event": event,
                "agent_id": self.agent_id,
                "run_token": self._run_token,
                **fields,
            },
        )

    async def start(self) -> str:
        """Start the agent and subscribe to its events.

        Returns:
            The run token issued by the host

        Raises:
            AlreadyRunningError: If the session is starting or running
            HostCommunicationError: If the host cannot start or subscribe
            SessionCancelledError: If kill or destroy ran while starting
        """
        if self._state is not SessionState.IDLE:
            raise AlreadyRunningError(
                f"Agent {self.agent_id!r} is already {self._state.value.lower()}."
            )
        self._state = SessionState.STARTING
        self._generation += 1
        generation = self._generation
        self._log("session.start.begin", model=self.model)

        try:
            run_token = await self._host.start(
                self.agent_id, self.work_directory, self.model
            )
        except asyncio.CancelledError:
            self._release_start(generation)
            raise
        except Exception as exc:
            if generation == self._generation:
                self._state = SessionState.IDLE
            self._log(
                "session.start.failed",
                logging.WARNING,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            if isinstance(exc, HostCommunicationError):
                raise
            raise HostCommunicationError(
                f"Unable to start agent {self.agent_id!r}: {exc}"
            ) from exc

        if generation != self._generation:
            await self._abandon(run_token)

        handlers: tuple[tuple[str, Callable[[Event], None]], ...] = (
            (TOPIC_OUTPUT, partial(self._on_output, run_token)),
            (TOPIC_ERROR, partial(self._on_error, run_token)),
            (TOPIC_COMPLETE, partial(self._on_complete, run_token)),
        )
        subscriptions: list[Subscription] = []
        try:
            for topic, handler in handlers:
                subscriptions.append(
                    await self._host.subscribe(topic, run_token, handler)
                )
        except asyncio.CancelledError:
            for subscription in subscriptions:
                subscription.unsubscribe()
            self._release_start(generation)
            await self._stop_quietly(run_token)
            raise
        except Exception as exc:
            for subscription in subscriptions:
                subscription.unsubscribe()
            if generation == self._generation:
                self._state = SessionState.IDLE
            await self._stop_quietly(run_token)
            raise HostCommunicationError(
                f"Unable to subscribe to agent {self.agent_id!r} events: {exc}"
            ) from exc

        if generation != self._generation:
            for subscription in subscriptions:
                subscription.unsubscribe()
            await self._abandon(run_token)

        self._run_token = run_token
        self._subscriptions = subscriptions
        self._state = SessionState.RUNNING
        self._log("session.start.running")
        return run_token

    def _release_start(self, generation: int) -> None:
        """Return a cancelled start to ``IDLE`` unless kill already did."""
        if generation != self._generation:
            return
        self._generation += 1
        self._state = SessionState.IDLE
        self._log("session.start.interrupted", logging.WARNING)

    async def _abandon(self, run_token: str) -> NoReturn:
        await self._stop_quietly(run_token)
        self._log("session.start.cancelled", logging.WARNING, abandoned=run_token)
        raise SessionCancelledError(
            f"Start of agent {self.agent_id!r} was cancelled."
        )

    async def _stop_quietly(self, run_token: str) -> None:
        try:
            await self._host.stop(run_token)
        except Exception as exc:  # noqa: BLE001 - the run is being discarded anyway.
            self._log(
                "session.stop.orphan_failed",
                logging.WARNING,
                abandoned=run_token,
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def _on_output(self, run_token: str, event: Event) -> None:
        if run_token != self._run_token:
            return
        self._output_callbacks.emit(str(event.data.get("payload", "")))

    def _on_error(self, run_token: str, event: Event) -> None:
        if run_token != self._run_token:
            return
        self._error_callbacks.emit(str(event.data.get("payload", "")))

    def _on_complete(self, run_token: str, event: Event) -> None:
        if run_token != self._run_token:
            return
        success = bool(event.data.get("payload", False))
        self._log("session.complete", success=success)
        # Torn down before callbacks run so they may start a fresh run.
        self._teardown()
        self._complete_callbacks.emit(success)

    def _teardown(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []
        self._run_token = None
        self._state = SessionState.IDLE

    async def send_message(self, content: str) -> None:
        """Forward ``content`` to the running agent.

        Raises:
            NotRunningError: If the session is not running
            HostCommunicationError: If the host rejects the message
        """
        if self._state is not SessionState.RUNNING or self._run_token is None:
            raise NotRunningError(f"Agent {self.agent_id!r} is not running.")
        try:
            await self._host.send(self._run_token, content)
        except HostCommunicationError:
            raise
        except Exception as exc:
            raise HostCommunicationError(
                f"Unable to send message to agent {self.agent_id!r}: {exc}"
            ) from exc

    async def kill(self) -> bool:
        """Stop the current run.

        Local bookkeeping is cleared before the host is asked to terminate,
        so the session is ``IDLE`` even when the host call fails.

        Returns:
            False when idle, otherwise the host's termination result

        Raises:
            HostCommunicationError: If the host stop request fails
        """
        if self._state is SessionState.IDLE:
            return False

        self._generation += 1
        if self._state is SessionState.STARTING:
            self._state = SessionState.IDLE
            self._log("session.kill.pending_start")
            return False

        run_token = self._run_token
        self._log("session.kill")
        self._teardown()
        if run_token is None:
            return False
        try:
            return bool(await self._host.stop(run_token))
        except HostCommunicationError:
            raise
        except Exception as exc:
            raise HostCommunicationError(
                f"Unable to stop agent {self.agent_id!r}: {exc}"
            ) from exc

    async def get_status(self) -> str | None:
        """Return the host's status for the run, or None when unavailable."""
        if self._state is not SessionState.RUNNING or self._run_token is None:
            return None
        try:
            return await self._host.status(self._run_token)
        except Exception as exc:  # noqa: BLE001 - status is advisory only.
            self._log(
                "session.status.failed",
                logging.DEBUG,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return None

    async def destroy(self) -> None:
        """Kill best-effort, then drop every subscription and callback."""
        try:
            await self.kill()
        except Exception as exc:  # noqa: BLE001 - disposal must always finish.
            self._log(
                "session.destroy.kill_failed",
                logging.WARNING,
                error_type=type(exc).__name__,
                error=str(exc),
            )
        finally:
            self._generation += 1
            self._teardown()
            self._output_callbacks.clear()
            self._error_callbacks.clear()
            self._complete_callbacks.clear()
            self._log("session.destroyed")

    def on_output(self, callback: Callable[[str], object]) -> Callable[[str], object]:
        """Register a callback for each line of agent output."""
        return self._output_callbacks.add(callback)

    def on_error(self, callback: Callable[[str], object]) -> Callable[[str], object]:
        """Register a callback for each line of agent error output."""
        return self._error_callbacks.add(callback)

    def on_complete(
        self, callback: Callable[[bool], object]
    ) -> Callable[[bool], object]:
        """Register a callback for run completion; receives the success flag."""
        return self._complete_callbacks.add(callback)

    def remove_output_listener(self, callback: Callable[[str], object]) -> None:
        self._output_callbacks.remove(callback)

    def remove_error_listener(self, callback: Callable[[str], object]) -> None:
        self._error_callbacks.remove(callback)

    def remove_complete_listener(self, callback: Callable[[bool], object]) -> None:
        self._complete_callbacks.remove(callback)
