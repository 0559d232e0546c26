"""Streaming session controller for the image report stream.

This module implements the state machine that owns one report stream from
connection to its terminal event:

- idle: session created, nothing opened yet
- connecting: event source requested
- open: connection accepted, events being dispatched
- completed: ``end`` event received
- failed: ``error`` event received or the transport broke

Completed and failed are terminal. Every terminal transition closes the
event source exactly once before the outcome is returned, and nothing
received after the terminal event is dispatched.
"""

from __future__ import annotations

import json
import logging
from contextlib import aclosing
from enum import Enum
from typing import Any, Callable, Optional

from image_report.core.exceptions import (
    ApplicationError,
    SessionStateError,
    StreamFailure,
    TransportError,
)
from image_report.core.outcome import Completed, Failed, SessionOutcome
from image_report.core.request import ConnectionTarget
from image_report.stream.console import ConsoleReporter
from image_report.stream.transport import EventSource, ServerSentEvent, create_event_source


logger = logging.getLogger(__name__)

EventSourceFactory = Callable[[ConnectionTarget], EventSource]


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    COMPLETED = "completed"
    FAILED = "failed"


class StreamingSession:
    """Single-use controller for one report stream.

    Events are handled in the order the source delivers them. Handlers only
    print, so each one runs to completion before the next event is read.

    Example:
        >>> session = StreamingSession()
        >>> outcome = await session.start(target)
        >>> outcome.is_completed()
        True
    """

    # Define valid state transitions (from_state: set of valid to_states)
    VALID_TRANSITIONS: dict[SessionState, set[SessionState]] = {
        SessionState.IDLE: {SessionState.CONNECTING},
        SessionState.CONNECTING: {SessionState.OPEN, SessionState.FAILED},
        SessionState.OPEN: {SessionState.COMPLETED, SessionState.FAILED},
        SessionState.COMPLETED: set(),
        SessionState.FAILED: set(),
    }

    def __init__(
        self,
        reporter: Optional[ConsoleReporter] = None,
        source_factory: Optional[EventSourceFactory] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize an idle session.

        Args:
            reporter: Console output for report, info and warn events.
            source_factory: Builds the event source for a target. Defaults to
                an httpx-backed source.
            timeout: Optional idle timeout in seconds for the default source.
        """
        self.reporter = reporter or ConsoleReporter()
        self.source_factory = source_factory or (
            lambda target: create_event_source(target, timeout=timeout)
        )
        self._state = SessionState.IDLE
        self._source: Optional[EventSource] = None
        self._closed = False
        self._outcome: Optional[SessionOutcome] = None
        self._handlers: dict[str, Callable[[str], None]] = {
            "report": self._on_report,
            "info": self._on_info,
            "warn": self._on_warn,
        }

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def outcome(self) -> Optional[SessionOutcome]:
        return self._outcome

    def _transition_to(self, new_state: SessionState) -> None:
        if new_state not in self.VALID_TRANSITIONS[self._state]:
            raise SessionStateError(
                f"Invalid session transition: {self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Session state {self._state.value} -> {new_state.value}")
        self._state = new_state

    async def start(self, target: ConnectionTarget) -> SessionOutcome:
        """Open the stream and dispatch events until a terminal event.

        Args:
            target: URL and headers of the report stream.

        Returns:
            Completed after an ``end`` event, Failed after an ``error`` event
            or any transport failure.

        Raises:
            SessionStateError: If the session was already started.
        """
        self._transition_to(SessionState.CONNECTING)
        source = self.source_factory(target)
        self._source = source

        try:
            await source.connect()
        except TransportError as e:
            return await self._settle(SessionState.FAILED, Failed(e))
        except BaseException:
            await self._close_source()
            raise

        self._transition_to(SessionState.OPEN)

        outcome: Optional[SessionOutcome] = None
        try:
            async with aclosing(source.events()) as events:
                async for event in events:
                    outcome = self._dispatch(event)
                    if outcome is not None:
                        break
        except TransportError as e:
            return await self._settle(SessionState.FAILED, Failed(e))
        except BaseException:
            await self._close_source()
            raise

        if outcome is None:
            outcome = Failed(TransportError("Report stream closed before the end event"))

        return await self._settle(
            SessionState.COMPLETED if outcome.is_completed() else SessionState.FAILED,
            outcome,
        )

    def _dispatch(self, event: ServerSentEvent) -> Optional[SessionOutcome]:
        """Handle one event; return an outcome if it was terminal."""
        if event.event == "end":
            return Completed(event.data)
        if event.event == "error":
            return Failed(_application_error(event.data))

        handler = self._handlers.get(event.event)
        if handler is None:
            logger.debug(f"Ignoring unrecognized event: {event.event!r}")
            return None
        handler(event.data)
        return None

    async def _close_source(self) -> None:
        if self._source is not None and not self._closed:
            self._closed = True
            await self._source.aclose()

    async def _settle(self, state: SessionState, outcome: SessionOutcome) -> SessionOutcome:
        await self._close_source()
        self._transition_to(state)
        self._outcome = outcome
        return outcome

    def _on_report(self, data: str) -> None:
        try:
            report = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to decode report payload: {e}")
            self.reporter.raw_report(data)
            return
        self.reporter.report(report)

    def _on_info(self, data: str) -> None:
        self.reporter.info(data)

    def _on_warn(self, data: str) -> None:
        self.reporter.warn(data)


def _application_error(data: str) -> StreamFailure:
    """Build an ApplicationError from an ``error`` event payload."""
    descriptor: Any
    try:
        descriptor = json.loads(data) if data else {}
    except json.JSONDecodeError:
        descriptor = data

    if not isinstance(descriptor, dict):
        return ApplicationError(str(descriptor) or "Report service error")

    status = descriptor.get("status")
    if isinstance(status, str) and status.isdigit():
        status = int(status)
    if not isinstance(status, int) or isinstance(status, bool):
        status = None

    message = descriptor.get("message") or "Report service error"
    return ApplicationError(
        str(message),
        status=status,
        type=str(descriptor.get("type") or "error"),
    )
