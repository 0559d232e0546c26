"""
Server-sent event transport for the report stream.

Opens a long-lived GET request with httpx and turns the response body into
named events. The transport never retries: any failure to connect or read
is reported as a TransportError and the caller decides what to do.
"""

import logging
from dataclasses import dataclass
from typing import AsyncGenerator, AsyncIterator, Optional, Protocol, runtime_checkable

import httpx

from image_report.core.exceptions import TransportError
from image_report.core.request import ConnectionTarget


logger = logging.getLogger(__name__)

CONNECT_TIMEOUT = 30.0


@dataclass(frozen=True)
class ServerSentEvent:
    """One dispatched server-sent event"""

    event: str
    data: str
    id: Optional[str] = None
    retry: Optional[int] = None


@runtime_checkable
class EventSource(Protocol):
    """A live event stream: connect, iterate named events, close."""

    async def connect(self) -> None:
        """Open the connection. Raises TransportError on failure."""
        ...

    def events(self) -> AsyncGenerator[ServerSentEvent, None]:
        """Iterate events in arrival order. Raises TransportError on failure."""
        ...

    async def aclose(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...


async def parse_event_stream(lines: AsyncIterator[str]) -> AsyncGenerator[ServerSentEvent, None]:
    """Frame an async iterator of text lines into server-sent events.

    A blank line dispatches the buffered event. Events whose data buffer is
    empty are dropped, comment lines (leading ``:``) are skipped and the event
    name defaults to ``message``.
    """
    event_type = ""
    data_lines: list[str] = []
    last_id: Optional[str] = None
    retry: Optional[int] = None

    async for line in lines:
        line = line.rstrip("\r\n")

        if not line:
            if data_lines:
                yield ServerSentEvent(
                    event=event_type or "message",
                    data="\n".join(data_lines),
                    id=last_id,
                    retry=retry,
                )
            event_type = ""
            data_lines = []
            retry = None
            continue

        if line.startswith(":"):
            continue

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            event_type = value
        elif name == "data":
            data_lines.append(value)
        elif name == "id":
            if "\0" not in value:
                last_id = value
        elif name == "retry":
            if value.isdigit():
                retry = int(value)
        else:
            logger.debug(f"Ignoring unknown SSE field: {name!r}")


class HTTPEventSource:
    """EventSource backed by an httpx streaming GET request"""

    def __init__(
        self,
        target: ConnectionTarget,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.target = target
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._response: Optional[httpx.Response] = None
        self._closed = False

    async def connect(self) -> None:
        """Send the request and check the response is an event stream"""
        if self._response is not None:
            return

        # No read timeout unless an idle timeout was configured
        timeout = httpx.Timeout(CONNECT_TIMEOUT, read=self.timeout)
        self._client = httpx.AsyncClient(timeout=timeout, transport=self._transport)
        try:
            request = self._client.build_request(
                "GET", self.target.url, headers=dict(self.target.headers)
            )
            self._response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            await self.aclose()
            raise TransportError(f"Failed to connect to report stream: {e}") from e

        status_code = self._response.status_code
        if status_code != 200:
            await self.aclose()
            raise TransportError(
                f"Report stream responded with HTTP {status_code}",
                status=status_code,
            )

        content_type = self._response.headers.get("content-type", "")
        if not content_type.startswith("text/event-stream"):
            await self.aclose()
            raise TransportError(
                f"Report stream returned unexpected content type {content_type!r}",
                status=status_code,
            )

        logger.debug(f"Report stream connected: {self.target.url}")

    async def events(self) -> AsyncGenerator[ServerSentEvent, None]:
        """Yield events until the server closes the stream"""
        if self._response is None:
            raise TransportError("Report stream is not connected")

        try:
            async for event in parse_event_stream(self._response.aiter_lines()):
                yield event
        except httpx.ReadTimeout as e:
            raise TransportError(
                f"No data received from report stream for {self.timeout}s"
            ) from e
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise TransportError(f"Report stream interrupted: {e}") from e

    async def aclose(self) -> None:
        """Close the response and client once"""
        if self._closed:
            return
        self._closed = True

        if self._response is not None:
            await self._response.aclose()
        if self._client is not None:
            await self._client.aclose()


def create_event_source(
    target: ConnectionTarget, timeout: Optional[float] = None
) -> HTTPEventSource:
    """Factory function to create the default event source"""
    return HTTPEventSource(target, timeout=timeout)
