"""Shared fixtures for image-report tests"""

from typing import Optional

import pytest

from image_report.core.exceptions import TransportError
from image_report.core.request import ConnectionTarget
from image_report.stream.transport import ServerSentEvent


class FakeEventSource:
    """Scripted event source that records how it was used.

    ``script`` items are ServerSentEvent instances to deliver, or exceptions
    to raise at that point in the stream.
    """

    def __init__(self, script=(), connect_error: Optional[Exception] = None):
        self.script = list(script)
        self.connect_error = connect_error
        self.target: Optional[ConnectionTarget] = None
        self.connected = False
        self.close_calls = 0
        self.delivered: list[ServerSentEvent] = []

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def events(self):
        for item in self.script:
            if isinstance(item, BaseException):
                raise item
            if self.close_calls:
                raise TransportError("read after close")
            self.delivered.append(item)
            yield item

    async def aclose(self) -> None:
        self.close_calls += 1


@pytest.fixture
def make_source():
    """Build a FakeEventSource plus a factory that hands it to a session."""

    def _make(script=(), connect_error: Optional[Exception] = None):
        source = FakeEventSource(script, connect_error=connect_error)

        def factory(target: ConnectionTarget) -> FakeEventSource:
            source.target = target
            return source

        return source, factory

    return _make


@pytest.fixture
def sse():
    """Shorthand for building ServerSentEvent instances."""

    def _event(name: str, data: str = "") -> ServerSentEvent:
        return ServerSentEvent(event=name, data=data)

    return _event


@pytest.fixture
def target() -> ConnectionTarget:
    return ConnectionTarget(
        url="https://proxy.example.com/app-proxy/api/image/report-image/v2?CF_IMAGE=img1",
        headers={"authorization": "abcdef123456"},
    )


@pytest.fixture
def base_env() -> dict[str, str]:
    return {"CF_API_KEY": "abcdef123456", "CF_IMAGE": "img1"}


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test outside the repository so no .env file is picked up."""
    monkeypatch.chdir(tmp_path)
