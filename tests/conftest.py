"""Shared fakes for link tests: sockets, timers and a status recorder."""

from __future__ import annotations

import errno
from typing import Callable, Optional

import pytest

from dmxlink.link.status import LinkStatus


class FakeSocket:
    """In-memory UDP socket recording every datagram."""

    def __init__(self, fail_to: Optional[set] = None, bind_error: Optional[str] = None):
        self.fail_to = fail_to or set()
        self.bind_error = bind_error
        self.sent: list[tuple[bytes, tuple[str, int]]] = []
        self.options: dict = {}
        self.bound: Optional[tuple[str, int]] = None
        self.closed = False

    def setsockopt(self, level: int, option: int, value: int) -> None:
        self.options[(level, option)] = value

    def bind(self, address: tuple[str, int]) -> None:
        if self.bind_error:
            raise OSError(errno.EADDRINUSE, self.bind_error)
        self.bound = address

    def getsockname(self) -> tuple[str, int]:
        host, port = self.bound
        return (host, port or 49152)

    def sendto(self, data: bytes, address: tuple[str, int]) -> int:
        if self.closed:
            raise OSError(errno.EBADF, "Bad file descriptor")
        if address in self.fail_to:
            raise OSError(errno.ENETUNREACH, "Network is unreachable")
        self.sent.append((bytes(data), address))
        return len(data)

    def close(self) -> None:
        self.closed = True


class SocketFactory:
    """Hands out FakeSockets and remembers them in creation order."""

    def __init__(self, fail_to: Optional[set] = None, bind_error: Optional[str] = None):
        self.fail_to = fail_to or set()
        self.bind_error = bind_error
        self.sockets: list[FakeSocket] = []

    def __call__(self) -> FakeSocket:
        sock = FakeSocket(fail_to=set(self.fail_to), bind_error=self.bind_error)
        self.sockets.append(sock)
        return sock

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]

    def all_sent(self) -> list[tuple[bytes, tuple[str, int]]]:
        return [item for sock in self.sockets for item in sock.sent]


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, interval: float, function: Callable, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, function: Callable, args=None, kwargs=None) -> FakeTimer:
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class RecordingSink:
    """Status sink keeping every report."""

    def __init__(self) -> None:
        self.reports: list[tuple[str, LinkStatus]] = []

    def update_status(self, name: str, status: LinkStatus) -> None:
        self.reports.append((name, status))

    @property
    def kinds(self) -> list:
        return [status.kind for _, status in self.reports]

    @property
    def latest(self) -> LinkStatus:
        return self.reports[-1][1]


@pytest.fixture
def sockets() -> SocketFactory:
    return SocketFactory()


@pytest.fixture
def timers() -> TimerFactory:
    return TimerFactory()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
