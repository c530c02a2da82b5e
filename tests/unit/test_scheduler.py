"""TransmissionScheduler: change detection, burst repeats, heartbeat and sequencing."""

from __future__ import annotations

import pytest

from dmxlink.core.config import TimingConfig
from dmxlink.core.exceptions import PayloadSizeError
from dmxlink.core.state import LinkHealth
from dmxlink.dmx.address import AddressNode
from dmxlink.dmx.artnet import ArtNetCodec
from dmxlink.dmx.sacn import SacnCodec
from dmxlink.dmx.universe import UniverseBuffer
from dmxlink.link.scheduler import TransmissionScheduler
from dmxlink.link.session import LinkSession

CODEC = ArtNetCodec()


class StaticBuffer:
    """Channel buffer with a fixed payload that never changes."""

    def __init__(self, payload: bytes):
        self.payload = payload
        self.recomputed: list[int] = []

    def recompute(self, now: int) -> bool:
        self.recomputed.append(now)
        return False

    def raw_bytes(self) -> bytes:
        return self.payload

    def byte_count(self) -> int:
        return len(self.payload)

    def last_changed(self) -> int:
        return 0


def make_scheduler(
    sockets,
    timers,
    buffer=None,
    receivers=1,
    codec=CODEC,
    universe=3,
    **kwargs,
) -> TransmissionScheduler:
    nodes = [AddressNode(f"10.0.0.{i + 1}", codec.default_port) for i in range(receivers)]
    session = LinkSession(nodes, name="sched", socket_factory=sockets, timer_factory=timers)
    return TransmissionScheduler(
        session,
        codec,
        buffer if buffer is not None else UniverseBuffer(8),
        universe,
        clock=lambda: 0,
        **kwargs,
    )


def run_ticks(scheduler: TransmissionScheduler, times) -> list[int]:
    return [t for t in times if scheduler.tick(t)]


def test_first_tick_opens_link_without_sending_a_frame(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers)

    assert scheduler.tick(0) is False
    assert scheduler.session.health is LinkHealth.ONLINE
    # Only the connectivity probe went out.
    assert len(sockets.last.sent) == 1
    assert scheduler.buffer.byte_count() == 8


def test_idle_buffer_bursts_then_waits_for_heartbeat(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers)
    scheduler.tick(0)

    sent = run_ticks(scheduler, range(25, 1001, 25))

    # Initial send plus three repeats, then silence until > 800 ms later.
    assert sent == [25, 50, 75, 100, 925]
    assert scheduler.timing_state.repeat_counter == 3


def test_buffer_change_restarts_the_burst(sockets, timers) -> None:
    buffer = UniverseBuffer(8)
    scheduler = make_scheduler(sockets, timers, buffer=buffer)
    scheduler.tick(0)
    run_ticks(scheduler, range(25, 301, 25))

    buffer.set_channel(1, 255)
    sent = run_ticks(scheduler, range(325, 601, 25))

    assert sent == [325, 350, 375, 400]
    frame = CODEC.decode(sockets.last.sent[-1][0])
    assert frame.payload[0] == 255


def test_refresh_always_sends_every_tick(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers, refresh_always=True)
    scheduler.tick(0)

    sent = run_ticks(scheduler, range(25, 501, 25))

    assert sent == list(range(25, 501, 25))
    assert scheduler.timing_state.repeat_counter == 0


def test_timing_constants_are_configurable(sockets, timers) -> None:
    timing = TimingConfig(heartbeat_interval_ms=200, repeat_count=1)
    scheduler = make_scheduler(sockets, timers, timing=timing)
    scheduler.tick(0)

    sent = run_ticks(scheduler, range(10, 500, 10))

    assert sent == [10, 20, 230, 440]


def test_sequence_advances_once_per_sending_tick(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers, receivers=3, refresh_always=True)
    scheduler.tick(0)
    run_ticks(scheduler, [25, 50])

    frames = [CODEC.decode(data) for data, _ in sockets.last.sent[1:]]

    assert [f.sequence for f in frames] == [1, 1, 1, 2, 2, 2]
    assert all(f.universe == 3 for f in frames)
    assert scheduler.sequence == 3


def test_sequence_wraps_without_reentering_zero(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers, refresh_always=True)
    scheduler.tick(0)
    start = scheduler.sequence

    run_ticks(scheduler, range(1, 256))

    assert scheduler.sequence == start
    sequences = {CODEC.decode(data).sequence for data, _ in sockets.last.sent}
    assert 0 not in sequences


def test_sacn_sequence_returns_after_256_sends(sockets, timers) -> None:
    codec = SacnCodec()
    scheduler = make_scheduler(sockets, timers, codec=codec, universe=1, refresh_always=True)
    scheduler.tick(0)
    start = scheduler.sequence

    run_ticks(scheduler, range(1, 257))

    assert scheduler.sequence == start


def test_disabled_sequencing_sends_zero(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers, refresh_always=True, sequencing=False)
    scheduler.tick(0)
    run_ticks(scheduler, [25, 50, 75])

    assert {CODEC.decode(data).sequence for data, _ in sockets.last.sent} == {0}


def test_send_failure_skips_remaining_receivers_and_reopens_next_tick(sockets, timers) -> None:
    sockets.fail_to = {("10.0.0.2", 6454)}
    scheduler = make_scheduler(sockets, timers, receivers=3)
    scheduler.tick(0)
    first = sockets.last

    assert scheduler.tick(25) is True
    assert scheduler.session.health is LinkHealth.OFFLINE
    assert [addr for _, addr in first.sent] == [("10.0.0.1", 6454), ("10.0.0.1", 6454)]
    assert first.closed is True

    # Next tick opens a fresh socket instead of sending.
    assert scheduler.tick(50) is False
    assert len(sockets.sockets) == 2
    assert scheduler.session.health is LinkHealth.ONLINE


def test_timing_state_resets_when_link_reopens(sockets, timers) -> None:
    sockets.fail_to = {("10.0.0.2", 6454)}
    scheduler = make_scheduler(sockets, timers, receivers=2)
    scheduler.tick(0)
    run_ticks(scheduler, [25])
    sockets.fail_to = set()
    scheduler.tick(50)

    sent = run_ticks(scheduler, range(75, 301, 25))

    assert sent == [75, 100, 125, 150]


def test_scheduler_does_not_recompute_while_offline(sockets, timers) -> None:
    sockets.bind_error = "Address already in use"
    buffer = StaticBuffer(bytes(4))
    scheduler = make_scheduler(sockets, timers, buffer=buffer)

    assert run_ticks(scheduler, [0, 25, 50]) == []
    assert buffer.recomputed == []
    assert len(sockets.sockets) == 1


def test_oversize_buffer_fails_loudly(sockets, timers) -> None:
    scheduler = make_scheduler(sockets, timers, buffer=StaticBuffer(bytes(600)))

    with pytest.raises(PayloadSizeError):
        scheduler.tick(0)
    assert scheduler.session.socket_open is False


def test_tick_uses_clock_when_no_time_given(sockets, timers) -> None:
    buffer = StaticBuffer(bytes(2))
    scheduler = make_scheduler(sockets, timers, buffer=buffer)
    scheduler.clock = lambda: 1234
    scheduler.tick()
    scheduler.tick()

    assert buffer.recomputed == [1234]
