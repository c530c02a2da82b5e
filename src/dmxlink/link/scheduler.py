"""
Transmission Scheduler: decides on every tick whether a DMX packet is due.

A packet is sent when any of these hold:
- the channel buffer changed since the last send (or nothing was sent yet)
- the link refreshes always
- the heartbeat interval elapsed since the last send
- fewer than ``repeat_count`` repeats of the last change went out

Changes are repeated a few times to survive packet loss, after that only the
heartbeat keeps remote nodes from timing out.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import structlog

from dmxlink.core.config import TimingConfig
from dmxlink.core.state import SendTimingState
from dmxlink.dmx.codec import PacketCodec
from dmxlink.dmx.universe import ChannelBuffer
from dmxlink.link.session import LinkSession

logger = structlog.get_logger()


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class TransmissionScheduler:
    """
    Per-link send cadence, protocol agnostic.

    Exactly one tick source may drive a scheduler; ticks must not overlap.
    The sequence number advances once per tick that sends, independent of
    the number of receivers.
    """

    def __init__(
        self,
        session: LinkSession,
        codec: PacketCodec,
        buffer: ChannelBuffer,
        universe_id: int,
        timing: Optional[TimingConfig] = None,
        refresh_always: bool = False,
        sequencing: bool = True,
        clock: Callable[[], int] = monotonic_ms,
    ):
        self.session = session
        self.codec = codec
        self.buffer = buffer
        self.universe_id = codec.validate_universe(universe_id)
        self.timing = timing or TimingConfig()
        self.refresh_always = refresh_always
        self.sequencing = sequencing
        self.clock = clock

        self.timing_state = SendTimingState()
        self.sequence = codec.first_sequence(sequencing)
        self._open_count = session.open_count

    def build_packet(self) -> bytes:
        """Encode the current buffer snapshot with the current sequence."""
        return self.codec.encode(self.universe_id, self.sequence, self.buffer.raw_bytes())

    def tick(self, now: Optional[int] = None) -> bool:
        """
        Run one scheduling step.

        Args:
            now: tick time in milliseconds (defaults to the scheduler clock)

        Returns:
            True when a packet was sent this tick

        Raises:
            EncodingError: buffer does not fit the protocol
        """
        if now is None:
            now = self.clock()

        if not self.session.online:
            self.session.open(self.build_packet)
            return False

        if self.session.open_count != self._open_count:
            # Fresh socket: start a new burst.
            self._open_count = self.session.open_count
            self.timing_state.reset()

        self.buffer.recompute(now)
        if not self._needs_sending(now):
            return False

        packet = self.build_packet()
        delivered = self.session.send(packet)
        logger.debug(
            "Sent DMX packet",
            link=self.session.name,
            universe=self.universe_id,
            sequence=self.sequence,
            length=len(packet),
            receivers=delivered,
        )

        state = self.timing_state
        state.last_send_ms = now
        state.packets_sent += 1
        self.sequence = self.codec.next_sequence(self.sequence, self.sequencing)
        return True

    def _needs_sending(self, now: int) -> bool:
        state = self.timing_state
        last_send = state.last_send_ms

        if last_send is None or self.buffer.last_changed() > last_send or self.refresh_always:
            state.repeat_counter = 0
            return True
        if now - last_send > self.timing.heartbeat_interval_ms:
            return True
        if state.repeat_counter < self.timing.repeat_count:
            state.repeat_counter += 1
            return True
        return False

    def get_stats(self) -> dict:
        return {
            "universe": self.universe_id,
            "sequence": self.sequence,
            "packets_sent": self.timing_state.packets_sent,
            "repeat_counter": self.timing_state.repeat_counter,
            "last_send_ms": self.timing_state.last_send_ms,
        }
