"""Canonical DMX universe sizing and the in-memory channel buffer."""

from __future__ import annotations

import threading
from typing import Iterable, Optional, Protocol

DMX_START_CODE = 0x00
DMX_CHANNEL_COUNT = 512
DMX_CHANNEL_MIN = 1
DMX_CHANNEL_MAX = DMX_CHANNEL_COUNT
DMX_VALUE_MIN = 0
DMX_VALUE_MAX = 255


def is_valid_dmx_channel(channel: int) -> bool:
    """Return True when a channel index is a valid 1-based DMX slot."""
    return DMX_CHANNEL_MIN <= channel <= DMX_CHANNEL_MAX


class ChannelBuffer(Protocol):
    """What the transmission scheduler needs from a universe buffer."""

    def recompute(self, now: int) -> bool:
        """Bring the snapshot up to ``now``; return True when it changed."""
        ...

    def raw_bytes(self) -> bytes:
        ...

    def byte_count(self) -> int:
        ...

    def last_changed(self) -> int:
        ...


class UniverseBuffer:
    """
    Thread-safe channel values for one universe.

    Writers set channels at any time; ``recompute`` publishes the pending
    values as the snapshot seen by the scheduler and stamps ``last_changed``
    with the tick time when the snapshot differs from the previous one.
    """

    def __init__(self, channel_count: int = DMX_CHANNEL_COUNT):
        if not 0 <= channel_count <= DMX_CHANNEL_COUNT:
            raise ValueError(f"channel_count must be 0-{DMX_CHANNEL_COUNT}")
        self._lock = threading.Lock()
        self._pending = bytearray(channel_count)
        self._snapshot = bytes(channel_count)
        self._last_changed = 0

    def set_channel(self, channel: int, value: int) -> None:
        """Set a 1-based channel; out of range channels are ignored."""
        if not 1 <= channel <= len(self._pending):
            return
        with self._lock:
            self._pending[channel - 1] = max(DMX_VALUE_MIN, min(DMX_VALUE_MAX, int(value)))

    def set_channels(self, values: Iterable[int], start: int = 1) -> None:
        for offset, value in enumerate(values):
            self.set_channel(start + offset, value)

    def blackout(self) -> None:
        """Set all channels to zero."""
        with self._lock:
            self._pending = bytearray(len(self._pending))

    def recompute(self, now: int) -> bool:
        with self._lock:
            current = bytes(self._pending)
        if current == self._snapshot:
            return False
        self._snapshot = current
        self._last_changed = now
        return True

    def raw_bytes(self) -> bytes:
        return self._snapshot

    def byte_count(self) -> int:
        return len(self._snapshot)

    def last_changed(self) -> int:
        return self._last_changed

    def get_channel(self, channel: int) -> Optional[int]:
        if not 1 <= channel <= len(self._snapshot):
            return None
        return self._snapshot[channel - 1]
