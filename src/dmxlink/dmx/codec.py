"""
Packet codec interface shared by the DMX-over-Ethernet protocols.

A codec turns (universe, sequence, channel payload) into the UDP payload for
one protocol. The transmission scheduler is protocol agnostic and only talks
to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from dmxlink.core.exceptions import PayloadSizeError, UniverseRangeError
from dmxlink.dmx.universe import DMX_CHANNEL_COUNT


@dataclass(frozen=True)
class DecodedPacket:
    """Fields recovered from an encoded packet."""

    universe: int
    sequence: int
    payload: bytes


class PacketCodec(ABC):
    """
    Abstract base class for DMX-over-Ethernet packet encoding.

    Subclasses set the protocol constants and implement ``encode``/``decode``.
    ``encode`` must be pure: a fresh ``bytes`` object per call, no reference
    kept to the caller's buffer.
    """

    name: str = "dmx"
    default_port: int = 0
    max_payload_size: int = DMX_CHANNEL_COUNT
    min_universe: int = 0
    max_universe: int = 0
    # Sequence value meaning "sequencing disabled"; None when every value is valid.
    reserved_sequence: Optional[int] = None

    @property
    def initial_sequence(self) -> int:
        """Sequence used for the first packet of a link."""
        return 1 if self.reserved_sequence == 0 else 0

    def validate_universe(self, universe_id: int) -> int:
        """
        Raises:
            UniverseRangeError: universe outside the protocol range
        """
        if not self.min_universe <= universe_id <= self.max_universe:
            raise UniverseRangeError(universe_id, self.min_universe, self.max_universe)
        return universe_id

    def check_payload(self, payload: bytes) -> bytes:
        """Copy the payload in, rejecting oversize buffers."""
        if len(payload) > self.max_payload_size:
            raise PayloadSizeError(len(payload), self.max_payload_size)
        return bytes(payload)

    def next_sequence(self, current: int, sequencing: bool = True) -> int:
        """
        Advance a sequence number by one send.

        With sequencing disabled the reserved value is returned forever. When
        the codec reserves 0, the counter wraps 255 -> 1 and never re-enters 0.
        """
        if not sequencing and self.reserved_sequence is not None:
            return self.reserved_sequence
        nxt = (current + 1) % 256
        if nxt == self.reserved_sequence:
            nxt = (nxt + 1) % 256
        return nxt

    def first_sequence(self, sequencing: bool = True) -> int:
        if not sequencing and self.reserved_sequence is not None:
            return self.reserved_sequence
        return self.initial_sequence

    @abstractmethod
    def encode(self, universe_id: int, sequence: int, payload: bytes) -> bytes:
        """
        Build the UDP payload for one DMX frame.

        Args:
            universe_id: protocol universe / port-address
            sequence: single byte sequence number
            payload: channel values without start code

        Returns:
            Raw packet bytes

        Raises:
            PayloadSizeError: payload exceeds ``max_payload_size``
        """
        pass

    @abstractmethod
    def decode(self, raw: bytes) -> DecodedPacket:
        """
        Parse a packet produced by ``encode``.

        Raises:
            PacketFormatError: bytes are not a valid packet for this protocol
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(port={self.default_port})"
