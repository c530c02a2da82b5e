"""sACN (ANSI E1.31) data packet codec."""

from __future__ import annotations

import struct
import uuid
from typing import Optional

from dmxlink.core.exceptions import PacketFormatError
from dmxlink.dmx.codec import DecodedPacket, PacketCodec
from dmxlink.dmx.universe import DMX_CHANNEL_COUNT, DMX_START_CODE

SACN_PORT = 5568
SACN_MIN_UNIVERSE = 1
SACN_MAX_UNIVERSE = 63999
SACN_DEFAULT_PRIORITY = 100
SACN_ACN_IDENTIFIER = b"ASC-E1.17\x00\x00\x00"
SACN_HEADER_SIZE = 126

VECTOR_ROOT_E131_DATA = 0x00000004
VECTOR_E131_DATA_PACKET = 0x00000002
VECTOR_DMP_SET_PROPERTY = 0x02
DMP_ADDRESS_DATA_TYPE = 0xA1
PDU_FLAGS = 0x7000

_ROOT_LAYER = struct.Struct(">HH12sHI16s")
_FRAMING_LAYER = struct.Struct(">HI64sBHBBH")
_DMP_LAYER = struct.Struct(">HBBHHHB")

_ROOT_PDU_OFFSET = 16
_FRAMING_OFFSET = _ROOT_LAYER.size
_DMP_OFFSET = _FRAMING_OFFSET + _FRAMING_LAYER.size


def multicast_address(universe: int) -> str:
    """Multicast group a receiver joins for ``universe`` (239.255.hi.lo)."""
    return f"239.255.{(universe >> 8) & 0xFF}.{universe & 0xFF}"


class SacnCodec(PacketCodec):
    """
    E1.31 data packet encoder/decoder.

    Three nested PDUs (root, framing, DMP) followed by the start code and the
    channel data. Each PDU starts with a flags/length word covering itself
    and everything after it. Sequence numbers use the full 0-255 range.
    """

    name = "sacn"
    default_port = SACN_PORT
    max_payload_size = DMX_CHANNEL_COUNT
    min_universe = SACN_MIN_UNIVERSE
    max_universe = SACN_MAX_UNIVERSE
    reserved_sequence = None

    def __init__(
        self,
        source_name: str = "dmxlink",
        priority: int = SACN_DEFAULT_PRIORITY,
        cid: Optional[bytes] = None,
    ):
        if not 0 <= priority <= 200:
            raise ValueError(f"sACN priority out of range: {priority}")
        self.source_name = source_name
        self.priority = priority
        self.cid = cid if cid is not None else uuid.uuid4().bytes
        if len(self.cid) != 16:
            raise ValueError("sACN CID must be 16 bytes")
        # 63 bytes plus NUL, cut on a character boundary
        self._source_name_field = (
            source_name.encode("utf-8")[:63].decode("utf-8", "ignore").encode("utf-8")
        )

    def encode(self, universe_id: int, sequence: int, payload: bytes) -> bytes:
        data = self.check_payload(payload)
        total = SACN_HEADER_SIZE + len(data)

        packet = bytearray(
            _ROOT_LAYER.pack(
                0x0010,
                0x0000,
                SACN_ACN_IDENTIFIER,
                PDU_FLAGS | (total - _ROOT_PDU_OFFSET),
                VECTOR_ROOT_E131_DATA,
                self.cid,
            )
        )
        packet.extend(
            _FRAMING_LAYER.pack(
                PDU_FLAGS | (total - _FRAMING_OFFSET),
                VECTOR_E131_DATA_PACKET,
                self._source_name_field,
                self.priority,
                0,  # synchronization address
                sequence & 0xFF,
                0,  # options
                universe_id & 0xFFFF,
            )
        )
        packet.extend(
            _DMP_LAYER.pack(
                PDU_FLAGS | (total - _DMP_OFFSET),
                VECTOR_DMP_SET_PROPERTY,
                DMP_ADDRESS_DATA_TYPE,
                0x0000,
                0x0001,
                len(data) + 1,
                DMX_START_CODE,
            )
        )
        packet.extend(data)
        return bytes(packet)

    def decode(self, raw: bytes) -> DecodedPacket:
        if len(raw) < SACN_HEADER_SIZE:
            raise PacketFormatError(self.name, f"{len(raw)} bytes is shorter than the header")

        _preamble, _postamble, ident, _root_len, root_vector, _cid = _ROOT_LAYER.unpack_from(raw, 0)
        if ident != SACN_ACN_IDENTIFIER:
            raise PacketFormatError(self.name, "bad ACN packet identifier")
        if root_vector != VECTOR_ROOT_E131_DATA:
            raise PacketFormatError(self.name, f"unexpected root vector {root_vector}")

        (_flen, frame_vector, _name, _priority, _sync, sequence, _options,
         universe) = _FRAMING_LAYER.unpack_from(raw, _FRAMING_OFFSET)
        if frame_vector != VECTOR_E131_DATA_PACKET:
            raise PacketFormatError(self.name, f"unexpected framing vector {frame_vector}")

        (_dlen, dmp_vector, _type, _first, _incr, count,
         start_code) = _DMP_LAYER.unpack_from(raw, _DMP_OFFSET)
        if dmp_vector != VECTOR_DMP_SET_PROPERTY or start_code != DMX_START_CODE:
            raise PacketFormatError(self.name, "not a DMX data packet")

        payload = raw[SACN_HEADER_SIZE:SACN_HEADER_SIZE + count - 1]
        if len(payload) != count - 1:
            raise PacketFormatError(self.name, f"property count {count}, got {len(payload) + 1}")

        return DecodedPacket(universe=universe, sequence=sequence, payload=bytes(payload))
