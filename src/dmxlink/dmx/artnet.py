"""Art-Net (ArtDMX) packet codec."""

from __future__ import annotations

import struct

from dmxlink.core.exceptions import PacketFormatError
from dmxlink.dmx.codec import DecodedPacket, PacketCodec
from dmxlink.dmx.universe import DMX_CHANNEL_COUNT

ARTNET_PORT = 6454
ARTNET_HEADER = b"Art-Net\x00"
ARTNET_OPCODE_DMX = 0x5000
ARTNET_PROTOCOL_VERSION = 14
ARTNET_HEADER_SIZE = 18
ARTNET_MAX_UNIVERSE = 0x7FFF

# ID, OpCode (LE), ProtVer (BE), Sequence, Physical, SubUni, Net, Length (BE)
_ARTDMX_HEADER = struct.Struct("<8sH")
_ARTDMX_FIELDS = struct.Struct(">HBBBBH")


def port_address(net: int, subnet: int, universe: int) -> int:
    """Combine Net (7 bit), SubNet (4 bit) and Universe (4 bit) into a port-address."""
    if not 0 <= net <= 0x7F:
        raise ValueError(f"Art-Net net out of range: {net}")
    if not 0 <= subnet <= 0x0F:
        raise ValueError(f"Art-Net subnet out of range: {subnet}")
    if not 0 <= universe <= 0x0F:
        raise ValueError(f"Art-Net universe out of range: {universe}")
    return (net << 8) | (subnet << 4) | universe


def build_artdmx_packet(
    universe: int,
    dmx_data: bytes,
    sequence: int = 0,
    physical: int = 0,
) -> bytes:
    """
    Build an ArtDMX packet.

    ``universe`` is the 15 bit port-address. Odd payloads are padded with one
    zero byte because the protocol requires an even length.
    """
    return ArtNetCodec(physical=physical).encode(universe, sequence, dmx_data)


class ArtNetCodec(PacketCodec):
    """
    ArtDMX encoder/decoder.

    Layout (18 byte header):
    - ID "Art-Net\\0"
    - OpCode 0x5000, little-endian
    - Protocol version 14, big-endian
    - Sequence (0 = disabled), Physical
    - SubUni (low byte of port-address), Net (high 7 bits)
    - Length, big-endian
    """

    name = "artnet"
    default_port = ARTNET_PORT
    max_payload_size = DMX_CHANNEL_COUNT
    min_universe = 0
    max_universe = ARTNET_MAX_UNIVERSE
    reserved_sequence = 0

    def __init__(self, physical: int = 0):
        self.physical = physical & 0xFF

    def encode(self, universe_id: int, sequence: int, payload: bytes) -> bytes:
        data = self.check_payload(payload)
        if len(data) % 2:
            data += b"\x00"

        packet = bytearray(_ARTDMX_HEADER.pack(ARTNET_HEADER, ARTNET_OPCODE_DMX))
        packet.extend(
            _ARTDMX_FIELDS.pack(
                ARTNET_PROTOCOL_VERSION,
                sequence & 0xFF,
                self.physical,
                universe_id & 0xFF,
                (universe_id >> 8) & 0x7F,
                len(data),
            )
        )
        packet.extend(data)
        return bytes(packet)

    def decode(self, raw: bytes) -> DecodedPacket:
        if len(raw) < ARTNET_HEADER_SIZE:
            raise PacketFormatError(self.name, f"{len(raw)} bytes is shorter than the header")

        ident, opcode = _ARTDMX_HEADER.unpack_from(raw, 0)
        if ident != ARTNET_HEADER:
            raise PacketFormatError(self.name, "bad ID")
        if opcode != ARTNET_OPCODE_DMX:
            raise PacketFormatError(self.name, f"unexpected opcode 0x{opcode:04x}")

        version, sequence, _physical, sub_uni, net, length = _ARTDMX_FIELDS.unpack_from(
            raw, _ARTDMX_HEADER.size
        )
        if version < ARTNET_PROTOCOL_VERSION:
            raise PacketFormatError(self.name, f"protocol version {version}")
        payload = raw[ARTNET_HEADER_SIZE:ARTNET_HEADER_SIZE + length]
        if len(payload) != length:
            raise PacketFormatError(self.name, f"length field {length}, got {len(payload)} bytes")

        return DecodedPacket(
            universe=((net & 0x7F) << 8) | sub_uni,
            sequence=sequence,
            payload=bytes(payload),
        )
