"""DMX addressing, packet codecs and universe buffers."""

from dmxlink.dmx.address import AddressNode, parse_address_list, resolve_ipv4
from dmxlink.dmx.artnet import ArtNetCodec, build_artdmx_packet, port_address
from dmxlink.dmx.codec import DecodedPacket, PacketCodec
from dmxlink.dmx.sacn import SacnCodec
from dmxlink.dmx.universe import (
    DMX_CHANNEL_COUNT,
    DMX_CHANNEL_MAX,
    DMX_CHANNEL_MIN,
    ChannelBuffer,
    UniverseBuffer,
    is_valid_dmx_channel,
)

__all__ = [
    "AddressNode",
    "parse_address_list",
    "resolve_ipv4",
    "ArtNetCodec",
    "build_artdmx_packet",
    "port_address",
    "DecodedPacket",
    "PacketCodec",
    "SacnCodec",
    "DMX_CHANNEL_COUNT",
    "DMX_CHANNEL_MIN",
    "DMX_CHANNEL_MAX",
    "ChannelBuffer",
    "UniverseBuffer",
    "is_valid_dmx_channel",
]
