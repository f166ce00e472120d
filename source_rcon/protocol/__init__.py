"""Protocol module for RCON packet encoding, decoding, and framing."""

from source_rcon.protocol.constants import (
    HEADER_FORMAT,
    HEADER_SIZE,
    PACKET_FIXED_SIZE,
    MAX_PAYLOAD_SIZE,
    MAX_PACKET_ID,
    DEFAULT_TIMEOUT_MS,
)
from source_rcon.protocol.packet_type import PacketType
from source_rcon.protocol.encoding import encode_payload, decode_payload
from source_rcon.protocol.packet import RconPacket, encode_packet, decode_packet
from source_rcon.protocol.framing import read_frame

__all__ = [
    'HEADER_FORMAT',
    'HEADER_SIZE',
    'PACKET_FIXED_SIZE',
    'MAX_PAYLOAD_SIZE',
    'MAX_PACKET_ID',
    'DEFAULT_TIMEOUT_MS',
    'PacketType',
    'encode_payload',
    'decode_payload',
    'RconPacket',
    'encode_packet',
    'decode_packet',
    'read_frame',
]
