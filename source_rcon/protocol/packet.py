"""RCON packet structure definitions."""

from dataclasses import dataclass
from typing import Optional
import json
import struct

from source_rcon.protocol.constants import (
    HEADER_FORMAT,
    HEADER_SIZE,
    PACKET_FIXED_SIZE,
    SIZE_FIELD_SIZE,
    TERMINATOR,
)
from source_rcon.protocol.encoding import encode_payload, decode_payload
from source_rcon.protocol.packet_type import PacketType
from source_rcon.utils.exceptions import ProtocolDecodeError

HIDDEN_PAYLOAD = '<hidden>'


@dataclass(frozen=True)
class RconPacket:
    """
    One RCON frame on the wire.

    The packet is a read-only view over its raw bytes; size, id, type and
    payload are read from the buffer on access.
    """

    buffer: bytes

    @classmethod
    def encode(cls, packet_id: int, packet_type: int, payload: str = '') -> 'RconPacket':
        """
        Build a packet from its fields.

        Args:
            packet_id: Packet id, echoed back by the server
            packet_type: Packet type (see PacketType)
            payload: Command text or password

        Returns:
            RconPacket instance over the encoded bytes
        """
        body = encode_payload(payload)
        size = len(body) + PACKET_FIXED_SIZE - SIZE_FIELD_SIZE
        header = struct.pack(HEADER_FORMAT, size, packet_id, int(packet_type))
        return cls(buffer=header + body + TERMINATOR)

    @classmethod
    def decode(cls, data: bytes) -> 'RconPacket':
        """
        Parse a packet from a complete frame.

        Args:
            data: Raw bytes including the size field

        Returns:
            RconPacket instance over the given bytes

        Raises:
            ProtocolDecodeError: If the buffer is shorter than an empty packet
        """
        if len(data) < PACKET_FIXED_SIZE:
            raise ProtocolDecodeError(
                f"Packet too short: {len(data)} bytes, "
                f"at least {PACKET_FIXED_SIZE} required"
            )
        return cls(buffer=bytes(data))

    @property
    def size(self) -> int:
        return struct.unpack_from(HEADER_FORMAT, self.buffer)[0]

    @property
    def id(self) -> int:
        return struct.unpack_from(HEADER_FORMAT, self.buffer)[1]

    @property
    def type(self) -> PacketType:
        return PacketType(struct.unpack_from(HEADER_FORMAT, self.buffer)[2])

    @property
    def payload(self) -> str:
        return decode_payload(self.buffer[HEADER_SIZE:len(self.buffer) - len(TERMINATOR)])

    def in_response_to(self, request: Optional['RconPacket']) -> bool:
        """
        Check whether this (received) packet answers the given (sent) packet.

        Only two pairings are legal: AUTH is answered by AUTH_RESPONSE, and
        EXECCOMMAND or BOUNDARY are answered by RESPONSE_VALUE. Ids must match.
        """
        if request is None or request.id != self.id:
            return False

        reply_type = self.type
        if reply_type == PacketType.AUTH_RESPONSE:
            return request.type == PacketType.AUTH
        if reply_type == PacketType.RESPONSE_VALUE:
            return request.type in (PacketType.EXECCOMMAND, PacketType.BOUNDARY)
        return False

    def describe(self) -> str:
        """Render the packet for logs and error messages, hiding AUTH payloads."""
        packet_type = self.type
        payload = HIDDEN_PAYLOAD if packet_type == PacketType.AUTH else self.payload
        fields = {
            'size': self.size,
            'id': self.id,
            'type': int(packet_type),
            'payload': payload,
        }
        return f"RconPacket{json.dumps(fields)}"

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return self.describe()


def encode_packet(packet_id: int, packet_type: int, payload: str = '') -> bytes:
    """Encode fields straight to wire bytes."""
    return RconPacket.encode(packet_id, packet_type, payload).buffer


def decode_packet(data: bytes) -> RconPacket:
    """Decode wire bytes into a packet."""
    return RconPacket.decode(data)
