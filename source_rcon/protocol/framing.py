"""Length-prefixed frame reading from an asyncio stream."""

import asyncio
import struct

from source_rcon.protocol.constants import (
    MAX_FRAME_SIZE,
    SIZE_FIELD_SIZE,
    SIZE_FORMAT,
)
from source_rcon.utils.exceptions import ProtocolDecodeError


async def read_frame(reader: asyncio.StreamReader) -> bytes:
    """
    Read exactly one RCON frame from the stream.

    The returned bytes include the leading size field so they can be
    handed to RconPacket.decode() unchanged.

    Args:
        reader: Stream to read from

    Returns:
        Raw frame bytes

    Raises:
        asyncio.IncompleteReadError: If the stream ends mid-frame
        ProtocolDecodeError: If the size field is negative or too large;
            the stream cannot be resynchronised after this
    """
    raw_size = await reader.readexactly(SIZE_FIELD_SIZE)
    (size,) = struct.unpack(SIZE_FORMAT, raw_size)

    # Undersized frames are still consumed so the stream stays aligned;
    # RconPacket.decode() rejects them afterwards
    if size < 0 or size > MAX_FRAME_SIZE:
        raise ProtocolDecodeError(
            f"Invalid frame size {size}, expected 0..{MAX_FRAME_SIZE}"
        )

    body = await reader.readexactly(size)
    return raw_size + body
