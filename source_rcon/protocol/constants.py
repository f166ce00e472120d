"""Protocol constants for RCON packet framing.

These mirror the Source RCON wire format and must not be changed
independently of the server implementation.
"""

import struct

# Header format: little-endian int (size) + int (id) + int (type)
# Format: '<' = little-endian, 'i' = int (4 bytes)
HEADER_FORMAT = '<iii'

# Size of the full header (size, id, type) in bytes
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)

# Size field only
SIZE_FORMAT = '<i'
SIZE_FIELD_SIZE = struct.calcsize(SIZE_FORMAT)

# Two NUL bytes closing every packet
TERMINATOR = b'\x00\x00'

# Bytes of a packet with an empty payload: size(4) + id(4) + type(4) + 0x00 0x00
PACKET_FIXED_SIZE = HEADER_SIZE + len(TERMINATOR)

# Practical payload cap honoured by most servers. Informational only,
# the codec does not enforce it.
MAX_PAYLOAD_SIZE = 4096

# Upper bound accepted for an inbound size field before the stream is
# considered corrupt
MAX_FRAME_SIZE = 1024 * 1024

# Packet ids wrap back to 1 once they exceed the largest int32
MAX_PACKET_ID = 2 ** 31 - 1

# Default per-command timeout in milliseconds (0 disables the timer)
DEFAULT_TIMEOUT_MS = 5000

# How long an AUTH keeps waiting for AUTH_RESPONSE after a reply of another
# type carrying its id (SRCDS sends an empty RESPONSE_VALUE first)
AUTH_REPLY_GRACE_MS = 500
