"""RCON packet type definitions."""

from enum import IntEnum


class PacketType(IntEnum):
    """
    Enumeration of RCON packet types.

    EXECCOMMAND and AUTH_RESPONSE share the value 2 on the wire; with an
    IntEnum the second name is an alias of the first. Which one a packet
    means depends only on direction: packets we send carry EXECCOMMAND,
    packets the server sends carry AUTH_RESPONSE.
    """

    UNKNOWN = -1                # Any value not listed here
    RESPONSE_VALUE = 0          # Server reply to EXECCOMMAND
    AUTH_RESPONSE = 2           # Server reply to AUTH
    EXECCOMMAND = 2             # Client command request
    AUTH = 3                    # Client authentication request
    BOUNDARY = 255              # Client-side multi-packet terminator

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN
