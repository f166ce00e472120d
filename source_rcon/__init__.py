"""Asyncio client for the Source RCON protocol."""

from source_rcon.client import QueuedRconConnection, RconClient, ConnectionState
from source_rcon.config import RconConfig, Secret
from source_rcon.protocol import PacketType, RconPacket
from source_rcon.utils.exceptions import (
    RconError,
    RconConnectionError,
    ConnectionClosedError,
    AuthenticationError,
    CommandTimeoutError,
    ProtocolDecodeError,
    NotConnectedError,
    ConfigurationError,
)

__version__ = '1.0.0'

__all__ = [
    'QueuedRconConnection',
    'RconClient',
    'ConnectionState',
    'RconConfig',
    'Secret',
    'PacketType',
    'RconPacket',
    'RconError',
    'RconConnectionError',
    'ConnectionClosedError',
    'AuthenticationError',
    'CommandTimeoutError',
    'ProtocolDecodeError',
    'NotConnectedError',
    'ConfigurationError',
]
