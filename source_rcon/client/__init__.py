"""Client module with the queued connection engine and the public client."""

from source_rcon.client.connection import Command, ConnectionState, QueuedRconConnection
from source_rcon.client.rcon_client import RconClient

__all__ = [
    'Command',
    'ConnectionState',
    'QueuedRconConnection',
    'RconClient',
]
