"""Utility modules for logging and exception handling."""

from source_rcon.utils.logging import setup_logging, get_logger
from source_rcon.utils.exceptions import (
    RconError,
    RconConnectionError,
    ConnectionClosedError,
    AuthenticationError,
    CommandTimeoutError,
    ProtocolDecodeError,
    NotConnectedError,
    ConfigurationError,
    clone_error_properties,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'RconError',
    'RconConnectionError',
    'ConnectionClosedError',
    'AuthenticationError',
    'CommandTimeoutError',
    'ProtocolDecodeError',
    'NotConnectedError',
    'ConfigurationError',
    'clone_error_properties',
]
