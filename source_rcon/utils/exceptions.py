"""Custom exception classes for the RCON client."""

# OSError keeps errno in a C slot rather than in __dict__; strerror is
# left alone since setting it changes str() on OSError subclasses
_OS_ERROR_ATTRS = ('errno',)

# Never copied from the original error
_EXCLUDED_ATTRS = ('args', '__traceback__', '__cause__', '__context__')


class RconError(Exception):
    """Base exception class for all RCON-related errors."""
    pass


class RconConnectionError(RconError, ConnectionError):
    """Exception raised when the transport fails during connect or mid-session."""
    pass


class ConnectionClosedError(RconConnectionError):
    """Exception raised for commands still pending when the connection goes away."""
    pass


class AuthenticationError(RconError):
    """Exception raised when the server rejects the authentication packet."""
    pass


class CommandTimeoutError(RconError, TimeoutError):
    """Exception raised when a command receives no reply within its timeout."""
    pass


class ProtocolDecodeError(RconError, ValueError):
    """Exception raised when an inbound frame cannot be decoded."""
    pass


class NotConnectedError(RconError):
    """Exception raised when sending a command on a disconnected connection."""
    pass


class ConfigurationError(RconError):
    """Exception raised when configuration is invalid or missing."""
    pass


def clone_error_properties(original: BaseException, target: BaseException) -> BaseException:
    """
    Copy the properties of one error onto another.

    The message and traceback of ``target`` are kept; everything else the
    original carries (instance attributes, and errno for OS errors) is
    copied over so callers can still inspect it.

    Args:
        original: Error raised by the transport
        target: Error that will be raised to the caller

    Returns:
        The target error
    """
    for key, value in vars(original).items():
        if key not in _EXCLUDED_ATTRS:
            setattr(target, key, value)

    if isinstance(original, OSError):
        for key in _OS_ERROR_ATTRS:
            value = getattr(original, key, None)
            if value is not None:
                setattr(target, key, value)

    return target
