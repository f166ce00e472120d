"""Configuration management for the RCON client."""

from dataclasses import dataclass
from typing import Optional
import os
from pathlib import Path

from dotenv import load_dotenv

from source_rcon.protocol.constants import DEFAULT_TIMEOUT_MS
from source_rcon.utils.exceptions import ConfigurationError


# Load .env file from project root
# This is called at module import time to ensure env vars are available
env_path = Path(__file__).parent.parent.parent / '.env'
load_dotenv(dotenv_path=env_path, override=False)

DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 27015

_TRUE_VALUES = ('1', 'true', 'yes', 'on')
_FALSE_VALUES = ('0', 'false', 'no', 'off')


class Secret:
    """
    Credential holder that never renders its value.

    str() and repr() both give '<hidden>'; only reveal() returns the
    wrapped text.
    """

    __slots__ = ('_value',)

    def __init__(self, value: str):
        self._value = value

    def reveal(self) -> str:
        return self._value

    def __bool__(self) -> bool:
        return bool(self._value)

    def __eq__(self, other) -> bool:
        if isinstance(other, Secret):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return '<hidden>'

    def __repr__(self) -> str:
        return "Secret('<hidden>')"


@dataclass
class RconConfig:
    """Configuration for one RCON connection."""

    password: Secret
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    multipacket: bool = True

    def __post_init__(self):
        if isinstance(self.password, str):
            self.password = Secret(self.password)

    @property
    def endpoint(self) -> str:
        return f"{self.host}:{self.port}"

    def validate(self) -> None:
        """Validate connection configuration parameters."""
        if not self.host:
            raise ConfigurationError("RCON host is required")
        if not isinstance(self.port, int) or self.port < 1 or self.port > 65535:
            raise ConfigurationError("RCON port must be between 1 and 65535")
        if not self.password:
            raise ConfigurationError("RCON password is required")
        if not isinstance(self.timeout_ms, int) or self.timeout_ms < 0:
            raise ConfigurationError("RCON timeout must be a non-negative number of milliseconds")


@dataclass
class LoggingConfig:
    """Configuration for log output."""

    level: str = "INFO"

    def validate(self) -> None:
        """Validate logging configuration parameters."""
        if self.level.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ConfigurationError(f"Invalid log level: {self.level}")


def _parse_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a valid integer, got: {value}")


def _parse_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got: {value}")


class Config:
    """Main configuration loader and manager."""

    def __init__(self):
        """Initialize configuration manager."""
        self.rcon: Optional[RconConfig] = None
        self.logging: LoggingConfig = LoggingConfig()

    def load_rcon_config(self, **overrides) -> RconConfig:
        """
        Load connection configuration from environment variables.

        Environment variables:
            RCON_HOST: Server host (default: 127.0.0.1)
            RCON_PORT: Server port (default: 27015)
            RCON_PASSWORD: RCON password (required)
            RCON_TIMEOUT_MS: Default command timeout, 0 disables (default: 5000)
            RCON_MULTIPACKET: Treat responses as multi-packet (default: true)

        Args:
            overrides: Values that take precedence over the environment;
                       None values are ignored

        Returns:
            Validated RconConfig instance

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        overrides = {key: value for key, value in overrides.items() if value is not None}

        password = overrides.pop('password', None) or os.getenv('RCON_PASSWORD')
        if not password:
            raise ConfigurationError(
                "RCON_PASSWORD environment variable is required. "
                "Example: RCON_PASSWORD=changeme"
            )

        values = {
            'host': os.getenv('RCON_HOST', DEFAULT_HOST),
            'port': _parse_int('RCON_PORT', DEFAULT_PORT),
            'timeout_ms': _parse_int('RCON_TIMEOUT_MS', DEFAULT_TIMEOUT_MS),
            'multipacket': _parse_bool('RCON_MULTIPACKET', True),
        }
        values.update(overrides)

        if not isinstance(password, Secret):
            password = Secret(password)

        config = RconConfig(password=password, **values)
        config.validate()
        self.rcon = config
        return config

    def load_logging_config(self, level: Optional[str] = None) -> LoggingConfig:
        """
        Load logging configuration.

        Environment variables:
            LOG_LEVEL: Logging level (default: INFO)

        Returns:
            Validated LoggingConfig instance
        """
        config = LoggingConfig(level=level or os.getenv('LOG_LEVEL', 'INFO'))
        config.validate()
        self.logging = config
        return config
