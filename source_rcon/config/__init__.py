"""Configuration module for managing client settings."""

from source_rcon.config.settings import (
    Secret,
    RconConfig,
    LoggingConfig,
    Config,
)

__all__ = [
    'Secret',
    'RconConfig',
    'LoggingConfig',
    'Config',
]
