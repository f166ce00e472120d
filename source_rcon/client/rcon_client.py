"""Public RCON client."""

from typing import Optional, Union

from source_rcon.client.connection import QueuedRconConnection
from source_rcon.config.settings import RconConfig, Secret
from source_rcon.protocol.constants import DEFAULT_TIMEOUT_MS
from source_rcon.utils.logging import get_logger

logger = get_logger(__name__)


class RconClient:
    """
    High-level RCON client.

    Connects on demand and treats every response as multi-packet unless
    told otherwise, which is the safe choice for commands with long output.

    Example:
        async with RconClient('127.0.0.1', 27015, 'secret') as client:
            print(await client.send('status'))
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: Union[str, Secret],
        timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS,
        fail_pending_on_close: bool = True,
    ):
        self.connection = QueuedRconConnection(
            host,
            port,
            password,
            timeout_ms=timeout_ms,
            fail_pending_on_close=fail_pending_on_close,
        )

    @classmethod
    def from_config(cls, config: RconConfig) -> 'RconClient':
        """Create a client from a validated configuration."""
        return cls(
            config.host,
            config.port,
            config.password,
            timeout_ms=config.timeout_ms,
        )

    @property
    def connected(self) -> bool:
        return self.connection.connected

    async def connect(self) -> None:
        await self.connection.connect()

    def disconnect(self) -> None:
        self.connection.disconnect()

    async def close(self) -> None:
        await self.connection.close()

    async def send(
        self,
        command: str,
        timeout_ms: Optional[int] = None,
        multipacket: bool = True,
    ) -> str:
        """
        Connect if needed, then execute a command.

        Args:
            command: Command line to execute
            timeout_ms: Timeout for this command; defaults to the
                        connection timeout
            multipacket: Wait for a boundary reply before returning

        Returns:
            Response text
        """
        if not self.connected:
            logger.debug(f"{self.connection.logprefix}: Connecting before sending {command!r}")
        await self.connect()
        return await self.connection.send(command, timeout_ms=timeout_ms, multipacket=multipacket)

    async def __aenter__(self) -> 'RconClient':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
