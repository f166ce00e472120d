"""Queued RCON connection: one TCP stream, one command in flight at a time."""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, List, Optional, Union
import asyncio
import socket

from source_rcon.config.settings import Secret
from source_rcon.protocol.constants import AUTH_REPLY_GRACE_MS, DEFAULT_TIMEOUT_MS, MAX_PACKET_ID
from source_rcon.protocol.framing import read_frame
from source_rcon.protocol.packet import RconPacket
from source_rcon.protocol.packet_type import PacketType
from source_rcon.utils.logging import get_logger
from source_rcon.utils.exceptions import (
    AuthenticationError,
    CommandTimeoutError,
    ConnectionClosedError,
    NotConnectedError,
    ProtocolDecodeError,
    RconConnectionError,
    RconError,
    clone_error_properties,
)

logger = get_logger(__name__)

# Id some servers put on an AUTH_RESPONSE when the password is wrong
AUTH_REJECTED_ID = -1


class ConnectionState(Enum):
    """Lifecycle of a QueuedRconConnection."""

    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    AUTHENTICATING = 'authenticating'
    CONNECTED = 'connected'


@dataclass
class Command:
    """A queued request and the replies collected for it so far."""

    packet: RconPacket
    future: asyncio.Future
    timeout_ms: int
    boundary: Optional[RconPacket] = None
    data: List[RconPacket] = field(default_factory=list)
    # Replies with our id but a type that does not answer the request
    unmatched: List[RconPacket] = field(default_factory=list)
    sent: bool = False


class QueuedRconConnection:
    """
    RCON connection that serializes commands over a single TCP stream.

    Callers may send concurrently; commands are queued and written to the
    socket strictly one at a time, in submission order. A command is
    finished by its first matching reply, or, in multi-packet mode, by the
    reply to a trailing BOUNDARY packet, which the server can only emit
    after every reply to the real command.

    All queue and timer state is owned by the instance and mutated only
    from event loop callbacks, so no locking is needed.
    """

    def __init__(
        self,
        host: str,
        port: int,
        password: Union[str, Secret],
        timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS,
        fail_pending_on_close: bool = True,
    ):
        """
        Initialize a disconnected RCON connection.

        Args:
            host: Server hostname or IP address
            port: Server RCON port
            password: RCON password
            timeout_ms: Default per-command timeout in milliseconds;
                        0 disables timeouts, None uses the default
            fail_pending_on_close: Fail every queued command with
                        ConnectionClosedError when the connection is torn
                        down, instead of leaving them unresolved
        """
        self.host = host
        self.port = port
        self.timeout_ms = DEFAULT_TIMEOUT_MS if timeout_ms is None else max(int(timeout_ms), 0)
        self.fail_pending_on_close = fail_pending_on_close
        self._password = password if isinstance(password, Secret) else Secret(password)

        self._state = ConnectionState.DISCONNECTED
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None

        self._queue: Deque[Command] = deque()
        self._next_packet_id = 0
        self._timeout_handle: Optional[asyncio.TimerHandle] = None
        self._timeout_delay: float = 0

    @property
    def logprefix(self) -> str:
        return f"RCON {self.host}:{self.port}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def pending(self) -> int:
        """Number of commands queued, including the one in flight."""
        return len(self._queue)

    def _next_id(self) -> int:
        self._next_packet_id += 1
        if self._next_packet_id > MAX_PACKET_ID:
            self._next_packet_id = 1
        return self._next_packet_id

    async def connect(self) -> None:
        """
        Open the TCP stream and authenticate.

        Safe to call repeatedly: returns at once when already connected,
        and concurrent callers share the attempt in progress.

        Raises:
            RconConnectionError: If the server cannot be reached or drops
                the connection during authentication
            AuthenticationError: If the server rejects the password
            CommandTimeoutError: If the server does not answer in time
        """
        if self._state == ConnectionState.CONNECTED:
            return

        if self._connect_task is None:
            self._state = ConnectionState.CONNECTING
            self._loop = asyncio.get_running_loop()
            self._connect_task = asyncio.ensure_future(self._connect())
            self._connect_task.add_done_callback(self._retrieve_connect_result)
        task = self._connect_task

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled():
                raise ConnectionClosedError(
                    f"{self.logprefix} Disconnected while connecting"
                ) from None
            raise

    @staticmethod
    def _retrieve_connect_result(task: asyncio.Task) -> None:
        # Every connect() caller may have been cancelled before the attempt ended
        if not task.cancelled():
            task.exception()

    async def _connect(self) -> None:
        logger.info(f"{self.logprefix}: Connecting")

        try:
            self._reader, self._writer = await self._open_stream()
            self._configure_socket(self._writer)
            self._reader_task = asyncio.ensure_future(self._read_loop(self._reader))

            self._state = ConnectionState.AUTHENTICATING
            await self._authenticate()

            self._state = ConnectionState.CONNECTED
            logger.info(f"{self.logprefix}: Connected and authenticated")

        except RconError as e:
            logger.error(f"{self.logprefix}: Connection failed: {e}")
            self.disconnect()
            raise
        except OSError as e:
            logger.error(f"{self.logprefix}: Connection failed: {e}")
            self.disconnect()
            raise self._connection_error(e) from e
        finally:
            if self._connect_task is asyncio.current_task():
                self._connect_task = None

    async def _open_stream(self):
        opener = asyncio.open_connection(self.host, self.port)
        if not self.timeout_ms:
            return await opener

        try:
            return await asyncio.wait_for(opener, self.timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise RconConnectionError(
                f"{self.logprefix} Timed out opening connection"
            ) from None

    @staticmethod
    def _configure_socket(writer: asyncio.StreamWriter) -> None:
        sock = writer.get_extra_info('socket')
        if sock is None:
            return
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)

    async def _authenticate(self) -> None:
        """Send the AUTH packet through the queue and wait for AUTH_RESPONSE."""
        packet = RconPacket.encode(self._next_id(), PacketType.AUTH, self._password.reveal())
        logger.debug(f"{self.logprefix}: Authenticating with {packet}")

        [auth_response] = await self._send_packet(packet)
        if auth_response.type != PacketType.AUTH_RESPONSE:
            raise AuthenticationError(
                f"{self.logprefix} Authentication Failed - "
                f"Unexpected response ({auth_response})"
            )

    def disconnect(self) -> None:
        """
        Close the connection.

        Always succeeds and may be called when already disconnected. When
        fail_pending_on_close is set, every queued command is failed with
        ConnectionClosedError; otherwise they are dropped unresolved. An
        AUTH command still in flight is always failed so that connect()
        returns.
        """
        previous = self._state
        if previous != ConnectionState.DISCONNECTED:
            logger.info(f"{self.logprefix}: Disconnecting")
        self._state = ConnectionState.DISCONNECTED
        self._clear_timeout()

        if self._writer is not None:
            self._writer.close()
        self._writer = None
        self._reader = None

        current = asyncio.current_task() if self._loop is not None and self._loop.is_running() else None
        if self._reader_task is not None and self._reader_task is not current:
            self._reader_task.cancel()
        # While authenticating, the AUTH command is failed below instead so the
        # connect attempt reports why it ended
        if (previous == ConnectionState.CONNECTING and self._connect_task is not None
                and self._connect_task is not current):
            self._connect_task.cancel()
        self._reader_task = None
        self._connect_task = None

        pending = list(self._queue)
        self._queue.clear()
        if not pending:
            return

        logger.debug(f"{self.logprefix}: Tearing down with {len(pending)} pending command(s)")
        for command in pending:
            if self.fail_pending_on_close or command.packet.type == PacketType.AUTH:
                self._reject(command, ConnectionClosedError(
                    f"{self.logprefix} Connection closed ({command.packet})"
                ))

    async def close(self) -> None:
        """Disconnect and wait for the transport to finish closing."""
        writer = self._writer
        self.disconnect()
        if writer is None:
            return
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"{self.logprefix}: Error while closing: {e!r}")

    async def send(
        self,
        command: str,
        timeout_ms: Optional[int] = None,
        multipacket: bool = False,
    ) -> str:
        """
        Execute a command and return the server's response text.

        Args:
            command: Command line to execute
            timeout_ms: Timeout for this command; defaults to the
                        connection timeout, 0 disables it
            multipacket: Collect every reply until the server answers a
                        trailing BOUNDARY packet

        Returns:
            Concatenated payloads of all replies, in arrival order

        Raises:
            NotConnectedError: If connect() has not completed
            CommandTimeoutError: If the server stops answering
            RconConnectionError: If the transport fails
        """
        if self._state != ConnectionState.CONNECTED:
            raise NotConnectedError(f"{self.logprefix} is not connected")

        packet = RconPacket.encode(self._next_id(), PacketType.EXECCOMMAND, command)
        boundary = None
        if multipacket:
            boundary = RconPacket.encode(self._next_id(), PacketType.BOUNDARY)

        responses = await self._send_packet(packet, boundary, timeout_ms)
        return ''.join(response.payload for response in responses)

    def _send_packet(
        self,
        packet: RconPacket,
        boundary: Optional[RconPacket] = None,
        timeout_ms: Optional[int] = None,
    ) -> asyncio.Future:
        """Queue a packet and return the future its replies are delivered to."""
        future = self._loop.create_future()
        self._queue.append(Command(
            packet=packet,
            boundary=boundary,
            future=future,
            timeout_ms=self.timeout_ms if timeout_ms is None else max(int(timeout_ms), 0),
        ))
        self._process_queue()
        return future

    def _process_queue(self) -> None:
        """Write the head command to the socket unless it is already in flight."""
        if not self._queue:
            return
        command = self._queue[0]
        if command.sent:
            return

        if self._writer is None:
            self._queue.popleft()
            self._reject(command, NotConnectedError(f"{self.logprefix} is not connected"))
            self._process_queue()
            return

        logger.debug(f"{self.logprefix}: Sending {command.packet}")
        self._writer.write(command.packet.buffer)
        if command.boundary is not None:
            self._writer.write(command.boundary.buffer)
        command.sent = True
        self._start_timeout(command.timeout_ms)

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        """Read frames until the stream ends, feeding each to the head command."""
        try:
            while True:
                frame = await read_frame(reader)
                self._handle_frame(frame)
        except asyncio.IncompleteReadError:
            self._handle_closed()
        except ProtocolDecodeError as e:
            # Stream is out of sync after a bad size field
            self._fail_head(e)
            self.disconnect()
        except OSError as e:
            self._handle_error(e)

    def _handle_frame(self, frame: bytes) -> None:
        if not self._queue:
            logger.debug(f"{self.logprefix}: Ignoring {len(frame)} byte frame with no command pending")
            return

        command = self._queue[0]
        finished = False
        try:
            response = RconPacket.decode(frame)
            logger.debug(f"{self.logprefix}: Received {response}")

            if command.packet.type == PacketType.AUTH and self._is_auth_rejection(response):
                finished = self._pop(command)
                self._reject(command, AuthenticationError(
                    f"{self.logprefix} Authentication Failed - Password rejected ({response})"
                ))
                return

            is_response = response.in_response_to(command.packet)
            if is_response:
                command.data.append(response)
                self._refresh_timeout()
            elif response.id == command.packet.id:
                command.unmatched.append(response)
                if command.packet.type == PacketType.AUTH:
                    self._start_auth_grace()

            if command.boundary is not None:
                # Multi-packet: only the reply to the boundary finishes the command
                if response.in_response_to(command.boundary):
                    finished = self._pop(command)
                    self._resolve(command)
            elif is_response:
                finished = self._pop(command)
                self._resolve(command)

        except Exception as e:
            if not finished:
                finished = self._pop(command)
            logger.warning(f"{self.logprefix}: Failed to process frame: {e}")
            self._reject(command, e)
        finally:
            if finished:
                self._clear_timeout()
            self._process_queue()

    @staticmethod
    def _is_auth_rejection(packet: RconPacket) -> bool:
        return packet.type == PacketType.AUTH_RESPONSE and packet.id == AUTH_REJECTED_ID

    def _handle_error(self, error: OSError) -> None:
        logger.error(f"{self.logprefix}: Socket error: {error}")
        self._fail_head(self._connection_error(error))
        self.disconnect()

    def _handle_closed(self) -> None:
        logger.info(f"{self.logprefix}: Connection closed by server")
        self._fail_head(ConnectionClosedError(f"{self.logprefix} Connection closed by server"))
        self.disconnect()

    def _fail_head(self, error: Exception) -> None:
        if not self._queue:
            return
        command = self._queue.popleft()
        self._clear_timeout()
        self._reject(command, error)

    def _connection_error(self, error: BaseException) -> RconConnectionError:
        wrapped = RconConnectionError(f"{self.logprefix} {error}")
        wrapped.__cause__ = error
        return clone_error_properties(error, wrapped)

    def _start_timeout(self, timeout_ms: int) -> None:
        self._clear_timeout()
        if not self._queue or timeout_ms <= 0:
            return
        self._timeout_delay = timeout_ms / 1000
        self._timeout_handle = self._loop.call_later(self._timeout_delay, self._handle_timeout)

    def _start_auth_grace(self) -> None:
        """Make sure an AUTH answered with the wrong reply type fails soon."""
        grace = AUTH_REPLY_GRACE_MS / 1000
        if self._timeout_handle is not None and self._timeout_handle.when() <= self._loop.time() + grace:
            return
        self._clear_timeout()
        self._timeout_delay = grace
        self._timeout_handle = self._loop.call_later(grace, self._handle_timeout)

    def _refresh_timeout(self) -> None:
        """Restart the running timer with its original delay, counted from now."""
        if self._timeout_handle is None:
            return
        self._timeout_handle.cancel()
        self._timeout_handle = self._loop.call_later(self._timeout_delay, self._handle_timeout)

    def _clear_timeout(self) -> None:
        if self._timeout_handle is not None:
            self._timeout_handle.cancel()
            self._timeout_handle = None

    def _handle_timeout(self) -> None:
        self._timeout_handle = None
        if not self._queue:
            return

        command = self._queue.popleft()
        if command.packet.type == PacketType.AUTH and command.unmatched:
            error = AuthenticationError(
                f"{self.logprefix} Authentication Failed - "
                f"Unexpected response ({command.unmatched[0]})"
            )
        else:
            error = CommandTimeoutError(f'{self.logprefix} timed out ("{command.packet}")')

        logger.warning(str(error))
        self._reject(command, error)
        self._process_queue()

    def _pop(self, command: Command) -> bool:
        if self._queue and self._queue[0] is command:
            self._queue.popleft()
            return True
        return False

    @staticmethod
    def _resolve(command: Command) -> None:
        if not command.future.done():
            command.future.set_result(list(command.data))

    @staticmethod
    def _reject(command: Command, error: BaseException) -> None:
        if not command.future.done():
            command.future.set_exception(error)

    async def __aenter__(self) -> 'QueuedRconConnection':
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
