"""Shared fixtures: a scriptable in-process RCON server."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional

import pytest
import pytest_asyncio

from source_rcon.protocol.framing import read_frame
from source_rcon.protocol.packet import RconPacket
from source_rcon.protocol.packet_type import PacketType

PASSWORD = "secret"

Handler = Callable[["FakeRconServer", RconPacket], Awaitable[None]]


class FakeRconServer:
    """
    Minimal RCON server for tests.

    By default it accepts PASSWORD, answers EXECCOMMAND with a single
    RESPONSE_VALUE echoing the command, and answers BOUNDARY packets the
    way Source servers answer unknown request types. Tests replace
    on_auth, on_command or on_boundary to script other behaviour.
    """

    BOUNDARY_REPLY = "Unknown request ff"

    def __init__(self, password: str = PASSWORD) -> None:
        self.password = password
        self.received: List[RconPacket] = []
        self.events: List[str] = []
        self.connections = 0
        self.on_auth: Optional[Handler] = None
        self.on_command: Optional[Handler] = None
        self.on_boundary: Optional[Handler] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self._writers: List[asyncio.StreamWriter] = []
        self._server: Optional[asyncio.AbstractServer] = None
        self.host = "127.0.0.1"
        self.port = 0

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connections += 1
        self.writer = writer
        self._writers.append(writer)
        try:
            while True:
                frame = await read_frame(reader)
                packet = RconPacket.decode(frame)
                self.received.append(packet)
                self.writer = writer
                self.events.append(f"recv {packet.id}")
                await self._dispatch(packet)
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    async def _dispatch(self, packet: RconPacket) -> None:
        if packet.type == PacketType.AUTH:
            handler = self.on_auth or FakeRconServer.default_auth
        elif packet.type == PacketType.BOUNDARY:
            handler = self.on_boundary or FakeRconServer.default_boundary
        else:
            handler = self.on_command or FakeRconServer.default_command
        await handler(self, packet)

    async def default_auth(self, packet: RconPacket) -> None:
        reply_id = packet.id if packet.payload == self.password else -1
        self.reply(reply_id, PacketType.AUTH_RESPONSE)

    async def default_command(self, packet: RconPacket) -> None:
        self.reply(packet.id, PacketType.RESPONSE_VALUE, f"echo: {packet.payload}")

    async def default_boundary(self, packet: RconPacket) -> None:
        self.reply(packet.id, PacketType.RESPONSE_VALUE, self.BOUNDARY_REPLY)

    def reply(self, packet_id: int, packet_type: int, payload: str = "") -> None:
        self.write(RconPacket.encode(packet_id, packet_type, payload).buffer)
        self.events.append(f"send {packet_id}")

    def write(self, data: bytes) -> None:
        assert self.writer is not None
        self.writer.write(data)

    def commands(self) -> List[RconPacket]:
        """Packets received other than authentication."""
        return [p for p in self.received if p.type != PacketType.AUTH]


@pytest_asyncio.fixture
async def rcon_server():
    server = FakeRconServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "RCON_HOST",
        "RCON_PORT",
        "RCON_PASSWORD",
        "RCON_TIMEOUT_MS",
        "RCON_MULTIPACKET",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
