"""
test_client.py: tests for the public RconClient wrapper and the CLI.

Run from the repo root:
    python -m pytest tests/test_client.py -v
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
import signal
import sys
from typing import Callable

import pytest

import main_client
from source_rcon.client.rcon_client import RconClient
from source_rcon.config.settings import RconConfig
from source_rcon.protocol.packet import RconPacket
from source_rcon.protocol.packet_type import PacketType
from source_rcon.utils.logging import setup_logging


async def _two_part_reply(server, packet: RconPacket) -> None:
    server.reply(packet.id, PacketType.RESPONSE_VALUE, "part one, ")
    server.reply(packet.id, PacketType.RESPONSE_VALUE, "part two")


async def _never_reply(server, packet: RconPacket) -> None:
    pass


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


def _app(server, *argv: str) -> main_client.ClientApplication:
    args = main_client.parse_args(["--port", str(server.port), "--password", "secret", *argv])
    return main_client.ClientApplication(args)


# ---------------------------------------------------------------------------
# RconClient
# ---------------------------------------------------------------------------

class TestRconClient:
    @pytest.mark.asyncio
    async def test_send_connects_on_demand(self, rcon_server) -> None:
        client = RconClient(rcon_server.host, rcon_server.port, "secret")
        try:
            assert not client.connected
            assert await client.send("status") == "echo: status"
            assert client.connected
        finally:
            client.disconnect()

    @pytest.mark.asyncio
    async def test_send_is_multipacket_by_default(self, rcon_server) -> None:
        rcon_server.on_command = _two_part_reply
        client = RconClient(rcon_server.host, rcon_server.port, "secret")
        try:
            assert await client.send("cvarlist") == "part one, part two"
            assert [p.type for p in rcon_server.commands()] == [PacketType.EXECCOMMAND, PacketType.BOUNDARY]
        finally:
            client.disconnect()

    @pytest.mark.asyncio
    async def test_single_packet_on_request(self, rcon_server) -> None:
        rcon_server.on_command = _two_part_reply
        client = RconClient(rcon_server.host, rcon_server.port, "secret")
        try:
            assert await client.send("cvarlist", multipacket=False) == "part one, "
        finally:
            client.disconnect()

    @pytest.mark.asyncio
    async def test_from_config(self, rcon_server) -> None:
        config = RconConfig(password="secret", host=rcon_server.host, port=rcon_server.port, timeout_ms=250)
        client = RconClient.from_config(config)
        assert client.connection.timeout_ms == 250
        async with client:
            assert client.connected
            assert await client.send("status") == "echo: status"
        assert not client.connected


# ---------------------------------------------------------------------------
# Command-line entry point
# ---------------------------------------------------------------------------

class TestMain:
    def test_parse_args(self) -> None:
        args = main_client.parse_args(["--port", "25575", "--single-packet", "list", "say hi"])
        assert args.port == 25575
        assert args.multipacket is False
        assert args.commands == ["list", "say hi"]

    def test_multipacket_left_to_config_by_default(self) -> None:
        assert main_client.parse_args([]).multipacket is None

    @pytest.mark.asyncio
    async def test_runs_commands(self, rcon_server, clean_env, capsys) -> None:
        code = await main_client.main([
            "--host", rcon_server.host,
            "--port", str(rcon_server.port),
            "--password", "secret",
            "status",
            "list",
        ])
        assert code == 0
        assert capsys.readouterr().out == "echo: status\necho: list\n"

    @pytest.mark.asyncio
    async def test_password_from_environment(self, rcon_server, clean_env, capsys) -> None:
        clean_env.setenv("RCON_PASSWORD", "secret")
        clean_env.setenv("RCON_PORT", str(rcon_server.port))
        code = await main_client.main(["status"])
        assert code == 0
        assert capsys.readouterr().out == "echo: status\n"

    @pytest.mark.asyncio
    async def test_missing_password(self, clean_env) -> None:
        assert await main_client.main(["status"]) == 1

    @pytest.mark.asyncio
    async def test_wrong_password(self, rcon_server, clean_env) -> None:
        code = await main_client.main([
            "--port", str(rcon_server.port),
            "--password", "wrong",
            "status",
        ])
        assert code == 1

    @pytest.mark.asyncio
    async def test_interactive_reads_stdin_until_exit(self, rcon_server, clean_env, capsys, monkeypatch) -> None:
        monkeypatch.setattr(sys, "stdin", io.StringIO("status\n\nexit\nlist\n"))
        code = await main_client.main(["--port", str(rcon_server.port), "--password", "secret"])
        assert code == 0
        assert capsys.readouterr().out == "echo: status\n"

    @pytest.mark.asyncio
    async def test_signal_during_command_exits_cleanly(self, rcon_server, clean_env) -> None:
        rcon_server.on_command = _never_reply
        app = _app(rcon_server, "--timeout-ms", "0", "--single-packet", "status", "list")
        task = asyncio.ensure_future(app.run())
        await _wait_until(lambda: bool(rcon_server.commands()))

        app.handle_shutdown(signal.SIGINT, None)
        assert await asyncio.wait_for(task, 2.0) == 0
        assert [p.payload for p in rcon_server.commands()] == ["status"]

    @pytest.mark.asyncio
    async def test_signal_stops_interactive_session_blocked_on_stdin(self, rcon_server, clean_env, monkeypatch) -> None:
        read_fd, write_fd = os.pipe()
        stdin = os.fdopen(read_fd)
        monkeypatch.setattr(sys, "stdin", stdin)
        app = _app(rcon_server)
        try:
            task = asyncio.ensure_future(app.run())
            await _wait_until(lambda: app._lines is not None)

            app.handle_shutdown(signal.SIGTERM, None)
            assert await asyncio.wait_for(task, 2.0) == 0
        finally:
            os.close(write_fd)
            await asyncio.sleep(0.05)
            stdin.close()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestLogging:
    @pytest.mark.asyncio
    async def test_logs_connect_on_demand(self, rcon_server, caplog) -> None:
        caplog.set_level(logging.DEBUG, logger="source_rcon.client.rcon_client")
        client = RconClient(rcon_server.host, rcon_server.port, "secret")
        try:
            await client.send("status")
            await client.send("list")
        finally:
            client.disconnect()
        messages = [r.getMessage() for r in caplog.records if r.name == "source_rcon.client.rcon_client"]
        assert messages == [f"RCON 127.0.0.1:{rcon_server.port}: Connecting before sending 'status'"]

    def test_setup_logging_rejects_unknown_level(self) -> None:
        with pytest.raises(ValueError):
            setup_logging("LOUD")
