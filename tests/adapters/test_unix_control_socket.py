import asyncio

import pytest

from voice_subtitles.adapters.unix_control import (
    UnixSocketControlClient,
    UnixSocketControlServer,
)


async def answer(server: UnixSocketControlServer, count: int = 1) -> list:
    seen = []
    async for cmd in server.commands():
        seen.append(cmd)
        await server.send_response({"status": "ok", "action": cmd.action, "payload": cmd.payload})
        if len(seen) == count:
            return seen
    return seen


class TestUnixSocketControl:
    @pytest.mark.asyncio
    async def test_server_start_stop(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()
        assert (tmp_path / "test.sock").exists()
        await server.stop()
        assert not (tmp_path / "test.sock").exists()

    @pytest.mark.asyncio
    async def test_stale_socket_file_is_replaced(self, tmp_path):
        socket_file = tmp_path / "test.sock"
        socket_file.write_text("stale")
        server = UnixSocketControlServer(socket_path=str(socket_file))
        await server.start()
        assert socket_file.is_socket()
        await server.stop()

    @pytest.mark.asyncio
    async def test_client_server_toggle(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()
        consumer = asyncio.create_task(answer(server))

        client = UnixSocketControlClient(socket_path=socket_path)
        result = await client.send_command("toggle")
        assert result["status"] == "ok"
        assert result["action"] == "toggle"

        seen = await asyncio.wait_for(consumer, timeout=2.0)
        assert [cmd.action for cmd in seen] == ["toggle"]
        await server.stop()

    @pytest.mark.asyncio
    async def test_edit_payload_round_trips(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()
        consumer = asyncio.create_task(answer(server))

        client = UnixSocketControlClient(socket_path=socket_path)
        result = await client.send_command("edit", {"id": 42, "text": "fixed"})
        assert result["payload"] == {"id": 42, "text": "fixed"}

        seen = await asyncio.wait_for(consumer, timeout=2.0)
        assert seen[0].payload == {"id": 42, "text": "fixed"}
        await server.stop()

    @pytest.mark.asyncio
    async def test_sequential_clients_get_their_own_responses(self, tmp_path):
        socket_path = str(tmp_path / "test.sock")
        server = UnixSocketControlServer(socket_path=socket_path)
        await server.start()
        consumer = asyncio.create_task(answer(server, count=2))

        client = UnixSocketControlClient(socket_path=socket_path)
        first = await client.send_command("status")
        second = await client.send_command("cues")

        assert first["action"] == "status"
        assert second["action"] == "cues"
        await asyncio.wait_for(consumer, timeout=2.0)
        await server.stop()

    @pytest.mark.asyncio
    async def test_response_without_client_is_dropped(self, tmp_path):
        server = UnixSocketControlServer(socket_path=str(tmp_path / "test.sock"))
        await server.send_response({"status": "ok"})
