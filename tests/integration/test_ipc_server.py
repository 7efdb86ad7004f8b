"""
Integration tests for the JSON-RPC IPC server.

Requests run through a real CommandOrchestrator over the in-memory
environment; one test goes through the UNIX socket end to end.
"""

import asyncio
import json

import pytest

from split_monitor_workspaces import __version__
from split_monitor_workspaces.errors import ErrorCode
from split_monitor_workspaces.ipc_server import IPCServer
from split_monitor_workspaces.models import LocalWorkspace


@pytest.fixture
def server(orchestrator, tmp_path):
    return IPCServer(orchestrator, tmp_path / "ipc.sock", keep_focused=True)


def request(method, params=None, request_id=1):
    return {"jsonrpc": "2.0", "method": method, "params": params or {}, "id": request_id}


class TestCommandMethods:
    """Test the three command methods and dispatch."""

    @pytest.mark.asyncio
    async def test_change_workspace(self, server, env):
        response = await server.handle_request(request("change_workspace", {"uwid": "a 1 a 4"}))

        assert response["id"] == 1
        assert response["result"]["success"] is True
        assert env.active[1] == 14

    @pytest.mark.asyncio
    async def test_move_window(self, server, env):
        env.add_window(9, at_cursor=True)

        response = await server.handle_request(
            request("move_window_to_workspace", {"selector": "c c a 2"})
        )

        assert "result" in response
        assert env.window_workspace[9] == 2

    @pytest.mark.asyncio
    async def test_toggle_special_numeric_param(self, server, env):
        response = await server.handle_request(request("toggle_special", {"slot": 1}))

        assert "result" in response
        assert env.active == {0: 100000, 1: 100001}

    @pytest.mark.asyncio
    async def test_dispatch(self, server, env):
        response = await server.handle_request(
            request("dispatch", {"command": "change_workspace", "argument": "c a 5"})
        )

        assert response["result"]["command"] == "change_workspace"
        assert env.active[0] == 5

    @pytest.mark.asyncio
    async def test_command_failure_is_error_response(self, server, env):
        response = await server.handle_request(request("toggle_special", {"slot": "9"}))

        assert "result" not in response
        assert response["error"]["code"] == ErrorCode.SPECIAL_SLOT_OUT_OF_RANGE.value
        assert response["error"]["kind"] == "RangeError"
        assert env.notifications == ["toggle_special: Invalid special id 9 (1..5)"]

    @pytest.mark.asyncio
    async def test_command_while_disconnected(self, orchestrator, env, tmp_path):
        server = IPCServer(orchestrator, tmp_path / "ipc.sock", is_connected=lambda: False)

        response = await server.handle_request(request("change_workspace", {"uwid": "c a 2"}))

        assert response["error"]["code"] == ErrorCode.SWAY_NOT_CONNECTED.value
        assert env.set_calls == []

    @pytest.mark.asyncio
    async def test_dispatch_unknown_command(self, server):
        response = await server.handle_request(
            request("dispatch", {"command": "fullscreen", "argument": ""})
        )

        assert response["error"]["code"] == ErrorCode.UNKNOWN_COMMAND.value


class TestParamsAndMethods:
    """Test request validation."""

    @pytest.mark.asyncio
    async def test_missing_param(self, server):
        response = await server.handle_request(request("change_workspace", {}))
        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS.value

    @pytest.mark.asyncio
    async def test_unknown_param(self, server):
        response = await server.handle_request(
            request("change_workspace", {"uwid": "c a 1", "monitor": 2})
        )
        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS.value

    @pytest.mark.asyncio
    async def test_unknown_method(self, server):
        response = await server.handle_request(request("rename_workspace"))

        assert response["error"]["code"] == ErrorCode.METHOD_NOT_FOUND.value
        assert "get_state" in response["error"]["context"]["available"]

    @pytest.mark.asyncio
    async def test_invalid_request(self, server):
        response = await server.handle_request({"jsonrpc": "2.0", "id": 4})

        assert response["error"]["code"] == ErrorCode.INVALID_REQUEST.value
        assert response["id"] == 4


class TestQueries:
    """Test get_state and health_check."""

    @pytest.mark.asyncio
    async def test_get_state(self, server, env):
        env.show(1, LocalWorkspace.special(0))

        response = await server.handle_request(request("get_state"))

        state = response["result"]
        assert state["focused_monitor"] == 0
        assert state["keep_focused"] is True
        assert state["monitors"][1]["active_workspace"] == 100001
        assert state["monitors"][1]["local"] == {"is_special": True, "index": 0}

    @pytest.mark.asyncio
    async def test_health_check(self, server):
        response = await server.handle_request(request("health_check"))

        health = response["result"]
        assert health["status"] == "healthy"
        assert health["version"] == __version__
        assert health["sway_connected"] is True

    @pytest.mark.asyncio
    async def test_health_check_disconnected(self, orchestrator, tmp_path):
        server = IPCServer(orchestrator, tmp_path / "ipc.sock", is_connected=lambda: False)

        response = await server.handle_request(request("health_check"))

        assert response["result"]["status"] == "critical"


class TestSocket:
    """Test the newline-delimited socket transport."""

    @pytest.mark.asyncio
    async def test_round_trip(self, server, env, monkeypatch):
        monkeypatch.delenv("LISTEN_FDS", raising=False)
        await server.start()
        try:
            assert oct(server.socket_path.stat().st_mode & 0o777) == oct(0o600)

            reader, writer = await asyncio.open_unix_connection(str(server.socket_path))
            writer.write(json.dumps(request("change_workspace", {"uwid": "c a 7"})).encode() + b"\n")
            writer.write(b"not json\n")
            await writer.drain()

            first = json.loads(await reader.readline())
            second = json.loads(await reader.readline())
            writer.close()

            assert first["result"]["success"] is True
            assert env.active[0] == 7
            assert second["error"]["code"] == ErrorCode.JSON_PARSE_ERROR.value
        finally:
            await server.stop()
