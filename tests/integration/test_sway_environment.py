"""
Integration tests for SwayEnvironment against a mocked i3ipc.aio connection.

Tests verify the Sway commands sent for workspace switches and window moves,
output bookkeeping and window lookups in the container tree.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from split_monitor_workspaces.config import SplitWorkspacesConfig
from split_monitor_workspaces.environment import SwayEnvironment
from split_monitor_workspaces.errors import ErrorCode, NotFoundError, SwayEnvironmentError
from split_monitor_workspaces.models import LocalWorkspace, WindowHandle


def make_output(name: str, active: bool = True) -> MagicMock:
    output = MagicMock()
    output.name = name
    output.active = active
    return output


def make_workspace(num: int, output: str, visible: bool = False, focused: bool = False) -> MagicMock:
    workspace = MagicMock()
    workspace.num = num
    workspace.name = str(num)
    workspace.output = output
    workspace.visible = visible
    workspace.focused = focused
    return workspace


def make_container(con_id: int, con_type: str = "con", app_id: str = "foot") -> MagicMock:
    con = MagicMock()
    con.id = con_id
    con.type = con_type
    con.app_id = app_id
    con.name = f"{app_id} window"
    return con


def command_reply(success: bool = True, error: str = None) -> MagicMock:
    reply = MagicMock()
    reply.success = success
    reply.error = error
    return reply


@pytest.fixture
def mock_sway_connection():
    """i3ipc.aio.Connection with two outputs, DP-1 focused."""
    conn = MagicMock()
    conn.get_outputs = AsyncMock(return_value=[
        make_output("eDP-1"),
        make_output("DP-1"),
        make_output("HDMI-A-1", active=False),
    ])
    conn.get_workspaces = AsyncMock(return_value=[
        make_workspace(1, "eDP-1", visible=True),
        make_workspace(3, "eDP-1"),
        make_workspace(11, "DP-1", visible=True, focused=True),
        make_workspace(14, "DP-1"),
        make_workspace(-1, "DP-1"),
    ])
    conn.command = AsyncMock(return_value=[command_reply()])
    conn.get_tree = AsyncMock()
    return conn


@pytest_asyncio.fixture
async def sway_env(mock_sway_connection):
    env = SwayEnvironment(mock_sway_connection, SplitWorkspacesConfig(notification_timeout_ms=2000))
    await env.refresh_monitors()
    return env


class TestMonitors:
    """Test monitor primitives."""

    @pytest.mark.asyncio
    async def test_only_active_outputs_registered(self, sway_env):
        assert await sway_env.all_monitors() == [0, 1]
        assert sway_env.registry.id_of("HDMI-A-1") is None

    @pytest.mark.asyncio
    async def test_current_monitor_from_focused_workspace(self, sway_env):
        assert await sway_env.current_monitor() == 1

    @pytest.mark.asyncio
    async def test_monitor_by_id(self, sway_env):
        assert await sway_env.monitor_by_id(0) == 0
        with pytest.raises(NotFoundError) as exc_info:
            await sway_env.monitor_by_id(4)
        assert exc_info.value.code == ErrorCode.MONITOR_NOT_FOUND

    @pytest.mark.asyncio
    async def test_output_added(self, sway_env, mock_sway_connection):
        mock_sway_connection.get_outputs.return_value.append(make_output("DP-2"))

        assert await sway_env.refresh_monitors() == [2]


class TestWorkspaces:
    """Test workspace queries and switching."""

    @pytest.mark.asyncio
    async def test_active_global_workspace(self, sway_env):
        assert await sway_env.active_global_workspace(0) == 1
        assert await sway_env.active_global_workspace(1) == 11

    @pytest.mark.asyncio
    async def test_no_visible_workspace(self, sway_env, mock_sway_connection):
        mock_sway_connection.get_workspaces.return_value = []
        with pytest.raises(SwayEnvironmentError):
            await sway_env.active_global_workspace(0)

    @pytest.mark.asyncio
    async def test_existing_normal_workspaces(self, sway_env, mock_sway_connection):
        mock_sway_connection.get_workspaces.return_value.append(make_workspace(100001, "DP-1"))

        assert await sway_env.existing_normal_workspaces(0) == [
            LocalWorkspace.normal(0),
            LocalWorkspace.normal(2),
        ]
        assert await sway_env.existing_normal_workspaces(1) == [
            LocalWorkspace.normal(0),
            LocalWorkspace.normal(3),
        ]

    @pytest.mark.asyncio
    async def test_set_active_workspace_on_focused_output(self, sway_env, mock_sway_connection):
        await sway_env.set_active_workspace(1, 13, "13:3")

        mock_sway_connection.command.assert_awaited_once_with(
            'focus output "DP-1"; workspace --no-auto-back-and-forth number "13:3"; move workspace to output "DP-1"'
        )

    @pytest.mark.asyncio
    async def test_set_active_workspace_restores_focus(self, sway_env, mock_sway_connection):
        await sway_env.set_active_workspace(0, 100000, "100000:s1")

        mock_sway_connection.command.assert_awaited_once_with(
            'focus output "eDP-1"; workspace --no-auto-back-and-forth number "100000:s1"; '
            'move workspace to output "eDP-1"; focus output "DP-1"'
        )

    @pytest.mark.asyncio
    async def test_switch_to_shown_workspace_never_bounces(self, sway_env, mock_sway_connection):
        """workspace_auto_back_and_forth must not turn a reset into a switch away."""
        await sway_env.set_active_workspace(0, 1, "1:1")

        command = mock_sway_connection.command.await_args.args[0]
        assert 'workspace --no-auto-back-and-forth number "1:1"' in command

    @pytest.mark.asyncio
    async def test_failed_command_raises(self, sway_env, mock_sway_connection):
        mock_sway_connection.command.return_value = [
            command_reply(),
            command_reply(success=False, error="No output matched"),
        ]

        with pytest.raises(SwayEnvironmentError) as exc_info:
            await sway_env.set_active_workspace(0, 2, "2:2")

        assert exc_info.value.code == ErrorCode.SWAY_COMMAND_FAILED
        assert "No output matched" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unknown_monitor(self, sway_env, mock_sway_connection):
        with pytest.raises(NotFoundError):
            await sway_env.set_active_workspace(3, 31, "31:1")
        mock_sway_connection.command.assert_not_awaited()


class TestWindows:
    """Test window lookup and moves."""

    @pytest.mark.asyncio
    async def test_window_at_cursor_is_focused_window(self, sway_env, mock_sway_connection):
        tree = MagicMock()
        tree.find_focused.return_value = make_container(0x42)
        mock_sway_connection.get_tree.return_value = tree

        window = await sway_env.window_at_cursor()

        assert window == WindowHandle(id=0x42, app_id="foot", name="foot window")

    @pytest.mark.asyncio
    async def test_focused_workspace_is_not_a_window(self, sway_env, mock_sway_connection):
        tree = MagicMock()
        tree.find_focused.return_value = make_container(7, con_type="workspace")
        mock_sway_connection.get_tree.return_value = tree

        with pytest.raises(NotFoundError) as exc_info:
            await sway_env.window_at_cursor()
        assert exc_info.value.code == ErrorCode.WINDOW_NOT_FOUND

    @pytest.mark.asyncio
    async def test_window_by_handle(self, sway_env, mock_sway_connection):
        tree = MagicMock()
        tree.find_by_id.return_value = make_container(0x5F, con_type="floating_con", app_id="firefox")
        mock_sway_connection.get_tree.return_value = tree

        window = await sway_env.window_by_handle(0x5F)

        tree.find_by_id.assert_called_once_with(0x5F)
        assert window.app_id == "firefox"

    @pytest.mark.asyncio
    async def test_window_by_unknown_handle(self, sway_env, mock_sway_connection):
        tree = MagicMock()
        tree.find_by_id.return_value = None
        mock_sway_connection.get_tree.return_value = tree

        with pytest.raises(NotFoundError):
            await sway_env.window_by_handle(0xDEAD)

    @pytest.mark.asyncio
    async def test_move_to_existing_workspace_on_owner(self, sway_env, mock_sway_connection):
        window = WindowHandle(id=42)

        await sway_env.move_window(window, 14, "14:4")

        mock_sway_connection.command.assert_awaited_once_with(
            '[con_id=42] move --no-auto-back-and-forth container to workspace number "14:4"'
        )

    @pytest.mark.asyncio
    async def test_move_to_new_workspace_sends_it_to_owner(self, sway_env, mock_sway_connection):
        window = WindowHandle(id=42)

        await sway_env.move_window(window, 5, "5:5")

        mock_sway_connection.command.assert_awaited_once_with(
            '[con_id=42] move --no-auto-back-and-forth container to workspace number "5:5"; '
            '[con_id=42] move workspace to output "eDP-1"'
        )

    @pytest.mark.asyncio
    async def test_move_logs_window_details(self, sway_env, caplog):
        window = WindowHandle(id=42, app_id="firefox", name="Mozilla Firefox")

        with caplog.at_level(logging.DEBUG, logger="split_monitor_workspaces.environment"):
            await sway_env.move_window(window, 14, "14:4")

        assert "firefox" in caplog.text
        assert "Mozilla Firefox" in caplog.text


class TestNotify:
    """Test desktop notifications via notify-send."""

    @pytest.mark.asyncio
    async def test_notify_send(self, sway_env):
        process = MagicMock()
        process.communicate = AsyncMock(return_value=(b"", b""))
        process.returncode = 0

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as exec_mock:
            await sway_env.notify("toggle_special: Invalid special id 6 (1..5)")

        args = exec_mock.await_args.args
        assert args[0] == "notify-send"
        assert "2000" in args
        assert args[-1] == "toggle_special: Invalid special id 6 (1..5)"

    @pytest.mark.asyncio
    async def test_notifications_disabled(self, mock_sway_connection):
        env = SwayEnvironment(mock_sway_connection, SplitWorkspacesConfig(notifications=False))

        with patch("asyncio.create_subprocess_exec", AsyncMock()) as exec_mock:
            await env.notify("ignored")

        exec_mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_notify_send_is_logged(self, sway_env, caplog):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("notify-send"))):
            await sway_env.notify("message")

        assert "Failed to send notification" in caplog.text
