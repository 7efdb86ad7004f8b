"""Pytest configuration and fixtures for split-monitor-workspaces tests.

Provides an in-memory Environment for the core, its controllers and
the IPC server.
"""

from typing import Dict, List, Optional, Set

import pytest

from split_monitor_workspaces import codec
from split_monitor_workspaces.commands import CommandOrchestrator
from split_monitor_workspaces.environment import Environment
from split_monitor_workspaces.errors import ErrorCode, NotFoundError, SwayEnvironmentError
from split_monitor_workspaces.models import LocalWorkspace, WindowHandle
from split_monitor_workspaces.toggle import SpecialToggleController


class FakeEnvironment(Environment):
    """In-memory monitors, workspaces and windows.

    Every monitor starts on its first normal workspace. Workspaces are
    never destroyed, so ``existing`` only grows unless a test edits it.
    """

    def __init__(self, monitors: int = 2, focused: int = 0) -> None:
        self.monitors: List[int] = list(range(monitors))
        self.focused = focused
        self.active: Dict[int, int] = {}
        self.existing: Set[int] = set()
        self.names: Dict[int, str] = {}
        self.windows: Dict[int, WindowHandle] = {}
        self.window_workspace: Dict[int, int] = {}
        self.cursor_window: Optional[int] = None
        self.set_calls: List[tuple] = []
        self.notifications: List[str] = []
        self.fail_on_monitor: Optional[int] = None

        for monitor in self.monitors:
            self.show(monitor, LocalWorkspace.normal(0))

    # Test helpers
    def show(self, monitor: int, workspace: LocalWorkspace) -> int:
        workspace_id = codec.encode(monitor, workspace)
        self.active[monitor] = workspace_id
        self.existing.add(workspace_id)
        return workspace_id

    def local(self, monitor: int) -> LocalWorkspace:
        return codec.decode(monitor, self.active[monitor])

    def add_window(self, window_id: int, app_id: str = "foot", at_cursor: bool = False) -> WindowHandle:
        handle = WindowHandle(id=window_id, app_id=app_id, name=app_id)
        self.windows[window_id] = handle
        if at_cursor:
            self.cursor_window = window_id
        return handle

    # Environment
    async def current_monitor(self) -> int:
        return self.focused

    async def monitor_by_id(self, monitor_id: int) -> int:
        if monitor_id not in self.monitors:
            raise NotFoundError(ErrorCode.MONITOR_NOT_FOUND, f"No monitor with requested id {monitor_id}")
        return monitor_id

    async def all_monitors(self) -> List[int]:
        return sorted(self.monitors)

    async def active_global_workspace(self, monitor: int) -> int:
        return self.active[monitor]

    async def existing_normal_workspaces(self, monitor: int) -> List[LocalWorkspace]:
        found = [
            codec.decode(monitor, workspace_id)
            for workspace_id in self.existing
            if workspace_id < codec.SPECIAL_BASE and codec.owns(monitor, workspace_id)
        ]
        return sorted(found, key=lambda w: w.index)

    async def set_active_workspace(self, monitor: int, workspace_id: int, name: str) -> None:
        self.set_calls.append((monitor, workspace_id, name))
        if monitor == self.fail_on_monitor:
            raise SwayEnvironmentError("set_active_workspace", f"output of monitor {monitor} is gone")
        self.active[monitor] = workspace_id
        self.existing.add(workspace_id)
        self.names.setdefault(workspace_id, name)

    async def window_at_cursor(self) -> WindowHandle:
        if self.cursor_window is None:
            raise NotFoundError(ErrorCode.WINDOW_NOT_FOUND, "No window under cursor")
        return self.windows[self.cursor_window]

    async def window_by_handle(self, handle: int) -> WindowHandle:
        if handle not in self.windows:
            raise NotFoundError(ErrorCode.WINDOW_NOT_FOUND, f"No window with handle {handle:#x}")
        return self.windows[handle]

    async def move_window(self, window: WindowHandle, workspace_id: int, name: str) -> None:
        self.window_workspace[window.id] = workspace_id
        self.existing.add(workspace_id)
        self.names.setdefault(workspace_id, name)

    async def notify(self, message: str) -> None:
        self.notifications.append(message)


@pytest.fixture
def env() -> FakeEnvironment:
    """Two monitors, both on their first workspace, monitor 0 focused."""
    return FakeEnvironment(monitors=2)


@pytest.fixture
def make_env():
    """Factory for environments with a custom monitor count."""
    def _make(monitors: int = 2, focused: int = 0) -> FakeEnvironment:
        return FakeEnvironment(monitors=monitors, focused=focused)
    return _make


@pytest.fixture
def toggle(env) -> SpecialToggleController:
    return SpecialToggleController(env)


@pytest.fixture
def orchestrator(env, toggle) -> CommandOrchestrator:
    return CommandOrchestrator(env, toggle)
