"""Environment primitives consumed by the selector parser and the controllers.

``Environment`` is the contract the core relies on; ``SwayEnvironment``
binds it to a running Sway session over ``i3ipc.aio``.
"""

import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from i3ipc.aio import Connection

from . import codec
from .config import SplitWorkspacesConfig
from .errors import ErrorCode, NotFoundError, SwayEnvironmentError
from .models import LocalWorkspace, WindowHandle

logger = logging.getLogger(__name__)

WINDOW_TYPES = ("con", "floating_con")


class Environment(ABC):
    """Monitor, workspace and window primitives of the host compositor."""

    @abstractmethod
    async def current_monitor(self) -> int:
        """Monitor holding input focus."""

    @abstractmethod
    async def monitor_by_id(self, monitor_id: int) -> int:
        """Return ``monitor_id`` if it exists, else raise NotFoundError."""

    @abstractmethod
    async def all_monitors(self) -> List[int]:
        """Ids of every connected monitor, ascending."""

    @abstractmethod
    async def active_global_workspace(self, monitor: int) -> int:
        """Global id of the workspace shown on ``monitor``."""

    @abstractmethod
    async def existing_normal_workspaces(self, monitor: int) -> List[LocalWorkspace]:
        """Existing normal workspaces of ``monitor``, ascending by index."""

    @abstractmethod
    async def set_active_workspace(self, monitor: int, workspace_id: int, name: str) -> None:
        """Show ``workspace_id`` on ``monitor``, creating it as ``name`` if needed."""

    @abstractmethod
    async def window_at_cursor(self) -> WindowHandle:
        """Window under the input cursor, else raise NotFoundError."""

    @abstractmethod
    async def window_by_handle(self, handle: int) -> WindowHandle:
        """Window with the given handle, else raise NotFoundError."""

    @abstractmethod
    async def move_window(self, window: WindowHandle, workspace_id: int, name: str) -> None:
        """Move ``window`` to ``workspace_id``, creating it as ``name`` if needed."""

    @abstractmethod
    async def notify(self, message: str) -> None:
        """Show a user-visible notification."""


class MonitorRegistry:
    """Assigns stable integer ids to Sway outputs.

    An output keeps its id while connected. A reconnected output gets its
    previous id back when that id is free; otherwise the smallest id not held
    by a connected output is used.
    """

    def __init__(self) -> None:
        self._active: Dict[str, int] = {}
        self._remembered: Dict[str, int] = {}

    def sync(self, names: Iterable[str]) -> List[int]:
        """Reconcile with the currently active output names.

        Returns:
            Ids assigned to outputs that were not active before
        """
        names = list(names)
        current = set(names)

        for name in list(self._active):
            if name not in current:
                logger.info(f"Output {name} removed (monitor {self._active[name]})")
                del self._active[name]

        added = []
        for name in names:
            if name in self._active:
                continue
            taken = set(self._active.values())
            previous = self._remembered.get(name)
            if previous is not None and previous not in taken:
                monitor_id = previous
            else:
                monitor_id = next(i for i in itertools.count() if i not in taken)
            self._active[name] = monitor_id
            self._remembered[name] = monitor_id
            added.append(monitor_id)
            logger.info(f"Output {name} registered as monitor {monitor_id}")

        return added

    def id_of(self, name: str) -> Optional[int]:
        return self._active.get(name)

    def name_of(self, monitor_id: int) -> Optional[str]:
        for name, assigned in self._active.items():
            if assigned == monitor_id:
                return name
        return None

    def ids(self) -> List[int]:
        return sorted(self._active.values())


class SwayEnvironment(Environment):
    """Environment backed by a Sway IPC connection."""

    def __init__(
        self,
        conn: Connection,
        config: Optional[SplitWorkspacesConfig] = None,
        registry: Optional[MonitorRegistry] = None,
    ) -> None:
        """
        Args:
            conn: Connected async Sway IPC connection
            config: Daemon configuration (notification settings)
            registry: Output id registry, created empty if omitted
        """
        self.conn = conn
        self.config = config or SplitWorkspacesConfig()
        self.registry = registry or MonitorRegistry()

    async def refresh_monitors(self) -> List[int]:
        """Sync the registry with Sway's active outputs.

        Returns:
            Ids of newly added monitors
        """
        outputs = await self.conn.get_outputs()
        return self.registry.sync(o.name for o in outputs if o.active)

    # -------------------------
    # Monitors
    # -------------------------
    def _output_name(self, monitor: int) -> str:
        name = self.registry.name_of(monitor)
        if name is None:
            raise NotFoundError(
                ErrorCode.MONITOR_NOT_FOUND,
                f"No monitor with requested id {monitor}",
                identifier=monitor,
            )
        return name

    async def _focused_output(self) -> Optional[str]:
        workspaces = await self.conn.get_workspaces()
        for ws in workspaces:
            if ws.focused:
                return ws.output
        return None

    async def current_monitor(self) -> int:
        output = await self._focused_output()
        monitor = self.registry.id_of(output) if output else None
        if monitor is None:
            raise NotFoundError(
                ErrorCode.MONITOR_NOT_FOUND,
                f"Focused output {output!r} is not a registered monitor",
                identifier=output,
            )
        return monitor

    async def monitor_by_id(self, monitor_id: int) -> int:
        self._output_name(monitor_id)
        return monitor_id

    async def all_monitors(self) -> List[int]:
        return self.registry.ids()

    # -------------------------
    # Workspaces
    # -------------------------
    async def active_global_workspace(self, monitor: int) -> int:
        output = self._output_name(monitor)
        workspaces = await self.conn.get_workspaces()
        for ws in workspaces:
            if ws.output == output and ws.visible:
                return ws.num
        raise SwayEnvironmentError("get_workspaces", f"no visible workspace on output {output}")

    async def existing_normal_workspaces(self, monitor: int) -> List[LocalWorkspace]:
        workspaces = await self.conn.get_workspaces()
        found = {
            codec.decode(monitor, ws.num)
            for ws in workspaces
            if ws.num < codec.SPECIAL_BASE and codec.owns(monitor, ws.num)
        }
        return sorted(found, key=lambda w: w.index)

    async def set_active_workspace(self, monitor: int, workspace_id: int, name: str) -> None:
        output = self._output_name(monitor)
        focused = await self._focused_output()

        command = (
            f'focus output "{output}"; '
            f'workspace --no-auto-back-and-forth number "{name}"; '
            f'move workspace to output "{output}"'
        )
        # Switching a monitor's workspace must not steal focus from another monitor
        if focused and focused != output:
            command += f'; focus output "{focused}"'

        logger.debug(f"Monitor {monitor} ({output}) -> workspace {workspace_id}")
        await self._command("set_active_workspace", command)

    # -------------------------
    # Windows
    # -------------------------
    @staticmethod
    def _handle(con) -> WindowHandle:
        app_id = getattr(con, "app_id", None) or getattr(con, "window_class", None)
        return WindowHandle(id=con.id, app_id=app_id, name=con.name)

    async def window_at_cursor(self) -> WindowHandle:
        # No pointer hit-test over IPC; under focus-follows-mouse this is the focused window
        tree = await self.conn.get_tree()
        focused = tree.find_focused()
        if focused is None or focused.type not in WINDOW_TYPES:
            raise NotFoundError(ErrorCode.WINDOW_NOT_FOUND, "No window under cursor")
        return self._handle(focused)

    async def window_by_handle(self, handle: int) -> WindowHandle:
        tree = await self.conn.get_tree()
        con = tree.find_by_id(handle)
        if con is None or con.type not in WINDOW_TYPES:
            raise NotFoundError(
                ErrorCode.WINDOW_NOT_FOUND,
                f"No window with handle {handle:#x}",
                identifier=handle,
            )
        return self._handle(con)

    async def move_window(self, window: WindowHandle, workspace_id: int, name: str) -> None:
        owner = None
        for monitor in self.registry.ids():
            if codec.owns(monitor, workspace_id):
                owner = self._output_name(monitor)
                break

        workspaces = await self.conn.get_workspaces()
        existing = next((ws for ws in workspaces if ws.num == workspace_id), None)

        command = f'[con_id={window.id}] move --no-auto-back-and-forth container to workspace number "{name}"'
        if owner and (existing is None or existing.output != owner):
            # Newly created workspaces land on the focused output
            command += f'; [con_id={window.id}] move workspace to output "{owner}"'

        logger.debug(f"Window {window.id:#x} ({window.app_id}: {window.name!r}) -> workspace {workspace_id}")
        await self._command("move_window", command)

    async def _command(self, operation: str, command: str) -> None:
        replies = await self.conn.command(command)
        failures = [r.error for r in replies or [] if not r.success]
        if failures:
            raise SwayEnvironmentError(operation, "; ".join(str(f) for f in failures))

    # -------------------------
    # Notifications
    # -------------------------
    async def notify(self, message: str) -> None:
        if not self.config.notifications:
            return
        try:
            process = await asyncio.create_subprocess_exec(
                "notify-send",
                "-a", "split-monitor-workspaces",
                "-t", str(self.config.notification_timeout_ms),
                "split-monitor-workspaces",
                message,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=2.0)
            if process.returncode != 0:
                logger.warning(f"notify-send failed with code {process.returncode}: {stderr.decode()}")
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Failed to send notification: {e}")
