"""User-facing commands and the single command-dispatch boundary.

Every command and every monitor reset runs under one asyncio.Lock: the
Environment calls are awaited, and a toggle's read-decide-fan-out sequence
must not interleave with another command or with a monitor-added reset.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from . import codec
from .environment import Environment
from .errors import (
    ErrorCode,
    NotFoundError,
    ParseError,
    RangeError,
    SplitWorkspacesError,
    StateError,
)
from .models import CommandResult, DaemonState, LocalWorkspace, MonitorState
from .selector import TokenStream, parse_uwid, parse_window_uwid, shown_workspace
from .toggle import SpecialToggleController

logger = logging.getLogger(__name__)


class CommandOrchestrator:
    """Implements change_workspace, move_window_to_workspace and toggle_special."""

    def __init__(self, env: Environment, toggle: Optional[SpecialToggleController] = None) -> None:
        """
        Args:
            env: Environment the commands act on
            toggle: Toggle controller; created for ``env`` if omitted
        """
        self.env = env
        self.toggle = toggle or SpecialToggleController(env)
        self._lock = asyncio.Lock()
        self._commands: Dict[str, Callable[[str], Awaitable[None]]] = {
            "change_workspace": self.change_workspace,
            "move_window_to_workspace": self.move_window_to_workspace,
            "toggle_special": self.toggle_special,
        }

    @property
    def command_names(self):
        return sorted(self._commands)

    # -------------------------
    # Lifecycle
    # -------------------------
    async def initialize(self) -> None:
        logger.info("Resetting all monitors to their first workspace")
        await self.reset_all_monitors()

    async def on_monitor_added(self) -> None:
        logger.info("Monitor added, resetting all monitors")
        await self.reset_all_monitors()

    async def reset_all_monitors(self) -> None:
        async with self._lock:
            monitors = await self.env.all_monitors()
            first = LocalWorkspace.normal(0)
            targets = [
                (monitor, codec.encode(monitor, first), codec.workspace_name(monitor, first))
                for monitor in monitors
            ]
            for monitor, workspace_id, name in targets:
                await self.env.set_active_workspace(monitor, workspace_id, name)

    # -------------------------
    # Commands
    # -------------------------
    async def change_workspace(self, text: str) -> None:
        async with self._lock:
            focus_monitor = await self.env.current_monitor()
            focus = await shown_workspace(self.env, focus_monitor)
            if focus is not None and focus.is_special:
                # Any workspace change while the overlay is shown dismisses it
                logger.debug(f"Overlay shown, change_workspace {text!r} dismisses it")
                await self.toggle.toggle_special(focus)
                return

            selector = await parse_uwid(text, self.env)
            if selector.workspace.is_special:
                raise StateError(
                    ErrorCode.SPECIAL_TARGET_DISALLOWED,
                    "Cannot focus a special workspace on a single monitor",
                    monitor=selector.monitor,
                )

            workspace_id = codec.encode(selector.monitor, selector.workspace)
            name = codec.workspace_name(selector.monitor, selector.workspace)
            await self.env.set_active_workspace(selector.monitor, workspace_id, name)

    async def move_window_to_workspace(self, text: str) -> None:
        async with self._lock:
            selector = await parse_window_uwid(text, self.env)
            workspace_id = codec.encode(selector.monitor, selector.workspace)
            name = codec.workspace_name(selector.monitor, selector.workspace)
            await self.env.move_window(selector.window, workspace_id, name)

    async def toggle_special(self, text: str) -> None:
        tokens = TokenStream(text)
        slot_id = tokens.number("special id")
        if not 0 < slot_id <= codec.SPECIAL_SLOTS:
            raise RangeError(
                ErrorCode.SPECIAL_SLOT_OUT_OF_RANGE,
                f"Invalid special id {slot_id} (1..{codec.SPECIAL_SLOTS})",
                value=slot_id,
                limit=codec.SPECIAL_SLOTS,
            )
        async with self._lock:
            await self.toggle.toggle_special(LocalWorkspace.special(slot_id - 1))

    async def state(self, keep_focused: bool = False) -> DaemonState:
        async with self._lock:
            monitors = []
            for monitor in await self.env.all_monitors():
                workspace_id = await self.env.active_global_workspace(monitor)
                local = codec.decode(monitor, workspace_id) if codec.owns(monitor, workspace_id) else None
                monitors.append(MonitorState(
                    id=monitor,
                    active_workspace=workspace_id,
                    local=local,
                    last_normal=self.toggle.remembered(monitor),
                ))
            try:
                focused = await self.env.current_monitor()
            except NotFoundError:
                focused = None
            return DaemonState(focused_monitor=focused, monitors=monitors, keep_focused=keep_focused)

    # -------------------------
    # Dispatch boundary
    # -------------------------
    async def dispatch(self, command: str, argument: str = "") -> CommandResult:
        """Run one command, converting any failure into a result and a notification."""
        handler = self._commands.get(command)
        try:
            if handler is None:
                raise ParseError(
                    ErrorCode.UNKNOWN_COMMAND,
                    f"Unknown command {command!r} (expected one of: {', '.join(self.command_names)})",
                    token=command,
                )
            await handler(argument)
        except SplitWorkspacesError as e:
            logger.warning(f"{command} {argument!r} failed: [{e.kind}] {e.message}")
            await self.env.notify(f"{command}: {e.message}")
            return CommandResult(command=command, argument=argument, success=False, error=e.to_dict())

        logger.debug(f"{command} {argument!r} done")
        return CommandResult(command=command, argument=argument, success=True)
