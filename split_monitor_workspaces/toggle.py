"""Special workspace (scratchpad) toggle across all monitors.

Each monitor has its own id for a given special slot, so showing the overlay
means switching every monitor. The enter/exit decision is taken from the
focused monitor only.
"""

import logging
from typing import Dict, List, Optional, Tuple

from . import codec
from .environment import Environment
from .errors import ErrorCode, ParseError
from .models import LocalWorkspace
from .selector import shown_workspace

logger = logging.getLogger(__name__)

DEFAULT_NORMAL = LocalWorkspace.normal(0)


class SpecialToggleController:
    """Shows and hides special workspaces, restoring normal ones on exit.

    ``last_normal`` remembers, per monitor, the normal workspace shown when
    the overlay was entered. Switching directly from one special slot to
    another keeps that memory: it always refers to the normal state that
    preceded the overlay.

    Not safe for concurrent use on its own; CommandOrchestrator serializes
    calls.
    """

    def __init__(self, env: Environment) -> None:
        self.env = env
        self.last_normal: Dict[int, LocalWorkspace] = {}

    def remembered(self, monitor: int) -> LocalWorkspace:
        return self.last_normal.get(monitor, DEFAULT_NORMAL)

    async def toggle_special(self, slot: LocalWorkspace) -> None:
        if not slot.is_special:
            raise ParseError(
                ErrorCode.NOT_A_SPECIAL_SLOT,
                f"Workspace {slot} is not a special workspace",
            )

        focus_monitor = await self.env.current_monitor()
        # A foreign workspace (named, or another monitor's) counts as normal
        focus = await shown_workspace(self.env, focus_monitor)
        in_overlay = focus is not None and focus.is_special
        monitors = await self.env.all_monitors()

        if in_overlay and focus.index == slot.index:
            logger.info(f"Hiding special workspace {slot.index + 1} on {len(monitors)} monitor(s)")
            targets = self._plan(monitors, self.remembered)
            await self._apply(targets)
            return

        # Validate every target before snapshotting or switching anything
        targets = self._plan(monitors, lambda monitor: slot)

        if not in_overlay:
            await self._snapshot(monitors)

        logger.info(f"Showing special workspace {slot.index + 1} on {len(monitors)} monitor(s)")
        await self._apply(targets)

    def _plan(self, monitors: List[int], workspace_for) -> List[Tuple[int, int, str]]:
        """Encode every monitor's target; raises before anything is switched."""
        targets = []
        for monitor in monitors:
            workspace = workspace_for(monitor)
            targets.append((
                monitor,
                codec.encode(monitor, workspace),
                codec.workspace_name(monitor, workspace),
            ))
        return targets

    async def _snapshot(self, monitors: List[int]) -> None:
        snapshot: Dict[int, LocalWorkspace] = {}
        for monitor in monitors:
            current = await self._normal_or_none(monitor)
            if current is not None:
                snapshot[monitor] = current
        self.last_normal.update(snapshot)
        logger.debug(f"Toggle memory: {self.describe()}")

    async def _normal_or_none(self, monitor: int) -> Optional[LocalWorkspace]:
        workspace_id = await self.env.active_global_workspace(monitor)
        if not codec.owns(monitor, workspace_id):
            logger.warning(f"Monitor {monitor} shows foreign workspace {workspace_id}, not remembered")
            return None
        workspace = codec.decode(monitor, workspace_id)
        return None if workspace.is_special else workspace

    async def _apply(self, targets: List[Tuple[int, int, str]]) -> None:
        # Not transactional: an environment failure leaves earlier monitors switched
        for monitor, workspace_id, name in targets:
            await self.env.set_active_workspace(monitor, workspace_id, name)

    def describe(self) -> Dict[int, str]:
        return {monitor: str(workspace) for monitor, workspace in sorted(self.last_normal.items())}
