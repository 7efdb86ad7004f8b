"""Pydantic models for split-monitor-workspaces.

Value types shared by the codec, the selector parser, the toggle controller
and the IPC surface.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class LocalWorkspace(BaseModel):
    """Workspace address relative to one monitor.

    Normal workspaces are indexed 0..WORKSPACES_PER_MONITOR-1, special
    (scratchpad) workspaces 0..SPECIAL_SLOTS-1. Range checks against those
    capacities happen in the codec, not here.

    Immutable after creation (frozen).
    """

    model_config = ConfigDict(frozen=True)

    is_special: bool = Field(False, description="Special (overlay) workspace kind")
    index: int = Field(..., ge=0, description="0-based index within the kind")

    @classmethod
    def normal(cls, index: int) -> "LocalWorkspace":
        return cls(is_special=False, index=index)

    @classmethod
    def special(cls, index: int) -> "LocalWorkspace":
        return cls(is_special=True, index=index)

    def label(self) -> str:
        """1-based label shown in workspace names ("3" or "s2")."""
        if self.is_special:
            return f"s{self.index + 1}"
        return str(self.index + 1)

    def __str__(self) -> str:
        kind = "special" if self.is_special else "normal"
        return f"{kind}:{self.index}"


class WindowHandle(BaseModel):
    """Window resolved from a WindowToken."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0, description="Sway container id")
    app_id: Optional[str] = Field(None, description="Wayland app_id or X11 class")
    name: Optional[str] = Field(None, description="Window title")


class Selector(BaseModel):
    """Resolved UWID: a monitor and a local workspace, optionally a window."""

    model_config = ConfigDict(frozen=True)

    monitor: int = Field(..., ge=0)
    workspace: LocalWorkspace
    window: Optional[WindowHandle] = None


class CommandResult(BaseModel):
    """Outcome of one command at the dispatch boundary."""

    command: str
    argument: str = ""
    success: bool
    error: Optional[Dict[str, Any]] = None


class MonitorState(BaseModel):
    """Snapshot of one monitor for the get_state query."""

    id: int
    active_workspace: int = Field(..., description="Global workspace id shown on the monitor")
    local: Optional[LocalWorkspace] = Field(None, description="Decoded active workspace, if owned")
    last_normal: LocalWorkspace = Field(..., description="Toggle memory entry")


class DaemonState(BaseModel):
    """Full state returned by get_state."""

    focused_monitor: Optional[int] = None
    monitors: List[MonitorState] = Field(default_factory=list)
    keep_focused: bool = False
