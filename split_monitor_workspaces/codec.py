"""Workspace namespace codec.

Packs a (monitor, local workspace) pair into the flat workspace number space
Sway shares between all outputs, and back.

Normal workspaces get a contiguous block per monitor:

    WORKSPACE_BASE + monitor * WORKSPACES_PER_MONITOR + index

Special workspaces are interleaved by monitor with stride SPECIAL_SLOTS, so
the same slot maps to a distinct id on every monitor while the owning
monitor is still recoverable from the residue:

    SPECIAL_BASE + slot * SPECIAL_SLOTS + monitor
"""

from .errors import CapacityError, ErrorCode, RangeError
from .models import LocalWorkspace

WORKSPACE_BASE = 1
WORKSPACES_PER_MONITOR = 10
SPECIAL_BASE = 100_000
SPECIAL_SLOTS = 5


def _check_monitor(monitor: int) -> None:
    if monitor < 0:
        raise RangeError(
            ErrorCode.INVALID_MONITOR_ID,
            f"Invalid monitor id {monitor}",
            value=monitor,
        )


def encode(monitor: int, local: LocalWorkspace) -> int:
    """Return the global workspace id of ``local`` on ``monitor``.

    Raises:
        RangeError: index outside the kind's capacity, or negative monitor
        CapacityError: monitor id would collide with another monitor's ids
    """
    _check_monitor(monitor)

    if local.is_special:
        if local.index >= SPECIAL_SLOTS:
            raise RangeError(
                ErrorCode.SPECIAL_SLOT_OUT_OF_RANGE,
                f"Invalid special workspace id {local.index + 1} (max {SPECIAL_SLOTS})",
                value=local.index,
                limit=SPECIAL_SLOTS,
            )
        # Residue classes mod SPECIAL_SLOTS identify the monitor
        if monitor >= SPECIAL_SLOTS:
            raise CapacityError(monitor, f"special workspaces support {SPECIAL_SLOTS} monitors")
        return SPECIAL_BASE + local.index * SPECIAL_SLOTS + monitor

    if local.index >= WORKSPACES_PER_MONITOR:
        raise RangeError(
            ErrorCode.WORKSPACE_OUT_OF_RANGE,
            f"Invalid workspace id {local.index + 1} (max {WORKSPACES_PER_MONITOR})",
            value=local.index,
            limit=WORKSPACES_PER_MONITOR,
        )
    workspace_id = WORKSPACE_BASE + monitor * WORKSPACES_PER_MONITOR + local.index
    if workspace_id >= SPECIAL_BASE:
        raise CapacityError(monitor, "normal workspace block overlaps the special range")
    return workspace_id


def owns(monitor: int, workspace_id: int) -> bool:
    """Whether ``workspace_id`` lies in ``monitor``'s namespace."""
    if workspace_id >= SPECIAL_BASE:
        offset = workspace_id - SPECIAL_BASE
        if offset < monitor:
            return False
        return (offset - monitor) % SPECIAL_SLOTS == 0

    # Unnumbered Sway workspaces report num == -1
    if workspace_id < WORKSPACE_BASE:
        return False
    return (workspace_id - WORKSPACE_BASE) // WORKSPACES_PER_MONITOR == monitor


def decode(monitor: int, workspace_id: int) -> LocalWorkspace:
    """Inverse of :func:`encode`.

    Raises:
        RangeError: ``workspace_id`` is not owned by ``monitor``
    """
    if not owns(monitor, workspace_id):
        raise RangeError(
            ErrorCode.WORKSPACE_NOT_OWNED,
            f"Workspace {workspace_id} does not belong to monitor {monitor}",
            value=workspace_id,
        )

    if workspace_id >= SPECIAL_BASE:
        return LocalWorkspace.special((workspace_id - SPECIAL_BASE - monitor) // SPECIAL_SLOTS)
    return LocalWorkspace.normal(workspace_id - WORKSPACE_BASE - monitor * WORKSPACES_PER_MONITOR)


def workspace_name(monitor: int, local: LocalWorkspace) -> str:
    """Sway workspace name used when the workspace is created on demand.

    The leading number keeps ``workspace number`` addressing working; the
    suffix is the per-monitor label ("23:3", "100007:s2").
    """
    return f"{encode(monitor, local)}:{local.label()}"
