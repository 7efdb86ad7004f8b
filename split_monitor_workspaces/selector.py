"""UWID selector parsing.

A UWID addresses a monitor and one of its local workspaces, optionally
preceded by a window token for move commands:

    UWID           := [WindowToken] MonitorToken WorkspaceToken
    WindowToken    := "c" | <hex handle>    window under cursor | handle
    MonitorToken   := "c" | "a" <int>       current monitor | monitor id
    WorkspaceToken := "a" <int>             normal workspace, 1-based
                    | "s" <int>             special slot, 1-based
                    | "e" <int>             offset on the fixed 10-slot ring
                    | "r" <int>             offset over existing workspaces

Examples: ``c a 3``, ``a 1 e -1``, ``c r 1``, ``c c a 1 s 2``, ``0x5f c a 4``.

Parsing is a single pass over whitespace-separated tokens. Resolution
queries the Environment but never mutates it. Tokens after a complete
selector are ignored.
"""

import logging
import re
from typing import List, Optional

from . import codec
from .environment import Environment
from .errors import ErrorCode, ParseError, RangeError, StateError
from .models import LocalWorkspace, Selector, WindowHandle

logger = logging.getLogger(__name__)

HANDLE_DIGITS = 8
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


class TokenStream:
    """Sequential reader over the tokens of one selector."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._tokens: List[str] = text.split()
        self._pos = 0

    def next(self, expected: str) -> str:
        if self._pos >= len(self._tokens):
            raise ParseError(
                ErrorCode.MISSING_TOKEN,
                f"Could not parse UWID {self.text!r}: missing {expected}",
            )
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def number(self, expected: str) -> int:
        token = self.next(expected)
        try:
            return int(token)
        except ValueError:
            raise ParseError(
                ErrorCode.INVALID_NUMBER,
                f"Expected integer {expected}, got {token!r}",
                token=token,
            )

    @property
    def remaining(self) -> List[str]:
        return self._tokens[self._pos:]


async def active_workspace(env: Environment, monitor: int) -> LocalWorkspace:
    """Decode the workspace currently shown on ``monitor``.

    Raises:
        StateError: The shown workspace lies outside the monitor's namespace
    """
    workspace_id = await env.active_global_workspace(monitor)
    if not codec.owns(monitor, workspace_id):
        raise StateError(
            ErrorCode.FOREIGN_ACTIVE_WORKSPACE,
            f"Monitor {monitor} shows workspace {workspace_id} outside its namespace",
            monitor=monitor,
        )
    return codec.decode(monitor, workspace_id)


async def shown_workspace(env: Environment, monitor: int) -> Optional[LocalWorkspace]:
    """Decode the workspace shown on ``monitor``, or None if it is foreign.

    Named Sway workspaces (``num == -1``) and other monitors' ids are foreign.
    """
    workspace_id = await env.active_global_workspace(monitor)
    if not codec.owns(monitor, workspace_id):
        return None
    return codec.decode(monitor, workspace_id)


async def parse_monitor(tokens: TokenStream, env: Environment) -> int:
    method = tokens.next("monitor selector")
    if method == "c":
        return await env.current_monitor()
    if method == "a":
        return await env.monitor_by_id(tokens.number("monitor id"))
    raise ParseError(
        ErrorCode.UNKNOWN_SELECTION_METHOD,
        f"Invalid monitor selection method {method!r}",
        token=method,
    )


async def _current_normal(env: Environment, monitor: int) -> LocalWorkspace:
    current = await active_workspace(env, monitor)
    if current.is_special:
        raise StateError(
            ErrorCode.RELATIVE_ON_SPECIAL,
            "Cannot use relative selector on special workspace",
            monitor=monitor,
        )
    return current


async def parse_workspace(tokens: TokenStream, env: Environment, monitor: int) -> LocalWorkspace:
    method = tokens.next("workspace selector")

    if method == "a":
        index = tokens.number("workspace id") - 1
        if not 0 <= index < codec.WORKSPACES_PER_MONITOR:
            raise RangeError(
                ErrorCode.WORKSPACE_OUT_OF_RANGE,
                f"Invalid workspace id {index + 1} (1..{codec.WORKSPACES_PER_MONITOR})",
                value=index + 1,
                limit=codec.WORKSPACES_PER_MONITOR,
            )
        return LocalWorkspace.normal(index)

    if method == "s":
        index = tokens.number("special id") - 1
        if not 0 <= index < codec.SPECIAL_SLOTS:
            raise RangeError(
                ErrorCode.SPECIAL_SLOT_OUT_OF_RANGE,
                f"Invalid special id {index + 1} (1..{codec.SPECIAL_SLOTS})",
                value=index + 1,
                limit=codec.SPECIAL_SLOTS,
            )
        return LocalWorkspace.special(index)

    if method == "e":
        delta = tokens.number("workspace offset")
        current = await _current_normal(env, monitor)
        return LocalWorkspace.normal((current.index + delta) % codec.WORKSPACES_PER_MONITOR)

    if method == "r":
        delta = tokens.number("workspace offset")
        current = await _current_normal(env, monitor)
        existing = await env.existing_normal_workspaces(monitor)
        if not existing:
            raise StateError(
                ErrorCode.EMPTY_WORKSPACE_SET,
                f"Monitor {monitor} has no workspaces",
                monitor=monitor,
            )
        position = next((i for i, w in enumerate(existing) if w.index == current.index), None)
        if position is None:
            raise StateError(
                ErrorCode.ACTIVE_WORKSPACE_NOT_FOUND,
                f"Active workspace {current.index + 1} not found on monitor {monitor}",
                monitor=monitor,
            )
        return existing[(position + delta) % len(existing)]

    raise ParseError(
        ErrorCode.UNKNOWN_SELECTION_METHOD,
        f"Invalid workspace selection method {method!r}",
        token=method,
    )


def parse_handle(token: str) -> int:
    """Window handle from the last 8 hex digits of ``token``."""
    digits = token[2:] if token.lower().startswith("0x") else token
    digits = digits[-HANDLE_DIGITS:]
    if not _HEX_RE.fullmatch(digits):
        raise ParseError(
            ErrorCode.INVALID_WINDOW_HANDLE,
            f"Invalid window handle {token!r}",
            token=token,
        )
    return int(digits, 16)


async def parse_window(tokens: TokenStream, env: Environment) -> WindowHandle:
    token = tokens.next("window selector")
    if token == "c":
        return await env.window_at_cursor()
    return await env.window_by_handle(parse_handle(token))


async def parse_uwid(text: str, env: Environment) -> Selector:
    """Resolve ``MonitorToken WorkspaceToken``."""
    tokens = TokenStream(text)
    monitor = await parse_monitor(tokens, env)
    workspace = await parse_workspace(tokens, env, monitor)
    if tokens.remaining:
        logger.debug(f"Ignoring trailing tokens {tokens.remaining} in {text!r}")
    return Selector(monitor=monitor, workspace=workspace)


async def parse_window_uwid(text: str, env: Environment) -> Selector:
    """Resolve ``WindowToken MonitorToken WorkspaceToken``."""
    tokens = TokenStream(text)
    window = await parse_window(tokens, env)
    monitor = await parse_monitor(tokens, env)
    workspace = await parse_workspace(tokens, env, monitor)
    if tokens.remaining:
        logger.debug(f"Ignoring trailing tokens {tokens.remaining} in {text!r}")
    return Selector(monitor=monitor, workspace=workspace, window=window)
