"""JSON-RPC IPC server for workspace commands.

Newline-delimited JSON-RPC 2.0 over a UNIX socket, with systemd socket
activation support. Sway key bindings reach the daemon through the CLI,
which speaks this protocol.
"""

import asyncio
import json
import logging
import os
import socket
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from . import __version__
from .commands import CommandOrchestrator
from .errors import ErrorCode, SplitWorkspacesError, SwayEnvironmentError, error_response, validate_params

logger = logging.getLogger(__name__)

# method -> (command, param holding the command argument)
COMMAND_METHODS = {
    "change_workspace": ("change_workspace", "uwid"),
    "move_window_to_workspace": ("move_window_to_workspace", "selector"),
    "toggle_special": ("toggle_special", "slot"),
}


class IPCServer:
    """JSON-RPC IPC server for CLI commands and queries."""

    def __init__(
        self,
        orchestrator: CommandOrchestrator,
        socket_path: Path,
        is_connected: Optional[Callable[[], bool]] = None,
        keep_focused: bool = False,
    ) -> None:
        """Initialize IPC server.

        Args:
            orchestrator: Command orchestrator handling workspace commands
            socket_path: UNIX socket path used without socket activation
            is_connected: Callable reporting Sway connection status
            keep_focused: Configured keep_focused flag, reported by get_state
        """
        self.orchestrator = orchestrator
        self.socket_path = socket_path
        self.is_connected = is_connected or (lambda: True)
        self.keep_focused = keep_focused
        self.started_at = time.time()
        self.server: Optional[asyncio.AbstractServer] = None
        self.clients: set = set()

    async def start(self) -> None:
        """Start listening, on the systemd-provided socket if there is one."""
        listen_fds = int(os.environ.get("LISTEN_FDS", 0))
        if listen_fds > 0:
            # Socket FD starts at 3 (0=stdin, 1=stdout, 2=stderr)
            fd = 3
            logger.info(f"Using systemd socket activation (FD {fd})")
            sock = socket.socket(fileno=fd)
            self.server = await asyncio.start_unix_server(self._handle_client, sock=sock)
            return

        socket_path = self.socket_path
        socket_path.parent.mkdir(parents=True, exist_ok=True)
        if socket_path.exists():
            socket_path.unlink()

        self.server = await asyncio.start_unix_server(self._handle_client, path=str(socket_path))

        # User-only access
        socket_path.chmod(0o600)
        socket_path.parent.chmod(0o700)

        logger.info(f"IPC server listening on {socket_path} (permissions: 0600)")

    async def stop(self) -> None:
        """Stop IPC server and close all connections."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()

        for writer in list(self.clients):
            writer.close()

        logger.info("IPC server stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.clients.add(writer)
        logger.debug("Client connected")

        try:
            while True:
                data = await reader.readline()
                if not data:
                    break

                try:
                    request = json.loads(data.decode())
                except json.JSONDecodeError as e:
                    logger.error(f"JSON decode error: {e}")
                    response = {
                        "jsonrpc": "2.0",
                        "error": {"code": ErrorCode.JSON_PARSE_ERROR.value, "message": "Parse error"},
                        "id": None,
                    }
                else:
                    response = await self.handle_request(request)

                writer.write(json.dumps(response).encode() + b"\n")
                await writer.drain()

        except (ConnectionResetError, BrokenPipeError) as e:
            logger.debug(f"Client connection lost: {e}")

        finally:
            self.clients.discard(writer)
            writer.close()
            logger.debug("Client disconnected")

    async def handle_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Handle one JSON-RPC request and build its response."""
        if not isinstance(request, dict) or "method" not in request:
            return {
                "jsonrpc": "2.0",
                "error": {"code": ErrorCode.INVALID_REQUEST.value, "message": "Invalid request"},
                "id": request.get("id") if isinstance(request, dict) else None,
            }

        method = request.get("method")
        params = request.get("params") or {}
        request_id = request.get("id")

        try:
            if method in COMMAND_METHODS:
                command, param = COMMAND_METHODS[method]
                validate_params(params, [param], [])
                result = await self._run_command(command, str(params[param]))
            elif method == "dispatch":
                validate_params(params, ["command"], ["argument"])
                result = await self._run_command(params["command"], str(params.get("argument", "")))
            elif method == "get_state":
                state = await self.orchestrator.state(keep_focused=self.keep_focused)
                result = state.model_dump(mode="json")
            elif method == "health_check":
                result = self._health_check()
            else:
                raise SplitWorkspacesError(
                    code=ErrorCode.METHOD_NOT_FOUND,
                    message=f"Method not found: {method}",
                    context={"available": sorted(list(COMMAND_METHODS) + ["dispatch", "get_state", "health_check"])},
                )

            return {"jsonrpc": "2.0", "result": result, "id": request_id}

        except SplitWorkspacesError as e:
            return error_response(e, request_id)
        except Exception as e:
            logger.error(f"Error handling {method}: {e}", exc_info=True)
            return error_response(e, request_id)

    async def _run_command(self, command: str, argument: str) -> Dict[str, Any]:
        if not self.is_connected():
            raise SwayEnvironmentError(command, "not connected to Sway", code=ErrorCode.SWAY_NOT_CONNECTED)
        result = await self.orchestrator.dispatch(command, argument)
        if not result.success:
            error = dict(result.error or {})
            raise _CommandFailed(error)
        return result.model_dump(mode="json")

    def _health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.is_connected() else "critical",
            "version": __version__,
            "sway_connected": self.is_connected(),
            "uptime_seconds": round(time.time() - self.started_at, 1),
            "clients": len(self.clients),
        }


class _CommandFailed(SplitWorkspacesError):
    """Carries an already-serialized command error to the JSON-RPC layer."""

    def __init__(self, error: Dict[str, Any]) -> None:
        self._error = error
        super().__init__(
            code=ErrorCode(error.get("code", ErrorCode.INTERNAL_ERROR.value)),
            message=error.get("message", "Command failed"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return self._error
