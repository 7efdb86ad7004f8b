"""
split-monitor-workspaces CLI

Sends workspace commands to the daemon. Meant to be bound in the Sway
config, e.g.:

    bindsym $mod+1 exec split-monitor-workspaces change_workspace c a 1
    bindsym $mod+Shift+1 exec split-monitor-workspaces move_window_to_workspace c c a 1
    bindsym $mod+grave exec split-monitor-workspaces toggle_special 1

Usage:
    split-monitor-workspaces change_workspace <UWID>
    split-monitor-workspaces move_window_to_workspace <WindowToken> <UWID>
    split-monitor-workspaces toggle_special <slot>
    split-monitor-workspaces state [--json]
    split-monitor-workspaces health [--json]
    split-monitor-workspaces daemon
"""

import json
import socket
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.table import Table

from .config import default_socket_path, load_config
from .errors import ConfigLoadError

# Selector tokens such as "-1" are offsets, not options
SELECTOR_CONTEXT = {"ignore_unknown_options": True}


class DaemonClient:
    """JSON-RPC client for daemon communication."""

    def __init__(self, socket_path: Optional[Path] = None):
        """
        Initialize daemon client.

        Args:
            socket_path: Path to daemon socket (default: configured socket path)
        """
        self.socket_path = socket_path or default_socket_path()
        self.request_id = 0

    def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call JSON-RPC method on daemon.

        Args:
            method: Method name
            params: Method parameters (optional)

        Returns:
            Method result

        Raises:
            RuntimeError: If daemon is not running or returns error
        """
        self.request_id += 1

        request = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or {},
            "id": self.request_id
        }

        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(5.0)
            sock.connect(str(self.socket_path))

            sock.sendall(json.dumps(request).encode() + b'\n')

            response_data = b''
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                response_data += chunk
                if b'\n' in chunk:
                    break

            sock.close()

        except socket.timeout:
            raise RuntimeError(
                "Timeout connecting to daemon (5s). Check daemon status:\n"
                "  systemctl --user status split-monitor-workspaces"
            )
        except FileNotFoundError:
            raise RuntimeError(
                f"Daemon socket not found: {self.socket_path}\n"
                "Start daemon with: systemctl --user start split-monitor-workspaces"
            )
        except ConnectionRefusedError:
            raise RuntimeError(
                "Daemon not running. Start with:\n"
                "  systemctl --user start split-monitor-workspaces"
            )

        try:
            response = json.loads(response_data.decode())
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise RuntimeError(
                "Daemon closed the connection without a valid reply. Check logs:\n"
                "  journalctl --user -u split-monitor-workspaces"
            )

        if "error" in response:
            error = response["error"]
            raise RuntimeError(error.get('message', 'Unknown error'))

        return response.get("result")


def _client() -> DaemonClient:
    try:
        return DaemonClient(load_config().socket_path)
    except ConfigLoadError:
        return DaemonClient()


def _send(method: str, param: str, args) -> None:
    console = Console(stderr=True)
    try:
        _client().call(method, {param: " ".join(args)})
    except RuntimeError as e:
        console.print(f"[red]✗[/red] {method}: {e}")
        sys.exit(1)


@click.group()
def cli():
    """Per-monitor workspace namespaces for Sway."""
    pass


@cli.command("change_workspace", context_settings=SELECTOR_CONTEXT)
@click.argument("uwid", nargs=-1, required=True)
def change_workspace(uwid):
    """Switch workspace, e.g. 'c a 3', 'c e 1', 'a 1 r -1'."""
    _send("change_workspace", "uwid", uwid)


@cli.command("move_window_to_workspace", context_settings=SELECTOR_CONTEXT)
@click.argument("selector", nargs=-1, required=True)
def move_window_to_workspace(selector):
    """Move a window, e.g. 'c c a 2' or '0x5f a 1 a 3'."""
    _send("move_window_to_workspace", "selector", selector)


@cli.command("toggle_special", context_settings=SELECTOR_CONTEXT)
@click.argument("slot", nargs=-1, required=True)
def toggle_special(slot):
    """Show or hide special workspace SLOT (1-based) on all monitors."""
    _send("toggle_special", "slot", slot)


@cli.command()
@click.option('--json', 'output_json', is_flag=True, help='Output JSON instead of a table')
def state(output_json: bool):
    """Show monitors, their active workspaces and the toggle memory."""
    console = Console()

    try:
        data = _client().call("get_state")
    except RuntimeError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(1)

    if output_json:
        console.print_json(json.dumps(data))
        return

    table = Table(title="Monitors")
    table.add_column("Monitor", justify="right")
    table.add_column("Active id", justify="right")
    table.add_column("Workspace")
    table.add_column("Restores to")

    for monitor in data.get("monitors", []):
        local = monitor.get("local")
        if local is None:
            shown = "[yellow]foreign[/yellow]"
        elif local["is_special"]:
            shown = f"[magenta]special {local['index'] + 1}[/magenta]"
        else:
            shown = str(local["index"] + 1)
        marker = " *" if monitor["id"] == data.get("focused_monitor") else ""
        table.add_row(
            f"{monitor['id']}{marker}",
            str(monitor["active_workspace"]),
            shown,
            str(monitor["last_normal"]["index"] + 1),
        )

    console.print(table)


@cli.command()
@click.option('--json', 'output_json', is_flag=True, help='Output JSON')
def health(output_json: bool):
    """Check daemon health.

    Exit codes:
      0 - Healthy
      2 - Critical (daemon not running or Sway disconnected)
    """
    console = Console()

    try:
        data = _client().call("health_check")
    except RuntimeError as e:
        console.print(f"[red]✗[/red] {e}")
        sys.exit(2)

    if output_json:
        console.print_json(json.dumps(data))
    else:
        color = "green" if data["status"] == "healthy" else "red"
        console.print(
            f"[{color}]{data['status']}[/{color}] "
            f"v{data['version']} uptime {data['uptime_seconds']}s"
        )

    sys.exit(0 if data["status"] == "healthy" else 2)


@cli.command()
def daemon():
    """Run the daemon in the foreground."""
    from .daemon import main
    main()


if __name__ == "__main__":
    cli()
