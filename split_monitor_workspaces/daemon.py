"""Main daemon entry point with systemd integration.

Connects to Sway, resets every monitor to its first workspace, serves
commands over the IPC socket and resets again whenever an output appears.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from i3ipc import Event, aio
from i3ipc.events import IpcBaseEvent

try:
    from systemd import journal, daemon as sd_daemon
    SYSTEMD_AVAILABLE = True
except ImportError:
    SYSTEMD_AVAILABLE = False

from .commands import CommandOrchestrator
from .config import SplitWorkspacesConfig, load_config
from .connection import ResilientSwayConnection
from .environment import SwayEnvironment
from .errors import ConfigLoadError
from .ipc_server import IPCServer
from .toggle import SpecialToggleController

logger = logging.getLogger(__name__)


class DaemonHealthMonitor:
    """Manages systemd readiness notifications and watchdog pings."""

    def __init__(self) -> None:
        self.watchdog_interval: Optional[float] = None

        watchdog_usec = os.environ.get("WATCHDOG_USEC")
        if SYSTEMD_AVAILABLE and watchdog_usec:
            # Ping at 1/3 of the timeout
            self.watchdog_interval = int(watchdog_usec) / 3_000_000
            logger.info(f"Systemd watchdog enabled: {self.watchdog_interval:.1f}s interval")

    def notify(self, status: str) -> None:
        if SYSTEMD_AVAILABLE:
            sd_daemon.notify(status)
            logger.debug(f"Sent {status} to systemd")

    async def watchdog_loop(self) -> None:
        if not self.watchdog_interval:
            return

        while True:
            await asyncio.sleep(self.watchdog_interval)
            self.notify("WATCHDOG=1")


class SplitWorkspacesDaemon:
    """Main daemon class."""

    def __init__(self, config: Optional[SplitWorkspacesConfig] = None) -> None:
        self.config = config or SplitWorkspacesConfig()
        self.connection: Optional[ResilientSwayConnection] = None
        self.environment: Optional[SwayEnvironment] = None
        self.orchestrator: Optional[CommandOrchestrator] = None
        self.ipc_server: Optional[IPCServer] = None
        self.health_monitor = DaemonHealthMonitor()
        self.shutdown_event = asyncio.Event()

    async def initialize(self) -> None:
        """Connect to Sway and bring every monitor to a known workspace."""
        logger.info("Initializing split-monitor-workspaces daemon...")

        self.connection = ResilientSwayConnection(on_restart=self.on_sway_restart)
        conn = await self.connection.connect_with_retry(max_attempts=10)

        self.environment = SwayEnvironment(conn, self.config)
        self.orchestrator = CommandOrchestrator(
            self.environment,
            SpecialToggleController(self.environment),
        )

        monitors = await self.environment.refresh_monitors()
        logger.info(f"Registered {len(monitors)} monitor(s)")

        await self.orchestrator.initialize()

        self.ipc_server = IPCServer(
            self.orchestrator,
            self.config.socket_path,
            is_connected=lambda: self.connection is not None and self.connection.is_connected,
            keep_focused=self.config.keep_focused,
        )
        await self.ipc_server.start()

        self.connection.subscribe(Event.OUTPUT, self.on_output)
        logger.info("Daemon initialized")

    async def on_output(self, conn: aio.Connection, event: IpcBaseEvent) -> None:
        """Reset all monitors when an output was added."""
        try:
            added = await self.environment.refresh_monitors()
            if added:
                logger.info(f"New monitor(s) {added}")
                await self.orchestrator.on_monitor_added()
        except Exception as e:
            logger.error(f"Error handling output event: {e}", exc_info=True)

    async def on_sway_restart(self) -> None:
        added = await self.environment.refresh_monitors()
        logger.info(f"Monitors re-synced after Sway restart (added: {added})")

    async def run(self) -> None:
        """Main event loop."""
        self.health_monitor.notify("READY=1")
        watchdog_task = asyncio.create_task(self.health_monitor.watchdog_loop())

        try:
            await self.connection.main()
        finally:
            watchdog_task.cancel()
            try:
                await watchdog_task
            except asyncio.CancelledError:
                pass

    async def shutdown(self) -> None:
        """Graceful shutdown with timeouts."""
        logger.info("Shutting down daemon...")
        self.health_monitor.notify("STOPPING=1")

        if self.ipc_server:
            try:
                await asyncio.wait_for(self.ipc_server.stop(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("IPC server shutdown timed out after 5s (continuing)")

        if self.connection:
            self.connection.close()

        logger.info("Daemon shutdown complete")

    def setup_signal_handlers(self) -> None:
        """Set the shutdown event on SIGTERM/SIGINT."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self.shutdown_event.set)


def setup_logging() -> None:
    """Setup logging to systemd journal or stderr."""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if SYSTEMD_AVAILABLE:
        handler = journal.JournalHandler(SYSLOG_IDENTIFIER="split-monitor-workspaces")
    else:
        handler = logging.StreamHandler(sys.stderr)

    formatter = logging.Formatter("%(levelname)s [%(name)s] %(message)s")
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logger.info(f"Logging configured: level={log_level}")


def load_config_or_defaults() -> SplitWorkspacesConfig:
    try:
        return load_config()
    except ConfigLoadError as e:
        logger.error(f"{e.message}; using defaults")
        return SplitWorkspacesConfig()


async def main_async() -> int:
    """Async main function.

    Returns:
        Exit code (0 = success, non-zero = error)
    """
    daemon = SplitWorkspacesDaemon(load_config_or_defaults())

    try:
        daemon.setup_signal_handlers()
        await daemon.initialize()

        run_task = asyncio.create_task(daemon.run())
        shutdown_task = asyncio.create_task(daemon.shutdown_event.wait())

        done, pending = await asyncio.wait(
            [run_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()

        await daemon.shutdown()
        return 0

    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


def main() -> None:
    """Main entry point."""
    setup_logging()
    logger.info(f"split-monitor-workspaces daemon starting (PID {os.getpid()})")

    try:
        sys.exit(asyncio.run(main_async()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
