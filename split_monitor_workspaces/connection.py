"""Sway IPC connection manager with resilient reconnection."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from i3ipc import Event, aio
from i3ipc.events import IpcBaseEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[aio.Connection, IpcBaseEvent], Awaitable[None]]


class ResilientSwayConnection:
    """Manages the Sway IPC connection with retry on startup and restart."""

    def __init__(self, on_restart: Optional[Callable[[], Awaitable[None]]] = None) -> None:
        """Initialize connection manager.

        Args:
            on_restart: Awaited after Sway restarts and the connection is back
        """
        self.conn: Optional[aio.Connection] = None
        self.on_restart = on_restart
        self.is_shutting_down = False
        self.reconnect_delay = 0.1  # Initial delay: 100ms

    @property
    def is_connected(self) -> bool:
        return self.conn is not None and not self.is_shutting_down

    async def connect_with_retry(self, max_attempts: int = 10) -> aio.Connection:
        """Connect to Sway with exponential backoff retry.

        Args:
            max_attempts: Maximum connection attempts

        Returns:
            Connected i3ipc.aio.Connection

        Raises:
            ConnectionError: If connection fails after max attempts
        """
        attempt = 0
        delay = self.reconnect_delay

        while attempt < max_attempts:
            try:
                logger.info(f"Attempting to connect to Sway (attempt {attempt + 1}/{max_attempts})")

                self.conn = await aio.Connection(auto_reconnect=True).connect()

                version = await self.conn.get_version()
                logger.info(f"Connected to Sway version {version.human_readable}")

                self.reconnect_delay = 0.1
                return self.conn

            except Exception as e:
                logger.warning(f"Connection attempt {attempt + 1} failed: {e}")
                attempt += 1

                if attempt < max_attempts:
                    logger.debug(f"Waiting {delay:.1f}s before retry...")
                    await asyncio.sleep(delay)

                    # Exponential backoff: double delay up to 5s max
                    delay = min(delay * 2, 5.0)

        raise ConnectionError(f"Failed to connect to Sway after {max_attempts} attempts")

    def subscribe(self, event_type: Event, handler: EventHandler) -> None:
        """Register an async handler; i3ipc.aio subscribes on first use."""
        if not self.conn:
            logger.error("Cannot subscribe: not connected")
            return

        self.conn.on(event_type, handler)
        logger.debug(f"Registered handler for {event_type} events")

    async def handle_shutdown_event(self, conn: aio.Connection, event: IpcBaseEvent) -> None:
        """Handle Sway shutdown/restart events."""
        change = event.change

        if change == "restart":
            logger.info("Sway is restarting - will auto-reconnect")
            await asyncio.sleep(2)
            if self.on_restart:
                await self.on_restart()

        elif change == "exit":
            logger.info("Sway is exiting - shutting down")
            self.is_shutting_down = True
            conn.main_quit()

        else:
            logger.warning(f"Unknown shutdown change: {change}")

    async def main(self) -> None:
        """Run the i3ipc event loop until the connection closes."""
        if not self.conn:
            logger.error("Cannot run main loop: not connected")
            return

        self.subscribe(Event.SHUTDOWN, self.handle_shutdown_event)

        try:
            await self.conn.main()

        except Exception as e:
            if not self.is_shutting_down:
                logger.error(f"Sway event loop error: {e}")
                raise
            logger.info("Sway event loop stopped (shutdown)")

    def close(self) -> None:
        """Drop the connection; i3ipc has no explicit close."""
        if self.conn:
            self.is_shutting_down = True
            self.conn.main_quit()
            self.conn = None
            logger.info("Closed Sway connection")
