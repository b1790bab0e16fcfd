"""Main application coordinator."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Optional, Union

from .api import ApiServer
from .ble.radio import BleakRadio
from .config import load_config
from .console import ConsoleReporter
from .demo import DemoRadio
from .discovery import DiscoveryLoop
from .host import HostGroup, LoggingHost
from .models import AdapterConfig
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)


class TempoDiskApp:
    """Main application that coordinates all components."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        console_interval: Optional[int] = None,
        api_port: Optional[int] = None,
        demo: bool = False,
    ) -> None:
        self._config_path = config_path
        self._console_interval = console_interval
        self._api_port = api_port
        self._demo = demo
        self._config: Optional[AdapterConfig] = None
        self._registry: Optional[DeviceRegistry] = None
        self._radio: Optional[Union[BleakRadio, DemoRadio]] = None
        self._loop: Optional[DiscoveryLoop] = None
        self._console: Optional[ConsoleReporter] = None
        self._api: Optional[ApiServer] = None
        self._running = False
        self._shutdown_event: Optional[asyncio.Event] = None
        self._radio_task: Optional[asyncio.Task] = None

    @property
    def registry(self) -> Optional[DeviceRegistry]:
        return self._registry

    def _load_config(self) -> AdapterConfig:
        if self._config_path is None:
            logger.info("No configuration file, using defaults")
            return AdapterConfig()
        return load_config(self._config_path)

    async def start(self) -> None:
        """Start all components."""
        logger.info("Starting tempodisk...")

        self._config = self._load_config()
        self._registry = DeviceRegistry()

        if self._demo:
            self._radio = DemoRadio()
        else:
            self._radio = BleakRadio(adapter=self._config.adapter)

        host = HostGroup([LoggingHost()])
        self._loop = DiscoveryLoop(self._radio, self._registry, host, self._config)

        # CLI --api-port wins over config
        api_port = self._api_port or self._config.api_port
        if api_port:
            self._api = ApiServer(self._registry, api_port, loop=self._loop)
            await self._api.start()

        interval = self._console_interval
        if interval is None:
            interval = self._config.poll_interval
        self._console = ConsoleReporter(self._registry, interval=interval)
        await self._console.start()

        self._radio_task = asyncio.create_task(
            self._radio.run_with_restart(),
            name="ble_radio",
        )

        self._running = True
        logger.info("tempodisk started successfully")

    async def stop(self) -> None:
        """Stop all components."""
        if not self._running:
            return

        logger.info("Stopping tempodisk...")
        self._running = False

        if self._radio_task:
            self._radio_task.cancel()
            try:
                await self._radio_task
            except asyncio.CancelledError:
                pass
            self._radio_task = None

        if self._api:
            await self._api.stop()

        if self._console:
            await self._console.stop()

        if self._radio:
            await self._radio.stop()

        logger.info("tempodisk stopped (%d devices seen)", len(self._registry or ()))

    async def run(self) -> None:
        """Run the application until shutdown signal."""
        self._shutdown_event = asyncio.Event()

        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            await self.start()

            while not self._shutdown_event.is_set():
                await self._monitor_tasks()
                try:
                    await asyncio.wait_for(self._shutdown_event.wait(), timeout=5)
                except asyncio.TimeoutError:
                    pass

        finally:
            await self.stop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

    async def _monitor_tasks(self) -> None:
        """Log radio and console tasks that ended unexpectedly."""
        console_task = self._console.task if self._console else None
        for name, task in (("BLE radio", self._radio_task), ("Console reporter", console_task)):
            if task and task.done():
                try:
                    exc = task.exception()
                    if exc:
                        logger.error("%s task failed: %s", name, exc)
                except asyncio.CancelledError:
                    pass

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()
