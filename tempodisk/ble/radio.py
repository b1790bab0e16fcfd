"""BLE radio interface and its Bleak implementation with periodic restart."""

from __future__ import annotations

import asyncio
import logging
import struct
import subprocess
import sys
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from bleak import BleakScanner as BleakScannerLib
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from ..models import BroadcastPacket, RadioState

logger = logging.getLogger(__name__)

IS_MACOS = sys.platform == "darwin"

StateCallback = Callable[[RadioState], None]
DiscoverCallback = Callable[[BroadcastPacket], None]


class RadioStack(Protocol):
    """Source of radio state changes and advertisements."""

    def on_state_change(self, callback: StateCallback) -> None: ...

    def on_discover(self, callback: DiscoverCallback) -> None: ...

    def start_scanning(self, service_uuids: Sequence[str], allow_duplicates: bool) -> None: ...


def join_manufacturer_data(entries: Mapping[int, bytes]) -> Optional[bytes]:
    """Rebuild the raw manufacturer data from Bleak's per-company entries.

    A 31-byte advertisement cannot hold a long manufacturer payload, so
    devices continue it in the scan response. Bleak splits each piece on
    its first two bytes and uses them as the dict key. Putting every key
    back in front of its payload, in insertion order, restores the
    concatenated buffer a raw HCI scanner would see.
    """
    if not entries:
        return None
    return b"".join(
        struct.pack("<H", company_id) + bytes(payload)
        for company_id, payload in entries.items()
    )


def packet_from_advertisement(
    device: BLEDevice,
    advertisement_data: AdvertisementData,
    manufacturer_entries: Optional[Mapping[int, bytes]] = None,
) -> BroadcastPacket:
    """Convert a Bleak advertisement into a BroadcastPacket.

    manufacturer_entries overrides advertisement_data.manufacturer_data,
    for callers that merge chunks seen in earlier callbacks.
    """
    if manufacturer_entries is None:
        manufacturer_entries = advertisement_data.manufacturer_data

    return BroadcastPacket(
        identifier=device.address.upper(),
        manufacturer_data=join_manufacturer_data(manufacturer_entries),
        rssi=advertisement_data.rssi,
    )


class BleakRadio:
    """Radio backed by a BleakScanner.

    Restarts periodically to work around BlueZ/Bleak issues on Linux.
    Every scanner cycle is reported as a poweredOn transition, and
    scanning only begins once a listener calls start_scanning().
    """

    # Proactive restart interval
    # BlueZ often silently stops after ~30-60s; macOS Core Bluetooth is more stable
    RESTART_INTERVAL_SECONDS = 300 if IS_MACOS else 60

    # Watchdog timeout - force restart if no data received
    WATCHDOG_TIMEOUT_SECONDS = 120 if IS_MACOS else 45

    # Timeout for stop() operation - don't let it hang forever
    STOP_TIMEOUT_SECONDS = 10

    CHECK_INTERVAL_SECONDS: float = 10

    def __init__(self, adapter: Optional[str] = None) -> None:
        self._adapter = adapter
        self._state = RadioState.UNKNOWN
        self._state_callbacks: list[StateCallback] = []
        self._discover_callbacks: list[DiscoverCallback] = []
        self._scan_request: Optional[tuple[list[str], bool]] = None
        self._scan_requested = asyncio.Event()
        self._scanner: Optional[BleakScannerLib] = None
        self._running = False
        self._last_data_time: Optional[datetime] = None
        # Manufacturer data chunks per address, kept for one scanner cycle
        self._manufacturer_chunks: dict[str, dict[int, bytes]] = {}

    @property
    def state(self) -> RadioState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if scanner is running."""
        return self._running

    def on_state_change(self, callback: StateCallback) -> None:
        self._state_callbacks.append(callback)

    def on_discover(self, callback: DiscoverCallback) -> None:
        self._discover_callbacks.append(callback)

    def start_scanning(self, service_uuids: Sequence[str], allow_duplicates: bool) -> None:
        """Request scanning; the running cycle starts the scanner."""
        self._scan_request = (list(service_uuids), allow_duplicates)
        self._scan_requested.set()

    def _set_state(self, state: RadioState) -> None:
        if state is self._state:
            return
        self._state = state
        for callback in list(self._state_callbacks):
            callback(state)

    def _detection_callback(
        self,
        device: BLEDevice,
        advertisement_data: AdvertisementData,
    ) -> None:
        """Handle detected BLE advertisement."""
        self._last_data_time = datetime.now()

        try:
            chunks = self._manufacturer_chunks.setdefault(device.address, {})
            chunks.update(advertisement_data.manufacturer_data)
            packet = packet_from_advertisement(device, advertisement_data, chunks)
            for callback in self._discover_callbacks:
                callback(packet)
        except Exception as e:
            logger.warning("Error handling advertisement from %s: %s", device.address, e)

    def _create_scanner(self) -> BleakScannerLib:
        """Create a fresh scanner instance for the requested scan."""
        self._manufacturer_chunks.clear()
        service_uuids, allow_duplicates = self._scan_request or ([], True)
        kwargs: dict[str, Any] = {
            "detection_callback": self._detection_callback,
            "service_uuids": service_uuids or None,
            "bluez": {"filters": {"DuplicateData": allow_duplicates}},
        }
        if self._adapter:
            kwargs["adapter"] = self._adapter
        return BleakScannerLib(**kwargs)

    async def _stop_scanner_safe(self) -> None:
        """Stop scanner with timeout protection."""
        if self._scanner is None:
            return

        try:
            await asyncio.wait_for(
                self._scanner.stop(),
                timeout=self.STOP_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning("Scanner stop() timed out after %ds", self.STOP_TIMEOUT_SECONDS)
        except Exception as e:
            logger.debug("Error stopping scanner: %s", e)
        finally:
            self._scanner = None

    async def _reset_bluetooth_adapter(self) -> None:
        """Reset Bluetooth adapter to recover from stuck state.

        Uses bluetoothctl (D-Bus) which works without sudo when user
        is in bluetooth group, or hciconfig with CAP_NET_ADMIN.
        Skipped on macOS where Core Bluetooth manages the adapter.
        """
        if IS_MACOS:
            logger.debug("Skipping adapter reset on macOS")
            return

        try:
            subprocess.run(
                ["bluetoothctl", "power", "off"],
                capture_output=True,
                timeout=5,
            )
            await asyncio.sleep(1)

            subprocess.run(
                ["bluetoothctl", "power", "on"],
                capture_output=True,
                timeout=5,
            )
            await asyncio.sleep(2)

            logger.info("Bluetooth adapter power cycled via bluetoothctl")
            return
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug("bluetoothctl failed: %s", e)

        # Fallback to hciconfig (requires CAP_NET_ADMIN or sudo)
        try:
            result = subprocess.run(
                ["hciconfig", self._adapter or "hci0", "reset"],
                capture_output=True,
                timeout=10,
            )
            if result.returncode == 0:
                logger.info("Bluetooth adapter reset via hciconfig")
                await asyncio.sleep(2)
            else:
                logger.debug("hciconfig reset failed: %s", result.stderr.decode().strip())
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.debug("hciconfig failed: %s", e)

    def _should_restart(self) -> tuple[bool, str]:
        """Check if scanner should be restarted.

        Returns (should_restart, reason).
        """
        if self._last_data_time:
            elapsed = (datetime.now() - self._last_data_time).total_seconds()
            if elapsed > self.WATCHDOG_TIMEOUT_SECONDS:
                return True, f"no data for {elapsed:.0f}s"

        return False, ""

    async def stop(self) -> None:
        """Stop BLE scanning."""
        if not self._running:
            return

        logger.info("Stopping BLE radio...")
        self._running = False
        self._scan_requested.set()
        await self._stop_scanner_safe()
        self._set_state(RadioState.POWERED_OFF)
        logger.info("BLE radio stopped")

    async def run_with_restart(self) -> None:
        """Run scanner cycles until stopped.

        Each cycle reports poweredOn, waits for start_scanning(), then scans
        until RESTART_INTERVAL_SECONDS elapse or the watchdog fires.
        """
        restart_count = 0
        self._running = True

        while self._running:
            try:
                restart_count += 1

                # Reset adapter before starting (helps with stuck state)
                if restart_count > 1:
                    self._set_state(RadioState.RESETTING)
                    await self._reset_bluetooth_adapter()

                self._scan_requested.clear()
                self._set_state(RadioState.POWERED_ON)
                await self._scan_requested.wait()
                if not self._running:
                    return

                self._scanner = self._create_scanner()
                await self._scanner.start()
                self._last_data_time = datetime.now()

                logger.info("BLE scanner running (cycle %d)", restart_count)

                cycle_start = datetime.now()
                while self._running:
                    await asyncio.sleep(self.CHECK_INTERVAL_SECONDS)

                    cycle_elapsed = (datetime.now() - cycle_start).total_seconds()
                    if cycle_elapsed >= self.RESTART_INTERVAL_SECONDS:
                        logger.info("Proactive restart after %.0fs", cycle_elapsed)
                        break

                    should_restart, reason = self._should_restart()
                    if should_restart:
                        logger.warning("Watchdog restart: %s", reason)
                        break

                await self._stop_scanner_safe()
                self._set_state(RadioState.POWERED_OFF)

                if not self._running:
                    return

                # Brief pause before restart
                await asyncio.sleep(1)

            except asyncio.CancelledError:
                logger.info("BLE radio cancelled")
                self._running = False
                await self._stop_scanner_safe()
                self._set_state(RadioState.POWERED_OFF)
                return

            except Exception as e:
                logger.error("BLE scanner error: %s", e)
                await self._stop_scanner_safe()
                self._set_state(RadioState.POWERED_OFF)

                # Error recovery - wait, then reset the adapter on the next cycle
                await asyncio.sleep(3)
