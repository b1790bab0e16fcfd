"""Demo mode: a fake radio broadcasting realistic Tempo Disk packets."""

from __future__ import annotations

import asyncio
import logging
import math
import random
import struct
from datetime import datetime
from typing import Optional, Sequence

from .ble.parsers import encode_payload
from .ble.radio import DiscoverCallback, StateCallback
from .models import BroadcastPacket, RadioState, SensorReading

logger = logging.getLogger(__name__)

# ── Demo sensor definitions ──────────────────────────────────────────

DEMO_SENSORS = [
    {"id": "D1:5C:7A:00:00:01", "temp": 21.3, "hum": 42.0, "amp": 0.8, "battery": 87, "rssi": -62},
    {"id": "D1:5C:7A:00:00:02", "temp": 4.1, "hum": 71.0, "amp": 0.4, "battery": 64, "rssi": -71},
    {"id": "D1:5C:7A:00:00:03", "temp": -18.5, "hum": 55.0, "amp": 1.2, "battery": 91, "rssi": -80},
]

# Other vendors sharing the channel, and a Tempo Disk with a different payload version
FOREIGN_PACKETS = [
    BroadcastPacket("4C:00:11:22:33:44", struct.pack("<H", 0x004C) + bytes(23), -55),
    BroadcastPacket("06:00:AA:BB:CC:DD", None, -90),
    BroadcastPacket("D1:5C:7A:00:00:09", struct.pack("<H", 0x0133) + bytes(12), -75),
]


def dew_point(temperature: float, humidity: float) -> float:
    """Magnus approximation of the dew point."""
    b, c = 17.62, 243.12
    gamma = math.log(max(humidity, 0.1) / 100.0) + b * temperature / (c + temperature)
    return c * gamma / (b - gamma)


def demo_reading(sensor: dict, hours: float, rng: random.Random) -> SensorReading:
    """Generate a sinusoidal reading with small random noise."""
    temp = sensor["temp"] + sensor["amp"] * math.sin(2 * math.pi * hours / 24.0) + rng.gauss(0, 0.1)
    hum = min(100.0, max(0.0, sensor["hum"] + rng.gauss(0, 0.5)))
    return SensorReading(
        temperature=round(temp, 1),
        humidity=round(hum, 1),
        dew_point=round(dew_point(temp, hum), 1),
        battery=sensor["battery"],
    )


class DemoRadio:
    """Radio stand-in that needs no Bluetooth hardware."""

    def __init__(self, interval: float = 2.0, seed: Optional[int] = 42) -> None:
        self._interval = interval
        self._rng = random.Random(seed)
        self._state_callbacks: list[StateCallback] = []
        self._discover_callbacks: list[DiscoverCallback] = []
        self._scan_requested = asyncio.Event()
        self._running = False
        self._started = datetime.now()

    def on_state_change(self, callback: StateCallback) -> None:
        self._state_callbacks.append(callback)

    def on_discover(self, callback: DiscoverCallback) -> None:
        self._discover_callbacks.append(callback)

    def start_scanning(self, service_uuids: Sequence[str], allow_duplicates: bool) -> None:
        logger.info("Demo radio scanning (duplicates %s)", "on" if allow_duplicates else "off")
        self._scan_requested.set()

    def _emit_state(self, state: RadioState) -> None:
        for callback in self._state_callbacks:
            callback(state)

    def _emit(self, packet: BroadcastPacket) -> None:
        for callback in self._discover_callbacks:
            callback(packet)

    def broadcast_once(self) -> None:
        """Emit one packet per demo sensor plus one foreign packet."""
        hours = (datetime.now() - self._started).total_seconds() / 3600.0
        for sensor in DEMO_SENSORS:
            reading = demo_reading(sensor, hours, self._rng)
            self._emit(BroadcastPacket(sensor["id"], encode_payload(reading), sensor["rssi"]))
        self._emit(self._rng.choice(FOREIGN_PACKETS))

    async def run_with_restart(self) -> None:
        """Power on, wait for the scan command, then broadcast until stopped."""
        self._running = True
        self._scan_requested.clear()
        self._emit_state(RadioState.POWERED_ON)
        await self._scan_requested.wait()

        try:
            while self._running:
                self.broadcast_once()
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            logger.info("Demo radio cancelled")
        finally:
            self._running = False
            self._emit_state(RadioState.POWERED_OFF)

    async def stop(self) -> None:
        self._running = False
        self._scan_requested.set()
