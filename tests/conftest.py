"""Shared fixtures for tempodisk tests."""

from __future__ import annotations

import struct
from typing import Sequence

import pytest

from tempodisk.ble.parsers import encode_payload
from tempodisk.discovery import DiscoveryLoop
from tempodisk.models import AdapterConfig, BroadcastPacket, RadioState, SensorReading
from tempodisk.registry import DeviceRegistry

SENSOR_ID = "D1:5C:7A:12:34:56"


def known_payload() -> bytes:
    """Payload for 21.5°C, 45.0%, dew point 9.3°C, battery 87%, built by hand."""
    data = bytearray(41)
    data[0:2] = b"\x33\x01"
    data[3] = 87
    data[8:10] = b"\x00\xd7"
    data[10:12] = b"\x01\xc2"
    data[12:14] = b"\x00\x5d"
    return bytes(data)


def packet_for(reading: SensorReading, identifier: str = SENSOR_ID, rssi: int = -60) -> BroadcastPacket:
    return BroadcastPacket(identifier, encode_payload(reading), rssi)


def foreign_packet(identifier: str = "4C:00:00:00:00:01") -> BroadcastPacket:
    return BroadcastPacket(identifier, struct.pack("<H", 0x004C) + bytes(39))


class FakeRadio:
    """In-memory RadioStack for driving the discovery loop."""

    def __init__(self) -> None:
        self.state_callbacks = []
        self.discover_callbacks = []
        self.scan_calls: list[tuple[list[str], bool]] = []

    def on_state_change(self, callback) -> None:
        self.state_callbacks.append(callback)

    def on_discover(self, callback) -> None:
        self.discover_callbacks.append(callback)

    def start_scanning(self, service_uuids: Sequence[str], allow_duplicates: bool) -> None:
        self.scan_calls.append((list(service_uuids), allow_duplicates))

    def emit_state(self, state: RadioState) -> None:
        for callback in self.state_callbacks:
            callback(state)

    def emit(self, packet: BroadcastPacket) -> None:
        for callback in self.discover_callbacks:
            callback(packet)


class RecordingHost:
    """Host that records every notification with the value seen at the time."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    def device_added(self, entity) -> None:
        self.events.append(("device_added", entity.identifier))

    def property_changed(self, entity, name) -> None:
        self.events.append(("property_changed", name, entity.properties[name].value))

    @property
    def added(self) -> list[tuple]:
        return [e for e in self.events if e[0] == "device_added"]

    @property
    def changes(self) -> list[tuple]:
        return [e for e in self.events if e[0] == "property_changed"]


@pytest.fixture()
def config() -> AdapterConfig:
    return AdapterConfig(display_name="Cellar disk", description="Wine cellar sensor")


@pytest.fixture()
def radio() -> FakeRadio:
    return FakeRadio()


@pytest.fixture()
def host() -> RecordingHost:
    return RecordingHost()


@pytest.fixture()
def registry() -> DeviceRegistry:
    return DeviceRegistry()


@pytest.fixture()
def loop(radio: FakeRadio, registry: DeviceRegistry, host: RecordingHost, config: AdapterConfig) -> DiscoveryLoop:
    return DiscoveryLoop(radio, registry, host, config)
