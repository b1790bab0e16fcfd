"""Tests for the discovery loop."""

from __future__ import annotations

import logging
import struct

from conftest import SENSOR_ID, FakeRadio, RecordingHost, foreign_packet, known_payload, packet_for
from tempodisk.discovery import DiscoveryLoop
from tempodisk.models import AdapterConfig, BroadcastPacket, RadioState, SensorReading
from tempodisk.registry import DeviceRegistry


class TestHandlePacket:
    """Tests for DiscoveryLoop.handle_packet."""

    def test_first_packet_adds_device_then_notifies_properties(self, loop, host):
        entity = loop.handle_packet(BroadcastPacket(SENSOR_ID, known_payload(), -61))

        assert entity is not None
        assert host.events == [
            ("device_added", SENSOR_ID),
            ("property_changed", "temperature", 21.5),
            ("property_changed", "humidity", 45.0),
            ("property_changed", "dewPoint", 9.3),
            ("property_changed", "battery", 87),
        ]
        assert entity.name == "Cellar disk"
        assert entity.description == "Wine cellar sensor"
        assert entity.rssi == -61

    def test_second_packet_only_notifies_properties(self, loop, host, registry):
        loop.handle_packet(BroadcastPacket(SENSOR_ID, known_payload()))
        host.events.clear()

        reading = SensorReading(temperature=22.0, humidity=44.1, dew_point=9.0, battery=86)
        entity = loop.handle_packet(packet_for(reading))

        assert host.added == []
        assert host.changes == [
            ("property_changed", "temperature", 22.0),
            ("property_changed", "humidity", 44.1),
            ("property_changed", "dewPoint", 9.0),
            ("property_changed", "battery", 86),
        ]
        assert registry.get(SENSOR_ID) is entity
        assert len(registry) == 1

    def test_radio_events_reach_the_loop(self, radio, host, registry):
        radio.emit(BroadcastPacket(SENSOR_ID, known_payload()))
        assert registry.get(SENSOR_ID) is None  # no loop subscribed yet

        DiscoveryLoop(radio, registry, host, AdapterConfig())
        radio.emit(BroadcastPacket(SENSOR_ID, known_payload()))

        assert len(host.added) == 1
        assert len(host.changes) == 4
        assert registry.get(SENSOR_ID).name == "Tempo Disk"

    def test_foreign_packets_are_ignored(self, loop, host, registry):
        assert loop.handle_packet(foreign_packet()) is None
        assert loop.handle_packet(BroadcastPacket(SENSOR_ID, None)) is None
        assert loop.handle_packet(BroadcastPacket(SENSOR_ID, known_payload()[:30])) is None

        assert host.events == []
        assert len(registry) == 0
        assert (loop.packets_seen, loop.packets_accepted) == (3, 0)

    def test_wrong_length_from_tempo_disk_logs_info(self, loop, caplog):
        with caplog.at_level(logging.DEBUG, logger="tempodisk.discovery"):
            loop.handle_packet(BroadcastPacket(SENSOR_ID, known_payload()[:30]))
            loop.handle_packet(foreign_packet())

        levels = [(r.levelno, "length" in r.getMessage()) for r in caplog.records]
        assert (logging.INFO, True) in levels
        assert (logging.DEBUG, False) in levels
        assert "length 30 is not 41" in caplog.text

    def test_devices_are_tracked_per_identifier(self, loop, host, registry):
        reading = SensorReading(temperature=5.0, humidity=60.0, dew_point=-2.3, battery=50)
        loop.handle_packet(packet_for(reading, identifier="D1:00:00:00:00:01"))
        loop.handle_packet(packet_for(reading, identifier="D1:00:00:00:00:02"))
        loop.handle_packet(packet_for(reading, identifier="D1:00:00:00:00:01"))

        assert [e[1] for e in host.added] == ["D1:00:00:00:00:01", "D1:00:00:00:00:02"]
        assert len(host.changes) == 12
        assert len(registry) == 2

    def test_updates_apply_in_delivery_order(self, loop, registry):
        for battery in (90, 89, 88):
            reading = SensorReading(temperature=1.0, humidity=2.0, dew_point=3.0, battery=battery)
            loop.handle_packet(packet_for(reading))

        assert registry.get(SENSOR_ID).properties["battery"].value == 88
        assert loop.packets_accepted == 3

    def test_out_of_range_values_are_not_clamped(self, loop, host):
        data = bytearray(known_payload())
        data[8:10] = struct.pack(">h", 2000)
        loop.handle_packet(BroadcastPacket(SENSOR_ID, bytes(data)))

        assert ("property_changed", "temperature", 200.0) in host.changes


class TestHandleStateChange:
    """Tests for DiscoveryLoop.handle_state_change."""

    def test_powered_on_starts_scanning(self, loop, radio):
        radio.emit_state(RadioState.POWERED_ON)

        assert radio.scan_calls == [([], True)]
        assert loop.state is RadioState.POWERED_ON
        assert loop.scanning

    def test_repeated_powered_on_starts_once(self, loop, radio):
        radio.emit_state(RadioState.POWERED_ON)
        radio.emit_state(RadioState.POWERED_ON)

        assert len(radio.scan_calls) == 1

    def test_each_power_cycle_starts_scanning_again(self, loop, radio):
        for state in (
            RadioState.POWERED_ON,
            RadioState.POWERED_OFF,
            RadioState.RESETTING,
            RadioState.POWERED_ON,
        ):
            radio.emit_state(state)

        assert len(radio.scan_calls) == 2

    def test_other_states_do_not_scan(self, loop, radio):
        for state in (
            RadioState.POWERED_OFF,
            RadioState.UNAUTHORIZED,
            RadioState.UNSUPPORTED,
            RadioState.UNKNOWN,
        ):
            radio.emit_state(state)

        assert radio.scan_calls == []
        assert not loop.scanning
        assert loop.state is RadioState.UNKNOWN


def test_loop_without_fixtures_uses_defaults():
    radio = FakeRadio()
    host = RecordingHost()
    loop = DiscoveryLoop(radio, DeviceRegistry(), host, AdapterConfig())

    entity = loop.handle_packet(BroadcastPacket(SENSOR_ID, known_payload()))

    assert entity.name == "Tempo Disk"
    assert entity.description == "BlueMaestro Tempo Disk"
    assert loop.registry.get(SENSOR_ID) is entity
