"""Tests for DeviceRegistry."""

from __future__ import annotations

from tempodisk.device import DeviceEntity
from tempodisk.registry import DeviceRegistry


class CountingFactory:
    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        self.calls = 0

    def __call__(self) -> DeviceEntity:
        self.calls += 1
        return DeviceEntity.create(self.identifier, "Tempo Disk", "BlueMaestro Tempo Disk")


def test_get_or_create_is_idempotent():
    registry = DeviceRegistry()
    factory = CountingFactory("AA")

    first, created_first = registry.get_or_create("AA", factory)
    second, created_second = registry.get_or_create("AA", factory)

    assert first is second
    assert (created_first, created_second) == (True, False)
    assert factory.calls == 1
    assert len(registry) == 1


def test_distinct_identifiers_get_distinct_entities():
    registry = DeviceRegistry()
    a, _ = registry.get_or_create("AA", CountingFactory("AA"))
    b, _ = registry.get_or_create("BB", CountingFactory("BB"))

    assert a is not b
    assert registry.identifiers() == {"AA", "BB"}
    assert [e.identifier for e in registry.get_all()] == ["AA", "BB"]
    assert [e.identifier for e in registry] == ["AA", "BB"]


def test_get_does_not_create():
    registry = DeviceRegistry()
    assert registry.get("AA") is None
    assert "AA" not in registry
    assert len(registry) == 0

    entity, _ = registry.get_or_create("AA", CountingFactory("AA"))
    assert registry.get("AA") is entity
    assert "AA" in registry


def test_get_by_device_id():
    registry = DeviceRegistry()
    entity, _ = registry.get_or_create("AA", CountingFactory("AA"))

    assert registry.get_by_device_id("tempo-disk-AA") is entity
    assert registry.get_by_device_id("tempo-disk-BB") is None
