"""In-memory registry of discovered Tempo Disks."""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional

from .device import DeviceEntity

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Maps broadcast identifiers to device entities.

    Entities are never removed. All access happens on the event loop,
    so no locking is done.
    """

    def __init__(self) -> None:
        self._devices: dict[str, DeviceEntity] = {}

    def get_or_create(
        self,
        identifier: str,
        factory: Callable[[], DeviceEntity],
    ) -> tuple[DeviceEntity, bool]:
        """Get the entity for an identifier, creating it on first sight.

        Returns (entity, created).
        """
        entity = self._devices.get(identifier)
        if entity is not None:
            return entity, False

        entity = factory()
        self._devices[identifier] = entity
        logger.debug("Registered %s (%d devices)", identifier, len(self._devices))
        return entity, True

    def get(self, identifier: str) -> Optional[DeviceEntity]:
        """Get an entity without creating it."""
        return self._devices.get(identifier)

    def get_by_device_id(self, device_id: str) -> Optional[DeviceEntity]:
        """Get an entity by its host-facing device id."""
        for entity in self._devices.values():
            if entity.device_id == device_id:
                return entity
        return None

    def get_all(self) -> list[DeviceEntity]:
        """Get all entities in discovery order."""
        return list(self._devices.values())

    def identifiers(self) -> set[str]:
        return set(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._devices

    def __iter__(self) -> Iterator[DeviceEntity]:
        return iter(list(self._devices.values()))
