"""Host notification interface."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from .device import DeviceEntity

logger = logging.getLogger(__name__)


class Host(Protocol):
    """Receiver of device and property notifications."""

    def device_added(self, entity: DeviceEntity) -> None: ...

    def property_changed(self, entity: DeviceEntity, name: str) -> None: ...


class LoggingHost:
    """Host that writes notifications to the log."""

    def device_added(self, entity: DeviceEntity) -> None:
        logger.info(
            "Detected new %s with id %s (%s)",
            entity.name,
            entity.identifier,
            entity.device_id,
        )

    def property_changed(self, entity: DeviceEntity, name: str) -> None:
        prop = entity.properties[name]
        logger.debug("%s %s = %s %s", entity.identifier, name, prop.value, prop.unit)


class HostGroup:
    """Fans notifications out to several hosts, in order."""

    def __init__(self, hosts: Iterable[Host]) -> None:
        self._hosts = list(hosts)

    def add(self, host: Host) -> None:
        self._hosts.append(host)

    def device_added(self, entity: DeviceEntity) -> None:
        for host in self._hosts:
            host.device_added(entity)

    def property_changed(self, entity: DeviceEntity, name: str) -> None:
        for host in self._hosts:
            host.property_changed(entity, name)
