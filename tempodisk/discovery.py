"""Discovery loop routing radio events to device entities and the host."""

from __future__ import annotations

import logging
from typing import Optional

from .ble.parsers import check_advertisement, decode_payload
from .ble.parsers.tempo_disk import BLUEMAESTRO_COMPANY_ID, vendor_code
from .ble.radio import RadioStack
from .device import DeviceEntity
from .host import Host
from .models import AdapterConfig, BroadcastPacket, RadioState
from .registry import DeviceRegistry

logger = logging.getLogger(__name__)


class DiscoveryLoop:
    """Turns Tempo Disk advertisements into entity updates.

    Subscribes to the radio on construction. Packets are handled one at a
    time on the caller's thread; handle_packet() and handle_state_change()
    can also be driven directly.
    """

    def __init__(
        self,
        radio: RadioStack,
        registry: DeviceRegistry,
        host: Host,
        config: AdapterConfig,
    ) -> None:
        self._radio = radio
        self._registry = registry
        self._host = host
        self._config = config
        self._state = RadioState.UNKNOWN
        self._scanning = False
        self.packets_seen = 0
        self.packets_accepted = 0

        radio.on_state_change(self.handle_state_change)
        radio.on_discover(self.handle_packet)

    @property
    def state(self) -> RadioState:
        """Last radio state observed."""
        return self._state

    @property
    def scanning(self) -> bool:
        return self._scanning

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def handle_state_change(self, state: RadioState) -> None:
        """Track the radio state and start scanning when it powers on."""
        previous = self._state
        self._state = state
        logger.info("BLE radio is %s", state.value)

        if state is not RadioState.POWERED_ON:
            self._scanning = False
            return

        if previous is RadioState.POWERED_ON:
            return

        logger.info("Start scanning for devices")
        self._radio.start_scanning([], allow_duplicates=True)
        self._scanning = True

    def _create_entity(self, identifier: str) -> DeviceEntity:
        return DeviceEntity.create(
            identifier,
            self._config.display_name,
            self._config.description,
        )

    def handle_packet(self, packet: BroadcastPacket) -> Optional[DeviceEntity]:
        """Process one advertisement.

        Returns the updated entity, or None if the packet was not ours.
        """
        self.packets_seen += 1

        result = check_advertisement(packet)
        if not result:
            data = packet.manufacturer_data
            # Tempo Disk broadcasting an unexpected payload length
            if data and vendor_code(data) == BLUEMAESTRO_COMPANY_ID:
                logger.info("Ignoring broadcast from %s: %s", packet.identifier, result.reason)
            else:
                logger.debug("Ignoring broadcast from %s: %s", packet.identifier, result.reason)
            return None

        self.packets_accepted += 1
        entity, created = self._registry.get_or_create(
            packet.identifier,
            lambda: self._create_entity(packet.identifier),
        )
        if created:
            self._host.device_added(entity)

        reading = decode_payload(packet.manufacturer_data)
        changed = entity.update(reading, rssi=packet.rssi)

        for name in changed:
            self._host.property_changed(entity, name)

        logger.debug(
            "Received reading from %s: %.1f°C %.1f%% dew point %.1f°C battery %d%%",
            packet.identifier,
            reading.temperature,
            reading.humidity,
            reading.dew_point,
            reading.battery,
        )
        return entity
