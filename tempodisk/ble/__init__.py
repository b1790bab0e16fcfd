"""BLE radio and parsing module."""

from .radio import BleakRadio, RadioStack, packet_from_advertisement

__all__ = ["BleakRadio", "RadioStack", "packet_from_advertisement"]
