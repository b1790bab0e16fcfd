"""Data models for tempodisk."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RadioState(Enum):
    """States reported by the BLE radio."""

    POWERED_OFF = "poweredOff"
    POWERED_ON = "poweredOn"
    RESETTING = "resetting"
    UNAUTHORIZED = "unauthorized"
    UNSUPPORTED = "unsupported"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class BroadcastPacket:
    """A single advertisement as delivered by the radio.

    ``manufacturer_data`` holds the complete manufacturer specific data,
    including the leading little-endian company code.
    """

    identifier: str
    manufacturer_data: Optional[bytes] = None
    rssi: Optional[int] = None


@dataclass(frozen=True)
class SensorReading:
    """One decoded Tempo Disk measurement."""

    temperature: float
    humidity: float
    dew_point: float
    battery: int


@dataclass
class AdapterConfig:
    """Application configuration."""

    display_name: str = "Tempo Disk"
    description: str = "BlueMaestro Tempo Disk"
    poll_interval: int = 30
    api_port: Optional[int] = None
    adapter: Optional[str] = None
