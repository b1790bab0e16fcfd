"""BlueMaestro Tempo Disk advertisement parser."""

import struct
from typing import NamedTuple, Optional

from ...models import BroadcastPacket, SensorReading

# BlueMaestro company identifier, little-endian at offset 0
BLUEMAESTRO_COMPANY_ID = 0x0133
# Full manufacturer data length for the temperature/humidity/dew point payload
PAYLOAD_LENGTH = 41
# Version byte written by encode_payload (T/H/DP sensor)
PAYLOAD_VERSION = 0x17

_TEMPERATURE = slice(8, 10)
_HUMIDITY = slice(10, 12)
_DEW_POINT = slice(12, 14)
_BATTERY = 3


class FilterResult(NamedTuple):
    """Outcome of checking an advertisement. Truthy only when accepted."""

    accepted: bool
    reason: str

    def __bool__(self) -> bool:
        return self.accepted


class PayloadError(ValueError):
    """Raised when decoding a buffer that never passed check_advertisement."""


def vendor_code(data: bytes) -> Optional[int]:
    """Get the little-endian company code, None if too short."""
    if len(data) < 2:
        return None
    return struct.unpack("<H", data[0:2])[0]


def check_advertisement(packet: BroadcastPacket) -> FilterResult:
    """Decide whether a packet is a well-formed Tempo Disk broadcast."""
    data = packet.manufacturer_data
    if not data:
        return FilterResult(False, "no manufacturer data")

    vendor = vendor_code(data)
    if vendor != BLUEMAESTRO_COMPANY_ID:
        shown = "none" if vendor is None else f"0x{vendor:04x}"
        return FilterResult(False, f"vendor code {shown} is not 0x{BLUEMAESTRO_COMPANY_ID:04x}")

    if len(data) != PAYLOAD_LENGTH:
        return FilterResult(False, f"length {len(data)} is not {PAYLOAD_LENGTH}")

    return FilterResult(True, "ok")


def decode_payload(data: bytes) -> SensorReading:
    """
    Decode Tempo Disk manufacturer data.

    Format (multi-byte fields big-endian unless noted):
    - Bytes 0-1: Company identifier 0x0133 (little-endian)
    - Byte 2: Version
    - Byte 3: Battery (%)
    - Bytes 8-9: Temperature (int16, 0.1°C per unit)
    - Bytes 10-11: Humidity (int16, 0.1% per unit)
    - Bytes 12-13: Dew point (int16, 0.1°C per unit)

    Values outside the declared property bounds are returned as-is.
    """
    if len(data) != PAYLOAD_LENGTH or vendor_code(data) != BLUEMAESTRO_COMPANY_ID:
        raise PayloadError(f"not a Tempo Disk payload ({len(data)} bytes)")

    temperature = struct.unpack(">h", data[_TEMPERATURE])[0] / 10.0
    humidity = struct.unpack(">h", data[_HUMIDITY])[0] / 10.0
    dew_point = struct.unpack(">h", data[_DEW_POINT])[0] / 10.0

    return SensorReading(
        temperature=temperature,
        humidity=humidity,
        dew_point=dew_point,
        battery=data[_BATTERY],
    )


def encode_payload(reading: SensorReading) -> bytes:
    """Build the manufacturer data a Tempo Disk would broadcast for a reading."""
    data = bytearray(PAYLOAD_LENGTH)
    struct.pack_into("<H", data, 0, BLUEMAESTRO_COMPANY_ID)
    data[2] = PAYLOAD_VERSION
    data[_BATTERY] = reading.battery
    struct.pack_into(
        ">hhh",
        data,
        _TEMPERATURE.start,
        int(round(reading.temperature * 10)),
        int(round(reading.humidity * 10)),
        int(round(reading.dew_point * 10)),
    )
    return bytes(data)

