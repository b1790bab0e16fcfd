"""Device entity and its read-only properties."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from .models import SensorReading

Number = Union[int, float]

THING_CONTEXT = "https://webthings.io/schemas/"
DEVICE_TYPES = ("TemperatureSensor",)
DEVICE_ID_PREFIX = "tempo-disk"


@dataclass(frozen=True)
class PropertySpec:
    """Declared schema of a single property."""

    name: str
    title: str
    description: str
    minimum: Number
    maximum: Number
    multiple_of: Number
    unit: str
    semantic_type: Optional[str] = None
    value_type: str = "number"
    read_only: bool = True

    def as_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "type": self.value_type,
            "minimum": self.minimum,
            "maximum": self.maximum,
            "multipleOf": self.multiple_of,
            "unit": self.unit,
            "readOnly": self.read_only,
        }
        if self.semantic_type:
            schema["@type"] = self.semantic_type
        return schema


# Notification order is the order of this tuple
PROPERTY_SPECS: tuple[PropertySpec, ...] = (
    PropertySpec(
        name="temperature",
        title="Temperature",
        description="The ambient temperature",
        minimum=-127.9,
        maximum=127.9,
        multiple_of=0.1,
        unit="degree celsius",
        semantic_type="TemperatureProperty",
    ),
    PropertySpec(
        name="humidity",
        title="Humidity",
        description="The relative humidity",
        minimum=0,
        maximum=100,
        multiple_of=0.1,
        unit="percent",
        semantic_type="HumidityProperty",
    ),
    PropertySpec(
        name="dewPoint",
        title="Dew point",
        description="The dew point",
        minimum=-127.9,
        maximum=127.9,
        multiple_of=0.1,
        unit="degree celsius",
    ),
    PropertySpec(
        name="battery",
        title="Battery",
        description="The battery level",
        minimum=0,
        maximum=100,
        multiple_of=1,
        unit="percent",
        semantic_type="LevelProperty",
    ),
)

PROPERTY_NAMES: tuple[str, ...] = tuple(spec.name for spec in PROPERTY_SPECS)


class Property:
    """A named, bounded, read-only value with its last known reading.

    Bounds are informational: values outside them are stored as-is.
    """

    def __init__(self, spec: PropertySpec) -> None:
        self._spec = spec
        self._value: Optional[Number] = None

    @property
    def spec(self) -> PropertySpec:
        return self._spec

    @property
    def name(self) -> str:
        return self._spec.name

    @property
    def unit(self) -> str:
        return self._spec.unit

    @property
    def value(self) -> Optional[Number]:
        """Cached value, None until the first reading."""
        return self._value

    def set_cached_value(self, value: Number) -> None:
        self._value = value

    def as_schema(self) -> dict[str, Any]:
        return self._spec.as_schema()

    def __repr__(self) -> str:
        return f"Property({self.name}={self._value!r})"


def _reading_values(reading: SensorReading) -> dict[str, Number]:
    return {
        "temperature": reading.temperature,
        "humidity": reading.humidity,
        "dewPoint": reading.dew_point,
        "battery": reading.battery,
    }


class DeviceEntity:
    """In-memory representation of one Tempo Disk."""

    def __init__(self, identifier: str, name: str, description: str) -> None:
        self._identifier = identifier
        self.name = name
        self.description = description
        self.properties: dict[str, Property] = {
            spec.name: Property(spec) for spec in PROPERTY_SPECS
        }
        self.last_seen: Optional[datetime] = None
        self.rssi: Optional[int] = None

    @classmethod
    def create(cls, identifier: str, display_name: str, description: str) -> DeviceEntity:
        """Create an entity with all four properties declared and empty."""
        return cls(identifier, display_name, description)

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def device_id(self) -> str:
        return f"{DEVICE_ID_PREFIX}-{self._identifier}"

    def get_property(self, name: str) -> Optional[Property]:
        return self.properties.get(name)

    def update(self, reading: SensorReading, rssi: Optional[int] = None) -> tuple[str, ...]:
        """Overwrite every cached value with the reading.

        Returns the names of the changed properties in notification order.
        Values are written unconditionally, so all four names are returned.
        """
        values = _reading_values(reading)
        for name in PROPERTY_NAMES:
            self.properties[name].set_cached_value(values[name])

        self.last_seen = datetime.now()
        if rssi is not None:
            self.rssi = rssi
        return PROPERTY_NAMES

    def values(self) -> dict[str, Optional[Number]]:
        """Get the cached value of every property."""
        return {name: prop.value for name, prop in self.properties.items()}

    def as_thing_description(self) -> dict[str, Any]:
        """Describe the device and its property schema for the host."""
        return {
            "id": self.device_id,
            "identifier": self._identifier,
            "title": self.name,
            "description": self.description,
            "@context": THING_CONTEXT,
            "@type": list(DEVICE_TYPES),
            "properties": {
                name: prop.as_schema() for name, prop in self.properties.items()
            },
        }

    def __repr__(self) -> str:
        return f"DeviceEntity({self._identifier!r}, {self.name!r})"
