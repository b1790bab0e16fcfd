"""BlueMaestro Tempo Disk BLE adapter."""

__version__ = "0.1.0"
