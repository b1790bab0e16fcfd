"""BLE advertisement parsers."""

from .tempo_disk import (
    FilterResult,
    PayloadError,
    check_advertisement,
    decode_payload,
    encode_payload,
)

__all__ = [
    "FilterResult",
    "PayloadError",
    "check_advertisement",
    "decode_payload",
    "encode_payload",
]
