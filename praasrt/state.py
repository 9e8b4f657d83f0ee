"""Binary encoding of the list of state keys with their timestamps.

The layout is a little-endian 64-bit count, then for every entry a 64-bit
string length, the UTF-8 bytes of the key and a 64-bit float.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable

_COUNT = struct.Struct("<Q")
_DOUBLE = struct.Struct("<d")


def serialize_state_keys(keys: Iterable[tuple[str, float]]) -> bytes:
    """Encode a sequence of ``(key, timestamp)`` pairs."""
    entries = list(keys)
    parts = [_COUNT.pack(len(entries))]
    for name, timestamp in entries:
        raw = name.encode("utf-8", "surrogateescape")
        parts.append(_COUNT.pack(len(raw)))
        parts.append(raw)
        parts.append(_DOUBLE.pack(float(timestamp)))
    return b"".join(parts)


def _take(data: memoryview, pos: int, count: int) -> tuple[memoryview, int]:
    end = pos + count
    if end > len(data):
        raise ValueError(
            f"State keys truncated: need {count} bytes at offset {pos}, have {len(data) - pos}"
        )
    return data[pos:end], end


def deserialize_state_keys(data: bytes) -> list[tuple[str, float]]:
    """Decode the bytes produced by :func:`serialize_state_keys`."""
    view = memoryview(bytes(data))
    chunk, pos = _take(view, 0, _COUNT.size)
    (count,) = _COUNT.unpack(chunk)
    keys: list[tuple[str, float]] = []
    for _ in range(count):
        chunk, pos = _take(view, pos, _COUNT.size)
        (length,) = _COUNT.unpack(chunk)
        raw, pos = _take(view, pos, length)
        chunk, pos = _take(view, pos, _DOUBLE.size)
        (timestamp,) = _DOUBLE.unpack(chunk)
        keys.append((bytes(raw).decode("utf-8", "surrogateescape"), timestamp))
    return keys