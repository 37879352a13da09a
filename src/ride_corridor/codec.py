"""Encoded polyline codec (precision 5).

Each coordinate is scaled by 1e5, rounded, and stored as a delta from the
previous point. Deltas are zig-zag mapped and written as 5-bit groups, least
significant first, offset by 63 into printable ASCII with 0x20 marking a
continuation.
"""

from __future__ import annotations

from .exceptions import PolylineDecodeError
from .models import Point

PRECISION = 1e5


def _encode_value(value: int) -> str:
    v = ~(value << 1) if value < 0 else value << 1
    chars = []
    while v >= 0x20:
        chars.append(chr((0x20 | (v & 0x1F)) + 63))
        v >>= 5
    chars.append(chr(v + 63))
    return "".join(chars)


def encode_polyline(points: list[Point]) -> str:
    """Encode an ordered point sequence into a polyline string."""
    parts: list[str] = []
    prev_lat = prev_lng = 0

    for point in points:
        lat = round(point.lat * PRECISION)
        lng = round(point.lng * PRECISION)
        parts.append(_encode_value(lat - prev_lat))
        parts.append(_encode_value(lng - prev_lng))
        prev_lat, prev_lng = lat, lng

    return "".join(parts)


def _decode_value(text: str, index: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if index >= len(text):
            raise PolylineDecodeError(f"Polyline ends inside a value at offset {index}")
        byte = ord(text[index]) - 63
        if byte < 0:
            raise PolylineDecodeError(f"Invalid polyline character {text[index]!r} at offset {index}")
        index += 1
        result |= (byte & 0x1F) << shift
        shift += 5
        if byte < 0x20:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(text: str) -> list[Point]:
    """Decode a polyline string back into points."""
    points: list[Point] = []
    index = 0
    lat = lng = 0

    while index < len(text):
        d_lat, index = _decode_value(text, index)
        d_lng, index = _decode_value(text, index)
        lat += d_lat
        lng += d_lng
        points.append(Point(lat=lat / PRECISION, lng=lng / PRECISION))

    return points
