"""
Google encoded polyline codec.

Each coordinate delta is scaled by 10**precision, zigzag encoded, split
into 5-bit chunks (least significant first), OR'ed with 0x20 while more
chunks follow, offset by 63 and emitted as ASCII. Latitude and longitude
deltas alternate.
"""

from typing import Iterable, List, Tuple

from errors import MalformedPolylineError

Coordinate = Tuple[float, float]

_OFFSET = 63
_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20


def _read_value(encoded: str, index: int) -> Tuple[int, int]:
    """Read one zigzag-encoded signed integer starting at index.

    Returns (value, next_index).
    """
    result = 0
    shift = 0
    length = len(encoded)
    while True:
        if index >= length:
            raise MalformedPolylineError(
                f"Truncated polyline: value starting before offset {index} never terminates"
            )
        chunk = ord(encoded[index]) - _OFFSET
        if chunk < 0 or chunk > 0x3F:
            raise MalformedPolylineError(
                f"Invalid polyline character {encoded[index]!r} at offset {index}"
            )
        index += 1
        result |= (chunk & _CHUNK_MASK) << shift
        shift += 5
        if chunk < _CONTINUATION:
            break
    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(encoded: str, precision: int = 5) -> List[Coordinate]:
    """Decode an encoded polyline into (lat, lng) pairs in encoding order.

    Raises MalformedPolylineError for truncated input, a latitude without a
    longitude, or characters outside the encoding alphabet.
    """
    factor = 10 ** precision
    coords: List[Coordinate] = []
    index = 0
    lat = 0
    lng = 0
    length = len(encoded or "")

    while index < length:
        dlat, index = _read_value(encoded, index)
        if index >= length:
            raise MalformedPolylineError("Truncated polyline: latitude without longitude")
        dlng, index = _read_value(encoded, index)
        lat += dlat
        lng += dlng
        coords.append((lat / factor, lng / factor))

    return coords


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chars = []
    while value >= _CONTINUATION:
        chars.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _OFFSET))
        value >>= 5
    chars.append(chr(value + _OFFSET))
    return "".join(chars)


def encode_polyline(points: Iterable[Coordinate], precision: int = 5) -> str:
    """Encode (lat, lng) pairs with the standard polyline algorithm."""
    factor = 10 ** precision
    out = []
    prev_lat = 0
    prev_lng = 0
    for lat, lng in points:
        ilat = int(round(lat * factor))
        ilng = int(round(lng * factor))
        out.append(_encode_value(ilat - prev_lat))
        out.append(_encode_value(ilng - prev_lng))
        prev_lat, prev_lng = ilat, ilng
    return "".join(out)
