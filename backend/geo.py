# geo.py
# geohash encoding, circle -> geohash range bounds, great-circle distance

import math
from typing import List, Tuple

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
GEOHASH_PRECISION = 10
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

EARTH_MERI_CIRCUMFERENCE = 40007860  # meters
METERS_PER_DEGREE_LATITUDE = 110574
EARTH_EQ_RADIUS = 6378137.0
EARTH_RADIUS_KM = 6371.0
E2 = 0.00669447819799  # WGS84 eccentricity squared
EPSILON = 1e-12

LatLng = Tuple[float, float]


def geohash_for_location(location: LatLng, precision: int = GEOHASH_PRECISION) -> str:
    lat, lng = location
    lat_range = [-90.0, 90.0]
    lng_range = [-180.0, 180.0]
    out = []
    hash_val = 0
    bits = 0
    even = True
    while len(out) < precision:
        val = lng if even else lat
        rng = lng_range if even else lat_range
        mid = (rng[0] + rng[1]) / 2
        if val > mid:
            hash_val = (hash_val << 1) + 1
            rng[0] = mid
        else:
            hash_val = hash_val << 1
            rng[1] = mid
        even = not even
        if bits < 4:
            bits += 1
        else:
            out.append(BASE32[hash_val])
            bits = 0
            hash_val = 0
    return "".join(out)


def distance_km(a: LatLng, b: LatLng) -> float:
    """Haversine distance in kilometers."""
    dlat = math.radians(b[0] - a[0])
    dlng = math.radians(b[1] - a[1])
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(a[0])) * math.cos(math.radians(b[0])) * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_m(a: LatLng, b: LatLng) -> float:
    return distance_km(a, b) * 1000


def meters_to_longitude_degrees(distance: float, latitude: float) -> float:
    radians = math.radians(latitude)
    num = math.cos(radians) * EARTH_EQ_RADIUS * math.pi / 180
    denom = 1 / math.sqrt(1 - E2 * math.sin(radians) * math.sin(radians))
    delta_deg = num * denom
    if delta_deg < EPSILON:
        return 360.0 if distance > 0 else 0.0
    return min(360.0, distance / delta_deg)


def wrap_longitude(lng: float) -> float:
    if -180 <= lng <= 180:
        return lng
    adjusted = lng + 180
    if adjusted > 0:
        return (adjusted % 360) - 180
    return 180 - (-adjusted % 360)


def _latitude_bits_for_resolution(resolution: float) -> float:
    return min(math.log2(EARTH_MERI_CIRCUMFERENCE / 2 / resolution), MAXIMUM_BITS_PRECISION)


def _longitude_bits_for_resolution(resolution: float, latitude: float) -> float:
    degs = meters_to_longitude_degrees(resolution, latitude)
    return max(1.0, math.log2(360 / degs)) if abs(degs) > 0.000001 else 1.0


def _bounding_box_bits(center: LatLng, size: float) -> int:
    lat_delta = size / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90.0, center[0] + lat_delta)
    lat_south = max(-90.0, center[0] - lat_delta)
    bits_lat = math.floor(_latitude_bits_for_resolution(size)) * 2
    bits_lng_north = math.floor(_longitude_bits_for_resolution(size, lat_north)) * 2 - 1
    bits_lng_south = math.floor(_longitude_bits_for_resolution(size, lat_south)) * 2 - 1
    return min(bits_lat, bits_lng_north, bits_lng_south, MAXIMUM_BITS_PRECISION)


def _bounding_box_coordinates(center: LatLng, radius: float) -> List[LatLng]:
    lat_degrees = radius / METERS_PER_DEGREE_LATITUDE
    lat_north = min(90.0, center[0] + lat_degrees)
    lat_south = max(-90.0, center[0] - lat_degrees)
    lng_degs = max(
        meters_to_longitude_degrees(radius, lat_north),
        meters_to_longitude_degrees(radius, lat_south),
    )
    west = wrap_longitude(center[1] - lng_degs)
    east = wrap_longitude(center[1] + lng_degs)
    return [
        (lat, lng)
        for lat in (center[0], lat_north, lat_south)
        for lng in (center[1], west, east)
    ]


def _geohash_query(geohash: str, bits: int) -> Tuple[str, str]:
    precision = math.ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return (geohash, geohash + "~")
    geohash = geohash[:precision]
    base = geohash[:-1]
    last_value = BASE32.index(geohash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits
    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return (base + BASE32[start_value], base + "~")
    return (base + BASE32[start_value], base + BASE32[end_value])


def geohash_query_bounds(center: LatLng, radius_m: float) -> List[Tuple[str, str]]:
    """
    Cover a circle with [start, end] geohash string ranges.

    The union of the ranges over-approximates the circle, so callers still
    have to post-filter hits by true distance. Ranges are inclusive on both
    ends; "~" sorts after every base32 character.
    """
    query_bits = max(1, _bounding_box_bits(center, radius_m))
    precision = math.ceil(query_bits / BITS_PER_CHAR)
    out: List[Tuple[str, str]] = []
    for coord in _bounding_box_coordinates(center, radius_m):
        q = _geohash_query(geohash_for_location(coord, precision), query_bits)
        if q not in out:
            out.append(q)
    return out
