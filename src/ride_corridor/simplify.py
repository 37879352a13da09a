"""Polyline simplification, bounding boxes and corridor buffers."""

from __future__ import annotations

import math

from .geo import KM_PER_DEG_LAT, KM_PER_DEG_LNG_EQUATOR, project_point_to_segment
from .models import BoundingBox, Point

DEFAULT_TOLERANCE_KM = 0.15
DEFAULT_MAX_POINTS = 240
MIN_LNG_SCALE = 1e-6


def _rdp_keep_mask(points: list[Point], tolerance_km: float) -> list[bool]:
    """Ramer-Douglas-Peucker over an explicit stack of index ranges."""
    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    stack = [(0, len(points) - 1)]

    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue

        first, last = points[start], points[end]
        max_distance = 0.0
        index = -1
        for i in range(start + 1, end):
            d = project_point_to_segment(points[i], first, last).distance_km
            if d > max_distance:
                max_distance = d
                index = i

        if index != -1 and max_distance > tolerance_km:
            keep[index] = True
            stack.append((index, end))
            stack.append((start, index))

    return keep


def _subsample(points: list[Point], max_points: int) -> list[Point]:
    cap = max(2, max_points)
    stride = math.ceil(len(points) / cap)
    reduced = points[::stride]
    if (len(points) - 1) % stride:
        if len(reduced) >= cap:
            reduced[-1] = points[-1]
        else:
            reduced.append(points[-1])
    return reduced


def simplify(
    points: list[Point],
    tolerance_km: float = DEFAULT_TOLERANCE_KM,
    max_points: int = DEFAULT_MAX_POINTS,
) -> list[Point]:
    """Reduce a dense polyline to within ``tolerance_km`` of the original.

    If the result still has more than ``max_points`` points it is uniformly
    subsampled. The first and last points are always kept and the order is
    never changed.
    """
    if len(points) <= 2:
        return list(points)

    keep = _rdp_keep_mask(points, tolerance_km)
    simplified = [p for p, kept in zip(points, keep) if kept]

    if len(simplified) <= max(2, max_points):
        return simplified
    return _subsample(simplified, max_points)


def bounding_box(points: list[Point]) -> BoundingBox:
    """Envelope of the points; all zeros when there are none."""
    if not points:
        return BoundingBox(min_lat=0.0, max_lat=0.0, min_lng=0.0, max_lng=0.0)

    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return BoundingBox(min_lat=min(lats), max_lat=max(lats), min_lng=min(lngs), max_lng=max(lngs))


def corridor_buffers(corridor_km: float, ref_lat: float) -> tuple[float, float]:
    """Convert a corridor width to (lat, lng) degree buffers around ``ref_lat``."""
    lat_buffer = corridor_km / KM_PER_DEG_LAT
    lng_scale = abs(KM_PER_DEG_LNG_EQUATOR * math.cos(math.radians(ref_lat)))
    return lat_buffer, corridor_km / max(lng_scale, MIN_LNG_SCALE)


def query_window(pickup: Point, drop: Point, corridor_km: float) -> BoundingBox:
    """Envelope of a pickup/drop pair expanded by the corridor buffers."""
    lat_buffer, lng_buffer = corridor_buffers(corridor_km, (pickup.lat + drop.lat) / 2)
    return BoundingBox(
        min_lat=min(pickup.lat, drop.lat) - lat_buffer,
        max_lat=max(pickup.lat, drop.lat) + lat_buffer,
        min_lng=min(pickup.lng, drop.lng) - lng_buffer,
        max_lng=max(pickup.lng, drop.lng) + lng_buffer,
    )


def boxes_overlap(a: BoundingBox, b: BoundingBox) -> bool:
    return a.min_lat <= b.max_lat and a.max_lat >= b.min_lat and a.min_lng <= b.max_lng and a.max_lng >= b.min_lng
