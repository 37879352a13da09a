"""Great-circle distance, interpolation and point-to-polyline projection.

Projection uses a local equirectangular frame anchored at the mean latitude of
the points involved. Errors stay well under 1% for segments up to a few
hundred kilometres away from the poles.
"""

import math

from .models import Point, PolylineProjection, SegmentProjection

EARTH_RADIUS_KM = 6371.0
KM_PER_DEG_LAT = 110.574
KM_PER_DEG_LNG_EQUATOR = 111.32


def distance_km(a: Point, b: Point) -> float:
    """Haversine distance between two points in kilometres."""
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


def interpolate(a: Point, b: Point, steps: int = 16) -> list[Point]:
    """Return ``max(2, steps) + 1`` points on the straight lat/lng line from a to b."""
    count = max(2, steps)
    return [
        Point(lat=a.lat + (b.lat - a.lat) * i / count, lng=a.lng + (b.lng - a.lng) * i / count)
        for i in range(count + 1)
    ]


def _lng_scale(anchor_lat: float) -> float:
    return KM_PER_DEG_LNG_EQUATOR * math.cos(math.radians(anchor_lat))


def project_point_to_segment(p: Point, a: Point, b: Point) -> SegmentProjection:
    """Project ``p`` onto segment ``[a, b]``, clamping to the segment ends."""
    anchor_lat = (p.lat + a.lat + b.lat) / 3
    kx = _lng_scale(anchor_lat)
    ky = KM_PER_DEG_LAT

    px, py = p.lng * kx, p.lat * ky
    ax, ay = a.lng * kx, a.lat * ky
    vx, vy = b.lng * kx - ax, b.lat * ky - ay
    wx, wy = px - ax, py - ay

    lensq = vx * vx + vy * vy
    raw_t = 0.0 if lensq == 0 else (wx * vx + wy * vy) / lensq
    t = max(0.0, min(1.0, raw_t))

    proj_x = ax + t * vx
    proj_y = ay + t * vy
    projected = Point(lat=proj_y / ky, lng=a.lng if kx == 0 else proj_x / kx)

    return SegmentProjection(projected=projected, distance_km=distance_km(p, projected), t=t)


def cumulative_distances(points: list[Point]) -> list[float]:
    """Running distance in km from the first point to each point."""
    if not points:
        return []

    cumulative = [0.0]
    for i in range(1, len(points)):
        cumulative.append(cumulative[-1] + distance_km(points[i - 1], points[i]))
    return cumulative


def polyline_length_km(points: list[Point]) -> float:
    if len(points) < 2:
        return 0.0
    return cumulative_distances(points)[-1]


def project_point_on_polyline(p: Point, polyline: list[Point]) -> PolylineProjection:
    """Closest distance from ``p`` to the polyline and how far along it that is.

    A polyline with fewer than two points is unmatchable and yields an
    infinite distance.
    """
    if len(polyline) < 2:
        return PolylineProjection(closest_distance_km=math.inf, along_distance_km=0.0)

    cumulative = cumulative_distances(polyline)
    best_distance = math.inf
    best_along = 0.0

    for i in range(len(polyline) - 1):
        start, end = polyline[i], polyline[i + 1]
        projection = project_point_to_segment(p, start, end)
        if projection.distance_km < best_distance:
            best_distance = projection.distance_km
            segment_km = cumulative[i + 1] - cumulative[i]
            best_along = cumulative[i] + segment_km * projection.t

    return PolylineProjection(closest_distance_km=best_distance, along_distance_km=best_along)
