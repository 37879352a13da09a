"""Route corridor matching and polyline compression for ride sharing."""

from .codec import decode_polyline, encode_polyline
from .geo import (
    cumulative_distances,
    distance_km,
    interpolate,
    polyline_length_km,
    project_point_on_polyline,
    project_point_to_segment,
)
from .matcher import CorridorMatcher
from .models import BoundingBox, CorridorMatch, Point, RideRecord, RouteRecord
from .repository import RouteRepository
from .routing import OSRMClient, RouteBuilder, build_route
from .simplify import bounding_box, corridor_buffers, simplify

__all__ = [
    "BoundingBox",
    "CorridorMatch",
    "CorridorMatcher",
    "OSRMClient",
    "Point",
    "RideRecord",
    "RouteBuilder",
    "RouteRecord",
    "RouteRepository",
    "bounding_box",
    "build_route",
    "corridor_buffers",
    "cumulative_distances",
    "decode_polyline",
    "distance_km",
    "encode_polyline",
    "interpolate",
    "polyline_length_km",
    "project_point_on_polyline",
    "project_point_to_segment",
    "simplify",
]
