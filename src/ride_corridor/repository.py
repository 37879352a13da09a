"""Route persistence: derive, store and read back per-ride route records.

Route documents are tagged with a ``schema_version``:

- version 1 holds raw ``route_points`` (routes saved before compression),
- version 2 holds an encoded, simplified ``polyline``.

Documents written before the tag existed are classified by their fields.
Reading a route that is missing, legacy or corrupt rebuilds it and writes the
repair back; ``read_or_repair`` reports whether that happened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from .codec import decode_polyline, encode_polyline
from .exceptions import PolylineDecodeError
from .geo import interpolate, polyline_length_km
from .models import BoundingBox, LegacyRouteRecord, Point, RideRecord, RouteRecord
from .simplify import bounding_box, simplify
from .store import RideStore

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_KM = 0.1
DEFAULT_MAX_POINTS = 220
LEGACY_INTERPOLATION_STEPS = 18


@dataclass(frozen=True)
class StoredRoute:
    record: RouteRecord
    points: list[Point]
    bounds: BoundingBox


def parse_route_document(doc: dict[str, Any]) -> RouteRecord | LegacyRouteRecord:
    """Parse a stored route document into its schema variant.

    Raises ``pydantic.ValidationError`` for documents that fit neither.
    """
    version = doc.get("schema_version")
    if version is None:
        version = 2 if isinstance(doc.get("polyline") or doc.get("route_polyline"), str) else 1

    if version == 1:
        return LegacyRouteRecord(
            ride_id=str(doc.get("ride_id") or ""),
            route_points=doc.get("route_points") or [],
            length_km=doc.get("length_km", doc.get("route_distance_km", 0.0)),
        )

    data = dict(doc)
    data["schema_version"] = version
    data["ride_id"] = str(doc.get("ride_id") or "")
    data.setdefault("polyline", doc.get("route_polyline"))
    data.setdefault("length_km", doc.get("route_distance_km", 0.0))
    data.setdefault("point_count", 0)
    data.setdefault("updated_at", datetime.fromtimestamp(0, tz=timezone.utc))
    return RouteRecord.model_validate(data)


def derive_route(
    ride_id: str,
    dense_points: list[Point],
    tolerance_km: float = DEFAULT_TOLERANCE_KM,
    max_points: int = DEFAULT_MAX_POINTS,
    now: datetime | None = None,
) -> StoredRoute:
    """Simplify and encode a dense polyline into a route record."""
    points = simplify(dense_points, tolerance_km, max_points)
    length_km = polyline_length_km(points)
    bounds = bounding_box(points) if len(points) >= 2 else bounding_box([])
    record = RouteRecord(
        ride_id=ride_id,
        polyline=encode_polyline(points),
        length_km=length_km,
        point_count=len(points),
        updated_at=now or datetime.now(timezone.utc),
    )
    return StoredRoute(record=record, points=points, bounds=bounds)


def legacy_source_points(ride: RideRecord, legacy: LegacyRouteRecord | None = None) -> list[Point]:
    """Best dense geometry available for a ride without a usable route record."""
    if legacy is not None and len(legacy.route_points) > 1:
        return legacy.route_points
    if ride.route_points and len(ride.route_points) > 1:
        return ride.route_points
    return interpolate(ride.origin_point, ride.destination_point, LEGACY_INTERPOLATION_STEPS)


def migrate_route(
    ride: RideRecord,
    legacy: LegacyRouteRecord | None,
    tolerance_km: float = DEFAULT_TOLERANCE_KM,
    max_points: int = DEFAULT_MAX_POINTS,
    now: datetime | None = None,
) -> StoredRoute:
    """Upgrade a legacy (or missing) route to the canonical record."""
    return derive_route(ride.id or "", legacy_source_points(ride, legacy), tolerance_km, max_points, now)


class RouteRepository:
    """Reads and writes per-ride routes on top of a ``RideStore``."""

    def __init__(
        self,
        store: RideStore,
        tolerance_km: float = DEFAULT_TOLERANCE_KM,
        max_points: int = DEFAULT_MAX_POINTS,
    ):
        self.store = store
        self.tolerance_km = tolerance_km
        self.max_points = max_points

    def save_route(self, ride_id: str, dense_points: list[Point]) -> StoredRoute:
        stored = derive_route(ride_id, dense_points, self.tolerance_km, self.max_points)
        self.write_route(stored)
        return stored

    def write_route(self, stored: StoredRoute, ride_id: str | None = None) -> StoredRoute:
        """Persist an already derived route, optionally under another ``ride_id``."""
        if ride_id is not None and ride_id != stored.record.ride_id:
            stored = replace(stored, record=stored.record.model_copy(update={"ride_id": ride_id}))
        # Full replacement of the derived fields, so racing repairs are harmless
        self.store.upsert_route(stored.record)
        self.store.update_ride_route(stored.record.ride_id, stored.record.length_km, stored.bounds)
        return stored

    def _decode_stored(self, ride_id: str) -> tuple[list[Point] | None, LegacyRouteRecord | None]:
        doc = self.store.get_route(ride_id)
        if doc is None:
            return None, None

        try:
            parsed = parse_route_document(doc)
        except ValidationError as exc:
            logger.warning("Route record for ride %s is unreadable: %s", ride_id, exc.errors()[0]["msg"])
            return None, None

        if isinstance(parsed, LegacyRouteRecord):
            return None, parsed

        try:
            points = decode_polyline(parsed.polyline)
        except PolylineDecodeError as exc:
            logger.warning("Route polyline for ride %s is corrupt: %s", ride_id, exc)
            return None, None
        return (points if len(points) > 1 else None), None

    def read_or_repair(self, ride: RideRecord) -> tuple[list[Point], bool]:
        """Return a ride's route points and whether they had to be rebuilt.

        A rebuilt route is written back before returning.
        """
        if ride.id is None:
            return legacy_source_points(ride), False

        points, legacy = self._decode_stored(ride.id)
        if points is not None:
            return points, False

        stored = migrate_route(ride, legacy, self.tolerance_km, self.max_points)
        self.write_route(stored)
        logger.info("Repaired route for ride %s (%d points)", ride.id, stored.record.point_count)
        return stored.points, True
