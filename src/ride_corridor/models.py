"""Pydantic data models for the ride corridor engine."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Point(BaseModel):
    """A latitude/longitude pair in degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class BoundingBox(BaseModel):
    """Axis-aligned envelope of a polyline."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @property
    def is_empty(self) -> bool:
        return self.min_lat == self.max_lat == self.min_lng == self.max_lng == 0


class SegmentProjection(BaseModel):
    """Projection of a point onto a single segment."""

    projected: Point
    distance_km: float
    t: float


class PolylineProjection(BaseModel):
    """Best projection of a point onto a polyline."""

    closest_distance_km: float
    along_distance_km: float


class RouteRecord(BaseModel):
    """Canonical stored route: encoded, simplified polyline for one ride."""

    schema_version: Literal[2] = 2
    ride_id: str
    polyline: str
    length_km: float
    point_count: int
    updated_at: datetime


class LegacyRouteRecord(BaseModel):
    """Older stored route holding raw points instead of an encoded polyline."""

    schema_version: Literal[1] = 1
    ride_id: str
    route_points: list[Point] = Field(default_factory=list)
    length_km: float = 0.0


class RideRecord(BaseModel):
    """A published ride as held by the document store."""

    id: str | None = None
    origin: str = "Unknown"
    destination: str = "Unknown"
    origin_point: Point = Point(lat=0.0, lng=0.0)
    destination_point: Point = Point(lat=0.0, lng=0.0)
    departure_at: str
    price_lkr: float = 0.0
    seats_left: int = 1
    driver_name: str = "Driver"
    driver_rating: float = 4.5
    route_distance_km: float = 0.0
    bounds: BoundingBox | None = None
    # Only present on rides stored before routes moved to their own records
    route_points: list[Point] | None = None


class CorridorMatch(BaseModel):
    """How far a pickup/drop pair sits from one ride's route."""

    ride_id: str
    pickup_distance_km: float
    drop_distance_km: float


class RideSummary(BaseModel):
    """Caller-facing view of a ride."""

    id: str
    origin: str
    destination: str
    departure_at: str
    price_lkr: float
    seats_left: int
    driver_name: str
    driver_rating: float
    route_distance_km: float

    @classmethod
    def from_record(cls, ride: RideRecord) -> RideSummary:
        return cls(
            id=ride.id or f"{ride.origin}-{ride.destination}-{ride.departure_at}",
            origin=ride.origin,
            destination=ride.destination,
            departure_at=ride.departure_at,
            price_lkr=ride.price_lkr,
            seats_left=ride.seats_left,
            driver_name=ride.driver_name,
            driver_rating=ride.driver_rating,
            route_distance_km=round(ride.route_distance_km, 1),
        )


class RideMatch(BaseModel):
    """A search hit: the ride plus its corridor distances."""

    ride: RideSummary
    match: CorridorMatch


class RidePayload(BaseModel):
    """Derived route data for a ride about to be published."""

    encoded_polyline: str
    length_km: float
    bounding_box: BoundingBox
    points: list[Point]


class NewRide(BaseModel):
    """Input for publishing a ride."""

    origin: str
    destination: str
    origin_point: Point | None = None
    destination_point: Point | None = None
    departure_at: str
    price_lkr: float
    seats_left: int = Field(ge=0)
    driver_name: str
    driver_rating: float = 4.6
    waypoints: list[str] = Field(default_factory=list)


class Place(BaseModel):
    """A geocoded place."""

    name: str
    address: str
    lat: float
    lng: float

    @property
    def point(self) -> Point:
        return Point(lat=self.lat, lng=self.lng)
