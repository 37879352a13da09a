"""Ride publishing, listing and demo seeding."""

from __future__ import annotations

import logging

from .exceptions import PlaceNotFoundError
from .geocoding import Geocoder
from .models import NewRide, Place, Point, RidePayload, RideRecord, RideSummary
from .repository import RouteRepository, StoredRoute, derive_route
from .routing import RouteBuilder
from .store import RideStore

logger = logging.getLogger(__name__)

DEMO_RIDES = [
    NewRide(
        origin="Colombo",
        destination="Kandy",
        departure_at="2026-03-01T06:30:00.000Z",
        price_lkr=1800,
        seats_left=2,
        driver_name="Kasun Perera",
        driver_rating=4.8,
    ),
    NewRide(
        origin="Galle",
        destination="Colombo",
        departure_at="2026-03-01T07:15:00.000Z",
        price_lkr=1500,
        seats_left=1,
        driver_name="Nadeesha Silva",
        driver_rating=4.9,
    ),
    NewRide(
        origin="Negombo",
        destination="Ella",
        departure_at="2026-03-02T05:50:00.000Z",
        price_lkr=3400,
        seats_left=3,
        driver_name="Tharindu Jayasekara",
        driver_rating=4.7,
        waypoints=["Kandy"],
    ),
    NewRide(
        origin="Kurunegala",
        destination="Jaffna",
        departure_at="2026-03-02T09:00:00.000Z",
        price_lkr=3900,
        seats_left=2,
        driver_name="Iresha Fernando",
        driver_rating=4.6,
        waypoints=["Anuradhapura"],
    ),
]


class RideService:
    """The ride-publishing flow: geocode, route, compress, store."""

    def __init__(
        self,
        store: RideStore,
        geocoder: Geocoder,
        builder: RouteBuilder,
        repository: RouteRepository,
    ):
        self.store = store
        self.geocoder = geocoder
        self.builder = builder
        self.repository = repository

    def _derive(self, waypoints: list[Point]) -> StoredRoute:
        build = self.builder.build(waypoints)
        return derive_route("", build.points, self.repository.tolerance_km, self.repository.max_points)

    def build_ride_payload(self, waypoints: list[Point]) -> RidePayload:
        """Dense route through ``waypoints``, simplified and encoded."""
        stored = self._derive(waypoints)
        return RidePayload(
            encoded_polyline=stored.record.polyline,
            length_km=stored.record.length_km,
            bounding_box=stored.bounds,
            points=stored.points,
        )

    def _resolve(self, name: str, point: Point | None) -> Place:
        if point is not None:
            return Place(name=name, address=name, lat=point.lat, lng=point.lng)
        place = self.geocoder.resolve(name)
        if place is None:
            raise PlaceNotFoundError(name)
        return place

    def create_ride(self, new_ride: NewRide) -> RideSummary:
        origin = self._resolve(new_ride.origin, new_ride.origin_point)
        destination = self._resolve(new_ride.destination, new_ride.destination_point)

        stops: list[Point] = []
        for name in new_ride.waypoints:
            place = self.geocoder.resolve(name)
            if place is None:
                logger.warning("Dropping unresolved waypoint %r", name)
                continue
            stops.append(place.point)

        stored = self._derive([origin.point, *stops, destination.point])
        ride = RideRecord(
            origin=origin.name,
            destination=destination.name,
            origin_point=origin.point,
            destination_point=destination.point,
            departure_at=new_ride.departure_at,
            price_lkr=new_ride.price_lkr,
            seats_left=new_ride.seats_left,
            driver_name=new_ride.driver_name,
            driver_rating=new_ride.driver_rating,
            route_distance_km=stored.record.length_km,
            bounds=None if stored.bounds.is_empty else stored.bounds,
        )
        ride_id = self.store.insert_ride(ride)
        self.repository.write_route(stored, ride_id)
        logger.info(
            "Published ride %s: %s -> %s (%.1f km)", ride_id, origin.name, destination.name, stored.record.length_km
        )

        return RideSummary.from_record(ride.model_copy(update={"id": ride_id}))

    def list_rides(self, limit: int = 12) -> list[RideSummary]:
        return [RideSummary.from_record(ride) for ride in self.store.list_rides(limit)]

    def seed_rides(self, rides: list[NewRide] | None = None) -> int:
        """Publish the demo rides into an empty store; returns how many were added."""
        if self.store.count_rides() > 0:
            return 0

        seeded = 0
        for new_ride in rides if rides is not None else DEMO_RIDES:
            try:
                self.create_ride(new_ride)
            except PlaceNotFoundError as exc:
                logger.warning("Skipping demo ride: %s", exc)
                continue
            seeded += 1
        return seeded
