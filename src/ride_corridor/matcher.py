"""Corridor search: which stored rides pass near a pickup and then a drop.

Two phases. The store prefilters rides by bounding-box overlap with the
pickup/drop envelope widened by the corridor (rides without stored bounds are
always kept). Each surviving route is then decoded and both points are
projected onto it. Results come back in departure order, stopping at
``limit``; they are not ranked by distance.
"""

from __future__ import annotations

import logging

from .geo import project_point_on_polyline
from .models import CorridorMatch, Point, RideMatch, RideRecord, RideSummary
from .repository import RouteRepository
from .simplify import query_window

logger = logging.getLogger(__name__)

CANDIDATE_FACTOR = 4


def match_route(
    route: list[Point],
    pickup: Point,
    drop: Point,
    corridor_km: float,
) -> tuple[float, float] | None:
    """Pickup and drop distances to ``route`` if both fit the corridor in order."""
    if len(route) < 2:
        return None

    pickup_projection = project_point_on_polyline(pickup, route)
    drop_projection = project_point_on_polyline(drop, route)

    if pickup_projection.closest_distance_km > corridor_km or drop_projection.closest_distance_km > corridor_km:
        return None
    if pickup_projection.along_distance_km >= drop_projection.along_distance_km:
        return None
    return pickup_projection.closest_distance_km, drop_projection.closest_distance_km


class CorridorMatcher:
    def __init__(self, repository: RouteRepository):
        self.repository = repository

    def candidates(self, pickup: Point, drop: Point, corridor_km: float, limit: int) -> list[RideRecord]:
        window = query_window(pickup, drop, corridor_km)
        return self.repository.store.find_candidates(window, max(limit * CANDIDATE_FACTOR, limit))

    def find(
        self,
        pickup: Point,
        drop: Point,
        corridor_km: float = 5.0,
        limit: int = 20,
    ) -> list[tuple[RideRecord, CorridorMatch]]:
        matches: list[tuple[RideRecord, CorridorMatch]] = []
        if limit <= 0:
            return matches

        for ride in self.candidates(pickup, drop, corridor_km, limit):
            if ride.seats_left <= 0:
                continue

            route, repaired = self.repository.read_or_repair(ride)
            if repaired and ride.id is not None:
                ride = self.repository.store.get_ride(ride.id) or ride
            distances = match_route(route, pickup, drop, corridor_km)
            if distances is None:
                logger.debug("Ride %s rejected for corridor %.2f km", ride.id, corridor_km)
                continue

            match = CorridorMatch(
                ride_id=ride.id or "",
                pickup_distance_km=round(distances[0], 2),
                drop_distance_km=round(distances[1], 2),
            )
            matches.append((ride, match))
            if len(matches) >= limit:
                break

        return matches

    def find_routes_in_corridor(
        self,
        pickup: Point,
        drop: Point,
        corridor_km: float = 5.0,
        limit: int = 20,
    ) -> list[RideMatch]:
        """Search results for the ride board, ride summary plus distances."""
        return [
            RideMatch(ride=RideSummary.from_record(ride), match=match)
            for ride, match in self.find(pickup, drop, corridor_km, limit)
        ]
