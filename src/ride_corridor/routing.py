"""Route building: road routing via OSRM with a straight-line fallback.

The OSRM client owns everything OSRM-specific (lng,lat ordering, URL layout,
GeoJSON parsing). ``RouteBuilder`` decides what to do when it fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from .exceptions import RoutingServiceError
from .geo import interpolate
from .models import Point

logger = logging.getLogger(__name__)

FALLBACK_LEG_STEPS = 18


def _is_position(value) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value[:2])
    )


class RoadRouter(Protocol):
    def route(self, waypoints: list[Point]) -> list[Point]: ...


class OSRMClient:
    """Talks to an OSRM ``/route`` endpoint and returns the full geometry."""

    def __init__(
        self,
        base_url: str,
        profile: str = "driving",
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ):
        if not base_url:
            raise ValueError("OSRM base URL is not set")
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    @staticmethod
    def format_coordinates(points: list[Point]) -> str:
        """Convert points to OSRM's ``lng,lat;lng,lat`` form."""
        return ";".join(f"{p.lng},{p.lat}" for p in points)

    def route(self, waypoints: list[Point]) -> list[Point]:
        if len(waypoints) < 2:
            raise ValueError("At least two waypoints are required to compute a route")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(waypoints)}"
        response = self._client.get(url, params={"overview": "full", "geometries": "geojson"})
        if response.status_code != 200:
            raise RoutingServiceError(f"OSRM returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise RoutingServiceError("OSRM returned a non-JSON body") from exc

        if not isinstance(data, dict):
            raise RoutingServiceError("OSRM returned an unexpected body")
        if data.get("code") != "Ok":
            raise RoutingServiceError(f"OSRM error: {data.get('message', data.get('code', 'Unknown error'))}")

        try:
            coordinates = data["routes"][0]["geometry"]["coordinates"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RoutingServiceError("OSRM response has no route geometry") from exc
        if not isinstance(coordinates, list):
            raise RoutingServiceError("OSRM route geometry is not a coordinate list")

        # GeoJSON is [lng, lat]
        points = [Point(lat=c[1], lng=c[0]) for c in coordinates if _is_position(c)]
        if len(points) < 2:
            raise RoutingServiceError("OSRM returned fewer than two coordinates")
        return points

    def close(self) -> None:
        self._client.close()


@dataclass(frozen=True)
class RouteBuild:
    points: list[Point]
    used_fallback: bool


def fallback_route(waypoints: list[Point], leg_steps: int = FALLBACK_LEG_STEPS) -> list[Point]:
    """Straight-line interpolation leg by leg, without repeating junction points."""
    if len(waypoints) <= 1:
        return list(waypoints)

    route: list[Point] = []
    for i in range(len(waypoints) - 1):
        leg = interpolate(waypoints[i], waypoints[i + 1], leg_steps)
        route.extend(leg if i == 0 else leg[1:])
    return route


class RouteBuilder:
    """Turns ordered waypoints into a dense polyline."""

    def __init__(self, router: RoadRouter | None = None, leg_steps: int = FALLBACK_LEG_STEPS):
        self.router = router
        self.leg_steps = leg_steps

    def build(self, waypoints: list[Point]) -> RouteBuild:
        if len(waypoints) < 2:
            return RouteBuild(points=list(waypoints), used_fallback=False)

        if self.router is not None:
            try:
                points = self.router.route(waypoints)
            except (RoutingServiceError, httpx.HTTPError) as exc:
                logger.warning("Road routing failed, using straight-line fallback: %s", exc)
            else:
                if len(points) > 1:
                    return RouteBuild(points=points, used_fallback=False)
                logger.warning("Road routing returned %d points, using straight-line fallback", len(points))

        return RouteBuild(points=fallback_route(waypoints, self.leg_steps), used_fallback=True)


def build_route(waypoints: list[Point], router: RoadRouter | None = None) -> list[Point]:
    """Dense polyline through ``waypoints``; see ``RouteBuilder``."""
    return RouteBuilder(router).build(waypoints).points
