"""FastAPI server for publishing and searching rides."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request

from .config import Settings, configure_logging
from .exceptions import PlaceNotFoundError
from .geocoding import CityTableGeocoder, Geocoder, NominatimGeocoder
from .matcher import CorridorMatcher
from .models import NewRide, Point, RideSummary
from .repository import RouteRepository
from .rides import RideService
from .routing import OSRMClient, RoadRouter, RouteBuilder
from .store import MemoryRideStore, MongoRideStore, RideStore

logger = logging.getLogger(__name__)


def _default_store(settings: Settings) -> RideStore:
    if settings.mongodb_uri:
        return MongoRideStore(settings.mongodb_uri, settings.mongodb_db)
    logger.warning("MONGODB_URI not set, rides are kept in memory")
    return MemoryRideStore()


def _default_geocoder(settings: Settings) -> Geocoder:
    if settings.geocoder == "cities":
        return CityTableGeocoder()
    return NominatimGeocoder(
        base_url=settings.nominatim_base_url,
        user_agent=settings.geocoder_user_agent,
        country_codes=settings.geocoder_country_codes,
    )


def _default_router(settings: Settings) -> RoadRouter | None:
    if not settings.routing_enabled:
        return None
    return OSRMClient(settings.osrm_base_url, settings.osrm_profile, settings.osrm_timeout)


def create_app(
    settings: Settings | None = None,
    store: RideStore | None = None,
    geocoder: Geocoder | None = None,
    router: RoadRouter | None = None,
) -> FastAPI:
    """Build the app; collaborators not passed in are created from ``settings``.

    The store is opened at startup; it and the geocoding and routing clients
    are closed when the app shuts down.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ride_store = store or _default_store(settings)
        place_geocoder = geocoder or _default_geocoder(settings)
        road_router = router if router is not None else _default_router(settings)
        repository = RouteRepository(ride_store, settings.simplify_tolerance_km, settings.simplify_max_points)
        app.state.store = ride_store
        app.state.rides = RideService(ride_store, place_geocoder, RouteBuilder(road_router), repository)
        app.state.matcher = CorridorMatcher(repository)
        if settings.seed_demo_rides:
            seeded = app.state.rides.seed_rides()
            if seeded:
                logger.info("Seeded %d demo rides", seeded)
        try:
            yield
        finally:
            for client in (place_geocoder, road_router):
                close = getattr(client, "close", None)
                if close is not None:
                    close()
            ride_store.close()

    app = FastAPI(title="Ride Corridor", version="0.1.0", lifespan=lifespan)

    @app.post("/rides", response_model=RideSummary)
    def publish_ride(new_ride: NewRide, request: Request):
        """Publish a ride; 400 if its origin or destination cannot be resolved."""
        try:
            return request.app.state.rides.create_ride(new_ride)
        except PlaceNotFoundError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/rides")
    def list_rides(request: Request, limit: int = Query(12, ge=1, le=100)):
        return {"rides": request.app.state.rides.list_rides(limit)}

    @app.get("/rides/search")
    def search_rides(
        request: Request,
        pickup_lat: float = Query(..., ge=-90, le=90),
        pickup_lng: float = Query(..., ge=-180, le=180),
        drop_lat: float = Query(..., ge=-90, le=90),
        drop_lng: float = Query(..., ge=-180, le=180),
        corridor_km: float = Query(5.0, gt=0),
        limit: int = Query(20, ge=1, le=100),
    ):
        """Rides whose route passes within ``corridor_km`` of pickup, then drop."""
        matches = request.app.state.matcher.find_routes_in_corridor(
            Point(lat=pickup_lat, lng=pickup_lng),
            Point(lat=drop_lat, lng=drop_lng),
            corridor_km,
            limit,
        )
        return {"rides": matches}

    @app.get("/places/suggest")
    def suggest_places(request: Request, q: str = "", limit: int = Query(8, ge=1, le=10)):
        return {"locations": request.app.state.rides.geocoder.suggest(q, limit)}

    return app


app = create_app()
