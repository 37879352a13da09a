import pytest

from ride_corridor.geocoding import CityTableGeocoder
from ride_corridor.models import Point, RideRecord
from ride_corridor.repository import RouteRepository
from ride_corridor.store import MemoryRideStore

COLOMBO = Point(lat=6.9271, lng=79.8612)
KANDY = Point(lat=7.2906, lng=80.6337)
GALLE = Point(lat=6.0535, lng=80.221)


@pytest.fixture
def colombo():
    return COLOMBO


@pytest.fixture
def kandy():
    return KANDY


@pytest.fixture
def galle():
    return GALLE


@pytest.fixture
def store():
    return MemoryRideStore()


@pytest.fixture
def repository(store):
    return RouteRepository(store)


@pytest.fixture
def geocoder():
    return CityTableGeocoder()


def make_ride(origin: Point, destination: Point, departure_at: str = "2026-03-01T06:30:00.000Z", **kwargs) -> RideRecord:
    return RideRecord(
        origin=kwargs.pop("origin_name", "A"),
        destination=kwargs.pop("destination_name", "B"),
        origin_point=origin,
        destination_point=destination,
        departure_at=departure_at,
        price_lkr=kwargs.pop("price_lkr", 1500),
        seats_left=kwargs.pop("seats_left", 2),
        driver_name=kwargs.pop("driver_name", "Driver"),
        **kwargs,
    )
