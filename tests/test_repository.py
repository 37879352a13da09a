"""Tests for route persistence, legacy migration and the store adapters."""

from datetime import datetime, timezone

import mongomock
import pytest

from ride_corridor.codec import decode_polyline, encode_polyline
from ride_corridor.geo import interpolate
from ride_corridor.models import BoundingBox, LegacyRouteRecord, RouteRecord
from ride_corridor.repository import derive_route, migrate_route, parse_route_document
from ride_corridor.store import MongoRideStore

from conftest import COLOMBO, GALLE, KANDY, make_ride

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


class TestParseRouteDocument:
    def test_canonical(self):
        doc = {"schema_version": 2, "ride_id": "r1", "polyline": "_p~iF~ps|U", "length_km": 3.5, "point_count": 1, "updated_at": NOW}
        record = parse_route_document(doc)
        assert isinstance(record, RouteRecord)
        assert record.polyline == "_p~iF~ps|U"

    def test_untagged_raw_points_are_legacy(self):
        doc = {"ride_id": "r1", "route_points": [{"lat": 7.0, "lng": 80.0}, {"lat": 7.1, "lng": 80.1}]}
        record = parse_route_document(doc)
        assert isinstance(record, LegacyRouteRecord)
        assert len(record.route_points) == 2

    def test_untagged_polyline_is_canonical(self):
        doc = {"ride_id": "r1", "route_polyline": "_p~iF~ps|U", "route_distance_km": 12.0}
        record = parse_route_document(doc)
        assert isinstance(record, RouteRecord)
        assert record.length_km == 12.0

    def test_unknown_version_rejected(self):
        with pytest.raises(ValueError):
            parse_route_document({"schema_version": 9, "ride_id": "r1", "polyline": ""})


class TestMigrateRoute:
    def test_uses_legacy_points(self):
        legacy = LegacyRouteRecord(ride_id="r1", route_points=[GALLE, COLOMBO, KANDY])
        stored = migrate_route(make_ride(COLOMBO, KANDY, id="r1"), legacy, now=NOW)
        assert stored.points == [GALLE, COLOMBO, KANDY]
        assert stored.record.point_count == 3

    def test_falls_back_to_ride_points(self):
        ride = make_ride(COLOMBO, KANDY, id="r1", route_points=[GALLE, KANDY])
        stored = migrate_route(ride, LegacyRouteRecord(ride_id="r1"), now=NOW)
        assert stored.points == [GALLE, KANDY]

    def test_interpolates_endpoints(self):
        stored = migrate_route(make_ride(COLOMBO, KANDY, id="r1"), None, now=NOW)
        assert stored.points[0] == COLOMBO
        assert stored.bounds.min_lat == COLOMBO.lat

    def test_deterministic(self):
        ride = make_ride(COLOMBO, KANDY, id="r1")
        assert migrate_route(ride, None, now=NOW) == migrate_route(ride, None, now=NOW)


class TestRouteRepository:
    def test_save_then_read(self, store, repository):
        ride_id = store.insert_ride(make_ride(GALLE, KANDY))
        stored = repository.save_route(ride_id, [GALLE, COLOMBO, KANDY])

        points, repaired = repository.read_or_repair(store.get_ride(ride_id))
        assert not repaired
        assert points == decode_polyline(stored.record.polyline)
        assert store.get_ride(ride_id).bounds == stored.bounds

    def test_write_derived_route_under_ride_id(self, store, repository):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY))
        derived = derive_route("", [COLOMBO, KANDY], now=NOW)

        written = repository.write_route(derived, ride_id)
        assert written.record.ride_id == ride_id
        assert derived.record.ride_id == ""
        assert store.routes[ride_id]["polyline"] == derived.record.polyline
        assert store.get_ride(ride_id).bounds == derived.bounds

    def test_missing_route_is_repaired_once(self, store, repository):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY))
        ride = store.get_ride(ride_id)
        assert ride.bounds is None

        points, repaired = repository.read_or_repair(ride)
        assert repaired
        assert len(points) >= 2
        assert store.routes[ride_id]["schema_version"] == 2
        assert store.get_ride(ride_id).bounds is not None

        again, repaired_again = repository.read_or_repair(store.get_ride(ride_id))
        assert not repaired_again
        assert again == decode_polyline(encode_polyline(points))

    def test_legacy_record_upgraded(self, store, repository):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY, route_points=[COLOMBO, KANDY]))
        store.routes[ride_id] = {
            "ride_id": ride_id,
            "route_points": [p.model_dump() for p in [GALLE, COLOMBO, KANDY]],
            "route_distance_km": 200.0,
        }

        points, repaired = repository.read_or_repair(store.get_ride(ride_id))
        assert repaired
        assert points == [GALLE, COLOMBO, KANDY]
        assert "route_points" not in store.routes[ride_id]
        assert "route_points" not in store.rides[ride_id]
        assert store.get_ride(ride_id).bounds.min_lat == GALLE.lat

    def test_corrupt_polyline_repaired(self, store, repository):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY))
        store.routes[ride_id] = {
            "schema_version": 2,
            "ride_id": ride_id,
            "polyline": "_p~iF~ps|U_",
            "length_km": 1.0,
            "point_count": 2,
            "updated_at": NOW,
        }
        _, repaired = repository.read_or_repair(store.get_ride(ride_id))
        assert repaired
        assert len(decode_polyline(store.routes[ride_id]["polyline"])) >= 2

    def test_single_point_route_repaired(self, store, repository):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY))
        store.upsert_route(derive_route(ride_id, [COLOMBO], now=NOW).record)
        points, repaired = repository.read_or_repair(store.get_ride(ride_id))
        assert repaired
        assert len(points) >= 2

    def test_repeated_repairs_agree(self, store, repository):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY))
        ride = store.get_ride(ride_id)
        first, _ = repository.read_or_repair(ride)
        del store.routes[ride_id]
        second, repaired = repository.read_or_repair(ride)
        assert repaired
        assert first == second

    def test_unsaved_ride_not_written(self, store, repository):
        points, repaired = repository.read_or_repair(make_ride(COLOMBO, KANDY))
        assert not repaired
        assert len(points) == len(interpolate(COLOMBO, KANDY, 18))
        assert store.routes == {}


class TestMongoRideStore:
    @pytest.fixture
    def mongo_store(self):
        return MongoRideStore(client=mongomock.MongoClient(), db_name="carpool_test")

    def test_insert_and_get(self, mongo_store):
        ride_id = mongo_store.insert_ride(make_ride(COLOMBO, KANDY, origin_name="Colombo"))
        ride = mongo_store.get_ride(ride_id)
        assert ride.id == ride_id
        assert ride.origin == "Colombo"
        assert ride.origin_point == COLOMBO
        assert mongo_store.count_rides() == 1
        assert mongo_store.get_ride("not-an-id") is None

    def test_find_candidates(self, mongo_store):
        window = BoundingBox(min_lat=6.9, max_lat=7.3, min_lng=79.8, max_lng=80.7)
        near = mongo_store.insert_ride(
            make_ride(COLOMBO, KANDY, "2026-03-02T00:00:00Z", bounds=BoundingBox(min_lat=6.9, max_lat=7.3, min_lng=79.8, max_lng=80.7))
        )
        legacy = mongo_store.insert_ride(make_ride(COLOMBO, KANDY, "2026-03-01T00:00:00Z"))
        mongo_store.insert_ride(
            make_ride(COLOMBO, KANDY, bounds=BoundingBox(min_lat=9.0, max_lat=9.7, min_lng=80.0, max_lng=80.4))
        )
        mongo_store.insert_ride(
            make_ride(COLOMBO, KANDY, seats_left=0, bounds=BoundingBox(min_lat=6.9, max_lat=7.3, min_lng=79.8, max_lng=80.7))
        )

        found = [r.id for r in mongo_store.find_candidates(window, 10)]
        assert found == [legacy, near]
        assert [r.id for r in mongo_store.find_candidates(window, 1)] == [legacy]

    def test_route_upsert_replaces(self, mongo_store):
        ride_id = mongo_store.insert_ride(make_ride(COLOMBO, KANDY))
        mongo_store.routes.insert_one({"ride_id": ride_id, "route_points": [COLOMBO.model_dump()]})

        record = derive_route(ride_id, [COLOMBO, KANDY], now=NOW).record
        mongo_store.upsert_route(record)
        doc = mongo_store.get_route(ride_id)
        assert "route_points" not in doc
        assert doc["polyline"] == record.polyline
        assert mongo_store.routes.count_documents({}) == 1

    def test_update_ride_route(self, mongo_store):
        ride_id = mongo_store.insert_ride(make_ride(COLOMBO, KANDY, route_points=[COLOMBO, KANDY]))
        bounds = BoundingBox(min_lat=6.9, max_lat=7.3, min_lng=79.8, max_lng=80.7)
        mongo_store.update_ride_route(ride_id, 94.3, bounds)

        ride = mongo_store.get_ride(ride_id)
        assert ride.bounds == bounds
        assert ride.route_distance_km == 94.3
        assert ride.route_points is None


class TestMemoryRideStore:
    def test_empty_bounds_are_not_stored(self, store):
        ride_id = store.insert_ride(make_ride(COLOMBO, KANDY))
        store.update_ride_route(ride_id, 94.3, BoundingBox(min_lat=6.9, max_lat=7.3, min_lng=79.8, max_lng=80.7))
        store.update_ride_route(ride_id, 0.0, BoundingBox(min_lat=0, max_lat=0, min_lng=0, max_lng=0))
        assert store.get_ride(ride_id).bounds is None

    def test_find_candidates_skips_full_rides(self, store):
        store.insert_ride(make_ride(COLOMBO, KANDY, seats_left=0))
        open_ride = store.insert_ride(make_ride(COLOMBO, KANDY))
        window = BoundingBox(min_lat=0, max_lat=1, min_lng=0, max_lng=1)
        assert [r.id for r in store.find_candidates(window, 5)] == [open_ride]
