"""Document store adapters for rides and their route records.

Both adapters keep rides in the same flat document shape: the route bounding
box lives in four ``route_*`` fields on the ride so candidates can be
prefiltered without touching the route records. Rides stored before bounds
existed simply lack those fields.
"""

from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient

from .models import BoundingBox, RideRecord, RouteRecord
from .simplify import boxes_overlap

BOUNDS_FIELDS = ("route_min_lat", "route_max_lat", "route_min_lng", "route_max_lng")


def ride_to_document(ride: RideRecord) -> dict[str, Any]:
    doc = ride.model_dump(exclude={"id", "bounds", "route_points"})
    if ride.bounds is not None:
        doc.update(
            route_min_lat=ride.bounds.min_lat,
            route_max_lat=ride.bounds.max_lat,
            route_min_lng=ride.bounds.min_lng,
            route_max_lng=ride.bounds.max_lng,
        )
    if ride.route_points is not None:
        doc["route_points"] = [p.model_dump() for p in ride.route_points]
    return doc


def ride_from_document(doc: dict[str, Any]) -> RideRecord:
    data = {k: v for k, v in doc.items() if k not in BOUNDS_FIELDS and k != "_id"}
    data["id"] = str(doc["_id"]) if "_id" in doc else data.get("id")
    if all(isinstance(doc.get(f), (int, float)) for f in BOUNDS_FIELDS):
        data["bounds"] = BoundingBox(
            min_lat=doc["route_min_lat"],
            max_lat=doc["route_max_lat"],
            min_lng=doc["route_min_lng"],
            max_lng=doc["route_max_lng"],
        )
    return RideRecord.model_validate(data)


def _bounds_fields(bounds: BoundingBox) -> dict[str, float]:
    return dict(zip(BOUNDS_FIELDS, (bounds.min_lat, bounds.max_lat, bounds.min_lng, bounds.max_lng)))


class RideStore(ABC):
    """Persistence operations the engine needs from a document store."""

    @abstractmethod
    def insert_ride(self, ride: RideRecord) -> str: ...

    @abstractmethod
    def get_ride(self, ride_id: str) -> RideRecord | None: ...

    @abstractmethod
    def count_rides(self) -> int: ...

    @abstractmethod
    def list_rides(self, limit: int) -> list[RideRecord]:
        """Rides sorted by departure time."""

    @abstractmethod
    def find_candidates(self, window: BoundingBox, limit: int) -> list[RideRecord]:
        """Rides with seats left whose bounds overlap ``window`` or are missing.

        Sorted by departure time.
        """

    @abstractmethod
    def update_ride_route(self, ride_id: str, length_km: float, bounds: BoundingBox) -> None:
        """Replace a ride's derived route fields and drop any legacy points."""

    @abstractmethod
    def get_route(self, ride_id: str) -> dict[str, Any] | None:
        """Raw route document for a ride, in whatever schema it was stored."""

    @abstractmethod
    def upsert_route(self, record: RouteRecord) -> None:
        """Store ``record`` as the ride's route, replacing what was there."""

    def close(self) -> None:
        pass


class MemoryRideStore(RideStore):
    """In-process store holding documents in dicts."""

    def __init__(self):
        self._lock = threading.Lock()
        self.rides: dict[str, dict[str, Any]] = {}
        self.routes: dict[str, dict[str, Any]] = {}

    def insert_ride(self, ride: RideRecord) -> str:
        ride_id = ride.id or uuid.uuid4().hex
        doc = ride_to_document(ride)
        doc["_id"] = ride_id
        with self._lock:
            self.rides[ride_id] = doc
        return ride_id

    def get_ride(self, ride_id: str) -> RideRecord | None:
        with self._lock:
            doc = self.rides.get(ride_id)
        return ride_from_document(doc) if doc is not None else None

    def count_rides(self) -> int:
        with self._lock:
            return len(self.rides)

    def _sorted_rides(self) -> list[RideRecord]:
        with self._lock:
            docs = list(self.rides.values())
        return sorted((ride_from_document(d) for d in docs), key=lambda r: r.departure_at)

    def list_rides(self, limit: int) -> list[RideRecord]:
        return self._sorted_rides()[:limit]

    def find_candidates(self, window: BoundingBox, limit: int) -> list[RideRecord]:
        candidates = [
            ride
            for ride in self._sorted_rides()
            if ride.seats_left > 0 and (ride.bounds is None or boxes_overlap(ride.bounds, window))
        ]
        return candidates[:limit]

    def update_ride_route(self, ride_id: str, length_km: float, bounds: BoundingBox) -> None:
        with self._lock:
            doc = self.rides.get(ride_id)
            if doc is None:
                return
            doc.pop("route_points", None)
            doc["route_distance_km"] = length_km
            if bounds.is_empty:
                for field in BOUNDS_FIELDS:
                    doc.pop(field, None)
            else:
                doc.update(_bounds_fields(bounds))

    def get_route(self, ride_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self.routes.get(ride_id)
            return dict(doc) if doc is not None else None

    def upsert_route(self, record: RouteRecord) -> None:
        with self._lock:
            self.routes[record.ride_id] = record.model_dump()


class MongoRideStore(RideStore):
    """MongoDB-backed store using the ``rides`` and ``ride_routes`` collections.

    Open once at process start and ``close()`` at shutdown.
    """

    def __init__(self, uri: str | None = None, db_name: str = "carpool", client: MongoClient | None = None):
        if client is None and not uri:
            raise ValueError("MongoDB URI is not set")
        self.client = client or MongoClient(uri)
        db = self.client[db_name]
        self.rides = db["rides"]
        self.routes = db["ride_routes"]
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        self.rides.create_index([("departure_at", ASCENDING)])
        self.rides.create_index([("seats_left", ASCENDING)])
        self.rides.create_index([(f, ASCENDING) for f in BOUNDS_FIELDS])
        self.routes.create_index([("ride_id", ASCENDING)], unique=True)

    @staticmethod
    def _object_id(ride_id: str) -> ObjectId | None:
        try:
            return ObjectId(ride_id)
        except (InvalidId, TypeError):
            return None

    def insert_ride(self, ride: RideRecord) -> str:
        doc = ride_to_document(ride)
        if ride.id is not None and self._object_id(ride.id) is not None:
            doc["_id"] = ObjectId(ride.id)
        return str(self.rides.insert_one(doc).inserted_id)

    def get_ride(self, ride_id: str) -> RideRecord | None:
        oid = self._object_id(ride_id)
        if oid is None:
            return None
        doc = self.rides.find_one({"_id": oid})
        return ride_from_document(doc) if doc is not None else None

    def count_rides(self) -> int:
        return self.rides.count_documents({})

    def list_rides(self, limit: int) -> list[RideRecord]:
        cursor = self.rides.find({}, projection={"route_points": 0}).sort("departure_at", ASCENDING).limit(limit)
        return [ride_from_document(doc) for doc in cursor]

    def find_candidates(self, window: BoundingBox, limit: int) -> list[RideRecord]:
        query = {
            "seats_left": {"$gt": 0},
            "$or": [
                {
                    "route_min_lat": {"$lte": window.max_lat},
                    "route_max_lat": {"$gte": window.min_lat},
                    "route_min_lng": {"$lte": window.max_lng},
                    "route_max_lng": {"$gte": window.min_lng},
                },
                {"route_min_lat": {"$exists": False}},
            ],
        }
        cursor = self.rides.find(query).sort("departure_at", ASCENDING).limit(limit)
        return [ride_from_document(doc) for doc in cursor]

    def update_ride_route(self, ride_id: str, length_km: float, bounds: BoundingBox) -> None:
        oid = self._object_id(ride_id)
        if oid is None:
            return
        update: dict[str, Any] = {"$set": {"route_distance_km": length_km}, "$unset": {"route_points": ""}}
        # An all-zero box means no usable bounds; leave the ride to the fail-open branch
        if bounds.is_empty:
            update["$unset"].update(dict.fromkeys(BOUNDS_FIELDS, ""))
        else:
            update["$set"].update(_bounds_fields(bounds))
        self.rides.update_one({"_id": oid}, update)

    def get_route(self, ride_id: str) -> dict[str, Any] | None:
        return self.routes.find_one({"ride_id": ride_id}, projection={"_id": 0})

    def upsert_route(self, record: RouteRecord) -> None:
        self.routes.update_one(
            {"ride_id": record.ride_id},
            {"$set": record.model_dump(), "$unset": {"route_points": ""}},
            upsert=True,
        )

    def close(self) -> None:
        self.client.close()
