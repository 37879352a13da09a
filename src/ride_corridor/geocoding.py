"""Geocoding collaborators: Nominatim over HTTP, or the offline city table."""

from __future__ import annotations

import logging
import math
from typing import Any, Protocol

import httpx

from .cities import city_places, normalize_city_name
from .models import Place

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 10


class Geocoder(Protocol):
    def resolve(self, name: str) -> Place | None: ...

    def suggest(self, prefix: str, limit: int = 8) -> list[Place]: ...


def _parse_coordinate(value: Any) -> float | None:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _to_place(item: Any, fallback_name: str) -> Place | None:
    if not isinstance(item, dict):
        return None
    lat = _parse_coordinate(item.get("lat"))
    lng = _parse_coordinate(item.get("lon"))
    if lat is None or lng is None:
        return None

    display_name = _text(item.get("display_name"))
    address = (display_name or fallback_name).strip()
    label = (_text(item.get("name")) or (display_name.split(",")[0] if display_name else None) or fallback_name).strip()
    return Place(name=label or fallback_name, address=address, lat=lat, lng=lng)


class NominatimGeocoder:
    """Resolves place names with the Nominatim ``/search`` endpoint.

    Network and HTTP failures are logged and reported as "not found" so that
    callers only ever see a missing result.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "carpool-lk/0.1",
        country_codes: str = "lk",
        timeout: float = 5.0,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.country_codes = country_codes
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {"User-Agent": user_agent}

    def _search(self, query: str, limit: int) -> list[dict]:
        params = {
            "q": query,
            "countrycodes": self.country_codes,
            "format": "jsonv2",
            "limit": str(limit),
            "addressdetails": "1",
        }
        try:
            response = self._client.get(f"{self.base_url}/search", params=params, headers=self._headers)
            response.raise_for_status()
            results = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Geocoding request for %r failed: %s", query, exc)
            return []
        return results if isinstance(results, list) else []

    def resolve(self, name: str) -> Place | None:
        query = name.strip()
        if not query:
            return None

        results = self._search(query, 1)
        if not results:
            return None
        return _to_place(results[0], query)

    def suggest(self, prefix: str, limit: int = 8) -> list[Place]:
        query = prefix.strip()
        if not query:
            return []

        results = self._search(query, max(1, min(limit, MAX_SUGGESTIONS)))
        places = [_to_place(item, query) for item in results]
        return [p for p in places if p is not None]

    def close(self) -> None:
        self._client.close()


class CityTableGeocoder:
    """Offline geocoder backed by the static city table."""

    def __init__(self, places: list[Place] | None = None):
        self.places = places if places is not None else city_places()

    def resolve(self, name: str) -> Place | None:
        wanted = normalize_city_name(name)
        if not wanted:
            return None
        for place in self.places:
            if normalize_city_name(place.name) == wanted:
                return place
        return None

    def suggest(self, prefix: str, limit: int = 8) -> list[Place]:
        wanted = normalize_city_name(prefix)
        if not wanted:
            return []
        matches = [p for p in self.places if normalize_city_name(p.name).startswith(wanted)]
        return matches[: max(1, min(limit, MAX_SUGGESTIONS))]
