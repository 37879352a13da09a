"""Tests for the Nominatim and city-table geocoders."""

import httpx

from ride_corridor.geocoding import CityTableGeocoder, NominatimGeocoder

COLOMBO_RESULT = {
    "lat": "6.9271",
    "lon": "79.8612",
    "display_name": "Colombo, Western Province, Sri Lanka",
    "name": "Colombo",
}


def nominatim(handler) -> NominatimGeocoder:
    return NominatimGeocoder(
        base_url="http://nominatim.test",
        user_agent="tests/1.0",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestNominatimGeocoder:
    def test_resolve(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[COLOMBO_RESULT])

        place = nominatim(handler).resolve("  Colombo ")
        assert place.name == "Colombo"
        assert place.address == "Colombo, Western Province, Sri Lanka"
        assert (place.lat, place.lng) == (6.9271, 79.8612)

        request = seen[0]
        assert request.url.path == "/search"
        assert request.url.params["q"] == "Colombo"
        assert request.url.params["countrycodes"] == "lk"
        assert request.url.params["format"] == "jsonv2"
        assert request.url.params["limit"] == "1"
        assert request.headers["User-Agent"] == "tests/1.0"

    def test_label_falls_back_to_display_name(self):
        item = {"lat": "7.2906", "lon": "80.6337", "display_name": "Kandy, Central Province, Sri Lanka"}
        place = nominatim(lambda r: httpx.Response(200, json=[item])).resolve("kandy")
        assert place.name == "Kandy"

    def test_blank_query_skips_request(self):
        def handler(request):
            raise AssertionError("no request expected")

        geocoder = nominatim(handler)
        assert geocoder.resolve("   ") is None
        assert geocoder.suggest("") == []

    def test_not_found(self):
        assert nominatim(lambda r: httpx.Response(200, json=[])).resolve("Atlantis") is None

    def test_service_error_is_not_found(self):
        assert nominatim(lambda r: httpx.Response(503)).resolve("Colombo") is None

    def test_network_error_is_not_found(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        assert nominatim(handler).suggest("Col") == []

    def test_suggest_clamps_limit_and_skips_bad_items(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[COLOMBO_RESULT, {"lat": "abc", "lon": "80"}])

        places = nominatim(handler).suggest("Col", limit=50)
        assert seen[0].url.params["limit"] == "10"
        assert [p.name for p in places] == ["Colombo"]

    def test_malformed_items_are_not_found(self):
        geocoder = nominatim(lambda r: httpx.Response(200, json=["oops", None, 7]))
        assert geocoder.resolve("Colombo") is None
        assert geocoder.suggest("Col") == []

    def test_non_string_names_fall_back_to_query(self):
        item = {"lat": "6.9271", "lon": "79.8612", "display_name": 42, "name": ["Colombo"]}
        place = nominatim(lambda r: httpx.Response(200, json=[item])).resolve("Colombo")
        assert place.name == "Colombo"
        assert place.address == "Colombo"


class TestCityTableGeocoder:
    def test_resolve_case_insensitive(self):
        place = CityTableGeocoder().resolve("  kandy ")
        assert place.name == "Kandy"
        assert place.point.lat == 7.2906

    def test_resolve_unknown(self):
        assert CityTableGeocoder().resolve("Atlantis") is None
        assert CityTableGeocoder().resolve("") is None

    def test_suggest_prefix(self):
        names = [p.name for p in CityTableGeocoder().suggest("ka")]
        assert names == ["Kandy", "Kalutara"]

    def test_suggest_limit(self):
        assert len(CityTableGeocoder().suggest("a", limit=1)) == 1
