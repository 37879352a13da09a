"""Static table of Sri Lankan cities used for offline geocoding and demo data."""

from .models import Place

SRI_LANKA_CITIES: list[tuple[str, float, float]] = [
    ("Colombo", 6.9271, 79.8612),
    ("Kandy", 7.2906, 80.6337),
    ("Galle", 6.0535, 80.221),
    ("Matara", 5.9497, 80.5353),
    ("Jaffna", 9.6615, 80.0255),
    ("Negombo", 7.2083, 79.8358),
    ("Kurunegala", 7.4863, 80.3623),
    ("Anuradhapura", 8.3114, 80.4037),
    ("Trincomalee", 8.5874, 81.2152),
    ("Batticaloa", 7.7102, 81.6924),
    ("Badulla", 6.9934, 81.055),
    ("Nuwara Eliya", 6.9497, 80.7891),
    ("Ella", 6.8667, 81.0466),
    ("Ratnapura", 6.6828, 80.3992),
    ("Kalutara", 6.5854, 79.9607),
    ("Panadura", 6.7132, 79.9026),
    ("Puttalam", 8.0362, 79.8283),
    ("Chilaw", 7.5758, 79.7953),
    ("Hambantota", 6.1241, 81.1185),
    ("Dambulla", 7.8742, 80.6511),
]


def normalize_city_name(value: str) -> str:
    return value.strip().lower()


def city_places() -> list[Place]:
    return [Place(name=name, address=f"{name}, Sri Lanka", lat=lat, lng=lng) for name, lat, lng in SRI_LANKA_CITIES]
