"""Settings and logging setup.

Settings are read from the environment, after loading a local ``.env`` file
if one exists. Example ``.env``::

    MONGODB_URI=mongodb://localhost:27017
    OSRM_BASE_URL=http://router.project-osrm.org
    GEOCODER=cities
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Runtime configuration for the ride corridor service."""

    mongodb_uri: str = ""
    mongodb_db: str = "carpool"

    routing_enabled: bool = True
    osrm_base_url: str = "https://router.project-osrm.org"
    osrm_profile: str = "driving"
    osrm_timeout: float = 5.0

    geocoder: str = "nominatim"
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "carpool-lk/0.1 (contact: admin@carpool.lk)"
    geocoder_country_codes: str = "lk"

    simplify_tolerance_km: float = 0.1
    simplify_max_points: int = 220

    seed_demo_rides: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        load_dotenv()
        defaults = cls()
        return cls(
            mongodb_uri=os.getenv("MONGODB_URI", defaults.mongodb_uri),
            mongodb_db=os.getenv("MONGODB_DB", defaults.mongodb_db),
            routing_enabled=_env_bool("ROUTING_ENABLED", defaults.routing_enabled),
            osrm_base_url=os.getenv("OSRM_BASE_URL", defaults.osrm_base_url),
            osrm_profile=os.getenv("OSRM_PROFILE", defaults.osrm_profile),
            osrm_timeout=float(os.getenv("OSRM_TIMEOUT", defaults.osrm_timeout)),
            geocoder=os.getenv("GEOCODER", defaults.geocoder),
            nominatim_base_url=os.getenv("NOMINATIM_BASE_URL", defaults.nominatim_base_url),
            geocoder_user_agent=os.getenv("GEOCODER_USER_AGENT", defaults.geocoder_user_agent),
            geocoder_country_codes=os.getenv("GEOCODER_COUNTRY_CODES", defaults.geocoder_country_codes),
            simplify_tolerance_km=float(os.getenv("SIMPLIFY_TOLERANCE_KM", defaults.simplify_tolerance_km)),
            simplify_max_points=int(os.getenv("SIMPLIFY_MAX_POINTS", defaults.simplify_max_points)),
            seed_demo_rides=_env_bool("SEED_DEMO_RIDES", defaults.seed_demo_rides),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )


def configure_logging(level: str = "INFO") -> None:
    """Attach a single console handler to the package logger."""
    logger = logging.getLogger("ride_corridor")
    logger.setLevel(level.upper())
    # Prevent duplicate handlers when the app is created more than once
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
