"""Application configuration helpers."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

from places_autocomplete.core.models import Coordinate, PlaceType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://maps.googleapis.com/maps/api/place"
DEFAULT_PLACEHOLDER = "Enter Address"


@dataclass(frozen=True)
class AutocompleteConfig:
    """Per-widget search configuration. An empty ``api_key`` is rejected up front."""

    api_key: str
    place_type: PlaceType = PlaceType.ADDRESS
    coordinate: Optional[Coordinate] = None
    radius: float = 0.0
    placeholder: str = DEFAULT_PLACEHOLDER

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("Provide your Google API key")


@dataclass(frozen=True)
class Settings:
    google_api_key: str
    places_base_url: str = DEFAULT_BASE_URL
    place_type: PlaceType = PlaceType.ADDRESS
    bias_latitude: Optional[float] = None
    bias_longitude: Optional[float] = None
    radius: float = 0.0
    request_timeout: float = 10.0
    gazetteer_path: Optional[str] = None
    search_placeholder: str = DEFAULT_PLACEHOLDER
    server_port: int = 8080

    @property
    def bias_coordinate(self) -> Optional[Coordinate]:
        if self.bias_latitude is None or self.bias_longitude is None:
            return None
        return Coordinate(self.bias_latitude, self.bias_longitude)

    def to_autocomplete_config(self) -> AutocompleteConfig:
        return AutocompleteConfig(
            api_key=self.google_api_key,
            place_type=self.place_type,
            coordinate=self.bias_coordinate,
            radius=self.radius,
            placeholder=self.search_placeholder,
        )


def _float_env(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not numeric; using %s.", name, raw, default)
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_api_key = os.getenv("GOOGLE_API_KEY", "")
    places_base_url = os.getenv("PLACES_BASE_URL", DEFAULT_BASE_URL).rstrip("/")
    place_type = PlaceType.from_name(os.getenv("PLACES_PLACE_TYPE", "address"))
    bias_latitude = _float_env("PLACES_BIAS_LAT", None)
    bias_longitude = _float_env("PLACES_BIAS_LNG", None)
    radius = _float_env("PLACES_RADIUS", 0.0)
    request_timeout = _float_env("PLACES_REQUEST_TIMEOUT", 10.0)
    gazetteer_path = os.getenv("PLACES_GAZETTEER_PATH") or None
    search_placeholder = os.getenv("SEARCH_PLACEHOLDER", DEFAULT_PLACEHOLDER)
    server_port = int(os.getenv("PORT", "8080"))

    if not google_api_key:
        logger.warning("GOOGLE_API_KEY is not configured; autocomplete sessions cannot be created.")
    if (bias_latitude is None) != (bias_longitude is None):
        logger.warning("Only one of PLACES_BIAS_LAT/PLACES_BIAS_LNG is set; location bias disabled.")
    if not gazetteer_path:
        logger.warning("PLACES_GAZETTEER_PATH is not configured; local fallback search has no data.")

    return Settings(
        google_api_key=google_api_key,
        places_base_url=places_base_url,
        place_type=place_type,
        bias_latitude=bias_latitude,
        bias_longitude=bias_longitude,
        radius=radius,
        request_timeout=request_timeout,
        gazetteer_path=gazetteer_path,
        search_placeholder=search_placeholder,
        server_port=server_port,
    )
