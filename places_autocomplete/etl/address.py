"""Utilities for transforming place details and placemarks into ResolvedAddress records."""

import logging
from typing import Any, Dict, Iterable, Optional

from places_autocomplete.core.models import Coordinate, ResolvedAddress

logger = logging.getLogger(__name__)

SHORT_NAME = "short_name"
LONG_NAME = "long_name"


def find_component(components: Iterable[Any], component_type: str, name_kind: str) -> Optional[str]:
    """Return ``name_kind`` of the first component whose ``types`` include ``component_type``.

    Example component: ``{"long_name": "90", "short_name": "90", "types": ["street_number"]}``
    """
    for component in components or []:
        if not isinstance(component, dict):
            continue
        types = component.get("types")
        if isinstance(types, list) and component_type in types:
            value = component.get(name_kind)
            return value if isinstance(value, str) else None
    return None


def _coordinate_from_geometry(geometry: Any) -> Optional[Coordinate]:
    if not isinstance(geometry, dict):
        return None
    location = geometry.get("location")
    if not isinstance(location, dict):
        return None
    lat = location.get("lat")
    lng = location.get("lng")
    if isinstance(lat, bool) or isinstance(lng, bool):
        return None
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return None
    return Coordinate(float(lat), float(lng))


def address_from_details(payload: Dict[str, Any]) -> Optional[ResolvedAddress]:
    """Parse a place details response; ``None`` when ``result.formatted_address`` is missing."""
    result = payload.get("result") if isinstance(payload, dict) else None
    if not isinstance(result, dict):
        return None
    formatted_address = result.get("formatted_address")
    if not isinstance(formatted_address, str):
        logger.debug("Place details missing formatted_address: keys=%s", list(result.keys())[:10])
        return None

    components = result.get("address_components")
    if not isinstance(components, list):
        components = []

    return ResolvedAddress(
        formatted_address=formatted_address,
        street_number=find_component(components, "street_number", SHORT_NAME),
        route=find_component(components, "route", SHORT_NAME),
        postal_code=find_component(components, "postal_code", LONG_NAME),
        city=find_component(components, "locality", LONG_NAME),
        state=find_component(components, "administrative_area_level_1", SHORT_NAME),
        country=find_component(components, "country", LONG_NAME),
        iso_country_code=find_component(components, "country", SHORT_NAME),
        coordinate=_coordinate_from_geometry(result.get("geometry")),
    )


def address_from_placemark(placemark: Any) -> Optional[ResolvedAddress]:
    """Map a local search placemark 1:1; ``None`` when it has no title."""
    if placemark is None:
        return None
    title = getattr(placemark, "title", None)
    if not title:
        return None

    def field(name: str) -> str:
        return getattr(placemark, name, None) or ""

    coordinate = getattr(placemark, "coordinate", None)
    if coordinate is not None and not isinstance(coordinate, Coordinate):
        try:
            coordinate = Coordinate(float(coordinate.latitude), float(coordinate.longitude))
        except (AttributeError, TypeError, ValueError):
            logger.debug("Placemark %r has an unreadable coordinate", title)
            coordinate = None

    return ResolvedAddress(
        formatted_address=title,
        street_number=field("sub_thoroughfare"),
        route=field("thoroughfare"),
        postal_code=field("postal_code"),
        city=field("sub_administrative_area"),
        state=field("administrative_area"),
        country=field("country"),
        iso_country_code=field("iso_country_code"),
        coordinate=coordinate,
    )
