"""Core value objects shared by the autocomplete providers and the coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class PlaceType(str, Enum):
    """Place-type filter; the value is the token sent as ``types``."""

    ALL = ""
    GEOCODE = "geocode"
    ADDRESS = "address"
    ESTABLISHMENT = "establishment"
    REGIONS = "(regions)"
    CITIES = "(cities)"

    @classmethod
    def from_name(cls, name: str) -> "PlaceType":
        """Look up a place type by its lowercase name, e.g. ``"cities"``."""
        try:
            return cls[name.strip().upper()]
        except KeyError as exc:
            choices = ", ".join(member.name.lower() for member in cls)
            raise ValueError(f"Unknown place type {name!r}; expected one of: {choices}") from exc


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    @property
    def is_valid(self) -> bool:
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0


@dataclass(frozen=True, slots=True)
class Candidate:
    """A search suggestion tagged with the provider it came from.

    Primary-provider candidates carry ``primary_provider_id``; fallback candidates carry
    the native completion in ``fallback_handle`` so it can be handed back unmodified.
    """

    primary_label: str
    secondary_label: str
    primary_provider_id: Optional[str] = None
    fallback_handle: Any = field(default=None, compare=False, repr=False)

    @property
    def has_primary_id(self) -> bool:
        return bool(self.primary_provider_id)


@dataclass(frozen=True, slots=True)
class ResolvedAddress:
    """Structured postal address; only ``formatted_address`` is guaranteed."""

    formatted_address: str
    street_number: Optional[str] = None
    route: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    iso_country_code: Optional[str] = None
    coordinate: Optional[Coordinate] = None

    def to_dict(self) -> Dict[str, Any]:
        coordinate = None
        if self.coordinate is not None:
            coordinate = {"latitude": self.coordinate.latitude, "longitude": self.coordinate.longitude}
        return {
            "formatted_address": self.formatted_address,
            "street_number": self.street_number,
            "route": self.route,
            "postal_code": self.postal_code,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "iso_country_code": self.iso_country_code,
            "coordinate": coordinate,
        }


@dataclass(frozen=True, slots=True)
class QueryParameters:
    """Request shape for one keystroke-triggered autocomplete call."""

    input: str
    place_type: PlaceType
    key: str
    location: Optional[Coordinate] = None
    radius: float = 0.0

    def to_params(self) -> Dict[str, str]:
        params = {
            "input": self.input,
            "types": self.place_type.value,
            "key": self.key,
        }
        if self.location is not None and self.location.is_valid:
            params["location"] = f"{float(self.location.latitude)},{float(self.location.longitude)}"
            if self.radius and self.radius > 0:
                radius = float(self.radius)
                params["radius"] = str(int(radius)) if radius.is_integer() else str(radius)
        return params
