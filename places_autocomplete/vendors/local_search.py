"""On-device style search facility used as the fallback provider.

The shapes here mirror a platform local-search SDK: a push-based completer that
publishes completions as the query fragment changes, and a request/response search
that turns a completion into map items carrying placemarks. ``GazetteerSearchEngine``
is an offline engine over an in-memory list of placemarks.
"""

from __future__ import annotations

import json
import logging
import math
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from places_autocomplete.core.models import Coordinate

logger = logging.getLogger(__name__)

METERS_PER_DEGREE = 111_320.0
SEARCH_NEARBY = "Search Nearby"


class CompleterFilter(Enum):
    LOCATIONS_AND_QUERIES = "locations_and_queries"
    LOCATIONS_ONLY = "locations_only"


@dataclass(frozen=True)
class CoordinateRegion:
    """Rectangle centered on ``center`` spanning the given distances in meters."""

    center: Coordinate
    latitudinal_meters: float
    longitudinal_meters: float

    def contains(self, coordinate: Optional[Coordinate]) -> bool:
        if coordinate is None:
            return False
        half_lat = self.latitudinal_meters / 2 / METERS_PER_DEGREE
        cos_lat = max(math.cos(math.radians(self.center.latitude)), 1e-6)
        half_lng = self.longitudinal_meters / 2 / (METERS_PER_DEGREE * cos_lat)
        d_lng = abs(coordinate.longitude - self.center.longitude)
        d_lng = min(d_lng, 360.0 - d_lng)
        return abs(coordinate.latitude - self.center.latitude) <= half_lat and d_lng <= half_lng


@dataclass(frozen=True)
class Placemark:
    title: Optional[str]
    coordinate: Coordinate
    sub_thoroughfare: Optional[str] = None
    thoroughfare: Optional[str] = None
    postal_code: Optional[str] = None
    locality: Optional[str] = None
    sub_administrative_area: Optional[str] = None
    administrative_area: Optional[str] = None
    country: Optional[str] = None
    iso_country_code: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Placemark":
        return cls(
            title=raw.get("title"),
            coordinate=Coordinate(float(raw["latitude"]), float(raw["longitude"])),
            sub_thoroughfare=raw.get("sub_thoroughfare"),
            thoroughfare=raw.get("thoroughfare"),
            postal_code=raw.get("postal_code"),
            locality=raw.get("locality"),
            sub_administrative_area=raw.get("sub_administrative_area"),
            administrative_area=raw.get("administrative_area"),
            country=raw.get("country"),
            iso_country_code=raw.get("iso_country_code"),
            category=raw.get("category"),
        )


@dataclass(frozen=True)
class MapItem:
    placemark: Placemark
    name: Optional[str] = None


@dataclass(frozen=True)
class LocalSearchCompletion:
    """A completer result. ``key`` identifies the placemark or category it came from."""

    title: str
    subtitle: str
    key: str = ""
    is_query: bool = False


class LocalSearchEngine(ABC):
    @abstractmethod
    def complete(self, fragment: str, filter_type: CompleterFilter,
                 region: Optional[CoordinateRegion] = None) -> List[LocalSearchCompletion]:
        """Return completions for a partial query."""

    @abstractmethod
    def search(self, completion: LocalSearchCompletion,
               region: Optional[CoordinateRegion] = None) -> List[MapItem]:
        """Return the map items a completion stands for."""


class LocalCompleter:
    """Push-based completer: setting ``query_fragment`` eventually pushes fresh results.

    Each run replaces ``results`` wholesale. A run finishing after a newer fragment was
    set is dropped, so listeners only ever see results for the latest fragment.
    """

    def __init__(
        self,
        engine: LocalSearchEngine,
        executor: Executor,
        *,
        filter_type: CompleterFilter = CompleterFilter.LOCATIONS_AND_QUERIES,
        region: Optional[CoordinateRegion] = None,
        on_results: Optional[Callable[[List[LocalSearchCompletion]], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        self.engine = engine
        self.filter_type = filter_type
        self.region = region
        self.on_results = on_results
        self.on_error = on_error
        self.results: List[LocalSearchCompletion] = []
        self._executor = executor
        self._lock = threading.Lock()
        self._fragment = ""
        self._run = 0

    @property
    def query_fragment(self) -> str:
        return self._fragment

    @query_fragment.setter
    def query_fragment(self, fragment: str) -> None:
        with self._lock:
            self._fragment = fragment
            self._run += 1
            run = self._run
        self._executor.submit(self._complete, fragment, run)

    def refresh(self) -> None:
        self.query_fragment = self._fragment

    def cancel(self) -> None:
        with self._lock:
            self._run += 1
            self.on_results = None
            self.on_error = None

    def _complete(self, fragment: str, run: int) -> None:
        try:
            results = self.engine.complete(fragment, self.filter_type, self.region)
        except Exception as exc:  # noqa: BLE001
            with self._lock:
                stale = run != self._run
                on_error = self.on_error
            if not stale and on_error is not None:
                on_error(exc)
            return

        with self._lock:
            if run != self._run:
                logger.debug("Dropping completer results for superseded fragment %r", fragment)
                return
            self.results = list(results)
            on_results = self.on_results
        if on_results is not None:
            on_results(self.results)


def _words(*parts: Optional[str]) -> List[str]:
    text = " ".join(part for part in parts if part)
    return [word for word in text.lower().replace(",", " ").split() if word]


def _matches(tokens: Sequence[str], words: Sequence[str]) -> bool:
    return all(any(word.startswith(token) for word in words) for token in tokens)


class GazetteerSearchEngine(LocalSearchEngine):
    """Offline gazetteer over a fixed list of placemarks."""

    def __init__(self, placemarks: Iterable[Placemark] = (), max_results: int = 10) -> None:
        self.placemarks: List[Placemark] = [p for p in placemarks if p.title]
        self.max_results = max_results

    @classmethod
    def from_file(cls, path: Union[str, Path], max_results: int = 10) -> "GazetteerSearchEngine":
        """Load a JSON array of placemark objects (``title``, ``latitude``, ``longitude``, ...)."""
        with Path(path).open("r", encoding="utf-8") as fh:
            raw_items = json.load(fh)
        placemarks = [Placemark.from_dict(item) for item in raw_items]
        logger.info("Loaded %d placemarks from %s", len(placemarks), path)
        return cls(placemarks, max_results=max_results)

    @staticmethod
    def _key(index: int) -> str:
        return f"placemark:{index}"

    @staticmethod
    def _subtitle(placemark: Placemark) -> str:
        parts = [placemark.locality or placemark.sub_administrative_area, placemark.administrative_area, placemark.country]
        return ", ".join(part for part in parts if part)

    def _in_region(self, placemark: Placemark, region: Optional[CoordinateRegion]) -> bool:
        return region is None or region.contains(placemark.coordinate)

    def complete(self, fragment: str, filter_type: CompleterFilter,
                 region: Optional[CoordinateRegion] = None) -> List[LocalSearchCompletion]:
        tokens = _words(fragment)
        if not tokens:
            return []

        completions: List[LocalSearchCompletion] = []
        categories: List[str] = []
        for index, placemark in enumerate(self.placemarks):
            if not self._in_region(placemark, region):
                continue
            if _matches(tokens, _words(placemark.title, placemark.locality, placemark.sub_administrative_area)):
                completions.append(
                    LocalSearchCompletion(
                        title=placemark.title or "",
                        subtitle=self._subtitle(placemark),
                        key=self._key(index),
                    )
                )
            category = placemark.category
            if (
                filter_type is CompleterFilter.LOCATIONS_AND_QUERIES
                and category
                and category not in categories
                and _matches(tokens, _words(category))
            ):
                categories.append(category)

        queries = [
            LocalSearchCompletion(title=category, subtitle=SEARCH_NEARBY, key=f"category:{category}", is_query=True)
            for category in categories
        ]
        return (queries + completions)[: self.max_results]

    def search(self, completion: LocalSearchCompletion,
               region: Optional[CoordinateRegion] = None) -> List[MapItem]:
        kind, _, value = completion.key.partition(":")
        if kind == "placemark":
            try:
                placemark = self.placemarks[int(value)]
            except (ValueError, IndexError):
                return []
            return [MapItem(placemark=placemark, name=placemark.title)]
        if kind == "category":
            return [
                MapItem(placemark=placemark, name=placemark.title)
                for placemark in self.placemarks
                if placemark.category == value and self._in_region(placemark, region)
            ]
        return []
