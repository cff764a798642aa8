"""Fallback provider backed by the local search engine."""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import List, Optional

from places_autocomplete.core.models import Candidate, Coordinate, PlaceType, QueryParameters, ResolvedAddress
from places_autocomplete.core.providers import (
    PlacesProvider,
    ResolveCallback,
    Subscription,
    SuggestCallback,
)
from places_autocomplete.etl.address import address_from_placemark
from places_autocomplete.etl.candidates import candidate_from_completion
from places_autocomplete.vendors.local_search import (
    CompleterFilter,
    CoordinateRegion,
    LocalCompleter,
    LocalSearchCompletion,
    LocalSearchEngine,
)

logger = logging.getLogger(__name__)

DEFAULT_REGION_RADIUS_METERS = 50_000.0


def completer_filter_for(place_type: PlaceType) -> CompleterFilter:
    if place_type is PlaceType.ALL:
        return CompleterFilter.LOCATIONS_AND_QUERIES
    return CompleterFilter.LOCATIONS_ONLY


def search_region_for(coordinate: Optional[Coordinate], radius: float = 0.0) -> Optional[CoordinateRegion]:
    """Region centered on a valid bias point; radius defaults to 50 km."""
    if coordinate is None or not coordinate.is_valid:
        return None
    distance = radius if radius and radius > 0 else DEFAULT_REGION_RADIUS_METERS
    return CoordinateRegion(center=coordinate, latitudinal_meters=distance, longitudinal_meters=distance)


class LocalSearchProvider(PlacesProvider):
    """Exposes the push-based local completer through the provider contract.

    ``suggest`` returns a live subscription: every completer update replaces the previous
    candidate set until the subscription is cancelled. The search region of the latest
    suggest call also scopes ``resolve``, so category queries stay near the bias point.
    """

    name = "local_search"

    def __init__(
        self,
        engine: LocalSearchEngine,
        *,
        io_executor: Optional[Executor] = None,
        callback_executor: Optional[Executor] = None,
    ) -> None:
        super().__init__(io_executor=io_executor, callback_executor=callback_executor)
        self.engine = engine
        self.region: Optional[CoordinateRegion] = None

    def suggest(self, params: QueryParameters, deliver: SuggestCallback) -> Subscription:
        self.region = search_region_for(params.location, params.radius)
        completer = LocalCompleter(
            self.engine,
            self._io_executor,
            filter_type=completer_filter_for(params.place_type),
            region=self.region,
        )
        subscription = Subscription(on_cancel=completer.cancel)

        def on_results(completions: List[LocalSearchCompletion]) -> None:
            candidates = [candidate_from_completion(completion) for completion in completions]
            self._dispatch(deliver, candidates, subscription)

        def on_error(exc: Exception) -> None:
            logger.warning("Local search completer failed for %r: %s", completer.query_fragment, exc)
            self._dispatch(deliver, None, subscription)

        completer.on_results = on_results
        completer.on_error = on_error
        completer.query_fragment = params.input
        return subscription

    def _search(self, completion: LocalSearchCompletion) -> Optional[ResolvedAddress]:
        try:
            items = self.engine.search(completion, self.region)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Local search failed for %r: %s", getattr(completion, "title", completion), exc)
            return None
        if not items:
            logger.warning("Local search returned no map items for %r", getattr(completion, "title", completion))
            return None
        address = address_from_placemark(items[0].placemark)
        if address is None:
            logger.warning("Local search placemark for %r has no title", getattr(completion, "title", completion))
        return address

    def resolve(self, candidate: Candidate, deliver: ResolveCallback) -> None:
        completion = candidate.fallback_handle
        if completion is None:
            logger.warning("Cannot resolve %r through local search: no completion handle", candidate.primary_label)
            self._dispatch(deliver, None)
            return
        self._run_in_background(lambda: self._search(completion), deliver)
