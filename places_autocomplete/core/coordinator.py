"""Session coordinator: routes input between the primary and fallback providers."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from functools import partial
from typing import List, Optional, Sequence

from places_autocomplete.core.config import AutocompleteConfig
from places_autocomplete.core.models import Candidate, QueryParameters, ResolvedAddress
from places_autocomplete.core.providers import PlacesProvider, Subscription
from places_autocomplete.vendors.fallback import LocalSearchProvider
from places_autocomplete.vendors.google_places import GooglePlacesClient
from places_autocomplete.vendors.local_search import GazetteerSearchEngine, LocalSearchEngine

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    AWAITING_PRIMARY_SUGGEST = "awaiting_primary_suggest"
    AWAITING_FALLBACK_SUGGEST = "awaiting_fallback_suggest"
    AWAITING_RESOLVE = "awaiting_resolve"


class AutocompleteListener:
    """Receives session output. Subclass and override what you need."""

    def candidates_updated(self, candidates: List[Candidate]) -> None:
        pass

    def address_resolved(self, address: ResolvedAddress) -> None:
        pass

    def session_dismissed(self) -> None:
        pass


class ResolutionCoordinator:
    """Drives one autocomplete session.

    Every ``on_query_changed`` call bumps a generation counter; provider responses
    carry the generation they were issued under and are dropped on arrival when a
    newer query has been issued since. Fallback pushes go through the same check.
    """

    def __init__(
        self,
        config: AutocompleteConfig,
        primary: PlacesProvider,
        fallback: PlacesProvider,
        listener: AutocompleteListener,
        owned_executors: Sequence[Executor] = (),
    ) -> None:
        self.config = config
        self.primary = primary
        self.fallback = fallback
        self.listener = listener
        self.state = SessionState.IDLE
        self.candidates: List[Candidate] = []
        self._lock = threading.RLock()
        self._generation = 0
        self._selection = 0
        self._primary_subscription: Optional[Subscription] = None
        self._fallback_subscription: Optional[Subscription] = None
        self._owned_executors = list(owned_executors)

    def build_query(self, text: str) -> QueryParameters:
        return QueryParameters(
            input=text,
            place_type=self.config.place_type,
            key=self.config.api_key,
            location=self.config.coordinate,
            radius=self.config.radius,
        )

    def _cancel_subscriptions(self) -> None:
        for subscription in (self._primary_subscription, self._fallback_subscription):
            if subscription is not None:
                subscription.cancel()
        self._primary_subscription = None
        self._fallback_subscription = None

    def _publish(self, candidates: Sequence[Candidate]) -> None:
        self.candidates = list(candidates)
        self.listener.candidates_updated(list(self.candidates))

    def on_query_changed(self, text: str) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._cancel_subscriptions()

            if not text:
                self.state = SessionState.IDLE
                self._publish([])
                return

            params = self.build_query(text)
            self.state = SessionState.AWAITING_PRIMARY_SUGGEST
            self._primary_subscription = self.primary.suggest(
                params, partial(self._on_primary_suggest, generation, params)
            )

    def _on_primary_suggest(self, generation: int, params: QueryParameters,
                            candidates: Optional[List[Candidate]]) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping stale primary suggestions for %r", params.input)
                return
            self._primary_subscription = None

            if candidates is None:
                logger.info("Primary suggest failed for %r, falling back on %s", params.input, self.fallback.name)
                self.state = SessionState.AWAITING_FALLBACK_SUGGEST
                self._fallback_subscription = self.fallback.suggest(
                    params, partial(self._on_fallback_suggest, generation, params)
                )
                return

            self.state = SessionState.IDLE
            self._publish(candidates)

    def _on_fallback_suggest(self, generation: int, params: QueryParameters,
                             candidates: Optional[List[Candidate]]) -> None:
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropping stale fallback suggestions for %r", params.input)
                return
            if candidates is None:
                logger.warning("Fallback suggest failed for %r; keeping current candidates", params.input)
                return
            self._publish(candidates)

    def on_candidate_selected(self, candidate: Candidate) -> None:
        with self._lock:
            self._selection += 1
            selection = self._selection
            self.state = SessionState.AWAITING_RESOLVE

            if candidate.has_primary_id:
                provider = self.primary
            elif candidate.fallback_handle is not None:
                logger.info("No primary place id for %r, resolving with %s", candidate.primary_label, self.fallback.name)
                provider = self.fallback
            else:
                logger.warning("Candidate %r has neither a place id nor a fallback handle", candidate.primary_label)
                self.state = SessionState.IDLE
                return

            provider.resolve(candidate, partial(self._on_resolved, selection, candidate))

    def _on_resolved(self, selection: int, candidate: Candidate, address: Optional[ResolvedAddress]) -> None:
        with self._lock:
            if selection != self._selection:
                logger.debug("Dropping stale resolution for %r", candidate.primary_label)
                return
            self.state = SessionState.IDLE
            if address is None:
                logger.warning("Could not resolve %r into an address", candidate.primary_label)
                return

            self._generation += 1
            self._cancel_subscriptions()
            self.listener.address_resolved(address)
            self.listener.session_dismissed()

    def close(self) -> None:
        with self._lock:
            self._generation += 1
            self._selection += 1
            self._cancel_subscriptions()
            self.state = SessionState.IDLE
        self.primary.close()
        self.fallback.close()
        for executor in self._owned_executors:
            executor.shutdown(wait=False)
        self._owned_executors = []


def create_coordinator(
    config: AutocompleteConfig,
    listener: AutocompleteListener,
    engine: Optional[LocalSearchEngine] = None,
    *,
    base_url: Optional[str] = None,
    timeout: float = 10,
    io_executor: Optional[Executor] = None,
    callback_executor: Optional[Executor] = None,
) -> ResolutionCoordinator:
    """Wire a coordinator with a Google Places client and a local search fallback.

    Both providers share ``callback_executor`` so deliveries are serialized; when none is
    given a single-thread executor is created.
    """
    owned = []
    if callback_executor is None:
        callback_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="places-callback")
        owned.append(callback_executor)
    if io_executor is None:
        io_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="places-io")
        owned.append(io_executor)

    client_kwargs = {"timeout": timeout, "io_executor": io_executor, "callback_executor": callback_executor}
    if base_url:
        client_kwargs["base_url"] = base_url
    primary = GooglePlacesClient(config.api_key, **client_kwargs)
    fallback = LocalSearchProvider(
        engine if engine is not None else GazetteerSearchEngine(),
        io_executor=io_executor,
        callback_executor=callback_executor,
    )
    return ResolutionCoordinator(config, primary, fallback, listener, owned_executors=owned)
