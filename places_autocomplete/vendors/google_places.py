"""Client for the Google Places autocomplete and details endpoints."""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Dict, List, Optional

import requests

from places_autocomplete.core.config import DEFAULT_BASE_URL
from places_autocomplete.core.models import Candidate, QueryParameters, ResolvedAddress
from places_autocomplete.core.providers import (
    PlacesProvider,
    ResolveCallback,
    Subscription,
    SuggestCallback,
)
from places_autocomplete.etl.address import address_from_details
from places_autocomplete.etl.candidates import candidate_from_prediction

logger = logging.getLogger(__name__)

AUTOCOMPLETE_ENDPOINT = "autocomplete/json"
DETAILS_ENDPOINT = "details/json"


class GooglePlacesClient(PlacesProvider):
    """Primary provider. Every failure is logged by kind and collapses to ``None``."""

    name = "google_places"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
        io_executor: Optional[Executor] = None,
        callback_executor: Optional[Executor] = None,
    ) -> None:
        if not api_key:
            raise ValueError("Provide your Google API key")
        super().__init__(io_executor=io_executor, callback_executor=callback_executor)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()

    def close(self) -> None:
        super().close()
        if self._owns_session:
            self._session.close()
            self._owns_session = False

    def _get_json(self, endpoint: str, params: Dict[str, str]) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Places request to %s failed: transport error %s", endpoint, exc)
            return None

        if response.status_code != 200:
            logger.warning(
                "Places request to %s failed: HTTP %s body=%s",
                endpoint,
                response.status_code,
                (response.text or "")[:200],
            )
            return None

        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("Places request to %s failed: malformed JSON %s", endpoint, exc)
            return None
        if not isinstance(payload, dict):
            logger.warning("Places request to %s failed: JSON body is %s, not an object", endpoint, type(payload).__name__)
            return None

        status = payload.get("status")
        if status != "OK":
            logger.warning(
                "Places request to %s failed: status=%s, error_message=%s",
                endpoint,
                status,
                payload.get("error_message"),
            )
            return None
        return payload

    def fetch_predictions(self, params: QueryParameters) -> Optional[List[Candidate]]:
        payload = self._get_json(AUTOCOMPLETE_ENDPOINT, params.to_params())
        if payload is None:
            return None
        predictions = payload.get("predictions")
        if not isinstance(predictions, list):
            logger.warning("Places autocomplete response missing predictions: keys=%s", list(payload.keys())[:10])
            return None
        logger.debug("Places autocomplete returned %d predictions for input=%r", len(predictions), params.input)
        return [candidate_from_prediction(prediction) for prediction in predictions]

    def fetch_details(self, place_id: str) -> Optional[ResolvedAddress]:
        payload = self._get_json(DETAILS_ENDPOINT, {"placeid": place_id, "key": self.api_key})
        if payload is None:
            return None
        address = address_from_details(payload)
        if address is None:
            logger.warning("Places details for %s has no formatted_address", place_id)
        return address

    def suggest(self, params: QueryParameters, deliver: SuggestCallback) -> Subscription:
        subscription = Subscription()
        self._run_in_background(lambda: self.fetch_predictions(params), deliver, subscription)
        return subscription

    def resolve(self, candidate: Candidate, deliver: ResolveCallback) -> None:
        place_id = candidate.primary_provider_id
        if not place_id:
            logger.warning("Cannot resolve %r through Google Places: no place id", candidate.primary_label)
            self._dispatch(deliver, None)
            return
        self._run_in_background(lambda: self.fetch_details(place_id), deliver)
