"""Utilities for turning raw provider suggestions into Candidate objects."""

from typing import Any, Dict

from places_autocomplete.core.models import Candidate


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def candidate_from_prediction(prediction: Dict[str, Any]) -> Candidate:
    """Normalize one autocomplete prediction; missing fields become empty strings."""
    prediction = _as_dict(prediction)
    formatting = _as_dict(prediction.get("structured_formatting"))
    return Candidate(
        primary_label=_text(formatting.get("main_text")),
        secondary_label=_text(formatting.get("secondary_text")),
        primary_provider_id=_text(prediction.get("place_id")),
    )


def candidate_from_completion(completion: Any) -> Candidate:
    """Wrap a local search completion, keeping the completion itself as the resolve handle."""
    return Candidate(
        primary_label=_text(getattr(completion, "title", None)),
        secondary_label=_text(getattr(completion, "subtitle", None)),
        fallback_handle=completion,
    )
