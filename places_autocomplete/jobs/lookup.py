"""CLI job: autocomplete one query and optionally resolve a candidate."""

import argparse
import json
import logging
import threading
from typing import List, Optional

from places_autocomplete.core.config import AutocompleteConfig, get_settings
from places_autocomplete.core.coordinator import AutocompleteListener, create_coordinator
from places_autocomplete.core.models import Candidate, Coordinate, PlaceType, ResolvedAddress
from places_autocomplete.vendors.local_search import GazetteerSearchEngine

logger = logging.getLogger(__name__)


class BlockingListener(AutocompleteListener):
    """Lets a synchronous caller wait for the next candidate list or address."""

    def __init__(self) -> None:
        self.candidates: List[Candidate] = []
        self.address: Optional[ResolvedAddress] = None
        self.candidates_ready = threading.Event()
        self.address_ready = threading.Event()

    def candidates_updated(self, candidates: List[Candidate]) -> None:
        self.candidates = candidates
        self.candidates_ready.set()

    def address_resolved(self, address: ResolvedAddress) -> None:
        self.address = address
        self.address_ready.set()


def run_lookup(
    *,
    text: str,
    config: AutocompleteConfig,
    gazetteer_path: Optional[str] = None,
    select: Optional[int] = None,
    wait_seconds: float = 15.0,
) -> Optional[ResolvedAddress]:
    settings = get_settings()
    if not text.strip():
        raise ValueError("Query text is empty")

    engine = GazetteerSearchEngine.from_file(gazetteer_path) if gazetteer_path else GazetteerSearchEngine()
    listener = BlockingListener()
    coordinator = create_coordinator(
        config,
        listener,
        engine,
        base_url=settings.places_base_url,
        timeout=settings.request_timeout,
    )

    try:
        logger.info("Running autocomplete for input=%r place_type=%s", text, config.place_type.name)
        coordinator.on_query_changed(text)
        if not listener.candidates_ready.wait(wait_seconds):
            logger.warning("No candidates within %.1fs for input=%r", wait_seconds, text)
            return None

        for index, candidate in enumerate(listener.candidates):
            print(f"{index}. {candidate.primary_label} - {candidate.secondary_label}")

        if select is None:
            return None
        if not 0 <= select < len(listener.candidates):
            logger.error("--select %d is out of range for %d candidates", select, len(listener.candidates))
            return None

        coordinator.on_candidate_selected(listener.candidates[select])
        if not listener.address_ready.wait(wait_seconds):
            logger.warning("Candidate %d was not resolved within %.1fs", select, wait_seconds)
            return None
        print(json.dumps(listener.address.to_dict(), indent=2, ensure_ascii=False))
        return listener.address
    finally:
        coordinator.close()


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Autocomplete an address with Google Places and a local fallback")
    parser.add_argument("text", help="Partial address, e.g. '90 Broad'")
    parser.add_argument(
        "--type",
        dest="place_type",
        choices=[member.name.lower() for member in PlaceType],
        default=settings.place_type.name.lower(),
        help="Place type filter",
    )
    parser.add_argument("--lat", dest="lat", type=float, default=settings.bias_latitude, help="Bias latitude")
    parser.add_argument("--lng", dest="lng", type=float, default=settings.bias_longitude, help="Bias longitude")
    parser.add_argument("--radius", dest="radius", type=float, default=settings.radius, help="Bias radius in meters")
    parser.add_argument("--select", dest="select", type=int, help="Index of the candidate to resolve")
    parser.add_argument(
        "--gazetteer",
        dest="gazetteer_path",
        default=settings.gazetteer_path,
        help="JSON placemark file for the local fallback search",
    )
    parser.add_argument("--wait", dest="wait_seconds", type=float, default=15.0, help="Seconds to wait for each result")
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    coordinate = None
    if args.lat is not None and args.lng is not None:
        coordinate = Coordinate(args.lat, args.lng)

    try:
        config = AutocompleteConfig(
            api_key=get_settings().google_api_key,
            place_type=PlaceType.from_name(args.place_type),
            coordinate=coordinate,
            radius=args.radius,
        )
    except ValueError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    address = run_lookup(
        text=args.text,
        config=config,
        gazetteer_path=args.gazetteer_path,
        select=args.select,
        wait_seconds=args.wait_seconds,
    )
    if args.select is not None and address is None:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
