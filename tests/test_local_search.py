import json

import pytest

from places_autocomplete.core.models import Coordinate
from places_autocomplete.vendors.local_search import (
    SEARCH_NEARBY,
    CompleterFilter,
    CoordinateRegion,
    GazetteerSearchEngine,
    LocalCompleter,
    LocalSearchCompletion,
    Placemark,
)

MANHATTAN = Coordinate(40.7128, -74.0060)


@pytest.fixture
def engine():
    return GazetteerSearchEngine(
        [
            Placemark(
                title="90 Broadway",
                coordinate=Coordinate(40.7075, -74.0113),
                sub_thoroughfare="90",
                thoroughfare="Broadway",
                locality="New York",
                administrative_area="NY",
                country="United States",
                category="Office",
            ),
            Placemark(
                title="Blue Bottle Coffee",
                coordinate=Coordinate(40.7420, -74.0048),
                locality="New York",
                administrative_area="NY",
                category="Coffee",
            ),
            Placemark(
                title="Broadway Coffee",
                coordinate=Coordinate(47.6205, -122.3212),
                locality="Seattle",
                administrative_area="WA",
                category="Coffee",
            ),
        ]
    )


def test_region_contains():
    region = CoordinateRegion(MANHATTAN, 50_000, 50_000)
    assert region.contains(Coordinate(40.7075, -74.0113))
    assert not region.contains(Coordinate(47.6205, -122.3212))
    assert not region.contains(None)


def test_complete_matches_word_prefixes(engine):
    results = engine.complete("broad", CompleterFilter.LOCATIONS_ONLY)
    assert [r.title for r in results] == ["90 Broadway", "Broadway Coffee"]
    assert results[0].subtitle == "New York, NY, United States"
    assert not any(r.is_query for r in results)

    assert engine.complete("   ", CompleterFilter.LOCATIONS_ONLY) == []


def test_complete_scoped_to_region(engine):
    region = CoordinateRegion(MANHATTAN, 50_000, 50_000)
    results = engine.complete("broadway", CompleterFilter.LOCATIONS_ONLY, region)
    assert [r.title for r in results] == ["90 Broadway"]


def test_locations_and_queries_offers_categories(engine):
    results = engine.complete("coff", CompleterFilter.LOCATIONS_AND_QUERIES)
    assert results[0] == LocalSearchCompletion(title="Coffee", subtitle=SEARCH_NEARBY, key="category:Coffee", is_query=True)
    assert {r.title for r in results[1:]} == {"Blue Bottle Coffee", "Broadway Coffee"}

    locations_only = engine.complete("coff", CompleterFilter.LOCATIONS_ONLY)
    assert all(not r.is_query for r in locations_only)


def test_search_resolves_completions(engine):
    completion = engine.complete("90 broad", CompleterFilter.LOCATIONS_ONLY)[0]
    items = engine.search(completion)
    assert [item.placemark.title for item in items] == ["90 Broadway"]

    coffee = LocalSearchCompletion(title="Coffee", subtitle=SEARCH_NEARBY, key="category:Coffee", is_query=True)
    assert len(engine.search(coffee)) == 2

    assert engine.search(LocalSearchCompletion(title="x", subtitle="", key="placemark:99")) == []
    assert engine.search(LocalSearchCompletion(title="x", subtitle="")) == []


def test_max_results(engine):
    engine.max_results = 1
    assert len(engine.complete("coffee", CompleterFilter.LOCATIONS_AND_QUERIES)) == 1


def test_from_file(tmp_path):
    path = tmp_path / "places.json"
    path.write_text(
        json.dumps([{"title": "Ferry Building", "latitude": 37.7955, "longitude": -122.3937, "locality": "San Francisco"}]),
        encoding="utf-8",
    )
    engine = GazetteerSearchEngine.from_file(path)
    assert engine.placemarks[0].coordinate == Coordinate(37.7955, -122.3937)
    assert engine.complete("ferry", CompleterFilter.LOCATIONS_ONLY)[0].subtitle == "San Francisco"


def test_completer_pushes_latest_fragment_only(engine, manual_executor):
    pushed = []
    completer = LocalCompleter(
        engine, manual_executor, filter_type=CompleterFilter.LOCATIONS_ONLY, on_results=pushed.append
    )

    completer.query_fragment = "blue"
    completer.query_fragment = "broadway"
    manual_executor.run_all()

    assert len(pushed) == 1
    assert [r.title for r in pushed[0]] == ["90 Broadway", "Broadway Coffee"]
    assert completer.results == pushed[0]


def test_completer_refresh_and_errors(manual_executor):
    class FailingEngine(GazetteerSearchEngine):
        def complete(self, fragment, filter_type, region=None):
            raise RuntimeError("engine offline")

    errors = []
    completer = LocalCompleter(FailingEngine(), manual_executor, on_error=errors.append)
    completer.query_fragment = "x"
    manual_executor.run_all()
    assert str(errors[0]) == "engine offline"

    completer.refresh()
    manual_executor.run_all()
    assert len(errors) == 2

    completer.cancel()
    completer.refresh()
    manual_executor.run_all()
    assert len(errors) == 2
