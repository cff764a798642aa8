import pytest

from places_autocomplete.core.models import Candidate, Coordinate, PlaceType, QueryParameters
from places_autocomplete.vendors import fallback
from places_autocomplete.vendors.local_search import (
    CompleterFilter,
    GazetteerSearchEngine,
    LocalSearchCompletion,
    MapItem,
    Placemark,
)


class StubEngine:
    def __init__(self, completions=None, items=None, error=None):
        self.completions = completions or []
        self.items = items or []
        self.error = error
        self.complete_calls = []

    def complete(self, fragment, filter_type, region=None):
        self.complete_calls.append((fragment, filter_type, region))
        if self.error:
            raise self.error
        return self.completions

    def search(self, completion, region=None):
        if self.error:
            raise self.error
        return self.items


def _params(text="main", place_type=PlaceType.ADDRESS, location=None, radius=0.0):
    return QueryParameters(input=text, place_type=place_type, key="k", location=location, radius=radius)


def test_completer_filter_for_place_type():
    assert fallback.completer_filter_for(PlaceType.ALL) is CompleterFilter.LOCATIONS_AND_QUERIES
    assert fallback.completer_filter_for(PlaceType.ADDRESS) is CompleterFilter.LOCATIONS_ONLY
    assert fallback.completer_filter_for(PlaceType.CITIES) is CompleterFilter.LOCATIONS_ONLY


def test_search_region_for():
    assert fallback.search_region_for(None) is None
    assert fallback.search_region_for(Coordinate(91.0, 0.0), 100) is None

    default = fallback.search_region_for(Coordinate(40.0, -73.0))
    assert default.latitudinal_meters == 50_000
    assert default.longitudinal_meters == 50_000

    custom = fallback.search_region_for(Coordinate(40.0, -73.0), 500)
    assert custom.latitudinal_meters == 500
    assert custom.center == Coordinate(40.0, -73.0)


def test_suggest_pushes_candidates(inline_executor):
    completions = [LocalSearchCompletion("1 Main St", "Springfield"), LocalSearchCompletion("2 Main St", "Springfield")]
    engine = StubEngine(completions=completions)
    provider = fallback.LocalSearchProvider(engine, io_executor=inline_executor, callback_executor=inline_executor)
    received = []

    subscription = provider.suggest(_params(location=Coordinate(40.0, -73.0), radius=500), received.append)

    assert subscription.active
    assert [c.primary_label for c in received[0]] == ["1 Main St", "2 Main St"]
    assert all(c.fallback_handle is not None and c.primary_provider_id is None for c in received[0])
    fragment, filter_type, region = engine.complete_calls[0]
    assert fragment == "main"
    assert filter_type is CompleterFilter.LOCATIONS_ONLY
    assert region.latitudinal_meters == 500


def test_suggest_errors_surface_as_none(inline_executor, caplog):
    provider = fallback.LocalSearchProvider(
        StubEngine(error=RuntimeError("offline")), io_executor=inline_executor, callback_executor=inline_executor
    )
    received = []
    with caplog.at_level("WARNING"):
        provider.suggest(_params(), received.append)
    assert received == [None]
    assert "offline" in " ".join(caplog.messages)


def test_cancelled_subscription_stops_pushes(inline_executor, manual_executor):
    provider = fallback.LocalSearchProvider(
        StubEngine(completions=[LocalSearchCompletion("a", "b")]),
        io_executor=manual_executor,
        callback_executor=inline_executor,
    )
    received = []
    subscription = provider.suggest(_params(), received.append)
    subscription.cancel()
    manual_executor.run_all()
    assert received == []


def test_resolve_first_map_item(inline_executor):
    placemarks = [
        Placemark(title="1 Main St, Springfield", coordinate=Coordinate(1.0, 2.0), sub_thoroughfare="1"),
        Placemark(title="Other", coordinate=Coordinate(3.0, 4.0)),
    ]
    engine = StubEngine(items=[MapItem(p) for p in placemarks])
    provider = fallback.LocalSearchProvider(engine, io_executor=inline_executor, callback_executor=inline_executor)
    received = []

    provider.resolve(Candidate("1 Main St", "", fallback_handle=LocalSearchCompletion("1 Main St", "")), received.append)

    assert received[0].formatted_address == "1 Main St, Springfield"
    assert received[0].street_number == "1"
    assert received[0].coordinate == Coordinate(1.0, 2.0)


@pytest.mark.parametrize("engine", [StubEngine(items=[]), StubEngine(error=RuntimeError("search failed"))])
def test_resolve_failures_deliver_none(inline_executor, engine):
    provider = fallback.LocalSearchProvider(engine, io_executor=inline_executor, callback_executor=inline_executor)
    received = []
    provider.resolve(Candidate("x", "", fallback_handle=LocalSearchCompletion("x", "")), received.append)
    assert received == [None]


def test_resolve_without_handle(inline_executor):
    provider = fallback.LocalSearchProvider(
        GazetteerSearchEngine(), io_executor=inline_executor, callback_executor=inline_executor
    )
    received = []
    provider.resolve(Candidate("x", "", primary_provider_id=""), received.append)
    assert received == [None]


def test_resolve_category_query_stays_in_session_region(inline_executor):
    engine = GazetteerSearchEngine(
        [
            Placemark(title="Seattle Cafe", coordinate=Coordinate(47.6205, -122.3212), category="Cafe"),
            Placemark(title="NYC Cafe", coordinate=Coordinate(40.7050, -74.0090), category="Cafe"),
        ]
    )
    provider = fallback.LocalSearchProvider(engine, io_executor=inline_executor, callback_executor=inline_executor)
    suggested = []
    provider.suggest(_params("cafe", PlaceType.ALL, location=Coordinate(40.7, -74.0)), suggested.append)

    query = next(c for c in suggested[0] if c.fallback_handle.is_query)
    assert query.secondary_label == "Search Nearby"

    resolved = []
    provider.resolve(query, resolved.append)
    assert resolved[0].formatted_address == "NYC Cafe"
