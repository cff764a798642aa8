from urllib.parse import urlencode

import pytest

from places_autocomplete.core.models import Candidate, Coordinate, PlaceType, QueryParameters, ResolvedAddress


def test_query_parameters_with_bias_point():
    params = QueryParameters(
        input="123 Main",
        place_type=PlaceType.ADDRESS,
        key="secret",
        location=Coordinate(40.0, -73.0),
        radius=500,
    ).to_params()

    assert params == {
        "input": "123 Main",
        "types": "address",
        "location": "40.0,-73.0",
        "radius": "500",
        "key": "secret",
    }
    assert "location=40.0%2C-73.0" in urlencode(params)


def test_query_parameters_without_bias_point():
    params = QueryParameters(input="Main", place_type=PlaceType.ALL, key="k", radius=500).to_params()

    assert params == {"input": "Main", "types": "", "key": "k"}


def test_query_parameters_skips_invalid_coordinate_and_zero_radius():
    invalid = QueryParameters(input="x", place_type=PlaceType.CITIES, key="k", location=Coordinate(200.0, 0.0))
    assert "location" not in invalid.to_params()
    assert invalid.to_params()["types"] == "(cities)"

    no_radius = QueryParameters(input="x", place_type=PlaceType.GEOCODE, key="k", location=Coordinate(1.5, 2.0))
    params = no_radius.to_params()
    assert params["location"] == "1.5,2.0"
    assert "radius" not in params


def test_place_type_tokens_and_lookup():
    assert PlaceType.ALL.value == ""
    assert PlaceType.REGIONS.value == "(regions)"
    assert PlaceType.from_name("Establishment") is PlaceType.ESTABLISHMENT
    with pytest.raises(ValueError):
        PlaceType.from_name("planet")


def test_candidate_origin_and_address_dict():
    assert Candidate("Main St", "Springfield", primary_provider_id="abc").has_primary_id
    assert not Candidate("Main St", "Springfield", primary_provider_id="").has_primary_id

    address = ResolvedAddress(formatted_address="90 Bway", coordinate=Coordinate(1.0, 2.0))
    payload = address.to_dict()
    assert payload["formatted_address"] == "90 Bway"
    assert payload["coordinate"] == {"latitude": 1.0, "longitude": 2.0}
    assert payload["city"] is None
