"""
Tests for `domain/locations.py`.
"""

from __future__ import annotations

from domain.locations import (
    GeoLocation,
    all_states,
    counties_for_state,
    dedupe_locations,
    is_valid_location,
)


def test_reference_list_contains_expected_pairs() -> None:
    assert is_valid_location("Maryland", "Montgomery")
    assert is_valid_location("Maryland", "Prince George's")
    assert is_valid_location("New Jersey", "Cape May")
    assert is_valid_location("District of Columbia", "District of Columbia")
    assert is_valid_location("California", "Los Angeles")
    assert is_valid_location("Texas", "Harris")
    assert is_valid_location("Virginia", "Fairfax")
    assert is_valid_location("Virginia", "Fairfax City")
    assert is_valid_location("Louisiana", "Orleans")
    assert is_valid_location("Alaska", "Matanuska-Susitna")


def test_unknown_pairs_are_invalid() -> None:
    assert not is_valid_location("Maryland", "Bergen")
    assert not is_valid_location("Atlantis", "Poseidon")
    assert not is_valid_location("California", "Harris")
    assert not is_valid_location("", "")


def test_same_county_name_in_two_states_is_distinct() -> None:
    assert GeoLocation(county="Kent", state="Maryland") != GeoLocation(county="Kent", state="Delaware")
    assert is_valid_location("Maryland", "Kent")
    assert is_valid_location("Delaware", "Kent")


def test_all_states_sorted() -> None:
    states = all_states()
    assert states == sorted(states)
    assert "Maryland" in states


def test_reference_list_covers_every_state_and_dc() -> None:
    assert len(all_states()) == 51
    assert sum(len(counties_for_state(s)) for s in all_states()) == 3143
    assert len(counties_for_state("Texas")) == 254
    assert len(counties_for_state("Virginia")) == 133
    assert len(counties_for_state("Connecticut")) == 8


def test_counties_for_unknown_state_is_empty() -> None:
    assert counties_for_state("Atlantis") == []
    assert len(counties_for_state("Maryland")) == 24


def test_dedupe_keeps_first_seen_order() -> None:
    a = GeoLocation(county="Howard", state="Maryland")
    b = GeoLocation(county="Montgomery", state="Maryland")

    assert dedupe_locations([a, b, a, b, a]) == [a, b]


def test_label_and_dict() -> None:
    loc = GeoLocation(county="Montgomery", state="Maryland")

    assert loc.label == "Montgomery, Maryland"
    assert loc.to_dict() == {"county": "Montgomery", "state": "Maryland"}
