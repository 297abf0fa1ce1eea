"""Tests for location token classification."""

from __future__ import annotations

import pytest

from dzt_travel.core.resolution import (
    FreeTextQuery,
    RawIdentifier,
    classify_airport,
    classify_location,
    classify_station,
)

pytestmark = pytest.mark.unit


class TestClassifyLocation:
    def test_coordinate_pair_is_raw(self):
        assert classify_location("52.5200,13.4050") == RawIdentifier("52.5200,13.4050")

    @pytest.mark.parametrize("text", ["Berlin", "52,13", "52.52, 13.40", "-33.9,18.4"])
    def test_anything_else_is_free_text(self, text):
        assert isinstance(classify_location(text), FreeTextQuery)


class TestClassifyStation:
    @pytest.mark.parametrize("token", ["8011160", "80111600"])
    def test_seven_or_eight_digits_is_an_id(self, token):
        assert classify_station(token) == RawIdentifier(token)

    @pytest.mark.parametrize("token", ["801116", "801116000", "Berlin Hbf", "8011160a"])
    def test_other_tokens_need_search(self, token):
        assert classify_station(token) == FreeTextQuery(token)


class TestClassifyAirport:
    def test_three_letters_upper_cased(self):
        assert classify_airport(" muc ") == RawIdentifier("MUC")

    @pytest.mark.parametrize("token", ["MU", "MUNC", "M1C", "München"])
    def test_other_tokens_are_free_text(self, token):
        assert isinstance(classify_airport(token), FreeTextQuery)

    def test_variants_are_immutable(self):
        token = RawIdentifier("FRA")
        with pytest.raises(AttributeError):
            token.value = "MUC"  # type: ignore[misc]
