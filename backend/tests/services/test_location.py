"""Tests for the location resolver: text strategies, filters, and geocoder fallback order."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from dpc_enrichment.core.errors import FetchFailure, ValidationRejection
from dpc_enrichment.services.geocoding import GeocodeResult
from dpc_enrichment.services.location import (
    LocationResolver,
    check_location,
    has_street_address,
    match_address_block,
    match_city_state_zip,
)

SPRINGFIELD = GeocodeResult(latitude=39.78, longitude=-89.65, city="Springfield", state="IL", zip_code="62704")


def make_geocoder(forward=None, zip_centroid=None) -> MagicMock:
    """Geocoder mock. forward/zip_centroid are lists of successive results (or exceptions)."""
    geocoder = MagicMock()
    geocoder.forward = AsyncMock(side_effect=forward if forward is not None else [None, None])
    geocoder.zip_centroid = AsyncMock(side_effect=zip_centroid if zip_centroid is not None else [None])
    return geocoder


# ---------------------------------------------------------------------------
# Text strategies
# ---------------------------------------------------------------------------


class TestAddressBlock:
    def test_full_address(self):
        location = match_address_block("Example Family Medicine\n123 Main St, Springfield, IL 62704")
        assert (location.city, location.state, location.zip_code) == ("Springfield", "IL", "62704")
        assert location.street == "123 Main St"
        assert location.confidence == "high"
        assert location.method == "address_block"

    def test_suite_is_part_of_street(self):
        location = match_address_block("500 Oak Avenue, Suite 200, Peoria, IL 61602-1234")
        assert location.street == "500 Oak Avenue, Suite 200"
        assert location.zip_code == "61602"

    def test_no_address(self):
        assert match_address_block("Call us today") is None

    def test_connective_before_city_is_not_part_of_it(self):
        location = match_address_block("Located at 123 Main Street in Springfield, IL 62704")
        assert location.city == "Springfield"
        assert location.street == "123 Main Street"
        assert location.confidence == "high"

    def test_multi_word_city(self):
        location = match_address_block("900 Olive St, St. Louis, MO 63101")
        assert location.city == "St. Louis"


class TestCityStateZip:
    def test_bare_city_state_zip(self):
        location = match_city_state_zip("Located in\nSpringfield, IL 62704")
        assert (location.city, location.state, location.zip_code) == ("Springfield", "IL", "62704")
        assert location.confidence == "medium"

    def test_inline_prose_before_city_is_dropped(self):
        location = match_city_state_zip("Visit us in Springfield, IL 62704")
        assert (location.city, location.state, location.zip_code) == ("Springfield", "IL", "62704")

    def test_capitalized_connective_is_trimmed(self):
        assert match_city_state_zip("Located In Springfield, IL 62704").city == "Springfield"

    def test_city_never_spans_lines(self):
        location = match_city_state_zip("Example Family Medicine\nPeoria, IL 61602")
        assert location.city == "Peoria"

    def test_short_city_is_rejected(self):
        assert match_city_state_zip("Ky, IL 62704") is None

    def test_first_name_as_city_is_rejected(self):
        assert match_city_state_zip("Bukie, IL 62704") is None

    def test_md_credential_is_not_maryland(self):
        assert match_city_state_zip("Baltimore, MD 10001") is None

    def test_real_maryland_address(self):
        location = match_city_state_zip("Baltimore, MD 21201")
        assert location.state == "MD"

    def test_provider_name_token_is_rejected(self):
        assert match_city_state_zip("Adeyemi, TX 75001", provider_name="Bukie Adeyemi") is None


class TestFilters:
    def test_invalid_state(self):
        with pytest.raises(ValidationRejection):
            check_location("Toronto", "ON", "12345", None)

    def test_has_street_address(self):
        assert has_street_address("123 Main St, Springfield")
        assert not has_street_address("Springfield, IL")
        assert not has_street_address(None)


# ---------------------------------------------------------------------------
# LocationResolver
# ---------------------------------------------------------------------------


class TestResolverTextFirst:
    @pytest.mark.asyncio
    async def test_text_match_skips_geocoder(self):
        geocoder = make_geocoder()
        resolver = LocationResolver(geocoder)

        location = await resolver.resolve("123 Main St, Springfield, IL 62704")

        assert location.city == "Springfield"
        geocoder.forward.assert_not_called()

    @pytest.mark.asyncio
    async def test_without_geocoder_returns_none(self):
        assert await LocationResolver().resolve("Bukie, MD 10001", provider_name="Bukie Adeyemi") is None


class TestResolverFallbackOrder:
    @pytest.mark.asyncio
    async def test_forward_geocode_for_street_without_zip(self):
        geocoder = make_geocoder(forward=[SPRINGFIELD])
        location = await LocationResolver(geocoder).resolve("123 Main St, Springfield")

        geocoder.forward.assert_awaited_once_with("123 Main St, Springfield")
        assert location.method == "forward_geocode"
        assert location.confidence == "medium"
        assert (location.latitude, location.longitude) == (39.78, -89.65)

    @pytest.mark.asyncio
    async def test_city_state_then_zip_centroid(self):
        geocoder = make_geocoder(forward=[None, None], zip_centroid=[SPRINGFIELD])
        location = await LocationResolver(geocoder).resolve(
            "123 Main St", city="Springfield", state="IL", zip_code="62704"
        )

        assert [call.args[0] for call in geocoder.forward.await_args_list] == ["123 Main St", "Springfield, IL"]
        geocoder.zip_centroid.assert_awaited_once_with("62704")
        assert location.method == "zip_centroid"
        assert location.confidence == "low"

    @pytest.mark.asyncio
    async def test_geocoder_failure_falls_through(self):
        geocoder = make_geocoder(forward=[FetchFailure("timeout")], zip_centroid=[SPRINGFIELD])
        location = await LocationResolver(geocoder).resolve("123 Main St", state="IL", zip_code="62704")

        geocoder.forward.assert_awaited_once()
        assert location.method == "zip_centroid"

    @pytest.mark.asyncio
    async def test_everything_fails(self):
        geocoder = make_geocoder(forward=[None, None], zip_centroid=[None])
        location = await LocationResolver(geocoder).resolve(
            "123 Main St", city="Springfield", state="IL", zip_code="62704"
        )
        assert location is None

    @pytest.mark.asyncio
    async def test_sentinel_hints_are_ignored(self):
        geocoder = make_geocoder()
        location = await LocationResolver(geocoder).resolve(None, city="Unknown", state="XX", zip_code="00000")

        assert location is None
        geocoder.forward.assert_not_called()
        geocoder.zip_centroid.assert_not_called()

    @pytest.mark.asyncio
    async def test_inconsistent_md_hints_are_dropped(self):
        geocoder = make_geocoder()
        location = await LocationResolver(geocoder).resolve(None, state="MD", zip_code="10001")

        assert location is None
        geocoder.zip_centroid.assert_not_called()

    @pytest.mark.asyncio
    async def test_geocode_result_in_wrong_state_is_rejected(self):
        bad = GeocodeResult(latitude=40.7, longitude=-74.0, city="New York", state="MD", zip_code="10001")
        geocoder = make_geocoder(forward=[bad, None])
        location = await LocationResolver(geocoder).resolve("123 Main St, Somewhere")

        assert location is None


class TestResolverRequireCoordinates:
    @pytest.mark.asyncio
    async def test_text_triple_kept_with_geocoded_coordinates(self):
        geocoder = make_geocoder(forward=[SPRINGFIELD])
        location = await LocationResolver(geocoder).resolve(
            "123 Main St, Springfield, IL 62704", require_coordinates=True
        )

        geocoder.forward.assert_awaited_once_with("123 Main St, Springfield, IL 62704")
        assert (location.city, location.state, location.zip_code) == ("Springfield", "IL", "62704")
        assert location.has_coordinates
        assert location.method == "address_block+forward_geocode"

    @pytest.mark.asyncio
    async def test_coordinates_without_usable_triple_keep_sentinels(self):
        partial = GeocodeResult(latitude=39.78, longitude=-89.65, city="Springfield", state=None, zip_code=None)
        geocoder = make_geocoder(forward=[partial])
        location = await LocationResolver(geocoder).resolve("123 Main St, Springfield", require_coordinates=True)

        assert (location.city, location.state, location.zip_code) == ("Unknown", "XX", "00000")
        assert location.has_coordinates
