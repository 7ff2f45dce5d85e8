"""Unit tests for the SerpApi Google Maps search provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from place_resolver.lib.geocoder.base import GeocodingProviderError, NoResultsFoundError, ProviderUnavailableError
from place_resolver.lib.geocoder.serp import SERP_API_URL, SerpGeocoder


def _json_response(body: object) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = body
    response.raise_for_status = MagicMock()
    return response


class TestSerpResponseParsing:
    """Tests for SerpApi response parsing."""

    def setup_method(self) -> None:
        self.geocoder = SerpGeocoder(api_key="test-key", region_name="Indonesia")

    def test_place_results_preferred(self) -> None:
        data = {
            "place_results": {
                "title": "Monumen Nasional",
                "address": "Gambir, Central Jakarta City, Jakarta",
                "gps_coordinates": {"latitude": -6.1754, "longitude": 106.8270},
            },
            "local_results": [
                {"title": "Elsewhere", "gps_coordinates": {"latitude": -7.0, "longitude": 110.0}},
            ],
        }
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.latitude == -6.1754
        assert result.longitude == 106.8270
        assert result.formatted_address == "Gambir, Central Jakarta City, Jakarta"

    def test_falls_through_to_local_results(self) -> None:
        data = {
            "local_results": [
                {"title": "No coordinates"},
                {"title": "Gedung Sate", "gps_coordinates": {"latitude": -6.9025, "longitude": 107.6188}},
            ]
        }
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.latitude == -6.9025
        assert result.formatted_address == "Gedung Sate"

    def test_organic_results_used_last(self) -> None:
        data = {
            "organic_results": [
                {"address": "Mataram", "gps_coordinates": {"latitude": -8.5833, "longitude": 116.1167}},
            ]
        }
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.longitude == 116.1167

    def test_no_places_returns_none(self) -> None:
        assert self.geocoder._parse_response({"local_results": []}) is None

    def test_empty_search_error_returns_none(self) -> None:
        data = {"error": "Google hasn't returned any results for this query."}
        assert self.geocoder._parse_response(data) is None

    def test_api_error_raises(self) -> None:
        with pytest.raises(GeocodingProviderError, match="Invalid API key"):
            self.geocoder._parse_response({"error": "Invalid API key."})

    def test_malformed_payload_raises(self) -> None:
        with pytest.raises(GeocodingProviderError, match="Malformed response payload"):
            self.geocoder._parse_response({"local_results": "not-a-list"})

    def test_out_of_range_coordinates_raise(self) -> None:
        data = {"place_results": {"gps_coordinates": {"latitude": 95.0, "longitude": 106.0}}}
        with pytest.raises(GeocodingProviderError, match="Invalid coordinates"):
            self.geocoder._parse_response(data)


class TestSerpQuery:
    """Tests for region-biased query construction."""

    def test_region_appended(self) -> None:
        geocoder = SerpGeocoder(api_key="k", region_name="Indonesia")
        assert geocoder._build_query("Monas") == "Monas Indonesia"

    def test_region_not_duplicated(self) -> None:
        geocoder = SerpGeocoder(api_key="k", region_name="Indonesia")
        assert geocoder._build_query("Jakarta, Indonesia") == "Jakarta, Indonesia"

    def test_no_region(self) -> None:
        assert SerpGeocoder(api_key="k")._build_query("Monas") == "Monas"


class TestSerpGeocoder:
    """Tests for SerpGeocoder requests and error differentiation."""

    def test_provider_metadata(self) -> None:
        geocoder = SerpGeocoder()
        assert geocoder.provider_name == "serp"
        assert geocoder.requires_api_key is True
        assert geocoder.is_configured is False
        assert SerpGeocoder(api_key="k").is_configured is True

    async def test_request_params(self) -> None:
        geocoder = SerpGeocoder(api_key="test-key", region_name="Indonesia")
        body = {"place_results": {"title": "Monas", "gps_coordinates": {"latitude": -6.1754, "longitude": 106.827}}}
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = _json_response(body)
            result = await geocoder.geocode("Monas")

        assert result is not None
        mock_get.assert_awaited_once()
        assert mock_get.call_args.args[0] == SERP_API_URL
        params = mock_get.call_args.kwargs["params"]
        assert params == {"engine": "google_maps", "q": "Monas Indonesia", "api_key": "test-key"}

    async def test_timeout_raises_provider_error(self) -> None:
        geocoder = SerpGeocoder(api_key="k", timeout=0.1)
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError, match="serp"),
        ):
            mock_get.side_effect = httpx.TimeoutException("timed out")
            await geocoder.geocode("Monas")

    async def test_http_error_carries_status(self) -> None:
        geocoder = SerpGeocoder(api_key="k")
        response = httpx.Response(status_code=401, request=httpx.Request("GET", SERP_API_URL))
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError) as exc_info,
        ):
            mock_get.side_effect = httpx.HTTPStatusError("Unauthorized", request=response.request, response=response)
            await geocoder.geocode("Monas")
        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "serp: Provider returned HTTP 401"

    async def test_unconfigured_resolve_makes_no_request(self) -> None:
        geocoder = SerpGeocoder()
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            outcome = await geocoder.resolve("Monas")
        mock_get.assert_not_called()
        assert outcome.success is False
        assert isinstance(outcome.error, ProviderUnavailableError)
        assert str(outcome.error) == "serp: API key not configured"

    async def test_resolve_maps_no_match(self) -> None:
        geocoder = SerpGeocoder(api_key="k")
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = _json_response({"local_results": []})
            outcome = await geocoder.resolve("Nowhere")
        assert isinstance(outcome.error, NoResultsFoundError)
        assert str(outcome.error) == "serp: No results found"
