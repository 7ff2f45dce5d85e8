"""Unit tests for the Mapbox geocoder provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from place_resolver.lib.geocoder.base import GeocodingProviderError
from place_resolver.lib.geocoder.mapbox import MapboxGeocoder


class TestMapboxResponseParsing:
    """Tests for Mapbox v6 response parsing."""

    def setup_method(self) -> None:
        self.geocoder = MapboxGeocoder(api_key="test-token")

    def test_successful_match(self) -> None:
        data = {
            "type": "FeatureCollection",
            "features": [
                {
                    "geometry": {"type": "Point", "coordinates": [116.1167, -8.5833]},
                    "properties": {"full_address": "Mataram, Nusa Tenggara Barat, Indonesia", "relevance": 0.93},
                }
            ],
        }
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.latitude == -8.5833
        assert result.longitude == 116.1167
        assert result.formatted_address == "Mataram, Nusa Tenggara Barat, Indonesia"
        assert result.confidence_score == 0.93

    def test_address_falls_back_to_name(self) -> None:
        data = {"features": [{"geometry": {"coordinates": [106.8, -6.2]}, "properties": {"name": "Jakarta"}}]}
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.formatted_address == "Jakarta"
        assert result.confidence_score == 0.5

    def test_no_features(self) -> None:
        assert self.geocoder._parse_response({"features": []}) is None

    def test_short_coordinates_raise(self) -> None:
        data = {"features": [{"geometry": {"coordinates": [106.8]}}]}
        with pytest.raises(GeocodingProviderError, match="Malformed"):
            self.geocoder._parse_response(data)


class TestMapboxGeocoder:
    """Tests for MapboxGeocoder requests and errors."""

    async def test_country_filter(self) -> None:
        geocoder = MapboxGeocoder(api_key="test-token", country="id")
        response = MagicMock()
        response.json.return_value = {"features": []}
        response.raise_for_status = MagicMock()
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = response
            await geocoder.geocode("Mataram")

        params = mock_get.call_args.kwargs["params"]
        assert params["country"] == "id"
        assert params["access_token"] == "test-token"
        assert params["limit"] == 1

    async def test_http_error_raises_provider_error(self) -> None:
        geocoder = MapboxGeocoder(api_key="k")
        response = httpx.Response(status_code=429, request=httpx.Request("GET", "http://test"))
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError) as exc_info,
        ):
            mock_get.side_effect = httpx.HTTPStatusError("Too many", request=response.request, response=response)
            await geocoder.geocode("Mataram")
        assert exc_info.value.status_code == 429
