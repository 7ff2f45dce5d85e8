"""Unit tests for the Nominatim geocoder provider."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from place_resolver.lib.geocoder.base import GeocodingProviderError
from place_resolver.lib.geocoder.nominatim import NominatimGeocoder


class TestNominatimResponseParsing:
    """Tests for Nominatim API response parsing."""

    def setup_method(self) -> None:
        self.geocoder = NominatimGeocoder()

    def test_successful_match(self) -> None:
        data = [
            {
                "lat": "-6.1754",
                "lon": "106.8272",
                "display_name": "Monumen Nasional, Gambir, Jakarta Pusat, Indonesia",
                "importance": 0.62,
            }
        ]
        result = self.geocoder._parse_response(data)
        assert result is not None
        assert result.latitude == -6.1754
        assert result.longitude == 106.8272
        assert result.confidence_score == 0.62
        assert result.formatted_address == "Monumen Nasional, Gambir, Jakarta Pusat, Indonesia"

    def test_no_results(self) -> None:
        assert self.geocoder._parse_response([]) is None

    def test_missing_lat_raises(self) -> None:
        with pytest.raises(GeocodingProviderError, match="nominatim"):
            self.geocoder._parse_response([{"lon": "106.8"}])

    def test_malformed_coords_raises(self) -> None:
        with pytest.raises(GeocodingProviderError, match="nominatim"):
            self.geocoder._parse_response([{"lat": "not-a-number", "lon": "106.8"}])


class TestNominatimGeocoder:
    """Tests for NominatimGeocoder requests and errors."""

    def test_keyless_and_throttled(self) -> None:
        geocoder = NominatimGeocoder()
        assert geocoder.requires_api_key is False
        assert geocoder.is_configured is True
        assert geocoder.rate_limit_delay == 1.0

    async def test_request_carries_user_agent_and_country(self) -> None:
        geocoder = NominatimGeocoder(email="ops@example.com")
        response = MagicMock()
        response.json.return_value = []
        response.raise_for_status = MagicMock()
        with patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get:
            mock_get.return_value = response
            assert await geocoder.geocode("Mataram") is None

        kwargs = mock_get.call_args.kwargs
        assert kwargs["params"]["countrycodes"] == "id"
        assert kwargs["params"]["email"] == "ops@example.com"
        assert kwargs["headers"]["User-Agent"].startswith("place-resolver")

    async def test_timeout_raises_provider_error(self) -> None:
        geocoder = NominatimGeocoder(timeout=0.1)
        with (
            patch("httpx.AsyncClient.get", new_callable=AsyncMock) as mock_get,
            pytest.raises(GeocodingProviderError, match="nominatim"),
        ):
            mock_get.side_effect = httpx.TimeoutException("Connection timed out")
            await geocoder.geocode("Mataram")
