"""
Tests for Nominatim forward geocoding
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from services.geocoding_service import GeocodingService


@pytest.fixture
def geocoder(cache_manager):
    service = GeocodingService(cache_manager, user_agent='TestAgent/1.0')
    service.rate_limit_delay = 0
    return service


def _response(status=200, data=None):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = data
    return response


class TestGeocodingService:

    @patch('services.geocoding_service.requests.get')
    def test_geocode_success(self, mock_get, geocoder):
        mock_get.return_value = _response(data=[
            {'lat': '39.7990', 'lon': '-89.6440', 'display_name': 'Springfield, Illinois'}
        ])

        result = geocoder.geocode('Springfield, IL')

        assert result == {'lat': '39.7990', 'lon': '-89.6440', 'display_name': 'Springfield, Illinois'}
        assert mock_get.call_args[1]['params'] == {'q': 'Springfield, IL', 'format': 'json', 'limit': 1}
        assert mock_get.call_args[1]['headers']['User-Agent'] == 'TestAgent/1.0'

    @patch('services.geocoding_service.requests.get')
    def test_result_cached(self, mock_get, geocoder, cache_manager):
        mock_get.return_value = _response(data=[{'lat': '1', 'lon': '2'}])

        geocoder.geocode('Springfield')
        geocoder.geocode('  springfield ')

        assert mock_get.call_count == 1
        assert cache_manager.get(GeocodingService.cache_key('Springfield'))['lat'] == '1'

    @patch('services.geocoding_service.requests.get')
    def test_no_results(self, mock_get, geocoder):
        mock_get.return_value = _response(data=[])
        assert geocoder.geocode('Atlantis') is None

    @patch('services.geocoding_service.requests.get')
    def test_http_error(self, mock_get, geocoder):
        mock_get.return_value = _response(status=503)
        assert geocoder.geocode('Springfield') is None

    @patch('services.geocoding_service.requests.get')
    def test_network_error(self, mock_get, geocoder):
        mock_get.side_effect = requests.exceptions.ConnectionError()
        assert geocoder.geocode('Springfield') is None

    def test_blank_name(self, geocoder):
        assert geocoder.geocode('   ') is None
        assert geocoder.geocode(None) is None
