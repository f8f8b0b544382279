"""
Geocoding Service - Forward Geocoding with OpenStreetMap Nominatim

Converts place names ("Springfield, IL") to coordinates for disaster records.

Features:
- OpenStreetMap Nominatim search API (free, no API key)
- Results cached through CacheManager (30-day TTL)
- Rate limiting (1 request/second as per Nominatim ToS)
- Failures return None so callers can continue without coordinates
"""

import hashlib
import logging
import time
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)


class GeocodingService:
    """
    Forward geocoding service using OpenStreetMap Nominatim

    Usage:
        service = GeocodingService(cache_manager)
        service.geocode('Springfield, Illinois')
        # {'lat': '39.7990', 'lon': '-89.6440', 'display_name': 'Springfield, Sangamon County, ...'}
    """

    BASE_URL = "https://nominatim.openstreetmap.org/search"
    CACHE_TTL_SECONDS = 30 * 24 * 3600

    def __init__(self, cache_manager, user_agent='DisasterResponseApp/1.0', timeout=5):
        """
        Args:
            cache_manager: CacheManager instance
            user_agent (str): User-Agent sent to Nominatim (required by its ToS)
            timeout (int): Request timeout in seconds
        """
        self.cache_manager = cache_manager
        self.user_agent = user_agent
        self.timeout = timeout
        self.last_request_time = 0
        self.rate_limit_delay = 1.0  # Nominatim ToS

    @staticmethod
    def cache_key(location_name: str) -> str:
        digest = hashlib.sha256(location_name.strip().lower().encode()).hexdigest()[:24]
        return f"geocode_{digest}"

    def geocode(self, location_name: str) -> Optional[Dict]:
        """
        Look up coordinates for a place name

        Args:
            location_name: Free-text place name

        Returns:
            Dict with 'lat', 'lon', 'display_name', or None when not found or on error
        """
        if not location_name or not location_name.strip():
            return None

        key = self.cache_key(location_name)
        cached = self.cache_manager.get(key)
        if cached:
            logger.info(f"Geocoding cache HIT: {key} -> {cached.get('display_name')}")
            return cached

        current_time = time.time()
        time_since_last = current_time - self.last_request_time
        if time_since_last < self.rate_limit_delay:
            time.sleep(self.rate_limit_delay - time_since_last)

        try:
            response = requests.get(
                self.BASE_URL,
                params={'q': location_name, 'format': 'json', 'limit': 1},
                headers={'User-Agent': self.user_agent},
                timeout=self.timeout
            )
            self.last_request_time = time.time()

            if response.status_code != 200:
                logger.warning(f"Geocoding API error: {response.status_code}")
                return None

            result = self._parse_nominatim_response(response.json())

        except Exception as e:
            logger.error(f"Geocoding error for '{location_name}': {e}")
            return None

        if result:
            self.cache_manager.set(key, result, ttl_seconds=self.CACHE_TTL_SECONDS)
        return result

    def _parse_nominatim_response(self, data) -> Optional[Dict]:
        """First search hit as {lat, lon, display_name}"""
        if not isinstance(data, list) or not data:
            return None

        first = data[0]
        if 'lat' not in first or 'lon' not in first:
            return None

        return {
            'lat': first['lat'],
            'lon': first['lon'],
            'display_name': first.get('display_name', '')
        }
