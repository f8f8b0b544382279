"""
Validation utilities for disaster records and coordinates.

Provides centralized validation logic for:
- Coordinate ranges (latitude/longitude)
- Disaster create/update payloads and tag normalization
"""
from typing import Dict, List, Optional, Tuple

from bleach import clean


class CoordinateValidator:
    """Validator for geographic coordinates."""

    @staticmethod
    def validate_coordinates(lat, lon) -> bool:
        """
        Validate latitude and longitude ranges.

        Examples:
            >>> CoordinateValidator.validate_coordinates(37.7749, -122.4194)
            True
            >>> CoordinateValidator.validate_coordinates('91', 0)
            False
            >>> CoordinateValidator.validate_coordinates(None, 0)
            False
        """
        try:
            latitude = float(lat)
            longitude = float(lon)
            return -90 <= latitude <= 90 and -180 <= longitude <= 180
        except (TypeError, ValueError):
            return False


class DisasterValidator:
    """Validator for disaster payloads."""

    REQUIRED_FIELDS = ('title', 'description', 'location_name')
    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 5000
    MAX_TAGS = 20

    @staticmethod
    def normalize_tags(tags) -> List[str]:
        """
        Accept a list or a comma-separated string of tags.

        Examples:
            >>> DisasterValidator.normalize_tags('flood, urgent,')
            ['flood', 'urgent']
            >>> DisasterValidator.normalize_tags(None)
            []
        """
        if not tags:
            return []
        if isinstance(tags, str):
            tags = tags.split(',')
        if not isinstance(tags, (list, tuple)):
            return []

        normalized = []
        for tag in tags:
            tag = str(tag).strip()
            if tag and tag not in normalized:
                normalized.append(tag)
        return normalized[:DisasterValidator.MAX_TAGS]

    @staticmethod
    def sanitize_text(value: Optional[str]) -> Optional[str]:
        """Strip markup from user-supplied text."""
        if value is None:
            return None
        return clean(str(value), tags=[], strip=True).strip()

    @staticmethod
    def validate_create(data: Dict) -> Tuple[bool, Optional[str]]:
        """
        Validate a create-disaster payload.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not isinstance(data, dict):
            return False, "Request body must be a JSON object"

        if any(not str(data.get(field) or '').strip() for field in DisasterValidator.REQUIRED_FIELDS):
            return False, "Title, description, and location_name are required"

        return DisasterValidator._validate_lengths(data)

    @staticmethod
    def validate_update(data: Dict) -> Tuple[bool, Optional[str]]:
        """
        Validate an update payload; every field is optional but at least one is required.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not isinstance(data, dict):
            return False, "Request body must be a JSON object"

        updatable = DisasterValidator.REQUIRED_FIELDS + ('tags',)
        if not any(field in data for field in updatable):
            return False, f"Provide at least one of: {', '.join(updatable)}"

        return DisasterValidator._validate_lengths(data)

    @staticmethod
    def _validate_lengths(data: Dict) -> Tuple[bool, Optional[str]]:
        if len(str(data.get('title') or '')) > DisasterValidator.MAX_TITLE_LENGTH:
            return False, f"title must be at most {DisasterValidator.MAX_TITLE_LENGTH} characters"
        if len(str(data.get('description') or '')) > DisasterValidator.MAX_DESCRIPTION_LENGTH:
            return False, f"description must be at most {DisasterValidator.MAX_DESCRIPTION_LENGTH} characters"
        return True, None
