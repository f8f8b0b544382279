"""
URL validation for images submitted for AI analysis.

The server downloads these images itself, so user-supplied URLs are
checked before any request is made (SSRF prevention).

Usage:
    from utils.url_validator import validate_image_url

    is_valid, error = validate_image_url(user_provided_url)
    if not is_valid:
        return jsonify({'error': error}), 400
"""

import ipaddress
from typing import Optional, Tuple
from urllib.parse import urlparse

MAX_URL_LENGTH = 2048

BLOCKED_HOSTNAMES = ('localhost', 'localhost.localdomain', 'metadata.google.internal')

ALLOWED_IMAGE_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.gif', '.webp', '.bmp')


def _is_internal_address(hostname: str) -> bool:
    try:
        address = ipaddress.ip_address(hostname.strip('[]'))
    except ValueError:
        return False
    return (
        address.is_private or address.is_loopback or address.is_link_local
        or address.is_reserved or address.is_unspecified or address.is_multicast
    )


def validate_image_url(url: str) -> Tuple[bool, Optional[str]]:
    """
    Validate an image URL before the server fetches it.

    Checks:
    1. URL is present and shorter than 2048 characters
    2. Scheme is HTTPS
    3. Host is not localhost, a metadata host or an internal IP literal
    4. Path ends with an image extension

    Returns:
        Tuple[bool, str]: (True, None) if valid, else (False, error_message)

    Examples:
        >>> validate_image_url('https://example.com/flood.jpg')
        (True, None)
        >>> validate_image_url('https://10.0.0.5/flood.jpg')
        (False, 'Private network URLs not allowed')
    """
    if not url or not isinstance(url, str):
        return False, 'image_url is required'

    if len(url) > MAX_URL_LENGTH:
        return False, f'URL too long (max {MAX_URL_LENGTH} characters)'

    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return False, 'Invalid URL format'

    if parsed.scheme != 'https':
        return False, 'Only HTTPS URLs are allowed'

    if not hostname:
        return False, 'Invalid hostname'

    if hostname.lower() in BLOCKED_HOSTNAMES:
        return False, 'Local URLs not allowed'

    if _is_internal_address(hostname):
        return False, 'Private network URLs not allowed'

    if not parsed.path.lower().endswith(ALLOWED_IMAGE_EXTENSIONS):
        return False, f"Only image files allowed: {', '.join(ALLOWED_IMAGE_EXTENSIONS)}"

    return True, None
