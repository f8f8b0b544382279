"""
Cache Manager backed by Firebase Realtime Database
Key/value cache with per-entry TTL shared by every API process
"""
from datetime import datetime, timedelta, timezone
from urllib.parse import quote, unquote
import logging
import re

from utils.errors import CacheError

logger = logging.getLogger(__name__)


def _utc_now():
    return datetime.now(timezone.utc)


class CacheManager:
    """
    TTL cache stored under a single Firebase node.

    Each entry is stored as {key, value, expires_at}. Expiry is checked when
    an entry is read; nothing purges expired entries in the background.

    Usage:
        cache = CacheManager()
        cache.set('geocode_abc', {'lat': '1.0'}, ttl_seconds=3600)
        cache.get('geocode_abc')
        cache.invalidate('disaster_social_*')
    """

    ROOT_PATH = 'cache'
    DEFAULT_TTL_SECONDS = 3600

    def __init__(self, db=None, clock=None):
        """
        Args:
            db: Module or object exposing reference(path); defaults to firebase_admin.db
            clock: Callable returning the current aware UTC datetime
        """
        if db is None:
            from firebase_admin import db as firebase_db
            db = firebase_db
        self.db = db
        self.clock = clock or _utc_now

    @staticmethod
    def encode_key(key):
        """
        Encode a cache key into a legal Firebase path segment

        Firebase rejects '.', '#', '$', '[', ']' and '/' in keys, so those are
        percent-encoded. quote() leaves '.' alone, hence the extra replace.
        """
        return quote(key, safe='').replace('.', '%2E')

    @staticmethod
    def decode_key(encoded):
        return unquote(encoded)

    @staticmethod
    def pattern_to_regex(pattern):
        """Translate a '*' glob into a case-insensitive anchored regex"""
        parts = [re.escape(part) for part in pattern.split('*')]
        return re.compile('^' + '.*'.join(parts) + '$', re.IGNORECASE)

    def _entry_ref(self, key):
        return self.db.reference(f'{self.ROOT_PATH}/{self.encode_key(key)}')

    def _load_entry(self, key):
        try:
            return self._entry_ref(key).get()
        except Exception as e:
            raise CacheError(f"read failed for {key}: {e}") from e

    def get(self, key):
        """
        Get a cached value

        Args:
            key (str): Cache key

        Returns:
            The stored value, or None when missing, expired or unreadable
        """
        try:
            entry = self._load_entry(key)
        except CacheError as e:
            logger.error(f"Cache read error: {e}")
            return None

        if not entry or not isinstance(entry, dict):
            return None

        try:
            expires_at = datetime.fromisoformat(entry['expires_at'])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Cache entry {key} has no usable expiry, treating as miss: {e}")
            return None

        if self.clock() > expires_at:
            logger.debug(f"Cache EXPIRED: {key}")
            return None

        logger.debug(f"Cache HIT: {key}")
        return entry.get('value')

    def set(self, key, value, ttl_seconds=DEFAULT_TTL_SECONDS):
        """
        Store a value, overwriting any previous entry

        Args:
            key (str): Cache key
            value: JSON-serializable payload
            ttl_seconds (int): Time-to-live in seconds
        """
        expires_at = self.clock() + timedelta(seconds=ttl_seconds)
        try:
            self._entry_ref(key).set({
                'key': key,
                'value': value,
                'expires_at': expires_at.isoformat()
            })
            logger.debug(f"Cache SET: {key} (ttl={ttl_seconds}s)")
        except Exception as e:
            logger.error(f"Cache write error for {key}: {e}")

    def invalidate(self, pattern):
        """
        Remove every entry whose key matches a '*' glob

        Args:
            pattern (str): e.g. 'disaster_social_42_*'

        Returns:
            int: Number of entries removed
        """
        regex = self.pattern_to_regex(pattern)
        try:
            stored = self.db.reference(self.ROOT_PATH).get(shallow=True) or {}
            matching = [
                encoded for encoded in stored
                if regex.match(self.decode_key(encoded))
            ]

            if not matching:
                logger.info(f"No cache entries found matching pattern: {pattern}")
                return 0

            self.db.reference(self.ROOT_PATH).update({encoded: None for encoded in matching})
            logger.info(f"Cleared {len(matching)} cache entries matching pattern: {pattern}")
            return len(matching)

        except Exception as e:
            logger.error(f"Error invalidating cache pattern {pattern}: {e}")
            return 0
