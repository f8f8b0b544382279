"""
Official Updates Aggregation
Combines scraped official updates from several upstream sources

Scrapers run one after another in priority order and stop as soon as the
global cap is reached. Results are sorted newest first, capped and cached
for an hour. When every source comes back empty on a forced refresh, the
last cached result is served instead.
"""
import logging
import re

from services.official_update_models import AggregationReport, UpdateRecord
from services.update_scrapers import build_default_scrapers
from utils.errors import InternalError, ValidationError
from utils.secure_logging import log_action

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = 'official_updates'
PIPELINE_VERSION = 'scraping_v2'


def _clean(value):
    return value.strip() if isinstance(value, str) else ''


def _join_terms(location, title):
    return f"{location} {title}".strip()


def build_search_term(context, repository=None):
    """
    Derive the human-facing search term for a disaster

    Preference order: location + title from the request, then the stored
    disaster's location + title, then the first tag.

    Args:
        context (SearchContext): Request inputs
        repository: Optional object with find_disaster_by_id(disaster_id)

    Returns:
        str: Trimmed search term, '' when nothing usable exists
    """
    location = _clean(context.location_name)
    title = _clean(context.title)
    if location or title:
        return _join_terms(location, title)

    stored = None
    if repository is not None and context.disaster_id:
        try:
            stored = repository.find_disaster_by_id(context.disaster_id)
        except Exception as e:
            logger.error(f"Could not load disaster {context.disaster_id} for search term: {e}")

    if stored:
        location = _clean(stored.get('location_name'))
        title = _clean(stored.get('title'))
        if location or title:
            return _join_terms(location, title)

    tags = list(context.tags or []) or list((stored or {}).get('tags') or [])
    for tag in tags:
        tag = _clean(tag)
        if tag:
            return tag

    return ''


def build_cache_key(search_term):
    """Stable cache key: pipeline version plus the term with whitespace collapsed"""
    normalized = re.sub(r'\s+', '_', search_term.strip())
    return f"{CACHE_KEY_PREFIX}_{PIPELINE_VERSION}_{normalized}"


class OfficialUpdatesService:
    """
    Aggregates official updates for a disaster

    Usage:
        service = OfficialUpdatesService(cache_manager, disaster_repository)
        updates = service.get_official_updates(SearchContext('42', title='Flood'))
    """

    DEFAULT_PER_SOURCE_CAP = 5
    DEFAULT_GLOBAL_CAP = 10
    DEFAULT_CACHE_TTL_SECONDS = 3600

    def __init__(self, cache_manager, disaster_repository=None, scrapers=None,
                 per_source_cap=DEFAULT_PER_SOURCE_CAP, global_cap=DEFAULT_GLOBAL_CAP,
                 cache_ttl_seconds=DEFAULT_CACHE_TTL_SECONDS, timeout=8,
                 user_agent='DisasterResponseApp/1.0'):
        """
        Args:
            cache_manager: CacheManager-like object (get/set)
            disaster_repository: Data-access object used by the search-term fallback
            scrapers (list): Scrapers in priority order; defaults to the built-in sources
            per_source_cap (int): Max updates accepted from one source
            global_cap (int): Max updates returned overall
            cache_ttl_seconds (int): TTL of cached aggregation results
        """
        self.cache_manager = cache_manager
        self.disaster_repository = disaster_repository
        self.per_source_cap = per_source_cap
        self.global_cap = global_cap
        self.cache_ttl_seconds = cache_ttl_seconds

        if scrapers is None:
            scrapers = build_default_scrapers(
                per_source_cap=per_source_cap, timeout=timeout, user_agent=user_agent
            )
        self.scrapers = list(scrapers)

    def get_official_updates(self, context, force_refresh=False):
        """
        Get official updates for a disaster

        Args:
            context (SearchContext): Disaster identity plus optional title/location
            force_refresh (bool): Skip the cache read and scrape again

        Returns:
            list: UpdateRecord objects, newest first

        Raises:
            ValidationError: No search term could be derived
            InternalError: Unexpected failure inside the pipeline
        """
        search_term = build_search_term(context, self.disaster_repository)
        if not search_term:
            raise ValidationError("Search term is required for updates.")

        cache_key = build_cache_key(search_term)
        report = AggregationReport(search_term=search_term, cache_key=cache_key,
                                   force_refresh=bool(force_refresh))
        step = 'cache_lookup'

        try:
            if not force_refresh:
                cached = self._read_cache(cache_key)
                if cached is not None:
                    report.served_from = 'cache'
                    log_action("Official updates fetched from cache",
                               {'disaster_id': context.disaster_id, **report.as_log_details()})
                    return cached

            step = 'scraping'
            updates = self._scrape(search_term, report)

            if updates:
                step = 'ranking'
                ranked = self._rank(updates)
                step = 'cache_write'
                self.cache_manager.set(cache_key, [u.to_dict() for u in ranked],
                                       ttl_seconds=self.cache_ttl_seconds)
                report.served_from = 'scrape'
                log_action("Official updates scraped",
                           {'disaster_id': context.disaster_id, 'count': len(ranked),
                            **report.as_log_details()})
                return ranked

            if force_refresh:
                step = 'stale_fallback'
                cached = self._read_cache(cache_key)
                if cached is not None:
                    report.served_from = 'stale_cache'
                    log_action("Official updates fallback to cache after failed refresh",
                               {'disaster_id': context.disaster_id, **report.as_log_details()})
                    return cached

            log_action("Official updates scraping failed, no cache available",
                       {'disaster_id': context.disaster_id, **report.as_log_details()})
            return []

        except Exception as e:
            logger.error(
                f"Official updates pipeline failed at step '{step}' for search term '{search_term}': {e}",
                exc_info=True
            )
            raise InternalError("Server error fetching official updates.",
                                {'search_term': search_term, 'step': step}) from e

    def _scrape(self, search_term, report):
        """Run scrapers in priority order until the global cap is reached"""
        collected = []
        earlier_source_came_up_empty = False

        for scraper in self.scrapers:
            name = scraper.source_name

            if len(collected) >= self.global_cap:
                report.skipped_sources.append(name)
                continue

            if getattr(scraper, 'fallback_only', False) and not earlier_source_came_up_empty:
                report.skipped_sources.append(name)
                continue

            try:
                records = list(scraper.fetch_candidates(search_term) or [])
            except Exception as e:
                logger.error(f"{name} ERROR: Scraper raised unexpectedly: {e}", exc_info=True)
                records = []

            records = records[:self.per_source_cap]
            report.source_counts[name] = len(records)

            if not records:
                report.empty_sources.append(name)
                earlier_source_came_up_empty = True
                continue

            collected.extend(records)

        return collected

    def _rank(self, updates):
        # sorted() is stable with reverse=True, so ties keep scraper priority order
        ordered = sorted(updates, key=lambda update: update.timestamp, reverse=True)
        return ordered[:self.global_cap]

    def _read_cache(self, cache_key):
        """Cached updates for a key, or None on miss or incompatible payload"""
        cached = self.cache_manager.get(cache_key)
        if cached is None:
            return None

        if not isinstance(cached, list):
            logger.warning(f"Ignoring cache entry {cache_key}: unexpected type {type(cached).__name__}")
            return None

        try:
            return [UpdateRecord.from_dict(item) for item in cached]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring incompatible cache entry {cache_key}: {e}")
            return None
