"""
Official Update Scrapers
Fetches candidate official updates from ReliefWeb, FEMA and Ready.gov

Two kinds of upstream are supported:
- HTML search pages, parsed with BeautifulSoup CSS selectors
- The OpenFEMA JSON API (DisasterDeclarationsSummaries)

Selectors are configuration: each source lists fallback selectors that are
tried in order, so markup drift is absorbed by editing a HtmlSourceConfig.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import quote_plus, urljoin, urlparse
import logging

import requests
from bs4 import BeautifulSoup

from services.date_normalizer import normalize_scraped_date
from services.official_update_models import UpdateRecord
from utils.errors import UpstreamFetchError, UpstreamParseError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = 'DisasterResponseApp/1.0'
DEFAULT_TIMEOUT_SECONDS = 8
DEFAULT_PER_SOURCE_CAP = 5

# Ordered: the first keyword contained in the search term wins.
# Compound keywords come before their parts, and 'fire' before 'storm'
# so that "firestorm" is treated as a fire.
DISASTER_TYPE_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ('wildfire', 'Fire'),
    ('fire', 'Fire'),
    ('flood', 'Flood'),
    ('hurricane', 'Hurricane'),
    ('typhoon', 'Typhoon'),
    ('tornado', 'Tornado'),
    ('earthquake', 'Earthquake'),
    ('tsunami', 'Tsunami'),
    ('volcano', 'Volcanic Eruption'),
    ('landslide', 'Mud/Landslide'),
    ('mudslide', 'Mud/Landslide'),
    ('drought', 'Drought'),
    ('winter storm', 'Winter Storm'),
    ('snow', 'Snowstorm'),
    ('ice storm', 'Severe Ice Storm'),
    ('storm', 'Severe Storm'),
)


def infer_disaster_type(search_term):
    """
    Infer an OpenFEMA incident type from free text

    Args:
        search_term (str): e.g. "Springfield Downtown Flood"

    Returns:
        str: OpenFEMA incidentType, or None when nothing matches
    """
    if not search_term:
        return None

    lowered = search_term.lower()
    for keyword, incident_type in DISASTER_TYPE_KEYWORDS:
        if keyword in lowered:
            return incident_type
    return None


class UpdateScraper:
    """
    Base class for a single upstream source

    Subclasses implement _fetch(), which may raise UpstreamFetchError or
    UpstreamParseError. fetch_candidates() never raises.
    """

    source_name = 'unknown'
    fallback_only = False

    def __init__(self, per_source_cap=DEFAULT_PER_SOURCE_CAP,
                 timeout=DEFAULT_TIMEOUT_SECONDS, user_agent=DEFAULT_USER_AGENT):
        self.per_source_cap = per_source_cap
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch_candidates(self, search_term) -> List[UpdateRecord]:
        """
        Fetch up to per_source_cap updates for a search term

        Args:
            search_term (str): Free-text query

        Returns:
            list: UpdateRecord objects, empty when the source failed
        """
        try:
            records = self._fetch(search_term)
            logger.info(f"{self.source_name}: Collected {len(records)} updates for '{search_term}'")
            return records
        except UpstreamFetchError as e:
            logger.error(f"{self.source_name} ERROR: Request failed: {e}")
        except UpstreamParseError as e:
            logger.error(f"{self.source_name} ERROR: Could not parse response: {e}")
        except Exception as e:
            logger.error(f"{self.source_name} ERROR: Processing exception: {e}", exc_info=True)
        return []

    def _fetch(self, search_term) -> List[UpdateRecord]:
        raise NotImplementedError

    def _get(self, url, params=None, accept=None):
        """GET a URL with the scraper's User-Agent and timeout"""
        headers = {'User-Agent': self.user_agent}
        if accept:
            headers['Accept'] = accept

        try:
            response = requests.get(url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise UpstreamFetchError(self.source_name, f"timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise UpstreamFetchError(self.source_name, str(e)) from e
        return response


@dataclass(frozen=True)
class HtmlSourceConfig:
    """
    Where and how to scrape one HTML search page

    search_url must contain a '{query}' placeholder. Every *_selectors field
    is a list of CSS selectors tried in order; the first one that yields
    something is used.
    """

    name: str
    search_url: str
    base_url: str
    item_selectors: List[str]
    title_selectors: List[str]
    default_agency: str
    id_prefix: str
    agency_selectors: List[str] = field(default_factory=list)
    date_selectors: List[str] = field(default_factory=list)
    id_attribute: Optional[str] = None
    fallback_only: bool = False


RELIEFWEB_SOURCE = HtmlSourceConfig(
    name='ReliefWeb',
    search_url='https://reliefweb.int/updates?search={query}',
    base_url='https://reliefweb.int',
    item_selectors=['article.rw-river-article'],
    title_selectors=['h3 a'],
    agency_selectors=['.rw-river-article__source'],
    date_selectors=['.rw-river-article__date'],
    default_agency='ReliefWeb',
    id_prefix='rw',
    id_attribute='data-id',
)

FEMA_NEWS_SOURCE = HtmlSourceConfig(
    name='FEMA',
    search_url='https://www.fema.gov/news-releases?search={query}',
    base_url='https://www.fema.gov',
    item_selectors=['.views-row'],
    title_selectors=['h2.field-content a'],
    date_selectors=['.field--name-field-release-date .field__item'],
    default_agency='FEMA',
    id_prefix='fema-news',
)

READY_GOV_SOURCE = HtmlSourceConfig(
    name='Ready.gov',
    search_url='https://search.usa.gov/search?affiliate=ready&query={query}',
    base_url='https://search.usa.gov',
    item_selectors=[
        '.search-result',
        '.SearchResults-item',
        'li.result',
        'div.search-results__item',
        '.result',
        'article',
    ],
    title_selectors=['h4 a', 'h3 a', 'h2 a', '.title a', 'a'],
    date_selectors=['.search-result__date', 'time', '.date'],
    default_agency='Ready.gov',
    id_prefix='ready',
    fallback_only=True,
)


class HtmlSearchScraper(UpdateScraper):
    """Scrapes an HTML search results page described by a HtmlSourceConfig"""

    def __init__(self, source: HtmlSourceConfig, **kwargs):
        super().__init__(**kwargs)
        self.source = source
        self.source_name = source.name
        self.fallback_only = source.fallback_only

    def build_url(self, search_term):
        return self.source.search_url.format(query=quote_plus(search_term))

    def _fetch(self, search_term):
        response = self._get(self.build_url(search_term))
        return self.parse(response.text)

    def parse(self, html, now=None) -> List[UpdateRecord]:
        """
        Extract updates from a results page

        Args:
            html (str): Page markup
            now (datetime): Reference instant for relative dates

        Returns:
            list: At most per_source_cap UpdateRecord objects
        """
        if now is None:
            now = datetime.now(timezone.utc)

        try:
            soup = BeautifulSoup(html or '', 'html.parser')
        except Exception as e:
            raise UpstreamParseError(self.source_name, f"unreadable markup: {e}") from e

        items = []
        for selector in self.source.item_selectors:
            items = soup.select(selector)
            if items:
                logger.debug(f"{self.source_name}: '{selector}' matched {len(items)} items")
                break

        updates = []
        for index, item in enumerate(items):
            if len(updates) >= self.per_source_cap:
                break

            record = self._parse_item(item, index, now)
            if record:
                updates.append(record)

        return updates

    def _parse_item(self, item, index, now):
        link = self._select_first(item, self.source.title_selectors)
        if link is None:
            return None

        title = link.get_text(' ', strip=True)
        url = self.resolve_url((link.get('href') or '').strip())
        if not title or not url:
            return None

        agency_node = self._select_first(item, self.source.agency_selectors)
        agency = agency_node.get_text(' ', strip=True) if agency_node else ''

        date_node = self._select_first(item, self.source.date_selectors)
        date_text = ''
        if date_node is not None:
            date_text = date_node.get('datetime') or date_node.get_text(' ', strip=True)

        item_id = item.get(self.source.id_attribute) if self.source.id_attribute else None

        return UpdateRecord(
            id=f"{self.source.id_prefix}-{item_id or index}",
            agency=agency or self.source.default_agency,
            update_text=title,
            timestamp=normalize_scraped_date(date_text, now=now),
            url=url,
            source=self.source.name,
        )

    def resolve_url(self, href):
        """
        Make a scraped link absolute against the source origin

        Returns:
            str: Absolute http(s) URL, or None for fragment-only and
            non-web links (javascript:, mailto:, ...)
        """
        if not href or href.startswith('#'):
            return None
        url = urljoin(self.source.base_url + '/', href)
        if urlparse(url).scheme not in ('http', 'https'):
            return None
        return url

    @staticmethod
    def _select_first(node, selectors):
        for selector in selectors:
            found = node.select_one(selector)
            if found is not None:
                return found
        return None


class FemaApiScraper(UpdateScraper):
    """Queries OpenFEMA disaster declarations, optionally filtered by incident type"""

    BASE_URL = "https://www.fema.gov/api/open/v2/DisasterDeclarationsSummaries"
    DISASTER_URL = "https://www.fema.gov/disaster/{number}"
    source_name = 'FEMA-API'

    def build_params(self, search_term):
        params = {
            '$orderby': 'declarationDate desc',
            '$top': self.per_source_cap,
        }
        incident_type = infer_disaster_type(search_term)
        if incident_type:
            params['$filter'] = f"incidentType eq '{incident_type}'"
        return params

    def _fetch(self, search_term):
        params = self.build_params(search_term)
        logger.info(f"FEMA-API: Filter: {params.get('$filter', 'none')}")

        response = self._get(self.BASE_URL, params=params, accept='application/json')
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamParseError(self.source_name, f"invalid JSON: {e}") from e

        return self.parse(payload)

    def parse(self, payload, now=None) -> List[UpdateRecord]:
        """
        Map an OpenFEMA response to UpdateRecords

        Args:
            payload (dict): Decoded JSON body
            now (datetime): Reference instant for missing dates

        Returns:
            list: At most per_source_cap UpdateRecord objects
        """
        if not isinstance(payload, dict):
            raise UpstreamParseError(self.source_name, f"unexpected payload type {type(payload).__name__}")

        declarations = payload.get('DisasterDeclarationsSummaries')
        if not isinstance(declarations, list):
            raise UpstreamParseError(self.source_name, "missing DisasterDeclarationsSummaries")

        updates = []
        for declaration in declarations:
            if len(updates) >= self.per_source_cap:
                break
            if not isinstance(declaration, dict):
                continue

            record = self._parse_declaration(declaration, now)
            if record:
                updates.append(record)

        return updates

    def _parse_declaration(self, declaration, now):
        number = declaration.get('disasterNumber')
        title = (declaration.get('declarationTitle') or declaration.get('incidentType') or '').strip()
        if number in (None, '') or not title:
            return None

        state = (declaration.get('state') or '').strip()
        if state:
            title = f"{title} ({state})"

        date_text = declaration.get('declarationDate') or declaration.get('incidentBeginDate') or ''
        record_id = declaration.get('id') or f"{number}-{state or 'US'}"

        return UpdateRecord(
            id=f"fema-api-{record_id}",
            agency='FEMA',
            update_text=title,
            timestamp=normalize_scraped_date(date_text, now=now),
            url=self.DISASTER_URL.format(number=number),
            source=self.source_name,
        )


def build_default_scrapers(per_source_cap=DEFAULT_PER_SOURCE_CAP,
                           timeout=DEFAULT_TIMEOUT_SECONDS,
                           user_agent=DEFAULT_USER_AGENT):
    """Scrapers in priority order: ReliefWeb, FEMA-API, FEMA news, Ready.gov"""
    options = {'per_source_cap': per_source_cap, 'timeout': timeout, 'user_agent': user_agent}
    return [
        HtmlSearchScraper(RELIEFWEB_SOURCE, **options),
        FemaApiScraper(**options),
        HtmlSearchScraper(FEMA_NEWS_SOURCE, **options),
        HtmlSearchScraper(READY_GOV_SOURCE, **options),
    ]
