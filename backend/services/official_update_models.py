"""
Value types for the official updates pipeline
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional


@dataclass(frozen=True)
class UpdateRecord:
    """
    One official update scraped from an upstream source

    Serialized shape (cache and HTTP):
        {id, agency, update_text, timestamp, url, source}
    """

    id: str
    agency: str
    update_text: str
    timestamp: datetime
    url: Optional[str]
    source: str

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'agency': self.agency,
            'update_text': self.update_text,
            'timestamp': self.timestamp.astimezone(timezone.utc).isoformat(),
            'url': self.url,
            'source': self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'UpdateRecord':
        """
        Rebuild a record from its serialized form

        Raises:
            KeyError, TypeError, ValueError: if the payload has another shape
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected dict, got {type(data).__name__}")

        timestamp = datetime.fromisoformat(data['timestamp'])
        if timestamp.tzinfo is None:
            raise ValueError("Cached timestamp is missing its timezone")

        update_text = data['update_text']
        if not isinstance(update_text, str) or not update_text:
            raise ValueError("Cached record has no update_text")

        return cls(
            id=str(data['id']),
            agency=data['agency'],
            update_text=update_text,
            timestamp=timestamp,
            url=data.get('url'),
            source=data['source'],
        )


@dataclass
class SearchContext:
    """Request-scoped inputs used to derive an updates search term"""

    disaster_id: str
    title: Optional[str] = None
    location_name: Optional[str] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class AggregationReport:
    """Per-call bookkeeping for one aggregation run (logged, never persisted)"""

    search_term: str
    cache_key: str
    force_refresh: bool = False
    source_counts: Dict[str, int] = field(default_factory=dict)
    empty_sources: List[str] = field(default_factory=list)
    skipped_sources: List[str] = field(default_factory=list)
    served_from: str = 'none'

    @property
    def total_scraped(self) -> int:
        return sum(self.source_counts.values())

    def as_log_details(self) -> Dict:
        return {
            'searchTerm': self.search_term,
            'cacheKey': self.cache_key,
            'refresh': self.force_refresh,
            'sources': dict(self.source_counts),
            'empty': list(self.empty_sources),
            'skipped': list(self.skipped_sources),
            'servedFrom': self.served_from,
        }
