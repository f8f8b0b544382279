"""
Shared fixtures: an in-memory stand-in for firebase_admin.db, a controllable
clock and a Flask test client wired to fake services.
"""
import copy
import itertools
import json
import random
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from app import ServiceRegistry, create_app, limiter
from services.auth_service import AuthService
from services.cache_manager import CacheManager
from services.disaster_repository import DisasterRepository
from services.official_update_models import UpdateRecord
from services.official_updates_service import OfficialUpdatesService
from services.social_media_service import SocialMediaService


def _split(path):
    return [part for part in (path or '').split('/') if part]


class FakeDb:
    """Nested-dict Realtime Database supporting the calls the services make"""

    def __init__(self):
        self.data = {}
        self._push_ids = itertools.count(1)
        self.fail_reads = False
        self.fail_writes = False

    def reference(self, path='/'):
        return FakeReference(self, _split(path))

    def read(self, parts):
        if self.fail_reads:
            raise RuntimeError("database unavailable")
        node = self.data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return copy.deepcopy(node)

    def write(self, parts, value):
        if self.fail_writes:
            raise RuntimeError("database unavailable")
        if not parts:
            self.data = json.loads(json.dumps(value)) if value is not None else {}
            return

        node = self.data
        for part in parts[:-1]:
            if value is None and part not in node:
                return
            node = node.setdefault(part, {})

        if value is None:
            node.pop(parts[-1], None)
        else:
            # Round-trip through JSON so non-serializable values fail like they would in Firebase
            node[parts[-1]] = json.loads(json.dumps(value))

    def next_push_key(self):
        return f"-Nfake{next(self._push_ids):05d}"


class FakeReference:
    def __init__(self, db, parts):
        self._db = db
        self._parts = parts

    @property
    def key(self):
        return self._parts[-1] if self._parts else None

    @property
    def path(self):
        return '/' + '/'.join(self._parts)

    def child(self, path):
        return FakeReference(self._db, self._parts + _split(path))

    def get(self, shallow=False):
        value = self._db.read(self._parts)
        if shallow and isinstance(value, dict):
            return {key: True for key in value}
        return value

    def set(self, value):
        self._db.write(self._parts, value)

    def update(self, values):
        for path, value in values.items():
            self._db.write(self._parts + _split(path), value)

    def delete(self):
        self._db.write(self._parts, None)

    def push(self, value=''):
        ref = self.child(self._db.next_push_key())
        ref.set(value)
        return ref

    def order_by_child(self, name):
        return FakeQuery(self, name)


class FakeQuery:
    def __init__(self, ref, child_name):
        self._ref = ref
        self._child_name = child_name
        self._equal_to = None

    def equal_to(self, value):
        self._equal_to = value
        return self

    def get(self):
        records = self._ref.get() or {}
        return {
            key: record for key, record in records.items()
            if isinstance(record, dict) and record.get(self._child_name) == self._equal_to
        }


class FrozenClock:
    """Callable clock for CacheManager that only moves when told to"""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class StubScraper:
    """Scraper double that returns canned records and remembers its calls"""

    def __init__(self, source_name, records=None, error=None, fallback_only=False):
        self.source_name = source_name
        self.records = list(records or [])
        self.error = error
        self.fallback_only = fallback_only
        self.calls = []

    def fetch_candidates(self, search_term):
        self.calls.append(search_term)
        if self.error is not None:
            raise self.error
        return list(self.records)


NOW = datetime(2024, 7, 22, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def fake_db():
    return FakeDb()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def cache_manager(fake_db, clock):
    return CacheManager(fake_db, clock=clock)


@pytest.fixture
def disaster_repository(fake_db):
    return DisasterRepository(fake_db)


@pytest.fixture
def make_update():
    """Factory for UpdateRecords; hours_ago is relative to NOW"""
    def _make(source, record_id, hours_ago=0, agency=None, text=None):
        return UpdateRecord(
            id=record_id,
            agency=agency or source,
            update_text=text or f"Update {record_id}",
            timestamp=NOW - timedelta(hours=hours_ago),
            url=f"https://example.org/{record_id}",
            source=source,
        )
    return _make


@pytest.fixture
def stub_scraper():
    return StubScraper


@pytest.fixture
def service_registry(fake_db, cache_manager, disaster_repository):
    geocoding = MagicMock()
    geocoding.geocode.return_value = None
    gemini = MagicMock()

    return ServiceRegistry(
        cache_manager=cache_manager,
        disaster_repository=disaster_repository,
        official_updates=OfficialUpdatesService(cache_manager, disaster_repository, scrapers=[]),
        geocoding=geocoding,
        gemini=gemini,
        social_media=SocialMediaService(cache_manager, fake_db, rng=random.Random(7)),
        auth=AuthService(),
    )


@pytest.fixture
def app(service_registry):
    app = create_app('testing', services=service_registry)
    limiter.enabled = False
    yield app
    limiter.enabled = True


@pytest.fixture
def client(app):
    return app.test_client()
