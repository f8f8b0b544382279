"""
Test suite for the disaster response API backend.

This package contains:
- test_official_updates_service.py: Aggregation pipeline (caps, ordering, fallback, cache)
- test_update_scrapers.py: ReliefWeb / FEMA / Ready.gov parsing against fixture markup
- test_official_updates_api.py: End-to-end HTTP tests for the official updates endpoint
- test_disasters_api.py: Disaster CRUD, resources and mock social media endpoints

Firebase is replaced by the in-memory fake in conftest.py; no test touches
the network unless marked `integration`.

Run tests (from the repository root):
    python -m pytest

Run live upstream checks:
    python -m pytest -m integration
"""
