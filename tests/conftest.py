"""Shared fixtures for backend tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from cache_manager import cache_manager
from config import key_config
from main import app


@pytest.fixture(autouse=True)
def _clear_caches():
    cache_manager.clear_all()
    yield
    cache_manager.clear_all()


@pytest.fixture
def api_keys(monkeypatch):
    """Configure both API keys for the duration of a test."""
    monkeypatch.setattr(key_config, "ors_api_key", "test-ors-key")
    monkeypatch.setattr(key_config, "shademap_api_key", "test-shademap-key")
    return key_config


@pytest.fixture
def no_api_keys(monkeypatch):
    monkeypatch.setattr(key_config, "ors_api_key", None)
    monkeypatch.setattr(key_config, "shademap_api_key", None)
    return key_config


@pytest.fixture
def client():
    """FastAPI test client."""
    with TestClient(app) as c:
        yield c
