"""Pytest shared fixtures for the user administration API."""
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports (zeus.flask_app builds an app at import)
os.environ.setdefault("DEMO_MODE", "false")
os.environ.setdefault("AUDIT_LOG_DIR", str(ROOT / ".runtime" / "test-audit"))
os.environ.pop("USER_SERVICE_URL", None)

import pytest
import requests

from zeus.config import AppConfig
from zeus.core.store import DEMO_ROLE_PERMISSIONS, MemoryPermissionResolver, MemoryUserStore, seed_demo_data
from zeus.flask_app import create_app

USERS_URL = "/v1/api/users"
TEST_SIGNING_KEY = "test-signing-key-for-audit-trail"


# ─────────────────────────────────────────────────────────────────────────────
# Network Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _block_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a live user service.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _guard(method):
        def _stub(url, *args, **kwargs):
            raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url}")
        return _stub

    for method in ("get", "post", "put", "delete"):
        monkeypatch.setattr(requests, method, _guard(method.upper()))


# ─────────────────────────────────────────────────────────────────────────────
# Collaborators
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def store():
    """In-memory store seeded with alice (1, eng), bob (2, ops) and carol (3, sales, disabled)."""
    user_store = MemoryUserStore()
    seed_demo_data(user_store)
    return user_store


@pytest.fixture()
def resolver(store):
    return MemoryPermissionResolver(store, DEMO_ROLE_PERMISSIONS)


def make_config(tmp_path, **overrides) -> AppConfig:
    base = dict(
        demo_mode=False,
        audit_log_dir=str(tmp_path / "audit"),
        audit_log_signing_key=TEST_SIGNING_KEY,
        log_level="DEBUG",
    )
    base.update(overrides)
    return AppConfig(**base)


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def app_config(tmp_path):
    return make_config(tmp_path)


@pytest.fixture()
def flask_app(app_config, store, resolver):
    application = create_app(app_config, store=store, resolver=resolver)
    application.config.update(TESTING=True)
    return application


@pytest.fixture()
def app_factory(tmp_path, store, resolver):
    """Build an app with config overrides and, optionally, other collaborators."""

    def _factory(user_store=None, permission_resolver=None, **overrides):
        application = create_app(
            make_config(tmp_path, **overrides),
            store=user_store or store,
            resolver=permission_resolver or (resolver if user_store is None else None),
        )
        application.config.update(TESTING=True)
        return application

    return _factory


@pytest.fixture()
def client(flask_app):
    """Flask test client wired to the seeded in-memory store."""
    with flask_app.test_client() as test_client:
        with flask_app.app_context():
            yield test_client


# ─────────────────────────────────────────────────────────────────────────────
# Pytest Configuration
# ─────────────────────────────────────────────────────────────────────────────
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires a running user service)"
    )
