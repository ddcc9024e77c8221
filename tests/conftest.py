"""
Pytest configuration and shared fixtures for the cleaning order tests.
"""
import os

# Must be set before any app module reads its settings.
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-key")
os.environ["OTEL_TRACING_ENABLED"] = "false"
os.environ["PROMETHEUS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from services.lifecycle import OrderLifecycleService, OrderLocks
from services.order_service import dependencies
from services.order_service.main import order_app
from services.payment_service.main import payment_app
from shared.security import create_access_token

from factories import ADMIN, CUSTOMER, OTHER_CUSTOMER, FrozenClock, InMemoryOrderStore, RecordingEmitter


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def locks():
    return OrderLocks(timeout_seconds=1.0)


@pytest.fixture
def service(store, emitter, locks, clock):
    return OrderLifecycleService(store, emitter, locks, clock=clock, language="id")


@pytest.fixture
def english_service(store, emitter, locks, clock):
    return OrderLifecycleService(store, emitter, locks, clock=clock, language="en")


def _bearer(actor) -> dict:
    token = create_access_token({"sub": actor.id, "role": actor.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers():
    return _bearer(CUSTOMER)


@pytest.fixture
def other_customer_headers():
    return _bearer(OTHER_CUSTOMER)


@pytest.fixture
def admin_headers():
    return _bearer(ADMIN)


@pytest.fixture
def internal_headers():
    return {"X-Internal-API-Key": os.environ["INTERNAL_API_KEY"]}


@pytest.fixture
def overrides(store, emitter, locks, clock):
    """Points every lifecycle dependency at the in-memory collaborators."""
    mapping = {
        dependencies.get_order_store: lambda: store,
        dependencies.get_emitter: lambda: emitter,
        dependencies.get_order_locks: lambda: locks,
        dependencies.get_clock: lambda: clock,
    }
    for app in (order_app, payment_app):
        app.dependency_overrides.update(mapping)
    yield mapping
    for app in (order_app, payment_app):
        app.dependency_overrides.clear()


@pytest.fixture
def order_client(overrides):
    return TestClient(order_app)


@pytest.fixture
def payment_client(overrides):
    return TestClient(payment_app)
