# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Environment is set BEFORE any roamplan import, because
# roamplan.core.config_loader builds `settings` at import time.
#
# Every test gets a fresh app (fresh rate-limit state) bound to a temporary
# SQLite database and storage directory.
# =============================================================================

import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="roamplan-tests-")

os.environ["ENVIRONMENT"] = "development"
os.environ["DB_PATH"] = os.path.join(_TMP, "default.sqlite3")
os.environ["LOG_DIR"] = os.path.join(_TMP, "logs")
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_CLIENT_ID"] = "test-client.apps.googleusercontent.com"
os.environ["ADMIN_EMAILS"] = "admin@example.com"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["PARTNER_BACKOFF_SECONDS"] = "0"
os.environ["RATE_LIMIT_DEFAULT"] = "1000/60"
os.environ["RATE_LIMIT_AUTH"] = "1000/60"

import pytest
from fastapi.testclient import TestClient

from roamplan.core.app import create_app
from roamplan.db.sqlite_store import SQLiteStore, get_store
from roamplan.services.storage_service import LocalObjectStorage, get_storage


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def store(tmp_path):
    db = SQLiteStore(str(tmp_path / "test.sqlite3"))
    yield db
    db.close()


@pytest.fixture
def storage(tmp_path):
    return LocalObjectStorage(str(tmp_path / "storage"), "/static")


@pytest.fixture
def app(store, storage):
    application = create_app()
    application.dependency_overrides[get_store] = lambda: store
    application.dependency_overrides[get_storage] = lambda: storage
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def register(client):
    """Register a user and return its Authorization headers."""

    def _register(email: str = "traveler@example.com", password: str = "correct-horse") -> dict:
        resp = client.post("/api/v1/auth/register", json={"email": email, "password": password})
        assert resp.status_code == 201, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _register


@pytest.fixture
def user_headers(register):
    return register()


@pytest.fixture
def admin_headers(register):
    return register(email="admin@example.com", password="admin-password")


@pytest.fixture
def sample_itinerary():
    """Two-day trip for two travelers."""
    return {
        "title": "Long weekend in Lisbon",
        "destination": "Lisbon",
        "start_date": "2026-05-01",
        "end_date": "2026-05-02",
        "timezone": "Europe/Lisbon",
        "budget_tier": "balanced",
        "currency": "eur",
        "travelers": 2,
        "budget_limit": "300",
        "days": [
            {
                "day_number": 1,
                "date": "2026-05-01",
                "activities": [
                    {"name": "Oceanarium", "category": "attraction", "start_time": "14:00",
                     "duration_min": 150, "cost": "25.50"},
                    {"name": "Pastéis de Belém", "category": "food", "start_time": "09:30",
                     "duration_min": 45, "cost": "6"},
                ],
            },
            {
                "day_number": 2,
                "activities": [
                    {"name": "Tram 28", "category": "transport", "start_time": "10:00",
                     "duration_min": 60, "cost": "3.10"},
                    {"name": "Fado dinner", "category": "food", "start_time": "20:00",
                     "duration_min": 120, "cost": "55"},
                ],
            },
        ],
    }


@pytest.fixture
def partner(store):
    partner_id = store.create_partner({
        "name": "Harbor Hotels",
        "kind": "hotel",
        "affiliate_url": "https://harbor.example.com/book",
        "api_base_url": "https://api.harbor.example.com/v2/",
        "commission_rate": 0.08,
        "active": True,
    })
    return store.get_partner(partner_id)
