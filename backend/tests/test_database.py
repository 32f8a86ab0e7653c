"""
Tests for database availability in server and serverless modes.
"""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from portfolio_api.core.exceptions import UpstreamUnavailable
from portfolio_api.db.session import Database
from portfolio_api.main import create_app

from conftest import VALID_FORM, make_settings

GENERIC_DB_MESSAGE = "An unexpected database error occurred. Please try again later."


class TestServerlessMode:

    def test_requests_fail_without_database_url(self, tmp_path, notifier):
        app = create_app(make_settings(tmp_path, DATABASE_URL=None, SERVERLESS=True), notifier=notifier)

        with TestClient(app) as client:
            listing = client.get("/api/contact")
            submission = client.post("/api/contact", json=VALID_FORM)
            health = client.get("/api/health")

        assert listing.status_code == 500
        assert listing.json()["success"] is False
        assert listing.json()["message"] == GENERIC_DB_MESSAGE
        assert listing.json()["error"] == "DATABASE_URL is not defined"
        assert submission.status_code == 500
        assert health.status_code == 200
        assert health.json()["database"] == "disconnected"

    def test_production_hides_detail(self, tmp_path, notifier):
        settings = make_settings(tmp_path, DATABASE_URL=None, SERVERLESS=True, ENVIRONMENT="production")
        app = create_app(settings, notifier=notifier)

        with TestClient(app) as client:
            response = client.get("/api/contact/stats")

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": GENERIC_DB_MESSAGE}


class TestServerMode:

    def test_startup_fails_without_database_url(self, tmp_path, notifier):
        app = create_app(make_settings(tmp_path, DATABASE_URL=None, SERVERLESS=False), notifier=notifier)

        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            with TestClient(app):
                pass


class TestDatabase:

    def test_connect_creates_tables_once(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'contacts.db'}")

        database.connect()
        engine = database.connect()

        assert database.is_connected is True
        assert engine is database.engine
        assert database.ping() is True
        database.dispose()
        assert database.is_connected is False

    def test_unreachable_database(self, tmp_path):
        database = Database(f"sqlite:///{tmp_path / 'missing' / 'contacts.db'}", connect_timeout=1)

        with pytest.raises(UpstreamUnavailable):
            database.session()
        assert database.is_connected is False
        assert database.ping() is False

    def test_missing_url(self):
        database = Database(None)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            database.connect()
        assert exc_info.value.detail == "DATABASE_URL is not defined"
