"""
Shared pytest fixtures for the contact API tests.
"""
from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from portfolio_api.core.config import Settings
from portfolio_api.crud.contact_submission import create_contact_submission
from portfolio_api.main import create_app
from portfolio_api.models.contact_submission import ContactStatus, utcnow
from portfolio_api.services.notifications import ContactNotifier


class FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code


class FakeSendGrid:
    """Records outgoing mail instead of calling SendGrid."""

    def __init__(self, status_code: int = 202, error: Exception | None = None):
        self.status_code = status_code
        self.error = error
        self.sent = []

    def send(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message.get())
        return FakeResponse(self.status_code)


VALID_FORM = {
    "name": "Jane Doe",
    "email": "jane.doe@mailbox.org",
    "subject": "Project inquiry",
    "message": "Hello, I would like to talk about a new project.",
}


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite:///{tmp_path / 'contacts.db'}",
        "ENVIRONMENT": "test",
        "SERVERLESS": False,
        "TRUST_PROXY": False,
        "CORS_ORIGINS": ["*"],
        "RATE_LIMIT_MAX": 1000,
        "RATE_LIMIT_WINDOW_SECONDS": 900,
        "CONTACT_RATE_LIMIT_MAX": 5,
        "CONTACT_RATE_LIMIT_WINDOW_SECONDS": 3600,
        "MAX_BODY_BYTES": 10 * 1024,
        "EMAIL_FROM": None,
        "SENDGRID_API_KEY": None,
        "ADMIN_EMAIL": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def mailer():
    return FakeSendGrid()


@pytest.fixture
def notifier(mailer):
    """Notifier without credentials: dispatch is skipped."""
    return ContactNotifier(sender=None, api_key=None, client=mailer)


@pytest.fixture
def app(settings, notifier):
    return create_app(settings, notifier=notifier)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def proxied_client(tmp_path, notifier):
    """Client for an app deployed behind a proxy that sets X-Forwarded-For."""
    proxied = create_app(make_settings(tmp_path, TRUST_PROXY=True), notifier=notifier)
    with TestClient(proxied) as test_client:
        yield test_client


@pytest.fixture
def db(client, app):
    session = app.state.database.session()
    yield session
    session.close()


@pytest.fixture
def seed(db):
    """Insert submissions directly, newest first, with an optional status."""

    def _seed(count: int, *, status: ContactStatus = ContactStatus.UNREAD, start=None):
        start = start or utcnow()
        created = []
        for i in range(count):
            submission = create_contact_submission(
                db,
                name="Seed Person",
                email=f"seed{i}@mailbox.org",
                subject=f"Seeded subject {i}",
                message="This is a seeded contact message.",
                ip_address="10.0.0.1",
                user_agent="pytest",
            )
            submission.status = status
            submission.created_at = start - timedelta(minutes=i)
            submission.updated_at = submission.created_at
            db.commit()
            created.append(submission)
        return created

    return _seed
