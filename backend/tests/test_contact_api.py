"""
Tests for public contact form submission and the app-wide HTTP behaviour.
"""
from __future__ import annotations

import json

from conftest import VALID_FORM


def _count(client) -> int:
    return client.get("/api/contact").json()["pagination"]["total"]


class TestContactFormSubmission:
    """Test public contact form submission."""

    def test_submit_valid_contact_form(self, client):
        response = client.post("/api/contact", json={**VALID_FORM, "email": "Jane.Doe@Mailbox.org"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Your message has been sent successfully! I will get back to you soon."
        assert set(body["data"]) == {"id", "name", "email", "subject", "submittedAt"}
        assert body["data"]["email"] == "jane.doe@mailbox.org"
        assert body["data"]["name"] == VALID_FORM["name"]
        assert _count(client) == 1

    def test_submission_records_client_metadata(self, client):
        response = client.post(
            "/api/contact",
            json=VALID_FORM,
            headers={"X-Forwarded-For": "203.0.113.7", "User-Agent": "pytest-browser"},
        )
        contact_id = response.json()["data"]["id"]

        stored = client.get(f"/api/contact/{contact_id}").json()["data"]
        # without a trusted proxy the forwarded header is ignored
        assert stored["ipAddress"] == "testclient"
        assert stored["userAgent"] == "pytest-browser"
        assert stored["status"] == "unread"
        assert stored["formattedDate"]

    def test_forwarded_address_behind_trusted_proxy(self, proxied_client):
        response = proxied_client.post(
            "/api/contact",
            json=VALID_FORM,
            headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        )
        contact_id = response.json()["data"]["id"]

        stored = proxied_client.get(f"/api/contact/{contact_id}").json()["data"]
        assert stored["ipAddress"] == "203.0.113.7"

    def test_submit_form_encoded_body(self, client):
        """A plain HTML form post goes through the same validation as JSON."""
        response = client.post("/api/contact", data=VALID_FORM)

        assert response.status_code == 201
        assert response.json()["data"]["email"] == VALID_FORM["email"]
        assert _count(client) == 1

    def test_invalid_form_encoded_body(self, client):
        response = client.post("/api/contact", data={**VALID_FORM, "subject": "Hi", "$where": "1"})

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "subject", "message": "Subject must be between 3 and 200 characters"}
        ]
        assert _count(client) == 0

    def test_submit_invalid_form_creates_nothing(self, client):
        response = client.post("/api/contact", json={"name": "A", "email": "bad", "subject": "Hi", "message": "short"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation failed"
        assert [e["field"] for e in body["errors"]] == ["name", "email", "subject", "message"]
        assert _count(client) == 0

    def test_single_field_violation_names_that_field(self, client):
        response = client.post("/api/contact", json={**VALID_FORM, "message": "x" * 9})

        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "message", "message": "Message must be between 10 and 5000 characters"}
        ]
        assert _count(client) == 0

    def test_empty_body_reports_every_field(self, client):
        response = client.post("/api/contact")

        assert response.status_code == 400
        assert len(response.json()["errors"]) == 4

    def test_operator_keys_never_reach_validation(self, client):
        response = client.post("/api/contact", json={**VALID_FORM, "email": {"$gt": ""}})

        assert response.status_code == 400
        assert response.json()["errors"] == [{"field": "email", "message": "Email is required"}]

    def test_malformed_json(self, client):
        response = client.post(
            "/api/contact",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid JSON in request body"}

    def test_oversized_body(self, client):
        payload = {**VALID_FORM, "message": "x" * (11 * 1024)}

        response = client.post(
            "/api/contact",
            content=json.dumps(payload),
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 413
        assert response.json()["success"] is False
        assert _count(client) == 0

    def test_oversized_chunked_body(self, client):
        """Without a Content-Length the cap applies to the bytes actually received."""
        body = json.dumps({**VALID_FORM, "message": "x" * (200 * 1024)}).encode()

        def chunks():
            for start in range(0, len(body), 4096):
                yield body[start:start + 4096]

        response = client.post("/api/contact", content=chunks(), headers={"Content-Type": "application/json"})

        assert response.status_code == 413
        assert response.json() == {"success": False, "message": "Request body too large"}
        assert _count(client) == 0

    def test_small_chunked_body_is_accepted(self, client):
        body = json.dumps(VALID_FORM).encode()

        def chunks():
            yield body[:20]
            yield body[20:]

        response = client.post("/api/contact", content=chunks(), headers={"Content-Type": "application/json"})

        assert response.status_code == 201


class TestAppSurface:

    def test_root_banner(self, client):
        body = client.get("/").json()

        assert body["success"] is True
        assert body["version"] == "1.0.0"
        assert body["endpoints"] == {"health": "/api/health", "contact": "/api/contact"}

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Portfolio API is running"
        assert body["environment"] == "test"
        assert body["database"] == "connected"
        assert body["timestamp"].endswith("Z")

    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route not found: /api/nothing-here"}

    def test_security_headers(self, client):
        headers = client.get("/api/health").headers

        assert headers["X-Content-Type-Options"] == "nosniff"
        assert headers["X-Frame-Options"] == "DENY"
        assert headers["Cross-Origin-Resource-Policy"] == "cross-origin"
        assert "Strict-Transport-Security" in headers

    def test_cors_echoes_origin_with_credentials(self, client):
        response = client.get("/api/health", headers={"Origin": "https://portfolio.example.org"})

        assert response.headers["Access-Control-Allow-Origin"] == "https://portfolio.example.org"
        assert response.headers["Access-Control-Allow-Credentials"] == "true"

    def test_preflight_is_answered_directly(self, client):
        response = client.options(
            "/api/contact",
            headers={
                "Origin": "https://portfolio.example.org",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 200
        assert "POST" in response.headers["Access-Control-Allow-Methods"]
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"
