from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from liftout.auth.cognito import CognitoAuthError, VerifiedUser
from liftout.dependencies import get_notifier, get_repository
from liftout.main import create_app
from liftout.middleware import auth as auth_middleware


def _auth(user: str) -> dict[str, str]:
    return {"Authorization": f"Bearer token-{user}"}


@pytest.fixture
def client(monkeypatch, repo, notifier):
    def fake_verify(token: str) -> VerifiedUser:
        if not token.startswith("token-"):
            raise CognitoAuthError("Invalid token")
        sub = token[len("token-"):]
        return VerifiedUser(sub=sub, email=f"{sub}@example.com", claims={"sub": sub})

    monkeypatch.setattr(auth_middleware, "verify_bearer_token", fake_verify)
    app = create_app()
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


def _problem(r, status: int) -> dict:
    assert r.status_code == status
    assert r.headers.get("content-type", "").startswith("application/problem+json")
    body = r.json()
    assert body["status"] == status
    assert body.get("requestId")
    return body


def test_health_echoes_request_id(client):
    r = client.get("/", headers={"X-Request-Id": "abc-123"})
    assert r.status_code == 200
    assert r.json()["service"] == "liftout-applications"
    assert r.headers.get("X-Request-Id") == "abc-123"

    generated = client.get("/")
    assert generated.headers.get("X-Request-Id")


def test_api_requires_bearer_token(client):
    body = _problem(client.get("/api/applications/stats"), 401)
    assert body["title"] == "Unauthorized"

    _problem(client.get("/api/applications/stats", headers={"Authorization": "Bearer nope"}), 401)
    _problem(client.get("/api/applications/stats", headers={"Authorization": "Basic abc"}), 401)


def test_application_lifecycle_over_http(client, repo):
    r = client.post(
        "/api/applications",
        json={"teamId": "team-alpha", "opportunityId": "opp-platform", "coverLetter": "Hello"},
        headers=_auth("alice"),
    )
    assert r.status_code == 201
    app = r.json()
    assert app["status"] == "submitted"
    assert app["version"] == 1

    dup = _problem(
        client.post(
            "/api/applications",
            json={"teamId": "team-alpha", "opportunityId": "opp-platform"},
            headers=_auth("alice"),
        ),
        409,
    )
    assert dup["detail"] == "Your team has already applied to this opportunity"

    denied = _problem(
        client.patch(f"/api/applications/{app['id']}", json={"coverLetter": "x"}, headers=_auth("carol")),
        403,
    )
    assert denied["detail"] == "Only team leads or admins can perform this action"

    r = client.post(
        f"/api/applications/{app['id']}/status",
        json={"status": "reviewing", "responseMessage": "On it"},
        headers=_auth("bob"),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "reviewing"
    assert r.json()["version"] == 2

    bad = _problem(
        client.post(f"/api/applications/{app['id']}/status", json={"status": "accepted"}, headers=_auth("bob")),
        409,
    )
    assert bad["detail"] == "Cannot transition from reviewing to accepted"

    detail = client.get(f"/api/applications/{app['id']}", headers=_auth("erin")).json()
    assert detail["team"]["name"] == "Alpha Squad"
    assert detail["company"]["name"] == "Acme Corp"

    page = client.get("/api/teams/team-alpha/applications", headers=_auth("alice")).json()
    assert [a["id"] for a in page["data"]] == [app["id"]]
    assert page["nextToken"] is None

    stats = client.get("/api/applications/stats", headers=_auth("bob")).json()
    assert stats["receivedApplications"] == {"reviewing": 1}


def test_missing_application_is_404_problem(client):
    body = _problem(client.get("/api/applications/nope", headers=_auth("alice")), 404)
    assert body["detail"] == "Application not found"
    assert body["extensions"] == {"applicationId": "nope"}


def test_invalid_body_is_422_problem(client):
    body = _problem(
        client.post("/api/applications/app-1/status", json={"status": "withdrawn"}, headers=_auth("bob")),
        422,
    )
    assert body["title"] == "Validation Failed"
    assert any(e["path"] == "status" for e in body["errors"])


def test_unknown_route_is_404_problem(client):
    _problem(client.get("/this-route-does-not-exist"), 404)


def test_interests_over_http(client):
    r = client.post(
        "/api/interests",
        json={"fromType": "team", "toType": "opportunity", "toId": "opp-platform", "message": "Hi"},
        headers=_auth("alice"),
    )
    assert r.status_code == 201
    eoi = r.json()
    assert eoi["fromId"] == "team-alpha"

    sent = client.get("/api/interests", params={"type": "sent"}, headers=_auth("alice")).json()
    assert [e["id"] for e in sent["data"]] == [eoi["id"]]
    assert sent["pagination"] == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    r = client.post(f"/api/interests/{eoi['id']}/respond", json={"response": "accepted"}, headers=_auth("bob"))
    assert r.status_code == 200
    assert r.json()["status"] == "accepted"

    again = _problem(
        client.post(f"/api/interests/{eoi['id']}/respond", json={"response": "declined"}, headers=_auth("bob")),
        409,
    )
    assert again["detail"] == "This expression of interest has already been responded to"
