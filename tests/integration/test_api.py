"""Integration tests for the Folio API

Exercises the full app (real SQLite, real content filter, real tokens) with
the task queue, mailer and AI responder replaced by recording fakes.

Tests cover:
- Portfolio content per level, registration flag, access logging
- Request intake: new users, attacks, blacklist, blocked users, validation
- Admin: listing, re-tiering (blocking blacklists), delete, token expiry renewal
- Content upload behind the admin password
- Unsubscribe cooldown, whitelist return, honeypot
- Health endpoint
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from folio.security.audit import AccessLog
from folio.security.blacklist import Blacklist
from folio.security.tokens import TokenService
from folio.users.repository import UserRepository


@pytest.fixture
def tokens(settings):
    return TokenService(settings)


@pytest.fixture
def admin_token(tokens):
    return tokens.issue_admin_token()


def _titles(content):
    blogs = next(section for section in content if section.get("type") == "blogs")
    return [blog["title"] for blog in blogs["blogs"]]


# --- portfolio ---


def test_public_portfolio(client, content):
    """No token: level 0, unregistered, restricted items and metadata removed"""
    response = client.get("/api/portfolio")

    assert response.status_code == 200
    data = response.json()
    assert data["meta"] == {"registered": False, "level": 0}
    assert _titles(data["content"]) == ["Public post"]
    assert all(section.get("type") not in ("access", "vip") for section in data["content"])

    profile = data["content"][0]
    phones = [c for c in profile["contacts"] if c["type"] == "phone"]
    assert phones == [{"type": "phone", "access": 0, "value": "Ask for my number"}]


def test_portfolio_for_tiered_user(client, content):
    """A level-5 user sees everything except authorization metadata"""
    UserRepository.create(user_uuid="vip-uuid", access_level=5)

    data = client.get("/api/portfolio", headers={"X-Access-Token": "vip-uuid"}).json()

    assert data["meta"] == {"registered": True, "level": 5}
    assert _titles(data["content"]) == ["Public post", "Private post"]
    assert any(section.get("type") == "vip" for section in data["content"])
    assert all(section.get("type") != "access" for section in data["content"])
    assert AccessLog.recent(1)[0]["payload"] == "Portfolio View"


def test_portfolio_uuid_query(client, content):
    """The uuid query parameter works like the header"""
    UserRepository.create(user_uuid="tier2", access_level=2)

    data = client.get("/api/portfolio", params={"uuid": "tier2"}).json()

    assert data["meta"]["level"] == 2
    phones = [c for c in data["content"][0]["contacts"] if c["type"] == "phone"]
    assert phones == [{"type": "phone", "access": 2, "value": "+1 555 0100"}]


def test_portfolio_email_is_not_a_token(client, content):
    """Knowing a user's email does not unlock their tier"""
    UserRepository.create(user_uuid="secret-uuid", email="vip@example.com", access_level=5)

    data = client.get("/api/portfolio", headers={"X-Access-Token": "vip@example.com"}).json()

    assert data["meta"] == {"registered": False, "level": 0}
    assert _titles(data["content"]) == ["Public post"]
    assert all(section.get("type") != "vip" for section in data["content"])


def test_portfolio_empty_document(client):
    """No content file yet: an empty document, not an error"""
    response = client.get("/api/portfolio")

    assert response.status_code == 200
    assert response.json()["content"] == {}


# --- requests ---


def test_new_user_resume_request(client, content, queue):
    """A first request registers the visitor and queues exactly one task"""
    response = client.post(
        "/api/request",
        json={
            "email": "Ann@Example.com",
            "name": "Ann",
            "message": "Could I see your resume?",
            "company": "Acme",
            "type": "resume",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["meta"] == {"registered": True, "level": 0}
    assert data["uuid"]
    assert _titles(data["content"]) == ["Public post"]
    assert queue.labels == ["request:resume"]
    assert UserRepository.get_by_email("ann@example.com").uuid == data["uuid"]


def test_request_task_sends_both_emails(client, content, queue, mailer, responder):
    """Running the queued task emails the visitor and the owner"""
    client.post(
        "/api/request",
        json={"email": "ann@example.com", "name": "Ann", "message": "Hi!", "type": "contact"},
    )

    asyncio.run(queue.run_all())

    assert [e.to for e in mailer.sent] == ["ann@example.com", "owner@example.com"]
    assert responder.calls[0]["request_type"] == "contact"


def test_request_reuses_client_uuid(client, content, queue):
    """An anonymous visitor keeps the uuid they already hold"""
    response = client.post(
        "/api/request",
        json={"name": "Anon", "message": "Hello", "type": "contact"},
        headers={"X-Access-Token": "client-held-uuid"},
    )

    assert response.json()["uuid"] == "client-held-uuid"


def test_request_with_email_token_keeps_single_identity(client, content, queue):
    """An email-shaped token never becomes a uuid or a second user row"""
    UserRepository.create(user_uuid="secret-uuid", email="vip@example.com", access_level=5)

    response = client.post(
        "/api/request",
        json={"name": "Anon", "message": "Hello", "type": "contact"},
        headers={"X-Access-Token": "vip@example.com"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["uuid"] != "vip@example.com"
    assert data["meta"]["level"] == 0
    assert UserRepository.get_by_uuid("vip@example.com") is None
    assert UserRepository.get_by_email("vip@example.com").uuid == "secret-uuid"


def test_attack_acknowledged_without_side_effects(client, content, queue):
    """SQL injection gets a success-shaped answer, a log row, and nothing else"""
    response = client.post(
        "/api/request",
        json={
            "email": "evil@example.com",
            "name": "Evil",
            "message": "x'; DROP TABLE users; --",
            "type": "contact",
        },
    )

    assert response.status_code == 200
    assert response.json() == {"status": "Received"}
    assert queue.tasks == []
    assert UserRepository.get_by_email("evil@example.com") is None
    assert AccessLog.recent(1)[0]["name"] == "[ATTACK] Evil"


def test_blacklisted_request_refused(client, content, queue):
    """Blacklisted emails get 403 and nothing is queued"""
    Blacklist.add("spam@example.com", "General Ban")

    response = client.post(
        "/api/request",
        json={"email": "spam@example.com", "name": "Spam", "message": "Buy", "type": "contact"},
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Access Denied"}
    assert queue.tasks == []


def test_blocked_anonymous_request_refused(client, content, queue):
    """A blocked uuid without email is refused"""
    UserRepository.create(user_uuid="blocked-uuid", access_level=-1)

    response = client.post(
        "/api/request",
        json={"name": "Bob", "message": "Let me in", "type": "access_request"},
        headers={"X-Access-Token": "blocked-uuid"},
    )

    assert response.status_code == 403
    assert response.json() == {"error": "Blocked by Admin"}
    assert queue.tasks == []


@pytest.mark.parametrize(
    "body",
    [
        {"name": "Ann", "type": "party"},
        {"name": "   ", "type": "contact"},
        {"name": "Ann", "email": "not-an-email", "type": "contact"},
        {"type": "contact"},
    ],
)
def test_request_validation(client, queue, body):
    """Malformed bodies get a sanitized 422"""
    response = client.post("/api/request", json=body)

    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Invalid request format. Please check your request and try again."
    assert data["error_count"] >= 1
    assert queue.tasks == []


# --- admin ---


def test_admin_requires_token(client):
    """No token or a forged one: 401"""
    assert client.get("/admin/users").status_code == 401
    assert client.get("/admin/users", params={"token": "forged"}).status_code == 401


def test_admin_lists_users(client, admin_token):
    """Listing includes level labels"""
    UserRepository.create(user_uuid="u1", email="ann@example.com", access_level=5)

    response = client.get("/admin/users", params={"token": admin_token})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["users"][0]["label"] == "VIP"


def test_admin_token_header(client, admin_token):
    """X-Admin-Token works as well as the query parameter"""
    response = client.get("/admin/users", headers={"X-Admin-Token": admin_token})

    assert response.status_code == 200


def test_admin_block_hides_content(client, content, admin_token):
    """Setting level -1 blacklists the email and empties the portfolio"""
    user = UserRepository.create(email="ann@example.com")

    response = client.post(
        f"/admin/users/{user.uuid}/level", params={"token": admin_token}, json={"level": -1}
    )

    assert response.status_code == 200
    assert response.json()["label"] == "Block"
    assert Blacklist.get("ann@example.com").reason == "Admin Block"

    data = client.get("/api/portfolio", headers={"X-Access-Token": user.uuid}).json()
    assert data["content"] is None
    assert data["meta"] == {"registered": False, "level": -1}


def test_admin_unblock_lifts_blacklist(client, admin_token):
    """Any non-blocked level removes the blacklist entry"""
    user = UserRepository.create(email="ann@example.com")
    client.post(f"/admin/users/{user.uuid}/level", params={"token": admin_token}, json={"level": -1})

    client.post(f"/admin/users/{user.uuid}/level", params={"token": admin_token}, json={"level": 1})

    assert not Blacklist.is_blacklisted("ann@example.com")
    assert UserRepository.get_by_uuid(user.uuid).access_level == 1


def test_admin_level_validation(client, admin_token):
    """Unknown users 404, out-of-range levels 422"""
    UserRepository.create(user_uuid="u1")

    missing = client.post("/admin/users/nope/level", params={"token": admin_token}, json={"level": 1})
    bad = client.post("/admin/users/u1/level", params={"token": admin_token}, json={"level": 9})

    assert missing.status_code == 404
    assert bad.status_code == 422


def test_admin_delete_user(client, admin_token):
    """Delete removes the row; a second delete is 404"""
    UserRepository.create(user_uuid="u1")

    first = client.delete("/admin/users/u1", params={"token": admin_token})
    second = client.delete("/admin/users/u1", params={"token": admin_token})

    assert first.json() == {"status": "deleted"}
    assert second.status_code == 404


def test_expired_admin_token_renews(client, settings, queue):
    """An expired admin link answers 401 and queues a fresh link to the owner"""
    past = datetime.now(UTC) - timedelta(hours=1)
    expired = TokenService(settings, clock=lambda: past).issue_admin_token()

    response = client.get("/admin/users", params={"token": expired})

    assert response.status_code == 401
    assert response.json()["detail"] == {"error": "Token expired", "renewed": True}
    assert queue.labels == ["admin-link-renewal"]


def test_content_upload(client, settings, content):
    """The password-guarded upload replaces the document and keeps a backup"""
    new_document = [{"type": "profile", "name": "New Name"}]

    unauthorized = client.post("/admin/data", json=new_document)
    wrong = client.post("/admin/data", json=new_document, headers={"X-Admin-Password": "nope"})
    ok = client.post(
        "/admin/data", json=new_document, headers={"X-Admin-Password": "test-admin-password"}
    )

    assert unauthorized.status_code == 401
    assert wrong.status_code == 401
    assert ok.json() == {"status": "updated"}
    assert client.get("/api/portfolio").json()["content"] == new_document
    assert len(list(settings.backup_dir.iterdir())) == 1


# --- moderation links ---


def test_unsubscribe_twice_sends_one_email(client, tokens, queue):
    """Both visits succeed; only the first queues the return-link email"""
    user = UserRepository.create(email="ann@example.com")
    token = tokens.issue_unsubscribe_token("ann@example.com")

    first = client.get("/api/unsubscribe", params={"token": token})
    second = client.get("/api/unsubscribe", params={"token": token})

    assert first.status_code == 200
    assert second.status_code == 200
    assert "ann@example.com" in first.text
    assert "/api/security/whitelist?token=" in first.text
    assert queue.labels == ["unsubscribe-confirmation"]
    assert Blacklist.is_blacklisted("ann@example.com")
    assert UserRepository.get_by_uuid(user.uuid).access_level == -1


def test_unsubscribe_invalid_link(client, queue):
    """Broken links get a plain 400"""
    response = client.get("/api/unsubscribe", params={"token": "garbage"})

    assert response.status_code == 400
    assert response.text == "This link seems invalid or broken."


def test_whitelist_return(client, tokens):
    """The return link restores a previously unsubscribed user"""
    user = UserRepository.create(email="ann@example.com")
    client.get("/api/unsubscribe", params={"token": tokens.issue_unsubscribe_token("ann@example.com")})

    response = client.get(
        "/api/security/whitelist", params={"token": tokens.issue_return_token("ann@example.com")}
    )

    assert response.status_code == 200
    assert "Welcome back" in response.text
    assert not Blacklist.is_blacklisted("ann@example.com")
    assert UserRepository.get_by_uuid(user.uuid).access_level == 0

    expired = client.get("/api/security/whitelist", params={"token": "garbage"})
    assert expired.status_code == 400
    assert expired.text == "Link expired."


def test_honeypot(client, tokens, queue):
    """Following a trap link bans the address and alerts each admin"""
    UserRepository.create(email="bot@example.com")

    response = client.get(
        "/api/security/verify", params={"token": tokens.issue_trap_token("bot@example.com")}
    )

    assert response.status_code == 200
    assert response.text == "<h1>Banned</h1>"
    assert Blacklist.get("bot@example.com").reason == "Honeypot"
    assert queue.labels == ["honeypot-alert", "honeypot-alert"]

    invalid = client.get("/api/security/verify", params={"token": "garbage"})
    assert invalid.status_code == 400
    assert invalid.text == "Invalid"


# --- health ---


def test_health(client):
    """Liveness plus configuration presence, no secrets"""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["llm"]["ready"] is False
    assert data["smtp"] == {"ready": False}
    assert data["queue"] == {"pending": 0, "busy": False, "scheduled_retries": 0}


def test_root(client):
    """Root describes the service"""
    assert client.get("/").json()["service"] == "Folio API"
