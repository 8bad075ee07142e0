"""Tests for the bearer-token gate on protected routes."""

from datetime import timedelta

from conftest import bearer, register

from taskauth.models import UserSession, utcnow
from taskauth.tokens import TokenClaims

INVALID = {"message": "Invalid or expired token"}
MISSING = {"message": "Missing or invalid token"}
REVOKED = {"message": "Session has been revoked. Please sign in again."}


def _claims(user):
    return TokenClaims(user_id=user["id"], email=user["email"], username=user["username"])


def test_missing_header(client):
    response = client.get("/auth/profile")

    assert response.status_code == 401
    assert response.json() == MISSING


def test_wrong_scheme(client):
    response = client.get("/auth/profile", headers={"Authorization": "InvalidFormat token"})

    assert response.status_code == 401
    assert response.json() == MISSING


def test_empty_bearer_token(client):
    response = client.get("/auth/profile", headers={"Authorization": "Bearer "})

    assert response.status_code == 401
    assert response.json() == MISSING


def test_garbage_token(client):
    response = client.get("/auth/profile", headers=bearer("invalid-token-here"))

    assert response.status_code == 401
    assert response.json() == INVALID


def test_expired_token_looks_like_invalid_token(client, codec):
    user = register(client).json()["user"]
    expired = codec.issue(_claims(user), ttl=timedelta(seconds=-5))

    expired_response = client.get("/auth/profile", headers=bearer(expired))
    garbage_response = client.get("/auth/profile", headers=bearer("not.a.token"))

    assert expired_response.status_code == garbage_response.status_code == 401
    assert expired_response.json() == garbage_response.json() == INVALID


def test_token_signed_with_other_secret(client, other_codec):
    user = register(client).json()["user"]
    forged = other_codec.issue(_claims(user))

    response = client.get("/auth/profile", headers=bearer(forged))

    assert response.status_code == 401
    assert response.json() == INVALID


def test_valid_token_without_session_is_rejected(client, codec):
    user = register(client).json()["user"]
    orphan = codec.issue(_claims(user))

    response = client.get("/auth/profile", headers=bearer(orphan))

    assert response.status_code == 401
    assert response.json() == REVOKED


def test_session_owned_by_other_user_is_rejected(client, codec, db):
    alice = register(client).json()
    bob = register(client, username="bob", email="bob@x.com").json()

    # Alice's session row, bob's identity in the claims
    session = db.query(UserSession).filter(UserSession.token == alice["token"]).one()
    forged = codec.issue(_claims(bob["user"]))
    session.token = forged
    db.commit()

    response = client.get("/auth/profile", headers=bearer(forged))

    assert response.status_code == 401
    assert response.json() == REVOKED


def test_request_refreshes_last_active(client, db):
    token = register(client).json()["token"]
    session = db.query(UserSession).filter(UserSession.token == token).one()
    session.last_active = utcnow() - timedelta(days=1)
    db.commit()
    stale = session.last_active

    assert client.get("/auth/profile", headers=bearer(token)).status_code == 200

    db.expire_all()
    refreshed = db.query(UserSession).filter(UserSession.token == token).one()
    assert refreshed.last_active > stale
