"""HTTP tests for /sessions endpoints."""

from conftest import bearer, login, register

FIREFOX_LINUX = "Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0"


def _sessions(client, token):
    return client.get("/sessions", headers=bearer(token))


def test_list_sessions(client):
    token = register(client).json()["token"]

    response = _sessions(client, token)

    assert response.status_code == 200
    sessions = response.json()["sessions"]
    assert len(sessions) == 1
    session = sessions[0]
    assert session["current"] is True
    assert session["device"] == "Chrome on Windows"
    assert session["browser"] == "Chrome"
    assert session["os"] == "Windows"
    for field in ("id", "ipAddress", "lastActive", "createdAt"):
        assert field in session
    assert "token" not in session


def test_list_marks_only_calling_session_current(client):
    register(client)
    login(client, user_agent=FIREFOX_LINUX)
    token = login(client).json()["token"]

    sessions = _sessions(client, token).json()["sessions"]

    assert len(sessions) == 3
    assert [s["current"] for s in sessions].count(True) == 1
    assert {s["device"] for s in sessions} == {"Chrome on Windows", "Firefox on Linux"}


def test_list_requires_token(client):
    response = client.get("/sessions")

    assert response.status_code == 401
    assert response.json() == {"message": "Missing or invalid token"}


def test_sessions_not_shared_between_users(client):
    alice = register(client).json()["token"]
    bob = register(client, username="bob", email="bob@x.com").json()["token"]

    alice_ids = {s["id"] for s in _sessions(client, alice).json()["sessions"]}
    bob_ids = {s["id"] for s in _sessions(client, bob).json()["sessions"]}

    assert alice_ids.isdisjoint(bob_ids)


def test_revoke_other_session(client):
    first = register(client).json()["token"]
    second = login(client).json()["token"]
    other = next(s for s in _sessions(client, second).json()["sessions"] if not s["current"])

    response = client.delete(f"/sessions/{other['id']}", headers=bearer(second))

    assert response.status_code == 200
    assert "revoked successfully" in response.json()["message"]

    rejected = client.get("/auth/profile", headers=bearer(first))
    assert rejected.status_code == 401
    assert rejected.json() == {"message": "Session has been revoked. Please sign in again."}


def test_revoke_current_session_signs_out(client):
    token = register(client).json()["token"]
    current = _sessions(client, token).json()["sessions"][0]

    assert client.delete(f"/sessions/{current['id']}", headers=bearer(token)).status_code == 200
    assert client.get("/auth/profile", headers=bearer(token)).status_code == 401


def test_revoke_missing_session(client):
    token = register(client).json()["token"]

    response = client.delete("/sessions/00000000-0000-0000-0000-000000000000", headers=bearer(token))

    assert response.status_code == 404
    assert response.json() == {"message": "Session not found"}


def test_revoke_twice(client):
    register(client)
    token = login(client).json()["token"]
    other = next(s for s in _sessions(client, token).json()["sessions"] if not s["current"])

    assert client.delete(f"/sessions/{other['id']}", headers=bearer(token)).status_code == 200
    assert client.delete(f"/sessions/{other['id']}", headers=bearer(token)).status_code == 404


def test_cannot_revoke_another_users_session(client):
    alice = register(client).json()["token"]
    bob = register(client, username="bob", email="bob@x.com").json()["token"]
    bob_session = _sessions(client, bob).json()["sessions"][0]

    response = client.delete(f"/sessions/{bob_session['id']}", headers=bearer(alice))

    assert response.status_code == 404
    assert response.json() == {"message": "Session not found"}
    assert client.get("/auth/profile", headers=bearer(bob)).status_code == 200


def test_revoke_all_keeps_calling_session(client):
    first = register(client).json()["token"]
    second = login(client).json()["token"]

    response = client.post("/sessions/revoke-all", headers=bearer(first))

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["message"] == "1 session(s) revoked successfully"

    assert client.get("/auth/profile", headers=bearer(first)).status_code == 200
    assert client.get("/auth/profile", headers=bearer(second)).status_code == 401
    assert len(_sessions(client, first).json()["sessions"]) == 1


def test_revoke_all_with_single_session(client):
    token = register(client).json()["token"]

    response = client.post("/sessions/revoke-all", headers=bearer(token))

    assert response.status_code == 200
    assert response.json()["count"] == 0


def test_revoke_all_requires_token(client):
    response = client.post("/sessions/revoke-all")
    assert response.status_code == 401
