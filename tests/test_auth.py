from datetime import timedelta

from conftest import PASSWORD, auth_headers
from peereval.models.user import User
from peereval.utils.helpers import get_utc_now


def test_register_and_login(client):
    res = client.post(
        "/api/auth/register",
        json={"email": "ada@example.com", "password": PASSWORD, "role": "instructor", "name": "Ada"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["role"] == "instructor"
    assert body["name"] == "Ada"
    assert body["message"] == "User registered successfully as instructor"

    res = client.post("/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert res.status_code == 200
    body = res.json()
    assert body["user"] == {"id": body["user"]["id"], "email": "ada@example.com", "role": "instructor", "name": "Ada"}
    assert body["token_type"] == "bearer"

    res = client.get("/api/auth/me", headers=auth_headers(body["access_token"]))
    assert res.status_code == 200
    assert res.json()["user"]["email"] == "ada@example.com"


def test_register_duplicate_email(client, make_user):
    make_user("dup@example.com")
    res = client.post(
        "/api/auth/register",
        json={"email": "dup@example.com", "password": PASSWORD, "role": "student", "name": "Dup"},
    )
    assert res.status_code == 400
    assert res.json() == {"error": "Email already registered"}


def test_register_rejects_unknown_role(client):
    res = client.post(
        "/api/auth/register",
        json={"email": "x@example.com", "password": PASSWORD, "role": "admin", "name": "X"},
    )
    assert res.status_code == 400
    assert "role" in res.json()["error"]


def test_login_errors(client, make_user):
    make_user("bob@example.com")

    res = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": PASSWORD})
    assert res.status_code == 404
    assert res.json() == {"error": "User not found"}

    res = client.post("/api/auth/login", json={"email": "bob@example.com", "password": "wrong"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid password"}


def test_protected_route_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code == 401

    res = client.get("/api/auth/me", headers=auth_headers("not-a-jwt"))
    assert res.status_code == 401
    assert res.json() == {"error": "Could not validate credentials"}


def test_password_reset_flow(client, make_user, db, monkeypatch):
    user = make_user("carol@example.com")
    sent = []

    def fake_send_email(to, subject, html):
        sent.append((to, subject, html))
        return True

    monkeypatch.setattr("peereval.routers.auth.send_email", fake_send_email)

    res = client.post("/api/auth/reset", json={"email": user.email})
    assert res.status_code == 200
    assert res.json() == {"message": f"Password reset link sent to {user.email}"}
    assert len(sent) == 1
    assert sent[0][0] == user.email

    token = db.query(User).filter(User.id == user.id).one().password_reset_token
    assert token
    assert f"reset-password?token={token}" in sent[0][2]

    res = client.post("/api/auth/update-password", json={"token": token, "newPassword": "N3wPassword!"})
    assert res.status_code == 200
    assert res.json() == {"message": "Password successfully updated"}

    # The token is single use
    res = client.post("/api/auth/update-password", json={"token": token, "newPassword": "Other1!"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid token"}

    res = client.post("/api/auth/login", json={"email": user.email, "password": "N3wPassword!"})
    assert res.status_code == 200
    res = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert res.status_code == 401


def test_password_reset_unknown_email(client):
    res = client.post("/api/auth/reset", json={"email": "ghost@example.com"})
    assert res.status_code == 404
    assert res.json() == {"error": "No account found with that email"}


def test_password_reset_email_failure(client, make_user, monkeypatch):
    user = make_user("dave@example.com")
    monkeypatch.setattr("peereval.routers.auth.send_email", lambda to, subject, html: False)

    res = client.post("/api/auth/reset", json={"email": user.email})
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to send reset email"}


def test_update_password_expired_token(client, make_user, db):
    user = make_user("erin@example.com")
    record = db.query(User).filter(User.id == user.id).one()
    record.password_reset_token = "expired-token"
    record.token_expiry = get_utc_now() - timedelta(minutes=1)
    db.commit()

    res = client.post("/api/auth/update-password", json={"token": "expired-token", "newPassword": "Whatever1!"})
    assert res.status_code == 400
    assert res.json() == {"error": "Token expired"}


def test_update_password_hash_failure(client, make_user, db, monkeypatch):
    user = make_user("fay@example.com")
    record = db.query(User).filter(User.id == user.id).one()
    record.password_reset_token = "good-token"
    record.token_expiry = get_utc_now() + timedelta(minutes=30)
    db.commit()

    def broken_hash(password):
        raise RuntimeError("bcrypt unavailable")

    monkeypatch.setattr("peereval.routers.auth.create_hashed_password", broken_hash)

    res = client.post("/api/auth/update-password", json={"token": "good-token", "newPassword": "Whatever1!"})
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to hash password"}
