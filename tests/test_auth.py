from datetime import timedelta

from conftest import PASSWORD, run

from app.core.security import create_access_token
from utils.constants import MSG_NO_TOKEN, MSG_SESSION_INVALID, MSG_TOKEN_INVALID


def register(client, username="alice", email="alice@mail.com", password="secret123", confirm=None):
    return client.post("/api/auth/register", json={
        "full_name": "Alice Smith",
        "username": username,
        "email": email,
        "password": password,
        "confirm_password": confirm if confirm is not None else password,
    })


def test_register_creates_inactive_user(client, db):
    response = register(client)
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["username"] == "alice"
    assert "password" not in user
    assert "verification_token" not in user

    stored = run(db.users.find_one({"email": "alice@mail.com"}))
    assert stored["verification_status"] == "inactive"
    assert stored["verification_token"]
    assert stored["password"] != "secret123"


def test_register_rejects_mismatched_and_short_passwords(client):
    response = register(client, confirm="different")
    assert response.status_code == 400
    assert response.json()["error"] == "Passwords do not match"

    response = register(client, password="abc")
    assert response.status_code == 400


def test_register_rejects_taken_email_and_username(client):
    assert register(client).status_code == 201

    response = register(client, username="alice2", email="ALICE@mail.com")
    assert response.status_code == 400
    assert response.json()["code"] == "EMAIL_TAKEN"

    response = register(client, username="alice", email="other@mail.com")
    assert response.status_code == 400
    assert response.json()["code"] == "USERNAME_TAKEN"


def test_login_requires_verified_email(client, db):
    register(client)
    response = client.post("/api/auth/login", json={"email": "alice@mail.com", "password": "secret123"})
    assert response.status_code == 403
    body = response.json()
    assert body["code"] == "ACCOUNT_NOT_VERIFIED"
    assert body["details"]["needs_verification"] is True


def test_verify_then_login(client, db):
    register(client)
    token = run(db.users.find_one({"email": "alice@mail.com"}))["verification_token"]

    response = client.get("/api/auth/verify-email", params={"token": token})
    assert response.status_code == 200
    assert response.json()["user"]["verification_status"] == "active"

    again = client.get("/api/auth/verify-email", params={"token": token})
    assert again.status_code == 400

    response = client.post("/api/auth/login", json={"email": "Alice@Mail.com", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["session_id"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["user"]["email"] == "alice@mail.com"


def test_login_wrong_password(client, make_user):
    user = make_user("bob")
    response = client.post("/api/auth/login", json={"email": user["doc"]["email"], "password": "nope-nope"})
    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"


def test_missing_token_is_rejected(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"] == MSG_NO_TOKEN


def test_garbage_token_is_rejected(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == MSG_TOKEN_INVALID


def test_expired_token_is_rejected(client, make_user):
    user = make_user("carol")
    token = create_access_token(user["id"], user["session_id"], expires_delta=timedelta(seconds=-5))
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["details"] == {"reason": "expired"}


def test_new_login_invalidates_old_session(client, make_user):
    user = make_user("dave")
    old_headers = {"Authorization": f"Bearer {user['token']}"}
    assert client.get("/api/auth/me", headers=old_headers).status_code == 200

    response = client.post("/api/auth/login", json={"email": user["doc"]["email"], "password": PASSWORD})
    assert response.status_code == 200

    stale = client.get("/api/auth/me", headers=old_headers)
    assert stale.status_code == 401
    assert stale.json()["error"] == MSG_SESSION_INVALID


def test_session_header_is_case_insensitive(client, make_user):
    user = make_user("erin")
    token = create_access_token(user["id"], "some-other-session")
    headers = {"Authorization": f"Bearer {token}", "X-Session-ID": user["session_id"].upper()}
    assert client.get("/api/auth/me", headers=headers).status_code == 200


def test_unverified_user_with_session_gets_403(client, make_user):
    user = make_user("frank", verification_status="inactive")
    response = client.get("/api/auth/me", headers=user["headers"])
    assert response.status_code == 403
    assert response.json()["code"] == "ACCOUNT_NOT_VERIFIED"


def test_logout_clears_session(client, make_user):
    user = make_user("gina")
    assert client.post("/api/auth/logout", headers=user["headers"]).status_code == 200
    assert client.get("/api/auth/me", headers=user["headers"]).status_code == 401


def test_signed_in_user_cannot_register(client, make_user):
    user = make_user("hank")
    response = client.post("/api/auth/register", headers=user["headers"], json={
        "full_name": "Hank",
        "username": "hank2",
        "email": "hank2@mail.com",
        "password": "secret123",
        "confirm_password": "secret123",
    })
    assert response.status_code == 403
    assert response.json()["code"] == "ALREADY_LOGGED_IN"


def test_forgot_and_reset_password(client, make_user, db):
    user = make_user("ivy")
    response = client.post("/api/auth/forgot-password", json={"email": user["doc"]["email"]})
    assert response.status_code == 200

    token = run(db.users.find_one({"_id": user["doc"]["_id"]}))["reset_password_token"]
    assert token

    response = client.post("/api/auth/reset-password", json={"token": token, "password": "brand-new"})
    assert response.status_code == 200

    # Old session ends with the reset
    assert client.get("/api/auth/me", headers=user["headers"]).status_code == 401

    response = client.post("/api/auth/login", json={"email": user["doc"]["email"], "password": "brand-new"})
    assert response.status_code == 200

    reused = client.post("/api/auth/reset-password", json={"token": token, "password": "again-new"})
    assert reused.status_code == 400
    assert reused.json()["code"] == "INVALID_TOKEN"


def test_forgot_password_unknown_email(client):
    response = client.post("/api/auth/forgot-password", json={"email": "ghost@mail.com"})
    assert response.status_code == 404


def test_resend_verification(client, db):
    register(client)
    first = run(db.users.find_one({"email": "alice@mail.com"}))["verification_token"]

    response = client.post("/api/auth/send-verification", json={"email": "alice@mail.com"})
    assert response.status_code == 200
    second = run(db.users.find_one({"email": "alice@mail.com"}))["verification_token"]
    assert second and second != first


def test_admin_login(client, make_user):
    make_user("root", user_type="admin")
    make_user("member")

    response = client.post("/api/auth/admin-login", json={"username": "root", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["user_type"] == "admin"

    response = client.post("/api/auth/admin-login", json={"username": "member", "password": PASSWORD})
    assert response.status_code == 403
