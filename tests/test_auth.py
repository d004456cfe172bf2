from proasset.security import verify_password
from proasset.services.users import build_user


def _register(client, username="neil", password="neil456", role="STAFF"):
    return client.post(
        "/auth/register",
        json={"username": username, "password": password, "name": "Neil", "role": role},
    )


def test_register_creates_pending_user(client):
    r = _register(client)
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "pending"
    assert data["role"] == "STAFF"
    assert "password" not in data and "password_hash" not in data


def test_pending_user_cannot_login_until_approved(client, admin):
    user_id = _register(client).json()["id"]

    r = client.post("/auth/login", data={"username": "neil", "password": "neil456"})
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "ACCOUNT_PENDING"

    r = client.post(f"/users/{user_id}/approve", headers=admin)
    assert r.status_code == 200
    assert r.json()["status"] == "active"

    r = client.post("/auth/login", data={"username": "NEIL", "password": "neil456"})
    assert r.status_code == 200
    data = r.json()
    assert "access_token" in data
    assert data["token_type"] == "bearer"


def test_rejected_user_cannot_login(client, admin):
    user_id = _register(client).json()["id"]
    assert client.post(f"/users/{user_id}/reject", headers=admin).json()["status"] == "rejected"

    r = client.post("/auth/login", data={"username": "neil", "password": "neil456"})
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "ACCOUNT_REJECTED"


def test_register_duplicate_user_case_insensitive(client):
    assert _register(client, username="dup").status_code == 200

    r2 = _register(client, username="DUP")
    assert r2.status_code == 409
    assert r2.json() == {
        "detail": {"code": "USERNAME_EXISTS", "message": "Username already exists"}
    }


def test_login_invalid_credentials(client):
    r = client.post("/auth/login", data={"username": "nope", "password": "wrong"})
    assert r.status_code == 401
    assert r.json() == {
        "detail": {"code": "INVALID_CREDENTIALS", "message": "Invalid username or password"}
    }


def test_missing_token(client):
    r = client.get("/auth/me")
    assert r.status_code == 401
    assert r.json()["detail"]["code"] == "NOT_AUTHENTICATED"
    assert r.headers["WWW-Authenticate"] == "Bearer"


def test_change_password(client, make_user):
    h = make_user("alice", "VIEWER", password="first1")
    r = client.put("/auth/password", json={"new_password": "second2"}, headers=h)
    assert r.status_code == 200

    assert client.post("/auth/login", data={"username": "alice", "password": "first1"}).status_code == 401
    assert client.post("/auth/login", data={"username": "alice", "password": "second2"}).status_code == 200


def test_password_is_hashed():
    user = build_user("bob", "plain-text", "Bob", "VIEWER", "active")
    assert user.password_hash != "plain-text"
    assert verify_password("plain-text", user.password_hash)
