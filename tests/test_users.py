def test_user_management_requires_users_edit(client, make_user):
    manager = make_user("mgr", "MANAGER")
    # managers may list users but not change them
    assert client.get("/users", headers=manager).status_code == 200
    r = client.post(
        "/users",
        json={"username": "x", "password": "p", "name": "X", "role": "VIEWER"},
        headers=manager,
    )
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "FORBIDDEN"


def test_update_and_delete_user(client, admin, make_user):
    make_user("carol", "VIEWER")
    users = client.get("/users", headers=admin).json()
    carol = next(u for u in users if u["username"] == "carol")

    r = client.put(
        f"/users/{carol['id']}",
        json={"name": "Carol A.", "role": "AUDITOR", "status": "active"},
        headers=admin,
    )
    assert r.status_code == 200
    assert r.json()["role"] == "AUDITOR"

    assert client.delete(f"/users/{carol['id']}", headers=admin).status_code == 200
    assert all(u["username"] != "carol" for u in client.get("/users", headers=admin).json())


def test_main_admin_is_protected(client, admin):
    me = client.get("/auth/me", headers=admin).json()
    r = client.delete(f"/users/{me['id']}", headers=admin)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "PROTECTED_USER"


def test_approve_only_pending(client, admin, make_user):
    make_user("dave", "VIEWER")
    dave = next(u for u in client.get("/users", headers=admin).json() if u["username"] == "dave")
    r = client.post(f"/users/{dave['id']}/approve", headers=admin)
    assert r.status_code == 409


def test_filter_pending_users(client, admin):
    client.post("/auth/register", json={"username": "eve", "password": "p", "name": "Eve"})
    r = client.get("/users?status=pending", headers=admin)
    assert [u["username"] for u in r.json()] == ["eve"]
