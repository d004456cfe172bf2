def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_ping(client):
    r = client.get("/system/ping")
    assert r.status_code == 200
    assert r.json()["status"] == "success"


def test_dashboard_stats(client, admin, make_user, new_asset):
    new_asset("Good one")
    new_asset("Broken", status="Damaged")
    pending = new_asset("Going away")
    client.post(f"/assets/{pending['id']}/deletion-request", headers=admin)

    stats = client.get("/dashboard/stats", headers=admin).json()
    assert stats["total"] == 2
    assert stats["pending"] == 1
    assert stats["bad"] == 1
    assert stats["current_value"] > 0

    staff = make_user("s", "STAFF")
    assert client.get("/dashboard/stats", headers=staff).json()["current_value"] is None


def test_backup_reset_import(client, admin, new_asset, location):
    new_asset("Laptop", barcode="LP-9")
    client.post("/audit/start", json={"auditor_name": "Budi"}, headers=admin)

    backup = client.get("/system/backup", headers=admin).json()
    assert len(backup["assets"]) == 1
    assert len(backup["locations"]) == 1
    assert all("password_hash" not in u for u in backup["users"])

    assert client.post("/system/reset", headers=admin).status_code == 200
    assert client.get("/assets", headers=admin).json()["total"] == 0
    assert client.get("/audit/current", headers=admin).json() is None
    assert client.get("/audit/sessions", headers=admin).json() == []
    logs = client.get("/logs", headers=admin).json()
    assert [i["action"] for i in logs["items"]] == ["RESET"]

    r = client.post("/system/import", json=backup, headers=admin)
    assert r.status_code == 200
    assert r.json()["imported"] == {"assets": 1, "locations": 1}
    assets = client.get("/assets", headers=admin).json()["items"]
    assert assets[0]["barcode"] == "LP-9"
    assert assets[0]["location_id"] == location["id"]


def test_reset_requires_settings_edit(client, make_user):
    manager = make_user("m", "MANAGER")
    assert client.post("/system/reset", headers=manager).status_code == 403


def test_import_rejects_malformed_rows(client, admin, new_asset):
    new_asset("Laptop")

    r = client.post("/system/import", json={"assets": [{"name": "x"}], "locations": []}, headers=admin)
    assert r.status_code == 422
    assert r.json()["code"] == "VALIDATION_ERROR"

    # nothing was reset
    assert client.get("/assets", headers=admin).json()["total"] == 1
