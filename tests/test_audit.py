from datetime import date, timedelta

import pytest
from fastapi import HTTPException
from sqlmodel import select

from proasset.models import Asset, AuditLog, AuditSession, Location, utcnow
from proasset.services.audit import (
    accuracy,
    cancel_audit,
    complete_audit,
    progress,
    scan_asset,
    start_audit,
)


def _seed(session, *barcodes):
    loc = Location(name="Warehouse")
    session.add(loc)
    session.flush()
    assets = []
    for i, code in enumerate(barcodes):
        a = Asset(
            name=f"A{i + 1}",
            category="Tools",
            location_id=loc.id,
            price=1000,
            purchase_date=date(2023, 1, 1),
            useful_life=5,
            barcode=code,
            created_at=utcnow() + timedelta(seconds=i),
        )
        session.add(a)
        assets.append(a)
    session.commit()
    for a in assets:
        session.refresh(a)
    return assets


def _actions(session, action):
    return session.exec(select(AuditLog).where(AuditLog.action == action)).all()


def test_full_pass_with_duplicate_scan(session, ctx):
    a1, a2, a3 = _seed(session, "B-1", "B-2", "B-3")

    record = start_audit(session, ctx, "Budi")
    assert record.total_assets_to_check == 3
    assert record.status == "In Progress"
    assert ctx.current_audit_id == record.id

    assert scan_asset(session, ctx, "B-1") is True
    assert scan_asset(session, ctx, "B-1") is True
    session.refresh(record)
    assert record.scanned_assets == [a1.id]
    assert len(_actions(session, "AUDIT_SCAN")) == 1

    done = complete_audit(session, ctx)
    assert done.status == "Completed"
    assert done.end_date is not None
    assert set(done.missing_assets) == {a2.id, a3.id}
    assert ctx.current_audit_id is None
    assert len(_actions(session, "AUDIT_COMPLETE")) == 1


def test_scan_by_id_and_unknown(session, ctx):
    a1, _ = _seed(session, None, "X")
    start_audit(session, ctx, "Budi")

    assert scan_asset(session, ctx, a1.id) is True
    assert scan_asset(session, ctx, "does-not-exist") is False


def test_barcode_match_wins_over_id(session, ctx):
    a1, a2 = _seed(session, None, "placeholder")
    # a2 carries a barcode equal to a1's id
    a2.barcode = a1.id
    session.add(a2)
    session.commit()

    record = start_audit(session, ctx, "Budi")
    assert scan_asset(session, ctx, a1.id) is True
    session.refresh(record)
    assert record.scanned_assets == [a2.id]


def test_scan_without_session_is_not_found(session, ctx):
    _seed(session, "B-1")
    assert scan_asset(session, ctx, "B-1") is False
    assert _actions(session, "AUDIT_SCAN") == []


def test_complete_without_session(session, ctx):
    assert complete_audit(session, ctx) is None


def test_start_resets_and_orphans_previous(session, ctx):
    _seed(session, "B-1", "B-2")
    first = start_audit(session, ctx, "Budi")
    scan_asset(session, ctx, "B-1")

    session.add(Asset(name="late", category="Tools", location_id=session.exec(select(Location)).first().id,
                      price=5, purchase_date=date(2024, 1, 1), useful_life=2))
    session.commit()

    second = start_audit(session, ctx, "Sari")
    assert second.id != first.id
    assert second.scanned_assets == []
    assert second.total_assets_to_check == 3
    assert ctx.current_audit_id == second.id

    session.refresh(first)
    assert first.status == "In Progress"


def test_cancel_only_clears_pointer(session, ctx):
    _seed(session, "B-1")
    record = start_audit(session, ctx, "Budi")

    assert cancel_audit(ctx) == record.id
    assert ctx.current_audit_id is None
    session.refresh(record)
    assert record.status == "In Progress"
    assert scan_asset(session, ctx, "B-1") is False


def test_start_requires_auditor_name(session, ctx):
    with pytest.raises(HTTPException) as exc:
        start_audit(session, ctx, "   ")
    assert exc.value.status_code == 400


def test_progress_guards_empty_snapshot():
    empty = AuditSession(name="x", auditor_name="y", total_assets_to_check=0, scanned_assets=[], missing_assets=[])
    assert progress(empty) == 0
    assert accuracy(empty) == 0

    half = AuditSession(name="x", auditor_name="y", total_assets_to_check=4, scanned_assets=["a", "b"],
                        missing_assets=[])
    assert progress(half) == 0.5
    assert accuracy(half) == 50


# ---------- over HTTP ----------

def test_audit_flow_api(client, admin, new_asset):
    a1 = new_asset("Laptop", barcode="LP-1")
    a2 = new_asset("Printer", barcode="PR-1")
    a3 = new_asset("Desk", barcode="DK-1")

    r = client.post("/audit/start", json={"auditor_name": "Budi"}, headers=admin)
    assert r.status_code == 200
    assert r.json()["total_assets_to_check"] == 3

    r = client.post("/audit/scan", json={"identifier": "LP-1"}, headers=admin)
    assert r.json()["found"] is True
    r = client.post("/audit/scan", json={"identifier": "LP-1"}, headers=admin)
    assert r.json()["session"]["scanned_assets"] == [a1["id"]]
    assert round(r.json()["session"]["progress"], 4) == round(1 / 3, 4)

    r = client.post("/audit/scan", json={"identifier": "nope"}, headers=admin)
    assert r.json()["found"] is False

    r = client.post("/audit/complete", headers=admin)
    assert r.status_code == 200
    session_data = r.json()
    assert session_data["status"] == "Completed"
    assert set(session_data["missing_assets"]) == {a2["id"], a3["id"]}

    assert client.get("/audit/current", headers=admin).json() is None

    r = client.get(f"/audit/sessions/{session_data['id']}", headers=admin)
    report = r.json()
    assert report["scanned_count"] == 1
    assert report["missing_count"] == 2
    assert {row["result"] for row in report["rows"]} == {"FOUND", "MISSING"}

    r = client.get(f"/audit/sessions/{session_data['id']}/report.csv", headers=admin)
    assert r.status_code == 200
    assert "Accuracy: 33.3%" in r.text
    assert "MISSING" in r.text


def test_complete_without_active_session_api(client, admin):
    r = client.post("/audit/complete", headers=admin)
    assert r.status_code == 409
    assert r.json()["detail"]["code"] == "NO_ACTIVE_AUDIT"


def test_viewer_cannot_run_audit(client, make_user):
    viewer = make_user("vic", "VIEWER")
    r = client.post("/audit/start", json={"auditor_name": "Vic"}, headers=viewer)
    assert r.status_code == 403


def test_staff_can_scan(client, admin, make_user, new_asset):
    new_asset("Chair", barcode="CH-1")
    staff = make_user("sam", "STAFF")
    assert client.post("/audit/start", json={"auditor_name": "Sam"}, headers=staff).status_code == 200
    r = client.post("/audit/scan", json={"identifier": "CH-1"}, headers=staff)
    assert r.json()["found"] is True

    logs = client.get("/logs?action=AUDIT_SCAN", headers=admin).json()
    assert logs["total"] == 1
    assert logs["items"][0]["user"] == "sam"
