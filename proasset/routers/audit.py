import csv
import io
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlmodel import Session, select

from proasset.context import AppContext, get_context
from proasset.db import get_session
from proasset.deps import require_permission
from proasset.error import abort
from proasset.models import Asset, AuditSession, User
from proasset.schemas import (
    AuditReport,
    AuditScan,
    AuditSessionRead,
    AuditStart,
    AuditStatus,
    FeatureKey,
    PermissionAction,
    ScanResult,
)
from proasset.services.audit import (
    accuracy,
    cancel_audit,
    complete_audit,
    current_session,
    progress,
    scan_asset,
    start_audit,
)

router = APIRouter(prefix="/audit", tags=["audit"])

can_view = require_permission(FeatureKey.audit, PermissionAction.view)
can_edit = require_permission(FeatureKey.audit, PermissionAction.edit)


def _read(record: AuditSession) -> dict:
    data = record.model_dump()
    data["progress"] = progress(record)
    data["accuracy"] = accuracy(record)
    return data


def _get_session_or_404(session: Session, session_id: str) -> AuditSession:
    record = session.get(AuditSession, session_id)
    if not record:
        abort(404, "NOT_FOUND", "Audit session not found")
    return record


def _report(session: Session, record: AuditSession, ctx: AppContext, role: str) -> dict:
    scanned = set(record.scanned_assets)
    missing = set(record.missing_assets)
    show_price = ctx.permissions.has_permission(role, FeatureKey.assets, "view", "price")

    # only assets that still exist can be described
    assets = session.exec(select(Asset).order_by(Asset.created_at.asc(), Asset.id.asc())).all()
    rows = [
        {
            "asset_id": a.id,
            "name": a.name,
            "barcode": a.barcode,
            "category": a.category,
            "result": "FOUND" if a.id in scanned else "MISSING",
            "price": a.price if show_price else None,
        }
        for a in assets
        if a.id in scanned or a.id in missing
    ]
    return {
        "session": _read(record),
        "scanned_count": len(record.scanned_assets),
        "missing_count": len(record.missing_assets),
        "rows": rows,
    }


@router.post("/start", response_model=AuditSessionRead)
def start(
    body: AuditStart,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    return _read(start_audit(session, ctx, body.auditor_name, user))


@router.post("/scan", response_model=ScanResult)
def scan(
    body: AuditScan,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    found = scan_asset(session, ctx, body.identifier, user)
    record = current_session(session, ctx)
    return {"found": found, "session": _read(record) if record else None}


@router.post("/complete", response_model=AuditSessionRead)
def complete(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    record = complete_audit(session, ctx, user)
    if record is None:
        abort(409, "NO_ACTIVE_AUDIT", "No audit session in progress")
    return _read(record)


@router.post("/cancel")
def cancel(
    ctx: AppContext = Depends(get_context),
    _user: User = Depends(can_edit),
):
    return {"ok": True, "abandoned_session_id": cancel_audit(ctx)}


@router.get("/current", response_model=Optional[AuditSessionRead])
def current(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    _user: User = Depends(can_view),
):
    record = current_session(session, ctx)
    return _read(record) if record else None


@router.get("/sessions", response_model=list[AuditSessionRead])
def list_sessions(
    status: AuditStatus | None = Query(None),
    session: Session = Depends(get_session),
    _user: User = Depends(can_view),
):
    stmt = select(AuditSession).order_by(AuditSession.start_date.desc(), AuditSession.id.desc())
    if status is not None:
        stmt = stmt.where(AuditSession.status == status.value)
    return [_read(r) for r in session.exec(stmt).all()]


@router.get("/sessions/{session_id}", response_model=AuditReport)
def session_report(
    session_id: str,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    return _report(session, _get_session_or_404(session, session_id), ctx, user.role)


@router.get("/sessions/{session_id}/report.csv")
def export_session_report(
    session_id: str,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    record = _get_session_or_404(session, session_id)
    report = _report(session, record, ctx, user.role)

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([f"Audit Session Report - {record.start_date:%Y-%m-%d}"])
    writer.writerow([f"Auditor: {record.auditor_name}"])
    writer.writerow([f"Accuracy: {accuracy(record):.1f}%"])
    writer.writerow([])
    writer.writerow(["Asset Name", "Barcode", "Category", "Status in Audit", "Current Price"])
    for row in report["rows"]:
        writer.writerow([
            row["name"],
            row["barcode"] or "N/A",
            row["category"],
            row["result"],
            "" if row["price"] is None else row["price"],
        ])

    filename = f"audit_report_{record.id}_{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        content=buf.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )
