import csv
import io
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import func, or_
from sqlmodel import Session, select
from datetime import datetime, date, timedelta, timezone

from proasset.db import get_session
from proasset.deps import require_permission
from proasset.error import abort
from proasset.models import AuditLog, User
from proasset.schemas import AuditLogListResponse, FeatureKey, LogAction, PermissionAction


def _get_zone(tz_str: Optional[str]) -> Optional[ZoneInfo]:
    if not tz_str:
        return None
    tz_str = tz_str.strip()
    if not tz_str:
        return None
    try:
        return ZoneInfo(tz_str)
    except (ZoneInfoNotFoundError, ValueError):
        abort(400, "BAD_REQUEST", f"Invalid tz: {tz_str} (e.g. Asia/Jakarta / UTC)")


def _parse_dt_or_date(s: str, *, is_end: bool, assume_tz: Optional[ZoneInfo]) -> datetime:
    """
    Accepts "YYYY-MM-DD" or an ISO datetime (optionally with Z / offset).

    A bare date covers the whole local day: start is that day's 00:00, end is
    the next day's 00:00 (half-open). Naive input is read in ``assume_tz``,
    falling back to UTC. Returns an aware UTC datetime.
    """
    s = (s or "").strip()
    if not s:
        abort(400, "BAD_REQUEST", "start/end must not be empty")

    if len(s) == 10 and s[4] == "-" and s[7] == "-":
        try:
            d = date.fromisoformat(s)
        except ValueError:
            abort(400, "BAD_REQUEST", f"Bad date: {s}, expected YYYY-MM-DD")

        local_dt = datetime(d.year, d.month, d.day)
        if is_end:
            local_dt = local_dt + timedelta(days=1)

        local_dt = local_dt.replace(tzinfo=assume_tz or timezone.utc)
        return local_dt.astimezone(timezone.utc)

    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        abort(400, "BAD_REQUEST", f"Bad datetime: {s}, e.g. 2026-01-12T08:30:00 or 2026-01-12T08:30:00Z")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=assume_tz or timezone.utc)

    return dt.astimezone(timezone.utc)


router = APIRouter(prefix="/logs", tags=["logs"])

# the activity log lives under system settings
can_view = require_permission(FeatureKey.settings, PermissionAction.view)


def _conditions(
    action: Optional[LogAction],
    user: Optional[str],
    q: Optional[str],
    tz: Optional[str],
    start: Optional[str],
    end: Optional[str],
) -> list:
    conds = []
    if action is not None:
        conds.append(AuditLog.action == action.value)

    if user is not None and user.strip():
        conds.append(AuditLog.user == user.strip())

    if q:
        conds.append(or_(AuditLog.target.contains(q), AuditLog.details.contains(q), AuditLog.user.contains(q)))

    zone = _get_zone(tz)
    start_dt = end_dt = None
    if start:
        start_dt = _parse_dt_or_date(start, is_end=False, assume_tz=zone)
        conds.append(AuditLog.timestamp >= start_dt)
    if end:
        end_dt = _parse_dt_or_date(end, is_end=True, assume_tz=zone)
        conds.append(AuditLog.timestamp < end_dt)

    if start_dt is not None and end_dt is not None and start_dt >= end_dt:
        abort(400, "BAD_REQUEST", "start must be earlier than end")
    return conds


@router.get("", response_model=AuditLogListResponse)
def list_logs(
    action: Optional[LogAction] = Query(None, description="Filter by action"),
    user: Optional[str] = Query(None, min_length=1, max_length=50, description="Filter by acting username"),
    q: Optional[str] = Query(None, description="Search target / details / user"),
    tz: Optional[str] = Query(None, description="Time zone for naive start/end, e.g. Asia/Jakarta"),
    start: Optional[str] = Query(None, description="Start date/datetime, e.g. 2026-01-12"),
    end: Optional[str] = Query(None, description="End date/datetime (exclusive), e.g. 2026-01-13"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: Session = Depends(get_session),
    _user: User = Depends(can_view),
):
    conds = _conditions(action, user, q, tz, start, end)

    stmt = select(AuditLog)
    count_stmt = select(func.count()).select_from(AuditLog)
    if conds:
        stmt = stmt.where(*conds)
        count_stmt = count_stmt.where(*conds)

    # newest first
    stmt = stmt.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())

    total = session.exec(count_stmt).one()
    items = session.exec(stmt.offset(offset).limit(limit)).all()

    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/export.csv")
def export_logs_csv(
    action: Optional[LogAction] = Query(None),
    user: Optional[str] = Query(None, min_length=1, max_length=50),
    q: Optional[str] = Query(None),
    tz: Optional[str] = Query(None),
    start: Optional[str] = Query(None),
    end: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    _user: User = Depends(can_view),
):
    conds = _conditions(action, user, q, tz, start, end)
    stmt = select(AuditLog).order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
    if conds:
        stmt = stmt.where(*conds)

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["ID", "Timestamp", "Action", "Target", "Details", "User"])
    for log in session.exec(stmt).all():
        writer.writerow([log.id, log.timestamp.isoformat(sep=" ", timespec="seconds"),
                         log.action, log.target, log.details, log.user])

    filename = f"audit_logs_{datetime.now().strftime('%Y-%m-%d')}.csv"
    return Response(
        content=buf.getvalue(),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )
