"""
Stock opname: one physical verification pass over the asset collection.

The context holds a pointer to the session that scans go to. ``start`` always
creates a fresh session and moves the pointer; ``complete`` resolves the
pointed-to session; ``cancel`` only drops the pointer, so a cancelled pass
stays "In Progress" in the store and "Cancelled" is never written.
"""
import logging

from sqlalchemy import func
from sqlmodel import Session, select

from proasset.context import AppContext
from proasset.error import abort
from proasset.models import Asset, AuditSession, User, utcnow
from proasset.schemas import AuditStatus, LogAction
from proasset.services.activity import add_log

logger = logging.getLogger(__name__)

LOG_TARGET = "Stock Opname"


def progress(record: AuditSession) -> float:
    """Scanned share of the snapshot, 0 when there was nothing to check."""
    if record.total_assets_to_check <= 0:
        return 0.0
    return len(record.scanned_assets) / record.total_assets_to_check


def accuracy(record: AuditSession) -> float:
    return progress(record) * 100


def current_session(session: Session, ctx: AppContext) -> AuditSession | None:
    if not ctx.current_audit_id:
        return None
    return session.get(AuditSession, ctx.current_audit_id)


def find_asset_for_scan(session: Session, identifier: str) -> Asset | None:
    # barcode wins over id; among equal barcodes the oldest asset wins
    by_barcode = session.exec(
        select(Asset).where(Asset.barcode == identifier).order_by(Asset.created_at.asc(), Asset.id.asc())
    ).first()
    if by_barcode is not None:
        return by_barcode
    return session.get(Asset, identifier)


def start_audit(session: Session, ctx: AppContext, auditor_name: str, user: User | None = None) -> AuditSession:
    name = (auditor_name or "").strip()
    if not name:
        abort(400, "AUDITOR_REQUIRED", "auditor_name must not be empty")

    if ctx.current_audit_id:
        logger.warning("audit %s replaced by a new session while still in progress", ctx.current_audit_id)

    total = session.exec(select(func.count()).select_from(Asset)).one()
    start = utcnow()
    record = AuditSession(
        name=f"Audit {start.isoformat(timespec='seconds')}",
        start_date=start,
        status=AuditStatus.IN_PROGRESS.value,
        total_assets_to_check=total,
        scanned_assets=[],
        missing_assets=[],
        auditor_name=name,
    )
    session.add(record)
    add_log(session, LogAction.AUDIT_START, LOG_TARGET, "Started new audit session", user)
    session.commit()
    session.refresh(record)

    ctx.current_audit_id = record.id
    return record


def scan_asset(session: Session, ctx: AppContext, identifier: str, user: User | None = None) -> bool:
    """True when the identifier resolves to an asset while a session is open."""
    record = current_session(session, ctx)
    if record is None:
        return False

    asset = find_asset_for_scan(session, (identifier or "").strip())
    if asset is None:
        return False

    if asset.id in record.scanned_assets:
        return True

    # new list so the JSON column is flagged dirty
    record.scanned_assets = [*record.scanned_assets, asset.id]
    session.add(record)
    add_log(session, LogAction.AUDIT_SCAN, asset.name, "Scanned asset", user)
    session.commit()
    return True


def complete_audit(session: Session, ctx: AppContext, user: User | None = None) -> AuditSession | None:
    record = current_session(session, ctx)
    if record is None:
        return None

    scanned = set(record.scanned_assets)
    all_ids = session.exec(select(Asset.id).order_by(Asset.created_at.asc(), Asset.id.asc())).all()

    record.missing_assets = [asset_id for asset_id in all_ids if asset_id not in scanned]
    record.status = AuditStatus.COMPLETED.value
    record.end_date = utcnow()
    session.add(record)
    add_log(session, LogAction.AUDIT_COMPLETE, LOG_TARGET, "Completed audit.", user)
    session.commit()
    session.refresh(record)

    ctx.current_audit_id = None
    return record


def cancel_audit(ctx: AppContext) -> str | None:
    """Drop the pointer and return the abandoned session id, if any."""
    abandoned = ctx.current_audit_id
    ctx.current_audit_id = None
    return abandoned
