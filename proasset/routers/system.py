import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from proasset.context import AppContext, get_context
from proasset.db import get_session
from proasset.deps import require_permission
from proasset.models import Asset, Location, User, utcnow
from proasset.schemas import AssetStatus, BackupPayload, DashboardStats, FeatureKey, PermissionAction
from proasset.services.assets import is_pending
from proasset.services.depreciation import calculate_depreciation
from proasset.services.maintenance import backup, import_data, reset_data

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])

can_manage = require_permission(FeatureKey.settings, PermissionAction.edit)

BAD_STATUSES = (AssetStatus.Damaged.value, AssetStatus.Lost.value)


@router.get("/system/ping")
def ping(session: Session = Depends(get_session)):
    # one tiny read keeps a pausing backend awake
    try:
        session.exec(select(Location.id).limit(1)).all()
    except SQLAlchemyError as e:
        logger.error("database ping failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"status": "error", "message": "Database ping failed", "error": str(e)},
        )
    return {"status": "success", "message": "Database ping successful", "timestamp": utcnow().isoformat()}


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(require_permission(FeatureKey.dashboard, PermissionAction.view)),
):
    assets = session.exec(select(Asset)).all()
    active = [a for a in assets if not is_pending(a)]

    current_value = None
    if ctx.permissions.has_permission(user.role, FeatureKey.assets, "view", "price"):
        current_value = sum(
            calculate_depreciation(a.price, a.purchase_date, a.useful_life).current_value for a in active
        )

    return {
        "total": len(active),
        "current_value": current_value,
        "pending": len(assets) - len(active),
        "bad": sum(1 for a in active if a.status in BAD_STATUSES),
    }


@router.get("/system/backup")
def export_backup(
    session: Session = Depends(get_session),
    _user: User = Depends(can_manage),
):
    return backup(session)


@router.post("/system/import")
def import_backup(
    payload: BackupPayload,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_manage),
):
    counts = import_data(session, ctx, payload, user)
    return {"ok": True, "imported": counts}


@router.post("/system/reset")
def factory_reset(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_manage),
):
    reset_data(session, ctx, user)
    return {"ok": True}
