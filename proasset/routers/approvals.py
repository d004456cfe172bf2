from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from proasset.context import AppContext, get_context
from proasset.db import get_session
from proasset.deps import require_permission
from proasset.models import Asset, User
from proasset.schemas import DELETION_PENDING, AssetRead, FeatureKey, PermissionAction
from proasset.services.assets import approve_delete, asset_view, get_asset_or_404, reject_delete

router = APIRouter(prefix="/approvals", tags=["approvals"])

can_view = require_permission(FeatureKey.approvals, PermissionAction.view)
can_edit = require_permission(FeatureKey.approvals, PermissionAction.edit)


@router.get("", response_model=list[AssetRead])
def list_pending_deletions(
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_view),
):
    stmt = (
        select(Asset)
        .where(Asset.deletion_status == DELETION_PENDING)
        .order_by(Asset.deletion_request_date.asc(), Asset.id.asc())
    )
    return [asset_view(a, user.role, ctx.permissions) for a in session.exec(stmt).all()]


@router.post("/{asset_id}/approve")
def approve_deletion(
    asset_id: str,
    session: Session = Depends(get_session),
    user: User = Depends(can_edit),
):
    approve_delete(session, get_asset_or_404(session, asset_id), user)
    return {"ok": True}


@router.post("/{asset_id}/reject", response_model=AssetRead)
def reject_deletion(
    asset_id: str,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(can_edit),
):
    asset = reject_delete(session, get_asset_or_404(session, asset_id), user)
    return asset_view(asset, user.role, ctx.permissions)
