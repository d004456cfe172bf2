import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from proasset.context import AppContext, get_context
from proasset.db import get_session
from proasset.deps import require_permission, require_role, require_user
from proasset.error import abort
from proasset.models import User
from proasset.schemas import FeatureKey, FeaturePermission, LogAction, PermissionAction, PermissionCheck, Role
from proasset.services.activity import add_log
from proasset.services.permissions import RESTRICTABLE_FIELDS, save_permission_override

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("", response_model=dict[str, dict[str, FeaturePermission]])
def get_all_permissions(
    ctx: AppContext = Depends(get_context),
    _user: User = Depends(require_permission(FeatureKey.settings, PermissionAction.view)),
):
    return ctx.permissions.snapshot()


@router.get("/fields", response_model=dict[str, list[str]])
def restrictable_fields(_user: User = Depends(require_user)):
    return {k.value: v for k, v in RESTRICTABLE_FIELDS.items()}


@router.get("/me", response_model=dict[str, FeaturePermission])
def my_permissions(
    ctx: AppContext = Depends(get_context),
    user: User = Depends(require_user),
):
    return ctx.permissions.role_config(Role(user.role))


@router.get("/check", response_model=PermissionCheck)
def check_permission(
    feature: str = Query(..., description="Feature key, unknown keys are denied"),
    action: str = Query("view", description="view / edit"),
    field: str | None = Query(None),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(require_user),
):
    return {
        "role": user.role,
        "feature": feature,
        "action": action,
        "field": field,
        "allowed": ctx.permissions.has_permission(user.role, feature, action, field),
    }


@router.get("/{role}", response_model=dict[str, FeaturePermission])
def get_role_permissions(
    role: Role,
    ctx: AppContext = Depends(get_context),
    _user: User = Depends(require_permission(FeatureKey.settings, PermissionAction.view)),
):
    return ctx.permissions.role_config(role)


@router.put("/{role}/{feature}", response_model=FeaturePermission)
def update_role_permission(
    role: Role,
    feature: FeatureKey,
    config: FeaturePermission,
    session: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    actor: User = Depends(require_role(Role.SUPER_ADMIN)),
):
    # in-memory table first; the store mirror may lag behind on failure
    ctx.permissions.update_role_permission(role, feature, config)

    try:
        save_permission_override(session, role, feature, config)
        add_log(session, LogAction.UPDATE, "Permissions", f"Updated {feature.value} for role {role.value}", actor)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error("permission mirror write failed for %s/%s: %s", role.value, feature.value, e)
        abort(503, "STORE_ERROR", "Permission applied in memory but could not be saved")

    return ctx.permissions.get_feature(role, feature)
