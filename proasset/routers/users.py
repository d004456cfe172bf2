from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select
from sqlalchemy.exc import IntegrityError

from proasset.config import get_settings
from proasset.db import get_session
from proasset.deps import require_permission
from proasset.error import abort
from proasset.models import User
from proasset.schemas import (
    AdminUserCreate,
    FeatureKey,
    LogAction,
    PermissionAction,
    UserRead,
    UserStatus,
    UserUpdate,
)
from proasset.security import hash_password
from proasset.services.activity import add_log
from proasset.services.users import build_user, ensure_username_free, is_protected

router = APIRouter(prefix="/users", tags=["users"])

can_view = require_permission(FeatureKey.users, PermissionAction.view)
can_edit = require_permission(FeatureKey.users, PermissionAction.edit)


def _get_user_or_404(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if not user:
        abort(404, "NOT_FOUND", "User not found")
    return user


@router.get("", response_model=list[UserRead])
def list_users(
    status: UserStatus | None = Query(None, description="Filter by account status"),
    session: Session = Depends(get_session),
    _user: User = Depends(can_view),
):
    stmt = select(User).order_by(User.username.asc())
    if status is not None:
        stmt = stmt.where(User.status == status.value)
    return session.exec(stmt).all()


@router.post("", response_model=UserRead)
def create_user(
    data: AdminUserCreate,
    session: Session = Depends(get_session),
    actor: User = Depends(can_edit),
):
    ensure_username_free(session, data.username)

    user = build_user(data.username, data.password, data.name, data.role, data.status)
    session.add(user)
    add_log(session, LogAction.CREATE, "User Management", f"Created user {user.username}", actor)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, "USERNAME_EXISTS", "Username already exists")

    session.refresh(user)
    return user


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: str,
    data: UserUpdate,
    session: Session = Depends(get_session),
    actor: User = Depends(can_edit),
):
    user = _get_user_or_404(session, user_id)

    user.name = data.name.strip()
    user.role = data.role.value
    user.status = data.status.value
    if data.password:
        user.password_hash = hash_password(data.password)

    session.add(user)
    add_log(session, LogAction.UPDATE, "User Management", f"Updated user {user.username}", actor)
    session.commit()
    session.refresh(user)
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    session: Session = Depends(get_session),
    actor: User = Depends(can_edit),
):
    user = _get_user_or_404(session, user_id)
    if is_protected(user, get_settings().admin_username):
        abort(400, "PROTECTED_USER", "The main administrator cannot be deleted")

    session.delete(user)
    add_log(session, LogAction.DELETE, "User Management", f"Deleted user {user_id}", actor)
    session.commit()
    return {"ok": True}


@router.post("/{user_id}/approve", response_model=UserRead)
def approve_user(
    user_id: str,
    session: Session = Depends(get_session),
    actor: User = Depends(can_edit),
):
    user = _get_user_or_404(session, user_id)
    if user.status != UserStatus.pending.value:
        abort(409, "NOT_PENDING", "Only pending registrations can be approved")

    user.status = UserStatus.active.value
    session.add(user)
    add_log(session, LogAction.APPROVE, "User", f"User approved: {user.username}", actor)
    session.commit()
    session.refresh(user)
    return user


@router.post("/{user_id}/reject", response_model=UserRead)
def reject_user(
    user_id: str,
    session: Session = Depends(get_session),
    actor: User = Depends(can_edit),
):
    user = _get_user_or_404(session, user_id)
    if user.status != UserStatus.pending.value:
        abort(409, "NOT_PENDING", "Only pending registrations can be rejected")

    user.status = UserStatus.rejected.value
    session.add(user)
    add_log(session, LogAction.REJECT, "User", f"User rejected: {user.username}", actor)
    session.commit()
    session.refresh(user)
    return user
