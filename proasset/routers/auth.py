from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session
from sqlalchemy.exc import IntegrityError

from proasset.db import get_session
from proasset.deps import require_user
from proasset.error import _auth_401, abort
from proasset.models import User
from proasset.schemas import LogAction, PasswordChange, Token, UserCreate, UserRead, UserStatus
from proasset.security import create_access_token, hash_password, verify_password
from proasset.services.activity import add_log
from proasset.services.users import build_user, ensure_username_free, find_user_by_username

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead)
def register(data: UserCreate, session: Session = Depends(get_session)):
    # 1) friendly duplicate check, case-insensitive
    ensure_username_free(session, data.username)

    # 2) self-registration always waits for an administrator
    user = build_user(data.username, data.password, data.name, data.role, UserStatus.pending)
    session.add(user)
    add_log(session, LogAction.CREATE, "User", f"New registration: {user.username}")

    # 3) unique constraint still guards concurrent registrations
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        abort(409, "USERNAME_EXISTS", "Username already exists")

    session.refresh(user)
    return user


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    user = find_user_by_username(session, form_data.username)
    if (not user) or (not verify_password(form_data.password, user.password_hash)):
        raise _auth_401("INVALID_CREDENTIALS", "Invalid username or password")

    if user.status == UserStatus.pending.value:
        abort(403, "ACCOUNT_PENDING", "Account is waiting for administrator approval")
    if user.status == UserStatus.rejected.value:
        abort(403, "ACCOUNT_REJECTED", "Account registration was rejected")

    add_log(session, LogAction.UPDATE, "System", f"User logged in: {user.username}", user)
    session.commit()

    token = create_access_token(user.username)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(require_user)):
    return user


@router.put("/password")
def change_password(
    body: PasswordChange,
    session: Session = Depends(get_session),
    user: User = Depends(require_user),
):
    user.password_hash = hash_password(body.new_password)
    session.add(user)
    add_log(session, LogAction.UPDATE, "User", "Password changed", user)
    session.commit()
    return {"ok": True}
