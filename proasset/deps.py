from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlmodel import Session

from proasset.context import AppContext, get_context
from proasset.db import get_session
from proasset.error import _auth_401, abort
from proasset.models import User
from proasset.schemas import FeatureKey, PermissionAction, Role, UserStatus
from proasset.security import decode_token
from proasset.services.users import find_user_by_username

# auto_error=False so a missing token gets our own error body
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def require_user(
    token: str | None = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> User:
    if not token:
        raise _auth_401("NOT_AUTHENTICATED", "Not logged in or session expired")

    try:
        username = decode_token(token)
    except (JWTError, ValueError):
        raise _auth_401("INVALID_TOKEN", "Token is invalid or expired")

    user = find_user_by_username(session, username)
    if not user:
        raise _auth_401("USER_NOT_FOUND", "User does not exist or was deleted")

    if user.status != UserStatus.active.value:
        raise _auth_401("USER_INACTIVE", "User account is not active")

    return user


def require_permission(feature: FeatureKey, action: PermissionAction):
    def _checker(
        user: User = Depends(require_user),
        ctx: AppContext = Depends(get_context),
    ) -> User:
        if not ctx.permissions.has_permission(user.role, feature, action):
            abort(403, "FORBIDDEN", f"Role {user.role} may not {action.value} {feature.value}")
        return user

    return _checker


def require_role(*roles: Role):
    allowed = {Role(r).value for r in roles}

    def _checker(user: User = Depends(require_user)) -> User:
        if user.role not in allowed:
            abort(403, "FORBIDDEN", "Insufficient role")
        return user

    return _checker
