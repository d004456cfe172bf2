from sqlalchemy import func
from sqlmodel import Session, select

from proasset.error import abort
from proasset.models import User
from proasset.schemas import Role, UserStatus
from proasset.security import hash_password


def find_user_by_username(session: Session, username: str) -> User | None:
    """Usernames are unique case-insensitively."""
    name = (username or "").strip().lower()
    if not name:
        return None
    return session.exec(select(User).where(func.lower(User.username) == name)).first()


def ensure_username_free(session: Session, username: str) -> None:
    if find_user_by_username(session, username) is not None:
        abort(409, "USERNAME_EXISTS", "Username already exists")


def build_user(username: str, password: str, name: str, role: Role, status: UserStatus) -> User:
    return User(
        username=username.strip(),
        password_hash=hash_password(password),
        name=name.strip(),
        role=Role(role).value,
        status=UserStatus(status).value,
    )


def is_protected(user: User, admin_username: str) -> bool:
    return user.username.lower() == admin_username.lower()
