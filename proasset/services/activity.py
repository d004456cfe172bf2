"""Append-only activity log shared by every write path."""
from sqlmodel import Session

from proasset.models import AuditLog, User
from proasset.schemas import LogAction

SYSTEM_USER = "System"


def actor_name(user: User | None) -> str:
    return user.username if user is not None else SYSTEM_USER


def add_log(
    session: Session,
    action: LogAction,
    target: str,
    details: str,
    user: User | None = None,
) -> AuditLog:
    # added to the caller's unit of work, committed with it
    entry = AuditLog(
        action=LogAction(action).value,
        target=target,
        details=details,
        user=actor_name(user),
    )
    session.add(entry)
    return entry
