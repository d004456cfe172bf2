"""Backup, import and factory reset of the asset register."""
from sqlmodel import Session, delete, select

from proasset.context import AppContext
from proasset.models import Asset, AuditLog, AuditSession, Location, User, as_utc, utcnow
from proasset.schemas import BackupPayload, LogAction
from proasset.services.activity import add_log
from proasset.services.locations import hierarchical_locations


def backup(session: Session) -> dict:
    users = session.exec(select(User).order_by(User.username.asc())).all()
    return {
        "assets": [a.model_dump(mode="json") for a in session.exec(select(Asset)).all()],
        "locations": [loc.model_dump(mode="json") for loc in session.exec(select(Location)).all()],
        # never export password hashes
        "users": [u.model_dump(mode="json", exclude={"password_hash"}) for u in users],
        "export_date": utcnow(),
    }


def reset_data(session: Session, ctx: AppContext, user: User | None = None, details: str = "Factory reset performed") -> None:
    """Wipe assets, locations, activity log and audit sessions. Users are kept."""
    session.exec(delete(Asset))
    session.exec(delete(Location))
    session.exec(delete(AuditLog))
    session.exec(delete(AuditSession))
    add_log(session, LogAction.RESET, "System", details, user)
    session.commit()
    ctx.current_audit_id = None


def _parents_first(locations: list[Location]) -> list[Location]:
    by_id = {loc.id: loc for loc in locations}
    ordered = [by_id[row["id"]] for row in hierarchical_locations(locations)]
    seen = {loc.id for loc in ordered}
    # rows whose parent is not part of the import go last
    return ordered + [loc for loc in locations if loc.id not in seen]


def _timestamps_as_utc(row: dict, *keys: str) -> dict:
    for key in keys:
        if row.get(key) is None:
            # let the table default fill it
            row.pop(key, None)
        else:
            row[key] = as_utc(row[key])
    return row


def import_data(session: Session, ctx: AppContext, payload: BackupPayload, user: User | None = None) -> dict:
    """Replace the register with the rows of a backup.

    Rows arrive validated by ``BackupPayload``; users in the backup are ignored.
    """
    locations = [
        Location(**_timestamps_as_utc(row.model_dump(), "created_at"))
        for row in payload.locations
    ]
    assets = []
    for row in payload.assets:
        data = _timestamps_as_utc(row.model_dump(), "created_at", "deletion_request_date")
        data["status"] = row.status.value
        assets.append(Asset(**data))

    reset_data(session, ctx, user)

    for loc in _parents_first(locations):
        session.add(loc)
    session.flush()
    for asset in assets:
        session.add(asset)
    add_log(session, LogAction.RESET, "System", "Data imported", user)
    session.commit()
    return {"assets": len(assets), "locations": len(locations)}
