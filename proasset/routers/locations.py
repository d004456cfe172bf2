from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from proasset.db import get_session
from proasset.deps import require_permission
from proasset.models import Location, User
from proasset.schemas import FeatureKey, LocationCreate, LocationRead, LocationTreeItem, LogAction, PermissionAction
from proasset.services.activity import add_log
from proasset.services.locations import ensure_deletable, ensure_location_exists, hierarchical_locations

router = APIRouter(prefix="/locations", tags=["locations"])

can_view = require_permission(FeatureKey.locations, PermissionAction.view)
can_edit = require_permission(FeatureKey.locations, PermissionAction.edit)


def _all_locations(session: Session) -> list[Location]:
    # insertion order keeps siblings stable in the tree
    return session.exec(select(Location).order_by(Location.created_at.asc(), Location.id.asc())).all()


@router.get("", response_model=list[LocationRead])
def list_locations(
    session: Session = Depends(get_session),
    _user: User = Depends(can_view),
):
    return _all_locations(session)


@router.get("/tree", response_model=list[LocationTreeItem])
def location_tree(
    session: Session = Depends(get_session),
    _user: User = Depends(can_view),
):
    return hierarchical_locations(_all_locations(session))


@router.post("", response_model=LocationRead)
def create_location(
    data: LocationCreate,
    session: Session = Depends(get_session),
    user: User = Depends(can_edit),
):
    parent_id = (data.parent_id or "").strip() or None
    if parent_id is not None:
        ensure_location_exists(session, parent_id, "Parent location")

    loc = Location(name=data.name.strip(), parent_id=parent_id)
    session.add(loc)
    add_log(session, LogAction.CREATE, loc.name, f"Created location {loc.name}", user)
    session.commit()
    session.refresh(loc)
    return loc


@router.delete("/{location_id}")
def delete_location(
    location_id: str,
    session: Session = Depends(get_session),
    user: User = Depends(can_edit),
):
    loc = ensure_location_exists(session, location_id)
    ensure_deletable(session, location_id)

    session.delete(loc)
    add_log(session, LogAction.DELETE, "Location", f"Deleted location {location_id}", user)
    session.commit()
    return {"ok": True}
