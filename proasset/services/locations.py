from sqlmodel import Session, select

from proasset.error import abort
from proasset.models import Asset, Location


def hierarchical_locations(locations: list[Location], parent_id: str | None = None, level: int = 0) -> list[dict]:
    """Depth-first flattening of the location forest, each row tagged with its level."""
    rows: list[dict] = []
    for loc in locations:
        if loc.parent_id != parent_id:
            continue
        rows.append({"id": loc.id, "name": loc.name, "parent_id": loc.parent_id, "level": level})
        rows.extend(hierarchical_locations(locations, loc.id, level + 1))
    return rows


def ensure_location_exists(session: Session, location_id: str, what: str = "Location") -> Location:
    loc = session.get(Location, location_id)
    if not loc:
        abort(404, "NOT_FOUND", f"{what} not found")
    return loc


def ensure_deletable(session: Session, location_id: str) -> None:
    child = session.exec(select(Location.id).where(Location.parent_id == location_id)).first()
    if child is not None:
        abort(409, "LOCATION_HAS_CHILDREN", "Location still has sub-locations")

    asset = session.exec(select(Asset.id).where(Asset.location_id == location_id)).first()
    if asset is not None:
        abort(409, "LOCATION_HAS_ASSETS", "Location still holds assets")
