"""
Asset records: field-level visibility and the deletion approval workflow.

Deletion states per asset:

    Active --request_delete--> DeletionPending --approve_delete--> (removed)
                                   |
                                   +--reject_delete--> Active

``delete_asset`` removes an Active asset directly, for roles allowed to skip
the approval step.
"""
from datetime import date

from sqlmodel import Session

from proasset.error import abort
from proasset.models import Asset, User, utcnow
from proasset.schemas import DELETION_PENDING, AssetWrite, FeatureKey, LogAction
from proasset.services.activity import add_log
from proasset.services.permissions import RESTRICTABLE_FIELDS, PermissionEvaluator

ASSET_FIELDS = RESTRICTABLE_FIELDS[FeatureKey.assets]


# values a role gets on create when it may not set the field itself
NEW_ASSET_DEFAULTS = {
    "price": lambda: 0.0,
    "purchase_date": date.today,
    "useful_life": lambda: 5,
}


def get_asset_or_404(session: Session, asset_id: str) -> Asset:
    asset = session.get(Asset, asset_id)
    if not asset:
        abort(404, "NOT_FOUND", "Asset not found")
    return asset


def asset_view(asset: Asset, role: str, permissions: PermissionEvaluator) -> dict:
    data = asset.model_dump()
    for field in ASSET_FIELDS:
        if not permissions.has_permission(role, FeatureKey.assets, "view", field):
            data[field] = None
    return data


def resolve_restricted_fields(
    data: AssetWrite, existing: Asset | None, role: str, permissions: PermissionEvaluator
) -> dict:
    """Work out the stored value of each restricted field for a write.

    A missing value keeps the stored one on update. On create it falls back to
    the defaults when the role may not edit the field, and is required
    otherwise. A sent value the role may not edit must match the stored one.
    """
    resolved = {}
    for field in ASSET_FIELDS:
        value = getattr(data, field)
        allowed = permissions.has_permission(role, FeatureKey.assets, "edit", field)

        if value is None:
            if existing is not None:
                value = getattr(existing, field)
            elif allowed:
                abort(422, "VALIDATION_ERROR", f"Field {field} is required")
            else:
                value = NEW_ASSET_DEFAULTS[field]()
        elif not allowed and (existing is None or getattr(existing, field) != value):
            abort(403, "FIELD_FORBIDDEN", f"Role {role} may not edit field {field}")

        resolved[field] = value
    return resolved


def apply_write(asset: Asset, data: AssetWrite, restricted: dict) -> Asset:
    # full-record replace; deletion fields are owned by the workflow
    asset.name = data.name.strip()
    asset.category = data.category.strip()
    asset.location_id = data.location_id
    asset.price = restricted["price"]
    asset.purchase_date = restricted["purchase_date"]
    asset.useful_life = restricted["useful_life"]
    asset.status = data.status.value
    asset.barcode = (data.barcode or "").strip() or None
    asset.image = data.image
    return asset


def is_pending(asset: Asset) -> bool:
    return asset.deletion_status == DELETION_PENDING


def request_delete(session: Session, asset: Asset, user: User) -> Asset:
    if is_pending(asset):
        abort(409, "ALREADY_PENDING", "Deletion already requested for this asset")

    asset.deletion_status = DELETION_PENDING
    asset.deletion_request_date = utcnow()
    session.add(asset)
    session.commit()
    session.refresh(asset)
    return asset


def approve_delete(session: Session, asset: Asset, user: User) -> None:
    if not is_pending(asset):
        abort(409, "NOT_PENDING", "Asset has no pending deletion request")

    add_log(session, LogAction.APPROVE, "Asset", f"Approved deletion of asset {asset.id} ({asset.name})", user)
    session.delete(asset)
    session.commit()


def reject_delete(session: Session, asset: Asset, user: User) -> Asset:
    if not is_pending(asset):
        abort(409, "NOT_PENDING", "Asset has no pending deletion request")

    asset.deletion_status = None
    asset.deletion_request_date = None
    session.add(asset)
    add_log(session, LogAction.REJECT, "Asset", f"Rejected deletion of asset {asset.id} ({asset.name})", user)
    session.commit()
    session.refresh(asset)
    return asset


def delete_asset(session: Session, asset: Asset, user: User) -> None:
    add_log(session, LogAction.DELETE, "Asset", f"Deleted asset {asset.id} ({asset.name})", user)
    session.delete(asset)
    session.commit()
