"""
Role-based permission table and its evaluator.

Each role owns an independent table of feature -> FeaturePermission. A feature
entry may carry field-level overrides; a field without an override inherits
the feature-level value. There is no inheritance between roles.
"""
import logging
from copy import deepcopy

from sqlmodel import Session, select

from proasset.models import RolePermission, utcnow
from proasset.schemas import FeatureKey, FeaturePermission, FieldPermission, PermissionAction, Role

logger = logging.getLogger(__name__)

RolePermissionConfig = dict[FeatureKey, FeaturePermission]


def _fp(view: bool, edit: bool, fields: dict | None = None) -> FeaturePermission:
    if fields is None:
        return FeaturePermission(view=view, edit=edit)
    return FeaturePermission(
        view=view,
        edit=edit,
        fields={k: FieldPermission(**v) for k, v in fields.items()},
    )


# fields that the permission editor offers per feature
RESTRICTABLE_FIELDS: dict[FeatureKey, list[str]] = {
    FeatureKey.assets: ["price", "purchase_date", "useful_life"],
    FeatureKey.dashboard: [],
    FeatureKey.locations: [],
    FeatureKey.approvals: [],
    FeatureKey.audit: [],
    FeatureKey.settings: [],
    FeatureKey.users: [],
}

DEFAULT_ROLE_PERMISSIONS: dict[Role, RolePermissionConfig] = {
    Role.SUPER_ADMIN: {
        FeatureKey.dashboard: _fp(True, True),
        FeatureKey.assets: _fp(True, True),
        FeatureKey.locations: _fp(True, True),
        FeatureKey.approvals: _fp(True, True),
        FeatureKey.audit: _fp(True, True),
        FeatureKey.settings: _fp(True, True),
        FeatureKey.users: _fp(True, True),
    },
    Role.MANAGER: {
        FeatureKey.dashboard: _fp(True, False),
        FeatureKey.assets: _fp(True, True),
        FeatureKey.locations: _fp(True, True),
        FeatureKey.approvals: _fp(True, True),
        FeatureKey.audit: _fp(True, True),
        FeatureKey.settings: _fp(True, False),
        FeatureKey.users: _fp(True, False),
    },
    Role.STAFF: {
        FeatureKey.dashboard: _fp(True, False),
        # staff cannot see purchase price
        FeatureKey.assets: _fp(True, False, {"price": {"view": False, "edit": False}}),
        FeatureKey.locations: _fp(True, False),
        FeatureKey.approvals: _fp(False, False),
        FeatureKey.audit: _fp(True, True),
        FeatureKey.settings: _fp(False, False),
        FeatureKey.users: _fp(False, False),
    },
    Role.AUDITOR: {
        FeatureKey.dashboard: _fp(False, False),
        FeatureKey.assets: _fp(True, False),
        FeatureKey.locations: _fp(True, False),
        FeatureKey.approvals: _fp(False, False),
        FeatureKey.audit: _fp(True, True),
        FeatureKey.settings: _fp(True, False),
        FeatureKey.users: _fp(False, False),
    },
    Role.VIEWER: {
        FeatureKey.dashboard: _fp(True, False),
        FeatureKey.assets: _fp(True, False),
        FeatureKey.locations: _fp(True, False),
        FeatureKey.approvals: _fp(False, False),
        FeatureKey.audit: _fp(False, False),
        FeatureKey.settings: _fp(False, False),
        FeatureKey.users: _fp(False, False),
    },
}


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class PermissionEvaluator:
    """Evaluates (role, feature, action, field) against a mutable per-role table."""

    def __init__(self, table: dict[Role, RolePermissionConfig] | None = None):
        self._table = deepcopy(table if table is not None else DEFAULT_ROLE_PERMISSIONS)

    def has_permission(self, role, feature, action, field: str | None = None) -> bool:
        """Anything unknown or unconfigured is an implicit deny; never raises."""
        role = _coerce(Role, role)
        feature = _coerce(FeatureKey, feature)
        action = _coerce(PermissionAction, action)
        if role is None or feature is None or action is None:
            return False

        config = self._table.get(role, {}).get(feature)
        if config is None:
            return False

        if field and config.fields and field in config.fields:
            return bool(getattr(config.fields[field], action.value))
        return bool(getattr(config, action.value))

    def update_role_permission(self, role: Role, feature: FeatureKey, config: FeaturePermission) -> None:
        # full replace, callers merge partial edits themselves
        self._table.setdefault(Role(role), {})[FeatureKey(feature)] = config.model_copy(deep=True)
        logger.info("permission updated: role=%s feature=%s", Role(role).value, FeatureKey(feature).value)

    def get_feature(self, role: Role, feature: FeatureKey) -> FeaturePermission | None:
        config = self._table.get(Role(role), {}).get(FeatureKey(feature))
        return config.model_copy(deep=True) if config is not None else None

    def role_config(self, role: Role) -> dict[str, FeaturePermission]:
        return {f.value: c.model_copy(deep=True) for f, c in self._table.get(Role(role), {}).items()}

    def snapshot(self) -> dict[str, dict[str, FeaturePermission]]:
        return {r.value: self.role_config(r) for r in self._table}


# ---------- mirror of runtime edits in the store ----------

def load_permission_overrides(session: Session, evaluator: PermissionEvaluator) -> int:
    """Overlay stored edits on top of the seed table. Returns rows applied."""
    applied = 0
    for row in session.exec(select(RolePermission)).all():
        role = _coerce(Role, row.role)
        feature = _coerce(FeatureKey, row.feature)
        if role is None or feature is None:
            logger.warning("ignoring stored permission for unknown %s/%s", row.role, row.feature)
            continue
        evaluator.update_role_permission(
            role, feature, FeaturePermission(view=row.view, edit=row.edit, fields=row.fields)
        )
        applied += 1
    return applied


def save_permission_override(session: Session, role: Role, feature: FeatureKey, config: FeaturePermission) -> None:
    fields = None
    if config.fields is not None:
        fields = {k: v.model_dump() for k, v in config.fields.items()}

    row = session.get(RolePermission, (Role(role).value, FeatureKey(feature).value))
    if row is None:
        row = RolePermission(role=Role(role).value, feature=FeatureKey(feature).value)
    row.view = config.view
    row.edit = config.edit
    row.fields = fields
    row.updated_at = utcnow()
    session.add(row)
    session.commit()
