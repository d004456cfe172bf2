from fastapi import Request

from proasset.services.permissions import PermissionEvaluator


class AppContext:
    """Per-application state that is not a store collection."""

    def __init__(self, permissions: PermissionEvaluator | None = None):
        self.permissions = permissions or PermissionEvaluator()
        # id of the audit session scans currently go to, or None
        self.current_audit_id: str | None = None


def get_context(request: Request) -> AppContext:
    return request.app.state.ctx
