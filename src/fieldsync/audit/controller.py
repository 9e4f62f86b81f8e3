from __future__ import annotations

from flask import Flask, request

from ..common.http import api_view, ok
from ..container import Container
from ..core.constants import DEFAULT_AUDIT_LIMIT
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/api/audit", methods=["GET"], endpoint="api_audit_list")
    @api_view
    def list_entries():
        try:
            limit = int(request.args.get("limit") or DEFAULT_AUDIT_LIMIT)
        except ValueError:
            raise ValidationError("limit must be an integer")
        entries = container.audit_trail.list(
            subject_prefix=request.args.get("prefix") or None,
            action=request.args.get("action") or None,
            limit=limit,
        )
        return ok([e.to_view() for e in entries])
