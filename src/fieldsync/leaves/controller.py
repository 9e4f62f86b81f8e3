from __future__ import annotations

from flask import Flask, request

from ..common.http import api_view, expected_version, json_body, ok
from ..container import Container
from ..core.enums import LeaveStatus
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    registry = container.leave_registry

    decisions = {
        "approve": registry.approve,
        "reject": registry.reject,
        "reconsider-approve": registry.reconsider_approve,
        "reconsider-reject": registry.reconsider_reject,
    }

    @app.route("/api/leaves/pending", methods=["GET"], endpoint="api_leaves_pending")
    @api_view
    def pending():
        return ok([r.to_view() for r in registry.list_pending()])

    @app.route("/api/leaves/months/<year_month>/summary", methods=["GET"], endpoint="api_leaves_month_summary")
    @api_view
    def month_summary(year_month: str):
        summary = registry.month_leave_summary(year_month)
        return ok({**summary, "decided": [r.to_view() for r in summary["decided"]]})

    @app.route("/api/leaves/<username>", methods=["POST"], endpoint="api_leaves_submit")
    @api_view
    def submit(username: str):
        body = json_body()
        created = registry.submit(
            username,
            body.get("startDate") or "",
            body.get("endDate") or "",
            body.get("reason") or "",
        )
        return ok(created.to_view(), 201)

    @app.route("/api/leaves/<username>", methods=["GET"], endpoint="api_leaves_list")
    @api_view
    def list_for_user(username: str):
        status = None
        if request.args.get("status"):
            try:
                status = LeaveStatus(request.args["status"])
            except ValueError:
                raise ValidationError(f"Invalid leave status {request.args['status']!r}")
        return ok([r.to_view() for r in registry.list_for_user(username, status=status)])

    @app.route("/api/leaves/<username>/<request_id>", methods=["GET"], endpoint="api_leaves_get")
    @api_view
    def get_request(username: str, request_id: str):
        return ok(registry.get(username, request_id).to_view())

    @app.route("/api/leaves/<username>/<request_id>/<decision>", methods=["POST"], endpoint="api_leaves_decide")
    @api_view
    def decide(username: str, request_id: str, decision: str):
        handler = decisions.get(decision)
        if handler is None:
            raise ValidationError(f"Unknown decision {decision!r} (expected one of: {', '.join(decisions)})")
        body = json_body()
        result = handler(
            username,
            request_id,
            actor=body.get("actor") or "admin",
            expected_version=expected_version(body),
        )
        return ok(result.to_dict())
