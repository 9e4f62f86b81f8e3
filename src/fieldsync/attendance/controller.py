from __future__ import annotations

from flask import Flask, request

from ..common.http import api_view, expected_version, json_body, ok
from ..container import Container
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    ledger = container.attendance_ledger

    def _usernames(body: dict) -> list[str]:
        names = body.get("usernames")
        if names is None and request.args.get("usernames"):
            names = [n for n in request.args["usernames"].split(",") if n.strip()]
        if names is None:
            return container.users_repo.list_usernames()
        if not isinstance(names, list):
            raise ValidationError("usernames must be a list")
        return [str(n).strip() for n in names]

    @app.route("/api/attendance/<work_date>/<username>", methods=["GET"], endpoint="api_attendance_get")
    @api_view
    def get_attendance(work_date: str, username: str):
        return ok(ledger.get(username, work_date).to_view())

    @app.route("/api/attendance/<work_date>/<username>", methods=["POST"], endpoint="api_attendance_mark")
    @api_view
    def mark_attendance(work_date: str, username: str):
        body = json_body()
        record = ledger.mark(
            username,
            work_date,
            body.get("status"),
            actor=body.get("actor") or "admin",
            expected_version=expected_version(body),
        )
        return ok(record.to_view())

    @app.route("/api/attendance/<username>", methods=["GET"], endpoint="api_attendance_range")
    @api_view
    def attendance_range(username: str):
        start = request.args.get("start") or ""
        end = request.args.get("end") or ""
        return ok([r.to_view() for r in ledger.range(username, start, end)])

    @app.route("/api/attendance/<work_date>/mark-all", methods=["POST"], endpoint="api_attendance_mark_all")
    @api_view
    def mark_all(work_date: str):
        body = json_body()
        written = ledger.mark_all(work_date, _usernames(body), body.get("status"), actor=body.get("actor") or "admin")
        return ok([r.to_view() for r in written])

    @app.route("/api/attendance/<work_date>/summary", methods=["GET"], endpoint="api_attendance_summary")
    @api_view
    def daily_summary(work_date: str):
        return ok(ledger.daily_summary(work_date, _usernames({})))

    @app.route("/api/attendance/months/<year_month>/summary", methods=["GET"], endpoint="api_attendance_monthly")
    @api_view
    def monthly_summary(year_month: str):
        return ok(ledger.monthly_summary(year_month, _usernames({})))

    @app.route("/api/attendance/<work_date>/sync-leave", methods=["POST"], endpoint="api_attendance_sync_leave")
    @api_view
    def sync_leave(work_date: str):
        body = json_body()
        synced = container.leave_registry.sync_approved_leave(
            work_date, _usernames(body), actor=body.get("actor") or "system"
        )
        return ok({"synced": synced})
