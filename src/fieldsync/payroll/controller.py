from __future__ import annotations

from decimal import Decimal

from flask import Flask, request

from ..common.http import api_view, expected_version, json_body, ok
from ..container import Container
from ..core.exceptions import ValidationError


def _money(totals: dict) -> dict:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in totals.items()}


def register(app: Flask, container: Container) -> None:
    payroll = container.payroll_aggregator

    def _usernames(body: dict) -> list[str]:
        names = body.get("usernames")
        if names is None:
            return container.users_repo.list_usernames()
        if not isinstance(names, list):
            raise ValidationError("usernames must be a list")
        return [str(n).strip() for n in names]

    @app.route("/api/payroll/<username>/history", methods=["GET"], endpoint="api_payroll_history")
    @api_view
    def history(username: str):
        data = payroll.history(username, order=request.args.get("order") or "desc")
        return ok({"records": [r.to_view() for r in data["records"]], "totals": _money(data["totals"])})

    @app.route("/api/payroll/<year_month>/overview", methods=["GET"], endpoint="api_payroll_overview")
    @api_view
    def overview(year_month: str):
        return ok(_money(payroll.month_overview(year_month, _usernames({}))))

    @app.route("/api/payroll/<year_month>/mark-paid", methods=["POST"], endpoint="api_payroll_mark_paid")
    @api_view
    def mark_paid(year_month: str):
        body = json_body()
        updated = payroll.bulk_mark_paid(_usernames(body), year_month, actor=body.get("actor") or "admin")
        return ok({"updated": updated})

    @app.route("/api/payroll/<username>/<year_month>", methods=["GET"], endpoint="api_payroll_get")
    @api_view
    def get_payroll(username: str, year_month: str):
        return ok(payroll.get(username, year_month).to_view())

    @app.route("/api/payroll/<username>/<year_month>", methods=["PUT"], endpoint="api_payroll_save")
    @api_view
    def save_payroll(username: str, year_month: str):
        body = json_body()
        saved = payroll.save(
            username,
            year_month,
            body,
            actor=body.get("actor") or "admin",
            expected_version=expected_version(body),
        )
        return ok(saved.to_view())

    @app.route("/api/payroll/<username>/<year_month>/status", methods=["POST"], endpoint="api_payroll_status")
    @api_view
    def set_status(username: str, year_month: str):
        body = json_body()
        updated = payroll.set_payment_status(
            username, year_month, body.get("paymentStatus"), actor=body.get("actor") or "admin"
        )
        return ok(updated.to_view())
