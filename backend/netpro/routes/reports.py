# Overview: Flask API routes for reports, the dashboard and notifications.

from flask import Blueprint, jsonify, request

from ..decorators import api_errors, json_body, require_auth, require_permission
from ..services import dashboard_service, report_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")
dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")


@reports_bp.get("")
@require_auth
@require_permission("reports")
@api_errors("Failed to generate report")
def get_report_route():
    """
    Query params:
    - type: income | sales | inventory | cashpower | customer
    - range: daily | weekly | monthly | quarterly | yearly | custom
    - startDate / endDate: ISO dates, required for custom
    """
    report = report_service.generate_report(
        request.args.get("type", "income"),
        date_range=request.args.get("range"),
        start_date=request.args.get("startDate"),
        end_date=request.args.get("endDate"),
    )
    return jsonify({"success": True, **report}), 200


@reports_bp.post("")
@require_auth
@require_permission("reports")
@api_errors("Failed to generate report")
def post_report_route():
    """Same as GET with the parameters in a JSON body (reportType, dateRange, startDate, endDate)."""
    data = json_body()
    report = report_service.generate_report(
        data.get("reportType") or data.get("type") or "income",
        date_range=data.get("dateRange") or data.get("range"),
        start_date=data.get("startDate"),
        end_date=data.get("endDate"),
    )
    return jsonify({"success": True, **report}), 200


@dashboard_bp.get("/dashboard")
@require_auth
@require_permission("dashboard")
@api_errors("Failed to fetch dashboard data")
def dashboard_route():
    return jsonify({"success": True, "data": dashboard_service.get_dashboard_data()}), 200


@dashboard_bp.get("/notifications")
@require_auth
@api_errors("Failed to fetch notifications")
def notifications_route():
    return jsonify({"success": True, **dashboard_service.get_notifications()}), 200
