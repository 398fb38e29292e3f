# Overview: Operational report routes: day reports, consignment lists, branch, revenue and dashboard.

"""
Report routes.

All reports are tenant-scoped to g.operator_id. Day reports take
?date=YYYY-MM-DD plus page/limit/sort_field/sort_order and carry a
totals_row on their last page. Dashboard endpoints return {"data": [...]}
aggregates for charts.
"""
from flask import Blueprint, g, jsonify, request

from ..constants import ROLE_ADMIN, ROLE_MANAGER
from ..decorators import require_auth, require_role
from ..errors import CargoError
from ..services import reporting_service
from .helpers import cargo_error_response, page_args

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _day_report(report_fn):
    page, limit = page_args()
    try:
        result = report_fn(
            operator_id=g.operator_id,
            on=request.args.get("date"),
            page=page,
            limit=limit,
            sort_field=request.args.get("sort_field"),
            sort_order=request.args.get("sort_order"),
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@reports_bp.get("/bookings")
@require_auth
def booking_report_route():
    return _day_report(reporting_service.booking_report)


@reports_bp.get("/deliveries")
@require_auth
def delivery_report_route():
    return _day_report(reporting_service.delivery_report)


@reports_bp.get("/loading")
@require_auth
def loading_report_route():
    return _day_report(reporting_service.loading_report)


@reports_bp.get("/unloading")
@require_auth
def unloading_report_route():
    return _day_report(reporting_service.unloading_report)


@reports_bp.get("/revenue")
@require_auth
@require_role(ROLE_ADMIN, ROLE_MANAGER)
def revenue_report_route():
    """Query params: start, end (YYYY-MM-DD, inclusive)."""
    try:
        result = reporting_service.revenue_report(
            operator_id=g.operator_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@reports_bp.get("/status")
@require_auth
def status_report_route():
    return _day_report(reporting_service.status_report)


def _consignment_report(report_fn):
    page, limit = page_args()
    try:
        result = report_fn(
            operator_id=g.operator_id,
            on=request.args.get("date"),
            branch_id=request.args.get("branch_id"),
            page=page,
            limit=limit,
            sort_field=request.args.get("sort_field"),
            sort_order=request.args.get("sort_order"),
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


@reports_bp.get("/incoming")
@require_auth
def incoming_consignments_route():
    """Query params: date, branch_id (destination; optional), page, limit, sort_field, sort_order."""
    return _consignment_report(reporting_service.incoming_consignments)


@reports_bp.get("/outgoing")
@require_auth
def outgoing_consignments_route():
    """Query params: date, branch_id (origin; optional), page, limit, sort_field, sort_order."""
    return _consignment_report(reporting_service.outgoing_consignments)


@reports_bp.get("/branches")
@require_auth
def branch_report_route():
    try:
        result = reporting_service.branch_report(
            operator_id=g.operator_id,
            on=request.args.get("date"),
            sort_order=request.args.get("sort_order"),
        )
        return jsonify(result), 200
    except CargoError as e:
        return cargo_error_response(e)


# -- Dashboard --

@reports_bp.get("/dashboard/today")
@require_auth
def dashboard_today_route():
    try:
        data = reporting_service.bookings_by_lr_type(
            operator_id=g.operator_id, on=request.args.get("date"),
        )
        return jsonify({"data": data}), 200
    except CargoError as e:
        return cargo_error_response(e)


@reports_bp.get("/dashboard/branches")
@require_auth
def dashboard_branches_route():
    try:
        data = reporting_service.bookings_by_branch(
            operator_id=g.operator_id, on=request.args.get("date"),
        )
        return jsonify({"data": data}), 200
    except CargoError as e:
        return cargo_error_response(e)


@reports_bp.get("/dashboard/six-months")
@require_auth
def dashboard_six_months_route():
    """Query params: date (last month's anchor, default today), month ("Jun 2025")."""
    try:
        data = reporting_service.six_month_bookings(
            operator_id=g.operator_id,
            on=request.args.get("date"),
            month=request.args.get("month"),
        )
        return jsonify({"data": data}), 200
    except CargoError as e:
        return cargo_error_response(e)


@reports_bp.get("/dashboard/pending")
@require_auth
def dashboard_pending_route():
    data = reporting_service.pending_by_branch(operator_id=g.operator_id)
    return jsonify({"data": data}), 200
