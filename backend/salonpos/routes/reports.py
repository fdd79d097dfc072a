from flask import Blueprint, jsonify, request

from salonpos.services import reporting_service
from salonpos.validation import ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _period_args():
    return reporting_service.resolve_period(
        request.args.get("period", "today"),
        request.args.get("start"),
        request.args.get("end"),
    )


@reports_bp.get("/revenue")
def revenue_report():
    try:
        start, end = _period_args()
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    report = reporting_service.revenue_report(start=start, end=end)
    return jsonify(report), 200


@reports_bp.get("/inventory")
def inventory_report():
    try:
        start, end = _period_args()
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    report = reporting_service.inventory_report(start=start, end=end)
    return jsonify(report), 200


@reports_bp.get("/expenses")
def expense_report():
    try:
        start, end = _period_args()
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    report = reporting_service.expense_report(start=start, end=end)
    return jsonify(report), 200


@reports_bp.get("/item-sales")
def item_sales_report():
    try:
        start, end = _period_args()
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    report = reporting_service.item_sales_report(start=start, end=end)
    return jsonify(report), 200


@reports_bp.get("/customer-sales")
def customer_sales_report():
    try:
        start, end = _period_args()
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    report = reporting_service.customer_sales_report(start=start, end=end)
    return jsonify(report), 200


@reports_bp.get("/category-sales")
def category_sales_report():
    try:
        start, end = _period_args()
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400

    report = reporting_service.category_sales_report(start=start, end=end)
    return jsonify(report), 200


@reports_bp.get("/low-stock")
def low_stock_report():
    report = reporting_service.low_stock_report()
    return jsonify(report), 200
