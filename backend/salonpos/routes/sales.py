# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/salonpos/routes/sales.py
"""
Sales API routes.

POST body:
    {
        "customer_id": 3,                       (optional)
        "lines": [{"item_id", "employee_id", "quantity", "price", "total"?}],
        "subtotal": "45.00",                    (optional, default total - tax)
        "tax": "0.00",                          (optional)
        "total": "45.00",
        "occurred_at": "2026-01-02T10:00:00Z",  (optional)
        "notes": "..."                          (optional)
    }

The whole sale, including stock consumption for product lines, is one
transaction: a failure leaves no sale and no inventory movement behind.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import sales_service
from salonpos.time_utils import parse_iso_datetime
from ..validation import InvalidOperationError, NotFoundError, ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
def list_sales_route():
    """
    Query params:
    - start, end: ISO-8601 (inclusive)
    - customer_id: int
    - limit: int (default 200)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start and end must be ISO-8601 datetimes"}), 400

    sales = sales_service.list_sales(
        start=start,
        end=end,
        customer_id=request.args.get("customer_id", type=int),
        limit=min(max(request.args.get("limit", default=200, type=int), 1), 1000),
    )
    return jsonify({"sales": [s.to_dict() for s in sales]}), 200


@sales_bp.post("")
def create_sale_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        sale = sales_service.create_sale(
            lines=data.get("lines"),
            total=data.get("total"),
            customer_id=data.get("customer_id"),
            subtotal=data.get("subtotal"),
            tax=data.get("tax"),
            occurred_at=data.get("occurred_at"),
            notes=data.get("notes"),
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InvalidOperationError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"sale": sale.to_dict(include_lines=True)}), 201


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404

    return jsonify({"sale": sale.to_dict(include_lines=True)}), 200


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
def list_invoices_route():
    """
    Query params:
    - period: all (default) | today | week | month | year | custom
    - start, end: ISO-8601, required for custom
    """
    from ..services import reporting_service

    period = request.args.get("period", "all")
    if period == "all":
        start = end = None
    else:
        try:
            start, end = reporting_service.resolve_period(
                period, request.args.get("start"), request.args.get("end")
            )
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400

    return jsonify(sales_service.list_invoices(start=start, end=end)), 200
