# Overview: Flask API routes for items; parses input and returns JSON responses.

# backend/salonpos/routes/items.py
"""
Item (service / product) routes.

LEDGER: stock and average_cost are read-only here. A "stock" value on create
is an opening balance and is booked as an Adjustment movement at the
optional "unit_cost"; after that, stock only changes through /api/inventory.
"""
from flask import Blueprint, current_app, request

from ..models import Item
from ..services.costing import validate_unit_cost
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_item,
    ValidationError,
    NotFoundError,
    InvalidOperationError,
)

ITEM_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "category_id", "is_service", "reorder_threshold", "stock"},
    required_on_create={"name", "price", "category_id"},
)

ITEM_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "price", "category_id", "reorder_threshold"},
)

items_bp = Blueprint("items", __name__, url_prefix="/api/items")


def _bool_arg(name: str):
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.lower() in ("1", "true", "yes")


@items_bp.get("")
def list_items_route():
    """
    List items ordered by name.

    Query params:
    - category_id: int (optional)
    - is_service: true/false (optional)
    """
    from ..services.catalog_service import list_items

    rows = list_items(
        category_id=request.args.get("category_id", type=int),
        is_service=_bool_arg("is_service"),
    )
    return {"items": [r.to_dict() for r in rows]}, 200


@items_bp.post("")
def create_item_route():
    payload = request.get_json(silent=True) or {}
    opening_unit_cost = payload.pop("unit_cost", None) if isinstance(payload, dict) else None

    try:
        patch = validate_payload(model=Item, payload=payload, policy=ITEM_CREATE_POLICY, partial=False)
        enforce_rules_item(patch)
        opening_stock = patch.pop("stock", None)
        if opening_stock is not None and opening_stock < 0:
            raise ValidationError("stock must be >= 0")
        if opening_unit_cost is not None:
            opening_unit_cost = validate_unit_cost(opening_unit_cost)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.catalog_service import create_item

    try:
        item = create_item(patch=patch, opening_stock=opening_stock, opening_unit_cost=opening_unit_cost)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create item")
        return {"error": "Internal server error"}, 500

    return {"item": item.to_dict()}, 201


@items_bp.get("/<int:item_id>")
def get_item_route(item_id: int):
    from ..services.catalog_service import get_item

    try:
        return {"item": get_item(item_id).to_dict()}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@items_bp.put("/<int:item_id>")
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Item, payload=payload, policy=ITEM_UPDATE_POLICY, partial=True)
        enforce_rules_item(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.catalog_service import update_item

    try:
        item = update_item(item_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update item")
        return {"error": "Internal server error"}, 500

    return {"item": item.to_dict()}, 200


@items_bp.delete("/<int:item_id>")
def delete_item_route(item_id: int):
    from ..services.catalog_service import delete_item

    try:
        delete_item(item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200


@items_bp.get("/<int:item_id>/employees")
def item_employees_route(item_id: int):
    """Employees actively assigned to this item, with their commission rate for it."""
    from ..services.people_service import list_item_employees
    from ..money import decimal_str

    try:
        rows = list_item_employees(item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    for row in rows:
        row["commission_rate"] = decimal_str(row["commission_rate"])
    return {"employees": rows}, 200
