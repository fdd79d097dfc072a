# Overview: Flask API routes for inventory records; parses input and returns JSON responses.

# backend/salonpos/routes/inventory.py
"""
Inventory record routes.

Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- start/end filtering is inclusive.

Write semantics:
- POST applies the movement incrementally to the item's current ledger.
- PUT/DELETE on an existing record replay the item's whole history
  (reconciliation); the response carries the item's resulting ledger.
"""
from flask import Blueprint, current_app, request

from ..models import InventoryRecord
from salonpos.time_utils import parse_iso_datetime
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_inventory_record,
    ValidationError,
    NotFoundError,
    InvalidOperationError,
)


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

INVENTORY_RECORD_POLICY = ModelValidationPolicy(
    writable_fields={"item_id", "type", "quantity", "unit_cost", "occurred_at", "notes"},
    required_on_create={"item_id", "type", "quantity"},
)


def _item_dict(item_id: int) -> dict:
    from ..services.catalog_service import get_item

    return get_item(item_id).to_dict()


@inventory_bp.get("")
def list_records_route():
    """
    List inventory records, newest first.

    Query params:
    - item_id: int (optional)
    - type: Purchase | Return | Usage | Adjustment (optional)
    - start, end: ISO-8601 (optional, inclusive)
    - limit: int (default 200, max 1000)
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return {"error": "start and end must be ISO-8601 datetimes"}, 400

    limit = min(max(request.args.get("limit", default=200, type=int), 1), 1000)

    from ..services.inventory_service import list_records

    try:
        rows = list_records(
            item_id=request.args.get("item_id", type=int),
            movement_type=request.args.get("type"),
            start=start,
            end=end,
            limit=limit,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"records": [r.to_dict() for r in rows]}, 200


@inventory_bp.post("")
def create_record_route():
    """
    Record a stock movement.

    unit_cost is required for Purchase, Return and Adjustment; for Usage it is
    ignored and the movement is priced at the item's average cost.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=InventoryRecord,
            payload=payload,
            policy=INVENTORY_RECORD_POLICY,
            partial=False,
        )
        enforce_rules_inventory_record(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.inventory_service import record_movement

    try:
        record = record_movement(
            item_id=patch["item_id"],
            movement_type=patch["type"],
            quantity=patch["quantity"],
            unit_cost=patch.get("unit_cost"),
            occurred_at=patch.get("occurred_at"),
            notes=patch.get("notes"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to record inventory movement")
        return {"error": "Internal server error"}, 500

    return {"record": record.to_dict(), "item": _item_dict(record.item_id)}, 201


@inventory_bp.get("/<int:record_id>")
def get_record_route(record_id: int):
    from ..services.inventory_service import get_record

    try:
        return {"record": get_record(record_id).to_dict()}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@inventory_bp.put("/<int:record_id>")
def update_record_route(record_id: int):
    """Edit a historical record; omitted fields keep their value. Reconciles the item."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=InventoryRecord,
            payload=payload,
            policy=INVENTORY_RECORD_POLICY,
            partial=True,
        )
        enforce_rules_inventory_record(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.inventory_service import update_record

    try:
        record = update_record(record_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update inventory record")
        return {"error": "Internal server error"}, 500

    return {"record": record.to_dict(), "item": _item_dict(record.item_id)}, 200


@inventory_bp.delete("/<int:record_id>")
def delete_record_route(record_id: int):
    from ..services.inventory_service import delete_record

    try:
        item_id = delete_record(record_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to delete inventory record")
        return {"error": "Internal server error"}, 500

    return {"ok": True, "item": _item_dict(item_id)}, 200


@inventory_bp.get("/items/<int:item_id>/summary")
def inventory_summary_route(item_id: int):
    from ..services.inventory_service import get_inventory_summary
    from ..money import decimal_str

    try:
        summary = get_inventory_summary(item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    summary["average_cost"] = decimal_str(summary["average_cost"])
    summary["inventory_value"] = decimal_str(summary["inventory_value"])
    return summary, 200


@inventory_bp.get("/items/<int:item_id>/cogs")
def inventory_cogs_route(item_id: int):
    """What consuming ?quantity= units would cost at the current average cost."""
    quantity = request.args.get("quantity", type=int)
    if quantity is None:
        return {"error": "quantity is required"}, 400

    from ..services.inventory_service import calculate_cogs
    from ..money import decimal_str

    try:
        result = calculate_cogs(item_id, quantity)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    result["unit_cost"] = decimal_str(result["unit_cost"])
    result["total_cost"] = decimal_str(result["total_cost"])
    return result, 200


@inventory_bp.post("/items/<int:item_id>/reconcile")
def reconcile_item_route(item_id: int):
    """Replay the item's full history and overwrite its stock and average cost."""
    from ..services.inventory_service import reconcile_item

    try:
        snapshot = reconcile_item(item_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to reconcile item")
        return {"error": "Internal server error"}, 500

    return {"item_id": item_id, "ledger": snapshot.to_dict()}, 200
