# Overview: Flask API routes for expenses; parses input and returns JSON responses.

# backend/salonpos/routes/expenses.py
from flask import Blueprint, current_app, request

from ..models import Expense, ExpenseCategory
from salonpos.time_utils import parse_iso_datetime
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_expense,
    ValidationError,
    NotFoundError,
    InvalidOperationError,
)

EXPENSE_CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={"category_id", "amount", "description", "payment_method", "occurred_at"},
    required_on_create={"category_id", "amount"},
)

expense_categories_bp = Blueprint("expense_categories", __name__, url_prefix="/api/expense-categories")
expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expense_categories_bp.get("")
def list_expense_categories_route():
    from ..services.expense_service import list_expense_categories

    return {"categories": [c.to_dict() for c in list_expense_categories()]}, 200


@expense_categories_bp.post("")
def create_expense_category_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=ExpenseCategory, payload=payload, policy=EXPENSE_CATEGORY_POLICY, partial=False
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.expense_service import create_expense_category

    try:
        category = create_expense_category(patch=patch)
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"category": category.to_dict()}, 201


@expense_categories_bp.put("/<int:category_id>")
def update_expense_category_route(category_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=ExpenseCategory, payload=payload, policy=EXPENSE_CATEGORY_POLICY, partial=True
        )
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.expense_service import update_expense_category

    try:
        category = update_expense_category(category_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"category": category.to_dict()}, 200


@expense_categories_bp.delete("/<int:category_id>")
def delete_expense_category_route(category_id: int):
    from ..services.expense_service import delete_expense_category

    try:
        delete_expense_category(category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200


@expenses_bp.get("")
def list_expenses_route():
    """
    Query params:
    - start, end: ISO-8601 (inclusive)
    - category_id: int
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return {"error": "start and end must be ISO-8601 datetimes"}, 400

    from ..services.expense_service import list_expenses

    rows = list_expenses(start=start, end=end, category_id=request.args.get("category_id", type=int))
    return {"expenses": [e.to_dict() for e in rows]}, 200


@expenses_bp.post("")
def create_expense_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.expense_service import create_expense

    try:
        expense = create_expense(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to create expense")
        return {"error": "Internal server error"}, 500

    return {"expense": expense.to_dict()}, 201


@expenses_bp.get("/<int:expense_id>")
def get_expense_route(expense_id: int):
    from ..services.expense_service import get_expense

    try:
        return {"expense": get_expense(expense_id).to_dict()}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@expenses_bp.put("/<int:expense_id>")
def update_expense_route(expense_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=True)
        enforce_rules_expense(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.expense_service import update_expense

    try:
        expense = update_expense(expense_id, patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to update expense")
        return {"error": "Internal server error"}, 500

    return {"expense": expense.to_dict()}, 200


@expenses_bp.delete("/<int:expense_id>")
def delete_expense_route(expense_id: int):
    from ..services.expense_service import delete_expense

    try:
        delete_expense(expense_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"ok": True}, 200
