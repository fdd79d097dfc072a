# Overview: Flask API routes for categories and roles; parses input and returns JSON responses.

# backend/salonpos/routes/categories.py
"""
Category and role routes.

Rates are percentages (0-100) of a sale line total. Changing them affects
future sales only; existing sale lines keep the rates they were sold at.

role_ids, when present, replaces the set of roles allowed to sell a category.
"""
from flask import Blueprint, current_app, request

from ..models import Category, Role
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_category,
    ValidationError,
    NotFoundError,
    InvalidOperationError,
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "commission_rate", "salon_owner_rate", "tracks_stock"},
    required_on_create={"name"},
)

ROLE_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
roles_bp = Blueprint("roles", __name__, url_prefix="/api/roles")


def _split_role_ids(payload):
    if not isinstance(payload, dict):
        return payload, None
    payload = dict(payload)
    return payload, payload.pop("role_ids", None)


# =============================================================================
# CATEGORIES
# =============================================================================

@categories_bp.get("")
def list_categories_route():
    from ..services.catalog_service import list_categories

    return {"categories": [c.to_dict() for c in list_categories()]}, 200


@categories_bp.post("")
def create_category_route():
    payload, role_ids = _split_role_ids(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        enforce_rules_category(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.catalog_service import create_category

    try:
        category = create_category(patch=patch, role_ids=role_ids)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create category")
        return {"error": "Internal server error"}, 500

    return {"category": category.to_dict()}, 201


@categories_bp.get("/<int:category_id>")
def get_category_route(category_id: int):
    from ..services.catalog_service import get_category

    try:
        return {"category": get_category(category_id).to_dict()}, 200
    except NotFoundError as e:
        return {"error": str(e)}, 404


@categories_bp.put("/<int:category_id>")
def update_category_route(category_id: int):
    payload, role_ids = _split_role_ids(request.get_json(silent=True) or {})

    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=True)
        enforce_rules_category(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.catalog_service import update_category

    try:
        category = update_category(category_id, patch, role_ids=role_ids)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update category")
        return {"error": "Internal server error"}, 500

    return {"category": category.to_dict()}, 200


@categories_bp.delete("/<int:category_id>")
def delete_category_route(category_id: int):
    from ..services.catalog_service import delete_category

    try:
        delete_category(category_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200


# =============================================================================
# ROLES
# =============================================================================

@roles_bp.get("")
def list_roles_route():
    from ..services.catalog_service import list_roles

    return {"roles": [r.to_dict() for r in list_roles()]}, 200


@roles_bp.post("")
def create_role_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Role, payload=payload, policy=ROLE_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.catalog_service import create_role

    try:
        role = create_role(patch=patch)
    except InvalidOperationError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create role")
        return {"error": "Internal server error"}, 500

    return {"role": role.to_dict()}, 201


@roles_bp.put("/<int:role_id>")
def update_role_route(role_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Role, payload=payload, policy=ROLE_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    from ..services.catalog_service import update_role

    try:
        role = update_role(role_id, patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"role": role.to_dict()}, 200


@roles_bp.delete("/<int:role_id>")
def delete_role_route(role_id: int):
    from ..services.catalog_service import delete_role

    try:
        delete_role(role_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except InvalidOperationError as e:
        return {"error": str(e)}, 409

    return {"ok": True}, 200
