# backend/salonpos/services/catalog_service.py
"""
Catalog Service: items, categories and employee roles.

LEDGER: Item stock and average_cost are never writable here. An opening
stock on item creation is booked as an Adjustment movement so the item's
history still replays to its ledger.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Category, EmployeeService, Item, InventoryRecord, Role, SaleLine, category_roles, employee_roles
from ..money import ZERO, quantize_money, quantize_rate
from ..validation import MAX_INTEGER, InvalidOperationError, NotFoundError, ValidationError
from .concurrency import run_with_retry
from .costing import ADJUSTMENT
from .inventory_service import _record_movement_inner
from salonpos.time_utils import utcnow

ITEM_MUTABLE_FIELDS = {"name", "description", "price", "category_id", "reorder_threshold"}
CATEGORY_MUTABLE_FIELDS = {"name", "description", "commission_rate", "salon_owner_rate", "tracks_stock"}
ROLE_MUTABLE_FIELDS = {"name", "description"}


def apply_patch(obj, patch: dict, allowed: set[str]) -> None:
    for k, v in patch.items():
        if k not in allowed:
            continue
        setattr(obj, k, v)


def _load(model, entity_id: int, label: str):
    obj = db.session.get(model, entity_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


def _load_roles(role_ids) -> list[Role]:
    if role_ids is None:
        return []
    if not isinstance(role_ids, list):
        raise ValidationError("role_ids must be a list")
    roles = []
    for role_id in role_ids:
        if isinstance(role_id, bool) or not isinstance(role_id, int):
            raise ValidationError("role_ids must contain integers")
        if abs(role_id) > MAX_INTEGER:
            raise ValidationError("role_ids contains an out of range id")
        roles.append(_load(Role, role_id, f"Role {role_id}"))
    return roles


def _name_taken(model, name: str, exclude_id: int | None = None) -> bool:
    q = db.session.query(model).filter(model.name == name)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    return db.session.query(q.exists()).scalar()


# =============================================================================
# ITEMS
# =============================================================================

def list_items(*, category_id: int | None = None, is_service: bool | None = None) -> list[Item]:
    q = db.session.query(Item)
    if category_id is not None:
        q = q.filter(Item.category_id == category_id)
    if is_service is not None:
        q = q.filter(Item.is_service.is_(is_service))
    return q.order_by(Item.name.asc()).all()


def get_item(item_id: int) -> Item:
    return _load(Item, item_id, "Item")


def create_item(*, patch: dict, opening_stock: int | None = None, opening_unit_cost=None) -> Item:
    """
    Create an item. Services are forced to zero stock and no reorder threshold.

    opening_stock > 0 on a product records an Adjustment (absolute stock) at
    opening_unit_cost (default 0).
    """
    def _op():
        _load(Category, patch["category_id"], "Category")

        is_service = bool(patch.get("is_service", False))
        item = Item(
            name=patch["name"],
            description=patch.get("description"),
            category_id=patch["category_id"],
            price=quantize_money(patch.get("price") or ZERO),
            is_service=is_service,
            stock=0,
            average_cost=ZERO,
        )
        if not is_service:
            threshold = patch.get("reorder_threshold")
            item.reorder_threshold = (
                threshold if threshold is not None else current_app.config["DEFAULT_REORDER_THRESHOLD"]
            )
        db.session.add(item)
        db.session.flush()

        if opening_stock and not is_service:
            _record_movement_inner(
                item=item,
                movement_type=ADJUSTMENT,
                quantity=opening_stock,
                unit_cost=opening_unit_cost if opening_unit_cost is not None else ZERO,
                occurred_dt=utcnow(),
                notes="Opening stock",
            )

        db.session.commit()
        return item

    return run_with_retry(_op)


def update_item(item_id: int, patch: dict) -> Item:
    def _op():
        item = get_item(item_id)
        if "category_id" in patch:
            _load(Category, patch["category_id"], "Category")
        if "price" in patch and patch["price"] is not None:
            patch["price"] = quantize_money(patch["price"])
        if item.is_service and patch.get("reorder_threshold") is not None:
            raise InvalidOperationError("Service items do not carry inventory")

        apply_patch(item, patch, ITEM_MUTABLE_FIELDS)
        db.session.commit()
        return item

    return run_with_retry(_op)


def delete_item(item_id: int) -> None:
    def _op():
        item = get_item(item_id)
        record_count = db.session.query(InventoryRecord).filter_by(item_id=item.id).count()
        line_count = db.session.query(SaleLine).filter_by(item_id=item.id).count()
        if record_count or line_count:
            raise InvalidOperationError(
                f"Cannot delete item. It has {record_count} inventory record(s) and "
                f"{line_count} sale line(s)."
            )
        # Assignments go with the item
        db.session.query(EmployeeService).filter_by(item_id=item.id).delete(synchronize_session="fetch")
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# CATEGORIES
# =============================================================================

def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def get_category(category_id: int) -> Category:
    return _load(Category, category_id, "Category")


def _normalize_category_patch(patch: dict) -> dict:
    for field in ("commission_rate", "salon_owner_rate"):
        if patch.get(field) is not None:
            patch[field] = quantize_rate(patch[field])
    return patch


def create_category(*, patch: dict, role_ids=None) -> Category:
    def _op():
        if _name_taken(Category, patch["name"]):
            raise InvalidOperationError(f"Category {patch['name']!r} already exists")
        category = Category(
            commission_rate=quantize_rate(ZERO),
            salon_owner_rate=quantize_rate(ZERO),
            tracks_stock=False,
        )
        apply_patch(category, _normalize_category_patch(patch), CATEGORY_MUTABLE_FIELDS)
        category.roles = _load_roles(role_ids)
        db.session.add(category)
        db.session.commit()
        return category

    return run_with_retry(_op)


def update_category(category_id: int, patch: dict, role_ids=None) -> Category:
    """Update a category; role_ids, when given, replaces the allowed roles."""
    def _op():
        category = get_category(category_id)
        if "name" in patch and _name_taken(Category, patch["name"], exclude_id=category.id):
            raise InvalidOperationError(f"Category {patch['name']!r} already exists")
        apply_patch(category, _normalize_category_patch(patch), CATEGORY_MUTABLE_FIELDS)
        if role_ids is not None:
            category.roles = _load_roles(role_ids)
        db.session.commit()
        return category

    return run_with_retry(_op)


def delete_category(category_id: int) -> None:
    def _op():
        category = get_category(category_id)
        item_count = db.session.query(Item).filter_by(category_id=category.id).count()
        if item_count:
            raise InvalidOperationError(
                f"Cannot delete category. It is being used by {item_count} item(s)."
            )
        category.roles = []
        db.session.delete(category)
        db.session.commit()

    run_with_retry(_op)


# =============================================================================
# ROLES
# =============================================================================

def list_roles() -> list[Role]:
    return db.session.query(Role).order_by(Role.name.asc()).all()


def create_role(*, patch: dict) -> Role:
    def _op():
        if _name_taken(Role, patch["name"]):
            raise InvalidOperationError(f"Role {patch['name']!r} already exists")
        role = Role()
        apply_patch(role, patch, ROLE_MUTABLE_FIELDS)
        db.session.add(role)
        db.session.commit()
        return role

    return run_with_retry(_op)


def update_role(role_id: int, patch: dict) -> Role:
    def _op():
        role = _load(Role, role_id, "Role")
        if "name" in patch and _name_taken(Role, patch["name"], exclude_id=role.id):
            raise InvalidOperationError(f"Role {patch['name']!r} already exists")
        apply_patch(role, patch, ROLE_MUTABLE_FIELDS)
        db.session.commit()
        return role

    return run_with_retry(_op)


def delete_role(role_id: int) -> None:
    def _op():
        role = _load(Role, role_id, "Role")
        employee_count = (
            db.session.query(func.count())
            .select_from(employee_roles)
            .filter(employee_roles.c.role_id == role.id)
            .scalar()
        )
        if employee_count:
            raise InvalidOperationError(
                f"Cannot delete role. It is assigned to {employee_count} employee(s)."
            )
        db.session.execute(category_roles.delete().where(category_roles.c.role_id == role.id))
        db.session.delete(role)
        db.session.commit()

    run_with_retry(_op)
