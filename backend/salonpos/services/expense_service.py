# backend/salonpos/services/expense_service.py
from __future__ import annotations

from ..extensions import db
from ..models import Expense, ExpenseCategory
from ..money import quantize_money
from ..validation import InvalidOperationError, ValidationError
from .catalog_service import _load, _name_taken, apply_patch
from .concurrency import run_with_retry
from .inventory_service import _guard_future, _parse_occurred_at

EXPENSE_CATEGORY_MUTABLE_FIELDS = {"name", "description"}
PAYMENT_METHODS = ("CASH", "CARD", "TRANSFER", "OTHER")


def list_expense_categories() -> list[ExpenseCategory]:
    return db.session.query(ExpenseCategory).order_by(ExpenseCategory.name.asc()).all()


def create_expense_category(*, patch: dict) -> ExpenseCategory:
    def _op():
        if _name_taken(ExpenseCategory, patch["name"]):
            raise InvalidOperationError(f"Expense category {patch['name']!r} already exists")
        category = ExpenseCategory()
        apply_patch(category, patch, EXPENSE_CATEGORY_MUTABLE_FIELDS)
        db.session.add(category)
        db.session.commit()
        return category

    return run_with_retry(_op)


def update_expense_category(category_id: int, patch: dict) -> ExpenseCategory:
    def _op():
        category = _load(ExpenseCategory, category_id, "Expense category")
        if patch.get("name") and _name_taken(ExpenseCategory, patch["name"], exclude_id=category.id):
            raise InvalidOperationError("A category with this name already exists")
        apply_patch(category, patch, EXPENSE_CATEGORY_MUTABLE_FIELDS)
        db.session.commit()
        return category

    return run_with_retry(_op)


def delete_expense_category(category_id: int) -> None:
    def _op():
        category = _load(ExpenseCategory, category_id, "Expense category")
        count = db.session.query(Expense).filter_by(category_id=category.id).count()
        if count:
            raise InvalidOperationError(
                f"Cannot delete category. It is being used by {count} expense(s). "
                "Please reassign or delete those expenses first."
            )
        db.session.delete(category)
        db.session.commit()

    run_with_retry(_op)


def list_expenses(*, start=None, end=None, category_id: int | None = None) -> list[Expense]:
    q = db.session.query(Expense)
    if category_id is not None:
        q = q.filter(Expense.category_id == category_id)
    if start is not None:
        q = q.filter(Expense.occurred_at >= start)
    if end is not None:
        q = q.filter(Expense.occurred_at <= end)
    return q.order_by(Expense.occurred_at.desc(), Expense.id.desc()).all()


def _payment_method(value) -> str:
    payment_method = (value or "CASH").upper()
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
    return payment_method


def get_expense(expense_id: int) -> Expense:
    return _load(Expense, expense_id, "Expense")


def create_expense(*, patch: dict) -> Expense:
    def _op():
        _load(ExpenseCategory, patch["category_id"], "Expense category")
        payment_method = _payment_method(patch.get("payment_method"))

        occurred_dt = _parse_occurred_at(patch.get("occurred_at"))
        _guard_future(occurred_dt)

        expense = Expense(
            category_id=patch["category_id"],
            amount=quantize_money(patch["amount"]),
            description=patch.get("description"),
            payment_method=payment_method,
            occurred_at=occurred_dt,
        )
        db.session.add(expense)
        db.session.commit()
        return expense

    return run_with_retry(_op)


def update_expense(expense_id: int, patch: dict) -> Expense:
    """Partial update; omitted fields keep their value."""
    def _op():
        expense = get_expense(expense_id)
        if patch.get("category_id") is not None:
            expense.category_id = _load(ExpenseCategory, patch["category_id"], "Expense category").id
        if patch.get("amount") is not None:
            expense.amount = quantize_money(patch["amount"])
        if "payment_method" in patch:
            expense.payment_method = _payment_method(patch["payment_method"])
        if patch.get("occurred_at") is not None:
            occurred_dt = _parse_occurred_at(patch["occurred_at"])
            _guard_future(occurred_dt)
            expense.occurred_at = occurred_dt
        if "description" in patch:
            expense.description = patch["description"]
        db.session.commit()
        return expense

    return run_with_retry(_op)


def delete_expense(expense_id: int) -> None:
    def _op():
        expense = get_expense(expense_id)
        db.session.delete(expense)
        db.session.commit()

    run_with_retry(_op)
