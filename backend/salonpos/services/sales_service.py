"""
Sales Service - sale creation with commission snapshot and stock consumption

A sale is written in one transaction: the Sale header, every SaleLine with its
frozen commission/owner split, and a Usage inventory movement for each line
whose item is stock-tracked.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Sale, SaleLine, Item, Employee, Customer
from ..money import ZERO, quantize_money, to_decimal
from ..validation import MAX_INTEGER, MAX_PRICE, NotFoundError, ValidationError
from .commission import split_line
from .concurrency import run_with_retry
from .costing import USAGE
from .inventory_service import _guard_future, _parse_occurred_at, _record_movement_inner
from .ledger_service import load_stock_item


def _require_int(value, field: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    if abs(value) > MAX_INTEGER:
        raise ValidationError(f"{field} is out of range")
    return value


def _require_amount(value, field: str):
    try:
        amount = to_decimal(value)
    except ValueError:
        raise ValidationError(f"{field} must be a number")
    if amount < ZERO:
        raise ValidationError(f"{field} must be >= 0")
    if amount > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")
    return quantize_money(amount)


def _normalize_lines(lines) -> list[dict]:
    if not lines or not isinstance(lines, list):
        raise ValidationError("Items are required")

    normalized = []
    for index, raw in enumerate(lines, start=1):
        if not isinstance(raw, dict):
            raise ValidationError(f"line {index} must be an object")
        for field in ("item_id", "employee_id", "quantity", "price"):
            if raw.get(field) is None:
                raise ValidationError(f"line {index}: {field} is required")

        quantity = _require_int(raw["quantity"], f"line {index}: quantity", minimum=1)
        price = _require_amount(raw["price"], f"line {index}: price")
        if raw.get("total") is not None:
            line_total = _require_amount(raw["total"], f"line {index}: total")
        else:
            line_total = quantize_money(price * quantity)
            if line_total > MAX_PRICE:
                raise ValidationError(f"line {index}: total cannot exceed {MAX_PRICE}")

        normalized.append({
            "item_id": _require_int(raw["item_id"], f"line {index}: item_id"),
            "employee_id": _require_int(raw["employee_id"], f"line {index}: employee_id"),
            "quantity": quantity,
            "price": price,
            "total": line_total,
        })
    return normalized


def _is_stock_tracked(item: Item) -> bool:
    return bool(item.category and item.category.tracks_stock and not item.is_service)


def create_sale(
    *,
    lines,
    total,
    customer_id: int | None = None,
    subtotal=None,
    tax=None,
    occurred_at=None,
    notes: str | None = None,
) -> Sale:
    """
    Create a sale with its lines.

    Commission and owner rates are read from each item's category now and
    copied onto the line together with the computed amounts. Lines for
    stock-tracked items record a Usage movement priced at average cost.
    """
    normalized = _normalize_lines(lines)
    if customer_id is not None:
        customer_id = _require_int(customer_id, "customer_id")
    if total is None:
        raise ValidationError("total is required")
    sale_total = _require_amount(total, "total")
    sale_tax = _require_amount(tax, "tax") if tax is not None else quantize_money(ZERO)
    sale_subtotal = (
        _require_amount(subtotal, "subtotal") if subtotal is not None else quantize_money(sale_total - sale_tax)
    )

    def _op():
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer not found")

        occurred_dt = _parse_occurred_at(occurred_at)
        _guard_future(occurred_dt)

        sale = Sale(
            customer_id=customer_id,
            subtotal=sale_subtotal,
            tax=sale_tax,
            total=sale_total,
            notes=notes,
            occurred_at=occurred_dt,
        )
        db.session.add(sale)
        db.session.flush()

        for data in normalized:
            item = db.session.get(Item, data["item_id"])
            if item is None:
                raise NotFoundError(f"Item {data['item_id']} not found")
            if db.session.get(Employee, data["employee_id"]) is None:
                raise NotFoundError(f"Employee {data['employee_id']} not found")

            category = item.category
            split = split_line(
                data["total"],
                category.commission_rate if category else ZERO,
                category.salon_owner_rate if category else ZERO,
            )

            line = SaleLine(
                sale_id=sale.id,
                item_id=item.id,
                employee_id=data["employee_id"],
                quantity=data["quantity"],
                price=data["price"],
                total=data["total"],
                commission_rate=split.commission_rate,
                salon_owner_rate=split.salon_owner_rate,
                commission_amount=split.commission_amount,
                salon_owner_amount=split.salon_owner_amount,
            )

            if _is_stock_tracked(item):
                stock_item = load_stock_item(item.id, lock=True)
                record = _record_movement_inner(
                    item=stock_item,
                    movement_type=USAGE,
                    quantity=data["quantity"],
                    occurred_dt=occurred_dt,
                    notes=f"Sale {sale.id}",
                    sale_id=sale.id,
                )
                line.inventory_record_id = record.id

            sale.lines.append(line)

        db.session.flush()
        db.session.commit()
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(*, start=None, end=None, customer_id: int | None = None, limit: int = 200) -> list[Sale]:
    q = db.session.query(Sale)
    if customer_id is not None:
        q = q.filter(Sale.customer_id == customer_id)
    if start is not None:
        q = q.filter(Sale.occurred_at >= start)
    if end is not None:
        q = q.filter(Sale.occurred_at <= end)
    return q.order_by(Sale.occurred_at.desc(), Sale.id.desc()).limit(limit).all()


def list_invoices(*, start=None, end=None) -> dict:
    """
    Sales with their lines and per-invoice counts, newest first.

    Without start/end every sale is returned.
    """
    q = db.session.query(Sale)
    if start is not None:
        q = q.filter(Sale.occurred_at >= start)
    if end is not None:
        q = q.filter(Sale.occurred_at <= end)
    sales = q.order_by(Sale.occurred_at.desc(), Sale.id.desc()).all()

    invoices = []
    total_revenue = ZERO
    for sale in sales:
        invoice = sale.to_dict(include_lines=True)
        invoice["item_count"] = len(sale.lines)
        invoice["total_quantity"] = sum(line.quantity for line in sale.lines)
        invoices.append(invoice)
        total_revenue += sale.total

    return {
        "invoices": invoices,
        "count": len(invoices),
        "total_revenue": quantize_money(total_revenue),
    }
