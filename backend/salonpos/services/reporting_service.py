# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime, time, timedelta

from flask import current_app
from sqlalchemy import func

from salonpos.extensions import db
from salonpos.models import (
    Category,
    Customer,
    Employee,
    Expense,
    ExpenseCategory,
    InventoryRecord,
    Item,
    Sale,
    SaleLine,
)
from salonpos.money import HUNDRED, ZERO, quantize_cost, quantize_money, quantize_rate
from salonpos.services.costing import USAGE
from salonpos.time_utils import parse_iso_datetime, utcnow, to_utc_z
from salonpos.validation import ValidationError

PERIODS = ("today", "week", "month", "year", "custom")


def _money(value):
    return quantize_money(value if value is not None else ZERO)


def resolve_period(
    period: str | None,
    start: str | None = None,
    end: str | None = None,
    *,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """
    Turn a period name into an inclusive [start, end] UTC range.

    custom requires start and end (ISO dates or datetimes); a bare date for
    end covers that whole day.
    """
    now = now or utcnow()
    period = (period or "today").lower()
    if period not in PERIODS:
        raise ValidationError(f"period must be one of {', '.join(PERIODS)}")

    end_of_today = datetime.combine(now.date(), time.max)

    if period == "custom":
        if not start or not end:
            raise ValidationError("start and end are required for a custom period")
        try:
            start_dt = parse_iso_datetime(start)
            end_dt = parse_iso_datetime(end)
        except ValueError:
            raise ValidationError("start and end must be ISO-8601 dates")
        if len(end.strip()) == 10:
            end_dt = datetime.combine(end_dt.date(), time.max)
        if start_dt > end_dt:
            raise ValidationError("start must be before end")
        return start_dt, end_dt

    if period == "today":
        return datetime.combine(now.date(), time.min), end_of_today
    if period == "week":
        return now - timedelta(days=7), end_of_today
    if period == "month":
        return now - timedelta(days=30), end_of_today
    return now - timedelta(days=365), end_of_today


def revenue_report(*, start: datetime, end: datetime) -> dict:
    """
    Sales totals and the employee / salon-owner split for a period.

    Splits are summed from the amounts frozen on each sale line, so a
    category's current rates never change past figures.
    """
    totals = db.session.query(
        func.count(Sale.id).label("transactions"),
        func.sum(Sale.subtotal).label("subtotal"),
        func.sum(Sale.tax).label("tax"),
        func.sum(Sale.total).label("total"),
    ).filter(Sale.occurred_at >= start, Sale.occurred_at <= end).one()

    line_filter = (Sale.occurred_at >= start, Sale.occurred_at <= end)

    by_employee_rows = (
        db.session.query(
            Employee.id,
            Employee.name,
            func.sum(SaleLine.total).label("total_sales"),
            func.sum(SaleLine.commission_amount).label("commission"),
            func.sum(SaleLine.salon_owner_amount).label("salon_owner_share"),
            func.sum(SaleLine.quantity).label("items_sold"),
        )
        .join(SaleLine, SaleLine.employee_id == Employee.id)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(*line_filter)
        .group_by(Employee.id, Employee.name)
        .all()
    )

    by_category_rows = (
        db.session.query(
            Category.id,
            Category.name,
            func.sum(SaleLine.total).label("total_sales"),
            func.sum(SaleLine.commission_amount).label("commission"),
            func.sum(SaleLine.salon_owner_amount).label("salon_owner_share"),
            func.sum(SaleLine.quantity).label("items_sold"),
        )
        .join(Item, Item.category_id == Category.id)
        .join(SaleLine, SaleLine.item_id == Item.id)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(*line_filter)
        .group_by(Category.id, Category.name)
        .all()
    )

    cogs = (
        db.session.query(func.sum(InventoryRecord.cogs_total))
        .join(Sale, Sale.id == InventoryRecord.sale_id)
        .filter(InventoryRecord.type == USAGE, *line_filter)
        .scalar()
    )

    by_employee = [
        {
            "employee_id": row.id,
            "name": row.name,
            "total_sales": _money(row.total_sales),
            "commission": _money(row.commission),
            "salon_owner_share": _money(row.salon_owner_share),
            "items_sold": int(row.items_sold or 0),
        }
        for row in by_employee_rows
    ]
    by_category = [
        {
            "category_id": row.id,
            "name": row.name,
            "total_sales": _money(row.total_sales),
            "employee_commission": _money(row.commission),
            "salon_owner_share": _money(row.salon_owner_share),
            "items_sold": int(row.items_sold or 0),
        }
        for row in by_category_rows
    ]
    by_employee.sort(key=lambda r: r["total_sales"], reverse=True)
    by_category.sort(key=lambda r: r["total_sales"], reverse=True)

    transactions = int(totals.transactions or 0)
    subtotal = _money(totals.subtotal)
    cost_of_goods_sold = _money(cogs)

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "transactions": transactions,
        "total_sales": subtotal,
        "total_tax": _money(totals.tax),
        "total_revenue": _money(totals.total),
        "average_transaction_value": _money(subtotal / transactions) if transactions else _money(ZERO),
        "employee_earnings": _money(sum((r["commission"] for r in by_employee), ZERO)),
        "salon_owner_earnings": _money(sum((r["salon_owner_share"] for r in by_employee), ZERO)),
        "cost_of_goods_sold": cost_of_goods_sold,
        "gross_profit": _money(subtotal - cost_of_goods_sold),
        "by_employee": by_employee,
        "by_category": by_category,
    }


def inventory_report(*, start: datetime, end: datetime) -> dict:
    """Movement totals by item and by type for records dated inside the period."""
    by_item_rows = (
        db.session.query(
            Item.id,
            Item.name,
            func.sum(InventoryRecord.total_cost).label("total_cost"),
            func.sum(InventoryRecord.quantity).label("total_quantity"),
            func.count(InventoryRecord.id).label("records"),
        )
        .join(InventoryRecord, InventoryRecord.item_id == Item.id)
        .filter(InventoryRecord.occurred_at >= start, InventoryRecord.occurred_at <= end)
        .group_by(Item.id, Item.name)
        .order_by(Item.name.asc())
        .all()
    )

    by_type_rows = (
        db.session.query(
            InventoryRecord.type,
            func.sum(InventoryRecord.total_cost).label("total_cost"),
            func.sum(InventoryRecord.quantity).label("total_quantity"),
            func.count(InventoryRecord.id).label("records"),
        )
        .filter(InventoryRecord.occurred_at >= start, InventoryRecord.occurred_at <= end)
        .group_by(InventoryRecord.type)
        .all()
    )

    by_type = {
        row.type: {
            "total_cost": _money(row.total_cost),
            "total_quantity": int(row.total_quantity or 0),
            "count": int(row.records or 0),
        }
        for row in by_type_rows
    }

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "total_cost": _money(sum((v["total_cost"] for v in by_type.values()), ZERO)),
        "total_usage": by_type.get(USAGE, {}).get("total_quantity", 0),
        "by_item": [
            {
                "item_id": row.id,
                "name": row.name,
                "total_cost": _money(row.total_cost),
                "total_quantity": int(row.total_quantity or 0),
                "count": int(row.records or 0),
            }
            for row in by_item_rows
        ],
        "by_type": by_type,
    }


def expense_report(*, start: datetime, end: datetime) -> dict:
    period_filter = (Expense.occurred_at >= start, Expense.occurred_at <= end)

    by_category_rows = (
        db.session.query(
            ExpenseCategory.id,
            ExpenseCategory.name,
            func.sum(Expense.amount).label("total"),
            func.count(Expense.id).label("count"),
        )
        .join(Expense, Expense.category_id == ExpenseCategory.id)
        .filter(*period_filter)
        .group_by(ExpenseCategory.id, ExpenseCategory.name)
        .order_by(ExpenseCategory.name.asc())
        .all()
    )

    by_method_rows = (
        db.session.query(
            Expense.payment_method,
            func.sum(Expense.amount).label("total"),
            func.count(Expense.id).label("count"),
        )
        .filter(*period_filter)
        .group_by(Expense.payment_method)
        .all()
    )

    by_category = [
        {"category_id": row.id, "name": row.name, "total": _money(row.total), "count": int(row.count or 0)}
        for row in by_category_rows
    ]

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "total_expenses": _money(sum((r["total"] for r in by_category), ZERO)),
        "by_category": by_category,
        "by_payment_method": {
            row.payment_method: {"total": _money(row.total), "count": int(row.count or 0)}
            for row in by_method_rows
        },
    }


def item_sales_report(*, start: datetime, end: datetime) -> dict:
    """
    Per-item quantity and revenue for a period.

    Margin uses the COGS of the Usage movements the sales themselves wrote,
    so services (no stock) report their whole revenue as gross profit.
    """
    period_filter = (Sale.occurred_at >= start, Sale.occurred_at <= end)

    rows = (
        db.session.query(
            Item.id,
            Item.name,
            Item.is_service,
            Category.name.label("category_name"),
            func.sum(SaleLine.quantity).label("quantity_sold"),
            func.sum(SaleLine.total).label("revenue"),
        )
        .join(SaleLine, SaleLine.item_id == Item.id)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(Category, Category.id == Item.category_id)
        .filter(*period_filter)
        .group_by(Item.id, Item.name, Item.is_service, Category.name)
        .all()
    )

    cogs_by_item = dict(
        db.session.query(InventoryRecord.item_id, func.sum(InventoryRecord.cogs_total))
        .join(Sale, Sale.id == InventoryRecord.sale_id)
        .filter(InventoryRecord.type == USAGE, *period_filter)
        .group_by(InventoryRecord.item_id)
        .all()
    )

    items = []
    for row in rows:
        quantity_sold = int(row.quantity_sold or 0)
        revenue = _money(row.revenue)
        cogs = _money(cogs_by_item.get(row.id))
        gross_profit = _money(revenue - cogs)
        items.append({
            "item_id": row.id,
            "name": row.name,
            "category": row.category_name,
            "is_service": row.is_service,
            "quantity_sold": quantity_sold,
            "revenue": revenue,
            "average_price": _money(revenue / quantity_sold) if quantity_sold else _money(ZERO),
            "cost_of_goods_sold": cogs,
            "gross_profit": gross_profit,
            "profit_margin": quantize_rate(gross_profit * HUNDRED / revenue) if revenue else quantize_rate(ZERO),
        })
    items.sort(key=lambda r: r["revenue"], reverse=True)

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "items": items,
        "summary": {
            "total_items": len(items),
            "total_revenue": _money(sum((r["revenue"] for r in items), ZERO)),
            "total_quantity_sold": sum(r["quantity_sold"] for r in items),
        },
    }


def customer_sales_report(*, start: datetime, end: datetime) -> dict:
    """Spend per customer for a period; walk-in sales (no customer) are left out."""
    rows = (
        db.session.query(
            Customer.id,
            Customer.name,
            Customer.email,
            func.sum(Sale.total).label("total_spent"),
            func.count(Sale.id).label("transactions"),
            func.max(Sale.occurred_at).label("last_purchase"),
        )
        .join(Sale, Sale.customer_id == Customer.id)
        .filter(Sale.occurred_at >= start, Sale.occurred_at <= end)
        .group_by(Customer.id, Customer.name, Customer.email)
        .all()
    )

    customers = []
    for row in rows:
        transactions = int(row.transactions or 0)
        total_spent = _money(row.total_spent)
        customers.append({
            "customer_id": row.id,
            "name": row.name,
            "email": row.email or "",
            "total_spent": total_spent,
            "transaction_count": transactions,
            "average_order_value": _money(total_spent / transactions) if transactions else _money(ZERO),
            "last_purchase": to_utc_z(row.last_purchase),
        })
    customers.sort(key=lambda r: r["total_spent"], reverse=True)

    total_revenue = _money(sum((r["total_spent"] for r in customers), ZERO))
    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "customers": customers,
        "summary": {
            "total_customers": len(customers),
            "total_revenue": total_revenue,
            "average_customer_value": _money(total_revenue / len(customers)) if customers else _money(ZERO),
        },
    }


def category_sales_report(*, start: datetime, end: datetime) -> dict:
    """Sales per category with each category's share of the period's line totals."""
    rows = (
        db.session.query(
            Category.id,
            Category.name,
            Category.commission_rate,
            func.sum(SaleLine.total).label("total_sales"),
            func.sum(SaleLine.quantity).label("item_count"),
        )
        .join(Item, Item.category_id == Category.id)
        .join(SaleLine, SaleLine.item_id == Item.id)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(Sale.occurred_at >= start, Sale.occurred_at <= end)
        .group_by(Category.id, Category.name, Category.commission_rate)
        .all()
    )

    grand_total = _money(sum((_money(row.total_sales) for row in rows), ZERO))
    categories = []
    for row in rows:
        total_sales = _money(row.total_sales)
        item_count = int(row.item_count or 0)
        categories.append({
            "category_id": row.id,
            "name": row.name,
            "total_sales": total_sales,
            "item_count": item_count,
            "average_price": _money(total_sales / item_count) if item_count else _money(ZERO),
            "commission_rate": quantize_rate(row.commission_rate or ZERO),
            "market_share": quantize_rate(total_sales * HUNDRED / grand_total) if grand_total else quantize_rate(ZERO),
        })
    categories.sort(key=lambda r: r["total_sales"], reverse=True)

    return {
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "categories": categories,
        "summary": {
            "total_categories": len(categories),
            "total_sales": grand_total,
            "top_category": categories[0]["name"] if categories else "N/A",
        },
    }


def _stock_status(stock: int, threshold: int) -> str:
    if stock <= 0:
        return "Out of Stock"
    if stock <= threshold // 2:
        return "Critical"
    return "Low"


def low_stock_report(*, now: datetime | None = None) -> dict:
    """
    Stock-tracked items at or below their reorder threshold.

    days_until_out_of_stock extrapolates the average daily Usage over the
    configured look-back window; None when nothing was consumed.
    """
    now = now or utcnow()
    window_days = current_app.config["LOW_STOCK_USAGE_WINDOW_DAYS"]
    since = now - timedelta(days=window_days)

    items = (
        db.session.query(Item)
        .filter(
            Item.is_service.is_(False),
            Item.reorder_threshold.isnot(None),
            Item.stock <= Item.reorder_threshold,
        )
        .order_by(Item.stock.asc(), Item.name.asc())
        .all()
    )

    usage_by_item = dict(
        db.session.query(InventoryRecord.item_id, func.sum(InventoryRecord.quantity))
        .filter(
            InventoryRecord.type == USAGE,
            InventoryRecord.occurred_at >= since,
            InventoryRecord.occurred_at <= now,
        )
        .group_by(InventoryRecord.item_id)
        .all()
    )

    rows = []
    for item in items:
        threshold = item.reorder_threshold
        used = int(usage_by_item.get(item.id) or 0)
        daily_usage = used / window_days if window_days > 0 else 0
        average_cost = quantize_cost(item.average_cost or ZERO)
        rows.append({
            "item_id": item.id,
            "name": item.name,
            "current_stock": item.stock,
            "reorder_threshold": threshold,
            "price": _money(item.price),
            "average_cost": average_cost,
            "stock_value": _money(item.stock * average_cost),
            "status": _stock_status(item.stock, threshold),
            "days_until_out_of_stock": int(item.stock / daily_usage) if daily_usage > 0 else None,
            "suggested_reorder_quantity": max(threshold * 2 - item.stock, 0),
            "last_updated": to_utc_z(item.updated_at),
        })

    out_of_stock = sum(1 for r in rows if r["status"] == "Out of Stock")
    critical = sum(1 for r in rows if r["status"] == "Critical")
    warning = sum(1 for r in rows if r["status"] == "Low")

    if out_of_stock:
        message = f"{out_of_stock} item(s) are out of stock"
    elif critical:
        message = f"{critical} item(s) are critically low"
    elif warning:
        message = f"{warning} item(s) are running low"
    else:
        message = "All stock levels are healthy"

    return {
        "items": rows,
        "summary": {
            "total_low_stock_items": len(rows),
            "out_of_stock_items": out_of_stock,
            "critical_stock_items": critical,
            "warning_stock_items": warning,
            "total_value_at_risk": _money(sum((r["stock_value"] for r in rows), ZERO)),
        },
        "alerts": {
            "urgent": bool(out_of_stock or critical),
            "warning": bool(warning),
            "message": message,
        },
    }
