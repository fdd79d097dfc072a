# Overview: Pure inventory costing rules; no database access.

# backend/salonpos/services/costing.py
"""
Inventory Costing Rules (authoritative)

Ledger:
- Each stock-tracked item carries (stock, average_cost). A LedgerSnapshot is
  that pair as a value; functions here take the prior snapshot and return a
  new one. Persisting it is the caller's job (services.ledger_service).

Movement types:
- Purchase / Return: stock += quantity. Average cost becomes the weighted
  average (avg * stock + quantity * unit_cost) / (stock + quantity); when the
  resulting stock is not positive, the supplied unit_cost is used instead.
  Record keeps the supplied unit_cost, total = quantity * unit_cost, cogs = 0.
- Usage: stock -= quantity, floored at 0 (flagged as clamped). Priced at the
  average cost in effect before the movement; caller unit_cost is discarded.
  cogs = total.
- Adjustment: stock is SET to quantity (absolute correction, not a delta).
  Average cost unchanged. total = quantity * unit_cost, cogs = 0.

Replay (reconciliation):
- Starting from zero, walk the records in (occurred_at, id) order applying
  the stock rules above. Average cost is sum(total_cost) / sum(quantity)
  over Purchase/Return records only, or 0 when there are none. Usage and
  Adjustment never change it.

Rounding:
- unit costs and average cost: 4 places; totals: 2 places; half-up.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable

from ..money import ZERO, quantize_cost, quantize_money, to_decimal
from ..validation import MAX_INTEGER, MAX_PRICE, ValidationError


PURCHASE = "Purchase"
RETURN = "Return"
USAGE = "Usage"
ADJUSTMENT = "Adjustment"

MOVEMENT_TYPES = (PURCHASE, RETURN, USAGE, ADJUSTMENT)
INBOUND_TYPES = frozenset({PURCHASE, RETURN})


@dataclass(frozen=True)
class LedgerSnapshot:
    stock: int = 0
    average_cost: Decimal = ZERO

    def to_dict(self) -> dict:
        return {"stock": self.stock, "average_cost": str(self.average_cost)}


@dataclass(frozen=True)
class MovementResult:
    """Outcome of applying one movement: the new ledger plus the record's cost fields."""
    ledger: LedgerSnapshot
    unit_cost: Decimal
    total_cost: Decimal
    cogs_total: Decimal
    stock_clamped: bool = False


def validate_movement_type(movement_type) -> str:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(
            f"Invalid inventory type: {movement_type!r} (expected one of {', '.join(MOVEMENT_TYPES)})"
        )
    return movement_type


def validate_quantity(movement_type: str, quantity) -> int:
    if quantity is None:
        raise ValidationError("quantity is required")
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity > MAX_INTEGER:
        raise ValidationError(f"quantity cannot exceed {MAX_INTEGER}")
    if movement_type == ADJUSTMENT:
        if quantity < 0:
            raise ValidationError("quantity must be >= 0 for Adjustment")
    elif quantity <= 0:
        raise ValidationError(f"quantity must be > 0 for {movement_type}")
    return quantity


def validate_unit_cost(unit_cost) -> Decimal:
    if unit_cost is None:
        raise ValidationError("unit_cost is required")
    try:
        value = to_decimal(unit_cost)
    except ValueError:
        raise ValidationError("unit_cost must be a number")
    if value < ZERO:
        raise ValidationError("unit_cost must be >= 0")
    if value > MAX_PRICE:
        raise ValidationError(f"unit_cost cannot exceed {MAX_PRICE}")
    return value


def record_costs(movement_type: str, quantity: int, unit_cost) -> tuple[Decimal, Decimal, Decimal]:
    """(unit_cost, total_cost, cogs_total) for a record as entered, without consulting the ledger."""
    unit = quantize_cost(unit_cost)
    total = quantize_money(quantity * unit)
    cogs = total if movement_type == USAGE else quantize_money(ZERO)
    return unit, total, cogs


def apply_movement(
    ledger: LedgerSnapshot,
    movement_type: str,
    quantity: int,
    unit_cost=None,
) -> MovementResult:
    """
    Apply a single movement to a ledger snapshot (incremental path).

    unit_cost is required for Purchase/Return/Adjustment and ignored for Usage.
    """
    validate_movement_type(movement_type)
    validate_quantity(movement_type, quantity)

    if movement_type == USAGE:
        unit, total = cogs_for(ledger, quantity)
        clamped = quantity > ledger.stock
        new_stock = max(0, ledger.stock - quantity)
        return MovementResult(
            ledger=LedgerSnapshot(stock=new_stock, average_cost=ledger.average_cost),
            unit_cost=unit,
            total_cost=total,
            cogs_total=total,
            stock_clamped=clamped,
        )

    supplied = validate_unit_cost(unit_cost)
    unit, total, cogs = record_costs(movement_type, quantity, supplied)

    if movement_type in INBOUND_TYPES:
        new_stock = ledger.stock + quantity
        if new_stock > 0:
            current_value = ledger.average_cost * ledger.stock
            new_average = quantize_cost((current_value + quantity * supplied) / new_stock)
        else:
            new_average = unit
        return MovementResult(
            ledger=LedgerSnapshot(stock=new_stock, average_cost=new_average),
            unit_cost=unit,
            total_cost=total,
            cogs_total=cogs,
        )

    # ADJUSTMENT
    return MovementResult(
        ledger=LedgerSnapshot(stock=quantity, average_cost=ledger.average_cost),
        unit_cost=unit,
        total_cost=total,
        cogs_total=cogs,
    )


def cogs_for(ledger: LedgerSnapshot, quantity: int) -> tuple[Decimal, Decimal]:
    """(unit_cost, total_cost) charged for consuming quantity at the current average cost."""
    average = ledger.average_cost or ZERO
    if average <= ZERO:
        return quantize_cost(ZERO), quantize_money(ZERO)
    return quantize_cost(average), quantize_money(quantity * average)


def replay(records: Iterable, *, on_clamp: Callable | None = None) -> LedgerSnapshot:
    """
    Rederive (stock, average_cost) from a full history.

    records must already be in chronological order and expose .type,
    .quantity and .total_cost (InventoryRecord rows qualify).
    on_clamp, if given, is called with each Usage record that hit the zero floor.
    """
    stock = 0
    total_value = ZERO
    total_quantity = 0

    for record in records:
        if record.type in INBOUND_TYPES:
            stock += record.quantity
            total_value += to_decimal(record.total_cost or ZERO)
            total_quantity += record.quantity
        elif record.type == USAGE:
            if on_clamp is not None and record.quantity > stock:
                on_clamp(record)
            stock = max(0, stock - record.quantity)
        elif record.type == ADJUSTMENT:
            stock = record.quantity

    if total_quantity > 0:
        average = quantize_cost(total_value / total_quantity)
    else:
        average = quantize_cost(ZERO)
    return LedgerSnapshot(stock=stock, average_cost=average)
