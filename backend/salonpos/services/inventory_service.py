# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/salonpos/services/inventory_service.py

from datetime import datetime, timedelta, timezone

from flask import current_app

from ..extensions import db
from ..models import Item, InventoryRecord, SaleLine
from ..money import ZERO, quantize_money
from ..validation import InvalidOperationError, NotFoundError, ValidationError
from salonpos.time_utils import utcnow, parse_iso_datetime
from .concurrency import run_with_retry
from .costing import (
    USAGE,
    LedgerSnapshot,
    apply_movement,
    cogs_for,
    record_costs,
    replay,
    validate_movement_type,
    validate_quantity,
    validate_unit_cost,
)
from .ledger_service import load_item, load_stock_item, set_ledger, snapshot_of
"""
Inventory Record Store & Costing Write Path (authoritative)

Canonical time handling:
- All internal datetimes are UTC-naive (tzinfo=None).
- API accepts ISO-8601 with 'Z' or offsets; inputs are normalized to UTC-naive.

Record store:
- InventoryRecord rows are the history of stock movements per item.
- Appending a record never touches the ledger on its own; the caller pairs it
  with a ledger write in the same DB transaction.
- History order is (occurred_at, id) ascending.

Ledger maintenance:
- New movements use the incremental rules in services.costing against the
  item's current ledger (no replay).
- Editing or deleting a historical record replays that item's full history
  from zero and overwrites the ledger (reconcile_item). There is no
  incremental undo.

Business invariants:
- Services never receive inventory records.
- Stock never goes negative; excess Usage floors at zero and the record is
  flagged stock_clamped.
- Each operation is one unit of work: a failure leaves both the ledger and the
  record store as they were.
"""


def _parse_occurred_at(value):
    """
    Normalize occurred_at to canonical UTC-naive datetime.

    Accepts:
    - None -> utcnow() (UTC-naive)
    - datetime:
        - aware -> convert to UTC, strip tzinfo
        - naive -> treat as UTC-naive
    - str -> parse_iso_datetime (accepts Z/offsets; returns UTC-naive)
    """
    if value is None:
        return utcnow()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value  # already naive; treat as UTC-naive

    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            dt = None
        if dt is None:
            raise ValidationError("invalid occurred_at")
        return dt

    raise ValidationError("invalid occurred_at")


def _guard_future(occurred_dt: datetime) -> None:
    if occurred_dt > (utcnow() + timedelta(minutes=2)):
        raise ValidationError("occurred_at cannot be in the future")


# =============================================================================
# RECORD STORE
# =============================================================================

def append_record(record: InventoryRecord) -> InventoryRecord:
    """Insert a record. Does not update the ledger."""
    db.session.add(record)
    db.session.flush()
    return record


def get_record(record_id: int) -> InventoryRecord:
    record = db.session.get(InventoryRecord, record_id)
    if record is None:
        raise NotFoundError("Inventory record not found")
    return record


def list_records_for_item(item_id: int) -> list[InventoryRecord]:
    """Full history for one item, oldest first (replay order)."""
    return (
        db.session.query(InventoryRecord)
        .filter(InventoryRecord.item_id == item_id)
        .order_by(InventoryRecord.occurred_at.asc(), InventoryRecord.id.asc())
        .all()
    )


def list_records(
    *,
    item_id: int | None = None,
    movement_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 200,
) -> list[InventoryRecord]:
    q = db.session.query(InventoryRecord)
    if item_id is not None:
        q = q.filter(InventoryRecord.item_id == item_id)
    if movement_type is not None:
        q = q.filter(InventoryRecord.type == validate_movement_type(movement_type))
    if start is not None:
        q = q.filter(InventoryRecord.occurred_at >= start)
    if end is not None:
        q = q.filter(InventoryRecord.occurred_at <= end)

    return (
        q.order_by(InventoryRecord.occurred_at.desc(), InventoryRecord.id.desc())
        .limit(limit)
        .all()
    )


# =============================================================================
# COSTING ENGINE
# =============================================================================

def _record_movement_inner(
    *,
    item: Item,
    movement_type: str,
    quantity: int,
    unit_cost=None,
    occurred_dt: datetime,
    notes: str | None = None,
    sale_id: int | None = None,
) -> InventoryRecord:
    """Core movement logic without locking, retry, future-guard, or commit.

    Called by both the public record_movement() and the sales service, which
    owns the surrounding transaction.
    """
    prior = snapshot_of(item)
    result = apply_movement(prior, movement_type, quantity, unit_cost)

    if result.stock_clamped:
        current_app.logger.warning(
            "Usage clamped at zero stock: item_id=%s requested=%s available=%s",
            item.id,
            quantity,
            prior.stock,
        )

    record = InventoryRecord(
        item_id=item.id,
        type=movement_type,
        quantity=quantity,
        unit_cost=result.unit_cost,
        total_cost=result.total_cost,
        cogs_total=result.cogs_total,
        stock_clamped=result.stock_clamped,
        sale_id=sale_id,
        notes=notes,
        occurred_at=occurred_dt,
    )
    append_record(record)
    set_ledger(item, result.ledger)
    db.session.flush()
    return record


def record_movement(
    *,
    item_id: int,
    movement_type: str,
    quantity: int,
    unit_cost=None,
    occurred_at=None,
    notes: str | None = None,
) -> InventoryRecord:
    """
    Record a stock movement and update the item's ledger atomically.

    unit_cost is required for Purchase, Return and Adjustment. For Usage it is
    ignored: the movement is priced at the item's current average cost.
    """
    def _op():
        # Item existence and kind are checked before the movement itself
        item = load_stock_item(item_id, lock=True)

        validate_movement_type(movement_type)
        validate_quantity(movement_type, quantity)
        if movement_type != USAGE:
            validate_unit_cost(unit_cost)

        occurred_dt = _parse_occurred_at(occurred_at)
        _guard_future(occurred_dt)

        record = _record_movement_inner(
            item=item,
            movement_type=movement_type,
            quantity=quantity,
            unit_cost=unit_cost,
            occurred_dt=occurred_dt,
            notes=notes,
        )

        db.session.commit()
        return record

    return run_with_retry(_op)


def _reconcile_inner(item: Item) -> LedgerSnapshot:
    """Replay one item's history and write the ledger. No commit."""
    records = list_records_for_item(item.id)

    clamped_ids: set[int] = set()
    snapshot = replay(records, on_clamp=lambda r: clamped_ids.add(r.id))

    for record in records:
        if record.type == USAGE:
            record.stock_clamped = record.id in clamped_ids

    set_ledger(item, snapshot)
    db.session.flush()

    current_app.logger.info(
        "Reconciled item_id=%s over %s records: stock=%s average_cost=%s",
        item.id,
        len(records),
        snapshot.stock,
        snapshot.average_cost,
    )
    return snapshot


def reconcile_item(item_id: int) -> LedgerSnapshot:
    """Rederive stock and average cost from the item's full record history."""
    def _op():
        item = load_stock_item(item_id, lock=True)
        snapshot = _reconcile_inner(item)
        db.session.commit()
        return snapshot

    return run_with_retry(_op)


def reconcile_all() -> dict[int, LedgerSnapshot]:
    """Reconcile every stock-tracked item. Used by the CLI after data repair."""
    item_ids = [
        row.id
        for row in db.session.query(Item.id).filter(Item.is_service.is_(False)).order_by(Item.id.asc())
    ]
    return {item_id: reconcile_item(item_id) for item_id in item_ids}


def update_record(record_id: int, patch: dict) -> InventoryRecord:
    """
    Edit a historical record, then reconcile the affected item(s).

    patch may contain occurred_at, item_id, type, quantity, unit_cost, notes;
    omitted fields keep their current value. total_cost is recomputed as
    quantity * unit_cost and cogs_total follows the (new) type.
    """
    def _op():
        record = get_record(record_id)
        old_item_id = record.item_id
        new_item = load_stock_item(patch.get("item_id", record.item_id), lock=True)

        new_type = validate_movement_type(patch.get("type", record.type))
        new_quantity = validate_quantity(new_type, patch.get("quantity", record.quantity))
        new_unit_cost = validate_unit_cost(patch.get("unit_cost", record.unit_cost))

        if "occurred_at" in patch and patch["occurred_at"] is not None:
            occurred_dt = _parse_occurred_at(patch["occurred_at"])
            _guard_future(occurred_dt)
            record.occurred_at = occurred_dt

        unit, total, cogs = record_costs(new_type, new_quantity, new_unit_cost)
        record.item_id = new_item.id
        record.type = new_type
        record.quantity = new_quantity
        record.unit_cost = unit
        record.total_cost = total
        record.cogs_total = cogs
        if new_type != USAGE:
            record.stock_clamped = False
        if "notes" in patch:
            record.notes = patch["notes"]
        db.session.flush()

        if old_item_id != new_item.id:
            _reconcile_inner(load_item(old_item_id, lock=True))
        _reconcile_inner(new_item)

        db.session.commit()
        return record

    return run_with_retry(_op)


def delete_record(record_id: int) -> int:
    """Delete a record and reconcile its item. Returns the item id."""
    def _op():
        record = get_record(record_id)
        item_id = record.item_id

        # Sale lines keep their commission snapshot; only the link goes.
        db.session.query(SaleLine).filter(
            SaleLine.inventory_record_id == record.id
        ).update({SaleLine.inventory_record_id: None}, synchronize_session="fetch")

        db.session.delete(record)
        db.session.flush()

        _reconcile_inner(load_item(item_id, lock=True))

        db.session.commit()
        return item_id

    return run_with_retry(_op)


def calculate_cogs(item_id: int, quantity: int) -> dict:
    """
    Pure read: what consuming `quantity` would cost at the current average cost.

    Returns zeros when the item has no cost basis yet.
    """
    validate_quantity(USAGE, quantity)
    item = load_item(item_id)
    if item.is_service:
        raise InvalidOperationError("Service items do not carry inventory")

    unit_cost, total_cost = cogs_for(snapshot_of(item), quantity)
    return {
        "item_id": item.id,
        "quantity": quantity,
        "unit_cost": unit_cost,
        "total_cost": total_cost,
    }


def get_inventory_summary(item_id: int) -> dict:
    item = load_item(item_id)
    ledger = snapshot_of(item)
    value = quantize_money(ledger.stock * ledger.average_cost) if not item.is_service else quantize_money(ZERO)

    return {
        "item_id": item.id,
        "name": item.name,
        "is_service": item.is_service,
        "stock": ledger.stock,
        "average_cost": ledger.average_cost,
        "inventory_value": value,
        "reorder_threshold": item.reorder_threshold,
        "record_count": db.session.query(InventoryRecord).filter_by(item_id=item.id).count(),
    }
