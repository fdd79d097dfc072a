# Overview: Item ledger access (stock + average cost); the only writer of those two columns.

from __future__ import annotations

from ..extensions import db
from ..models import Item
from ..money import ZERO, quantize_cost
from ..validation import InvalidOperationError, NotFoundError, ValidationError
from .concurrency import lock_for_update
from .costing import LedgerSnapshot


def load_item(item_id: int, *, lock: bool = False) -> Item:
    query = db.session.query(Item).filter_by(id=item_id)
    if lock:
        query = lock_for_update(query)
    item = query.first()
    if item is None:
        raise NotFoundError("Item not found")
    return item


def load_stock_item(item_id: int, *, lock: bool = False) -> Item:
    """Load an item that may carry inventory; services never do."""
    item = load_item(item_id, lock=lock)
    if item.is_service:
        raise InvalidOperationError("Service items do not carry inventory")
    return item


def snapshot_of(item: Item) -> LedgerSnapshot:
    return LedgerSnapshot(
        stock=int(item.stock or 0),
        average_cost=quantize_cost(item.average_cost if item.average_cost is not None else ZERO),
    )


def get_ledger(item_id: int) -> LedgerSnapshot:
    return snapshot_of(load_item(item_id))


def set_ledger(item: Item, snapshot: LedgerSnapshot) -> Item:
    """
    Write (stock, average_cost) onto the item. Caller commits.

    Accepts an Item or an item id.
    """
    if not isinstance(item, Item):
        item = load_item(item, lock=True)

    if snapshot.stock < 0:
        raise ValidationError("stock cannot be negative")
    if snapshot.average_cost < ZERO:
        raise ValidationError("average_cost cannot be negative")

    item.stock = snapshot.stock
    item.average_cost = quantize_cost(snapshot.average_cost)
    return item
