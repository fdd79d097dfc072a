from __future__ import annotations

from ..extensions import db
from ..money import decimal_str
from salonpos.time_utils import to_utc_z


class InventoryRecord(db.Model):
    """
    One stock movement for one item.

    type is Purchase, Return, Usage or Adjustment (see services.costing).
    quantity is always stored non-negative; its meaning depends on type:
    a delta for Purchase/Return/Usage, the absolute new stock for Adjustment.

    total_cost = quantity * unit_cost. cogs_total equals total_cost for Usage
    and is 0 otherwise. Usage unit_cost is the item's average cost in effect
    just before the movement, never the caller's value.

    stock_clamped records that a Usage asked for more than the available
    stock and the ledger was floored at zero instead.

    History is replayed in (occurred_at, id) order by reconciliation.
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.Index("ix_invrec_item_occurred", "item_id", "occurred_at"),
        db.Index("ix_invrec_item_type_occurred", "item_id", "type", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)

    unit_cost = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    total_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cogs_total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    stock_clamped = db.Column(db.Boolean, nullable=False, default=False)

    # Set when the movement was written by a sale
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    notes = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    item = db.relationship("Item", backref=db.backref("inventory_records", lazy=True))

    def __repr__(self) -> str:
        return f"<InventoryRecord id={self.id} item_id={self.item_id} type={self.type} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "type": self.type,
            "quantity": self.quantity,
            "unit_cost": decimal_str(self.unit_cost),
            "total_cost": decimal_str(self.total_cost),
            "cogs_total": decimal_str(self.cogs_total),
            "stock_clamped": self.stock_clamped,
            "sale_id": self.sale_id,
            "notes": self.notes,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
