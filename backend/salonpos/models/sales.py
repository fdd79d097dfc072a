from __future__ import annotations

from ..extensions import db
from ..money import decimal_str
from salonpos.time_utils import to_utc_z


class Sale(db.Model):
    """
    A completed sale. Sales are written once with all their lines; there is
    no draft/post lifecycle.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_occurred", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    notes = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    lines = db.relationship(
        "SaleLine",
        backref="sale",
        lazy="selectin",
        order_by="SaleLine.id",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "subtotal": decimal_str(self.subtotal),
            "tax": decimal_str(self.tax),
            "total": decimal_str(self.total),
            "notes": self.notes,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class SaleLine(db.Model):
    """
    Individual line on a sale.

    COMMISSION SNAPSHOT: commission_rate and salon_owner_rate are copied from
    the item's category when the sale is created, and the amounts are computed
    from them once (line total * rate / 100). Later category changes never
    touch these columns.
    """
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.Index("ix_sale_lines_employee", "employee_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    salon_owner_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    commission_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    salon_owner_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # Usage movement written for stock-tracked lines
    inventory_record_id = db.Column(db.Integer, db.ForeignKey("inventory_records.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item")
    employee = db.relationship("Employee")
    inventory_record = db.relationship("InventoryRecord", foreign_keys=[inventory_record_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "is_service": self.item.is_service if self.item else None,
            "employee_id": self.employee_id,
            "employee_name": self.employee.name if self.employee else None,
            "quantity": self.quantity,
            "price": decimal_str(self.price),
            "total": decimal_str(self.total),
            "commission_rate": decimal_str(self.commission_rate),
            "salon_owner_rate": decimal_str(self.salon_owner_rate),
            "commission_amount": decimal_str(self.commission_amount),
            "salon_owner_amount": decimal_str(self.salon_owner_amount),
            "inventory_record_id": self.inventory_record_id,
            "created_at": to_utc_z(self.created_at),
        }
