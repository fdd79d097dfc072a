from __future__ import annotations

from ..extensions import db
from ..money import decimal_str
from salonpos.time_utils import to_utc_z


category_roles = db.Table(
    "category_roles",
    db.Column("category_id", db.Integer, db.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Category(db.Model):
    """
    Service/product category (e.g. "Hair Services", "Nail Products").

    Rates are percentages of a sale line's total. They are independent,
    not a partition: commission_rate + salon_owner_rate need not equal 100.
    Sale lines copy both rates at sale time; changing them here never
    rewrites historical lines.

    tracks_stock marks product categories whose (non-service) items consume
    inventory when sold.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)

    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    salon_owner_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)

    tracks_stock = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    roles = db.relationship("Role", secondary=category_roles, lazy="selectin", order_by="Role.name")

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "commission_rate": decimal_str(self.commission_rate),
            "salon_owner_rate": decimal_str(self.salon_owner_rate),
            "tracks_stock": self.tracks_stock,
            "roles": [{"id": r.id, "name": r.name} for r in self.roles],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Item(db.Model):
    """
    Sellable item: a service (haircut) or a stock-tracked product (shampoo).

    LEDGER FIELDS: stock and average_cost are owned by the costing write path
    (services.ledger_service.set_ledger). Item CRUD never writes them.
    Services never carry stock (always 0) and never receive inventory records.

    version_id gives optimistic locking on the ledger: two movements that
    read the same stock cannot both commit.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.Index("ix_items_category_name", "category_id", "name"),
        db.CheckConstraint("stock >= 0", name="ck_items_stock_non_negative"),
        db.CheckConstraint("average_cost >= 0", name="ck_items_average_cost_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    is_service = db.Column(db.Boolean, nullable=False, default=False)

    # Ledger (costing engine only)
    stock = db.Column(db.Integer, nullable=False, default=0)
    average_cost = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    reorder_threshold = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "name": self.name,
            "description": self.description,
            "price": decimal_str(self.price),
            "is_service": self.is_service,
            "stock": self.stock,
            "average_cost": decimal_str(self.average_cost),
            "reorder_threshold": self.reorder_threshold,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
