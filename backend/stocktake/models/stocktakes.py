from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

class Stocktake(db.Model):
    """
    Physical inventory count session for one store.

    LIFECYCLE:
    1. draft: expected stock snapshotted, counts being entered (resumable)
    2. completed: counted quantities committed to live stock; immutable

    At most one draft per store, enforced by a partial unique index so two
    concurrent "start" requests cannot both succeed.

    Every write to a draft (count submissions touch last_counted_at) bumps
    version_id, so a submission racing the completion commit loses the
    optimistic check instead of landing on a completed session.
    """
    __tablename__ = "stocktakes"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_number", name="uq_stocktakes_store_docnum"),
        db.Index(
            "uq_stocktakes_store_draft",
            "store_id",
            unique=True,
            sqlite_where=db.text("status = 'draft'"),
            postgresql_where=db.text("status = 'draft'"),
        ),
        db.Index("ix_stocktakes_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    # Document number (e.g., "ST-000001") - unique per store
    document_number = db.Column(db.String(64), nullable=False)

    # draft, completed
    status = db.Column(db.String(16), nullable=False, default="draft", index=True)

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=False)
    completed_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_counted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Totals, filled in by the completion commit
    total_items = db.Column(db.Integer, nullable=True)
    items_with_variance = db.Column(db.Integer, nullable=True)
    total_variance_units = db.Column(db.Integer, nullable=True)
    total_variance_cost_cents = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store")
    items = db.relationship(
        "StocktakeItem",
        back_populates="stocktake",
        lazy=True,
        order_by="StocktakeItem.product_id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Stocktake id={self.id} store_id={self.store_id} status={self.status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "document_number": self.document_number,
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "completed_by_user_id": self.completed_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "last_counted_at": to_utc_z(self.last_counted_at),
            "completed_at": to_utc_z(self.completed_at),
            "total_items": self.total_items,
            "items_with_variance": self.items_with_variance,
            "total_variance_units": self.total_variance_units,
            "total_variance_cost_cents": self.total_variance_cost_cents,
            "version_id": self.version_id,
        }

class StocktakeItem(db.Model):
    """
    One product's line in a stocktake.

    expected_stock and unit_cost_cents are captured at snapshot time and never
    change. counted_stock is NULL until the operator enters a count; NULL means
    "not yet counted", which is distinct from a count of zero.
    """
    __tablename__ = "stocktake_items"
    __table_args__ = (
        db.UniqueConstraint("stocktake_id", "product_id", name="uq_stocktake_items_stocktake_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stocktake_id = db.Column(db.Integer, db.ForeignKey("stocktakes.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    expected_stock = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    counted_stock = db.Column(db.Integer, nullable=True)
    counted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Filled in by the completion commit
    variance_quantity = db.Column(db.Integer, nullable=True)
    live_stock_at_completion = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    stocktake = db.relationship("Stocktake", back_populates="items")
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_counted(self) -> bool:
        return self.counted_stock is not None

    def to_dict(self) -> dict:
        variance = None
        if self.counted_stock is not None:
            variance = self.counted_stock - self.expected_stock
        return {
            "id": self.id,
            "stocktake_id": self.stocktake_id,
            "product_id": self.product_id,
            "sku": self.product.sku if self.product else None,
            "name": self.product.name if self.product else None,
            "expected_stock": self.expected_stock,
            "counted_stock": self.counted_stock,
            "variance_quantity": variance,
            "unit_cost_cents": self.unit_cost_cents,
            "counted_at": to_utc_z(self.counted_at),
            "live_stock_at_completion": self.live_stock_at_completion,
        }
