# Overview: Live stock store; product master data and on-hand quantity mutations.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMovement, Store
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
"""
Live Stock Invariants (authoritative)

- Product.quantity_on_hand is the live stock figure; it may never go negative.
- Every change to quantity_on_hand appends a StockMovement in the same DB
  transaction (RECEIVE, SALE, STOCKTAKE).
- All writes go through the ORM so Product.version_id is checked; concurrent
  writers that read the same version cannot both commit.
- set_stock() does NOT commit: it is the building block for the stocktake
  completion transaction, which owns the commit boundary.
- record_sale() / receive_stock() are standalone units of work and commit.
"""

MOVEMENT_RECEIVE = "RECEIVE"
MOVEMENT_SALE = "SALE"
MOVEMENT_STOCKTAKE = "STOCKTAKE"


def _ensure_product_in_store(
    store_id: int,
    product_id: int,
    *,
    require_active: bool = False,
    lock: bool = False
) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    if product.store_id != store_id:
        raise NotFoundError(f"Product {product_id} not found in store {store_id}")
    if require_active and not product.is_active:
        raise ValidationError(f"Product {product_id} is inactive")
    return product


def _append_movement(product: Product, movement_type: str, delta: int, *, stocktake_id=None, note=None) -> StockMovement:
    movement = StockMovement(
        store_id=product.store_id,
        product_id=product.id,
        type=movement_type,
        quantity_delta=delta,
        quantity_after=product.quantity_on_hand,
        stocktake_id=stocktake_id,
        note=note,
        occurred_at=utcnow(),
    )
    db.session.add(movement)
    return movement


def create_product(
    store_id: int,
    sku: str,
    name: str,
    *,
    cost_cents: int = 0,
    price_cents: int | None = None,
    quantity_on_hand: int = 0,
) -> Product:
    if not sku or not name:
        raise ValidationError("sku and name are required")
    if cost_cents < 0:
        raise ValidationError("cost_cents cannot be negative")
    if quantity_on_hand < 0:
        raise ValidationError("quantity_on_hand cannot be negative")

    def _op():
        store = db.session.get(Store, store_id)
        if store is None:
            raise NotFoundError(f"Store {store_id} not found")

        product = Product(
            store_id=store_id,
            sku=sku.strip(),
            name=name.strip(),
            cost_cents=cost_cents,
            price_cents=price_cents,
            quantity_on_hand=quantity_on_hand,
        )
        db.session.add(product)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"SKU {sku!r} already exists in store {store_id}")

        if quantity_on_hand:
            _append_movement(product, MOVEMENT_RECEIVE, quantity_on_hand, note="Opening stock")

        db.session.commit()
        return product

    return run_with_retry(_op)


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def get_stock(product_id: int) -> int:
    return get_product(product_id).quantity_on_hand


def list_products(store_id: int, *, include_inactive: bool = False) -> list[Product]:
    query = db.session.query(Product).filter_by(store_id=store_id)
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def list_active_products(store_id: int) -> list[dict]:
    """
    Current stock of every active product in a store, read in one query.

    Returns: [{"id", "qty", "unit_cost"}]
    """
    rows = db.session.query(
        Product.id, Product.quantity_on_hand, Product.cost_cents
    ).filter(
        Product.store_id == store_id,
        Product.is_active.is_(True),
    ).order_by(Product.id.asc()).all()

    return [
        {"id": row.id, "qty": row.quantity_on_hand, "unit_cost": row.cost_cents}
        for row in rows
    ]


def set_stock(product: Product, quantity: int, *, stocktake_id: int | None = None, note: str | None = None) -> StockMovement | None:
    """
    Set a product's on-hand quantity to an absolute value.

    Does not commit. Returns None (and writes nothing) when the product is
    already at ``quantity``, which makes repeated application a no-op.
    """
    if quantity < 0:
        raise ValidationError("Stock cannot be negative")

    delta = quantity - product.quantity_on_hand
    if delta == 0:
        return None

    product.quantity_on_hand = quantity
    return _append_movement(
        product,
        MOVEMENT_STOCKTAKE if stocktake_id is not None else MOVEMENT_RECEIVE,
        delta,
        stocktake_id=stocktake_id,
        note=note,
    )


def record_sale(store_id: int, product_id: int, quantity: int, *, note: str | None = None) -> Product:
    """
    Decrement stock for a sale.

    Runs concurrently with stocktakes; the version check on Product turns a
    race with a completion commit into a retry rather than a lost update.
    """
    if quantity <= 0:
        raise ValidationError("Sale quantity must be positive")

    def _op():
        product = _ensure_product_in_store(store_id, product_id, require_active=True, lock=True)
        if product.quantity_on_hand < quantity:
            raise ValidationError(
                "Insufficient stock",
                {"product_id": product_id, "on_hand": product.quantity_on_hand, "requested": quantity},
            )

        product.quantity_on_hand -= quantity
        _append_movement(product, MOVEMENT_SALE, -quantity, note=note)
        db.session.commit()
        return product

    return run_with_retry(_op)


def receive_stock(store_id: int, product_id: int, quantity: int, *, note: str | None = None) -> Product:
    if quantity <= 0:
        raise ValidationError("Receive quantity must be positive")

    def _op():
        product = _ensure_product_in_store(store_id, product_id, lock=True)
        product.quantity_on_hand += quantity
        _append_movement(product, MOVEMENT_RECEIVE, quantity, note=note)
        db.session.commit()
        return product

    return run_with_retry(_op)


def deactivate_product(product_id: int) -> Product:
    """Inactive products are skipped by future stocktake snapshots."""
    def _op():
        product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        product.is_active = False
        db.session.commit()
        return product

    return run_with_retry(_op)


def list_movements(product_id: int, *, limit: int = 100) -> list[StockMovement]:
    get_product(product_id)
    return db.session.query(StockMovement).filter_by(
        product_id=product_id
    ).order_by(StockMovement.id.desc()).limit(limit).all()
