# Overview: Count ledger; records counted quantities against a draft stocktake.

"""
Counts are keyed by (stocktake_id, product_id). Submitting the same product
again overwrites counted_stock in place, so repeating a submission is
harmless and a crash can lose at most the write that was in flight.

Every submission also stamps Stocktake.last_counted_at. Because Stocktake is
version-checked, this makes a submission and a concurrent completion
mutually exclusive: whichever commits second hits StaleDataError, is retried,
and re-evaluates the stocktake's status.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, Stocktake, StocktakeItem
from ..time_utils import utcnow
from ..validation import coerce_int
from .concurrency import lock_for_update, run_with_retry
from .session_state import require_draft


def _load_stocktake(stocktake_id: int, *, lock: bool = False) -> Stocktake:
    query = db.session.query(Stocktake).filter_by(id=stocktake_id)
    if lock:
        query = lock_for_update(query)
    stocktake = query.first()
    if stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")
    return stocktake


def _apply_count(stocktake: Stocktake, product_id: int, counted_qty: int, now) -> StocktakeItem:
    item = db.session.query(StocktakeItem).filter_by(
        stocktake_id=stocktake.id,
        product_id=product_id,
    ).first()
    if item is None:
        raise NotFoundError(
            f"Product {product_id} is not part of stocktake {stocktake.id}",
            {"stocktake_id": stocktake.id, "product_id": product_id},
        )

    if item.counted_stock != counted_qty:
        item.counted_stock = counted_qty
    item.counted_at = now
    return item


def submit_count(stocktake_id: int, product_id: int, counted_qty) -> StocktakeItem:
    """
    Record (or overwrite) the counted quantity for one product.

    Raises:
        NotFoundError: Unknown stocktake, or product not in its snapshot
        InvalidStateError: Stocktake is not a draft
        ValidationError: counted_qty is not an integer >= 0
    """
    counted_qty = coerce_int(counted_qty, "counted_stock", minimum=0)

    def _op():
        stocktake = _load_stocktake(stocktake_id, lock=True)
        require_draft(stocktake, "submit counts to")

        now = utcnow()
        item = _apply_count(stocktake, product_id, counted_qty, now)
        stocktake.last_counted_at = now

        db.session.commit()
        return item

    return run_with_retry(_op)


def submit_counts(stocktake_id: int, counts: dict) -> list[StocktakeItem]:
    """
    Record several counts in one transaction (all or nothing).

    Args:
        counts: {product_id: counted_qty}
    """
    if not counts:
        raise ValidationError("At least one count is required")

    parsed = {
        coerce_int(product_id, "product_id", minimum=1): coerce_int(qty, "counted_stock", minimum=0)
        for product_id, qty in counts.items()
    }

    def _op():
        stocktake = _load_stocktake(stocktake_id, lock=True)
        require_draft(stocktake, "submit counts to")

        now = utcnow()
        items = [
            _apply_count(stocktake, product_id, qty, now)
            for product_id, qty in sorted(parsed.items())
        ]
        stocktake.last_counted_at = now

        db.session.commit()
        return items

    return run_with_retry(_op)


def get_counts(stocktake_id: int, *, search: str | None = None, uncounted_only: bool = False) -> list[StocktakeItem]:
    """
    Current state of every item, for resuming an interrupted count.

    counted_stock is None for items not yet counted (not zero).
    """
    _load_stocktake(stocktake_id)

    query = db.session.query(StocktakeItem).join(
        Product, Product.id == StocktakeItem.product_id
    ).filter(StocktakeItem.stocktake_id == stocktake_id)

    term = (search or "").strip()
    if term:
        # Literal substring match; % and _ in the term are not wildcards
        query = query.filter(or_(
            Product.name.icontains(term, autoescape=True),
            Product.sku.icontains(term, autoescape=True),
        ))

    if uncounted_only:
        query = query.filter(StocktakeItem.counted_stock.is_(None))

    return query.order_by(Product.name.asc(), Product.id.asc()).all()
