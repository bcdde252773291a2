# Overview: Starts stocktakes and snapshots expected stock.

"""
start_session() is all-or-nothing: the draft Stocktake row and one
StocktakeItem per active product are flushed in the same transaction, so a
storage failure leaves no partial session behind.

Expected stock is read with a single query (stock_service.list_active_products)
rather than per-product reads, which bounds how stale the snapshot can be.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Stocktake, StocktakeItem, Store
from ..time_utils import today_utc
from . import notification_service, stock_service
from .concurrency import lock_for_update, run_with_retry
from .session_state import STATUS_DRAFT


def _next_document_number(store_id: int) -> str:
    existing = db.session.query(Stocktake).filter_by(store_id=store_id).count()
    return f"ST-{str(existing + 1).zfill(6)}"


def _find_draft(store_id: int) -> Stocktake | None:
    return db.session.query(Stocktake).filter_by(
        store_id=store_id, status=STATUS_DRAFT
    ).first()


def start_session(store_id: int, actor_id: int, notes: str | None = None) -> Stocktake:
    """
    Create a draft stocktake for a store and snapshot expected stock.

    Args:
        store_id: Store being counted
        actor_id: User starting the count
        notes: Free text; defaults to "Stocktake started on YYYY-MM-DD"

    Returns:
        Stocktake: The new draft, with its items

    Raises:
        ValidationError: actor_id missing or not positive
        NotFoundError: Store does not exist or is inactive
        ConflictError: Store already has a draft stocktake
        InternalError: Storage failure (nothing was written)
    """
    if not isinstance(actor_id, int) or isinstance(actor_id, bool) or actor_id <= 0:
        raise ValidationError("actor_id must be a positive integer")

    def _op():
        store = lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        if store is None or not store.is_active:
            raise NotFoundError(f"Store {store_id} not found")

        draft = _find_draft(store_id)
        if draft is not None:
            raise ConflictError(
                f"Store {store_id} already has a draft stocktake",
                {"stocktake_id": draft.id},
            )

        stocktake = Stocktake(
            store_id=store_id,
            document_number=_next_document_number(store_id),
            status=STATUS_DRAFT,
            created_by_user_id=actor_id,
            notes=notes or f"Stocktake started on {today_utc().isoformat()}",
        )
        db.session.add(stocktake)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the race against a concurrent start for the same store
            db.session.rollback()
            raise ConflictError(f"Store {store_id} already has a draft stocktake")

        for row in stock_service.list_active_products(store_id):
            db.session.add(StocktakeItem(
                stocktake_id=stocktake.id,
                product_id=row["id"],
                expected_stock=row["qty"],
                unit_cost_cents=row["unit_cost"] or 0,
                counted_stock=None,
            ))

        db.session.commit()
        return stocktake

    stocktake = run_with_retry(_op)

    current_app.logger.info(
        "Stocktake %s started for store %s by user %s (%d items)",
        stocktake.id, store_id, actor_id, len(stocktake.items),
    )
    notification_service.notify(
        notification_service.KIND_INFO,
        f"Stocktake {stocktake.document_number} started with {len(stocktake.items)} products.",
    )
    return stocktake
