# Overview: Reconciliation engine; validates counts and commits them to live stock.

"""
complete_session() is one DB transaction:

1. lock the stocktake, require draft
2. every item must be counted (IncompleteCountError otherwise; a missing count
   is never treated as zero)
3. lock the products (ordered by id), compute variance = counted - expected,
   and flag StaleExpectation where live stock drifted from the snapshot
   (a sale happened while counting)
4. set live stock to counted wherever they differ, append STOCKTAKE movements,
   record per-item results and totals, transition draft -> completed, commit

Any failure before the commit rolls everything back: the stocktake stays draft
and no product is touched, so the caller can simply retry. Version conflicts
(a sale committing mid-way) are retried automatically and recomputed from
scratch. Once completed, a second call fails with InvalidStateError, so
variances are never applied twice.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field

from flask import current_app

from ..errors import IncompleteCountError, NotFoundError
from ..extensions import db
from ..models import Product, Stocktake, StocktakeItem
from ..time_utils import to_utc_z, utcnow
from . import notification_service, stock_service
from .concurrency import lock_for_update, run_with_retry
from .session_state import STATUS_COMPLETED, require_completed, require_draft, transition


@dataclass(frozen=True)
class StaleExpectation:
    product_id: int
    expected_stock: int
    live_stock: int
    counted_stock: int

    @property
    def drift(self) -> int:
        return self.live_stock - self.expected_stock


@dataclass(frozen=True)
class ItemVariance:
    product_id: int
    expected_stock: int
    counted_stock: int
    variance_quantity: int
    unit_cost_cents: int
    variance_cost_cents: int


@dataclass
class CompletionReport:
    stocktake_id: int
    total_items_counted: int
    items_with_variance: int
    total_variance_units: int
    total_variance_cost_cents: int
    variances: list[ItemVariance] = field(default_factory=list)
    warnings: list[StaleExpectation] = field(default_factory=list)
    completed_at: str | None = None

    def variance_for(self, product_id: int) -> ItemVariance | None:
        for variance in self.variances:
            if variance.product_id == product_id:
                return variance
        return None

    def to_dict(self) -> dict:
        return {
            "stocktake_id": self.stocktake_id,
            "total_items_counted": self.total_items_counted,
            "items_with_variance": self.items_with_variance,
            "total_variance_units": self.total_variance_units,
            "total_variance_cost_cents": self.total_variance_cost_cents,
            "variances": [asdict(v) for v in self.variances],
            "warnings": [
                {"type": "STALE_EXPECTATION", **asdict(w), "drift": w.drift}
                for w in self.warnings
            ],
            "completed_at": self.completed_at,
        }


def _item_variance(item: StocktakeItem) -> ItemVariance:
    variance = item.counted_stock - item.expected_stock
    return ItemVariance(
        product_id=item.product_id,
        expected_stock=item.expected_stock,
        counted_stock=item.counted_stock,
        variance_quantity=variance,
        unit_cost_cents=item.unit_cost_cents,
        variance_cost_cents=variance * item.unit_cost_cents,
    )


def _build_report(stocktake: Stocktake, variances: list[ItemVariance], warnings: list[StaleExpectation]) -> CompletionReport:
    return CompletionReport(
        stocktake_id=stocktake.id,
        total_items_counted=len(variances),
        items_with_variance=sum(1 for v in variances if v.variance_quantity != 0),
        total_variance_units=sum(v.variance_quantity for v in variances),
        total_variance_cost_cents=sum(v.variance_cost_cents for v in variances),
        variances=variances,
        warnings=warnings,
        completed_at=to_utc_z(stocktake.completed_at),
    )


def complete_session(stocktake_id: int, actor_id: int | None = None) -> CompletionReport:
    """
    Validate a draft stocktake and commit its counts to live stock.

    Raises:
        NotFoundError: Stocktake (or one of its products) no longer exists
        InvalidStateError: Stocktake is not a draft
        IncompleteCountError: One or more items have no count
        InternalError: Storage failure; nothing was written
    """
    def _op():
        stocktake = lock_for_update(db.session.query(Stocktake).filter_by(id=stocktake_id)).first()
        if stocktake is None:
            raise NotFoundError(f"Stocktake {stocktake_id} not found")
        require_draft(stocktake, "complete")

        items = db.session.query(StocktakeItem).filter_by(
            stocktake_id=stocktake.id
        ).order_by(StocktakeItem.product_id.asc()).all()

        missing = [item.product_id for item in items if item.counted_stock is None]
        if missing:
            raise IncompleteCountError(missing)

        product_ids = [item.product_id for item in items]
        products = {
            p.id: p
            for p in lock_for_update(
                db.session.query(Product).filter(Product.id.in_(product_ids)).order_by(Product.id.asc())
            ).all()
        } if product_ids else {}

        vanished = [pid for pid in product_ids if pid not in products]
        if vanished:
            raise NotFoundError(
                f"{len(vanished)} product(s) in stocktake {stocktake.id} no longer exist",
                {"product_ids": vanished},
            )

        variances = []
        warnings = []
        note = f"Stocktake {stocktake.document_number}"
        for item in items:
            product = products[item.product_id]
            live = product.quantity_on_hand

            if live != item.expected_stock:
                warnings.append(StaleExpectation(
                    product_id=item.product_id,
                    expected_stock=item.expected_stock,
                    live_stock=live,
                    counted_stock=item.counted_stock,
                ))

            stock_service.set_stock(product, item.counted_stock, stocktake_id=stocktake.id, note=note)

            variance = _item_variance(item)
            item.variance_quantity = variance.variance_quantity
            item.live_stock_at_completion = live
            variances.append(variance)

        stocktake.total_items = len(variances)
        stocktake.items_with_variance = sum(1 for v in variances if v.variance_quantity != 0)
        stocktake.total_variance_units = sum(v.variance_quantity for v in variances)
        stocktake.total_variance_cost_cents = sum(v.variance_cost_cents for v in variances)
        transition(stocktake, STATUS_COMPLETED, actor_id=actor_id, at=utcnow())

        db.session.commit()
        return _build_report(stocktake, variances, warnings)

    report = run_with_retry(_op)

    current_app.logger.info(
        "Stocktake %s completed: %d items, %d with variance, %d cents",
        report.stocktake_id, report.total_items_counted,
        report.items_with_variance, report.total_variance_cost_cents,
    )
    for warning in report.warnings:
        current_app.logger.warning(
            "Stocktake %s: product %s drifted from %s to %s while counting (set to %s)",
            report.stocktake_id, warning.product_id, warning.expected_stock,
            warning.live_stock, warning.counted_stock,
        )

    notification_service.notify(
        notification_service.KIND_SUCCESS,
        "Stocktake completed and inventory updated.",
    )
    if report.warnings:
        notification_service.notify(
            notification_service.KIND_WARNING,
            f"{len(report.warnings)} product(s) sold while counting; counted values were applied.",
        )
    return report


def get_report(stocktake_id: int) -> CompletionReport:
    """Rebuild the completion report of a completed stocktake from stored results."""
    stocktake = db.session.get(Stocktake, stocktake_id)
    if stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")
    require_completed(stocktake)

    variances = []
    warnings = []
    for item in stocktake.items:
        variances.append(_item_variance(item))
        if item.live_stock_at_completion is not None and item.live_stock_at_completion != item.expected_stock:
            warnings.append(StaleExpectation(
                product_id=item.product_id,
                expected_stock=item.expected_stock,
                live_stock=item.live_stock_at_completion,
                counted_stock=item.counted_stock,
            ))

    return _build_report(stocktake, variances, warnings)
