from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Stocktake, StocktakeItem, Store
from ..time_utils import to_utc_z
from .session_state import STATUSES


@dataclass(frozen=True)
class SessionSummary:
    stocktake: Stocktake
    item_count: int
    counted_count: int

    def to_dict(self) -> dict:
        st = self.stocktake
        return {
            "id": st.id,
            "store_id": st.store_id,
            "document_number": st.document_number,
            "status": st.status,
            "notes": st.notes,
            "created_by_user_id": st.created_by_user_id,
            "created_at": to_utc_z(st.created_at),
            "completed_at": to_utc_z(st.completed_at),
            "item_count": self.item_count,
            "counted_count": self.counted_count,
        }


def _progress(stocktake_ids: list[int]) -> dict[int, tuple[int, int]]:
    if not stocktake_ids:
        return {}
    rows = db.session.query(
        StocktakeItem.stocktake_id,
        func.count(StocktakeItem.id),
        func.sum(case((StocktakeItem.counted_stock.isnot(None), 1), else_=0)),
    ).filter(
        StocktakeItem.stocktake_id.in_(stocktake_ids)
    ).group_by(StocktakeItem.stocktake_id).all()
    return {row[0]: (int(row[1]), int(row[2] or 0)) for row in rows}


def list_sessions(store_id: int, *, status: str | None = None, limit: int = 100) -> list[SessionSummary]:
    """Stocktakes for a store, newest first."""
    if db.session.get(Store, store_id) is None:
        raise NotFoundError(f"Store {store_id} not found")
    if status is not None and status not in STATUSES:
        raise ValidationError(f"Invalid status: {status}")

    query = db.session.query(Stocktake).filter_by(store_id=store_id)
    if status:
        query = query.filter_by(status=status)

    stocktakes = query.order_by(
        Stocktake.created_at.desc(), Stocktake.id.desc()
    ).limit(limit).all()

    progress = _progress([st.id for st in stocktakes])
    return [
        SessionSummary(st, *progress.get(st.id, (0, 0)))
        for st in stocktakes
    ]


def get_session(stocktake_id: int) -> SessionSummary:
    stocktake = db.session.get(Stocktake, stocktake_id)
    if stocktake is None:
        raise NotFoundError(f"Stocktake {stocktake_id} not found")
    item_count, counted_count = _progress([stocktake.id]).get(stocktake.id, (0, 0))
    return SessionSummary(stocktake, item_count, counted_count)
