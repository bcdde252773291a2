# Overview: Stocktake lifecycle rules.

"""
draft -> completed is the only transition. There is no cancel/discard:
an abandoned draft simply stays draft (and keeps blocking new stocktakes for
its store). completed is terminal and the stocktake is immutable afterwards.

Only the reconciliation commit calls transition(); nothing else may change
Stocktake.status.
"""
from __future__ import annotations

from datetime import datetime

from ..errors import InvalidStateError
from ..models import Stocktake
from ..time_utils import utcnow

STATUS_DRAFT = "draft"
STATUS_COMPLETED = "completed"

STATUSES = (STATUS_DRAFT, STATUS_COMPLETED)

ALLOWED_TRANSITIONS = {
    STATUS_DRAFT: {STATUS_COMPLETED},
    STATUS_COMPLETED: set(),
}


def is_draft(stocktake: Stocktake) -> bool:
    return stocktake.status == STATUS_DRAFT


def require_draft(stocktake: Stocktake, action: str = "modify") -> None:
    if stocktake.status != STATUS_DRAFT:
        raise InvalidStateError(
            f"Cannot {action} stocktake {stocktake.id} in {stocktake.status} status",
            {"stocktake_id": stocktake.id, "status": stocktake.status},
        )


def require_completed(stocktake: Stocktake) -> None:
    if stocktake.status != STATUS_COMPLETED:
        raise InvalidStateError(
            f"Stocktake {stocktake.id} has not been completed",
            {"stocktake_id": stocktake.id, "status": stocktake.status},
        )


def transition(stocktake: Stocktake, target: str, *, actor_id: int | None = None, at: datetime | None = None) -> None:
    """Move a stocktake to ``target`` or raise InvalidStateError. Does not commit."""
    if target not in ALLOWED_TRANSITIONS.get(stocktake.status, set()):
        raise InvalidStateError(
            f"Invalid transition {stocktake.status} -> {target}",
            {"stocktake_id": stocktake.id, "status": stocktake.status, "target": target},
        )

    stocktake.status = target
    if target == STATUS_COMPLETED:
        stocktake.completed_at = at or utcnow()
        stocktake.completed_by_user_id = actor_id
