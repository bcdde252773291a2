import pytest

from stocktake.errors import InvalidStateError
from stocktake.models import Stocktake
from stocktake.services import session_state


def _stocktake(status):
    return Stocktake(id=1, store_id=1, document_number="ST-000001", status=status, created_by_user_id=1)


def test_draft_to_completed():
    stocktake = _stocktake("draft")

    session_state.transition(stocktake, session_state.STATUS_COMPLETED, actor_id=7)

    assert stocktake.status == "completed"
    assert stocktake.completed_at is not None
    assert stocktake.completed_by_user_id == 7


def test_completed_is_terminal():
    stocktake = _stocktake("completed")

    with pytest.raises(InvalidStateError):
        session_state.transition(stocktake, session_state.STATUS_DRAFT)
    with pytest.raises(InvalidStateError):
        session_state.transition(stocktake, session_state.STATUS_COMPLETED)


def test_no_cancel_state():
    with pytest.raises(InvalidStateError):
        session_state.transition(_stocktake("draft"), "cancelled")


def test_require_draft():
    session_state.require_draft(_stocktake("draft"))
    with pytest.raises(InvalidStateError) as exc:
        session_state.require_draft(_stocktake("completed"), "complete")
    assert exc.value.details == {"stocktake_id": 1, "status": "completed"}
