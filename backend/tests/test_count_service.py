import pytest

from stocktake.errors import InvalidStateError, NotFoundError, ValidationError
from stocktake.extensions import db
from stocktake.models import StocktakeItem
from stocktake.services import count_service, reconciliation_service, snapshot_service, stock_service

ACTOR_ID = 42


@pytest.fixture
def stocktake(db_session, store_a, products):
    return snapshot_service.start_session(store_a.id, ACTOR_ID)


def _counts(stocktake_id):
    return {item.product_id: item.counted_stock for item in count_service.get_counts(stocktake_id)}


class TestSubmitCount:
    def test_records_count(self, stocktake, products):
        item = count_service.submit_count(stocktake.id, products["A"].id, 8)

        assert item.counted_stock == 8
        assert item.counted_at is not None
        assert item.expected_stock == 10

    def test_repeated_submission_overwrites(self, stocktake, products):
        for qty in (3, 9, 7):
            count_service.submit_count(stocktake.id, products["A"].id, qty)

        rows = db.session.query(StocktakeItem).filter_by(
            stocktake_id=stocktake.id, product_id=products["A"].id
        ).all()
        assert len(rows) == 1
        assert rows[0].counted_stock == 7

    def test_zero_is_a_count(self, stocktake, products):
        count_service.submit_count(stocktake.id, products["C"].id, 0)

        counts = _counts(stocktake.id)
        assert counts[products["C"].id] == 0
        assert counts[products["A"].id] is None

    def test_expected_stock_never_changes(self, stocktake, products):
        count_service.submit_count(stocktake.id, products["B"].id, 99)
        item = db.session.query(StocktakeItem).filter_by(
            stocktake_id=stocktake.id, product_id=products["B"].id
        ).one()
        assert item.expected_stock == 5

    def test_touches_stocktake(self, stocktake, products):
        version = stocktake.version_id
        count_service.submit_count(stocktake.id, products["A"].id, 1)

        db.session.refresh(stocktake)
        assert stocktake.last_counted_at is not None
        assert stocktake.version_id == version + 1

    @pytest.mark.parametrize("qty", [-1, 1.5, "abc", "2e3", None, True])
    def test_rejects_invalid_quantity(self, stocktake, products, qty):
        with pytest.raises(ValidationError):
            count_service.submit_count(stocktake.id, products["A"].id, qty)

    def test_accepts_numeric_string(self, stocktake, products):
        item = count_service.submit_count(stocktake.id, products["A"].id, "12")
        assert item.counted_stock == 12

    def test_unknown_stocktake(self, db_session, products):
        with pytest.raises(NotFoundError):
            count_service.submit_count(999, products["A"].id, 1)

    def test_product_outside_snapshot(self, stocktake, store_a):
        late = stock_service.create_product(store_a.id, "SKU-LATE", "Late Arrival", quantity_on_hand=3)

        with pytest.raises(NotFoundError) as exc:
            count_service.submit_count(stocktake.id, late.id, 3)
        assert exc.value.details["product_id"] == late.id

    def test_rejected_after_completion(self, stocktake, products):
        count_service.submit_counts(stocktake.id, {p.id: 1 for p in products.values()})
        reconciliation_service.complete_session(stocktake.id)

        with pytest.raises(InvalidStateError):
            count_service.submit_count(stocktake.id, products["A"].id, 5)

        assert _counts(stocktake.id)[products["A"].id] == 1


class TestSubmitCounts:
    def test_bulk_save(self, stocktake, products):
        items = count_service.submit_counts(stocktake.id, {
            products["A"].id: 8,
            products["B"].id: 5,
        })

        assert len(items) == 2
        counts = _counts(stocktake.id)
        assert counts[products["A"].id] == 8
        assert counts[products["B"].id] == 5
        assert counts[products["C"].id] is None

    def test_bulk_is_all_or_nothing(self, stocktake, products):
        with pytest.raises(NotFoundError):
            count_service.submit_counts(stocktake.id, {
                products["A"].id: 8,
                99999: 1,
            })

        assert _counts(stocktake.id)[products["A"].id] is None

    def test_bulk_validates_before_writing(self, stocktake, products):
        with pytest.raises(ValidationError):
            count_service.submit_counts(stocktake.id, {products["A"].id: 8, products["B"].id: -2})

        assert _counts(stocktake.id)[products["A"].id] is None

    def test_empty_batch(self, stocktake):
        with pytest.raises(ValidationError):
            count_service.submit_counts(stocktake.id, {})


class TestGetCounts:
    def test_resume_reproduces_submitted_counts(self, app, stocktake, products):
        ids = {key: p.id for key, p in products.items()}
        stocktake_id = stocktake.id
        count_service.submit_count(stocktake_id, ids["A"], 8)
        count_service.submit_count(stocktake_id, ids["C"], 2)

        # Simulated restart: drop every loaded object and reload from storage
        db.session.remove()

        counts = _counts(stocktake_id)
        assert counts == {
            ids["A"]: 8,
            ids["B"]: None,
            ids["C"]: 2,
        }

    def test_ordered_by_product_name(self, stocktake, products):
        names = [item.product.name for item in count_service.get_counts(stocktake.id)]
        assert names == ["Apple Juice", "Bread Loaf", "Cheddar Block"]

    def test_search_by_name_or_sku(self, stocktake, products):
        by_name = count_service.get_counts(stocktake.id, search="bread")
        by_sku = count_service.get_counts(stocktake.id, search="sku-c")

        assert [i.product_id for i in by_name] == [products["B"].id]
        assert [i.product_id for i in by_sku] == [products["C"].id]

    @pytest.mark.parametrize("term", ["_", "%", "A_1"])
    def test_search_wildcards_are_literal(self, stocktake, products, term):
        assert count_service.get_counts(stocktake.id, search=term) == []

    def test_search_matches_literal_underscore(self, db_session, store_a):
        underscored = stock_service.create_product(store_a.id, "A_1", "Rice 5kg")
        stock_service.create_product(store_a.id, "AB1", "Rice 10kg")
        stocktake = snapshot_service.start_session(store_a.id, ACTOR_ID)

        found = count_service.get_counts(stocktake.id, search="a_1")

        assert [i.product_id for i in found] == [underscored.id]

    def test_uncounted_only(self, stocktake, products):
        count_service.submit_count(stocktake.id, products["A"].id, 8)

        remaining = count_service.get_counts(stocktake.id, uncounted_only=True)
        assert sorted(i.product_id for i in remaining) == sorted([products["B"].id, products["C"].id])

    def test_unknown_stocktake(self, db_session):
        with pytest.raises(NotFoundError):
            count_service.get_counts(404)
