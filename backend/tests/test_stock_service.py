import pytest

from stocktake.errors import ConflictError, NotFoundError, ValidationError
from stocktake.models import StockMovement
from stocktake.services import stock_service


class TestProducts:
    def test_opening_stock_writes_receive_movement(self, db_session, store_a):
        product = stock_service.create_product(store_a.id, "SKU-1", "Rice 1kg", cost_cents=90, quantity_on_hand=7)

        movements = db_session.query(StockMovement).filter_by(product_id=product.id).all()
        assert len(movements) == 1
        assert movements[0].type == "RECEIVE"
        assert movements[0].quantity_delta == 7
        assert movements[0].quantity_after == 7

    def test_duplicate_sku_in_store_conflicts(self, db_session, store_a):
        stock_service.create_product(store_a.id, "SKU-1", "Rice 1kg")
        with pytest.raises(ConflictError):
            stock_service.create_product(store_a.id, "SKU-1", "Rice 2kg")

    def test_same_sku_allowed_in_other_store(self, db_session, store_a, store_b):
        stock_service.create_product(store_a.id, "SKU-1", "Rice 1kg")
        product = stock_service.create_product(store_b.id, "SKU-1", "Rice 1kg")
        assert product.store_id == store_b.id

    def test_unknown_store(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.create_product(999, "SKU-1", "Rice")

    def test_list_active_products_skips_inactive(self, db_session, store_a, products):
        stock_service.deactivate_product(products["C"].id)

        rows = stock_service.list_active_products(store_a.id)

        assert [r["id"] for r in rows] == [products["A"].id, products["B"].id]
        assert rows[0] == {"id": products["A"].id, "qty": 10, "unit_cost": 150}


class TestStockMutations:
    def test_record_sale_decrements(self, db_session, store_a, products):
        product = stock_service.record_sale(store_a.id, products["A"].id, 3)

        assert product.quantity_on_hand == 7
        assert stock_service.get_stock(products["A"].id) == 7

    def test_sale_cannot_oversell(self, db_session, store_a, products):
        with pytest.raises(ValidationError) as exc:
            stock_service.record_sale(store_a.id, products["B"].id, 6)

        assert exc.value.details["on_hand"] == 5
        assert stock_service.get_stock(products["B"].id) == 5

    def test_sale_from_wrong_store(self, db_session, store_b, products):
        with pytest.raises(NotFoundError):
            stock_service.record_sale(store_b.id, products["A"].id, 1)

    def test_receive_increments(self, db_session, store_a, products):
        stock_service.receive_stock(store_a.id, products["C"].id, 4)
        assert stock_service.get_stock(products["C"].id) == 4

    def test_version_bumps_on_every_write(self, db_session, store_a, products):
        before = products["A"].version_id
        stock_service.record_sale(store_a.id, products["A"].id, 1)
        stock_service.receive_stock(store_a.id, products["A"].id, 1)
        assert stock_service.get_product(products["A"].id).version_id == before + 2

    def test_set_stock_to_same_value_writes_nothing(self, db_session, products):
        product = products["A"]
        assert stock_service.set_stock(product, 10, stocktake_id=None) is None
        db_session.commit()

        count = db_session.query(StockMovement).filter_by(product_id=product.id).count()
        assert count == 1  # opening stock only

    def test_set_stock_rejects_negative(self, db_session, products):
        with pytest.raises(ValidationError):
            stock_service.set_stock(products["A"], -1)
