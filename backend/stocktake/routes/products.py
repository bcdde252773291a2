# Overview: Flask API routes for products and live stock; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import StocktakeError
from ..services import stock_service, store_service
from ..validation import coerce_int, parse_bool, require_fields


products_bp = Blueprint("products", __name__, url_prefix="/api")


@products_bp.post("/products")
def create_product():
    """
    Request body:
    {
        "store_id": int,
        "sku": str,
        "name": str,
        "cost_cents": int (optional),
        "price_cents": int (optional),
        "quantity_on_hand": int (optional, opening stock)
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "store_id", "sku", "name")
        price_cents = data.get("price_cents")
        product = stock_service.create_product(
            store_id=coerce_int(data["store_id"], "store_id", minimum=1),
            sku=data["sku"],
            name=data["name"],
            cost_cents=coerce_int(data.get("cost_cents", 0), "cost_cents", minimum=0),
            price_cents=coerce_int(price_cents, "price_cents", minimum=0) if price_cents is not None else None,
            quantity_on_hand=coerce_int(data.get("quantity_on_hand", 0), "quantity_on_hand", minimum=0),
        )
        return jsonify(product.to_dict()), 201
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/stores/<int:store_id>/products")
def list_products(store_id: int):
    try:
        store_service.get_store(store_id)
        products = stock_service.list_products(
            store_id, include_inactive=parse_bool(request.args.get("include_inactive"))
        )
        return jsonify([p.to_dict() for p in products]), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to list products")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>")
def get_product(product_id: int):
    try:
        return jsonify(stock_service.get_product(product_id).to_dict()), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status


@products_bp.post("/products/<int:product_id>/deactivate")
def deactivate_product(product_id: int):
    try:
        return jsonify(stock_service.deactivate_product(product_id).to_dict()), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to deactivate product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/products/<int:product_id>/sales")
def record_sale(product_id: int):
    """
    Decrement live stock for a sale.

    Request body:
    {
        "store_id": int,
        "quantity": int,
        "note": str (optional)
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "store_id", "quantity")
        product = stock_service.record_sale(
            store_id=coerce_int(data["store_id"], "store_id", minimum=1),
            product_id=product_id,
            quantity=coerce_int(data["quantity"], "quantity", minimum=1),
            note=data.get("note"),
        )
        return jsonify(product.to_dict()), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.post("/products/<int:product_id>/receipts")
def receive_stock(product_id: int):
    try:
        data = require_fields(request.get_json(silent=True), "store_id", "quantity")
        product = stock_service.receive_stock(
            store_id=coerce_int(data["store_id"], "store_id", minimum=1),
            product_id=product_id,
            quantity=coerce_int(data["quantity"], "quantity", minimum=1),
            note=data.get("note"),
        )
        return jsonify(product.to_dict()), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to receive stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/products/<int:product_id>/movements")
def list_movements(product_id: int):
    try:
        limit = coerce_int(request.args.get("limit", "100"), "limit", minimum=1)
        movements = stock_service.list_movements(product_id, limit=limit)
        return jsonify([m.to_dict() for m in movements]), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
