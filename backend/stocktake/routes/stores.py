# Overview: Flask API routes for organizations and stores; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..errors import StocktakeError
from ..services import store_service
from ..validation import coerce_int, require_fields


stores_bp = Blueprint("stores", __name__, url_prefix="/api")


@stores_bp.post("/organizations")
def create_organization():
    try:
        data = require_fields(request.get_json(silent=True), "name")
        org = store_service.create_organization(name=data["name"], code=data.get("code"))
        return jsonify(org.to_dict()), 201
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to create organization")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/stores")
def list_stores():
    org_id = request.args.get("org_id")
    try:
        stores = store_service.list_stores(
            coerce_int(org_id, "org_id", minimum=1) if org_id else None
        )
        return jsonify([store.to_dict() for store in stores]), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status


@stores_bp.post("/stores")
def create_store():
    try:
        data = require_fields(request.get_json(silent=True), "org_id", "name")
        store = store_service.create_store(
            org_id=coerce_int(data["org_id"], "org_id", minimum=1),
            name=data["name"],
            code=data.get("code"),
            timezone=data.get("timezone") or "UTC",
        )
        return jsonify(store.to_dict()), 201
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/stores/<int:store_id>")
def get_store(store_id: int):
    try:
        store = store_service.get_store(store_id)
        return jsonify(store.to_dict()), 200
    except StocktakeError as exc:
        return jsonify(exc.to_dict()), exc.http_status
