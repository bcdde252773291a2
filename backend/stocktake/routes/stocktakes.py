# Overview: Flask API routes for stocktake sessions; parses input and returns JSON responses.

"""Stocktake API routes: start, count, resume, complete, report."""

from flask import Blueprint, current_app, jsonify, request

from ..errors import StocktakeError
from ..services import count_service, reconciliation_service, snapshot_service, stocktake_service
from ..validation import coerce_int, parse_bool, require_fields


stocktakes_bp = Blueprint("stocktakes", __name__, url_prefix="/api/stocktakes")


def _error_response(exc: StocktakeError):
    if exc.http_status >= 500:
        current_app.logger.error("Stocktake storage failure: %s", exc, exc_info=exc)
    return jsonify(exc.to_dict()), exc.http_status


@stocktakes_bp.post("")
def start_stocktake():
    """
    Start a stocktake and snapshot expected stock.

    Request body:
    {
        "store_id": int,
        "actor_id": int,
        "notes": str (optional)
    }

    Returns:
        201: Draft stocktake created
        400: Invalid request
        404: Store not found
        409: Store already has a draft stocktake
    """
    try:
        data = require_fields(request.get_json(silent=True), "store_id", "actor_id")
        stocktake = snapshot_service.start_session(
            store_id=coerce_int(data["store_id"], "store_id", minimum=1),
            actor_id=coerce_int(data["actor_id"], "actor_id", minimum=1),
            notes=data.get("notes"),
        )
        summary = stocktake_service.get_session(stocktake.id)
        return jsonify(summary.to_dict()), 201

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to start stocktake")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.get("")
def list_stocktakes():
    """
    List stocktakes for a store, newest first.

    Query parameters:
        store_id: Store (required)
        status: draft | completed
        limit: Max results (default 100)
    """
    try:
        store_id = coerce_int(request.args.get("store_id"), "store_id", minimum=1)
        limit = coerce_int(request.args.get("limit", "100"), "limit", minimum=1)
        summaries = stocktake_service.list_sessions(
            store_id,
            status=request.args.get("status") or None,
            limit=limit,
        )
        return jsonify([s.to_dict() for s in summaries]), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list stocktakes")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.get("/<int:stocktake_id>")
def get_stocktake(stocktake_id: int):
    try:
        summary = stocktake_service.get_session(stocktake_id)
        return jsonify(summary.to_dict()), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load stocktake")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.get("/<int:stocktake_id>/counts")
def get_counts(stocktake_id: int):
    """
    Current count state, for resuming a session.

    Query parameters:
        search: Match product name or SKU
        uncounted_only: true to list only items without a count
    """
    try:
        items = count_service.get_counts(
            stocktake_id,
            search=request.args.get("search"),
            uncounted_only=parse_bool(request.args.get("uncounted_only")),
        )
        return jsonify([item.to_dict() for item in items]), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load stocktake counts")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.put("/<int:stocktake_id>/counts/<int:product_id>")
def submit_count(stocktake_id: int, product_id: int):
    """
    Record or overwrite one product's count.

    Request body:
    {
        "counted_stock": int
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "counted_stock")
        item = count_service.submit_count(stocktake_id, product_id, data["counted_stock"])
        return jsonify(item.to_dict()), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to submit count")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.post("/<int:stocktake_id>/counts")
def submit_counts(stocktake_id: int):
    """
    Save progress: record several counts at once (all or nothing).

    Request body:
    {
        "counts": [{"product_id": int, "counted_stock": int}, ...]
    }
    """
    try:
        data = require_fields(request.get_json(silent=True), "counts")
        entries = data["counts"]
        if not isinstance(entries, list):
            return jsonify({"error": "counts must be a list", "code": "VALIDATION"}), 400

        counts = {}
        for entry in entries:
            require_fields(entry if isinstance(entry, dict) else None, "product_id", "counted_stock")
            product_id = coerce_int(entry["product_id"], "product_id", minimum=1)
            counts[product_id] = entry["counted_stock"]

        items = count_service.submit_counts(stocktake_id, counts)
        return jsonify([item.to_dict() for item in items]), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save stocktake progress")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.post("/<int:stocktake_id>/complete")
def complete_stocktake(stocktake_id: int):
    """
    Commit counted quantities to live stock.

    Request body (optional):
    {
        "actor_id": int
    }

    Returns:
        200: CompletionReport
        404: Stocktake not found
        409: Stocktake already completed
        422: Items without a count
        500: Storage failure; nothing was applied, safe to retry
    """
    try:
        data = request.get_json(silent=True) or {}
        actor_id = data.get("actor_id")
        if actor_id is not None:
            actor_id = coerce_int(actor_id, "actor_id", minimum=1)

        report = reconciliation_service.complete_session(stocktake_id, actor_id=actor_id)
        return jsonify(report.to_dict()), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to complete stocktake")
        return jsonify({"error": "Internal server error"}), 500


@stocktakes_bp.get("/<int:stocktake_id>/report")
def get_report(stocktake_id: int):
    try:
        report = reconciliation_service.get_report(stocktake_id)
        return jsonify(report.to_dict()), 200

    except StocktakeError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load stocktake report")
        return jsonify({"error": "Internal server error"}), 500
