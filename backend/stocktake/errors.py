# Overview: Domain error taxonomy shared by services and routes.

"""
Every client-correctable failure carries a stable ``code`` and the HTTP status
routes answer with. ``details`` is passed through to the JSON body untouched.

- NOT_FOUND         404  session, store or product does not exist
- VALIDATION        400  malformed input (non-integer qty, missing field)
- INVALID_STATE     409  lifecycle violation (writing to a completed stocktake)
- CONFLICT          409  duplicate draft stocktake for a store
- INCOMPLETE_COUNT  422  completion requested with uncounted items
- INTERNAL          500  storage failure; nothing was written
"""
from __future__ import annotations


class StocktakeError(Exception):
    """Base class for stocktake domain errors."""

    code = "INTERNAL"
    http_status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(StocktakeError):
    code = "NOT_FOUND"
    http_status = 404


class ValidationError(StocktakeError, ValueError):
    """400-level input problem."""

    code = "VALIDATION"
    http_status = 400


class InvalidStateError(StocktakeError):
    """Operation not allowed in the stocktake's current lifecycle state."""

    code = "INVALID_STATE"
    http_status = 409


class ConflictError(StocktakeError):
    """409-level business rule conflict (e.g., second draft for a store)."""

    code = "CONFLICT"
    http_status = 409


class IncompleteCountError(StocktakeError):
    code = "INCOMPLETE_COUNT"
    http_status = 422

    def __init__(self, missing_product_ids: list[int]):
        super().__init__(
            f"{len(missing_product_ids)} item(s) have not been counted",
            {"missing_product_ids": missing_product_ids},
        )
        self.missing_product_ids = missing_product_ids


class InternalError(StocktakeError):
    code = "INTERNAL"
    http_status = 500
