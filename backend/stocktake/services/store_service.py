from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Organization, Store
from .concurrency import run_with_retry


def create_organization(name: str, code: str | None = None) -> Organization:
    def _op():
        if not name:
            raise ValidationError("Organization name is required")

        org = Organization(name=name, code=code)
        db.session.add(org)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(f"Organization code {code!r} already exists")

        db.session.commit()
        return org

    return run_with_retry(_op)


def create_store(org_id: int, name: str, code: str | None = None, timezone: str = "UTC") -> Store:
    def _op():
        if not name:
            raise ValidationError("Store name is required")

        org = db.session.get(Organization, org_id)
        if org is None:
            raise NotFoundError(f"Organization {org_id} not found")

        store = Store(org_id=org_id, name=name, code=code, timezone=timezone)
        db.session.add(store)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Store name or code already exists in this organization")

        db.session.commit()
        return store

    return run_with_retry(_op)


def get_store(store_id: int) -> Store:
    store = db.session.get(Store, store_id)
    if store is None:
        raise NotFoundError(f"Store {store_id} not found")
    return store


def list_stores(org_id: int | None = None) -> list[Store]:
    query = db.session.query(Store)
    if org_id is not None:
        query = query.filter_by(org_id=org_id)
    return query.order_by(Store.name.asc()).all()
