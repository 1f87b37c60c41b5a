# Overview: Generic list/get/create/update/delete for reference entities (customers, suppliers, catalog, stock).

"""
Reference-data CRUD.

Each entity is described once by a CrudResource: its validation policy,
fields that must be unique, foreign keys that must point at existing rows,
and the dependent tables that block deletion. The routes stay thin and
every entity reports conflicts the same way (ConflictError -> 409).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    pagination_meta,
    parse_pagination,
    validate_payload,
)
from .concurrency import atomic


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeleteBlocker:
    """A dependent table whose rows keep the parent alive."""
    model: Any
    column: str
    label: str


@dataclass(frozen=True)
class CrudResource:
    model: Any
    label: str
    policy: ModelValidationPolicy
    unique_fields: tuple[str, ...] = ()
    references: dict[str, Any] = field(default_factory=dict)
    delete_blockers: tuple[DeleteBlocker, ...] = ()
    search_fields: tuple[str, ...] = ("name",)
    order_by: str = "name"
    rules: Callable[[dict], None] | None = None


def _get_or_404(resource: CrudResource, record_id: int):
    record = db.session.get(resource.model, record_id)
    if record is None:
        raise NotFoundError(f"{resource.label} not found")
    return record


def _check_unique(resource: CrudResource, patch: dict, exclude_id: int | None = None) -> None:
    for name in resource.unique_fields:
        value = patch.get(name)
        if value in (None, ""):
            continue
        column = getattr(resource.model, name)
        query = db.session.query(resource.model.id).filter(column == value)
        if exclude_id is not None:
            query = query.filter(resource.model.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"{resource.label} with this {name} already exists")


def _check_references(resource: CrudResource, patch: dict) -> None:
    for name, target in resource.references.items():
        value = patch.get(name)
        if value is None:
            continue
        if db.session.get(target, value) is None:
            raise ValidationError(f"{name} references a missing {target.__tablename__} row")


def _normalize_unique_blanks(resource: CrudResource, patch: dict) -> None:
    # Blank optional unique values are stored as NULL so they never collide
    for name in resource.unique_fields:
        col = resource.model.__table__.c[name]
        if col.nullable and patch.get(name) == "":
            patch[name] = None


def list_records(
    resource: CrudResource,
    *,
    search: str | None = None,
    filters: dict | None = None,
    page: Any = None,
    limit: Any = None,
) -> dict:
    """
    List records ordered by the resource's order_by column.

    Without page/limit every row is returned; with either, the response
    carries a pagination block.
    """
    model = resource.model
    query = db.session.query(model)

    for name, value in (filters or {}).items():
        if value is not None:
            query = query.filter(getattr(model, name) == value)

    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(*[getattr(model, f).ilike(pattern) for f in resource.search_fields]))

    query = query.order_by(getattr(model, resource.order_by), model.id)

    if page is None and limit is None:
        return {"data": [r.to_dict() for r in query.all()]}

    page_num, size = parse_pagination(page, limit)
    total = query.order_by(None).with_entities(func.count(model.id)).scalar() or 0
    rows = query.offset((page_num - 1) * size).limit(size).all()
    return {
        "data": [r.to_dict() for r in rows],
        "pagination": pagination_meta(page_num, size, total),
    }


def get_record(resource: CrudResource, record_id: int):
    return _get_or_404(resource, record_id)


def create_record(resource: CrudResource, payload: dict, **extra):
    patch = validate_payload(model=resource.model, payload=payload, policy=resource.policy, partial=False)
    if resource.rules:
        resource.rules(patch)
    _normalize_unique_blanks(resource, patch)
    _check_references(resource, patch)
    _check_unique(resource, patch)

    try:
        with atomic():
            record = resource.model(**patch, **extra)
            db.session.add(record)
    except IntegrityError:
        logger.warning("Integrity error creating %s", resource.label)
        raise ConflictError(f"{resource.label} conflicts with an existing record")

    logger.info("Created %s id=%s", resource.label, record.id)
    return record


def update_record(resource: CrudResource, record_id: int, payload: dict):
    record = _get_or_404(resource, record_id)
    patch = validate_payload(model=resource.model, payload=payload, policy=resource.policy, partial=True)
    if resource.rules:
        resource.rules(patch)
    _normalize_unique_blanks(resource, patch)
    _check_references(resource, patch)
    _check_unique(resource, patch, exclude_id=record_id)

    try:
        with atomic():
            for name, value in patch.items():
                setattr(record, name, value)
    except IntegrityError:
        logger.warning("Integrity error updating %s id=%s", resource.label, record_id)
        raise ConflictError(f"{resource.label} conflicts with an existing record")

    return record


def delete_record(resource: CrudResource, record_id: int) -> None:
    """Delete a record unless a blocker table still references it."""
    record = _get_or_404(resource, record_id)

    for blocker in resource.delete_blockers:
        count = (
            db.session.query(func.count(blocker.model.id))
            .filter(getattr(blocker.model, blocker.column) == record_id)
            .scalar()
        )
        if count:
            raise ConflictError(
                f"Cannot delete {resource.label.lower()}: {count} {blocker.label} still reference it"
            )

    with atomic():
        db.session.delete(record)
    logger.info("Deleted %s id=%s", resource.label, record_id)
