"""Identity resolution for items, locations and ledger documents."""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Item, Location


def get_item(item_id: int, *, require_active: bool = False) -> Item:
    item = db.session.get(Item, item_id) if item_id is not None else None
    if item is None:
        raise NotFoundError("Item", item_id)
    if require_active and not item.is_active:
        raise ValidationError(f"Item {item.sku} is inactive")
    return item


def get_location(location_id: int | None, *, require_active: bool = False) -> Location:
    """Resolve a location, falling back to the configured default when no id is given."""
    if location_id is None:
        location = get_default_location()
    else:
        location = db.session.get(Location, location_id)
        if location is None:
            raise NotFoundError("Location", location_id)
    if require_active and not location.is_active:
        raise ValidationError(f"Location {location.code} is not active")
    return location


def get_default_location() -> Location:
    code = current_app.config.get("DEFAULT_LOCATION_CODE", "DEFAULT")
    location = Location.query.filter_by(code=code).first()
    if location is None:
        raise NotFoundError("Location", code)
    return location


def get_record(model, record_id: int, label: str | None = None):
    record = db.session.get(model, record_id) if record_id is not None else None
    if record is None:
        raise NotFoundError(label or model.__name__, record_id)
    return record


def normalize_bin(bin_location: str | None) -> str:
    return (bin_location or "").strip()
