"""Inventory balance aggregate.

Balances are a per (item, location, bin) cache derived from the cost layers.
``apply_balance_delta`` is the only path that changes a quantity bucket, and
it must run in the same unit of work as the layer change it mirrors.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryBalance, QuantityClass
from ..models.inventory_balance import NON_NEGATIVE_CLASSES
from ..utils.numeric import require_int, require_positive_int
from .cost_layers._valuation import get_average_cost, get_total_inventory_value
from .locking import lock_rows
from .lookups import get_item, get_location, normalize_bin
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _coerce_class(quantity_class) -> QuantityClass:
    if isinstance(quantity_class, QuantityClass):
        return quantity_class
    try:
        return QuantityClass(str(quantity_class).strip().lower())
    except ValueError as exc:
        raise ValidationError(f"Unknown quantity class {quantity_class!r}") from exc


def get_balance(item_id: int, location_id: int, bin_location: str | None = None) -> InventoryBalance | None:
    return InventoryBalance.query.filter_by(
        item_id=item_id, location_id=location_id, bin_location=normalize_bin(bin_location)
    ).first()


def get_or_create_balance(item_id: int, location_id: int, bin_location: str | None = None) -> InventoryBalance:
    """Find the balance row under a write lock, creating it on first movement."""
    bin_key = normalize_bin(bin_location)
    balance = lock_rows(
        InventoryBalance.query.filter_by(item_id=item_id, location_id=location_id, bin_location=bin_key)
    ).first()
    if balance is None:
        balance = InventoryBalance(
            item_id=item_id,
            location_id=location_id,
            bin_location=bin_key,
            quantity_on_hand=0,
            quantity_available=0,
            quantity_committed=0,
            quantity_on_order=0,
            quantity_in_transit=0,
            quantity_reserved=0,
            quantity_backordered=0,
            average_cost=get_average_cost(item_id, location_id) or Decimal('0'),
        )
        db.session.add(balance)
        db.session.flush()
        logger.debug(f"BALANCE: created balance row for item {item_id} at location {location_id} bin {bin_key!r}")
    return balance


def apply_balance_delta(
    item_id: int,
    location_id: int | None,
    bin_location: str | None,
    quantity_class,
    delta: int,
) -> InventoryBalance:
    """Apply a signed delta to one quantity bucket of a balance row."""
    with unit_of_work():
        quantity_class = _coerce_class(quantity_class)
        delta = require_int(delta, "delta")
        item = get_item(item_id)
        location = get_location(location_id)

        balance = get_or_create_balance(item.id, location.id, bin_location)
        new_value = balance.quantity_of(quantity_class) + delta
        if quantity_class in NON_NEGATIVE_CLASSES and new_value < 0:
            raise ValidationError(
                f"{quantity_class.value} for item {item.id} at {location.code} cannot go below zero "
                f"(current {balance.quantity_of(quantity_class)}, delta {delta})"
            )
        balance.apply_delta(quantity_class, delta)
        db.session.flush()

        if quantity_class is QuantityClass.ON_HAND:
            refresh_average_cost(item.id, location.id)

        logger.info(
            f"BALANCE: item {item.id} at {location.code} {quantity_class.value} {delta:+d} -> {new_value}"
        )
        return balance


def refresh_average_cost(item_id: int, location_id: int) -> Decimal | None:
    """Recompute weighted average cost from the layers onto every bin row of the pair.

    When nothing is left on the layers the last known average is kept.
    """
    average = get_average_cost(item_id, location_id)
    if average is None:
        return None
    for balance in InventoryBalance.query.filter_by(item_id=item_id, location_id=location_id).all():
        balance.average_cost = average
    db.session.flush()
    return average


def get_location_balances(location_id: int) -> list[InventoryBalance]:
    get_location(location_id)
    return (
        InventoryBalance.query.filter_by(location_id=location_id)
        .order_by(InventoryBalance.item_id.asc(), InventoryBalance.bin_location.asc())
        .all()
    )


def _sum_bucket(item_id: int, location_id: int | None, column: str) -> int:
    query = InventoryBalance.query.filter(InventoryBalance.item_id == item_id)
    if location_id is not None:
        query = query.filter(InventoryBalance.location_id == location_id)
    return sum(getattr(balance, column) or 0 for balance in query.all())


def get_total_on_hand(item_id: int, location_id: int | None = None) -> int:
    return _sum_bucket(item_id, location_id, 'quantity_on_hand')


def get_total_available(item_id: int, location_id: int | None = None) -> int:
    return _sum_bucket(item_id, location_id, 'quantity_available')


def check_availability(item_id: int, location_id: int, quantity: int) -> bool:
    return get_total_available(item_id, location_id) >= quantity


def commit_inventory(item_id: int, location_id: int, quantity: int, bin_location: str | None = None) -> InventoryBalance:
    """Commit stock to an order. Fails when the location cannot cover it."""
    with unit_of_work():
        quantity = require_positive_int(quantity)
        balance = get_or_create_balance(item_id, location_id, bin_location)
        if balance.quantity_available < quantity:
            raise ValidationError(
                f"Only {balance.quantity_available} available for item {item_id} at location {location_id}; "
                f"cannot commit {quantity}"
            )
        return apply_balance_delta(item_id, location_id, bin_location, QuantityClass.COMMITTED, quantity)


def release_commitment(item_id: int, location_id: int, quantity: int, bin_location: str | None = None) -> InventoryBalance:
    with unit_of_work():
        quantity = require_positive_int(quantity)
        return apply_balance_delta(item_id, location_id, bin_location, QuantityClass.COMMITTED, -quantity)


def reserve_inventory(item_id: int, location_id: int, quantity: int, bin_location: str | None = None) -> InventoryBalance:
    """Hold stock back from availability without committing it to an order."""
    with unit_of_work():
        quantity = require_positive_int(quantity)
        balance = get_or_create_balance(item_id, location_id, bin_location)
        if balance.quantity_available < quantity:
            raise ValidationError(
                f"Only {balance.quantity_available} available for item {item_id} at location {location_id}; "
                f"cannot reserve {quantity}"
            )
        return apply_balance_delta(item_id, location_id, bin_location, QuantityClass.RESERVED, quantity)


def release_reservation(item_id: int, location_id: int, quantity: int, bin_location: str | None = None) -> InventoryBalance:
    with unit_of_work():
        quantity = require_positive_int(quantity)
        return apply_balance_delta(item_id, location_id, bin_location, QuantityClass.RESERVED, -quantity)


def record_on_order(item_id: int, location_id: int, delta: int, bin_location: str | None = None) -> InventoryBalance:
    with unit_of_work():
        return apply_balance_delta(item_id, location_id, bin_location, QuantityClass.ON_ORDER, delta)


def get_inventory_summary(item_id: int) -> dict:
    """Totals across every location for one item."""
    item = get_item(item_id)
    balances = InventoryBalance.query.filter_by(item_id=item.id).all()
    summary = {
        'item_id': item.id,
        'sku': item.sku,
        'total_on_hand': 0,
        'total_available': 0,
        'total_committed': 0,
        'total_on_order': 0,
        'total_in_transit': 0,
        'total_reserved': 0,
        'total_value': get_total_inventory_value(item_id=item.id),
        'locations': [],
    }
    for balance in balances:
        summary['total_on_hand'] += balance.quantity_on_hand
        summary['total_available'] += balance.quantity_available
        summary['total_committed'] += balance.quantity_committed
        summary['total_on_order'] += balance.quantity_on_order
        summary['total_in_transit'] += balance.quantity_in_transit
        summary['total_reserved'] += balance.quantity_reserved
        summary['locations'].append(
            {
                'location_id': balance.location_id,
                'bin_location': balance.bin_location,
                'on_hand': balance.quantity_on_hand,
                'available': balance.quantity_available,
                'average_cost': balance.average_cost,
            }
        )
    return summary
