from __future__ import annotations

import logging

from ..models import QuantityClass
from ..utils.numeric import require_positive_int
from .cost_layers import ConsumptionResult, TransactionType, consume_layers_fifo
from .inventory_balance_service import apply_balance_delta, get_balance
from .lookups import get_item, get_location
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def fulfill_order_line(
    item_id: int,
    location_id: int | None,
    quantity: int,
    order_id: int,
    bin_location: str | None = None,
    transaction_date=None,
) -> ConsumptionResult:
    """Ship an order line: draw cost FIFO, drop on-hand and release what was committed for it."""
    with unit_of_work():
        quantity = require_positive_int(quantity)
        item = get_item(item_id)
        location = get_location(location_id)

        result = consume_layers_fifo(
            item.id, location.id, quantity, TransactionType.FULFILLMENT, order_id, transaction_date
        )
        apply_balance_delta(item.id, location.id, bin_location, QuantityClass.ON_HAND, -quantity)

        balance = get_balance(item.id, location.id, bin_location)
        committed = balance.quantity_committed if balance else 0
        release = min(quantity, committed)
        if release:
            apply_balance_delta(item.id, location.id, bin_location, QuantityClass.COMMITTED, -release)

        logger.info(
            f"FULFILLMENT: order {order_id} shipped {quantity} of item {item.id} from {location.code}, "
            f"cost {result['total_cost']}"
        )
        return result
