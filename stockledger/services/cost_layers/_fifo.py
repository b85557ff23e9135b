import logging
from decimal import Decimal

from ...errors import InsufficientInventoryError
from ...extensions import db
from ...models import CostLayer, LayerConsumption
from ...utils.numeric import require_positive_int
from ...utils.timezone_utils import TimezoneUtils
from ..locking import lock_rows
from ..lookups import get_item, get_location
from ..unit_of_work import unit_of_work
from ._types import ConsumedLayer, ConsumptionResult, TransactionRef

logger = logging.getLogger(__name__)


def eligible_layers_query(item_id: int, location_id: int):
    """Consumable layers for one (item, location) in FIFO order."""
    return CostLayer.query.filter(
        CostLayer.item_id == item_id,
        CostLayer.location_id == location_id,
        CostLayer.quantity_remaining > 0,
        CostLayer.voided.is_(False),
        CostLayer.quality_status == CostLayer.QUALITY_AVAILABLE,
    ).order_by(CostLayer.receipt_date.asc(), CostLayer.id.asc())


def consume_layers_fifo(
    item_id: int,
    location_id: int | None,
    quantity: int,
    transaction_type,
    transaction_id: int,
    transaction_date=None,
) -> ConsumptionResult:
    """
    Draw quantity from the oldest eligible layers first.

    Each draw writes one LayerConsumption row. Balances are not touched here;
    the calling orchestrator applies the matching balance delta in the same
    unit of work. When the layers run out an InsufficientInventoryError is
    raised and the enclosing unit of work discards the partial draws.
    """
    with unit_of_work():
        quantity = require_positive_int(quantity)
        ref = TransactionRef.of(transaction_type, transaction_id)
        item = get_item(item_id)
        location = get_location(location_id)
        when = TimezoneUtils.to_utc(transaction_date) or TimezoneUtils.utc_now()

        layers = lock_rows(eligible_layers_query(item.id, location.id)).all()

        remaining_to_consume = quantity
        total_cost = Decimal('0')
        consumed: list[ConsumedLayer] = []

        for layer in layers:
            if remaining_to_consume <= 0:
                break

            draw = min(layer.quantity_remaining, remaining_to_consume)
            unit_cost = Decimal(layer.unit_cost)
            cost = unit_cost * draw
            layer.consume(draw)

            consumption = LayerConsumption(
                cost_layer_id=layer.id,
                transaction_type=ref.kind.value,
                transaction_id=ref.id,
                quantity_consumed=draw,
                unit_cost=unit_cost,
                total_cost=cost,
                transaction_date=when,
            )
            db.session.add(consumption)
            db.session.flush()

            consumed.append(
                {
                    'layer_id': layer.id,
                    'consumption_id': consumption.id,
                    'quantity': draw,
                    'unit_cost': unit_cost,
                    'cost': cost,
                }
            )
            total_cost += cost
            remaining_to_consume -= draw
            logger.debug(f"FIFO: {ref} drew {draw} from layer {layer.id} @ {unit_cost}")

        if remaining_to_consume > 0:
            available = quantity - remaining_to_consume
            logger.error(
                f"FIFO EXHAUSTED for item {item.id} at {location.code}: requested {quantity}, "
                f"layers supplied {available} ({ref}). Balance and cost layers may be out of sync."
            )
            raise InsufficientInventoryError(item.id, location.id, quantity, available)

        logger.info(
            f"FIFO: {ref} consumed {quantity} of item {item.id} at {location.code} "
            f"from {len(consumed)} layer(s), cost {total_cost}"
        )
        return {'total_cost': total_cost, 'layers_consumed': consumed}
