"""Administrative overrides on individual cost layers."""

import logging

from ...errors import NotFoundError, ValidationError
from ...models import CostLayer, QuantityClass
from ...utils.numeric import quantize_cost, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..locking import lock_rows
from ..unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _locked_layer(layer_id: int) -> CostLayer:
    layer = lock_rows(CostLayer.query.filter(CostLayer.id == layer_id)).first()
    if layer is None:
        raise NotFoundError("Cost layer", layer_id)
    return layer


def _counts_toward_on_hand(layer: CostLayer) -> bool:
    return not layer.voided and layer.quality_status == CostLayer.QUALITY_AVAILABLE


def void_layer(layer_id: int, reason: str) -> CostLayer:
    """
    Permanently exclude a layer from consumption and valuation.
    Whatever it still held leaves on-hand so layers and balance stay in sync.
    """
    from ..inventory_balance_service import apply_balance_delta, refresh_average_cost

    with unit_of_work():
        if not (reason or "").strip():
            raise ValidationError("A reason is required to void a cost layer")
        layer = _locked_layer(layer_id)
        if layer.voided:
            raise ValidationError(f"Cost layer {layer.id} is already voided")

        removed = layer.quantity_remaining if _counts_toward_on_hand(layer) else 0
        layer.voided = True
        layer.void_reason = reason
        layer.voided_at = TimezoneUtils.utc_now()

        if removed:
            apply_balance_delta(
                layer.item_id, layer.location_id, layer.bin_location, QuantityClass.ON_HAND, -removed
            )
        else:
            refresh_average_cost(layer.item_id, layer.location_id)

        logger.warning(f"LAYER: voided layer {layer.id} ({removed} units removed from on-hand): {reason}")
        return layer


def adjust_layer_cost(layer_id: int, new_unit_cost, reason: str) -> CostLayer:
    """Revalue one layer. Quantities and receipt date stay untouched."""
    from ..inventory_balance_service import refresh_average_cost

    with unit_of_work():
        layer = _locked_layer(layer_id)
        if layer.voided:
            raise ValidationError(f"Cost layer {layer.id} is voided and cannot be revalued")
        cost = to_decimal(new_unit_cost)
        if cost < 0:
            raise ValidationError("Unit cost cannot be negative")

        previous = layer.unit_cost
        layer.unit_cost = quantize_cost(cost)
        layer.last_cost_adjustment = TimezoneUtils.utc_now()
        layer.revaluation_reason = reason
        refresh_average_cost(layer.item_id, layer.location_id)

        logger.info(f"LAYER: revalued layer {layer.id} from {previous} to {layer.unit_cost}: {reason}")
        return layer


def change_quality_status(layer_id: int, quality_status: str) -> CostLayer:
    """Move a layer in or out of the consumable pool, shifting on-hand to match."""
    from ..inventory_balance_service import apply_balance_delta

    with unit_of_work():
        if quality_status not in CostLayer.QUALITY_STATUSES:
            raise ValidationError(f"Unknown quality status {quality_status!r}")
        layer = _locked_layer(layer_id)
        if layer.voided:
            raise ValidationError(f"Cost layer {layer.id} is voided")
        if layer.quality_status == quality_status:
            return layer

        was_counted = _counts_toward_on_hand(layer)
        layer.quality_status = quality_status
        is_counted = _counts_toward_on_hand(layer)

        if layer.quantity_remaining and was_counted != is_counted:
            delta = layer.quantity_remaining if is_counted else -layer.quantity_remaining
            apply_balance_delta(layer.item_id, layer.location_id, layer.bin_location, QuantityClass.ON_HAND, delta)

        logger.info(f"LAYER: layer {layer.id} quality status now {quality_status}")
        return layer
