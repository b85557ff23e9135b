import logging

from ...errors import ValidationError
from ...extensions import db
from ...models import CostLayer
from ...utils.numeric import quantize_cost, require_positive_int, to_decimal
from ...utils.timezone_utils import TimezoneUtils
from ..lookups import get_item, get_location, normalize_bin
from ..unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def create_layer(
    item_id: int,
    location_id: int | None,
    quantity: int,
    unit_cost,
    receipt_date=None,
    layer_type: str = CostLayer.TYPE_RECEIPT,
    source_type: str | None = None,
    source_reference: str | None = None,
    receipt_line_id: int | None = None,
    transfer_reference: str | None = None,
    bin_location: str | None = None,
) -> CostLayer:
    """
    Create a brand new cost layer. Layers are never merged, even when item,
    location and cost match an existing one, so FIFO provenance stays exact.
    """
    with unit_of_work():
        quantity = require_positive_int(quantity)
        cost = to_decimal(unit_cost)
        if cost < 0:
            raise ValidationError("Unit cost cannot be negative")
        if layer_type not in CostLayer.LAYER_TYPES:
            raise ValidationError(f"Unknown layer type {layer_type!r}")

        item = get_item(item_id)
        location = get_location(location_id)
        cost = quantize_cost(cost)

        layer = CostLayer(
            item_id=item.id,
            location_id=location.id,
            receipt_line_id=receipt_line_id,
            layer_type=layer_type,
            quantity_received=quantity,
            quantity_remaining=quantity,
            unit_cost=cost,
            original_unit_cost=cost,
            receipt_date=TimezoneUtils.to_utc(receipt_date) or TimezoneUtils.utc_now(),
            source_type=source_type or layer_type,
            source_reference=source_reference,
            transfer_reference=transfer_reference,
            bin_location=normalize_bin(bin_location) or None,
        )
        db.session.add(layer)
        db.session.flush()

        logger.info(
            f"LAYER: created {layer_type} layer {layer.id} for item {item.id} at {location.code}: "
            f"{quantity} @ {cost}"
        )
        return layer
