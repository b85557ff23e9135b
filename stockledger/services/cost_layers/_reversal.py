import logging

from ...errors import ValidationError
from ...extensions import db
from ...models import CostLayer, LayerConsumption
from ...utils.timezone_utils import TimezoneUtils
from ..locking import lock_rows
from ..unit_of_work import unit_of_work
from ._types import TransactionRef

logger = logging.getLogger(__name__)


def reverse_consumptions(transaction_type, transaction_id: int, reason: str | None = None) -> list[LayerConsumption]:
    """
    Undo every outstanding draw made by one transaction.

    For each original consumption a counter record with negated quantity and
    cost is appended, the two rows are linked, and the quantity is credited
    back to the layer it came from. Originals keep their quantities and costs.
    Balances are left to the caller.
    """
    with unit_of_work():
        ref = TransactionRef.of(transaction_type, transaction_id)
        originals = (
            LayerConsumption.query.filter(
                LayerConsumption.transaction_type == ref.kind.value,
                LayerConsumption.transaction_id == ref.id,
                LayerConsumption.reversal_of_id.is_(None),
                LayerConsumption.reversed_by_id.is_(None),
            )
            .order_by(LayerConsumption.id.asc())
            .all()
        )

        layer_ids = sorted({entry.cost_layer_id for entry in originals})
        layers = {}
        if layer_ids:
            layers = {
                layer.id: layer
                for layer in lock_rows(CostLayer.query.filter(CostLayer.id.in_(layer_ids))).all()
            }

        now = TimezoneUtils.utc_now()
        reversals: list[LayerConsumption] = []
        for original in originals:
            layer = layers[original.cost_layer_id]
            if layer.voided:
                raise ValidationError(
                    f"Cannot reverse consumption {original.id}: cost layer {layer.id} is voided"
                )
            if layer.quality_status != CostLayer.QUALITY_AVAILABLE:
                raise ValidationError(
                    f"Cannot reverse consumption {original.id}: cost layer {layer.id} is {layer.quality_status}"
                )
            if not layer.credit_back(original.quantity_consumed):
                raise ValidationError(
                    f"Cannot credit {original.quantity_consumed} back to layer {layer.id}"
                )

            reversal = LayerConsumption(
                cost_layer_id=layer.id,
                transaction_type=original.transaction_type,
                transaction_id=original.transaction_id,
                quantity_consumed=-original.quantity_consumed,
                unit_cost=original.unit_cost,
                total_cost=-original.total_cost,
                transaction_date=now,
                reversal_of_id=original.id,
                reversal_reason=reason,
            )
            db.session.add(reversal)
            db.session.flush()
            original.reversed_by_id = reversal.id
            reversals.append(reversal)

        db.session.flush()
        logger.info(f"REVERSAL: {ref} reversed {len(reversals)} consumption(s)")
        return reversals
