import logging

from sqlalchemy import func

from ...extensions import db
from ...models import CostLayer, InventoryBalance
from ._fifo import eligible_layers_query

logger = logging.getLogger(__name__)


def verify_layer_balance_sync(item_id: int, location_id: int):
    """Check that consumable layer remainders add up to on-hand for one (item, location).

    Returns ``(is_valid, error_msg, on_hand, layer_total)``.
    """
    layers = eligible_layers_query(item_id, location_id).all()
    layer_total = sum(layer.quantity_remaining for layer in layers)

    on_hand = (
        db.session.query(func.coalesce(func.sum(InventoryBalance.quantity_on_hand), 0))
        .filter(InventoryBalance.item_id == item_id, InventoryBalance.location_id == location_id)
        .scalar()
    )
    on_hand = int(on_hand or 0)

    if on_hand != layer_total:
        logger.error(f"LEDGER SYNC MISMATCH for item {item_id} at location {location_id}:")
        logger.error(f"  On hand: {on_hand}")
        logger.error(f"  Layer total: {layer_total}")
        logger.error(f"  Difference: {on_hand - layer_total}")
        for i, layer in enumerate(layers):
            logger.error(
                f"    Layer {i + 1}: {layer.quantity_remaining} ({layer.layer_type}, {layer.receipt_date})"
            )
        error_msg = (
            f"Ledger sync error: on_hand={on_hand}, layer_total={layer_total}, diff={on_hand - layer_total}"
        )
        return False, error_msg, on_hand, layer_total

    return True, None, on_hand, layer_total


def ledger_pairs(item_id: int | None = None) -> list[tuple[int, int]]:
    """Every (item, location) that has a balance row or a layer."""
    balance_pairs = db.session.query(InventoryBalance.item_id, InventoryBalance.location_id)
    layer_pairs = db.session.query(CostLayer.item_id, CostLayer.location_id)
    if item_id is not None:
        balance_pairs = balance_pairs.filter(InventoryBalance.item_id == item_id)
        layer_pairs = layer_pairs.filter(CostLayer.item_id == item_id)
    pairs = {tuple(row) for row in balance_pairs.distinct().all()}
    pairs.update(tuple(row) for row in layer_pairs.distinct().all())
    return sorted(pairs)


def verify_ledger(item_id: int | None = None) -> list[dict]:
    """Run the sync check across the ledger and return one entry per mismatch."""
    mismatches = []
    for pair_item_id, location_id in ledger_pairs(item_id):
        is_valid, error_msg, on_hand, layer_total = verify_layer_balance_sync(pair_item_id, location_id)
        if not is_valid:
            mismatches.append(
                {
                    'item_id': pair_item_id,
                    'location_id': location_id,
                    'on_hand': on_hand,
                    'layer_total': layer_total,
                    'error': error_msg,
                }
            )
    return mismatches
