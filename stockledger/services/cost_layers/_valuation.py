from decimal import Decimal

from sqlalchemy import func

from ...errors import ValidationError
from ...extensions import db
from ...models import CostLayer, LayerConsumption
from ...utils.numeric import quantize_cost


def _valued_layers(item_id: int | None = None, location_id: int | None = None):
    query = CostLayer.query.filter(
        CostLayer.voided.is_(False),
        CostLayer.quality_status == CostLayer.QUALITY_AVAILABLE,
        CostLayer.quantity_remaining > 0,
    )
    if item_id is not None:
        query = query.filter(CostLayer.item_id == item_id)
    if location_id is not None:
        query = query.filter(CostLayer.location_id == location_id)
    return query


def get_layers_by_item(
    item_id: int,
    location_id: int | None = None,
    order: str = 'fifo',
    include_depleted: bool = False,
) -> list[CostLayer]:
    """Non-voided layers for an item, oldest first for 'fifo' or newest first for 'lifo'."""
    if order not in ('fifo', 'lifo'):
        raise ValidationError(f"Unknown layer order {order!r}")
    query = CostLayer.query.filter(CostLayer.item_id == item_id, CostLayer.voided.is_(False))
    if location_id is not None:
        query = query.filter(CostLayer.location_id == location_id)
    if not include_depleted:
        query = query.filter(CostLayer.quantity_remaining > 0)
    if order == 'fifo':
        query = query.order_by(CostLayer.receipt_date.asc(), CostLayer.id.asc())
    else:
        query = query.order_by(CostLayer.receipt_date.desc(), CostLayer.id.desc())
    return query.all()


def get_remaining_quantity(item_id: int, location_id: int | None = None) -> int:
    return sum(layer.quantity_remaining for layer in _valued_layers(item_id, location_id).all())


def get_total_inventory_value(item_id: int | None = None, location_id: int | None = None) -> Decimal:
    """Sum of remaining x unit cost over consumable layers. Voided layers never count."""
    total = Decimal('0')
    for layer in _valued_layers(item_id, location_id).all():
        total += Decimal(layer.quantity_remaining) * Decimal(layer.unit_cost)
    return total


def get_average_cost(item_id: int, location_id: int | None = None) -> Decimal | None:
    """Weighted average unit cost of what is left, or None when nothing is left."""
    layers = _valued_layers(item_id, location_id).all()
    quantity = sum(layer.quantity_remaining for layer in layers)
    if quantity <= 0:
        return None
    value = sum((Decimal(layer.quantity_remaining) * Decimal(layer.unit_cost) for layer in layers), Decimal('0'))
    return quantize_cost(value / quantity)


def get_consumption_history(layer_id: int) -> list[LayerConsumption]:
    return (
        LayerConsumption.query.filter(LayerConsumption.cost_layer_id == layer_id)
        .order_by(LayerConsumption.transaction_date.asc(), LayerConsumption.id.asc())
        .all()
    )


def get_net_consumed(layer_id: int) -> int:
    """Net units drawn from a layer; reversals carry negative quantities."""
    total = (
        db.session.query(func.coalesce(func.sum(LayerConsumption.quantity_consumed), 0))
        .filter(LayerConsumption.cost_layer_id == layer_id)
        .scalar()
    )
    return int(total or 0)
