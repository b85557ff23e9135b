"""Inter-location transfer workflow.

Shipping draws FIFO at the source and moves the quantity from on-hand into
in-transit. Receiving creates one layer per received line at the destination
carrying the shipped unit cost. Each step runs as one unit of work across all
lines.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Mapping, Sequence

from ..errors import ValidationError
from ..extensions import db
from ..models import CostLayer, InventoryTransfer, InventoryTransferLine, QuantityClass
from ..utils.document_numbers import generate_document_number
from ..utils.numeric import ZERO, quantize_cost, require_int, require_positive_int, to_decimal
from ..utils.timezone_utils import TimezoneUtils
from .cost_layers import TransactionType, consume_layers_fifo, create_layer, reverse_consumptions
from .inventory_balance_service import apply_balance_delta, get_total_available
from .lookups import get_item, get_location, get_record, normalize_bin
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _get_transfer(transfer_id: int) -> InventoryTransfer:
    return get_record(InventoryTransfer, transfer_id, "Inventory transfer")


def create_transfer(
    from_location_id: int,
    to_location_id: int,
    lines: Sequence[Mapping[str, Any]],
    transfer_type: str = InventoryTransfer.TYPE_STANDARD,
    memo: str | None = None,
    expected_delivery_date=None,
) -> InventoryTransfer:
    with unit_of_work():
        if from_location_id is None or to_location_id is None:
            raise ValidationError("Both source and destination locations are required")
        if from_location_id == to_location_id:
            raise ValidationError("Source and destination locations must be different")
        if transfer_type not in InventoryTransfer.TRANSFER_TYPES:
            raise ValidationError(f"Unknown transfer type {transfer_type!r}")

        source = get_location(from_location_id, require_active=True)
        destination = get_location(to_location_id, require_active=True)
        if not source.is_transfer_source:
            raise ValidationError(f"Location {source.code} cannot be used as a transfer source")
        if not destination.is_transfer_destination:
            raise ValidationError(f"Location {destination.code} cannot be used as a transfer destination")

        entries = [line for line in (lines or []) if line]
        if not entries:
            raise ValidationError("A transfer needs at least one line")

        requested_by_item: dict[int, int] = defaultdict(int)
        transfer = InventoryTransfer(
            transfer_number=generate_document_number('transfer'),
            from_location_id=source.id,
            to_location_id=destination.id,
            transfer_type=transfer_type,
            status=InventoryTransfer.STATUS_PENDING,
            memo=memo,
            expected_delivery_date=TimezoneUtils.to_utc(expected_delivery_date),
        )
        for entry in entries:
            item = get_item(entry.get('item_id'), require_active=True)
            quantity = require_positive_int(entry.get('quantity'))
            requested_by_item[item.id] += quantity
            transfer.lines.append(
                InventoryTransferLine(
                    item_id=item.id,
                    quantity_requested=quantity,
                    from_bin_location=normalize_bin(entry.get('from_bin_location')) or None,
                    to_bin_location=normalize_bin(entry.get('to_bin_location')) or None,
                )
            )

        for item_id, quantity in requested_by_item.items():
            available = get_total_available(item_id, source.id)
            if available < quantity:
                raise ValidationError(
                    f"Only {available} of item {item_id} available at {source.code}; {quantity} requested"
                )

        db.session.add(transfer)
        db.session.flush()
        logger.info(
            f"TRANSFER: created {transfer.transfer_number} {source.code} -> {destination.code} "
            f"with {len(transfer.lines)} line(s)"
        )
        return transfer


def approve_transfer(transfer_id: int) -> InventoryTransfer:
    with unit_of_work():
        transfer = _get_transfer(transfer_id)
        if transfer.status != InventoryTransfer.STATUS_PENDING:
            raise ValidationError(
                f"Only pending transfers can be approved; {transfer.transfer_number} is {transfer.status}"
            )
        transfer.approved_at = TimezoneUtils.utc_now()
        logger.info(f"TRANSFER: approved {transfer.transfer_number}")
        return transfer


def ship_transfer(
    transfer_id: int,
    carrier: str | None = None,
    tracking_number: str | None = None,
    shipping_cost=None,
) -> InventoryTransfer:
    with unit_of_work():
        transfer = _get_transfer(transfer_id)
        transfer.transition('ship')
        source = get_location(transfer.from_location_id, require_active=True)

        for line in transfer.lines:
            quantity = line.quantity_requested
            result = consume_layers_fifo(
                line.item_id, source.id, quantity, TransactionType.TRANSFER, transfer.id
            )
            line.quantity_shipped = quantity
            line.total_cost = result['total_cost']
            line.unit_cost = quantize_cost(result['total_cost'] / quantity)

            apply_balance_delta(line.item_id, source.id, line.from_bin_location, QuantityClass.ON_HAND, -quantity)
            apply_balance_delta(line.item_id, source.id, line.from_bin_location, QuantityClass.IN_TRANSIT, quantity)

        transfer.shipped_at = TimezoneUtils.utc_now()
        transfer.carrier = carrier
        transfer.tracking_number = tracking_number
        if shipping_cost is not None:
            cost = to_decimal(shipping_cost)
            if cost < 0:
                raise ValidationError("Shipping cost cannot be negative")
            transfer.shipping_cost = cost
        db.session.flush()

        logger.info(f"TRANSFER: shipped {transfer.transfer_number} from {source.code}")
        return transfer


def receive_transfer(
    transfer_id: int,
    received_date=None,
    received_quantities: Mapping[int, int] | None = None,
) -> InventoryTransfer:
    """
    Land shipped lines at the destination as new layers at the shipped unit cost.

    ``received_quantities`` maps line id to the quantity that actually arrived;
    lines not listed arrive in full. Any shortfall leaves in-transit as a
    transit loss and never reaches destination on-hand.
    """
    with unit_of_work():
        transfer = _get_transfer(transfer_id)
        transfer.transition('receive')
        destination = get_location(transfer.to_location_id, require_active=True)
        received_at = TimezoneUtils.to_utc(received_date) or TimezoneUtils.utc_now()

        overrides = dict(received_quantities or {})
        unknown = set(overrides) - {line.id for line in transfer.lines}
        if unknown:
            raise ValidationError(
                f"Lines {sorted(unknown)} do not belong to transfer {transfer.transfer_number}"
            )

        for line in transfer.lines:
            shipped = line.quantity_shipped
            quantity = require_int(overrides.get(line.id, shipped), 'quantity_received')
            if quantity < 0 or quantity > shipped:
                raise ValidationError(
                    f"Received quantity for line {line.id} must be between 0 and {shipped}; got {quantity}"
                )

            if quantity:
                layer = create_layer(
                    line.item_id,
                    destination.id,
                    quantity,
                    line.unit_cost,
                    receipt_date=received_at,
                    layer_type=CostLayer.TYPE_TRANSFER_IN,
                    source_type='inventory_transfer',
                    source_reference=transfer.transfer_number,
                    transfer_reference=transfer.transfer_number,
                    bin_location=line.to_bin_location,
                )
                line.destination_layer_id = layer.id
                apply_balance_delta(
                    line.item_id, destination.id, line.to_bin_location, QuantityClass.ON_HAND, quantity
                )
            line.quantity_received = quantity

            apply_balance_delta(
                line.item_id, transfer.from_location_id, line.from_bin_location, QuantityClass.IN_TRANSIT, -shipped
            )
            if quantity < shipped:
                logger.warning(
                    f"TRANSFER SHORTAGE: {transfer.transfer_number} line {line.id} received {quantity} of "
                    f"{shipped}; {line.shortage_value} written off in transit"
                )

        transfer.received_at = received_at
        db.session.flush()

        logger.info(f"TRANSFER: received {transfer.transfer_number} at {destination.code}")
        return transfer


def cancel_transfer(transfer_id: int, reason: str | None = None) -> InventoryTransfer:
    """
    Cancel a pending or in-transit transfer. In-transit stock goes back to the
    exact source layers it came from through consumption reversals.
    """
    with unit_of_work():
        transfer = _get_transfer(transfer_id)
        was_in_transit = transfer.status == InventoryTransfer.STATUS_IN_TRANSIT
        transfer.transition('cancel')

        if was_in_transit:
            reverse_consumptions(TransactionType.TRANSFER, transfer.id, reason or "Transfer cancelled")
            for line in transfer.lines:
                quantity = line.quantity_shipped
                apply_balance_delta(
                    line.item_id, transfer.from_location_id, line.from_bin_location, QuantityClass.IN_TRANSIT, -quantity
                )
                apply_balance_delta(
                    line.item_id, transfer.from_location_id, line.from_bin_location, QuantityClass.ON_HAND, quantity
                )

        transfer.cancelled_at = TimezoneUtils.utc_now()
        transfer.cancel_reason = reason
        db.session.flush()

        logger.info(f"TRANSFER: cancelled {transfer.transfer_number} (was in transit: {was_in_transit})")
        return transfer


def calculate_transfer_cost(transfer_id: int) -> Decimal:
    """Shipped inventory cost plus freight."""
    transfer = _get_transfer(transfer_id)
    total = sum((line.shipped_value for line in transfer.lines), ZERO)
    return total + Decimal(transfer.shipping_cost or 0)
