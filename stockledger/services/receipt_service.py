from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..errors import ValidationError
from ..extensions import db
from ..models import CostLayer, ItemReceipt, ItemReceiptLine, QuantityClass
from ..utils.document_numbers import generate_document_number
from ..utils.numeric import quantize_cost, require_int, require_positive_int, to_decimal
from ..utils.timezone_utils import TimezoneUtils
from .cost_layers import create_layer
from .inventory_balance_service import apply_balance_delta
from .lookups import get_item, get_location, normalize_bin
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _normalize_line(raw: Mapping[str, Any]) -> dict:
    received = require_positive_int(raw.get('quantity_received'), 'quantity_received')
    rejected = require_int(raw.get('quantity_rejected') or 0, 'quantity_rejected')
    accepted_raw = raw.get('quantity_accepted')
    accepted = received - rejected if accepted_raw is None else require_int(accepted_raw, 'quantity_accepted')
    if accepted < 0 or rejected < 0:
        raise ValidationError("Accepted and rejected quantities cannot be negative")
    if accepted + rejected > received:
        raise ValidationError(
            f"Accepted ({accepted}) plus rejected ({rejected}) exceeds received ({received})"
        )
    cost = to_decimal(raw.get('unit_cost'), default=to_decimal(0))
    if cost < 0:
        raise ValidationError("Unit cost cannot be negative")
    return {
        'item_id': raw.get('item_id'),
        'quantity_received': received,
        'quantity_accepted': accepted,
        'quantity_rejected': rejected,
        'unit_cost': quantize_cost(cost),
        'bin_location': normalize_bin(raw.get('bin_location')) or None,
    }


def receive_inventory(
    location_id: int | None,
    lines: Sequence[Mapping[str, Any]],
    receipt_date=None,
    vendor_name: str | None = None,
    purchase_order_reference: str | None = None,
    notes: str | None = None,
) -> ItemReceipt:
    """
    Record goods received at a location.

    Every accepted line becomes one new cost layer dated at the receipt date,
    and on-hand grows by the accepted quantity. Rejected units never enter
    the ledger.
    """
    with unit_of_work():
        location = get_location(location_id, require_active=True)
        normalized = [_normalize_line(line) for line in (lines or []) if line]
        if not normalized:
            raise ValidationError("A receipt needs at least one line")

        received_at = TimezoneUtils.to_utc(receipt_date) or TimezoneUtils.utc_now()
        receipt = ItemReceipt(
            receipt_number=generate_document_number('receipt', when=received_at),
            location_id=location.id,
            receipt_date=received_at,
            vendor_name=vendor_name,
            purchase_order_reference=purchase_order_reference,
            notes=notes,
        )
        db.session.add(receipt)

        for entry in normalized:
            item = get_item(entry['item_id'], require_active=True)
            line = ItemReceiptLine(
                item_id=item.id,
                quantity_received=entry['quantity_received'],
                quantity_accepted=entry['quantity_accepted'],
                quantity_rejected=entry['quantity_rejected'],
                unit_cost=entry['unit_cost'],
                bin_location=entry['bin_location'],
            )
            receipt.lines.append(line)
        db.session.flush()

        for line in receipt.lines:
            if line.quantity_accepted <= 0:
                continue
            line.cost_layer = create_layer(
                line.item_id,
                location.id,
                line.quantity_accepted,
                line.unit_cost,
                receipt_date=received_at,
                layer_type=CostLayer.TYPE_RECEIPT,
                source_type='item_receipt',
                source_reference=receipt.receipt_number,
                receipt_line_id=line.id,
                bin_location=line.bin_location,
            )
            apply_balance_delta(
                line.item_id, location.id, line.bin_location, QuantityClass.ON_HAND, line.quantity_accepted
            )

        db.session.flush()
        logger.info(
            f"RECEIPT: {receipt.receipt_number} at {location.code} with {len(receipt.lines)} line(s)"
        )
        return receipt
