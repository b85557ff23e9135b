from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app

from ..errors import AllocationError, ValidationError
from ..extensions import db
from ..models import ItemReceipt, LandedCost, LandedCostAllocation
from ..utils.document_numbers import generate_document_number
from ..utils.numeric import ZERO, quantize_cost, quantize_money, to_decimal
from .inventory_balance_service import refresh_average_cost
from .lookups import get_record
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _eligible_lines(receipt: ItemReceipt):
    return [
        line
        for line in receipt.lines
        if (line.quantity_accepted or 0) > 0 and line.cost_layer is not None and not line.cost_layer.voided
    ]


def _normalize_method(method: str) -> str:
    normalized = (method or '').strip().lower()
    if normalized not in LandedCost.METHODS:
        raise ValidationError(f"Unknown allocation method {method!r}; expected one of {list(LandedCost.METHODS)}")
    return normalized


def _allocation_shares(lines, method: str) -> tuple[str, list[Decimal]]:
    """Return the method actually used and each line's share of the denominator."""
    if method == LandedCost.METHOD_WEIGHT:
        if all(line.item.weight is not None and Decimal(line.item.weight) > 0 for line in lines):
            return method, [Decimal(line.item.weight) * line.quantity_accepted for line in lines]
        logger.info("LANDED COST: weight data incomplete for receipt lines; allocating by quantity instead")
        method = LandedCost.METHOD_QUANTITY

    if method == LandedCost.METHOD_VALUE:
        return method, [Decimal(line.unit_cost or 0) * line.quantity_accepted for line in lines]
    return method, [Decimal(line.quantity_accepted) for line in lines]


def apply_landed_cost(
    receipt_id: int,
    cost_category: str,
    total_cost,
    method: str = LandedCost.METHOD_VALUE,
    reference: str | None = None,
    notes: str | None = None,
) -> LandedCost:
    """
    Spread an additional cost over the layers created by one receipt.

    Each eligible line gets ``total * share / denominator`` rounded to cents,
    with the rounding residue landing on the last line so the allocations add
    up to the total. The per-unit amount is stacked onto the layer's unit cost.
    """
    with unit_of_work():
        receipt = get_record(ItemReceipt, receipt_id, "Item receipt")
        requested_method = _normalize_method(method)
        total = to_decimal(total_cost)
        if total <= 0:
            raise ValidationError("Landed cost total must be greater than zero")
        if not (cost_category or '').strip():
            raise ValidationError("A cost category is required")

        lines = _eligible_lines(receipt)
        applied_method, shares = _allocation_shares(lines, requested_method)
        denominator = sum(shares, ZERO)
        if denominator <= 0:
            raise AllocationError(
                f"Nothing to allocate against on receipt {receipt.receipt_number} using {applied_method}"
            )

        landed_cost = LandedCost(
            landed_cost_number=generate_document_number('landed_cost', entity_id=receipt.id),
            receipt_id=receipt.id,
            cost_category=cost_category,
            total_cost=total,
            allocation_method=requested_method,
            applied_method=applied_method,
            reference=reference,
            notes=notes,
        )
        db.session.add(landed_cost)

        allocated_so_far = ZERO
        touched = set()
        for index, (line, share) in enumerate(zip(lines, shares)):
            if index == len(lines) - 1:
                amount = total - allocated_so_far
            else:
                amount = quantize_money(total * share / denominator)
            allocated_so_far += amount

            layer = line.cost_layer
            original_unit_cost = Decimal(layer.unit_cost)
            per_unit = quantize_cost(amount / line.quantity_accepted)
            layer.apply_landed_cost(per_unit)
            touched.add((layer.item_id, layer.location_id))

            landed_cost.allocations.append(
                LandedCostAllocation(
                    receipt_line_id=line.id,
                    cost_layer_id=layer.id,
                    item_id=line.item_id,
                    allocated_amount=amount,
                    percentage=quantize_cost(share / denominator * 100),
                    quantity=line.quantity_accepted,
                    original_unit_cost=original_unit_cost,
                    adjusted_unit_cost=Decimal(layer.unit_cost),
                )
            )

        tolerance = to_decimal(current_app.config.get('LANDED_COST_ROUNDING_TOLERANCE', '0.01'))
        if abs(allocated_so_far - total) > tolerance:
            raise AllocationError(
                f"Allocations for {landed_cost.landed_cost_number} total {allocated_so_far}, expected {total}"
            )

        db.session.flush()
        for item_id, location_id in sorted(touched):
            refresh_average_cost(item_id, location_id)

        logger.info(
            f"LANDED COST: {landed_cost.landed_cost_number} allocated {total} ({cost_category}) over "
            f"{len(lines)} line(s) of receipt {receipt.receipt_number} by {applied_method}"
        )
        return landed_cost
