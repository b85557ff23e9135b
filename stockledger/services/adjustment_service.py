"""Inventory adjustment workflow.

Adjustments are drafted, optionally approved, then posted or discarded.
Posting a positive quantity line creates a cost layer; posting a negative
one draws FIFO. A posted adjustment is undone only by a reversing
adjustment, never edited.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Sequence

from ..errors import ValidationError
from ..extensions import db
from ..models import CostLayer, InventoryAdjustment, InventoryAdjustmentLine, QuantityClass
from ..utils.document_numbers import generate_document_number
from ..utils.numeric import ZERO, quantize_cost, require_int, to_decimal
from ..utils.timezone_utils import TimezoneUtils
from .cost_layers import (
    TransactionType,
    adjust_layer_cost,
    consume_layers_fifo,
    create_layer,
    eligible_layers_query,
    get_average_cost,
    reverse_consumptions,
)
from .inventory_balance_service import apply_balance_delta
from .lookups import get_item, get_location, get_record, normalize_bin
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def _new_adjustment(location, adjustment_type: str, reason_code: str, memo, reference_number) -> InventoryAdjustment:
    if not (reason_code or '').strip():
        raise ValidationError("A reason code is required")
    now = TimezoneUtils.utc_now()
    adjustment = InventoryAdjustment(
        adjustment_number=generate_document_number('adjustment', when=now),
        adjustment_type=adjustment_type,
        status=InventoryAdjustment.STATUS_DRAFT,
        location_id=location.id,
        reason_code=reason_code,
        memo=memo,
        reference_number=reference_number,
        adjustment_date=now,
        total_value_change=ZERO,
    )
    db.session.add(adjustment)
    return adjustment


def _quantity_line(raw: Mapping[str, Any]) -> InventoryAdjustmentLine:
    item = get_item(raw.get('item_id'))
    change = require_int(raw.get('quantity_change'), 'quantity_change')
    if change == 0:
        raise ValidationError(f"Adjustment line for item {item.sku} has no quantity change")
    unit_cost = raw.get('unit_cost')
    if unit_cost is not None:
        unit_cost = to_decimal(unit_cost)
        if unit_cost < 0:
            raise ValidationError("Unit cost cannot be negative")
        unit_cost = quantize_cost(unit_cost)
    return InventoryAdjustmentLine(
        item_id=item.id,
        line_type=InventoryAdjustmentLine.LINE_QUANTITY,
        quantity_change=change,
        unit_cost=unit_cost,
        bin_location=normalize_bin(raw.get('bin_location')) or None,
        notes=raw.get('notes'),
    )


def create_quantity_adjustment(
    location_id: int | None,
    lines: Sequence[Mapping[str, Any]],
    reason_code: str,
    memo: str | None = None,
    reference_number: str | None = None,
    auto_post: bool = False,
    adjustment_type: str = InventoryAdjustment.TYPE_QUANTITY,
) -> InventoryAdjustment:
    with unit_of_work():
        location = get_location(location_id, require_active=True)
        entries = [line for line in (lines or []) if line]
        if not entries:
            raise ValidationError("An adjustment needs at least one line")

        adjustment = _new_adjustment(location, adjustment_type, reason_code, memo, reference_number)
        for entry in entries:
            adjustment.lines.append(_quantity_line(entry))
        db.session.flush()

        logger.info(
            f"ADJUSTMENT: drafted {adjustment.adjustment_number} at {location.code} "
            f"with {len(adjustment.lines)} line(s)"
        )
        if auto_post:
            post_adjustment(adjustment.id)
        return adjustment


def create_cost_revaluation(
    location_id: int,
    item_id: int,
    new_unit_cost,
    reason_code: str,
    memo: str | None = None,
    auto_post: bool = False,
    adjustment_type: str = InventoryAdjustment.TYPE_COST_REVALUATION,
) -> InventoryAdjustment:
    """Draft a value-only adjustment that resets the unit cost of an item's layers at a location."""
    with unit_of_work():
        location = get_location(location_id, require_active=True)
        item = get_item(item_id)
        new_cost = to_decimal(new_unit_cost)
        if new_cost < 0:
            raise ValidationError("Unit cost cannot be negative")
        current_cost = get_average_cost(item.id, location.id)
        if current_cost is None:
            raise ValidationError(f"Item {item.sku} has no stock at {location.code} to revalue")

        adjustment = _new_adjustment(location, adjustment_type, reason_code, memo, None)
        adjustment.lines.append(
            InventoryAdjustmentLine(
                item_id=item.id,
                line_type=InventoryAdjustmentLine.LINE_VALUE,
                quantity_change=0,
                current_unit_cost=current_cost,
                new_unit_cost=quantize_cost(new_cost),
            )
        )
        db.session.flush()
        logger.info(
            f"ADJUSTMENT: drafted revaluation {adjustment.adjustment_number} for item {item.id} "
            f"at {location.code}: {current_cost} -> {new_cost}"
        )
        if auto_post:
            post_adjustment(adjustment.id)
        return adjustment


def create_write_down(
    location_id: int,
    item_id: int,
    percent,
    reason_code: str,
    memo: str | None = None,
    auto_post: bool = False,
) -> InventoryAdjustment:
    """Reduce unit cost by a percentage of the current average (0 < percent <= 100)."""
    percentage = to_decimal(percent)
    if percentage <= 0 or percentage > 100:
        raise ValidationError("Write-down percent must be greater than 0 and at most 100")
    location = get_location(location_id, require_active=True)
    item = get_item(item_id)
    current_cost = get_average_cost(item.id, location.id)
    if current_cost is None:
        raise ValidationError(f"Item {item.sku} has no stock at {location.code} to write down")
    new_cost = quantize_cost(current_cost * (Decimal('100') - percentage) / Decimal('100'))
    return create_cost_revaluation(
        location.id,
        item.id,
        new_cost,
        reason_code,
        memo=memo or f"Write-down {percentage}%",
        auto_post=auto_post,
        adjustment_type=InventoryAdjustment.TYPE_WRITE_DOWN,
    )


def _post_increase(adjustment: InventoryAdjustment, line: InventoryAdjustmentLine) -> None:
    unit_cost = line.unit_cost
    if unit_cost is None:
        unit_cost = get_average_cost(line.item_id, adjustment.location_id) or ZERO
        line.unit_cost = unit_cost
    layer = create_layer(
        line.item_id,
        adjustment.location_id,
        line.quantity_change,
        unit_cost,
        layer_type=CostLayer.TYPE_ADJUSTMENT,
        source_type='inventory_adjustment',
        source_reference=adjustment.adjustment_number,
        bin_location=line.bin_location,
    )
    line.cost_layer_id = layer.id
    line.total_cost_impact = Decimal(layer.unit_cost) * line.quantity_change
    apply_balance_delta(
        line.item_id, adjustment.location_id, line.bin_location, QuantityClass.ON_HAND, line.quantity_change
    )


def _post_decrease(adjustment: InventoryAdjustment, line: InventoryAdjustmentLine) -> None:
    quantity = abs(line.quantity_change)
    result = consume_layers_fifo(
        line.item_id, adjustment.location_id, quantity, TransactionType.ADJUSTMENT, adjustment.id
    )
    line.unit_cost = quantize_cost(result['total_cost'] / quantity)
    line.total_cost_impact = -result['total_cost']
    apply_balance_delta(
        line.item_id, adjustment.location_id, line.bin_location, QuantityClass.ON_HAND, -quantity
    )


def _post_revaluation(adjustment: InventoryAdjustment, line: InventoryAdjustmentLine) -> None:
    new_cost = Decimal(line.new_unit_cost)
    layers = eligible_layers_query(line.item_id, adjustment.location_id).all()
    impact = ZERO
    for layer in layers:
        impact += (new_cost - Decimal(layer.unit_cost)) * layer.quantity_remaining
        adjust_layer_cost(layer.id, new_cost, f"{adjustment.adjustment_number}: {adjustment.reason_code}")
    line.total_cost_impact = impact

def _restore_decrease(adjustment: InventoryAdjustment, line: InventoryAdjustmentLine, source) -> None:
    """Put a reversed decrease back at the cost it left with. The layers themselves are credited by the caller."""
    line.unit_cost = source.unit_cost
    line.total_cost_impact = -Decimal(source.total_cost_impact or 0)
    apply_balance_delta(
        line.item_id, adjustment.location_id, line.bin_location, QuantityClass.ON_HAND, line.quantity_change
    )


def _finish_posting(adjustment: InventoryAdjustment, location) -> InventoryAdjustment:
    adjustment.total_value_change = sum(
        (Decimal(line.total_cost_impact or 0) for line in adjustment.lines), ZERO
    )
    adjustment.posted_at = TimezoneUtils.utc_now()
    db.session.flush()

    logger.info(
        f"ADJUSTMENT: posted {adjustment.adjustment_number} at {location.code}, "
        f"value change {adjustment.total_value_change}"
    )
    return adjustment


def approve_adjustment(adjustment_id: int, approved_by: str | None = None) -> InventoryAdjustment:
    """Sign off a draft. Approved adjustments can still be discarded until they are posted."""
    with unit_of_work():
        adjustment = get_record(InventoryAdjustment, adjustment_id, "Inventory adjustment")
        adjustment.transition('approve')
        adjustment.approved_by = approved_by
        adjustment.approved_at = TimezoneUtils.utc_now()
        logger.info(f"ADJUSTMENT: approved {adjustment.adjustment_number} by {approved_by or 'unknown'}")
        return adjustment


def post_adjustment(adjustment_id: int) -> InventoryAdjustment:
    with unit_of_work():
        adjustment = get_record(InventoryAdjustment, adjustment_id, "Inventory adjustment")
        adjustment.transition('post')
        location = get_location(adjustment.location_id, require_active=True)

        for line in adjustment.lines:
            if line.line_type == InventoryAdjustmentLine.LINE_VALUE:
                _post_revaluation(adjustment, line)
            elif line.quantity_change > 0:
                _post_increase(adjustment, line)
            else:
                _post_decrease(adjustment, line)

        return _finish_posting(adjustment, location)


def discard_adjustment(adjustment_id: int) -> InventoryAdjustment:
    with unit_of_work():
        adjustment = get_record(InventoryAdjustment, adjustment_id, "Inventory adjustment")
        adjustment.transition('discard')
        logger.info(f"ADJUSTMENT: discarded {adjustment.adjustment_number}")
        return adjustment


def _reversal_line(line: InventoryAdjustmentLine) -> InventoryAdjustmentLine:
    if line.line_type == InventoryAdjustmentLine.LINE_VALUE:
        return InventoryAdjustmentLine(
            item_id=line.item_id,
            line_type=InventoryAdjustmentLine.LINE_VALUE,
            quantity_change=0,
            current_unit_cost=line.new_unit_cost,
            new_unit_cost=line.current_unit_cost,
            notes=f"Reversal of line {line.id}",
        )
    return InventoryAdjustmentLine(
        item_id=line.item_id,
        line_type=InventoryAdjustmentLine.LINE_QUANTITY,
        quantity_change=-line.quantity_change,
        bin_location=line.bin_location,
        notes=f"Reversal of line {line.id}",
    )


def reverse_adjustment(adjustment_id: int, reason: str) -> InventoryAdjustment:
    """
    Post a new adjustment that undoes a posted one.

    Quantity lines are negated. Units the original removed go back to the
    exact layers they were drawn from; units it added are drawn out again
    FIFO. Value lines swap current and new unit cost.
    """
    with unit_of_work():
        original = get_record(InventoryAdjustment, adjustment_id, "Inventory adjustment")
        if not original.is_posted:
            raise ValidationError(
                f"Only posted adjustments can be reversed; {original.adjustment_number} is {original.status}"
            )
        if original.reversed_by is not None:
            raise ValidationError(
                f"Adjustment {original.adjustment_number} was already reversed by "
                f"{original.reversed_by.adjustment_number}"
            )
        location = get_location(original.location_id, require_active=True)

        reversal = _new_adjustment(
            location,
            original.adjustment_type,
            'reversal',
            reason or f"Reversal of {original.adjustment_number}",
            original.adjustment_number,
        )
        reversal.reversal_of = original

        pairs = []
        for line in original.lines:
            counter = _reversal_line(line)
            reversal.lines.append(counter)
            pairs.append((line, counter))
        db.session.flush()

        reversal.transition('post')
        if any(source.is_decrease for source, _ in pairs):
            reverse_consumptions(TransactionType.ADJUSTMENT, original.id, f"{reversal.adjustment_number}: {reason}")

        for source, counter in pairs:
            if counter.line_type == InventoryAdjustmentLine.LINE_VALUE:
                _post_revaluation(reversal, counter)
            elif source.is_decrease:
                _restore_decrease(reversal, counter, source)
            else:
                _post_decrease(reversal, counter)
        _finish_posting(reversal, location)

        logger.info(
            f"ADJUSTMENT: {reversal.adjustment_number} reversed {original.adjustment_number}: {reason}"
        )
        return reversal
