from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from ..errors import ValidationError
from ..extensions import db
from ..models import InventoryAdjustment, InventoryBalance, PhysicalCount, PhysicalCountLine
from ..utils.document_numbers import generate_document_number
from ..utils.numeric import require_int
from ..utils.timezone_utils import TimezoneUtils
from .adjustment_service import create_quantity_adjustment
from .cost_layers import get_average_cost
from .inventory_balance_service import get_total_on_hand
from .lookups import get_item, get_location, get_record
from .unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def create_physical_count(
    location_id: int,
    count_type: str = PhysicalCount.TYPE_FULL,
    item_ids: Iterable[int] | None = None,
    notes: str | None = None,
) -> PhysicalCount:
    """Snapshot system quantities for the items to count (every stocked item when none are given)."""
    with unit_of_work():
        location = get_location(location_id, require_active=True)
        if count_type not in PhysicalCount.COUNT_TYPES:
            raise ValidationError(f"Unknown count type {count_type!r}")

        if item_ids is None:
            rows = (
                db.session.query(InventoryBalance.item_id)
                .filter(InventoryBalance.location_id == location.id)
                .distinct()
                .order_by(InventoryBalance.item_id.asc())
                .all()
            )
            item_ids = [row[0] for row in rows]
        else:
            item_ids = [get_item(item_id).id for item_id in item_ids]
        if not item_ids:
            raise ValidationError(f"Nothing to count at {location.code}")

        count = PhysicalCount(
            count_number=generate_document_number('physical_count'),
            location_id=location.id,
            count_type=count_type,
            status=PhysicalCount.STATUS_PLANNED,
            notes=notes,
        )
        for item_id in dict.fromkeys(item_ids):
            count.lines.append(
                PhysicalCountLine(
                    item_id=item_id,
                    system_quantity=get_total_on_hand(item_id, location.id),
                    unit_cost=get_average_cost(item_id, location.id) or Decimal('0'),
                    status=PhysicalCountLine.STATUS_PENDING,
                )
            )
        db.session.add(count)
        db.session.flush()
        logger.info(f"COUNT: planned {count.count_number} at {location.code} for {len(count.lines)} item(s)")
        return count


def record_count_result(line_id: int, counted_quantity: int, counted_by: str | None = None) -> PhysicalCountLine:
    with unit_of_work():
        line = get_record(PhysicalCountLine, line_id, "Physical count line")
        count = line.physical_count
        if count.status == PhysicalCount.STATUS_PLANNED:
            count.transition('start')
        elif count.status != PhysicalCount.STATUS_IN_PROGRESS:
            raise ValidationError(f"Count {count.count_number} is {count.status}; results can no longer be recorded")

        counted = require_int(counted_quantity, 'counted_quantity')
        if counted < 0:
            raise ValidationError("Counted quantity cannot be negative")

        line.counted_quantity = counted
        line.variance_quantity = counted - line.system_quantity
        line.variance_value = Decimal(line.variance_quantity) * Decimal(line.unit_cost or 0)
        line.counted_by = counted_by
        line.counted_at = TimezoneUtils.utc_now()
        line.status = PhysicalCountLine.STATUS_COUNTED
        return line


def complete_physical_count(count_id: int) -> PhysicalCount:
    with unit_of_work():
        count = get_record(PhysicalCount, count_id, "Physical count")
        count.transition('complete')
        pending = [line for line in count.lines if line.status != PhysicalCountLine.STATUS_COUNTED]
        if pending:
            raise ValidationError(f"{len(pending)} line(s) on {count.count_number} have not been counted")
        count.completed_at = TimezoneUtils.utc_now()
        return count


def cancel_physical_count(count_id: int) -> PhysicalCount:
    with unit_of_work():
        count = get_record(PhysicalCount, count_id, "Physical count")
        count.transition('cancel')
        return count


def create_adjustment_from_count(count_id: int, auto_post: bool = True) -> InventoryAdjustment | None:
    """Turn counted variances into a quantity adjustment. Returns None when nothing differed."""
    with unit_of_work():
        count = get_record(PhysicalCount, count_id, "Physical count")
        if count.status != PhysicalCount.STATUS_COMPLETED:
            raise ValidationError(f"Count {count.count_number} must be completed first (is {count.status})")

        variance_lines = [
            {
                'item_id': line.item_id,
                'quantity_change': line.variance_quantity,
                'notes': f"Counted {line.counted_quantity}, system {line.system_quantity}",
            }
            for line in count.lines
            if line.has_variance
        ]

        now = TimezoneUtils.utc_now()
        for balance in InventoryBalance.query.filter(
            InventoryBalance.location_id == count.location_id,
            InventoryBalance.item_id.in_([line.item_id for line in count.lines]),
        ).all():
            balance.last_count_date = now

        if not variance_lines:
            logger.info(f"COUNT: {count.count_number} matched the system quantities")
            return None

        adjustment = create_quantity_adjustment(
            count.location_id,
            variance_lines,
            reason_code='physical_count',
            memo=f"Physical count {count.count_number}",
            reference_number=count.count_number,
            auto_post=auto_post,
            adjustment_type=InventoryAdjustment.TYPE_PHYSICAL_COUNT,
        )
        count.adjustment_id = adjustment.id
        count.transition('adjust')
        logger.info(
            f"COUNT: {count.count_number} produced adjustment {adjustment.adjustment_number} "
            f"with {len(variance_lines)} variance line(s)"
        )
        return adjustment
