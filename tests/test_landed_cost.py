"""
Landed cost allocation over receipt layers
"""
from decimal import Decimal

import pytest

from stockledger.errors import AllocationError, NotFoundError, ValidationError
from stockledger.models import LandedCost, Item
from stockledger.services import (
    apply_landed_cost,
    get_balance,
    receive_inventory,
    void_layer,
)


@pytest.fixture
def two_line_receipt(widget, gadget, default_location):
    return receive_inventory(
        default_location.id,
        [
            {'item_id': widget.id, 'quantity_received': 10, 'unit_cost': '5.00'},
            {'item_id': gadget.id, 'quantity_received': 10, 'unit_cost': '15.00'},
        ],
    )


class TestAllocationMethods:

    def test_by_value(self, two_line_receipt, widget, default_location):
        landed = apply_landed_cost(two_line_receipt.id, 'freight', '20.00')

        amounts = [allocation.allocated_amount for allocation in landed.allocations]
        assert amounts == [Decimal('5'), Decimal('15')]
        assert [allocation.percentage for allocation in landed.allocations] == [Decimal('25'), Decimal('75')]

        widget_layer, gadget_layer = (line.cost_layer for line in two_line_receipt.lines)
        assert widget_layer.unit_cost == Decimal('5.50')
        assert gadget_layer.unit_cost == Decimal('16.50')
        assert widget_layer.landed_cost_adjustment == Decimal('0.5')
        assert widget_layer.original_unit_cost == Decimal('5')
        assert get_balance(widget.id, default_location.id).average_cost == Decimal('5.5')

    def test_by_quantity(self, two_line_receipt):
        landed = apply_landed_cost(two_line_receipt.id, 'duty', '20.00', method='quantity')

        assert [allocation.allocated_amount for allocation in landed.allocations] == [Decimal('10'), Decimal('10')]
        assert landed.applied_method == LandedCost.METHOD_QUANTITY

    def test_by_weight(self, two_line_receipt):
        # widget weighs 2, gadget 3
        landed = apply_landed_cost(two_line_receipt.id, 'freight', '50', method='weight')

        assert landed.applied_method == LandedCost.METHOD_WEIGHT
        assert [allocation.allocated_amount for allocation in landed.allocations] == [Decimal('20'), Decimal('30')]

    def test_weight_falls_back_to_quantity(self, widget, default_location):
        gizmo = Item.query.filter_by(sku='GIZMO').one()
        receipt = receive_inventory(
            default_location.id,
            [
                {'item_id': widget.id, 'quantity_received': 1, 'unit_cost': 1},
                {'item_id': gizmo.id, 'quantity_received': 3, 'unit_cost': 1},
            ],
        )

        landed = apply_landed_cost(receipt.id, 'freight', '8', method='weight')

        assert landed.allocation_method == LandedCost.METHOD_WEIGHT
        assert landed.applied_method == LandedCost.METHOD_QUANTITY
        assert [allocation.allocated_amount for allocation in landed.allocations] == [Decimal('2'), Decimal('6')]

    def test_costs_stack(self, two_line_receipt):
        apply_landed_cost(two_line_receipt.id, 'freight', '20.00')
        apply_landed_cost(two_line_receipt.id, 'duty', '10.00', method='quantity')

        widget_layer = two_line_receipt.lines[0].cost_layer
        assert widget_layer.unit_cost == Decimal('6.00')
        assert widget_layer.landed_cost_adjustment == Decimal('1.00')
        assert two_line_receipt.landed_costs.count() == 2


class TestRounding:

    def test_residue_lands_on_last_line(self, widget, gadget, default_location):
        gizmo = Item.query.filter_by(sku='GIZMO').one()
        receipt = receive_inventory(
            default_location.id,
            [
                {'item_id': widget.id, 'quantity_received': 1, 'unit_cost': 1},
                {'item_id': gadget.id, 'quantity_received': 1, 'unit_cost': 1},
                {'item_id': gizmo.id, 'quantity_received': 1, 'unit_cost': 1},
            ],
        )

        landed = apply_landed_cost(receipt.id, 'freight', '10.00', method='quantity')

        amounts = [allocation.allocated_amount for allocation in landed.allocations]
        assert amounts == [Decimal('3.33'), Decimal('3.33'), Decimal('3.34')]
        assert sum(amounts) == Decimal('10.00')


class TestRejections:

    def test_nothing_to_allocate(self, widget, default_location):
        receipt = receive_inventory(
            default_location.id,
            [{'item_id': widget.id, 'quantity_received': 5, 'quantity_rejected': 5, 'unit_cost': 1}],
        )

        with pytest.raises(AllocationError):
            apply_landed_cost(receipt.id, 'freight', '10')
        assert LandedCost.query.count() == 0

    def test_zero_value_receipt_by_value(self, widget, default_location):
        receipt = receive_inventory(
            default_location.id, [{'item_id': widget.id, 'quantity_received': 5, 'unit_cost': 0}]
        )
        with pytest.raises(AllocationError):
            apply_landed_cost(receipt.id, 'freight', '10')

    def test_voided_layers_are_skipped(self, two_line_receipt):
        void_layer(two_line_receipt.lines[0].cost_layer.id, 'Returned to vendor')

        landed = apply_landed_cost(two_line_receipt.id, 'freight', '20.00')

        assert len(landed.allocations) == 1
        assert landed.allocations[0].allocated_amount == Decimal('20.00')

    @pytest.mark.parametrize('total,method,category', [
        ('0', 'value', 'freight'),
        ('-5', 'value', 'freight'),
        ('5', 'volume', 'freight'),
        ('5', 'value', ' '),
    ])
    def test_bad_arguments(self, two_line_receipt, total, method, category):
        with pytest.raises(ValidationError):
            apply_landed_cost(two_line_receipt.id, category, total, method=method)

    def test_unknown_receipt(self, app):
        with pytest.raises(NotFoundError):
            apply_landed_cost(999, 'freight', '1')
