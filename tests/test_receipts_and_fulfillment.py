"""
Goods in and goods out
"""
from decimal import Decimal

import pytest

from stockledger.errors import InsufficientInventoryError, NotFoundError, ValidationError
from stockledger.models import CostLayer, ItemReceipt
from stockledger.services import (
    commit_inventory,
    fulfill_order_line,
    get_balance,
    get_total_on_hand,
    receive_inventory,
    verify_ledger,
)
from stockledger.utils.document_numbers import validate_document_number


class TestReceiveInventory:

    def test_accepted_quantity_becomes_a_layer(self, widget, gadget, default_location):
        receipt = receive_inventory(
            default_location.id,
            [
                {'item_id': widget.id, 'quantity_received': 12, 'quantity_rejected': 2, 'unit_cost': '3.10'},
                {'item_id': gadget.id, 'quantity_received': 4, 'unit_cost': 9},
            ],
            vendor_name='Acme Supply',
            purchase_order_reference='PO-1001',
        )

        assert validate_document_number(receipt.receipt_number)
        widget_line, gadget_line = receipt.lines
        assert widget_line.quantity_accepted == 10
        assert widget_line.cost_layer.quantity_received == 10
        assert widget_line.cost_layer.unit_cost == Decimal('3.1')
        assert widget_line.cost_layer.source_reference == receipt.receipt_number
        assert gadget_line.cost_layer.layer_type == CostLayer.TYPE_RECEIPT
        assert get_total_on_hand(widget.id, default_location.id) == 10
        assert get_total_on_hand(gadget.id, default_location.id) == 4
        assert verify_ledger() == []

    def test_fully_rejected_line_creates_no_layer(self, widget, default_location):
        receipt = receive_inventory(
            default_location.id,
            [{'item_id': widget.id, 'quantity_received': 5, 'quantity_rejected': 5, 'unit_cost': 1}],
        )

        assert receipt.lines[0].cost_layer is None
        assert CostLayer.query.count() == 0
        assert get_total_on_hand(widget.id, default_location.id) == 0

    def test_bin_location_is_kept(self, widget, default_location):
        receive_inventory(
            default_location.id,
            [{'item_id': widget.id, 'quantity_received': 3, 'unit_cost': 1, 'bin_location': 'R1-S2'}],
        )
        assert get_balance(widget.id, default_location.id, 'R1-S2').quantity_on_hand == 3

    def test_missing_location_uses_default(self, widget, default_location):
        receipt = receive_inventory(None, [{'item_id': widget.id, 'quantity_received': 1, 'unit_cost': 1}])
        assert receipt.location_id == default_location.id

    @pytest.mark.parametrize('line', [
        {'quantity_received': 0, 'unit_cost': 1},
        {'quantity_received': 5, 'quantity_accepted': 4, 'quantity_rejected': 2, 'unit_cost': 1},
        {'quantity_received': 5, 'quantity_rejected': -1, 'unit_cost': 1},
        {'quantity_received': 5, 'unit_cost': -2},
    ])
    def test_bad_lines_are_rejected(self, widget, default_location, line):
        with pytest.raises(ValidationError):
            receive_inventory(default_location.id, [dict(line, item_id=widget.id)])
        assert ItemReceipt.query.count() == 0

    def test_empty_receipt(self, default_location):
        with pytest.raises(ValidationError):
            receive_inventory(default_location.id, [])

    def test_inactive_location(self, widget):
        from stockledger.models import Location

        closed = Location.query.filter_by(code='CLOSED').one()
        with pytest.raises(ValidationError):
            receive_inventory(closed.id, [{'item_id': widget.id, 'quantity_received': 1, 'unit_cost': 1}])

    def test_unknown_item(self, default_location):
        with pytest.raises(NotFoundError):
            receive_inventory(default_location.id, [{'item_id': 404, 'quantity_received': 1, 'unit_cost': 1}])
        assert ItemReceipt.query.count() == 0


class TestFulfillOrderLine:

    def test_ship_draws_fifo_and_releases_commitment(self, widget, default_location, stock):
        stock(widget, 10, '5.00')
        stock(widget, 10, '7.00', days=1)
        commit_inventory(widget.id, default_location.id, 8)

        result = fulfill_order_line(widget.id, default_location.id, 15, order_id=3001)

        assert result['total_cost'] == Decimal('85')
        balance = get_balance(widget.id, default_location.id)
        assert balance.quantity_on_hand == 5
        assert balance.quantity_committed == 0
        assert balance.quantity_available == 5
        assert verify_ledger() == []

    def test_partial_commitment_release(self, widget, default_location, stock):
        stock(widget, 10, '1.00')
        commit_inventory(widget.id, default_location.id, 8)

        fulfill_order_line(widget.id, default_location.id, 3, order_id=3002)

        assert get_balance(widget.id, default_location.id).quantity_committed == 5

    def test_short_shipment_changes_nothing(self, widget, default_location, stock):
        stock(widget, 2, '1.00')

        with pytest.raises(InsufficientInventoryError):
            fulfill_order_line(widget.id, default_location.id, 3, order_id=3003)

        assert get_total_on_hand(widget.id, default_location.id) == 2
        assert verify_ledger() == []
