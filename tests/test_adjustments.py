"""
Adjustment lifecycle: draft, post, discard and reverse
"""
from decimal import Decimal

import pytest

from stockledger.errors import InsufficientInventoryError, InvalidTransitionError, ValidationError
from stockledger.extensions import db
from stockledger.models import CostLayer, InventoryAdjustment, Location
from stockledger.services import (
    approve_adjustment,
    change_quality_status,
    create_cost_revaluation,
    create_quantity_adjustment,
    create_write_down,
    discard_adjustment,
    get_average_cost,
    get_balance,
    get_total_inventory_value,
    get_total_on_hand,
    post_adjustment,
    reverse_adjustment,
    verify_ledger,
)


class TestQuantityAdjustments:

    def test_draft_does_not_touch_stock(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 5, 'unit_cost': '2.00'}], 'found'
        )

        assert adjustment.status == InventoryAdjustment.STATUS_DRAFT
        assert adjustment.adjustment_number.startswith('ADJ-')
        assert CostLayer.query.count() == 0
        assert get_total_on_hand(widget.id, default_location.id) == 0

    def test_posting_an_increase_creates_a_layer(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id,
            [{'item_id': widget.id, 'quantity_change': 5, 'unit_cost': '2.00'}],
            'found',
            auto_post=True,
        )

        line = adjustment.lines[0]
        layer = db.session.get(CostLayer, line.cost_layer_id)
        assert adjustment.status == InventoryAdjustment.STATUS_POSTED
        assert adjustment.posted_at is not None
        assert layer.layer_type == CostLayer.TYPE_ADJUSTMENT
        assert layer.source_reference == adjustment.adjustment_number
        assert line.total_cost_impact == Decimal('10')
        assert adjustment.total_value_change == Decimal('10')
        assert get_total_on_hand(widget.id, default_location.id) == 5

    def test_increase_layer_remembers_its_bin(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id,
            [{'item_id': widget.id, 'quantity_change': 3, 'unit_cost': '1.00', 'bin_location': 'C-3'}],
            'found',
            auto_post=True,
        )

        layer = adjustment.lines[0].cost_layer
        assert layer.bin_location == 'C-3'
        assert get_balance(widget.id, default_location.id, 'C-3').quantity_on_hand == 3

    def test_increase_without_cost_uses_average(self, widget, default_location, stock):
        stock(widget, 10, '4.00')
        stock(widget, 10, '6.00', days=1)

        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 2}], 'found', auto_post=True
        )

        assert adjustment.lines[0].unit_cost == Decimal('5')

    def test_increase_without_cost_or_stock_is_free(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 2}], 'found', auto_post=True
        )
        assert adjustment.lines[0].unit_cost == Decimal('0')

    def test_posting_a_decrease_draws_fifo(self, widget, default_location, stock):
        stock(widget, 10, '5.00')
        stock(widget, 10, '7.00', days=1)

        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': -15}], 'shrinkage', auto_post=True
        )

        line = adjustment.lines[0]
        assert line.total_cost_impact == Decimal('-85')
        assert line.unit_cost == Decimal('5.6667')
        assert get_total_on_hand(widget.id, default_location.id) == 5
        assert verify_ledger() == []

    def test_failed_post_leaves_the_draft(self, widget, default_location, stock):
        stock(widget, 3, '1.00')
        adjustment = create_quantity_adjustment(
            default_location.id,
            [
                {'item_id': widget.id, 'quantity_change': 4, 'unit_cost': 1},
                {'item_id': widget.id, 'quantity_change': -10},
            ],
            'shrinkage',
        )

        with pytest.raises(InsufficientInventoryError):
            post_adjustment(adjustment.id)

        reloaded = db.session.get(InventoryAdjustment, adjustment.id)
        assert reloaded.status == InventoryAdjustment.STATUS_DRAFT
        assert CostLayer.query.count() == 1
        assert get_total_on_hand(widget.id, default_location.id) == 3

    def test_posting_twice_is_rejected(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 1}], 'found', auto_post=True
        )
        with pytest.raises(InvalidTransitionError):
            post_adjustment(adjustment.id)

    @pytest.mark.parametrize('lines,reason', [
        ([], 'found'),
        ([{'quantity_change': 0}], 'found'),
        ([{'quantity_change': 1.5}], 'found'),
        ([{'quantity_change': 1, 'unit_cost': '-1'}], 'found'),
        ([{'quantity_change': 1}], ''),
    ])
    def test_invalid_drafts(self, widget, default_location, lines, reason):
        lines = [dict(line, item_id=widget.id) for line in lines]
        with pytest.raises(ValidationError):
            create_quantity_adjustment(default_location.id, lines, reason)
        assert InventoryAdjustment.query.count() == 0

    def test_inactive_location(self, widget):
        closed = Location.query.filter_by(code='CLOSED').one()
        with pytest.raises(ValidationError):
            create_quantity_adjustment(closed.id, [{'item_id': widget.id, 'quantity_change': 1}], 'found')


class TestDiscard:

    def test_discard_voids_a_draft(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 1}], 'found'
        )

        discard_adjustment(adjustment.id)

        assert db.session.get(InventoryAdjustment, adjustment.id).status == InventoryAdjustment.STATUS_VOID
        with pytest.raises(InvalidTransitionError):
            post_adjustment(adjustment.id)

    def test_posted_cannot_be_discarded(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 1}], 'found', auto_post=True
        )
        with pytest.raises(InvalidTransitionError):
            discard_adjustment(adjustment.id)


class TestApproval:

    def test_approved_adjustment_posts(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 5, 'unit_cost': '2.00'}], 'found'
        )

        approve_adjustment(adjustment.id, approved_by='ops-lead')

        assert adjustment.status == InventoryAdjustment.STATUS_APPROVED
        assert adjustment.approved_by == 'ops-lead'
        assert adjustment.approved_at is not None
        assert get_total_on_hand(widget.id, default_location.id) == 0

        post_adjustment(adjustment.id)

        assert adjustment.status == InventoryAdjustment.STATUS_POSTED
        assert get_total_on_hand(widget.id, default_location.id) == 5
        assert verify_ledger() == []

    def test_draft_still_posts_without_approval(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 2}], 'found'
        )

        post_adjustment(adjustment.id)

        assert adjustment.status == InventoryAdjustment.STATUS_POSTED
        assert adjustment.approved_at is None

    def test_only_drafts_can_be_approved(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 2}], 'found'
        )
        approve_adjustment(adjustment.id, approved_by='ops-lead')

        with pytest.raises(InvalidTransitionError):
            approve_adjustment(adjustment.id, approved_by='ops-lead')

        post_adjustment(adjustment.id)
        with pytest.raises(InvalidTransitionError):
            approve_adjustment(adjustment.id)

    def test_approved_adjustment_can_be_discarded(self, widget, default_location):
        adjustment = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 2}], 'found'
        )
        approve_adjustment(adjustment.id)

        discard_adjustment(adjustment.id)

        assert adjustment.status == InventoryAdjustment.STATUS_VOID
        assert CostLayer.query.count() == 0


class TestReverse:

    def test_reversal_nets_balances_to_zero(self, widget, gadget, default_location, stock):
        stock(widget, 10, '5.00')
        stock(widget, 10, '7.00', days=1)
        before_value = get_total_inventory_value(widget.id, default_location.id)

        original = create_quantity_adjustment(
            default_location.id,
            [
                {'item_id': widget.id, 'quantity_change': -15},
                {'item_id': gadget.id, 'quantity_change': 4, 'unit_cost': '3.00'},
            ],
            'recount',
            auto_post=True,
        )
        reversal = reverse_adjustment(original.id, 'Entered against the wrong location')

        assert reversal.reversal_of_id == original.id
        assert reversal.reference_number == original.adjustment_number
        assert reversal.status == InventoryAdjustment.STATUS_POSTED
        assert [line.quantity_change for line in reversal.lines] == [15, -4]
        assert get_total_on_hand(widget.id, default_location.id) == 20
        assert get_total_on_hand(gadget.id, default_location.id) == 0
        assert get_total_inventory_value(widget.id, default_location.id) == before_value
        assert reversal.total_value_change == -original.total_value_change
        assert verify_ledger() == []

        untouched = db.session.get(InventoryAdjustment, original.id)
        assert untouched.status == InventoryAdjustment.STATUS_POSTED
        assert [line.quantity_change for line in untouched.lines] == [-15, 4]
        assert untouched.reversed_by.id == reversal.id

    def test_double_reversal_rejected(self, widget, default_location):
        original = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 3}], 'found', auto_post=True
        )
        reverse_adjustment(original.id, 'Oops')

        with pytest.raises(ValidationError):
            reverse_adjustment(original.id, 'Oops again')

    def test_only_posted_can_be_reversed(self, widget, default_location):
        draft = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': 3}], 'found'
        )
        with pytest.raises(ValidationError):
            reverse_adjustment(draft.id, 'Not yet posted')

    def test_reversal_refused_when_drawn_layer_is_held(self, widget, default_location, stock):
        layer = stock(widget, 10, '5.00')
        original = create_quantity_adjustment(
            default_location.id, [{'item_id': widget.id, 'quantity_change': -4}], 'damaged', auto_post=True
        )
        change_quality_status(layer.id, CostLayer.QUALITY_QUARANTINE)

        with pytest.raises(ValidationError):
            reverse_adjustment(original.id, 'Found them after all')

        assert InventoryAdjustment.query.count() == 1
        assert db.session.get(InventoryAdjustment, original.id).reversed_by is None
        assert db.session.get(CostLayer, layer.id).quantity_remaining == 6
        assert verify_ledger() == []


class TestRevaluation:

    def test_revaluation_resets_layer_costs(self, widget, default_location, stock):
        stock(widget, 10, '4.00')
        stock(widget, 10, '6.00', days=1)

        adjustment = create_cost_revaluation(default_location.id, widget.id, '8.00', 'market', auto_post=True)

        line = adjustment.lines[0]
        assert line.current_unit_cost == Decimal('5')
        assert line.new_unit_cost == Decimal('8')
        assert line.total_cost_impact == Decimal('60')
        assert get_total_inventory_value(widget.id, default_location.id) == Decimal('160')
        assert get_balance(widget.id, default_location.id).average_cost == Decimal('8')

    def test_reversing_a_revaluation_restores_average(self, widget, default_location, stock):
        stock(widget, 10, '4.00')
        stock(widget, 10, '6.00', days=1)
        adjustment = create_cost_revaluation(default_location.id, widget.id, '8.00', 'market', auto_post=True)

        reverse_adjustment(adjustment.id, 'Wrong price list')

        assert get_average_cost(widget.id, default_location.id) == Decimal('5')
        assert get_total_inventory_value(widget.id, default_location.id) == Decimal('100')

    def test_write_down(self, widget, default_location, stock):
        stock(widget, 10, '10.00')

        adjustment = create_write_down(default_location.id, widget.id, 25, 'obsolescence', auto_post=True)

        assert adjustment.adjustment_type == InventoryAdjustment.TYPE_WRITE_DOWN
        assert adjustment.total_value_change == Decimal('-25')
        assert get_average_cost(widget.id, default_location.id) == Decimal('7.5')

    def test_write_down_without_location_uses_the_default_location_average(
        self, widget, default_location, warehouse, stock
    ):
        stock(widget, 10, '4.00')
        stock(widget, 10, '20.00', location=warehouse)

        adjustment = create_write_down(None, widget.id, 50, 'obsolescence', auto_post=True)

        line = adjustment.lines[0]
        assert adjustment.location_id == default_location.id
        assert line.current_unit_cost == Decimal('4')
        assert line.new_unit_cost == Decimal('2')
        assert get_average_cost(widget.id, default_location.id) == Decimal('2')
        assert get_average_cost(widget.id, warehouse.id) == Decimal('20')

    @pytest.mark.parametrize('percent', [0, -5, 101])
    def test_write_down_bounds(self, widget, default_location, stock, percent):
        stock(widget, 10, '10.00')
        with pytest.raises(ValidationError):
            create_write_down(default_location.id, widget.id, percent, 'obsolescence')

    def test_nothing_to_revalue(self, widget, default_location):
        with pytest.raises(ValidationError):
            create_cost_revaluation(default_location.id, widget.id, '1.00', 'market')
