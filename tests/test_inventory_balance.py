"""
Balance buckets and availability
"""
from decimal import Decimal

import pytest

from stockledger.errors import ValidationError
from stockledger.models import InventoryBalance, QuantityClass
from stockledger.services import (
    apply_balance_delta,
    check_availability,
    commit_inventory,
    get_balance,
    get_inventory_summary,
    get_location_balances,
    get_total_available,
    record_on_order,
    release_commitment,
    release_reservation,
    reserve_inventory,
    unit_of_work,
)


class TestApplyBalanceDelta:

    def test_creates_row_on_first_movement(self, widget, default_location):
        assert get_balance(widget.id, default_location.id) is None

        balance = apply_balance_delta(widget.id, default_location.id, None, QuantityClass.ON_ORDER, 7)

        assert balance.bin_location == InventoryBalance.NO_BIN
        assert balance.quantity_on_order == 7
        assert balance.quantity_on_hand == 0
        assert balance.last_movement_date is None

    def test_available_follows_on_hand_committed_and_reserved(self, widget, default_location):
        apply_balance_delta(widget.id, default_location.id, None, 'on_hand', 20)
        apply_balance_delta(widget.id, default_location.id, None, 'committed', 6)
        balance = apply_balance_delta(widget.id, default_location.id, None, 'reserved', 4)

        assert balance.quantity_available == 10
        assert balance.last_movement_date is not None

    def test_bins_are_separate_rows(self, widget, default_location):
        apply_balance_delta(widget.id, default_location.id, 'A-1', QuantityClass.ON_HAND, 3)
        apply_balance_delta(widget.id, default_location.id, ' A-1 ', QuantityClass.ON_HAND, 2)
        apply_balance_delta(widget.id, default_location.id, 'B-2', QuantityClass.ON_HAND, 5)

        balances = get_location_balances(default_location.id)
        assert [(row.bin_location, row.quantity_on_hand) for row in balances] == [('A-1', 5), ('B-2', 5)]
        assert get_total_available(widget.id, default_location.id) == 10

    @pytest.mark.parametrize('quantity_class', ['committed', 'on_order', 'in_transit', 'reserved', 'backordered'])
    def test_non_negative_classes(self, widget, default_location, quantity_class):
        with pytest.raises(ValidationError):
            apply_balance_delta(widget.id, default_location.id, None, quantity_class, -1)

    def test_unknown_class(self, widget, default_location):
        with pytest.raises(ValidationError):
            apply_balance_delta(widget.id, default_location.id, None, 'lost', 1)

    def test_average_cost_refreshes_from_layers(self, widget, default_location, stock):
        stock(widget, 10, '4.00')
        stock(widget, 10, '6.00', days=1)

        assert get_balance(widget.id, default_location.id).average_cost == Decimal('5')


class TestCommitmentsAndReservations:

    def test_commit_and_release(self, widget, default_location, stock):
        stock(widget, 10, '1.00')

        commit_inventory(widget.id, default_location.id, 6)
        assert get_total_available(widget.id, default_location.id) == 4
        assert not check_availability(widget.id, default_location.id, 5)

        release_commitment(widget.id, default_location.id, 6)
        assert check_availability(widget.id, default_location.id, 10)

    def test_cannot_commit_more_than_available(self, widget, default_location, stock):
        stock(widget, 3, '1.00')
        with pytest.raises(ValidationError):
            commit_inventory(widget.id, default_location.id, 4)

    def test_reservation(self, widget, default_location, stock):
        stock(widget, 5, '1.00')
        reserve_inventory(widget.id, default_location.id, 5)

        with pytest.raises(ValidationError):
            reserve_inventory(widget.id, default_location.id, 1)

        release_reservation(widget.id, default_location.id, 2)
        assert get_total_available(widget.id, default_location.id) == 2

    def test_on_order_goes_up_and_down(self, widget, default_location):
        record_on_order(widget.id, default_location.id, 12)
        balance = record_on_order(widget.id, default_location.id, -5)
        assert balance.quantity_on_order == 7


class TestSummary:

    def test_summary_spans_locations(self, widget, default_location, warehouse, stock):
        stock(widget, 4, '2.00', location=default_location)
        stock(widget, 6, '3.00', location=warehouse)
        commit_inventory(widget.id, warehouse.id, 1)

        summary = get_inventory_summary(widget.id)

        assert summary['sku'] == 'WIDGET'
        assert summary['total_on_hand'] == 10
        assert summary['total_available'] == 9
        assert summary['total_committed'] == 1
        assert summary['total_value'] == Decimal('26')
        assert len(summary['locations']) == 2


class TestUnitOfWork:

    def test_failure_rolls_back_every_step(self, widget, default_location):
        with pytest.raises(ValidationError):
            with unit_of_work():
                apply_balance_delta(widget.id, default_location.id, None, QuantityClass.ON_HAND, 5)
                apply_balance_delta(widget.id, default_location.id, None, QuantityClass.RESERVED, -1)

        assert get_balance(widget.id, default_location.id) is None

    def test_nested_success_commits_once_at_the_top(self, widget, default_location):
        with unit_of_work() as session:
            apply_balance_delta(widget.id, default_location.id, None, QuantityClass.ON_HAND, 2)
            apply_balance_delta(widget.id, default_location.id, None, QuantityClass.ON_HAND, 3)
            assert session.info['stockledger.unit_of_work_depth'] == 1

        session.expire_all()
        assert get_balance(widget.id, default_location.id).quantity_on_hand == 5
