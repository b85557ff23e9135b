"""Ledger operations. Everything that moves quantity or cost lives behind these functions."""

from .adjustment_service import (
    approve_adjustment,
    create_cost_revaluation,
    create_quantity_adjustment,
    create_write_down,
    discard_adjustment,
    post_adjustment,
    reverse_adjustment,
)
from .cost_layers import (
    ConsumptionResult,
    TransactionRef,
    TransactionType,
    adjust_layer_cost,
    change_quality_status,
    consume_layers_fifo,
    create_layer,
    get_average_cost,
    get_consumption_history,
    get_layers_by_item,
    get_net_consumed,
    get_remaining_quantity,
    get_total_inventory_value,
    reverse_consumptions,
    verify_layer_balance_sync,
    verify_ledger,
    void_layer,
)
from .fulfillment_service import fulfill_order_line
from .inventory_balance_service import (
    apply_balance_delta,
    check_availability,
    commit_inventory,
    get_balance,
    get_inventory_summary,
    get_location_balances,
    get_total_available,
    get_total_on_hand,
    record_on_order,
    refresh_average_cost,
    release_commitment,
    release_reservation,
    reserve_inventory,
)
from .landed_cost_service import apply_landed_cost
from .physical_count_service import (
    cancel_physical_count,
    complete_physical_count,
    create_adjustment_from_count,
    create_physical_count,
    record_count_result,
)
from .receipt_service import receive_inventory
from .transfer_service import (
    approve_transfer,
    calculate_transfer_cost,
    cancel_transfer,
    create_transfer,
    receive_transfer,
    ship_transfer,
)
from .unit_of_work import unit_of_work

__all__ = [
    'unit_of_work',
    # cost layers
    'create_layer',
    'consume_layers_fifo',
    'reverse_consumptions',
    'void_layer',
    'adjust_layer_cost',
    'change_quality_status',
    'get_layers_by_item',
    'get_remaining_quantity',
    'get_total_inventory_value',
    'get_average_cost',
    'get_consumption_history',
    'get_net_consumed',
    'verify_layer_balance_sync',
    'verify_ledger',
    'TransactionType',
    'TransactionRef',
    'ConsumptionResult',
    # balances
    'apply_balance_delta',
    'get_balance',
    'get_location_balances',
    'get_total_on_hand',
    'get_total_available',
    'check_availability',
    'commit_inventory',
    'release_commitment',
    'reserve_inventory',
    'release_reservation',
    'record_on_order',
    'refresh_average_cost',
    'get_inventory_summary',
    # documents
    'receive_inventory',
    'apply_landed_cost',
    'fulfill_order_line',
    'create_quantity_adjustment',
    'create_cost_revaluation',
    'create_write_down',
    'post_adjustment',
    'approve_adjustment',
    'discard_adjustment',
    'reverse_adjustment',
    'create_transfer',
    'approve_transfer',
    'ship_transfer',
    'receive_transfer',
    'cancel_transfer',
    'calculate_transfer_cost',
    'create_physical_count',
    'record_count_result',
    'complete_physical_count',
    'cancel_physical_count',
    'create_adjustment_from_count',
]
