"""
Cost Layer Engine - Canonical Entry Point

Every layer creation, FIFO draw, consumption reversal and layer override goes
through this package. Callers never edit CostLayer or LayerConsumption rows
directly.
"""

from ._admin import adjust_layer_cost, change_quality_status, void_layer
from ._creation import create_layer
from ._fifo import consume_layers_fifo, eligible_layers_query
from ._reversal import reverse_consumptions
from ._types import ConsumedLayer, ConsumptionResult, TransactionRef, TransactionType
from ._validation import ledger_pairs, verify_layer_balance_sync, verify_ledger
from ._valuation import (
    get_average_cost,
    get_consumption_history,
    get_layers_by_item,
    get_net_consumed,
    get_remaining_quantity,
    get_total_inventory_value,
)

__all__ = [
    'create_layer',
    'consume_layers_fifo',
    'eligible_layers_query',
    'reverse_consumptions',
    'void_layer',
    'adjust_layer_cost',
    'change_quality_status',
    'get_layers_by_item',
    'get_average_cost',
    'get_total_inventory_value',
    'get_remaining_quantity',
    'get_consumption_history',
    'get_net_consumed',
    'verify_layer_balance_sync',
    'verify_ledger',
    'ledger_pairs',
    'TransactionType',
    'TransactionRef',
    'ConsumptionResult',
    'ConsumedLayer',
]
