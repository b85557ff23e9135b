from ..extensions import db
from .adjustment import InventoryAdjustment, InventoryAdjustmentLine
from .catalog import Item, Location
from .cost_layer import CostLayer
from .inventory_balance import InventoryBalance, QuantityClass
from .landed_cost import LandedCost, LandedCostAllocation
from .layer_consumption import LayerConsumption
from .physical_count import PhysicalCount, PhysicalCountLine
from .receipt import ItemReceipt, ItemReceiptLine
from .transfer import InventoryTransfer, InventoryTransferLine

__all__ = [
    'db',
    'Item',
    'Location',
    'CostLayer',
    'LayerConsumption',
    'InventoryBalance',
    'QuantityClass',
    'ItemReceipt',
    'ItemReceiptLine',
    'LandedCost',
    'LandedCostAllocation',
    'InventoryAdjustment',
    'InventoryAdjustmentLine',
    'InventoryTransfer',
    'InventoryTransferLine',
    'PhysicalCount',
    'PhysicalCountLine',
]
