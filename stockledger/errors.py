"""Error taxonomy for the inventory ledger.

Every ledger failure derives from ``InventoryLedgerError`` so callers can
catch the whole family. ``InsufficientInventoryError`` is deliberately kept
apart from ``ValidationError``: it means the balance claims stock the cost
layers cannot source, which is a data-integrity fault rather than a bad
request.
"""

from __future__ import annotations


class InventoryLedgerError(RuntimeError):
    """Base class for ledger failures."""


class NotFoundError(InventoryLedgerError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, identifier):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} {identifier} not found")


class ValidationError(InventoryLedgerError):
    """Raised when input or record state makes an operation invalid."""


class InvalidTransitionError(ValidationError):
    """Raised when a document is asked to move to a state it cannot reach."""

    def __init__(self, document: str, current: str, action: str):
        self.document = document
        self.current = current
        self.action = action
        super().__init__(f"Cannot {action} {document} in status '{current}'")


class InsufficientInventoryError(InventoryLedgerError):
    """Raised when cost layers cannot source the requested quantity."""

    def __init__(self, item_id: int, location_id: int | None, requested: int, available: int):
        self.item_id = item_id
        self.location_id = location_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient inventory in cost layers for item {item_id} at location {location_id}: "
            f"requested {requested}, available {available}, short {self.shortfall}"
        )

    @property
    def shortfall(self) -> int:
        return self.requested - self.available


class AllocationError(InventoryLedgerError):
    """Raised when a landed cost cannot be allocated."""
