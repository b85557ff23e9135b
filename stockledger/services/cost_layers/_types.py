from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import List, TypedDict

from ...errors import ValidationError


class TransactionType(str, Enum):
    """Business operations allowed to draw from cost layers."""

    ADJUSTMENT = "adjustment"
    TRANSFER = "transfer"
    FULFILLMENT = "fulfillment"
    PHYSICAL_COUNT = "physical_count"

    @classmethod
    def coerce(cls, value) -> "TransactionType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValidationError(
                f"Unknown transaction type {value!r}; expected one of {[member.value for member in cls]}"
            ) from exc


@dataclass(frozen=True)
class TransactionRef:
    kind: TransactionType
    id: int

    @classmethod
    def of(cls, kind, transaction_id) -> "TransactionRef":
        if transaction_id is None or isinstance(transaction_id, bool):
            raise ValidationError("A transaction id is required")
        try:
            normalized_id = int(transaction_id)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Transaction id must be an integer, got {transaction_id!r}") from exc
        return cls(TransactionType.coerce(kind), normalized_id)

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.id}"


class ConsumedLayer(TypedDict):
    layer_id: int
    consumption_id: int
    quantity: int
    unit_cost: Decimal
    cost: Decimal


class ConsumptionResult(TypedDict):
    total_cost: Decimal
    layers_consumed: List[ConsumedLayer]
