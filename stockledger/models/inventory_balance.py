from decimal import Decimal
from enum import Enum

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class QuantityClass(str, Enum):
    """Quantity buckets tracked on a balance row."""

    ON_HAND = 'on_hand'
    COMMITTED = 'committed'
    ON_ORDER = 'on_order'
    IN_TRANSIT = 'in_transit'
    RESERVED = 'reserved'
    BACKORDERED = 'backordered'

    @property
    def column(self) -> str:
        return f'quantity_{self.value}'

    @property
    def affects_availability(self) -> bool:
        return self in (QuantityClass.ON_HAND, QuantityClass.COMMITTED, QuantityClass.RESERVED)

    @property
    def marks_movement(self) -> bool:
        return self in (QuantityClass.ON_HAND, QuantityClass.COMMITTED)


NON_NEGATIVE_CLASSES = (
    QuantityClass.COMMITTED,
    QuantityClass.ON_ORDER,
    QuantityClass.IN_TRANSIT,
    QuantityClass.RESERVED,
    QuantityClass.BACKORDERED,
)


class InventoryBalance(db.Model):
    """Per (item, location, bin) quantity cache kept in step with the cost layers."""

    __tablename__ = 'inventory_balance'

    NO_BIN = ''

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    bin_location = db.Column(db.String(50), nullable=False, default=NO_BIN)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    quantity_available = db.Column(db.Integer, nullable=False, default=0)
    quantity_committed = db.Column(db.Integer, nullable=False, default=0)
    quantity_on_order = db.Column(db.Integer, nullable=False, default=0)
    quantity_in_transit = db.Column(db.Integer, nullable=False, default=0)
    quantity_reserved = db.Column(db.Integer, nullable=False, default=0)
    quantity_backordered = db.Column(db.Integer, nullable=False, default=0)

    average_cost = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    last_movement_date = db.Column(db.DateTime, nullable=True)
    last_count_date = db.Column(db.DateTime, nullable=True)
    updated_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, onupdate=TimezoneUtils.utc_now)

    item = db.relationship('Item')
    location = db.relationship('Location')

    __table_args__ = (
        db.UniqueConstraint('item_id', 'location_id', 'bin_location', name='uq_inventory_balance_item_location_bin'),
        db.CheckConstraint('quantity_committed >= 0', name='check_balance_committed_non_negative'),
        db.CheckConstraint('quantity_reserved >= 0', name='check_balance_reserved_non_negative'),
        db.CheckConstraint('quantity_backordered >= 0', name='check_balance_backordered_non_negative'),
        db.CheckConstraint('quantity_in_transit >= 0', name='check_balance_in_transit_non_negative'),
        db.CheckConstraint('quantity_on_order >= 0', name='check_balance_on_order_non_negative'),
    )

    def __repr__(self):
        return (
            f'<InventoryBalance item={self.item_id} location={self.location_id} '
            f'bin={self.bin_location!r} on_hand={self.quantity_on_hand}>'
        )

    def recalculate_available(self) -> int:
        """available = on_hand - committed - reserved; the only writer of quantity_available."""
        self.quantity_available = (
            (self.quantity_on_hand or 0) - (self.quantity_committed or 0) - (self.quantity_reserved or 0)
        )
        return self.quantity_available

    def quantity_of(self, quantity_class: QuantityClass) -> int:
        return getattr(self, quantity_class.column) or 0

    def apply_delta(self, quantity_class: QuantityClass, delta: int) -> int:
        """Apply a signed delta to one quantity bucket and return the new value."""
        new_value = self.quantity_of(quantity_class) + delta
        setattr(self, quantity_class.column, new_value)
        if quantity_class.affects_availability:
            self.recalculate_available()
        if quantity_class.marks_movement:
            self.last_movement_date = TimezoneUtils.utc_now()
        return new_value

    @property
    def total_value(self) -> Decimal:
        return Decimal(self.quantity_on_hand or 0) * Decimal(self.average_cost or 0)
