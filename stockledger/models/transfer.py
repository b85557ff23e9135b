from decimal import Decimal

from ..extensions import db
from .mixins import StatusWorkflowMixin, TimestampMixin


class InventoryTransfer(StatusWorkflowMixin, TimestampMixin, db.Model):
    """Stock moved between two locations: pending -> in_transit -> received, or cancelled before receipt."""

    __tablename__ = 'inventory_transfer'

    STATUS_PENDING = 'pending'
    STATUS_IN_TRANSIT = 'in_transit'
    STATUS_RECEIVED = 'received'
    STATUS_CANCELLED = 'cancelled'

    TYPE_STANDARD = 'standard'
    TYPE_EMERGENCY = 'emergency'
    TYPE_REPLENISHMENT = 'replenishment'
    TYPE_RETURN = 'return'
    TRANSFER_TYPES = (TYPE_STANDARD, TYPE_EMERGENCY, TYPE_REPLENISHMENT, TYPE_RETURN)

    TRANSITIONS = {
        'ship': ((STATUS_PENDING,), STATUS_IN_TRANSIT),
        'receive': ((STATUS_IN_TRANSIT,), STATUS_RECEIVED),
        'cancel': ((STATUS_PENDING, STATUS_IN_TRANSIT), STATUS_CANCELLED),
    }

    id = db.Column(db.Integer, primary_key=True)
    transfer_number = db.Column(db.String(32), nullable=False, unique=True)
    from_location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    to_location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    transfer_type = db.Column(db.String(20), nullable=False, default=TYPE_STANDARD)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    memo = db.Column(db.Text, nullable=True)
    expected_delivery_date = db.Column(db.DateTime, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    shipped_at = db.Column(db.DateTime, nullable=True)
    received_at = db.Column(db.DateTime, nullable=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.Text, nullable=True)
    carrier = db.Column(db.String(100), nullable=True)
    tracking_number = db.Column(db.String(100), nullable=True)
    shipping_cost = db.Column(db.Numeric(14, 4), nullable=True)

    from_location = db.relationship('Location', foreign_keys=[from_location_id])
    to_location = db.relationship('Location', foreign_keys=[to_location_id])
    lines = db.relationship(
        'InventoryTransferLine',
        backref='transfer',
        order_by='InventoryTransferLine.id',
        cascade='all, delete-orphan',
    )

    __table_args__ = (
        db.CheckConstraint('from_location_id <> to_location_id', name='check_transfer_distinct_locations'),
    )

    def __repr__(self):
        return f'<InventoryTransfer {self.transfer_number} ({self.status})>'


class InventoryTransferLine(db.Model):
    __tablename__ = 'inventory_transfer_line'

    id = db.Column(db.Integer, primary_key=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey('inventory_transfer.id'), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    quantity_requested = db.Column(db.Integer, nullable=False)
    quantity_shipped = db.Column(db.Integer, nullable=False, default=0)
    quantity_received = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=True)
    total_cost = db.Column(db.Numeric(14, 4), nullable=True)
    from_bin_location = db.Column(db.String(50), nullable=True)
    to_bin_location = db.Column(db.String(50), nullable=True)
    destination_layer_id = db.Column(db.Integer, db.ForeignKey('cost_layer.id'), nullable=True)

    item = db.relationship('Item')
    destination_layer = db.relationship('CostLayer')

    __table_args__ = (
        db.CheckConstraint('quantity_requested > 0', name='check_transfer_line_requested_positive'),
    )

    @property
    def shipped_value(self) -> Decimal:
        return Decimal(self.total_cost or 0)

    @property
    def quantity_short(self) -> int:
        """Units shipped but never received. Only meaningful once the transfer is received."""
        return max((self.quantity_shipped or 0) - (self.quantity_received or 0), 0)

    @property
    def shortage_value(self) -> Decimal:
        return Decimal(self.quantity_short) * Decimal(self.unit_cost or 0)
