from decimal import Decimal

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class CostLayer(db.Model):
    """
    One batch of stock acquired at one unit cost.
    Layers are consumed oldest first by receipt date and are never merged or deleted.
    """
    __tablename__ = 'cost_layer'

    TYPE_RECEIPT = 'receipt'
    TYPE_ADJUSTMENT = 'adjustment'
    TYPE_TRANSFER_IN = 'transfer_in'
    LAYER_TYPES = (TYPE_RECEIPT, TYPE_ADJUSTMENT, TYPE_TRANSFER_IN)

    QUALITY_AVAILABLE = 'available'
    QUALITY_QUARANTINE = 'quarantine'
    QUALITY_DAMAGED = 'damaged'
    QUALITY_EXPIRED = 'expired'
    QUALITY_STATUSES = (QUALITY_AVAILABLE, QUALITY_QUARANTINE, QUALITY_DAMAGED, QUALITY_EXPIRED)

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    receipt_line_id = db.Column(db.Integer, db.ForeignKey('item_receipt_line.id'), nullable=True)
    layer_type = db.Column(db.String(20), nullable=False, default=TYPE_RECEIPT)

    # Quantities
    quantity_received = db.Column(db.Integer, nullable=False)
    quantity_remaining = db.Column(db.Integer, nullable=False)

    # Costing
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    original_unit_cost = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    landed_cost_adjustment = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    last_cost_adjustment = db.Column(db.DateTime, nullable=True)
    revaluation_reason = db.Column(db.Text, nullable=True)

    # FIFO ordering key
    receipt_date = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now)

    # Put-away bin; void and quality moves hit this balance row
    bin_location = db.Column(db.String(50), nullable=True)

    quality_status = db.Column(db.String(20), nullable=False, default=QUALITY_AVAILABLE)

    # Provenance
    source_type = db.Column(db.String(50), nullable=True)
    source_reference = db.Column(db.String(100), nullable=True)
    transfer_reference = db.Column(db.String(100), nullable=True)

    # Voiding is terminal
    voided = db.Column(db.Boolean, nullable=False, default=False)
    void_reason = db.Column(db.Text, nullable=True)
    voided_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, nullable=False)

    item = db.relationship('Item')
    location = db.relationship('Location')
    receipt_line = db.relationship('ItemReceiptLine', backref=db.backref('cost_layer', uselist=False))

    __table_args__ = (
        db.CheckConstraint('quantity_remaining >= 0', name='check_layer_remaining_non_negative'),
        db.CheckConstraint('quantity_received > 0', name='check_layer_received_positive'),
        db.CheckConstraint('quantity_remaining <= quantity_received', name='check_layer_remaining_not_exceeds_received'),
        db.CheckConstraint('unit_cost >= 0', name='check_layer_unit_cost_non_negative'),
        db.Index('ix_cost_layer_fifo', 'item_id', 'location_id', 'receipt_date', 'id'),
    )

    def __repr__(self):
        return f'<CostLayer {self.id}: item={self.item_id} {self.quantity_remaining}/{self.quantity_received} @ {self.unit_cost}>'

    @property
    def is_consumable(self):
        return (
            not self.voided
            and self.quality_status == self.QUALITY_AVAILABLE
            and (self.quantity_remaining or 0) > 0
        )

    @property
    def is_depleted(self):
        return (self.quantity_remaining or 0) <= 0

    @property
    def total_value(self) -> Decimal:
        if self.voided:
            return Decimal('0')
        return Decimal(self.quantity_remaining or 0) * Decimal(self.unit_cost or 0)

    def consume(self, quantity: int) -> bool:
        """
        Draw quantity from this layer.
        Returns False without changing anything if the layer cannot supply it.
        """
        if quantity <= 0 or not self.is_consumable:
            return False
        if self.quantity_remaining < quantity:
            return False
        self.quantity_remaining -= quantity
        return True

    def credit_back(self, quantity: int) -> bool:
        """Return quantity to this layer (consumption reversal). Only available layers take stock back."""
        if quantity <= 0 or self.voided or self.quality_status != self.QUALITY_AVAILABLE:
            return False
        if self.quantity_remaining + quantity > self.quantity_received:
            return False
        self.quantity_remaining += quantity
        return True

    def apply_landed_cost(self, per_unit: Decimal) -> None:
        """Stack a per-unit landed cost onto the layer's unit cost."""
        self.landed_cost_adjustment = Decimal(self.landed_cost_adjustment or 0) + per_unit
        self.unit_cost = Decimal(self.unit_cost or 0) + per_unit
        self.last_cost_adjustment = TimezoneUtils.utc_now()
