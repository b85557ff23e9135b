from decimal import Decimal

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .mixins import TimestampMixin


class ItemReceipt(TimestampMixin, db.Model):
    """Goods received at a location. Accepted quantities become cost layers."""

    __tablename__ = 'item_receipt'

    STATUS_RECEIVED = 'received'

    id = db.Column(db.Integer, primary_key=True)
    receipt_number = db.Column(db.String(32), nullable=False, unique=True)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    receipt_date = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now)
    status = db.Column(db.String(20), nullable=False, default=STATUS_RECEIVED)
    vendor_name = db.Column(db.String(255), nullable=True)
    purchase_order_reference = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    location = db.relationship('Location')
    lines = db.relationship(
        'ItemReceiptLine', backref='receipt', order_by='ItemReceiptLine.id', cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<ItemReceipt {self.receipt_number}>'


class ItemReceiptLine(db.Model):
    __tablename__ = 'item_receipt_line'

    id = db.Column(db.Integer, primary_key=True)
    receipt_id = db.Column(db.Integer, db.ForeignKey('item_receipt.id'), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    quantity_received = db.Column(db.Integer, nullable=False)
    quantity_accepted = db.Column(db.Integer, nullable=False, default=0)
    quantity_rejected = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    bin_location = db.Column(db.String(50), nullable=True)

    item = db.relationship('Item')

    __table_args__ = (
        db.CheckConstraint('quantity_received > 0', name='check_receipt_line_received_positive'),
        db.CheckConstraint(
            'quantity_accepted + quantity_rejected <= quantity_received',
            name='check_receipt_line_accepted_rejected',
        ),
    )

    @property
    def line_value(self) -> Decimal:
        return Decimal(self.unit_cost or 0) * Decimal(self.quantity_accepted or 0)
