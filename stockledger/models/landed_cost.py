from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class LandedCost(db.Model):
    """Freight, duty or similar cost spread over the layers of one receipt."""

    __tablename__ = 'landed_cost'

    METHOD_VALUE = 'value'
    METHOD_QUANTITY = 'quantity'
    METHOD_WEIGHT = 'weight'
    METHODS = (METHOD_VALUE, METHOD_QUANTITY, METHOD_WEIGHT)

    id = db.Column(db.Integer, primary_key=True)
    landed_cost_number = db.Column(db.String(32), nullable=False, unique=True)
    receipt_id = db.Column(db.Integer, db.ForeignKey('item_receipt.id'), nullable=False)
    cost_category = db.Column(db.String(50), nullable=False)
    total_cost = db.Column(db.Numeric(14, 4), nullable=False)
    allocation_method = db.Column(db.String(20), nullable=False)
    applied_method = db.Column(db.String(20), nullable=False)
    reference = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    applied_at = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now)

    receipt = db.relationship('ItemReceipt', backref=db.backref('landed_costs', lazy='dynamic'))
    allocations = db.relationship(
        'LandedCostAllocation',
        backref='landed_cost',
        order_by='LandedCostAllocation.id',
        cascade='all, delete-orphan',
    )

    __table_args__ = (
        db.CheckConstraint('total_cost > 0', name='check_landed_cost_total_positive'),
    )

    def __repr__(self):
        return f'<LandedCost {self.landed_cost_number}: {self.total_cost} by {self.applied_method}>'


class LandedCostAllocation(db.Model):
    __tablename__ = 'landed_cost_allocation'

    id = db.Column(db.Integer, primary_key=True)
    landed_cost_id = db.Column(db.Integer, db.ForeignKey('landed_cost.id'), nullable=False)
    receipt_line_id = db.Column(db.Integer, db.ForeignKey('item_receipt_line.id'), nullable=False)
    cost_layer_id = db.Column(db.Integer, db.ForeignKey('cost_layer.id'), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    allocated_amount = db.Column(db.Numeric(14, 4), nullable=False)
    percentage = db.Column(db.Numeric(9, 4), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    original_unit_cost = db.Column(db.Numeric(14, 4), nullable=False)
    adjusted_unit_cost = db.Column(db.Numeric(14, 4), nullable=False)

    receipt_line = db.relationship('ItemReceiptLine')
    cost_layer = db.relationship('CostLayer')
