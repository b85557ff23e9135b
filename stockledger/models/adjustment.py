from decimal import Decimal

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .mixins import StatusWorkflowMixin, TimestampMixin


class InventoryAdjustment(StatusWorkflowMixin, TimestampMixin, db.Model):
    """
    Quantity or value correction at one location.
    Draft -> posted, optionally through approved first. Unposted adjustments can be discarded to void.
    Posted adjustments are undone only by a reversing adjustment.
    """
    __tablename__ = 'inventory_adjustment'

    TYPE_QUANTITY = 'quantity_adjustment'
    TYPE_COST_REVALUATION = 'cost_revaluation'
    TYPE_WRITE_DOWN = 'write_down'
    TYPE_PHYSICAL_COUNT = 'physical_count'
    ADJUSTMENT_TYPES = (TYPE_QUANTITY, TYPE_COST_REVALUATION, TYPE_WRITE_DOWN, TYPE_PHYSICAL_COUNT)

    STATUS_DRAFT = 'draft'
    STATUS_APPROVED = 'approved'
    STATUS_POSTED = 'posted'
    STATUS_VOID = 'void'

    TRANSITIONS = {
        'approve': ((STATUS_DRAFT,), STATUS_APPROVED),
        'post': ((STATUS_DRAFT, STATUS_APPROVED), STATUS_POSTED),
        'discard': ((STATUS_DRAFT, STATUS_APPROVED), STATUS_VOID),
    }

    id = db.Column(db.Integer, primary_key=True)
    adjustment_number = db.Column(db.String(32), nullable=False, unique=True)
    adjustment_type = db.Column(db.String(30), nullable=False, default=TYPE_QUANTITY)
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    reason_code = db.Column(db.String(50), nullable=False)
    memo = db.Column(db.Text, nullable=True)
    reference_number = db.Column(db.String(50), nullable=True)
    adjustment_date = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now)
    approved_at = db.Column(db.DateTime, nullable=True)
    approved_by = db.Column(db.String(100), nullable=True)
    posted_at = db.Column(db.DateTime, nullable=True)
    total_value_change = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    reversal_of_id = db.Column(
        db.Integer, db.ForeignKey('inventory_adjustment.id'), nullable=True, unique=True
    )

    location = db.relationship('Location')
    lines = db.relationship(
        'InventoryAdjustmentLine',
        backref='adjustment',
        order_by='InventoryAdjustmentLine.id',
        cascade='all, delete-orphan',
    )
    reversal_of = db.relationship(
        'InventoryAdjustment',
        remote_side=[id],
        backref=db.backref('reversed_by', uselist=False),
    )

    def __repr__(self):
        return f'<InventoryAdjustment {self.adjustment_number} ({self.status})>'

    @property
    def is_posted(self):
        return self.status == self.STATUS_POSTED


class InventoryAdjustmentLine(db.Model):
    __tablename__ = 'inventory_adjustment_line'

    LINE_QUANTITY = 'quantity'
    LINE_VALUE = 'value'

    id = db.Column(db.Integer, primary_key=True)
    adjustment_id = db.Column(db.Integer, db.ForeignKey('inventory_adjustment.id'), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    line_type = db.Column(db.String(20), nullable=False, default=LINE_QUANTITY)
    quantity_change = db.Column(db.Integer, nullable=False, default=0)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=True)
    current_unit_cost = db.Column(db.Numeric(14, 4), nullable=True)
    new_unit_cost = db.Column(db.Numeric(14, 4), nullable=True)
    total_cost_impact = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    cost_layer_id = db.Column(db.Integer, db.ForeignKey('cost_layer.id'), nullable=True)
    bin_location = db.Column(db.String(50), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    item = db.relationship('Item')
    cost_layer = db.relationship('CostLayer')

    @property
    def is_increase(self):
        return self.line_type == self.LINE_QUANTITY and (self.quantity_change or 0) > 0

    @property
    def is_decrease(self):
        return self.line_type == self.LINE_QUANTITY and (self.quantity_change or 0) < 0
