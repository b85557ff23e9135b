from decimal import Decimal

from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .mixins import StatusWorkflowMixin, TimestampMixin


class PhysicalCount(StatusWorkflowMixin, TimestampMixin, db.Model):
    __tablename__ = 'physical_count'

    TYPE_FULL = 'full_physical'
    TYPE_CYCLE = 'cycle_count'
    TYPE_SPOT = 'spot_count'
    COUNT_TYPES = (TYPE_FULL, TYPE_CYCLE, TYPE_SPOT)

    STATUS_PLANNED = 'planned'
    STATUS_IN_PROGRESS = 'in_progress'
    STATUS_COMPLETED = 'completed'
    STATUS_ADJUSTMENT_CREATED = 'adjustment_created'
    STATUS_CANCELLED = 'cancelled'

    TRANSITIONS = {
        'start': ((STATUS_PLANNED,), STATUS_IN_PROGRESS),
        'complete': ((STATUS_PLANNED, STATUS_IN_PROGRESS), STATUS_COMPLETED),
        'adjust': ((STATUS_COMPLETED,), STATUS_ADJUSTMENT_CREATED),
        'cancel': ((STATUS_PLANNED, STATUS_IN_PROGRESS), STATUS_CANCELLED),
    }

    id = db.Column(db.Integer, primary_key=True)
    count_number = db.Column(db.String(32), nullable=False, unique=True)
    location_id = db.Column(db.Integer, db.ForeignKey('location.id'), nullable=False)
    count_type = db.Column(db.String(20), nullable=False, default=TYPE_FULL)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PLANNED)
    count_date = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now)
    completed_at = db.Column(db.DateTime, nullable=True)
    adjustment_id = db.Column(db.Integer, db.ForeignKey('inventory_adjustment.id'), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    location = db.relationship('Location')
    adjustment = db.relationship('InventoryAdjustment')
    lines = db.relationship(
        'PhysicalCountLine', backref='physical_count', order_by='PhysicalCountLine.id', cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<PhysicalCount {self.count_number} ({self.status})>'


class PhysicalCountLine(db.Model):
    __tablename__ = 'physical_count_line'

    STATUS_PENDING = 'pending'
    STATUS_COUNTED = 'counted'

    id = db.Column(db.Integer, primary_key=True)
    physical_count_id = db.Column(db.Integer, db.ForeignKey('physical_count.id'), nullable=False)
    item_id = db.Column(db.Integer, db.ForeignKey('item.id'), nullable=False)
    system_quantity = db.Column(db.Integer, nullable=False, default=0)
    counted_quantity = db.Column(db.Integer, nullable=True)
    variance_quantity = db.Column(db.Integer, nullable=True)
    variance_value = db.Column(db.Numeric(14, 4), nullable=True)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False, default=Decimal('0'))
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    counted_by = db.Column(db.String(100), nullable=True)
    counted_at = db.Column(db.DateTime, nullable=True)

    item = db.relationship('Item')

    @property
    def has_variance(self):
        return self.variance_quantity not in (None, 0)
