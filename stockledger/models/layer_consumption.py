from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils


class LayerConsumption(db.Model):
    """
    Append-only record of one draw against one cost layer.

    A reversal is a new row with negated quantity and cost whose
    ``reversal_of_id`` points at the original; the original then carries
    ``reversed_by_id``. Summing ``quantity_consumed`` over a layer gives its
    net draw.
    """
    __tablename__ = 'layer_consumption'

    id = db.Column(db.Integer, primary_key=True)
    cost_layer_id = db.Column(db.Integer, db.ForeignKey('cost_layer.id'), nullable=False)
    transaction_type = db.Column(db.String(32), nullable=False)
    transaction_id = db.Column(db.Integer, nullable=False)
    quantity_consumed = db.Column(db.Integer, nullable=False)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False)
    total_cost = db.Column(db.Numeric(14, 4), nullable=False)
    transaction_date = db.Column(db.DateTime, nullable=False, default=TimezoneUtils.utc_now)

    reversal_of_id = db.Column(db.Integer, db.ForeignKey('layer_consumption.id'), nullable=True, unique=True)
    reversed_by_id = db.Column(db.Integer, db.ForeignKey('layer_consumption.id'), nullable=True, unique=True)
    reversal_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=TimezoneUtils.utc_now, nullable=False)

    cost_layer = db.relationship('CostLayer', backref=db.backref('consumptions', lazy='dynamic'))
    reversal_of = db.relationship(
        'LayerConsumption', foreign_keys=[reversal_of_id], remote_side=[id]
    )
    reversed_by = db.relationship(
        'LayerConsumption', foreign_keys=[reversed_by_id], remote_side=[id]
    )

    __table_args__ = (
        db.CheckConstraint(
            '(reversal_of_id IS NULL AND quantity_consumed > 0) OR '
            '(reversal_of_id IS NOT NULL AND quantity_consumed < 0)',
            name='check_consumption_quantity_sign',
        ),
        db.CheckConstraint(
            'reversal_of_id IS NULL OR reversed_by_id IS NULL',
            name='check_consumption_reversal_exclusive',
        ),
        db.Index('ix_layer_consumption_layer_date', 'cost_layer_id', 'transaction_date'),
        db.Index('ix_layer_consumption_transaction', 'transaction_type', 'transaction_id'),
    )

    def __repr__(self):
        return f'<LayerConsumption {self.id}: layer={self.cost_layer_id} qty={self.quantity_consumed}>'

    @property
    def is_reversal(self):
        return self.reversal_of_id is not None

    @property
    def is_reversed(self):
        return self.reversed_by_id is not None

    @property
    def transaction_ref(self):
        from ..services.cost_layers._types import TransactionRef

        return TransactionRef.of(self.transaction_type, self.transaction_id)
