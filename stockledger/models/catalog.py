from ..extensions import db
from .mixins import TimestampMixin


class Item(TimestampMixin, db.Model):
    """A stock keeping item. Identity and active flag only; the ledger owns quantities."""

    __tablename__ = 'item'

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    # Per-unit weight, used by weight based landed cost allocation
    weight = db.Column(db.Numeric(12, 4), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<Item {self.id}: {self.sku}>'


class Location(TimestampMixin, db.Model):
    __tablename__ = 'location'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_transfer_source = db.Column(db.Boolean, nullable=False, default=True)
    is_transfer_destination = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self):
        return f'<Location {self.id}: {self.code}>'
