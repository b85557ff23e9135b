"""
Pytest configuration and shared fixtures for stockledger tests.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Item, Location


BASE_DATE = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


@pytest.fixture(scope='function')
def app():
    """Create a fresh app on a temporary SQLite file and keep its context pushed for the test."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f'sqlite:///{db_path}',
        'LOG_LEVEL': 'INFO',
    })

    with app.app_context():
        db.create_all()
        _create_test_data()
        yield app
        db.session.remove()
        db.drop_all()

    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def default_location(app):
    return Location.query.filter_by(code='DEFAULT').one()


@pytest.fixture
def warehouse(app):
    return Location.query.filter_by(code='WH-EAST').one()


@pytest.fixture
def widget(app):
    return Item.query.filter_by(sku='WIDGET').one()


@pytest.fixture
def gadget(app):
    return Item.query.filter_by(sku='GADGET').one()


@pytest.fixture
def stock(app):
    """Receive quantity into a location as its own receipt and return the created layer."""
    from stockledger.services import receive_inventory

    def _stock(item, quantity, unit_cost, location=None, days=0, bin_location=None):
        receipt = receive_inventory(
            location.id if location is not None else None,
            [{
                'item_id': item.id,
                'quantity_received': quantity,
                'unit_cost': unit_cost,
                'bin_location': bin_location,
            }],
            receipt_date=BASE_DATE + timedelta(days=days),
        )
        return receipt.lines[0].cost_layer

    return _stock


def _create_test_data():
    """Locations and items shared by every test"""
    db.session.add_all([
        Location(code='DEFAULT', name='Default location'),
        Location(code='WH-EAST', name='East warehouse'),
        Location(code='CLOSED', name='Closed store', is_active=False),
        Location(code='RECEIVE-ONLY', name='Receiving dock', is_transfer_source=False),
        Item(sku='WIDGET', name='Widget', weight=2),
        Item(sku='GADGET', name='Gadget', weight=3),
        Item(sku='GIZMO', name='Gizmo'),
    ])
    db.session.commit()
