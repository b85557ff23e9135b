"""
Management commands for ledger maintenance
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import CostLayer, Item, Location
from .services import verify_ledger, void_layer
from .services.cost_layers import get_total_inventory_value


@click.command('verify-ledger')
@click.option('--item-id', type=int, default=None, help='Only check this item')
@with_appcontext
def verify_ledger_command(item_id):
    """Compare on-hand balances with cost layer remainders"""
    print("🔍 Verifying ledger...")
    mismatches = verify_ledger(item_id)
    if not mismatches:
        print("✅ Ledger is in sync")
        return

    for mismatch in mismatches:
        print(
            f"❌ Item {mismatch['item_id']} at location {mismatch['location_id']}: "
            f"on_hand={mismatch['on_hand']} layers={mismatch['layer_total']}"
        )
    print(f"❌ {len(mismatches)} mismatch(es) found")
    raise SystemExit(1)


@click.command('seed-default-location')
@with_appcontext
def seed_default_location_command():
    """Create the default location if it does not exist"""
    code = current_app.config.get('DEFAULT_LOCATION_CODE', 'DEFAULT')
    try:
        location = Location.query.filter_by(code=code).first()
        if location is not None:
            print(f"ℹ️  Default location {code} already exists (id={location.id})")
            return

        location = Location(code=code, name='Default location', is_active=True)
        db.session.add(location)
        db.session.commit()
        print(f"✅ Created default location {code} (id={location.id})")
    except Exception as e:
        db.session.rollback()
        print(f'❌ Error seeding default location: {str(e)}')
        raise


@click.command('inventory-valuation')
@click.option('--location-code', default=None, help='Restrict to one location')
@with_appcontext
def inventory_valuation_command(location_code):
    """Print remaining quantity and value per item from the cost layers"""
    location_id = None
    if location_code:
        location = Location.query.filter_by(code=location_code).first()
        if location is None:
            print(f"❌ Unknown location {location_code}")
            raise SystemExit(1)
        location_id = location.id

    query = db.session.query(CostLayer.item_id).filter(
        CostLayer.voided.is_(False), CostLayer.quantity_remaining > 0
    )
    if location_id is not None:
        query = query.filter(CostLayer.location_id == location_id)
    item_ids = sorted(row[0] for row in query.distinct().all())

    print(f"📊 Inventory valuation{f' for {location_code}' if location_code else ''}:")
    grand_total = 0
    for item_id in item_ids:
        item = db.session.get(Item, item_id)
        value = get_total_inventory_value(item_id, location_id)
        grand_total += value
        print(f"   - {item.sku}: {value}")
    print(f"   Total: {grand_total}")


@click.command('void-layer')
@click.argument('layer_id', type=int)
@click.option('--reason', required=True, help='Why the layer is being voided')
@with_appcontext
def void_layer_command(layer_id, reason):
    """Void a cost layer and remove its remainder from on-hand"""
    try:
        layer = void_layer(layer_id, reason)
        print(f"✅ Voided layer {layer.id} ({layer.quantity_remaining} units remaining at void)")
    except Exception as e:
        print(f'❌ Void failed: {str(e)}')
        raise


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(verify_ledger_command)
    app.cli.add_command(seed_default_location_command)
    app.cli.add_command(inventory_valuation_command)
    app.cli.add_command(void_layer_command)
