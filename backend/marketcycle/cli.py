# Overview: Flask CLI command groups for bootstrap, demo data, and cycle maintenance.

# backend/marketcycle/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Demo data:
# - python -m flask seed fixtures
#   Load the demo catalog, suppliers, markets, expired log and harvest plans.
#   Skips anything that already exists.
#
# Cycle maintenance:
# - python -m flask cycles list --supplier-id 1
#   List a supplier's cycles with product counts.
# - python -m flask cycles publish 3 --actor admin
#   Publish a cycle (needs at least one approved product).

from datetime import date

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import ExpiredProductEntry, HarvestPlan, Market, ReferenceProduct, Supplier
from .services import cycle_service, lifecycle_service, market_service
from .services.catalog_service import default_conversion_factor
from .services.transitions import InvalidStateError
from .validation import NotFoundError, ValidationError

DEMO_REFERENCE_PRODUCTS = [
    {"name": "Tomate Orgânico", "category": "Hortaliças", "unit": "kg", "reference_price_cents": 750},
    {"name": "Alface Hidropônica", "category": "Folhosas", "unit": "unit", "reference_price_cents": 150},
    {"name": "Cenoura Baby", "category": "Raízes", "unit": "kg", "reference_price_cents": 800},
    {"name": "Brócolis", "category": "Hortaliças", "unit": "unit", "reference_price_cents": 600},
]

DEMO_SUPPLIERS = ["João Silva", "Maria Santos", "Fazenda Verde", "Cooperativa Rural"]

DEMO_MARKETS = [
    {
        "name": "Mercado Central",
        "market_type": "basket",
        "administrator_id": 1,
        "administrative_fee_bps": 500,
        "delivery_points": ["Centro", "Zona Norte"],
        "products": ["Tomate Orgânico", "Alface Hidropônica", "Cenoura Baby"],
    },
    {
        "name": "Feira Livre",
        "market_type": "direct_sale",
        "administrator_id": 2,
        "delivery_points": ["Bairro Alto", "Vila Nova"],
        "products": ["Alface Hidropônica", "Brócolis"],
    },
]

DEMO_EXPIRED_ENTRIES = [
    {
        "product": "Tomate Orgânico", "quantity": 12, "unit": "kg", "expiry_date": date(2024, 1, 15),
        "cycle_type": "weekly", "cycle_ref": "Semana 3 - Janeiro", "action_taken": "withdrawn",
        "reason": "Vencimento próximo", "supplier": "João Silva", "original_value_cents": 5400,
    },
    {
        "product": "Alface Hidropônica", "quantity": 8, "unit": "unidades", "expiry_date": date(2024, 1, 12),
        "cycle_type": "biweekly", "cycle_ref": "Quinzena 1 - Janeiro", "action_taken": "discarded",
        "reason": "Deterioração", "supplier": "Maria Santos", "original_value_cents": 2240,
    },
    {
        "product": "Cenoura Baby", "quantity": 5, "unit": "kg", "expiry_date": date(2024, 1, 10),
        "cycle_type": "weekly", "cycle_ref": "Semana 2 - Janeiro", "action_taken": "donated",
        "reason": "Aparência comprometida", "supplier": "Fazenda Verde", "original_value_cents": 3100,
    },
    {
        "product": "Rúcula Orgânica", "quantity": 15, "unit": "maços", "expiry_date": date(2024, 1, 8),
        "cycle_type": "weekly", "cycle_ref": "Semana 1 - Janeiro", "action_taken": "composted",
        "reason": "Vencimento", "supplier": "Cooperativa Rural", "original_value_cents": 4200,
    },
]

DEMO_HARVEST_PLANS = [
    {"product": "Tomate Orgânico", "planting_date": date(2024, 3, 1), "harvest_date": date(2024, 6, 15),
     "estimated_kg": 120.0, "phase": "planting"},
    {"product": "Alface Hidropônica", "planting_date": date(2024, 4, 10), "harvest_date": date(2024, 5, 20),
     "estimated_kg": 40.0, "phase": "harvest"},
    {"product": "Cenoura Baby", "planting_date": date(2024, 7, 1), "harvest_date": date(2024, 9, 30),
     "estimated_kg": 80.0, "phase": "preparation"},
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables."""
    db.create_all()
    click.echo("PASS Tables created (existing tables untouched).")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask seed fixtures' to load demo data.")


@click.group('seed')
def seed_group():
    """Demo data."""


@seed_group.command('fixtures')
@with_appcontext
def seed_fixtures():
    """Load demo data. Idempotent: existing rows are skipped."""
    db.create_all()

    products_by_name = {}
    for data in DEMO_REFERENCE_PRODUCTS:
        product = db.session.query(ReferenceProduct).filter_by(name=data["name"], unit=data["unit"]).first()
        if product is None:
            product = ReferenceProduct(**data, is_active=True)
            db.session.add(product)
            click.echo(f"  + reference product {data['name']}")
        products_by_name[data["name"]] = product

    suppliers = []
    for name in DEMO_SUPPLIERS:
        supplier = db.session.query(Supplier).filter_by(name=name).first()
        if supplier is None:
            supplier = Supplier(name=name, is_active=True)
            db.session.add(supplier)
            click.echo(f"  + supplier {name}")
        suppliers.append(supplier)
    db.session.commit()

    for data in DEMO_MARKETS:
        if db.session.query(Market).filter_by(name=data["name"]).first() is not None:
            continue
        payload = {k: v for k, v in data.items() if k != "products"}
        payload["product_ids"] = [products_by_name[name].id for name in data["products"]]
        market_service.create_market(payload)
        click.echo(f"  + market {data['name']}")

    if db.session.query(ExpiredProductEntry).count() == 0:
        for data in DEMO_EXPIRED_ENTRIES:
            db.session.add(ExpiredProductEntry(**data))
        click.echo(f"  + {len(DEMO_EXPIRED_ENTRIES)} expired product entries")

    grower = suppliers[0]
    if db.session.query(HarvestPlan).filter_by(supplier_id=grower.id).count() == 0:
        for data in DEMO_HARVEST_PLANS:
            db.session.add(HarvestPlan(supplier_id=grower.id, **data))
        click.echo(f"  + {len(DEMO_HARVEST_PLANS)} harvest plans for {grower.name}")
    db.session.commit()

    # Current cycle with one draft per catalog entry for the first supplier
    cycle = cycle_service.find_current_cycle(grower.id)
    if cycle is None:
        cycle_data = cycle_service.get_or_create_current_cycle(grower.id, label="Semana 1")
        for product in products_by_name.values():
            cycle_service.upsert_product(
                cycle_data["id"],
                {
                    "reference_product_id": product.id,
                    "conversion_factor": default_conversion_factor(product.unit),
                },
                actor="seed",
            )
        click.echo(f"  + cycle {cycle_data['id']} with {len(products_by_name)} drafts")

    click.echo("PASS Demo data loaded.")


@click.group('cycles')
def cycles_group():
    """Cycle inspection and publication."""


@cycles_group.command('list')
@click.option('--supplier-id', type=int, required=True, help='Supplier ID')
@with_appcontext
def list_cycles_cli(supplier_id):
    try:
        cycles = cycle_service.list_cycles(supplier_id)
    except NotFoundError as e:
        raise click.ClickException(str(e))

    if not cycles:
        click.echo("No cycles.")
        return

    click.echo(f"{'ID':<6} {'Label':<20} {'Published':<10} {'Products':<8}")
    click.echo("-" * 48)
    for c in cycles:
        count = cycle_service.get_cycle(c["id"])["product_count"]
        click.echo(f"{c['id']:<6} {(c['label'] or '-'):<20} {('yes' if c['is_published'] else 'no'):<10} {count:<8}")


@cycles_group.command('publish')
@click.argument('cycle_id', type=int)
@click.option('--actor', default='cli', help='Identity recorded as publisher')
@with_appcontext
def publish_cycle_cli(cycle_id, actor):
    try:
        count = lifecycle_service.publish_cycle(cycle_id, actor=actor)
    except (NotFoundError, InvalidStateError, ValidationError) as e:
        db.session.rollback()
        raise click.ClickException(str(e))

    click.echo(f"PASS Cycle {cycle_id} published with {count} approved products.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(seed_group)
    app.cli.add_command(cycles_group)
