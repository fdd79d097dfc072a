# Overview: Flask CLI command groups for bootstrap and inventory maintenance.

# backend/salonpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to salonpos (PowerShell: $env:FLASK_APP="salonpos").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Idempotent: roles, service/product categories with their rates, expense categories.
#
# Inventory maintenance:
# - python -m flask inventory reconcile [--item-id 12]
#   Replay record history and overwrite stock + average cost (one item or all).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Category, ExpenseCategory, Role
from .money import quantize_rate


DEFAULT_ROLES = [
    ("Hairdresser", "Professional hair stylist who can perform haircuts, styling, coloring, and treatments"),
    ("Nail Technician", "Professional nail technician who can perform manicures, pedicures, and nail art"),
    ("Salon Owner", "Salon owner with full access to all services and management functions"),
    ("Receptionist", "Front desk staff who can handle appointments and basic customer service"),
    ("Laser Technician", "Certified laser technician for hair removal and skin treatments"),
]

# (name, commission_rate, salon_owner_rate, tracks_stock, roles allowed to sell, description)
DEFAULT_CATEGORIES = [
    ("Hair Services", 70, 30, False, ("Hairdresser", "Salon Owner"),
     "All hair services: haircut, styling, coloring, treatments, etc."),
    ("Hair Extensions", 80, 20, False, ("Hairdresser", "Salon Owner"),
     "All types of hair extensions: sales, refill, or rent"),
    ("Hair Products & Accessories", 95, 5, True, ("Hairdresser", "Salon Owner"),
     "Shampoo, conditioners, hair masks, serums, accessories, etc."),
    ("Nail Services", 0, 100, False, ("Nail Technician", "Salon Owner"),
     "All nail services: manicure, pedicure, nail art, etc."),
    ("Nail Products", 0, 100, True, ("Nail Technician", "Salon Owner"),
     "Nail polish, nail art supplies, nail care products, etc."),
    ("Face Treatments", 0, 100, False, ("Salon Owner",),
     "Face masks, facial treatments, skincare services, etc."),
    ("Laser Services", 50, 50, False, ("Laser Technician", "Salon Owner"),
     "Laser hair removal, skin treatments, and related services"),
]

DEFAULT_EXPENSE_CATEGORIES = [
    ("Rent", "Monthly rent payments"),
    ("Utilities", "Electricity, gas, water bills"),
    ("Insurance", "Business insurance, liability insurance"),
    ("Marketing", "Advertising, promotions, social media"),
    ("Equipment", "Equipment purchases and maintenance"),
    ("Supplies", "General supplies, cleaning products"),
    ("Professional Services", "Legal, accounting, consulting"),
    ("Training", "Employee training, courses, certifications"),
    ("Other", "Miscellaneous business expenses"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask system seed' to load reference data.")


def seed_reference_data() -> dict:
    """
    Create the salon's roles, categories and expense categories.

    Safe to rerun: rows are matched by name and existing ones are left as
    they are, so rates edited after the first seed are not overwritten.
    """
    created_counts = {"roles": 0, "categories": 0, "expense_categories": 0}

    roles_by_name = {}
    for name, description in DEFAULT_ROLES:
        role = db.session.query(Role).filter_by(name=name).first()
        if not role:
            role = Role(name=name, description=description)
            db.session.add(role)
            created_counts["roles"] += 1
        roles_by_name[name] = role
    db.session.flush()

    for name, commission, owner, tracks_stock, role_names, description in DEFAULT_CATEGORIES:
        if db.session.query(Category).filter_by(name=name).first():
            continue
        db.session.add(Category(
            name=name,
            description=description,
            commission_rate=quantize_rate(commission),
            salon_owner_rate=quantize_rate(owner),
            tracks_stock=tracks_stock,
            roles=[roles_by_name[r] for r in role_names],
        ))
        created_counts["categories"] += 1

    for name, description in DEFAULT_EXPENSE_CATEGORIES:
        if db.session.query(ExpenseCategory).filter_by(name=name).first():
            continue
        db.session.add(ExpenseCategory(name=name, description=description))
        created_counts["expense_categories"] += 1

    db.session.commit()
    return created_counts


@system_group.command('seed')
@with_appcontext
def seed():
    """Seed reference data (roles, categories, expense categories). Idempotent."""
    counts = seed_reference_data()
    for key, value in counts.items():
        click.echo(f"PASS {key}: {value} created")


# =============================================================================
# INVENTORY MAINTENANCE COMMANDS
# =============================================================================

@click.group('inventory')
def inventory_group():
    """Inventory ledger maintenance commands."""


@inventory_group.command('reconcile')
@click.option('--item-id', type=int, help='Reconcile a single item (default: every stock-tracked item)')
@with_appcontext
def reconcile(item_id):
    """Rebuild stock and average cost from the inventory record history."""
    from .services.inventory_service import reconcile_all, reconcile_item
    from .validation import InvalidOperationError, NotFoundError

    if item_id is not None:
        try:
            results = {item_id: reconcile_item(item_id)}
        except (NotFoundError, InvalidOperationError) as e:
            raise click.ClickException(str(e))
    else:
        results = reconcile_all()

    if not results:
        click.echo("No stock-tracked items found.")
        return

    click.echo(f"{'Item':<8} {'Stock':>8} {'Average cost':>14}")
    for reconciled_id, snapshot in results.items():
        click.echo(f"{reconciled_id:<8} {snapshot.stock:>8} {str(snapshot.average_cost):>14}")
    click.echo(f"PASS Reconciled {len(results)} item(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
