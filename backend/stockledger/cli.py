# Overview: Flask CLI command groups for database bootstrap and ledger maintenance.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app wsgi <group> <command> [options]
#
# System bootstrap:
# - flask --app wsgi system init-db
#   Create all tables (idempotent).
# - flask --app wsgi system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger maintenance:
# - flask --app wsgi ledger repair-returns [--dry-run]
#   Append the linked stock transition for every completed return missing one.
# - flask --app wsgi ledger show --product-id 1 --limit 20
#   Print the most recent transitions.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import ledger_service, return_service


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm destructive reset.')
@with_appcontext
def reset_db_command(yes: bool):
    """Drop and recreate all tables (DEV/TEST only)."""
    if not yes:
        raise click.UsageError("Refusing to reset without --yes")
    db.drop_all()
    db.create_all()
    click.echo("Database reset complete.")


@click.group('ledger')
def ledger_group():
    """Stock ledger inspection and repair."""


@ledger_group.command('repair-returns')
@click.option('--dry-run', is_flag=True, help='Only list returns missing a ledger row.')
@with_appcontext
def repair_returns_command(dry_run: bool):
    """Write missing stock transitions for completed returns."""
    result = return_service.reconcile_missing_return_transitions(dry_run=dry_run)

    if not result["missing"]:
        click.echo("No returns are missing stock transitions.")
        return

    click.echo(f"Returns missing stock transitions: {', '.join(map(str, result['missing']))}")
    if dry_run:
        return

    click.echo(f"Repaired: {len(result['repaired'])}")
    if result["failed"]:
        click.echo(f"Failed: {', '.join(map(str, result['failed']))}", err=True)
        raise SystemExit(1)


@ledger_group.command('show')
@click.option('--product-id', type=int, default=None)
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def show_ledger_command(product_id: int | None, limit: int):
    """Print the most recent stock transitions."""
    result = ledger_service.list_transitions(page=1, limit=max(1, limit), product_id=product_id)
    for t in result["transitions"]:
        click.echo(
            f"{t['created_at']}  #{t['id']:<6} {t['transaction_type']:<16} "
            f"{t['product_name']} ({t['product_id']}): {t['previous_stock']} -> {t['new_stock']}"
            f"  by {t['user_name']}"
        )
    click.echo(f"{result['pagination']['total']} transition(s) total")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
