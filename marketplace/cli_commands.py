"""
Flask CLI commands for marketplace maintenance.

Commands:
- flask set-all-in-stock: Mark every product active and in stock
- flask create-admin: Create a new admin user
"""

import click
import re
from flask import current_app
from marketplace.database import get_session
from marketplace.exceptions import MarketplaceError
from marketplace.models import AdminUser
from marketplace.services import catalog_service


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('set-all-in-stock')
    @click.option('--inventory', type=int, default=None, help='Inventory to set on every variant')
    def set_all_in_stock(inventory):
        """Mark all products active and in stock and reset variant inventory."""
        if inventory is None:
            inventory = current_app.config['DEFAULT_RESTOCK_INVENTORY']

        try:
            counts = catalog_service.set_all_in_stock(get_session(), inventory)
        except MarketplaceError as e:
            raise click.ClickException(e.message)

        click.echo(f"Updated {counts['products_updated']} products to be in stock and active.")
        click.echo(f"Updated {counts['variants_updated']} product variants with inventory = {inventory}.")

    @app.cli.command('create-admin')
    @click.option('--email', prompt=True, help='Admin email address')
    @click.option('--name', default=None, help='Display name')
    def create_admin(email, name):
        """Create a new admin user."""
        db_session = get_session()

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, email):
            raise click.ClickException('Invalid email. Use the format user@example.com')

        existing_admin = db_session.query(AdminUser).filter_by(email=email).first()
        if existing_admin:
            raise click.ClickException(f'An admin with email {email} already exists')

        admin = AdminUser(email=email, name=name)
        try:
            db_session.add(admin)
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

        click.echo(click.style('Admin created', fg='green', bold=True))
        click.echo(f'   Email: {email}')
        click.echo(f'   ID: {admin.id}')
