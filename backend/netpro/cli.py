# Overview: Flask CLI command groups for bootstrap and user inspection.

# backend/netpro/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-username admin --admin-email admin@netpro.local --admin-password "Password123"]
#   Idempotent bootstrap: creates tables and the initial admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username jane --email jane@netpro.local --password "Password123" --role user
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import ROLES, ROLE_ADMIN
from .services import user_service
from .services.auth_service import PasswordValidationError
from .validation import ConflictError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-username', default='admin', help='Initial admin username')
@click.option('--admin-email', default='admin@netpro.local', help='Initial admin email')
@click.option('--admin-password', default='Password123', help='Initial admin password')
@with_appcontext
def init_system(admin_username, admin_email, admin_password):
    """
    Initialize NETPRO: create tables and an admin user.

    Safe to run repeatedly; an existing admin username is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing NETPRO...")
    db.create_all()
    click.echo("PASS Tables ready")

    existing = db.session.query(User).filter_by(username=admin_username).first()
    if existing:
        click.echo(f"WARN  User '{admin_username}' already exists, skipping...")
        return

    try:
        user = user_service.create_user({
            "username": admin_username,
            "email": admin_email,
            "password": admin_password,
            "role": ROLE_ADMIN,
        })
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        click.echo(f"FAIL Failed to create admin '{admin_username}': {e}")
        return

    click.echo(f"PASS Created admin: {user.username} ({user.email})")
    click.echo("\nSECURITY Change the admin password immediately in production!")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USER COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, role):
    """
    Create a new user.

    Password must be at least 8 characters with a letter and a digit.
    Admins get every permission; plain users start with none.
    """
    try:
        user = user_service.create_user(
            {"username": username, "email": email, "password": password, "role": role}
        )
    except (PasswordValidationError, ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{user.role}'")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
