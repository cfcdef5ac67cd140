# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/app/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, roles (OWNER, PEGAWAI) and the seed owner.
# - python -m flask system init-roles
#   Create default roles only.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with roles and active status.
# - python -m flask users create --username kasir --email kasir@example.com --password "Password123!" --role PEGAWAI
#   Create a user (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.
# - python -m flask maintenance cleanup-sessions
#   Delete revoked and expired session tokens.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Role
from .models.auth import ROLE_OWNER, ROLE_NAMES
from .services.auth_service import create_user, create_default_roles, PasswordValidationError
from .services import maintenance_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--skip-create-all', is_flag=True, help='Assume migrations already created the schema')
@with_appcontext
def init_system(skip_create_all):
    """
    Initialize the system: schema, roles and the seed owner account.

    The seed owner comes from SEED_OWNER_USERNAME / SEED_OWNER_EMAIL /
    SEED_OWNER_PASSWORD. Change the password immediately in production!
    """
    click.echo("START Initializing system...")

    if not skip_create_all:
        db.create_all()
        click.echo("PASS Schema ready")

    create_default_roles()
    click.echo(f"PASS Roles: {', '.join(ROLE_NAMES)}")

    cfg = current_app.config
    username = cfg["SEED_OWNER_USERNAME"]
    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        click.echo(f"PASS Using existing owner: {existing.username} (ID: {existing.id})")
    else:
        try:
            owner = create_user(
                username=username,
                email=cfg["SEED_OWNER_EMAIL"],
                password=cfg["SEED_OWNER_PASSWORD"],
                name="Owner",
                role=ROLE_OWNER,
            )
        except (PasswordValidationError, ValueError) as e:
            click.echo(f"FAIL Could not create seed owner: {e}")
            return
        click.echo(f"PASS Created owner: {owner.username} ({owner.email})")
        click.echo("SECURITY Change the seed owner password after first login")

    click.echo("DONE System initialized.")


@system_group.command('init-roles')
@with_appcontext
def init_roles():
    """Create default roles (OWNER, PEGAWAI)."""
    click.echo("LIST Creating default roles...")
    create_default_roles()
    roles = db.session.query(Role).order_by(Role.id).all()
    click.echo(f"PASS Roles present: {', '.join(r.name for r in roles)}")


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


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--name', default=None, help='Display name')
@click.option('--role', type=click.Choice(list(ROLE_NAMES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, email, password, name, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    create_default_roles()
    try:
        user = create_user(username=username, email=email, password=password, name=name, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except ValueError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.username} ({user.email}) with role '{role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = db.session.query(User).order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Roles'}")
    click.echo("="*90)

    for user in users:
        roles_str = ", ".join(user.role_names) or "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {active_str:<8} {roles_str}")

    click.echo("="*90 + "\n")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions_cli():
    """Delete revoked and expired session tokens."""
    deleted = maintenance_service.cleanup_session_tokens()
    click.echo(f"Deleted {deleted} session tokens.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
