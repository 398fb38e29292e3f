# Overview: Flask CLI command groups for bootstrap and tenant onboarding.

# backend/cargodesk/cli.py
# Commands Legend (run from the backend directory):
# - flask --app cargodesk system init [--operator "Demo Cargo"] [--code DMO]
#   Idempotent bootstrap: creates tables, a demo operator, a branch and an admin superuser.
# - flask --app cargodesk system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Operator management (MULTI-TENANT):
# - flask --app cargodesk operators list
# - flask --app cargodesk operators create --name "Acme Cargo" --code ACM --phone 9000000000
#
# Users:
# - flask --app cargodesk users create --operator-id 1 --full-name "Asha" --mobile 9000000001 --role admin
# - flask --app cargodesk users list [--operator-id 1]

import click
from flask.cli import with_appcontext

from .constants import ROLES, ROLE_ADMIN
from .errors import CargoError
from .extensions import db
from .models import Branch, Operator, User
from .services import auth_service, operator_service

DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--operator', 'operator_name', default='Demo Cargo', help='Operator name')
@click.option('--code', 'operator_code', default='DMO', help='Operator code (3 chars)')
@click.option('--mobile', default='9000000000', help='Admin login mobile')
@with_appcontext
def init_system(operator_name, operator_code, mobile):
    """
    Create tables plus a demo operator, head office branch and admin user.

    The admin is a superuser so it can onboard further operators.
    Password defaults to "Password123!"; change it immediately.
    """
    db.create_all()

    operator = db.session.query(Operator).filter_by(code=operator_code).first()
    if not operator:
        try:
            operator = operator_service.create_operator(
                {"name": operator_name, "code": operator_code, "phone": mobile}
            )
        except CargoError as e:
            db.session.rollback()
            raise click.ClickException(e.message)
        click.echo(f"PASS Created operator: {operator.name} (ID: {operator.id}, Code: {operator.code})")
    else:
        click.echo(f"PASS Using existing operator: {operator.name} (ID: {operator.id})")

    branch = db.session.query(Branch).filter_by(operator_id=operator.id).first()
    if not branch:
        branch = Branch(operator_id=operator.id, branch_code="HO", name="Head Office")
        db.session.add(branch)
        db.session.flush()
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")

    admin = db.session.query(User).filter_by(mobile=mobile).first()
    if not admin:
        admin = auth_service.create_user(
            operator_id=operator.id,
            full_name="Administrator",
            mobile=mobile,
            password=DEFAULT_PASSWORD,
            role=ROLE_ADMIN,
            branch_id=branch.id,
            is_superuser=True,
        )
        click.echo(f"PASS Created admin: {admin.mobile} / {DEFAULT_PASSWORD}")
    else:
        click.echo(f"PASS Using existing admin: {admin.mobile}")

    db.session.commit()


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """DANGER: Drop all tables and recreate schema."""
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset complete. Run 'flask system init' to initialize.")


@click.group('operators')
def operators_group():
    """Operator (tenant) management commands."""


@operators_group.command('list')
@with_appcontext
def list_operators():
    operators = db.session.query(Operator).order_by(Operator.id.asc()).all()
    if not operators:
        click.echo("No operators found.")
        return

    click.echo("\n" + "=" * 72)
    click.echo(f"{'ID':<5} {'Name':<30} {'Code':<6} {'Status':<10} {'Sequence'}")
    click.echo("=" * 72)
    for op in operators:
        click.echo(f"{op.id:<5} {op.name:<30} {op.code:<6} {op.status:<10} {op.booking_sequence}")
    click.echo("=" * 72 + "\n")


@operators_group.command('create')
@click.option('--name', required=True, help='Operator name')
@click.option('--code', required=True, help='3 alphanumeric chars, at least one uppercase')
@click.option('--phone', required=True, help='Contact phone')
@click.option('--address', default=None, help='Postal address')
@with_appcontext
def create_operator_cli(name, code, phone, address):
    """Onboard a new operator (tenant)."""
    try:
        operator = operator_service.create_operator(
            {"name": name, "code": code, "phone": phone, "address": address}
        )
        db.session.commit()
    except CargoError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Created operator: {operator.name} (ID: {operator.id}, Code: {operator.code})")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--operator-id', type=int, required=True, help='Operator ID')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--mobile', prompt=True, help='Login mobile number')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLES)), default='staff', help='Role')
@click.option('--superuser', is_flag=True, help='Allow onboarding operators')
@with_appcontext
def create_user_cli(operator_id, full_name, mobile, password, role, superuser):
    try:
        user = auth_service.create_user(
            operator_id=operator_id,
            full_name=full_name,
            mobile=mobile,
            password=password,
            role=role,
            is_superuser=superuser,
        )
        db.session.commit()
    except CargoError as e:
        db.session.rollback()
        raise click.ClickException(e.message)

    click.echo(f"PASS Created user {user.full_name} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@click.option('--operator-id', type=int, help='Filter by operator ID')
@with_appcontext
def list_users(operator_id):
    query = db.session.query(User)
    if operator_id:
        query = query.filter_by(operator_id=operator_id)
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Mobile':<15} {'Operator':<9} {'Role':<8} {'Status':<9} {'Balance'}")
    click.echo("=" * 90)
    for u in users:
        click.echo(
            f"{u.id:<5} {u.full_name:<25} {u.mobile:<15} {u.operator_id:<9} "
            f"{u.role:<8} {u.status:<9} {u.cargo_balance}"
        )
    click.echo("=" * 90 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(operators_group)
    app.cli.add_command(users_group)
