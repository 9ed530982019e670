# Overview: Flask CLI command groups for bootstrap, operators, and onboarding inspection.

# backend/onboarding/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--org "Platform Operations"] [--org-code OPS]
#   Idempotent: creates tables, the operator organization, and admin/agent/viewer users.
#
# Operators:
# - python -m flask users list
# - python -m flask users create --username jane --email jane@ops.local --password "Password123!" --role agent
#
# Onboarding inspection:
# - python -m flask onboarding list [--status WAITING_DOCS]
# - python -m flask onboarding show 12
#   Request summary, activation checklist and the latest timeline entries.
# - python -m flask onboarding activate 12 [--force]

import click
from flask.cli import with_appcontext

from .errors import ActivationBlocked, OnboardingError
from .extensions import db
from .models import Organization, RequestStatus, User
from .permissions import VALID_ROLES
from .services import timeline_service, workflow_service
from .services.auth_service import create_operator, PasswordValidationError


DEFAULT_OPERATOR_ORG_CODE = "OPS"


def _operator_org(code: str = DEFAULT_OPERATOR_ORG_CODE) -> Organization | None:
    return db.session.query(Organization).filter_by(code=code).first()


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--org', 'org_name', default='Platform Operations', help='Operator organization name')
@click.option('--org-code', default=DEFAULT_OPERATOR_ORG_CODE, help='Operator organization code')
@with_appcontext
def init_system(org_name, org_code):
    """
    Initialize the onboarding console: tables, operator organization, default operators.

    Default operators: admin, agent, viewer, all with password "Password123!".
    Change them immediately outside development.
    """
    click.echo("START Initializing onboarding console...")
    db.create_all()

    org = _operator_org(org_code)
    if not org:
        org = Organization(name=org_name, code=org_code, is_active=True)
        db.session.add(org)
        db.session.commit()
        click.echo(f"PASS Created operator organization: {org.name} (ID: {org.id}, Code: {org.code})")
    else:
        click.echo(f"PASS Using existing operator organization: {org.name} (ID: {org.id})")

    default_password = "Password123!"
    for role in VALID_ROLES:
        username = role
        existing = db.session.query(User).filter_by(org_id=org.id, username=username).first()
        if existing:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_operator(username, f"{username}@ops.local", default_password, org.id, role=role)
            click.echo(f"PASS Created user: {username} with role '{role}'")
        except (PasswordValidationError, ValueError) as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{username}': {e}")

    click.echo("\nDONE Onboarding console initialized")
    click.echo("Default credentials (CHANGE IN PRODUCTION!): admin / agent / viewer -> Password123!")


@click.group('users')
def users_group():
    """Operator account commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<8} {'Org':<5} {'Active'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<8} {user.org_id:<5} {'Yes' if user.is_active else 'No'}")


@users_group.command('create')
@click.option('--org-id', type=int, help='Organization ID (operator organization if omitted)')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(VALID_ROLES)), default='agent', show_default=True)
@click.option('--display-name', default=None, help='Name shown on timelines')
@with_appcontext
def create_user_cli(org_id, username, email, password, role, display_name):
    """Create an operator account."""
    if org_id is None:
        org = _operator_org()
        if not org:
            click.echo("FAIL No operator organization found. Run 'python -m flask system init' first.")
            return
        org_id = org.id

    try:
        user = create_operator(username, email, password, org_id, role=role, display_name=display_name)
    except (PasswordValidationError, ValueError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")
        return
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group('onboarding')
def onboarding_group():
    """Onboarding request inspection and activation."""


@onboarding_group.command('list')
@click.option('--status', 'status_name', default=None, help='Filter by status name')
@click.option('--limit', default=50, show_default=True)
@with_appcontext
def list_requests_cli(status_name, limit):
    try:
        statuses = [RequestStatus.parse(status_name, field="status")] if status_name else None
    except OnboardingError as e:
        raise click.BadParameter(str(e), param_hint="--status")

    rows, total = workflow_service.list_requests(statuses=statuses, limit=limit)
    if not rows:
        click.echo("No onboarding requests found.")
        return

    click.echo(f"{'ID':<6} {'Business':<30} {'Type':<14} {'Status':<13} {'Docs':<9} {'Devices':<9} {'Shipping':<11} {'Age'}")
    for req in rows:
        row = workflow_service.summarize(req)
        click.echo(
            f"{req.id:<6} {req.business_name[:30]:<30} {req.request_type.name:<14} {req.status.name:<13} "
            f"{row['docs_badge']:<9} {row['devices_badge']:<9} {row['shipping_badge']:<11} {row['age']}"
        )
    click.echo(f"\n{len(rows)} of {total} request(s)")


@onboarding_group.command('show')
@click.argument('request_id', type=int)
@with_appcontext
def show_request_cli(request_id):
    try:
        detail = workflow_service.request_detail(request_id)
        events = timeline_service.list_events(request_id, limit=10)
    except OnboardingError as e:
        raise click.ClickException(str(e))

    click.echo(f"Request {detail['id']}: {detail['business_name']} [{detail['status']}]")
    click.echo(f"  Type: {detail['request_type_label']} / {detail['business_type_label']}")
    click.echo(f"  Account: {detail['organization_id'] or '-'}")
    click.echo(f"  Locations: {len(detail['locations'])}  Documents: {detail['docs_badge']}  "
               f"Devices: {detail['devices_badge']}  Shipping: {detail['shipping_badge']}")

    activation = detail["activation"]
    if activation["issues"]:
        click.echo("\nActivation checklist:")
        for issue in activation["issues"]:
            click.echo(f"  [ ] {issue['message']}")
    else:
        click.echo("\nActivation checklist: complete")

    click.echo("\nTimeline:")
    for ev in events:
        click.echo(f"  {ev.created_at:%Y-%m-%d %H:%M}  {ev.event_type.name:<16} {ev.actor_label or '-'}: {ev.message}")


@onboarding_group.command('activate')
@click.argument('request_id', type=int)
@click.option('--force', is_flag=True, help='Activate even when guards fail')
@with_appcontext
def activate_request_cli(request_id, force):
    try:
        result = workflow_service.evaluate_activation(request_id, force=force)
    except ActivationBlocked as e:
        click.echo(f"FAIL {e}")
        for issue in e.issues:
            click.echo(f"  - {issue['message']}")
        raise SystemExit(1)
    except OnboardingError as e:
        raise click.ClickException(str(e))

    if result.already_active:
        click.echo(f"PASS Request {request_id} was already active")
    elif result.forced:
        click.echo(f"WARN  Request {request_id} force-activated past {len(result.bypassed_issues)} unmet condition(s)")
    else:
        click.echo(f"PASS Request {request_id} activated")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(onboarding_group)
