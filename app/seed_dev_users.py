"""
Seed script — create development users for local testing.

Registers a ``flask seed-dev-users`` CLI command that creates the
``admin`` and ``viewer`` roles and one active user for each.  These
users are used with the ``/auth/dev-login`` bypass route so the API
can be exercised without the hosted sign-in.

Usage::

    flask seed-dev-users                        # Create with defaults
    flask seed-dev-users --domain example.org   # Custom email domain
"""

import click
from flask.cli import with_appcontext

from app.extensions import db
from app.models.user import ADMIN_ROLE, VIEWER_ROLE, Role, User

# role name -> (description, first name, last name)
_DEV_USERS = {
    ADMIN_ROLE: ("Edits are saved to the data service", "Dev", "Admin"),
    VIEWER_ROLE: ("Edits stay in the local session only", "Dev", "Viewer"),
}


def seed_dev_users(domain: str = "localhost") -> list[User]:
    """
    Create (or reactivate) the dev roles and users.

    Returns:
        The admin and viewer users, in that order.
    """
    users = []
    for role_name, (description, first_name, last_name) in _DEV_USERS.items():
        role = Role.query.filter_by(role_name=role_name).first()
        if role is None:
            role = Role(role_name=role_name, description=description)
            db.session.add(role)
            db.session.flush()

        email = f"dev.{role_name}@{domain}"
        user = User.query.filter(User.email.ilike(email)).first()
        if user is None:
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role_id=role.id,
                is_active=True,
            )
            db.session.add(user)
        else:
            user.role_id = role.id
            user.is_active = True
        users.append(user)

    db.session.commit()
    return users


@click.command("seed-dev-users")
@click.option(
    "--domain",
    default="localhost",
    show_default=True,
    help="Email domain for the dev users.",
)
@with_appcontext
def seed_dev_users_command(domain: str):
    """Create the admin and viewer roles with one dev user each."""
    click.echo("=" * 60)
    click.echo("  OrgBoard — Seed Dev Users")
    click.echo("=" * 60)

    for user in seed_dev_users(domain):
        click.secho(
            f"  ✓ {user.role_name:<7} {user.full_name} <{user.email}> "
            f"(id={user.id})",
            fg="green",
        )

    click.echo("=" * 60)
    click.echo("\n  → Start the app with FLASK_ENV=development, then visit")
    click.echo("    http://localhost:5000/auth/dev-login?role=admin\n")


def register_seed_commands(app):
    """Register seed-related CLI commands with the Flask application."""
    app.cli.add_command(seed_dev_users_command)
