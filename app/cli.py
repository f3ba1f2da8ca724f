"""
Custom Flask CLI commands.

These commands are registered with the app via ``register_commands()``
in the application factory. Run them with ``flask <command_name>``.

Usage::

    flask db-check      # Verify database connectivity and tables
    flask org-refresh   # Re-read overrides from the data service
    flask org-show      # Print the current org tree
"""

import json

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect

from app.extensions import db

# Tables the application expects after ``flask db upgrade``.
_EXPECTED_TABLES = ("role", "user", "audit_log", "org_save_log")


@click.command("db-check")
@with_appcontext
def db_check_command():
    """
    Verify database connectivity and confirm expected tables exist.

    Runs a simple query against the configured database and lists the
    application tables it finds.  Useful for confirming your .env file
    is correct and migrations have been applied.
    """
    click.echo("=" * 60)
    click.echo("  OrgBoard — Database Connectivity Check")
    click.echo("=" * 60)

    db_uri = current_app.config["SQLALCHEMY_DATABASE_URI"]
    click.echo(f"\n  Connection string: {db.engine.url.render_as_string()}\n")

    # -- Step 1: Basic connectivity ----------------------------------------
    click.echo("[1/2] Testing connection...")
    try:
        result = db.session.execute(db.text("SELECT 1 AS connected"))
        row = result.fetchone()
        if row and row[0] == 1:
            click.secho("      ✓ Connected successfully.", fg="green")
        else:
            click.secho("      ✗ Unexpected result from test query.", fg="red")
            return
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Connection failed: {exc}", fg="red")
        click.echo("\n  Troubleshooting tips:")
        click.echo(f"    - Does DATABASE_URL ({db_uri.split('://')[0]}) point")
        click.echo("      at a reachable database?")
        click.echo("    - Is the driver for that database installed?")
        return

    # -- Step 2: Tables ----------------------------------------------------
    click.echo("[2/2] Checking tables...\n")
    try:
        existing = set(inspect(db.engine).get_table_names())
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Table check failed: {exc}", fg="red")
        return

    missing = [name for name in _EXPECTED_TABLES if name not in existing]
    for name in _EXPECTED_TABLES:
        mark = "✗" if name in missing else "✓"
        click.echo(f"      {mark} {name}")

    if missing:
        click.secho("\n      Run `flask db upgrade` to create missing tables.", fg="red")
        return

    click.echo("\n" + "=" * 60)
    click.secho("  All checks passed. Database is ready.", fg="green", bold=True)
    click.echo("=" * 60)


@click.command("org-refresh")
@with_appcontext
def org_refresh_command():
    """Re-read override records from the data service."""
    from app.services.org_structure_service import get_org_state

    state = get_org_state()
    if not state.store_available:
        click.secho(
            "Org store is not configured or offline mode is on; "
            "showing the default structure.",
            fg="yellow",
        )
        return

    click.echo("Fetching org overrides...")
    if state.refresh():
        tree = state.get_tree()
        click.secho(
            f"Refreshed: {len(tree.departments)} departments.", fg="green"
        )
    else:
        click.secho(
            "No overrides applied (see log for details).", fg="yellow"
        )


@click.command("org-show")
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    help="Print the full tree as JSON instead of an outline.",
)
@with_appcontext
def org_show_command(as_json: bool):
    """Print the current org tree."""
    from app.services.org_structure_service import get_org_state

    tree = get_org_state().get_tree()

    if as_json:
        click.echo(json.dumps(tree.to_dict(), ensure_ascii=False, indent=2))
        return

    click.echo(f"Company  manager: {tree.company.manager or '—'}")
    for dept in tree.departments.values():
        click.echo(f"  {dept.id:<10} {dept.name}  ({dept.manager or '—'})")
        for sub in dept.departments.values():
            click.echo(
                f"    {sub.code:<8} {sub.name}  ({sub.manager or '—'})"
            )


def register_commands(app):
    """Register all custom CLI commands with the Flask application."""
    app.cli.add_command(db_check_command)
    app.cli.add_command(org_refresh_command)
    app.cli.add_command(org_show_command)
