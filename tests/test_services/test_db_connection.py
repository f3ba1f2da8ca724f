"""
Database connectivity, seed data and CLI command tests.

These tests confirm that:
  - The application can connect to its database.
  - The expected tables exist.
  - ``flask seed-dev-users`` creates the admin and viewer users.
  - ``flask db-check`` and ``flask org-show`` run cleanly.

Run from your project root with::

    pytest tests/test_services/test_db_connection.py -v
"""

import json

from sqlalchemy import inspect

from app.extensions import db
from app.models.user import Role, User
from app.seed_dev_users import seed_dev_users


class TestDatabaseConnectivity:
    """Verify that the app can talk to the database."""

    def test_basic_connection(self, app):
        """
        Execute a simple SELECT 1 query to confirm the database
        is reachable and the connection string is correct.
        """
        result = db.session.execute(db.text("SELECT 1 AS connected"))
        row = result.fetchone()
        assert row is not None
        assert row[0] == 1

    def test_expected_tables_exist(self, app):
        tables = set(inspect(db.engine).get_table_names())
        assert {"role", "user", "audit_log", "org_save_log"} <= tables


class TestSeedDevUsers:
    """Verify the dev seed creates one user per role."""

    def test_creates_roles_and_users(self, db_session):
        admin, viewer = seed_dev_users()
        assert Role.query.count() == 2
        assert admin.is_privileged
        assert not viewer.is_privileged
        assert admin.email == "dev.admin@localhost"

    def test_is_repeatable(self, db_session):
        seed_dev_users()
        admin, _ = seed_dev_users()
        assert User.query.count() == 2
        assert admin.is_active


class TestCliCommands:
    """Smoke tests for the custom Flask CLI commands."""

    def test_db_check(self, app):
        result = app.test_cli_runner().invoke(args=["db-check"])
        assert result.exit_code == 0
        assert "All checks passed" in result.output

    def test_org_show_outline(self, app):
        result = app.test_cli_runner().invoke(args=["org-show"])
        assert result.exit_code == 0
        assert "dept7" in result.output
        assert "7.19" in result.output

    def test_org_show_json(self, app):
        result = app.test_cli_runner().invoke(args=["org-show", "--json"])
        assert result.exit_code == 0
        tree = json.loads(result.output)
        assert tree["departments"]["dept1"]["manager"] == "Директор по персоналу"

    def test_org_refresh_without_store(self, app):
        result = app.test_cli_runner().invoke(args=["org-refresh"])
        assert result.exit_code == 0
        assert "not configured" in result.output

    def test_seed_dev_users_command(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["seed-dev-users"])
        assert result.exit_code == 0
        assert "dev.viewer@localhost" in result.output
