"""
Pytest configuration and shared fixtures.

Provides a test application, database session, test clients and an
in-memory stand-in for the hosted data service.  Uses the ``testing``
configuration, which points at an in-memory SQLite database and has no
data service configured.
"""

import pytest
from flask import g

from app import create_app
from app.extensions import db as _db
from app.seed_dev_users import seed_dev_users
from app.services.org_store_client import OrgStoreError, SaveResult, row_key
from app.services.org_structure_service import EXTENSION_KEY, OrgStructureState


class FakeStoreClient:
    """
    In-memory replacement for ``OrgStoreClient``.

    Rows are kept keyed by ``(type, node_id)`` with insert-or-replace
    semantics, like the real table.

    Attributes:
        fail_fetch: Raise ``OrgStoreError`` from ``fetch_org_metadata``.
        fail_keys:  Row keys (``type:node_id``) whose upserts fail.
        fail_all:   Raise from ``upsert_rows`` itself.
    """

    table = "org_metadata"

    def __init__(self, rows=None):
        self.is_configured = True
        self.rows = {}
        for row in rows or []:
            self.rows[(row["type"], row["node_id"])] = dict(row)
        self.fail_fetch = False
        self.fail_keys = set()
        self.fail_all = False
        self.fetch_calls = 0
        self.upsert_calls = 0

    def fetch_org_metadata(self):
        self.fetch_calls += 1
        if self.fail_fetch:
            raise OrgStoreError("relation org_metadata does not exist")
        return [dict(row) for row in self.rows.values()]

    def upsert_rows(self, rows):
        self.upsert_calls += 1
        if self.fail_all:
            raise OrgStoreError("connection refused")
        result = SaveResult(attempted=len(rows))
        for row in rows:
            key = row_key(row)
            if key in self.fail_keys:
                result.failed[key] = "HTTP 500: upsert rejected"
                continue
            self.rows[(row["type"], row["node_id"])] = dict(row)
            result.saved.append(key)
        return result


@pytest.fixture(scope="session")
def app():
    """
    Create a Flask application configured for testing.

    The app is created once per test session and the schema is built
    with ``create_all()`` against the in-memory database.
    """
    app = create_app("testing")

    # Requests reuse the session-wide app context below, so ``g``
    # outlives a request.  Drop Flask-Login's cached user so every
    # request authenticates from its own session cookie.
    @app.before_request
    def _forget_cached_user():
        g.pop("_login_user", None)

    # Establish an application context for the entire test session.
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()


@pytest.fixture(scope="session")
def database(app):  # pylint: disable=redefined-outer-name
    """Provide the SQLAlchemy database instance."""
    yield _db


@pytest.fixture(scope="function")
def db_session(database):  # pylint: disable=redefined-outer-name
    """
    Provide a clean database session for each test function.

    Rows written during the test are deleted afterwards, child tables
    first, keeping the shared in-memory database clean.
    """
    yield database.session

    database.session.rollback()
    for table in reversed(database.metadata.sorted_tables):
        database.session.execute(table.delete())
    database.session.commit()


@pytest.fixture(autouse=True)
def org_state(app):  # pylint: disable=redefined-outer-name
    """
    Give every test a fresh org structure state with no data service.

    Tests that need a store use the ``online_state`` fixture instead.
    """
    state = OrgStructureState()
    app.extensions[EXTENSION_KEY] = state
    yield state


@pytest.fixture
def store():
    """An empty in-memory data service."""
    return FakeStoreClient()


@pytest.fixture
def online_state(app, store):  # pylint: disable=redefined-outer-name
    """Org structure state backed by the in-memory data service."""
    state = OrgStructureState(client=store)
    app.extensions[EXTENSION_KEY] = state
    yield state


@pytest.fixture
def users(db_session):  # pylint: disable=redefined-outer-name
    """Seeded ``(admin, viewer)`` users."""
    admin, viewer = seed_dev_users()
    return admin, viewer


@pytest.fixture(scope="function")
def client(app):  # pylint: disable=redefined-outer-name
    """
    Provide a Flask test client for making HTTP requests.

    Usage in tests::

        def test_health(client):
            response = client.get("/health")
            assert response.status_code == 200
    """
    with app.test_client() as test_client:
        yield test_client


def _logged_in_client(app, role):  # pylint: disable=redefined-outer-name
    test_client = app.test_client()
    response = test_client.get(f"/auth/dev-login?role={role}")
    assert response.status_code == 200, response.get_json()
    return test_client


@pytest.fixture
def admin_client(app, users):  # pylint: disable=redefined-outer-name,unused-argument
    """Test client signed in as the seeded admin."""
    return _logged_in_client(app, "admin")


@pytest.fixture
def viewer_client(app, users):  # pylint: disable=redefined-outer-name,unused-argument
    """Test client signed in as the seeded viewer."""
    return _logged_in_client(app, "viewer")
