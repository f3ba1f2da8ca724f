"""
Organization blueprint — read and edit the org tree as JSON.

Edits are applied to the in-memory tree for everyone; only admin
edits are written to the data service.
"""

from flask import Blueprint

bp = Blueprint("organization", __name__)

from app.blueprints.organization import routes  # noqa: E402, F401
