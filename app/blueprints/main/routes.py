"""
Routes for the main blueprint — org summary and health check.
"""

from flask import jsonify
from flask_login import login_required
from sqlalchemy import text

from app.blueprints.main import bp
from app.extensions import db
from app.services import audit_service
from app.services.org_structure_service import get_org_state


@bp.route("/")
@login_required
def dashboard():
    """
    Summary of the current org structure.

    Shows department and sub-department counts, whether edits are
    being persisted, and the outcome of the most recent save.
    """
    state = get_org_state()
    tree = state.get_tree()
    latest = audit_service.get_latest_save_log()

    return jsonify(
        departments=len(tree.departments),
        subdepartments=sum(
            len(dept.departments) for dept in tree.departments.values()
        ),
        store_available=state.store_available,
        last_save=latest.to_dict() if latest else None,
    )


@bp.route("/health")
def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 if the app is running and can reach the database.
    """
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}, 200
    except Exception as exc:  # pylint: disable=broad-except
        return {"status": "unhealthy", "database": str(exc)}, 503
