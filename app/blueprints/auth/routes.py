"""
Routes for the auth blueprint — development login and logout.

Sign-in against the hosted data service is handled outside this
application.  ``/dev-login`` logs in as a seeded local user so the API
can be exercised during development and in tests; it is only available
when ``DEV_LOGIN_ENABLED`` is set.
"""

import logging
from datetime import datetime, timezone

from flask import abort, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from app.blueprints.auth import bp
from app.extensions import db
from app.models.user import ADMIN_ROLE, User
from app.services import audit_service

logger = logging.getLogger(__name__)


@bp.route("/dev-login")
def dev_login():
    """
    Development-only login bypass.

    Query Parameters:
        role (str):     Role name to match (e.g., ``admin``, ``viewer``).
                        Defaults to ``admin``.
        user_id (int):  Specific user ID to log in as.  Takes precedence
                        over ``role`` when both are provided.

    Examples::

        /auth/dev-login                    → first active admin
        /auth/dev-login?role=viewer        → first active viewer
        /auth/dev-login?user_id=7          → user with id=7
    """
    if not current_app.config.get("DEV_LOGIN_ENABLED"):
        abort(404)

    user_id_param = request.args.get("user_id", type=int)
    role_param = request.args.get("role", ADMIN_ROLE).strip().lower()

    if user_id_param is not None:
        # Direct user ID selection takes priority.
        target_user = User.query.filter(
            User.id == user_id_param,
            User.is_active == True,  # pylint: disable=singleton-comparison
        ).first()
        if target_user is None:
            abort(404, description=f"No active user found with ID {user_id_param}.")
    else:
        # Otherwise the first active user with this role.
        target_user = (
            User.query.filter(
                User.is_active == True,  # pylint: disable=singleton-comparison
                User.role.has(role_name=role_param),
            )
            .order_by(User.id)
            .first()
        )
        if target_user is None:
            abort(
                404,
                description=(
                    f"No active user with role '{role_param}' found. "
                    "Run the seed script first: flask seed-dev-users"
                ),
            )

    login_user(target_user)
    target_user.last_login = datetime.now(timezone.utc)
    audit_service.log_login(target_user.id)
    db.session.commit()

    logger.info(
        "Dev login: user %d (%s) as %s",
        target_user.id,
        target_user.email,
        target_user.role_name,
    )
    return jsonify(
        id=target_user.id,
        email=target_user.email,
        full_name=target_user.full_name,
        role=target_user.role_name,
        privileged=target_user.is_privileged,
        # Send back as the X-CSRFToken header on PUT/POST requests.
        csrf_token=generate_csrf(),
    )


@bp.route("/logout")
@login_required
def logout():
    """Log the current user out and record it in the audit trail."""
    user_id = current_user.id
    audit_service.log_logout(user_id)
    db.session.commit()
    logout_user()
    return jsonify(status="signed_out")
