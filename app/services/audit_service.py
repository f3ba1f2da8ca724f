"""
Audit service — records org structure changes and queries save history.

Every org edit and every persistence batch passes through this service
so that a complete audit trail is maintained, including saves the data
service rejected.  ``log_change`` is the primary entry point.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from flask import request
from sqlalchemy import desc

from app.extensions import db
from app.models.audit import AuditLog, OrgSaveLog

logger = logging.getLogger(__name__)


# -- Write audit entries ---------------------------------------------------


def log_change(
    user_id: int | None,
    action_type: str,
    entity_type: str,
    entity_id: str | None,
    previous_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Record a data change in the audit log.

    Args:
        user_id:        ID of the user who made the change, or None for
                        system actions (e.g., ``flask org-refresh``).
        action_type:    One of UPDATE, SYNC, LOGIN, LOGOUT.
        entity_type:    Dot-notation entity name (e.g., 'org.department').
        entity_id:      Node id of the affected entity.
        previous_value: Dict of the entity state before the change.
        new_value:      Dict of the entity state after the change.

    Returns:
        The newly created AuditLog record.
    """
    # Capture request metadata when available (inside a request context).
    ip_address = None
    user_agent = None
    try:
        ip_address = request.remote_addr
        user_agent = str(request.user_agent)[:500]
    except RuntimeError:
        # Outside of a request context (e.g., CLI or background task).
        pass

    entry = AuditLog(
        user_id=user_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        previous_value=(
            json.dumps(previous_value, ensure_ascii=False) if previous_value else None
        ),
        new_value=json.dumps(new_value, ensure_ascii=False) if new_value else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info(
        "Audit: %s %s:%s by user %s",
        action_type,
        entity_type,
        entity_id,
        user_id,
    )
    return entry


def log_login(user_id: int) -> AuditLog:
    """Record a successful user login."""
    return log_change(
        user_id=user_id,
        action_type="LOGIN",
        entity_type="auth.user",
        entity_id=str(user_id),
    )


def log_logout(user_id: int) -> AuditLog:
    """Record a user logout."""
    return log_change(
        user_id=user_id,
        action_type="LOGOUT",
        entity_type="auth.user",
        entity_id=str(user_id),
    )


# -- Save tracking ---------------------------------------------------------


def start_save_log(
    user_id: int | None,
    records_attempted: int,
    node_id: str | None = None,
) -> OrgSaveLog:
    """Create an OrgSaveLog in ``started`` state and flush it."""
    save_log = OrgSaveLog(
        triggered_by=user_id,
        node_id=node_id,
        records_attempted=records_attempted,
        status="started",
        started_at=datetime.now(timezone.utc),
    )
    db.session.add(save_log)
    db.session.flush()
    return save_log


def complete_save_log(
    save_log: OrgSaveLog,
    saved: int,
    failed: dict[str, str],
    status: str,
) -> OrgSaveLog:
    """Fill in the outcome of a persistence batch."""
    save_log.records_saved = saved
    save_log.records_failed = len(failed)
    save_log.status = status
    save_log.error_message = (
        "\n".join(f"{key}: {error}" for key, error in sorted(failed.items()))
        if failed
        else None
    )
    save_log.completed_at = datetime.now(timezone.utc)
    return save_log


# -- Query logs ------------------------------------------------------------


def get_recent_save_logs(limit: int = 20) -> list[OrgSaveLog]:
    """Return the most recent persistence batches, newest first."""
    return (
        OrgSaveLog.query.order_by(desc(OrgSaveLog.started_at), desc(OrgSaveLog.id))
        .limit(limit)
        .all()
    )


def get_latest_save_log() -> OrgSaveLog | None:
    """Return the most recent persistence batch, or None."""
    logs = get_recent_save_logs(limit=1)
    return logs[0] if logs else None


def get_audit_logs(
    page: int = 1,
    per_page: int = 50,
    entity_type: str | None = None,
    entity_id: str | None = None,
):
    """
    Query audit logs with optional filters and pagination.

    Returns:
        A Flask-SQLAlchemy pagination object with ``.items``,
        ``.pages``, ``.total``, etc.
    """
    query = AuditLog.query.order_by(desc(AuditLog.created_at), desc(AuditLog.id))

    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)

    return query.paginate(page=page, per_page=per_page, error_out=False)
