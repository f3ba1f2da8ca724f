"""
Routes for the organization blueprint — org tree reads and edits.

Every edit is applied to the in-memory tree immediately.  Edits made
by an admin are then written to the data service; the response carries
the outcome of that save so the caller can tell a failed save from a
successful one.
"""

import logging
from typing import Any

from flask import abort, jsonify, request
from flask_login import current_user, login_required

from app.blueprints.organization import bp
from app.decorators import role_required
from app.extensions import db
from app.models.org_structure import Company, Department, OrgTree, SubDepartment
from app.models.user import ADMIN_ROLE
from app.services import audit_service
from app.services.org_structure_service import get_org_state

logger = logging.getLogger(__name__)


# =========================================================================
# Read
# =========================================================================


@bp.route("/tree")
@login_required
def tree():
    """Return the whole org tree."""
    return jsonify(get_org_state().get_tree().to_dict())


@bp.route("/departments/<department_id>")
@login_required
def department_detail(department_id: str):
    """Return one department with its sub-departments."""
    dept = get_org_state().get_tree().departments.get(department_id)
    if dept is None:
        abort(404, description=f"Department {department_id} not found.")
    return jsonify(dept.to_dict())


@bp.route("/subdepartments/<sub_id>")
@login_required
def subdepartment_detail(sub_id: str):
    """Return one sub-department and the id of its department."""
    found = get_org_state().get_tree().find_subdepartment(sub_id)
    if found is None:
        abort(404, description=f"Sub-department {sub_id} not found.")
    parent, sub = found
    return jsonify({**sub.to_dict(), "departmentId": parent.id})


# =========================================================================
# Edit
# =========================================================================


@bp.route("/tree", methods=["PUT"])
@login_required
def replace_tree():
    """Replace the whole tree (company, departments, sub-departments)."""
    payload = _json_payload()
    try:
        new_tree = OrgTree.from_dict(payload)
    except (TypeError, ValueError) as exc:
        abort(400, description=f"Invalid org tree: {exc}")

    state = get_org_state()
    save_log = state.update_tree(
        new_tree,
        is_privileged=current_user.is_privileged,
        is_offline=not state.store_available,
        user_id=current_user.id,
    )
    _audit_edit("org.tree", None, None, None)
    return _edit_response("tree", state.get_tree().to_dict(), save_log)


@bp.route("/company", methods=["PUT"])
@login_required
def edit_company():
    """Replace the company's goal, VFP and manager."""
    payload = _json_payload()
    update = Company.from_dict(payload)
    previous = get_org_state().get_tree().company
    new_tree, save_log = _save_edit(update)
    _audit_edit(
        "org.company", update.id, previous.to_dict(), new_tree.company.to_dict()
    )
    return _edit_response("company", new_tree.company.to_dict(), save_log)


@bp.route("/departments/<department_id>", methods=["PUT"])
@login_required
def edit_department(department_id: str):
    """Replace a department's editable fields; sub-departments are kept."""
    payload = _json_payload()
    payload.pop("departments", None)
    try:
        update = Department.from_dict({**payload, "id": department_id})
    except (TypeError, ValueError) as exc:
        abort(400, description=f"Invalid department: {exc}")

    previous = get_org_state().get_tree().departments.get(department_id)
    new_tree, save_log = _save_edit(update)
    new_dept = new_tree.departments[department_id]
    _audit_edit(
        "org.department",
        department_id,
        _without_children(previous.to_dict()) if previous else None,
        _without_children(new_dept.to_dict()),
    )
    return _edit_response("department", new_dept.to_dict(), save_log)


@bp.route("/subdepartments/<sub_id>", methods=["PUT"])
@login_required
def edit_subdepartment(sub_id: str):
    """Replace a sub-department's editable fields."""
    payload = _json_payload()
    try:
        update = SubDepartment.from_dict({**payload, "id": sub_id})
    except (TypeError, ValueError) as exc:
        abort(400, description=f"Invalid sub-department: {exc}")

    found = get_org_state().get_tree().find_subdepartment(sub_id)
    new_tree, save_log = _save_edit(update)
    _, new_sub = new_tree.find_subdepartment(sub_id)
    _audit_edit(
        "org.subdepartment",
        sub_id,
        found[1].to_dict() if found else None,
        new_sub.to_dict(),
    )
    return _edit_response("subdepartment", new_sub.to_dict(), save_log)


# =========================================================================
# Admin
# =========================================================================


@bp.route("/refresh", methods=["POST"])
@login_required
@role_required(ADMIN_ROLE)
def refresh():
    """Re-read overrides from the data service."""
    state = get_org_state()
    refreshed = state.refresh()
    return jsonify(
        refreshed=refreshed,
        store_available=state.store_available,
        tree=state.get_tree().to_dict(),
    )


@bp.route("/save-logs")
@login_required
@role_required(ADMIN_ROLE)
def save_logs():
    """List recent persistence batches, newest first."""
    limit = request.args.get("limit", 20, type=int)
    limit = max(1, min(limit, 200))
    logs = audit_service.get_recent_save_logs(limit=limit)
    return jsonify(save_logs=[log.to_dict() for log in logs])


@bp.route("/audit")
@login_required
@role_required(ADMIN_ROLE)
def audit_log():
    """Paginated audit trail, optionally filtered by entity."""
    page = request.args.get("page", 1, type=int)
    per_page = max(1, min(request.args.get("per_page", 50, type=int), 200))
    pagination = audit_service.get_audit_logs(
        page=page,
        per_page=per_page,
        entity_type=request.args.get("entity_type") or None,
        entity_id=request.args.get("entity_id") or None,
    )
    return jsonify(
        page=pagination.page,
        pages=pagination.pages,
        total=pagination.total,
        items=[
            {
                "id": entry.id,
                "user_id": entry.user_id,
                "action_type": entry.action_type,
                "entity_type": entry.entity_type,
                "entity_id": entry.entity_id,
                "previous_value": entry.previous_value,
                "new_value": entry.new_value,
                "created_at": (
                    entry.created_at.isoformat() if entry.created_at else None
                ),
            }
            for entry in pagination.items
        ],
    )


# =========================================================================
# Helpers
# =========================================================================


def _json_payload() -> dict[str, Any]:
    """Return the request's JSON object body or abort with 400."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object.")
    return payload


def _save_edit(update: Company | Department | SubDepartment):
    """Apply a single-node edit for the current user; unknown ids → 404."""
    state = get_org_state()
    try:
        return state.save_edit(
            update,
            is_privileged=current_user.is_privileged,
            is_offline=not state.store_available,
            user_id=current_user.id,
        )
    except ValueError as exc:
        abort(404, description=str(exc))


def _audit_edit(
    entity_type: str,
    entity_id: str | None,
    previous_value: dict | None,
    new_value: dict | None,
) -> None:
    audit_service.log_change(
        user_id=current_user.id,
        action_type="UPDATE",
        entity_type=entity_type,
        entity_id=entity_id,
        previous_value=previous_value,
        new_value=new_value,
    )
    db.session.commit()


def _edit_response(key: str, node: dict[str, Any], save_log):
    """Edited node plus whether (and how well) it was persisted."""
    return jsonify(
        {
            key: node,
            "persisted": save_log is not None and save_log.status == "completed",
            "save": save_log.to_dict() if save_log is not None else None,
        }
    )


def _without_children(dept: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in dept.items() if key != "departments"}
