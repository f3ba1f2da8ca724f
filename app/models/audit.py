"""
Audit logging and org save tracking models.

``AuditLog`` records every change to the org structure.
``OrgSaveLog`` tracks each batch of upserts sent to the data service,
so failed saves are visible even though the local tree keeps the edit.
"""

from app.extensions import db


class AuditLog(db.Model):
    """
    Records data changes in the application.

    Change details are stored as JSON blobs for flexibility.

    ``action_type`` values: UPDATE, SYNC, LOGIN, LOGOUT.
    ``entity_id`` is a node id string (e.g. ``dept1``, ``dept7_19``)
    or a user id rendered as a string.
    """

    __tablename__ = "audit_log"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    action_type = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(100), nullable=False)
    entity_id = db.Column(db.String(100), nullable=True)
    previous_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.current_timestamp()
    )

    # -- Relationships -----------------------------------------------------
    user = db.relationship("User")

    def __repr__(self) -> str:
        return (
            f"<AuditLog {self.action_type} {self.entity_type}"
            f":{self.entity_id}>"
        )


class OrgSaveLog(db.Model):
    """
    Tracks one persistence batch: how many override records were sent
    and how many the data service accepted.

    ``status`` values: started, completed, partial, failed.
    ``error_message`` lists the failed row keys, one per line.
    """

    __tablename__ = "org_save_log"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    triggered_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    node_id = db.Column(db.String(100), nullable=True)
    records_attempted = db.Column(db.Integer, nullable=False, default=0)
    records_saved = db.Column(db.Integer, nullable=False, default=0)
    records_failed = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(20), nullable=False)
    error_message = db.Column(db.Text, nullable=True)
    started_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime, nullable=True)

    # -- Relationships -----------------------------------------------------
    triggered_by_user = db.relationship("User", foreign_keys=[triggered_by])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "triggered_by": self.triggered_by,
            "node_id": self.node_id,
            "records_attempted": self.records_attempted,
            "records_saved": self.records_saved,
            "records_failed": self.records_failed,
            "status": self.status,
            "error_message": self.error_message,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
        }

    def __repr__(self) -> str:
        return f"<OrgSaveLog status={self.status} failed={self.records_failed}>"
