"""
Application users and roles.

Sign-in against the hosted data service is outside this application;
these records only identify who is editing the org structure and
whether their edits are persisted.  Role names are referenced in code
(``admin`` edits are saved to the store, ``viewer`` edits stay local).
"""

from flask_login import UserMixin

from app.extensions import db

ADMIN_ROLE = "admin"
VIEWER_ROLE = "viewer"


class Role(db.Model):
    """Application role, referenced by name in code."""

    __tablename__ = "role"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    role_name = db.Column(db.String(50), unique=True, nullable=False)
    description = db.Column(db.String(200), nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.current_timestamp()
    )

    # -- Relationships -----------------------------------------------------
    users = db.relationship("User", back_populates="role", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<Role {self.role_name}>"


class User(UserMixin, db.Model):
    """
    Application user.

    Inherits from ``UserMixin`` to satisfy Flask-Login requirements
    (``is_authenticated``, ``is_active``, ``get_id``).
    """

    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    role_id = db.Column(db.Integer, db.ForeignKey("role.id"), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.current_timestamp()
    )

    # -- Relationships -----------------------------------------------------
    role = db.relationship("Role", back_populates="users", lazy="joined")

    @property
    def full_name(self) -> str:
        """Return the user's full display name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def role_name(self) -> str:
        """Shortcut to the user's role name string."""
        return self.role.role_name if self.role else "unknown"

    def has_role(self, *role_names: str) -> bool:
        """Check if the user has any of the given role names."""
        return self.role_name in role_names

    @property
    def is_privileged(self) -> bool:
        """True when this user's org edits are persisted to the store."""
        return self.has_role(ADMIN_ROLE)

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role_name}>"
