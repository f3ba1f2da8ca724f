"""
Model package — imports all database models so Alembic and SQLAlchemy
can discover them automatically when ``flask db`` commands are run.

  - user.py          -> role, user
  - audit.py         -> audit_log, org_save_log
  - org_structure.py -> in-memory org tree types (no tables)
"""

from app.models.audit import AuditLog, OrgSaveLog  # noqa: F401
from app.models.user import Role, User  # noqa: F401
