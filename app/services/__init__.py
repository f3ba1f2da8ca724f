"""
Service layer package.

Each service module encapsulates one concern of the org structure
back end:

  - org_merge_service      pure merge / re-serialization rules
  - org_store_client       HTTP client for the hosted data service
  - org_structure_service  per-app tree state, loading and saving
  - audit_service          audit trail and save history

Routes call services; only services touch the database.

Import services in route modules as needed::

    from app.services.org_structure_service import get_org_state
"""
