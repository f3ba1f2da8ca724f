"""
Org structure service — the session's single-writer org tree.

``OrgStructureState`` owns the tree every request reads and edits.  One
instance is created per Flask app by ``init_app()`` and stored in
``app.extensions["org_structure"]``; routes fetch it with
``get_org_state()``.

Lifecycle:
  1. Constructed from the compiled-in defaults.
  2. Refined once, on first read, by the override records in the data
     service (``refresh()``).  A store failure is logged and the
     defaults stay in place.
  3. Mutated only through ``update_tree()`` / ``save_edit()``, which
     apply the change locally first and then, for privileged users
     with the store online, upsert the whole tree.  Persistence
     failures never roll back the local tree; they are recorded in
     ``OrgSaveLog``.

Architecture:
    ``org_merge_service``  (pure)   decides field precedence.
    ``OrgStoreClient``              talks to the data service.
    This module                     holds state and records outcomes.
"""

import logging
import threading

from flask import Flask, current_app
from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models.audit import OrgSaveLog
from app.models.org_structure import (
    Company,
    Department,
    OrgTree,
    OverrideRecord,
    SubDepartment,
)
from app.org_defaults import default_tree
from app.services import audit_service
from app.services.org_merge_service import (
    apply_edit,
    build_initial_tree,
    ensure_admin_department,
    merge_overrides,
    serialize_tree,
)
from app.services.org_store_client import OrgStoreClient, OrgStoreError, SaveResult

logger = logging.getLogger(__name__)

EXTENSION_KEY = "org_structure"


class OrgStructureState:
    """
    Holds the current org tree and coordinates loading and saving it.

    Args:
        client:       Store client; None means there is no data service.
        defaults:     Compiled-in tree.  Defaults to ``default_tree()``.
        offline_mode: Never contact the store, even if configured.
    """

    def __init__(
        self,
        client: OrgStoreClient | None = None,
        defaults: OrgTree | None = None,
        offline_mode: bool = False,
    ) -> None:
        self._defaults = defaults if defaults is not None else default_tree()
        self._tree = build_initial_tree(self._defaults)
        self._client = client
        self._loaded = False
        self.offline_mode = offline_mode
        # Waitress serves requests from a thread pool.  Reading the tree,
        # applying an edit and swapping the result happen under this
        # lock; upserts to the store run outside it.
        self._lock = threading.RLock()

    @property
    def store_available(self) -> bool:
        """True when overrides can be fetched from and saved to the store."""
        return (
            self._client is not None
            and self._client.is_configured
            and not self.offline_mode
        )

    # =================================================================
    # Read
    # =================================================================

    def get_tree(self) -> OrgTree:
        """Return the current tree, loading overrides on first use."""
        with self._lock:
            if not self._loaded and self.store_available:
                self.refresh()
            return self._tree

    def refresh(self, is_offline: bool = False) -> bool:
        """
        Rebuild the tree from the defaults plus the stored overrides.

        Args:
            is_offline: Skip the fetch entirely.

        Returns:
            True if the tree was replaced with freshly merged data.
        """
        with self._lock:
            self._loaded = True
        if is_offline or not self.store_available:
            logger.debug("Org store unavailable — keeping current structure")
            return False

        try:
            rows = self._client.fetch_org_metadata()
        except OrgStoreError as exc:
            logger.warning(
                "Table %s not found or inaccessible. Using current structure. %s",
                self._client.table,
                exc,
            )
            return False

        if not rows:
            logger.info("No override records stored — keeping current structure")
            return False

        tree = merge_overrides(build_initial_tree(self._defaults), rows)
        with self._lock:
            self._tree = tree
        logger.info("Org structure refreshed from %d override record(s)", len(rows))
        return True

    # =================================================================
    # Write
    # =================================================================

    def update_tree(
        self,
        new_tree: OrgTree,
        is_privileged: bool,
        is_offline: bool,
        user_id: int | None = None,
    ) -> OrgSaveLog | None:
        """
        Replace the whole tree and persist it when allowed.

        The tree is applied locally first and always.  Persistence runs
        only for privileged users while the store is online.

        Args:
            new_tree:      The complete new tree.
            is_privileged: Whether the caller's edits are persisted.
            is_offline:    Skip persistence regardless of privilege.
            user_id:       Who made the change, for the audit trail.

        Returns:
            The OrgSaveLog for the persistence batch, or None when
            nothing was sent to the store.
        """
        new_tree = ensure_admin_department(new_tree)
        with self._lock:
            self._tree = new_tree
        return self._persist(
            serialize_tree(new_tree),
            is_privileged=is_privileged,
            is_offline=is_offline,
            user_id=user_id,
            node_id=None,
        )

    def save_edit(
        self,
        update: Company | Department | SubDepartment,
        is_privileged: bool,
        is_offline: bool,
        user_id: int | None = None,
    ) -> tuple[OrgTree, OrgSaveLog | None]:
        """
        Apply a single-node edit and persist the whole tree.

        Raises:
            ValueError: If the edited node does not exist.

        Returns:
            ``(tree, save_log)``.  ``tree`` is the state's tree after
            the save, including any refresh from the store;
            ``save_log`` is None when nothing was sent to the store.
        """
        with self._lock:
            new_tree, records = apply_edit(self.get_tree(), update)
            self._tree = new_tree

        save_log = self._persist(
            records,
            is_privileged=is_privileged,
            is_offline=is_offline,
            user_id=user_id,
            node_id=update.id,
        )
        with self._lock:
            return self._tree, save_log

    # =================================================================
    # Internal helpers
    # =================================================================

    def _persist(
        self,
        records: list[OverrideRecord],
        is_privileged: bool,
        is_offline: bool,
        user_id: int | None,
        node_id: str | None,
    ) -> OrgSaveLog | None:
        """Upsert an already-applied tree; None when nothing was sent."""
        if not is_privileged or is_offline or not self.store_available:
            logger.info(
                "Org structure updated locally only "
                "(privileged=%s, offline=%s, store_available=%s)",
                is_privileged,
                is_offline,
                self.store_available,
            )
            return None

        rows = [record.to_row() for record in records]
        try:
            result = self._client.upsert_rows(rows)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Failed to save org structure: %s", exc, exc_info=True)
            result = SaveResult(attempted=len(rows), failed={"*": str(exc)})

        save_log = self._record_save(result, user_id, node_id)

        # Only re-read when everything landed; otherwise the refresh would
        # replace edits the store never received.
        if result.status == "completed":
            self.refresh()

        return save_log

    def _record_save(
        self,
        result: SaveResult,
        user_id: int | None,
        node_id: str | None,
    ) -> OrgSaveLog | None:
        """Write the OrgSaveLog and audit entry; never raises."""
        try:
            save_log = audit_service.start_save_log(
                user_id, result.attempted, node_id=node_id
            )
            audit_service.complete_save_log(
                save_log,
                saved=len(result.saved),
                failed=result.failed,
                status=result.status,
            )
            audit_service.log_change(
                user_id=user_id,
                action_type="SYNC",
                entity_type="org.structure",
                entity_id=node_id,
                new_value={
                    "save_log_id": save_log.id,
                    "status": result.status,
                    "attempted": result.attempted,
                    "saved": len(result.saved),
                    "failed": sorted(result.failed),
                },
            )
            db.session.commit()
            return save_log
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Could not record org save outcome: %s", exc, exc_info=True)
            return None


# =========================================================================
# Flask integration
# =========================================================================


def init_app(app: Flask) -> OrgStructureState:
    """Create the app's OrgStructureState and register it as an extension."""
    with app.app_context():
        client = OrgStoreClient()
    state = OrgStructureState(
        client=client,
        offline_mode=app.config.get("ORG_OFFLINE_MODE", False),
    )
    app.extensions[EXTENSION_KEY] = state

    if not client.is_configured:
        logger.warning(
            "ORG_STORE_URL is not configured — org structure edits "
            "will not be persisted."
        )
    return state


def get_org_state() -> OrgStructureState:
    """Return the OrgStructureState of the current app."""
    return current_app.extensions[EXTENSION_KEY]
