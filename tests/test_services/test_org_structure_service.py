"""
Tests for OrgStructureState — loading, local edits and persistence.

The data service is replaced by ``FakeStoreClient`` from conftest, so
these tests exercise the full save path (upserts, OrgSaveLog, audit
entry, refresh) without network access.
"""

import threading
import time
from dataclasses import replace

from app.models.audit import AuditLog, OrgSaveLog
from app.models.org_structure import Company, Department
from app.org_defaults import default_tree
from app.services import org_merge_service
from app.services.org_structure_service import OrgStructureState, get_org_state


def _row(kind, node_id, **columns):
    return {"type": kind, "node_id": node_id, **columns}


class TestLoading:
    """Initial load and refresh."""

    def test_defaults_without_store(self, org_state):
        assert not org_state.store_available
        assert org_state.get_tree() == default_tree()

    def test_get_org_state_returns_registered_state(self, app, org_state):
        assert get_org_state() is org_state

    def test_first_read_applies_overrides_once(self, store, online_state):
        store.rows[("department", "dept1")] = _row("department", "dept1", manager="")

        tree = online_state.get_tree()
        online_state.get_tree()

        assert tree.departments["dept1"].manager == ""
        assert store.fetch_calls == 1

    def test_read_failure_keeps_defaults(self, store, online_state):
        store.fail_fetch = True
        assert online_state.refresh() is False
        assert online_state.get_tree() == default_tree()

    def test_empty_store_keeps_current_tree(self, store, online_state):
        assert online_state.refresh() is False
        assert online_state.get_tree() == default_tree()

    def test_offline_refresh_skips_fetch(self, store, online_state):
        assert online_state.refresh(is_offline=True) is False
        assert store.fetch_calls == 0

    def test_offline_mode_disables_store(self, store):
        state = OrgStructureState(client=store, offline_mode=True)
        assert not state.store_available
        state.get_tree()
        assert store.fetch_calls == 0

    def test_refresh_rebuilds_from_defaults(self, store, online_state):
        store.rows[("department", "dept2")] = _row(
            "department", "dept2", goal="Продажи растут"
        )
        online_state.refresh()
        del store.rows[("department", "dept2")]
        store.rows[("department", "dept3")] = _row("department", "dept3", goal="G")

        online_state.refresh()

        tree = online_state.get_tree()
        assert tree.departments["dept2"].goal == ""
        assert tree.departments["dept3"].goal == "G"


class TestLocalOnlyEdits:
    """Edits that must never reach the store."""

    def test_non_privileged_edit_applies_locally(self, db_session, store, online_state):
        update = Department(id="dept1", name="HR", manager="Новый")

        tree, save_log = online_state.save_edit(
            update, is_privileged=False, is_offline=False
        )

        assert save_log is None
        assert tree.departments["dept1"].manager == "Новый"
        assert online_state.get_tree().departments["dept1"].manager == "Новый"
        assert store.upsert_calls == 0
        assert OrgSaveLog.query.count() == 0

    def test_offline_edit_applies_locally(self, db_session, store, online_state):
        _, save_log = online_state.save_edit(
            Company(goal="Рост"), is_privileged=True, is_offline=True
        )

        assert save_log is None
        assert online_state.get_tree().company.goal == "Рост"
        assert store.upsert_calls == 0

    def test_unconfigured_store_edit_applies_locally(self, db_session, org_state):
        _, save_log = org_state.save_edit(
            Company(manager=""), is_privileged=True, is_offline=False
        )
        assert save_log is None
        assert org_state.get_tree().company.manager == ""

    def test_update_tree_heals_admin_department(self, db_session, org_state):
        defaults = default_tree()
        without_admin = replace(
            defaults,
            departments={
                key: dept for key, dept in defaults.departments.items() if key != "dept7"
            },
        )

        org_state.update_tree(without_admin, is_privileged=False, is_offline=True)

        assert "dept7" in org_state.get_tree().departments


class TestPersistedEdits:
    """Privileged edits with the store online."""

    def test_privileged_edit_is_saved_and_logged(
        self, db_session, users, store, online_state
    ):
        admin, _ = users
        tree, save_log = online_state.save_edit(
            Department(id="dept1", name="HR", manager=""),
            is_privileged=True,
            is_offline=False,
            user_id=admin.id,
        )

        assert save_log.status == "completed"
        assert save_log.records_attempted == 29
        assert save_log.records_saved == 29
        assert save_log.records_failed == 0
        assert save_log.node_id == "dept1"
        assert save_log.triggered_by == admin.id
        assert store.rows[("department", "dept1")]["manager"] == ""
        assert len(store.rows) == 29

        sync = AuditLog.query.filter_by(action_type="SYNC").one()
        assert sync.entity_type == "org.structure"
        assert sync.entity_id == "dept1"

    def test_saved_edit_survives_reload(self, db_session, store, online_state):
        online_state.save_edit(
            Department(id="dept4", name="Цех", manager="Мастер"),
            is_privileged=True,
            is_offline=False,
        )

        reloaded = OrgStructureState(client=store)
        dept = reloaded.get_tree().departments["dept4"]
        assert dept.name == "Цех"
        assert dept.manager == "Мастер"

    def test_partial_failure_keeps_local_tree(self, db_session, store, online_state):
        store.fail_keys = {"department:dept2"}
        online_state.get_tree()
        fetches_before_save = store.fetch_calls

        tree, save_log = online_state.save_edit(
            Department(id="dept2", name="Продажи", manager="Новый"),
            is_privileged=True,
            is_offline=False,
        )

        assert save_log.status == "partial"
        assert save_log.records_failed == 1
        assert "department:dept2" in save_log.error_message
        assert online_state.get_tree().departments["dept2"].manager == "Новый"
        assert store.fetch_calls == fetches_before_save

    def test_total_failure_keeps_local_tree(self, db_session, store, online_state):
        store.fail_all = True

        _, save_log = online_state.save_edit(
            Company(goal="Рост"), is_privileged=True, is_offline=False
        )

        assert save_log.status == "failed"
        assert save_log.records_saved == 0
        assert online_state.get_tree().company.goal == "Рост"

    def test_update_tree_persists_whole_tree(self, db_session, store, online_state):
        tree = default_tree()
        dept = replace(tree.departments["dept6"], goal="Развитие")
        new_tree = replace(tree, departments={**tree.departments, "dept6": dept})

        save_log = online_state.update_tree(
            new_tree, is_privileged=True, is_offline=False
        )

        assert save_log.status == "completed"
        assert save_log.node_id is None
        assert store.rows[("department", "dept6")]["goal"] == "Развитие"
        assert online_state.get_tree().departments["dept6"].goal == "Развитие"

    def test_returned_tree_matches_state_after_refresh(
        self, db_session, store, online_state
    ):
        dept = online_state.get_tree().departments["dept1"]

        tree, save_log = online_state.save_edit(
            replace(dept, description=""), is_privileged=True, is_offline=False
        )

        # An empty description does not clear on reload, so the refresh
        # after a completed save brings the default back.
        assert save_log.status == "completed"
        assert tree is online_state.get_tree()
        assert tree.departments["dept1"].description == (
            "Управление человеческими ресурсами"
        )


class TestConcurrentEdits:
    """Edits arriving on several request threads at once."""

    def test_parallel_edits_to_different_departments_both_apply(
        self, monkeypatch, org_state
    ):
        def slow_apply_edit(tree, update):
            time.sleep(0.05)
            return org_merge_service.apply_edit(tree, update)

        monkeypatch.setattr(
            "app.services.org_structure_service.apply_edit", slow_apply_edit
        )
        tree = org_state.get_tree()
        edits = [
            replace(tree.departments["dept1"], manager="A"),
            replace(tree.departments["dept2"], manager="B"),
        ]
        threads = [
            threading.Thread(
                target=org_state.save_edit,
                args=(edit,),
                kwargs={"is_privileged": False, "is_offline": False},
            )
            for edit in edits
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        result = org_state.get_tree()
        assert result.departments["dept1"].manager == "A"
        assert result.departments["dept2"].manager == "B"
