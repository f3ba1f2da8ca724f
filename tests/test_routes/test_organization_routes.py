"""
Tests for the organization blueprint — org tree reads and edits.
"""

from app.models.audit import AuditLog, OrgSaveLog


class TestReadRoutes:
    """Reading the tree and single nodes."""

    def test_tree_requires_login(self, client):
        assert client.get("/org/tree").status_code == 401

    def test_tree(self, viewer_client):
        response = viewer_client.get("/org/tree")
        assert response.status_code == 200
        body = response.get_json()
        assert body["company"]["id"] == "owner"
        assert body["company"]["manager"] == "Основатель"
        assert "dept7" in body["departments"]
        assert body["departments"]["dept1"]["manager"] == "Директор по персоналу"

    def test_department_detail(self, viewer_client):
        response = viewer_client.get("/org/departments/dept2")
        assert response.status_code == 200
        body = response.get_json()
        assert body["fullName"] == "Коммерческий департамент"
        assert set(body["departments"]) == {"dept2_4", "dept2_5", "dept2_6"}

    def test_unknown_department_returns_404(self, viewer_client):
        response = viewer_client.get("/org/departments/dept99")
        assert response.status_code == 404
        assert "dept99" in response.get_json()["message"]

    def test_subdepartment_detail(self, viewer_client):
        response = viewer_client.get("/org/subdepartments/dept7_19")
        assert response.status_code == 200
        body = response.get_json()
        assert body["vfp"] == "Жизнеспособная компания"
        assert body["departmentId"] == "dept7"

    def test_unknown_subdepartment_returns_404(self, viewer_client):
        assert viewer_client.get("/org/subdepartments/dept1_99").status_code == 404


class TestEditRoutes:
    """Single-node and whole-tree edits."""

    def test_viewer_edit_applies_locally(self, viewer_client, store, online_state):
        response = viewer_client.put(
            "/org/departments/dept1",
            json={"name": "Персонал", "manager": "", "goal": "Команда"},
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["department"]["manager"] == ""
        assert body["department"]["goal"] == "Команда"
        assert body["persisted"] is False
        assert body["save"] is None
        assert store.upsert_calls == 0

        tree = viewer_client.get("/org/tree").get_json()
        assert tree["departments"]["dept1"]["manager"] == ""
        assert len(tree["departments"]["dept1"]["departments"]) == 3

    def test_admin_edit_is_persisted(self, admin_client, store, online_state):
        response = admin_client.put(
            "/org/subdepartments/dept7_19",
            json={"name": "Офис ГД", "code": "7.19", "employeeName": "Мария"},
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["subdepartment"]["employeeName"] == "Мария"
        assert body["persisted"] is True
        assert body["save"]["status"] == "completed"
        assert body["save"]["node_id"] == "dept7_19"
        saved = store.rows[("subdepartment", "dept7_19")]
        assert saved["content"]["employeeName"] == "Мария"

    def test_admin_edit_without_store_is_local(self, admin_client):
        response = admin_client.put("/org/company", json={"goal": "Рост"})
        assert response.status_code == 200
        body = response.get_json()
        assert body["company"]["goal"] == "Рост"
        assert body["persisted"] is False

    def test_failed_save_is_reported(self, admin_client, store, online_state):
        store.fail_all = True

        response = admin_client.put(
            "/org/departments/dept3", json={"name": "Финансы", "manager": "Новый"}
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["persisted"] is False
        assert body["save"]["status"] == "failed"
        assert body["department"]["manager"] == "Новый"
        assert OrgSaveLog.query.filter_by(status="failed").count() == 1

    def test_edit_is_audited(self, viewer_client):
        viewer_client.put("/org/departments/dept5", json={"manager": "Контролёр"})

        entry = AuditLog.query.filter_by(
            action_type="UPDATE", entity_id="dept5"
        ).one()
        assert entry.entity_type == "org.department"
        assert "Контролёр" in entry.new_value

    def test_unknown_department_edit_returns_404(self, viewer_client):
        response = viewer_client.put("/org/departments/dept99", json={"name": "X"})
        assert response.status_code == 404

    def test_unknown_subdepartment_edit_returns_404(self, viewer_client):
        response = viewer_client.put("/org/subdepartments/dept1_99", json={})
        assert response.status_code == 404

    def test_non_object_body_returns_400(self, viewer_client):
        response = viewer_client.put("/org/departments/dept1", json=["dept1"])
        assert response.status_code == 400

    def test_non_list_sequence_returns_400(self, viewer_client):
        response = viewer_client.put(
            "/org/departments/dept1", json={"functions": "Найм"}
        )
        assert response.status_code == 400
        assert "list" in response.get_json()["message"]

    def test_non_object_company_returns_400(self, viewer_client):
        response = viewer_client.put(
            "/org/tree", json={"company": "x", "departments": {}}
        )
        assert response.status_code == 400
        assert "company" in response.get_json()["message"]

    def test_replace_tree_heals_admin_department(self, viewer_client):
        tree = viewer_client.get("/org/tree").get_json()
        del tree["departments"]["dept7"]
        tree["departments"]["dept6"]["goal"] = "Развитие"

        response = viewer_client.put("/org/tree", json=tree)

        assert response.status_code == 200
        departments = response.get_json()["tree"]["departments"]
        assert "dept7" in departments
        assert departments["dept6"]["goal"] == "Развитие"

    def test_edits_require_login(self, client):
        assert client.put("/org/company", json={"goal": "X"}).status_code == 401


class TestAdminRoutes:
    """Routes limited to administrators."""

    def test_refresh_forbidden_for_viewer(self, viewer_client):
        response = viewer_client.post("/org/refresh")
        assert response.status_code == 403
        assert response.get_json()["error"] == "forbidden"

    def test_refresh_applies_stored_overrides(self, admin_client, store, online_state):
        store.rows[("company", "owner")] = {
            "type": "company",
            "node_id": "owner",
            "manager": "",
        }

        response = admin_client.post("/org/refresh")

        assert response.status_code == 200
        body = response.get_json()
        assert body["refreshed"] is True
        assert body["tree"]["company"]["manager"] == ""

    def test_save_logs(self, admin_client, store, online_state):
        admin_client.put("/org/company", json={"goal": "Рост", "manager": ""})

        response = admin_client.get("/org/save-logs")

        assert response.status_code == 200
        logs = response.get_json()["save_logs"]
        assert len(logs) == 1
        assert logs[0]["status"] == "completed"
        assert logs[0]["node_id"] == "owner"

    def test_save_logs_forbidden_for_viewer(self, viewer_client):
        assert viewer_client.get("/org/save-logs").status_code == 403

    def test_audit_filtered_by_entity(self, admin_client):
        admin_client.put("/org/departments/dept2", json={"manager": "А"})
        admin_client.put("/org/departments/dept3", json={"manager": "Б"})

        response = admin_client.get("/org/audit?entity_id=dept3")

        assert response.status_code == 200
        body = response.get_json()
        assert body["total"] == 1
        assert body["items"][0]["entity_type"] == "org.department"
