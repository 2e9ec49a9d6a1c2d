"""
Tests for dashboard and operator endpoints.
"""
import pytest

from app.services.order_workflow import OrderWorkflowService

from tests.factories import create_test_manufacturing_order


class TestDashboard:
    """Tests for GET /api/v1/dashboard/analytics"""

    @pytest.mark.api
    def test_analytics_shape(self, client, db_session, chair_setup, admin_headers, operator_user):
        _, work_orders = create_test_manufacturing_order(
            db_session, chair_setup["chair"], quantity=2, assignee=operator_user
        )
        OrderWorkflowService(db_session).complete_work_order(work_orders[0].id, operator_user.id)

        response = client.get("/api/v1/dashboard/analytics", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["kpis"]["total_products"] == 3
        assert data["kpis"]["active_boms"] == 1
        assert data["kpis"]["in_progress_mos"] == 1
        assert data["kpis"]["pending_wos"] == 1
        assert data["recent_orders"][0]["status"] == "in_progress"
        assert data["stock_alerts"] == []
        workload = {w["operator_id"]: w for w in data["operator_analytics"]}
        assert workload[operator_user.id]["completed"] == 1

    @pytest.mark.api
    def test_operators_are_refused(self, client, operator_headers):
        response = client.get("/api/v1/dashboard/analytics", headers=operator_headers)

        assert response.status_code == 403


class TestOperators:
    """Tests for /api/v1/operators"""

    @pytest.mark.api
    def test_list_operators_excludes_admins(self, client, admin_headers, operator_user, other_operator):
        response = client.get("/api/v1/operators", headers=admin_headers)

        assert response.status_code == 200
        assert [o["full_name"] for o in response.json()] == ["Olu Operator", "Pat Picker"]

    @pytest.mark.api
    def test_operator_reads_own_analytics(self, client, db_session, chair_setup, operator_user, operator_headers):
        create_test_manufacturing_order(db_session, chair_setup["chair"], quantity=1, assignee=operator_user)

        response = client.get(f"/api/v1/operators/{operator_user.id}/analytics", headers=operator_headers)

        assert response.status_code == 200
        assert response.json()["total_assigned"] == 2
        assert response.json()["pending"] == 2

    @pytest.mark.api
    def test_operator_cannot_read_someone_elses(self, client, other_operator, operator_headers):
        response = client.get(f"/api/v1/operators/{other_operator.id}/analytics", headers=operator_headers)

        assert response.status_code == 403

    @pytest.mark.api
    def test_admin_profile_is_not_an_operator(self, client, admin_user, admin_headers):
        response = client.get(f"/api/v1/operators/{admin_user.id}/analytics", headers=admin_headers)

        assert response.status_code == 404
