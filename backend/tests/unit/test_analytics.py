"""
Unit Tests for dashboard analytics

Includes the degraded paths: aggregate query failure and single-metric failure.
"""
import logging

import pytest
from sqlalchemy import func, select, table
from sqlalchemy.exc import SQLAlchemyError

from app.services import analytics
from app.services.order_workflow import OrderWorkflowService

from tests.factories import create_test_manufacturing_order, create_test_product


@pytest.fixture
def busy_floor(db_session, chair_setup, operator_user, other_operator):
    """Two orders: one completed, one with a single work order done."""
    create_test_product(db_session, name="Lacquer", stock=1, min_stock_level=4)

    workflow = OrderWorkflowService(db_session)
    done, done_wos = create_test_manufacturing_order(
        db_session, chair_setup["chair"], quantity=1, assignee=operator_user
    )
    for wo in done_wos:
        workflow.complete_work_order(wo.id, operator_user.id)

    running, running_wos = create_test_manufacturing_order(
        db_session, chair_setup["chair"], quantity=2, assignee=other_operator
    )
    workflow.complete_work_order(running_wos[0].id, other_operator.id)
    return {"done_id": done.id, "running_id": running.id}


@pytest.mark.unit
class TestDashboardAnalytics:

    def test_empty_store_yields_zeros(self, db_session):
        result = analytics.get_dashboard_analytics(db_session)

        assert result.kpis.model_dump() == {
            "total_products": 0,
            "active_boms": 0,
            "in_progress_mos": 0,
            "pending_wos": 0,
            "low_stock_items": 0,
            "completed_this_month": 0,
        }
        assert result.recent_orders == []
        assert result.stock_alerts == []
        assert result.operator_analytics == []

    def test_kpis_reflect_floor_activity(self, db_session, busy_floor):
        kpis = analytics.get_kpis(db_session)

        assert kpis.total_products == 4
        assert kpis.active_boms == 1
        assert kpis.in_progress_mos == 1
        assert kpis.pending_wos == 1
        assert kpis.low_stock_items == 1
        assert kpis.completed_this_month == 1

    def test_recent_orders_and_alerts(self, db_session, busy_floor):
        result = analytics.get_dashboard_analytics(db_session)

        assert [o.id for o in result.recent_orders] == [busy_floor["running_id"], busy_floor["done_id"]]
        assert result.recent_orders[0].product_name == "Chair"
        assert [(a.name, a.shortfall) for a in result.stock_alerts] == [("Lacquer", 3)]

    def test_operator_workload(self, db_session, busy_floor, operator_user, other_operator):
        result = analytics.get_dashboard_analytics(db_session)
        workload = {w.operator_id: w for w in result.operator_analytics}

        assert workload[operator_user.id].assigned == 2
        assert workload[operator_user.id].completed == 2
        assert workload[other_operator.id].assigned == 2
        assert workload[other_operator.id].completed == 1
        assert workload[other_operator.id].in_progress == 0

    def test_falls_back_to_individual_queries(self, db_session, busy_floor, monkeypatch, caplog):
        expected = analytics.get_kpis(db_session)

        def broken_aggregate(db):
            raise SQLAlchemyError("aggregate not supported")

        monkeypatch.setattr(analytics, "_aggregate_kpis", broken_aggregate)

        with caplog.at_level(logging.WARNING, logger="app.services.analytics"):
            kpis = analytics.get_kpis(db_session)

        assert kpis == expected
        assert any("falling back" in r.getMessage() for r in caplog.records)

    def test_failing_metric_degrades_to_zero(self, db_session, busy_floor, monkeypatch):
        real_statements = analytics._kpi_statements

        def statements_with_broken_metric(month_start):
            statements = real_statements(month_start)
            statements["pending_wos"] = select(func.count()).select_from(table("no_such_table"))
            return statements

        monkeypatch.setattr(analytics, "_kpi_statements", statements_with_broken_metric)

        kpis = analytics.get_kpis(db_session)

        assert kpis.pending_wos == 0
        assert kpis.total_products == 4
        assert kpis.completed_this_month == 1


@pytest.mark.unit
def test_operator_analytics_counts(db_session, busy_floor, other_operator):
    result = analytics.get_operator_analytics(db_session, other_operator.id)

    assert result.total_assigned == 2
    assert result.pending == 1
    assert result.completed == 1
    assert result.in_progress == 0


@pytest.mark.unit
def test_operator_without_work_has_zero_counts(db_session, operator_user):
    result = analytics.get_operator_analytics(db_session, operator_user.id)

    assert result.model_dump() == {
        "operator_id": operator_user.id,
        "total_assigned": 0,
        "pending": 0,
        "in_progress": 0,
        "completed": 0,
    }
