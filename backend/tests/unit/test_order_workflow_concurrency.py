"""
Unit Tests for concurrent work order completion

Covers:
1. The status-guarded UPDATE rejecting a completion another session already made
2. The last work order of an order finishing after its sibling finished elsewhere
3. The parent order row lock taken before a work order changes status
"""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.exceptions import AlreadyCompletedError
from app.models.manufacturing_order import ManufacturingOrder, WorkOrder
from app.models.stock_ledger import StockLedgerEntry
from app.services.order_workflow import OrderWorkflowService

from tests.factories import (
    create_test_bom,
    create_test_manufacturing_order,
    create_test_product,
    create_test_profile,
    work_order_for,
)


@pytest.fixture
def session_factory(tmp_path):
    """A file-backed database that several sessions can open at once"""
    import app.models  # noqa: F401

    engine = create_engine(f"sqlite:///{tmp_path / 'shopfloor.db'}")

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autoflush=False, bind=engine)
    finally:
        engine.dispose()


def _seed_chair_order(db):
    """Chair order with a Legs and a Seat work order; returns plain ids."""
    operator = create_test_profile(db, role="operator", full_name="Olu Operator")
    legs = create_test_product(db, name="Legs", stock=100)
    seat = create_test_product(db, name="Seat", stock=20)
    chair = create_test_product(db, name="Chair", product_type="finished_good")
    create_test_bom(db, chair, [(legs, 4), (seat, 1)])
    order, work_orders = create_test_manufacturing_order(db, chair, quantity=1, assignee=operator)
    return (
        operator.id,
        order.id,
        work_order_for(work_orders, legs).id,
        work_order_for(work_orders, seat).id,
    )


def _count_movements(db, movement_type):
    return db.query(StockLedgerEntry).filter(StockLedgerEntry.movement_type == movement_type).count()


@pytest.mark.unit
class TestCompletionAcrossSessions:

    def test_completion_already_made_elsewhere_is_rejected(self, session_factory):
        first, second = session_factory(), session_factory()
        try:
            operator_id, _, legs_wo_id, _ = _seed_chair_order(first)

            # second session holds the work order while it is still pending
            assert second.get(WorkOrder, legs_wo_id).status == "pending"

            OrderWorkflowService(first).complete_work_order(legs_wo_id, operator_id)

            with pytest.raises(AlreadyCompletedError):
                OrderWorkflowService(second).complete_work_order(legs_wo_id, operator_id)

            first.expire_all()
            assert first.get(WorkOrder, legs_wo_id).status == "completed"
            assert _count_movements(first, "work_order_consumption") == 1
        finally:
            second.close()
            first.close()

    def test_last_completion_sees_sibling_finished_elsewhere(self, session_factory):
        first, second = session_factory(), session_factory()
        try:
            operator_id, mo_id, legs_wo_id, seat_wo_id = _seed_chair_order(first)

            # second session caches the order as draft and its own work order
            assert second.get(ManufacturingOrder, mo_id).status == "draft"
            second.get(WorkOrder, seat_wo_id)

            OrderWorkflowService(first).complete_work_order(legs_wo_id, operator_id)
            OrderWorkflowService(second).complete_work_order(seat_wo_id, operator_id)

            first.expire_all()
            order = first.get(ManufacturingOrder, mo_id)
            assert order.status == "completed"
            assert order.completed_at is not None
            assert _count_movements(first, "production") == 1
            assert _count_movements(first, "work_order_consumption") == 2
        finally:
            second.close()
            first.close()


@pytest.mark.unit
class TestOrderRowLock:
    """The parent order is locked before any work order row is written"""

    @pytest.fixture
    def recorded(self, db_session):
        statements = []

        def _record(state):
            mapper = state.bind_mapper
            if mapper is None:
                return
            if state.is_update:
                statements.append(("update", mapper.class_))
            elif state.is_select and not (state.is_relationship_load or state.is_column_load):
                sql = str(state.statement.compile(dialect=postgresql.dialect()))
                if "FOR UPDATE" in sql:
                    statements.append(("lock", mapper.class_))

        event.listen(db_session, "do_orm_execute", _record)
        yield statements
        event.remove(db_session, "do_orm_execute", _record)

    def test_completion_locks_order_first(self, db_session, chair_setup, operator_user, recorded):
        _, work_orders = create_test_manufacturing_order(
            db_session, chair_setup["chair"], quantity=1, assignee=operator_user
        )
        recorded.clear()

        OrderWorkflowService(db_session).complete_work_order(work_orders[0].id, operator_user.id)

        assert recorded[:2] == [("lock", ManufacturingOrder), ("update", WorkOrder)]

    def test_cancellation_locks_order_first(self, db_session, chair_setup, operator_user, recorded):
        _, work_orders = create_test_manufacturing_order(
            db_session, chair_setup["chair"], quantity=1, assignee=operator_user
        )
        recorded.clear()

        OrderWorkflowService(db_session).cancel_work_order(work_orders[0].id)

        assert recorded[:2] == [("lock", ManufacturingOrder), ("update", WorkOrder)]
