"""
Dashboard analytics

Read-only aggregation across products, BOMs, orders and the operator roster.

The KPI block is computed in one round trip of scalar subqueries. If that
fails (e.g. a dialect rejects the statement) the read is rolled back and each
metric is recomputed on its own; a metric that still fails reports 0 so the
dashboard always renders.
"""
from datetime import datetime
from typing import Callable, Dict, List

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.logging_config import get_logger
from app.models.bom import BOM
from app.models.manufacturing_order import ManufacturingOrder, WorkOrder
from app.models.product import Product
from app.models.profile import UserProfile
from app.schemas.dashboard import (
    DashboardAnalytics,
    DashboardKPIs,
    OperatorAnalytics,
    OperatorWorkload,
    RecentOrder,
    StockAlert,
)

logger = get_logger(__name__)


def _month_start() -> datetime:
    return datetime.utcnow().replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _kpi_statements(month_start: datetime) -> Dict[str, object]:
    """One COUNT statement per KPI, keyed by field name."""
    return {
        "total_products": select(func.count(Product.id)),
        "active_boms": select(func.count(BOM.id)).where(BOM.active.is_(True)),
        "in_progress_mos": select(func.count(ManufacturingOrder.id)).where(
            ManufacturingOrder.status == "in_progress"
        ),
        "pending_wos": select(func.count(WorkOrder.id)).where(WorkOrder.status == "pending"),
        "low_stock_items": select(func.count(Product.id)).where(
            Product.stock_on_hand < Product.min_stock_level
        ),
        "completed_this_month": select(func.count(ManufacturingOrder.id)).where(
            ManufacturingOrder.status == "completed",
            ManufacturingOrder.completed_at >= month_start,
        ),
    }


def _aggregate_kpis(db: Session) -> DashboardKPIs:
    statements = _kpi_statements(_month_start())
    row = db.execute(
        select(*[stmt.scalar_subquery().label(name) for name, stmt in statements.items()])
    ).one()
    return DashboardKPIs(**{name: value or 0 for name, value in row._mapping.items()})


def _safe_scalar(db: Session, label: str, statement) -> int:
    try:
        return db.execute(statement).scalar() or 0
    except SQLAlchemyError:
        db.rollback()
        logger.warning(f"Dashboard metric '{label}' failed, reporting 0", exc_info=True)
        return 0


def _individual_kpis(db: Session) -> DashboardKPIs:
    statements = _kpi_statements(_month_start())
    return DashboardKPIs(**{name: _safe_scalar(db, name, stmt) for name, stmt in statements.items()})


def get_kpis(db: Session) -> DashboardKPIs:
    try:
        return _aggregate_kpis(db)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Aggregate KPI query failed, falling back to per-metric queries", exc_info=True)
        return _individual_kpis(db)


def _with_fallback(db: Session, label: str, loader: Callable[[Session], list]) -> list:
    try:
        return loader(db)
    except SQLAlchemyError:
        db.rollback()
        logger.warning(f"Dashboard section '{label}' failed, returning empty list", exc_info=True)
        return []


def get_recent_orders(db: Session, limit: int) -> List[RecentOrder]:
    orders = (
        db.query(ManufacturingOrder)
        .options(joinedload(ManufacturingOrder.product))
        .order_by(ManufacturingOrder.created_at.desc(), ManufacturingOrder.id.desc())
        .limit(limit)
        .all()
    )
    return [
        RecentOrder(
            id=o.id,
            product_id=o.product_id,
            product_name=o.product.name if o.product else None,
            quantity_to_produce=o.quantity_to_produce,
            status=o.status,
            created_at=o.created_at,
        )
        for o in orders
    ]


def get_stock_alerts(db: Session, limit: int) -> List[StockAlert]:
    products = (
        db.query(Product)
        .filter(Product.stock_on_hand < Product.min_stock_level)
        .order_by(Product.stock_on_hand.asc(), Product.id)
        .limit(limit)
        .all()
    )
    return [
        StockAlert(
            product_id=p.id,
            name=p.name,
            stock_on_hand=p.stock_on_hand,
            min_stock_level=p.min_stock_level,
            shortfall=p.min_stock_level - p.stock_on_hand,
        )
        for p in products
    ]


def _workload_counts(db: Session, operator_id=None):
    query = db.query(
        WorkOrder.operator_id,
        func.count(WorkOrder.id).label("assigned"),
        func.sum(case((WorkOrder.status == "pending", 1), else_=0)).label("pending"),
        func.sum(case((WorkOrder.status == "in_progress", 1), else_=0)).label("in_progress"),
        func.sum(case((WorkOrder.status == "completed", 1), else_=0)).label("completed"),
    ).filter(WorkOrder.operator_id.isnot(None))
    if operator_id is not None:
        query = query.filter(WorkOrder.operator_id == operator_id)
    return {row.operator_id: row for row in query.group_by(WorkOrder.operator_id).all()}


def get_operator_workloads(db: Session) -> List[OperatorWorkload]:
    """Every operator, including those with nothing assigned."""
    counts = _workload_counts(db)
    operators = (
        db.query(UserProfile)
        .filter(UserProfile.role == "operator")
        .order_by(UserProfile.full_name, UserProfile.id)
        .all()
    )
    workloads = []
    for op in operators:
        row = counts.get(op.id)
        workloads.append(OperatorWorkload(
            operator_id=op.id,
            full_name=op.full_name,
            assigned=row.assigned if row else 0,
            in_progress=(row.in_progress or 0) if row else 0,
            completed=(row.completed or 0) if row else 0,
        ))
    return workloads


def get_dashboard_analytics(db: Session) -> DashboardAnalytics:
    """Assemble the admin dashboard. Never raises for store failures."""
    return DashboardAnalytics(
        kpis=get_kpis(db),
        recent_orders=_with_fallback(
            db, "recent_orders", lambda s: get_recent_orders(s, settings.DASHBOARD_RECENT_ORDERS_LIMIT)
        ),
        stock_alerts=_with_fallback(
            db, "stock_alerts", lambda s: get_stock_alerts(s, settings.DASHBOARD_STOCK_ALERTS_LIMIT)
        ),
        operator_analytics=_with_fallback(db, "operator_analytics", get_operator_workloads),
    )


def get_operator_analytics(db: Session, operator_id: int) -> OperatorAnalytics:
    """Work order counts for one operator."""
    row = _workload_counts(db, operator_id).get(operator_id)
    if not row:
        return OperatorAnalytics(operator_id=operator_id)
    return OperatorAnalytics(
        operator_id=operator_id,
        total_assigned=row.assigned,
        pending=row.pending or 0,
        in_progress=row.in_progress or 0,
        completed=row.completed or 0,
    )
