"""
Dashboard API Endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal
from app.db.session import get_db
from app.schemas.dashboard import DashboardAnalytics
from app.services.analytics import get_dashboard_analytics

router = APIRouter()


@router.get("/analytics", response_model=DashboardAnalytics)
def dashboard_analytics(
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """KPIs, recent orders, stock alerts and per-operator workload."""
    return get_dashboard_analytics(db)
