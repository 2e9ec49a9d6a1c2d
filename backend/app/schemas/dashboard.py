"""
Dashboard and operator analytics schemas
"""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class DashboardKPIs(BaseModel):
    total_products: int = 0
    active_boms: int = 0
    in_progress_mos: int = 0
    pending_wos: int = 0
    low_stock_items: int = 0
    completed_this_month: int = 0


class RecentOrder(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity_to_produce: int
    status: str
    created_at: datetime


class StockAlert(BaseModel):
    product_id: int
    name: str
    stock_on_hand: int
    min_stock_level: int
    shortfall: int


class OperatorWorkload(BaseModel):
    operator_id: int
    full_name: Optional[str] = None
    assigned: int = 0
    in_progress: int = 0
    completed: int = 0


class DashboardAnalytics(BaseModel):
    """Everything the admin dashboard renders in one payload"""
    kpis: DashboardKPIs
    recent_orders: List[RecentOrder] = []
    stock_alerts: List[StockAlert] = []
    operator_analytics: List[OperatorWorkload] = []


class OperatorAnalytics(BaseModel):
    operator_id: int
    total_assigned: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0


class OperatorResponse(BaseModel):
    id: int
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: str
    created_at: datetime

    class Config:
        from_attributes = True
