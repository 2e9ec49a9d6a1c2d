"""
Manufacturing Order and Work Order Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.core.status_config import ManufacturingOrderStatus, WorkOrderStatus


# ============================================================================
# Work Order Schemas
# ============================================================================

class WorkOrderResponse(BaseModel):
    """Work order with its parent order and names resolved"""
    id: int
    mo_id: int
    bom_line_id: Optional[int] = None
    component_product_id: int
    component_name: Optional[str] = None
    name: str
    required_quantity: int
    status: WorkOrderStatus
    operator_id: Optional[int] = None
    operator_name: Optional[str] = None

    # Parent manufacturing order
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    mo_status: Optional[ManufacturingOrderStatus] = None
    quantity_to_produce: Optional[int] = None

    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WorkOrderAssign(BaseModel):
    """Assign a work order to an operator"""
    operator_id: int = Field(..., description="Profile ID of an operator")


# ============================================================================
# Manufacturing Order Schemas
# ============================================================================

class ManufacturingOrderCreate(BaseModel):
    """
    Create a manufacturing order.

    Malformed bodies and non-positive quantities both come back as
    400 VALIDATION_ERROR; the latter is checked by the workflow engine.
    """
    product_id: int = Field(..., description="Finished good to produce")
    quantity: int = Field(..., description="Units to produce")
    assignee_id: Optional[int] = Field(None, description="Operator assigned to all work orders")
    notes: Optional[str] = Field(None, max_length=2000)


class ManufacturingOrderResponse(BaseModel):
    """Full manufacturing order with its work orders"""
    id: int
    product_id: int
    product_name: Optional[str] = None
    bom_id: int
    quantity_to_produce: int
    status: ManufacturingOrderStatus
    assignee_id: Optional[int] = None
    assignee_name: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    work_order_count: int = 0
    completed_work_orders: int = 0
    work_orders: List[WorkOrderResponse] = []


class ManufacturingOrderCreateResponse(BaseModel):
    """Result of creating a manufacturing order and fanning out its work orders"""
    mo_id: int
    product_id: int
    bom_id: int
    quantity_to_produce: int
    work_orders_created: int
    status: ManufacturingOrderStatus
    created_at: datetime
    work_orders: List[WorkOrderResponse] = []
