"""
Work Orders API Endpoints

Per-component tasks fanned out from manufacturing orders. Operators see and
act on their own work orders; admins see all and handle assignment.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal, StaffPrincipal
from app.core.status_config import WorkOrderStatus
from app.db.session import get_db
from app.exceptions import PermissionDeniedError
from app.logging_config import get_logger
from app.models.manufacturing_order import WorkOrder
from app.schemas.manufacturing_order import WorkOrderAssign, WorkOrderResponse
from app.services.order_workflow import OrderWorkflowService

router = APIRouter()
logger = get_logger(__name__)


def build_work_order_response(wo: WorkOrder) -> WorkOrderResponse:
    """Flatten a work order with its joined MO, product, component and operator."""
    mo = wo.manufacturing_order
    return WorkOrderResponse(
        id=wo.id,
        mo_id=wo.mo_id,
        bom_line_id=wo.bom_line_id,
        component_product_id=wo.component_product_id,
        component_name=wo.component.name if wo.component else None,
        name=wo.name,
        required_quantity=wo.required_quantity,
        status=wo.status,
        operator_id=wo.operator_id,
        operator_name=wo.operator.display_name if wo.operator else None,
        product_id=mo.product_id if mo else None,
        product_name=mo.product.name if mo and mo.product else None,
        mo_status=mo.status if mo else None,
        quantity_to_produce=mo.quantity_to_produce if mo else None,
        created_at=wo.created_at,
        updated_at=wo.updated_at,
        started_at=wo.started_at,
        completed_at=wo.completed_at,
    )


@router.get("", response_model=List[WorkOrderResponse])
def list_work_orders(
    principal: StaffPrincipal,
    operator_id: Optional[int] = Query(None, description="Filter by assigned operator"),
    status: Optional[WorkOrderStatus] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db),
):
    """
    List work orders.

    Operators only ever get their own; asking for another operator's list
    is refused.
    """
    if principal.is_operator:
        if operator_id is not None and operator_id != principal.user_id:
            raise PermissionDeniedError(
                "Operators can only list their own work orders",
                action="list_work_orders",
            )
        operator_id = principal.user_id

    workflow = OrderWorkflowService(db)
    work_orders = workflow.list_work_orders(
        operator_id=operator_id,
        status=status.value if status else None,
    )
    return [build_work_order_response(wo) for wo in work_orders]


@router.get("/mine", response_model=List[WorkOrderResponse])
def list_my_work_orders(
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    """Work orders assigned to the caller."""
    workflow = OrderWorkflowService(db)
    return [build_work_order_response(wo) for wo in workflow.list_work_orders_for_operator(principal.user_id)]


@router.patch("/{work_order_id}/start", response_model=WorkOrderResponse)
def start_work_order(
    work_order_id: int,
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    """Start a pending work order assigned to the caller."""
    wo = OrderWorkflowService(db).start_work_order(work_order_id, principal.user_id)
    return build_work_order_response(wo)


@router.patch("/{work_order_id}/complete", response_model=WorkOrderResponse)
def complete_work_order(
    work_order_id: int,
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    """
    Complete a work order assigned to the caller.

    404 when the work order is not the caller's, 409 when it is already
    completed or cancelled, 422 when component stock is short.
    """
    wo = OrderWorkflowService(db).complete_work_order(work_order_id, principal.user_id)
    return build_work_order_response(wo)


@router.patch("/{work_order_id}/assign", response_model=WorkOrderResponse)
def assign_work_order(
    work_order_id: int,
    data: WorkOrderAssign,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    wo = OrderWorkflowService(db).assign_work_order(work_order_id, data.operator_id)
    logger.info(f"Admin {principal.user_id} assigned work order {work_order_id} to {data.operator_id}")
    return build_work_order_response(wo)


@router.patch("/{work_order_id}/cancel", response_model=WorkOrderResponse)
def cancel_work_order(
    work_order_id: int,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    wo = OrderWorkflowService(db).cancel_work_order(work_order_id)
    return build_work_order_response(wo)
