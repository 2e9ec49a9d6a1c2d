"""
Manufacturing Orders API Endpoints

Creating an order resolves the product's active BOM and fans out one work
order per BOM line in a single transaction.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal, Pagination, StaffPrincipal
from app.api.v1.endpoints.work_orders import build_work_order_response
from app.core.status_config import ManufacturingOrderStatus, WorkOrderStatus
from app.db.session import get_db
from app.exceptions import NotFoundError
from app.models.manufacturing_order import ManufacturingOrder
from app.schemas.common import ListResponse, PaginationMeta
from app.schemas.manufacturing_order import (
    ManufacturingOrderCreate,
    ManufacturingOrderCreateResponse,
    ManufacturingOrderResponse,
)
from app.services.order_workflow import OrderWorkflowService

router = APIRouter()


def _build_order_response(order: ManufacturingOrder) -> ManufacturingOrderResponse:
    work_orders = list(order.work_orders)
    return ManufacturingOrderResponse(
        id=order.id,
        product_id=order.product_id,
        product_name=order.product.name if order.product else None,
        bom_id=order.bom_id,
        quantity_to_produce=order.quantity_to_produce,
        status=order.status,
        assignee_id=order.assignee_id,
        assignee_name=order.assignee.display_name if order.assignee else None,
        notes=order.notes,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        completed_at=order.completed_at,
        work_order_count=len(work_orders),
        completed_work_orders=sum(1 for wo in work_orders if wo.status == WorkOrderStatus.COMPLETED.value),
        work_orders=[build_work_order_response(wo) for wo in work_orders],
    )


@router.post("", response_model=ManufacturingOrderCreateResponse, status_code=status.HTTP_201_CREATED)
def create_manufacturing_order(
    data: ManufacturingOrderCreate,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """
    Create a manufacturing order and its work orders.

    - 400 for invalid quantity, product, assignee or BOM contents
    - 404 when the product has no active BOM
    - 500 when the store fails (nothing is written)
    """
    workflow = OrderWorkflowService(db)
    created = workflow.create_manufacturing_order(
        product_id=data.product_id,
        quantity=data.quantity,
        assignee_id=data.assignee_id,
        notes=data.notes,
        created_by=principal.user_id,
    )
    order = workflow.get_manufacturing_order(created.mo_id)
    return ManufacturingOrderCreateResponse(
        mo_id=order.id,
        product_id=order.product_id,
        bom_id=order.bom_id,
        quantity_to_produce=order.quantity_to_produce,
        work_orders_created=created.work_orders_created,
        status=order.status,
        created_at=order.created_at,
        work_orders=[build_work_order_response(wo) for wo in order.work_orders],
    )


@router.get("", response_model=ListResponse[ManufacturingOrderResponse])
def list_manufacturing_orders(
    principal: AdminPrincipal,
    pagination: Pagination,
    status: Optional[ManufacturingOrderStatus] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db),
):
    orders, total = OrderWorkflowService(db).list_manufacturing_orders(
        status=status.value if status else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    items = [_build_order_response(o) for o in orders]
    return ListResponse[ManufacturingOrderResponse](
        items=items,
        pagination=PaginationMeta(
            total=total,
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(items),
        ),
    )


@router.get("/{mo_id}", response_model=ManufacturingOrderResponse)
def get_manufacturing_order(
    mo_id: int,
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    """Operators can only see orders they are assigned to or have work on."""
    order = OrderWorkflowService(db).get_manufacturing_order(mo_id)
    if principal.is_operator:
        involved = order.assignee_id == principal.user_id or any(
            wo.operator_id == principal.user_id for wo in order.work_orders
        )
        if not involved:
            raise NotFoundError("Manufacturing order", mo_id)
    return _build_order_response(order)


@router.post("/{mo_id}/confirm", response_model=ManufacturingOrderResponse)
def confirm_manufacturing_order(
    mo_id: int,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    return _build_order_response(OrderWorkflowService(db).confirm_manufacturing_order(mo_id))


@router.post("/{mo_id}/cancel", response_model=ManufacturingOrderResponse)
def cancel_manufacturing_order(
    mo_id: int,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """Cancel the order and every open work order under it."""
    return _build_order_response(OrderWorkflowService(db).cancel_manufacturing_order(mo_id))


@router.post("/{mo_id}/complete", response_model=ManufacturingOrderResponse)
def complete_manufacturing_order(
    mo_id: int,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """Close an in-progress order once none of its work orders is open."""
    order = OrderWorkflowService(db).complete_manufacturing_order(mo_id, actor_id=principal.user_id)
    return _build_order_response(order)
