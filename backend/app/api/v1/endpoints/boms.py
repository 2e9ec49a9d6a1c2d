"""
Bill of Materials API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal, StaffPrincipal
from app.db.session import get_db
from app.models.bom import BOM
from app.schemas.bom import BOMCreate, BOMLineResponse, BOMListResponse, BOMResponse
from app.schemas.common import MessageResponse
from app.services import catalog

router = APIRouter()


def _build_bom_summary(bom: BOM) -> BOMListResponse:
    return BOMListResponse(
        id=bom.id,
        product_id=bom.product_id,
        product_name=bom.product.name if bom.product else None,
        name=bom.name,
        version=bom.version,
        active=bom.active,
        line_count=len(bom.lines),
        created_at=bom.created_at,
        updated_at=bom.updated_at,
    )


def _build_bom_response(bom: BOM) -> BOMResponse:
    summary = _build_bom_summary(bom)
    return BOMResponse(
        **summary.model_dump(),
        created_by=bom.created_by,
        lines=[
            BOMLineResponse(
                id=line.id,
                bom_id=line.bom_id,
                component_product_id=line.component_product_id,
                quantity=line.quantity,
                component_name=line.component.name if line.component else None,
                component_stock_on_hand=line.component.stock_on_hand if line.component else None,
            )
            for line in bom.lines
        ],
    )


@router.get("", response_model=List[BOMListResponse])
def list_boms(
    principal: StaffPrincipal,
    product_id: Optional[int] = Query(None, description="Filter by finished good"),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    db: Session = Depends(get_db),
):
    return [_build_bom_summary(b) for b in catalog.list_boms(db, product_id=product_id, active=active)]


@router.post("", response_model=BOMResponse, status_code=status.HTTP_201_CREATED)
def create_bom(
    data: BOMCreate,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """Create a BOM with its lines in one transaction."""
    bom = catalog.create_bom(
        db,
        product_id=data.product_id,
        lines=[line.model_dump() for line in data.lines],
        name=data.name,
        version=data.version,
        active=data.active,
        created_by=principal.user_id,
    )
    return _build_bom_response(bom)


@router.get("/{bom_id}", response_model=BOMResponse)
def get_bom(
    bom_id: int,
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    return _build_bom_response(catalog.get_bom(db, bom_id))


@router.delete("/{bom_id}", response_model=MessageResponse)
def delete_bom(
    bom_id: int,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    catalog.delete_bom(db, bom_id)
    return MessageResponse(message=f"BOM {bom_id} deleted")
