"""
Products API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal, StaffPrincipal
from app.db.session import get_db
from app.models.product import ProductType
from app.schemas.common import MessageResponse
from app.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from app.services import catalog

router = APIRouter()


@router.get("", response_model=List[ProductResponse])
def list_products(
    principal: StaffPrincipal,
    type: Optional[ProductType] = Query(None, description="raw_material or finished_good"),
    low_stock: bool = Query(False, description="Only products below their minimum"),
    search: Optional[str] = Query(None, description="Search by name"),
    db: Session = Depends(get_db),
):
    return catalog.list_products(
        db,
        product_type=type.value if type else None,
        low_stock_only=low_stock,
        search=search,
    )


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """Create a product. opening_stock is posted to the stock ledger."""
    return catalog.create_product(
        db,
        name=data.name,
        product_type=data.type,
        min_stock_level=data.min_stock_level,
        opening_stock=data.opening_stock,
        created_by=principal.user_id,
    )


@router.get("/{product_id}", response_model=ProductResponse)
def get_product(
    product_id: int,
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    return catalog.get_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: int,
    data: ProductUpdate,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    return catalog.update_product(
        db,
        product_id,
        name=changes.get("name"),
        product_type=changes.get("type"),
        min_stock_level=changes.get("min_stock_level"),
    )


@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """Delete an unreferenced product. 409 while BOMs, orders or ledger rows use it."""
    catalog.delete_product(db, product_id)
    return MessageResponse(message=f"Product {product_id} deleted")
