"""
Bill of Materials Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ============================================================================
# BOM Line Schemas
# ============================================================================

class BOMLineCreate(BaseModel):
    """Component and quantity per finished unit"""
    component_product_id: int = Field(..., description="Component product ID")
    quantity: int = Field(..., gt=0, description="Units required per finished unit")


class BOMLineResponse(BaseModel):
    """BOM line response with component details"""
    id: int
    bom_id: int
    component_product_id: int
    quantity: int
    # Component info (joined from products)
    component_name: Optional[str] = None
    component_stock_on_hand: Optional[int] = None

    class Config:
        from_attributes = True


# ============================================================================
# BOM Schemas
# ============================================================================

class BOMCreate(BaseModel):
    """Create a BOM together with its lines"""
    product_id: int = Field(..., description="Finished good this BOM produces")
    name: Optional[str] = Field(None, max_length=255)
    version: str = Field("1.0", max_length=20)
    active: bool = True
    lines: List[BOMLineCreate] = Field(default_factory=list)


class BOMListResponse(BaseModel):
    """BOM list item (summary)"""
    id: int
    product_id: int
    product_name: Optional[str] = None
    name: Optional[str] = None
    version: str
    active: bool
    line_count: int = 0
    created_at: datetime
    updated_at: datetime


class BOMResponse(BOMListResponse):
    """Full BOM details with lines"""
    created_by: Optional[int] = None
    lines: List[BOMLineResponse] = []
