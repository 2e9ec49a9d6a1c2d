"""
Product Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.models.product import ProductType


class ProductBase(BaseModel):
    """Base product fields"""
    name: str = Field(..., min_length=1, max_length=255)
    type: ProductType = Field(ProductType.RAW_MATERIAL, description="raw_material or finished_good")
    min_stock_level: int = Field(0, ge=0, description="Reorder threshold for stock alerts")


class ProductCreate(ProductBase):
    """Create a new product, optionally with opening stock"""
    opening_stock: int = Field(0, ge=0, description="Posted to the stock ledger as an OPENING adjustment")


class ProductUpdate(BaseModel):
    """Update product master data. Stock is changed through the stock ledger only."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[ProductType] = None
    min_stock_level: Optional[int] = Field(None, ge=0)


class ProductResponse(ProductBase):
    """Product with current stock"""
    id: int
    stock_on_hand: int
    is_low_stock: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
