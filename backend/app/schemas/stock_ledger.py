"""
Stock Ledger Pydantic Schemas
"""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.stock_ledger import MovementType, MovementDirection


class StockMovementCreate(BaseModel):
    """Manual stock movement posted by an administrator"""
    product_id: int
    movement_type: MovementType
    direction: MovementDirection
    quantity: int = Field(..., description="Positive number of units")
    reference_id: Optional[str] = Field(None, max_length=100)
    reference_type: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)


class StockLedgerEntryResponse(BaseModel):
    """One ledger row"""
    id: int
    product_id: int
    product_name: Optional[str] = None
    movement_type: MovementType
    quantity_in: Optional[int] = None
    quantity_out: Optional[int] = None
    balance: int
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime


class LedgerCheckResult(BaseModel):
    """Replay of one product's ledger compared with its stock_on_hand"""
    product_id: int
    product_name: str
    entry_count: int
    replayed_balance: int
    stock_on_hand: int
    broken_entries: List[int] = Field(default_factory=list, description="IDs whose stored balance disagrees with the replay")
    consistent: bool


class LedgerVerificationReport(BaseModel):
    """Reconstruction check across products"""
    products_checked: int
    consistent: bool
    inconsistencies: List[LedgerCheckResult] = []
