"""
Stock Ledger API Endpoints

The ledger is append-only: entries can be listed and posted, never edited.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal, StaffPrincipal
from app.db.session import get_db, transaction
from app.models.stock_ledger import StockLedgerEntry
from app.schemas.stock_ledger import (
    LedgerVerificationReport,
    StockLedgerEntryResponse,
    StockMovementCreate,
)
from app.services.stock_ledger import StockLedgerService

router = APIRouter()


def _build_entry_response(entry: StockLedgerEntry) -> StockLedgerEntryResponse:
    return StockLedgerEntryResponse(
        id=entry.id,
        product_id=entry.product_id,
        product_name=entry.product.name if entry.product else None,
        movement_type=entry.movement_type,
        quantity_in=entry.quantity_in,
        quantity_out=entry.quantity_out,
        balance=entry.balance,
        reference_type=entry.reference_type,
        reference_id=entry.reference_id,
        notes=entry.notes,
        created_by=entry.created_by,
        created_at=entry.created_at,
    )


@router.get("", response_model=List[StockLedgerEntryResponse])
def list_stock_ledger(
    principal: StaffPrincipal,
    product_id: Optional[int] = Query(None, description="Only entries for this product"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Ledger entries, newest first."""
    entries = StockLedgerService(db).list_entries(product_id=product_id, limit=limit, offset=offset)
    return [_build_entry_response(e) for e in entries]


@router.post("", response_model=StockLedgerEntryResponse, status_code=status.HTTP_201_CREATED)
def post_stock_movement(
    data: StockMovementCreate,
    principal: AdminPrincipal,
    db: Session = Depends(get_db),
):
    """
    Post a movement by hand (purchase receipt, sale, adjustment).

    422 when a non-adjustment movement would take stock below zero.
    """
    ledger = StockLedgerService(db)
    with transaction(db):
        entry = ledger.append_movement(
            data.product_id,
            data.movement_type,
            data.direction,
            data.quantity,
            data.reference_id,
            reference_type=data.reference_type,
            notes=data.notes,
            created_by=principal.user_id,
        )

    return _build_entry_response(entry)


@router.get("/verify", response_model=LedgerVerificationReport)
def verify_stock_ledger(
    principal: AdminPrincipal,
    product_id: Optional[int] = Query(None, description="Check a single product"),
    db: Session = Depends(get_db),
):
    """Replay the ledger and report products whose stock does not reconcile."""
    ledger = StockLedgerService(db)
    if product_id is None:
        return ledger.verify_all()
    result = ledger.verify_product(product_id)
    return LedgerVerificationReport(
        products_checked=1,
        consistent=result.consistent,
        inconsistencies=[] if result.consistent else [result],
    )
