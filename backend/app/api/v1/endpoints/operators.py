"""
Operators API Endpoints

Read-only view of operator profiles mirrored from the identity provider.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import AdminPrincipal, StaffPrincipal
from app.db.session import get_db
from app.exceptions import NotFoundError, PermissionDeniedError
from app.schemas.dashboard import OperatorAnalytics, OperatorResponse
from app.services import catalog
from app.services.analytics import get_operator_analytics

router = APIRouter()


@router.get("", response_model=List[OperatorResponse])
def list_operators(
    principal: AdminPrincipal,
    search: Optional[str] = Query(None, description="Match name or email"),
    db: Session = Depends(get_db),
):
    return catalog.list_operators(db, search=search)


@router.get("/{operator_id}/analytics", response_model=OperatorAnalytics)
def operator_analytics(
    operator_id: int,
    principal: StaffPrincipal,
    db: Session = Depends(get_db),
):
    """Work order counts for one operator. Operators may only view their own."""
    if principal.is_operator and principal.user_id != operator_id:
        raise PermissionDeniedError("Operators can only view their own analytics", action="operator_analytics")

    profile = catalog.get_profile(db, operator_id)
    if profile is None or not profile.is_operator:
        raise NotFoundError("Operator", operator_id)
    return get_operator_analytics(db, operator_id)
